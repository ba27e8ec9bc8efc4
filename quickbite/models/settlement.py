from datetime import datetime
from decimal import Decimal
from typing import Optional
from .base import TimeStampedModel

class Settlement(TimeStampedModel):
    """Restaurant/platform split of a captured order"""
    order_id: int
    restaurant_id: int
    food_amount: Decimal
    commission: Decimal
    restaurant_share: Decimal
    platform_share: Decimal
    tax: Decimal
    total: Decimal

class EscrowHold(TimeStampedModel):
    order_id: int
    user_id: int
    amount: Decimal
    status: str = "held"

class Refund(TimeStampedModel):
    id: Optional[int] = None
    order_id: int
    user_id: int
    amount: Decimal
    method: str
    reason: str
    status: str = "pending_approval"
    processed_at: Optional[datetime] = None
