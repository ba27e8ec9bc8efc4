from decimal import Decimal
from typing import Optional
from .base import TimeStampedModel, GeoPoint

class Restaurant(TimeStampedModel):
    """Restaurant as seen by the order pipeline"""
    id: int
    restaurant_id: Optional[str] = None  # external business id
    slug: Optional[str] = None
    name: str
    is_active: bool = True
    is_accepting_orders: bool = True
    location: Optional[GeoPoint] = None
    free_delivery_above: Optional[Decimal] = None
    telegram_chat_id: Optional[int] = None
