from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional
from pydantic import Field
from .base import ApiModel, TimeStampedModel, utcnow
from .order import PaymentMethod, PaymentStatus

class PaymentLog(ApiModel):
    action: str
    timestamp: datetime = Field(default_factory=utcnow)
    details: Dict[str, Any] = {}

class Payment(TimeStampedModel):
    """One settlement attempt for an order"""
    id: Optional[int] = None
    payment_number: str
    order_id: int
    user_id: int
    amount: Decimal
    currency: str = "INR"
    method: PaymentMethod
    status: PaymentStatus
    razorpay_order_id: Optional[str] = None
    razorpay_payment_id: Optional[str] = None
    razorpay_signature: Optional[str] = None
    transaction_id: Optional[str] = None
    completed_at: Optional[datetime] = None
    logs: List[PaymentLog] = []
