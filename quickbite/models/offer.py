from datetime import datetime
from decimal import Decimal
from typing import List, Optional
from .base import ApiModel, TimeStampedModel

class OfferItem(ApiModel):
    """Per-item discount rule keyed by coupon code"""
    coupon_code: str
    item_id: Optional[str] = None
    item_name: Optional[str] = None
    original_price: Decimal
    discounted_price: Decimal

class Offer(TimeStampedModel):
    """Restaurant-scoped, time-bounded promotion"""
    id: int
    restaurant_id: int
    status: str = "active"
    discount_type: str = "flat"
    min_order_value: Optional[Decimal] = None
    start_date: datetime
    end_date: Optional[datetime] = None
    items: List[OfferItem] = []

    def item_for_code(self, code: str) -> Optional[OfferItem]:
        for item in self.items:
            if item.coupon_code == code:
                return item
        return None
