import logging
from datetime import datetime
from decimal import Decimal
from typing import List, Optional, Tuple

from ..models import AppliedCoupon, Offer, OrderItem, Restaurant, utcnow
from .fee_policy import to_units

class DiscountService:
    """Resolves restaurant coupon codes against a cart"""

    def __init__(self, offers, logger: Optional[logging.Logger] = None):
        self.offers = offers
        self.logger = logger or logging.getLogger(__name__)

    @staticmethod
    def compute_discount(offer: Offer, code: str, items: List[OrderItem],
                         subtotal: Decimal) -> Optional[AppliedCoupon]:
        """Discount for the cart line the coupon targets, or None if it does not apply"""
        coupon_item = offer.item_for_code(code)
        if coupon_item is None or not coupon_item.item_id:
            return None

        if offer.min_order_value and subtotal < offer.min_order_value:
            return None

        line = next((item for item in items if item.item_id == coupon_item.item_id), None)
        if line is None:
            return None

        per_item = coupon_item.original_price - coupon_item.discounted_price
        discount = to_units(per_item * line.quantity)
        discount = max(Decimal(0), min(discount, to_units(line.line_total)))

        return AppliedCoupon(
            code=code,
            discount=discount,
            item_id=coupon_item.item_id,
            item_name=coupon_item.item_name,
            original_price=coupon_item.original_price,
            discounted_price=coupon_item.discounted_price,
            min_order=offer.min_order_value or Decimal(0),
        )

    async def resolve(self, code: Optional[str], restaurant: Optional[Restaurant],
                      items: List[OrderItem], subtotal: Decimal,
                      now: Optional[datetime] = None) -> Tuple[Decimal, Optional[AppliedCoupon]]:
        """(discount, applied coupon); lookup failures yield no discount"""
        if not code or restaurant is None:
            return Decimal(0), None

        try:
            offer = await self.offers.find_active_offer(restaurant.id, code, now or utcnow())
        except Exception as e:
            self.logger.error(f"Error fetching coupon {code} for restaurant {restaurant.id}: {e}")
            return Decimal(0), None

        if offer is None:
            self.logger.info(f"No active offer for coupon {code} at restaurant {restaurant.id}")
            return Decimal(0), None

        applied = self.compute_discount(offer, code, items, subtotal)
        if applied is None:
            return Decimal(0), None
        return applied.discount, applied
