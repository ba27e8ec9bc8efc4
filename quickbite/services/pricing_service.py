import logging
from decimal import Decimal
from typing import List, Optional

from ..exceptions import ValidationError
from ..models import DeliveryAddress, FeeSettings, OrderItem, PricingBreakdown, Restaurant
from . import fee_policy
from .discount_service import DiscountService
from .fee_policy import to_units
from .settings_service import SettingsService


class PricingService:
    """Builds the price breakdown of a cart.

    Steps run in a fixed order because later ones override earlier ones:
    subtotal, coupon discount, distance fee, amount-rule override, free
    delivery thresholds, platform fee, tax, total. Every part is rounded to
    the integer currency unit before summing, so ``total`` is exactly the sum
    of the parts.
    """

    def __init__(self, settings_service: SettingsService, discount_service: DiscountService,
                 logger: Optional[logging.Logger] = None):
        self.settings_service = settings_service
        self.discount_service = discount_service
        self.logger = logger or logging.getLogger(__name__)

    @staticmethod
    def subtotal(items: List[OrderItem]) -> Decimal:
        total = sum((item.line_total for item in items), Decimal(0))
        if total <= 0:
            raise ValidationError("Order subtotal must be greater than 0")
        return total

    @staticmethod
    def build_breakdown(items: List[OrderItem], settings: FeeSettings,
                        restaurant: Optional[Restaurant], address: Optional[DeliveryAddress],
                        discount: Decimal = Decimal(0), coupon=None) -> PricingBreakdown:
        """Pure pricing once the policy and coupon are known"""
        raw_subtotal = PricingService.subtotal(items)
        subtotal = to_units(raw_subtotal)
        discount = to_units(discount)

        destination = address.location if address else None
        delivery_fee, distance = fee_policy.delivery_fee(settings, raw_subtotal, restaurant, destination)
        delivery_fee = to_units(delivery_fee)
        platform_fee = to_units(settings.platform_fee)
        tax = fee_policy.gst(subtotal, discount, settings.gst_rate)

        total = subtotal - discount + delivery_fee + platform_fee + tax

        return PricingBreakdown(
            subtotal=subtotal,
            discount=discount,
            delivery_fee=delivery_fee,
            platform_fee=platform_fee,
            tax=tax,
            total=total,
            savings=discount,
            distance_km=round(distance, 2) if distance is not None else None,
            coupon_code=coupon.code if coupon else None,
            applied_coupon=coupon,
        )

    async def price(self, items: List[OrderItem], restaurant: Optional[Restaurant],
                    address: Optional[DeliveryAddress],
                    coupon_code: Optional[str] = None) -> PricingBreakdown:
        raw_subtotal = self.subtotal(items)
        settings = await self.settings_service.get_pricing_settings()
        discount, coupon = await self.discount_service.resolve(
            coupon_code, restaurant, items, raw_subtotal
        )

        breakdown = self.build_breakdown(items, settings, restaurant, address, discount, coupon)
        self.logger.debug(
            f"Priced cart for restaurant {restaurant.id if restaurant else None}: "
            f"{breakdown.model_dump(mode='json')}"
        )
        return breakdown
