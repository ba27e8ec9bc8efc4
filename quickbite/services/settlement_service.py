import logging
from decimal import Decimal
from typing import Optional

from ..config import Config
from ..models import EscrowHold, Order, Settlement
from .fee_policy import to_units


class SettlementService:
    """Restaurant/platform split and escrow holds for captured payments"""

    def __init__(self, repository, commission_percent: Optional[Decimal] = None,
                 logger: Optional[logging.Logger] = None):
        self.repository = repository
        self.commission_percent = (
            Config.RESTAURANT_COMMISSION_PERCENT if commission_percent is None else commission_percent
        )
        self.logger = logger or logging.getLogger(__name__)

    @staticmethod
    def split(order: Order, commission_percent: Decimal) -> Settlement:
        pricing = order.pricing
        food_amount = pricing.subtotal - pricing.discount
        commission = to_units(food_amount * commission_percent / 100)
        return Settlement(
            order_id=order.id,
            restaurant_id=order.restaurant_id,
            food_amount=food_amount,
            commission=commission,
            restaurant_share=food_amount - commission,
            platform_share=commission + pricing.platform_fee + pricing.delivery_fee,
            tax=pricing.tax,
            total=pricing.total,
        )

    async def compute_settlement(self, order: Order) -> Settlement:
        settlement = await self.repository.save_settlement(self.split(order, self.commission_percent))
        self.logger.info(
            f"Settlement for order {order.order_number}: restaurant {settlement.restaurant_share}, "
            f"platform {settlement.platform_share}"
        )
        return settlement

    async def hold_escrow(self, order_id: int, user_id: int, amount: Decimal) -> EscrowHold:
        hold = await self.repository.hold_escrow(
            EscrowHold(order_id=order_id, user_id=user_id, amount=amount)
        )
        self.logger.info(f"Escrow {hold.status} for order {order_id}: {hold.amount}")
        return hold
