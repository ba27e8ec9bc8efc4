import logging
from typing import Optional

from ..models import Order, PaymentStatus, Refund


class RefundService:
    """Cancellation refunds, queued for admin approval"""

    def __init__(self, repository, logger: Optional[logging.Logger] = None):
        self.repository = repository
        self.logger = logger or logging.getLogger(__name__)

    async def calculate_cancellation_refund(self, order: Order, reason: str) -> Optional[Refund]:
        if order.payment.status != PaymentStatus.COMPLETED:
            self.logger.info(f"No captured payment for order {order.order_number}; nothing to refund")
            return None

        refund = await self.repository.create(Refund(
            order_id=order.id,
            user_id=order.user_id,
            amount=order.pricing.total,
            method=order.payment.method.value,
            reason=reason,
        ))
        self.logger.info(
            f"Refund of {refund.amount} for order {order.order_number} awaiting admin approval"
        )
        return refund
