"""Settlement paths for the three payment methods.

The method is normalized once when the order is created; from then on the
router hands the order to the matching strategy and nothing else branches
on the method string.
"""
import logging
from typing import Any, Dict, Optional

from ..config import Config
from ..exceptions import (
    ConsistencyError,
    InsufficientBalanceError,
    QuickBiteError,
    ReconciliationError,
    ValidationError,
)
from ..models import ApiModel, Order, OrderStatus, Payment, PaymentMethod, PaymentStatus, utcnow


class SettlementOutcome(ApiModel):
    order: Order
    payment: Optional[Payment] = None
    razorpay: Optional[Dict[str, Any]] = None
    wallet: Optional[Dict[str, Any]] = None


class SettlementStrategy:
    method: PaymentMethod

    def __init__(self, router: "SettlementRouter"):
        self.router = router
        self.logger = router.logger

    async def preflight(self, user_id: int, total) -> None:
        """Checks that must pass before the order is persisted"""

    async def settle(self, order: Order) -> SettlementOutcome:
        raise NotImplementedError


class CashSettlement(SettlementStrategy):
    method = PaymentMethod.CASH

    async def settle(self, order: Order) -> SettlementOutcome:
        router = self.router
        payment = None
        try:
            payment = await router.payments.record(
                order, self.method, PaymentStatus.PENDING, "Cash on delivery order created"
            )
        except Exception as e:
            self.logger.error(
                f"Error creating COD payment record for order {order.order_number} "
                f"(continuing without blocking order): {e}"
            )

        order.payment.status = PaymentStatus.PENDING
        router.mark_confirmed(order)
        try:
            order = await router.orders.save(order)
        except Exception as e:
            # nothing was captured; the stored order stays pending for manual accept
            self.logger.error(f"Cash order {order.order_number} could not be confirmed: {e}")
            raise QuickBiteError(
                "Order was placed but could not be confirmed. Please check its status shortly.",
                data={"orderId": order.order_number, "status": OrderStatus.PENDING.value,
                      "paymentStatus": PaymentStatus.PENDING.value}
            ) from e

        await router.notify_restaurant(order, self.method)
        return SettlementOutcome(order=order, payment=payment)


class WalletSettlement(SettlementStrategy):
    method = PaymentMethod.WALLET

    async def preflight(self, user_id: int, total) -> None:
        await self.router.wallets.ensure_funds(user_id, total)

    async def settle(self, order: Order) -> SettlementOutcome:
        router = self.router
        try:
            txn = await router.wallets.debit(
                order.user_id,
                order.pricing.total,
                order.id,
                description=f"Order payment - Order #{order.order_number}"
            )
        except (InsufficientBalanceError, ConsistencyError):
            order.payment.status = PaymentStatus.FAILED
            await router.orders.save(order)
            raise

        # money has moved: nothing below may undo the debit
        payment = None
        try:
            payment = await router.payments.record(
                order, self.method, PaymentStatus.COMPLETED, "Wallet payment completed"
            )
        except Exception as e:
            self.logger.error(f"Error creating wallet payment record for order {order.order_number}: {e}")

        order.payment.status = PaymentStatus.COMPLETED
        order.payment.transaction_id = str(txn.id) if txn.id is not None else None
        router.mark_confirmed(order)
        try:
            order = await router.orders.save(order)
        except Exception as e:
            self.logger.critical(
                f"Wallet debited for order {order.order_number} (transaction {txn.id}) "
                f"but the order could not be confirmed; manual reconciliation required: {e}"
            )
            raise ReconciliationError(
                "Payment was taken but the order could not be confirmed. Support has been alerted.",
                data={"orderId": order.order_number, "transactionId": txn.id}
            ) from e

        await router.record_capture(order)
        await router.notify_restaurant(order, self.method)
        return SettlementOutcome(
            order=order,
            payment=payment,
            wallet={"balance": txn.balance_after, "deducted": order.pricing.total},
        )


class GatewaySettlement(SettlementStrategy):
    method = PaymentMethod.RAZORPAY

    async def settle(self, order: Order) -> SettlementOutcome:
        router = self.router
        intent = None
        try:
            intent = await router.gateway.create_intent(
                order.pricing.total,
                router.currency,
                order.order_number,
                {
                    "orderId": order.order_number,
                    "userId": str(order.user_id),
                    "restaurantId": str(order.restaurant_id),
                }
            )
            order.payment.razorpay_order_id = intent["id"]
            order = await router.orders.save(order)
        except Exception as e:
            # the order stays pending; payment can be retried later
            self.logger.error(f"Error creating gateway order for {order.order_number}: {e}")

        razorpay = None
        if intent:
            razorpay = {
                "orderId": intent["id"],
                "amount": intent["amount"],
                "currency": intent["currency"],
                "key": router.gateway_key_id,
            }
        return SettlementOutcome(order=order, razorpay=razorpay)

    async def verify(self, order: Order, razorpay_order_id: str, razorpay_payment_id: str,
                     razorpay_signature: str) -> SettlementOutcome:
        router = self.router
        if order.status.is_terminal:
            raise ValidationError(f"Order is {order.status.value} and can no longer be paid")
        if order.payment.method != self.method:
            raise ValidationError("Order is not awaiting online payment")
        if order.payment.status == PaymentStatus.COMPLETED:
            self.logger.warning(f"Payment for order {order.order_number} already verified")
            payment = await router.payments.latest_for_order(order.id)
            return SettlementOutcome(order=order, payment=payment)

        expected_intent = order.payment.razorpay_order_id
        if expected_intent is None:
            raise ValidationError(
                "No online payment was started for this order",
                data={"orderId": order.order_number, "status": order.status.value,
                      "paymentStatus": order.payment.status.value}
            )
        valid = expected_intent == razorpay_order_id and \
            await router.gateway.verify(razorpay_order_id, razorpay_payment_id, razorpay_signature)

        if not valid:
            order.payment.status = PaymentStatus.FAILED
            order = await router.orders.save(order)
            try:
                await router.payments.record(
                    order, self.method, PaymentStatus.FAILED, "Invalid payment signature",
                    razorpay_order_id=razorpay_order_id,
                    razorpay_payment_id=razorpay_payment_id,
                )
            except Exception as e:
                self.logger.error(f"Error recording failed payment for order {order.order_number}: {e}")
            raise ValidationError(
                "Invalid payment signature",
                data={"orderId": order.order_number, "status": order.status.value,
                      "paymentStatus": order.payment.status.value}
            )

        payment = await router.payments.record(
            order, self.method, PaymentStatus.COMPLETED, "Gateway payment verified",
            razorpay_order_id=razorpay_order_id,
            razorpay_payment_id=razorpay_payment_id,
            razorpay_signature=razorpay_signature,
            transaction_id=razorpay_payment_id,
        )

        order.payment.status = PaymentStatus.COMPLETED
        order.payment.razorpay_order_id = razorpay_order_id
        order.payment.razorpay_payment_id = razorpay_payment_id
        order.payment.razorpay_signature = razorpay_signature
        order.payment.transaction_id = razorpay_payment_id
        router.mark_confirmed(order)
        try:
            order = await router.orders.save(order)
        except Exception as e:
            self.logger.critical(
                f"Gateway payment {razorpay_payment_id} captured for order {order.order_number} "
                f"but the order could not be confirmed; manual reconciliation required: {e}"
            )
            raise ReconciliationError(
                "Payment was taken but the order could not be confirmed. Support has been alerted.",
                data={"orderId": order.order_number, "paymentId": payment.payment_number}
            ) from e

        await router.record_capture(order)
        await router.notify_restaurant(order, self.method)
        return SettlementOutcome(order=order, payment=payment)


class SettlementRouter:
    """Dispatches orders to their settlement strategy and runs post-commit steps"""

    def __init__(self, orders, payment_service, wallet_service, gateway, notifier,
                 settlement_service, currency: str = "", gateway_key_id: str = "",
                 logger: Optional[logging.Logger] = None):
        self.orders = orders
        self.payments = payment_service
        self.wallets = wallet_service
        self.gateway = gateway
        self.notifier = notifier
        self.settlements = settlement_service
        self.currency = currency or Config.CURRENCY
        self.gateway_key_id = gateway_key_id or Config.RAZORPAY_KEY_ID
        self.logger = logger or logging.getLogger(__name__)
        self._strategies = {
            strategy.method: strategy
            for strategy in (CashSettlement(self), WalletSettlement(self), GatewaySettlement(self))
        }

    def strategy_for(self, method: PaymentMethod) -> SettlementStrategy:
        return self._strategies[method]

    @property
    def gateway_strategy(self) -> GatewaySettlement:
        return self._strategies[PaymentMethod.RAZORPAY]

    @staticmethod
    def mark_confirmed(order: Order) -> None:
        order.status = OrderStatus.CONFIRMED
        order.tracking["confirmed"] = {"status": True, "timestamp": utcnow().isoformat()}

    async def record_capture(self, order: Order) -> None:
        """Settlement split and escrow hold; failures are logged only"""
        try:
            await self.settlements.compute_settlement(order)
            await self.settlements.hold_escrow(order.id, order.user_id, order.pricing.total)
        except Exception as e:
            self.logger.error(f"Error calculating settlement for order {order.order_number}: {e}")

    async def notify_restaurant(self, order: Order, method: PaymentMethod) -> None:
        try:
            await self.notifier.notify_new_order(order, order.restaurant_id, method)
        except Exception as e:
            self.logger.error(
                f"Error notifying restaurant {order.restaurant_id} about order "
                f"{order.order_number} (order still created): {e}"
            )
