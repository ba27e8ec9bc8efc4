import logging
import math
from typing import Any, Dict, Optional, Tuple

from ..constants import ORDER_NUMBER_PREFIX
from ..exceptions import NotFoundError, ValidationError
from ..models import (
    CartRequest,
    Eta,
    Order,
    OrderPayment,
    OrderStatus,
    PaymentMethod,
    PricingBreakdown,
    Restaurant,
    DeliveryAddress,
    utcnow,
)
from ..utils.security import generate_reference
from .assignment_service import AssignmentService
from .eta_service import EtaService, max_preparation_time
from .payment_router import SettlementOutcome, SettlementRouter
from .pricing_service import PricingService
from .refund_service import RefundService


class OrderService:
    """Order placement, payment verification, cancellation and lifecycle"""

    def __init__(self, orders, assignment: AssignmentService, pricing: PricingService,
                 eta: EtaService, router: SettlementRouter, refunds: RefundService,
                 logger: Optional[logging.Logger] = None):
        self.orders = orders
        self.assignment = assignment
        self.pricing = pricing
        self.eta = eta
        self.router = router
        self.refunds = refunds
        self.logger = logger or logging.getLogger(__name__)

    @staticmethod
    def _validate_items(cart: CartRequest) -> None:
        if not cart.items:
            raise ValidationError("Order must contain at least one item")
        for item in cart.items:
            if item.quantity < 1:
                raise ValidationError(f"Invalid quantity for {item.name}")
            if item.price < 0:
                raise ValidationError(f"Invalid price for {item.name}")

    @classmethod
    def _validate_cart(cls, cart: CartRequest) -> None:
        cls._validate_items(cart)
        if cart.address is None or cart.address.location is None:
            raise ValidationError("Delivery address with location is required")

    async def calculate_pricing(self, cart: CartRequest) -> PricingBreakdown:
        """Price a cart without placing it; the restaurant is optional here"""
        self._validate_items(cart)

        restaurant = None
        if cart.restaurant_id is not None:
            restaurant = await self.assignment.find_restaurant(cart.restaurant_id)
        return await self.pricing.price(cart.items, restaurant, cart.address, cart.coupon_code)

    async def _initial_eta(self, restaurant: Restaurant, address: DeliveryAddress,
                           preparation_time: int) -> Tuple[Optional[Eta], Optional[int]]:
        try:
            eta = await self.eta.initial_eta(restaurant.location, address.location)
        except Exception as e:
            self.logger.error(f"Error calculating initial ETA for restaurant {restaurant.id}: {e}")
            return None, None

        eta.min_minutes += preparation_time
        eta.max_minutes += preparation_time
        return eta, math.ceil((eta.min_minutes + eta.max_minutes) / 2)

    async def create_order(self, user_id: int, cart: CartRequest) -> Dict[str, Any]:
        self._validate_cart(cart)

        restaurant, zone = await self.assignment.assign(
            cart.restaurant_id, cart.zone_id, cart.restaurant_name
        )
        pricing = await self.pricing.price(cart.items, restaurant, cart.address, cart.coupon_code)

        method = PaymentMethod.normalize(cart.payment_method)
        strategy = self.router.strategy_for(method)
        await strategy.preflight(user_id, pricing.total)

        preparation_time = max_preparation_time(cart.items)
        eta, estimated = await self._initial_eta(restaurant, cart.address, preparation_time)

        order = await self.orders.create(Order(
            order_number=generate_reference(ORDER_NUMBER_PREFIX),
            user_id=user_id,
            restaurant_id=restaurant.id,
            restaurant_name=restaurant.name,
            items=cart.items,
            address=cart.address,
            pricing=pricing,
            payment=OrderPayment(method=method),
            eta=eta,
            estimated_delivery_time=estimated,
            preparation_time=preparation_time,
            note=cart.note,
            send_cutlery=cart.send_cutlery,
        ))
        self.logger.info(
            f"Order {order.order_number} created for user {user_id} at restaurant "
            f"{restaurant.id} (zone {zone.id}), total {pricing.total}, payment {method.value}"
        )

        outcome = await strategy.settle(order)
        return self._placement_result(outcome)

    @staticmethod
    def _placement_result(outcome: SettlementOutcome) -> Dict[str, Any]:
        result: Dict[str, Any] = {"order": outcome.order.summary()}
        if outcome.razorpay is not None:
            result["razorpay"] = outcome.razorpay
        if outcome.wallet is not None:
            result["wallet"] = outcome.wallet
        return result

    async def _get_owned(self, reference: str, user_id: Optional[int]) -> Order:
        order = await self.orders.get(reference, user_id)
        if order is None:
            raise NotFoundError("Order not found")
        return order

    async def verify_payment(self, reference: str, user_id: int, razorpay_order_id: str,
                             razorpay_payment_id: str, razorpay_signature: str) -> Dict[str, Any]:
        if not (razorpay_order_id and razorpay_payment_id and razorpay_signature):
            raise ValidationError("Missing payment verification details")

        order = await self._get_owned(reference, user_id)
        outcome = await self.router.gateway_strategy.verify(
            order, razorpay_order_id, razorpay_payment_id, razorpay_signature
        )
        payment = outcome.payment
        return {
            "order": outcome.order.summary(),
            "payment": {
                "paymentId": payment.payment_number,
                "status": payment.status.value,
            } if payment else None,
        }

    async def cancel_order(self, reference: str, user_id: Optional[int], reason: Optional[str],
                           cancelled_by: str = "user") -> Dict[str, Any]:
        reason = str(reason or "").strip()
        if not reason:
            raise ValidationError("Cancellation reason is required")

        order = await self._get_owned(reference, user_id)
        if order.status == OrderStatus.CANCELLED:
            raise ValidationError("Order is already cancelled")
        if order.status == OrderStatus.DELIVERED:
            raise ValidationError("Cannot cancel a delivered order")

        now = utcnow()
        order.status = OrderStatus.CANCELLED
        order.cancellation_reason = reason
        order.cancelled_by = cancelled_by
        order.cancelled_at = now
        order.tracking["cancelled"] = {"status": True, "timestamp": now.isoformat()}
        order = await self.orders.save(order)
        self.logger.info(f"Order {order.order_number} cancelled by {cancelled_by}: {reason}")

        refund = None
        if order.payment.method in (PaymentMethod.WALLET, PaymentMethod.RAZORPAY):
            try:
                refund = await self.refunds.calculate_cancellation_refund(order, reason)
            except Exception as e:
                self.logger.error(f"Error calculating refund for order {order.order_number}: {e}")

        return {
            "order": order.summary(),
            "refund": refund.to_api() if refund else None,
        }

    async def get_order(self, reference: str, user_id: Optional[int] = None) -> Order:
        return await self._get_owned(reference, user_id)

    async def list_orders(self, user_id: int, status: Optional[str] = None,
                          page: int = 1, limit: int = 20) -> Dict[str, Any]:
        if status is not None:
            try:
                status = OrderStatus(status).value
            except ValueError:
                raise ValidationError(f"Unknown order status: {status}")
        page = max(page, 1)
        limit = min(max(limit, 1), 100)

        result = await self.orders.list_for_user(user_id, status, limit, (page - 1) * limit)
        total = result["total"]
        return {
            "orders": [order.to_api() for order in result["orders"]],
            "pagination": {
                "page": page,
                "limit": limit,
                "total": total,
                "pages": math.ceil(total / limit) if total else 0,
            },
        }

    async def update_status(self, reference: str, status: str) -> Order:
        """Restaurant and delivery lifecycle events"""
        try:
            target = OrderStatus(status)
        except ValueError:
            raise ValidationError(f"Unknown order status: {status}")
        if target == OrderStatus.CANCELLED:
            raise ValidationError("Use the cancel endpoint to cancel an order")

        order = await self._get_owned(reference, None)
        if not order.status.can_transition_to(target):
            raise ValidationError(
                f"Cannot move order from {order.status.value} to {target.value}"
            )

        order.status = target
        order.tracking[target.value] = {"status": True, "timestamp": utcnow().isoformat()}
        order = await self.orders.save(order)
        self.logger.info(f"Order {order.order_number} is now {target.value}")
        return order
