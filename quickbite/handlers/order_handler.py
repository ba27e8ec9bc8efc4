from aiohttp import web

from ..models import CartRequest
from ..services.order_service import OrderService
from .base_handler import BaseHandler, envelope


class OrderHandler(BaseHandler):
    """Checkout, payment verification, cancellation and order history"""

    def __init__(self, order_service: OrderService, admin_ids=None):
        super().__init__(admin_ids)
        self.order_service = order_service

    def routes(self):
        return [
            web.post("/api/orders", self.create_order),
            web.post("/api/orders/calculate", self.calculate_pricing),
            web.get("/api/orders", self.list_orders),
            web.get("/api/orders/{order_id}", self.get_order),
            web.post("/api/orders/{order_id}/verify-payment", self.verify_payment),
            web.patch("/api/orders/{order_id}/cancel", self.cancel_order),
            web.patch("/api/orders/{order_id}/status", self.update_status),
        ]

    async def create_order(self, request: web.Request) -> web.Response:
        user_id = self.user_id(request)
        cart = self.parse(CartRequest, await self.read_json(request))
        result = await self.order_service.create_order(user_id, cart)

        message = "Order placed successfully"
        if "razorpay" in result or result["order"]["status"] == "pending":
            message = "Order created, awaiting payment"
        return envelope(result, message, status=201)

    async def calculate_pricing(self, request: web.Request) -> web.Response:
        self.user_id(request)
        cart = self.parse(CartRequest, await self.read_json(request))
        pricing = await self.order_service.calculate_pricing(cart)
        return envelope({"pricing": pricing.to_api()}, "Pricing calculated")

    async def verify_payment(self, request: web.Request) -> web.Response:
        user_id = self.user_id(request)
        body = await self.read_json(request)
        result = await self.order_service.verify_payment(
            request.match_info["order_id"],
            user_id,
            body.get("razorpayOrderId"),
            body.get("razorpayPaymentId"),
            body.get("razorpaySignature"),
        )
        return envelope(result, "Payment verified successfully")

    async def cancel_order(self, request: web.Request) -> web.Response:
        user_id = self.user_id(request)
        body = await self.read_json(request, required=False)
        result = await self.order_service.cancel_order(
            request.match_info["order_id"], user_id, body.get("reason")
        )
        return envelope(result, "Order cancelled successfully")

    async def list_orders(self, request: web.Request) -> web.Response:
        user_id = self.user_id(request)
        result = await self.order_service.list_orders(
            user_id,
            status=request.query.get("status") or None,
            page=self.int_param(request.query.get("page"), "page", 1),
            limit=self.int_param(request.query.get("limit"), "limit", 20),
        )
        return envelope(result)

    async def get_order(self, request: web.Request) -> web.Response:
        user_id = self.user_id(request)
        order = await self.order_service.get_order(request.match_info["order_id"], user_id)
        return envelope({"order": order.to_api()})

    async def update_status(self, request: web.Request) -> web.Response:
        self.admin_id(request)
        body = await self.read_json(request)
        order = await self.order_service.update_status(
            request.match_info["order_id"], body.get("status") or ""
        )
        return envelope({"order": order.summary()}, f"Order status updated to {order.status.value}")
