from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, List, Optional, Union
from pydantic import Field
from .base import ApiModel, TimeStampedModel, GeoPoint


class OrderStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    PREPARING = "preparing"
    READY = "ready"
    OUT_FOR_DELIVERY = "out_for_delivery"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return self in (OrderStatus.DELIVERED, OrderStatus.CANCELLED)

    def can_transition_to(self, target: "OrderStatus") -> bool:
        """Forward-only lifecycle; cancellation allowed from any non-terminal state"""
        if self.is_terminal:
            return False
        if target == OrderStatus.CANCELLED:
            return True
        return _FLOW.index(target) > _FLOW.index(self)


_FLOW = [
    OrderStatus.PENDING,
    OrderStatus.CONFIRMED,
    OrderStatus.PREPARING,
    OrderStatus.READY,
    OrderStatus.OUT_FOR_DELIVERY,
    OrderStatus.DELIVERED,
]


class PaymentStatus(str, Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"


class PaymentMethod(str, Enum):
    CASH = "cash"
    WALLET = "wallet"
    RAZORPAY = "razorpay"

    @classmethod
    def normalize(cls, raw: Optional[str]) -> "PaymentMethod":
        """cash/cod/cash on delivery -> cash, wallet -> wallet, anything else -> gateway"""
        value = (raw or "").strip().lower()
        if value in ("cash", "cod", "cash on delivery"):
            return cls.CASH
        if value == "wallet":
            return cls.WALLET
        return cls.RAZORPAY


class OrderItem(ApiModel):
    """Individual line in an order"""
    item_id: Optional[str] = None
    name: str
    quantity: int = 1
    price: Decimal
    addons: List[Dict[str, Any]] = []
    preparation_time: Optional[str] = None

    @property
    def line_total(self) -> Decimal:
        return self.price * self.quantity


class DeliveryAddress(ApiModel):
    label: Optional[str] = None
    street: Optional[str] = None
    city: Optional[str] = None
    zip_code: Optional[str] = None
    location: Optional[GeoPoint] = None


class AppliedCoupon(ApiModel):
    code: str
    discount: Decimal
    item_id: Optional[str] = None
    item_name: Optional[str] = None
    original_price: Optional[Decimal] = None
    discounted_price: Optional[Decimal] = None
    min_order: Decimal = Decimal(0)


class PricingBreakdown(ApiModel):
    """Integer-unit price breakdown; parts always sum to total"""
    subtotal: Decimal
    discount: Decimal = Decimal(0)
    delivery_fee: Decimal = Decimal(0)
    platform_fee: Decimal = Decimal(0)
    tax: Decimal = Decimal(0)
    total: Decimal
    savings: Decimal = Decimal(0)
    distance_km: Optional[float] = None
    coupon_code: Optional[str] = None
    applied_coupon: Optional[AppliedCoupon] = None


class OrderPayment(ApiModel):
    method: PaymentMethod
    status: PaymentStatus = PaymentStatus.PENDING
    razorpay_order_id: Optional[str] = None
    razorpay_payment_id: Optional[str] = None
    razorpay_signature: Optional[str] = None
    transaction_id: Optional[str] = None


class Eta(ApiModel):
    min_minutes: int
    max_minutes: int
    last_updated: Optional[datetime] = None
    additional_time: int = 0


class Order(TimeStampedModel):
    """A placed purchase"""
    id: Optional[int] = None
    order_number: str
    user_id: int
    restaurant_id: int
    restaurant_name: str
    items: List[OrderItem]
    address: DeliveryAddress
    pricing: PricingBreakdown
    payment: OrderPayment
    status: OrderStatus = OrderStatus.PENDING
    tracking: Dict[str, Any] = Field(default_factory=dict)
    eta: Optional[Eta] = None
    estimated_delivery_time: Optional[int] = None
    preparation_time: int = 0
    note: str = ""
    send_cutlery: bool = True
    cancellation_reason: Optional[str] = None
    cancelled_by: Optional[str] = None
    cancelled_at: Optional[datetime] = None

    def summary(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "orderId": self.order_number,
            "status": self.status.value,
            "total": self.pricing.total,
        }


class CartRequest(ApiModel):
    """Checkout request as sent by the client; client-side totals are ignored"""
    restaurant_id: Union[int, str, None] = None
    restaurant_name: Optional[str] = None
    zone_id: Union[int, str, None] = None
    items: List[OrderItem] = []
    address: Optional[DeliveryAddress] = None
    payment_method: Optional[str] = None
    coupon_code: Optional[str] = None
    note: str = ""
    send_cutlery: bool = True
