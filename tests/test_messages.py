from decimal import Decimal

from quickbite.models import (
    DeliveryAddress,
    Eta,
    Order,
    OrderItem,
    OrderPayment,
    PaymentMethod,
    PricingBreakdown,
)
from quickbite.utils.formatters import format_eta, format_price
from quickbite.utils.messages import Messages


def test_format_price():
    assert format_price(Decimal(1340), "INR") == "INR 1,340"
    assert format_price(Decimal(25)) == "25"


def test_format_eta():
    assert format_eta(37, 42) == "37-42 mins"


def test_new_order_message():
    order = Order(
        order_number="ORD-1-1",
        user_id=42,
        restaurant_id=7,
        restaurant_name="Spice Route",
        items=[OrderItem(name="Chicken Biryani", quantity=2, price=Decimal(150))],
        address=DeliveryAddress(street="12 MG Road"),
        pricing=PricingBreakdown(subtotal=Decimal(300), total=Decimal(340)),
        payment=OrderPayment(method=PaymentMethod.WALLET),
        eta=Eta(min_minutes=37, max_minutes=42),
        note="Less spicy",
    )

    text = Messages.new_order(order, PaymentMethod.WALLET)

    assert "#ORD-1-1" in text
    assert "2x Chicken Biryani" in text
    assert "Paid from wallet" in text
    assert "Less spicy" in text
    assert "37-42 mins" in text
