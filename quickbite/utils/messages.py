from ..config import Config
from ..models import Order, PaymentMethod
from .formatters import format_datetime, format_eta, format_price


class Messages:
    PAYMENT_LABELS = {
        PaymentMethod.CASH: "💵 Cash on delivery",
        PaymentMethod.WALLET: "👛 Paid from wallet",
        PaymentMethod.RAZORPAY: "💳 Paid online",
    }

    @staticmethod
    def new_order(order: Order, payment_method: PaymentMethod) -> str:
        """Restaurant notification for a confirmed order"""
        items_text = "\n".join(
            f"- {item.quantity}x {item.name}: {format_price(item.line_total, Config.CURRENCY)}"
            for item in order.items
        )
        eta_text = format_eta(order.eta.min_minutes, order.eta.max_minutes) if order.eta else "N/A"
        note = f"📝 Note: {order.note}\n" if order.note else ""

        return (
            f"🛎 New order #{order.order_number}\n"
            f"------------------\n"
            f"{items_text}\n"
            f"------------------\n"
            f"💰 Total: {format_price(order.pricing.total, Config.CURRENCY)}\n"
            f"{Messages.PAYMENT_LABELS[payment_method]}\n"
            f"🍴 Cutlery: {'yes' if order.send_cutlery else 'no'}\n"
            f"{note}"
            f"⏱ ETA: {eta_text}\n"
            f"🕒 Placed: {format_datetime(order.created_at)}\n"
        )
