import hashlib
import hmac
import random
import time
from typing import Optional


def sign_gateway_payment(order_id: str, payment_id: str, secret: str) -> str:
    """Razorpay checkout signature: HMAC-SHA256 of ``order_id|payment_id``"""
    message = f"{order_id}|{payment_id}"
    return hmac.new(
        secret.encode(),
        message.encode(),
        hashlib.sha256
    ).hexdigest()


def verify_gateway_signature(order_id: str, payment_id: str, signature: Optional[str],
                             secret: str) -> bool:
    if not (order_id and payment_id and signature and secret):
        return False
    expected = sign_gateway_payment(order_id, payment_id, secret)
    return hmac.compare_digest(expected, signature)


def generate_reference(prefix: str) -> str:
    """Human-readable reference such as ORD-1718000000000-123"""
    timestamp = int(time.time() * 1000)
    return f"{prefix}-{timestamp}-{random.randint(0, 999)}"
