import logging
from decimal import Decimal
from typing import Any, Dict, Optional

import aiohttp

from ..config import Config
from ..constants import PAYMENT_NUMBER_PREFIX
from ..exceptions import UpstreamError
from ..models import Order, Payment, PaymentLog, PaymentMethod, PaymentStatus, utcnow
from ..utils.security import generate_reference, verify_gateway_signature
from .fee_policy import to_units


class RazorpayGateway:
    """Razorpay orders API client"""

    def __init__(self, key_id: str = "", key_secret: str = "", api_url: str = "",
                 timeout: float = 10.0, logger: Optional[logging.Logger] = None):
        self.key_id = key_id or Config.RAZORPAY_KEY_ID
        self.key_secret = key_secret or Config.RAZORPAY_KEY_SECRET
        self.api_url = (api_url or Config.RAZORPAY_API_URL).rstrip("/")
        self.timeout = aiohttp.ClientTimeout(total=timeout)
        self.logger = logger or logging.getLogger(__name__)

    async def create_intent(self, amount: Decimal, currency: str, receipt: str,
                            metadata: Dict[str, str]) -> Dict[str, Any]:
        """Create a gateway order; ``amount`` is in major units, sent in paise"""
        payload = {
            "amount": int(to_units(amount * 100)),
            "currency": currency,
            "receipt": receipt,
            "notes": metadata,
        }
        try:
            async with aiohttp.ClientSession(timeout=self.timeout) as session:
                async with session.post(
                    f"{self.api_url}/orders",
                    json=payload,
                    auth=aiohttp.BasicAuth(self.key_id, self.key_secret)
                ) as response:
                    data = await response.json(content_type=None)
                    if response.status != 200:
                        raise UpstreamError(
                            f"Gateway rejected order creation: {response.status}",
                            data=data
                        )
        except aiohttp.ClientError as e:
            raise UpstreamError(f"Gateway unreachable: {e}") from e

        return {
            "id": data["id"],
            "amount": data["amount"],
            "currency": data["currency"],
        }

    async def verify(self, intent_id: str, payment_id: str, signature: str) -> bool:
        return verify_gateway_signature(intent_id, payment_id, signature, self.key_secret)


class PaymentService:
    """Records settlement attempts for orders"""

    def __init__(self, repository, currency: str = "", logger: Optional[logging.Logger] = None):
        self.repository = repository
        self.currency = currency or Config.CURRENCY
        self.logger = logger or logging.getLogger(__name__)

    async def record(self, order: Order, method: PaymentMethod, status: PaymentStatus,
                     note: str, **gateway_fields) -> Payment:
        now = utcnow()
        payment = Payment(
            payment_number=generate_reference(PAYMENT_NUMBER_PREFIX),
            order_id=order.id,
            user_id=order.user_id,
            amount=order.pricing.total,
            currency=self.currency,
            method=method,
            status=status,
            completed_at=now if status == PaymentStatus.COMPLETED else None,
            logs=[PaymentLog(
                action=status.value,
                timestamp=now,
                details={"previousStatus": "new", "newStatus": status.value, "note": note},
            )],
            **gateway_fields
        )
        saved = await self.repository.create(payment)
        self.logger.info(
            f"Payment {saved.payment_number} recorded for order {order.order_number}: "
            f"{method.value} {status.value}"
        )
        return saved

    async def latest_for_order(self, order_id: int) -> Optional[Payment]:
        return await self.repository.get_latest_for_order(order_id)
