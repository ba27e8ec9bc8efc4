"""In-memory stand-ins for the asyncpg repositories and external collaborators"""
import asyncio
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Dict, List, Optional

from quickbite.exceptions import ConsistencyError, UpstreamError
from quickbite.models import (
    CartRequest,
    DistanceConfig,
    DistanceSlab,
    Eta,
    FeeSettings,
    GeoPoint,
    Offer,
    OfferItem,
    Order,
    Payment,
    Refund,
    Restaurant,
    UserWallet,
    WalletTransaction,
    Zone,
    ZoneVertex,
    utcnow,
)
from quickbite.utils.security import verify_gateway_signature

GATEWAY_SECRET = "test_secret"

RESTAURANT_POINT = GeoPoint(latitude=0.0, longitude=0.0)
# about 4 km north of the restaurant
CUSTOMER_POINT = GeoPoint(latitude=0.036, longitude=0.0)


def square_zone(zone_id: int = 1, center: GeoPoint = RESTAURANT_POINT, half: float = 0.5,
                is_active: bool = True) -> Zone:
    lat, lng = center.latitude, center.longitude
    return Zone(
        id=zone_id,
        name=f"Zone {zone_id}",
        coordinates=[
            ZoneVertex(latitude=lat - half, longitude=lng - half),
            ZoneVertex(latitude=lat - half, longitude=lng + half),
            ZoneVertex(latitude=lat + half, longitude=lng + half),
            ZoneVertex(latitude=lat + half, longitude=lng - half),
        ],
        is_active=is_active,
    )


def make_restaurant(**overrides) -> Restaurant:
    data = dict(
        id=7,
        restaurant_id="rest-7",
        slug="spice-route",
        name="Spice Route",
        location=RESTAURANT_POINT,
        telegram_chat_id=-1007,
    )
    data.update(overrides)
    return Restaurant(**data)


def slab_policy(**overrides) -> FeeSettings:
    """0-5 km: 20, 5-10 km: 30, 10-20 km: 40; platform fee 5, GST 5%"""
    data = dict(
        id=1,
        delivery_fee=Decimal(25),
        free_delivery_threshold=None,
        distance_config=DistanceConfig(
            max_delivery_distance=Decimal(20),
            slabs=[
                DistanceSlab(min_km=0, max_km=5, fee=20),
                DistanceSlab(min_km=5, max_km=10, fee=30),
                DistanceSlab(min_km=10, max_km=20, fee=40),
            ],
        ),
        platform_fee=Decimal(5),
        gst_rate=Decimal(5),
    )
    data.update(overrides)
    return FeeSettings(**data)


def make_offer(restaurant_id: int = 7, code: str = "SAVE50", item_id: str = "biryani",
               original: int = 150, discounted: int = 100, **overrides) -> Offer:
    data = dict(
        id=1,
        restaurant_id=restaurant_id,
        start_date=utcnow() - timedelta(days=1),
        end_date=utcnow() + timedelta(days=1),
        items=[OfferItem(
            coupon_code=code,
            item_id=item_id,
            item_name="Chicken Biryani",
            original_price=Decimal(original),
            discounted_price=Decimal(discounted),
        )],
    )
    data.update(overrides)
    return Offer(**data)


class FakeRestaurantRepository:
    def __init__(self, restaurants: List[Restaurant]):
        self.restaurants = restaurants
        self.lookups = 0

    async def get_by_id(self, restaurant_id: int) -> Optional[Restaurant]:
        self.lookups += 1
        return next((r for r in self.restaurants if r.id == restaurant_id), None)

    async def get_by_business_id(self, business_id: str) -> Optional[Restaurant]:
        return next((r for r in self.restaurants if r.restaurant_id == business_id), None)

    async def get_by_slug(self, slug: str) -> Optional[Restaurant]:
        return next((r for r in self.restaurants if r.slug == slug), None)


class FakeZoneRepository:
    def __init__(self, zones: List[Zone]):
        self.zones = zones

    async def list_active(self) -> List[Zone]:
        return [z for z in self.zones if z.is_active]


class FakeFeeSettingsRepository:
    def __init__(self, records: Optional[List[FeeSettings]] = None):
        self.records: Dict[int, FeeSettings] = {}
        self.fail = False
        for record in records or []:
            self.records[record.id] = record

    def _next_id(self) -> int:
        return max(self.records, default=0) + 1

    async def get_active(self) -> Optional[FeeSettings]:
        if self.fail:
            raise RuntimeError("connection refused")
        active = [r for r in self.records.values() if r.is_active]
        return active[-1].model_copy(deep=True) if active else None

    async def get(self, settings_id: int) -> Optional[FeeSettings]:
        record = self.records.get(settings_id)
        return record.model_copy(deep=True) if record else None

    async def create(self, settings: FeeSettings) -> FeeSettings:
        stored = settings.model_copy(deep=True)
        stored.id = self._next_id()
        self.records[stored.id] = stored
        return stored.model_copy(deep=True)

    async def update(self, settings: FeeSettings) -> FeeSettings:
        self.records[settings.id] = settings.model_copy(deep=True)
        return settings.model_copy(deep=True)

    async def deactivate_all(self, updated_by: Optional[int] = None,
                             except_id: Optional[int] = None) -> None:
        for record in self.records.values():
            if record.id != except_id and record.is_active:
                record.is_active = False
                record.updated_by = updated_by

    async def list_history(self, limit: int = 20, offset: int = 0) -> List[FeeSettings]:
        ordered = sorted(self.records.values(), key=lambda r: r.id, reverse=True)
        return ordered[offset:offset + limit]


class FakeOfferRepository:
    def __init__(self, offers: Optional[List[Offer]] = None):
        self.offers = offers or []
        self.fail = False

    async def find_active_offer(self, restaurant_id: int, coupon_code: str,
                                now: datetime) -> Optional[Offer]:
        if self.fail:
            raise RuntimeError("offers table unavailable")
        for offer in self.offers:
            if offer.restaurant_id != restaurant_id or offer.status != "active":
                continue
            if offer.start_date > now or (offer.end_date and offer.end_date < now):
                continue
            if offer.item_for_code(coupon_code):
                return offer
        return None


class FakeOrderRepository:
    def __init__(self):
        self.orders: Dict[int, Order] = {}
        self.fail_on_save = False
        self.saves = 0

    async def create(self, order: Order) -> Order:
        stored = order.model_copy(deep=True)
        stored.id = len(self.orders) + 1
        self.orders[stored.id] = stored
        return stored.model_copy(deep=True)

    async def save(self, order: Order) -> Order:
        if self.fail_on_save:
            raise RuntimeError("connection lost")
        self.saves += 1
        stored = order.model_copy(deep=True)
        stored.updated_at = utcnow()
        self.orders[order.id] = stored
        return stored.model_copy(deep=True)

    async def get(self, reference: str, user_id: Optional[int] = None) -> Optional[Order]:
        reference = str(reference)
        for order in self.orders.values():
            if user_id is not None and order.user_id != user_id:
                continue
            if (reference.isdigit() and order.id == int(reference)) or order.order_number == reference:
                return order.model_copy(deep=True)
        return None

    async def list_for_user(self, user_id: int, status: Optional[str] = None,
                            limit: int = 20, offset: int = 0):
        matching = [
            o for o in sorted(self.orders.values(), key=lambda o: o.id, reverse=True)
            if o.user_id == user_id and (status is None or o.status.value == status)
        ]
        return {"orders": matching[offset:offset + limit], "total": len(matching)}


class FakePaymentRepository:
    def __init__(self):
        self.payments: List[Payment] = []
        self.fail = False

    async def create(self, payment: Payment) -> Payment:
        if self.fail:
            raise RuntimeError("payments table unavailable")
        stored = payment.model_copy(deep=True)
        stored.id = len(self.payments) + 1
        self.payments.append(stored)
        return stored

    async def get_latest_for_order(self, order_id: int) -> Optional[Payment]:
        matching = [p for p in self.payments if p.order_id == order_id]
        return matching[-1] if matching else None


class FakeWalletRepository:
    """Mirrors the conditional update and unique ledger index of the SQL version"""

    def __init__(self, balances: Optional[Dict[int, Decimal]] = None):
        self.balances: Dict[int, Decimal] = dict(balances or {})
        self.transactions: List[WalletTransaction] = []

    async def get_or_create(self, user_id: int, limit: Optional[int] = None) -> UserWallet:
        self.balances.setdefault(user_id, Decimal(0))
        wallet = UserWallet(
            user_id=user_id,
            balance=self.balances[user_id],
            transactions=[t for t in self.transactions if t.user_id == user_id],
        )
        # yield after reading so concurrent callers can interleave
        await asyncio.sleep(0)
        return wallet

    async def find_order_transaction(self, user_id: int, order_id: int,
                                     type_: str) -> Optional[WalletTransaction]:
        for txn in self.transactions:
            if txn.user_id == user_id and txn.order_id == order_id and txn.type.value == type_:
                return txn
        return None

    async def apply_transaction(self, txn: WalletTransaction) -> WalletTransaction:
        balance = self.balances.get(txn.user_id, Decimal(0)) + txn.signed_amount
        if balance < 0:
            raise ConsistencyError("Wallet balance changed concurrently, please retry")
        if txn.order_id is not None and await self.find_order_transaction(
                txn.user_id, txn.order_id, txn.type.value):
            raise ConsistencyError("Wallet transaction already recorded for this order")

        self.balances[txn.user_id] = balance
        stored = txn.model_copy(update={"id": len(self.transactions) + 1, "balance_after": balance})
        self.transactions.append(stored)
        return stored


class FakeSettlementRepository:
    def __init__(self):
        self.settlements = {}
        self.holds = {}
        self.fail = False

    async def save_settlement(self, settlement):
        if self.fail:
            raise RuntimeError("settlement table unavailable")
        self.settlements[settlement.order_id] = settlement
        return settlement

    async def hold_escrow(self, hold):
        return self.holds.setdefault(hold.order_id, hold)


class FakeRefundRepository:
    def __init__(self):
        self.refunds: Dict[int, Refund] = {}

    async def create(self, refund: Refund) -> Refund:
        stored = refund.model_copy(update={"id": len(self.refunds) + 1})
        self.refunds[refund.order_id] = stored
        return stored


class StubGateway:
    """Records payment intents and checks signatures with GATEWAY_SECRET"""

    def __init__(self):
        self.intents = []
        self.fail = False

    async def create_intent(self, amount, currency, receipt, metadata):
        if self.fail:
            raise UpstreamError("Gateway unreachable")
        intent = {
            "id": f"order_{len(self.intents) + 1}",
            "amount": int(amount * 100),
            "currency": currency,
        }
        self.intents.append({**intent, "receipt": receipt, "notes": metadata})
        return intent

    async def verify(self, intent_id, payment_id, signature) -> bool:
        return verify_gateway_signature(intent_id, payment_id, signature, GATEWAY_SECRET)


class StubNotifier:
    def __init__(self):
        self.sent = []
        self.fail = False

    async def notify_new_order(self, order, restaurant_id, payment_method) -> bool:
        if self.fail:
            raise UpstreamError("Telegram unavailable")
        self.sent.append((order.order_number, restaurant_id, payment_method))
        return True


class StubEta:
    def __init__(self, min_minutes: int = 12, max_minutes: int = 17):
        self.min_minutes = min_minutes
        self.max_minutes = max_minutes
        self.fail = False

    async def initial_eta(self, restaurant_location, user_location) -> Eta:
        if self.fail:
            raise UpstreamError("ETA service unavailable")
        return Eta(
            min_minutes=self.min_minutes,
            max_minutes=self.max_minutes,
            last_updated=datetime.now(timezone.utc),
        )


def make_cart(payment_method: str = "cash", **overrides):
    """Two 150 lines, subtotal 300, delivered about 4 km from the restaurant"""
    data = {
        "restaurantId": "7",
        "restaurantName": "Spice Route",
        "zoneId": 1,
        "items": [
            {"itemId": "biryani", "name": "Chicken Biryani", "quantity": 1, "price": 150,
             "preparationTime": "20-25 mins"},
            {"itemId": "paneer", "name": "Paneer Tikka", "quantity": 2, "price": 75,
             "preparationTime": "15"},
        ],
        "address": {
            "label": "Home",
            "street": "12 MG Road",
            "city": "Bengaluru",
            "location": CUSTOMER_POINT.model_dump(),
        },
        "paymentMethod": payment_method,
    }
    data.update(overrides)
    return CartRequest.model_validate(data)
