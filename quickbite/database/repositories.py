"""SQL access for the order pipeline.

Each repository wraps one aggregate and speaks pydantic models in and out;
services never see asyncpg records.
"""
from datetime import datetime
from typing import Any, Dict, List, Optional

from ..exceptions import ConsistencyError
from ..models import (
    EscrowHold,
    FeeSettings,
    GeoPoint,
    Offer,
    Order,
    Payment,
    Refund,
    Restaurant,
    Settlement,
    UserWallet,
    WalletTransaction,
    Zone,
)


def _restaurant_from_row(row) -> Restaurant:
    data = dict(row)
    lat, lng = data.pop('latitude'), data.pop('longitude')
    if lat is not None and lng is not None:
        data['location'] = GeoPoint(latitude=lat, longitude=lng)
    return Restaurant(**data)


class RestaurantRepository:
    def __init__(self, db):
        self.db = db

    async def _fetch_one(self, column: str, value: Any) -> Optional[Restaurant]:
        async with self.db.pool.acquire() as conn:
            row = await conn.fetchrow(
                f"SELECT * FROM restaurants WHERE {column} = $1", value
            )
            return _restaurant_from_row(row) if row else None

    async def get_by_id(self, restaurant_id: int) -> Optional[Restaurant]:
        return await self._fetch_one('id', restaurant_id)

    async def get_by_business_id(self, business_id: str) -> Optional[Restaurant]:
        return await self._fetch_one('restaurant_id', business_id)

    async def get_by_slug(self, slug: str) -> Optional[Restaurant]:
        return await self._fetch_one('slug', slug)


class ZoneRepository:
    def __init__(self, db):
        self.db = db

    async def list_active(self) -> List[Zone]:
        async with self.db.pool.acquire() as conn:
            rows = await conn.fetch("""
                SELECT * FROM zones
                WHERE is_active = true
                ORDER BY id
            """)
            return [Zone(**dict(row)) for row in rows]


class FeeSettingsRepository:
    def __init__(self, db):
        self.db = db

    @staticmethod
    def _params(settings: FeeSettings) -> list:
        return [
            settings.delivery_fee,
            settings.free_delivery_threshold,
            settings.distance_config.model_dump(mode='json') if settings.distance_config else None,
            settings.amount_config.model_dump(mode='json') if settings.amount_config else None,
            settings.platform_fee,
            settings.gst_rate,
            settings.is_active,
        ]

    async def get_active(self) -> Optional[FeeSettings]:
        async with self.db.pool.acquire() as conn:
            row = await conn.fetchrow("""
                SELECT * FROM fee_settings
                WHERE is_active = true
                ORDER BY created_at DESC
                LIMIT 1
            """)
            return FeeSettings(**dict(row)) if row else None

    async def get(self, settings_id: int) -> Optional[FeeSettings]:
        async with self.db.pool.acquire() as conn:
            row = await conn.fetchrow(
                "SELECT * FROM fee_settings WHERE id = $1", settings_id
            )
            return FeeSettings(**dict(row)) if row else None

    async def create(self, settings: FeeSettings) -> FeeSettings:
        async with self.db.pool.acquire() as conn:
            row = await conn.fetchrow("""
                INSERT INTO fee_settings (
                    delivery_fee, free_delivery_threshold, distance_config,
                    amount_config, platform_fee, gst_rate, is_active,
                    created_by, updated_by
                ) VALUES ($1, $2, $3, $4, $5, $6, $7, $8, $9)
                RETURNING *
            """, *self._params(settings), settings.created_by, settings.updated_by)
            return FeeSettings(**dict(row))

    async def update(self, settings: FeeSettings) -> FeeSettings:
        async with self.db.pool.acquire() as conn:
            row = await conn.fetchrow("""
                UPDATE fee_settings
                SET delivery_fee = $1,
                    free_delivery_threshold = $2,
                    distance_config = $3,
                    amount_config = $4,
                    platform_fee = $5,
                    gst_rate = $6,
                    is_active = $7,
                    updated_by = $8,
                    updated_at = NOW()
                WHERE id = $9
                RETURNING *
            """, *self._params(settings), settings.updated_by, settings.id)
            return FeeSettings(**dict(row))

    async def deactivate_all(self, updated_by: Optional[int] = None,
                             except_id: Optional[int] = None) -> None:
        async with self.db.pool.acquire() as conn:
            await conn.execute("""
                UPDATE fee_settings
                SET is_active = false, updated_by = $1, updated_at = NOW()
                WHERE is_active = true AND ($2::int IS NULL OR id <> $2)
            """, updated_by, except_id)

    async def list_history(self, limit: int = 20, offset: int = 0) -> List[FeeSettings]:
        async with self.db.pool.acquire() as conn:
            rows = await conn.fetch("""
                SELECT * FROM fee_settings
                ORDER BY created_at DESC
                LIMIT $1 OFFSET $2
            """, limit, offset)
            return [FeeSettings(**dict(row)) for row in rows]


class OfferRepository:
    def __init__(self, db):
        self.db = db

    async def find_active_offer(self, restaurant_id: int, coupon_code: str,
                                now: datetime) -> Optional[Offer]:
        async with self.db.pool.acquire() as conn:
            row = await conn.fetchrow("""
                SELECT * FROM offers
                WHERE restaurant_id = $1
                AND status = 'active'
                AND start_date <= $3
                AND (end_date IS NULL OR end_date >= $3)
                AND items @> jsonb_build_array(jsonb_build_object('coupon_code', $2::text))
                ORDER BY created_at DESC
                LIMIT 1
            """, restaurant_id, coupon_code, now)
            return Offer(**dict(row)) if row else None


class OrderRepository:
    def __init__(self, db):
        self.db = db

    @staticmethod
    def _row_to_order(row) -> Order:
        return Order(**dict(row))

    @staticmethod
    def _json_fields(order: Order) -> Dict[str, Any]:
        data = order.model_dump(mode='json')
        return {
            'items': data['items'],
            'address': data['address'],
            'pricing': data['pricing'],
            'payment': data['payment'],
            'tracking': data['tracking'],
            'eta': data['eta'],
        }

    async def create(self, order: Order) -> Order:
        fields = self._json_fields(order)
        async with self.db.pool.acquire() as conn:
            row = await conn.fetchrow("""
                INSERT INTO orders (
                    order_number, user_id, restaurant_id, restaurant_name,
                    items, address, pricing, payment, status, tracking,
                    eta, estimated_delivery_time, preparation_time, note,
                    send_cutlery
                ) VALUES ($1, $2, $3, $4, $5, $6, $7, $8, $9, $10, $11, $12, $13, $14, $15)
                RETURNING *
            """,
                order.order_number,
                order.user_id,
                order.restaurant_id,
                order.restaurant_name,
                fields['items'],
                fields['address'],
                fields['pricing'],
                fields['payment'],
                order.status.value,
                fields['tracking'],
                fields['eta'],
                order.estimated_delivery_time,
                order.preparation_time,
                order.note,
                order.send_cutlery
            )
            return self._row_to_order(row)

    async def save(self, order: Order) -> Order:
        """Persist the mutable part of an order"""
        fields = self._json_fields(order)
        async with self.db.pool.acquire() as conn:
            row = await conn.fetchrow("""
                UPDATE orders
                SET payment = $2,
                    status = $3,
                    tracking = $4,
                    eta = $5,
                    estimated_delivery_time = $6,
                    cancellation_reason = $7,
                    cancelled_by = $8,
                    cancelled_at = $9,
                    updated_at = NOW()
                WHERE id = $1
                RETURNING *
            """,
                order.id,
                fields['payment'],
                order.status.value,
                fields['tracking'],
                fields['eta'],
                order.estimated_delivery_time,
                order.cancellation_reason,
                order.cancelled_by,
                order.cancelled_at
            )
            return self._row_to_order(row)

    async def get(self, reference: str, user_id: Optional[int] = None) -> Optional[Order]:
        """Find by internal id or order number, optionally scoped to a user"""
        async with self.db.pool.acquire() as conn:
            row = None
            if str(reference).isdigit():
                row = await conn.fetchrow("""
                    SELECT * FROM orders
                    WHERE id = $1 AND ($2::bigint IS NULL OR user_id = $2)
                """, int(reference), user_id)
            if row is None:
                row = await conn.fetchrow("""
                    SELECT * FROM orders
                    WHERE order_number = $1 AND ($2::bigint IS NULL OR user_id = $2)
                """, str(reference), user_id)
            return self._row_to_order(row) if row else None

    async def list_for_user(self, user_id: int, status: Optional[str] = None,
                            limit: int = 20, offset: int = 0) -> Dict[str, Any]:
        async with self.db.pool.acquire() as conn:
            rows = await conn.fetch("""
                SELECT * FROM orders
                WHERE user_id = $1 AND ($2::text IS NULL OR status = $2)
                ORDER BY created_at DESC
                LIMIT $3 OFFSET $4
            """, user_id, status, limit, offset)
            total = await conn.fetchval("""
                SELECT COUNT(*) FROM orders
                WHERE user_id = $1 AND ($2::text IS NULL OR status = $2)
            """, user_id, status)
            return {
                'orders': [self._row_to_order(row) for row in rows],
                'total': total,
            }


class PaymentRepository:
    def __init__(self, db):
        self.db = db

    async def create(self, payment: Payment) -> Payment:
        data = payment.model_dump(mode='json')
        async with self.db.pool.acquire() as conn:
            row = await conn.fetchrow("""
                INSERT INTO payments (
                    payment_number, order_id, user_id, amount, currency,
                    method, status, razorpay_order_id, razorpay_payment_id,
                    razorpay_signature, transaction_id, completed_at, logs
                ) VALUES ($1, $2, $3, $4, $5, $6, $7, $8, $9, $10, $11, $12, $13)
                RETURNING *
            """,
                payment.payment_number,
                payment.order_id,
                payment.user_id,
                payment.amount,
                payment.currency,
                payment.method.value,
                payment.status.value,
                payment.razorpay_order_id,
                payment.razorpay_payment_id,
                payment.razorpay_signature,
                payment.transaction_id,
                payment.completed_at,
                data['logs']
            )
            return Payment(**dict(row))

    async def get_latest_for_order(self, order_id: int) -> Optional[Payment]:
        async with self.db.pool.acquire() as conn:
            row = await conn.fetchrow("""
                SELECT * FROM payments
                WHERE order_id = $1
                ORDER BY created_at DESC
                LIMIT 1
            """, order_id)
            return Payment(**dict(row)) if row else None


class WalletRepository:
    def __init__(self, db):
        self.db = db

    async def get_or_create(self, user_id: int, limit: Optional[int] = None) -> UserWallet:
        async with self.db.pool.acquire() as conn:
            async with conn.transaction():
                await conn.execute("""
                    INSERT INTO wallets (user_id) VALUES ($1)
                    ON CONFLICT (user_id) DO NOTHING
                """, user_id)
                wallet = await conn.fetchrow(
                    "SELECT * FROM wallets WHERE user_id = $1", user_id
                )
                transactions = await conn.fetch("""
                    SELECT * FROM wallet_transactions
                    WHERE user_id = $1
                    ORDER BY created_at DESC, id DESC
                    LIMIT $2
                """, user_id, limit)
            return UserWallet(
                **dict(wallet),
                transactions=[WalletTransaction(**dict(tx)) for tx in reversed(transactions)]
            )

    async def find_order_transaction(self, user_id: int, order_id: int,
                                     type_: str) -> Optional[WalletTransaction]:
        async with self.db.pool.acquire() as conn:
            row = await conn.fetchrow("""
                SELECT * FROM wallet_transactions
                WHERE user_id = $1 AND order_id = $2 AND type = $3
            """, user_id, order_id, type_)
            return WalletTransaction(**dict(row)) if row else None

    async def apply_transaction(self, txn: WalletTransaction) -> WalletTransaction:
        """Append a ledger entry and move the balance in one database transaction.

        The balance update is conditional on the result staying non-negative and
        the insert is guarded by the (user_id, order_id, type) unique index, so a
        lost race surfaces as ConsistencyError instead of an over-debit.
        """
        async with self.db.pool.acquire() as conn:
            async with conn.transaction():
                balance = await conn.fetchval("""
                    UPDATE wallets
                    SET balance = balance + $2, updated_at = NOW()
                    WHERE user_id = $1 AND balance + $2 >= 0
                    RETURNING balance
                """, txn.user_id, txn.signed_amount)
                if balance is None:
                    raise ConsistencyError("Wallet balance changed concurrently, please retry")

                row = await conn.fetchrow("""
                    INSERT INTO wallet_transactions (
                        user_id, amount, type, status, order_id,
                        description, balance_after
                    ) VALUES ($1, $2, $3, $4, $5, $6, $7)
                    ON CONFLICT (user_id, order_id, type) WHERE order_id IS NOT NULL
                    DO NOTHING
                    RETURNING *
                """,
                    txn.user_id,
                    txn.amount,
                    txn.type.value,
                    txn.status.value,
                    txn.order_id,
                    txn.description,
                    balance
                )
                if row is None:
                    raise ConsistencyError("Wallet transaction already recorded for this order")

                # legacy profile mirror
                await conn.execute("""
                    UPDATE users
                    SET wallet_balance = $2,
                        wallet_currency = (SELECT currency FROM wallets WHERE user_id = $1),
                        updated_at = NOW()
                    WHERE user_id = $1
                """, txn.user_id, balance)

                return WalletTransaction(**dict(row))


class SettlementRepository:
    def __init__(self, db):
        self.db = db

    async def save_settlement(self, settlement: Settlement) -> Settlement:
        async with self.db.pool.acquire() as conn:
            row = await conn.fetchrow("""
                INSERT INTO order_settlements (
                    order_id, restaurant_id, food_amount, commission,
                    restaurant_share, platform_share, tax, total
                ) VALUES ($1, $2, $3, $4, $5, $6, $7, $8)
                ON CONFLICT (order_id) DO UPDATE
                SET food_amount = $3, commission = $4, restaurant_share = $5,
                    platform_share = $6, tax = $7, total = $8, updated_at = NOW()
                RETURNING *
            """,
                settlement.order_id,
                settlement.restaurant_id,
                settlement.food_amount,
                settlement.commission,
                settlement.restaurant_share,
                settlement.platform_share,
                settlement.tax,
                settlement.total
            )
            return Settlement(**dict(row))

    async def hold_escrow(self, hold: EscrowHold) -> EscrowHold:
        async with self.db.pool.acquire() as conn:
            await conn.execute("""
                INSERT INTO escrow_holds (order_id, user_id, amount, status)
                VALUES ($1, $2, $3, $4)
                ON CONFLICT (order_id) DO NOTHING
            """, hold.order_id, hold.user_id, hold.amount, hold.status)
            row = await conn.fetchrow(
                "SELECT * FROM escrow_holds WHERE order_id = $1", hold.order_id
            )
            return EscrowHold(**dict(row))


class RefundRepository:
    def __init__(self, db):
        self.db = db

    async def create(self, refund: Refund) -> Refund:
        async with self.db.pool.acquire() as conn:
            row = await conn.fetchrow("""
                INSERT INTO refunds (order_id, user_id, amount, method, reason, status)
                VALUES ($1, $2, $3, $4, $5, $6)
                ON CONFLICT (order_id) DO UPDATE SET reason = EXCLUDED.reason
                RETURNING *
            """,
                refund.order_id,
                refund.user_id,
                refund.amount,
                refund.method,
                refund.reason,
                refund.status
            )
            return Refund(**dict(row))
