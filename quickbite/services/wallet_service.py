import asyncio
import logging
import weakref
from decimal import Decimal
from typing import Optional

from ..exceptions import InsufficientBalanceError, ValidationError
from ..models import TransactionStatus, TransactionType, UserWallet, WalletTransaction


class WalletService:
    """Per-user balance with an append-only transaction ledger.

    Mutations for one user run one at a time behind a per-user lock; the
    repository applies each entry with a conditional balance update, so the
    balance cannot go negative even across processes.
    """

    def __init__(self, repository, logger: Optional[logging.Logger] = None):
        self.repository = repository
        self.logger = logger or logging.getLogger(__name__)
        # entries disappear once no coroutine holds or awaits the lock
        self._locks: "weakref.WeakValueDictionary[int, asyncio.Lock]" = weakref.WeakValueDictionary()

    def _lock_for(self, user_id: int) -> asyncio.Lock:
        lock = self._locks.get(user_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[user_id] = lock
        return lock

    async def get_wallet(self, user_id: int, limit: Optional[int] = None) -> UserWallet:
        return await self.repository.get_or_create(user_id, limit=limit)

    async def get_balance(self, user_id: int) -> Decimal:
        wallet = await self.get_wallet(user_id, limit=0)
        return wallet.balance

    async def ensure_funds(self, user_id: int, amount: Decimal) -> UserWallet:
        """Raise InsufficientBalanceError if the wallet cannot cover ``amount``"""
        wallet = await self.get_wallet(user_id, limit=0)
        if amount > wallet.balance:
            raise InsufficientBalanceError(amount, wallet.balance)
        return wallet

    async def debit(self, user_id: int, amount: Decimal, order_id: int,
                    description: Optional[str] = None) -> WalletTransaction:
        """Deduct ``amount`` for ``order_id``; repeating it returns the first deduction"""
        if amount <= 0:
            raise ValidationError("Debit amount must be greater than 0")

        async with self._lock_for(user_id):
            existing = await self.repository.find_order_transaction(
                user_id, order_id, TransactionType.DEDUCTION.value
            )
            if existing is not None:
                self.logger.warning(
                    f"Wallet payment already processed for order {order_id} "
                    f"(transaction {existing.id})"
                )
                return existing

            wallet = await self.repository.get_or_create(user_id, limit=0)
            if amount > wallet.balance:
                raise InsufficientBalanceError(amount, wallet.balance)

            txn = await self.repository.apply_transaction(WalletTransaction(
                user_id=user_id,
                amount=amount,
                type=TransactionType.DEDUCTION,
                status=TransactionStatus.COMPLETED,
                order_id=order_id,
                description=description or f"Order payment - order {order_id}",
            ))

        self.logger.info(
            f"Wallet debited {amount} for order {order_id}, user {user_id}, "
            f"balance {txn.balance_after}"
        )
        return txn

    async def credit(self, user_id: int, amount: Decimal, reason: str,
                     order_id: Optional[int] = None) -> WalletTransaction:
        if amount <= 0:
            raise ValidationError("Credit amount must be greater than 0")

        async with self._lock_for(user_id):
            await self.repository.get_or_create(user_id, limit=0)
            txn = await self.repository.apply_transaction(WalletTransaction(
                user_id=user_id,
                amount=amount,
                type=TransactionType.CREDIT,
                status=TransactionStatus.COMPLETED,
                order_id=order_id,
                description=reason,
            ))

        self.logger.info(f"Wallet credited {amount} for user {user_id}: {reason}")
        return txn
