from datetime import datetime
from decimal import Decimal
from typing import List, Optional
from enum import Enum
from pydantic import Field
from .base import ApiModel, TimeStampedModel, utcnow

class TransactionType(str, Enum):
    DEDUCTION = "deduction"
    CREDIT = "credit"

class TransactionStatus(str, Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"

class WalletTransaction(ApiModel):
    """Append-only wallet ledger entry"""
    id: Optional[int] = None
    user_id: int
    amount: Decimal
    type: TransactionType
    status: TransactionStatus = TransactionStatus.COMPLETED
    order_id: Optional[int] = None
    description: Optional[str] = None
    balance_after: Optional[Decimal] = None
    created_at: datetime = Field(default_factory=utcnow)

    @property
    def signed_amount(self) -> Decimal:
        if self.type == TransactionType.DEDUCTION:
            return -self.amount
        return self.amount

class UserWallet(TimeStampedModel):
    """Per-user balance with its transaction log"""
    user_id: int
    balance: Decimal = Decimal(0)
    currency: str = "INR"
    transactions: List[WalletTransaction] = []

