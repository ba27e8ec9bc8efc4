from .database import Database
from .repositories import (
    RestaurantRepository,
    ZoneRepository,
    FeeSettingsRepository,
    OfferRepository,
    OrderRepository,
    PaymentRepository,
    WalletRepository,
    SettlementRepository,
    RefundRepository,
)

__all__ = [
    'Database',
    'RestaurantRepository',
    'ZoneRepository',
    'FeeSettingsRepository',
    'OfferRepository',
    'OrderRepository',
    'PaymentRepository',
    'WalletRepository',
    'SettlementRepository',
    'RefundRepository',
]
