from .base import ApiModel, TimeStampedModel, GeoPoint, utcnow
from .fee_settings import FeeSettings, DistanceConfig, DistanceSlab, AmountConfig, AmountRule
from .offer import Offer, OfferItem
from .order import (
    Order,
    OrderItem,
    OrderStatus,
    OrderPayment,
    PaymentMethod,
    PaymentStatus,
    DeliveryAddress,
    PricingBreakdown,
    AppliedCoupon,
    Eta,
    CartRequest,
)
from .payment import Payment, PaymentLog
from .restaurant import Restaurant
from .settlement import Settlement, EscrowHold, Refund
from .wallet import UserWallet, WalletTransaction, TransactionType, TransactionStatus
from .zone import Zone, ZoneVertex

__all__ = [
    'ApiModel',
    'TimeStampedModel',
    'GeoPoint',
    'utcnow',
    'FeeSettings',
    'DistanceConfig',
    'DistanceSlab',
    'AmountConfig',
    'AmountRule',
    'Offer',
    'OfferItem',
    'Order',
    'OrderItem',
    'OrderStatus',
    'OrderPayment',
    'PaymentMethod',
    'PaymentStatus',
    'DeliveryAddress',
    'PricingBreakdown',
    'AppliedCoupon',
    'Eta',
    'CartRequest',
    'Payment',
    'PaymentLog',
    'Restaurant',
    'Settlement',
    'EscrowHold',
    'Refund',
    'UserWallet',
    'WalletTransaction',
    'TransactionType',
    'TransactionStatus',
    'Zone',
    'ZoneVertex',
]
