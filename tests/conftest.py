from decimal import Decimal
from types import SimpleNamespace

import pytest

from quickbite.services.assignment_service import AssignmentService
from quickbite.services.discount_service import DiscountService
from quickbite.services.order_service import OrderService
from quickbite.services.payment_router import SettlementRouter
from quickbite.services.payment_service import PaymentService
from quickbite.services.pricing_service import PricingService
from quickbite.services.refund_service import RefundService
from quickbite.services.settings_service import SettingsService
from quickbite.services.settlement_service import SettlementService
from quickbite.services.wallet_service import WalletService

from tests.fakes import (
    FakeFeeSettingsRepository,
    FakeOfferRepository,
    FakeOrderRepository,
    FakePaymentRepository,
    FakeRefundRepository,
    FakeRestaurantRepository,
    FakeSettlementRepository,
    FakeWalletRepository,
    FakeZoneRepository,
    StubEta,
    StubGateway,
    StubNotifier,
    make_offer,
    make_restaurant,
    slab_policy,
    square_zone,
)

USER_ID = 42
ADMIN_ID = 1


@pytest.fixture
def stack():
    """Order pipeline wired to in-memory repositories and stub collaborators"""
    s = SimpleNamespace(
        restaurants=FakeRestaurantRepository([make_restaurant()]),
        zones=FakeZoneRepository([square_zone()]),
        fee_settings=FakeFeeSettingsRepository([slab_policy()]),
        offers=FakeOfferRepository([make_offer()]),
        orders=FakeOrderRepository(),
        payments=FakePaymentRepository(),
        wallets=FakeWalletRepository({USER_ID: Decimal(1000)}),
        settlements=FakeSettlementRepository(),
        refunds=FakeRefundRepository(),
        gateway=StubGateway(),
        notifier=StubNotifier(),
        eta=StubEta(),
    )
    s.settings_service = SettingsService(s.fee_settings)
    s.wallet_service = WalletService(s.wallets)
    s.pricing_service = PricingService(s.settings_service, DiscountService(s.offers))
    s.assignment_service = AssignmentService(s.restaurants, s.zones)
    s.router = SettlementRouter(
        s.orders,
        PaymentService(s.payments, currency="INR"),
        s.wallet_service,
        s.gateway,
        s.notifier,
        SettlementService(s.settlements, commission_percent=Decimal(15)),
        currency="INR",
        gateway_key_id="rzp_test_key",
    )
    s.order_service = OrderService(
        s.orders,
        s.assignment_service,
        s.pricing_service,
        s.eta,
        s.router,
        RefundService(s.refunds),
    )
    return s
