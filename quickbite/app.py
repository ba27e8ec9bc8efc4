import asyncio
import logging
from typing import Optional

from aiohttp import web
from telegram import Bot

from .config import Config
from .database import (
    Database,
    FeeSettingsRepository,
    OfferRepository,
    OrderRepository,
    PaymentRepository,
    RefundRepository,
    RestaurantRepository,
    SettlementRepository,
    WalletRepository,
    ZoneRepository,
)
from .handlers import create_web_app
from .services.assignment_service import AssignmentService
from .services.discount_service import DiscountService
from .services.eta_service import EtaService
from .services.notification_service import NotificationService
from .services.order_service import OrderService
from .services.payment_router import SettlementRouter
from .services.payment_service import PaymentService, RazorpayGateway
from .services.pricing_service import PricingService
from .services.refund_service import RefundService
from .services.settings_service import SettingsService
from .services.settlement_service import SettlementService
from .services.wallet_service import WalletService


class QuickBiteApp:
    def __init__(self, db: Optional[Database] = None):
        """Wire repositories, services and the HTTP surface"""
        self.logger = logging.getLogger(__name__)
        self.db = db or Database()
        self.bot = Bot(Config.TELEGRAM_TOKEN) if Config.TELEGRAM_TOKEN else None
        self.runner: Optional[web.AppRunner] = None
        self.setup_services()
        self.web_app = create_web_app(
            self.order_service,
            self.wallet_service,
            self.settings_service,
        )

    def setup_services(self):
        restaurants = RestaurantRepository(self.db)

        self.settings_service = SettingsService(FeeSettingsRepository(self.db))
        self.wallet_service = WalletService(WalletRepository(self.db))
        pricing = PricingService(self.settings_service, DiscountService(OfferRepository(self.db)))
        assignment = AssignmentService(restaurants, ZoneRepository(self.db))
        orders = OrderRepository(self.db)

        router = SettlementRouter(
            orders,
            PaymentService(PaymentRepository(self.db)),
            self.wallet_service,
            RazorpayGateway(),
            NotificationService(self.bot, restaurants),
            SettlementService(SettlementRepository(self.db)),
        )
        self.order_service = OrderService(
            orders,
            assignment,
            pricing,
            EtaService(),
            router,
            RefundService(RefundRepository(self.db)),
        )

    async def start(self):
        await self.db.connect()
        if self.bot is not None:
            await self.bot.initialize()
        else:
            self.logger.warning("TELEGRAM_TOKEN not set; restaurant notifications disabled")

        self.runner = web.AppRunner(self.web_app)
        await self.runner.setup()
        site = web.TCPSite(self.runner, Config.HTTP_HOST, Config.HTTP_PORT)
        await site.start()
        self.logger.info(f"Serving on http://{Config.HTTP_HOST}:{Config.HTTP_PORT}")

        try:
            await asyncio.Event().wait()
        finally:
            await self.stop()

    async def stop(self):
        if self.runner is not None:
            await self.runner.cleanup()
            self.runner = None
        if self.bot is not None:
            await self.bot.shutdown()
        await self.db.close()
