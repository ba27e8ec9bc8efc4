"""HTTP handlers"""
from aiohttp import web

from .base_handler import BaseHandler, envelope, error_middleware
from .fee_settings_handler import FeeSettingsHandler
from .order_handler import OrderHandler
from .wallet_handler import WalletHandler


async def health(request: web.Request) -> web.Response:
    return envelope({"status": "ok"})


def create_web_app(order_service, wallet_service, settings_service, admin_ids=None) -> web.Application:
    app = web.Application(middlewares=[error_middleware])
    app.router.add_get("/health", health)
    for handler in (
        OrderHandler(order_service, admin_ids),
        WalletHandler(wallet_service, admin_ids),
        FeeSettingsHandler(settings_service, admin_ids),
    ):
        app.add_routes(handler.routes())
    return app


__all__ = [
    'BaseHandler',
    'OrderHandler',
    'WalletHandler',
    'FeeSettingsHandler',
    'create_web_app',
    'envelope',
    'error_middleware',
]
