from decimal import Decimal, InvalidOperation

from aiohttp import web

from ..exceptions import ValidationError
from ..services.wallet_service import WalletService
from .base_handler import BaseHandler, envelope


class WalletHandler(BaseHandler):
    """Wallet balance and admin top-ups"""

    def __init__(self, wallet_service: WalletService, admin_ids=None):
        super().__init__(admin_ids)
        self.wallet_service = wallet_service

    def routes(self):
        return [
            web.get("/api/wallet", self.get_wallet),
            web.post("/api/admin/wallet/{user_id}/credit", self.credit),
        ]

    async def get_wallet(self, request: web.Request) -> web.Response:
        user_id = self.user_id(request)
        limit = self.int_param(request.query.get("limit"), "limit", 20)
        wallet = await self.wallet_service.get_wallet(user_id, limit=min(max(limit, 0), 100))
        return envelope({"wallet": wallet.to_api()})

    async def credit(self, request: web.Request) -> web.Response:
        admin_id = self.admin_id(request)
        target = request.match_info["user_id"]
        if not target.isdigit():
            raise ValidationError("Invalid user id")

        body = await self.read_json(request)
        try:
            amount = Decimal(str(body.get("amount")))
        except InvalidOperation:
            raise ValidationError("amount must be a number")
        if not amount.is_finite():
            raise ValidationError("amount must be a number")

        reason = body.get("reason") or f"Credit by admin {admin_id}"
        txn = await self.wallet_service.credit(int(target), amount, reason)
        return envelope({"transaction": txn.to_api()}, "Wallet credited successfully", status=201)
