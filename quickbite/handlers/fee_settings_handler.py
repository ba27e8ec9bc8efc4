from aiohttp import web

from ..exceptions import ValidationError
from ..services.settings_service import SettingsService
from .base_handler import BaseHandler, envelope


class FeeSettingsHandler(BaseHandler):
    """Public fee view and admin fee policy management"""

    def __init__(self, settings_service: SettingsService, admin_ids=None):
        super().__init__(admin_ids)
        self.settings_service = settings_service

    def routes(self):
        return [
            web.get("/api/fee-settings", self.get_public),
            web.get("/api/admin/fee-settings", self.get_active),
            web.post("/api/admin/fee-settings", self.create),
            web.get("/api/admin/fee-settings/history", self.history),
            web.patch("/api/admin/fee-settings/{settings_id}", self.update),
        ]

    async def get_public(self, request: web.Request) -> web.Response:
        return envelope(await self.settings_service.get_public_settings())

    async def get_active(self, request: web.Request) -> web.Response:
        admin_id = self.admin_id(request)
        settings = await self.settings_service.get_active_settings(admin_id)
        return envelope({"settings": settings.to_api()})

    async def create(self, request: web.Request) -> web.Response:
        admin_id = self.admin_id(request)
        settings = await self.settings_service.create_settings(await self.read_json(request), admin_id)
        return envelope({"settings": settings.to_api()}, "Fee settings created successfully", status=201)

    async def update(self, request: web.Request) -> web.Response:
        admin_id = self.admin_id(request)
        settings_id = request.match_info["settings_id"]
        if not settings_id.isdigit():
            raise ValidationError("Invalid settings id")
        settings = await self.settings_service.update_settings(
            int(settings_id), await self.read_json(request), admin_id
        )
        return envelope({"settings": settings.to_api()}, "Fee settings updated successfully")

    async def history(self, request: web.Request) -> web.Response:
        self.admin_id(request)
        page = max(self.int_param(request.query.get("page"), "page", 1), 1)
        limit = min(max(self.int_param(request.query.get("limit"), "limit", 20), 1), 100)
        records = await self.settings_service.get_history(page, limit)
        return envelope({
            "history": [record.to_api() for record in records],
            "pagination": {"page": page, "limit": limit},
        })
