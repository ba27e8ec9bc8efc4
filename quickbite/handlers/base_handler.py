import json
import logging
from datetime import date, datetime
from decimal import Decimal
from functools import partial
from typing import Any, Dict, Iterable, Optional, Type, TypeVar

import pydantic
from aiohttp import web

from ..config import Config
from ..exceptions import EligibilityError, QuickBiteError, ValidationError

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=pydantic.BaseModel)


def _json_default(value: Any) -> Any:
    if isinstance(value, Decimal):
        return int(value) if value == value.to_integral_value() else float(value)
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, pydantic.BaseModel):
        return value.model_dump(mode='json', by_alias=True)
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


dumps = partial(json.dumps, default=_json_default)


def envelope(data: Any = None, message: str = "OK", status: int = 200,
             success: bool = True) -> web.Response:
    """Uniform ``{success, message, data}`` response"""
    return web.json_response(
        {"success": success, "message": message, "data": data},
        status=status,
        dumps=dumps
    )


@web.middleware
async def error_middleware(request: web.Request, handler) -> web.StreamResponse:
    try:
        return await handler(request)
    except QuickBiteError as e:
        if e.status >= 500:
            logger.error(f"{request.method} {request.path} failed: {e.message}")
        else:
            logger.info(f"{request.method} {request.path} rejected ({e.status}): {e.message}")
        return envelope(e.data, e.message, status=e.status, success=False)
    except web.HTTPException as e:
        return envelope(None, e.reason, status=e.status, success=False)
    except Exception as e:
        logger.error(f"Unhandled error on {request.method} {request.path}: {e}", exc_info=True)
        return envelope(None, "Internal server error", status=500, success=False)


class BaseHandler:
    """Shared request helpers for the HTTP handlers"""

    def __init__(self, admin_ids: Optional[Iterable[int]] = None):
        self.admin_ids = set(Config.ADMIN_IDS if admin_ids is None else admin_ids)

    @staticmethod
    def user_id(request: web.Request) -> int:
        """Caller identity, set by the upstream auth gateway"""
        raw = request.headers.get("X-User-Id", "").strip()
        if not raw.isdigit():
            raise web.HTTPUnauthorized(reason="Authentication required")
        return int(raw)

    def is_admin(self, user_id: int) -> bool:
        return user_id in self.admin_ids

    def admin_id(self, request: web.Request) -> int:
        user_id = self.user_id(request)
        if not self.is_admin(user_id):
            raise EligibilityError("Admin access required")
        return user_id

    @staticmethod
    async def read_json(request: web.Request, required: bool = True) -> Dict[str, Any]:
        if not request.can_read_body:
            if required:
                raise ValidationError("Request body is required")
            return {}
        try:
            body = await request.json()
        except json.JSONDecodeError:
            raise ValidationError("Request body must be valid JSON")
        if not isinstance(body, dict):
            raise ValidationError("Request body must be a JSON object")
        return body

    @staticmethod
    def parse(model: Type[ModelT], data: Dict[str, Any]) -> ModelT:
        try:
            return model.model_validate(data)
        except pydantic.ValidationError as e:
            raise ValidationError(
                "Invalid request",
                data=e.errors(include_url=False, include_context=False, include_input=False)
            )

    @staticmethod
    def int_param(value: Optional[str], name: str, default: int) -> int:
        if value is None or value == "":
            return default
        try:
            return int(value)
        except ValueError:
            raise ValidationError(f"{name} must be an integer")
