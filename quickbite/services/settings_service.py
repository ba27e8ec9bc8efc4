import logging
from decimal import Decimal
from typing import Any, Dict, List, Optional

import pydantic

from ..constants import (
    DEFAULT_DELIVERY_FEE,
    DEFAULT_FREE_DELIVERY_THRESHOLD,
    DEFAULT_GST_RATE,
    DEFAULT_PLATFORM_FEE,
)
from ..exceptions import NotFoundError, ValidationError
from ..models import AmountConfig, DistanceConfig, FeeSettings
from .fee_policy import find_overlap


def default_fee_settings() -> FeeSettings:
    return FeeSettings(
        delivery_fee=DEFAULT_DELIVERY_FEE,
        free_delivery_threshold=DEFAULT_FREE_DELIVERY_THRESHOLD,
        platform_fee=DEFAULT_PLATFORM_FEE,
        gst_rate=DEFAULT_GST_RATE,
    )


class SettingsService:
    """Fee policy settings: reads for pricing, writes for administrators"""

    def __init__(self, repository, logger: Optional[logging.Logger] = None):
        self.repository = repository
        self.logger = logger or logging.getLogger(__name__)

    async def get_pricing_settings(self) -> FeeSettings:
        """Active policy, or the built-in defaults when it cannot be read"""
        try:
            settings = await self.repository.get_active()
        except Exception as e:
            self.logger.error(f"Error fetching fee settings, using defaults: {e}")
            return default_fee_settings()
        return settings or default_fee_settings()

    async def get_active_settings(self, admin_id: Optional[int] = None) -> FeeSettings:
        """Active policy; stores the defaults as the active record when none exists"""
        settings = await self.repository.get_active()
        if settings is None:
            defaults = default_fee_settings()
            defaults.created_by = admin_id
            settings = await self.repository.create(defaults)
            self.logger.info("Created default fee settings")
        return settings

    async def get_public_settings(self) -> Dict[str, Any]:
        settings = await self.get_pricing_settings()
        return {
            "deliveryFee": settings.delivery_fee,
            "freeDeliveryThreshold": settings.free_delivery_threshold,
            "platformFee": settings.platform_fee,
            "gstRate": settings.gst_rate,
            "distanceConfig": settings.distance_config.to_api() if settings.distance_config else None,
            "amountConfig": settings.amount_config.to_api() if settings.amount_config else None,
        }

    async def create_settings(self, data: Dict[str, Any], admin_id: Optional[int] = None) -> FeeSettings:
        """Create a policy; an active one replaces every previous active record"""
        payload = dict(data)
        payload.setdefault("freeDeliveryThreshold", DEFAULT_FREE_DELIVERY_THRESHOLD)
        payload["distanceConfig"] = payload.get("distanceConfig") or {}
        payload["amountConfig"] = payload.get("amountConfig") or {}
        payload["isActive"] = payload.get("isActive") is not False
        for key in ("platformFee", "gstRate", "deliveryFee"):
            if payload.get(key) is None:
                raise ValidationError(f"{key} is required")

        settings = self._parse(payload)
        settings.created_by = admin_id
        settings.updated_by = admin_id
        self.validate(settings)

        if settings.is_active:
            await self.repository.deactivate_all(updated_by=admin_id)

        created = await self.repository.create(settings)
        self.logger.info(f"Fee settings {created.id} created by admin {admin_id}")
        return created

    async def update_settings(self, settings_id: int, data: Dict[str, Any],
                              admin_id: Optional[int] = None) -> FeeSettings:
        current = await self.repository.get(settings_id)
        if current is None:
            raise NotFoundError("Fee settings not found")

        merged = current.model_dump(by_alias=True)
        merged.update({k: v for k, v in data.items() if v is not None})
        settings = self._parse(merged)
        settings.id = current.id
        settings.updated_by = admin_id
        self.validate(settings)

        if settings.is_active and not current.is_active:
            await self.repository.deactivate_all(updated_by=admin_id, except_id=settings_id)

        updated = await self.repository.update(settings)
        self.logger.info(f"Fee settings {settings_id} updated by admin {admin_id}")
        return updated

    async def get_history(self, page: int = 1, limit: int = 20) -> List[FeeSettings]:
        page = max(page, 1)
        return await self.repository.list_history(limit=limit, offset=(page - 1) * limit)

    @staticmethod
    def _parse(payload: Dict[str, Any]) -> FeeSettings:
        try:
            return FeeSettings.model_validate(payload)
        except pydantic.ValidationError as e:
            error = e.errors()[0]
            field = ".".join(str(part) for part in error["loc"])
            raise ValidationError(f"Invalid value for {field}: {error['msg']}")

    @staticmethod
    def validate(settings: FeeSettings) -> None:
        if settings.platform_fee < 0:
            raise ValidationError("Platform fee must be a positive number")
        if not Decimal(0) <= settings.gst_rate <= Decimal(100):
            raise ValidationError("GST rate must be between 0 and 100")
        if settings.delivery_fee < 0:
            raise ValidationError("Delivery fee must be a positive number")
        if settings.free_delivery_threshold is not None and settings.free_delivery_threshold < 0:
            raise ValidationError("Free delivery threshold must be a positive number")

        SettingsService._validate_distance(settings.distance_config)
        SettingsService._validate_amount(settings.amount_config)

    @staticmethod
    def _validate_distance(config: Optional[DistanceConfig]) -> None:
        if config is None:
            return
        if config.max_delivery_distance < 0:
            raise ValidationError("Max delivery distance must be a positive number")
        for slab in config.slabs:
            if slab.min_km < 0 or slab.max_km < 0 or slab.fee < 0:
                raise ValidationError("Distance slab values must be >= 0")
            if slab.min_km >= slab.max_km:
                raise ValidationError("Distance slab Min Km must be less than Max Km")
        overlap = find_overlap([(s.min_km, s.max_km) for s in config.slabs])
        if overlap:
            raise ValidationError(
                f"Distance slabs {overlap[0] + 1} and {overlap[1] + 1} overlap"
            )

    @staticmethod
    def _validate_amount(config: Optional[AmountConfig]) -> None:
        if config is None:
            return
        for rule in config.rules:
            if rule.min_amount < 0 or rule.max_amount < 0 or rule.delivery_fee < 0:
                raise ValidationError("Amount rule values must be >= 0")
            if rule.min_amount >= rule.max_amount:
                raise ValidationError("Amount rule Min Order must be less than Max Order")
        overlap = find_overlap([(r.min_amount, r.max_amount) for r in config.rules])
        if overlap:
            raise ValidationError(
                f"Amount rules {overlap[0] + 1} and {overlap[1] + 1} overlap"
            )
