from decimal import Decimal
from typing import List, Optional
from .base import ApiModel, TimeStampedModel
from ..constants import DEFAULT_MAX_DELIVERY_DISTANCE_KM

class DistanceSlab(ApiModel):
    """[min_km, max_km) -> fee"""
    min_km: Decimal
    max_km: Decimal
    fee: Decimal

class DistanceConfig(ApiModel):
    max_delivery_distance: Decimal = DEFAULT_MAX_DELIVERY_DISTANCE_KM
    slabs: List[DistanceSlab] = []

class AmountRule(ApiModel):
    """[min_amount, max_amount) -> delivery fee"""
    min_amount: Decimal
    max_amount: Decimal
    delivery_fee: Decimal

class AmountConfig(ApiModel):
    rules: List[AmountRule] = []

class FeeSettings(TimeStampedModel):
    """Admin-configured pricing policy"""
    id: Optional[int] = None
    delivery_fee: Decimal
    free_delivery_threshold: Optional[Decimal] = None
    distance_config: Optional[DistanceConfig] = None
    amount_config: Optional[AmountConfig] = None
    platform_fee: Decimal
    gst_rate: Decimal
    is_active: bool = True
    created_by: Optional[int] = None
    updated_by: Optional[int] = None

    @property
    def amount_rules(self) -> List[AmountRule]:
        if not self.amount_config:
            return []
        return self.amount_config.rules
