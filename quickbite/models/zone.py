import math
from decimal import Decimal
from typing import Any, List, Optional
from pydantic import field_validator
from .base import ApiModel, TimeStampedModel

class ZoneVertex(ApiModel):
    """Polygon vertex; either coordinate may be missing or unreadable in stored data"""
    latitude: Optional[float] = None
    longitude: Optional[float] = None

    @field_validator("latitude", "longitude", mode="before")
    @classmethod
    def _numeric_or_none(cls, value: Any) -> Optional[float]:
        # unreadable coordinates become None so the geofence skips the vertex
        if isinstance(value, bool) or not isinstance(value, (int, float, Decimal, str)):
            return None
        try:
            number = float(value)
        except ValueError:
            return None
        return number if math.isfinite(number) else None

class Zone(TimeStampedModel):
    """Administrator-defined delivery zone"""
    id: int
    name: str
    coordinates: List[ZoneVertex] = []
    is_active: bool = True
