import math
import re
from typing import Iterable, Optional

from ..config import Config
from ..models import Eta, GeoPoint, OrderItem, utcnow
from .fee_policy import haversine_km

_PREP_TIME = re.compile(r"(\d+)(?:\s*-\s*(\d+))?")


def max_preparation_time(items: Iterable[OrderItem]) -> int:
    """Largest upper bound among "20-25 mins" / "25" style preparation times"""
    longest = 0
    for item in items:
        if not item.preparation_time:
            continue
        match = _PREP_TIME.search(str(item.preparation_time).strip())
        if match:
            low = int(match.group(1))
            high = int(match.group(2)) if match.group(2) else low
            longest = max(longest, high)
    return longest


class EtaService:
    """Travel-time estimate from straight-line distance"""

    def __init__(self, average_speed_kmh: Optional[float] = None,
                 buffer_minutes: Optional[int] = None):
        self.average_speed_kmh = average_speed_kmh or Config.ETA_AVERAGE_SPEED_KMH
        self.buffer_minutes = Config.ETA_BUFFER_MINUTES if buffer_minutes is None else buffer_minutes

    async def initial_eta(self, restaurant_location: GeoPoint, user_location: GeoPoint) -> Eta:
        distance = haversine_km(restaurant_location, user_location)
        travel = max(1, math.ceil(distance / self.average_speed_kmh * 60))
        return Eta(
            min_minutes=travel,
            max_minutes=travel + self.buffer_minutes,
            last_updated=utcnow(),
        )
