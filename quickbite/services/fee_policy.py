"""Delivery, platform and tax fee rules.

Everything in this module is a pure function of its arguments so that a
breakdown can be recomputed later from the stored policy for disputes.
"""
import math
from decimal import Decimal, ROUND_HALF_UP
from typing import List, Optional, Sequence, Tuple

from ..constants import EARTH_RADIUS_KM
from ..exceptions import ValidationError
from ..models import AmountRule, DistanceSlab, FeeSettings, GeoPoint, Restaurant

UNIT = Decimal(1)


def to_units(value) -> Decimal:
    """Round half up to the integer currency unit"""
    return Decimal(str(value)).quantize(UNIT, rounding=ROUND_HALF_UP)


def haversine_km(origin: GeoPoint, destination: GeoPoint) -> float:
    lat1, lng1 = math.radians(origin.latitude), math.radians(origin.longitude)
    lat2, lng2 = math.radians(destination.latitude), math.radians(destination.longitude)
    d_lat = lat2 - lat1
    d_lng = lng2 - lng1

    a = (math.sin(d_lat / 2) ** 2
         + math.cos(lat1) * math.cos(lat2) * math.sin(d_lng / 2) ** 2)
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return EARTH_RADIUS_KM * c


def in_range(value: Decimal, low: Decimal, high: Decimal, top: Decimal) -> bool:
    """[low, high); the range whose high equals ``top`` also includes ``top``"""
    return value >= low and (value < high or (high == top and value <= high))


def usable_slabs(slabs: Sequence[DistanceSlab]) -> List[DistanceSlab]:
    valid = [s for s in slabs if s.min_km < s.max_km and s.fee >= 0]
    return sorted(valid, key=lambda s: s.min_km)


def usable_rules(rules: Sequence[AmountRule]) -> List[AmountRule]:
    return [r for r in rules if r.min_amount < r.max_amount and r.delivery_fee >= 0]


def match_distance_slab(distance: Decimal, slabs: Sequence[DistanceSlab]) -> Optional[DistanceSlab]:
    ordered = usable_slabs(slabs)
    if not ordered:
        return None
    top = max(s.max_km for s in ordered)
    for slab in ordered:
        if in_range(distance, slab.min_km, slab.max_km, top):
            return slab
    return None


def _rule_priority(rule: AmountRule) -> Tuple[Decimal, Decimal, Decimal]:
    # highest min first, then narrowest, then highest max
    return (-rule.min_amount, rule.max_amount - rule.min_amount, -rule.max_amount)


def match_amount_rule(amount: Decimal, rules: Sequence[AmountRule]) -> Optional[AmountRule]:
    candidates = usable_rules(rules)
    if not candidates:
        return None
    top = max(r.max_amount for r in candidates)
    for rule in sorted(candidates, key=_rule_priority):
        if in_range(amount, rule.min_amount, rule.max_amount, top):
            return rule
    return None


def distance_fee(settings: FeeSettings, restaurant: Optional[Restaurant],
                 destination: Optional[GeoPoint]) -> Tuple[Decimal, Optional[float]]:
    """Distance phase of the delivery fee; returns (fee, distance_km)"""
    origin = restaurant.location if restaurant else None
    config = settings.distance_config
    if origin is None or destination is None or config is None:
        return settings.delivery_fee, None

    distance = haversine_km(origin, destination)
    distance_dec = Decimal(str(distance))
    if distance_dec > config.max_delivery_distance:
        raise ValidationError(
            f"Delivery unavailable: location is too far "
            f"({distance:.1f}km, max {config.max_delivery_distance}km)",
            data={"distanceKm": round(distance, 2),
                  "maxDeliveryDistance": config.max_delivery_distance}
        )

    slab = match_distance_slab(distance_dec, config.slabs)
    if slab is None:
        return settings.delivery_fee, distance
    return slab.fee, distance


def delivery_fee(settings: FeeSettings, subtotal: Decimal, restaurant: Optional[Restaurant],
                 destination: Optional[GeoPoint]) -> Tuple[Decimal, Optional[float]]:
    fee, distance = distance_fee(settings, restaurant, destination)

    rules = settings.amount_rules
    rule = match_amount_rule(subtotal, rules)
    if rule is not None:
        fee = rule.delivery_fee

    if restaurant and restaurant.free_delivery_above and subtotal >= restaurant.free_delivery_above:
        return Decimal(0), distance

    if not rules and settings.free_delivery_threshold and subtotal >= settings.free_delivery_threshold:
        return Decimal(0), distance

    return fee, distance


def gst(subtotal: Decimal, discount: Decimal, gst_rate: Decimal) -> Decimal:
    return to_units((subtotal - discount) * gst_rate / 100)


def find_overlap(ranges: Sequence[Tuple[Decimal, Decimal]]) -> Optional[Tuple[int, int]]:
    """Indices of the first pair of overlapping half-open ranges"""
    indexed = sorted(enumerate(ranges), key=lambda pair: pair[1][0])
    for (i, (_, high)), (j, (low, _)) in zip(indexed, indexed[1:]):
        if low < high:
            return min(i, j), max(i, j)
    return None
