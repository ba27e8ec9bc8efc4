from typing import Iterable, List, Optional, Sequence, Tuple
from ..models import GeoPoint, Zone, ZoneVertex


def _usable(vertex: ZoneVertex) -> Optional[Tuple[float, float]]:
    if vertex.latitude is None or vertex.longitude is None:
        return None
    return vertex.latitude, vertex.longitude


def is_inside(point: GeoPoint, polygon: Sequence[ZoneVertex]) -> bool:
    """Crossing-number test of a horizontal ray cast from ``point``.

    Edges touching a vertex without numeric coordinates are skipped and add
    no crossing. Polygons with fewer than three usable vertices contain nothing.
    """
    vertices: List[Optional[Tuple[float, float]]] = [_usable(v) for v in polygon]
    if sum(1 for v in vertices if v is not None) < 3:
        return False

    x, y = point.latitude, point.longitude
    inside = False
    j = len(vertices) - 1
    for i in range(len(vertices)):
        vi, vj = vertices[i], vertices[j]
        j = i
        if vi is None or vj is None:
            continue
        xi, yi = vi
        xj, yj = vj
        if (yi > y) != (yj > y):
            x_cross = (xj - xi) * (y - yi) / (yj - yi) + xi
            if x < x_cross:
                inside = not inside
    return inside


def find_containing_zone(point: GeoPoint, zones: Iterable[Zone]) -> Optional[Zone]:
    """First active zone containing the point; zones are not expected to overlap"""
    for zone in zones:
        if not zone.is_active:
            continue
        if is_inside(point, zone.coordinates):
            return zone
    return None
