"""Geometry helpers shared by the routing providers and the quote service."""
from __future__ import annotations

import math
from typing import Sequence


def haversine_m(a: Sequence[float], b: Sequence[float]) -> float:
    (lat1, lon1), (lat2, lon2) = a, b
    r = 6371000.0
    phi1, phi2 = math.radians(lat1), math.radians(lat2)
    dphi = math.radians(lat2 - lat1)
    dlmb = math.radians(lon2 - lon1)
    h = math.sin(dphi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(dlmb / 2) ** 2
    return 2 * r * math.asin(math.sqrt(h))


def format_lat_lng(point: Sequence[float]) -> str:
    """Goong style ``lat,lng``."""
    return f"{float(point[0]):.6f},{float(point[1]):.6f}"


def format_lng_lat(point: Sequence[float]) -> str:
    """OSRM style ``lng,lat``."""
    return f"{float(point[1]):.6f},{float(point[0]):.6f}"


