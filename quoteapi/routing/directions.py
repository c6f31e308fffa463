"""Routing provider implementations."""
from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence

import httpx

from ..errors import ConfigurationError, InvalidInputError, NoRouteFoundError
from .util import format_lat_lng, format_lng_lat

logger = logging.getLogger(__name__)

LatLngPair = Sequence[float]


@dataclass(frozen=True)
class RouteResult:
    distance_m: int
    duration_s: int
    polyline: str


class RoutingProvider:
    """Resolves distance, duration and geometry between coordinates.

    ``departure`` on multi-stop routes is a best-effort hint: a provider without
    traffic-aware timing ignores it and returns static durations.
    """

    name = "base"

    def get_route(
        self,
        pickup_lat: float,
        pickup_lng: float,
        dropoff_lat: float,
        dropoff_lng: float,
    ) -> RouteResult:
        return self._route([(pickup_lat, pickup_lng), (dropoff_lat, dropoff_lng)], departure=None)

    def get_multi_stop_route(
        self,
        waypoints: Sequence[LatLngPair],
        departure: Optional[datetime] = None,
    ) -> RouteResult:
        if waypoints is None or len(waypoints) < 2:
            raise InvalidInputError("At least 2 waypoints required for multi-stop route")
        return self._route(list(waypoints), departure=departure)

    def _route(self, waypoints: List[LatLngPair], *, departure: Optional[datetime]) -> RouteResult:
        raise NotImplementedError

    def _fetch(self, url: str, params: Dict[str, str], timeout: float) -> Dict[str, Any]:
        try:
            response = httpx.get(url, params=params, timeout=timeout)
            response.raise_for_status()
            data = response.json()
        except httpx.HTTPError as exc:
            logger.warning("%s routing request failed: %s", self.name, exc)
            raise NoRouteFoundError(f"No route found from {self.name}: {exc}") from exc
        except ValueError as exc:
            raise NoRouteFoundError(f"No route found from {self.name}: invalid JSON body") from exc
        if not isinstance(data, dict):
            raise NoRouteFoundError(f"No route found from {self.name}")
        return data

    def _first_route(self, data: Dict[str, Any]) -> Dict[str, Any]:
        routes = data.get("routes") or []
        if not isinstance(routes, list) or not routes or not isinstance(routes[0], dict):
            raise NoRouteFoundError(f"No route found from {self.name}")
        return routes[0]

    def _result(self, distance_m: int, duration_s: int, polyline: str) -> RouteResult:
        if distance_m < 0 or duration_s < 0:
            raise NoRouteFoundError(
                f"No route found from {self.name}: negative totals {distance_m}m / {duration_s}s"
            )
        return RouteResult(distance_m=distance_m, duration_s=duration_s, polyline=polyline)


class GoongRoutingProvider(RoutingProvider):
    name = "goong"
    base_url = "https://rsapi.goong.io/Direction"

    def __init__(
        self,
        api_key: str,
        *,
        base_url: Optional[str] = None,
        vehicle: str = "bike",
        timeout: float = 8.0,
    ) -> None:
        if not api_key:
            raise ConfigurationError("Goong API key required")
        self.api_key = api_key
        self.base_url = base_url or self.base_url
        self.vehicle = vehicle
        self.timeout = timeout

    def _route(self, waypoints: List[LatLngPair], *, departure: Optional[datetime]) -> RouteResult:
        if departure is not None:
            # Goong has no departure_time parameter; durations are static.
            logger.debug("goong ignores departure hint %s", departure.isoformat())
        params = {
            "origin": format_lat_lng(waypoints[0]),
            "destination": ";".join(format_lat_lng(wp) for wp in waypoints[1:]),
            "vehicle": self.vehicle,
            "api_key": self.api_key,
        }
        data = self._fetch(self.base_url, params, self.timeout)
        route = self._first_route(data)
        try:
            legs = route["legs"]
            distance = sum(int(leg["distance"]["value"]) for leg in legs)
            duration = sum(int(leg["duration"]["value"]) for leg in legs)
            polyline = route["overview_polyline"]["points"]
        except (KeyError, TypeError, ValueError) as exc:
            raise NoRouteFoundError(
                f"No route found from goong: malformed payload {json.dumps(route)[:120]}"
            ) from exc
        if not legs or not isinstance(polyline, str):
            raise NoRouteFoundError("No route found from goong")
        return self._result(distance, duration, polyline)


class OsrmRoutingProvider(RoutingProvider):
    name = "osrm"
    base_url = "https://router.project-osrm.org/route/v1/driving"

    def __init__(self, *, base_url: Optional[str] = None, timeout: float = 8.0) -> None:
        self.base_url = (base_url or self.base_url).rstrip("/")
        self.timeout = timeout

    def _route(self, waypoints: List[LatLngPair], *, departure: Optional[datetime]) -> RouteResult:
        if departure is not None:
            logger.debug("osrm ignores departure hint %s", departure.isoformat())
        coords = ";".join(format_lng_lat(wp) for wp in waypoints)
        params = {"overview": "full", "geometries": "polyline"}
        data = self._fetch(f"{self.base_url}/{coords}", params, self.timeout)
        route = self._first_route(data)
        try:
            legs = route["legs"]
            distance = sum(float(leg["distance"]) for leg in legs)
            duration = sum(float(leg["duration"]) for leg in legs)
            polyline = route["geometry"]
        except (KeyError, TypeError, ValueError) as exc:
            raise NoRouteFoundError(
                f"No route found from osrm: malformed payload {json.dumps(route)[:120]}"
            ) from exc
        if not legs or not isinstance(polyline, str):
            raise NoRouteFoundError("No route found from osrm")
        return self._result(int(round(distance)), int(round(duration)), polyline)
