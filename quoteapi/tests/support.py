"""Test doubles shared by the quote test modules."""
from datetime import datetime, timedelta, timezone
from decimal import Decimal

from quoteapi.pricing import PricingConfig
from quoteapi.quotes import Location
from quoteapi.routing.directions import RouteResult, RoutingProvider

T0 = datetime(2025, 6, 11, 8, 0, tzinfo=timezone.utc)

CAMPUS = Location(location_id=1, name="FPT University - HCMC Campus", lat=10.841480, lng=106.809844)
CULTURE_HOUSE = Location(location_id=2, name="Student Culture House", lat=10.8753395, lng=106.8000331)


class FakeClock:
    def __init__(self, now: datetime = T0) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now = self.now + timedelta(seconds=seconds)


class DummyRouting(RoutingProvider):
    name = "dummy"

    def __init__(self, result=None, error=None) -> None:
        self.result = result or RouteResult(distance_m=5000, duration_s=900, polyline="_p~iF~ps|U_ulLnnqC")
        self.error = error
        self.calls = []

    def _route(self, waypoints, *, departure):
        self.calls.append(list(waypoints))
        if self.error is not None:
            raise self.error
        return self.result


class StaticPricingConfigs:
    """In-process stand-in for the pricing_configs query."""

    def __init__(self, *configs: PricingConfig) -> None:
        self._configs = list(configs)

    def find_active(self, at: datetime):
        active = [c for c in self._configs if c.is_active_at(at)]
        if not active:
            return None
        return max(active, key=lambda c: c.valid_from)


class StaticLocations:
    def __init__(self, *locations: Location) -> None:
        self._by_id = {loc.location_id: loc for loc in locations}
        self.lookups = []

    def find_by_id(self, location_id: int):
        self.lookups.append(location_id)
        return self._by_id.get(location_id)


def make_config(**overrides) -> PricingConfig:
    values = dict(
        pricing_config_id=7,
        version=T0 - timedelta(days=30),
        base_2km_vnd=Decimal("10000"),
        after_2km_per_km_vnd=Decimal("3000"),
        system_commission_rate=Decimal("0.1"),
        valid_from=T0 - timedelta(days=30),
        valid_until=None,
        status="ACTIVE",
    )
    values.update(overrides)
    return PricingConfig(**values)
