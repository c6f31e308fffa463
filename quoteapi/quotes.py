"""Quote generation and retrieval."""
from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from datetime import timedelta
from typing import Optional, Protocol, Tuple
from uuid import UUID

from .cache import QuoteCache
from .errors import InvalidInputError, NoRouteFoundError, QuoteNotFoundError
from .pricing import Clock, PricingEngine, utc_now
from .routing.directions import RoutingProvider
from .routing.util import haversine_m
from .schemas import Quote, QuoteRequest

logger = logging.getLogger(__name__)

QUOTE_TTL_SEC = 300


@dataclass(frozen=True)
class Location:
    location_id: int
    name: str
    lat: float
    lng: float


class LocationLookup(Protocol):
    def find_by_id(self, location_id: int) -> Optional[Location]:
        ...


@dataclass(frozen=True)
class ServiceArea:
    center: Tuple[float, float]
    radius_km: float = 25.0

    def check(self, pickup: Tuple[float, float], dropoff: Tuple[float, float]) -> None:
        pickup_km = haversine_m(self.center, pickup) / 1000.0
        dropoff_km = haversine_m(self.center, dropoff) / 1000.0
        if pickup_km > self.radius_km or dropoff_km > self.radius_km:
            raise InvalidInputError(
                f"Pickup ({pickup_km:.2f} km) or dropoff ({dropoff_km:.2f} km) "
                f"outside {self.radius_km:g} km service area",
                code="validation.service-area-violation",
            )


class QuoteService:
    """Builds quotes from a route and the active pricing configuration.

    A quote is cached only after every step has succeeded; any failure leaves
    the cache untouched.
    """

    def __init__(
        self,
        cache: QuoteCache,
        routing: RoutingProvider,
        pricing: PricingEngine,
        *,
        ttl_sec: int = QUOTE_TTL_SEC,
        service_area: Optional[ServiceArea] = None,
        locations: Optional[LocationLookup] = None,
        clock: Clock = utc_now,
    ) -> None:
        self.cache = cache
        self.routing = routing
        self.pricing = pricing
        self.ttl = timedelta(seconds=ttl_sec)
        self.service_area = service_area
        self.locations = locations
        self.clock = clock

    def _resolve(
        self, location_id: Optional[int], point: Tuple[float, float], role: str
    ) -> Tuple[Tuple[float, float], Optional[int]]:
        """Swap request coordinates for a saved location when an id is given."""
        if location_id is None:
            return point, None
        location = self.locations.find_by_id(location_id) if self.locations is not None else None
        if location is None:
            raise InvalidInputError(
                f"{role.capitalize()} location not found: {location_id}",
                code="validation.invalid-location",
            )
        return (location.lat, location.lng), location.location_id

    def generate_quote(self, request: QuoteRequest, user_id: int) -> Quote:
        pickup, pickup_id = self._resolve(request.pickupLocationId, request.pickup.as_tuple(), "pickup")
        dropoff, dropoff_id = self._resolve(request.dropoffLocationId, request.dropoff.as_tuple(), "dropoff")
        if pickup == dropoff:
            raise InvalidInputError("Pickup and dropoff locations cannot be the same")
        if self.service_area is not None:
            self.service_area.check(pickup, dropoff)

        try:
            route = self.routing.get_route(pickup[0], pickup[1], dropoff[0], dropoff[1])
        except NoRouteFoundError:
            logger.warning("routing failed for rider %s: %s -> %s", user_id, pickup, dropoff)
            raise

        now = self.clock()
        config = self.pricing.active_config(now)
        fare = self.pricing.quote(route.distance_m, route.duration_s, None, None, config=config)

        quote = Quote(
            quote_id=uuid.uuid4(),
            rider_id=user_id,
            pickup_location_id=pickup_id,
            dropoff_location_id=dropoff_id,
            pickup_lat=pickup[0],
            pickup_lng=pickup[1],
            dropoff_lat=dropoff[0],
            dropoff_lng=dropoff[1],
            distance_m=route.distance_m,
            duration_s=route.duration_s,
            polyline=route.polyline,
            pricing_config_id=config.pricing_config_id,
            fare=fare,
            created_at=now,
            expires_at=now + self.ttl,
        )
        self.cache.save(quote)
        logger.info(
            "issued quote %s for rider %s: %dm, total %s VND",
            quote.quote_id,
            user_id,
            quote.distance_m,
            fare.total_vnd,
        )
        return quote

    def get_quote(self, quote_id: UUID) -> Quote:
        quote = self.cache.load(quote_id)
        if quote is None:
            logger.debug("quote %s missing or expired", quote_id)
            raise QuoteNotFoundError(quote_id)
        return quote

    def find_active_quote_for_rider(self, rider_id: int) -> Optional[Quote]:
        return self.cache.load_by_rider(rider_id)

    def consume_quote(self, quote_id: UUID) -> Quote:
        """Return the quote and evict it so it cannot be redeemed twice."""
        quote = self.cache.take(quote_id)
        if quote is None:
            raise QuoteNotFoundError(quote_id)
        logger.info("quote %s consumed by rider %s", quote_id, quote.rider_id)
        return quote
