"""Factory helpers that build the service graph once at startup."""
from __future__ import annotations

from functools import lru_cache

from .balance import BalanceCalculator
from .cache import InMemoryQuoteCache, PostgresQuoteCache, QuoteCache
from .config import Settings, load_settings
from .db import PostgresLedger, PostgresLocations, PostgresPricingConfigs
from .errors import ConfigurationError
from .pricing import PricingEngine
from .quotes import QuoteService, ServiceArea
from .routing.directions import GoongRoutingProvider, OsrmRoutingProvider, RoutingProvider


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return load_settings()


def build_routing_provider(settings: Settings) -> RoutingProvider:
    if settings.routing_provider == "goong":
        return GoongRoutingProvider(
            settings.goong_api_key,
            base_url=settings.goong_base_url,
            vehicle=settings.goong_vehicle,
            timeout=settings.routing_timeout_sec,
        )
    if settings.routing_provider == "osrm":
        return OsrmRoutingProvider(base_url=settings.osrm_base_url, timeout=settings.routing_timeout_sec)
    raise ConfigurationError(f"unknown routing provider {settings.routing_provider!r}")


def build_quote_cache(settings: Settings) -> QuoteCache:
    if settings.quote_cache_backend == "postgres":
        return PostgresQuoteCache(settings.database_url)
    return InMemoryQuoteCache()


def build_quote_service(settings: Settings) -> QuoteService:
    service_area = None
    if settings.service_area_center is not None:
        service_area = ServiceArea(settings.service_area_center, settings.service_area_radius_km)
    return QuoteService(
        build_quote_cache(settings),
        build_routing_provider(settings),
        PricingEngine(PostgresPricingConfigs(settings.database_url)),
        ttl_sec=settings.quote_ttl_sec,
        service_area=service_area,
        locations=PostgresLocations(settings.database_url),
    )


@lru_cache(maxsize=1)
def get_quote_service() -> QuoteService:
    return build_quote_service(get_settings())


@lru_cache(maxsize=1)
def get_balance_calculator() -> BalanceCalculator:
    return BalanceCalculator(PostgresLedger(get_settings().database_url))
