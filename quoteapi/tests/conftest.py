import pytest

from quoteapi.cache import InMemoryQuoteCache
from quoteapi.pricing import PricingEngine
from quoteapi.quotes import QuoteService
from quoteapi.schemas import LatLng, QuoteRequest
from quoteapi.tests.support import (
    CAMPUS,
    CULTURE_HOUSE,
    DummyRouting,
    FakeClock,
    StaticLocations,
    StaticPricingConfigs,
    make_config,
)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def cache(clock) -> InMemoryQuoteCache:
    return InMemoryQuoteCache(clock=clock)


@pytest.fixture
def routing() -> DummyRouting:
    return DummyRouting()


@pytest.fixture
def configs() -> StaticPricingConfigs:
    return StaticPricingConfigs(make_config())


@pytest.fixture
def locations() -> StaticLocations:
    return StaticLocations(CAMPUS, CULTURE_HOUSE)


@pytest.fixture
def service(cache, routing, configs, locations, clock) -> QuoteService:
    return QuoteService(cache, routing, PricingEngine(configs, clock=clock), locations=locations, clock=clock)


@pytest.fixture
def quote_request() -> QuoteRequest:
    return QuoteRequest(
        pickup=LatLng(latitude=10.841480, longitude=106.809844),
        dropoff=LatLng(latitude=10.8753395, longitude=106.8000331),
    )
