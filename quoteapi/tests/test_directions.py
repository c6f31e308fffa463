from datetime import datetime, timezone

import httpx
import pytest

from quoteapi.errors import ConfigurationError, InvalidInputError, NoRouteFoundError
from quoteapi.routing import directions
from quoteapi.routing.directions import GoongRoutingProvider, OsrmRoutingProvider


class FakeGet:
    def __init__(self, payload=None, status_code: int = 200, error: Exception | None = None) -> None:
        self.payload = payload
        self.status_code = status_code
        self.error = error
        self.calls = []

    def __call__(self, url, params=None, timeout=None):
        self.calls.append({"url": url, "params": params, "timeout": timeout})
        if self.error is not None:
            raise self.error
        return httpx.Response(self.status_code, json=self.payload, request=httpx.Request("GET", url))


def _goong_payload(legs, polyline="abc"):
    return {
        "geocoded_waypoints": [],
        "routes": [
            {
                "bounds": {},
                "legs": [
                    {
                        "distance": {"text": "1 km", "value": d},
                        "duration": {"text": "2 mins", "value": t},
                        "steps": [],
                    }
                    for d, t in legs
                ],
                "overview_polyline": {"points": polyline},
                "summary": "",
                "warnings": [],
            }
        ],
    }


@pytest.fixture
def fake_get(monkeypatch):
    fake = FakeGet()
    monkeypatch.setattr(directions.httpx, "get", fake)
    return fake


def test_goong_sums_legs_of_first_route(fake_get):
    fake_get.payload = _goong_payload([(1000, 120), (500, 60)], polyline="overview")
    provider = GoongRoutingProvider("key", base_url="https://goong.test/Direction")

    route = provider.get_route(10.84, 106.80, 10.87, 106.80)

    assert route.distance_m == 1500
    assert route.duration_s == 180
    assert route.polyline == "overview"
    params = fake_get.calls[0]["params"]
    assert params["origin"] == "10.840000,106.800000"
    assert params["destination"] == "10.870000,106.800000"
    assert params["vehicle"] == "bike"
    assert params["api_key"] == "key"


def test_goong_multi_stop_joins_destinations(fake_get):
    fake_get.payload = _goong_payload([(1000, 100), (2000, 200), (3000, 300)])
    provider = GoongRoutingProvider("key")

    route = provider.get_multi_stop_route(
        [(10.0, 106.0), (10.1, 106.1), (10.2, 106.2), (10.3, 106.3)],
        datetime(2025, 6, 11, 8, 0, tzinfo=timezone.utc),
    )

    assert route.distance_m == 6000
    assert route.duration_s == 600
    params = fake_get.calls[0]["params"]
    assert params["origin"] == "10.000000,106.000000"
    assert params["destination"] == "10.100000,106.100000;10.200000,106.200000;10.300000,106.300000"
    assert "departure_time" not in params


@pytest.mark.parametrize("waypoints", [None, [], [(10.0, 106.0)]])
def test_multi_stop_requires_two_waypoints_before_any_request(fake_get, waypoints):
    provider = GoongRoutingProvider("key")
    with pytest.raises(InvalidInputError):
        provider.get_multi_stop_route(waypoints)
    assert fake_get.calls == []


def _osrm_payload(legs, geometry="osrm_line"):
    return {
        "code": "Ok",
        "routes": [
            {
                "geometry": geometry,
                "legs": [{"distance": d, "duration": t} for d, t in legs],
            }
        ],
        "waypoints": [],
    }


def _without(payload, key):
    route = dict(payload["routes"][0])
    del route[key]
    return {**payload, "routes": [route]}


PROVIDERS = {
    "goong": lambda: GoongRoutingProvider("key"),
    "osrm": lambda: OsrmRoutingProvider(),
}


@pytest.mark.parametrize(
    "provider, payload",
    [
        ("goong", {"routes": []}),
        ("goong", {}),
        ("goong", {"routes": [{"legs": [{"distance": {}}]}]}),
        ("goong", {"routes": [{"legs": [], "overview_polyline": {"points": "x"}}]}),
        ("goong", _without(_goong_payload([(1000, 120)]), "overview_polyline")),
        ("goong", _goong_payload([(1000, 120), (-2000, 60)])),
        ("goong", _goong_payload([(1000, -500)])),
        ("goong", ["not", "an", "object"]),
        ("osrm", {"code": "NoRoute", "routes": []}),
        ("osrm", {}),
        ("osrm", _without(_osrm_payload([(1000.0, 120.0)]), "geometry")),
        ("osrm", _osrm_payload([(1000.0, 120.0)], geometry=None)),
        ("osrm", _osrm_payload([])),
        ("osrm", {"routes": [{"geometry": "x", "legs": [{"distance": "far"}]}]}),
        ("osrm", _osrm_payload([(-10.0, 120.0)])),
        ("osrm", _osrm_payload([(1000.0, -1.0)])),
        ("osrm", ["not", "an", "object"]),
    ],
)
def test_empty_or_malformed_payload_is_no_route(fake_get, provider, payload):
    fake_get.payload = payload
    with pytest.raises(NoRouteFoundError):
        PROVIDERS[provider]().get_route(10.0, 106.0, 10.1, 106.1)


def test_http_failures_are_wrapped(fake_get):
    fake_get.status_code = 500
    fake_get.payload = {"error": "boom"}
    with pytest.raises(NoRouteFoundError):
        GoongRoutingProvider("key").get_route(10.0, 106.0, 10.1, 106.1)


def test_transport_errors_are_wrapped(fake_get):
    fake_get.error = httpx.ConnectTimeout("timed out")
    with pytest.raises(NoRouteFoundError) as info:
        OsrmRoutingProvider().get_route(10.0, 106.0, 10.1, 106.1)
    assert isinstance(info.value.__cause__, httpx.ConnectTimeout)


def test_goong_requires_api_key():
    with pytest.raises(ConfigurationError):
        GoongRoutingProvider("")


def test_osrm_uses_lng_lat_path_and_rounds_totals(fake_get):
    fake_get.payload = {
        "code": "Ok",
        "routes": [
            {
                "distance": 1500.7,
                "duration": 180.2,
                "geometry": "osrm_line",
                "legs": [{"distance": 1000.4, "duration": 120.1}, {"distance": 500.3, "duration": 60.1}],
            }
        ],
        "waypoints": [],
    }
    provider = OsrmRoutingProvider(base_url="https://osrm.test/route/v1/driving/")

    route = provider.get_route(10.84, 106.80, 10.87, 106.81)

    assert route.distance_m == 1501
    assert route.duration_s == 180
    assert route.polyline == "osrm_line"
    call = fake_get.calls[0]
    assert call["url"] == "https://osrm.test/route/v1/driving/106.800000,10.840000;106.810000,10.870000"
    assert call["params"] == {"overview": "full", "geometries": "polyline"}


def test_osrm_multi_stop_joins_coordinates_in_path(fake_get):
    fake_get.payload = _osrm_payload([(1000.0, 100.0), (2000.0, 200.0), (3000.4, 300.4)])
    provider = OsrmRoutingProvider(base_url="https://osrm.test/route/v1/driving")

    route = provider.get_multi_stop_route([(10.0, 106.0), (10.1, 106.1), (10.2, 106.2), (10.3, 106.3)])

    assert route.distance_m == 6000
    assert route.duration_s == 600
    assert fake_get.calls[0]["url"] == (
        "https://osrm.test/route/v1/driving/"
        "106.000000,10.000000;106.100000,10.100000;106.200000,10.200000;106.300000,10.300000"
    )
    assert fake_get.calls[0]["params"] == {"overview": "full", "geometries": "polyline"}
