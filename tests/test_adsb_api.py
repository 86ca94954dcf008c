import asyncio
import math

import pytest

from adsb_api import DEMO_TRAFFIC, ADSBFeedClient, DemoFeedClient, airport_position
from adsb_data import Position
from errors import FeedTimeout, ParseFailed, RequestFailed

SFO = Position(37.6191, -122.3816)


class FakeResponse:
    def __init__(self, status=200, payload=None, error=None):
        self.status = status
        self.payload = payload
        self.error = error

    async def json(self, content_type=None):
        if self.error:
            raise self.error
        return self.payload


class FakeRequest:
    def __init__(self, response=None, error=None):
        self.response = response
        self.error = error

    async def __aenter__(self):
        if self.error:
            raise self.error
        return self.response

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        return False


class FakeSession:
    def __init__(self, request):
        self.request = request
        self.urls = []

    def get(self, url, timeout=None):
        self.urls.append(url)
        return self.request


def fetch(client):
    return asyncio.run(client.fetch(SFO.lat, SFO.lon, 50.0, 1.0))


def test_build_url_clamps_radius():
    client = ADSBFeedClient('https://api.adsb.lol/v2/point/{lat}/{lon}/{radius}')
    assert client.build_url(37.6191, -122.3816, 49.2) == \
        'https://api.adsb.lol/v2/point/37.619100/-122.381600/50'
    assert client.build_url(0, 0, 900).endswith('/250')
    assert client.build_url(0, 0, 0.3).endswith('/1')


def test_fetch_parses_aircraft():
    client = ADSBFeedClient()
    payload = {'ac': [{'hex': 'abc', 'lat': 37.7, 'lon': -122.3, 'flight': 'SWA1 '}]}
    client.session = FakeSession(FakeRequest(FakeResponse(payload=payload)))

    objects = fetch(client)
    assert len(objects) == 1
    assert objects[0].label.flight == 'SWA1'
    assert client.session.urls == ['https://api.adsb.lol/v2/point/37.619100/-122.381600/50']


def test_non_200_is_request_failed():
    client = ADSBFeedClient()
    client.session = FakeSession(FakeRequest(FakeResponse(status=503)))
    with pytest.raises(RequestFailed) as info:
        fetch(client)
    assert info.value.status == 503


def test_bad_json_is_parse_failed():
    client = ADSBFeedClient()
    client.session = FakeSession(FakeRequest(FakeResponse(error=ValueError("Expecting value"))))
    with pytest.raises(ParseFailed):
        fetch(client)


def test_slow_response_is_timeout():
    client = ADSBFeedClient()
    client.session = FakeSession(FakeRequest(error=asyncio.TimeoutError()))
    with pytest.raises(FeedTimeout):
        fetch(client)


def test_fetch_requires_session():
    with pytest.raises(RuntimeError):
        fetch(ADSBFeedClient())


def test_airport_lookup():
    assert airport_position('sfo') == Position(37.6213, -122.3790)
    assert airport_position('ZZZ') is None


def test_demo_traffic_orbits_center():
    client = DemoFeedClient(SFO, clock=lambda: 0.0)
    for elapsed in (0.0, 60.0, 3600.0):
        objects = client.aircraft_at(elapsed)
        assert len(objects) == len(DEMO_TRAFFIC)
        for tracked, entry in zip(objects, DEMO_TRAFFIC):
            orbit = entry[4]
            distance = math.hypot(tracked.position.lat - SFO.lat, tracked.position.lon - SFO.lon) * 60.0
            assert distance == pytest.approx(orbit)


def test_demo_traffic_moves():
    now = [0.0]
    client = DemoFeedClient(SFO, clock=lambda: now[0])
    first = asyncio.run(client.fetch(SFO.lat, SFO.lon, 50.0, 1.0))
    now[0] = 30.0
    second = asyncio.run(client.fetch(SFO.lat, SFO.lon, 50.0, 1.0))

    assert [tracked.label for tracked in first] == [tracked.label for tracked in second]
    assert all(a.position != b.position for a, b in zip(first, second))
