"""
ADS-B Feed Clients
Fetches live aircraft around a point from api.adsb.lol, or simulates traffic
for demo mode
"""

import asyncio
import logging
import math
import time
from typing import Callable, List, Optional

import aiohttp

from adsb_data import Label, Position, TrackedObject, parse_aircraft_list
from config import FEED_CONFIG
from errors import FeedTimeout, ParseFailed, RequestFailed

logger = logging.getLogger(__name__)

# api.adsb.lol rejects point queries wider than this (nautical miles)
MAX_QUERY_RADIUS = 250

# Known airport coordinates
AIRPORTS = {
    'RDU': {'lat': 35.877602, 'lon': -78.787498, 'name': 'Raleigh-Durham International'},
    'CLT': {'lat': 35.214, 'lon': -80.943, 'name': 'Charlotte Douglas International'},
    'ATL': {'lat': 33.6407, 'lon': -84.4277, 'name': 'Hartsfield-Jackson Atlanta'},
    'DCA': {'lat': 38.8521, 'lon': -77.0402, 'name': 'Ronald Reagan Washington National'},
    'JFK': {'lat': 40.6413, 'lon': -73.7781, 'name': 'John F. Kennedy International'},
    'LAX': {'lat': 33.9425, 'lon': -118.4081, 'name': 'Los Angeles International'},
    'ORD': {'lat': 41.9742, 'lon': -87.9073, 'name': "Chicago O'Hare International"},
    'DFW': {'lat': 32.8998, 'lon': -97.0403, 'name': 'Dallas/Fort Worth International'},
    'DEN': {'lat': 39.8561, 'lon': -104.6737, 'name': 'Denver International'},
    'SFO': {'lat': 37.6213, 'lon': -122.3790, 'name': 'San Francisco International'},
}


def airport_position(code: str) -> Optional[Position]:
    """Position of a known airport, or None"""
    airport = AIRPORTS.get(code.upper())
    if airport is None:
        return None
    return Position(airport['lat'], airport['lon'])


class ADSBFeedClient:
    """Client for fetching live ADS-B data around a point"""

    def __init__(self, api_url: str = FEED_CONFIG['api_url']):
        self.api_url = api_url
        self.session: Optional[aiohttp.ClientSession] = None

    async def __aenter__(self):
        """Async context manager entry"""
        self.session = aiohttp.ClientSession(headers={'Accept': 'application/json'})
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Async context manager exit"""
        if self.session:
            await self.session.close()
            self.session = None

    def build_url(self, lat: float, lon: float, radius: float) -> str:
        query_radius = min(MAX_QUERY_RADIUS, max(1, math.ceil(radius)))
        return self.api_url.format(lat=f"{lat:.6f}", lon=f"{lon:.6f}", radius=query_radius)

    async def fetch(self, lat: float, lon: float, radius: float, timeout: float) -> List[TrackedObject]:
        """
        Fetch aircraft around a point

        Args:
            lat: Latitude of center point
            lon: Longitude of center point
            radius: Radius in nautical miles
            timeout: Seconds before the request is abandoned

        Returns:
            List of TrackedObject

        Raises:
            FeedTimeout: request took longer than timeout
            RequestFailed: non-200 status or connection error
            ParseFailed: response body is not a feed payload
        """
        if not self.session:
            raise RuntimeError("Session not initialized. Use 'async with ADSBFeedClient()' context manager.")

        url = self.build_url(lat, lon, radius)
        logger.debug(f"Fetching from: {url}")

        try:
            async with self.session.get(url, timeout=aiohttp.ClientTimeout(total=timeout)) as response:
                if response.status != 200:
                    raise RequestFailed(f"API returned status {response.status}", status=response.status)
                try:
                    data = await response.json(content_type=None)
                except ValueError as e:
                    raise ParseFailed(f"Invalid JSON from {url}: {e}") from e
        except asyncio.TimeoutError as e:
            raise FeedTimeout(f"No response from {url} within {timeout}s") from e
        except aiohttp.ClientError as e:
            raise RequestFailed(f"Request to {url} failed: {e}") from e

        return parse_aircraft_list(data)


# (callsign, registration, type, squawk, orbit nm, start bearing deg, speed kt, clockwise)
DEMO_TRAFFIC = [
    ('UAL123', 'N37502', 'B738', '4521', 6.0, 0.0, 450, True),
    ('DAL456', 'N812DN', 'A321', '2201', 14.0, 120.0, 320, False),
    ('AAL789', 'N9023U', 'B77W', '6610', 22.0, 240.0, 520, True),
    ('SWA012', 'N8710M', 'B38M', '', 9.5, 300.0, 250, False),
    ('', 'N172SP', 'C172', '1200', 3.0, 60.0, 110, True),
    ('ASA331', '', 'E75L', '', 30.0, 180.0, 380, False),
]


class DemoFeedClient:
    """Simulated traffic circling a fixed center, with the same interface as ADSBFeedClient"""

    def __init__(self, center: Position, speed_multiplier: float = 1.0,
                 clock: Callable[[], float] = time.monotonic):
        self.center = center
        self.speed_multiplier = speed_multiplier
        self.clock = clock
        self.started = clock()

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        pass

    def aircraft_at(self, elapsed: float) -> List[TrackedObject]:
        """Demo aircraft positions elapsed seconds after start"""
        objects = []
        for flight, registration, type_code, squawk, orbit, bearing, speed, clockwise in DEMO_TRAFFIC:
            # Angular speed around the center in radians per second
            angular = speed / 3600.0 / orbit
            angle = math.radians(bearing) + angular * elapsed * self.speed_multiplier * (1 if clockwise else -1)

            lat = self.center.lat + orbit * math.cos(angle) / 60.0
            lon = self.center.lon + orbit * math.sin(angle) / 60.0
            label = Label(registration=registration, flight=flight, type=type_code, squawk=squawk)
            objects.append(TrackedObject(Position(lat, lon), label))
        return objects

    async def fetch(self, lat: float, lon: float, radius: float, timeout: float) -> List[TrackedObject]:
        await asyncio.sleep(0)
        return self.aircraft_at(self.clock() - self.started)
