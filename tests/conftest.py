import asyncio

import pytest

from adsb_data import Position
from radar_state import RadarConfig
from errors import TerminalIOFailure

SFO = Position(37.6191, -122.3816)


@pytest.fixture
def make_config():
    def factory(**overrides):
        settings = dict(origin=SFO, radius=50.0, terminal_cols=80, terminal_rows=24)
        settings.update(overrides)
        return RadarConfig(**settings)
    return factory


class FakeTerminal:
    """Records output instead of touching a real tty"""

    def __init__(self, events=(), fail_writes=False, size=(80, 24)):
        self.events = list(events)
        self.fail_writes = fail_writes
        self._size = size
        self.active = False
        self.entered = 0
        self.restored = 0
        self.writes = []
        self.reader_started = False

    def size(self):
        return self._size

    def enter(self):
        self.entered += 1
        self.active = True

    def restore(self):
        if not self.active:
            return
        self.active = False
        self.restored += 1

    def write(self, text):
        if self.fail_writes:
            raise TerminalIOFailure("broken pipe")
        self.writes.append(text)

    def flush(self):
        pass

    def start_reader(self, loop, queue):
        self.reader_started = True
        for event in self.events:
            queue.put_nowait(event)

    def stop_reader(self, loop):
        self.reader_started = False


class FakeFeed:
    """Feed client returning queued results; a callable result is invoked first"""

    def __init__(self, results=()):
        self.results = list(results)
        self.calls = []
        self.opened = False
        self.closed = False

    async def __aenter__(self):
        self.opened = True
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        self.closed = True

    async def fetch(self, lat, lon, radius, timeout):
        self.calls.append((lat, lon, radius, timeout))
        await asyncio.sleep(0)
        result = self.results.pop(0) if self.results else []
        if callable(result):
            result = result()
        if isinstance(result, Exception):
            raise result
        return result


@pytest.fixture
def terminal_factory():
    return FakeTerminal


@pytest.fixture
def feed_factory():
    return FakeFeed
