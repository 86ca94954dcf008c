"""
ADS-B Data Model
Positions, labels and snapshots of tracked aircraft, plus feed payload parsing
"""

import logging
import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from errors import ParseFailed

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Position:
    """Geographic position in degrees"""
    lat: float
    lon: float


@dataclass(frozen=True)
class Label:
    """Text shown next to a tracked aircraft; empty fields are not drawn"""
    registration: str = ""
    flight: str = ""
    type: str = ""
    squawk: str = ""

    def fields(self) -> List[str]:
        """Populated fields in display order"""
        values = (self.flight, self.registration, self.type, self.squawk)
        return [value for value in values if value]

    @property
    def height(self) -> int:
        return len(self.fields())

    @property
    def width(self) -> int:
        return max((len(value) for value in self.fields()), default=0)


@dataclass(frozen=True)
class TrackedObject:
    """One aircraft observation"""
    position: Position
    label: Label = field(default_factory=Label)


@dataclass(frozen=True)
class Snapshot:
    """Every aircraft seen by one poll, replaced wholesale by the next one"""
    objects: Tuple[TrackedObject, ...] = ()
    captured_at: float = 0.0

    @classmethod
    def capture(cls, objects: List[TrackedObject]) -> 'Snapshot':
        return cls(objects=tuple(objects), captured_at=time.time())

    def __len__(self) -> int:
        return len(self.objects)


def _text(data: Dict[str, Any], *keys: str) -> str:
    """First non-empty value among keys, as a stripped string"""
    for key in keys:
        value = data.get(key)
        if value is None:
            continue
        value = str(value).strip()
        if value:
            return value
    return ""


def parse_aircraft(data: Dict[str, Any]) -> Optional[TrackedObject]:
    """
    Parse one feed record into a TrackedObject.

    Returns None for records without a usable position (aircraft that only
    reported identification, for example).
    """
    lat = data.get('lat')
    lon = data.get('lon')
    if isinstance(lat, bool) or isinstance(lon, bool):
        return None
    if not isinstance(lat, (int, float)) or not isinstance(lon, (int, float)):
        return None

    label = Label(
        registration=_text(data, 'r', 'registration'),
        flight=_text(data, 'flight', 'callsign'),
        type=_text(data, 't', 'type_code'),
        squawk=_text(data, 'squawk'),
    )
    return TrackedObject(Position(float(lat), float(lon)), label)


def parse_aircraft_list(payload: Any) -> List[TrackedObject]:
    """
    Turn a feed payload into tracked objects.

    Accepts the api.adsb.lol shape ({"ac": [...]}) and the dump1090
    aircraft.json shape ({"aircraft": [...]}).

    Raises:
        ParseFailed: payload is not a feed response
    """
    if not isinstance(payload, dict):
        raise ParseFailed(f"Expected a JSON object, got {type(payload).__name__}")

    records = payload.get('ac')
    if records is None:
        records = payload.get('aircraft')
    if records is None:
        # api.adsb.lol omits "ac" entirely when nothing is in range
        if 'total' in payload or 'now' in payload:
            return []
        raise ParseFailed("No aircraft list in feed response")
    if not isinstance(records, list):
        raise ParseFailed(f"Aircraft list has type {type(records).__name__}")

    objects = []
    skipped = 0
    for record in records:
        if not isinstance(record, dict):
            skipped += 1
            continue
        tracked = parse_aircraft(record)
        if tracked is None:
            skipped += 1
            continue
        objects.append(tracked)

    if skipped:
        logger.debug(f"Skipped {skipped} records without a position")
    return objects
