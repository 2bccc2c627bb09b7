"""Map free-text event locations to campus buildings.

The classification is a pure function over the location text; it never fails
and falls back to the CUBE building for anything it does not recognize.
"""

import re
from collections.abc import Mapping
from types import MappingProxyType

from .lite_models import CampusRecord, ResolvedLocation

ONLINE_KEY = "Online"
DEFAULT_KEY = "CUBE"

_SHED_221C = CampusRecord(
    name="SHED",
    address="Sonnenallee 221C, 12059 Berlin",
    coordinates="52.4758038,13.4549394",
    geocode="GCC5+QW",
)

CAMPUS_TABLE: Mapping[str, CampusRecord] = MappingProxyType(
    {
        "CUBE": CampusRecord(
            name="CUBE",
            address="Sonnenallee 221A, 12059 Berlin",
            coordinates="52.475147,13.468200",
            geocode="GCR9+7H7",
        ),
        "A": _SHED_221C,
        "B": _SHED_221C,
        "C": CampusRecord(
            name="SHED",
            address="Sonnenallee 221D, 12059 Berlin",
            coordinates="52.4760266,13.4549741",
            geocode="GCC5+RX",
        ),
        "D": CampusRecord(
            name="SHED",
            address="Sonnenallee 221E, 12059 Berlin",
            coordinates="52.4762398,13.4550747",
            geocode="GCC6+22",
        ),
        "SON223": CampusRecord(
            name="Sonnenallee 223",
            address="Sonnenallee 223, 12059 Berlin",
            coordinates="52.47446,13.455246",
            geocode="GCC5+GG",
        ),
        "SON224A": CampusRecord(
            name="Sonnenallee 224a",
            address="Sonnenallee 224a, 12059 Berlin",
            coordinates="52.474447,13.456046",
            geocode="GCC5+GH",
        ),
        "DEKRA": CampusRecord(
            name="DEKRA Akademie",
            address="Kiehlufer 163, 12057 Berlin",
            coordinates="52.478946,13.458246",
            geocode="GCH6+JW",
        ),
        "CN": CampusRecord(
            name="Colonia Nova",
            address="Thiemannstraße 1, 12059 Berlin",
            coordinates="52.476946,13.451246",
            geocode="GCC4+XV",
        ),
    }
)

ONLINE_LOCATION = ResolvedLocation(
    key=ONLINE_KEY,
    name="Online",
    address="Online",
    coordinates="0,0",
)

# Leftmost match wins; alternatives are tried in order at each position.
ROOM_PATTERN = re.compile(
    r"([A-D]?\d+\.\d+|CUBE\s+\d+\.\d+|SON\s+\d+\.\d+|Seminar\s+\d+)", re.IGNORECASE
)


def extract_room(raw_location: str) -> str:
    """Return the first room-number-shaped token in ``raw_location``, or ''."""
    match = ROOM_PATTERN.search(raw_location)
    return match.group(1) if match else ""


def classify_location(raw_location: str, room: str) -> str:
    """Pick the campus key for a location.

    The rules are evaluated in a fixed order and the first one that applies
    wins. Several conditions overlap (a building letter, a literal ``CUBE``
    and a bare leading digit can all be present); the order below is the
    contract.
    """
    upper = raw_location.upper()

    if "KIEHLUFER" in upper:
        return "DEKRA"
    if "THIEMANN" in upper:
        return "CN"
    if "223" in raw_location:
        return "SON223"
    if "224a" in raw_location:
        return "SON224A"

    if room:
        room_upper = room.upper()
        if room_upper.startswith("CUBE"):
            return "CUBE"
        first = room_upper[0]
        if first in CAMPUS_TABLE:
            return first
        if "CUBE" in upper:
            return "CUBE"
        if first.isdigit():
            return "CUBE"

    return DEFAULT_KEY


def resolve_location(raw_location: str) -> ResolvedLocation:
    """Resolve free-text location into a campus record.

    Args:
        raw_location: Unescaped LOCATION text from the event

    Returns:
        ResolvedLocation annotated with the matched key and room token.
        Empty text and "online" (any case) resolve to the Online location.
    """
    if not raw_location or raw_location.lower() == "online":
        return ONLINE_LOCATION

    room = extract_room(raw_location)
    key = classify_location(raw_location, room)
    record = CAMPUS_TABLE.get(key)
    if record is None:
        key, record = DEFAULT_KEY, CAMPUS_TABLE[DEFAULT_KEY]

    return ResolvedLocation(key=key, room=room, **record.model_dump())
