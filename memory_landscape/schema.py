# memory_landscape/schema.py

"""
================================================================================
SEMANTIC DATA MODEL
================================================================================
The authored, read-only dataset: locations, the memory events each location
owns, and connections between locations.

Data Contract:
---------------
- Inputs:
    - A plain dictionary (as parsed from JSON) or a path to a JSON file.
      Keys may be camelCase (as authored) or snake_case.
- Outputs:
    - A frozen JourneyData value. Event order inside a location is preserved.
- Side Effects: Logs a warning for every value that had to be defaulted.
- Invariants: Loading never fails on bad values, only on a location with no id.
================================================================================
"""

import enum
import json
import logging
import math
from dataclasses import dataclass
from typing import Optional

logger = logging.getLogger(__name__)


class DocumentKind(enum.Enum):
    PHOTO = "photo"
    DOCUMENT = "document"
    LETTER = "letter"
    RECEIPT = "receipt"


class LanguageTag(enum.Enum):
    ZH = "zh"
    EN = "en"
    MIXED = "mixed"


class LocationType(enum.Enum):
    ORIGIN = "origin"
    FAMILY = "family"
    CHILDHOOD = "childhood"
    EDUCATION = "education"
    WORK = "work"
    PRESENT = "present"
    TRANSITION = "transition"
    VISIT = "visit"


@dataclass(frozen=True)
class Period:
    start: str
    end: Optional[str] = None


@dataclass(frozen=True)
class MemoryEvent:
    kind: DocumentKind
    content: str
    date: str
    sentiment: Optional[float] = None
    language: Optional[LanguageTag] = None


@dataclass(frozen=True)
class Location:
    id: str
    name: str
    intensity: float = 0.5
    valence: float = 0.0
    language_balance: float = 0.0
    significance: float = 0.5
    duration: float = 0.0
    is_visit: bool = False
    color: str = "#ffffff"
    type: LocationType = LocationType.TRANSITION
    name_cn: Optional[str] = None
    period: Optional[Period] = None
    year: Optional[int] = None
    notes: Optional[str] = None
    events: tuple = ()


@dataclass(frozen=True)
class Connection:
    source: str
    target: str
    year: Optional[int] = None
    weight: Optional[float] = None


@dataclass(frozen=True)
class JourneyData:
    locations: tuple = ()
    connections: tuple = ()


# --- Parsing Helpers ---

def _get(raw: dict, camel: str, snake: str = None, default=None):
    """Reads a key in either of its authored spellings. Non-mappings have no keys."""
    if not isinstance(raw, dict):
        return default
    if camel in raw:
        return raw[camel]
    if snake is not None and snake in raw:
        return raw[snake]
    return default


def _as_float(value, default: float, field: str, owner: str) -> float:
    if value is None:
        return default
    try:
        number = float(value)
    except (TypeError, ValueError):
        logger.warning(f"'{owner}': non-numeric {field}={value!r}, using {default}.")
        return default
    if not math.isfinite(number):
        logger.warning(f"'{owner}': non-finite {field}, using {default}.")
        return default
    return number


def _as_enum(enum_cls, value, default, owner: str):
    if value is None:
        return default
    try:
        return enum_cls(value)
    except ValueError:
        logger.warning(f"'{owner}': unknown {enum_cls.__name__} {value!r}, using {default}.")
        return default


def _parse_event(raw: dict, owner: str) -> MemoryEvent:
    sentiment = _get(raw, "sentiment")
    return MemoryEvent(
        kind=_as_enum(DocumentKind, _get(raw, "type", "kind"), DocumentKind.DOCUMENT, owner),
        content=str(_get(raw, "content", default="")),
        date=str(_get(raw, "date", default="")),
        sentiment=None if sentiment is None else _as_float(sentiment, 0.0, "sentiment", owner),
        language=_as_enum(LanguageTag, _get(raw, "language"), None, owner),
    )


def _parse_events(raw_events, owner: str) -> list:
    """Parses the event list, skipping entries that are not objects."""
    if raw_events is None:
        return []
    if not isinstance(raw_events, (list, tuple)):
        logger.warning(f"'{owner}': memories must be a list, got {raw_events!r}; ignoring them.")
        return []

    events = []
    for i, raw in enumerate(raw_events):
        if not isinstance(raw, dict):
            logger.warning(f"'{owner}': skipping memory #{i}, expected an object but got {raw!r}.")
            continue
        events.append(_parse_event(raw, owner))
    return events


def _parse_location(raw: dict) -> Location:
    loc_id = _get(raw, "id")
    if not loc_id:
        raise ValueError(f"Location without an 'id': {raw!r}")
    loc_id = str(loc_id)

    period = None
    raw_period = _get(raw, "period")
    if raw_period is not None and not isinstance(raw_period, dict):
        logger.warning(f"'{loc_id}': period must be an object, got {raw_period!r}; ignoring it.")
    elif raw_period and _get(raw_period, "start"):
        period = Period(start=str(raw_period["start"]), end=_get(raw_period, "end"))

    year = _get(raw, "year")
    if year is not None:
        year = int(_as_float(year, 0.0, "year", loc_id)) or None

    events = tuple(_parse_events(_get(raw, "memories", "events"), loc_id))

    return Location(
        id=loc_id,
        name=str(_get(raw, "name", default=loc_id)),
        name_cn=_get(raw, "nameCn", "name_cn"),
        period=period,
        year=year,
        type=_as_enum(LocationType, _get(raw, "type"), LocationType.TRANSITION, loc_id),
        intensity=_as_float(_get(raw, "intensity"), 0.5, "intensity", loc_id),
        valence=_as_float(_get(raw, "valence"), 0.0, "valence", loc_id),
        language_balance=_as_float(_get(raw, "languageBalance", "language_balance"), 0.0, "languageBalance", loc_id),
        significance=_as_float(_get(raw, "significance"), 0.5, "significance", loc_id),
        duration=_as_float(_get(raw, "duration"), 0.0, "duration", loc_id),
        is_visit=bool(_get(raw, "isVisit", "is_visit", default=False)),
        color=str(_get(raw, "color", default="#ffffff")),
        notes=_get(raw, "notes"),
        events=events,
    )


def _parse_connection(raw: dict) -> Connection:
    source = str(_get(raw, "from", "source", default=""))
    target = str(_get(raw, "to", "target", default=""))
    owner = f"{source}->{target}"
    year = _get(raw, "year")
    weight = _get(raw, "weight")
    return Connection(
        source=source,
        target=target,
        year=None if year is None else int(_as_float(year, 0.0, "year", owner)),
        weight=None if weight is None else _as_float(weight, 0.5, "weight", owner),
    )


def journey_from_dict(data: dict) -> JourneyData:
    """
    Builds a JourneyData value from a JSON-style dictionary.

    Raises:
        ValueError: if a location has no id.
    """
    locations = tuple(_parse_location(raw) for raw in data.get("locations", []))
    connections = tuple(_parse_connection(raw) for raw in data.get("connections", []))
    logger.debug(f"Parsed journey: {len(locations)} locations, {len(connections)} connections.")
    return JourneyData(locations=locations, connections=connections)


def load_journey(path: str) -> JourneyData:
    """Loads a journey JSON file. I/O and JSON errors propagate to the caller."""
    with open(path, 'r', encoding='utf-8') as f:
        return journey_from_dict(json.load(f))
