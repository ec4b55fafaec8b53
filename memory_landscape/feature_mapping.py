# memory_landscape/feature_mapping.py

"""
================================================================================
FEATURE MAPPING PIPELINE
================================================================================
This module turns the semantic JourneyData into a FeatureBundle: planar
positions, per-node terrain coefficients, mapped connections and the global
color function consumed by the synthesis engines and the presentation layer.

Data Contract:
---------------
- Inputs:
    - data (JourneyData): The authored dataset.
    - config (dict, optional): Overrides for the defaults in config.py.
- Outputs:
    - A FeatureBundle. Hubs come first in dataset order, followed by the
      children of each hub in the same order, events in authored order.
- Side Effects: Logs dropped connections at debug level.
- Invariants: The mapping is a pure function. No randomness is used; the only
  "jitter" is trigonometric and keyed by the location index, so identical
  input always yields a bit-identical bundle.
================================================================================
"""

import enum
import logging
import math
from dataclasses import dataclass, field
from datetime import date
from functools import partial
from typing import Callable, Optional

from . import color_maps
from . import config as DEFAULTS
from .schema import DocumentKind, JourneyData, LanguageTag, Location, LocationType

logger = logging.getLogger(__name__)

TAU = 2.0 * math.pi

# Every overridable mapping constant, keyed by its config name.
_SETTING_NAMES = (
    'language_x_range', 'language_axis_weight',
    'spiral_revolutions', 'spiral_radius_range', 'spiral_axis_weight', 'fallback_era',
    'jitter_x_frequency', 'jitter_z_frequency', 'jitter_x_amplitude', 'jitter_z_amplitude',
    'visit_jitter_scale',
    'elevation_bias_weights', 'amplitude_range', 'duration_max_years', 'roughness_range',
    'erosion_range', 'ridge_range', 'coefficient_bounds',
    'label_opacity_range', 'halo_opacity_range', 'label_scale_range', 'child_display_scale',
    'ring_base_radius', 'ring_intensity_scale', 'ring_phase_shift', 'ring_valence_lift',
    'ring_sentiment_lift', 'child_bias_scale',
    'document_kind_modifiers', 'language_tints',
    'default_connection_weight', 'curvature_range', 'connection_opacity_range',
    'chroma_red_range', 'chroma_green_range', 'chroma_blue_range',
    'exaggeration',
)


@dataclass(frozen=True)
class MappedLocation:
    id: str
    position: tuple
    base_color: tuple
    label_opacity: float
    halo_opacity: float
    label_scale: float
    elevation_bias: float
    amplitude: float
    roughness: float
    erosion: float
    ridge_factor: float
    significance: float
    valence: float
    is_visit: bool = False
    location_type: LocationType = LocationType.TRANSITION
    parent_id: Optional[str] = None
    event_index: int = 0
    event_count: int = 0
    kind: Optional[DocumentKind] = None
    language: Optional[LanguageTag] = None

    @property
    def is_child(self) -> bool:
        return self.parent_id is not None


@dataclass(frozen=True)
class MappedConnection:
    source: MappedLocation
    target: MappedLocation
    weight: float
    curvature_y: float
    color: tuple
    opacity: float
    year: Optional[int] = None


@dataclass(frozen=True)
class FeatureBundle:
    mapped: tuple = ()
    connections: tuple = ()
    chroma_shift: Callable = color_maps.chroma_shift
    exaggeration: float = DEFAULTS.EXAGGERATION
    settings: dict = field(default_factory=dict, compare=False, repr=False)

    @property
    def hubs(self) -> tuple:
        return tuple(m for m in self.mapped if not m.is_child)

    @property
    def children(self) -> tuple:
        return tuple(m for m in self.mapped if m.is_child)

    @property
    def by_id(self) -> dict:
        return {m.id: m for m in self.mapped}


# --- Numeric Helpers ---

def clamp01(v: float) -> float:
    return max(0.0, min(1.0, v))


def remap(v: float, in_min: float, in_max: float, out_min: float, out_max: float) -> float:
    """
    Clamps the normalized input to [0, 1] before interpolating into the output
    range, so values outside the input domain saturate instead of extrapolating.
    A zero-width input range maps to out_min; NaN is treated as in_min.
    """
    span = in_max - in_min
    if span == 0 or v != v:
        return out_min
    return out_min + clamp01((v - in_min) / span) * (out_max - out_min)


def _lerp(a: float, b: float, t: float) -> float:
    return a + (b - a) * t


def _clamp(v: float, bounds: tuple) -> float:
    lo, hi = bounds
    if v != v:
        return lo
    return max(lo, min(hi, v))


def _signal(v: float, lo: float, hi: float, default: float) -> float:
    """Sanitizes one authored signal into its domain."""
    if v is None or v != v:
        return default
    return max(lo, min(hi, float(v)))


def _parse_iso(text: str) -> Optional[date]:
    try:
        return date.fromisoformat(str(text)[:10])
    except ValueError:
        return None


def midpoint_year(location: Location, fallback: int = 0) -> int:
    """The year at the midpoint of the period, else the anchor year, else fallback."""
    if location.period is not None:
        start = _parse_iso(location.period.start)
        end = _parse_iso(location.period.end) if location.period.end else start
        if start is not None:
            end = end or start
            return date.fromordinal((start.toordinal() + end.toordinal()) // 2).year
    return location.year or fallback


def _enum_keyed(table: dict, enum_cls, name: str) -> dict:
    """
    Normalizes a lookup table to enum keys. JSON configs spell the keys as the
    enum values ('photo', 'zh'), so string keys are converted.
    """
    normalized = {}
    for key, value in dict(table).items():
        if not isinstance(key, enum_cls):
            try:
                key = enum_cls(key)
            except ValueError:
                raise ValueError(f"{name} has an unknown key {key!r}") from None
        normalized[key] = value
    missing = [member for member in enum_cls if member not in normalized]
    if missing:
        raise ValueError(f"{name} is missing entries for: {missing}")
    return normalized


def resolve_settings(config: dict = None) -> dict:
    """
    Consolidates caller overrides with the module defaults.

    Raises:
        ValueError: if a modifier or tint table does not cover every enum member.
    """
    user_config = config or {}
    settings = {
        name: user_config.get(name, getattr(DEFAULTS, name.upper()))
        for name in _SETTING_NAMES
    }
    settings['document_kind_modifiers'] = _enum_keyed(
        settings['document_kind_modifiers'], DocumentKind, 'document_kind_modifiers'
    )
    settings['language_tints'] = _enum_keyed(settings['language_tints'], LanguageTag, 'language_tints')
    return settings


def export_config(config: dict) -> dict:
    """A JSON-safe copy of a config dict: enum table keys become their string values."""
    exported = dict(config or {})
    for name in ('document_kind_modifiers', 'language_tints'):
        if name in exported:
            exported[name] = {
                (key.value if isinstance(key, enum.Enum) else key): value
                for key, value in exported[name].items()
            }
    return exported


# --- Layout ---

def language_axis(language_balance: float, settings: dict = None) -> float:
    """Linear remap of languageBalance [-1, 1] onto the configured x range."""
    x_min, x_max = (settings or resolve_settings())['language_x_range']
    return remap(language_balance, -1.0, 1.0, x_min, x_max)


def time_spiral(year: float, min_year: float, max_year: float, settings: dict = None) -> tuple:
    """Winds a normalized year onto a spiral. Returns (x, z)."""
    settings = settings or resolve_settings()
    t = clamp01((year - min_year) / max(1.0, max_year - min_year))
    angle = t * TAU * settings['spiral_revolutions']
    radius = _lerp(*settings['spiral_radius_range'], t)
    return math.cos(angle) * radius, math.sin(angle) * radius


def year_range(locations, settings: dict) -> tuple:
    """Observed (min, max) year; the fallback era when no location has one."""
    years = [y for y in (midpoint_year(loc) for loc in locations) if y > 0]
    if not years:
        return tuple(settings['fallback_era'])
    return min(years), max(years)


def layout_positions(locations, settings: dict) -> list:
    """Planar (x, 0, z) position of every location, in dataset order."""
    min_year, max_year = year_range(locations, settings)
    positions = []
    for i, loc in enumerate(locations):
        year = midpoint_year(loc) or min_year
        spiral_x, spiral_z = time_spiral(year, min_year, max_year, settings)
        lb = _signal(loc.language_balance, -1.0, 1.0, 0.0)

        jitter_scale = settings['visit_jitter_scale'] if loc.is_visit else 1.0
        jitter_x = math.sin(i * settings['jitter_x_frequency']) * settings['jitter_x_amplitude'] * jitter_scale
        jitter_z = math.cos(i * settings['jitter_z_frequency']) * settings['jitter_z_amplitude'] * jitter_scale

        x = (
            language_axis(lb, settings) * settings['language_axis_weight']
            + spiral_x * settings['spiral_axis_weight']
            + jitter_x
        )
        z = spiral_z + jitter_z
        positions.append((x, 0.0, z))
    return positions


# --- Coefficients ---

def _hub(loc: Location, position: tuple, settings: dict) -> MappedLocation:
    intensity = _signal(loc.intensity, 0.0, 1.0, 0.5)
    valence = _signal(loc.valence, -1.0, 1.0, 0.0)
    significance = _signal(loc.significance, 0.0, 1.0, 0.5)
    duration = _signal(loc.duration, 0.0, math.inf, 0.0)
    bounds = settings['coefficient_bounds']
    w1, w2, w3 = settings['elevation_bias_weights']

    return MappedLocation(
        id=loc.id,
        position=position,
        base_color=color_maps.hex_to_rgb(loc.color),
        label_opacity=remap(significance, 0, 1, *settings['label_opacity_range']),
        halo_opacity=remap(significance, 0, 1, *settings['halo_opacity_range']),
        label_scale=remap(significance, 0, 1, *settings['label_scale_range']),
        elevation_bias=_clamp(significance * w1 + intensity * w2 + valence * w3, bounds['elevation_bias']),
        amplitude=_clamp(remap(intensity, 0, 1, *settings['amplitude_range']), bounds['amplitude']),
        roughness=_clamp(remap(duration, 0, settings['duration_max_years'], *settings['roughness_range']), bounds['roughness']),
        erosion=_clamp(remap(1.0 - significance, 0, 1, *settings['erosion_range']), bounds['erosion']),
        ridge_factor=_clamp(remap(abs(valence), 0, 1, *settings['ridge_range']), bounds['ridge_factor']),
        significance=significance,
        valence=valence,
        is_visit=loc.is_visit,
        location_type=loc.type,
    )


def _children(loc: Location, hub: MappedLocation, settings: dict) -> list:
    """Places each memory event on a ring around its hub."""
    n = len(loc.events)
    if n == 0:
        return []

    intensity = _signal(loc.intensity, 0.0, 1.0, 0.5)
    lb = _signal(loc.language_balance, -1.0, 1.0, 0.0)
    ring_radius = settings['ring_base_radius'] + settings['ring_intensity_scale'] * intensity
    bounds = settings['coefficient_bounds']
    display = settings['child_display_scale']
    hx, hy, hz = hub.position

    children = []
    for i, event in enumerate(loc.events):
        sentiment = _signal(event.sentiment, -1.0, 1.0, 0.0)
        modifier = settings['document_kind_modifiers'][event.kind]

        angle = TAU * i / n + lb * settings['ring_phase_shift']
        lift = hub.valence * settings['ring_valence_lift'] + sentiment * settings['ring_sentiment_lift']
        position = (hx + math.cos(angle) * ring_radius, hy + lift, hz + math.sin(angle) * ring_radius)

        color = hub.base_color
        if event.language is not None:
            tint = settings['language_tints'][event.language]
            color = tuple(float(c) for c in color_maps.lerp_rgb(hub.base_color, tint['color'], tint['strength']))

        bias = hub.elevation_bias * settings['child_bias_scale'] + modifier['sentiment_bias'] * sentiment

        children.append(MappedLocation(
            id=f"{loc.id}#{i}",
            position=position,
            base_color=color,
            label_opacity=hub.label_opacity * display,
            halo_opacity=hub.halo_opacity * display,
            label_scale=hub.label_scale * display,
            elevation_bias=_clamp(bias, bounds['elevation_bias']),
            amplitude=_clamp(hub.amplitude * modifier['amplitude_scale'], bounds['amplitude']),
            roughness=_clamp(hub.roughness * modifier['roughness_scale'], bounds['roughness']),
            erosion=hub.erosion,
            ridge_factor=_clamp(hub.ridge_factor * modifier['ridge_scale'], bounds['ridge_factor']),
            significance=hub.significance,
            valence=hub.valence,
            is_visit=hub.is_visit,
            location_type=hub.location_type,
            parent_id=loc.id,
            event_index=i,
            event_count=n,
            kind=event.kind,
            language=event.language,
        ))
    return children


def _connections(data: JourneyData, hubs_by_id: dict, settings: dict) -> list:
    mapped = []
    for conn in data.connections:
        source = hubs_by_id.get(conn.source)
        target = hubs_by_id.get(conn.target)
        if source is None or target is None:
            logger.debug(f"Dropping connection {conn.source} -> {conn.target}: unknown endpoint.")
            continue

        weight = clamp01(_signal(conn.weight, 0.0, 1.0, settings['default_connection_weight']))
        color = tuple(float(c) for c in color_maps.lerp_rgb(source.base_color, target.base_color, 0.5))
        mapped.append(MappedConnection(
            source=source,
            target=target,
            weight=weight,
            curvature_y=remap(weight, 0, 1, *settings['curvature_range']),
            color=color,
            opacity=remap(weight, 0, 1, *settings['connection_opacity_range']),
            year=conn.year,
        ))
    return mapped


def map_journey_to_features(data: JourneyData, config: dict = None) -> FeatureBundle:
    """
    Maps the semantic dataset to a FeatureBundle. Pure: call it again whenever
    the dataset changes, the result is otherwise immutable.
    """
    settings = resolve_settings(config)
    locations = data.locations

    positions = layout_positions(locations, settings)
    hubs = [_hub(loc, pos, settings) for loc, pos in zip(locations, positions)]

    children = []
    for loc, hub in zip(locations, hubs):
        children.extend(_children(loc, hub, settings))

    hubs_by_id = {hub.id: hub for hub in hubs}
    connections = _connections(data, hubs_by_id, settings)
    dropped = len(data.connections) - len(connections)
    if dropped:
        logger.debug(f"{dropped} connection(s) referenced unknown locations and were dropped.")

    chroma = partial(
        color_maps.chroma_shift,
        red_range=tuple(settings['chroma_red_range']),
        green_range=tuple(settings['chroma_green_range']),
        blue_range=tuple(settings['chroma_blue_range']),
    )

    return FeatureBundle(
        mapped=tuple(hubs + children),
        connections=tuple(connections),
        chroma_shift=chroma,
        exaggeration=float(settings['exaggeration']),
        settings=settings,
    )
