# tests/test_feature_mapping.py

import json
import math

import numpy as np
import pytest

from memory_landscape import config as DEFAULTS
from memory_landscape.feature_mapping import (
    export_config,
    language_axis,
    map_journey_to_features,
    midpoint_year,
    remap,
    resolve_settings,
)
from memory_landscape.schema import (
    Connection,
    DocumentKind,
    JourneyData,
    LanguageTag,
    Location,
    MemoryEvent,
    Period,
)


# --- remap ---

def test_remap_is_monotonic_and_clamped():
    outputs = [remap(v, 0.0, 1.0, 6.0, 26.0) for v in np.linspace(-0.5, 1.5, 41)]
    assert outputs == sorted(outputs)
    assert min(outputs) == 6.0 and max(outputs) == 26.0


def test_remap_handles_reversed_output_and_degenerate_input():
    assert remap(0.25, 0.0, 1.0, 0.35, 0.08) == pytest.approx(0.2825)
    assert remap(3.0, 2.0, 2.0, 5.0, 9.0) == 5.0
    assert remap(float("nan"), 0.0, 1.0, 5.0, 9.0) == 5.0


# --- Layout ---

def test_language_axis_endpoints():
    settings = resolve_settings()
    assert language_axis(-1.0, settings) == -150.0
    assert language_axis(0.0, settings) == 0.0
    assert language_axis(1.0, settings) == 150.0


def test_midpoint_year_prefers_period_then_year():
    assert midpoint_year(Location(id="a", name="a", period=Period("2022-01-01", "2024-01-01"))) == 2023
    assert midpoint_year(Location(id="b", name="b", year=2011)) == 2011
    assert midpoint_year(Location(id="c", name="c"), fallback=1999) == 1999


def test_single_location_lands_on_the_jitter_offset(single_location_journey):
    features = map_journey_to_features(single_location_journey)
    assert len(features.mapped) == 1
    assert len(features.connections) == 0
    x, y, z = features.mapped[0].position
    assert x == 0.0
    assert y == 0.0
    assert z == DEFAULTS.JITTER_Z_AMPLITUDE == 6.0


def test_visits_get_a_wider_jitter():
    home = Location(id="home", name="home", year=2000)
    visit = Location(id="trip", name="trip", year=2000, is_visit=True)
    z_home = map_journey_to_features(JourneyData(locations=(home,))).mapped[0].position[2]
    z_visit = map_journey_to_features(JourneyData(locations=(visit,))).mapped[0].position[2]
    assert z_visit == pytest.approx(z_home * DEFAULTS.VISIT_JITTER_SCALE)


# --- Coefficients ---

def test_amplitude_follows_intensity():
    data = JourneyData(locations=(Location(id="a", name="a", intensity=0.2),))
    assert map_journey_to_features(data).mapped[0].amplitude == pytest.approx(10.0)


def test_coefficients_stay_within_bounds():
    extreme = Location(
        id="x", name="x", intensity=5.0, valence=-9.0, significance=float("nan"), duration=1e9,
    )
    m = map_journey_to_features(JourneyData(locations=(extreme,))).mapped[0]
    for name, (lo, hi) in DEFAULTS.COEFFICIENT_BOUNDS.items():
        assert lo <= getattr(m, name) <= hi
    assert m.significance == 0.5
    assert m.roughness == pytest.approx(0.08)


def test_hub_color_falls_back_for_bad_hex():
    data = JourneyData(locations=(Location(id="a", name="a", color="not-a-color"),))
    assert map_journey_to_features(data).mapped[0].base_color == (1.0, 1.0, 1.0)


# --- Children ---

def _journey_with_events(n, language_balance=0.0, intensity=0.5):
    events = tuple(
        MemoryEvent(kind=DocumentKind.PHOTO, content=f"e{i}", date="2020-01-01", sentiment=0.0)
        for i in range(n)
    )
    hub = Location(id="hub", name="hub", intensity=intensity, language_balance=language_balance, events=events)
    return JourneyData(locations=(hub,))


def test_children_follow_their_hub_in_event_order():
    features = map_journey_to_features(_journey_with_events(3))
    assert [m.id for m in features.mapped] == ["hub", "hub#0", "hub#1", "hub#2"]
    assert [m.event_index for m in features.children] == [0, 1, 2]
    assert all(m.parent_id == "hub" and m.event_count == 3 for m in features.children)
    assert len(features.hubs) == 1


def test_children_sit_on_a_ring_around_the_hub():
    lb = 0.4
    features = map_journey_to_features(_journey_with_events(4, language_balance=lb, intensity=0.5))
    hub = features.hubs[0]
    ring = DEFAULTS.RING_BASE_RADIUS + DEFAULTS.RING_INTENSITY_SCALE * 0.5
    for i, child in enumerate(features.children):
        dx = child.position[0] - hub.position[0]
        dz = child.position[2] - hub.position[2]
        assert math.hypot(dx, dz) == pytest.approx(ring)
        expected = 2 * math.pi * i / 4 + lb * DEFAULTS.RING_PHASE_SHIFT
        assert math.atan2(dz, dx) % (2 * math.pi) == pytest.approx(expected % (2 * math.pi))


def test_child_language_tint_moves_color_towards_the_tint():
    event = MemoryEvent(kind=DocumentKind.LETTER, content="x", date="2020-01-01", language=LanguageTag.ZH)
    hub = Location(id="hub", name="hub", color="#000000", events=(event,))
    child = map_journey_to_features(JourneyData(locations=(hub,))).children[0]
    tint = DEFAULTS.LANGUAGE_TINTS[LanguageTag.ZH]
    expected = tuple(c * tint["strength"] for c in tint["color"])
    assert child.base_color == pytest.approx(expected)


def test_incomplete_modifier_table_is_a_configuration_error():
    partial_table = dict(DEFAULTS.DOCUMENT_KIND_MODIFIERS)
    del partial_table[DocumentKind.RECEIPT]
    with pytest.raises(ValueError):
        map_journey_to_features(JourneyData(), {'document_kind_modifiers': partial_table})


# --- Connections ---

def test_dangling_connections_are_dropped():
    data = JourneyData(
        locations=(Location(id="a", name="a"), Location(id="b", name="b")),
        connections=(
            Connection("a", "b", weight=1.0),
            Connection("a", "ghost"),
            Connection("ghost", "b"),
        ),
    )
    features = map_journey_to_features(data)
    assert len(features.connections) == 1
    conn = features.connections[0]
    assert conn.source.id == "a" and conn.target.id == "b"
    assert conn.curvature_y == DEFAULTS.CURVATURE_RANGE[1]
    assert conn.opacity == DEFAULTS.CONNECTION_OPACITY_RANGE[1]


def test_missing_connection_weight_uses_default():
    data = JourneyData(
        locations=(Location(id="a", name="a"), Location(id="b", name="b")),
        connections=(Connection("a", "b"),),
    )
    assert map_journey_to_features(data).connections[0].weight == DEFAULTS.DEFAULT_CONNECTION_WEIGHT


# --- Purity and the color function ---

def test_mapping_is_pure(sample_journey):
    first = map_journey_to_features(sample_journey)
    second = map_journey_to_features(sample_journey)
    assert first.mapped == second.mapped
    assert first.connections == second.connections
    x = np.linspace(0, 1, 11)
    assert np.array_equal(first.chroma_shift(x), second.chroma_shift(x))


def test_chroma_shift_runs_warm_to_cool(sample_features):
    left = sample_features.chroma_shift(0.0)
    right = sample_features.chroma_shift(1.0)
    assert left.shape == (3,)
    assert left[0] > right[0]
    assert right[2] > left[2]
    assert np.all((0.0 <= left) & (left <= 1.0))


def test_tables_accept_json_string_keys():
    config = json.loads(json.dumps(export_config({
        'document_kind_modifiers': DEFAULTS.DOCUMENT_KIND_MODIFIERS,
        'language_tints': DEFAULTS.LANGUAGE_TINTS,
    })))
    assert set(config['document_kind_modifiers']) == {'photo', 'document', 'letter', 'receipt'}

    settings = resolve_settings(config)
    assert settings['document_kind_modifiers'] == DEFAULTS.DOCUMENT_KIND_MODIFIERS
    assert set(settings['language_tints']) == set(LanguageTag)
    assert settings['language_tints'][LanguageTag.ZH]['strength'] == DEFAULTS.LANGUAGE_TINTS[LanguageTag.ZH]['strength']


def test_unknown_table_key_is_a_configuration_error():
    table = {kind.value: mods for kind, mods in DEFAULTS.DOCUMENT_KIND_MODIFIERS.items()}
    table['postcard'] = table['photo']
    with pytest.raises(ValueError):
        resolve_settings({'document_kind_modifiers': table})
