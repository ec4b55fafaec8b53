# tests/test_sphere.py

import math

import numpy as np
import pytest

from memory_landscape.feature_mapping import map_journey_to_features
from memory_landscape.sphere import PointCloudEngine, _silhouette_field


@pytest.fixture
def engine(tiny_config):
    return PointCloudEngine(config=tiny_config)


def test_cloud_layout_and_counts(engine, sample_features):
    cloud = engine.generate(sample_features)
    expected_clusters = int(engine.cluster_counts(engine.location_table(sample_features)).sum())

    assert cloud.base_count == 300
    assert cloud.cluster_count == expected_clusters
    assert cloud.positions.shape == (3 * cloud.point_count,)
    assert cloud.colors.shape == cloud.positions.shape
    assert cloud.sizes.shape == (cloud.point_count,)
    assert cloud.positions.dtype == np.float32
    assert np.all(np.isfinite(cloud.positions))
    assert np.all((cloud.colors >= 0.0) & (cloud.colors <= 1.0))


def test_cluster_count_grows_with_significance(engine, sample_features):
    counts = engine.cluster_counts(engine.location_table(sample_features))
    assert np.all(counts >= engine.settings['cluster_base_count'])
    by_id = {m.id: n for m, n in zip(sample_features.mapped, counts)}
    # Chicago is the most significant location of the sample journey.
    assert by_id['chicago'] > by_id['shanghai']


def test_generation_is_deterministic(tiny_config, sample_journey):
    features = map_journey_to_features(sample_journey, tiny_config)
    a = PointCloudEngine(config=tiny_config).generate(features)
    b = PointCloudEngine(config=tiny_config).generate(features)
    assert a.positions.tobytes() == b.positions.tobytes()
    assert a.colors.tobytes() == b.colors.tobytes()
    assert a.sizes.tobytes() == b.sizes.tobytes()


def test_buffers_are_read_only(engine, sample_features):
    cloud = engine.generate(sample_features)
    with pytest.raises(ValueError):
        cloud.positions[0] = 1.0


def test_empty_bundle_gives_a_plain_noisy_sphere(engine, empty_features):
    cloud = engine.generate(empty_features)
    assert cloud.cluster_count == 0
    radii = np.linalg.norm(cloud.positions.reshape(-1, 3), axis=1)
    gains = engine.settings['silhouette_gains']
    # Only the two noise layers (each in [-0.5, 0.5]) displace the surface.
    assert np.all(np.abs(radii - engine.base_radius) <= 0.5 * (gains[2] + gains[3]) + 1e-3)


def test_zero_total_weight_short_circuits(engine):
    params = engine._kernel_params()
    assert _silhouette_field(1.0, 1.0, np.zeros((0, 7)), params) == (0.0, 0.0)

    weightless = np.zeros((1, 7))
    weightless[0, :2] = (1.0, 1.0)
    assert _silhouette_field(1.0, 1.0, weightless, params) == (0.0, 0.0)


def test_fields_are_clamped(engine, sample_features):
    params = engine._kernel_params()
    table = engine.location_table(sample_features)
    for theta, phi in table[:, :2]:
        field, signed = _silhouette_field(theta, phi, table, params)
        assert 0.0 <= field <= 2.0
        assert -2.0 <= signed <= 2.0


def test_spherical_mapping(engine):
    theta, phi = engine.pos_to_spherical(-150.0, 0.0)
    assert theta == pytest.approx(0.0)
    assert phi == pytest.approx(0.5 * math.pi)

    theta, _ = engine.pos_to_spherical(150.0, 0.0)
    assert 0.0 <= theta < 2 * math.pi

    _, phi = engine.pos_to_spherical(0.0, 10_000.0)
    assert phi == pytest.approx(0.8 * math.pi)

    x, y, z = engine.spherical_to_cartesian(0.3, 1.1, 10.0)
    assert math.sqrt(x * x + y * y + z * z) == pytest.approx(10.0)


def test_anchor_positions(engine, sample_features):
    anchor = engine.get_surface_position(20.0, -40.0)
    assert np.linalg.norm(anchor) == pytest.approx(engine.base_radius + engine.settings['surface_anchor_lift'])
    hub = sample_features.hubs[0]
    assert np.linalg.norm(engine.get_location_position(hub)) == pytest.approx(engine.base_radius)


# --- Jitter pass ---

def test_update_before_generate_is_empty(engine):
    assert engine.update(1.0).shape == (0,)


def test_jitter_never_accumulates(engine, sample_features):
    engine.generate(sample_features)
    first = engine.update(0.0)
    for t in (1.0, 2.5, 7.0):
        engine.update(t)
    assert np.array_equal(engine.update(0.0), first)


def test_jitter_is_small_and_read_only(engine, sample_features):
    cloud = engine.generate(sample_features)
    moved = engine.update(3.0)
    amplitude = engine.settings['jitter_amplitude']
    assert np.max(np.abs(moved - cloud.positions)) <= amplitude + 1e-5
    assert not moved.flags.writeable
    # The returned geometry stays untouched by the jitter pass.
    assert np.array_equal(cloud.positions, engine.generate(sample_features).positions)


def test_update_results_are_snapshots(engine, sample_features):
    engine.generate(sample_features)
    earlier = engine.update(1.0)
    kept = earlier.tobytes()
    later = engine.update(4.0)
    assert earlier.tobytes() == kept
    assert not np.array_equal(earlier, later)
    assert not np.shares_memory(earlier, later)
