# tests/test_spatial.py

import dataclasses

from memory_landscape.feature_mapping import FeatureBundle
from memory_landscape.spatial import LocationIndex, nearest_location


def test_nearest_hub_at_its_own_position(sample_features):
    for hub in sample_features.hubs:
        x, _, z = hub.position
        assert nearest_location(sample_features, (x, z)).id == hub.id


def test_max_distance_filters_far_queries(sample_features):
    assert nearest_location(sample_features, (10_000.0, 10_000.0), max_distance=5.0) is None


def test_children_are_only_found_when_requested(sample_features):
    child = sample_features.children[0]
    x, _, z = child.position
    assert nearest_location(sample_features, (x, z), hubs_only=False).id == child.id
    assert nearest_location(sample_features, (x, z)).id == child.parent_id


def test_batch_and_radius_queries(sample_features):
    index = LocationIndex(sample_features, hubs_only=True)
    assert len(index) == len(sample_features.hubs)

    points = [(h.position[0], h.position[2]) for h in sample_features.hubs[:3]]
    assert [m.id for m in index.query(points)] == [h.id for h in sample_features.hubs[:3]]

    hub = sample_features.hubs[0]
    near = index.within((hub.position[0], hub.position[2]), radius=1000.0)
    assert near[0].id == hub.id
    assert len(near) == len(sample_features.hubs)


def test_empty_bundle_has_no_neighbours(empty_features):
    index = LocationIndex(empty_features)
    assert index.query([(0.0, 0.0), (1.0, 1.0)]) == [None, None]
    assert index.within((0.0, 0.0), 10.0) == []
    assert nearest_location(empty_features, (0.0, 0.0)) is None


def test_neighbor_pairs_are_unique_and_cover_every_hub(sample_features):
    index = LocationIndex(sample_features, hubs_only=True)
    pairs = index.neighbor_pairs(k=4)

    keys = [frozenset((a.id, b.id)) for a, b in pairs]
    assert all(a.id != b.id for a, b in pairs)
    assert len(keys) == len(set(keys))
    assert len(pairs) <= 4 * len(index)
    linked = {m.id for pair in pairs for m in pair}
    assert linked == {h.id for h in sample_features.hubs}
    assert index.neighbor_pairs(k=4) == pairs


def test_neighbor_pairs_follow_planar_distance(sample_features):
    hub = sample_features.hubs[0]
    row = tuple(
        dataclasses.replace(hub, id=name, position=(x, 0.0, 0.0))
        for name, x in (("a", 0.0), ("b", 10.0), ("c", 100.0))
    )
    index = LocationIndex(FeatureBundle(mapped=row))
    assert [(a.id, b.id) for a, b in index.neighbor_pairs(k=1)] == [("a", "b"), ("c", "b")]
    assert len(index.neighbor_pairs(k=4)) == 3


def test_neighbor_pairs_need_two_locations(empty_features, sample_features):
    assert LocationIndex(empty_features).neighbor_pairs() == []
    single = FeatureBundle(mapped=(sample_features.hubs[0],))
    assert LocationIndex(single).neighbor_pairs() == []
