# tests/conftest.py

import pytest

from memory_landscape.feature_mapping import map_journey_to_features
from memory_landscape.sample_journey import load_sample_journey
from memory_landscape.schema import JourneyData, Location


@pytest.fixture
def tiny_config():
    """Small grids and clouds so the numba kernels stay fast under test."""
    return {
        'seed': 7,
        'terrain_segments': (8, 6),
        'sphere_point_count': 300,
        'cluster_base_count': 10,
        'cluster_count_weights': (0.5, 10.0, 10.0),
    }


@pytest.fixture
def sample_journey():
    return load_sample_journey()


@pytest.fixture
def sample_features(sample_journey, tiny_config):
    return map_journey_to_features(sample_journey, tiny_config)


@pytest.fixture
def empty_features(tiny_config):
    return map_journey_to_features(JourneyData(), tiny_config)


@pytest.fixture
def single_location_journey():
    return JourneyData(locations=(Location(id="solo", name="Solo"),))
