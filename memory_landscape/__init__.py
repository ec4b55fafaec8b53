# memory_landscape/__init__.py

# This file makes the 'memory_landscape' directory a Python package.
# We can also use it to define the public API of the package.

from .schema import (
    Connection,
    DocumentKind,
    JourneyData,
    LanguageTag,
    Location,
    LocationType,
    MemoryEvent,
    Period,
    journey_from_dict,
    load_journey,
)
from .noise import ValueNoise
from .feature_mapping import (
    FeatureBundle,
    MappedConnection,
    MappedLocation,
    map_journey_to_features,
    remap,
)
from .terrain import HeightField, HeightFieldEngine
from .sphere import PointCloud, PointCloudEngine
from .spatial import LocationIndex, nearest_location
from .sample_journey import load_sample_journey

__all__ = [
    "Connection", "DocumentKind", "JourneyData", "LanguageTag", "Location",
    "LocationType", "MemoryEvent", "Period", "journey_from_dict", "load_journey",
    "ValueNoise",
    "FeatureBundle", "MappedConnection", "MappedLocation", "map_journey_to_features", "remap",
    "HeightField", "HeightFieldEngine",
    "PointCloud", "PointCloudEngine",
    "LocationIndex", "nearest_location",
    "load_sample_journey",
]
