# memory_landscape/spatial.py

"""
================================================================================
SPATIAL QUERIES
================================================================================
Nearest-location lookups over the planar (x, z) layout of a FeatureBundle.
Interaction and audio collaborators use this to find the memory under the
cursor or the camera.

Data Contract:
---------------
- Inputs:
    - features (FeatureBundle): Output of map_journey_to_features().
    - points: One (x, z) pair or an (N, 2) array of them.
- Outputs:
    - The MappedLocation (or a list of them) closest to each point, or None
      when nothing lies within max_distance.
    - neighbor_pairs(): deduplicated (a, b) pairs joining each location to
      its k nearest others, for the mesh-like extra connections.
- Side Effects: None. The KD-tree is built per LocationIndex instance.
================================================================================
"""

import numpy as np
from scipy.spatial import cKDTree


class LocationIndex:
    """A KD-tree over the (x, z) positions of the mapped locations."""

    def __init__(self, features, hubs_only: bool = False):
        self.locations = features.hubs if hubs_only else tuple(features.mapped)
        if self.locations:
            planar = np.array([(m.position[0], m.position[2]) for m in self.locations], dtype=np.float64)
            self.tree = cKDTree(np.nan_to_num(planar))
        else:
            self.tree = None

    def __len__(self) -> int:
        return len(self.locations)

    def query(self, points, max_distance: float = None) -> list:
        """Nearest location per query point; None where out of range."""
        points = np.atleast_2d(np.asarray(points, dtype=np.float64))
        if self.tree is None:
            return [None] * len(points)

        bound = np.inf if max_distance is None else float(max_distance)
        # cKDTree signals "no neighbour within bound" with index == n.
        _, indices = self.tree.query(points, k=1, distance_upper_bound=bound)
        return [self.locations[i] if i < len(self.locations) else None for i in np.atleast_1d(indices)]

    def within(self, point, radius: float) -> list:
        """All locations within `radius` of a single (x, z) point, nearest first."""
        if self.tree is None:
            return []
        point = np.asarray(point, dtype=np.float64)
        indices = self.tree.query_ball_point(point, r=float(radius))
        return sorted(
            (self.locations[i] for i in indices),
            key=lambda m: (m.position[0] - point[0]) ** 2 + (m.position[2] - point[1]) ** 2,
        )

    def neighbor_pairs(self, k: int = 4) -> list:
        """
        Links every location to its k nearest others.
        Returns (a, b) location pairs, each unordered pair listed once, in the
        order they are first reached walking the locations nearest first.
        """
        count = len(self.locations)
        if self.tree is None or count < 2 or k < 1:
            return []

        _, indices = self.tree.query(self.tree.data, k=min(k + 1, count))
        seen = set()
        pairs = []
        for i, row in enumerate(indices):
            # Coincident points may place i outside slot 0.
            neighbours = [int(j) for j in row if j != i][:k]
            for j in neighbours:
                key = (min(i, j), max(i, j))
                if key in seen:
                    continue
                seen.add(key)
                pairs.append((self.locations[i], self.locations[j]))
        return pairs


def nearest_location(features, point, max_distance: float = None, hubs_only: bool = True):
    """Convenience wrapper: the single location closest to one (x, z) point."""
    return LocationIndex(features, hubs_only=hubs_only).query(point, max_distance=max_distance)[0]
