# memory_landscape/sphere.py

"""
================================================================================
POINT-CLOUD SPHERE ENGINE
================================================================================
This module wraps the planar (x, z) layout of a FeatureBundle onto a sphere
and produces a deformed point cloud: an evenly spaced base layer whose radius
is pushed by the memories' mass and signed fields, plus a denser cluster halo
around every mapped location.

Data Contract:
---------------
- Inputs (on initialization):
    - config (dict): Parameters which can override the internal defaults.
    - logger: A configured Python logging object for runtime messages.
- Inputs (generate):
    - features (FeatureBundle): Output of map_journey_to_features().
- Outputs:
    - A PointCloud with flat float32 positions and colors (stride 3) and
      per-point sizes. Base-layer points come first, then every location's
      cluster in bundle order.
- Side Effects:
    - generate() stores a read-only copy of the synthesized positions on the
      engine; update() writes into an engine-owned working buffer and returns
      a copy of it.
- Invariants:
    - All per-point "randomness" is a hash of (seed, index), so the cloud is
      reproducible.
    - Zero total influence weight yields zero displacement (no division).
    - The jitter pass always starts from the stored base copy, never from its
      own previous output.
================================================================================
"""

import logging
import math
import time
from dataclasses import dataclass

import numpy as np
from numba import njit

from . import color_maps
from . import config as DEFAULTS
from .noise import fractal_noise_3d, unit_random, value_noise_3d

TAU = 2.0 * math.pi

# --- Kernel Parameter Layout ---
P_BASE_RADIUS = 0
P_INFLUENCE_RADIUS = 1
P_NORMALIZER = 2
P_FIELD_MIN = 3
P_FIELD_MAX = 4
P_SIGNED_MIN = 5
P_SIGNED_MAX = 6
P_GAIN_FIELD = 7
P_GAIN_SIGNED = 8
P_GAIN_MACRO = 9
P_GAIN_DETAIL = 10
P_MACRO_X = 11
P_MACRO_Y = 12
P_MACRO_Z = 13
P_DETAIL_X = 14
P_DETAIL_Y = 15
P_DETAIL_Z = 16
P_OCTAVES = 17
P_LACUNARITY = 18
P_GAIN = 19
P_CLUSTER_JITTER_THETA = 20
P_CLUSTER_JITTER_PHI = 21
P_CLUSTER_LIFT = 22
P_CLUSTER_GAIN_FIELD = 23
P_CLUSTER_GAIN_SIGNED = 24
P_CLUSTER_GAIN_LOCAL = 25
P_CLUSTER_GAIN_SIGNIFICANCE = 26
P_CLUSTER_NOISE_X = 27
P_CLUSTER_NOISE_Y = 28
P_MAX_DISPLACEMENT = 29
_PARAM_COUNT = 30

# Columns of the per-location table.
S_THETA = 0
S_PHI = 1
S_WEIGHT = 2
S_SIGN = 3
S_AMPLITUDE = 4
S_SIGNIFICANCE = 5
S_RIDGE = 6
_SPHERE_COLUMNS = 7

# Second key of unit_random() for the base layer; clusters use their index.
_BASE_LAYER_KEY = -1


@njit
def _silhouette_field(theta, phi, table, params):
    """Mass and signed fields at an angular position, each normalized and clamped."""
    field = 0.0
    signed = 0.0
    total_weight = 0.0
    influence = params[P_INFLUENCE_RADIUS]

    for k in range(table.shape[0]):
        d_theta = abs(theta - table[k, S_THETA]) % TAU
        if d_theta > math.pi:
            d_theta = TAU - d_theta
        d_phi = abs(phi - table[k, S_PHI])
        ang_dist = math.sqrt(d_theta * d_theta + d_phi * d_phi)

        if ang_dist < influence:
            t = 1.0 - ang_dist / influence
            falloff = t * t * t
            weight = table[k, S_WEIGHT]
            field += weight * falloff
            signed += weight * table[k, S_SIGN] * falloff
            total_weight += weight

    if total_weight <= 0.0:
        return 0.0, 0.0

    norm = total_weight * params[P_NORMALIZER]
    f = min(max(field / norm, params[P_FIELD_MIN]), params[P_FIELD_MAX])
    s = min(max(signed / norm, params[P_SIGNED_MIN]), params[P_SIGNED_MAX])
    return f, s


@njit
def _clamp_displacement(radius, base, limit):
    if radius != radius:
        return base
    if radius > base + limit:
        return base + limit
    if radius < base - limit:
        return base - limit
    return radius


@njit
def _base_layer_kernel(seed, count, table, params):
    """Fibonacci-sphere layer. Returns (positions, radii, thetas, sizes)."""
    positions = np.empty((count, 3))
    radii = np.empty(count)
    thetas = np.empty(count)
    sizes = np.empty(count)

    base = params[P_BASE_RADIUS]
    golden_angle = math.pi * (3.0 - math.sqrt(5.0))
    octaves = int(params[P_OCTAVES])

    for i in range(count):
        y = 1.0 - (2.0 * (i + 0.5)) / count
        ring = math.sqrt(max(0.0, 1.0 - y * y))
        theta = (golden_angle * i) % TAU
        phi = math.acos(y)

        field, signed = _silhouette_field(theta, phi, table, params)
        macro = fractal_noise_3d(
            seed, theta * params[P_MACRO_X], phi * params[P_MACRO_Y], params[P_MACRO_Z],
            octaves, params[P_LACUNARITY], params[P_GAIN], 1.0
        ) - 0.5
        detail = fractal_noise_3d(
            seed, theta * params[P_DETAIL_X], phi * params[P_DETAIL_Y], params[P_DETAIL_Z],
            octaves, params[P_LACUNARITY], params[P_GAIN], 1.0
        ) - 0.5

        bump = (
            field * params[P_GAIN_FIELD] + signed * params[P_GAIN_SIGNED]
            + macro * params[P_GAIN_MACRO] + detail * params[P_GAIN_DETAIL]
        )
        radius = _clamp_displacement(base + bump, base, params[P_MAX_DISPLACEMENT])

        positions[i, 0] = radius * ring * math.cos(theta)
        positions[i, 1] = radius * y
        positions[i, 2] = radius * ring * math.sin(theta)
        radii[i] = radius
        thetas[i] = theta
        sizes[i] = 0.35 + unit_random(seed, _BASE_LAYER_KEY, i) * 0.45

    return positions, radii, thetas, sizes


@njit
def _cluster_kernel(seed, counts, table, params):
    """
    Dense halo points around every location, in table order.
    Returns (positions, owners, color_weights, sizes).
    """
    total = 0
    for k in range(counts.shape[0]):
        total += counts[k]

    positions = np.empty((total, 3))
    owners = np.empty(total, dtype=np.int64)
    color_weights = np.empty(total)
    sizes = np.empty(total)

    base = params[P_BASE_RADIUS]
    octaves = int(params[P_OCTAVES])
    n = 0
    for k in range(counts.shape[0]):
        significance = table[k, S_SIGNIFICANCE]
        amplitude = table[k, S_AMPLITUDE]
        for i in range(counts[k]):
            jitter_theta = table[k, S_THETA] + (unit_random(seed, k, 4 * i) - 0.5) * params[P_CLUSTER_JITTER_THETA]
            jitter_phi = table[k, S_PHI] + (unit_random(seed, k, 4 * i + 1) - 0.5) * params[P_CLUSTER_JITTER_PHI]

            field, signed = _silhouette_field(jitter_theta, jitter_phi, table, params)
            local = fractal_noise_3d(
                seed, jitter_theta * params[P_CLUSTER_NOISE_X], jitter_phi * params[P_CLUSTER_NOISE_Y],
                k * 3.17 + i * 0.013, octaves, params[P_LACUNARITY], params[P_GAIN], 1.0
            ) - 0.5

            bump = (
                field * params[P_CLUSTER_GAIN_FIELD] + signed * params[P_CLUSTER_GAIN_SIGNED]
                + local * params[P_CLUSTER_GAIN_LOCAL]
                + (significance - 0.5) * params[P_CLUSTER_GAIN_SIGNIFICANCE]
            )
            radius = _clamp_displacement(base + params[P_CLUSTER_LIFT] + bump, base, params[P_MAX_DISPLACEMENT])

            sin_phi = math.sin(jitter_phi)
            positions[n, 0] = radius * sin_phi * math.cos(jitter_theta)
            positions[n, 1] = radius * math.cos(jitter_phi)
            positions[n, 2] = radius * sin_phi * math.sin(jitter_theta)
            owners[n] = k
            color_weights[n] = 0.35 + significance * 0.45 + unit_random(seed, k, 4 * i + 2) * 0.2
            sizes[n] = 0.5 + unit_random(seed, k, 4 * i + 3) * 1.6 + significance * 1.6 + amplitude * 0.02
            n += 1

    return positions, owners, color_weights, sizes


@njit
def _jitter_kernel(seed, base_positions, out, t, amplitude):
    """Writes base + two phased noise offsets into `out`. Never reads `out`."""
    for i in range(base_positions.shape[0]):
        bx = base_positions[i, 0]
        by = base_positions[i, 1]
        bz = base_positions[i, 2]
        n1 = value_noise_3d(seed, bx * 0.02 + t, by * 0.015, bz * 0.01)
        n2 = value_noise_3d(seed, bx * 0.01, by * 0.02 + t * 1.2, bz * 0.015)
        out[i, 0] = bx + (n1 - 0.5) * amplitude
        out[i, 1] = by + (n2 - 0.5) * amplitude * 0.8
        out[i, 2] = bz + (n1 + n2 - 1.0) * amplitude * 0.7


@dataclass(frozen=True)
class PointCloud:
    positions: np.ndarray
    colors: np.ndarray
    sizes: np.ndarray
    base_count: int
    cluster_count: int

    @property
    def point_count(self) -> int:
        return self.base_count + self.cluster_count


def _read_only(array: np.ndarray) -> np.ndarray:
    view = array.view()
    view.flags.writeable = False
    return view


class PointCloudEngine:
    """
    Synthesizes the spherical point cloud and owns the per-frame jitter buffers.
    """
    def __init__(self, config: dict = None, logger: logging.Logger = None):
        """
        Initializes the point-cloud engine.

        Args:
            config (dict): User-defined parameters to override defaults.
            logger (logging.Logger): The logger instance for all output.
        """
        self.logger = logger or logging.getLogger(__name__)
        self.user_config = config or {}

        # --- Consolidate Configuration ---
        self.settings = {
            'seed': self.user_config.get('seed', DEFAULTS.DEFAULT_SEED),
            'sphere_seed_offset': self.user_config.get('sphere_seed_offset', DEFAULTS.SPHERE_SEED_OFFSET),
            'sphere_base_radius': self.user_config.get('sphere_base_radius', DEFAULTS.SPHERE_BASE_RADIUS),
            'sphere_point_count': self.user_config.get('sphere_point_count', DEFAULTS.SPHERE_POINT_COUNT),
            'sphere_x_half_range': self.user_config.get('sphere_x_half_range', DEFAULTS.SPHERE_X_HALF_RANGE),
            'sphere_z_half_range': self.user_config.get('sphere_z_half_range', DEFAULTS.SPHERE_Z_HALF_RANGE),
            'sphere_latitude_band': tuple(self.user_config.get('sphere_latitude_band', DEFAULTS.SPHERE_LATITUDE_BAND)),

            'angular_influence_radius': self.user_config.get('angular_influence_radius', DEFAULTS.ANGULAR_INFLUENCE_RADIUS),
            'field_normalizer': self.user_config.get('field_normalizer', DEFAULTS.FIELD_NORMALIZER),
            'field_clamp': tuple(self.user_config.get('field_clamp', DEFAULTS.FIELD_CLAMP)),
            'signed_field_clamp': tuple(self.user_config.get('signed_field_clamp', DEFAULTS.SIGNED_FIELD_CLAMP)),
            'mass_weights': tuple(self.user_config.get('mass_weights', DEFAULTS.MASS_WEIGHTS)),
            'coefficient_bounds': self.user_config.get('coefficient_bounds', DEFAULTS.COEFFICIENT_BOUNDS),

            'silhouette_gains': tuple(self.user_config.get('silhouette_gains', DEFAULTS.SILHOUETTE_GAINS)),
            'macro_noise_scale': tuple(self.user_config.get('macro_noise_scale', DEFAULTS.MACRO_NOISE_SCALE)),
            'detail_noise_scale': tuple(self.user_config.get('detail_noise_scale', DEFAULTS.DETAIL_NOISE_SCALE)),
            'sphere_noise_octaves': self.user_config.get('sphere_noise_octaves', DEFAULTS.SPHERE_NOISE_OCTAVES),
            'sphere_noise_lacunarity': self.user_config.get('sphere_noise_lacunarity', DEFAULTS.SPHERE_NOISE_LACUNARITY),
            'sphere_noise_gain': self.user_config.get('sphere_noise_gain', DEFAULTS.SPHERE_NOISE_GAIN),
            'sphere_height_tint_span': self.user_config.get('sphere_height_tint_span', DEFAULTS.SPHERE_HEIGHT_TINT_SPAN),
            'sphere_height_tint_gain': self.user_config.get('sphere_height_tint_gain', DEFAULTS.SPHERE_HEIGHT_TINT_GAIN),

            'cluster_base_count': self.user_config.get('cluster_base_count', DEFAULTS.CLUSTER_BASE_COUNT),
            'cluster_count_weights': tuple(self.user_config.get('cluster_count_weights', DEFAULTS.CLUSTER_COUNT_WEIGHTS)),
            'cluster_jitter': tuple(self.user_config.get('cluster_jitter', DEFAULTS.CLUSTER_JITTER)),
            'cluster_lift': self.user_config.get('cluster_lift', DEFAULTS.CLUSTER_LIFT),
            'cluster_gains': tuple(self.user_config.get('cluster_gains', DEFAULTS.CLUSTER_GAINS)),
            'cluster_highlight': tuple(self.user_config.get('cluster_highlight', DEFAULTS.CLUSTER_HIGHLIGHT)),
            'cluster_noise_scale': tuple(self.user_config.get('cluster_noise_scale', DEFAULTS.CLUSTER_NOISE_SCALE)),

            'jitter_time_scale': self.user_config.get('jitter_time_scale', DEFAULTS.JITTER_TIME_SCALE),
            'jitter_amplitude': self.user_config.get('jitter_amplitude', DEFAULTS.JITTER_AMPLITUDE),
            'surface_anchor_lift': self.user_config.get('surface_anchor_lift', DEFAULTS.SURFACE_ANCHOR_LIFT),
            'max_abs_height': self.user_config.get('max_abs_height', DEFAULTS.MAX_ABS_HEIGHT),
        }

        if int(self.settings['sphere_point_count']) < 0:
            raise ValueError("sphere_point_count must not be negative.")

        # --- Public Properties for easy access ---
        self.seed = int(self.settings['seed']) + int(self.settings['sphere_seed_offset'])
        self.base_radius = float(self.settings['sphere_base_radius'])
        self.point_count = int(self.settings['sphere_point_count'])

        # --- Jitter State (owned exclusively by this engine) ---
        self._base_positions = np.zeros((0, 3), dtype=np.float32)
        self._working_positions = np.zeros((0, 3), dtype=np.float32)

        self.logger.info(
            f"PointCloudEngine initialized with seed {self.seed}: "
            f"{self.point_count} base points, radius {self.base_radius:.1f}"
        )

    # --- Spherical Mapping ---

    def pos_to_spherical(self, x: float, z: float) -> tuple:
        """
        Wraps the planar layout onto the sphere: x spans the full longitude,
        z is compressed into a latitude band away from the poles.
        """
        x_half = self.settings['sphere_x_half_range']
        z_half = self.settings['sphere_z_half_range']
        band_lo, band_hi = self.settings['sphere_latitude_band']

        theta = (((x + x_half) / (2.0 * x_half)) * TAU) % TAU
        phi = band_lo * math.pi + ((z + z_half) / (2.0 * z_half)) * (band_hi - band_lo) * math.pi
        phi = min(max(phi, band_lo * math.pi), band_hi * math.pi)
        return theta, phi

    @staticmethod
    def spherical_to_cartesian(theta: float, phi: float, r: float) -> tuple:
        return (
            r * math.sin(phi) * math.cos(theta),
            r * math.cos(phi),
            r * math.sin(phi) * math.sin(theta),
        )

    def get_surface_position(self, x: float, z: float) -> tuple:
        """Anchor slightly above the mean surface, for cards and labels."""
        theta, phi = self.pos_to_spherical(x, z)
        return self.spherical_to_cartesian(theta, phi, self.base_radius + self.settings['surface_anchor_lift'])

    def get_location_position(self, mapped) -> tuple:
        theta, phi = self.pos_to_spherical(mapped.position[0], mapped.position[2])
        return self.spherical_to_cartesian(theta, phi, self.base_radius)

    # --- Synthesis ---

    def _kernel_params(self) -> np.ndarray:
        s = self.settings
        params = np.zeros(_PARAM_COUNT)
        params[P_BASE_RADIUS] = self.base_radius
        params[P_INFLUENCE_RADIUS] = s['angular_influence_radius']
        params[P_NORMALIZER] = s['field_normalizer']
        params[P_FIELD_MIN], params[P_FIELD_MAX] = s['field_clamp']
        params[P_SIGNED_MIN], params[P_SIGNED_MAX] = s['signed_field_clamp']
        (params[P_GAIN_FIELD], params[P_GAIN_SIGNED],
         params[P_GAIN_MACRO], params[P_GAIN_DETAIL]) = s['silhouette_gains']
        params[P_MACRO_X], params[P_MACRO_Y], params[P_MACRO_Z] = s['macro_noise_scale']
        params[P_DETAIL_X], params[P_DETAIL_Y], params[P_DETAIL_Z] = s['detail_noise_scale']
        params[P_OCTAVES] = s['sphere_noise_octaves']
        params[P_LACUNARITY] = s['sphere_noise_lacunarity']
        params[P_GAIN] = s['sphere_noise_gain']
        params[P_CLUSTER_JITTER_THETA], params[P_CLUSTER_JITTER_PHI] = s['cluster_jitter']
        params[P_CLUSTER_LIFT] = s['cluster_lift']
        (params[P_CLUSTER_GAIN_FIELD], params[P_CLUSTER_GAIN_SIGNED],
         params[P_CLUSTER_GAIN_LOCAL], params[P_CLUSTER_GAIN_SIGNIFICANCE]) = s['cluster_gains']
        params[P_CLUSTER_NOISE_X], params[P_CLUSTER_NOISE_Y] = s['cluster_noise_scale']
        params[P_MAX_DISPLACEMENT] = s['max_abs_height']
        return params

    def location_table(self, features) -> np.ndarray:
        """
        Angular position, mass, sign and shaping coefficients of every
        location, in bundle order, with coefficients clamped.
        """
        bounds = self.settings['coefficient_bounds']
        w_amp, w_sig, w_ridge, w_rough, w_const = self.settings['mass_weights']
        table = np.zeros((len(features.mapped), _SPHERE_COLUMNS))

        for k, m in enumerate(features.mapped):
            amplitude = float(np.clip(np.nan_to_num(m.amplitude), *bounds['amplitude']))
            ridge = float(np.clip(np.nan_to_num(m.ridge_factor), *bounds['ridge_factor']))
            roughness = float(np.clip(np.nan_to_num(m.roughness), *bounds['roughness']))
            bias = float(np.clip(np.nan_to_num(m.elevation_bias), *bounds['elevation_bias']))
            significance = float(np.clip(np.nan_to_num(m.significance, nan=0.5), 0.0, 1.0))

            theta, phi = self.pos_to_spherical(
                float(np.nan_to_num(m.position[0])), float(np.nan_to_num(m.position[2]))
            )
            sign = np.sign(bias) or np.sign(np.nan_to_num(m.valence)) or 1.0

            table[k, S_THETA] = theta
            table[k, S_PHI] = phi
            table[k, S_WEIGHT] = amplitude * w_amp + significance * w_sig + abs(ridge) * w_ridge + roughness * w_rough + w_const
            table[k, S_SIGN] = sign
            table[k, S_AMPLITUDE] = amplitude
            table[k, S_SIGNIFICANCE] = significance
            table[k, S_RIDGE] = ridge
        return table

    def cluster_counts(self, table: np.ndarray) -> np.ndarray:
        """Halo point count per location; grows with amplitude, significance and ridge."""
        w_amp, w_sig, w_ridge = self.settings['cluster_count_weights']
        extra = np.floor(
            table[:, S_AMPLITUDE] * w_amp + table[:, S_SIGNIFICANCE] * w_sig + np.abs(table[:, S_RIDGE]) * w_ridge
        )
        return (int(self.settings['cluster_base_count']) + extra).astype(np.int64)

    def _base_colors(self, features, thetas: np.ndarray, radii: np.ndarray) -> np.ndarray:
        s = self.settings
        angle_norm = np.mod(thetas / TAU, 1.0)
        base = features.chroma_shift(angle_norm)
        height_norm = np.clip((radii - self.base_radius) / s['sphere_height_tint_span'], -1.0, 1.0)
        return color_maps.offset_lightness(base, height_norm * s['sphere_height_tint_gain'])

    def _cluster_colors(self, features, owners: np.ndarray, weights: np.ndarray) -> np.ndarray:
        if len(owners) == 0:
            return np.zeros((0, 3))
        palette = np.array([m.base_color for m in features.mapped], dtype=np.float64)
        return color_maps.lerp_rgb(palette[owners], self.settings['cluster_highlight'], weights)

    def generate(self, features) -> PointCloud:
        """
        Builds the base layer and the cluster halos, stores the base copy for
        the jitter pass and returns read-only buffers.
        """
        start_time = time.perf_counter()
        table = self.location_table(features)
        params = self._kernel_params()

        base_positions, radii, thetas, base_sizes = _base_layer_kernel(self.seed, self.point_count, table, params)
        counts = self.cluster_counts(table)
        cluster_positions, owners, color_weights, cluster_sizes = _cluster_kernel(self.seed, counts, table, params)

        positions = np.concatenate([base_positions, cluster_positions])
        positions = np.nan_to_num(positions, nan=0.0, posinf=0.0, neginf=0.0).astype(np.float32)
        colors = color_maps.sanitize_colors(np.concatenate([
            self._base_colors(features, thetas, radii),
            self._cluster_colors(features, owners, color_weights),
        ])).astype(np.float32)
        sizes = np.concatenate([base_sizes, cluster_sizes]).astype(np.float32)

        # The engine keeps its own base copy; the jitter pass never reads back its output.
        self._base_positions = _read_only(positions.copy())
        self._working_positions = positions.copy()

        elapsed = time.perf_counter() - start_time
        self.logger.info(
            f"Point cloud synthesized: {len(base_positions)} base + {len(cluster_positions)} "
            f"cluster points for {len(table)} locations ({elapsed:.2f} s)"
        )
        return PointCloud(
            positions=_read_only(positions.reshape(-1)),
            colors=_read_only(colors.reshape(-1)),
            sizes=_read_only(sizes),
            base_count=len(base_positions),
            cluster_count=len(cluster_positions),
        )

    def update(self, elapsed_time: float) -> np.ndarray:
        """
        Per-frame jitter. Perturbs the stored base positions by two phased
        noise samples and returns a read-only flat snapshot of the result. Later
        calls never change an array returned earlier.
        """
        if len(self._base_positions) == 0:
            return _read_only(np.zeros(0, dtype=np.float32))
        t = float(elapsed_time) * self.settings['jitter_time_scale'] if math.isfinite(elapsed_time) else 0.0
        _jitter_kernel(self.seed, self._base_positions, self._working_positions, t, float(self.settings['jitter_amplitude']))
        return _read_only(self._working_positions.reshape(-1).copy())
