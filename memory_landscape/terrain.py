# memory_landscape/terrain.py

"""
================================================================================
HEIGHT-FIELD ENGINE
================================================================================
This module contains the HeightFieldEngine class, which samples a fixed
rectangular grid and produces per-vertex heights and colors from a
FeatureBundle.

Data Contract:
---------------
- Inputs (on initialization):
    - config (dict): Parameters which can override the internal defaults.
      Expected keys include 'seed', 'terrain_segments', 'base_noise_scale', etc.
    - logger: A configured Python logging object for runtime messages.
- Inputs (generate):
    - features (FeatureBundle): Output of map_journey_to_features().
- Outputs:
    - A HeightField with flat float32 (x, h, z) positions and RGB colors, one
      triple per grid vertex, plus the grid dimensions for triangulation.
- Side Effects: Logs messages using the provided logger.
- Invariants:
    - Given the same seed, configuration and bundle, the output is bit-identical.
    - Influences are folded in FeatureBundle order. The erosion step is not
      commutative across overlapping locations, so reordering the bundle
      changes the result.
    - The output never contains NaN or Inf.
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
from .noise import ValueNoise, fractal_noise_2d

# --- Kernel Parameter Layout ---
# Scalars are packed into one float64 array so the kernels keep a short signature.
P_BASE_SCALE = 0
P_BASE_OCTAVES = 1
P_BASE_LACUNARITY = 2
P_BASE_GAIN = 3
P_RELIEF_SCALE = 4
P_RIDGE_SCALE = 5
P_RIDGE_OCTAVES = 6
P_RIDGE_LACUNARITY = 7
P_RIDGE_GAIN = 8
P_FALLOFF_POWER = 9
P_BIAS_GAIN = 10
P_EROSION_GAIN = 11
P_EROSION_FLOOR = 12
P_EXAGGERATION = 13
P_APPLY_CLIFF = 14
P_CLIFF_EXPONENT = 15
P_MAX_ABS_HEIGHT = 16
_PARAM_COUNT = 17

# Columns of the per-location table.
L_X = 0
L_Z = 1
L_RADIUS = 2
L_AMPLITUDE = 3
L_BIAS = 4
L_EROSION = 5
L_RIDGE = 6
_LOCATION_COLUMNS = 7


@njit
def _height_at(seed, x, z, locations, params):
    """Height of a single sample. The fold over `locations` is ordered."""
    ex = params[P_EXAGGERATION]

    # 1. Base relief.
    base = fractal_noise_2d(
        seed, x * params[P_BASE_SCALE], z * params[P_BASE_SCALE],
        int(params[P_BASE_OCTAVES]), params[P_BASE_LACUNARITY], params[P_BASE_GAIN], 1.0
    )
    h = (base - 0.5) * params[P_RELIEF_SCALE] * ex
    hill = base - 0.5

    # 2. Accumulate local influences, in bundle order.
    ridge = 0.0
    have_ridge = False
    for k in range(locations.shape[0]):
        radius = locations[k, L_RADIUS]
        dx = x - locations[k, L_X]
        dz = z - locations[k, L_Z]
        dist = math.sqrt(dx * dx + dz * dz)
        if dist < radius:
            if not have_ridge:
                # The ridge sample depends only on (x, z); fetch it once.
                folded = fractal_noise_2d(
                    seed, x * params[P_RIDGE_SCALE], z * params[P_RIDGE_SCALE],
                    int(params[P_RIDGE_OCTAVES]), params[P_RIDGE_LACUNARITY], params[P_RIDGE_GAIN], 1.0
                )
                ridge = abs(folded - 0.5) * 2.0 - 0.5
                have_ridge = True

            t = 1.0 - dist / radius
            fall = t ** params[P_FALLOFF_POWER]
            ridge_factor = locations[k, L_RIDGE]
            shape = ridge_factor * ridge + (1.0 - ridge_factor) * hill

            h += locations[k, L_AMPLITUDE] * shape * fall * ex
            h += locations[k, L_BIAS] * fall * ex * params[P_BIAS_GAIN]
            # Erosion pulls the running height towards a flattened copy of itself.
            h = h + (h * params[P_EROSION_FLOOR] - h) * (locations[k, L_EROSION] * params[P_EROSION_GAIN])

    # 3. Cliff curve sharpens positive relief.
    if params[P_APPLY_CLIFF] > 0.5 and h > 0.0:
        h = h ** params[P_CLIFF_EXPONENT]

    # 4. Never let NaN/Inf escape into the buffers.
    limit = params[P_MAX_ABS_HEIGHT]
    if h != h:
        h = 0.0
    elif h > limit:
        h = limit
    elif h < -limit:
        h = -limit
    return h


@njit
def _height_field_kernel(seed, xs, zs, locations, params):
    rows = zs.shape[0]
    cols = xs.shape[0]
    heights = np.empty((rows, cols))
    for i in range(rows):
        for j in range(cols):
            heights[i, j] = _height_at(seed, xs[j], zs[i], locations, params)
    return heights


@dataclass(frozen=True)
class HeightField:
    """Sampled grid. Vertex (row, col) lives at index row * columns + col."""
    positions: np.ndarray
    colors: np.ndarray
    columns: int
    rows: int
    width: float
    depth: float

    @property
    def vertex_count(self) -> int:
        return self.columns * self.rows

    def heights(self) -> np.ndarray:
        """The h component as a (rows, columns) array."""
        return self.positions.reshape(self.rows, self.columns, 3)[..., 1]

    def triangle_indices(self) -> np.ndarray:
        """Two counter-clockwise triangles per grid quad, flat uint32."""
        idx = np.arange(self.vertex_count, dtype=np.uint32).reshape(self.rows, self.columns)
        a = idx[:-1, :-1]
        b = idx[1:, :-1]
        c = idx[1:, 1:]
        d = idx[:-1, 1:]
        return np.stack([a, b, d, b, c, d], axis=-1).reshape(-1)


class HeightFieldEngine:
    """
    Synthesizes a heightmapped surface from a FeatureBundle.
    Stateless between calls: every generate() rebuilds the buffers wholesale.
    """
    def __init__(self, config: dict = None, logger: logging.Logger = None):
        """
        Initializes the height-field engine.

        Args:
            config (dict): User-defined parameters to override defaults.
            logger (logging.Logger): The logger instance for all output.
        """
        self.logger = logger or logging.getLogger(__name__)
        self.user_config = config or {}

        # --- Consolidate Configuration ---
        self.settings = {
            'seed': self.user_config.get('seed', DEFAULTS.DEFAULT_SEED),
            'terrain_width': self.user_config.get('terrain_width', DEFAULTS.TERRAIN_WIDTH),
            'terrain_depth': self.user_config.get('terrain_depth', DEFAULTS.TERRAIN_DEPTH),
            'terrain_segments': tuple(self.user_config.get('terrain_segments', DEFAULTS.TERRAIN_SEGMENTS)),

            'base_noise_scale': self.user_config.get('base_noise_scale', DEFAULTS.BASE_NOISE_SCALE),
            'base_noise_octaves': self.user_config.get('base_noise_octaves', DEFAULTS.BASE_NOISE_OCTAVES),
            'base_noise_lacunarity': self.user_config.get('base_noise_lacunarity', DEFAULTS.BASE_NOISE_LACUNARITY),
            'base_noise_gain': self.user_config.get('base_noise_gain', DEFAULTS.BASE_NOISE_GAIN),
            'base_relief_scale': self.user_config.get('base_relief_scale', DEFAULTS.BASE_RELIEF_SCALE),

            'ridge_noise_scale': self.user_config.get('ridge_noise_scale', DEFAULTS.RIDGE_NOISE_SCALE),
            'ridge_noise_octaves': self.user_config.get('ridge_noise_octaves', DEFAULTS.RIDGE_NOISE_OCTAVES),
            'ridge_noise_lacunarity': self.user_config.get('ridge_noise_lacunarity', DEFAULTS.RIDGE_NOISE_LACUNARITY),
            'ridge_noise_gain': self.user_config.get('ridge_noise_gain', DEFAULTS.RIDGE_NOISE_GAIN),

            'residence_influence_radius': self.user_config.get('residence_influence_radius', DEFAULTS.RESIDENCE_INFLUENCE_RADIUS),
            'visit_influence_radius': self.user_config.get('visit_influence_radius', DEFAULTS.VISIT_INFLUENCE_RADIUS),
            'event_influence_radius': self.user_config.get('event_influence_radius', DEFAULTS.EVENT_INFLUENCE_RADIUS),
            'influence_falloff_power': self.user_config.get('influence_falloff_power', DEFAULTS.INFLUENCE_FALLOFF_POWER),
            'elevation_bias_gain': self.user_config.get('elevation_bias_gain', DEFAULTS.ELEVATION_BIAS_GAIN),
            'erosion_gain': self.user_config.get('erosion_gain', DEFAULTS.EROSION_GAIN),
            'erosion_floor': self.user_config.get('erosion_floor', DEFAULTS.EROSION_FLOOR),
            'coefficient_bounds': self.user_config.get('coefficient_bounds', DEFAULTS.COEFFICIENT_BOUNDS),

            'apply_cliff_curve': self.user_config.get('apply_cliff_curve', DEFAULTS.APPLY_CLIFF_CURVE),
            'cliff_exponent': self.user_config.get('cliff_exponent', DEFAULTS.CLIFF_EXPONENT),
            'max_abs_height': self.user_config.get('max_abs_height', DEFAULTS.MAX_ABS_HEIGHT),

            'height_tint_offset': self.user_config.get('height_tint_offset', DEFAULTS.HEIGHT_TINT_OFFSET),
            'height_tint_span': self.user_config.get('height_tint_span', DEFAULTS.HEIGHT_TINT_SPAN),
            'height_tint_gain': self.user_config.get('height_tint_gain', DEFAULTS.HEIGHT_TINT_GAIN),
        }

        seg_x, seg_z = self.settings['terrain_segments']
        if int(seg_x) < 1 or int(seg_z) < 1:
            raise ValueError(f"terrain_segments must be positive, got {self.settings['terrain_segments']}")
        if self.settings['terrain_width'] <= 0 or self.settings['terrain_depth'] <= 0:
            raise ValueError("terrain_width and terrain_depth must be positive.")

        # --- Public Properties for easy access ---
        self.seed = int(self.settings['seed'])
        self.noise = ValueNoise(self.seed)
        self.columns = int(seg_x) + 1
        self.rows = int(seg_z) + 1
        self.width = float(self.settings['terrain_width'])
        self.depth = float(self.settings['terrain_depth'])

        self.logger.info(
            f"HeightFieldEngine initialized with seed {self.seed}: "
            f"{self.columns}x{self.rows} vertices over {self.width:.0f}x{self.depth:.0f} units"
        )

    def _kernel_params(self, exaggeration: float) -> np.ndarray:
        s = self.settings
        params = np.zeros(_PARAM_COUNT)
        params[P_BASE_SCALE] = s['base_noise_scale']
        params[P_BASE_OCTAVES] = s['base_noise_octaves']
        params[P_BASE_LACUNARITY] = s['base_noise_lacunarity']
        params[P_BASE_GAIN] = s['base_noise_gain']
        params[P_RELIEF_SCALE] = s['base_relief_scale']
        params[P_RIDGE_SCALE] = s['ridge_noise_scale']
        params[P_RIDGE_OCTAVES] = s['ridge_noise_octaves']
        params[P_RIDGE_LACUNARITY] = s['ridge_noise_lacunarity']
        params[P_RIDGE_GAIN] = s['ridge_noise_gain']
        params[P_FALLOFF_POWER] = s['influence_falloff_power']
        params[P_BIAS_GAIN] = s['elevation_bias_gain']
        params[P_EROSION_GAIN] = s['erosion_gain']
        params[P_EROSION_FLOOR] = s['erosion_floor']
        params[P_EXAGGERATION] = exaggeration if math.isfinite(exaggeration) else DEFAULTS.EXAGGERATION
        params[P_APPLY_CLIFF] = 1.0 if s['apply_cliff_curve'] else 0.0
        params[P_CLIFF_EXPONENT] = s['cliff_exponent']
        params[P_MAX_ABS_HEIGHT] = s['max_abs_height']
        return params

    def _influence_radius(self, mapped) -> float:
        if mapped.is_child:
            return self.settings['event_influence_radius']
        if mapped.is_visit:
            return self.settings['visit_influence_radius']
        return self.settings['residence_influence_radius']

    def location_table(self, features) -> np.ndarray:
        """
        Packs the bundle into an (n, 7) float64 table in bundle order, with
        every coefficient clamped to its documented range.
        """
        table = np.zeros((len(features.mapped), _LOCATION_COLUMNS))
        bounds = self.settings['coefficient_bounds']
        for k, m in enumerate(features.mapped):
            table[k, L_X] = m.position[0]
            table[k, L_Z] = m.position[2]
            table[k, L_RADIUS] = self._influence_radius(m)
            table[k, L_AMPLITUDE] = m.amplitude
            table[k, L_BIAS] = m.elevation_bias
            table[k, L_EROSION] = m.erosion
            table[k, L_RIDGE] = m.ridge_factor

        # Infinities saturate to the nearest bound; NaN falls back to 0 before the clip.
        table = np.nan_to_num(table, nan=0.0)
        for column, name in ((L_AMPLITUDE, 'amplitude'), (L_BIAS, 'elevation_bias'),
                             (L_EROSION, 'erosion'), (L_RIDGE, 'ridge_factor')):
            lo, hi = bounds[name]
            table[:, column] = np.clip(table[:, column], lo, hi)
        return table

    def grid_coordinates(self) -> tuple:
        """The x (per column) and z (per row) sample coordinates."""
        xs = np.linspace(-self.width / 2.0, self.width / 2.0, self.columns)
        zs = np.linspace(-self.depth / 2.0, self.depth / 2.0, self.rows)
        return xs, zs

    def base_relief(self, x: float, z: float, exaggeration: float = DEFAULTS.EXAGGERATION) -> float:
        """Base noise height at (x, z) with no location influence."""
        s = self.settings
        base = self.noise.fractal(
            x * s['base_noise_scale'], z * s['base_noise_scale'],
            s['base_noise_octaves'], s['base_noise_lacunarity'], s['base_noise_gain'], 1.0
        )
        return (base - 0.5) * s['base_relief_scale'] * exaggeration

    def sample_height(self, x: float, z: float, features) -> float:
        """Height at an arbitrary point, using the same kernel as generate()."""
        return _height_at(
            self.seed, float(x), float(z),
            self.location_table(features), self._kernel_params(features.exaggeration)
        )

    def colorize(self, xs: np.ndarray, heights: np.ndarray, features) -> np.ndarray:
        """Chroma shift across the grid width, brightened by clamped height."""
        s = self.settings
        x_norm = (xs + self.width / 2.0) / self.width
        base = features.chroma_shift(np.broadcast_to(x_norm, heights.shape))
        t = np.clip((heights + s['height_tint_offset']) / s['height_tint_span'], 0.0, 1.0)
        return color_maps.sanitize_colors(color_maps.offset_lightness(base, t * s['height_tint_gain']))

    def generate(self, features) -> HeightField:
        """
        Samples every grid vertex and returns fresh position and color buffers.
        """
        start_time = time.perf_counter()
        xs, zs = self.grid_coordinates()
        table = self.location_table(features)

        heights = _height_field_kernel(self.seed, xs, zs, table, self._kernel_params(features.exaggeration))

        x_grid, z_grid = np.meshgrid(xs, zs)
        positions = np.stack([x_grid, heights, z_grid], axis=-1).astype(np.float32).reshape(-1)
        colors = self.colorize(xs, heights, features).astype(np.float32).reshape(-1)
        positions.flags.writeable = False
        colors.flags.writeable = False

        elapsed = time.perf_counter() - start_time
        self.logger.info(
            f"Height field synthesized: {self.columns * self.rows} vertices, "
            f"{len(table)} influences, h in [{heights.min():.2f}, {heights.max():.2f}] "
            f"({elapsed:.2f} s)"
        )
        return HeightField(
            positions=positions,
            colors=colors,
            columns=self.columns,
            rows=self.rows,
            width=self.width,
            depth=self.depth,
        )
