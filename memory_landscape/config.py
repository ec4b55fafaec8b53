# memory_landscape/config.py

"""
================================================================================
INTERNAL DEFAULT CONFIGURATION
================================================================================
This module contains the default, fallback internal constants for the feature
mapping pipeline and both field-synthesis engines. These values are used if
they are not explicitly provided by the caller's configuration.

DO NOT MODIFY THIS FILE FOR A SPECIFIC LANDSCAPE.
Instead, pass a configuration dictionary to map_journey_to_features() or to
the engine instances. Keys are the lower-case names of the constants below.
================================================================================
"""

from .schema import DocumentKind, LanguageTag

# --- Noise Generation ---
DEFAULT_SEED = 42
# Offset applied to the master seed for the point-cloud variant so the planet
# and the flat terrain do not share the same lattice values.
SPHERE_SEED_OFFSET = 7919

# --- Layout: Language Axis ---
# languageBalance [-1, 1] (zh -> en) is remapped onto this horizontal range.
LANGUAGE_X_RANGE = (-150.0, 150.0)
LANGUAGE_AXIS_WEIGHT = 1.0

# --- Layout: Time Spiral ---
# Each location's representative year is normalized against the observed
# min/max year and wound onto a spiral.
SPIRAL_REVOLUTIONS = 2.2
SPIRAL_RADIUS_RANGE = (0.0, 120.0)
SPIRAL_AXIS_WEIGHT = 0.35
# Used when no location carries a usable year.
FALLBACK_ERA = (2000, 2000)

# --- Layout: Deterministic Index Jitter ---
# x += sin(index * JITTER_X_FREQUENCY) * JITTER_X_AMPLITUDE
# z += cos(index * JITTER_Z_FREQUENCY) * JITTER_Z_AMPLITUDE
JITTER_X_FREQUENCY = 2.17
JITTER_Z_FREQUENCY = 1.31
JITTER_X_AMPLITUDE = 8.0
JITTER_Z_AMPLITUDE = 6.0
VISIT_JITTER_SCALE = 1.5

# --- Terrain Coefficients ---
# elevationBias = significance * w1 + intensity * w2 + valence * w3
ELEVATION_BIAS_WEIGHTS = (18.0, 14.0, 10.0)
AMPLITUDE_RANGE = (6.0, 26.0)
# Roughness falls as the stay gets longer, so the range is reversed.
DURATION_MAX_YEARS = 20.0
ROUGHNESS_RANGE = (0.35, 0.08)
EROSION_RANGE = (0.15, 0.85)
RIDGE_RANGE = (0.3, 0.85)

# The documented range every coefficient is clamped into after mapping.
COEFFICIENT_BOUNDS = {
    "elevation_bias": (-10.0, 42.0),
    "amplitude": (6.0, 26.0),
    "roughness": (0.08, 0.35),
    "erosion": (0.15, 0.85),
    "ridge_factor": (0.3, 0.85),
}

# --- Display Scalars (consumed by the label/halo collaborators) ---
LABEL_OPACITY_RANGE = (0.35, 0.95)
HALO_OPACITY_RANGE = (0.025, 0.1)
LABEL_SCALE_RANGE = (16.0, 26.0)
# Children are drawn smaller and fainter than their hub.
CHILD_DISPLAY_SCALE = 0.6

# --- Event Ring Placement ---
RING_BASE_RADIUS = 6.0
RING_INTENSITY_SCALE = 8.0
# Radians of ring rotation per unit of languageBalance.
RING_PHASE_SHIFT = 0.785398
RING_VALENCE_LIFT = 2.0
RING_SENTIMENT_LIFT = 3.0
# Fraction of the hub's elevation bias inherited by its events.
CHILD_BIAS_SCALE = 0.5

# --- Document-Kind Modifier Table ---
# Typology changes topology: each kind of document reshapes the terrain its
# event raises. Must contain every DocumentKind.
DOCUMENT_KIND_MODIFIERS = {
    DocumentKind.PHOTO: {
        "amplitude_scale": 1.15, "roughness_scale": 0.8,
        "ridge_scale": 0.9, "sentiment_bias": 4.0,
    },
    DocumentKind.DOCUMENT: {
        "amplitude_scale": 0.9, "roughness_scale": 1.1,
        "ridge_scale": 1.2, "sentiment_bias": 2.0,
    },
    DocumentKind.LETTER: {
        "amplitude_scale": 1.0, "roughness_scale": 0.7,
        "ridge_scale": 0.75, "sentiment_bias": 6.0,
    },
    DocumentKind.RECEIPT: {
        "amplitude_scale": 0.7, "roughness_scale": 1.4,
        "ridge_scale": 1.35, "sentiment_bias": 1.0,
    },
}

# Color tint per language tag, blended into the hub color at 'strength'.
LANGUAGE_TINTS = {
    LanguageTag.ZH: {"color": (0.85, 0.28, 0.3), "strength": 0.35},
    LanguageTag.EN: {"color": (0.25, 0.45, 0.9), "strength": 0.35},
    LanguageTag.MIXED: {"color": (0.62, 0.4, 0.78), "strength": 0.25},
}

# --- Connections ---
DEFAULT_CONNECTION_WEIGHT = 0.5
CURVATURE_RANGE = (3.0, 16.0)
CONNECTION_OPACITY_RANGE = (0.18, 0.6)

# --- Global Color Function (warm left -> cool right) ---
CHROMA_RED_RANGE = (0.12, 0.4)
CHROMA_GREEN_RANGE = (0.08, 0.22)
CHROMA_BLUE_RANGE = (0.18, 0.5)

# Global multiplier for relief "drama".
EXAGGERATION = 1.35

# --- Height-Field Grid ---
TERRAIN_WIDTH = 320.0
TERRAIN_DEPTH = 240.0
TERRAIN_SEGMENTS = (200, 200)

# Base relief: (fractal(x*s1, z*s1, 5, 2.0, 0.48, 1.0) - 0.5) * scale * exaggeration
BASE_NOISE_SCALE = 0.018
BASE_NOISE_OCTAVES = 5
BASE_NOISE_LACUNARITY = 2.0
BASE_NOISE_GAIN = 0.48
BASE_RELIEF_SCALE = 14.0

# Secondary, higher-frequency layer used to fold the "ridge" signal.
RIDGE_NOISE_SCALE = 0.065
RIDGE_NOISE_OCTAVES = 3
RIDGE_NOISE_LACUNARITY = 2.0
RIDGE_NOISE_GAIN = 0.52

# Influence radii in world units.
RESIDENCE_INFLUENCE_RADIUS = 46.0
VISIT_INFLUENCE_RADIUS = 28.0
EVENT_INFLUENCE_RADIUS = 18.0
INFLUENCE_FALLOFF_POWER = 2.2
ELEVATION_BIAS_GAIN = 0.6
EROSION_GAIN = 0.4
EROSION_FLOOR = 0.7

# Positive relief is sharpened by h ** CLIFF_EXPONENT. Set to 1.0 to disable.
APPLY_CLIFF_CURVE = True
CLIFF_EXPONENT = 1.12

# Any sample outside +/- this bound (or NaN) is clamped back into it.
MAX_ABS_HEIGHT = 10000.0

# Height-based luminance: t = clamp((h + offset) / span, 0, 1), lightness += t * gain
HEIGHT_TINT_OFFSET = 30.0
HEIGHT_TINT_SPAN = 60.0
HEIGHT_TINT_GAIN = 0.22

# --- Point-Cloud Sphere ---
SPHERE_BASE_RADIUS = 80.0
SPHERE_POINT_COUNT = 45000
SPHERE_X_HALF_RANGE = 150.0
SPHERE_Z_HALF_RANGE = 120.0
# Latitude band (radians as fractions of pi) that keeps memories off the poles.
SPHERE_LATITUDE_BAND = (0.2, 0.8)
ANGULAR_INFLUENCE_RADIUS = 0.9
FIELD_NORMALIZER = 0.45
FIELD_CLAMP = (0.0, 2.0)
SIGNED_FIELD_CLAMP = (-2.0, 2.0)

# Mass of a location: amp*a + sig*b + |ridge|*c + rough*d + e
MASS_WEIGHTS = (0.5, 16.0, 10.0, 8.0, 12.0)

# Silhouette = field * f + signed * s + macro * m + detail * d
SILHOUETTE_GAINS = (26.0, 12.0, 12.0, 4.0)
MACRO_NOISE_SCALE = (0.18, 0.24, 4.7)
DETAIL_NOISE_SCALE = (1.7, 1.3, 19.1)
SPHERE_NOISE_OCTAVES = 5
SPHERE_NOISE_LACUNARITY = 2.3
SPHERE_NOISE_GAIN = 0.54

SPHERE_HEIGHT_TINT_SPAN = 35.0
SPHERE_HEIGHT_TINT_GAIN = 0.3

# Cluster halos around each location.
CLUSTER_BASE_COUNT = 800
CLUSTER_COUNT_WEIGHTS = (30.0, 200.0, 150.0)
CLUSTER_JITTER = (0.4, 0.35)
CLUSTER_LIFT = 6.0
CLUSTER_GAINS = (20.0, 9.0, 8.0, 12.0)
CLUSTER_HIGHLIGHT = (1.0, 0.95, 1.0)
CLUSTER_NOISE_SCALE = (2.4, 2.7)

# Per-frame jitter pass.
JITTER_TIME_SCALE = 0.4
JITTER_AMPLITUDE = 0.5

# Card anchors float slightly above the mean surface.
SURFACE_ANCHOR_LIFT = 12.0
