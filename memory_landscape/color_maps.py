# memory_landscape/color_maps.py

"""
================================================================================
SHARED COLOR MAPPING UTILITIES
================================================================================
This module contains the color helpers shared by the feature mapping stage and
both synthesis engines: hex parsing, the global chroma shift gradient, RGB
blending and an HSL lightness offset for height-based shading.

It is designed to be a pure, stateless utility working on floats in [0, 1].
Every function accepts either a single color/scalar or a NumPy array of them.
================================================================================
"""
import numpy as np

from . import config as DEFAULTS

# Used when an authored color cannot be parsed.
FALLBACK_COLOR = (1.0, 1.0, 1.0)


def hex_to_rgb(value: str) -> tuple:
    """Parses '#rrggbb' (or '#rgb') into an (r, g, b) tuple of floats in [0, 1]."""
    text = str(value).strip().lstrip('#')
    if len(text) == 3:
        text = ''.join(ch * 2 for ch in text)
    if len(text) != 6:
        return FALLBACK_COLOR
    try:
        channels = [int(text[i:i + 2], 16) for i in (0, 2, 4)]
    except ValueError:
        return FALLBACK_COLOR
    return tuple(c / 255.0 for c in channels)


def lerp_rgb(a, b, t):
    """Linear blend between two colors (or arrays of colors)."""
    a = np.asarray(a, dtype=np.float64)
    b = np.asarray(b, dtype=np.float64)
    t = np.asarray(t, dtype=np.float64)
    if t.ndim:
        t = t[..., np.newaxis]
    return a + (b - a) * t


def _channel(v, out_min: float, out_max: float):
    return out_min + np.clip(v, 0.0, 1.0) * (out_max - out_min)


def chroma_shift(
    x_norm,
    red_range: tuple = DEFAULTS.CHROMA_RED_RANGE,
    green_range: tuple = DEFAULTS.CHROMA_GREEN_RANGE,
    blue_range: tuple = DEFAULTS.CHROMA_BLUE_RANGE,
) -> np.ndarray:
    """
    Maps a normalized horizontal position to a warm (left) to cool (right)
    gradient. Returns shape (3,) for a scalar input, (..., 3) for arrays.
    """
    x = np.nan_to_num(np.asarray(x_norm, dtype=np.float64), nan=0.5)
    return np.stack([
        _channel(1.0 - x, *red_range),
        _channel(x, *green_range),
        _channel(x, *blue_range),
    ], axis=-1)


# --- HSL Conversion ---

def rgb_to_hsl(rgb) -> tuple:
    """Vectorized RGB -> HSL. Returns (h, s, l) arrays, each in [0, 1]."""
    rgb = np.asarray(rgb, dtype=np.float64)
    r, g, b = rgb[..., 0], rgb[..., 1], rgb[..., 2]
    max_c = np.max(rgb, axis=-1)
    min_c = np.min(rgb, axis=-1)
    lightness = (max_c + min_c) / 2.0
    delta = max_c - min_c
    chromatic = delta > 0

    # Saturation depends on which half of the lightness range we are in.
    denom = np.where(lightness <= 0.5, max_c + min_c, 2.0 - max_c - min_c)
    saturation = np.divide(delta, denom, out=np.zeros_like(delta), where=chromatic & (denom != 0))

    safe_delta = np.where(chromatic, delta, 1.0)
    hue = np.select(
        [max_c == r, max_c == g],
        [((g - b) / safe_delta) + np.where(g < b, 6.0, 0.0), ((b - r) / safe_delta) + 2.0],
        default=((r - g) / safe_delta) + 4.0,
    ) / 6.0
    hue = np.where(chromatic, hue, 0.0)
    return hue, saturation, lightness


def _hue_to_rgb(p, q, t):
    t = np.mod(t, 1.0)
    return np.select(
        [t < 1.0 / 6.0, t < 0.5, t < 2.0 / 3.0],
        [p + (q - p) * 6.0 * t, q, p + (q - p) * 6.0 * (2.0 / 3.0 - t)],
        default=p,
    )


def hsl_to_rgb(hue, saturation, lightness) -> np.ndarray:
    """Vectorized HSL -> RGB, the inverse of rgb_to_hsl."""
    hue = np.mod(np.asarray(hue, dtype=np.float64), 1.0)
    saturation = np.clip(np.asarray(saturation, dtype=np.float64), 0.0, 1.0)
    lightness = np.clip(np.asarray(lightness, dtype=np.float64), 0.0, 1.0)

    q = np.where(lightness <= 0.5, lightness * (1.0 + saturation), lightness + saturation - lightness * saturation)
    p = 2.0 * lightness - q
    rgb = np.stack([
        _hue_to_rgb(p, q, hue + 1.0 / 3.0),
        _hue_to_rgb(p, q, hue),
        _hue_to_rgb(p, q, hue - 1.0 / 3.0),
    ], axis=-1)
    # Achromatic colors are pure gray at their lightness.
    gray = np.stack([lightness] * 3, axis=-1)
    return np.where(np.asarray(saturation == 0)[..., np.newaxis], gray, rgb)


def offset_lightness(rgb, delta) -> np.ndarray:
    """Shifts the HSL lightness of each color by `delta`, clamping to [0, 1]."""
    hue, saturation, lightness = rgb_to_hsl(rgb)
    return hsl_to_rgb(hue, saturation, lightness + np.asarray(delta, dtype=np.float64))


def sanitize_colors(rgb) -> np.ndarray:
    """Replaces NaN/Inf and clamps every channel into [0, 1]."""
    return np.clip(np.nan_to_num(np.asarray(rgb, dtype=np.float64), nan=0.0, posinf=1.0, neginf=0.0), 0.0, 1.0)
