# memory_landscape/noise.py

"""
================================================================================
NOISE GENERATION UTILITIES
================================================================================
This module provides a seedable, hash-based value noise in 2D and 3D, with a
fractal (multi-octave) summation mode. It is designed to be a pure, stateless
utility: the seed is an explicit argument of every kernel, and ValueNoise is
a small value object that carries one.

Data Contract:
---------------
- Inputs:
    - seed: An integer seed (only the low 32 bits are used).
    - x, y (, z): Float coordinates.
    - octaves, lacunarity, gain, base_frequency: Standard fractal parameters.
- Outputs:
    - hash_*: An unsigned 32-bit integer.
    - value_noise_*: A float in [0, 1).
    - fractal_noise_*: A float approximately in [0, 1].
- Side Effects: None.
- Invariants: Identical seed and coordinates always produce bit-identical
  results. There is no global or module-level seed state.
================================================================================
"""

from dataclasses import dataclass

import numpy as np
from numba import njit

# Multiplicative mixing constants (odd, large, pairwise unrelated).
_PRIME_X = 374761393
_PRIME_Y = 668265263
_PRIME_Z = 1440662683
_PRIME_MIX = 1274126177
_RANDOM_SALT = 0x2545F491

# Lattice values are quantized to this many steps in [0, 1).
_LATTICE_STEPS = 10000


@njit
def _rotl32(h, r):
    "32-bit left rotation."
    return ((h << r) | (h >> (32 - r))) & 0xFFFFFFFF


@njit
def _finalize(h, seed):
    """Folds the seed in and decorrelates the low bits."""
    h ^= seed & 0xFFFFFFFF
    h = _rotl32(h, 13)
    h = (h * _PRIME_MIX) & 0xFFFFFFFF
    h ^= h >> 16
    return h


@njit
def hash_2d(seed, ix, iy):
    """Deterministic u32 hash of two integer lattice coordinates."""
    h = ((ix & 0xFFFFFFFF) * _PRIME_X) & 0xFFFFFFFF
    h = (h + (iy & 0xFFFFFFFF) * _PRIME_Y) & 0xFFFFFFFF
    return _finalize(h, seed)


@njit
def hash_3d(seed, ix, iy, iz):
    """Deterministic u32 hash of three integer lattice coordinates."""
    h = ((ix & 0xFFFFFFFF) * _PRIME_X) & 0xFFFFFFFF
    h = (h + (iy & 0xFFFFFFFF) * _PRIME_Y) & 0xFFFFFFFF
    h = (h + (iz & 0xFFFFFFFF) * _PRIME_Z) & 0xFFFFFFFF
    return _finalize(h, seed)


@njit
def _smoothstep(t):
    "3t^2 - 2t^3"
    return t * t * (3.0 - 2.0 * t)


@njit
def _lerp(a, b, t):
    "Linear interpolation."
    return a + t * (b - a)


@njit
def _lattice_2d(seed, ix, iy):
    return (hash_2d(seed, ix, iy) % _LATTICE_STEPS) / _LATTICE_STEPS


@njit
def _lattice_3d(seed, ix, iy, iz):
    return (hash_3d(seed, ix, iy, iz) % _LATTICE_STEPS) / _LATTICE_STEPS


@njit
def unit_random(seed, a, b):
    """A deterministic value in [0, 1) keyed by two integers."""
    return (hash_3d(seed, a, b, _RANDOM_SALT) % _LATTICE_STEPS) / _LATTICE_STEPS


@njit
def value_noise_2d(seed, x, y):
    """
    Smoothstep-interpolated value noise. The four surrounding lattice points
    are hashed and blended on both axes.
    """
    xi = int(np.floor(x))
    yi = int(np.floor(y))
    u = _smoothstep(x - xi)
    v = _smoothstep(y - yi)

    r00 = _lattice_2d(seed, xi, yi)
    r10 = _lattice_2d(seed, xi + 1, yi)
    r01 = _lattice_2d(seed, xi, yi + 1)
    r11 = _lattice_2d(seed, xi + 1, yi + 1)

    x1 = _lerp(r00, r10, u)
    x2 = _lerp(r01, r11, u)
    return _lerp(x1, x2, v)


@njit
def value_noise_3d(seed, x, y, z):
    """Trilinear counterpart of value_noise_2d."""
    xi = int(np.floor(x))
    yi = int(np.floor(y))
    zi = int(np.floor(z))
    u = _smoothstep(x - xi)
    v = _smoothstep(y - yi)
    w = _smoothstep(z - zi)

    x00 = _lerp(_lattice_3d(seed, xi, yi, zi), _lattice_3d(seed, xi + 1, yi, zi), u)
    x10 = _lerp(_lattice_3d(seed, xi, yi + 1, zi), _lattice_3d(seed, xi + 1, yi + 1, zi), u)
    x01 = _lerp(_lattice_3d(seed, xi, yi, zi + 1), _lattice_3d(seed, xi + 1, yi, zi + 1), u)
    x11 = _lerp(_lattice_3d(seed, xi, yi + 1, zi + 1), _lattice_3d(seed, xi + 1, yi + 1, zi + 1), u)

    return _lerp(_lerp(x00, x10, v), _lerp(x01, x11, v), w)


@njit
def fractal_noise_2d(seed, x, y, octaves, lacunarity, gain, base_frequency):
    """
    Sums `octaves` layers of value noise. Each layer multiplies the frequency
    by `lacunarity` and the amplitude by `gain`; the sum is normalized by the
    total amplitude so the result stays approximately in [0, 1].
    """
    amplitude = 1.0
    frequency = base_frequency * 1.0
    total = 0.0
    norm = 0.0
    for _ in range(octaves):
        total += value_noise_2d(seed, x * frequency, y * frequency) * amplitude
        norm += amplitude
        amplitude *= gain
        frequency *= lacunarity
    return total / max(norm, 1e-6)


@njit
def fractal_noise_3d(seed, x, y, z, octaves, lacunarity, gain, base_frequency):
    """3D counterpart of fractal_noise_2d."""
    amplitude = 1.0
    frequency = base_frequency * 1.0
    total = 0.0
    norm = 0.0
    for _ in range(octaves):
        total += value_noise_3d(seed, x * frequency, y * frequency, z * frequency) * amplitude
        norm += amplitude
        amplitude *= gain
        frequency *= lacunarity
    return total / max(norm, 1e-6)


@dataclass(frozen=True)
class ValueNoise:
    """A noise source bound to one seed. Cheap to construct and to copy."""
    seed: int = 1337

    def hash(self, ix: int, iy: int) -> int:
        return hash_2d(self.seed, ix, iy)

    def value(self, x: float, y: float) -> float:
        return value_noise_2d(self.seed, float(x), float(y))

    def fractal(self, x: float, y: float, octaves: int, lacunarity: float, gain: float, base_frequency: float = 1.0) -> float:
        return fractal_noise_2d(self.seed, float(x), float(y), int(octaves), float(lacunarity), float(gain), float(base_frequency))

    def value3(self, x: float, y: float, z: float) -> float:
        return value_noise_3d(self.seed, float(x), float(y), float(z))

    def fractal3(self, x: float, y: float, z: float, octaves: int, lacunarity: float, gain: float, base_frequency: float = 1.0) -> float:
        return fractal_noise_3d(self.seed, float(x), float(y), float(z), int(octaves), float(lacunarity), float(gain), float(base_frequency))

    def random(self, a: int, b: int) -> float:
        return unit_random(self.seed, a, b)
