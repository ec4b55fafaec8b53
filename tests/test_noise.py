# tests/test_noise.py

import numpy as np

from memory_landscape.noise import ValueNoise, hash_2d, unit_random


def test_hash_is_deterministic_and_seeded():
    assert hash_2d(1, 3, 4) == hash_2d(1, 3, 4)
    assert hash_2d(1, 3, 4) != hash_2d(2, 3, 4)
    assert 0 <= hash_2d(99, -17, 123456) < 2 ** 32


def test_value_noise_range_and_repeatability():
    noise = ValueNoise(seed=1337)
    samples = [noise.value(x * 0.37, x * 0.11) for x in range(-200, 200)]
    assert all(0.0 <= s < 1.0 for s in samples)
    assert samples == [ValueNoise(seed=1337).value(x * 0.37, x * 0.11) for x in range(-200, 200)]


def test_value_noise_is_continuous():
    noise = ValueNoise(seed=5)
    a = noise.value(10.5, 3.25)
    b = noise.value(10.5 + 1e-6, 3.25)
    assert abs(a - b) < 1e-4


def test_value_noise_hits_lattice_values_at_integers():
    noise = ValueNoise(seed=3)
    assert noise.value(4.0, 9.0) == (noise.hash(4, 9) % 10000) / 10000


def test_fractal_noise_stays_in_unit_range():
    noise = ValueNoise(seed=11)
    for x in np.linspace(-50, 50, 37):
        v = noise.fractal(x, x * 0.5, octaves=5, lacunarity=2.0, gain=0.48)
        assert 0.0 <= v <= 1.0
        v3 = noise.fractal3(x, 1.0, -x, octaves=3, lacunarity=2.3, gain=0.54)
        assert 0.0 <= v3 <= 1.0


def test_unit_random_is_a_pure_function_of_its_keys():
    values = {unit_random(8, a, b) for a in range(10) for b in range(10)}
    assert all(0.0 <= v < 1.0 for v in values)
    assert len(values) > 50
    assert unit_random(8, 2, 3) == ValueNoise(8).random(2, 3)
