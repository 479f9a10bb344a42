"""Tests for memoria.core.benchmark: random benchmark predictors."""

import numpy as np
import pytest

from memoria.core.benchmark import generate_random_benchmark
from memoria.exceptions import ValidationError
from memoria.types import RandomMode


def _lag1_autocorrelation(x):
    centered = x - x.mean()
    return np.sum(centered[1:] * centered[:-1]) / np.sum(centered ** 2)


class TestWhiteNoise:

    def test_length(self):
        assert generate_random_benchmark(50, "white_noise", random_state=0).shape == (50,)

    def test_moments(self):
        values = np.concatenate([
            generate_random_benchmark(1000, "white_noise", random_state=seed) for seed in range(20)
        ])
        assert abs(values.mean()) < 0.05
        assert abs(values.std() - 1.0) < 0.05

    def test_dotted_mode_name(self):
        a = generate_random_benchmark(10, "white.noise", random_state=3)
        b = generate_random_benchmark(10, RandomMode.WHITE_NOISE, random_state=3)
        np.testing.assert_array_equal(a, b)


class TestAutocorrelated:

    @pytest.mark.parametrize("seed", range(10))
    def test_values_in_unit_interval(self, seed):
        values = generate_random_benchmark(200, "autocorrelated", random_state=seed)
        assert values.min() >= 0.0
        assert values.max() <= 1.0
        assert values.shape == (200,)

    def test_lag1_autocorrelation_is_usually_present(self):
        hits = sum(
            abs(_lag1_autocorrelation(generate_random_benchmark(200, "autocorrelated", random_state=seed))) > 0.05
            for seed in range(100)
        )
        assert hits >= 95

    def test_seed_is_reproducible(self):
        a = generate_random_benchmark(100, "autocorrelated", random_state=11)
        b = generate_random_benchmark(100, "autocorrelated", random_state=11)
        np.testing.assert_array_equal(a, b)

    def test_accepts_random_state_instance(self):
        rng = np.random.RandomState(5)
        values = generate_random_benchmark(30, "autocorrelated", random_state=rng)
        assert values.shape == (30,)

    def test_short_series(self):
        values = generate_random_benchmark(3, "autocorrelated", random_state=0)
        assert values.shape == (3,)
        assert np.all((values >= 0) & (values <= 1))


class TestModes:

    def test_none_disables_benchmark(self):
        assert generate_random_benchmark(10, "none") is None

    def test_unknown_mode(self):
        with pytest.raises(ValidationError, match="random_mode"):
            generate_random_benchmark(10, "pink_noise")

    @pytest.mark.parametrize("n", [0, -5])
    def test_non_positive_length(self, n):
        with pytest.raises(ValidationError):
            generate_random_benchmark(n, "white_noise")
