"""Unit tests for the counter-based random number streams.

Tests cover:
- Determinism of the hash (same key and dimension, same value)
- Range and uniformity of random_float
- Independence of neighbouring keys and dimensions
- Golden-ratio sequence spacing
"""

import numpy as np
import taichi as ti


class TestRandomFloat:
    """Tests for random_float and hash_combine."""

    def test_same_key_gives_same_value(self):
        """Test that a key/dimension pair always maps to the same float."""
        from prism.core.rng import hash_combine, random_float

        first = ti.field(dtype=ti.f32, shape=64)
        second = ti.field(dtype=ti.f32, shape=64)

        @ti.kernel
        def fill(out: ti.template()):
            for i in range(64):
                out[i] = random_float(hash_combine(7, i), 3)

        fill(first)
        fill(second)
        np.testing.assert_array_equal(first.to_numpy(), second.to_numpy())

    def test_values_in_unit_interval(self):
        """Test that every value lies in [0, 1)."""
        from prism.core.rng import random_float

        n = 100_000
        values = ti.field(dtype=ti.f32, shape=n)

        @ti.kernel
        def fill():
            for i in range(n):
                values[i] = random_float(i, 0)

        fill()
        v = values.to_numpy()
        assert v.min() >= 0.0
        assert v.max() < 1.0

    def test_uniform_histogram(self):
        """Test that values are spread evenly over 10 bins (chi-square)."""
        from prism.core.rng import hash_combine, random_float

        n = 100_000
        values = ti.field(dtype=ti.f32, shape=n)

        @ti.kernel
        def fill():
            for i in range(n):
                values[i] = random_float(hash_combine(1234, i), 5)

        fill()
        counts, _ = np.histogram(values.to_numpy(), bins=10, range=(0.0, 1.0))
        expected = n / 10
        chi2 = float(np.sum((counts - expected) ** 2 / expected))
        # 9 degrees of freedom; the 99.9th percentile is 27.9
        assert chi2 < 27.9

    def test_dimensions_are_uncorrelated(self):
        """Test that two dimensions of the same key are not correlated."""
        from prism.core.rng import hash_combine, random_float

        n = 50_000
        a = ti.field(dtype=ti.f32, shape=n)
        b = ti.field(dtype=ti.f32, shape=n)

        @ti.kernel
        def fill():
            for i in range(n):
                key = hash_combine(99, i)
                a[i] = random_float(key, 0)
                b[i] = random_float(key, 1)

        fill()
        corr = np.corrcoef(a.to_numpy(), b.to_numpy())[0, 1]
        assert abs(corr) < 0.03

    def test_different_seeds_differ(self):
        """Test that changing the seed changes the stream."""
        from prism.core.rng import hash_combine, random_float

        n = 1000
        out = ti.field(dtype=ti.f32, shape=(2, n))

        @ti.kernel
        def fill():
            for s, i in ti.ndrange(2, n):
                out[s, i] = random_float(hash_combine(s, i), 0)

        fill()
        v = out.to_numpy()
        assert np.mean(v[0] == v[1]) < 0.01


class TestGoldenRatioSequence:
    """Tests for the golden-ratio additive recurrence."""

    def test_first_points(self):
        """Test that point k is frac(k / phi) to float precision."""
        from prism.core.rng import golden_ratio_sequence

        n = 16
        out = ti.field(dtype=ti.f32, shape=n)

        @ti.kernel
        def fill():
            for i in range(n):
                out[i] = golden_ratio_sequence(i)

        fill()
        phi = (1.0 + 5.0**0.5) / 2.0
        expected = np.mod(np.arange(n) / phi, 1.0)
        np.testing.assert_allclose(out.to_numpy(), expected, atol=1e-5)

    def test_points_are_well_spread(self):
        """Test that the first 100 points leave no gap wider than 3/100."""
        from prism.core.rng import golden_ratio_sequence

        n = 100
        out = ti.field(dtype=ti.f32, shape=n)

        @ti.kernel
        def fill():
            for i in range(n):
                out[i] = golden_ratio_sequence(i)

        fill()
        points = np.sort(out.to_numpy())
        gaps = np.diff(np.concatenate([points, [points[0] + 1.0]]))
        assert gaps.max() < 3.0 / n
