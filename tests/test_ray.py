"""Unit tests for the ray module.

Tests cover:
- Ray dataclass, make_ray and ray_at
- Vector helpers (reflect, refract, Schlick, near_zero)
- Keyed Monte Carlo sampling (unit sphere, disk, cosine hemisphere)
"""

import numpy as np
import taichi as ti


class TestRayBasics:
    """Tests for Ray dataclass and basic operations."""

    def test_ray_at_positive_t(self):
        """Test ray_at computes the point along the ray."""
        from prism.core.ray import make_ray, ray_at, vec3

        result = ti.field(dtype=ti.math.vec3, shape=())

        @ti.kernel
        def test_kernel():
            ray = make_ray(vec3(1.0, 2.0, 3.0), vec3(1.0, 0.0, 0.0), 550.0)
            result[None] = ray_at(ray, 5.0)

        test_kernel()
        r = result[None]
        assert abs(r[0] - 6.0) < 1e-6
        assert abs(r[1] - 2.0) < 1e-6
        assert abs(r[2] - 3.0) < 1e-6

    def test_make_ray_carries_wavelength_and_interval(self):
        """Test that make_ray stores the wavelength and default interval."""
        from prism.core.ray import T_MAX, T_MIN, make_ray, vec3

        wavelength = ti.field(dtype=ti.f32, shape=())
        t_min = ti.field(dtype=ti.f32, shape=())
        t_max = ti.field(dtype=ti.f32, shape=())

        @ti.kernel
        def test_kernel():
            ray = make_ray(vec3(0.0), vec3(0.0, 0.0, -1.0), 612.5)
            wavelength[None] = ray.wavelength
            t_min[None] = ray.t_min
            t_max[None] = ray.t_max

        test_kernel()
        assert abs(wavelength[None] - 612.5) < 1e-4
        assert abs(t_min[None] - T_MIN) < 1e-9
        assert t_max[None] == np.float32(T_MAX)


class TestVectorUtilities:
    """Tests for reflection, refraction and Fresnel helpers."""

    def test_reflect(self):
        """Test reflection of a 45 degree ray off a horizontal surface."""
        from prism.core.ray import reflect, vec3

        result = ti.field(dtype=ti.math.vec3, shape=())

        @ti.kernel
        def test_kernel():
            result[None] = reflect(vec3(1.0, -1.0, 0.0), vec3(0.0, 1.0, 0.0))

        test_kernel()
        r = result[None]
        assert abs(r[0] - 1.0) < 1e-6
        assert abs(r[1] - 1.0) < 1e-6
        assert abs(r[2]) < 1e-6

    def test_refract_obeys_snell(self):
        """Test that the refracted direction satisfies n1 sin1 = n2 sin2."""
        from prism.core.ray import refract, vec3

        result = ti.field(dtype=ti.math.vec3, shape=())
        eta = 1.0 / 1.5

        @ti.kernel
        def test_kernel():
            incident = vec3(ti.sin(0.5), -ti.cos(0.5), 0.0)
            result[None] = refract(incident, vec3(0.0, 1.0, 0.0), eta)

        test_kernel()
        r = result[None].to_numpy()
        assert abs(np.linalg.norm(r) - 1.0) < 1e-5
        assert abs(r[0] - eta * np.sin(0.5)) < 1e-5
        assert r[1] < 0.0

    def test_refract_total_internal_reflection(self):
        """Test that refract returns the zero vector beyond the critical angle."""
        from prism.core.ray import refract, vec3

        result = ti.field(dtype=ti.math.vec3, shape=())

        @ti.kernel
        def test_kernel():
            incident = ti.math.normalize(vec3(1.0, -0.2, 0.0))
            result[None] = refract(incident, vec3(0.0, 1.0, 0.0), 1.5)

        test_kernel()
        assert np.allclose(result[None].to_numpy(), 0.0)

    def test_schlick_fresnel(self):
        """Test Schlick at normal incidence (R0) and grazing incidence (1)."""
        from prism.core.ray import schlick_fresnel

        normal = ti.field(dtype=ti.f32, shape=())
        grazing = ti.field(dtype=ti.f32, shape=())

        @ti.kernel
        def test_kernel():
            normal[None] = schlick_fresnel(1.0, 1.5)
            grazing[None] = schlick_fresnel(0.0, 1.5)

        test_kernel()
        assert abs(normal[None] - 0.04) < 1e-6
        assert abs(grazing[None] - 1.0) < 1e-6

    def test_near_zero(self):
        """Test near_zero on tiny and regular vectors."""
        from prism.core.ray import near_zero, vec3

        tiny = ti.field(dtype=ti.i32, shape=())
        regular = ti.field(dtype=ti.i32, shape=())

        @ti.kernel
        def test_kernel():
            tiny[None] = near_zero(vec3(1e-9, -1e-9, 0.0))
            regular[None] = near_zero(vec3(1e-9, 0.1, 0.0))

        test_kernel()
        assert tiny[None] == 1
        assert regular[None] == 0


class TestRandomSampling:
    """Tests for keyed sampling routines."""

    def test_random_in_unit_sphere_bounds(self):
        """Test that points lie inside the unit ball."""
        from prism.core.ray import random_in_unit_sphere

        n = 5000
        out = ti.Vector.field(3, dtype=ti.f32, shape=n)

        @ti.kernel
        def test_kernel():
            for i in range(n):
                out[i] = random_in_unit_sphere(i, 0)

        test_kernel()
        norms = np.linalg.norm(out.to_numpy(), axis=1)
        assert norms.max() <= 1.0 + 1e-5

    def test_random_unit_vector_is_isotropic(self):
        """Test unit length and a near-zero mean direction."""
        from prism.core.ray import random_unit_vector
        from prism.core.rng import hash_combine

        n = 20000
        out = ti.Vector.field(3, dtype=ti.f32, shape=n)

        @ti.kernel
        def test_kernel():
            for i in range(n):
                out[i] = random_unit_vector(hash_combine(5, i), 0)

        test_kernel()
        v = out.to_numpy()
        np.testing.assert_allclose(np.linalg.norm(v, axis=1), 1.0, atol=1e-5)
        assert np.all(np.abs(v.mean(axis=0)) < 0.03)

    def test_random_in_unit_disk(self):
        """Test that disk samples have z = 0 and radius <= 1."""
        from prism.core.ray import random_in_unit_disk

        n = 5000
        out = ti.Vector.field(3, dtype=ti.f32, shape=n)

        @ti.kernel
        def test_kernel():
            for i in range(n):
                out[i] = random_in_unit_disk(i, 2)

        test_kernel()
        v = out.to_numpy()
        assert np.all(v[:, 2] == 0.0)
        assert np.linalg.norm(v[:, :2], axis=1).max() <= 1.0 + 1e-5

    def test_cosine_hemisphere_mean_cosine(self):
        """Test E[cos theta] = 2/3 for cosine-weighted sampling."""
        from prism.core.ray import sample_cosine_hemisphere, vec3
        from prism.core.rng import hash_combine

        n = 50000
        cosines = ti.field(dtype=ti.f32, shape=n)

        @ti.kernel
        def test_kernel():
            normal = ti.math.normalize(vec3(0.3, 0.8, -0.2))
            for i in range(n):
                direction, _pdf = sample_cosine_hemisphere(normal, hash_combine(11, i), 0)
                cosines[i] = ti.math.dot(direction, normal)

        test_kernel()
        c = cosines.to_numpy()
        assert c.min() >= -1e-5
        assert abs(c.mean() - 2.0 / 3.0) < 0.01
