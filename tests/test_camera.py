"""Unit tests for the thin-lens camera.

Tests cover:
- Camera basis and viewport setup
- Ray generation through the image centre and corners
- Thin-lens depth of field (focus plane convergence)
- Wavelength sampling
- Configuration validation
"""

import math

import numpy as np
import pytest
import taichi as ti


class TestSetup:
    """Tests for setup_camera."""

    def test_basis_is_orthonormal(self):
        from prism.camera.camera import Camera, get_camera_info, is_camera_ready, setup_camera

        setup_camera(Camera(look_from=(1.0, 2.0, 3.0), look_at=(0.0, 0.0, 0.0)), 1.5)
        info = get_camera_info()
        u, v, w = (np.array(info[k]) for k in ("u", "v", "w"))

        assert is_camera_ready()
        for vec in (u, v, w):
            assert np.linalg.norm(vec) == pytest.approx(1.0, abs=1e-5)
        assert abs(np.dot(u, v)) < 1e-5
        assert abs(np.dot(u, w)) < 1e-5
        np.testing.assert_allclose(w, np.array([1.0, 2.0, 3.0]) / np.sqrt(14.0), atol=1e-5)

    def test_viewport_matches_fov(self):
        """Test viewport height 2 tan(vfov / 2) at unit focus distance."""
        from prism.camera.camera import Camera, get_camera_info, setup_camera

        setup_camera(Camera(look_from=(0, 0, 0), look_at=(0, 0, -1), vfov=90.0), 2.0)
        info = get_camera_info()
        assert np.linalg.norm(info["vertical"]) == pytest.approx(2.0, abs=1e-5)
        assert np.linalg.norm(info["horizontal"]) == pytest.approx(4.0, abs=1e-5)

    def test_camera_aspect_ratio_takes_precedence(self):
        from prism.camera.camera import Camera, get_camera_info, setup_camera

        camera = Camera(look_from=(0, 0, 0), look_at=(0, 0, -1), vfov=90.0, aspect_ratio=1.0)
        setup_camera(camera, 2.0)
        assert np.linalg.norm(get_camera_info()["horizontal"]) == pytest.approx(2.0, abs=1e-5)

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"look_from": (0, 0, 0), "look_at": (0, 0, 0)},
            {"look_from": (0, 0, 0), "look_at": (0, 1, 0)},
            {"look_from": (0, 0, 0), "look_at": (0, 0, -1), "vfov": 0.0},
            {"look_from": (0, 0, 0), "look_at": (0, 0, -1), "vfov": 180.0},
            {"look_from": (0, 0, 0), "look_at": (0, 0, -1), "aperture": -1.0},
            {"look_from": (0, 0, 0), "look_at": (0, 0, -1), "focus_dist": 0.0},
            {"look_from": (0, 0), "look_at": (0, 0, -1)},
        ],
    )
    def test_invalid_configuration(self, kwargs):
        from prism.camera.camera import Camera, setup_camera

        with pytest.raises(ValueError):
            setup_camera(Camera(**kwargs), 1.0)

    def test_missing_aspect_ratio(self):
        from prism.camera.camera import Camera, setup_camera

        with pytest.raises(ValueError):
            setup_camera(Camera(look_from=(0, 0, 0), look_at=(0, 0, -1)))


class TestRays:
    """Tests for get_ray and get_ray_jittered."""

    def test_center_ray_points_at_target(self):
        from prism.camera.camera import Camera, get_ray, setup_camera

        setup_camera(Camera(look_from=(0, 0, 5), look_at=(0, 0, 0), vfov=60.0), 1.0)
        direction = ti.field(dtype=ti.math.vec3, shape=())
        origin = ti.field(dtype=ti.math.vec3, shape=())
        wavelength = ti.field(dtype=ti.f32, shape=())

        @ti.kernel
        def test_kernel():
            ray = get_ray(0.5, 0.5, 500.0, 0, 2)
            direction[None] = ray.direction
            origin[None] = ray.origin
            wavelength[None] = ray.wavelength

        test_kernel()
        np.testing.assert_allclose(direction[None].to_numpy(), [0, 0, -1], atol=1e-5)
        np.testing.assert_allclose(origin[None].to_numpy(), [0, 0, 5], atol=1e-5)
        assert wavelength[None] == pytest.approx(500.0)

    def test_corner_ray_angle(self):
        """Test that the top edge ray makes vfov / 2 with the view axis."""
        from prism.camera.camera import Camera, get_ray, setup_camera

        setup_camera(Camera(look_from=(0, 0, 0), look_at=(0, 0, -1), vfov=40.0), 1.0)
        direction = ti.field(dtype=ti.math.vec3, shape=())

        @ti.kernel
        def test_kernel():
            direction[None] = get_ray(0.5, 1.0, 550.0, 0, 2).direction

        test_kernel()
        d = direction[None].to_numpy()
        angle = math.degrees(math.atan2(d[1], -d[2]))
        assert angle == pytest.approx(20.0, abs=1e-3)

    def test_jittered_rays_stay_in_pixel(self):
        """Test that jittered rays land inside their pixel on the viewport."""
        from prism.camera.camera import Camera, get_ray_jittered, setup_camera
        from prism.core.rng import hash_combine

        setup_camera(Camera(look_from=(0, 0, 0), look_at=(0, 0, -1), vfov=90.0), 1.0)
        n = 1000
        points = ti.Vector.field(3, dtype=ti.f32, shape=n)

        @ti.kernel
        def test_kernel():
            for k in range(n):
                ray = get_ray_jittered(3, 1, 4, 4, 550.0, hash_combine(8, k))
                # Viewport plane is z = -1 for a unit focus distance
                points[k] = ray.origin + ray.direction / -ray.direction.z

        test_kernel()
        p = points.to_numpy()
        # Viewport spans [-1, 1]; pixel (3, 1) of 4x4 covers x in [0.5, 1], y in [-0.5, 0]
        assert p[:, 0].min() >= 0.5 - 1e-4
        assert p[:, 0].max() <= 1.0 + 1e-4
        assert p[:, 1].min() >= -0.5 - 1e-4
        assert p[:, 1].max() <= 0.0 + 1e-4

    def test_thin_lens_focus(self):
        """Test that lens samples spread at the lens but converge at the focus plane."""
        from prism.camera.camera import Camera, get_ray, setup_camera
        from prism.core.rng import hash_combine

        camera = Camera(
            look_from=(0, 0, 0), look_at=(0, 0, -1), vfov=40.0, aperture=0.5, focus_dist=4.0
        )
        setup_camera(camera, 1.0)
        n = 500
        origins = ti.Vector.field(3, dtype=ti.f32, shape=n)
        focus_points = ti.Vector.field(3, dtype=ti.f32, shape=n)

        @ti.kernel
        def test_kernel():
            for k in range(n):
                ray = get_ray(0.3, 0.6, 550.0, hash_combine(2, k), 2)
                origins[k] = ray.origin
                t = (-4.0 - ray.origin.z) / ray.direction.z
                focus_points[k] = ray.origin + t * ray.direction

        test_kernel()
        o = origins.to_numpy()
        f = focus_points.to_numpy()
        assert np.linalg.norm(o[:, :2], axis=1).max() <= 0.25 + 1e-5
        assert o[:, :2].std() > 0.01
        assert f[:, :2].std(axis=0).max() < 1e-4


class TestWavelengthSampling:
    """Tests for sample_wavelength."""

    def test_range_and_spread(self):
        from prism.camera.camera import sample_wavelength

        n = 320
        out = ti.field(dtype=ti.f32, shape=n)

        @ti.kernel
        def test_kernel():
            for k in range(n):
                out[k] = sample_wavelength(12345, k)

        test_kernel()
        lam = np.sort(out.to_numpy())
        assert lam.min() >= 380.0
        assert lam.max() < 700.0
        # Golden-ratio rotation leaves no gap much wider than the mean spacing
        assert np.diff(lam).max() < 3.0 * 320.0 / n

    def test_uniform_over_pixels(self):
        """Test that the first sample of many pixels is uniform over the range."""
        from prism.camera.camera import sample_wavelength
        from prism.core.rng import hash_combine

        n = 50_000
        out = ti.field(dtype=ti.f32, shape=n)

        @ti.kernel
        def test_kernel():
            for k in range(n):
                out[k] = sample_wavelength(hash_combine(77, k), 0)

        test_kernel()
        counts, _ = np.histogram(out.to_numpy(), bins=8, range=(380.0, 700.0))
        expected = n / 8
        chi2 = float(np.sum((counts - expected) ** 2 / expected))
        # 7 degrees of freedom; the 99.9th percentile is 24.3
        assert chi2 < 24.3
