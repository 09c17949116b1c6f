"""Thin-lens camera model for primary ray generation.

The camera supports:
- Look-at positioning (look_from, look_at, vup)
- Vertical field of view and aspect ratio
- Arbitrary aspect ratios
- Depth of field through a circular lens of diameter ``aperture`` focused
  at ``focus_dist`` (aperture 0 is a pinhole)
- Jittered sub-pixel sampling and per-sample wavelength selection

The camera builds an orthonormal basis (u, v, w) from the view parameters:
- w: points from look_at toward look_from (opposite view direction)
- u: points right in the image plane
- v: points up in the image plane

The viewport is placed at the focus distance, so every lens sample aimed at
the same viewport point converges there.

Example:
    >>> from prism.camera.camera import Camera, setup_camera, get_ray
    >>> camera = Camera(look_from=(0.0, 0.0, 3.0), look_at=(0.0, 0.0, 0.0), vfov=60.0)
    >>> setup_camera(camera, aspect_ratio=16.0 / 9.0)
    >>> # Inside a kernel:
    >>> # ray = get_ray(0.5, 0.5, 550.0, key, 2)  # ray through the image centre
"""

import math
from collections.abc import Sequence
from dataclasses import dataclass

import numpy as np
import taichi as ti
import taichi.math as tm

from prism.core.ray import Ray, make_ray, random_in_unit_disk, vec3
from prism.core.rng import golden_ratio_sequence, random_float
from prism.core.spectrum import LAMBDA_MIN, LAMBDA_RANGE

# Stream dimensions used by the camera on the path key
JITTER_DIMENSION = 0
LENS_DIMENSION = 2
CAMERA_DIMENSIONS = 4

# =============================================================================
# Camera Data Structures
# =============================================================================


@dataclass
class Camera:
    """Configuration for a thin-lens (perspective) camera.

    Attributes:
        look_from: Camera position in world space.
        look_at: Point the camera is looking at.
        vup: Up direction used to orient the camera.
        vfov: Vertical field of view in degrees.
        aspect_ratio: Width / height. None means use the render size.
        aperture: Lens diameter; 0 for a pinhole.
        focus_dist: Distance to the plane of perfect focus. None means
            the distance from look_from to look_at.
    """

    look_from: Sequence[float]
    look_at: Sequence[float]
    vup: Sequence[float] = (0.0, 1.0, 0.0)
    vfov: float = 40.0
    aspect_ratio: float | None = None
    aperture: float = 0.0
    focus_dist: float | None = None

    def validate(self) -> None:
        """Raise ValueError if the camera cannot produce an image."""
        look_from = np.asarray(self.look_from, dtype=np.float64)
        look_at = np.asarray(self.look_at, dtype=np.float64)
        vup = np.asarray(self.vup, dtype=np.float64)
        for name, vec in (("look_from", look_from), ("look_at", look_at), ("vup", vup)):
            if vec.shape != (3,) or not np.all(np.isfinite(vec)):
                raise ValueError(f"{name} must be 3 finite numbers, got {vec!r}")
        view = look_from - look_at
        if np.linalg.norm(view) == 0.0:
            raise ValueError("look_from and look_at must differ")
        if np.linalg.norm(np.cross(vup, view)) <= 1e-12 * np.linalg.norm(view):
            raise ValueError("vup must not be parallel to the viewing direction")
        if not 0.0 < self.vfov < 180.0:
            raise ValueError(f"vfov must be in (0, 180) degrees, got {self.vfov}")
        if self.aspect_ratio is not None and not self.aspect_ratio > 0.0:
            raise ValueError(f"aspect_ratio must be positive, got {self.aspect_ratio}")
        if not self.aperture >= 0.0:
            raise ValueError(f"aperture must be non-negative, got {self.aperture}")
        if self.focus_dist is not None and not self.focus_dist > 0.0:
            raise ValueError(f"focus_dist must be positive, got {self.focus_dist}")


# =============================================================================
# Taichi Fields for Camera State
# =============================================================================

_camera_origin = ti.Vector.field(3, dtype=ti.f32, shape=())

# Orthonormal basis vectors
_camera_u = ti.Vector.field(3, dtype=ti.f32, shape=())  # Right
_camera_v = ti.Vector.field(3, dtype=ti.f32, shape=())  # Up
_camera_w = ti.Vector.field(3, dtype=ti.f32, shape=())  # Backward (opposite view)

# Viewport at the focus distance
_viewport_horizontal = ti.Vector.field(3, dtype=ti.f32, shape=())
_viewport_vertical = ti.Vector.field(3, dtype=ti.f32, shape=())
_lower_left_corner = ti.Vector.field(3, dtype=ti.f32, shape=())
_lens_radius = ti.field(dtype=ti.f32, shape=())
_camera_ready = ti.field(dtype=ti.i32, shape=())


# =============================================================================
# Camera Setup (Python-side, called once per render)
# =============================================================================


def setup_camera(camera: Camera, aspect_ratio: float | None = None) -> None:
    """Write the camera basis and viewport into the camera fields.

    Args:
        camera: Camera configuration.
        aspect_ratio: Used when the camera does not fix its own ratio.

    Raises:
        ValueError: If the configuration is degenerate or no aspect ratio
            is available.
    """
    camera.validate()
    ratio = camera.aspect_ratio if camera.aspect_ratio is not None else aspect_ratio
    if ratio is None or not ratio > 0.0:
        raise ValueError(f"an aspect ratio is required, got {ratio!r}")

    theta = math.radians(camera.vfov)
    h = math.tan(theta / 2.0)
    viewport_height = 2.0 * h
    viewport_width = ratio * viewport_height

    look_from = np.array(camera.look_from, dtype=np.float64)
    look_at = np.array(camera.look_at, dtype=np.float64)
    vup = np.array(camera.vup, dtype=np.float64)

    w = look_from - look_at
    distance = float(np.linalg.norm(w))
    w = w / distance
    u = np.cross(vup, w)
    u = u / np.linalg.norm(u)
    v = np.cross(w, u)

    focus_dist = camera.focus_dist if camera.focus_dist is not None else distance
    horizontal = focus_dist * viewport_width * u
    vertical = focus_dist * viewport_height * v
    lower_left = look_from - horizontal / 2.0 - vertical / 2.0 - focus_dist * w

    _camera_origin[None] = look_from.tolist()
    _camera_u[None] = u.tolist()
    _camera_v[None] = v.tolist()
    _camera_w[None] = w.tolist()
    _viewport_horizontal[None] = horizontal.tolist()
    _viewport_vertical[None] = vertical.tolist()
    _lower_left_corner[None] = lower_left.tolist()
    _lens_radius[None] = camera.aperture / 2.0
    _camera_ready[None] = 1


def is_camera_ready() -> bool:
    return bool(_camera_ready[None])


# =============================================================================
# Ray Generation
# =============================================================================


@ti.func
def get_ray(s: ti.f32, t: ti.f32, wavelength: ti.f32, key: ti.i32, dim: ti.i32) -> Ray:
    """Ray through normalized image coordinates (s, t).

    Args:
        s: Horizontal coordinate in [0, 1], left to right.
        t: Vertical coordinate in [0, 1], bottom to top.
        wavelength: Wavelength carried by the ray, in nm.
        key: Random stream key for the lens sample.
        dim: First stream dimension for the lens sample (two are used).

    Returns:
        A ray from a point on the lens toward the focus plane.
    """
    lens = _lens_radius[None] * random_in_unit_disk(key, dim)
    offset = _camera_u[None] * lens.x + _camera_v[None] * lens.y
    origin = _camera_origin[None] + offset
    target = (
        _lower_left_corner[None] + s * _viewport_horizontal[None] + t * _viewport_vertical[None]
    )
    return make_ray(origin, tm.normalize(target - origin), wavelength)


@ti.func
def get_ray_jittered(
    pixel_i: ti.i32,
    pixel_j: ti.i32,
    width: ti.i32,
    height: ti.i32,
    wavelength: ti.f32,
    key: ti.i32,
) -> Ray:
    """Ray through a uniformly jittered point of pixel (i, j).

    Pixel j = 0 is the bottom row. Uses dimensions 0..3 of ``key``.
    """
    jitter_u = random_float(key, JITTER_DIMENSION)
    jitter_v = random_float(key, JITTER_DIMENSION + 1)
    s = (ti.cast(pixel_i, ti.f32) + jitter_u) / ti.cast(width, ti.f32)
    t = (ti.cast(pixel_j, ti.f32) + jitter_v) / ti.cast(height, ti.f32)
    return get_ray(s, t, wavelength, key, LENS_DIMENSION)


@ti.func
def sample_wavelength(pixel_key: ti.i32, sample_index: ti.i32) -> ti.f32:
    """Wavelength for one sample of a pixel.

    A per-pixel random offset rotated by the golden-ratio sequence spreads
    successive samples evenly over [380, 700) nm while each one is still
    uniformly distributed.
    """
    x = random_float(pixel_key, 0) + golden_ratio_sequence(sample_index)
    x = x - ti.floor(x)
    return LAMBDA_MIN + LAMBDA_RANGE * x


# =============================================================================
# Utility Functions
# =============================================================================


def get_camera_info() -> dict[str, tuple[float, ...] | float]:
    """Current camera state, for debugging and tests."""

    def as_tuple(f) -> tuple[float, float, float]:
        vec = f[None]
        return (float(vec[0]), float(vec[1]), float(vec[2]))

    return {
        "origin": as_tuple(_camera_origin),
        "u": as_tuple(_camera_u),
        "v": as_tuple(_camera_v),
        "w": as_tuple(_camera_w),
        "horizontal": as_tuple(_viewport_horizontal),
        "vertical": as_tuple(_viewport_vertical),
        "lower_left": as_tuple(_lower_left_corner),
        "lens_radius": float(_lens_radius[None]),
    }
