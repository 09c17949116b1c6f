"""Film: per-pixel XYZ accumulation and resolve to linear RGB.

Each sample carries radiance L at one wavelength lambda drawn with density
1 / 320 nm^-1. Its XYZ estimate is L * cmf(lambda) / pdf, and the running
mean of those estimates converges to the integral of the pixel's spectrum
against the colour matching functions. Resolving applies the calibrated
XYZ -> RGB matrix from ``prism.core.spectrum``.

The buffers are preallocated at the maximum image size so that changing
the resolution never reallocates fields or recompiles kernels. Pixel (i, j)
uses j = 0 for the bottom row; resolved images put the top row first.
"""

import numpy as np
import numpy.typing as npt
import taichi as ti
import taichi.math as tm

from prism.core.settings import MAX_IMAGE_HEIGHT, MAX_IMAGE_WIDTH
from prism.core.spectrum import WAVELENGTH_PDF, XYZ_TO_RGB, cie_xyz_at

vec3 = tm.vec3

_image_width = ti.field(dtype=ti.i32, shape=())
_image_height = ti.field(dtype=ti.i32, shape=())

# Running mean of the per-sample XYZ estimates
_xyz_buffer = ti.Vector.field(3, dtype=ti.f32, shape=(MAX_IMAGE_WIDTH, MAX_IMAGE_HEIGHT))
_sample_count = ti.field(dtype=ti.i32, shape=(MAX_IMAGE_WIDTH, MAX_IMAGE_HEIGHT))

_film_initialized = ti.field(dtype=ti.i32, shape=())


def setup_film(width: int, height: int) -> None:
    """Set the active image size and clear the buffers.

    Raises:
        ValueError: If a dimension is not positive or exceeds the maximum.
    """
    if width <= 0 or height <= 0:
        raise ValueError(f"Image dimensions must be positive, got {width}x{height}")
    if width > MAX_IMAGE_WIDTH or height > MAX_IMAGE_HEIGHT:
        raise ValueError(
            f"Image dimensions ({width}x{height}) exceed maximum supported "
            f"({MAX_IMAGE_WIDTH}x{MAX_IMAGE_HEIGHT})"
        )
    _image_width[None] = width
    _image_height[None] = height
    _film_initialized[None] = 1
    clear_film()


def clear_film() -> None:
    _xyz_buffer.fill(0.0)
    _sample_count.fill(0)


def get_film_dimensions() -> tuple[int, int]:
    return int(_image_width[None]), int(_image_height[None])


def is_film_initialized() -> bool:
    return bool(_film_initialized[None])


def _check_film_initialized() -> None:
    if _film_initialized[None] == 0:
        raise RuntimeError("Film not set up. Call setup_film() first.")


@ti.func
def spectral_sample_to_xyz(radiance: ti.f32, wavelength: ti.f32) -> vec3:
    """XYZ estimate of one radiance sample at a uniformly drawn wavelength."""
    return radiance * cie_xyz_at(wavelength) / WAVELENGTH_PDF


@ti.func
def accumulate_sample(i: ti.i32, j: ti.i32, xyz: vec3):
    """Fold one XYZ estimate into pixel (i, j) as a running mean."""
    _sample_count[i, j] += 1
    n = _sample_count[i, j]
    _xyz_buffer[i, j] += (xyz - _xyz_buffer[i, j]) / ti.cast(n, ti.f32)


def get_total_samples() -> int:
    """Samples per pixel accumulated so far (read from pixel (0, 0))."""
    _check_film_initialized()
    return int(_sample_count[0, 0])


def get_xyz_numpy() -> npt.NDArray[np.float32]:
    """Mean XYZ per pixel, shape (height, width, 3), top row first.

    Raises:
        RuntimeError: If the film has not been set up.
    """
    _check_film_initialized()
    width, height = get_film_dimensions()
    xyz = _xyz_buffer.to_numpy()[:width, :height, :]
    # (width, height, 3) with bottom-left origin -> (height, width, 3) top-left
    return np.flipud(np.transpose(xyz, (1, 0, 2))).astype(np.float32)


def resolve_image_numpy() -> npt.NDArray[np.float32]:
    """Linear RGB image of shape (height, width, 3), top row first.

    Values are unbounded above; small negative values from out-of-gamut
    spectra are clamped to zero.
    """
    rgb = get_xyz_numpy().astype(np.float64) @ XYZ_TO_RGB.T
    return np.maximum(rgb, 0.0).astype(np.float32)
