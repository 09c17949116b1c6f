"""Image textures for diffuse albedo.

Texels are stored as RGB in one flat field shared by every texture; a
texture is an (offset, width, height) window into it. Lookups return RGB
and the caller lifts the colour to a spectrum at the path's wavelength.
Row 0 of an image is its top, so v = 1 maps to row 0.
"""

from collections.abc import Sequence

import numpy as np
import numpy.typing as npt
import taichi as ti
import taichi.math as tm

from prism.errors import SceneDefinitionError

vec3 = tm.vec3

MAX_TEXTURES = 64
MAX_TEXELS = 1 << 20

texture_texels = ti.Vector.field(3, dtype=ti.f32, shape=MAX_TEXELS)
texture_offsets = ti.field(dtype=ti.i32, shape=MAX_TEXTURES)
texture_widths = ti.field(dtype=ti.i32, shape=MAX_TEXTURES)
texture_heights = ti.field(dtype=ti.i32, shape=MAX_TEXTURES)
num_textures = ti.field(dtype=ti.i32, shape=())
num_texels = ti.field(dtype=ti.i32, shape=())


def clear_textures() -> None:
    num_textures[None] = 0
    num_texels[None] = 0


def srgb_to_linear(encoded: npt.NDArray[np.float32]) -> npt.NDArray[np.float32]:
    """Invert the sRGB transfer curve."""
    linear = np.where(encoded <= 0.04045, encoded / 12.92, ((encoded + 0.055) / 1.055) ** 2.4)
    return linear.astype(np.float32)


def normalize_texture_image(image: npt.ArrayLike) -> npt.NDArray[np.float32]:
    """Convert an image to linear float32 RGB in [0, 1].

    uint8 images (0-255) are treated as sRGB encoded, as photos and PNGs
    are, and decoded to linear reflectance. Float images are taken to be
    linear already.

    Raises:
        SceneDefinitionError: If the shape is not (H, W, 3) or values fall
            outside the valid range.
    """
    array = np.asarray(image)
    if array.ndim != 3 or array.shape[2] != 3 or array.shape[0] == 0 or array.shape[1] == 0:
        raise SceneDefinitionError(f"texture image must have shape (H, W, 3), got {array.shape}")

    if array.dtype == np.uint8:
        return srgb_to_linear(array.astype(np.float32) / 255.0)

    data = array.astype(np.float32)
    if not np.all(np.isfinite(data)) or data.min() < 0.0 or data.max() > 1.0:
        raise SceneDefinitionError("float texture values must be finite and within [0, 1]")
    return data


def add_image_texture(image: npt.ArrayLike) -> int:
    """Upload an image texture.

    Args:
        image: RGB image of shape (H, W, 3), sRGB uint8 or linear float
            in [0, 1].

    Returns:
        The texture id.

    Raises:
        SceneDefinitionError: If the image is malformed.
        RuntimeError: If texture or texel capacity is exceeded.
    """
    data = normalize_texture_image(image)
    height, width = data.shape[:2]

    idx = num_textures[None]
    if idx >= MAX_TEXTURES:
        raise RuntimeError(f"Maximum number of textures ({MAX_TEXTURES}) exceeded")
    offset = num_texels[None]
    if offset + width * height > MAX_TEXELS:
        raise RuntimeError(f"Texture storage ({MAX_TEXELS} texels) exceeded")

    texels = texture_texels.to_numpy()
    texels[offset : offset + width * height] = data.reshape(-1, 3)
    texture_texels.from_numpy(texels)

    texture_offsets[idx] = offset
    texture_widths[idx] = width
    texture_heights[idx] = height
    num_textures[None] = idx + 1
    num_texels[None] = offset + width * height
    return idx


def checker_image(
    width: int = 64,
    height: int = 32,
    squares: tuple[int, int] = (16, 8),
    color_a: Sequence[float] = (0.2, 0.3, 0.1),
    color_b: Sequence[float] = (0.9, 0.9, 0.9),
) -> npt.NDArray[np.float32]:
    """Procedural checkerboard image, handy where a photo texture would go."""
    ys, xs = np.mgrid[0:height, 0:width]
    parity = ((xs * squares[0] // width) + (ys * squares[1] // height)) % 2
    image = np.where(parity[..., None] == 0, np.asarray(color_a), np.asarray(color_b))
    return image.astype(np.float32)


@ti.func
def sample_texture(texture_id: ti.i32, u: ti.f32, v: ti.f32) -> vec3:
    """Nearest-texel lookup at texture coordinates (u, v)."""
    width = texture_widths[texture_id]
    height = texture_heights[texture_id]
    i = ti.min(ti.max(ti.cast(u * width, ti.i32), 0), width - 1)
    j = ti.min(ti.max(ti.cast((1.0 - v) * height, ti.i32), 0), height - 1)
    return texture_texels[texture_offsets[texture_id] + j * width + i]
