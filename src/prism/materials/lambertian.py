"""Lambertian (ideal diffuse) material implementation.

This module implements the Lambertian BRDF, which scatters incident light
uniformly over the hemisphere weighted by the cosine of the angle from the
surface normal.

The Lambertian BRDF is:
    f_r(wi, wo) = rho(lambda) / pi

With cosine-weighted hemisphere sampling (pdf = cos(theta) / pi) the
throughput factor of a bounce reduces to the reflectance rho(lambda) at the
path's wavelength.

Albedo is either a constant RGB colour, stored as Smits basis weights, or an
image texture whose texels are lifted to a spectrum at lookup time.

Example:
    >>> from prism.materials.lambertian import add_lambertian_material
    >>> idx = add_lambertian_material((0.73, 0.73, 0.73))
    >>> # Inside a kernel:
    >>> # rho = get_lambertian_reflectance(idx, u, v, wavelength)
    >>> # direction, attenuation, did_scatter = scatter_lambertian(rho, normal, key, 0)
"""

from collections.abc import Sequence

import taichi as ti
import taichi.math as tm

from prism.core.ray import near_zero, sample_cosine_hemisphere
from prism.core.spectrum import (
    NUM_BASIS,
    rgb_to_spectrum_weights,
    rgb_to_weights,
    spectral_reflectance,
)
from prism.errors import SceneDefinitionError
from prism.materials.common import check_reflectance
from prism.materials.texture import num_textures, sample_texture

vec3 = tm.vec3


@ti.func
def scatter_lambertian(reflectance: ti.f32, normal: vec3, key: ti.i32, dim: ti.i32):
    """Sample a diffuse bounce.

    Args:
        reflectance: Surface reflectance at the path's wavelength, in [0, 1].
        normal: Unit normal facing the incoming ray.
        key: Random stream key for this bounce.
        dim: First stream dimension to consume.

    Returns:
        A tuple of (scattered_direction, attenuation, did_scatter). The
        attenuation equals the reflectance because BRDF * cos / pdf cancels.
    """
    scattered_direction, _pdf = sample_cosine_hemisphere(normal, key, dim)

    # Degenerate sample from floating point round-off
    if near_zero(scattered_direction):
        scattered_direction = normal

    return tm.normalize(scattered_direction), reflectance, 1


# =============================================================================
# Material Field Storage (for scene-level material management)
# =============================================================================

MAX_LAMBERTIAN_MATERIALS = 1024

lambertian_weights = ti.Vector.field(NUM_BASIS, dtype=ti.f32, shape=MAX_LAMBERTIAN_MATERIALS)
lambertian_texture_ids = ti.field(dtype=ti.i32, shape=MAX_LAMBERTIAN_MATERIALS)
num_lambertian_materials = ti.field(dtype=ti.i32, shape=())


def clear_lambertian_materials() -> None:
    num_lambertian_materials[None] = 0


def add_lambertian_material(albedo: Sequence[float], texture_id: int = -1) -> int:
    """Add a Lambertian material to the material registry.

    Args:
        albedo: Diffuse reflectance as (R, G, B), each component in [0, 1].
            Ignored at render time when a texture is attached.
        texture_id: Optional image texture id from ``add_image_texture``.

    Returns:
        The index of the added material.

    Raises:
        SceneDefinitionError: If the albedo is out of range or the texture
            id does not name an uploaded texture.
        RuntimeError: If the maximum number of materials is exceeded.
    """
    rgb = check_reflectance(albedo)
    if texture_id != -1 and not 0 <= texture_id < num_textures[None]:
        raise SceneDefinitionError(f"texture id {texture_id} does not exist")

    idx = num_lambertian_materials[None]
    if idx >= MAX_LAMBERTIAN_MATERIALS:
        raise RuntimeError(
            f"Maximum number of Lambertian materials ({MAX_LAMBERTIAN_MATERIALS}) exceeded"
        )

    lambertian_weights[idx] = [float(w) for w in rgb_to_spectrum_weights(rgb)]
    lambertian_texture_ids[idx] = texture_id
    num_lambertian_materials[None] = idx + 1
    return idx


def get_lambertian_material_count() -> int:
    return int(num_lambertian_materials[None])


@ti.func
def get_lambertian_reflectance(
    material_idx: ti.i32, u: ti.f32, v: ti.f32, wavelength: ti.f32
) -> ti.f32:
    """Reflectance of a Lambertian material at a surface point and wavelength."""
    weights = lambertian_weights[material_idx]
    texture_id = lambertian_texture_ids[material_idx]
    if texture_id >= 0:
        weights = rgb_to_weights(sample_texture(texture_id, u, v))
    return spectral_reflectance(weights, wavelength)
