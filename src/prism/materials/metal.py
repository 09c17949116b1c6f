"""Metal (specular reflective) material implementation.

Metal reflects about the surface normal and perturbs the reflection by a
random point in a sphere scaled by ``fuzz``:

    scattered = normalize(reflect(d, n) + fuzz * random_in_unit_sphere())

fuzz = 0 gives a perfect mirror. When the perturbed direction points below
the surface the ray is absorbed. The reflected fraction at the path's
wavelength comes from the albedo spectrum.
"""

from collections.abc import Sequence

import taichi as ti
import taichi.math as tm

from prism.core.ray import random_in_unit_sphere, reflect
from prism.core.spectrum import NUM_BASIS, rgb_to_spectrum_weights, spectral_reflectance
from prism.materials.common import check_reflectance, check_unit_interval

vec3 = tm.vec3


@ti.func
def scatter_metal(
    reflectance: ti.f32,
    fuzz: ti.f32,
    incident_direction: vec3,
    normal: vec3,
    key: ti.i32,
    dim: ti.i32,
):
    """Sample a (possibly fuzzy) specular reflection.

    Args:
        reflectance: Reflectance at the path's wavelength.
        fuzz: Perturbation radius in [0, 1].
        incident_direction: Incoming ray direction (unit).
        normal: Unit normal facing the incoming ray.
        key: Random stream key for this bounce.
        dim: First stream dimension to consume (three are used).

    Returns:
        A tuple of (scattered_direction, attenuation, did_scatter) where
        did_scatter is 0 if the perturbed direction went below the surface.
    """
    reflected = reflect(tm.normalize(incident_direction), normal)
    scattered_direction = tm.normalize(reflected + fuzz * random_in_unit_sphere(key, dim))

    did_scatter = 0
    if tm.dot(scattered_direction, normal) > 0.0:
        did_scatter = 1

    return scattered_direction, reflectance, did_scatter


# =============================================================================
# Material Field Storage (for scene-level material management)
# =============================================================================

MAX_METAL_MATERIALS = 1024

metal_weights = ti.Vector.field(NUM_BASIS, dtype=ti.f32, shape=MAX_METAL_MATERIALS)
metal_fuzz = ti.field(dtype=ti.f32, shape=MAX_METAL_MATERIALS)
num_metal_materials = ti.field(dtype=ti.i32, shape=())


def clear_metal_materials() -> None:
    num_metal_materials[None] = 0


def add_metal_material(albedo: Sequence[float], fuzz: float = 0.0) -> int:
    """Add a metal material to the material registry.

    Args:
        albedo: Specular reflectance as (R, G, B), each component in [0, 1].
        fuzz: Perturbation radius in [0, 1], 0 for a perfect mirror.

    Returns:
        The index of the added material.

    Raises:
        SceneDefinitionError: If albedo or fuzz are out of range.
        RuntimeError: If the maximum number of materials is exceeded.
    """
    rgb = check_reflectance(albedo)
    fuzz = check_unit_interval(fuzz, "fuzz")

    idx = num_metal_materials[None]
    if idx >= MAX_METAL_MATERIALS:
        raise RuntimeError(f"Maximum number of metal materials ({MAX_METAL_MATERIALS}) exceeded")

    metal_weights[idx] = [float(w) for w in rgb_to_spectrum_weights(rgb)]
    metal_fuzz[idx] = fuzz
    num_metal_materials[None] = idx + 1
    return idx


def get_metal_material_count() -> int:
    return int(num_metal_materials[None])


@ti.func
def get_metal_reflectance(material_idx: ti.i32, wavelength: ti.f32) -> ti.f32:
    return spectral_reflectance(metal_weights[material_idx], wavelength)


@ti.func
def get_metal_fuzz(material_idx: ti.i32) -> ti.f32:
    return metal_fuzz[material_idx]
