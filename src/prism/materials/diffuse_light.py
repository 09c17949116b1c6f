"""Diffuse area light material.

Emits the same radiance in every direction from the front face of a
surface and never scatters, so a path ends when it reaches a light.
Emission is given as RGB, may exceed 1, and is lifted to a spectrum the
same way reflectances are.
"""

from collections.abc import Sequence

import taichi as ti

from prism.core.spectrum import NUM_BASIS, rgb_to_spectrum_weights, spectral_emission
from prism.materials.common import check_emission

MAX_DIFFUSE_LIGHT_MATERIALS = 256

diffuse_light_weights = ti.Vector.field(NUM_BASIS, dtype=ti.f32, shape=MAX_DIFFUSE_LIGHT_MATERIALS)
num_diffuse_light_materials = ti.field(dtype=ti.i32, shape=())


def clear_diffuse_light_materials() -> None:
    num_diffuse_light_materials[None] = 0


def add_diffuse_light_material(emission: Sequence[float]) -> int:
    """Add an emissive material.

    Args:
        emission: Emitted radiance as (R, G, B), each component >= 0.

    Returns:
        The index of the added material.

    Raises:
        SceneDefinitionError: If any component is negative or not finite.
        RuntimeError: If the maximum number of materials is exceeded.
    """
    rgb = check_emission(emission)

    idx = num_diffuse_light_materials[None]
    if idx >= MAX_DIFFUSE_LIGHT_MATERIALS:
        raise RuntimeError(
            f"Maximum number of diffuse light materials ({MAX_DIFFUSE_LIGHT_MATERIALS}) exceeded"
        )

    diffuse_light_weights[idx] = [float(w) for w in rgb_to_spectrum_weights(rgb)]
    num_diffuse_light_materials[None] = idx + 1
    return idx


def get_diffuse_light_material_count() -> int:
    return int(num_diffuse_light_materials[None])


@ti.func
def get_emitted_radiance(material_idx: ti.i32, front_face: ti.i32, wavelength: ti.f32) -> ti.f32:
    """Radiance leaving the surface toward the viewer; zero on the back face."""
    radiance = 0.0
    if front_face != 0:
        radiance = spectral_emission(diffuse_light_weights[material_idx], wavelength)
    return radiance
