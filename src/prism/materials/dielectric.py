"""Dispersive dielectric (glass/water) material implementation.

The index of refraction depends on wavelength through Cauchy's equation:

    n(lambda) = A + B / lambda_um^2

with lambda in micrometres. Shorter wavelengths see a larger index and bend
more, which is what splits white light into colours behind a prism or a
glass sphere.

Key physics:
    - Snell's law for refraction: n1 * sin(theta1) = n2 * sin(theta2)
    - Schlick's approximation for Fresnel reflectance
    - Total internal reflection when sin(theta_t) > 1

Each hit picks reflection with probability equal to the Fresnel reflectance
and refraction otherwise. Picking with that probability keeps the single
continuing ray an unbiased estimator without any extra weight.

Example:
    >>> from prism.materials.dielectric import add_dielectric_material
    >>> glass = add_dielectric_material(preset="SF66")
    >>> water = add_dielectric_material(cauchy=(1.3239, 0.00313))
"""

from collections.abc import Sequence

import taichi as ti
import taichi.math as tm

from prism.core.ray import reflect, refract, schlick_fresnel
from prism.core.rng import random_float
from prism.core.spectrum import NUM_BASIS, rgb_to_spectrum_weights, spectral_reflectance
from prism.errors import SceneDefinitionError
from prism.materials.common import check_reflectance

vec3 = tm.vec3

# Cauchy (A, B) pairs with B in um^2, fitted to catalogue n_d and Abbe numbers
CAUCHY_PRESETS: dict[str, tuple[float, float]] = {
    "SF66": (1.8558, 0.02314),
    "BK7": (1.50459, 0.004216),
    "FUSED_SILICA": (1.44825, 0.00354),
    "WATER": (1.3239, 0.00313),
    "DIAMOND": (2.3836, 0.01152),
    "DENSE_FLINT": (1.59415, 0.008924),
}

DEFAULT_PRESET = "BK7"


@ti.func
def cauchy_ior(a: ti.f32, b: ti.f32, wavelength: ti.f32) -> ti.f32:
    """Index of refraction at a wavelength in nanometres."""
    lambda_um = wavelength * 1e-3
    return a + b / (lambda_um * lambda_um)


def cauchy_ior_host(a: float, b: float, wavelength: float) -> float:
    """Host-side twin of ``cauchy_ior`` for inspection and tests."""
    lambda_um = wavelength * 1e-3
    return a + b / (lambda_um * lambda_um)


@ti.func
def _refraction_ratio(ior: ti.f32, front_face: ti.i32) -> ti.f32:
    # Entering: eta = 1 / n, leaving: eta = n
    ratio = 1.0 / ior
    if front_face == 0:
        ratio = ior
    return ratio


@ti.func
def will_reflect(
    ior: ti.f32,
    incident_direction: vec3,
    normal: vec3,
    front_face: ti.i32,
) -> ti.i32:
    """1 if total internal reflection will occur, 0 otherwise."""
    refraction_ratio = _refraction_ratio(ior, front_face)
    cos_theta = tm.min(-tm.dot(tm.normalize(incident_direction), normal), 1.0)
    sin_theta = tm.sqrt(tm.max(0.0, 1.0 - cos_theta * cos_theta))
    result = 0
    if refraction_ratio * sin_theta > 1.0:
        result = 1
    return result


@ti.func
def fresnel_reflectance(
    ior: ti.f32,
    incident_direction: vec3,
    normal: vec3,
    front_face: ti.i32,
) -> ti.f32:
    """Schlick reflectance for the given incidence."""
    refraction_ratio = _refraction_ratio(ior, front_face)
    cos_theta = tm.min(-tm.dot(tm.normalize(incident_direction), normal), 1.0)
    return schlick_fresnel(cos_theta, refraction_ratio)


@ti.func
def scatter_dielectric(
    ior: ti.f32,
    incident_direction: vec3,
    normal: vec3,
    front_face: ti.i32,
    key: ti.i32,
    dim: ti.i32,
):
    """Choose between Fresnel reflection and refraction.

    Args:
        ior: Index of refraction at the path's wavelength.
        incident_direction: Incoming ray direction.
        normal: Unit normal facing the incoming ray.
        front_face: 1 if the ray arrives from outside the medium.
        key: Random stream key for this bounce.
        dim: Stream dimension used for the reflect/refract choice.

    Returns:
        A tuple of (scattered_direction, did_reflect). Dielectrics always
        scatter; the caller applies any tint.
    """
    unit_direction = tm.normalize(incident_direction)
    refraction_ratio = _refraction_ratio(ior, front_face)

    cannot_refract = will_reflect(ior, unit_direction, normal, front_face)
    reflectance = fresnel_reflectance(ior, unit_direction, normal, front_face)

    scattered_direction = vec3(0.0, 0.0, 0.0)
    did_reflect = 0
    if cannot_refract == 1 or random_float(key, dim) < reflectance:
        scattered_direction = reflect(unit_direction, normal)
        did_reflect = 1
    else:
        scattered_direction = refract(unit_direction, normal, refraction_ratio)

    return tm.normalize(scattered_direction), did_reflect


# =============================================================================
# Material Field Storage (for scene-level material management)
# =============================================================================

MAX_DIELECTRIC_MATERIALS = 1024

dielectric_cauchy = ti.Vector.field(2, dtype=ti.f32, shape=MAX_DIELECTRIC_MATERIALS)
dielectric_tinted = ti.field(dtype=ti.i32, shape=MAX_DIELECTRIC_MATERIALS)
dielectric_tints = ti.Vector.field(NUM_BASIS, dtype=ti.f32, shape=MAX_DIELECTRIC_MATERIALS)
num_dielectric_materials = ti.field(dtype=ti.i32, shape=())


def clear_dielectric_materials() -> None:
    num_dielectric_materials[None] = 0


def resolve_cauchy(
    cauchy: Sequence[float] | None = None, preset: str | None = None
) -> tuple[float, float]:
    """Pick the Cauchy coefficients from explicit values or a preset name.

    Raises:
        SceneDefinitionError: If both are given, the preset is unknown,
            or A < 1 or B < 0.
    """
    if cauchy is not None and preset is not None:
        raise SceneDefinitionError("give either cauchy coefficients or a preset, not both")
    if cauchy is None:
        name = (preset or DEFAULT_PRESET).upper()
        if name not in CAUCHY_PRESETS:
            raise SceneDefinitionError(
                f"unknown glass preset {preset!r}; expected one of {sorted(CAUCHY_PRESETS)}"
            )
        return CAUCHY_PRESETS[name]

    if len(cauchy) != 2:
        raise SceneDefinitionError(f"cauchy must be (A, B), got {cauchy!r}")
    a, b = float(cauchy[0]), float(cauchy[1])
    if not a >= 1.0:
        raise SceneDefinitionError(
            f"Cauchy A = {a} is less than 1.0. The index of refraction must be >= 1."
        )
    if not b >= 0.0:
        raise SceneDefinitionError(f"Cauchy B = {b} must be non-negative")
    return a, b


def add_dielectric_material(
    cauchy: Sequence[float] | None = None,
    preset: str | None = None,
    tint: Sequence[float] | None = None,
) -> int:
    """Add a dielectric material to the material registry.

    Args:
        cauchy: Explicit (A, B) coefficients, B in um^2. Use (n, 0) for a
            non-dispersive glass of index n.
        preset: Name from ``CAUCHY_PRESETS``. BK7 when neither is given.
        tint: Optional RGB transmittance in [0, 1]; each bounce is
            multiplied by its reflectance at the path's wavelength.

    Returns:
        The index of the added material.

    Raises:
        SceneDefinitionError: If the parameters are invalid.
        RuntimeError: If the maximum number of materials is exceeded.
    """
    a, b = resolve_cauchy(cauchy, preset)
    tint_rgb = check_reflectance(tint, "tint") if tint is not None else None

    idx = num_dielectric_materials[None]
    if idx >= MAX_DIELECTRIC_MATERIALS:
        raise RuntimeError(
            f"Maximum number of dielectric materials ({MAX_DIELECTRIC_MATERIALS}) exceeded"
        )

    dielectric_cauchy[idx] = [a, b]
    dielectric_tinted[idx] = 0 if tint_rgb is None else 1
    if tint_rgb is not None:
        dielectric_tints[idx] = [float(w) for w in rgb_to_spectrum_weights(tint_rgb)]
    num_dielectric_materials[None] = idx + 1
    return idx


def get_dielectric_material_count() -> int:
    return int(num_dielectric_materials[None])


@ti.func
def get_dielectric_ior(material_idx: ti.i32, wavelength: ti.f32) -> ti.f32:
    coefficients = dielectric_cauchy[material_idx]
    return cauchy_ior(coefficients[0], coefficients[1], wavelength)


@ti.func
def get_dielectric_attenuation(material_idx: ti.i32, wavelength: ti.f32) -> ti.f32:
    """1 for clear glass, the tint reflectance otherwise."""
    attenuation = 1.0
    if dielectric_tinted[material_idx] != 0:
        attenuation = spectral_reflectance(dielectric_tints[material_idx], wavelength)
    return attenuation
