"""Ray data structure, vector helpers and Monte Carlo sampling.

Rays carry the wavelength they transport and their valid parametric
interval. Every sampling routine draws from the counter-based streams of
``prism.core.rng``: callers pass the stream key and the first dimension to
consume, which keeps paths reproducible across thread counts.

Example:
    >>> import taichi as ti
    >>> from prism.core.ray import make_ray, ray_at, vec3
    >>> @ti.kernel
    ... def k():
    ...     ray = make_ray(vec3(0.0), vec3(0.0, 0.0, -1.0), 550.0)
    ...     p = ray_at(ray, 5.0)  # (0, 0, -5)
"""

import taichi as ti
import taichi.math as tm

from prism.core.rng import random_float

# Type alias for 3D vectors using Taichi's math module
vec3 = tm.vec3

# Default parametric interval of a freshly spawned ray
T_MIN = 1e-4
T_MAX = 1e10


@ti.dataclass
class Ray:
    """A ray carrying one wavelength sample.

    Attributes:
        origin: The starting point of the ray.
        direction: The direction vector (unit length by convention).
        wavelength: The transported wavelength in nanometres.
        t_min: Smallest accepted hit distance.
        t_max: Largest accepted hit distance.
    """

    origin: vec3
    direction: vec3
    wavelength: ti.f32
    t_min: ti.f32
    t_max: ti.f32


@ti.func
def ray_at(ray: Ray, t: ti.f32) -> vec3:
    """Point at parameter t along the ray."""
    return ray.origin + t * ray.direction


@ti.func
def make_ray(origin: vec3, direction: vec3, wavelength: ti.f32) -> Ray:
    """Create a ray over the default interval [T_MIN, T_MAX]."""
    return Ray(origin=origin, direction=direction, wavelength=wavelength, t_min=T_MIN, t_max=T_MAX)


# =============================================================================
# Vector Utility Functions
# =============================================================================


@ti.func
def reflect(incident: vec3, normal: vec3) -> vec3:
    """Mirror the incident direction about a unit normal."""
    return incident - 2.0 * tm.dot(incident, normal) * normal


@ti.func
def refract(incident: vec3, normal: vec3, eta: ti.f32) -> vec3:
    """Refract a unit incident direction through a surface (Snell's law).

    Args:
        incident: The incoming direction (unit length).
        normal: The unit normal on the incident side.
        eta: Ratio of refractive indices, n_incident / n_transmitted.

    Returns:
        The refracted direction, or the zero vector under total internal
        reflection.
    """
    cos_i = -tm.dot(incident, normal)
    sin2_t = eta * eta * (1.0 - cos_i * cos_i)
    result = vec3(0.0, 0.0, 0.0)
    if sin2_t <= 1.0:
        cos_t = ti.sqrt(1.0 - sin2_t)
        result = eta * incident + (eta * cos_i - cos_t) * normal
    return result


@ti.func
def schlick_fresnel(cosine: ti.f32, ref_idx: ti.f32) -> ti.f32:
    """Fresnel reflectance by Schlick's approximation.

    Args:
        cosine: Cosine of the angle between incident direction and normal.
        ref_idx: Ratio of refractive indices.
    """
    r0 = ((1.0 - ref_idx) / (1.0 + ref_idx)) ** 2
    return r0 + (1.0 - r0) * ((1.0 - cosine) ** 5)


@ti.func
def near_zero(v: vec3) -> ti.i32:
    """1 if every component of v is within 1e-8 of zero."""
    s = 1e-8
    return ti.abs(v.x) < s and ti.abs(v.y) < s and ti.abs(v.z) < s


# =============================================================================
# Random Sampling Utilities for Monte Carlo
# =============================================================================


@ti.func
def random_unit_vector(key: ti.i32, dim: ti.i32) -> vec3:
    """Uniform direction on the unit sphere. Consumes dimensions dim, dim+1."""
    z = 1.0 - 2.0 * random_float(key, dim)
    phi = 2.0 * tm.pi * random_float(key, dim + 1)
    r = ti.sqrt(ti.max(0.0, 1.0 - z * z))
    return vec3(r * ti.cos(phi), r * ti.sin(phi), z)


@ti.func
def random_in_unit_sphere(key: ti.i32, dim: ti.i32) -> vec3:
    """Uniform point inside the unit ball. Consumes dimensions dim..dim+2.

    Uses the radial inverse CDF r = u^(1/3) instead of rejection sampling so
    that the number of dimensions consumed is fixed.
    """
    radius = ti.pow(random_float(key, dim + 2), 1.0 / 3.0)
    return radius * random_unit_vector(key, dim)


@ti.func
def random_in_unit_disk(key: ti.i32, dim: ti.i32) -> vec3:
    """Uniform point (x, y, 0) inside the unit disk. Consumes dim, dim+1."""
    r = ti.sqrt(random_float(key, dim))
    phi = 2.0 * tm.pi * random_float(key, dim + 1)
    return vec3(r * ti.cos(phi), r * ti.sin(phi), 0.0)


@ti.func
def random_cosine_direction(key: ti.i32, dim: ti.i32) -> vec3:
    """Cosine-weighted direction in the local z-up frame (pdf cos(theta)/pi)."""
    r1 = random_float(key, dim)
    r2 = random_float(key, dim + 1)
    phi = 2.0 * tm.pi * r1
    sqrt_r2 = ti.sqrt(r2)
    x = ti.cos(phi) * sqrt_r2
    y = ti.sin(phi) * sqrt_r2
    z = ti.sqrt(ti.max(0.0, 1.0 - r2))
    return vec3(x, y, z)


@ti.func
def build_onb_from_normal(normal: vec3):
    """Build an orthonormal basis (tangent, bitangent, normal) around a normal."""
    a = vec3(1.0, 0.0, 0.0)
    if ti.abs(normal.x) > 0.9:
        a = vec3(0.0, 1.0, 0.0)
    tangent = tm.normalize(tm.cross(a, normal))
    bitangent = tm.cross(normal, tangent)
    return tangent, bitangent, normal


@ti.func
def local_to_world(local_dir: vec3, tangent: vec3, bitangent: vec3, normal: vec3) -> vec3:
    return local_dir.x * tangent + local_dir.y * bitangent + local_dir.z * normal


@ti.func
def sample_cosine_hemisphere(normal: vec3, key: ti.i32, dim: ti.i32):
    """Cosine-weighted hemisphere sampling around a normal.

    Args:
        normal: The unit surface normal.
        key: Random stream key.
        dim: First stream dimension to consume (two are used).

    Returns:
        A tuple of (direction, pdf) with pdf = cos(theta) / pi.
    """
    local_dir = random_cosine_direction(key, dim)
    tangent, bitangent, n = build_onb_from_normal(normal)
    world_dir = local_to_world(local_dir, tangent, bitangent, n)
    pdf = tm.dot(world_dir, normal) / tm.pi
    return world_dir, pdf
