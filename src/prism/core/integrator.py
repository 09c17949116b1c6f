"""Spectral path tracing integrator.

Every sample traces one path that carries a single wavelength. The path
loop is explicit: the state is (ray, depth, throughput, radiance, active),
where throughput and radiance are scalars at the path's wavelength. At each
vertex the integrator adds emission, asks the material to scatter, and
applies Russian roulette once ``depth >= rr_start_depth``. The film turns
the scalar radiance into an XYZ estimate.

Key features:
    - Material dispatch (Lambertian, Metal, Dielectric, DiffuseLight)
    - Wavelength-dependent refraction (dispersion)
    - Russian roulette with survival probability min(throughput, 0.95)
    - Uniform, sky or black background for escaped rays
    - Deterministic counter-based randomness keyed by
      (seed, pixel, sample, bounce, dimension)
    - Self-intersection avoidance with ray offset

Each render pass processes every pixel once in a parallel kernel loop;
a pass is the unit of progress and the natural place to stop.

Example:
    >>> from prism.runtime import init_runtime
    >>> init_runtime()
    >>> from prism.core.integrator import render
    >>> from prism.scene.presets import build_scene
    >>> scene, camera = build_scene("three_spheres")
    >>> image = render(scene, camera, width=400, height=300, samples_per_pixel=16)
"""

import logging
import time
from dataclasses import dataclass

import numpy as np
import numpy.typing as npt
import taichi as ti
import taichi.math as tm

from prism.camera.camera import (
    Camera,
    get_ray_jittered,
    is_camera_ready,
    sample_wavelength,
    setup_camera,
)
from prism.core.film import (
    accumulate_sample,
    get_film_dimensions,
    get_total_samples,
    is_film_initialized,
    resolve_image_numpy,
    setup_film,
    spectral_sample_to_xyz,
)
from prism.core.ray import T_MAX, T_MIN, Ray, make_ray
from prism.core.rng import hash_combine, random_float
from prism.core.settings import (
    MAX_DEPTH,
    MAX_RR_PROBABILITY,
    MIN_BOUNCES_BEFORE_RR,
    RAY_EPSILON,
    RenderSettings,
    as_i32,
)
from prism.core.spectrum import spectral_emission
from prism.materials.dielectric import (
    get_dielectric_attenuation,
    get_dielectric_ior,
    scatter_dielectric,
)
from prism.materials.diffuse_light import get_emitted_radiance
from prism.materials.lambertian import get_lambertian_reflectance, scatter_lambertian
from prism.materials.metal import get_metal_fuzz, get_metal_reflectance, scatter_metal
from prism.scene.intersection import intersect_scene
from prism.scene.manager import (
    BackgroundInfo,
    BackgroundType,
    MaterialType,
    SceneManager,
    background_kind,
    background_weights,
    get_material_type,
    get_material_type_index,
    has_active_scene,
    upload_background,
)

logger = logging.getLogger(__name__)

vec3 = tm.vec3

# Stream dimension of the Russian roulette decision on a bounce key
RR_DIMENSION = 7

# Salts separating sample and bounce keys from the dimensions drawn off
# their parent key (wavelength offset, jitter, lens)
SAMPLE_STREAM = 0x53414D50
BOUNCE_STREAM = 0x424F554E

# =============================================================================
# Material Dispatch
# =============================================================================


@ti.func
def _scatter_material(
    material_id: ti.i32,
    incident_direction: vec3,
    normal: vec3,
    front_face: ti.i32,
    u: ti.f32,
    v: ti.f32,
    wavelength: ti.f32,
    key: ti.i32,
):
    """Dispatch to the material's scattering function.

    Returns:
        A tuple of (scattered_direction, attenuation, did_scatter) where
        attenuation is the throughput factor at the path's wavelength.
    """
    mat_type = get_material_type(material_id)
    type_index = get_material_type_index(material_id)

    scattered_direction = vec3(0.0, 0.0, 0.0)
    attenuation = 0.0
    did_scatter = 0

    if mat_type == int(MaterialType.LAMBERTIAN):
        reflectance = get_lambertian_reflectance(type_index, u, v, wavelength)
        scattered_direction, attenuation, did_scatter = scatter_lambertian(
            reflectance, normal, key, 0
        )

    elif mat_type == int(MaterialType.METAL):
        reflectance = get_metal_reflectance(type_index, wavelength)
        fuzz = get_metal_fuzz(type_index)
        scattered_direction, attenuation, did_scatter = scatter_metal(
            reflectance, fuzz, incident_direction, normal, key, 0
        )

    elif mat_type == int(MaterialType.DIELECTRIC):
        ior = get_dielectric_ior(type_index, wavelength)
        scattered_direction, _did_reflect = scatter_dielectric(
            ior, incident_direction, normal, front_face, key, 0
        )
        attenuation = get_dielectric_attenuation(type_index, wavelength)
        did_scatter = 1

    return scattered_direction, attenuation, did_scatter


@ti.func
def _get_emission(material_id: ti.i32, front_face: ti.i32, wavelength: ti.f32) -> ti.f32:
    """Emitted radiance of the hit surface, zero for non-emitters."""
    emission = 0.0
    if get_material_type(material_id) == int(MaterialType.DIFFUSE_LIGHT):
        index = get_material_type_index(material_id)
        emission = get_emitted_radiance(index, front_face, wavelength)
    return emission


@ti.func
def _background_radiance(direction: vec3, wavelength: ti.f32) -> ti.f32:
    """Radiance seen by a ray that escapes the scene."""
    kind = background_kind[None]
    radiance = 0.0
    if kind == int(BackgroundType.UNIFORM):
        radiance = spectral_emission(background_weights[0], wavelength)
    elif kind == int(BackgroundType.SKY):
        a = 0.5 * (tm.normalize(direction).y + 1.0)
        horizon = spectral_emission(background_weights[0], wavelength)
        zenith = spectral_emission(background_weights[1], wavelength)
        radiance = (1.0 - a) * horizon + a * zenith
    return radiance


# =============================================================================
# Path Tracing Core
# =============================================================================


@ti.func
def _offset_ray_origin(point: vec3, normal: vec3, direction: vec3) -> vec3:
    """Push the origin off the surface on the side the new ray travels to."""
    offset_dir = normal
    if tm.dot(direction, normal) < 0.0:
        offset_dir = -normal
    return point + RAY_EPSILON * offset_dir


@ti.func
def sample_key(pixel_key: ti.i32, sample_index: ti.i32) -> ti.i32:
    """Path key of one sample of a pixel."""
    return hash_combine(hash_combine(pixel_key, SAMPLE_STREAM), sample_index)


@ti.func
def bounce_key(path_key: ti.i32, depth: ti.i32) -> ti.i32:
    """Stream key of the scatter decisions at one depth of a path."""
    return hash_combine(hash_combine(path_key, BOUNCE_STREAM), depth)


@ti.func
def trace_path(ray: Ray, path_key: ti.i32, max_depth: ti.i32, rr_start_depth: ti.i32):
    """Trace one path and estimate the radiance arriving along ``ray``.

    Args:
        ray: Primary ray; its wavelength is carried by the whole path.
        path_key: Random stream key of the path. Bounce ``d`` draws from
            ``bounce_key(path_key, d)``.
        max_depth: Maximum number of surface interactions.
        rr_start_depth: First depth at which Russian roulette applies.

    Returns:
        A tuple of (radiance, first_diffuse_point, first_diffuse_material):
        the radiance estimate, and the first vertex whose material is not a
        dielectric (material -1 if the path never reached one).
    """
    origin = ray.origin
    direction = ray.direction
    wavelength = ray.wavelength

    radiance = 0.0
    throughput = 1.0
    first_point = vec3(0.0, 0.0, 0.0)
    first_material = -1

    # Active flag for path continuation (no break inside ti.func loops)
    active = 1
    depth = 0
    while active == 1 and depth < max_depth:
        rec = intersect_scene(origin, direction, T_MIN, T_MAX)

        if rec.hit == 0:
            radiance += throughput * _background_radiance(direction, wavelength)
            active = 0
        else:
            if first_material == -1:
                if get_material_type(rec.material_id) != int(MaterialType.DIELECTRIC):
                    first_material = rec.material_id
                    first_point = rec.point

            radiance += throughput * _get_emission(rec.material_id, rec.front_face, wavelength)

            key = bounce_key(path_key, depth)
            scattered_direction, attenuation, did_scatter = _scatter_material(
                rec.material_id,
                direction,
                rec.normal,
                rec.front_face,
                rec.u,
                rec.v,
                wavelength,
                key,
            )

            if did_scatter == 0:
                active = 0
            else:
                throughput *= attenuation

                if depth >= rr_start_depth:
                    rr_prob = ti.min(throughput, MAX_RR_PROBABILITY)
                    if random_float(key, RR_DIMENSION) >= rr_prob:
                        active = 0
                    else:
                        throughput /= rr_prob

                if active == 1:
                    origin = _offset_ray_origin(rec.point, rec.normal, scattered_direction)
                    direction = scattered_direction

        depth += 1

    return radiance, first_point, first_material


@ti.func
def _sanitize(radiance: ti.f32) -> ti.f32:
    """Replace NaN, Inf and negative contributions by zero."""
    result = radiance
    if tm.isnan(radiance) or tm.isinf(radiance) or radiance < 0.0:
        result = 0.0
    return result


# =============================================================================
# Rendering Kernels
# =============================================================================


@ti.kernel
def _render_pass(
    width: ti.i32,
    height: ti.i32,
    sample_index: ti.i32,
    seed: ti.i32,
    max_depth: ti.i32,
    rr_start_depth: ti.i32,
):
    """Trace one sample for every pixel and fold it into the film."""
    for i, j in ti.ndrange(width, height):
        pixel_key = hash_combine(seed, j * width + i)
        path_key = sample_key(pixel_key, sample_index)
        wavelength = sample_wavelength(pixel_key, sample_index)

        ray = get_ray_jittered(i, j, width, height, wavelength, path_key)
        radiance, _point, _material = trace_path(ray, path_key, max_depth, rr_start_depth)

        accumulate_sample(i, j, spectral_sample_to_xyz(_sanitize(radiance), wavelength))


@ti.kernel
def _trace_probe_kernel(
    origins: ti.types.ndarray(),
    directions: ti.types.ndarray(),
    wavelengths: ti.types.ndarray(),
    seed: ti.i32,
    max_depth: ti.i32,
    rr_start_depth: ti.i32,
    out_radiance: ti.types.ndarray(),
    out_point: ti.types.ndarray(),
    out_material: ti.types.ndarray(),
):
    for k in range(origins.shape[0]):
        origin = vec3(origins[k, 0], origins[k, 1], origins[k, 2])
        direction = tm.normalize(vec3(directions[k, 0], directions[k, 1], directions[k, 2]))
        ray = make_ray(origin, direction, wavelengths[k])
        radiance, point, material = trace_path(
            ray, hash_combine(seed, k), max_depth, rr_start_depth
        )
        out_radiance[k] = _sanitize(radiance)
        out_material[k] = material
        for c in ti.static(range(3)):
            out_point[k, c] = point[c]


# =============================================================================
# Public Rendering API
# =============================================================================


@dataclass
class ProbeResult:
    """Per-ray output of ``trace_probe_paths``.

    Attributes:
        radiance: Radiance estimate of each path.
        point: First non-dielectric vertex of each path, shape (n, 3).
        material_id: Material at that vertex, -1 if none was reached.
    """

    radiance: npt.NDArray[np.float32]
    point: npt.NDArray[np.float32]
    material_id: npt.NDArray[np.int32]


def trace_probe_paths(
    origins: npt.ArrayLike,
    directions: npt.ArrayLike,
    wavelengths: npt.ArrayLike,
    seed: int = 0,
    max_depth: int = MAX_DEPTH,
    rr_start_depth: int = MIN_BOUNCES_BEFORE_RR,
) -> ProbeResult:
    """Trace full paths from arbitrary rays through the committed scene.

    Ray k uses the path key hash(seed, k), so results are reproducible.

    Raises:
        RuntimeError: If no scene has been committed.
    """
    if not has_active_scene():
        raise RuntimeError("No scene committed. Call SceneManager.build() first.")

    origins = np.ascontiguousarray(origins, dtype=np.float32).reshape(-1, 3)
    directions = np.ascontiguousarray(directions, dtype=np.float32).reshape(-1, 3)
    wavelengths = np.ascontiguousarray(wavelengths, dtype=np.float32).reshape(-1)
    n = origins.shape[0]
    if directions.shape[0] != n or wavelengths.shape[0] != n:
        raise ValueError("origins, directions and wavelengths must have the same length")

    result = ProbeResult(
        radiance=np.zeros(n, dtype=np.float32),
        point=np.zeros((n, 3), dtype=np.float32),
        material_id=np.full(n, -1, dtype=np.int32),
    )
    if n > 0:
        _trace_probe_kernel(
            origins,
            directions,
            wavelengths,
            as_i32(seed),
            max_depth,
            rr_start_depth,
            result.radiance,
            result.point,
            result.material_id,
        )
    return result


def prepare_render(scene: SceneManager, camera: Camera, settings: RenderSettings) -> None:
    """Commit the scene if needed, set up camera, film and background.

    Raises:
        ValueError: If the settings or camera are invalid.
        RuntimeError: If a scene capacity is exceeded.
    """
    settings.validate()
    scene.ensure_built()
    setup_camera(camera, aspect_ratio=settings.aspect_ratio)
    setup_film(settings.width, settings.height)

    if settings.background is not None:
        upload_background(
            BackgroundInfo(BackgroundType[settings.background.upper()], settings.background_color)
        )
    else:
        upload_background(scene.background)


def render_passes(
    num_samples: int,
    max_depth: int = MAX_DEPTH,
    seed: int = 0,
    rr_start_depth: int = MIN_BOUNCES_BEFORE_RR,
) -> None:
    """Add ``num_samples`` passes to the film.

    Sample indices continue from the samples already accumulated, so
    repeated calls extend a render exactly as one longer call would.

    Raises:
        RuntimeError: If the film, camera or scene is not set up.
    """
    if not is_film_initialized():
        raise RuntimeError("Film not set up. Call setup_film() first.")
    if not is_camera_ready():
        raise RuntimeError("Camera not set up. Call setup_camera() first.")
    if not has_active_scene():
        raise RuntimeError("No scene committed. Call SceneManager.build() first.")

    width, height = get_film_dimensions()
    start = get_total_samples()
    for s in range(num_samples):
        _render_pass(width, height, start + s, as_i32(seed), max_depth, rr_start_depth)
        logger.debug("Pass %d complete", start + s + 1)


def render(
    scene: SceneManager,
    camera: Camera,
    width: int,
    height: int,
    samples_per_pixel: int,
    max_depth: int = MAX_DEPTH,
    seed: int = 0,
    rr_start_depth: int = MIN_BOUNCES_BEFORE_RR,
    background: str | None = None,
) -> npt.NDArray[np.float32]:
    """Render a scene to a linear RGB image.

    The result depends only on the scene, camera, settings and seed, not on
    the number of worker threads.

    Args:
        scene: Scene to render; committed automatically if needed.
        camera: Camera configuration. Its aspect ratio defaults to
            width / height.
        width: Image width in pixels.
        height: Image height in pixels.
        samples_per_pixel: Samples per pixel.
        max_depth: Maximum number of bounces per path.
        seed: Seed of the random streams.
        rr_start_depth: First depth where Russian roulette applies.
        background: Optional override of the scene background.

    Returns:
        Linear RGB image of shape (height, width, 3), top row first.
    """
    settings = RenderSettings(
        width=width,
        height=height,
        samples_per_pixel=samples_per_pixel,
        max_depth=max_depth,
        rr_start_depth=rr_start_depth,
        seed=seed,
        background=background,
    )
    prepare_render(scene, camera, settings)

    logger.info(
        "Rendering %dx%d, %d spp, max depth %d, seed %d",
        width,
        height,
        samples_per_pixel,
        max_depth,
        seed,
    )
    start = time.perf_counter()
    render_passes(samples_per_pixel, max_depth, seed, rr_start_depth)
    logger.info("Render finished in %.2f s", time.perf_counter() - start)

    return resolve_image_numpy()
