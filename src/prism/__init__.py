"""Spectral path tracer built on Taichi.

Light is carried as a single sampled wavelength per path ("hero wavelength")
instead of three RGB channels. Surface colours are lifted to reflectance
spectra, paths are traced on the CPU backend with one Taichi thread per
pixel, and the film integrates the spectral samples back to RGB through the
CIE colour-matching functions.

Subpackages:
    core: Rays, random numbers, spectra, the path integrator and film
    geometry: Primitives, bounding boxes and the BVH builder
    materials: Lambertian, metal, dielectric and diffuse light models
    scene: Scene construction, intersection queries and preset scenes
    camera: Thin-lens camera and wavelength sampling
    preview: Tone mapping and image export

Taichi fields are allocated when their modules are imported, so call
``prism.runtime.init_runtime()`` before importing anything below ``core``.
"""

from .errors import SceneDefinitionError

__version__ = "0.1.0"

__all__ = ["SceneDefinitionError", "__version__"]
