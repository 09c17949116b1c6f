"""Material models for the spectral path tracer.

Components:
    lambertian: Ideal diffuse reflection, optionally textured
    metal: Specular reflection with fuzz
    dielectric: Dispersive glass with Cauchy index of refraction
    diffuse_light: Area light emission
    texture: Image textures sampled by diffuse materials
    common: Parameter validation shared by the registries

Each material module keeps its own registry of Taichi fields and exposes
``add_*`` and ``clear_*`` functions on the host plus ``ti.func`` helpers
used by the integrator. Importing a registry allocates fields, so import
these modules after ``prism.runtime.init_runtime()``.
"""
