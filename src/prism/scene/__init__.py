"""Scene module for scene construction and ray-scene queries.

Components:
    manager: SceneManager, the validating scene builder and committer
    intersection: Primitive tables, stackless BVH traversal and batch
        ray queries
    presets: Ready-made scenes (three_spheres, many_spheres, simple_light,
        cornell, dispersion)

Scene data is organized for the kernels as:
    - Structure-of-Arrays primitive tables
    - A depth-first flattened BVH with skip links
    - A unified material id table mapping to type-local registries

Every module here allocates Taichi fields on import, so nothing is
re-exported; import them after ``prism.runtime.init_runtime()``.
"""
