"""Camera module for view and ray generation.

Components:
    camera: Thin-lens camera with look-at positioning, depth of field and
        per-sample wavelength selection

Ray generation uses normalized image coordinates:
    s in [0, 1]: left to right across image
    t in [0, 1]: bottom to top across image

``prism.camera.camera`` allocates Taichi fields on import; import it after
``prism.runtime.init_runtime()``.
"""
