"""Preview module for tone mapping and image output.

Components:
    display: Tone mapping (Reinhard, exposure) and gamma correction
    export: Atomic PNG/JPEG/PPM export through Pillow

Both work on plain numpy arrays and allocate no Taichi fields, so they can
be imported before the runtime is initialised.

Example:
    >>> from prism.preview import save_image
    >>> save_image(image, "output.png", tone_map="reinhard", gamma=2.2)
"""

from prism.preview.display import (
    ToneMapMethod,
    apply_gamma,
    process_image_for_display,
    tone_map_exposure,
    tone_map_reinhard,
)
from prism.preview.export import (
    IMAGE_FORMATS,
    compute_rmse,
    image_format_for,
    image_to_uint8,
    save_image,
)

__all__ = [
    # Tone mapping
    "tone_map_reinhard",
    "tone_map_exposure",
    "apply_gamma",
    "process_image_for_display",
    "ToneMapMethod",
    # Export functions
    "IMAGE_FORMATS",
    "image_format_for",
    "save_image",
    "image_to_uint8",
    "compute_rmse",
]
