"""Tone mapping and gamma correction for rendered images.

All functions take linear RGB arrays of shape (H, W, 3), as returned by
``render()``, and return float32 arrays. The display pipeline is tone map,
then gamma, then clamp to [0, 1].

Example:
    >>> from prism.preview.display import process_image_for_display
    >>> ldr = process_image_for_display(image, tone_map="reinhard", gamma=2.2)
"""

from typing import Literal

import numpy as np
import numpy.typing as npt

# Type alias for tone mapping options
ToneMapMethod = Literal["none", "reinhard", "exposure"]


def tone_map_reinhard(
    image: npt.NDArray[np.float32],
) -> npt.NDArray[np.float32]:
    """Apply Reinhard tone mapping: L / (1 + L).

    Compresses unbounded radiance into [0, 1).
    """
    image = np.maximum(image, 0.0)
    return (image / (1.0 + image)).astype(np.float32)


def tone_map_exposure(
    image: npt.NDArray[np.float32],
    exposure: float = 1.0,
) -> npt.NDArray[np.float32]:
    """Apply exposure tone mapping: 1 - exp(-c * exposure).

    Args:
        image: Linear image array of shape (H, W, 3).
        exposure: Higher values brighten the image.

    Returns:
        Tone mapped image in [0, 1).
    """
    image = np.maximum(image, 0.0)
    return (1.0 - np.exp(-image * exposure)).astype(np.float32)


def apply_gamma(
    image: npt.NDArray[np.float32],
    gamma: float = 2.2,
) -> npt.NDArray[np.float32]:
    """Encode linear values as in^(1/gamma).

    A gamma of 1.0 returns the image unchanged (and unclamped).

    Raises:
        ValueError: If gamma is not positive.
    """
    if not gamma > 0.0:
        raise ValueError(f"gamma must be positive, got {gamma}")
    if gamma == 1.0:
        return image

    # Clamp first, negative values have no real power
    image = np.clip(image, 0.0, 1.0)
    return np.power(image, 1.0 / gamma).astype(np.float32)


def process_image_for_display(
    image: npt.NDArray[np.float32],
    tone_map: ToneMapMethod = "none",
    gamma: float = 2.2,
    exposure: float = 1.0,
) -> npt.NDArray[np.float32]:
    """Run the full display pipeline on a linear image.

    Args:
        image: Linear image array of shape (H, W, 3).
        tone_map: "none", "reinhard" or "exposure".
        gamma: Gamma correction value (2.2 for sRGB-like output).
        exposure: Multiplier for the exposure tone map.

    Returns:
        Display-ready image in [0, 1].

    Raises:
        ValueError: If the tone mapping method is unknown.
    """
    result = np.asarray(image, dtype=np.float32)

    if tone_map == "reinhard":
        result = tone_map_reinhard(result)
    elif tone_map == "exposure":
        result = tone_map_exposure(result, exposure)
    elif tone_map != "none":
        raise ValueError(f"Unknown tone mapping method: {tone_map}")

    result = apply_gamma(result, gamma)
    return np.clip(result, 0.0, 1.0).astype(np.float32)
