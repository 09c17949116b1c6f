"""Image export through Pillow.

The output format follows the file extension:
    - .png: 8-bit RGB PNG
    - .jpg / .jpeg: 8-bit RGB JPEG
    - .ppm: binary PPM (P6)

Files are written to a temporary file next to the destination and renamed
into place, so a reader never observes a half-written image. The example
CLI relies on this when it rewrites the output after every batch.

Example:
    >>> from prism.preview.export import save_image
    >>> save_image(image, "output.png", tone_map="reinhard", gamma=2.2)
"""

import os
import tempfile
from pathlib import Path

import numpy as np
import numpy.typing as npt
from PIL import Image as PILImage

from prism.preview.display import ToneMapMethod, process_image_for_display

# File extension -> Pillow format name
IMAGE_FORMATS = {
    ".png": "PNG",
    ".jpg": "JPEG",
    ".jpeg": "JPEG",
    ".ppm": "PPM",
}


def image_to_uint8(
    image: npt.NDArray[np.float32],
    *,
    tone_map: ToneMapMethod = "none",
    gamma: float = 2.2,
    exposure: float = 1.0,
) -> npt.NDArray[np.uint8]:
    """Convert a linear float image to 8 bits after tone mapping and gamma.

    Returns:
        8-bit image array of shape (H, W, 3).
    """
    processed = process_image_for_display(
        image,
        tone_map=tone_map,
        gamma=gamma,
        exposure=exposure,
    )
    return np.rint(processed * 255.0).astype(np.uint8)


def image_format_for(filepath: str | os.PathLike[str]) -> str:
    """Pillow format name for a path.

    Raises:
        ValueError: If the extension is not supported.
    """
    suffix = Path(filepath).suffix.lower()
    if suffix not in IMAGE_FORMATS:
        raise ValueError(
            f"Unsupported image extension {suffix!r}; expected one of {sorted(IMAGE_FORMATS)}"
        )
    return IMAGE_FORMATS[suffix]


def save_image(
    image: npt.NDArray[np.float32],
    filepath: str | os.PathLike[str],
    *,
    tone_map: ToneMapMethod = "none",
    gamma: float = 2.2,
    exposure: float = 1.0,
) -> None:
    """Tone map, gamma encode and write a linear image atomically.

    Args:
        image: Linear image array of shape (H, W, 3).
        filepath: Destination; the extension picks the format.
        tone_map: "none", "reinhard" or "exposure".
        gamma: Gamma correction value.
        exposure: Multiplier for the exposure tone map.

    Raises:
        ValueError: If the extension or tone map is unknown, or the image
            does not have shape (H, W, 3).
    """
    image = np.asarray(image)
    if image.ndim != 3 or image.shape[2] != 3:
        raise ValueError(f"image must have shape (H, W, 3), got {image.shape}")
    image_format = image_format_for(filepath)

    image_uint8 = image_to_uint8(image, tone_map=tone_map, gamma=gamma, exposure=exposure)
    pil_image = PILImage.fromarray(image_uint8)

    path = Path(filepath)
    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "wb") as f:
            pil_image.save(f, format=image_format)
        os.replace(tmp_name, path)
    except BaseException:
        os.unlink(tmp_name)
        raise


def compute_rmse(
    image_a: npt.NDArray[np.floating],
    image_b: npt.NDArray[np.floating],
) -> float:
    """Root mean squared error between two images.

    Raises:
        ValueError: If image shapes don't match.
    """
    if image_a.shape != image_b.shape:
        raise ValueError(f"Image shapes must match: {image_a.shape} vs {image_b.shape}")

    diff = image_a.astype(np.float64) - image_b.astype(np.float64)
    return float(np.sqrt(np.mean(diff**2)))
