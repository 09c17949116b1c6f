"""Render configuration.

Engine defaults live here as module constants so that they can be imported
before the Taichi runtime is initialised; ``RenderSettings`` bundles the
per-render choices and validates them.
"""

from dataclasses import asdict, dataclass
from typing import Any

# Maximum ray bounces (path length)
MAX_DEPTH = 50

# Minimum bounces before Russian roulette can terminate paths
MIN_BOUNCES_BEFORE_RR = 3

# Russian roulette survival probability cap
MAX_RR_PROBABILITY = 0.95

# Ray offset epsilon to avoid self-intersection
RAY_EPSILON = 1e-4

# Maximum supported image dimensions (film buffers are preallocated)
MAX_IMAGE_WIDTH = 2048
MAX_IMAGE_HEIGHT = 2048

TONE_MAPS = ("none", "reinhard", "exposure")
BACKGROUNDS = ("uniform", "sky", "black")


def as_i32(value: int) -> int:
    """Wrap an arbitrary Python int into the signed 32-bit range."""
    return ((int(value) + 2**31) % 2**32) - 2**31


@dataclass
class RenderSettings:
    """Per-render configuration.

    Attributes:
        width: Image width in pixels.
        height: Image height in pixels.
        samples_per_pixel: Samples traced per pixel.
        max_depth: Maximum number of bounces per path.
        rr_start_depth: Depth from which Russian roulette may end paths;
            values >= max_depth disable it.
        seed: Seed of the counter-based random streams.
        background: Overrides the scene background when set ("uniform",
            "sky" or "black").
        background_color: Radiance of a uniform background override.
        tone_map: Tone mapping used when saving ("none", "reinhard",
            "exposure").
        gamma: Display gamma used when saving.
        exposure: Multiplier applied by the "exposure" tone map.
    """

    width: int = 800
    height: int = 600
    samples_per_pixel: int = 100
    max_depth: int = MAX_DEPTH
    rr_start_depth: int = MIN_BOUNCES_BEFORE_RR
    seed: int = 0
    background: str | None = None
    background_color: tuple[float, float, float] = (1.0, 1.0, 1.0)
    tone_map: str = "none"
    gamma: float = 2.2
    exposure: float = 1.0

    @property
    def aspect_ratio(self) -> float:
        return self.width / self.height

    def validate(self) -> None:
        """Raise ValueError describing the first invalid setting."""
        if self.width <= 0 or self.height <= 0:
            raise ValueError(
                f"Image dimensions must be positive, got {self.width}x{self.height}"
            )
        if self.width > MAX_IMAGE_WIDTH or self.height > MAX_IMAGE_HEIGHT:
            raise ValueError(
                f"Image dimensions ({self.width}x{self.height}) exceed maximum supported "
                f"({MAX_IMAGE_WIDTH}x{MAX_IMAGE_HEIGHT})"
            )
        if self.samples_per_pixel < 0:
            raise ValueError(f"samples_per_pixel must be >= 0, got {self.samples_per_pixel}")
        if self.max_depth < 1:
            raise ValueError(f"max_depth must be >= 1, got {self.max_depth}")
        if self.rr_start_depth < 0:
            raise ValueError(f"rr_start_depth must be >= 0, got {self.rr_start_depth}")
        if self.background is not None and self.background not in BACKGROUNDS:
            raise ValueError(f"background must be one of {BACKGROUNDS}, got {self.background!r}")
        if self.tone_map not in TONE_MAPS:
            raise ValueError(f"tone_map must be one of {TONE_MAPS}, got {self.tone_map!r}")
        if not self.gamma > 0.0:
            raise ValueError(f"gamma must be positive, got {self.gamma}")

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)
