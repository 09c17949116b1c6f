"""Progressive renderer for iterative sample accumulation.

This module wraps the integrator for workflows that refine an image over
time:
- Progressive rendering, one pass (one sample per pixel) at a time
- Batch rendering with progress callbacks or a generator
- Reset and resize without rebuilding the scene

Every pass continues the sample index where the previous one stopped, so
rendering 10 + 20 + 70 samples gives exactly the image of a single
100-sample render with the same seed. The film always holds a valid mean
after a completed pass, which makes each batch boundary a clean point to
save the image or stop.

Example:
    >>> from prism.runtime import init_runtime
    >>> init_runtime()
    >>> from prism.core.progressive import ProgressiveRenderer
    >>> from prism.scene.presets import build_scene
    >>>
    >>> scene, camera = build_scene("cornell")
    >>> renderer = ProgressiveRenderer(scene, camera, 400, 400)
    >>> renderer.render(100, batch_size=10)
    >>> renderer.save_image("cornell.png")
"""

from collections.abc import Callable, Generator

import numpy as np
import numpy.typing as npt

from prism.camera.camera import Camera
from prism.core.film import clear_film, get_total_samples, resolve_image_numpy
from prism.core.integrator import prepare_render, render_passes
from prism.core.settings import MAX_DEPTH, MIN_BOUNCES_BEFORE_RR, RenderSettings
from prism.preview.display import ToneMapMethod, apply_gamma
from prism.preview.export import image_to_uint8, save_image
from prism.scene.manager import SceneManager

# Callback receives (current_samples, total_target_samples)
ProgressCallback = Callable[[int, int], None]


class ProgressiveRenderer:
    """A renderer that accumulates samples into the film over time.

    The scene is committed and the camera and film are set up on
    construction. Only one renderer can drive the film at a time because
    the film buffers are module-level Taichi fields.

    Attributes:
        scene: The scene being rendered.
        camera: The camera configuration.
        settings: Resolution, depth, seed and background of the render.
    """

    def __init__(
        self,
        scene: SceneManager,
        camera: Camera,
        width: int,
        height: int,
        seed: int = 0,
        max_depth: int = MAX_DEPTH,
        rr_start_depth: int = MIN_BOUNCES_BEFORE_RR,
        background: str | None = None,
    ) -> None:
        """Initialize the progressive renderer.

        Raises:
            ValueError: If the dimensions or settings are invalid.
            RuntimeError: If the scene exceeds a capacity.
        """
        self.scene = scene
        self.camera = camera
        self.settings = RenderSettings(
            width=width,
            height=height,
            max_depth=max_depth,
            rr_start_depth=rr_start_depth,
            seed=seed,
            background=background,
        )
        prepare_render(scene, camera, self.settings)

    @property
    def width(self) -> int:
        return self.settings.width

    @property
    def height(self) -> int:
        return self.settings.height

    @property
    def sample_count(self) -> int:
        """Number of accumulated samples per pixel."""
        return get_total_samples()

    def reset(self) -> None:
        """Clear the accumulated samples, keeping scene and resolution."""
        clear_film()

    def resize(self, width: int, height: int) -> None:
        """Change the resolution and start over.

        Raises:
            ValueError: If dimensions exceed the maximum supported size.
        """
        self.settings.width = width
        self.settings.height = height
        prepare_render(self.scene, self.camera, self.settings)

    def _render_batch(self, batch: int) -> None:
        # Another renderer may have committed its own scene in the meantime
        self.scene.ensure_built()
        render_passes(
            batch, self.settings.max_depth, self.settings.seed, self.settings.rr_start_depth
        )

    def render(
        self,
        num_samples: int = 1,
        batch_size: int = 1,
        callback: ProgressCallback | None = None,
    ) -> None:
        """Add samples to the image with an optional progress callback.

        Can be called repeatedly to keep refining the image.

        Args:
            num_samples: Total number of samples to add.
            batch_size: Passes rendered between callbacks.
            callback: Called after each batch with
                (current_total_samples, target_total_samples).

        Example:
            >>> def progress(current, target):
            ...     print(f"Progress: {current}/{target} samples")
            >>> renderer.render(100, batch_size=10, callback=progress)
        """
        for current, target in self.render_progressive(num_samples, batch_size):
            if callback is not None:
                callback(current, target)

    def render_progressive(
        self,
        num_samples: int = 1,
        batch_size: int = 1,
    ) -> Generator[tuple[int, int], None, None]:
        """Add samples, yielding progress after each batch.

        Stopping the iteration early leaves a valid image of the samples
        rendered so far.

        Yields:
            Tuple of (current_total_samples, target_total_samples).
        """
        if num_samples <= 0:
            return
        batch_size = max(1, batch_size)

        target_samples = self.sample_count + num_samples
        remaining = num_samples
        while remaining > 0:
            batch = min(batch_size, remaining)
            self._render_batch(batch)
            remaining -= batch
            yield (self.sample_count, target_samples)

    def get_image_numpy(self, gamma: float = 1.0) -> npt.NDArray[np.float32]:
        """Current linear RGB image, shape (height, width, 3).

        Args:
            gamma: Gamma correction value. 1.0 returns the unclamped linear
                image; other values clamp to [0, 1] and encode.
        """
        image = resolve_image_numpy()
        return apply_gamma(image, gamma)

    def get_image_uint8(
        self, gamma: float = 2.2, tone_map: ToneMapMethod = "none"
    ) -> npt.NDArray[np.uint8]:
        return image_to_uint8(resolve_image_numpy(), tone_map=tone_map, gamma=gamma)

    def save_image(
        self,
        filepath: str,
        tone_map: ToneMapMethod = "none",
        gamma: float = 2.2,
        exposure: float = 1.0,
    ) -> None:
        """Save the current image; the format follows the file extension."""
        save_image(
            resolve_image_numpy(), filepath, tone_map=tone_map, gamma=gamma, exposure=exposure
        )

    def __repr__(self) -> str:
        return (
            f"ProgressiveRenderer(width={self.width}, height={self.height}, "
            f"samples={self.sample_count})"
        )
