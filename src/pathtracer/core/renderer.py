"""Top-level render driver.

The Renderer ties a Camera to the integrator kernels. A render call uploads
the scene snapshot and the camera, accumulates samples_per_pixel samples in
batches, then finalizes the sums into an 8-bit pixel grid:

    scene.upload()  ->  setup_camera()  ->  accumulate batches  ->  finalize

Batches exist only to report progress; the finalized image is the same for
any batch size given the same random stream.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from pathtracer.core.renderer import Renderer
    >>> from pathtracer.scene.presets import three_spheres_camera, three_spheres_scene
    >>>
    >>> renderer = Renderer(three_spheres_camera(render_width=320, samples_per_pixel=20))
    >>> pixels = renderer.render(three_spheres_scene())
    >>> pixels.shape
    (180, 320, 3)
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Generator

import numpy as np
import numpy.typing as npt

from pathtracer.camera.camera import Camera, compute_render_height, setup_camera
from pathtracer.core.integrator import (
    MAX_IMAGE_HEIGHT,
    MAX_IMAGE_WIDTH,
    accumulate_samples,
    finalize_image,
    get_samples_accumulated,
    setup_render_target,
)
from pathtracer.errors import ConfigurationError
from pathtracer.scene.manager import Scene

logger = logging.getLogger(__name__)

# Callback receives (samples_done, samples_per_pixel)
ProgressCallback = Callable[[int, int], None]


class Renderer:
    """Renders scenes through a camera into 8-bit pixel grids.

    The renderer delegates to the global integrator buffers, so only one
    render runs at a time per process.

    Attributes:
        camera: The camera whose settings drive every render.
    """

    def __init__(self, camera: Camera) -> None:
        self.camera = camera

    @property
    def width(self) -> int:
        """Image width in pixels."""
        return self.camera.render_width

    @property
    def height(self) -> int:
        """Image height in pixels, derived from width and aspect ratio.

        Raises:
            ConfigurationError: If the camera settings are invalid.
        """
        self.camera.validate()
        return compute_render_height(self.camera.render_width, self.camera.aspect_ratio)

    @property
    def sample_count(self) -> int:
        """Samples per pixel accumulated by the current or last render."""
        return get_samples_accumulated()

    def _prepare(self, scene: Scene) -> None:
        height = self.height
        width = self.width
        if width > MAX_IMAGE_WIDTH or height > MAX_IMAGE_HEIGHT:
            raise ConfigurationError(
                f"Image size {width}x{height} exceeds maximum supported "
                f"({MAX_IMAGE_WIDTH}x{MAX_IMAGE_HEIGHT})"
            )

        logger.info(
            "Rendering %dx%d at %d spp, max %d bounces",
            width,
            height,
            self.camera.samples_per_pixel,
            self.camera.max_bounces,
        )
        scene.upload()
        setup_camera(self.camera)
        setup_render_target(width, height)
        logger.debug(
            "Uploaded %d spheres, %d materials",
            scene.get_sphere_count(),
            scene.get_material_count(),
        )

    def render_progressive(
        self,
        scene: Scene,
        batch_size: int | None = None,
    ) -> Generator[tuple[int, int], None, None]:
        """Accumulate samples for a scene, yielding after each batch.

        Call finalize() after the generator is exhausted to get the image.

        Args:
            scene: Scene to render. Its current contents are snapshotted.
            batch_size: Samples per pixel per batch. Defaults to all samples
                in one batch.

        Yields:
            Tuple of (samples_done, samples_per_pixel).

        Raises:
            ConfigurationError: If the camera settings are invalid or the
                image is larger than the render target.
            ValueError: If batch_size is less than 1.
        """
        if batch_size is not None and batch_size < 1:
            raise ValueError(f"batch_size must be at least 1, got {batch_size}")

        self._prepare(scene)

        total = self.camera.samples_per_pixel
        if batch_size is None:
            batch_size = total

        remaining = total
        while remaining > 0:
            batch = min(batch_size, remaining)
            accumulate_samples(batch, self.camera.max_bounces)
            remaining -= batch
            yield (self.sample_count, total)

    def finalize(self) -> npt.NDArray[np.uint8]:
        """Finalize the accumulated samples into a (height, width, 3) uint8 grid."""
        return finalize_image(self.camera.samples_per_pixel)

    def render(
        self,
        scene: Scene,
        batch_size: int | None = None,
        callback: ProgressCallback | None = None,
    ) -> npt.NDArray[np.uint8]:
        """Render a scene to an 8-bit pixel grid.

        Args:
            scene: Scene to render.
            batch_size: Samples per pixel per batch. Defaults to one batch.
            callback: Optional progress callback called after each batch
                with (samples_done, samples_per_pixel).

        Returns:
            Array of shape (height, width, 3) and dtype uint8, row 0 at the
            top of the image.

        Raises:
            ConfigurationError: If the camera settings are invalid or the
                image is larger than the render target.
        """
        start = time.perf_counter()
        for done, total in self.render_progressive(scene, batch_size):
            logger.debug("Accumulated %d/%d samples", done, total)
            if callback is not None:
                callback(done, total)

        pixels = self.finalize()
        logger.info("Render finished in %.2fs", time.perf_counter() - start)
        return pixels

    def __repr__(self) -> str:
        """Return a string representation of the renderer state."""
        return (
            f"Renderer(width={self.width}, height={self.height}, "
            f"samples_per_pixel={self.camera.samples_per_pixel}, "
            f"max_bounces={self.camera.max_bounces})"
        )
