"""
Preview rendering: shows what each frame looks like once cropped to the block grid.
"""

import io
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import List, Tuple, Union

from PIL import Image, ImageDraw

from ..sources.base import FrameSet
from ..utils.image import ImageUtils
from .normalizer import NormalizationResult


logger = logging.getLogger(__name__)


@dataclass
class PreviewConfig:
    """Configuration for preview rendering."""
    show_grid: bool = True
    grid_color: Tuple[int, int, int, int] = (128, 128, 128, 255)
    tick_ms: int = 50
    resample: str = 'lanczos'


class PreviewRenderer:
    """Renders the grid-aligned frames of a show as an animation."""

    def __init__(self, config: PreviewConfig = None):
        """
        Initialize preview renderer.

        Args:
            config: Preview configuration
        """
        self.config = config or PreviewConfig()

    def render_frames(self, frame_set: FrameSet, normalization: NormalizationResult) -> List[Image.Image]:
        """
        Render every frame scaled and center-cropped to the show's target size.

        Args:
            frame_set: Decoded frames
            normalization: Result of the DimensionNormalizer for the same frames

        Returns:
            One RGBA image per frame, each exactly grid.target_size
        """
        width, height = normalization.target_size
        ppb = normalization.grid.pixels_per_block
        rendered = []

        for frame, geometry in zip(frame_set, normalization.geometries):
            scaled = ImageUtils.resize_with_quality(
                ImageUtils.ensure_rgba(frame.raster), geometry.scaled_size, self.config.resample
            )
            left, top = geometry.offset
            image = scaled.crop((left, top, left + width, top + height))

            if self.config.show_grid:
                self._draw_grid(image, ppb)

            rendered.append(image)

        logger.info(f"Rendered {len(rendered)} preview frames at {width}x{height}")
        return rendered

    def frame_duration_ms(self, frame_time: int) -> int:
        """Display time of one frame for a frame time given in game ticks."""
        return max(1, frame_time * self.config.tick_ms)

    def to_gif_bytes(self, frames: List[Image.Image], frame_time: int) -> bytes:
        """Encode rendered frames as a looping animated GIF."""
        if not frames:
            raise ValueError("No preview frames to encode")

        buffer = io.BytesIO()
        first, *rest = [frame.convert('RGB') for frame in frames]
        first.save(
            buffer,
            format='GIF',
            save_all=True,
            append_images=rest,
            duration=self.frame_duration_ms(frame_time),
            loop=0,
        )
        return buffer.getvalue()

    def save_gif(self, frames: List[Image.Image], path: Union[str, Path], frame_time: int) -> Path:
        """Write rendered frames to an animated GIF file."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(self.to_gif_bytes(frames, frame_time))
        logger.info(f"Saved preview animation to {path}")
        return path

    def _draw_grid(self, image: Image.Image, pixels_per_block: int) -> None:
        draw = ImageDraw.Draw(image)
        width, height = image.size
        for x in range(pixels_per_block, width, pixels_per_block):
            draw.line([(x, 0), (x, height - 1)], fill=self.config.grid_color)
        for y in range(pixels_per_block, height, pixels_per_block):
            draw.line([(0, y), (width - 1, y)], fill=self.config.grid_color)
