"""
Tile atlas compositing: cuts every frame into blocks and stacks each block's
frames into a vertical animation strip.

Vertical convention: grid row y = 0 is the bottom row of the picture, so
increasing y points up in the world. Rasters have a top-left origin, so grid
row y is read from raster row (blocks_y - 1 - y). Column x = 0 is the left
edge of the picture.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, Iterator, List, Tuple

from PIL import Image

from ..sources.base import FrameSet, ShowError
from ..utils.image import ImageUtils
from .normalizer import GridSpec, NormalizationResult


logger = logging.getLogger(__name__)


@dataclass(frozen=True, order=True)
class Tile:
    """One cell of the block grid."""
    x: int
    y: int

    def __post_init__(self):
        if self.x < 0 or self.y < 0:
            raise ValueError(f"Tile coordinates cannot be negative, got ({self.x}, {self.y})")


@dataclass
class TileAtlas:
    """Vertical animation strip for one tile: band f holds the block from frame f."""
    tile: Tile
    image: Image.Image = field(repr=False)
    pixels_per_block: int

    @property
    def frame_count(self) -> int:
        return self.image.height // self.pixels_per_block

    def band(self, frame_index: int) -> Image.Image:
        """Return the block sampled from one frame."""
        if not 0 <= frame_index < self.frame_count:
            raise IndexError(f"Frame index {frame_index} out of range 0..{self.frame_count - 1}")
        top = frame_index * self.pixels_per_block
        return self.image.crop((0, top, self.pixels_per_block, top + self.pixels_per_block))

    def to_png_bytes(self, compress_level: int = 6) -> bytes:
        """Encode the strip as PNG."""
        return ImageUtils.encode_png(self.image, compress_level)


def iter_tiles(grid: GridSpec) -> Iterator[Tile]:
    """Every tile of a resolved grid, x-major then y."""
    for x in range(grid.blocks_x):
        for y in range(grid.blocks_y):
            yield Tile(x, y)


def raster_row(grid: GridSpec, y: int) -> int:
    """Raster block row (top-left origin) holding grid row y (bottom origin)."""
    return grid.blocks_y - 1 - y


class TileAtlasCompositor:
    """Builds one TileAtlas per tile of a resolved grid."""

    def __init__(self, resample: str = 'lanczos'):
        """
        Initialize compositor.

        Args:
            resample: Resampling method used to scale frames to the target size
        """
        # Fail on an unknown method before any frame is touched
        ImageUtils.resample_filter(resample)
        self.resample = resample

    def composite(self, frame_set: FrameSet, normalization: NormalizationResult) -> List[TileAtlas]:
        """
        Composite the frame set into per-tile atlases.

        Each frame is scaled once to its target size; blocks are then cut
        from the scaled surface and pasted unscaled into band f of every
        tile's strip.

        Args:
            frame_set: Decoded frames
            normalization: Result of the DimensionNormalizer for the same frames

        Returns:
            Exactly blocks_x * blocks_y atlases, ordered x-major then y

        Raises:
            RenderContextError: If a drawing surface cannot be created
        """
        grid = normalization.grid
        if len(normalization.geometries) != len(frame_set):
            raise ValueError(
                f"Normalization covers {len(normalization.geometries)} frames, "
                f"frame set has {len(frame_set)}"
            )

        ppb = grid.pixels_per_block
        atlases: Dict[Tile, TileAtlas] = {
            tile: TileAtlas(tile, self._new_surface((ppb, ppb * len(frame_set))), ppb)
            for tile in iter_tiles(grid)
        }

        for frame, geometry in zip(frame_set, normalization.geometries):
            scaled = self._scale(frame.raster, geometry.scaled_size)
            band_top = frame.index * ppb

            for tile, atlas in atlases.items():
                left, top = self.sample_offset(normalization, frame.index, tile)
                block = scaled.crop((left, top, left + ppb, top + ppb))
                atlas.image.paste(block, (0, band_top))

            logger.debug(f"Composited frame {frame.index} ({frame.name}) into {len(atlases)} tiles")

        for atlas in atlases.values():
            if ImageUtils.is_fully_transparent(atlas.image):
                logger.warning(f"Tile ({atlas.tile.x}, {atlas.tile.y}) is fully transparent")

        logger.info(f"Created {len(atlases)} tile atlases of {len(frame_set)} frames each")
        return [atlases[tile] for tile in sorted(atlases)]

    def sample_offset(self, normalization: NormalizationResult, frame_index: int,
                      tile: Tile) -> Tuple[int, int]:
        """Top-left pixel of the block sampled for a tile in a frame's scaled surface."""
        grid = normalization.grid
        offset_x, offset_y = normalization.geometries[frame_index].offset
        ppb = grid.pixels_per_block
        return (offset_x + tile.x * ppb, offset_y + raster_row(grid, tile.y) * ppb)

    def _scale(self, raster: Image.Image, size: Tuple[int, int]) -> Image.Image:
        try:
            return ImageUtils.resize_with_quality(ImageUtils.ensure_rgba(raster), size, self.resample)
        except (MemoryError, OSError, ValueError) as e:
            raise RenderContextError(f"Cannot scale frame to {size[0]}x{size[1]}: {e}")

    @staticmethod
    def _new_surface(size: Tuple[int, int]) -> Image.Image:
        try:
            return Image.new('RGBA', size, (0, 0, 0, 0))
        except (MemoryError, ValueError) as e:
            raise RenderContextError(f"Cannot allocate {size[0]}x{size[1]} surface: {e}")


class RenderContextError(ShowError):
    """Exception raised when a drawing surface cannot be acquired."""
