"""
Dimension normalization: derives the block grid and the shared cross-axis sample length.
"""

import logging
from dataclasses import dataclass, replace
from enum import Enum
from fractions import Fraction
from typing import List, Optional, Tuple, Union

from ..sources.base import Frame, FrameSet, ShowError


logger = logging.getLogger(__name__)

PIXELS_PER_BLOCK = 16


class Axis(Enum):
    """Axis whose block count is fixed by the caller."""
    X = "x"
    Y = "y"

    @classmethod
    def parse(cls, value: Union[str, "Axis"]) -> "Axis":
        """Parse 'x'/'y' (or 'wide'/'high') into an Axis."""
        if isinstance(value, Axis):
            return value
        aliases = {"x": cls.X, "wide": cls.X, "y": cls.Y, "high": cls.Y}
        try:
            return aliases[str(value).strip().lower()]
        except KeyError:
            raise ValueError(f"Unknown axis '{value}'. Use 'x' or 'y'")


@dataclass(frozen=True)
class GridSpec:
    """Block grid geometry. blocks_secondary is unset until normalization derives it."""
    primary_axis: Axis
    blocks_primary: int
    blocks_secondary: Optional[int] = None
    pixels_per_block: int = PIXELS_PER_BLOCK

    def __post_init__(self):
        """Validate grid parameters after initialization."""
        if isinstance(self.blocks_primary, bool) or not isinstance(self.blocks_primary, int):
            raise ValueError(f"blocks_primary must be an integer, got {self.blocks_primary!r}")
        if self.blocks_primary <= 0:
            raise ValueError(f"blocks_primary must be positive, got {self.blocks_primary}")
        if self.blocks_secondary is not None and self.blocks_secondary < 0:
            raise ValueError(f"blocks_secondary cannot be negative, got {self.blocks_secondary}")
        if self.pixels_per_block <= 0:
            raise ValueError(f"pixels_per_block must be positive, got {self.pixels_per_block}")

    @property
    def target_primary_length(self) -> int:
        """Pixel extent of the primary axis after scaling."""
        return self.blocks_primary * self.pixels_per_block

    @property
    def is_resolved(self) -> bool:
        return self.blocks_secondary is not None

    @property
    def blocks_x(self) -> int:
        return self.blocks_primary if self.primary_axis is Axis.X else self._secondary()

    @property
    def blocks_y(self) -> int:
        return self.blocks_primary if self.primary_axis is Axis.Y else self._secondary()

    @property
    def target_size(self) -> Tuple[int, int]:
        """Pixel (width, height) of the whole block grid."""
        return (self.blocks_x * self.pixels_per_block, self.blocks_y * self.pixels_per_block)

    @property
    def tile_count(self) -> int:
        return self.blocks_x * self.blocks_y

    def with_secondary(self, blocks_secondary: int) -> "GridSpec":
        """Return a resolved copy of this grid."""
        return replace(self, blocks_secondary=blocks_secondary)

    def _secondary(self) -> int:
        if self.blocks_secondary is None:
            raise ValueError("Grid is not resolved yet; run the DimensionNormalizer first")
        return self.blocks_secondary


@dataclass(frozen=True)
class FrameGeometry:
    """Where a frame is scaled to and where its crop window starts."""
    index: int
    scaled_size: Tuple[int, int]
    offset: Tuple[int, int]
    upscaled: bool = False


@dataclass(frozen=True)
class NormalizationResult:
    """Output of the DimensionNormalizer."""
    grid: GridSpec
    cross_axis_length: int
    geometries: Tuple[FrameGeometry, ...]

    @property
    def upscaled_frames(self) -> List[int]:
        """Indexes of frames that had to be enlarged."""
        return [g.index for g in self.geometries if g.upscaled]

    @property
    def target_size(self) -> Tuple[int, int]:
        return self.grid.target_size


def floor_to_block(length: Union[int, float, Fraction],
                   pixels_per_block: int = PIXELS_PER_BLOCK) -> int:
    """
    Round a pixel length down to a whole number of blocks.

    Idempotent: floor_to_block(floor_to_block(n)) == floor_to_block(n).
    """
    if length < 0:
        raise ValueError(f"length cannot be negative, got {length}")
    return int(length // pixels_per_block) * pixels_per_block


def primary_extent(frame: Frame, axis: Axis) -> int:
    return frame.width if axis is Axis.X else frame.height


def secondary_extent(frame: Frame, axis: Axis) -> int:
    return frame.height if axis is Axis.X else frame.width


class DimensionNormalizer:
    """Derives blocks_secondary and the cross-axis length for a frame set."""

    def secondary_lengths(self, frame_set: FrameSet, grid: GridSpec) -> List[Fraction]:
        """
        Exact secondary-axis extent of every frame once its primary axis is
        scaled to the grid's target primary length.
        """
        target = grid.target_primary_length
        return [
            Fraction(target * secondary_extent(frame, grid.primary_axis),
                     primary_extent(frame, grid.primary_axis))
            for frame in frame_set
        ]

    def cross_axis_length(self, frame_set: FrameSet, grid: GridSpec) -> int:
        """
        Minimum secondary length over the frame set, floored once to a block multiple.

        Raises:
            EmptyFrameSetError: If the frame set has no frames
        """
        if frame_set.is_empty:
            raise EmptyFrameSetError("Cannot normalize an empty frame set")

        for frame in frame_set:
            if frame.width <= 0 or frame.height <= 0:
                raise DegenerateGridError(f"Frame '{frame.name}' has no pixels ({frame.size})")

        shortest = min(self.secondary_lengths(frame_set, grid))
        return floor_to_block(shortest, grid.pixels_per_block)

    def normalize(self, frame_set: FrameSet, grid: GridSpec) -> NormalizationResult:
        """
        Resolve the grid for a frame set.

        Args:
            frame_set: Decoded frames (must not be empty)
            grid: Grid with the primary axis and its block count set

        Returns:
            NormalizationResult with the resolved grid, cross-axis length and
            per-frame scaling geometry

        Raises:
            EmptyFrameSetError: If the frame set has no frames
            DegenerateGridError: If the frames cannot fill a single block row
        """
        cross = self.cross_axis_length(frame_set, grid)
        if cross == 0:
            raise DegenerateGridError(
                f"Frames are too narrow on the {self._secondary_axis(grid).value} axis "
                f"to fill one block at {grid.blocks_primary} blocks on the "
                f"{grid.primary_axis.value} axis"
            )

        resolved = grid.with_secondary(cross // grid.pixels_per_block)
        geometries = tuple(self.frame_geometry(frame, resolved, cross) for frame in frame_set)

        upscaled = [g.index for g in geometries if g.upscaled]
        if upscaled:
            logger.warning(
                f"{len(upscaled)} of {len(frame_set)} frames are smaller than "
                f"{grid.target_primary_length}px on the {grid.primary_axis.value} axis "
                f"and will be upscaled (frames {upscaled})"
            )

        logger.info(
            f"Grid {resolved.blocks_x}x{resolved.blocks_y} blocks, "
            f"cross-axis length {cross}px"
        )
        return NormalizationResult(grid=resolved, cross_axis_length=cross, geometries=geometries)

    def frame_geometry(self, frame: Frame, grid: GridSpec, cross_axis_length: int) -> FrameGeometry:
        """
        Scaled size and centered crop offset for one frame.

        The primary axis is scaled edge to edge. The secondary axis keeps the
        aspect ratio and is center-cropped down to the cross-axis length.
        """
        axis = grid.primary_axis
        target = grid.target_primary_length
        native_primary = primary_extent(frame, axis)
        exact_secondary = Fraction(target * secondary_extent(frame, axis), native_primary)

        # round() never drops below the floored cross length
        scaled_secondary = max(round(exact_secondary), cross_axis_length)
        crop = (scaled_secondary - cross_axis_length) // 2

        if axis is Axis.X:
            scaled_size = (target, scaled_secondary)
            offset = (0, crop)
        else:
            scaled_size = (scaled_secondary, target)
            offset = (crop, 0)

        return FrameGeometry(
            index=frame.index,
            scaled_size=scaled_size,
            offset=offset,
            upscaled=native_primary < target,
        )

    @staticmethod
    def _secondary_axis(grid: GridSpec) -> Axis:
        return Axis.Y if grid.primary_axis is Axis.X else Axis.X


class EmptyFrameSetError(ShowError):
    """Exception raised when there are no frames to normalize."""


class DegenerateGridError(ShowError):
    """Exception raised when the derived grid would have no blocks."""
