"""
Show processing modules for normalization, atlas compositing, descriptor generation,
archive export, and preview rendering.
"""

from .normalizer import (
    Axis,
    GridSpec,
    FrameGeometry,
    NormalizationResult,
    DimensionNormalizer,
    EmptyFrameSetError,
    DegenerateGridError,
    PIXELS_PER_BLOCK,
    floor_to_block,
)
from .atlas import Tile, TileAtlas, TileAtlasCompositor, RenderContextError, iter_tiles
from .metadata import (
    AssetModelBuilder,
    AssetPaths,
    ShowConfig,
    RotationVariant,
    ROTATION_VARIANTS,
    InvalidNameError,
    MalformedDocumentError,
    slugify,
)
from .exporter import ArchiveExporter, ArchiveWriteError
from .preview import PreviewRenderer, PreviewConfig

__all__ = [
    "Axis",
    "GridSpec",
    "FrameGeometry",
    "NormalizationResult",
    "DimensionNormalizer",
    "EmptyFrameSetError",
    "DegenerateGridError",
    "PIXELS_PER_BLOCK",
    "floor_to_block",
    "Tile",
    "TileAtlas",
    "TileAtlasCompositor",
    "RenderContextError",
    "iter_tiles",
    "AssetModelBuilder",
    "AssetPaths",
    "ShowConfig",
    "RotationVariant",
    "ROTATION_VARIANTS",
    "InvalidNameError",
    "MalformedDocumentError",
    "slugify",
    "ArchiveExporter",
    "ArchiveWriteError",
    "PreviewRenderer",
    "PreviewConfig",
]
