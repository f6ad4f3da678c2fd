"""
Cinema Show pipeline

Turns a sequence of frame images into an animated wall of blocks: frames are
normalized to a block grid, cut into per-tile animation strips, described with
block and item models, and packed into a copy of the base resource archive.
"""

__version__ = "0.1.0"
__author__ = "Cinema Show Development Team"

from .config import PipelineConfig
from .sources.base import Frame, FrameSet, ShowError
from .processing.normalizer import Axis, GridSpec, DimensionNormalizer
from .processing.atlas import TileAtlasCompositor
from .processing.metadata import AssetModelBuilder, ShowConfig
from .processing.exporter import ArchiveExporter
from .pipeline import ShowPipeline, ShowRequest, ShowResult

__all__ = [
    "PipelineConfig",
    "Frame",
    "FrameSet",
    "ShowError",
    "Axis",
    "GridSpec",
    "DimensionNormalizer",
    "TileAtlasCompositor",
    "AssetModelBuilder",
    "ShowConfig",
    "ArchiveExporter",
    "ShowPipeline",
    "ShowRequest",
    "ShowResult",
]
