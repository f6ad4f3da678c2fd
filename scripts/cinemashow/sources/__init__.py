"""
Pipeline inputs: decoded frames and the base archive.
"""

from .base import (
    Frame, FrameSet,
    ShowError, ImageDecodeError, FetchError,
)
from .frames import FrameLoader, FRAME_EXTENSIONS
from .archive import BaseArchiveSource

__all__ = [
    # Input types
    "Frame",
    "FrameSet",

    # Exceptions
    "ShowError",
    "ImageDecodeError",
    "FetchError",

    # Loaders
    "FrameLoader",
    "FRAME_EXTENSIONS",
    "BaseArchiveSource",
]
