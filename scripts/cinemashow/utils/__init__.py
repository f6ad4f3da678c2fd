"""
Utility modules for image processing.
"""

from .image import ImageUtils, RESAMPLE_METHODS

__all__ = [
    "ImageUtils",
    "RESAMPLE_METHODS",
]
