"""
Image processing utilities for the show pipeline.
"""

from typing import Tuple
from PIL import Image
import numpy as np
import io


RESAMPLE_METHODS = {
    'lanczos': Image.Resampling.LANCZOS,
    'bicubic': Image.Resampling.BICUBIC,
    'bilinear': Image.Resampling.BILINEAR,
    'nearest': Image.Resampling.NEAREST,
}


class ImageUtils:
    """Utility class for common image processing operations."""

    @staticmethod
    def load_image(data: bytes) -> Image.Image:
        """
        Load and fully decode an image from encoded bytes.

        Args:
            data: Encoded PNG or JPEG bytes

        Returns:
            Decoded PIL Image object

        Raises:
            ValueError: If data cannot be decoded as an image
        """
        if isinstance(data, bytes):
            try:
                image = Image.open(io.BytesIO(data))
                # Image.open is lazy, force the decoder to run now
                image.load()
                return image
            except Exception as e:
                raise ValueError(f"Cannot load image from bytes: {e}")
        else:
            raise ValueError(f"Unsupported image data type: {type(data)}")

    @staticmethod
    def encode_png(image: Image.Image, compress_level: int = 6) -> bytes:
        """
        Encode image as PNG bytes.

        The encoder writes no timestamps or text chunks, so equal pixels
        always produce equal bytes.
        """
        buffer = io.BytesIO()
        image.save(buffer, format='PNG', compress_level=compress_level)
        return buffer.getvalue()

    @staticmethod
    def ensure_rgba(image: Image.Image) -> Image.Image:
        """Convert image to RGBA mode if not already."""
        if image.mode != 'RGBA':
            return image.convert('RGBA')
        return image

    @staticmethod
    def resample_filter(method: str) -> Image.Resampling:
        """Map a resampling method name to a Pillow filter."""
        try:
            return RESAMPLE_METHODS[method.lower()]
        except KeyError:
            raise ValueError(
                f"Unknown resampling method '{method}'. Available: {list(RESAMPLE_METHODS)}"
            )

    @staticmethod
    def resize_with_quality(image: Image.Image, target_size: Tuple[int, int],
                           method: str = 'lanczos') -> Image.Image:
        """
        Resize image with quality preservation.

        Args:
            image: Source image
            target_size: Target (width, height)
            method: Resampling method ('lanczos', 'bicubic', 'bilinear', 'nearest')

        Returns:
            Resized image
        """
        if image.size == tuple(target_size):
            return image.copy()
        return image.resize(target_size, ImageUtils.resample_filter(method))

    @staticmethod
    def is_fully_transparent(image: Image.Image) -> bool:
        """Check if every pixel of an RGBA image has zero alpha."""
        if image.mode != 'RGBA':
            return False

        alpha_array = np.array(image.getchannel('A'))
        return bool(np.all(alpha_array == 0))
