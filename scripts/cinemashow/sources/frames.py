"""
Frame loading: reads image blobs, sorts them by name, and decodes them into a FrameSet.
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Dict, Mapping, Tuple, Union

from PIL import Image

from .base import Frame, FrameSet, ImageDecodeError
from ..utils.image import ImageUtils


logger = logging.getLogger(__name__)

FRAME_EXTENSIONS = ('.png', '.jpg', '.jpeg')


class FrameLoader:
    """Decodes frame blobs into an ordered FrameSet."""

    def __init__(self, decode_workers: int = 4):
        """
        Initialize frame loader.

        Args:
            decode_workers: Number of threads used to decode frames
        """
        if decode_workers < 1:
            raise ValueError(f"decode_workers must be at least 1, got {decode_workers}")
        self.decode_workers = decode_workers

    def load_blobs(self, blobs: Mapping[str, bytes]) -> FrameSet:
        """
        Decode named image blobs into a frame set.

        Blobs are ordered by name before decoding; the name carries no other
        meaning. Decoding may run in parallel but every frame is decoded
        before this returns.

        Args:
            blobs: Mapping of frame name to encoded image bytes

        Returns:
            FrameSet with frame indexes in name order

        Raises:
            ImageDecodeError: If any blob cannot be decoded
        """
        ordered = sorted(blobs.items(), key=lambda item: item[0])
        if not ordered:
            logger.warning("No frames supplied")
            return FrameSet()

        logger.info(f"Decoding {len(ordered)} frames with {self.decode_workers} workers")

        with ThreadPoolExecutor(max_workers=self.decode_workers) as executor:
            # map() yields results in submission order
            images = list(executor.map(self._decode, ordered))

        frames = tuple(
            Frame(index=i, name=name, raster=image)
            for i, ((name, _), image) in enumerate(zip(ordered, images))
        )
        return FrameSet(frames)

    def load_directory(self, directory: Union[str, Path]) -> FrameSet:
        """
        Read and decode every frame image in a directory.

        Args:
            directory: Directory containing PNG or JPEG frames

        Returns:
            FrameSet ordered by file name
        """
        directory = Path(directory)
        if not directory.is_dir():
            raise FileNotFoundError(f"Frame directory not found: {directory}")

        return self.load_blobs(self.read_directory(directory))

    @staticmethod
    def read_directory(directory: Path) -> Dict[str, bytes]:
        """Read raw frame blobs from a directory, keyed by file name."""
        blobs = {}
        for path in directory.iterdir():
            if path.is_file() and path.suffix.lower() in FRAME_EXTENSIONS:
                blobs[path.name] = path.read_bytes()
            elif path.is_file():
                logger.debug(f"Skipping non-frame file {path.name}")
        return blobs

    @staticmethod
    def _decode(item: Tuple[str, bytes]) -> Image.Image:
        name, data = item
        try:
            return ImageUtils.load_image(data)
        except ValueError as e:
            raise ImageDecodeError(name, str(e))
