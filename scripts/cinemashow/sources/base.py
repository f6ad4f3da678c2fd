"""
Core input types shared by every pipeline stage.
Defines decoded frames, the ordered frame set, and the pipeline error hierarchy.
"""

from dataclasses import dataclass, field
from typing import Iterator, List, Optional, Tuple
from PIL import Image


@dataclass(frozen=True)
class Frame:
    """A decoded input frame."""
    index: int
    name: str
    raster: Image.Image = field(compare=False, repr=False)

    @property
    def width(self) -> int:
        """Native width in pixels."""
        return self.raster.width

    @property
    def height(self) -> int:
        """Native height in pixels."""
        return self.raster.height

    @property
    def size(self) -> Tuple[int, int]:
        """Native (width, height)."""
        return self.raster.size


@dataclass(frozen=True)
class FrameSet:
    """Ordered, decoded frames of one show. Frame indexes follow name sort order."""
    frames: Tuple[Frame, ...] = ()

    def __post_init__(self):
        """Validate that frame indexes are contiguous and in order."""
        for position, frame in enumerate(self.frames):
            if frame.index != position:
                raise ValueError(
                    f"Frame '{frame.name}' has index {frame.index}, expected {position}"
                )

    @classmethod
    def from_images(cls, images: List[Image.Image],
                    names: Optional[List[str]] = None) -> "FrameSet":
        """Build a frame set from already decoded images, keeping list order."""
        if names is None:
            names = [f"frame_{i:04d}" for i in range(len(images))]
        if len(names) != len(images):
            raise ValueError(f"Got {len(images)} images but {len(names)} names")

        return cls(tuple(
            Frame(index=i, name=name, raster=image)
            for i, (name, image) in enumerate(zip(names, images))
        ))

    def __len__(self) -> int:
        return len(self.frames)

    def __iter__(self) -> Iterator[Frame]:
        return iter(self.frames)

    def __getitem__(self, index: int) -> Frame:
        return self.frames[index]

    @property
    def is_empty(self) -> bool:
        return not self.frames

    @property
    def names(self) -> List[str]:
        return [frame.name for frame in self.frames]

    def resized_to(self, frame_count: int) -> "FrameSet":
        """
        Return a frame set with exactly frame_count frames.

        Extra frames are dropped; a short sequence is repeated from the start.
        """
        if frame_count <= 0:
            raise ValueError(f"frame_count must be positive, got {frame_count}")
        if self.is_empty:
            return self

        frames = tuple(
            Frame(index=i, name=self.frames[i % len(self.frames)].name,
                  raster=self.frames[i % len(self.frames)].raster)
            for i in range(frame_count)
        )
        return FrameSet(frames)


class ShowError(Exception):
    """Base exception for every failure of a show pipeline run."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ImageDecodeError(ShowError):
    """Exception raised when a frame blob cannot be decoded."""

    def __init__(self, frame_name: str, reason: str):
        super().__init__(f"Cannot decode frame '{frame_name}': {reason}")
        self.frame_name = frame_name


class FetchError(ShowError):
    """Exception raised when the base archive cannot be fetched."""

    def __init__(self, address: str, reason: str, status_code: Optional[int] = None):
        super().__init__(f"Cannot fetch base archive from {address}: {reason}")
        self.address = address
        self.status_code = status_code
