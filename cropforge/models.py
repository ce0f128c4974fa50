"""Shared data types used across CropForge."""

from dataclasses import dataclass
from enum import Enum


@dataclass(frozen=True)
class MediaMetadata:
    """Native size and duration of a loaded video."""

    width: int
    height: int
    duration: float


@dataclass(frozen=True)
class BoardExtent:
    """Size of the on-screen region available to render media."""

    width: int
    height: int


@dataclass(frozen=True)
class ClipPos:
    """Letterboxed sub-rectangle of the board actually occupied by media."""

    left: int
    top: int
    width: int
    height: int


@dataclass(frozen=True)
class ViewBox:
    """Coordinate basis for selections: the media's native pixel grid."""

    x: int
    y: int
    width: int
    height: int


@dataclass(frozen=True)
class Rect:
    """A crop rectangle in native-media pixel units."""

    x: int
    y: int
    width: int
    height: int

    def __post_init__(self) -> None:
        if self.x < 0 or self.y < 0:
            raise ValueError(f"Rect origin must be non-negative, got ({self.x}, {self.y})")
        if self.width <= 0 or self.height <= 0:
            raise ValueError(f"Rect size must be positive, got {self.width}x{self.height}")

    def fits(self, media: MediaMetadata) -> bool:
        return self.x + self.width <= media.width and self.y + self.height <= media.height


@dataclass(frozen=True)
class InputArtifact:
    """A source file registered with the transcoding engine."""

    name: str
    mime_type: str


@dataclass(frozen=True)
class OutputArtifact:
    """A produced file, addressable through its locator until released."""

    name: str
    mime_type: str
    locator: str


class JobStatus(str, Enum):
    IDLE = "idle"
    PROCESSING = "processing"
    COMPLETED = "completed"
