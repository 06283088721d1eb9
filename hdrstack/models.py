"""Core data types for hdrstack."""

import dataclasses
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple, Union

import numpy as np

U16_MAX = 65535


@dataclasses.dataclass(frozen=True)
class CanonicalRaster:
    """A decoded image as 16-bit RGB, shape (height, width, 3), read-only."""
    width: int
    height: int
    pixels: np.ndarray

    def __post_init__(self):
        expected = (self.height, self.width, 3)
        if self.pixels.shape != expected:
            raise ValueError(
                f"Pixel buffer shape {self.pixels.shape} does not match {expected}"
            )
        if self.pixels.dtype != np.uint16:
            raise ValueError(f"Pixel buffer must be uint16, got {self.pixels.dtype}")
        # Own a private read-only copy; the caller's buffer stays writable
        pixels = self.pixels.copy()
        pixels.flags.writeable = False
        object.__setattr__(self, "pixels", pixels)

    @classmethod
    def from_array(cls, pixels: np.ndarray) -> "CanonicalRaster":
        """Copies an (H, W, 3) array into a new raster."""
        buf = np.asarray(pixels, dtype=np.uint16)
        if buf.ndim != 3:
            raise ValueError(f"Expected an (H, W, 3) array, got shape {buf.shape}")
        return cls(width=buf.shape[1], height=buf.shape[0], pixels=buf)

    @property
    def pixel_count(self) -> int:
        return self.width * self.height


@dataclasses.dataclass
class ImageStat:
    """Brightness statistic for one input image."""
    path: str
    average_luma: float

    def to_dict(self) -> Dict[str, Any]:
        return {"path": self.path, "averageLuma": self.average_luma}


@dataclasses.dataclass
class MergeRequest:
    """An ordered batch of bracketed exposures to merge."""
    paths: List[str]
    output_dir: Optional[str] = None
    output_exr: bool = False

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "MergeRequest":
        """Builds a request from the shell's camelCase payload."""
        output_dir = data.get("outputDir") or None
        return cls(
            paths=[str(p) for p in data.get("paths", [])],
            output_dir=str(output_dir) if output_dir else None,
            output_exr=bool(data.get("outputExr", False)),
        )


@dataclasses.dataclass
class MergeResult:
    output_png_path: str
    output_exr_path: Optional[str]
    width: int
    height: int
    merged_at: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "outputPngPath": self.output_png_path,
            "outputExrPath": self.output_exr_path,
            "width": self.width,
            "height": self.height,
            "mergedAt": self.merged_at,
        }


@dataclasses.dataclass(frozen=True)
class RawEvent:
    """An unfiltered filesystem notification as published by the observer."""
    kind: str
    paths: Tuple[str, ...]


@dataclasses.dataclass
class DetectedImage:
    path: str
    detected_at: float


@dataclasses.dataclass
class BurstGroup:
    """Images detected close together in time, most likely one bracket."""
    id: str
    created_at: float
    images: List[DetectedImage] = dataclasses.field(default_factory=list)

    @property
    def paths(self) -> List[str]:
        return [image.path for image in self.images]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "createdAt": self.created_at,
            "images": [
                {"path": image.path, "detectedAt": image.detected_at}
                for image in self.images
            ],
        }


PathLike = Union[str, Path]
