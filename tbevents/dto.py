"""
Data Transfer Objects (DTOs) used across the reader pipeline.

These are small and immutable. Array-bearing values compare by identity
(`eq=False`) because numpy arrays have no single truth value.

Events themselves are the protobuf `Event` messages produced by the payload
decoder and are not wrapped here.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import ClassVar, Iterator, Literal, Optional, Tuple, Union

import numpy as np

ValueKind = Literal[
    "histogram",
    "image",
    "audio",
    "tensor",
    "scalar",
    "complex_scalar",
    "complex_histogram",
    "image_stack",
]


# === Framing ===
@dataclass(frozen=True)
class Record:
    """One length-framed, checksum-protected unit read from a stream."""
    length: int               # payload byte count (signed 64-bit on disk)
    header_checksum: int      # masked CRC-32C of the 8 length bytes
    payload: bytes
    payload_checksum: int     # masked CRC-32C of the payload


# === Directory ===
@dataclass(frozen=True)
class EventFile:
    """One valid log file inside a directory."""
    path: str
    name: str                 # file name; the collection sort key


@dataclass(frozen=True)
class Collection:
    """Valid log files of one directory, in lexicographic file-name order."""
    directory: str
    files: Tuple[EventFile, ...] = ()

    def __iter__(self) -> Iterator[EventFile]:
        return iter(self.files)

    def __len__(self) -> int:
        return len(self.files)

    @property
    def names(self) -> Tuple[str, ...]:
        return tuple(f.name for f in self.files)


# === Decoded values ===
@dataclass(frozen=True)
class Scalar:
    value: float
    kind: ClassVar[ValueKind] = "scalar"


@dataclass(frozen=True, eq=False)
class Histogram:
    """
    Bucketed distribution. Bucket i covers (bucket_limits[i-1], bucket_limits[i]];
    `edges` uses `min` as the left edge of the first bucket.
    """
    min: float
    max: float
    num: float
    sum: float
    sum_squares: float
    bucket_limits: np.ndarray
    counts: np.ndarray
    kind: ClassVar[ValueKind] = "histogram"

    @property
    def edges(self) -> np.ndarray:
        return np.concatenate(([self.min], self.bucket_limits))

    @property
    def mean(self) -> float:
        return self.sum / self.num if self.num else math.nan


@dataclass(frozen=True, eq=False)
class Image:
    height: int
    width: int
    colorspace: int           # 1 grayscale, 2 grayscale+alpha, 3 RGB, 4 RGBA
    pixels: np.ndarray        # (H, W) or (H, W, C), uint8
    kind: ClassVar[ValueKind] = "image"


@dataclass(frozen=True, eq=False)
class Audio:
    sample_rate: float
    num_channels: int
    length_frames: int
    content_type: str
    encoded: bytes
    samples: Optional[np.ndarray] = None   # (frames, channels) float32 in [-1, 1]; None if not WAV
    kind: ClassVar[ValueKind] = "audio"


@dataclass(frozen=True, eq=False)
class Tensor:
    dtype: str
    shape: Tuple[int, ...]
    data: np.ndarray
    kind: ClassVar[ValueKind] = "tensor"


# === Composite values (recombination pass only) ===
@dataclass(frozen=True)
class ComplexScalar:
    value: complex
    kind: ClassVar[ValueKind] = "complex_scalar"


@dataclass(frozen=True, eq=False)
class ComplexHistogram:
    real: Histogram
    imag: Histogram
    kind: ClassVar[ValueKind] = "complex_histogram"


@dataclass(frozen=True, eq=False)
class ImageStack:
    """Slices of one volume that were logged as separate images."""
    images: Tuple[Image, ...]
    kind: ClassVar[ValueKind] = "image_stack"

    @property
    def pixels(self) -> np.ndarray:
        return np.stack([img.pixels for img in self.images])

    def __len__(self) -> int:
        return len(self.images)


SummaryValue = Union[
    Histogram,
    Image,
    Audio,
    Tensor,
    Scalar,
    ComplexScalar,
    ComplexHistogram,
    ImageStack,
]
