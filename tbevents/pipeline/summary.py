"""
Summary entry classification and decoding.

Each `Summary.Value` carries a tag and at most one populated payload field.
Classification checks the fields in a fixed priority order so the result is
deterministic even for odd writers:

    histogram > image > audio > tensor > scalar

`scalar` is the fallback: an entry with no payload field at all decodes as
`Scalar(simple_value)`, i.e. 0.0.

Public API:
- summary_kind(entry) -> ValueKind
- classify(entry) -> (tag, SummaryValue)
"""

from __future__ import annotations

import io
import wave
from typing import Callable, Dict, Tuple

import numpy as np
from PIL import Image as PILImage
from PIL import UnidentifiedImageError
from tensorboard.compat.proto import summary_pb2, tensor_pb2
from tensorboard.util import tensor_util

from ..dto import Audio, Histogram, Image, Scalar, SummaryValue, Tensor, ValueKind
from ..errors import SummaryDecodeError, UnknownSummaryKindError

# Priority order: first populated field wins
_KIND_FIELDS: Tuple[Tuple[ValueKind, str], ...] = (
    ("histogram", "histo"),
    ("image", "image"),
    ("audio", "audio"),
    ("tensor", "tensor"),
)

# PCM sample width (bytes) -> (numpy dtype, zero offset, full scale)
_PCM_FORMATS: Dict[int, Tuple[str, float, float]] = {
    1: ("u1", 128.0, 128.0),
    2: ("<i2", 0.0, 32768.0),
    4: ("<i4", 0.0, 2147483648.0),
}


def summary_kind(entry: summary_pb2.Summary.Value) -> ValueKind:
    """Return the value kind of `entry` without decoding its payload."""
    for kind, field in _KIND_FIELDS:
        if entry.HasField(field):
            return kind
    populated = entry.WhichOneof("value")
    if populated is None or populated == "simple_value":
        return "scalar"
    raise UnknownSummaryKindError(entry.tag, populated)


def classify(entry: summary_pb2.Summary.Value) -> Tuple[str, SummaryValue]:
    """Decode `entry` into its tag and typed value."""
    kind = summary_kind(entry)
    return entry.tag, _DECODERS[kind](entry)


# === Per-kind decoders ===


def decode_histogram(proto: summary_pb2.HistogramProto) -> Histogram:
    return Histogram(
        min=float(proto.min),
        max=float(proto.max),
        num=float(proto.num),
        sum=float(proto.sum),
        sum_squares=float(proto.sum_squares),
        bucket_limits=np.asarray(proto.bucket_limit, dtype=np.float64),
        counts=np.asarray(proto.bucket, dtype=np.float64),
    )


def decode_image(proto: summary_pb2.Summary.Image, tag: str = "") -> Image:
    try:
        with PILImage.open(io.BytesIO(proto.encoded_image_string)) as img:
            pixels = np.array(img)
    except (UnidentifiedImageError, OSError) as exc:
        raise SummaryDecodeError(tag, f"cannot decode image: {exc}") from exc
    return Image(
        height=int(proto.height),
        width=int(proto.width),
        colorspace=int(proto.colorspace),
        pixels=pixels,
    )


def decode_audio(proto: summary_pb2.Summary.Audio, tag: str = "") -> Audio:
    encoded = bytes(proto.encoded_audio_string)
    samples = None
    if proto.content_type in ("audio/wav", "audio/x-wav") or encoded[:4] == b"RIFF":
        samples = _decode_wav(encoded, tag)
    return Audio(
        sample_rate=float(proto.sample_rate),
        num_channels=int(proto.num_channels),
        length_frames=int(proto.length_frames),
        content_type=proto.content_type,
        encoded=encoded,
        samples=samples,
    )


def decode_tensor(proto: tensor_pb2.TensorProto, tag: str = "") -> Tensor:
    try:
        data = tensor_util.make_ndarray(proto)
    except (KeyError, TypeError, ValueError) as exc:
        raise SummaryDecodeError(tag, f"cannot decode tensor: {exc}") from exc
    return Tensor(dtype=str(data.dtype), shape=tuple(data.shape), data=data)


def _decode_wav(encoded: bytes, tag: str) -> np.ndarray:
    try:
        with wave.open(io.BytesIO(encoded), "rb") as wav:
            channels = wav.getnchannels()
            width = wav.getsampwidth()
            frames = wav.readframes(wav.getnframes())
    except (wave.Error, EOFError) as exc:
        raise SummaryDecodeError(tag, f"cannot decode WAV audio: {exc}") from exc

    fmt = _PCM_FORMATS.get(width)
    if fmt is None:
        raise SummaryDecodeError(tag, f"unsupported WAV sample width {width}")
    dtype, offset, scale = fmt
    pcm = np.frombuffer(frames, dtype=dtype).astype(np.float32)
    return ((pcm - offset) / scale).reshape(-1, channels)


_DECODERS: Dict[ValueKind, Callable[[summary_pb2.Summary.Value], SummaryValue]] = {
    "histogram": lambda e: decode_histogram(e.histo),
    "image": lambda e: decode_image(e.image, e.tag),
    "audio": lambda e: decode_audio(e.audio, e.tag),
    "tensor": lambda e: decode_tensor(e.tensor, e.tag),
    "scalar": lambda e: Scalar(float(e.simple_value)),
}
