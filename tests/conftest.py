import io
import struct
import wave
from pathlib import Path
from typing import Iterable

import numpy as np
import pytest
from PIL import Image as PILImage
from tensorboard.compat.proto import event_pb2, summary_pb2

from tbevents.intake.checksum import masked_crc32c


def frame(payload: bytes) -> bytes:
    header = struct.pack("<q", len(payload))
    return (
        header
        + struct.pack("<I", masked_crc32c(header))
        + payload
        + struct.pack("<I", masked_crc32c(payload))
    )


def write_events(path: Path, events: Iterable[event_pb2.Event]) -> Path:
    path.write_bytes(b"".join(frame(ev.SerializeToString()) for ev in events))
    return path


def version_event(step: int = 0) -> event_pb2.Event:
    return event_pb2.Event(wall_time=1.0, step=step, file_version="brain.Event:2")


def scalar_event(step: int, **values: float) -> event_pb2.Event:
    return event_pb2.Event(
        wall_time=1.0 + step,
        step=step,
        summary=summary_pb2.Summary(
            value=[summary_pb2.Summary.Value(tag=tag, simple_value=v) for tag, v in values.items()]
        ),
    )


def summary_event(step: int, entries) -> event_pb2.Event:
    return event_pb2.Event(wall_time=1.0 + step, step=step, summary=summary_pb2.Summary(value=list(entries)))


def png_entry(tag: str, pixels: np.ndarray) -> summary_pb2.Summary.Value:
    buf = io.BytesIO()
    PILImage.fromarray(pixels).save(buf, format="PNG")
    height, width = pixels.shape[:2]
    colorspace = 1 if pixels.ndim == 2 else pixels.shape[2]
    image = summary_pb2.Summary.Image(
        height=height, width=width, colorspace=colorspace, encoded_image_string=buf.getvalue()
    )
    return summary_pb2.Summary.Value(tag=tag, image=image)


def wav_bytes(samples: np.ndarray, sample_rate: int = 8000) -> bytes:
    buf = io.BytesIO()
    with wave.open(buf, "wb") as wav:
        wav.setnchannels(1)
        wav.setsampwidth(2)
        wav.setframerate(sample_rate)
        wav.writeframes(samples.astype("<i2").tobytes())
    return buf.getvalue()


@pytest.fixture
def logdir(tmp_path):
    d = tmp_path / "run"
    d.mkdir()
    return d
