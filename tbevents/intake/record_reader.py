"""
Record reader: yields decoded events from one log file's byte stream.

Wire format, per record:

    length            8 bytes   signed 64-bit little-endian payload size
    header checksum   4 bytes   masked CRC-32C of the 8 length bytes
    payload           length    serialized Event message
    payload checksum  4 bytes   masked CRC-32C of the payload

Implementation notes:
- Reads strictly forward; never seeks.
- A clean end of stream is only possible on a record boundary. Running out
  of bytes anywhere else is a truncated record.
- Checksum failures here are fatal for the stream. The lenient variant used
  while probing a directory is `is_valid_record_header`.
"""

from __future__ import annotations

import struct
from typing import IO, Iterator, Optional

from google.protobuf.message import DecodeError
from tensorboard.compat.proto import event_pb2

from ..dto import Record
from ..errors import CorruptHeaderError, CorruptPayloadError, PayloadDecodeError, TruncatedRecordError
from ..ports import PayloadDecoder
from .checksum import CHECKSUM_SIZE, unpack_checksum, validate

HEADER_SIZE = 8
_LENGTH = struct.Struct("<q")


def decode_event(payload: bytes) -> event_pb2.Event:
    """Default payload decoder: parse bytes as a protobuf `Event`."""
    event = event_pb2.Event()
    try:
        event.ParseFromString(payload)
    except DecodeError as exc:
        raise PayloadDecodeError(f"payload is not an Event message: {exc}") from exc
    return event


def is_valid_record_header(stream: IO[bytes]) -> bool:
    """
    Return True if the stream starts with a record whose length header passes
    its checksum. Never raises for bad data; used to tell log files apart from
    unrelated files.
    """
    header = _read_upto(stream, HEADER_SIZE)
    if len(header) != HEADER_SIZE:
        return False
    crc = _read_upto(stream, CHECKSUM_SIZE)
    if not validate(header, crc):
        return False
    (length,) = _LENGTH.unpack(header)
    return length >= 0


def _read_upto(stream: IO[bytes], n: int) -> bytes:
    """Read up to n bytes, looping over short reads; fewer only at end of data."""
    chunks = []
    remaining = n
    while remaining > 0:
        chunk = stream.read(remaining)
        if not chunk:
            break
        chunks.append(chunk)
        remaining -= len(chunk)
    return b"".join(chunks)


class RecordReader:
    """
    Reads records one at a time from a stream it exclusively owns.

    Usage:
        with RecordReader(stream, name=path) as reader:
            for event in reader:
                ...
    """

    def __init__(
        self,
        stream: IO[bytes],
        *,
        decoder: PayloadDecoder = decode_event,
        name: str = "<stream>",
    ) -> None:
        self._stream = stream
        self._decoder = decoder
        self._offset = 0
        self.name = name
        self.closed = False

    # --- framing ---

    def read_record(self) -> Optional[Record]:
        """Return the next Record, or None at a clean end of stream."""
        start = self._offset
        header = self._read(HEADER_SIZE)
        if not header:
            return None
        if len(header) != HEADER_SIZE:
            raise TruncatedRecordError("stream ended inside a record header", source=self.name, offset=start)

        header_crc = self._read_exact(CHECKSUM_SIZE, start)
        if not validate(header, header_crc):
            raise CorruptHeaderError("header checksum mismatch", source=self.name, offset=start)

        (length,) = _LENGTH.unpack(header)
        if length < 0:
            raise CorruptHeaderError(f"negative record length {length}", source=self.name, offset=start)

        payload = self._read_exact(length, start)
        payload_crc = self._read_exact(CHECKSUM_SIZE, start)
        if not validate(payload, payload_crc):
            raise CorruptPayloadError("payload checksum mismatch", source=self.name, offset=start)

        return Record(
            length=length,
            header_checksum=unpack_checksum(header_crc),
            payload=payload,
            payload_checksum=unpack_checksum(payload_crc),
        )

    def next_event(self) -> Optional[event_pb2.Event]:
        """Return the next decoded Event, or None at a clean end of stream."""
        record = self.read_record()
        if record is None:
            return None
        return self._decoder(record.payload)

    # --- iteration / lifecycle ---

    def __iter__(self) -> Iterator[event_pb2.Event]:
        while True:
            event = self.next_event()
            if event is None:
                return
            yield event

    def close(self) -> None:
        if not self.closed:
            self.closed = True
            self._stream.close()

    def __enter__(self) -> "RecordReader":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    # === Helpers ===

    def _read(self, n: int) -> bytes:
        data = _read_upto(self._stream, n)
        self._offset += len(data)
        return data

    def _read_exact(self, n: int, record_start: int) -> bytes:
        data = self._read(n)
        if len(data) != n:
            raise TruncatedRecordError(
                f"expected {n} bytes, got {len(data)}", source=self.name, offset=record_start
            )
        return data
