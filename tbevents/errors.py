"""
Exception hierarchy for reading event logs.

Two families matter to callers:

- Stream-local, fatal: `CorruptRecordError` and `PayloadDecodeError`. Raised
  while streaming a file that passed the directory probe; processing of that
  file stops and the error propagates to the caller.
- Value-local, non-fatal: `SummaryDecodeError`. Raised for a single summary
  entry that cannot be turned into a value; iterators log and skip it.

A file that fails the probe during directory scanning is not an error at all;
it is simply left out of the collection.
"""

from __future__ import annotations

from typing import Optional


class TBEventsError(Exception):
    """Base class for all errors raised by this package."""


class CorruptRecordError(TBEventsError):
    """A record failed framing or checksum validation mid-stream."""

    def __init__(self, message: str, *, source: str = "<stream>", offset: Optional[int] = None) -> None:
        self.source = source
        self.offset = offset
        where = source if offset is None else f"{source} @ byte {offset}"
        super().__init__(f"{message} ({where})")


class CorruptHeaderError(CorruptRecordError):
    """Header checksum mismatch, or a header declaring a negative length."""


class CorruptPayloadError(CorruptRecordError):
    """Payload checksum mismatch."""


class TruncatedRecordError(CorruptRecordError):
    """The stream ended partway through a record."""


class PayloadDecodeError(TBEventsError):
    """Payload bytes passed their checksum but are not a valid event message."""


class SummaryDecodeError(TBEventsError):
    """A single summary entry could not be decoded into a value."""

    def __init__(self, tag: str, reason: str) -> None:
        self.tag = tag
        super().__init__(f"summary entry {tag!r}: {reason}")


class UnknownSummaryKindError(SummaryDecodeError):
    """The entry carries a payload field none of the decoders recognise."""

    def __init__(self, tag: str, field: str) -> None:
        self.field = field
        super().__init__(tag, f"unsupported payload field {field!r}")
