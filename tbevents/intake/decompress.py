"""
Event file opener.

Provides a single entry point `open_event_stream(path)` that returns a binary
file-like object for reading a log file's raw records, regardless of whether
the file on disk is plain, gzip-compressed, or zstd-compressed (archived runs
are often stored compressed).

Compression is detected from content, not from the file name, so rotated
log names without suffixes still work. A plain record header is checked
first: a record length can itself begin with a magic number (a 35615-byte
first record starts with the gzip magic), so magic bytes are only consulted
when the file does not open with a valid record header. This module does not parse records; it
only handles opening and decompression.
"""

from __future__ import annotations

import gzip
import io
import os
import zlib
from contextlib import contextmanager
from typing import Final, Generator, IO, Literal, Union

import zstandard  # type: ignore

from .checksum import CHECKSUM_SIZE
from .record_reader import HEADER_SIZE, is_valid_record_header

Compressor = Literal["none", "gzip", "zstd"]

MAGIC_GZIP: Final[bytes] = bytes.fromhex("1f 8b".replace(" ", ""))
MAGIC_ZSTD: Final[bytes] = bytes.fromhex("28 b5 2f fd".replace(" ", ""))

# Errors that mean "this file cannot be read as a byte stream"
STREAM_ERRORS: Final = (OSError, EOFError, zlib.error, zstandard.ZstdError)


def _read_head(path: Union[str, os.PathLike], n: int) -> bytes:
    with open(path, "rb") as f:
        return f.read(n)


def detect_compressor(path: Union[str, os.PathLike]) -> Compressor:
    """Infer the compression of `path`; a valid plain record header wins over magic bytes."""
    head = _read_head(path, HEADER_SIZE + CHECKSUM_SIZE)
    if is_valid_record_header(io.BytesIO(head)):
        return "none"
    if head[:2] == MAGIC_GZIP:
        return "gzip"
    if head[:4] == MAGIC_ZSTD:
        return "zstd"
    return "none"


@contextmanager
def open_event_stream(path: Union[str, os.PathLike]) -> Generator[IO[bytes], None, None]:
    """
    Context manager yielding a readable binary stream for the given file.

    - plain:  open() in 'rb'
    - gzip:   gzip.open(..., 'rb')
    - zstd:   zstd stream reader over the file

    Every handle opened here is closed when the context exits, including on
    error.
    """
    compressor = detect_compressor(path)

    if compressor == "gzip":
        f = gzip.open(path, "rb")
        try:
            yield f  # gzip.GzipFile is file-like
        finally:
            f.close()
        return

    if compressor == "zstd":
        raw = open(path, "rb")
        dctx = zstandard.ZstdDecompressor()
        stream = dctx.stream_reader(raw, read_across_frames=True)
        try:
            yield stream  # has .read(), acts like a file object
        finally:
            try:
                stream.close()
            finally:
                raw.close()
        return

    f = open(path, "rb")
    try:
        yield f
    finally:
        f.close()
