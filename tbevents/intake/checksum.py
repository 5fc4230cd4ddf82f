"""
Masked CRC-32C checksum gate.

Every record stores two 4-byte little-endian checksums: one over the 8-byte
length header and one over the payload. Each is a CRC-32C that has been
"masked" (rotated right by 15 bits and offset by a constant) so that a
checksum of data containing embedded checksums stays well distributed.

The mask must match bit for bit, or existing log files will not validate.
"""

from __future__ import annotations

import struct
from typing import Final

import crc32c

CHECKSUM_SIZE: Final[int] = 4

_MASK_DELTA: Final[int] = 0xA282EAD8
_U32: Final[int] = 0xFFFFFFFF
_CHECKSUM = struct.Struct("<I")


def masked_crc32c(data: bytes) -> int:
    """Return the masked CRC-32C of `data` as an unsigned 32-bit int."""
    crc = crc32c.crc32c(data) & _U32
    return (((crc >> 15) | (crc << 17)) + _MASK_DELTA) & _U32


def unpack_checksum(raw: bytes) -> int:
    (value,) = _CHECKSUM.unpack(raw)
    return value


def validate(data: bytes, checksum: bytes) -> bool:
    """
    Return True if `checksum` (the 4 bytes stored right after `data`) matches
    the masked CRC-32C of `data`. Pure; a short checksum never validates.
    """
    if len(checksum) != CHECKSUM_SIZE:
        return False
    return unpack_checksum(checksum) == masked_crc32c(data)
