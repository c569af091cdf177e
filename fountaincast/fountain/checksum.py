"""CRC-32 over whole messages, as carried in every part header."""

from __future__ import annotations

import zlib


def crc32(data: bytes) -> int:
    """Unsigned 32-bit CRC-32 of *data*."""
    return zlib.crc32(data) & 0xFFFFFFFF
