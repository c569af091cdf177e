"""XOR combination of fragments."""

from __future__ import annotations

from typing import Iterable, Sequence

import numpy as np


def xor_bytes(a: bytes, b: bytes) -> bytes:
    """XOR two buffers, zero-extending the shorter one."""
    length = max(len(a), len(b))
    left = np.frombuffer(a.ljust(length, b"\x00"), dtype=np.uint8)
    right = np.frombuffer(b.ljust(length, b"\x00"), dtype=np.uint8)
    return np.bitwise_xor(left, right).tobytes()


def mix(fragments: Sequence[bytes], indexes: Iterable[int]) -> bytes:
    """XOR together the fragments named by *indexes*.

    All fragments share one length. An empty index set yields zeros.
    """
    if not fragments:
        raise ValueError("fragment table is empty")

    result = np.zeros(len(fragments[0]), dtype=np.uint8)
    for index in indexes:
        if not 0 <= index < len(fragments):
            raise IndexError(
                f"fragment index {index} out of range [0, {len(fragments)})")
        np.bitwise_xor(result, np.frombuffer(fragments[index], dtype=np.uint8),
                       out=result)
    return result.tobytes()
