"""xoshiro256** pseudo-random generator seeded from a SHA-256 digest.

Sender and receiver must draw identical sequences from the same public
seed bytes, so this is a plain reproducible generator rather than an
OS-entropy or ``random`` module source.
"""

from __future__ import annotations

import hashlib
import struct

MASK64 = 0xFFFFFFFFFFFFFFFF
_TWO_POW_64 = float(1 << 64)


def _rotl(x: int, k: int) -> int:
    return ((x << k) | (x >> (64 - k))) & MASK64


class Xoshiro256:
    """xoshiro256** with its 256-bit state taken from ``sha256(seed)``.

    The digest is read as four big-endian 64-bit words.
    """

    def __init__(self, seed: bytes):
        digest = hashlib.sha256(seed).digest()
        self._s = list(struct.unpack(">4Q", digest))

    @classmethod
    def from_string(cls, seed: str) -> "Xoshiro256":
        return cls(seed.encode("utf-8"))

    def next(self) -> int:
        """Next raw 64-bit output."""
        s = self._s
        result = (_rotl((s[1] * 5) & MASK64, 7) * 9) & MASK64
        t = (s[1] << 17) & MASK64

        s[2] ^= s[0]
        s[3] ^= s[1]
        s[1] ^= s[2]
        s[0] ^= s[3]

        s[2] ^= t
        s[3] = _rotl(s[3], 45)

        return result

    def next_double(self) -> float:
        """Uniform float in [0, 1)."""
        return self.next() / _TWO_POW_64

    def next_int(self, low: int, high: int) -> int:
        """Uniform integer in the closed range [low, high]."""
        return int(self.next_double() * (high - low + 1)) + low

    def next_byte(self) -> int:
        return self.next_int(0, 255)

    def next_data(self, count: int) -> bytes:
        return bytes(self.next_byte() for _ in range(count))
