"""Fragment index selection: which fragments are XORed into a given part.

A receiver must recover the index set from a part's public header fields
alone, so selection is a pure function of ``(seq_num, seq_len, checksum)``:

- parts ``1 .. seq_len`` carry fragment ``seq_num - 1`` unmixed, which
  guarantees the first ``seq_len`` parts reconstruct the message;
- later parts seed a xoshiro256** generator from ``seq_num`` and
  ``checksum``, draw a degree from a table weighted ``1/d`` (so most parts
  mix only a few fragments), then take that many fragments from a
  generator-driven shuffle.

The scheme matches the Luby-transform selection of the Uniform Resources
fountain code, so parts interoperate with decoders using the same table.
"""

from __future__ import annotations

import struct
from functools import lru_cache

from .sampler import RandomSampler
from .xoshiro import Xoshiro256

PartIndexes = tuple[int, ...]

MAX_SEQ_NUM = 0xFFFFFFFF


def degree_weights(seq_len: int) -> list[float]:
    """Relative weight of each degree ``1 .. seq_len``."""
    return [1.0 / d for d in range(1, seq_len + 1)]


@lru_cache(maxsize=64)
def degree_sampler(seq_len: int) -> RandomSampler:
    return RandomSampler(degree_weights(seq_len))


def choose_degree(seq_len: int, rng: Xoshiro256) -> int:
    """Draw a degree in ``[1, seq_len]`` from the weighted degree table."""
    return degree_sampler(seq_len).next(rng.next_double) + 1


def shuffled_prefix(items: list[int], count: int, rng: Xoshiro256) -> list[int]:
    """First *count* items of a draw-without-replacement shuffle of *items*."""
    remaining = list(items)
    result = []
    while remaining and len(result) < count:
        index = rng.next_int(0, len(remaining) - 1)
        result.append(remaining.pop(index))
    return result


def part_seed(seq_num: int, checksum: int) -> bytes:
    return struct.pack(">II", seq_num, checksum)


def select_indexes(seq_num: int, seq_len: int, checksum: int) -> PartIndexes:
    """Return the sorted fragment indexes combined into part *seq_num*."""
    if seq_num < 1:
        raise ValueError(f"seq_num must be at least 1, got {seq_num}")
    if seq_len < 1:
        raise ValueError(f"seq_len must be at least 1, got {seq_len}")

    if seq_num <= seq_len:
        return (seq_num - 1,)
    if seq_len == 1:
        return (0,)

    rng = Xoshiro256(part_seed(seq_num, checksum))
    degree = choose_degree(seq_len, rng)
    return tuple(sorted(shuffled_prefix(list(range(seq_len)), degree, rng)))
