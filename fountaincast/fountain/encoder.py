"""Fountain encoder: an endless stream of parts for one message.

The message is partitioned and checksummed once, at construction. Each
``next_part()`` call advances the sequence counter and emits:

- for ``seq_num <= seq_len``: fragment ``seq_num - 1`` as-is;
- afterwards: the XOR of a ``seq_num``-determined subset of fragments.

The stream never ends. The caller decides when enough parts have been sent;
``is_complete()`` only reports that every fragment went out unmixed once.

An encoder instance is not thread safe: the counter must advance exactly
once per emitted part. Share the immutable ``fragments`` table between
independent encoders, or serialize access (see ``protocol.framing``).
"""

from __future__ import annotations

import logging
from typing import Iterator

from ..protocol.part import Part
from .checksum import crc32
from .errors import InvalidArgument
from .mixer import mix
from .partition import find_nominal_fragment_length, partition_message
from .selection import MAX_SEQ_NUM, PartIndexes, select_indexes

logger = logging.getLogger(__name__)


class FountainEncoder:
    """Luby-transform rateless encoder."""

    def __init__(self, message: bytes, max_fragment_len: int,
                 first_seq_num: int = 0, min_fragment_len: int = 10):
        if not message:
            raise InvalidArgument("message must not be empty")
        if max_fragment_len < 1:
            raise InvalidArgument(
                f"max_fragment_len must be positive, got {max_fragment_len}")
        if not 0 <= first_seq_num <= MAX_SEQ_NUM:
            raise InvalidArgument(f"first_seq_num out of range: {first_seq_num}")

        message = bytes(message)
        self._message_len = len(message)
        self._checksum = crc32(message)
        self._fragment_len = find_nominal_fragment_length(
            self._message_len, min_fragment_len, max_fragment_len)
        self._fragments = tuple(partition_message(message, self._fragment_len))
        self._seq_num = first_seq_num
        self._last_part_indexes: PartIndexes = ()

        logger.debug("Encoder ready: %d bytes as %d fragment(s) of %d bytes, "
                     "checksum=%08x", self._message_len, self.seq_len,
                     self._fragment_len, self._checksum)

    @property
    def message_len(self) -> int:
        return self._message_len

    @property
    def checksum(self) -> int:
        return self._checksum

    @property
    def fragment_len(self) -> int:
        return self._fragment_len

    @property
    def fragments(self) -> tuple[bytes, ...]:
        return self._fragments

    @property
    def seq_num(self) -> int:
        """Sequence number of the most recently emitted part."""
        return self._seq_num

    @property
    def seq_len(self) -> int:
        return len(self._fragments)

    @property
    def last_part_indexes(self) -> PartIndexes:
        """Fragments mixed into the last part. For display only; receivers
        recompute this from the part header."""
        return self._last_part_indexes

    def is_complete(self) -> bool:
        """True once every fragment has been emitted unmixed at least once."""
        return self._seq_num >= self.seq_len

    def is_single_part(self) -> bool:
        return self.seq_len == 1

    def next_part(self) -> Part:
        if self._seq_num >= MAX_SEQ_NUM:
            raise OverflowError("sequence number space exhausted")
        self._seq_num += 1

        indexes = select_indexes(self._seq_num, self.seq_len, self._checksum)
        self._last_part_indexes = indexes
        if len(indexes) == 1:
            data = self._fragments[indexes[0]]
        else:
            data = mix(self._fragments, indexes)

        logger.debug("Part %d/%d: fragments %s", self._seq_num, self.seq_len,
                     list(indexes))
        return Part(
            seq_num=self._seq_num,
            seq_len=self.seq_len,
            message_len=self._message_len,
            checksum=self._checksum,
            data=data,
        )

    def __iter__(self) -> Iterator[Part]:
        return self

    def __next__(self) -> Part:
        return self.next_part()
