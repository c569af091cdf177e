"""Fountain decoder: rebuild a message from parts received in any order.

Pure parts (a single fragment) go straight into the fragment table. A mixed
part is reduced by every known part whose index set is a strict subset of
its own: XORing the smaller part out removes those fragments. A part reduced
to a single index becomes pure and is queued like a received one. Newly
pure fragments are in turn used to reduce the mixed parts already held.

Index sets are recomputed from each part's header with the same
``select_indexes`` the encoder uses; nothing else is shared with the sender.
"""

from __future__ import annotations

import logging
from collections import deque
from typing import Optional

from ..protocol.part import Part
from .checksum import crc32
from .errors import ChecksumMismatch, MalformedPart
from .mixer import xor_bytes

logger = logging.getLogger(__name__)

Indexes = frozenset[int]

# Receiver limits, checked against the first part header before any
# fragment or degree table is built.
DEFAULT_MAX_MESSAGE_LEN = 16 * 1024 * 1024
DEFAULT_MAX_SEQ_LEN = 1 << 17


class FountainDecoder:
    """Collects parts of one message until it can be reassembled."""

    def __init__(self, max_message_len: int = DEFAULT_MAX_MESSAGE_LEN,
                 max_seq_len: int = DEFAULT_MAX_SEQ_LEN) -> None:
        self.max_message_len = max_message_len
        self.max_seq_len = max_seq_len
        self.received_part_indexes: set[int] = set()
        self.last_part_indexes: frozenset[int] = frozenset()
        self.processed_parts_count = 0
        self.result: Optional[bytes] = None
        self.error: Optional[ChecksumMismatch] = None

        self._expected_seq_len: Optional[int] = None
        self._expected_message_len: Optional[int] = None
        self._expected_checksum: Optional[int] = None
        self._expected_fragment_len: Optional[int] = None

        self._simple_parts: dict[int, bytes] = {}
        self._mixed_parts: dict[Indexes, bytes] = {}
        self._queue: deque[tuple[Indexes, bytes]] = deque()

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @property
    def expected_part_count(self) -> Optional[int]:
        """Number of fragments in the message, once the first part is seen."""
        return self._expected_seq_len

    @property
    def checksum(self) -> Optional[int]:
        return self._expected_checksum

    def is_complete(self) -> bool:
        return self.result is not None or self.error is not None

    def is_success(self) -> bool:
        return self.result is not None

    def is_failure(self) -> bool:
        return self.error is not None

    def estimated_percent_complete(self) -> float:
        """Rough progress in [0, 1]; about 1.75 parts per fragment are
        usually needed once parts start to be lost."""
        if self.is_complete():
            return 1.0
        if self._expected_seq_len is None:
            return 0.0
        estimated = self._expected_seq_len * 1.75
        return min(0.99, self.processed_parts_count / estimated)

    # ------------------------------------------------------------------
    # Receiving
    # ------------------------------------------------------------------

    def receive_part(self, part: Part) -> bool:
        """Process *part*. Returns False if it was ignored.

        Parts are ignored once decoding has finished, and when they belong
        to a different encoding than the first part received.
        """
        if self.is_complete():
            return False
        if not self._validate(part):
            return False

        indexes = frozenset(part.indexes)
        self.last_part_indexes = indexes
        self._queue.append((indexes, part.data))
        while not self.is_complete() and self._queue:
            self._process_queue_item()

        self.processed_parts_count += 1
        return True

    def _validate(self, part: Part) -> bool:
        if self._expected_seq_len is None:
            if part.message_len > self.max_message_len:
                raise MalformedPart(
                    f"message_len {part.message_len} exceeds limit "
                    f"{self.max_message_len}")
            if part.seq_len > self.max_seq_len:
                raise MalformedPart(
                    f"seq_len {part.seq_len} exceeds limit {self.max_seq_len}")
            fragment_len = len(part.data)
            # The fragment table must cover the message, and the last
            # fragment must hold at least one message byte.
            if (part.message_len + fragment_len - 1) // fragment_len != part.seq_len:
                raise MalformedPart(
                    f"{fragment_len}-byte payload cannot split a "
                    f"{part.message_len}-byte message into {part.seq_len} "
                    f"fragment(s)")
            self._expected_seq_len = part.seq_len
            self._expected_message_len = part.message_len
            self._expected_checksum = part.checksum
            self._expected_fragment_len = fragment_len
            return True

        if (part.seq_len != self._expected_seq_len
                or part.message_len != self._expected_message_len
                or part.checksum != self._expected_checksum):
            logger.debug("Ignoring part %d from another message (checksum=%08x)",
                         part.seq_num, part.checksum)
            return False

        if len(part.data) != self._expected_fragment_len:
            raise MalformedPart(
                f"part {part.seq_num} carries {len(part.data)} bytes, "
                f"expected {self._expected_fragment_len}")
        return True

    def _process_queue_item(self) -> None:
        indexes, data = self._queue.popleft()
        if len(indexes) == 1:
            self._process_simple_part(indexes, data)
        else:
            self._process_mixed_part(indexes, data)

    def _process_simple_part(self, indexes: Indexes, data: bytes) -> None:
        (fragment_index,) = indexes
        if fragment_index in self.received_part_indexes:
            return

        self._simple_parts[fragment_index] = data
        self.received_part_indexes.add(fragment_index)
        logger.debug("Recovered fragment %d (%d/%d)", fragment_index,
                     len(self.received_part_indexes), self._expected_seq_len)

        if len(self.received_part_indexes) == self._expected_seq_len:
            self._finish()
        else:
            self._reduce_mixed_by(indexes, data)

    def _process_mixed_part(self, indexes: Indexes, data: bytes) -> None:
        if indexes in self._mixed_parts:
            return

        reducers = [(frozenset((i,)), d) for i, d in self._simple_parts.items()]
        reducers.extend(self._mixed_parts.items())
        for reducer_indexes, reducer_data in reducers:
            indexes, data = _reduce(indexes, data, reducer_indexes, reducer_data)

        if len(indexes) == 1:
            self._queue.append((indexes, data))
        else:
            self._reduce_mixed_by(indexes, data)
            self._mixed_parts[indexes] = data

    def _reduce_mixed_by(self, indexes: Indexes, data: bytes) -> None:
        remaining: dict[Indexes, bytes] = {}
        for mixed_indexes, mixed_data in self._mixed_parts.items():
            reduced_indexes, reduced_data = _reduce(
                mixed_indexes, mixed_data, indexes, data)
            if len(reduced_indexes) == 1:
                self._queue.append((reduced_indexes, reduced_data))
            else:
                remaining[reduced_indexes] = reduced_data
        self._mixed_parts = remaining

    def _finish(self) -> None:
        message = b"".join(
            self._simple_parts[i] for i in range(self._expected_seq_len))
        message = message[:self._expected_message_len]
        actual = crc32(message)
        self._mixed_parts.clear()
        self._queue.clear()

        if actual != self._expected_checksum:
            self.error = ChecksumMismatch(self._expected_checksum, actual)
            logger.warning("Reassembled message failed checksum: %s", self.error)
            raise self.error

        self.result = message
        logger.debug("Message complete: %d bytes from %d parts",
                     len(message), self.processed_parts_count + 1)


def _reduce(indexes: Indexes, data: bytes, by_indexes: Indexes,
            by_data: bytes) -> tuple[Indexes, bytes]:
    """XOR *by* out of a part if its fragments are a strict subset."""
    if by_indexes < indexes:
        return indexes - by_indexes, xor_bytes(data, by_data)
    return indexes, data
