"""Part framing: turn a message into a stream of wire frames and back.

On the sending side a PartFramer owns one FountainEncoder and hands out
msgpack-encoded parts, one per displayed frame. Frames carry:
  - seq_num: emission counter (1-based, never reused)
  - seq_len: number of fragments
  - message_len: unpadded message length
  - checksum: CRC-32 of the whole message
  - data: one fragment or an XOR mix of several

The first ``seq_len`` frames are the plain fragments; anything after that
is loss recovery. There is no back channel, so the sender simply keeps
cycling frames until the caller stops.

On the receiving side a PartAssembler groups frames by checksum (one
decoder per message) and returns each message once it can be rebuilt.
"""

from __future__ import annotations

import logging
import math
import threading
import time
from dataclasses import dataclass
from typing import Optional

from ..fountain.decoder import (
    DEFAULT_MAX_MESSAGE_LEN,
    DEFAULT_MAX_SEQ_LEN,
    FountainDecoder,
)
from ..fountain.encoder import FountainEncoder
from ..fountain.errors import ChecksumMismatch, MalformedPart
from .part import Part

logger = logging.getLogger(__name__)


@dataclass
class FramingConfig:
    max_fragment_len: int = 200   # payload bytes per frame
    min_fragment_len: int = 10
    first_seq_num: int = 0
    redundancy: float = 0.5       # extra frames per fragment in a budget


class PartFramer:
    """Serializes access to one encoder and emits wire frames."""

    def __init__(self, data: bytes, config: Optional[FramingConfig] = None):
        self.config = config or FramingConfig()
        self.encoder = FountainEncoder(
            data,
            max_fragment_len=self.config.max_fragment_len,
            first_seq_num=self.config.first_seq_num,
            min_fragment_len=self.config.min_fragment_len,
        )
        self._lock = threading.Lock()

    @property
    def seq_len(self) -> int:
        return self.encoder.seq_len

    @property
    def checksum(self) -> int:
        return self.encoder.checksum

    def next_part(self) -> Part:
        with self._lock:
            return self.encoder.next_part()

    def next_frame(self) -> bytes:
        """Wire bytes of the next part."""
        return self.next_part().to_wire()

    def frames(self, count: int) -> list[bytes]:
        return [self.next_frame() for _ in range(count)]

    def frame_budget(self) -> int:
        """Frames to send for the configured redundancy (at least seq_len)."""
        return self.seq_len + math.ceil(self.seq_len * max(self.config.redundancy, 0.0))


class PartAssembler:
    """Collects wire frames and reassembles complete messages."""

    def __init__(self, max_message_len: int = DEFAULT_MAX_MESSAGE_LEN,
                 max_seq_len: int = DEFAULT_MAX_SEQ_LEN) -> None:
        self.max_message_len = max_message_len
        self.max_seq_len = max_seq_len
        # checksum → decoder
        self._decoders: dict[int, FountainDecoder] = {}
        self._timestamps: dict[int, float] = {}
        # checksums of messages already returned; later frames are repeats
        self._completed: set[int] = set()
        self._lock = threading.Lock()
        self.rejected_frames = 0

    def add_frame(self, raw: bytes) -> Optional[bytes]:
        """Add a received frame. Returns the complete message once enough
        frames of it have arrived, otherwise None.

        Undecodable frames and frames that fail validation are dropped.
        """
        try:
            part = Part.from_wire(raw)
        except MalformedPart as exc:
            with self._lock:
                self._reject("malformed frame: %s", exc)
            return None
        return self.add_part(part)

    def add_part(self, part: Part) -> Optional[bytes]:
        checksum = part.checksum
        with self._lock:
            if checksum in self._completed:
                logger.debug("Skipping part %d of completed message %08x",
                             part.seq_num, checksum)
                return None

            decoder = self._decoders.get(checksum)
            if decoder is None:
                decoder = FountainDecoder(self.max_message_len, self.max_seq_len)
                self._decoders[checksum] = decoder
                self._timestamps[checksum] = time.monotonic()

            try:
                accepted = decoder.receive_part(part)
            except MalformedPart as exc:
                self._reject("inconsistent part %d: %s", part.seq_num, exc)
                if decoder.expected_part_count is None:
                    self._forget(checksum)
                return None
            except ChecksumMismatch as exc:
                self._reject("message %08x discarded: %s", checksum, exc)
                self._forget(checksum)
                return None

            if not accepted:
                self._reject("part %d disagrees with message %08x",
                             part.seq_num, checksum)
                return None

            if decoder.is_success():
                logger.info("Message assembled: checksum=%08x, %d bytes from "
                            "%d frame(s)", checksum, len(decoder.result),
                            decoder.processed_parts_count)
                self._forget(checksum)
                self._completed.add(checksum)
                return decoder.result

        return None

    def _reject(self, msg: str, *args) -> None:
        # caller holds _lock
        self.rejected_frames += 1
        logger.warning("Rejected " + msg, *args)

    def _forget(self, checksum: int) -> None:
        del self._decoders[checksum]
        del self._timestamps[checksum]

    def pending_messages(self) -> list[int]:
        """Return checksums of messages still being assembled."""
        with self._lock:
            return list(self._decoders.keys())

    def progress(self, checksum: int) -> float:
        """Estimated completion of a pending message, 0.0 if unknown."""
        with self._lock:
            decoder = self._decoders.get(checksum)
            if decoder is None:
                return 0.0
            return decoder.estimated_percent_complete()

    def cleanup_stale(self, max_age: float = 30.0) -> list[int]:
        """Remove messages older than *max_age* seconds. Returns removed checksums."""
        now = time.monotonic()
        stale = []
        with self._lock:
            for checksum, ts in list(self._timestamps.items()):
                if now - ts > max_age:
                    stale.append(checksum)
                    self._forget(checksum)
        return stale
