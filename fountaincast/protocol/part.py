"""Part record: one self-describing unit of a fountain-coded message.

On the wire a part is a msgpack array of five elements::

    [seq_num, seq_len, message_len, checksum, data]

``data`` is packed as a msgpack ``bin`` value. The header fields let a
receiver group parts by message (``checksum``), size its fragment table
(``seq_len``, ``message_len``) and recompute which fragments were mixed
(``seq_num``) with no other context.
"""

from __future__ import annotations

from dataclasses import dataclass

import msgpack

from ..fountain.errors import MalformedPart
from ..fountain.selection import MAX_SEQ_NUM, PartIndexes, select_indexes

PART_ARITY = 5
MAX_CHECKSUM = 0xFFFFFFFF
MAX_MESSAGE_LEN = 0xFFFFFFFF


def _check_int(name: str, value: object, low: int,
               high: int | None = None) -> int:
    if not isinstance(value, int) or isinstance(value, bool):
        raise MalformedPart(f"{name} must be an integer, got {type(value).__name__}")
    if value < low or (high is not None and value > high):
        raise MalformedPart(f"{name} out of range: {value}")
    return value


@dataclass(frozen=True)
class Part:
    seq_num: int       # 1-based emission counter
    seq_len: int       # number of fragments in the message
    message_len: int   # unpadded message length in bytes
    checksum: int      # CRC-32 of the whole message
    data: bytes        # one fragment, or the XOR of several

    @property
    def is_pure(self) -> bool:
        """True if this part carries a single fragment unmixed."""
        return self.seq_num <= self.seq_len

    @property
    def indexes(self) -> PartIndexes:
        """Fragment indexes mixed into this part, derived from the header."""
        return select_indexes(self.seq_num, self.seq_len, self.checksum)

    def to_wire(self) -> bytes:
        return msgpack.packb(
            [self.seq_num, self.seq_len, self.message_len, self.checksum,
             bytes(self.data)],
            use_bin_type=True,
        )

    @classmethod
    def from_wire(cls, raw: bytes) -> "Part":
        """Decode a wire-form part.

        Only the structure and field ranges are checked here. Whether the
        payload length fits the message is checked by the decoder, which
        knows the expected fragment length.
        """
        try:
            obj = msgpack.unpackb(raw, raw=False)
        except (ValueError, TypeError, msgpack.UnpackException) as exc:
            raise MalformedPart(f"undecodable part: {exc}") from exc

        if not isinstance(obj, (list, tuple)) or len(obj) != PART_ARITY:
            raise MalformedPart(
                f"part must be an array of {PART_ARITY} elements")

        seq_num, seq_len, message_len, checksum, data = obj
        _check_int("seq_num", seq_num, 1, MAX_SEQ_NUM)
        _check_int("seq_len", seq_len, 1, MAX_SEQ_NUM)
        _check_int("message_len", message_len, 1, MAX_MESSAGE_LEN)
        _check_int("checksum", checksum, 0, MAX_CHECKSUM)
        if not isinstance(data, bytes):
            raise MalformedPart(f"data must be a byte string, got {type(data).__name__}")
        if not data:
            raise MalformedPart("data must not be empty")

        return cls(seq_num=seq_num, seq_len=seq_len, message_len=message_len,
                   checksum=checksum, data=data)

    def description(self) -> str:
        return (f"seqNum:{self.seq_num}, seqLen:{self.seq_len}, "
                f"messageLen:{self.message_len}, checksum:{self.checksum}, "
                f"data:{self.data.hex()}")

    def __str__(self) -> str:
        return self.description()
