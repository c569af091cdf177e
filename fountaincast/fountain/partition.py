"""Message partitioning: choose a fragment length and split a message into
equal-length, zero-padded fragments.

The fragment length is chosen to give the fewest fragments whose length
still fits in a channel frame (``max_fragment_len``), rather than always
cutting at the maximum. For a 30-byte message with a 25-byte limit this
yields two 15-byte fragments instead of 25 + 5 bytes of mostly padding.
"""

from __future__ import annotations

from .errors import InvalidArgument


def _ceil_div(a: int, b: int) -> int:
    return (a + b - 1) // b


def find_nominal_fragment_length(message_len: int, min_fragment_len: int,
                                 max_fragment_len: int) -> int:
    """Return the fragment length for a message of *message_len* bytes.

    This is ``ceil(message_len / k)`` for the smallest fragment count ``k``
    whose fragments fit in *max_fragment_len*. The count is nominally capped
    at ``message_len // min_fragment_len``; when nothing under the cap fits
    (including messages shorter than *min_fragment_len*), the frame limit
    takes precedence over the minimum.
    """
    if message_len < 1:
        raise InvalidArgument("message must not be empty")
    if min_fragment_len < 1:
        raise InvalidArgument(
            f"min_fragment_len must be positive, got {min_fragment_len}")
    if max_fragment_len < min_fragment_len:
        raise InvalidArgument(
            f"max_fragment_len ({max_fragment_len}) is smaller than "
            f"min_fragment_len ({min_fragment_len})")

    # ceil(n / k) <= max  <=>  k >= ceil(n / max)
    fragment_count = _ceil_div(message_len, max_fragment_len)
    return _ceil_div(message_len, fragment_count)


def partition_message(message: bytes, fragment_len: int) -> list[bytes]:
    """Split *message* into fragments of exactly *fragment_len* bytes.

    The final fragment is zero-padded.
    """
    if fragment_len < 1:
        raise ValueError(f"fragment_len must be positive, got {fragment_len}")

    fragments = []
    for offset in range(0, len(message), fragment_len):
        fragment = bytes(message[offset:offset + fragment_len])
        fragments.append(fragment.ljust(fragment_len, b"\x00"))
    return fragments
