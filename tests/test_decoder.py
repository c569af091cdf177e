"""Tests for reassembling messages from fountain parts."""

from itertools import islice

import pytest

from fountaincast.fountain.decoder import DEFAULT_MAX_SEQ_LEN, FountainDecoder
from fountaincast.fountain.encoder import FountainEncoder
from fountaincast.fountain.errors import ChecksumMismatch, MalformedPart
from fountaincast.protocol.part import Part

MESSAGE = bytes(range(256)) * 4 + b"trailing bytes"


def _feed(decoder, parts):
    for part in parts:
        decoder.receive_part(part)
        if decoder.is_complete():
            break


class TestPureParts:
    def test_in_order(self):
        encoder = FountainEncoder(MESSAGE, max_fragment_len=100)
        decoder = FountainDecoder()
        _feed(decoder, islice(encoder, encoder.seq_len))
        assert decoder.is_success()
        assert decoder.result == MESSAGE
        assert decoder.processed_parts_count == encoder.seq_len

    def test_reverse_order(self):
        encoder = FountainEncoder(MESSAGE, max_fragment_len=100)
        parts = list(islice(encoder, encoder.seq_len))
        decoder = FountainDecoder()
        _feed(decoder, reversed(parts))
        assert decoder.result == MESSAGE

    def test_duplicates(self):
        encoder = FountainEncoder(MESSAGE, max_fragment_len=100)
        parts = list(islice(encoder, encoder.seq_len))
        decoder = FountainDecoder()
        for part in parts[:-1]:
            assert decoder.receive_part(part)
            assert decoder.receive_part(part)
        assert not decoder.is_complete()
        decoder.receive_part(parts[-1])
        assert decoder.result == MESSAGE

    def test_single_part_message(self):
        encoder = FountainEncoder(b"tiny", max_fragment_len=100)
        decoder = FountainDecoder()
        decoder.receive_part(encoder.next_part())
        assert decoder.result == b"tiny"


class TestMixedParts:
    def test_recovers_missing_pure_parts(self):
        encoder = FountainEncoder(MESSAGE, max_fragment_len=100)
        parts = islice(encoder, 2000)
        decoder = FountainDecoder()
        # drop the first three plain fragments
        _feed(decoder, (p for p in parts if p.seq_num > 3))
        assert decoder.result == MESSAGE

    def test_mixed_parts_only(self):
        encoder = FountainEncoder(MESSAGE, max_fragment_len=100,
                                  first_seq_num=11)
        decoder = FountainDecoder()
        _feed(decoder, islice(encoder, 2000))
        assert decoder.result == MESSAGE

    def test_every_other_part(self):
        encoder = FountainEncoder(MESSAGE, max_fragment_len=100)
        decoder = FountainDecoder()
        _feed(decoder, (p for p in islice(encoder, 2000) if p.seq_num % 2))
        assert decoder.result == MESSAGE

    def test_last_part_indexes(self):
        encoder = FountainEncoder(MESSAGE, max_fragment_len=100)
        decoder = FountainDecoder()
        part = encoder.next_part()
        decoder.receive_part(part)
        assert decoder.last_part_indexes == frozenset(part.indexes)


class TestDecoderState:
    def test_progress(self):
        encoder = FountainEncoder(MESSAGE, max_fragment_len=100)
        decoder = FountainDecoder()
        assert decoder.expected_part_count is None
        assert decoder.estimated_percent_complete() == 0.0

        decoder.receive_part(encoder.next_part())
        assert decoder.expected_part_count == encoder.seq_len
        assert decoder.checksum == encoder.checksum
        assert 0.0 < decoder.estimated_percent_complete() < 1.0

        _feed(decoder, islice(encoder, encoder.seq_len))
        assert decoder.estimated_percent_complete() == 1.0

    def test_ignores_parts_after_completion(self):
        encoder = FountainEncoder(b"tiny", max_fragment_len=100)
        decoder = FountainDecoder()
        assert decoder.receive_part(encoder.next_part())
        assert not decoder.receive_part(encoder.next_part())

    def test_ignores_other_message(self):
        first = FountainEncoder(b"A" * 100, max_fragment_len=10)
        second = FountainEncoder(b"B" * 100, max_fragment_len=10)
        decoder = FountainDecoder()
        assert decoder.receive_part(first.next_part())
        assert not decoder.receive_part(second.next_part())
        assert decoder.received_part_indexes == {0}


class TestDecoderValidation:
    def test_payload_inconsistent_with_header(self):
        decoder = FountainDecoder()
        part = Part(seq_num=1, seq_len=3, message_len=30, checksum=0,
                    data=b"\x00" * 4)
        with pytest.raises(MalformedPart):
            decoder.receive_part(part)

    def test_payload_length_changes(self):
        encoder = FountainEncoder(bytes(range(30)), max_fragment_len=10)
        decoder = FountainDecoder()
        first = encoder.next_part()
        decoder.receive_part(first)
        short = Part(seq_num=2, seq_len=first.seq_len,
                     message_len=first.message_len, checksum=first.checksum,
                     data=b"\x00" * 9)
        with pytest.raises(MalformedPart):
            decoder.receive_part(short)

    def test_checksum_mismatch(self):
        message = bytes(range(30))
        decoder = FountainDecoder()
        parts = [
            Part(seq_num=i + 1, seq_len=3, message_len=30, checksum=0x12345678,
                 data=message[i * 10:(i + 1) * 10])
            for i in range(3)
        ]
        decoder.receive_part(parts[0])
        decoder.receive_part(parts[1])
        with pytest.raises(ChecksumMismatch):
            decoder.receive_part(parts[2])
        assert decoder.is_complete()
        assert decoder.is_failure()
        assert not decoder.is_success()
        assert decoder.result is None
        assert decoder.error.expected == 0x12345678

    def test_message_len_over_limit(self):
        decoder = FountainDecoder(max_message_len=100)
        part = Part(seq_num=1, seq_len=2, message_len=200, checksum=0,
                    data=b"\x00" * 100)
        with pytest.raises(MalformedPart):
            decoder.receive_part(part)
        assert decoder.expected_part_count is None

    def test_seq_len_over_limit(self):
        """One-byte fragments of a huge message never reach index selection."""
        decoder = FountainDecoder()
        n = DEFAULT_MAX_SEQ_LEN + 1
        part = Part(seq_num=2 ** 32 - 1, seq_len=n, message_len=n,
                    checksum=0, data=b"\x00")
        with pytest.raises(MalformedPart):
            decoder.receive_part(part)
        assert decoder.last_part_indexes == frozenset()

    def test_limits_allow_regular_messages(self):
        encoder = FountainEncoder(MESSAGE, max_fragment_len=100)
        decoder = FountainDecoder(max_message_len=len(MESSAGE),
                                  max_seq_len=encoder.seq_len)
        _feed(decoder, islice(encoder, encoder.seq_len))
        assert decoder.result == MESSAGE
