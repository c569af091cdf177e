"""Tests for the generator, the degree sampler and index selection."""

import pytest

from fountaincast.fountain.sampler import RandomSampler
from fountaincast.fountain.selection import (
    choose_degree,
    degree_weights,
    part_seed,
    select_indexes,
)
from fountaincast.fountain.xoshiro import Xoshiro256


def _values(rng, n=10):
    return [rng.next() for _ in range(n)]


class TestXoshiro256:
    def test_same_seed_same_stream(self):
        assert _values(Xoshiro256(b"Wolf")) == _values(Xoshiro256(b"Wolf"))

    def test_from_string(self):
        assert _values(Xoshiro256.from_string("Wolf")) == _values(Xoshiro256(b"Wolf"))

    def test_different_seed_different_stream(self):
        assert _values(Xoshiro256(b"Wolf")) != _values(Xoshiro256(b"Fox"))

    def test_outputs_are_64_bit(self):
        rng = Xoshiro256(b"range")
        for _ in range(1000):
            assert 0 <= rng.next() < 2 ** 64

    def test_next_double_range(self):
        rng = Xoshiro256(b"double")
        for _ in range(1000):
            assert 0.0 <= rng.next_double() < 1.0

    def test_next_int_inclusive(self):
        rng = Xoshiro256(b"int")
        seen = {rng.next_int(3, 6) for _ in range(1000)}
        assert seen == {3, 4, 5, 6}

    def test_next_data(self):
        data = Xoshiro256(b"data").next_data(16)
        assert len(data) == 16
        assert data == Xoshiro256(b"data").next_data(16)


class TestRandomSampler:
    def test_uniform_weights(self):
        sampler = RandomSampler([1, 1, 1, 1])
        assert sampler.probs == (1.0, 1.0, 1.0, 1.0)
        draws = iter([0.6, 0.5])
        assert sampler.next(lambda: next(draws)) == 2

    def test_zero_weight_never_drawn(self):
        sampler = RandomSampler([1.0, 0.0])
        rng = Xoshiro256(b"zero")
        assert {sampler.next(rng.next_double) for _ in range(500)} == {0}

    def test_respects_weights(self):
        sampler = RandomSampler(degree_weights(4))
        rng = Xoshiro256(b"weights")
        counts = [0] * 4
        for _ in range(20000):
            counts[sampler.next(rng.next_double)] += 1
        assert counts[0] > counts[1] > counts[3]

    @pytest.mark.parametrize("weights", [[], [-1.0, 2.0], [0.0, 0.0]])
    def test_invalid_weights(self, weights):
        with pytest.raises(ValueError):
            RandomSampler(weights)


class TestSelectIndexes:
    def test_degree_weights(self):
        assert degree_weights(3) == [1.0, 0.5, 1.0 / 3]

    def test_part_seed(self):
        assert part_seed(1, 2) == b"\x00\x00\x00\x01\x00\x00\x00\x02"

    def test_pure_parts(self):
        for seq_num in range(1, 11):
            assert select_indexes(seq_num, 10, 0xDEADBEEF) == (seq_num - 1,)

    def test_single_fragment(self):
        for seq_num in range(1, 50):
            assert select_indexes(seq_num, 1, 1234) == (0,)

    def test_mixed_parts_are_valid(self):
        seq_len = 10
        for seq_num in range(seq_len + 1, seq_len + 300):
            indexes = select_indexes(seq_num, seq_len, 0x12345678)
            assert indexes
            assert list(indexes) == sorted(set(indexes))
            assert all(0 <= i < seq_len for i in indexes)

    def test_deterministic_and_order_independent(self):
        seq_nums = list(range(11, 111))
        forward = [select_indexes(s, 10, 42) for s in seq_nums]
        backward = [select_indexes(s, 10, 42) for s in reversed(seq_nums)]
        assert forward == list(reversed(backward))

    def test_checksum_changes_selection(self):
        a = [select_indexes(s, 10, 1) for s in range(11, 111)]
        b = [select_indexes(s, 10, 2) for s in range(11, 111)]
        assert a != b

    def test_low_degrees_dominate(self):
        seq_len = 20
        degrees = [len(select_indexes(s, seq_len, 99))
                   for s in range(seq_len + 1, seq_len + 1001)]
        assert degrees.count(1) > degrees.count(seq_len)
        assert sum(degrees) / len(degrees) < seq_len / 2

    def test_choose_degree_range(self):
        rng = Xoshiro256(b"degree")
        for _ in range(500):
            assert 1 <= choose_degree(7, rng) <= 7

    @pytest.mark.parametrize("seq_num, seq_len", [(0, 3), (1, 0)])
    def test_invalid_inputs(self, seq_num, seq_len):
        with pytest.raises(ValueError):
            select_indexes(seq_num, seq_len, 0)
