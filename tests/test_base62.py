"""Tests for the Base62 codec."""

import random

import pytest

from core.exceptions import InvalidInputError
from utils import base62


class TestEncode:
    def test_zero_is_single_digit(self):
        assert base62.encode(0) == "0"

    def test_last_symbol(self):
        assert base62.encode(61) == "Z"

    def test_wraparound(self):
        assert base62.encode(62) == "10"
        assert base62.encode(3844) == "100"

    def test_alphabet_order(self):
        assert base62.encode(9) == "9"
        assert base62.encode(10) == "a"
        assert base62.encode(35) == "z"
        assert base62.encode(36) == "A"

    def test_max_64_bit_value(self):
        assert base62.encode((1 << 64) - 1) == "lYGhA16ahyf"

    def test_negative_rejected(self):
        with pytest.raises(InvalidInputError):
            base62.encode(-1)

    def test_non_integer_rejected(self):
        with pytest.raises(InvalidInputError):
            base62.encode("12")
        with pytest.raises(InvalidInputError):
            base62.encode(True)

    def test_output_uses_only_alphabet_without_leading_zeros(self):
        rng = random.Random(62)
        for _ in range(1000):
            encoded = base62.encode(rng.randrange(1, 1 << 63))
            assert set(encoded) <= set(base62.ALPHABET)
            assert not encoded.startswith("0")


class TestDecode:
    def test_known_values(self):
        assert base62.decode("0") == 0
        assert base62.decode("Z") == 61
        assert base62.decode("10") == 62
        assert base62.decode("lYGhA16ahyf") == (1 << 64) - 1

    def test_case_sensitive(self):
        assert base62.decode("a") != base62.decode("A")

    @pytest.mark.parametrize("value", ["", None])
    def test_empty_rejected(self, value):
        with pytest.raises(InvalidInputError):
            base62.decode(value)

    @pytest.mark.parametrize("value", ["abc-def", "a b", "ab/", "äbc", "+"])
    def test_foreign_characters_rejected(self, value):
        with pytest.raises(InvalidInputError):
            base62.decode(value)

    def test_overflow_rejected(self):
        with pytest.raises(InvalidInputError):
            base62.decode("lYGhA16ahyg")

    def test_round_trip(self):
        rng = random.Random(7)
        samples = [0, 1, 61, 62, (1 << 63) - 1] + [rng.randrange(1 << 63) for _ in range(500)]
        for number in samples:
            assert base62.decode(base62.encode(number)) == number

    def test_is_valid(self):
        assert base62.is_valid("2bNq8xKa0")
        assert not base62.is_valid("")
        assert not base62.is_valid("favicon.ico")
