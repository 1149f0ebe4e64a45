"""
Tests for decoding version-local choices into master options.
"""

import pytest

from regrader.core.permutation import decode_permutation, encode_master_option
from regrader.schemas.item_analysis import BLANK_OTHER


class TestDecodePermutation:
    """Tests for decode_permutation."""

    @pytest.mark.parametrize(
        "choice,permutation,expected",
        [
            ("C", "CADEB", "D"),
            ("A", "CADEB", "C"),
            ("E", "CADEB", "B"),
            ("c", "CADEB", "D"),
            (" B ", "ABCDE", "B"),
        ],
    )
    def test_decodes_choice(self, choice, permutation, expected):
        assert decode_permutation(choice, permutation) == expected

    @pytest.mark.parametrize("choice", ["", None, "AB", "F", "1", "*"])
    def test_invalid_choice_is_blank_other(self, choice):
        assert decode_permutation(choice, "ABCDE") == BLANK_OTHER

    def test_choice_beyond_permutation_is_blank_other(self):
        assert decode_permutation("D", "BCA") == BLANK_OTHER

    def test_identity_permutation(self):
        for letter in "ABCDE":
            assert decode_permutation(letter, "ABCDE") == letter


class TestEncodeMasterOption:
    """Tests for encode_master_option."""

    def test_inverse_of_decode(self):
        permutation = "CADEB"
        for local in "ABCDE":
            master = decode_permutation(local, permutation)
            assert encode_master_option(master, permutation) == local

    def test_option_not_presented(self):
        assert encode_master_option("E", "BCA") is None

    @pytest.mark.parametrize("letter", ["", "AB"])
    def test_invalid_letter(self, letter):
        assert encode_master_option(letter, "ABCDE") is None
