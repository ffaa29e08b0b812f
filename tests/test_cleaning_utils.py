"""Tests for identity keys and cell cleaning helpers."""

import pytest

from store_locator.etl.utils import (
    address_key,
    clean_phone,
    composite_key,
    is_truthy,
    neutralize,
    normalize,
    strip_invisibles,
    to_coordinate,
)


class TestIdentityKeys:
    """Tests for normalize / composite_key / address_key."""

    def test_normalize_strips_punctuation_and_case(self) -> None:
        assert normalize("Joe's Wine & Spirits") == "joeswinespirits"
        assert normalize("  AUSTIN ") == "austin"
        assert normalize(None) == ""
        assert normalize(float("nan")) == ""

    @pytest.mark.parametrize("text", ["Joe's Wine & Spirits", "St. Louis", "Café Luna", ""])
    def test_normalize_is_idempotent(self, text: str) -> None:
        assert normalize(normalize(text)) == normalize(text)

    def test_composite_key_ignores_case_spacing_and_punctuation(self) -> None:
        a = composite_key("Joe's Bar", "Austin", "TX")
        b = composite_key("JOES BAR", " austin ", "tx")
        assert a == b == "joesbar|austin|tx"

    def test_composite_key_keeps_fields_apart(self) -> None:
        assert composite_key("a b", "c", "d") != composite_key("a", "bc", "d")

    def test_composite_key_is_word_sensitive(self) -> None:
        assert composite_key("Joe's Wine", "Austin", "TX") != composite_key("Joe's Spirits", "Austin", "TX")

    def test_address_key_is_trimmed_and_lowercased(self) -> None:
        assert address_key(" 100 Main St ", "Austin", "TX", "78701") == "100 main st|austin|tx|78701"
        assert address_key("100 MAIN ST", "austin", "tx", "78701") == address_key(
            "100 Main St", "Austin", "TX", "78701"
        )


class TestCleanPhone:
    """Tests for phone normalization."""

    @pytest.mark.parametrize(
        "raw",
        ["512-555-1234", "(512) 555-1234", "15125551234", "+1 512.555.1234", 5125551234.0],
    )
    def test_valid_numbers(self, raw: object) -> None:
        assert clean_phone(raw) == "(512) 555-1234"

    def test_trailing_zero_padding_is_removed(self) -> None:
        assert clean_phone("51255512340000") == "(512) 555-1234"

    @pytest.mark.parametrize(
        ("raw", "expected"),
        [
            ("12125551234", "(212) 555-1234"),
            ("5551234", ""),
            ("21255512340000000000", "(212) 555-1234"),
        ],
    )
    def test_documented_examples(self, raw: str, expected: str) -> None:
        assert clean_phone(raw) == expected

    @pytest.mark.parametrize("raw", ["", "0", "1", None, "555-1234", "25125551234", "N/A"])
    def test_invalid_numbers_become_empty(self, raw: object) -> None:
        assert clean_phone(raw) == ""


class TestCellHelpers:
    def test_strip_invisibles(self) -> None:
        assert strip_invisibles("a\u00a0b\u200b c") == "a b c"
        assert strip_invisibles("  Hello\t World \r") == "Hello World"
        assert strip_invisibles(None) is None

    def test_neutralize_prefixes_formula_characters(self) -> None:
        assert neutralize("=HYPERLINK(\"x\")") == "'=HYPERLINK(\"x\")"
        assert neutralize("+1 512") == "'+1 512"
        assert neutralize("@home") == "'@home"

    def test_neutralize_leaves_negative_numbers_alone(self) -> None:
        assert neutralize("-97.7431") == "-97.7431"
        assert neutralize("Corner Bar") == "Corner Bar"

    def test_to_coordinate(self) -> None:
        assert to_coordinate("30.2672") == pytest.approx(30.2672)
        assert to_coordinate(" -97.7431 ") == pytest.approx(-97.7431)
        assert to_coordinate("") is None
        assert to_coordinate("abc") is None
        assert to_coordinate("nan") is None
        assert to_coordinate(None) is None

    @pytest.mark.parametrize("value", ["TRUE", "true", "Yes", "x", "1", True])
    def test_is_truthy(self, value: object) -> None:
        assert is_truthy(value) is True

    @pytest.mark.parametrize("value", ["FALSE", "", "no", None, False, "0"])
    def test_is_not_truthy(self, value: object) -> None:
        assert is_truthy(value) is False
