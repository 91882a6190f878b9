"""Tests for DNI/NIE control letters and MRZ check digits."""

import pytest

from id_ocr.validation.checksum import (
    DNI_LETTERS,
    dni_check_letter,
    is_dni_format,
    is_nie_format,
    is_passport_number_format,
    mrz_char_value,
    mrz_check_digit,
    validate_dni,
    validate_mrz_field,
    validate_nie,
    validate_spanish_id,
)


class TestDNI:
    """Tests for the mod-23 DNI control letter."""

    def test_check_letter(self) -> None:
        assert dni_check_letter(12345678) == "Z"
        assert dni_check_letter(0) == "T"

    def test_check_letter_defined_across_number_range(self) -> None:
        numbers = [*range(0, 10_000_000, 997), 9_999_999]
        for number in numbers:
            letter = dni_check_letter(number)
            assert letter in DNI_LETTERS
            assert dni_check_letter(number) == letter
        assert {dni_check_letter(n) for n in range(23)} == set(DNI_LETTERS)

    @pytest.mark.parametrize("value", ["12345678Z", "00000000T", "99999999R"])
    def test_valid(self, value: str) -> None:
        assert validate_dni(value) is True

    def test_wrong_letter(self) -> None:
        assert validate_dni("12345678A") is False

    @pytest.mark.parametrize(
        "value", ["1234567Z", "123456789", "12345678", "12345678z", "", None]
    )
    def test_malformed(self, value: str | None) -> None:
        assert validate_dni(value) is False
        assert is_dni_format(value) is False


class TestNIE:
    """Tests for NIE prefix substitution."""

    @pytest.mark.parametrize("value", ["X1234567L", "Y1234567X", "Z1234567R"])
    def test_valid(self, value: str) -> None:
        assert validate_nie(value) is True

    def test_wrong_letter(self) -> None:
        assert validate_nie("X1234567A") is False

    def test_malformed(self) -> None:
        assert is_nie_format("A1234567L") is False
        assert validate_nie("X123456L") is False

    def test_spanish_id_dispatch(self) -> None:
        assert validate_spanish_id("12345678Z") is True
        assert validate_spanish_id("X1234567L") is True
        assert validate_spanish_id("X1234567A") is False
        assert validate_spanish_id("garbage") is False


class TestPassportNumber:
    """Tests for passport number structure."""

    def test_format(self) -> None:
        assert is_passport_number_format("XDA123456") is True
        assert is_passport_number_format("L898902C3") is True
        assert is_passport_number_format("AB12") is False
        assert is_passport_number_format("xda123456") is False


class TestMRZCheckDigit:
    """Tests for the ICAO 7-3-1 check digit."""

    def test_char_values(self) -> None:
        assert mrz_char_value("7") == 7
        assert mrz_char_value("A") == 10
        assert mrz_char_value("Z") == 35
        assert mrz_char_value("<") == 0
        assert mrz_char_value("a") is None
        assert mrz_char_value("AB") is None

    @pytest.mark.parametrize(
        "data,expected",
        [
            ("L898902C3", 6),
            ("740812", 2),
            ("120415", 9),
            ("ZE184226B<<<<<", 1),
            ("520727", 3),
        ],
    )
    def test_known_values(self, data: str, expected: int) -> None:
        assert mrz_check_digit(data) == expected

    def test_invalid_character(self) -> None:
        assert mrz_check_digit("AB-12") is None

    def test_validate_field(self) -> None:
        assert validate_mrz_field("L898902C3", "6") is True
        assert validate_mrz_field("L898902C3", "7") is False

    def test_filler_check_counts_as_zero(self) -> None:
        assert validate_mrz_field("<" * 14, "<") is True
        assert validate_mrz_field("<" * 14, "0") is True

    def test_letter_check_is_invalid(self) -> None:
        assert validate_mrz_field("L898902C3", "A") is False
        assert validate_mrz_field("L898902C3", "") is False
