"""Checksum validation for Spanish identity numbers and MRZ fields.

Implements the mod-23 control letter used by DNI and NIE numbers and the
ICAO 9303 7-3-1 check digit used in machine readable zones. Every
function is total: malformed input yields ``False`` or ``None``, never
an exception.
"""

import re

DNI_LETTERS = "TRWAGMYFPDXBNJZSQVHLCKE"
NIE_PREFIXES = {"X": "0", "Y": "1", "Z": "2"}
MRZ_WEIGHTS = (7, 3, 1)

DNI_PATTERN = re.compile(r"^\d{8}[A-Z]$")
NIE_PATTERN = re.compile(r"^[XYZ]\d{7}[A-Z]$")
PASSPORT_NUMBER_PATTERN = re.compile(r"^[A-Z0-9]{6,9}$")


def dni_check_letter(number: int) -> str:
    """Return the control letter for a DNI number."""
    return DNI_LETTERS[number % 23]


def is_dni_format(value: str | None) -> bool:
    return isinstance(value, str) and bool(DNI_PATTERN.match(value))


def is_nie_format(value: str | None) -> bool:
    return isinstance(value, str) and bool(NIE_PATTERN.match(value))


def is_spanish_id_format(value: str | None) -> bool:
    """Check whether a value is structurally a DNI or NIE number."""
    return is_dni_format(value) or is_nie_format(value)


def is_passport_number_format(value: str | None) -> bool:
    return isinstance(value, str) and bool(PASSPORT_NUMBER_PATTERN.match(value))


def validate_dni(value: str | None) -> bool:
    """Validate a DNI number such as ``12345678Z``.

    Args:
        value: Candidate DNI number.

    Returns:
        True when the value is well formed and its letter matches.
    """
    if not is_dni_format(value):
        return False
    return dni_check_letter(int(value[:8])) == value[8]


def validate_nie(value: str | None) -> bool:
    """Validate an NIE number such as ``X1234567L``.

    The X/Y/Z prefix is replaced by 0/1/2 and the resulting eight digits
    are checked against the DNI letter table.

    Args:
        value: Candidate NIE number.

    Returns:
        True when the value is well formed and its letter matches.
    """
    if not is_nie_format(value):
        return False
    digits = NIE_PREFIXES[value[0]] + value[1:8]
    return dni_check_letter(int(digits)) == value[8]


def validate_spanish_id(value: str | None) -> bool:
    """Validate either a DNI or an NIE number."""
    if is_nie_format(value):
        return validate_nie(value)
    return validate_dni(value)


def mrz_char_value(char: str) -> int | None:
    """Map an MRZ character to its check-digit value.

    Digits map to themselves, ``A``-``Z`` to 10-35 and the filler ``<``
    to 0. Anything else has no value.
    """
    if len(char) != 1:
        return None
    if "0" <= char <= "9":
        return ord(char) - ord("0")
    if "A" <= char <= "Z":
        return ord(char) - ord("A") + 10
    if char == "<":
        return 0
    return None


def mrz_check_digit(data: str) -> int | None:
    """Compute the ICAO 7-3-1 check digit of an MRZ field.

    Args:
        data: MRZ field characters.

    Returns:
        The check digit, or ``None`` if the field has an invalid character.
    """
    total = 0
    for index, char in enumerate(data):
        value = mrz_char_value(char)
        if value is None:
            return None
        total += value * MRZ_WEIGHTS[index % 3]
    return total % 10


def validate_mrz_field(data: str, check: str) -> bool:
    """Verify an MRZ field against its printed check character.

    A filler ``<`` in the check position counts as zero, which is how
    empty optional fields are encoded.

    Args:
        data: MRZ field characters.
        check: The single printed check character.

    Returns:
        True when the computed digit equals the printed one.
    """
    if len(check) != 1:
        return False
    expected = mrz_char_value(check)
    if expected is None or expected > 9:
        return False
    return mrz_check_digit(data) == expected
