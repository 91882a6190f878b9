"""Machine readable zone (MRZ) decoding.

Supports the two ICAO 9303 layouts found on the documents this package
reads: TD3 (two 44-character lines, passports) and TD1 (three
30-character lines, the back of DNI and NIE cards). Every field that
carries a check digit is verified individually.
"""

import re
from dataclasses import dataclass, field
from datetime import date

from id_ocr.utils.logger import get_logger
from id_ocr.validation.checksum import validate_mrz_field

logger = get_logger(__name__)

TD3_LINE_LENGTH = 44
TD1_LINE_LENGTH = 30

_MRZ_CHARS = re.compile(r"^[A-Z0-9<]+$")


@dataclass
class MRZData:
    """Decoded MRZ content.

    Attributes:
        layout: ``"TD3"`` or ``"TD1"``.
        document_code: One or two letter document code (``P``, ``ID``).
        issuing_country: Issuing state code.
        document_number: Document number with fillers removed.
        nationality: Holder nationality code.
        birth_date: Date of birth, if the digits form a valid date.
        expiry_date: Date of expiry, if the digits form a valid date.
        sex: ``M``, ``F`` or ``X``; ``None`` when unspecified.
        surnames: Primary identifier with fillers turned into spaces.
        given_names: Secondary identifier with fillers turned into spaces.
        optional_data: Personal number (TD3) or optional data (TD1).
        checks: Per-field check digit results keyed by field name.
    """

    layout: str
    document_code: str
    issuing_country: str
    document_number: str
    nationality: str
    birth_date: date | None
    expiry_date: date | None
    sex: str | None
    surnames: str
    given_names: str
    optional_data: str
    checks: dict[str, bool] = field(default_factory=dict)

    @property
    def checksum_valid(self) -> bool:
        """True only when every check digit verifies."""
        return bool(self.checks) and all(self.checks.values())


def resolve_century_pivot(pivot: int | None, today: date | None = None) -> int:
    """Return the two-digit year below which MRZ years belong to the 2000s.

    Args:
        pivot: Configured pivot, or ``None`` for a sliding window ten
            years ahead of the current year.
        today: Reference date for the sliding window.
    """
    if pivot is not None:
        return pivot
    today = today or date.today()
    return today.year % 100 + 10


def decode_mrz_date(yymmdd: str, pivot: int = 30) -> date | None:
    """Decode an MRZ ``YYMMDD`` date.

    Args:
        yymmdd: Six digits.
        pivot: Years below the pivot map to 20YY, the rest to 19YY.

    Returns:
        The decoded date, or ``None`` if the digits are not a real date.
    """
    if len(yymmdd) != 6 or not yymmdd.isdigit():
        return None
    yy, month, day = int(yymmdd[:2]), int(yymmdd[2:4]), int(yymmdd[4:])
    year = 2000 + yy if yy < pivot else 1900 + yy
    try:
        return date(year, month, day)
    except ValueError:
        return None


def encode_mrz_date(value: date) -> str:
    """Encode a date in MRZ ``YYMMDD`` form."""
    return f"{value.year % 100:02d}{value.month:02d}{value.day:02d}"


def clean_mrz_line(line: str) -> str:
    """Remove whitespace OCR inserts inside MRZ lines and uppercase them."""
    return "".join(line.split()).upper()


def is_mrz_line(line: str, min_length: int = 36) -> bool:
    return len(line) >= min_length and bool(_MRZ_CHARS.match(line))


def find_mrz_lines(text: str, min_length: int = 36) -> list[str]:
    """Collect the lines of ``text`` that look like MRZ lines.

    Args:
        text: OCR output.
        min_length: Minimum line length after cleaning.

    Returns:
        Cleaned MRZ candidate lines in reading order.
    """
    candidates = (clean_mrz_line(line) for line in text.splitlines())
    return [line for line in candidates if is_mrz_line(line, min_length)]


def parse_name_field(name_field: str) -> tuple[str, str]:
    """Split an MRZ name field into (surnames, given_names).

    The primary and secondary identifiers are separated by ``<<``; single
    ``<`` fillers separate words inside each.
    """
    primary, _, secondary = name_field.lstrip("<").partition("<<")
    surnames = " ".join(primary.replace("<", " ").split())
    given_names = " ".join(secondary.replace("<", " ").split())
    return surnames, given_names


def _sex(char: str) -> str | None:
    return char if char in ("M", "F", "X") else None


def _pad(line: str, length: int) -> str:
    return line[:length].ljust(length, "<")


def parse_td3(line1: str, line2: str, pivot: int = 30) -> MRZData | None:
    """Decode a two-line TD3 (passport) MRZ.

    Args:
        line1: ``P<CCC`` followed by the name field.
        line2: Number, nationality, dates, sex and personal number.
        pivot: MRZ century pivot.

    Returns:
        Decoded MRZ data, or ``None`` if line 1 is not a passport line.
    """
    line1 = clean_mrz_line(line1)
    line2 = clean_mrz_line(line2)
    if not line1.startswith("P"):
        return None

    l1 = _pad(line1, TD3_LINE_LENGTH)
    l2 = _pad(line2, TD3_LINE_LENGTH)

    surnames, given_names = parse_name_field(l1[5:])
    checks = {
        "document_number": validate_mrz_field(l2[0:9], l2[9]),
        "birth_date": validate_mrz_field(l2[13:19], l2[19]),
        "expiry_date": validate_mrz_field(l2[21:27], l2[27]),
        "personal_number": validate_mrz_field(l2[28:42], l2[42]),
        "composite": validate_mrz_field(l2[0:10] + l2[13:20] + l2[21:43], l2[43]),
    }

    data = MRZData(
        layout="TD3",
        document_code=l1[0:2].replace("<", ""),
        issuing_country=l1[2:5].replace("<", ""),
        document_number=l2[0:9].replace("<", ""),
        nationality=l2[10:13].replace("<", ""),
        birth_date=decode_mrz_date(l2[13:19], pivot),
        expiry_date=decode_mrz_date(l2[21:27], pivot),
        sex=_sex(l2[20]),
        surnames=surnames,
        given_names=given_names,
        optional_data=l2[28:42].replace("<", ""),
        checks=checks,
    )
    logger.debug("Decoded TD3 MRZ, checks: %s", checks)
    return data


def parse_td1(line1: str, line2: str, line3: str, pivot: int = 30) -> MRZData | None:
    """Decode a three-line TD1 (identity card) MRZ.

    Args:
        line1: Document code, issuing state, number and optional data.
        line2: Dates, sex, nationality and the composite check digit.
        line3: Name field.
        pivot: MRZ century pivot.

    Returns:
        Decoded MRZ data, or ``None`` if line 1 is not an identity card line.
    """
    line1 = clean_mrz_line(line1)
    if line1[:1] not in ("I", "A", "C"):
        return None

    l1 = _pad(line1, TD1_LINE_LENGTH)
    l2 = _pad(clean_mrz_line(line2), TD1_LINE_LENGTH)
    l3 = _pad(clean_mrz_line(line3), TD1_LINE_LENGTH)

    surnames, given_names = parse_name_field(l3)
    checks = {
        "document_number": validate_mrz_field(l1[5:14], l1[14]),
        "birth_date": validate_mrz_field(l2[0:6], l2[6]),
        "expiry_date": validate_mrz_field(l2[8:14], l2[14]),
        "composite": validate_mrz_field(
            l1[5:30] + l2[0:7] + l2[8:15] + l2[18:29], l2[29]
        ),
    }

    data = MRZData(
        layout="TD1",
        document_code=l1[0:2].replace("<", ""),
        issuing_country=l1[2:5].replace("<", ""),
        document_number=l1[5:14].replace("<", ""),
        nationality=l2[15:18].replace("<", ""),
        birth_date=decode_mrz_date(l2[0:6], pivot),
        expiry_date=decode_mrz_date(l2[8:14], pivot),
        sex=_sex(l2[7]),
        surnames=surnames,
        given_names=given_names,
        optional_data=l1[15:30].replace("<", ""),
        checks=checks,
    )
    logger.debug("Decoded TD1 MRZ, checks: %s", checks)
    return data


def find_td1(lines: list[str], pivot: int = 30) -> MRZData | None:
    """Locate and decode three consecutive TD1-length lines.

    Args:
        lines: Cleaned MRZ candidate lines.
        pivot: MRZ century pivot.

    Returns:
        The first decodable TD1 block, or ``None``.
    """
    for index in range(len(lines) - 2):
        block = lines[index : index + 3]
        if all(28 <= len(line) <= 32 for line in block):
            data = parse_td1(*block, pivot=pivot)
            if data is not None:
                return data
    return None
