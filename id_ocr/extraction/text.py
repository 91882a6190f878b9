"""Text normalization helpers shared by the field extractors."""

import re
from datetime import date

# Nationality names as printed on Spanish documents, mapped to ISO 3166 alpha-3.
NATIONALITY_CODES: dict[str, str] = {
    "ESP": "ESP",
    "SPA": "ESP",
    "ESPAÑA": "ESP",
    "ESPAÑOL": "ESP",
    "ESPAÑOLA": "ESP",
    "SPAIN": "ESP",
    "SPANISH": "ESP",
    "FRANCIA": "FRA",
    "FRANCE": "FRA",
    "FRANCESA": "FRA",
    "FRANCÉS": "FRA",
    "PORTUGAL": "PRT",
    "PORTUGUESA": "PRT",
    "PORTUGUÉS": "PRT",
    "MARRUECOS": "MAR",
    "MOROCCO": "MAR",
    "MARROQUÍ": "MAR",
    "MARROQUI": "MAR",
    "ALEMANIA": "DEU",
    "GERMANY": "DEU",
    "ALEMANA": "DEU",
    "ITALIA": "ITA",
    "ITALY": "ITA",
    "ITALIANA": "ITA",
    "REINO UNIDO": "GBR",
    "UNITED KINGDOM": "GBR",
    "BRITÁNICA": "GBR",
    "BRITANICA": "GBR",
    "RUMANÍA": "ROU",
    "RUMANIA": "ROU",
    "ROMANIA": "ROU",
    "RUMANA": "ROU",
    "COLOMBIA": "COL",
    "COLOMBIANA": "COL",
    "ECUADOR": "ECU",
    "ECUATORIANA": "ECU",
    "ARGENTINA": "ARG",
    "VENEZUELA": "VEN",
    "VENEZOLANA": "VEN",
    "PERÚ": "PER",
    "PERU": "PER",
    "PERUANA": "PER",
    "BRASIL": "BRA",
    "BRAZIL": "BRA",
    "MÉXICO": "MEX",
    "MEXICO": "MEX",
    "CHINA": "CHN",
    "ESTADOS UNIDOS": "USA",
    "UNITED STATES": "USA",
}

_ALPHA3 = re.compile(r"^[A-Z]{3}$")
_SEPARATORS = re.compile(r"[\s.\-]")

# A bilingual label ("NACIONALIDAD / NATIONALITY") is consumed as one label.
_NATIONALITY_LABEL = re.compile(
    r"(?i:nacionalidad|nationality)(?:[\s:/]+(?i:nacionalidad|nationality))*"
    r"[\s:/]*([A-ZÁÉÍÓÚÑÜ]{3,}(?: [A-ZÁÉÍÓÚÑÜ]+)?)"
)
_NOT_A_NATIONALITY = re.compile(
    r"^(?:SEXO?|FECHA|NACIMIENTO|APELLIDOS?|NOMBRES?|SURNAMES?|NAMES?|"
    r"DNI|NIE|NUM|CAN|PASAPORTE|PASSPORT|DOMICILIO)\b"
)


def normalize_text(text: str) -> str:
    """Trim every line, collapse inner whitespace and drop empty lines."""
    lines = (" ".join(line.split()) for line in text.splitlines())
    return "\n".join(line for line in lines if line)


def clean_document_number(value: str) -> str:
    """Strip separators from a document number and uppercase it.

    >>> clean_document_number("12.345.678-z")
    '12345678Z'
    """
    return _SEPARATORS.sub("", value).upper()


def normalize_nationality(value: str) -> str | None:
    """Map a printed nationality to an ISO alpha-3 code.

    Args:
        value: Nationality name or code as read by OCR.

    Returns:
        The ISO code, the value itself if it already looks like one, or
        ``None`` when it cannot be interpreted.
    """
    key = " ".join(value.upper().split())
    if key in NATIONALITY_CODES:
        return NATIONALITY_CODES[key]
    if _ALPHA3.match(key):
        return key
    return None


def is_plausible_date(day: int, month: int, year: int) -> bool:
    """Range-check printed date components."""
    return 1 <= day <= 31 and 1 <= month <= 12 and 1900 <= year <= 2050


def format_date(day: int, month: int, year: int) -> str:
    """Format a date the way extracted fields store it (``DD-MM-YYYY``)."""
    return f"{day:02d}-{month:02d}-{year}"


def format_field_date(value: date) -> str:
    return format_date(value.day, value.month, value.year)


def parse_field_date(value: str | None) -> date | None:
    """Parse a ``DD-MM-YYYY`` field value back into a ``date``."""
    if not value:
        return None
    try:
        day, month, year = (int(part) for part in value.split("-"))
        return date(year, month, day)
    except ValueError:
        return None


def find_labelled_nationality(text: str) -> str | None:
    """Return the ISO code printed after the first usable nationality label.

    Args:
        text: OCR text, possibly spanning several lines.

    Returns:
        The alpha-3 code, or ``None`` when no label is followed by a
        recognisable nationality.
    """
    for match in _NATIONALITY_LABEL.finditer(text):
        value = match.group(1)
        if _NOT_A_NATIONALITY.match(value):
            continue
        code = normalize_nationality(value) or normalize_nationality(value.split()[0])
        if code is not None:
            return code
    return None
