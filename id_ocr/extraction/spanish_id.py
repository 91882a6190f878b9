"""Field extraction for Spanish DNI and NIE cards.

The front carries the holder's number, names, dates, sex, nationality and
card numbers; the back carries the address block and a TD1 MRZ. Full-page
text is parsed first and region re-reads only fill fields still unset.
"""

import re

from id_ocr.utils.logger import get_logger
from id_ocr.validation.checksum import is_spanish_id_format

from .fields import ExtractedFields, ExtractionResult
from .mrz import MRZData, clean_mrz_line, find_td1
from .text import (
    clean_document_number,
    find_labelled_nationality,
    format_date,
    format_field_date,
    is_plausible_date,
    normalize_text,
)

logger = get_logger(__name__)

_DNI = r"\d{2}\.?\d{3}\.?\d{3}[ \-]?[A-Z]"
_NIE = r"[XYZ][ \-]?\d{7}[ \-]?[A-Z]"

# Ordered by reliability; the first structurally valid candidate wins.
_NUMBER_PATTERNS: list[re.Pattern[str]] = [
    re.compile(rf"(?i:\b(?:dni|nif))[\s.:]*({_DNI})"),
    re.compile(rf"(?i:\bn[uú]m(?:ero)?)[\s.:]*({_DNI}|{_NIE})"),
    re.compile(rf"(?i:\bnie)[\s.:]*({_NIE})"),
    re.compile(rf"\b({_DNI})\b"),
    re.compile(rf"\b({_NIE})\b"),
]

_LABEL_WORDS = re.compile(
    r"\b(?:NOMBRES?|APELLIDOS?|SURNAMES?|NAMES?|GIVEN|DNI|NIF|NIE|DOCUMENTO|"
    r"NACIONAL|IDENTIDAD|REINO|ESPAÑA|ESPAÑOLA?|NACIONALIDAD|NATIONALITY|SEXO|"
    r"SEX|FECHA|NACIMIENTO|V[AÁ]LIDO|HASTA|CADUCIDAD|EXPEDIDO|SOPORTE|NUM|"
    r"N[UÚ]MERO|CAN|DOMICILIO|PROVINCIA|MUNICIPIO|PASAPORTE|PASSPORT|PERMISO|"
    r"RESIDENCIA|TARJETA|EXTRANJERO|UNI[OÓ]N|EUROPEA|SPAIN|KINGDOM)\b",
    re.IGNORECASE,
)
_NAME_WORD = re.compile(r"^[A-ZÁÉÍÓÚÑÜ][A-ZÁÉÍÓÚÑÜ'\-]*$")
_NAME_VALUE = r"([A-ZÁÉÍÓÚÑÜ][A-ZÁÉÍÓÚÑÜ \-]*)"
_LAST_NAMES_LABEL = re.compile(r"(?i:\b(?:apellidos?|surnames?))[\s:]*" + _NAME_VALUE)
_FIRST_NAME_LABEL = re.compile(r"(?i:\b(?:nombre|names?))[\s:]*" + _NAME_VALUE)

_DATE = r"(\d{1,2})[./\-](\d{1,2})[./\-](\d{4})"
_CONTEXT_DATE_PATTERNS: list[tuple[str, re.Pattern[str]]] = [
    (
        "birth_date",
        re.compile(r"(?i:fecha\s*de\s*nacimiento|nacimiento|born)[\s:]*" + _DATE),
    ),
    (
        "expiry_date",
        re.compile(
            r"(?i:v[aá]lido\s*hasta|validez|caducidad|expir\w*|exp\.?)[\s:]*" + _DATE
        ),
    ),
    (
        "issue_date",
        re.compile(r"(?i:expedido|expedici[oó]n|emisi[oó]n|issued)[\s:]*" + _DATE),
    ),
]
_GENERIC_DATE = re.compile(r"\b" + _DATE + r"\b")

_GENDER_LABEL = re.compile(r"(?i:sexo|sex|gender)[\s:/]*([MFVmfv])\b")
_GENDER_TOKEN = re.compile(r"\b([MFV])\b")
_SPAIN_TOKEN = re.compile(r"\b(ESP|SPA|ESPAÑOLA?)\b")

_SUPPORT_LABEL = re.compile(
    r"(?i:n[uú]mero\s*de\s*soporte|n[uú]m\.?\s*soporte|soporte|support)"
    r"[\s:]*([A-Z0-9]{6,12})\b"
)
_CAN_LABEL = re.compile(r"(?i:\bCAN\b)[\s:]*([A-Z0-9]{6,12})\b")

_ADDRESS_PATTERNS: list[re.Pattern[str]] = [
    re.compile(r"(?i:domicilio|direcci[oó]n|address)[\s:]*([^\n]+)"),
    re.compile(
        r"((?i:\bcalle\b|\bc/|\bavda\.?|\bavenida\b|\bplaza\b|\bstreet\b)[^\n]+)"
    ),
]
_POSTAL_CODE = re.compile(r"\b(\d{5})\b")
_PLACE = r"([A-ZÁÉÍÓÚÑÜ][A-Za-zÁÉÍÓÚÑÜáéíóúñü ]+)"
_PROVINCE_PATTERNS: list[re.Pattern[str]] = [
    re.compile(r"(?i:provincia|prov\.)[\s:]*" + _PLACE),
    re.compile(r"(?i:comunidad|ccaa)[\s:]*" + _PLACE),
]
_MUNICIPALITY_LABEL = re.compile(r"(?i:municipio|localidad|ciudad)[\s:]*" + _PLACE)

_MRZ_LINE = re.compile(r"^[A-Z0-9<]{30,}$")


def find_document_numbers(text: str) -> list[str]:
    """List every structurally valid DNI/NIE number in pattern order.

    Args:
        text: OCR text.

    Returns:
        Cleaned candidate numbers, most reliable first, without duplicates.
    """
    found: list[str] = []
    for pattern in _NUMBER_PATTERNS:
        for match in pattern.finditer(text):
            candidate = clean_document_number(match.group(1))
            if is_spanish_id_format(candidate) and candidate not in found:
                found.append(candidate)
    return found


def find_document_number(text: str) -> str | None:
    """Return the first structurally valid DNI/NIE number in the text."""
    numbers = find_document_numbers(text)
    return numbers[0] if numbers else None


def split_name_words(words: list[str]) -> tuple[str, str] | None:
    """Split 2-4 uppercase words into (last_names, first_name).

    Spanish cards print the two surnames before the given name(s).
    """
    if len(words) == 2:
        return words[0], words[1]
    if len(words) == 3:
        return f"{words[0]} {words[1]}", words[2]
    if len(words) == 4:
        return f"{words[0]} {words[1]}", f"{words[2]} {words[3]}"
    return None


def _is_name_line(line: str) -> bool:
    if len(line) < 3:
        return False
    if sum(c.isdigit() for c in line) > len(line) // 2:
        return False
    if ":" in line or _LABEL_WORDS.search(line):
        return False
    if sum(c.isupper() for c in line) <= len(line) // 2:
        return False
    words = line.split()
    return 2 <= len(words) <= 4 and all(_NAME_WORD.match(w) for w in words)


def _label_value(match: re.Match[str]) -> str | None:
    words: list[str] = []
    for word in match.group(1).split():
        if _LABEL_WORDS.fullmatch(word):
            break
        words.append(word)
    return " ".join(words) or None


def _date_from_match(match: re.Match[str]) -> tuple[str, int] | None:
    day, month, year = int(match.group(1)), int(match.group(2)), int(match.group(3))
    if not is_plausible_date(day, month, year):
        return None
    return format_date(day, month, year), year


class SpanishIDExtractor:
    """Rule-based extractor for the front and back of DNI and NIE cards.

    Args:
        mrz_century_pivot: Two-digit year below which MRZ years are 20YY.
    """

    def __init__(self, mrz_century_pivot: int = 30) -> None:
        self.mrz_century_pivot = mrz_century_pivot

    def extract_front(
        self, text: str, region_texts: dict[str, str] | None = None
    ) -> ExtractionResult:
        """Extract fields from the front of a card.

        Args:
            text: Full-page OCR text.
            region_texts: OCR text of the ``names``, ``dates`` and
                ``numbers`` regions, keyed by region name.

        Returns:
            Extraction result with the recovered fields.
        """
        text = normalize_text(text)
        fields = ExtractedFields()

        self.extract_document_number(text, fields)
        self.extract_names(text, fields)
        self.extract_dates(text, fields)
        self.extract_gender(text, fields)
        self.extract_nationality(text, fields)
        self.extract_card_numbers(text, fields)

        handlers = {
            "names": self.extract_names,
            "dates": self.extract_dates,
            "numbers": self.extract_document_number,
        }
        for name, region_text in (region_texts or {}).items():
            handler = handlers.get(name)
            if handler is None:
                logger.debug("No handler for front region %s", name)
                continue
            handler(normalize_text(region_text), fields)

        logger.debug("Front extraction found: %s", fields.present_fields())
        return ExtractionResult(fields=fields)

    def extract_back(
        self, text: str, region_texts: dict[str, str] | None = None
    ) -> ExtractionResult:
        """Extract fields from the back of a card.

        Args:
            text: Full-page OCR text.
            region_texts: OCR text of the ``address`` and ``mrz`` regions.

        Returns:
            Extraction result, carrying the TD1 MRZ when one was decoded.
        """
        text = normalize_text(text)
        fields = ExtractedFields()

        self.extract_address(text, fields)
        mrz = self.extract_back_mrz(text, fields)

        for name, region_text in (region_texts or {}).items():
            region_text = normalize_text(region_text)
            if name == "address":
                self.extract_address(region_text, fields)
            elif name == "mrz":
                decoded = self.extract_back_mrz(region_text, fields)
                mrz = mrz or decoded
            else:
                logger.debug("No handler for back region %s", name)

        logger.debug("Back extraction found: %s", fields.present_fields())
        return ExtractionResult(
            fields=fields, mrz=mrz, method="mrz" if mrz is not None else "text"
        )

    def extract_document_number(self, text: str, fields: ExtractedFields) -> None:
        fields.set_if_unset("document_number", find_document_number(text))

    def extract_names(self, text: str, fields: ExtractedFields) -> None:
        """Find names on an uppercase 2-4 word line, then by label."""
        for line in text.splitlines():
            if not _is_name_line(line):
                continue
            split = split_name_words(line.split())
            if split is not None:
                fields.set_if_unset("last_names", split[0])
                fields.set_if_unset("first_name", split[1])
                break

        if fields.last_names is None:
            for match in _LAST_NAMES_LABEL.finditer(text):
                if fields.set_if_unset("last_names", _label_value(match)):
                    break
        if fields.first_name is None:
            for match in _FIRST_NAME_LABEL.finditer(text):
                if fields.set_if_unset("first_name", _label_value(match)):
                    break

    def extract_dates(self, text: str, fields: ExtractedFields) -> None:
        """Find dates and assign them by keyword context, then by year."""
        categorized: set[int] = set()
        for name, pattern in _CONTEXT_DATE_PATTERNS:
            for match in pattern.finditer(text):
                parsed = _date_from_match(match)
                if parsed is None:
                    continue
                categorized.add(match.start(1))
                fields.set_if_unset(name, parsed[0])

        uncategorized: list[tuple[int, str]] = []
        for match in _GENERIC_DATE.finditer(text):
            if match.start(1) in categorized:
                continue
            parsed = _date_from_match(match)
            if parsed is not None:
                uncategorized.append((parsed[1], parsed[0]))

        for year, value in sorted(uncategorized, key=lambda item: item[0]):
            if year < 2010:
                fields.set_if_unset("birth_date", value)
            elif year > 2020:
                fields.set_if_unset("expiry_date", value)

    def extract_gender(self, text: str, fields: ExtractedFields) -> None:
        match = _GENDER_LABEL.search(text) or _GENDER_TOKEN.search(text)
        if match:
            fields.set_if_unset("gender", match.group(1).upper())

    def extract_nationality(self, text: str, fields: ExtractedFields) -> None:
        if fields.set_if_unset("nationality", find_labelled_nationality(text)):
            return
        if _SPAIN_TOKEN.search(text):
            fields.set_if_unset("nationality", "ESP")

    def extract_card_numbers(self, text: str, fields: ExtractedFields) -> None:
        """Find the support number and the CAN printed on the card."""
        match = _SUPPORT_LABEL.search(text)
        if match:
            fields.set_if_unset("support_number", match.group(1).upper())
        match = _CAN_LABEL.search(text)
        if match:
            fields.set_if_unset("can_number", match.group(1).upper())

    def extract_address(self, text: str, fields: ExtractedFields) -> None:
        """Find the address block fields printed on the back of a card."""
        for pattern in _ADDRESS_PATTERNS:
            match = pattern.search(text)
            if match:
                address = match.group(1).strip()
                if len(address) > 5 and fields.set_if_unset("address", address):
                    break

        match = _POSTAL_CODE.search(text)
        if match:
            fields.set_if_unset("postal_code", match.group(1))

        for pattern in _PROVINCE_PATTERNS:
            match = pattern.search(text)
            if match and fields.set_if_unset("province", match.group(1).strip()):
                break

        match = _MUNICIPALITY_LABEL.search(text)
        if match:
            fields.set_if_unset("municipality", match.group(1).strip())

    def extract_back_mrz(self, text: str, fields: ExtractedFields) -> MRZData | None:
        """Decode the MRZ on the back of a card.

        A complete TD1 block fills every field it carries. Partial reads
        still yield the support number from an ``IDESP`` line and names
        from a line containing ``ESP<``.

        Args:
            text: OCR text containing the MRZ.
            fields: Fields to fill.

        Returns:
            The decoded ``MRZData``, or ``None`` without a complete TD1 block.
        """
        lines = [
            line
            for line in (clean_mrz_line(raw) for raw in text.splitlines())
            if line.startswith("IDESP") or "ESP<" in line or _MRZ_LINE.match(line)
        ]
        if not lines:
            return None

        mrz = find_td1(lines, pivot=self.mrz_century_pivot)
        if mrz is not None:
            embedded = clean_document_number(mrz.optional_data[:9])
            if is_spanish_id_format(embedded):
                fields.set_if_unset("document_number", embedded)
            fields.set_if_unset("support_number", mrz.document_number or None)
            fields.set_if_unset("last_names", mrz.surnames or None)
            fields.set_if_unset("first_name", mrz.given_names or None)
            if mrz.birth_date:
                fields.set_if_unset("birth_date", format_field_date(mrz.birth_date))
            if mrz.expiry_date:
                fields.set_if_unset("expiry_date", format_field_date(mrz.expiry_date))
            fields.set_if_unset("gender", mrz.sex)
            fields.set_if_unset("nationality", mrz.nationality or None)

        for line in lines:
            if line.startswith("IDESP"):
                support = line[5:].split("<", 1)[0]
                if len(support) >= 6:
                    fields.set_if_unset("support_number", support)
            if "ESP<" in line:
                names = line.split("ESP<", 1)[1].split("<")
                if len(names) >= 2:
                    fields.set_if_unset("last_names", names[0] or None)
                    fields.set_if_unset("first_name", names[1] or None)

        return mrz
