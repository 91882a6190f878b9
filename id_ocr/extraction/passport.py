"""Field extraction for passports.

The TD3 MRZ is the authoritative source. When fewer than two MRZ lines
are readable the extractor falls back to the printed data page.
"""

import re

from id_ocr.utils.logger import get_logger
from id_ocr.validation.checksum import is_passport_number_format

from .fields import ExtractedFields, ExtractionResult
from .mrz import find_mrz_lines, parse_td3
from .text import (
    find_labelled_nationality,
    format_date,
    format_field_date,
    is_plausible_date,
    normalize_text,
)

logger = get_logger(__name__)

_PASSPORT_NUMBER = re.compile(r"\b([A-Z]{1,3}\d{6,9})\b")
_PASSPORT_DATE = re.compile(r"\b(\d{2})[./](\d{2})[./](\d{4})\b")
_NAME_LINE = re.compile(r"^[A-ZÁÉÍÓÚÑÜ ]{6,}$")
_HEADER_WORDS = re.compile(
    r"\b(?:PASAPORTE|PASSPORT|PASSEPORT|REINO|ESPAÑA|SPAIN|UNI[OÓ]N|EUROPEA|"
    r"EUROPEAN|UNION|APELLIDOS|NOMBRE|SURNAME|NAMES?|NACIONALIDAD|NATIONALITY)\b"
)


class PassportExtractor:
    """MRZ-first extractor for passport data pages.

    Args:
        mrz_century_pivot: Two-digit year below which MRZ years are 20YY.
    """

    def __init__(self, mrz_century_pivot: int = 30) -> None:
        self.mrz_century_pivot = mrz_century_pivot

    def extract(self, text: str) -> ExtractionResult:
        """Extract passport fields from OCR text.

        Args:
            text: Full-page OCR text.

        Returns:
            Extraction result; ``mrz`` is set when a TD3 MRZ was decoded.
        """
        mrz_lines = find_mrz_lines(text, min_length=36)
        if len(mrz_lines) >= 2:
            result = self.extract_mrz(mrz_lines)
            if result is not None:
                return result
            logger.debug("MRZ-shaped lines found but none decodable as TD3")

        return ExtractionResult(fields=self.extract_text_fields(normalize_text(text)))

    def extract_mrz(self, mrz_lines: list[str]) -> ExtractionResult | None:
        """Decode the first passport TD3 pair among the MRZ lines."""
        for line1, line2 in zip(mrz_lines, mrz_lines[1:]):
            mrz = parse_td3(line1, line2, pivot=self.mrz_century_pivot)
            if mrz is None:
                continue

            fields = ExtractedFields()
            if is_passport_number_format(mrz.document_number):
                fields.set_if_unset("document_number", mrz.document_number)
            fields.set_if_unset("last_names", mrz.surnames or None)
            fields.set_if_unset("first_name", mrz.given_names or None)
            if mrz.birth_date:
                fields.set_if_unset("birth_date", format_field_date(mrz.birth_date))
            if mrz.expiry_date:
                fields.set_if_unset("expiry_date", format_field_date(mrz.expiry_date))
            fields.set_if_unset("gender", mrz.sex)
            nationality = mrz.nationality if len(mrz.nationality) == 3 else None
            fields.set_if_unset(
                "nationality", nationality or mrz.issuing_country or None
            )

            logger.info("Decoded passport MRZ (checksum valid: %s)", mrz.checksum_valid)
            return ExtractionResult(fields=fields, mrz=mrz, method="mrz")
        return None

    def extract_text_fields(self, text: str) -> ExtractedFields:
        """Fallback extraction from the printed data page."""
        fields = ExtractedFields()

        for match in _PASSPORT_NUMBER.finditer(text):
            if is_passport_number_format(match.group(1)):
                fields.set_if_unset("document_number", match.group(1))
                break

        dates = []
        for match in _PASSPORT_DATE.finditer(text):
            day, month, year = (int(g) for g in match.groups())
            if is_plausible_date(day, month, year):
                dates.append((year, month, day))
        dates.sort()
        if dates:
            year, month, day = dates[0]
            fields.set_if_unset("birth_date", format_date(day, month, year))
        if len(dates) >= 2:
            year, month, day = dates[-1]
            fields.set_if_unset("expiry_date", format_date(day, month, year))

        for line in text.splitlines():
            if not _NAME_LINE.match(line) or _HEADER_WORDS.search(line):
                continue
            words = line.split()
            if len(words) >= 2:
                fields.set_if_unset("first_name", words[0])
                fields.set_if_unset("last_names", " ".join(words[1:]))
                break

        fields.set_if_unset("nationality", find_labelled_nationality(text))

        logger.debug("Passport text extraction found: %s", fields.present_fields())
        return fields
