"""Document type classification.

An explicit caller hint always wins. Otherwise the classifier looks at
the page geometry (aspect ratio and the dark-run signature of an MRZ band)
and, for Spanish identity cards, refines the guess from the OCR text.
"""

import numpy as np

from id_ocr.extraction.mrz import find_mrz_lines
from id_ocr.extraction.spanish_id import find_document_numbers
from id_ocr.preprocessing.pipeline import ProcessedImage
from id_ocr.utils.config import ClassifierConfig
from id_ocr.utils.logger import get_logger
from id_ocr.validation.checksum import validate_dni, validate_nie

from .document_type import DocumentFamily, DocumentType, parse_side

logger = get_logger(__name__)

BACK_SIDE_INDICATORS = (
    "domicilio",
    "dirección",
    "address",
    "municipio",
    "provincia",
    "idesp",
    "mrz",
    "<<<",
    "lugar de nacimiento",
)

# A TD3 line is 44 characters; OCR often drops a few trailing fillers.
TD3_MIN_LENGTH = 40


def _longest_dark_run(row: np.ndarray, dark_level: int) -> int:
    dark = np.concatenate(([0], (row < dark_level).astype(np.int8), [0]))
    edges = np.flatnonzero(np.diff(dark))
    if edges.size == 0:
        return 0
    return int((edges[1::2] - edges[::2]).max())


def is_back_side_text(text: str) -> bool:
    """Check OCR text for content printed only on the back of a card."""
    lowered = text.lower()
    return any(indicator in lowered for indicator in BACK_SIDE_INDICATORS)


def has_passport_mrz(text: str) -> bool:
    """Check OCR text for the first line of a TD3 passport MRZ."""
    lines = find_mrz_lines(text, min_length=TD3_MIN_LENGTH)
    return any(line.startswith("P<") for line in lines)


class DocumentClassifier:
    """Geometric and textual document type classifier.

    Args:
        config: Aspect ratio bands and MRZ band signature.
    """

    def __init__(self, config: ClassifierConfig | None = None) -> None:
        self.config = config or ClassifierConfig()

    def has_mrz_band(self, image: ProcessedImage) -> bool:
        """Detect the dense dark rows an MRZ leaves in the bottom band.

        Args:
            image: Preprocessed single-channel image.

        Returns:
            True when enough rows in the bottom band contain a long run
            of consecutive dark pixels.
        """
        cfg = self.config
        band_start = int(image.height * (1.0 - cfg.mrz_band_fraction))
        rows = 0
        for row in image.pixels[band_start:]:
            if _longest_dark_run(row, cfg.dark_level) >= cfg.mrz_min_run_length:
                rows += 1
                if rows >= cfg.mrz_min_rows:
                    return True
        return False

    def classify(
        self,
        image: ProcessedImage,
        hint: str | None = None,
        side: str | None = None,
    ) -> DocumentType:
        """Classify a preprocessed document image.

        Args:
            image: Preprocessed single-channel image.
            hint: Optional caller-supplied type hint, which always wins.
            side: Optional ``"front"``/``"back"`` side hint.

        Returns:
            The document type. Spanish cards default to ``DNI_FRONT``
            (or ``DNI_BACK`` with a back side hint).

        Raises:
            UnsupportedDocumentType: If the hint is not recognized.
        """
        if hint:
            document_type = DocumentType.from_hint(hint, side)
            logger.debug("Document type from hint %r: %s", hint, document_type)
            return document_type

        cfg = self.config
        ratio = image.aspect_ratio

        in_passport_band = cfg.passport_ratio_min <= ratio <= cfg.passport_ratio_max
        if in_passport_band and self.has_mrz_band(image):
            document_type = DocumentType.PASSPORT
        elif cfg.id_card_ratio_min <= ratio <= cfg.id_card_ratio_max:
            document_type = DocumentType.DNI_FRONT.with_side(bool(parse_side(side)))
        else:
            document_type = DocumentType.OTHER

        logger.info(
            "Classified document as %s (aspect ratio %.2f)", document_type, ratio
        )
        return document_type

    def refine(
        self, document_type: DocumentType, text: str, side_known: bool = False
    ) -> DocumentType:
        """Refine a geometric Spanish-card guess from the full-page text.

        A passport MRZ in the text overrides the guess with ``PASSPORT``.
        Back-side content selects the back variant unless the side was
        given. An NIE is chosen only when the text holds a valid NIE
        number and no valid DNI number; otherwise the card stays a DNI.

        Args:
            document_type: Type chosen by ``classify``.
            text: Full-page OCR text.
            side_known: Whether the caller fixed the side.

        Returns:
            The refined document type.
        """
        if document_type.family is not DocumentFamily.SPANISH_ID:
            return document_type

        if has_passport_mrz(text):
            logger.debug("Passport MRZ in text, refining %s -> PASSPORT", document_type)
            return DocumentType.PASSPORT

        back = document_type.is_back
        if not side_known and is_back_side_text(text):
            back = True

        numbers = find_document_numbers(text)
        has_nie = any(validate_nie(n) for n in numbers)
        has_dni = any(validate_dni(n) for n in numbers)

        if has_nie and not has_dni:
            refined = DocumentType.NIE_FRONT.with_side(back)
        else:
            refined = DocumentType.DNI_FRONT.with_side(back)
        if refined is not document_type:
            logger.debug("Refined document type %s -> %s", document_type, refined)
        return refined
