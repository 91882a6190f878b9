"""Document type and family enumerations.

``DocumentType`` is the closed set of documents the pipeline reads and
selects both the extraction strategy and the MRZ layout.
"""

from enum import StrEnum

from id_ocr.errors import PipelineState, UnsupportedDocumentType


class DocumentFamily(StrEnum):
    """Extraction strategy families."""

    SPANISH_ID = "spanish_id"
    PASSPORT = "passport"
    OTHER = "other"


class DocumentType(StrEnum):
    """Closed set of document types the pipeline understands."""

    DNI_FRONT = "DNI_FRONT"
    DNI_BACK = "DNI_BACK"
    NIE_FRONT = "NIE_FRONT"
    NIE_BACK = "NIE_BACK"
    PASSPORT = "PASSPORT"
    OTHER = "OTHER"

    @property
    def family(self) -> DocumentFamily:
        if self is DocumentType.PASSPORT:
            return DocumentFamily.PASSPORT
        if self is DocumentType.OTHER:
            return DocumentFamily.OTHER
        return DocumentFamily.SPANISH_ID

    @property
    def is_back(self) -> bool:
        return self in (DocumentType.DNI_BACK, DocumentType.NIE_BACK)

    @property
    def is_nie(self) -> bool:
        return self in (DocumentType.NIE_FRONT, DocumentType.NIE_BACK)

    def with_side(self, back: bool) -> "DocumentType":
        """Return the same card type for the requested side."""
        if self.family is not DocumentFamily.SPANISH_ID:
            return self
        if self.is_nie:
            return DocumentType.NIE_BACK if back else DocumentType.NIE_FRONT
        return DocumentType.DNI_BACK if back else DocumentType.DNI_FRONT

    @classmethod
    def from_hint(cls, hint: str, side: str | None = None) -> "DocumentType":
        """Resolve a caller-supplied type hint.

        Args:
            hint: Case-insensitive type name or synonym (``NIF``, ``DNI``,
                ``NIE_BACK``, ``PASAPORTE``...).
            side: Optional ``"front"`` or ``"back"`` forcing the card side.

        Returns:
            The resolved document type.

        Raises:
            UnsupportedDocumentType: If the hint names no known type.
        """
        key = hint.strip().upper().replace("-", "_").replace(" ", "_")
        try:
            document_type = _HINT_SYNONYMS[key]
        except KeyError:
            raise UnsupportedDocumentType(
                f"Unknown document type hint: {hint!r}",
                stage=PipelineState.PREPROCESSED,
                field="document_type_hint",
            ) from None

        back = parse_side(side)
        if back is not None:
            document_type = document_type.with_side(back)
        return document_type


def parse_side(side: str | None) -> bool | None:
    """Interpret a side hint.

    Returns:
        True for ``"back"``, False for ``"front"``, ``None`` when absent.

    Raises:
        UnsupportedDocumentType: For any other value.
    """
    if side is None:
        return None
    side_key = side.strip().lower()
    if side_key not in ("front", "back"):
        raise UnsupportedDocumentType(
            f"Unknown document side: {side!r}",
            stage=PipelineState.PREPROCESSED,
            field="side_hint",
        )
    return side_key == "back"


_HINT_SYNONYMS: dict[str, DocumentType] = {
    "DNI": DocumentType.DNI_FRONT,
    "NIF": DocumentType.DNI_FRONT,
    "DNI_FRONT": DocumentType.DNI_FRONT,
    "DNI_BACK": DocumentType.DNI_BACK,
    "NIE": DocumentType.NIE_FRONT,
    "NIE_FRONT": DocumentType.NIE_FRONT,
    "NIE_BACK": DocumentType.NIE_BACK,
    "PAS": DocumentType.PASSPORT,
    "PASSPORT": DocumentType.PASSPORT,
    "PASAPORTE": DocumentType.PASSPORT,
    "OTHER": DocumentType.OTHER,
    "OTRO": DocumentType.OTHER,
}

