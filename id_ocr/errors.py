"""Error taxonomy for the identity document OCR core.

Only unrecoverable input raises. Low confidence and checksum mismatches
are reported as data on the pipeline result, never as exceptions.
"""

from enum import StrEnum


class PipelineState(StrEnum):
    """Sequential states of one validation pipeline run."""

    RECEIVED = "received"
    PREPROCESSED = "preprocessed"
    CLASSIFIED = "classified"
    TEXT_EXTRACTED = "text_extracted"
    FIELDS_EXTRACTED = "fields_extracted"
    CHECKSUM_CHECKED = "checksum_checked"
    SCORED = "scored"
    ACCEPTED = "accepted"
    LOW_CONFIDENCE_REJECTED = "low_confidence_rejected"


class ErrorKind(StrEnum):
    """Closed set of fatal error kinds."""

    IMAGE_DECODE = "image_decode"
    IMAGE_TOO_LARGE = "image_too_large"
    OCR_ENGINE = "ocr_engine"
    UNSUPPORTED_DOCUMENT_TYPE = "unsupported_document_type"


class DocumentOCRError(Exception):
    """Base class for fatal errors that abort a validation request.

    Args:
        message: Human-readable description.
        stage: Pipeline state at which the failure surfaced.
        field: Offending input field, if any.
        original_error: Underlying exception from a third-party library.
    """

    kind: ErrorKind

    def __init__(
        self,
        message: str,
        stage: PipelineState | None = None,
        field: str | None = None,
        original_error: Exception | None = None,
    ) -> None:
        self.message = message
        self.stage = stage
        self.field = field
        self.original_error = original_error
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        msg = f"{self.kind.value}: {self.message}"
        if self.stage:
            msg += f" (stage: {self.stage.value})"
        if self.field:
            msg += f" (field: {self.field})"
        return msg

    def to_dict(self) -> dict[str, str | None]:
        """Return the structured error context as a plain dictionary."""
        return {
            "kind": self.kind.value,
            "message": self.message,
            "stage": self.stage.value if self.stage else None,
            "field": self.field,
        }


class ImageDecodeError(DocumentOCRError):
    """Raised when image bytes are malformed or undecodable."""

    kind = ErrorKind.IMAGE_DECODE


class ImageTooLargeError(DocumentOCRError):
    """Raised when an upload exceeds the configured size budget."""

    kind = ErrorKind.IMAGE_TOO_LARGE


class OCREngineError(DocumentOCRError):
    """Raised when the OCR engine is unavailable or times out."""

    kind = ErrorKind.OCR_ENGINE


class UnsupportedDocumentType(DocumentOCRError):
    """Raised when a document type hint resolves to no known family."""

    kind = ErrorKind.UNSUPPORTED_DOCUMENT_TYPE
