"""Pydantic request/response schemas for the validation pipeline.

These are the serializable records exchanged with the transport layer.
"""

from pydantic import BaseModel, Field

from id_ocr.errors import DocumentOCRError
from id_ocr.preprocessing.image_io import decode_base64_image


class ValidationRequest(BaseModel):
    """One document photograph to validate."""

    image_bytes: bytes
    mime_type: str = "application/octet-stream"
    document_type_hint: str | None = None
    side_hint: str | None = None

    @classmethod
    def from_base64(
        cls,
        payload: str,
        mime_type: str | None = None,
        document_type_hint: str | None = None,
        side_hint: str | None = None,
    ) -> "ValidationRequest":
        """Build a request from base64 text or a ``data:`` URL.

        Args:
            payload: Base64 image data, optionally as a data URL.
            mime_type: MIME type; defaults to the one declared in the
                data URL, else ``application/octet-stream``.
            document_type_hint: Optional document type hint.
            side_hint: Optional ``"front"``/``"back"`` hint.

        Raises:
            ImageDecodeError: If the payload is not valid base64.
        """
        image_bytes, declared = decode_base64_image(payload)
        return cls(
            image_bytes=image_bytes,
            mime_type=mime_type or declared or "application/octet-stream",
            document_type_hint=document_type_hint,
            side_hint=side_hint,
        )


class ValidationResultModel(BaseModel):
    """Format, checksum and confidence verdict."""

    format_valid: bool
    checksum_valid: bool
    confidence: float = Field(ge=0.0, le=1.0)


class DocumentData(BaseModel):
    """Identity fields recovered from the document."""

    document_number: str | None = None
    first_name: str | None = None
    last_names: str | None = None
    birth_date: str | None = None
    expiry_date: str | None = None
    issue_date: str | None = None
    gender: str | None = None
    nationality: str | None = None
    address: str | None = None
    postal_code: str | None = None
    province: str | None = None
    municipality: str | None = None
    support_number: str | None = None
    can_number: str | None = None
    validation: ValidationResultModel
    confidence_score: float = Field(ge=0.0, le=1.0)
    field_scores: dict[str, float] = Field(default_factory=dict)


class ValidationResponse(BaseModel):
    """Final record returned for one validation request."""

    success: bool
    document_type: str
    data: DocumentData | None = None
    error: str | None = None
    error_kind: str | None = None
    confidence_score: float = 0.0
    detected_fields: list[str] = Field(default_factory=list)
    processing_time_ms: int = 0
    ocr_confidence: float | None = None
    pipeline_state: str | None = None

    @classmethod
    def from_error(
        cls,
        error: DocumentOCRError,
        processing_time_ms: float = 0.0,
        document_type: str = "OTHER",
    ) -> "ValidationResponse":
        """Build a failed response from a fatal pipeline error."""
        return cls(
            success=False,
            document_type=document_type,
            error=error.message,
            error_kind=error.kind.value,
            processing_time_ms=round(processing_time_ms),
            pipeline_state=error.stage.value if error.stage else None,
        )
