"""Decoding of uploaded document images.

Turns raw upload bytes (or a base64 data URL) into a ``DocumentImage``
while enforcing the configured MIME and size limits.
"""

import base64
import binascii
import io
from dataclasses import dataclass, field

import numpy as np
from PIL import Image, ImageOps

from id_ocr.errors import ImageDecodeError, ImageTooLargeError, PipelineState
from id_ocr.utils.config import LimitsConfig
from id_ocr.utils.logger import get_logger

logger = get_logger(__name__)

_BYTES_PER_MB = 1_048_576


@dataclass(frozen=True)
class DocumentImage:
    """An uploaded document photograph, decoded once.

    Attributes:
        data: Raw encoded bytes as received.
        mime_type: Declared MIME type.
        width: Decoded width in pixels.
        height: Decoded height in pixels.
        pixels: RGB pixel array of shape ``(height, width, 3)``.
    """

    data: bytes = field(repr=False)
    mime_type: str
    width: int
    height: int
    pixels: np.ndarray = field(repr=False, compare=False)

    @property
    def aspect_ratio(self) -> float:
        return self.width / self.height if self.height else 0.0


def estimated_size_mb(width: int, height: int) -> float:
    """Estimate the decoded RGB size of an image in megabytes."""
    return width * height * 3 / _BYTES_PER_MB


def load_document_image(
    data: bytes,
    mime_type: str = "application/octet-stream",
    limits: LimitsConfig | None = None,
) -> DocumentImage:
    """Decode raw upload bytes into a ``DocumentImage``.

    Args:
        data: Encoded image bytes (PNG, JPEG, TIFF, WebP, BMP).
        mime_type: MIME type declared by the caller.
        limits: Upload limits. Defaults to ``LimitsConfig()``.

    Returns:
        The decoded document image.

    Raises:
        ImageDecodeError: If the MIME type is not allowed or the bytes
            cannot be decoded.
        ImageTooLargeError: If the upload or the decoded image exceeds
            the configured budget.
    """
    limits = limits or LimitsConfig()
    mime_type = (mime_type or "application/octet-stream").lower()

    if mime_type not in limits.allowed_mime_types:
        raise ImageDecodeError(
            f"Unsupported MIME type: {mime_type}",
            stage=PipelineState.RECEIVED,
            field="mime_type",
        )
    if not data:
        raise ImageDecodeError(
            "Empty image payload", stage=PipelineState.RECEIVED, field="image_bytes"
        )
    if len(data) > limits.max_upload_bytes:
        raise ImageTooLargeError(
            f"Upload of {len(data)} bytes exceeds limit of "
            f"{limits.max_upload_bytes} bytes",
            stage=PipelineState.RECEIVED,
            field="image_bytes",
        )

    try:
        with Image.open(io.BytesIO(data)) as img:
            width, height = img.size
            size_mb = estimated_size_mb(width, height)
            if size_mb > limits.max_decoded_mb:
                raise ImageTooLargeError(
                    f"Image too large: {size_mb:.1f}MB. "
                    f"Maximum allowed: {limits.max_decoded_mb:.1f}MB",
                    stage=PipelineState.RECEIVED,
                    field="image_bytes",
                )
            img.load()
            rgb = ImageOps.exif_transpose(img).convert("RGB")
    except Image.DecompressionBombError as exc:
        raise ImageTooLargeError(
            str(exc),
            stage=PipelineState.RECEIVED,
            field="image_bytes",
            original_error=exc,
        ) from exc
    except (OSError, ValueError) as exc:
        raise ImageDecodeError(
            f"Failed to decode image: {exc}",
            stage=PipelineState.RECEIVED,
            field="image_bytes",
            original_error=exc,
        ) from exc

    pixels = np.asarray(rgb, dtype=np.uint8)
    logger.debug(
        "Decoded %s image %dx%d (%d bytes)", mime_type, rgb.width, rgb.height, len(data)
    )
    return DocumentImage(
        data=data,
        mime_type=mime_type,
        width=rgb.width,
        height=rgb.height,
        pixels=pixels,
    )


def decode_base64_image(payload: str) -> tuple[bytes, str | None]:
    """Decode a base64 string or ``data:`` URL into raw image bytes.

    Args:
        payload: Plain base64 text, or a data URL such as
            ``data:image/png;base64,iVBOR...``.

    Returns:
        Tuple of (image_bytes, mime_type). The MIME type is ``None``
        unless the payload was a data URL that declared one.

    Raises:
        ImageDecodeError: If the payload is not valid base64.
    """
    mime_type: str | None = None
    encoded = payload.strip()
    if encoded.startswith("data:"):
        header, _, encoded = encoded.partition(",")
        declared = header[len("data:") :].split(";", 1)[0]
        mime_type = declared or None

    try:
        return base64.b64decode(encoded, validate=True), mime_type
    except (binascii.Error, ValueError) as exc:
        raise ImageDecodeError(
            "Invalid base64 image payload",
            stage=PipelineState.RECEIVED,
            field="image_bytes",
            original_error=exc,
        ) from exc
