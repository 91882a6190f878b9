"""Tesseract OCR engine wrapper for identity documents.

Restricts recognition to the characters that appear on Spanish identity
documents and MRZ lines, bounds every call with a timeout, and maps
pytesseract failures onto ``OCREngineError``.
"""

from collections.abc import Callable
from typing import Any

import numpy as np
import pytesseract
from PIL import Image
from pytesseract import TesseractError, TesseractNotFoundError

from id_ocr.errors import OCREngineError, PipelineState
from id_ocr.utils.config import OCRConfig
from id_ocr.utils.logger import get_logger

from .engine import OCREngine, OCREnginePool

logger = get_logger(__name__)


class TesseractEngine(OCREngine):
    """Tesseract-backed implementation of ``OCREngine``.

    Args:
        config: OCR configuration. Defaults to ``OCRConfig()``.
    """

    def __init__(self, config: OCRConfig | None = None) -> None:
        self.config = config or OCRConfig()
        if self.config.tesseract_cmd:
            pytesseract.pytesseract.tesseract_cmd = self.config.tesseract_cmd

    def build_config(self, psm: int | None = None) -> str:
        """Build the Tesseract command-line configuration string.

        Args:
            psm: Page segmentation mode. Defaults to the configured mode.

        Returns:
            Configuration string passed to pytesseract.
        """
        psm = self.config.psm if psm is None else psm
        parts = [f"--psm {psm}", f"--oem {self.config.oem}"]
        if self.config.char_whitelist:
            parts.append(f"-c tessedit_char_whitelist={self.config.char_whitelist}")
        return " ".join(parts)

    def _run(
        self,
        func: Callable[..., Any],
        image: np.ndarray,
        psm: int | None,
        **kwargs: Any,
    ) -> Any:
        try:
            return func(
                Image.fromarray(image),
                lang=self.config.lang,
                config=self.build_config(psm),
                timeout=self.config.timeout_seconds,
                **kwargs,
            )
        except TesseractNotFoundError as exc:
            raise OCREngineError(
                "Tesseract executable not found",
                stage=PipelineState.CLASSIFIED,
                original_error=exc,
            ) from exc
        except TesseractError as exc:
            raise OCREngineError(
                f"Tesseract failed: {exc}",
                stage=PipelineState.CLASSIFIED,
                original_error=exc,
            ) from exc
        except RuntimeError as exc:
            # pytesseract reports a killed process as a bare RuntimeError.
            if "timeout" not in str(exc).lower():
                raise
            raise OCREngineError(
                f"OCR timed out after {self.config.timeout_seconds}s",
                stage=PipelineState.CLASSIFIED,
                original_error=exc,
            ) from exc

    def extract_text(self, image: np.ndarray, psm: int | None = None) -> str:
        """Recognize the text in an image.

        Args:
            image: Single-channel or RGB image.
            psm: Page segmentation mode override.

        Returns:
            Recognized text, stripped; ``""`` when nothing was recognized.

        Raises:
            OCREngineError: If Tesseract is missing, fails or times out.
        """
        text = (self._run(pytesseract.image_to_string, image, psm) or "").strip()
        if not text:
            logger.debug("OCR returned no text")
        return text

    def extract_text_with_confidence(
        self, image: np.ndarray, psm: int | None = None
    ) -> tuple[str, float]:
        """Recognize text and compute the mean word confidence.

        Args:
            image: Single-channel or RGB image.
            psm: Page segmentation mode override.

        Returns:
            Tuple of (text, confidence) with confidence in ``[0, 1]``.

        Raises:
            OCREngineError: If Tesseract is missing, fails or times out.
        """
        text = self.extract_text(image, psm)
        if not text:
            return "", 0.0

        data = self._run(
            pytesseract.image_to_data,
            image,
            psm,
            output_type=pytesseract.Output.DICT,
        )

        total_conf = 0.0
        word_count = 0
        for word, conf in zip(data["text"], data["conf"]):
            conf = float(conf)
            if conf > 0 and str(word).strip():
                total_conf += conf
                word_count += 1

        avg_conf = (total_conf / word_count / 100.0) if word_count > 0 else 0.0
        logger.info(
            "OCR extracted %d words with average confidence %.2f",
            word_count,
            avg_conf,
        )
        return text, min(max(avg_conf, 0.0), 1.0)


def create_engine_pool(config: OCRConfig | None = None) -> OCREnginePool:
    """Build a pool of ``config.pool_size`` Tesseract engines."""
    config = config or OCRConfig()
    return OCREnginePool(TesseractEngine(config) for _ in range(config.pool_size))
