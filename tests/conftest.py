"""Shared test fixtures for the identity document OCR test suite."""

import io
from pathlib import Path

import numpy as np
import pytest
from PIL import Image

from id_ocr.errors import OCREngineError
from id_ocr.ocr.engine import OCREngine, OCREnginePool

# Passport MRZ whose every check digit verifies (number, dates,
# personal number and composite).
PASSPORT_MRZ_LINE1 = "P<ESP<GARCIA<LOPEZ<<JUAN".ljust(44, "<")
PASSPORT_MRZ_LINE2 = "XDA1234565ESP8501019M2901019" + "<" * 15 + "4"


class FakeOCREngine(OCREngine):
    """OCR engine returning canned text and recording its calls."""

    def __init__(
        self,
        text: str = "",
        region_text: str = "",
        confidence: float = 0.9,
        error: Exception | None = None,
        region_error: Exception | None = None,
    ) -> None:
        self.text = text
        self.region_text = region_text
        self.confidence = confidence
        self.error = error
        self.region_error = region_error
        self.calls: list[tuple[str, tuple[int, ...], int | None]] = []

    def extract_text(self, image: np.ndarray, psm: int | None = None) -> str:
        self.calls.append(("extract_text", image.shape, psm))
        if self.region_error is not None:
            raise self.region_error
        return self.region_text

    def extract_text_with_confidence(
        self, image: np.ndarray, psm: int | None = None
    ) -> tuple[str, float]:
        self.calls.append(("extract_text_with_confidence", image.shape, psm))
        if self.error is not None:
            raise self.error
        return self.text, self.confidence if self.text else 0.0


def make_png_bytes(image: np.ndarray) -> bytes:
    """Encode an RGB or grayscale array as PNG bytes."""
    buffer = io.BytesIO()
    Image.fromarray(image).save(buffer, format="PNG")
    return buffer.getvalue()


def unavailable_engine_error() -> OCREngineError:
    return OCREngineError("Tesseract executable not found")


@pytest.fixture
def fake_engine() -> FakeOCREngine:
    return FakeOCREngine()


@pytest.fixture
def fake_pool(fake_engine: FakeOCREngine) -> OCREnginePool:
    """Single-engine pool around ``fake_engine``."""
    return OCREnginePool([fake_engine])


@pytest.fixture
def sample_image() -> np.ndarray:
    """Create a simple synthetic grayscale test image."""
    image = np.zeros((200, 300), dtype=np.uint8)
    image[50:150, 50:250] = 255
    return image


@pytest.fixture
def sample_color_image() -> np.ndarray:
    """Create a simple synthetic RGB test image."""
    image = np.zeros((200, 300, 3), dtype=np.uint8)
    image[50:150, 50:250] = (255, 255, 255)
    return image


@pytest.fixture
def card_png() -> bytes:
    """Blank white image with the aspect ratio of an ID card (1.6)."""
    return make_png_bytes(np.full((300, 480, 3), 255, dtype=np.uint8))


@pytest.fixture
def dark_png() -> bytes:
    """All-dark, featureless square image."""
    return make_png_bytes(np.zeros((200, 200, 3), dtype=np.uint8))


@pytest.fixture
def project_root() -> Path:
    """Return the project root directory."""
    return Path(__file__).parent.parent


@pytest.fixture
def config_dir(project_root: Path) -> Path:
    """Return the configs directory path."""
    return project_root / "configs"
