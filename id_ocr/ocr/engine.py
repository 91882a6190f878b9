"""OCR engine contract and the bounded engine pool.

Engines are stateful handles owned by the caller. A pipeline run borrows
one engine from the pool for its whole duration and always returns it.
"""

import queue
from abc import ABC, abstractmethod
from collections.abc import Iterable, Iterator
from contextlib import contextmanager

import numpy as np

from id_ocr.errors import OCREngineError, PipelineState
from id_ocr.utils.logger import get_logger

logger = get_logger(__name__)


class OCREngine(ABC):
    """Interface for text recognition engines."""

    @abstractmethod
    def extract_text(self, image: np.ndarray, psm: int | None = None) -> str:
        """Recognize the text in an image.

        Args:
            image: Single-channel or RGB image.
            psm: Page segmentation mode override.

        Returns:
            Recognized text; ``""`` when nothing was recognized.

        Raises:
            OCREngineError: If the engine is unavailable or times out.
        """

    @abstractmethod
    def extract_text_with_confidence(
        self, image: np.ndarray, psm: int | None = None
    ) -> tuple[str, float]:
        """Recognize text and report the mean word confidence in ``[0, 1]``.

        Raises:
            OCREngineError: If the engine is unavailable or times out.
        """


class OCREnginePool:
    """Bounded pool handing out exclusive OCR engines.

    Args:
        engines: Engine instances to pool. The pool size is their count.
    """

    def __init__(self, engines: Iterable[OCREngine]) -> None:
        self._queue: queue.Queue[OCREngine] = queue.Queue()
        for engine in engines:
            self._queue.put(engine)
        self.size = self._queue.qsize()
        if self.size == 0:
            raise ValueError("OCR engine pool needs at least one engine")
        logger.debug("OCR engine pool created with %d engines", self.size)

    @property
    def available(self) -> int:
        """Number of engines currently idle."""
        return self._queue.qsize()

    @contextmanager
    def acquire(self, timeout: float | None = None) -> Iterator[OCREngine]:
        """Borrow an engine for the duration of a ``with`` block.

        Args:
            timeout: Seconds to wait for a free engine. ``None`` waits
                indefinitely.

        Yields:
            An engine used by no other caller until the block exits.

        Raises:
            OCREngineError: If no engine frees up within ``timeout``.
        """
        try:
            engine = self._queue.get(timeout=timeout)
        except queue.Empty as exc:
            raise OCREngineError(
                f"No OCR engine available within {timeout}s",
                stage=PipelineState.CLASSIFIED,
                original_error=exc,
            ) from exc
        try:
            yield engine
        finally:
            self._queue.put(engine)
