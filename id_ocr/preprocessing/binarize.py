"""Contrast stretching, binarization and morphological cleanup.

Otsu's threshold is computed from the grayscale histogram and applied
with OpenCV; adaptive mean thresholding handles uneven lighting on
phone photographs.
"""

import cv2
import numpy as np

from id_ocr.utils.logger import get_logger

logger = get_logger(__name__)


def to_gray(image: np.ndarray) -> np.ndarray:
    """Convert an RGB image to grayscale, passing grayscale through.

    Args:
        image: Input image (RGB or grayscale).

    Returns:
        Grayscale image.
    """
    if len(image.shape) == 3:
        return cv2.cvtColor(image, cv2.COLOR_RGB2GRAY)
    return image


def stretch_contrast(gray: np.ndarray) -> np.ndarray:
    """Linearly stretch intensities so the darkest pixel is 0 and the brightest 255.

    Uniform images are returned unchanged.

    Args:
        gray: Grayscale image.

    Returns:
        Contrast-stretched grayscale image.
    """
    low = int(gray.min())
    high = int(gray.max())
    if high == low:
        return gray
    stretched = (gray.astype(np.float32) - low) * 255.0 / (high - low)
    return stretched.astype(np.uint8)


def compute_histogram(gray: np.ndarray) -> np.ndarray:
    """Return the 256-bin intensity histogram of a grayscale image."""
    return np.bincount(gray.ravel(), minlength=256)


def otsu_threshold(histogram: np.ndarray) -> int:
    """Compute Otsu's threshold from an intensity histogram.

    Picks the level that maximizes between-class variance. Ties resolve
    to the lowest level.

    Args:
        histogram: 256-bin intensity histogram.

    Returns:
        Threshold in ``[0, 255]``; pixels strictly above it are foreground.
        ``0`` for an empty or single-level histogram.
    """
    hist = np.asarray(histogram, dtype=np.float64)
    total = hist.sum()
    if total == 0:
        return 0

    levels = np.arange(hist.size, dtype=np.float64)
    weight_bg = np.cumsum(hist)
    weight_fg = total - weight_bg
    sum_bg = np.cumsum(hist * levels)
    sum_total = sum_bg[-1]

    valid = (weight_bg > 0) & (weight_fg > 0)
    if not valid.any():
        return 0

    mean_bg = np.divide(sum_bg, weight_bg, out=np.zeros_like(hist), where=valid)
    mean_fg = np.divide(
        sum_total - sum_bg, weight_fg, out=np.zeros_like(hist), where=valid
    )
    variance = np.where(valid, weight_bg * weight_fg * (mean_bg - mean_fg) ** 2, 0.0)
    return int(np.argmax(variance))


def binarize_otsu(image: np.ndarray) -> tuple[np.ndarray, int]:
    """Binarize an image using Otsu's automatic thresholding.

    Args:
        image: Input image (RGB or grayscale).

    Returns:
        Tuple of (binary_image, threshold) with pixel values 0 or 255.
    """
    gray = to_gray(image)
    threshold = otsu_threshold(compute_histogram(gray))
    _, binary = cv2.threshold(gray, threshold, 255, cv2.THRESH_BINARY)
    logger.debug("Applied Otsu binarization at level %d", threshold)
    return binary, threshold


def binarize_adaptive(
    image: np.ndarray, block_size: int = 15, c: int = 5
) -> np.ndarray:
    """Binarize an image using adaptive mean thresholding.

    Args:
        image: Input image (RGB or grayscale).
        block_size: Size of the pixel neighborhood (odd).
        c: Constant subtracted from the local mean.

    Returns:
        Binary image with pixel values 0 or 255.
    """
    gray = to_gray(image)
    result = cv2.adaptiveThreshold(
        gray,
        255,
        cv2.ADAPTIVE_THRESH_MEAN_C,
        cv2.THRESH_BINARY,
        block_size,
        c,
    )
    logger.debug("Applied adaptive binarization (block=%d, c=%d)", block_size, c)
    return result


def morphological_cleanup(binary: np.ndarray) -> np.ndarray:
    """Remove isolated specks and fill pinholes with an open then close pass.

    Args:
        binary: Binary image.

    Returns:
        Cleaned binary image.
    """
    kernel = cv2.getStructuringElement(cv2.MORPH_RECT, (3, 3))
    opened = cv2.morphologyEx(binary, cv2.MORPH_OPEN, kernel)
    return cv2.morphologyEx(opened, cv2.MORPH_CLOSE, kernel)
