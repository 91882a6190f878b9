"""Noise reduction filters for document photographs.

Provides a light Gaussian blur and a median filter that remove sensor
noise and speckle without dissolving thin character strokes.
"""

import cv2
import numpy as np

from id_ocr.utils.logger import get_logger

logger = get_logger(__name__)


def denoise_gaussian(image: np.ndarray, sigma: float = 0.5) -> np.ndarray:
    """Apply a small Gaussian blur.

    Args:
        image: Input image as a numpy array.
        sigma: Standard deviation of the Gaussian kernel.

    Returns:
        Denoised image.
    """
    result = cv2.GaussianBlur(image, (3, 3), sigma)
    logger.debug("Applied Gaussian denoise with sigma=%.2f", sigma)
    return result


def denoise_median(image: np.ndarray, kernel_size: int = 3) -> np.ndarray:
    """Apply a median filter to remove salt-and-pepper speckle.

    Args:
        image: Input image as a numpy array.
        kernel_size: Aperture size (odd, greater than 1).

    Returns:
        Denoised image.
    """
    result = cv2.medianBlur(image, kernel_size)
    logger.debug("Applied median denoise with kernel_size=%d", kernel_size)
    return result


def denoise(
    image: np.ndarray,
    method: str = "gaussian",
    sigma: float = 0.5,
    kernel_size: int = 3,
) -> np.ndarray:
    """Apply noise reduction using the specified method.

    Args:
        image: Input image as a numpy array.
        method: Denoising method, either ``"gaussian"`` or ``"median"``.
        sigma: Gaussian sigma, used by the gaussian method.
        kernel_size: Median aperture, used by the median method.

    Returns:
        Denoised image.

    Raises:
        ValueError: If an unsupported method is specified.
    """
    if method == "gaussian":
        return denoise_gaussian(image, sigma)
    if method == "median":
        return denoise_median(image, kernel_size)
    raise ValueError(f"Unsupported denoise method: {method}")
