"""Deskew correction for photographed identity documents.

Detects rotational skew with a Sobel edge map and a Hough line transform,
then rotates the image back to upright with a white fill.
"""

from collections.abc import Iterable

import cv2
import numpy as np

from id_ocr.utils.logger import get_logger

logger = get_logger(__name__)

# Sobel magnitude above which a pixel counts as an edge.
_EDGE_MAGNITUDE = 128.0


def _to_gray(image: np.ndarray) -> np.ndarray:
    if len(image.shape) == 3:
        return cv2.cvtColor(image, cv2.COLOR_RGB2GRAY)
    return image


def sobel_edges(gray: np.ndarray) -> np.ndarray:
    """Build a binary edge map from Sobel gradient magnitudes.

    Args:
        gray: Grayscale image.

    Returns:
        Binary ``uint8`` image with edges at 255.
    """
    grad_x = cv2.Sobel(gray, cv2.CV_32F, 1, 0, ksize=3)
    grad_y = cv2.Sobel(gray, cv2.CV_32F, 0, 1, ksize=3)
    magnitude = cv2.magnitude(grad_x, grad_y)
    return np.where(magnitude > _EDGE_MAGNITUDE, 255, 0).astype(np.uint8)


def _suppress_neighbours(
    lines: Iterable[tuple[float, float]], radius: int
) -> list[tuple[float, float]]:
    """Drop lines within ``radius`` (pixels of rho, degrees of theta) of a stronger one.

    OpenCV returns Hough lines ordered by accumulator votes, so the first
    line of a cluster is kept.
    """
    kept: list[tuple[float, float]] = []
    for rho, theta in lines:
        deg = np.degrees(theta)
        if all(
            abs(rho - k_rho) > radius or abs(deg - np.degrees(k_theta)) > radius
            for k_rho, k_theta in kept
        ):
            kept.append((rho, theta))
    return kept


def skew_from_line_angles(angles_deg: Iterable[float], max_skew: float = 15.0) -> float:
    """Average the skew of near-horizontal lines and clamp the result.

    Args:
        angles_deg: Hough normal angles in degrees, where 90 is a
            perfectly horizontal line.
        max_skew: Clamp bound in degrees.

    Returns:
        Mean deviation from horizontal, clamped to ``[-max_skew, max_skew]``.
        ``0.0`` when no line lies within 45 degrees of horizontal.
    """
    skews = [deg - 90.0 for deg in angles_deg if 45.0 < deg < 135.0]
    if not skews:
        return 0.0
    mean_skew = sum(skews) / len(skews)
    return float(min(max(mean_skew, -max_skew), max_skew))


def detect_skew_angle(
    image: np.ndarray,
    vote_threshold: int = 120,
    suppression_radius: int = 10,
    max_skew: float = 15.0,
) -> float:
    """Detect the skew angle of a document image.

    Args:
        image: Input image as a numpy array (RGB or grayscale).
        vote_threshold: Minimum Hough accumulator votes for a line.
        suppression_radius: Neighbourhood within which weaker lines are
            discarded.
        max_skew: Clamp bound in degrees.

    Returns:
        Estimated skew in degrees; positive means the text runs
        downwards to the right.
    """
    edges = sobel_edges(_to_gray(image))
    lines = cv2.HoughLines(edges, 1, np.pi / 180, vote_threshold)

    if lines is None:
        logger.debug("No lines detected for skew estimation")
        return 0.0

    polar = _suppress_neighbours(
        ((float(rho), float(theta)) for rho, theta in lines[:, 0]), suppression_radius
    )
    angle = skew_from_line_angles((np.degrees(theta) for _, theta in polar), max_skew)
    logger.debug("Detected skew angle: %.2f degrees from %d lines", angle, len(polar))
    return angle


def rotate_image(image: np.ndarray, clockwise_degrees: float) -> np.ndarray:
    """Rotate an image about its centre, filling exposed borders with white.

    Args:
        image: Input image (RGB or grayscale).
        clockwise_degrees: Visual clockwise rotation in degrees.

    Returns:
        Rotated image with the same shape and dtype as the input.
    """
    h, w = image.shape[:2]
    center = (w / 2.0, h / 2.0)
    # OpenCV treats positive angles as counter-clockwise.
    rotation_matrix = cv2.getRotationMatrix2D(center, -clockwise_degrees, 1.0)
    fill = (255, 255, 255) if len(image.shape) == 3 else 255
    return cv2.warpAffine(
        image,
        rotation_matrix,
        (w, h),
        flags=cv2.INTER_LINEAR,
        borderMode=cv2.BORDER_CONSTANT,
        borderValue=fill,
    )


def deskew(
    image: np.ndarray,
    min_correction: float = 1.0,
    vote_threshold: int = 120,
    suppression_radius: int = 10,
    max_skew: float = 15.0,
) -> tuple[np.ndarray, float]:
    """Correct rotational skew in a document image.

    Args:
        image: Input image as a numpy array (RGB or grayscale).
        min_correction: Skew magnitude (degrees) required to rotate.
        vote_threshold: Minimum Hough accumulator votes for a line.
        suppression_radius: Hough neighbourhood suppression radius.
        max_skew: Clamp bound in degrees.

    Returns:
        Tuple of (deskewed_image, detected_skew).
    """
    angle = detect_skew_angle(image, vote_threshold, suppression_radius, max_skew)

    if abs(angle) <= min_correction:
        logger.debug("Skew angle below threshold, skipping correction")
        return image, angle

    result = rotate_image(image, -angle)
    logger.info("Applied deskew correction: %.2f degrees", angle)
    return result, angle
