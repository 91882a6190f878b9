"""Configurable image preprocessing pipeline for document OCR.

Orchestrates grayscale conversion, deskew, denoise, contrast stretching,
binarization and morphological cleanup, producing a single-channel image
ready for the classifier and the OCR engine.
"""

from dataclasses import dataclass

import numpy as np

from id_ocr.utils.config import PreprocessingConfig, Region
from id_ocr.utils.logger import get_logger

from .binarize import (
    binarize_adaptive,
    binarize_otsu,
    morphological_cleanup,
    stretch_contrast,
    to_gray,
)
from .denoise import denoise
from .deskew import deskew
from .image_io import DocumentImage

logger = get_logger(__name__)


@dataclass
class ProcessedImage:
    """Single-channel image produced by the preprocessing pipeline.

    Attributes:
        pixels: 2-D ``uint8`` array.
        skew_angle: Skew detected before correction, in degrees.
    """

    pixels: np.ndarray
    skew_angle: float = 0.0

    @property
    def width(self) -> int:
        return int(self.pixels.shape[1])

    @property
    def height(self) -> int:
        return int(self.pixels.shape[0])

    @property
    def aspect_ratio(self) -> float:
        return self.width / self.height if self.height else 0.0

    def crop(self, region: Region) -> "ProcessedImage":
        """Crop to a region given as fractions of the image size.

        Args:
            region: Fractional bounding box.

        Returns:
            The cropped image. Degenerate regions yield an empty array.
        """
        x0 = int(round(region.x0 * self.width))
        x1 = int(round(region.x1 * self.width))
        y0 = int(round(region.y0 * self.height))
        y1 = int(round(region.y1 * self.height))
        return ProcessedImage(
            pixels=self.pixels[y0:y1, x0:x1], skew_angle=self.skew_angle
        )


class PreprocessingPipeline:
    """Deterministic document image preprocessing pipeline.

    Applies the steps enabled in the configuration in a fixed order:
    deskew on the colour image, then grayscale, denoise, contrast,
    binarize and morphology.

    Args:
        config: Preprocessing configuration controlling which steps to apply.
    """

    def __init__(self, config: PreprocessingConfig | None = None) -> None:
        self.config = config or PreprocessingConfig()

    def process(self, document: DocumentImage | np.ndarray) -> ProcessedImage:
        """Run the full preprocessing pipeline.

        Args:
            document: Decoded document image, or a raw RGB/grayscale array.

        Returns:
            The processed single-channel image.
        """
        cfg = self.config
        image = document.pixels if isinstance(document, DocumentImage) else document

        skew = 0.0
        if cfg.deskew_enabled:
            image, skew = deskew(
                image,
                min_correction=cfg.min_correction_degrees,
                vote_threshold=cfg.hough_vote_threshold,
                suppression_radius=cfg.hough_suppression_radius,
                max_skew=cfg.max_skew_degrees,
            )

        result = to_gray(image)

        if cfg.denoise_enabled:
            result = denoise(
                result,
                method=cfg.denoise_method,
                sigma=cfg.gaussian_sigma,
                kernel_size=cfg.median_kernel_size,
            )

        if cfg.contrast_enabled:
            result = stretch_contrast(result)

        if cfg.binarize_enabled:
            if cfg.binarize_method == "otsu":
                result, _ = binarize_otsu(result)
            elif cfg.binarize_method == "adaptive":
                result = binarize_adaptive(
                    result, block_size=cfg.adaptive_block_size, c=cfg.adaptive_c
                )
            else:
                raise ValueError(
                    f"Unsupported binarize method: {cfg.binarize_method}"
                )

            if cfg.morphology_enabled:
                result = morphological_cleanup(result)

        logger.debug(
            "Preprocessing complete: %dx%d, skew %.2f, profile %s",
            result.shape[1],
            result.shape[0],
            skew,
            cfg.profile,
        )
        return ProcessedImage(pixels=result, skew_angle=skew)
