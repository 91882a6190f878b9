"""End-to-end identity document validation pipeline.

Runs one request through decode, preprocessing, classification, OCR,
field extraction, checksum validation and scoring, ending either
accepted or rejected for low confidence. Only undecodable input and an
unavailable OCR engine abort a run; everything after the full-page OCR
is total.
"""

import time
from dataclasses import dataclass, field

from id_ocr.classification.classifier import DocumentClassifier
from id_ocr.classification.document_type import DocumentFamily, DocumentType
from id_ocr.errors import OCREngineError, PipelineState
from id_ocr.extraction.fields import ExtractedFields, ExtractionResult
from id_ocr.extraction.mrz import MRZData, resolve_century_pivot
from id_ocr.extraction.passport import PassportExtractor
from id_ocr.extraction.spanish_id import SpanishIDExtractor
from id_ocr.ocr.engine import OCREngine, OCREnginePool
from id_ocr.ocr.tesseract_engine import create_engine_pool
from id_ocr.preprocessing.image_io import load_document_image
from id_ocr.preprocessing.pipeline import ProcessedImage, PreprocessingPipeline
from id_ocr.schemas import (
    DocumentData,
    ValidationRequest,
    ValidationResponse,
    ValidationResultModel,
)
from id_ocr.utils.config import AppConfig
from id_ocr.utils.logger import get_logger
from id_ocr.validation.scoring import (
    ConfidenceScore,
    ConfidenceScorer,
    ValidationResult,
)
from id_ocr.validation.validator import ChecksumValidator

logger = get_logger(__name__)

LOW_QUALITY_MESSAGE = (
    "Low quality document: confidence {score:.2f} below acceptance floor "
    "{floor:.2f}. Please ensure good lighting and focus."
)


@dataclass
class Attempt:
    """One extraction strategy applied to the OCR output."""

    document_type: DocumentType
    extraction: ExtractionResult
    validation: ValidationResult
    confidence: ConfidenceScore


@dataclass
class PipelineResult:
    """Outcome of a completed pipeline run.

    Attributes:
        success: True when the run ended accepted.
        state: Terminal pipeline state.
        document_type: Classified document type.
        fields: Extracted identity fields (possibly partial).
        validation: Format, checksum and confidence verdict.
        confidence: Score breakdown.
        error: Human-readable rejection reason, if rejected.
        mrz: Decoded MRZ, if one was read.
        extraction_type: Strategy that produced the kept fields.
        ocr_confidence: Mean OCR word confidence of the full-page read.
        processing_time_ms: Wall-clock duration of the run.
        raw_text: Full-page OCR text.
    """

    success: bool
    state: PipelineState
    document_type: DocumentType
    fields: ExtractedFields
    validation: ValidationResult
    confidence: ConfidenceScore
    error: str | None = None
    mrz: MRZData | None = None
    extraction_type: DocumentType | None = None
    ocr_confidence: float = 0.0
    processing_time_ms: float = 0.0
    raw_text: str = field(default="", repr=False)

    @property
    def detected_fields(self) -> list[str]:
        return self.fields.present_fields()

    def to_response(self) -> ValidationResponse:
        """Convert to the serializable transport record."""
        data = DocumentData(
            **self.fields.to_dict(),
            validation=ValidationResultModel(
                format_valid=self.validation.format_valid,
                checksum_valid=self.validation.checksum_valid,
                confidence=self.validation.confidence,
            ),
            confidence_score=self.confidence.score,
            field_scores=self.confidence.field_scores,
        )
        return ValidationResponse(
            success=self.success,
            document_type=self.document_type.value,
            data=data,
            error=self.error,
            confidence_score=self.confidence.score,
            detected_fields=self.detected_fields,
            processing_time_ms=round(self.processing_time_ms),
            ocr_confidence=self.ocr_confidence,
            pipeline_state=self.state.value,
        )


class ValidationPipeline:
    """Validates identity document photographs.

    Each call runs synchronously and shares no mutable state with other
    calls except the OCR engine pool, from which it borrows one engine.

    Args:
        config: Application configuration. Defaults to ``AppConfig()``.
        engine_pool: OCR engines to borrow from. Defaults to a pool of
            Tesseract engines sized by ``config.ocr.pool_size``.
    """

    def __init__(
        self,
        config: AppConfig | None = None,
        engine_pool: OCREnginePool | None = None,
    ) -> None:
        self.config = config or AppConfig()
        self.engine_pool = engine_pool or create_engine_pool(self.config.ocr)
        self.preprocessing = PreprocessingPipeline(self.config.preprocessing)
        self.classifier = DocumentClassifier(self.config.classifier)
        self.checksum_validator = ChecksumValidator()
        self.scorer = ConfidenceScorer(self.config.scoring)

    def validate_request(self, request: ValidationRequest) -> ValidationResponse:
        """Validate a transport request and return its response record.

        Raises:
            DocumentOCRError: On undecodable input, oversized input, an
                unknown type hint or an unavailable OCR engine.
        """
        result = self.validate(
            request.image_bytes,
            mime_type=request.mime_type,
            document_type_hint=request.document_type_hint,
            side_hint=request.side_hint,
        )
        return result.to_response()

    def validate(
        self,
        image_bytes: bytes,
        mime_type: str = "application/octet-stream",
        document_type_hint: str | None = None,
        side_hint: str | None = None,
    ) -> PipelineResult:
        """Run the full pipeline on one document photograph.

        Args:
            image_bytes: Encoded image.
            mime_type: Declared MIME type.
            document_type_hint: Optional type hint, which overrides
                classification.
            side_hint: Optional ``"front"``/``"back"`` hint.

        Returns:
            The pipeline result; low confidence is reported with
            ``success=False`` rather than raised.

        Raises:
            ImageDecodeError: If the image cannot be decoded.
            ImageTooLargeError: If the image exceeds the size limits.
            UnsupportedDocumentType: If a hint names no known type.
            OCREngineError: If the OCR engine is unavailable or times out.
        """
        start = time.perf_counter()

        document = load_document_image(image_bytes, mime_type, self.config.limits)
        logger.debug(
            "State %s: %dx%d", PipelineState.RECEIVED, document.width, document.height
        )

        processed = self.preprocessing.process(document)
        logger.debug("State %s", PipelineState.PREPROCESSED)

        document_type = self.classifier.classify(
            processed, document_type_hint, side_hint
        )
        logger.debug("State %s: %s", PipelineState.CLASSIFIED, document_type)

        pivot = resolve_century_pivot(self.config.extraction.mrz_century_pivot)
        pool_timeout = self.config.ocr.timeout_seconds

        with self.engine_pool.acquire(timeout=pool_timeout) as engine:
            text, ocr_confidence = engine.extract_text_with_confidence(
                processed.pixels
            )
            logger.debug(
                "State %s: %d characters, OCR confidence %.2f",
                PipelineState.TEXT_EXTRACTED,
                len(text),
                ocr_confidence,
            )

            if not document_type_hint:
                document_type = self.classifier.refine(
                    document_type, text, side_known=side_hint is not None
                )

            candidates = self._candidate_types(
                document_type, text, hinted=bool(document_type_hint)
            )
            best = self._attempt(engine, processed, candidates[0], text, pivot)
            for alternate in candidates[1:]:
                if best.confidence.score >= self.config.scoring.alternate_retry_below:
                    break
                logger.info(
                    "Score %.2f for %s near zero, retrying as %s",
                    best.confidence.score,
                    best.document_type,
                    alternate,
                )
                attempt = self._attempt(engine, processed, alternate, text, pivot)
                if attempt.confidence.score > best.confidence.score:
                    best = attempt

        score = best.confidence.score
        elapsed_ms = (time.perf_counter() - start) * 1000.0

        if self.scorer.is_acceptable(score):
            state = PipelineState.ACCEPTED
            error = None
            logger.info(
                "Accepted %s with confidence %.2f in %.0fms",
                document_type,
                score,
                elapsed_ms,
            )
        else:
            state = PipelineState.LOW_CONFIDENCE_REJECTED
            error = LOW_QUALITY_MESSAGE.format(
                score=score, floor=self.config.scoring.acceptance_floor
            )
            logger.warning(
                "Rejected %s: confidence %.2f below floor %.2f",
                document_type,
                score,
                self.config.scoring.acceptance_floor,
            )

        return PipelineResult(
            success=state is PipelineState.ACCEPTED,
            state=state,
            document_type=document_type,
            fields=best.extraction.fields,
            validation=best.validation,
            confidence=best.confidence,
            error=error,
            mrz=best.extraction.mrz,
            extraction_type=best.document_type,
            ocr_confidence=ocr_confidence,
            processing_time_ms=elapsed_ms,
            raw_text=text,
        )

    def _candidate_types(
        self, document_type: DocumentType, text: str, hinted: bool
    ) -> list[DocumentType]:
        """Extraction types to try, primary first.

        Hinted Spanish cards and passports are not second-guessed.
        """
        family = document_type.family
        if family is DocumentFamily.SPANISH_ID:
            candidates = [document_type]
            if not hinted:
                candidates.append(DocumentType.PASSPORT)
        elif family is DocumentFamily.PASSPORT:
            candidates = [document_type]
            if not hinted:
                candidates.append(
                    self.classifier.refine(DocumentType.DNI_FRONT, text)
                )
        elif family is DocumentFamily.OTHER:
            spanish_id = self.classifier.refine(DocumentType.DNI_FRONT, text)
            candidates = [spanish_id, DocumentType.PASSPORT]
        else:
            raise ValueError(f"Unhandled document family: {family}")
        return list(dict.fromkeys(candidates))

    def _attempt(
        self,
        engine: OCREngine,
        processed: ProcessedImage,
        document_type: DocumentType,
        text: str,
        pivot: int,
    ) -> Attempt:
        region_texts = self._read_regions(engine, processed, document_type)
        extraction = self._extract(document_type, text, region_texts, pivot)
        logger.debug(
            "State %s: %s",
            PipelineState.FIELDS_EXTRACTED,
            extraction.fields.present_fields(),
        )

        checksum_valid = self.checksum_validator.validate(document_type, extraction)
        logger.debug("State %s: %s", PipelineState.CHECKSUM_CHECKED, checksum_valid)

        validation, confidence = self.scorer.evaluate(extraction.fields, checksum_valid)
        logger.debug("State %s: %.3f", PipelineState.SCORED, confidence.score)
        return Attempt(document_type, extraction, validation, confidence)

    def _read_regions(
        self,
        engine: OCREngine,
        processed: ProcessedImage,
        document_type: DocumentType,
    ) -> dict[str, str]:
        """OCR the layout regions of a Spanish card.

        A failing region read is logged and skipped.
        """
        if document_type.family is not DocumentFamily.SPANISH_ID:
            return {}

        extraction_cfg = self.config.extraction
        if document_type.is_back:
            regions = extraction_cfg.back_regions
        else:
            regions = extraction_cfg.front_regions
        psm = self.config.ocr.region_psm

        texts: dict[str, str] = {}
        for name, region in regions.items():
            crop = processed.crop(region)
            if crop.pixels.size == 0:
                logger.debug("Region %s is empty, skipping", name)
                continue
            try:
                texts[name] = engine.extract_text(crop.pixels, psm=psm)
            except OCREngineError as exc:
                logger.warning("Region OCR failed for %s: %s", name, exc)
        return texts

    @staticmethod
    def _extract(
        document_type: DocumentType,
        text: str,
        region_texts: dict[str, str],
        pivot: int,
    ) -> ExtractionResult:
        family = document_type.family
        if family is DocumentFamily.SPANISH_ID:
            extractor = SpanishIDExtractor(mrz_century_pivot=pivot)
            if document_type.is_back:
                return extractor.extract_back(text, region_texts)
            return extractor.extract_front(text, region_texts)
        if family is DocumentFamily.PASSPORT:
            return PassportExtractor(mrz_century_pivot=pivot).extract(text)
        if family is DocumentFamily.OTHER:
            return ExtractionResult(fields=ExtractedFields())
        raise ValueError(f"Unhandled document family: {family}")
