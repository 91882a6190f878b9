"""Weighted confidence scoring of extracted fields.

The score is the share of configured weight carried by the fields that
were found, plus a bonus when the document checksum verifies.
"""

from dataclasses import dataclass, field

from id_ocr.extraction.fields import ExtractedFields
from id_ocr.utils.config import ScoringConfig
from id_ocr.utils.logger import get_logger

logger = get_logger(__name__)


@dataclass
class ValidationResult:
    """Format, checksum and confidence verdict for one document."""

    format_valid: bool
    checksum_valid: bool
    confidence: float


@dataclass
class ConfidenceScore:
    """Aggregate score with its per-field breakdown.

    Attributes:
        score: Aggregate confidence in ``[0, 1]``.
        field_scores: Weight earned by each scored field (0 when absent).
        checksum_bonus: Bonus earned for a valid checksum.
    """

    score: float
    field_scores: dict[str, float] = field(default_factory=dict)
    checksum_bonus: float = 0.0


class ConfidenceScorer:
    """Scores extracted fields against configured weights.

    Args:
        config: Field weights and thresholds.
    """

    def __init__(self, config: ScoringConfig | None = None) -> None:
        self.config = config or ScoringConfig()

    @property
    def total_weight(self) -> float:
        return sum(self.config.field_weights.values()) + self.config.checksum_bonus

    def score(self, fields: ExtractedFields, checksum_valid: bool) -> ConfidenceScore:
        """Compute the weighted confidence of an extraction.

        Adding a field or turning the checksum valid never lowers the score.

        Args:
            fields: Extracted fields.
            checksum_valid: Whether the document checksum verified.

        Returns:
            The aggregate score and its breakdown.
        """
        field_scores = {
            name: weight if getattr(fields, name, None) is not None else 0.0
            for name, weight in self.config.field_weights.items()
        }
        bonus = self.config.checksum_bonus if checksum_valid else 0.0

        total = self.total_weight
        score = (sum(field_scores.values()) + bonus) / total if total > 0 else 0.0
        score = min(max(score, 0.0), 1.0)

        logger.debug("Confidence score %.3f (checksum bonus %.1f)", score, bonus)
        return ConfidenceScore(
            score=score, field_scores=field_scores, checksum_bonus=bonus
        )

    def evaluate(
        self, fields: ExtractedFields, checksum_valid: bool
    ) -> tuple[ValidationResult, ConfidenceScore]:
        """Score an extraction and derive its validation verdict.

        Returns:
            Tuple of (validation_result, confidence_score).
        """
        confidence = self.score(fields, checksum_valid)
        result = ValidationResult(
            format_valid=confidence.score > self.config.format_valid_threshold,
            checksum_valid=checksum_valid,
            confidence=confidence.score,
        )
        return result, confidence

    def is_acceptable(self, score: float) -> bool:
        """Whether a score clears the acceptance floor."""
        return score >= self.config.acceptance_floor
