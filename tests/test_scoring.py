"""Tests for checksum validation and confidence scoring."""

from datetime import date

import pytest

from id_ocr.classification.document_type import DocumentType
from id_ocr.extraction.fields import ExtractedFields, ExtractionResult
from id_ocr.extraction.mrz import MRZData
from id_ocr.utils.config import ScoringConfig
from id_ocr.validation.scoring import ConfidenceScorer
from id_ocr.validation.validator import ChecksumValidator


def _mrz(valid: bool = True) -> MRZData:
    return MRZData(
        layout="TD1",
        document_code="ID",
        issuing_country="ESP",
        document_number="BAA000589",
        nationality="ESP",
        birth_date=date(1985, 1, 1),
        expiry_date=date(2029, 1, 1),
        sex="M",
        surnames="GARCIA LOPEZ",
        given_names="JUAN",
        optional_data="12345678Z",
        checks={"document_number": True, "composite": valid},
    )


class TestChecksumValidator:
    """Tests for family-specific checksum dispatch."""

    def test_valid_dni(self) -> None:
        result = ExtractionResult(fields=ExtractedFields(document_number="12345678Z"))
        assert ChecksumValidator().validate(DocumentType.DNI_FRONT, result) is True

    def test_wrong_letter(self) -> None:
        result = ExtractionResult(fields=ExtractedFields(document_number="12345678A"))
        assert ChecksumValidator().validate(DocumentType.DNI_FRONT, result) is False

    def test_valid_nie(self) -> None:
        result = ExtractionResult(fields=ExtractedFields(document_number="X1234567L"))
        assert ChecksumValidator().validate(DocumentType.NIE_FRONT, result) is True

    def test_no_number_no_mrz(self) -> None:
        result = ExtractionResult(fields=ExtractedFields())
        assert ChecksumValidator().validate(DocumentType.DNI_FRONT, result) is False

    def test_back_mrz_must_verify(self) -> None:
        fields = ExtractedFields(document_number="12345678Z")
        validator = ChecksumValidator()
        good = ExtractionResult(fields=fields, mrz=_mrz(True), method="mrz")
        bad = ExtractionResult(fields=fields, mrz=_mrz(False), method="mrz")
        assert validator.validate(DocumentType.DNI_BACK, good) is True
        assert validator.validate(DocumentType.DNI_BACK, bad) is False

    def test_back_mrz_without_number(self) -> None:
        result = ExtractionResult(fields=ExtractedFields(), mrz=_mrz(True))
        assert ChecksumValidator().validate(DocumentType.DNI_BACK, result) is True

    def test_passport_needs_mrz(self) -> None:
        fields = ExtractedFields(document_number="AB1234567")
        validator = ChecksumValidator()
        without_mrz = ExtractionResult(fields)
        assert validator.validate(DocumentType.PASSPORT, without_mrz) is False
        with_mrz = ExtractionResult(fields, mrz=_mrz(True))
        assert validator.validate(DocumentType.PASSPORT, with_mrz) is True

    def test_other_never_valid(self) -> None:
        result = ExtractionResult(fields=ExtractedFields(document_number="12345678Z"))
        assert ChecksumValidator().validate(DocumentType.OTHER, result) is False


class TestConfidenceScorer:
    """Tests for weighted confidence scoring."""

    def test_empty_fields_score_zero(self) -> None:
        score = ConfidenceScorer().score(ExtractedFields(), checksum_valid=False)
        assert score.score == 0.0
        assert all(v == 0.0 for v in score.field_scores.values())

    def test_all_fields_and_checksum_score_one(self) -> None:
        fields = ExtractedFields(
            document_number="12345678Z",
            first_name="JUAN",
            last_names="GARCIA LOPEZ",
            birth_date="01-01-1985",
            gender="M",
            nationality="ESP",
            expiry_date="01-01-2029",
        )
        assert ConfidenceScorer().score(fields, True).score == pytest.approx(1.0)

    def test_weighted_share(self) -> None:
        fields = ExtractedFields(
            document_number="12345678Z", first_name="JUAN", last_names="GARCIA"
        )
        score = ConfidenceScorer().score(fields, checksum_valid=True)
        assert score.score == pytest.approx(6.0 / 9.5)
        assert score.field_scores["document_number"] == 2.0
        assert score.checksum_bonus == 1.0

    def test_adding_a_field_never_lowers_score(self) -> None:
        scorer = ConfidenceScorer()
        fields = ExtractedFields()
        previous = scorer.score(fields, False).score
        for name, value in [
            ("gender", "M"),
            ("address", "CALLE MAYOR 1"),
            ("document_number", "12345678Z"),
            ("birth_date", "01-01-1985"),
        ]:
            setattr(fields, name, value)
            current = scorer.score(fields, False).score
            assert current >= previous
            previous = current
        assert scorer.score(fields, True).score > previous

    def test_score_is_clamped(self) -> None:
        config = ScoringConfig(
            field_weights={"first_name": -1.0, "last_names": 3.0}, checksum_bonus=0.0
        )
        fields = ExtractedFields(last_names="GARCIA")
        score = ConfidenceScorer(config).score(fields, False)
        assert score.score == 1.0

    def test_evaluate_format_threshold(self) -> None:
        scorer = ConfidenceScorer()
        fields = ExtractedFields(document_number="12345678Z")
        result, confidence = scorer.evaluate(fields, checksum_valid=False)
        assert confidence.score == pytest.approx(2.0 / 9.5)
        assert result.format_valid is False
        assert result.checksum_valid is False
        assert result.confidence == confidence.score

        fields.first_name = "JUAN"
        result, _ = scorer.evaluate(fields, checksum_valid=True)
        assert result.format_valid is True

    def test_acceptance_floor(self) -> None:
        scorer = ConfidenceScorer()
        assert scorer.is_acceptable(0.2) is True
        assert scorer.is_acceptable(0.19) is False
