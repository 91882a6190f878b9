"""Document-level checksum validation.

Dispatches on the document family: Spanish cards are checked with the
mod-23 control letter (and the TD1 check digits when the back MRZ was
read), passports with the per-field TD3 check digits.
"""

from id_ocr.classification.document_type import DocumentFamily, DocumentType
from id_ocr.extraction.fields import ExtractionResult
from id_ocr.utils.logger import get_logger

from .checksum import validate_spanish_id

logger = get_logger(__name__)


class ChecksumValidator:
    """Decides whether an extraction is self-consistent.

    A mismatch is reported as ``False``; it never raises.
    """

    def validate(self, document_type: DocumentType, result: ExtractionResult) -> bool:
        """Check the extracted document number and MRZ check digits.

        Args:
            document_type: Type whose rules apply.
            result: Extraction result to verify.

        Returns:
            True when every applicable check passes.
        """
        family = document_type.family
        if family is DocumentFamily.SPANISH_ID:
            valid = self._validate_spanish_id(result)
        elif family is DocumentFamily.PASSPORT:
            valid = result.mrz is not None and result.mrz.checksum_valid
        elif family is DocumentFamily.OTHER:
            valid = False
        else:
            raise ValueError(f"Unhandled document family: {family}")

        logger.debug("Checksum for %s: %s", document_type, valid)
        return valid

    @staticmethod
    def _validate_spanish_id(result: ExtractionResult) -> bool:
        number = result.fields.document_number
        mrz = result.mrz
        if number is None:
            return mrz is not None and mrz.checksum_valid
        if not validate_spanish_id(number):
            return False
        return mrz is None or mrz.checksum_valid
