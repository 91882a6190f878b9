"""Container for the identity fields recovered from one document."""

from dataclasses import asdict, dataclass, fields

from .mrz import MRZData


@dataclass
class ExtractedFields:
    """Optional identity fields; every field starts unset.

    Extraction passes run in order of reliability, so later passes only
    fill fields that are still unset and never overwrite earlier values.
    Dates are stored as ``DD-MM-YYYY`` strings.
    """

    document_number: str | None = None
    first_name: str | None = None
    last_names: str | None = None
    birth_date: str | None = None
    expiry_date: str | None = None
    issue_date: str | None = None
    gender: str | None = None
    nationality: str | None = None
    address: str | None = None
    postal_code: str | None = None
    province: str | None = None
    municipality: str | None = None
    support_number: str | None = None
    can_number: str | None = None

    def set_if_unset(self, name: str, value: str | None) -> bool:
        """Fill a field unless it already holds a value.

        Args:
            name: Field name.
            value: Candidate value. Empty values are ignored.

        Returns:
            True if the field was filled.
        """
        if not value or getattr(self, name) is not None:
            return False
        setattr(self, name, value)
        return True

    def merge(self, other: "ExtractedFields") -> None:
        """Fill unset fields from another result."""
        for name in FIELD_NAMES:
            self.set_if_unset(name, getattr(other, name))

    def present_fields(self) -> list[str]:
        """Names of the fields that hold a value, in declaration order."""
        return [name for name in FIELD_NAMES if getattr(self, name) is not None]

    def is_empty(self) -> bool:
        return not self.present_fields()

    def to_dict(self) -> dict[str, str | None]:
        return asdict(self)


FIELD_NAMES: tuple[str, ...] = tuple(f.name for f in fields(ExtractedFields))


@dataclass
class ExtractionResult:
    """Outcome of one extraction strategy.

    Attributes:
        fields: Recovered identity fields.
        mrz: Decoded machine readable zone, when one was found.
        method: ``"mrz"`` when the MRZ supplied the fields, else ``"text"``.
    """

    fields: ExtractedFields
    mrz: MRZData | None = None
    method: str = "text"
