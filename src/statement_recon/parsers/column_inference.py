"""
Column inference for bank statement CSV files.

Proposes which physical column holds which logical field from header
keywords. The proposal is editable; parsing always uses the edited mapping.
"""

from dataclasses import dataclass
from typing import Optional, Sequence, Union
import logging

from ..config import DEFAULT_COLUMN_KEYWORDS
from ..models.statement import ColumnField
from ..utils.exceptions import ValidationError

logger = logging.getLogger(__name__)

REQUIRED_FIELDS = (ColumnField.DATE, ColumnField.DESCRIPTION)


def parse_field(name: str) -> ColumnField:
    """Look up a field by its name, e.g. "debit"."""
    try:
        return ColumnField(name.strip().lower())
    except ValueError as e:
        valid = ", ".join(f.value for f in ColumnField)
        raise ValidationError(f"Unknown column field {name!r} (expected one of: {valid})") from e


@dataclass
class ColumnAssignment:
    """Field assigned to one physical column, with display context."""

    column: int
    field: ColumnField
    header: str = ""
    sample: str = ""


class ColumnMapping:
    """Editable mapping from physical column index to logical field."""

    def __init__(self, assignments: Sequence[ColumnAssignment]):
        self.assignments: list[ColumnAssignment] = list(assignments)

    @classmethod
    def from_fields(cls, fields: dict[str, int]) -> "ColumnMapping":
        """
        Build a mapping from ``{"date": 0, "description": 2, ...}``.

        Columns not named are left unmapped.
        """
        width = max(fields.values()) + 1 if fields else 0
        assignments = [ColumnAssignment(column=i, field=ColumnField.SKIP) for i in range(width)]
        for name, column in fields.items():
            assignments[column].field = parse_field(name)
        return cls(assignments)

    def assign(self, column: int, field: Union[ColumnField, str]) -> None:
        """Override the field of one column."""
        if isinstance(field, str):
            field = parse_field(field)
        for assignment in self.assignments:
            if assignment.column == column:
                assignment.field = field
                logger.debug(f"Column {column} mapped to {field.value}")
                return
        raise ValidationError(f"Statement has no column {column}")

    def column_for(self, field: ColumnField) -> Optional[int]:
        """Index of the first column mapped to ``field``, if any."""
        for assignment in self.assignments:
            if assignment.field == field:
                return assignment.column
        return None

    def missing_required(self) -> list[ColumnField]:
        return [f for f in REQUIRED_FIELDS if self.column_for(f) is None]

    def validate(self) -> None:
        """
        Check the mandatory date and description columns are mapped.

        Raises:
            ValidationError: If either is unmapped
        """
        missing = self.missing_required()
        if missing:
            names = " and ".join(f.value.capitalize() for f in missing)
            raise ValidationError(f"{names} column mapping is required")

    def as_dict(self) -> dict[str, int]:
        """Mapped fields and their column index, skipping unmapped columns."""
        result: dict[str, int] = {}
        for assignment in self.assignments:
            if assignment.field != ColumnField.SKIP and assignment.field.value not in result:
                result[assignment.field.value] = assignment.column
        return result

    def __len__(self) -> int:
        return len(self.assignments)

    def __iter__(self):
        return iter(self.assignments)


def infer_field(
    header: str, column_keywords: Optional[dict[str, list[str]]] = None
) -> ColumnField:
    """
    Classify one header by case-insensitive keyword containment.

    Fields are tried in keyword-table order; the first hit wins.
    """
    keywords = column_keywords or DEFAULT_COLUMN_KEYWORDS
    header_lower = header.lower()

    for field_name, words in keywords.items():
        if any(word.lower() in header_lower for word in words):
            return parse_field(field_name)

    return ColumnField.SKIP


def infer_mapping(
    rows: Sequence[Sequence[str]],
    has_headers: bool = True,
    column_keywords: Optional[dict[str, list[str]]] = None,
) -> ColumnMapping:
    """
    Propose a column mapping for tokenized statement rows.

    Args:
        rows: Rows from the tokenizer
        has_headers: Whether the first row is a header row
        column_keywords: Optional keyword table overriding the defaults

    Returns:
        Proposed mapping covering every column of the first row
    """
    if not rows:
        return ColumnMapping([])

    first_row = rows[0]
    sample_index = 1 if has_headers else 0
    sample_row = rows[sample_index] if len(rows) > sample_index else []

    assignments: list[ColumnAssignment] = []
    for index, cell in enumerate(first_row):
        header = cell if has_headers else ""
        assignments.append(
            ColumnAssignment(
                column=index,
                field=infer_field(header, column_keywords) if has_headers else ColumnField.SKIP,
                header=header,
                sample=sample_row[index] if index < len(sample_row) else "",
            )
        )

    mapping = ColumnMapping(assignments)
    logger.info(f"Proposed column mapping: {mapping.as_dict()}")
    return mapping
