"""Per-row, per-field checks on mapped student records.

Rules dispatch on the field's FieldKind, so a new field only needs a kind to
be validated. Issues come back in row order, then field-declaration order.
"""

import re
from collections import Counter
from dataclasses import dataclass

from drais.errors import IssueKind
from drais.ingest.normalizer import normalize_phone
from drais.ingest.schema import FieldKind, ImportField, list_fields


@dataclass(frozen=True)
class ValidationIssue:
    row_index: int
    field: str
    kind: IssueKind
    message: str

    @property
    def sheet_row(self) -> int:
        """Line number in the spreadsheet (header is line 1)."""
        return self.row_index + 2


class RowValidator:
    """Validate mapped records against the school's rules."""

    def __init__(
        self,
        valid_classes,
        allowed_genders=("Male", "Female"),
        phone_pattern: str = r"^\+?\d{10,13}$",
        detect_duplicates: bool = True,
        fields: list[ImportField] | None = None,
    ):
        self.valid_classes = frozenset(c.strip().casefold() for c in valid_classes)
        self.allowed_genders = list(allowed_genders)
        self._genders = {g.casefold() for g in allowed_genders}
        self._phone_re = re.compile(phone_pattern)
        self.detect_duplicates = detect_duplicates
        self.fields = fields if fields is not None else list_fields()

    def _check(self, f: ImportField, value: str) -> tuple[IssueKind, str] | None:
        value = (value or "").strip()

        if f.kind is FieldKind.TEXT:
            if not value:
                return IssueKind.MISSING_VALUE, f"{f.label} is required"
        elif f.kind is FieldKind.ENUM:
            if value.casefold() not in self._genders:
                allowed = ", ".join(self.allowed_genders)
                if not value:
                    return IssueKind.INVALID_ENUM, f"{f.label} is required (one of {allowed})"
                return IssueKind.INVALID_ENUM, f"{f.label} '{value}' must be one of {allowed}"
        elif f.kind is FieldKind.REFERENCE:
            if value.casefold() not in self.valid_classes:
                return IssueKind.UNKNOWN_REFERENCE, f"{f.label} '{value}' not found in system"
        elif f.kind is FieldKind.PHONE:
            if not self._phone_re.match(normalize_phone(value)):
                return IssueKind.INVALID_FORMAT, "Invalid phone number format"
        else:
            raise ValueError(f"No rule for field kind {f.kind!r}")
        return None

    def validate(self, records: list[dict]) -> list[ValidationIssue]:
        issues = []
        seen = set()

        for idx, record in enumerate(records):
            for f in self.fields:
                problem = self._check(f, record.get(f.key, ""))
                if problem is not None:
                    kind, message = problem
                    issues.append(ValidationIssue(idx, f.key, kind, message))

                if self.detect_duplicates and f.key == "name":
                    dup_key = _duplicate_key(record)
                    if dup_key is None:
                        continue
                    if dup_key in seen:
                        issues.append(ValidationIssue(
                            idx, f.key, IssueKind.DUPLICATE_RECORD,
                            f"'{record['name'].strip()}' appears more than once in class "
                            f"{record['class'].strip()}",
                        ))
                    seen.add(dup_key)

        return issues


def _duplicate_key(record: dict) -> tuple[str, str] | None:
    name = " ".join((record.get("name") or "").split()).casefold()
    klass = (record.get("class") or "").strip().casefold()
    if not name or not klass:
        return None
    return name, klass


def validate(records: list[dict], valid_classes, **options) -> list[ValidationIssue]:
    """Validate ``records`` with a one-off RowValidator."""
    return RowValidator(valid_classes, **options).validate(records)


def summarize(issues: list[ValidationIssue]) -> dict[IssueKind, int]:
    """Count issues per kind, for the review step header."""
    return dict(Counter(i.kind for i in issues))
