"""Canonical student fields and header-alias based mapping suggestions.

The registry is fixed at import time. Each field carries the header spellings
we have seen in school spreadsheets so that most uploads map themselves
without user input.
"""

import io
from dataclasses import dataclass
from enum import Enum

import polars as pl

from drais.ingest.normalizer import normalize_header


class FieldKind(Enum):
    """Which rule family validates a field."""
    TEXT = "text"
    ENUM = "enum"
    PHONE = "phone"
    REFERENCE = "reference"


@dataclass(frozen=True)
class ImportField:
    key: str
    label: str
    alias_patterns: tuple[str, ...]
    required: bool = True
    kind: FieldKind = FieldKind.TEXT

    def matches(self, header: str) -> bool:
        """True if the header is one of this field's aliases (case-insensitive)."""
        wanted = normalize_header(header)
        return any(normalize_header(alias) == wanted for alias in self.alias_patterns)


IMPORT_FIELDS: tuple[ImportField, ...] = (
    ImportField(
        key="name",
        label="Name",
        alias_patterns=("Name", "Student Name", "Full Name", "Student_Name"),
        kind=FieldKind.TEXT,
    ),
    ImportField(
        key="gender",
        label="Gender",
        alias_patterns=("Gender", "Sex", "Student_Gender"),
        kind=FieldKind.ENUM,
    ),
    ImportField(
        key="class",
        label="Class",
        alias_patterns=("Class", "Grade", "Level", "Student_Class"),
        kind=FieldKind.REFERENCE,
    ),
    ImportField(
        key="parent_phone",
        label="Parent Phone",
        alias_patterns=("Parent Phone", "Contact", "Phone", "Parent_Contact", "Guardian_Phone"),
        kind=FieldKind.PHONE,
    ),
)

# Rows shipped in the downloadable template when samples are requested
SAMPLE_ROWS = [
    {"name": "John Doe", "gender": "Male", "class": "P5", "parent_phone": "256701234567"},
    {"name": "Jane Smith", "gender": "Female", "class": "P4", "parent_phone": "256709876543"},
    {"name": "David Wilson", "gender": "Male", "class": "P6", "parent_phone": "256705555555"},
]


def list_fields() -> list[ImportField]:
    return list(IMPORT_FIELDS)


def field_keys() -> list[str]:
    return [f.key for f in IMPORT_FIELDS]


def get_field(key: str) -> ImportField:
    for f in IMPORT_FIELDS:
        if f.key == key:
            return f
    raise KeyError(f"Unknown import field: {key!r}")


def suggest_mapping(headers: list[str], fields: list[ImportField] | None = None) -> dict[str, str]:
    """Greedily bind each field to the first header matching one of its aliases.

    Fields are visited in registry order and headers in file order. A header
    claimed by an earlier field is skipped. Unmatched fields are left out of
    the result.
    """
    if fields is None:
        fields = list_fields()

    mapping = {}
    claimed = set()
    for f in fields:
        for header in headers:
            if header in claimed:
                continue
            if f.matches(header):
                mapping[f.key] = header
                claimed.add(header)
                break
    return mapping


def template_headers() -> list[str]:
    """Header row of the downloadable template, in registry order."""
    return [f.label for f in IMPORT_FIELDS]


def build_template(fmt: str = "csv", include_samples: bool = False) -> bytes:
    """Render the import template as CSV or XLSX bytes."""
    rows = SAMPLE_ROWS if include_samples else []
    df = pl.DataFrame(
        {f.label: [row[f.key] for row in rows] for f in IMPORT_FIELDS},
        schema={f.label: pl.String for f in IMPORT_FIELDS},
    )

    if fmt == "csv":
        return df.write_csv().encode("utf-8")
    if fmt == "xlsx":
        buf = io.BytesIO()
        df.write_excel(buf, worksheet="Students")
        return buf.getvalue()
    raise ValueError(f"Unsupported template format: {fmt!r}")
