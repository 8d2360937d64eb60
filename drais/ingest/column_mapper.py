"""User-editable binding of canonical fields to uploaded columns."""

from drais.ingest.schema import ImportField, list_fields


def project(raw_rows: list[dict], mapping: dict[str, str], fields: list[ImportField] | None = None) -> list[dict]:
    """Map raw rows to canonical field names.

    Every record carries every canonical key. A field that is unbound, or
    whose column is missing from a short row, gets ''.
    """
    if fields is None:
        fields = list_fields()

    records = []
    for row in raw_rows:
        record = {}
        for f in fields:
            column = mapping.get(f.key)
            value = row.get(column) if column else None
            record[f.key] = value if value is not None else ""
        records.append(record)
    return records


class ColumnMapper:
    """Tracks which uploaded column feeds each canonical field."""

    def __init__(self, headers: list[str], mapping: dict[str, str] | None = None,
                 fields: list[ImportField] | None = None):
        self.headers = list(headers)
        self.fields = fields if fields is not None else list_fields()
        self._mapping: dict[str, str] = {}
        for key, column in (mapping or {}).items():
            self.set_mapping(key, column)

    @property
    def mapping(self) -> dict[str, str]:
        return dict(self._mapping)

    def set_mapping(self, field: str, column: str | None) -> None:
        """Bind ``field`` to ``column``, replacing any earlier binding.

        An empty column unbinds the field. Completeness is not checked here.
        """
        if field not in {f.key for f in self.fields}:
            raise ValueError(f"Unknown import field: {field!r}")
        if not column:
            self._mapping.pop(field, None)
            return
        if column not in self.headers:
            raise ValueError(f"Column {column!r} is not in the uploaded file")
        self._mapping[field] = column

    def missing_fields(self) -> list[ImportField]:
        return [f for f in self.fields if f.required and not self._mapping.get(f.key)]

    def is_complete(self) -> bool:
        return not self.missing_fields()

    def conflicts(self) -> dict[str, list[str]]:
        """Columns bound to more than one field, with the fields sharing them."""
        by_column: dict[str, list[str]] = {}
        for f in self.fields:
            column = self._mapping.get(f.key)
            if column:
                by_column.setdefault(column, []).append(f.key)
        return {col: keys for col, keys in by_column.items() if len(keys) > 1}

    def project(self, raw_rows: list[dict]) -> list[dict]:
        return project(raw_rows, self._mapping, self.fields)
