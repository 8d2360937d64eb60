"""Student roster for one school, and its class registry.

Writes go through ``transaction()``: rows staged by ``bulk_create`` are
appended to the roster (and persisted) only when the transaction block exits
cleanly. Any exception, including an abandoned commit generator, discards
the staged rows.

Several browser sessions share one store. A transaction reserves each
student key and id as it stages the row, so overlapping imports cannot both
add the same student.
"""

import logging
import threading
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path

import polars as pl

from drais.cache_manager import read_or_empty, write_parquet
from drais.errors import StudentConflict
from drais.ingest.committer import BulkResult, CommitError
from drais.ingest.normalizer import normalize_name, normalize_phone

logger = logging.getLogger(__name__)

STUDENT_SCHEMA = {
    "student_id": pl.Int64,
    "name": pl.String,
    "gender": pl.String,
    "class": pl.String,
    "parent_phone": pl.String,
    "created_at": pl.Datetime("us"),
}


def _student_key(name: str, klass: str) -> tuple[str, str]:
    return " ".join(name.split()).casefold(), klass.strip().casefold()


class RosterStore:
    """Polars-backed roster, optionally persisted to parquet."""

    def __init__(self, path: Path | None = None, class_codes=None,
                 allowed_genders=("Male", "Female")):
        self.path = path
        self._students = read_or_empty(path, STUDENT_SCHEMA)
        self._class_codes = list(class_codes or [])
        self._genders = {g.casefold(): g for g in allowed_genders}
        self.version = 0
        self._lock = threading.Lock()
        self._keys = {
            _student_key(name, klass)
            for name, klass in self._students.select(["name", "class"]).iter_rows()
        }
        self._reserved: set[tuple[str, str]] = set()
        self._id_seq = self._next_id()

    def __len__(self) -> int:
        return len(self._students)

    def class_codes(self) -> frozenset[str]:
        """Valid class codes for this school."""
        return frozenset(self._class_codes)

    def students(self) -> pl.DataFrame:
        return self._students.clone()

    def search(self, query: str) -> pl.DataFrame:
        """Students whose name or phone contains ``query``, or whose class equals it."""
        q = query.strip()
        if not q:
            return self.students()
        q_lower = q.lower()
        return self._students.filter(
            pl.col("name").str.to_lowercase().str.contains(q_lower, literal=True)
            | pl.col("parent_phone").str.contains(q, literal=True)
            | (pl.col("class").str.to_lowercase() == q_lower)
        )

    def class_counts(self) -> pl.DataFrame:
        return (
            self._students.group_by("class")
            .agg(pl.len().alias("students"))
            .sort("class")
        )

    @contextmanager
    def transaction(self):
        tx = _RosterTransaction(self)
        try:
            yield tx
        except BaseException:
            self._release(tx.reserved)
            raise
        self._apply(tx)

    def _next_id(self) -> int:
        if len(self._students) == 0:
            return 1
        return int(self._students["student_id"].max()) + 1

    def _reserve(self, name: str, klass: str) -> int:
        """Claim a student key for an open transaction and hand out its id.

        Keys already on the roster, or held by another open transaction,
        are refused.
        """
        key = _student_key(name, klass)
        with self._lock:
            if key in self._keys or key in self._reserved:
                raise StudentConflict(f"Student '{name}' already exists in class {klass}")
            self._reserved.add(key)
            student_id = self._id_seq
            self._id_seq += 1
        return student_id

    def _release(self, keys: set[tuple[str, str]]) -> None:
        with self._lock:
            self._reserved -= keys

    def _canonical_class(self, klass: str) -> str:
        wanted = klass.strip().casefold()
        for code in self._class_codes:
            if code.casefold() == wanted:
                return code
        raise StudentConflict(f"Class '{klass}' not found in system")

    def _canonical_gender(self, gender: str) -> str:
        try:
            return self._genders[gender.strip().casefold()]
        except KeyError:
            raise StudentConflict(f"Gender '{gender}' is not recognised") from None

    def _apply(self, tx: "_RosterTransaction") -> None:
        with self._lock:
            self._reserved -= tx.reserved
            if not tx.staged:
                return
            new_rows = pl.DataFrame(tx.staged, schema=STUDENT_SCHEMA)
            self._students = pl.concat([self._students, new_rows])
            self._keys |= tx.reserved
            if self.path is not None:
                write_parquet(self._students, self.path)
            self.version += 1
        logger.info("Added %d students (roster size %d)", len(tx.staged), len(self._students))


class _RosterTransaction:
    """Staging area handed to the committer. Implements the bulk-create call."""

    def __init__(self, store: RosterStore):
        self.store = store
        self.staged: list[dict] = []
        self.reserved: set[tuple[str, str]] = set()

    def _prepare(self, record: dict) -> dict:
        name = normalize_name(record.get("name", ""))
        klass = self.store._canonical_class(record.get("class", ""))
        gender = self.store._canonical_gender(record.get("gender", ""))
        student_id = self.store._reserve(name, klass)
        self.reserved.add(_student_key(name, klass))
        return {
            "student_id": student_id,
            "name": name,
            "gender": gender,
            "class": klass,
            "parent_phone": normalize_phone(record.get("parent_phone", "")),
            "created_at": datetime.now(),
        }

    def bulk_create(self, records: list[dict], start_index: int) -> BulkResult:
        result = BulkResult()
        for offset, record in enumerate(records):
            try:
                row = self._prepare(record)
            except StudentConflict as e:
                result.failed += 1
                result.errors.append(CommitError(start_index + offset, e.message))
                continue
            self.staged.append(row)
            result.succeeded += 1
        return result
