"""Audit trail of completed roster imports."""

import json
import logging
from dataclasses import asdict, dataclass
from datetime import datetime
from pathlib import Path

import polars as pl

from drais.cache_manager import read_or_empty, write_parquet
from drais.ingest.committer import CommitTally

logger = logging.getLogger(__name__)

LOG_SCHEMA = {
    "log_id": pl.Int64,
    "file_name": pl.String,
    "total_rows": pl.Int64,
    "succeeded": pl.Int64,
    "failed": pl.Int64,
    "status": pl.String,
    "errors": pl.String,
    "created_at": pl.Datetime("us"),
    "completed_at": pl.Datetime("us"),
}


@dataclass
class ImportLogEntry:
    log_id: int
    file_name: str
    total_rows: int
    succeeded: int
    failed: int
    status: str
    errors: str
    created_at: datetime
    completed_at: datetime

    def error_list(self) -> list[dict]:
        return json.loads(self.errors) if self.errors else []


class ImportLog:
    def __init__(self, path: Path | None = None):
        self.path = path
        self._entries = read_or_empty(path, LOG_SCHEMA)

    def __len__(self) -> int:
        return len(self._entries)

    def record(self, file_name: str, total_rows: int, tally: CommitTally,
               started_at: datetime) -> ImportLogEntry:
        """Append an entry for a finished import. Status is 'partial' if any row failed."""
        log_id = 1 if len(self._entries) == 0 else int(self._entries["log_id"].max()) + 1
        entry = ImportLogEntry(
            log_id=log_id,
            file_name=file_name,
            total_rows=total_rows,
            succeeded=tally.succeeded,
            failed=tally.failed,
            status="partial" if tally.failed else "completed",
            errors=json.dumps([
                {"row": e.row_index + 2, "message": e.message} for e in tally.errors
            ]),
            created_at=started_at,
            completed_at=datetime.now(),
        )
        self._entries = pl.concat([
            self._entries,
            pl.DataFrame([asdict(entry)], schema=LOG_SCHEMA),
        ])
        if self.path is not None:
            write_parquet(self._entries, self.path)

        logger.info("Import log #%d: %s %s (%d/%d)", log_id, file_name, entry.status,
                    entry.succeeded, total_rows)
        return entry

    def entries(self) -> pl.DataFrame:
        """All entries, newest first."""
        return self._entries.sort("log_id", descending=True)

    def get(self, log_id: int) -> ImportLogEntry | None:
        match = self._entries.filter(pl.col("log_id") == log_id)
        if len(match) == 0:
            return None
        return ImportLogEntry(**match.row(0, named=True))
