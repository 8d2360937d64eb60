"""Batch commit of validated records with progress reporting.

The committer writes through a StudentSink, which stands for the bulk-create
endpoint (``POST /api/students/bulk``). All batches share one sink
transaction, so nothing becomes visible until the whole run completes.

Failure policy: a record the sink refuses is skipped, the batch carries on,
and the refusal is counted in the final tally.
"""

import logging
from contextlib import AbstractContextManager
from dataclasses import dataclass, field
from typing import Iterator, Protocol

from drais.errors import IssueKind, WizardStateError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CommitError:
    row_index: int
    message: str


@dataclass
class BulkResult:
    succeeded: int = 0
    failed: int = 0
    errors: list[CommitError] = field(default_factory=list)


@dataclass(frozen=True)
class ImportProgress:
    percent: int
    processed: int
    total: int
    succeeded: int
    failed: int

    @property
    def done(self) -> bool:
        return self.percent >= 100


@dataclass
class CommitTally:
    succeeded: int = 0
    failed: int = 0
    errors: list[CommitError] = field(default_factory=list)
    cancelled: bool = False

    @property
    def issue_kind(self) -> IssueKind | None:
        return IssueKind.COMMIT_PARTIAL_FAILURE if self.failed else None

    def summary(self) -> str:
        return f"{self.succeeded} imported, {self.failed} failed"


class BulkWriter(Protocol):
    def bulk_create(self, records: list[dict], start_index: int) -> BulkResult: ...


class StudentSink(Protocol):
    def transaction(self) -> AbstractContextManager[BulkWriter]: ...


class CancelToken(Protocol):
    @property
    def cancelled(self) -> bool: ...


class _NeverCancel:
    """Placeholder token for callers that cannot cancel."""

    @property
    def cancelled(self) -> bool:
        return False


NEVER_CANCEL = _NeverCancel()


class CancellationToken:
    def __init__(self):
        self._cancelled = False

    def cancel(self) -> None:
        self._cancelled = True

    @property
    def cancelled(self) -> bool:
        return self._cancelled


class _Cancelled(Exception):
    pass


class ImportCommitter:
    """One-shot commit run. Iterate it to drive the import and watch progress."""

    def __init__(self, records: list[dict], sink: StudentSink, batch_size: int = 10,
                 cancel_token: CancelToken = NEVER_CANCEL):
        if batch_size < 1:
            raise ValueError("batch_size must be at least 1")
        self.records = list(records)
        self.sink = sink
        self.batch_size = batch_size
        self.cancel_token = cancel_token
        self.tally: CommitTally | None = None
        self._started = False

    @property
    def started(self) -> bool:
        return self._started

    @property
    def finished(self) -> bool:
        return self.tally is not None

    def __iter__(self) -> Iterator[ImportProgress]:
        if self._started:
            raise WizardStateError("An import run cannot be restarted")
        self._started = True
        return self._run()

    def _run(self) -> Iterator[ImportProgress]:
        total = len(self.records)
        succeeded = failed = 0
        errors: list[CommitError] = []

        yield ImportProgress(0, 0, total, 0, 0)

        try:
            with self.sink.transaction() as writer:
                for start in range(0, total, self.batch_size):
                    if self.cancel_token.cancelled:
                        raise _Cancelled()

                    batch = self.records[start:start + self.batch_size]
                    result = writer.bulk_create(batch, start)
                    succeeded += result.succeeded
                    failed += result.failed
                    errors.extend(result.errors)
                    for err in result.errors:
                        logger.warning("Row %d not imported: %s", err.row_index + 2, err.message)

                    processed = start + len(batch)
                    # 100% is reported only once the transaction is committed
                    if processed < total:
                        yield ImportProgress(processed * 100 // total, processed, total, succeeded, failed)
        except _Cancelled:
            self.tally = CommitTally(cancelled=True)
            logger.info("Import cancelled; nothing was written")
            return

        self.tally = CommitTally(succeeded, failed, errors)
        logger.info("Import committed: %s", self.tally.summary())
        yield ImportProgress(100, total, total, succeeded, failed)


def commit(records: list[dict], sink: StudentSink, batch_size: int = 10,
           cancel_token: CancelToken = NEVER_CANCEL) -> ImportCommitter:
    """Create a commit run for ``records``. Nothing happens until it is iterated."""
    return ImportCommitter(records, sink, batch_size, cancel_token)
