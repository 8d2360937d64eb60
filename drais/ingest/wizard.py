"""Four-step import wizard: Upload -> Map -> Review -> Import.

The controller owns the single ImportSession. User-facing failures (bad file,
incomplete mapping, validation issues) never raise; they leave the wizard on
its current step and are reported through ``session.error`` and
``blocking_reason()``. Calling an operation in the wrong step is a
programming error and raises WizardStateError.
"""

import logging
import time
from dataclasses import dataclass, field
from datetime import datetime
from enum import IntEnum
from typing import Iterator

from drais.config import ImportConfig
from drais.errors import EmptyFile, IssueKind, UnsupportedFileType, WizardStateError
from drais.ingest.column_mapper import ColumnMapper
from drais.ingest.committer import CommitTally, ImportCommitter, ImportProgress
from drais.ingest.file_reader import read_table
from drais.ingest.schema import suggest_mapping
from drais.ingest.validator import RowValidator, ValidationIssue
from drais.roster.import_log import ImportLog
from drais.roster.store import RosterStore

logger = logging.getLogger(__name__)


class WizardStep(IntEnum):
    UPLOAD = 1
    MAP = 2
    REVIEW = 3
    IMPORT = 4

    @property
    def title(self) -> str:
        return _STEP_TEXT[self][0]

    @property
    def description(self) -> str:
        return _STEP_TEXT[self][1]


_STEP_TEXT = {
    WizardStep.UPLOAD: ("Upload File", "Select your Excel file"),
    WizardStep.MAP: ("Map Columns", "Match columns to fields"),
    WizardStep.REVIEW: ("Review Data", "Check for errors"),
    WizardStep.IMPORT: ("Import", "Complete the import"),
}


@dataclass
class ImportSession:
    file_name: str = ""
    upload_id: str | None = None
    headers: list[str] = field(default_factory=list)
    rows: list[dict] = field(default_factory=list)
    mapper: ColumnMapper | None = None
    records: list[dict] = field(default_factory=list)
    issues: list[ValidationIssue] = field(default_factory=list)
    progress: ImportProgress | None = None
    tally: CommitTally | None = None
    error: str | None = None
    error_kind: IssueKind | None = None
    started_at: datetime | None = None
    import_log_id: int | None = None

    def set_error(self, kind: IssueKind | None, message: str | None) -> None:
        self.error_kind = kind
        self.error = message


class WizardController:
    def __init__(self, config: ImportConfig, roster: RosterStore, import_log: ImportLog | None = None):
        self.config = config
        self.roster = roster
        self.import_log = import_log
        self._step = WizardStep.UPLOAD
        self._session = ImportSession()
        self._committer: ImportCommitter | None = None

    @property
    def step(self) -> WizardStep:
        return self._step

    @property
    def session(self) -> ImportSession:
        return self._session

    def _require(self, step: WizardStep) -> None:
        if self._step is not step:
            raise WizardStateError(f"Expected step {step.name}, wizard is at {self._step.name}")

    # -- Upload -------------------------------------------------------------

    def is_new_upload(self, upload_id: str) -> bool:
        """True unless ``upload_id`` is the upload this session last saw."""
        return upload_id != self._session.upload_id

    def load_file(self, source, file_name: str, upload_id: str | None = None) -> bool:
        """Decode an upload and move to Map with a suggested mapping.

        Returns False, staying on Upload, if the file is rejected.
        ``upload_id`` identifies the upload widget's file, so a corrected
        file with the same name is still seen as new.
        """
        self._require(WizardStep.UPLOAD)
        try:
            decoded = read_table(source, file_name, self.config.accepted_extensions)
        except (UnsupportedFileType, EmptyFile) as e:
            logger.info("Rejected upload %s: %s", file_name, e.message)
            self._session = ImportSession(file_name=file_name, upload_id=upload_id)
            self._session.set_error(e.kind, e.message)
            return False

        mapping = suggest_mapping(decoded.headers)
        logger.info("Suggested mapping for %s: %s", file_name, mapping)
        self._session = ImportSession(
            file_name=file_name,
            upload_id=upload_id,
            headers=decoded.headers,
            rows=decoded.rows,
            mapper=ColumnMapper(decoded.headers, mapping),
        )
        self._step = WizardStep.MAP
        return True

    # -- Map ----------------------------------------------------------------

    def set_mapping(self, field: str, column: str | None) -> None:
        self._require(WizardStep.MAP)
        self._session.mapper.set_mapping(field, column)
        self._session.set_error(None, None)

    def blocking_reason(self) -> tuple[IssueKind, str] | None:
        """Why the wizard cannot advance from the current step, if it cannot."""
        s = self._session
        if self._step is WizardStep.MAP:
            missing = s.mapper.missing_fields()
            if missing:
                labels = ", ".join(f.label for f in missing)
                return IssueKind.INCOMPLETE_MAPPING, f"Select a column for: {labels}"
            conflicts = s.mapper.conflicts()
            if conflicts:
                column, keys = next(iter(conflicts.items()))
                return (IssueKind.MAPPING_CONFLICT,
                        f"Column '{column}' is mapped to more than one field ({', '.join(keys)})")
        elif self._step is WizardStep.REVIEW:
            if s.issues:
                return (s.issues[0].kind,
                        f"{len(s.issues)} validation issue(s) must be fixed before importing")
        return None

    def can_advance(self) -> bool:
        if self._step not in (WizardStep.MAP, WizardStep.REVIEW):
            return False
        return self.blocking_reason() is None

    def _validator(self) -> RowValidator:
        return RowValidator(
            valid_classes=self.roster.class_codes(),
            allowed_genders=self.config.allowed_genders,
            phone_pattern=self.config.phone_pattern,
            detect_duplicates=self.config.detect_duplicates,
        )

    def validate(self) -> list[ValidationIssue]:
        """Project the rows through the mapping and (re)run validation."""
        s = self._session
        s.records = s.mapper.project(s.rows)
        s.issues = self._validator().validate(s.records)
        logger.info("Validated %d rows of %s: %d issues", len(s.records), s.file_name, len(s.issues))
        return s.issues

    def advance(self) -> bool:
        """Move forward one step if the current step's guard allows it."""
        if self._step not in (WizardStep.MAP, WizardStep.REVIEW):
            return False

        reason = self.blocking_reason()
        if reason is not None:
            self._session.set_error(*reason)
            return False
        self._session.set_error(None, None)

        if self._step is WizardStep.MAP:
            self.validate()
            self._step = WizardStep.REVIEW
        else:
            self._committer = ImportCommitter(
                self._session.records, self.roster, self.config.commit_batch_size,
            )
            self._session.started_at = datetime.now()
            self._step = WizardStep.IMPORT
        return True

    def back(self) -> bool:
        """Return to the previous step. Not allowed once the import has started."""
        if self._step in (WizardStep.UPLOAD, WizardStep.IMPORT):
            return False
        self._step = WizardStep(self._step - 1)
        self._session.set_error(None, None)
        return True

    def preview(self, n: int | None = None) -> list[dict]:
        """First ``n`` mapped records, for the review table."""
        n = self.config.preview_rows if n is None else n
        s = self._session
        records = s.records if self._step >= WizardStep.REVIEW else s.mapper.project(s.rows[:n])
        return records[:n]

    # -- Import -------------------------------------------------------------

    @property
    def is_import_finished(self) -> bool:
        return self._step is WizardStep.IMPORT and self._session.tally is not None

    def run_import(self, tick_seconds: float | None = None) -> Iterator[ImportProgress]:
        """Drive the commit, yielding progress with ``tick_seconds`` between updates."""
        self._require(WizardStep.IMPORT)
        if self._committer.started:
            raise WizardStateError("This import has already been run")
        tick = self.config.commit_tick_seconds if tick_seconds is None else tick_seconds

        progress_iter = iter(self._committer)
        try:
            for progress in progress_iter:
                self._session.progress = progress
                yield progress
                if tick and not progress.done:
                    time.sleep(tick)
        finally:
            progress_iter.close()
            if self._committer.tally is None:
                # Abandoned mid-run; the roster transaction was rolled back
                self._session.tally = CommitTally(cancelled=True)
                self._session.set_error(None, "Import was interrupted; no students were added")

        s = self._session
        s.tally = self._committer.tally
        if s.tally.failed:
            s.set_error(s.tally.issue_kind, s.tally.summary())
        if self.import_log is not None and not s.tally.cancelled:
            entry = self.import_log.record(s.file_name, len(s.records), s.tally, s.started_at)
            s.import_log_id = entry.log_id

    def reset(self) -> bool:
        """Discard the session and start over ("Import More").

        Refused while an import is still running.
        """
        if self._step is WizardStep.IMPORT and self._committer.started and not self.is_import_finished:
            return False
        self._session = ImportSession()
        self._committer = None
        self._step = WizardStep.UPLOAD
        return True
