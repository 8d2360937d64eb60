"""Issue kinds and exceptions raised along the import pipeline."""

from enum import Enum


class IssueKind(str, Enum):
    """Every reason an import can stop or a row can be rejected."""
    UNSUPPORTED_FILE_TYPE = "UnsupportedFileType"
    EMPTY_FILE = "EmptyFile"
    INCOMPLETE_MAPPING = "IncompleteMapping"
    MAPPING_CONFLICT = "MappingConflict"
    MISSING_VALUE = "MissingValue"
    INVALID_ENUM = "InvalidEnum"
    UNKNOWN_REFERENCE = "UnknownReference"
    INVALID_FORMAT = "InvalidFormat"
    DUPLICATE_RECORD = "DuplicateRecord"
    COMMIT_PARTIAL_FAILURE = "CommitPartialFailure"


class ImportPipelineError(Exception):
    """Base class for import errors. Carries the matching IssueKind."""
    kind: IssueKind | None = None

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class UnsupportedFileType(ImportPipelineError):
    kind = IssueKind.UNSUPPORTED_FILE_TYPE


class EmptyFile(ImportPipelineError):
    kind = IssueKind.EMPTY_FILE


class StudentConflict(ImportPipelineError):
    """A record the roster refuses to store."""
    kind = IssueKind.COMMIT_PARTIAL_FAILURE


class WizardStateError(ImportPipelineError):
    """An operation was called in a state that does not allow it."""
