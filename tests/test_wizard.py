"""Tests for the import wizard controller."""

import pytest

from drais.config import ImportConfig
from drais.errors import IssueKind, WizardStateError
from drais.ingest.wizard import WizardController, WizardStep
from drais.roster.import_log import ImportLog
from drais.roster.store import RosterStore

GOOD_CSV = (
    "Student Name,Sex,Grade,Guardian_Phone\n"
    "John Doe,Male,P5,256701234567\n"
    "Jane Smith,Female,P4,256709876543\n"
    "David Wilson,Male,P6,256705555555\n"
).encode("utf-8")

BAD_CSV = (
    "Name,Gender,Class,Parent Phone\n"
    "John Doe,Male,P5,256701234567\n"
    "Jane Smith,Female,P8,070555\n"
).encode("utf-8")


@pytest.fixture
def config():
    return ImportConfig(commit_batch_size=2, commit_tick_seconds=0)


@pytest.fixture
def roster(config):
    return RosterStore(class_codes=config.valid_classes)


@pytest.fixture
def wizard(config, roster):
    return WizardController(config, roster, ImportLog())


def _to_review(wizard, data=GOOD_CSV):
    assert wizard.load_file(data, "roster.csv")
    assert wizard.advance()


class TestUpload:
    def test_initial_state(self, wizard):
        assert wizard.step is WizardStep.UPLOAD
        assert not wizard.can_advance()
        assert not wizard.advance()

    def test_load_moves_to_map_with_suggestion(self, wizard):
        assert wizard.load_file(GOOD_CSV, "roster.csv")
        assert wizard.step is WizardStep.MAP
        assert wizard.session.mapper.mapping == {
            "name": "Student Name", "gender": "Sex",
            "class": "Grade", "parent_phone": "Guardian_Phone",
        }
        assert len(wizard.session.rows) == 3

    def test_unsupported_file_stays_on_upload(self, wizard):
        assert not wizard.load_file(GOOD_CSV, "roster.pdf")
        assert wizard.step is WizardStep.UPLOAD
        assert wizard.session.error_kind is IssueKind.UNSUPPORTED_FILE_TYPE
        assert wizard.session.error

    def test_empty_file_stays_on_upload(self, wizard):
        assert not wizard.load_file(b"Name,Gender\n", "roster.csv")
        assert wizard.step is WizardStep.UPLOAD
        assert wizard.session.error_kind is IssueKind.EMPTY_FILE

    def test_retry_after_rejection(self, wizard):
        wizard.load_file(GOOD_CSV, "roster.txt")
        assert wizard.load_file(GOOD_CSV, "roster.csv")
        assert wizard.session.error is None

    def test_corrupt_workbook_stays_on_upload(self, wizard):
        assert not wizard.load_file(b"not really a spreadsheet", "roster.xlsx")
        assert wizard.step is WizardStep.UPLOAD
        assert wizard.session.error_kind is IssueKind.UNSUPPORTED_FILE_TYPE

    def test_same_name_reupload_is_new(self, wizard):
        assert not wizard.load_file(b"Name,Gender\n", "roster.csv", "upload-1")
        assert not wizard.is_new_upload("upload-1")
        assert wizard.is_new_upload("upload-2")
        assert wizard.load_file(GOOD_CSV, "roster.csv", "upload-2")
        assert wizard.step is WizardStep.MAP
        assert wizard.session.upload_id == "upload-2"


class TestMapGate:
    def test_incomplete_mapping_blocks_review(self, wizard):
        wizard.load_file(GOOD_CSV, "roster.csv")
        wizard.set_mapping("gender", "")
        assert not wizard.advance()
        assert wizard.step is WizardStep.MAP
        assert wizard.session.error_kind is IssueKind.INCOMPLETE_MAPPING
        assert "Gender" in wizard.session.error

    def test_every_missing_field_blocks(self, wizard):
        wizard.load_file(GOOD_CSV, "roster.csv")
        suggested = wizard.session.mapper.mapping
        for field, column in suggested.items():
            wizard.set_mapping(field, "")
            assert not wizard.can_advance()
            assert not wizard.advance()
            assert wizard.step is WizardStep.MAP
            wizard.set_mapping(field, column)
        assert wizard.can_advance()

    def test_conflicting_mapping_blocks(self, wizard):
        wizard.load_file(GOOD_CSV, "roster.csv")
        wizard.set_mapping("class", "Sex")
        assert wizard.session.mapper.is_complete()
        assert not wizard.advance()
        assert wizard.session.error_kind is IssueKind.MAPPING_CONFLICT

    def test_unmapped_headers_need_manual_mapping(self, wizard):
        data = b"Pupil,Gender,Class,Parent Phone\nJohn Doe,Male,P5,256701234567\n"
        wizard.load_file(data, "roster.csv")
        assert wizard.blocking_reason()[0] is IssueKind.INCOMPLETE_MAPPING
        wizard.set_mapping("name", "Pupil")
        assert wizard.advance()
        assert wizard.step is WizardStep.REVIEW

    def test_set_mapping_outside_map(self, wizard):
        with pytest.raises(WizardStateError):
            wizard.set_mapping("name", "Name")

    def test_preview_in_map(self, wizard):
        wizard.load_file(GOOD_CSV, "roster.csv")
        assert wizard.preview(2)[0]["name"] == "John Doe"
        assert len(wizard.preview(2)) == 2


class TestReviewGate:
    def test_clean_file_reaches_review_without_issues(self, wizard):
        _to_review(wizard)
        assert wizard.step is WizardStep.REVIEW
        assert wizard.session.issues == []
        assert wizard.can_advance()

    def test_issues_block_import(self, wizard):
        _to_review(wizard, BAD_CSV)
        kinds = [(i.row_index, i.field, i.kind) for i in wizard.session.issues]
        assert kinds == [
            (1, "class", IssueKind.UNKNOWN_REFERENCE),
            (1, "parent_phone", IssueKind.INVALID_FORMAT),
        ]
        assert not wizard.can_advance()
        assert not wizard.advance()
        assert wizard.step is WizardStep.REVIEW

    def test_back_keeps_mapping(self, wizard):
        _to_review(wizard)
        assert wizard.back()
        assert wizard.step is WizardStep.MAP
        assert wizard.session.mapper.is_complete()
        assert wizard.advance()

    def test_remap_and_revalidate(self, wizard):
        data = (
            "Name,Gender,Class,Parent Phone,Mobile\n"
            "John Doe,Male,P5,070555,256701234567\n"
        ).encode("utf-8")
        _to_review(wizard, data)
        assert wizard.session.issues
        wizard.back()
        wizard.set_mapping("parent_phone", "Mobile")
        assert wizard.advance()
        assert wizard.session.issues == []

    def test_revalidation_is_stable(self, wizard):
        _to_review(wizard, BAD_CSV)
        first = list(wizard.session.issues)
        assert wizard.validate() == first


class TestImport:
    def test_full_flow(self, wizard, roster):
        _to_review(wizard)
        assert wizard.advance()
        assert wizard.step is WizardStep.IMPORT

        values = [p.percent for p in wizard.run_import()]
        assert values[-1] == 100
        assert values == sorted(values)
        assert wizard.is_import_finished
        assert wizard.session.tally.succeeded == 3
        assert wizard.session.import_log_id == 1
        assert len(roster) == 3

    def test_back_refused_during_import(self, wizard):
        _to_review(wizard)
        wizard.advance()
        it = wizard.run_import()
        next(it)
        assert not wizard.back()
        assert not wizard.reset()
        assert wizard.step is WizardStep.IMPORT
        list(it)
        assert not wizard.back()

    def test_run_import_twice(self, wizard):
        _to_review(wizard)
        wizard.advance()
        list(wizard.run_import())
        with pytest.raises(WizardStateError):
            list(wizard.run_import())

    def test_partial_failure_reported(self, wizard, roster):
        _to_review(wizard)
        wizard.advance()
        list(wizard.run_import())
        wizard.reset()

        _to_review(wizard)
        wizard.advance()
        list(wizard.run_import())
        tally = wizard.session.tally
        assert (tally.succeeded, tally.failed) == (0, 3)
        assert wizard.session.error_kind is IssueKind.COMMIT_PARTIAL_FAILURE
        assert wizard.import_log.get(2).status == "partial"
        assert len(roster) == 3

    def test_interrupted_import_rolls_back(self, wizard, roster):
        _to_review(wizard)
        wizard.advance()
        it = wizard.run_import()
        next(it)
        next(it)
        it.close()
        assert wizard.is_import_finished
        assert wizard.session.tally.cancelled
        assert len(roster) == 0
        assert len(wizard.import_log) == 0
        assert wizard.reset()

    def test_import_more_resets(self, wizard):
        _to_review(wizard)
        wizard.advance()
        list(wizard.run_import())
        assert wizard.reset()
        assert wizard.step is WizardStep.UPLOAD
        assert wizard.session.file_name == ""
        assert wizard.session.tally is None

    def test_run_import_before_import_step(self, wizard):
        _to_review(wizard)
        with pytest.raises(WizardStateError):
            next(wizard.run_import())


def test_step_titles():
    assert [s.title for s in WizardStep] == ["Upload File", "Map Columns", "Review Data", "Import"]
