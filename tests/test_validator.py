"""Tests for validator module."""

from drais.config import ImportConfig
from drais.errors import IssueKind
from drais.ingest.validator import RowValidator, summarize, validate

CLASSES = ImportConfig().valid_classes


def _record(**overrides):
    record = {"name": "John Doe", "gender": "Male", "class": "P5", "parent_phone": "256701234567"}
    record.update(overrides)
    return record


def _validator(**kwargs):
    return RowValidator(CLASSES, **kwargs)


def test_valid_record_has_no_issues():
    assert _validator().validate([_record()]) == []


def test_missing_name_is_the_only_issue():
    issues = _validator().validate([_record(name="")])
    assert len(issues) == 1
    assert issues[0].field == "name"
    assert issues[0].kind is IssueKind.MISSING_VALUE


def test_whitespace_name_is_missing():
    issues = _validator().validate([_record(name="   ")])
    assert [i.kind for i in issues] == [IssueKind.MISSING_VALUE]


class TestGender:
    def test_case_insensitive(self):
        assert _validator().validate([_record(gender="female"), _record(name="B", gender="MALE")]) == []

    def test_invalid(self):
        issues = _validator().validate([_record(gender="Boy")])
        assert [(i.field, i.kind) for i in issues] == [("gender", IssueKind.INVALID_ENUM)]

    def test_empty_is_invalid_enum(self):
        issues = _validator().validate([_record(gender="")])
        assert issues[0].kind is IssueKind.INVALID_ENUM

    def test_configured_set(self):
        v = _validator(allowed_genders=["M", "F"])
        assert v.validate([_record(gender="m")]) == []
        assert v.validate([_record(gender="Male")])[0].kind is IssueKind.INVALID_ENUM


class TestPhone:
    def test_too_short(self):
        issues = _validator().validate([_record(parent_phone="070555")])
        assert [(i.field, i.kind) for i in issues] == [("parent_phone", IssueKind.INVALID_FORMAT)]
        assert issues[0].message == "Invalid phone number format"

    def test_country_code(self):
        assert _validator().validate([_record(parent_phone="256705555555")]) == []

    def test_plus_prefix_and_spaces(self):
        assert _validator().validate([_record(parent_phone="+256 705 555 555")]) == []

    def test_letters(self):
        issues = _validator().validate([_record(parent_phone="07012345AB")])
        assert issues[0].kind is IssueKind.INVALID_FORMAT


class TestClass:
    def test_unknown_class(self):
        issues = _validator().validate([_record(**{"class": "P8"})])
        assert [(i.field, i.kind) for i in issues] == [("class", IssueKind.UNKNOWN_REFERENCE)]
        assert issues[0].message == "Class 'P8' not found in system"

    def test_known_classes(self):
        records = [_record(name=f"Student {c}", **{"class": c}) for c in CLASSES]
        assert _validator().validate(records) == []

    def test_case_insensitive(self):
        assert _validator().validate([_record(**{"class": "s3"})]) == []


class TestOrdering:
    def test_row_then_field_order(self):
        records = [
            _record(parent_phone="1", **{"class": "X"}),
            _record(name="", gender="?"),
        ]
        issues = _validator().validate(records)
        assert [(i.row_index, i.field) for i in issues] == [
            (0, "class"), (0, "parent_phone"), (1, "name"), (1, "gender"),
        ]

    def test_multiple_issues_per_row(self):
        issues = _validator().validate([{"name": "", "gender": "", "class": "", "parent_phone": ""}])
        assert [i.field for i in issues] == ["name", "gender", "class", "parent_phone"]

    def test_sheet_row(self):
        issues = _validator().validate([_record(), _record(name="")])
        assert issues[0].row_index == 1
        assert issues[0].sheet_row == 3


def test_revalidation_is_identical():
    records = [_record(name=""), _record(gender="x"), _record(**{"class": "P9"})]
    v = _validator()
    assert v.validate(records) == v.validate(records)


def test_validate_does_not_mutate_records():
    records = [_record(name="  John  ")]
    _validator().validate(records)
    assert records[0]["name"] == "  John  "


class TestDuplicates:
    def test_same_name_same_class(self):
        records = [_record(), _record(name="john  doe")]
        issues = _validator().validate(records)
        assert [(i.row_index, i.field, i.kind) for i in issues] == [
            (1, "name", IssueKind.DUPLICATE_RECORD),
        ]

    def test_same_name_other_class(self):
        records = [_record(), _record(**{"class": "P6"})]
        assert _validator().validate(records) == []

    def test_disabled(self):
        records = [_record(), _record()]
        assert _validator(detect_duplicates=False).validate(records) == []


def test_module_level_validate():
    issues = validate([_record(parent_phone="070555")], CLASSES)
    assert issues[0].kind is IssueKind.INVALID_FORMAT


def test_summarize():
    issues = _validator().validate([_record(name=""), _record(name="", gender="x")])
    assert summarize(issues) == {IssueKind.MISSING_VALUE: 2, IssueKind.INVALID_ENUM: 1}
