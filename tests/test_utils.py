"""Tests for helper functions and the exception hierarchy."""
import pytest

from notes_mcp.exceptions import (
    ConstraintViolationError,
    ErrorCode,
    NoteNotFoundError,
    NotesError,
    ValidationError,
)
from notes_mcp.utils import clean_tag_names, escape_like_pattern


class TestEscapeLikePattern:
    @pytest.mark.parametrize(
        "raw, escaped",
        [
            ("100% complete", "100\\% complete"),
            ("file_name", "file\\_name"),
            ("back\\slash", "back\\\\slash"),
            ("plain", "plain"),
        ],
    )
    def test_escapes_wildcards(self, raw, escaped):
        assert escape_like_pattern(raw) == escaped


class TestCleanTagNames:
    def test_strips_and_dedupes(self):
        assert clean_tag_names([" work ", "", "home", "work", "  "]) == ["work", "home"]

    def test_none_entries_skipped(self):
        assert clean_tag_names(["a", None, "b"]) == ["a", "b"]


class TestExceptions:
    def test_not_found_defaults(self):
        error = NoteNotFoundError("Groceries")
        assert error.message == "Note 'Groceries' not found"
        assert error.code == ErrorCode.NOTE_NOT_FOUND
        assert error.details == {"identifier": "Groceries"}
        assert isinstance(error, NotesError)

    def test_to_dict(self):
        error = ValidationError("Title is required", field="title", code=ErrorCode.NOTE_TITLE_REQUIRED)
        assert error.to_dict() == {
            "error": "ValidationError",
            "code": 1004,
            "code_name": "NOTE_TITLE_REQUIRED",
            "message": "Title is required",
            "details": {"field": "title"},
        }

    def test_str_includes_details(self):
        error = ConstraintViolationError("dup", field="title", value="x")
        assert str(error) == "[CONSTRAINT_VIOLATION] dup (field=title, value=x)"
        assert str(NotesError("plain")) == "[VALIDATION_FAILED] plain"

    def test_value_truncated(self):
        error = ConstraintViolationError("dup", value="v" * 500)
        assert len(error.details["value"]) == 100
