"""Tests for the note repository."""
import pytest
from sqlalchemy import func, select

from notes_mcp.exceptions import ConstraintViolationError, ErrorCode
from notes_mcp.models.db_models import DBNote, DBTag
from notes_mcp.models.schema import NoteCreate, NoteUpdate, Priority, timestamp_after


def _tag_rows(repository, note_id=None):
    with repository.session_factory() as session:
        stmt = select(func.count(DBTag.id))
        if note_id is not None:
            stmt = stmt.where(DBTag.note_id == note_id)
        return session.execute(stmt).scalar()


class TestCreateNote:
    def test_create_assigns_id_and_stamps(self, note_repository):
        note = note_repository.create_note(
            NoteCreate(
                title="Groceries",
                content="milk, eggs",
                folder="Home",
                priority=Priority.HIGH,
                due_date="2024-05-01",
            )
        )
        assert note.id is not None
        assert note.title == "Groceries"
        assert note.folder == "Home"
        assert note.priority == Priority.HIGH
        assert note.due_date == "2024-05-01"
        assert note.created_at == note.updated_at
        assert note.tags == []

    def test_ids_are_distinct(self, make_note):
        first = make_note("One")
        second = make_note("Two")
        assert first.id != second.id

    def test_duplicate_title_rejected(self, note_repository, make_note):
        make_note("Groceries", "milk")
        with pytest.raises(ConstraintViolationError) as exc_info:
            make_note("Groceries", "eggs")
        assert exc_info.value.code == ErrorCode.NOTE_ALREADY_EXISTS
        assert exc_info.value.field == "title"
        # The failed insert left nothing behind
        assert note_repository.count_notes() == 1
        assert note_repository.get_note_by_title("Groceries").content == "milk"


class TestGetNote:
    def test_get_by_id_and_title(self, note_repository, make_note):
        created = make_note("Groceries", "milk")
        note_repository.add_tag(created.id, "shopping")

        by_id = note_repository.get_note_by_id(created.id)
        by_title = note_repository.get_note_by_title("Groceries")
        assert by_id == by_title
        assert by_id.tags == ["shopping"]

    def test_absent_note_is_none(self, note_repository):
        assert note_repository.get_note_by_id(999) is None
        assert note_repository.get_note_by_title("missing") is None

    def test_title_lookup_is_exact(self, note_repository, make_note):
        make_note("Groceries")
        assert note_repository.get_note_by_title("groceries") is None


class TestUpdateNote:
    def test_partial_update_keeps_other_fields(self, note_repository, make_note):
        created = make_note("Groceries", "milk", folder="Home", priority=Priority.LOW)
        note_repository.add_tag(created.id, "shopping")
        stamp = timestamp_after(created.updated_at)

        assert note_repository.update_note(
            created.id, NoteUpdate(content="milk, eggs"), updated_at=stamp
        )

        note = note_repository.get_note_by_id(created.id)
        assert note.content == "milk, eggs"
        assert note.title == "Groceries"
        assert note.folder == "Home"
        assert note.priority == Priority.LOW
        assert note.tags == ["shopping"]
        assert note.created_at == created.created_at
        assert note.updated_at == stamp
        assert note.updated_at > note.created_at

    def test_explicit_none_clears_field(self, note_repository, make_note):
        created = make_note("Trip", folder="Travel", due_date="2024-06-01")
        note_repository.update_note(
            created.id,
            NoteUpdate(folder=None, due_date=None),
            updated_at=timestamp_after(created.updated_at),
        )
        note = note_repository.get_note_by_id(created.id)
        assert note.folder is None
        assert note.due_date is None

    def test_empty_update_refreshes_stamp_only(self, note_repository, make_note):
        created = make_note("Trip", "pack")
        stamp = timestamp_after(created.updated_at)
        assert note_repository.update_note(created.id, NoteUpdate(), updated_at=stamp)
        note = note_repository.get_note_by_id(created.id)
        assert note.content == "pack"
        assert note.updated_at == stamp

    def test_missing_note_returns_false(self, note_repository):
        assert not note_repository.update_note(
            42, NoteUpdate(content="x"), updated_at=timestamp_after(None)
        )

    def test_rename_collision_rejected(self, note_repository, make_note):
        make_note("A")
        second = make_note("B")
        with pytest.raises(ConstraintViolationError) as exc_info:
            note_repository.update_note(
                second.id, NoteUpdate(title="A"), updated_at=timestamp_after(None)
            )
        assert exc_info.value.code == ErrorCode.NOTE_ALREADY_EXISTS
        assert note_repository.get_note_by_id(second.id).title == "B"


class TestDeleteNote:
    def test_delete_cascades_to_tags(self, note_repository, make_note):
        doomed = make_note("Doomed")
        kept = make_note("Kept")
        note_repository.add_tag(doomed.id, "x")
        note_repository.add_tag(doomed.id, "y")
        note_repository.add_tag(kept.id, "x")

        assert note_repository.delete_note(doomed.id)

        assert note_repository.get_note_by_id(doomed.id) is None
        assert _tag_rows(note_repository, doomed.id) == 0
        assert note_repository.get_note_by_id(kept.id).tags == ["x"]

    def test_delete_missing_returns_false(self, note_repository):
        assert not note_repository.delete_note(12345)

    def test_deleted_title_can_be_reused(self, note_repository, make_note):
        note = make_note("Reuse")
        note_repository.delete_note(note.id)
        assert make_note("Reuse").title == "Reuse"

    def test_foreign_key_cascade_in_schema(self, note_repository, make_note):
        """Deleting the note row directly also removes its tags."""
        note = make_note("Raw")
        note_repository.add_tag(note.id, "t")
        with note_repository.session_factory() as session:
            session.execute(DBNote.__table__.delete().where(DBNote.id == note.id))
            session.commit()
        assert _tag_rows(note_repository) == 0


class TestTags:
    def test_remove_tags_through_repository(self, note_repository, make_note):
        note = make_note("Tagged")
        note_repository.add_tag(note.id, "a")
        note_repository.add_tag(note.id, "b")
        assert note_repository.remove_tags(note.id, ["a", "zzz"]) == 1
        assert note_repository.get_note_by_id(note.id).tags == ["b"]

    def test_tag_changes_do_not_touch_note_row(self, note_repository, make_note):
        note = make_note("Tagged")
        note_repository.add_tag(note.id, "a")
        assert note_repository.get_note_by_id(note.id).updated_at == note.updated_at


class TestCounts:
    def test_count_notes_by_folder(self, note_repository, make_note):
        make_note("a", folder="Home")
        make_note("b", folder="Home")
        make_note("c", folder="Work")
        make_note("d")
        assert note_repository.count_notes() == 4
        assert note_repository.count_notes_by_folder() == {
            "Home": 2,
            "Work": 1,
            None: 1,
        }
