"""Repository for tag storage and retrieval."""
import logging
from typing import Dict, Iterable, List

from sqlalchemy import delete, func, select
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import IntegrityError

from notes_mcp.models.db_models import DBTag
from notes_mcp.storage.base import Repository, constraint_violation

logger = logging.getLogger(__name__)


class TagRepository(Repository):
    """Repository for managing tags.

    Tags are owned by a single note: a row is a (name, note_id) pair and
    the pair is unique. The same name may appear on many notes.
    """

    def add_tag(self, note_id: int, tag_name: str) -> None:
        """Add a tag to a note. Re-adding an existing tag is a no-op.

        Args:
            note_id: The note ID.
            tag_name: The tag name.

        Raises:
            ConstraintViolationError: If the note does not exist.
        """
        self.add_tags(note_id, [tag_name])

    def add_tags(self, note_id: int, tag_names: Iterable[str]) -> None:
        """Add several tags to a note in one transaction.

        Duplicate (name, note_id) pairs are silently ignored.

        Args:
            note_id: The note ID.
            tag_names: Tag names to attach.

        Raises:
            ConstraintViolationError: If the note does not exist.
        """
        names = list(dict.fromkeys(tag_names))
        if not names:
            return

        stmt = (
            sqlite_insert(DBTag)
            .values([{"name": name, "note_id": note_id} for name in names])
            .on_conflict_do_nothing(index_elements=["name", "note_id"])
        )
        with self.write_lock, self.session_factory() as session:
            try:
                session.execute(stmt)
                session.commit()
            except IntegrityError as e:
                session.rollback()
                raise constraint_violation(
                    e, f"Cannot tag note {note_id}", field="note_id", value=note_id
                ) from e
        logger.debug(f"Tagged note {note_id} with {names}")

    def remove_tags(self, note_id: int, tag_names: Iterable[str]) -> int:
        """Remove tags from a note. Names the note does not carry are ignored.

        Args:
            note_id: The note ID.
            tag_names: Tag names to detach.

        Returns:
            Number of tag rows deleted.
        """
        names = list(dict.fromkeys(tag_names))
        if not names:
            return 0

        with self.write_lock, self.session_factory() as session:
            result = session.execute(
                delete(DBTag)
                .where(DBTag.note_id == note_id, DBTag.name.in_(names))
                .execution_options(synchronize_session=False)
            )
            session.commit()
            return result.rowcount

    def get_tags_for_note(self, note_id: int) -> List[str]:
        """Get all tag names of a note in the order they were added."""
        return self.get_tags_for_notes([note_id]).get(note_id, [])

    def get_tags_for_notes(self, note_ids: Iterable[int]) -> Dict[int, List[str]]:
        """Get tag names for several notes with a single query.

        Args:
            note_ids: The note IDs to look up.

        Returns:
            Mapping of note ID to its tag names. Every requested ID is
            present, with an empty list when the note has no tags.
        """
        ids = list(dict.fromkeys(note_ids))
        tags_by_note: Dict[int, List[str]] = {note_id: [] for note_id in ids}
        if not ids:
            return tags_by_note

        with self.session_factory() as session:
            rows = session.execute(
                select(DBTag.note_id, DBTag.name)
                .where(DBTag.note_id.in_(ids))
                .order_by(DBTag.id)
            ).all()

        for note_id, name in rows:
            tags_by_note[note_id].append(name)
        return tags_by_note

    def get_with_counts(self) -> Dict[str, int]:
        """Get all tag names with the number of notes carrying them."""
        with self.session_factory() as session:
            result = session.execute(
                select(DBTag.name, func.count(DBTag.note_id))
                .group_by(DBTag.name)
                .order_by(DBTag.name)
            ).all()

            return {name: count for name, count in result}
