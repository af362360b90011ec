"""Repository for note storage and retrieval."""

import logging
from typing import Dict, Iterable, List, Optional

from sqlalchemy import delete, func, select, update
from sqlalchemy.exc import IntegrityError

from notes_mcp.exceptions import ErrorCode
from notes_mcp.models.db_models import DBNote, DBTag
from notes_mcp.models.schema import (
    Note,
    NoteCreate,
    NoteUpdate,
    SearchRequest,
    utc_timestamp,
)
from notes_mcp.storage.base import Repository, constraint_violation
from notes_mcp.storage.query_builder import NoteQueryBuilder
from notes_mcp.storage.tag_repository import TagRepository

logger = logging.getLogger(__name__)


class NoteRepository(Repository):
    """Repository for note storage and retrieval.

    Owns every statement touching the notes table and delegates tag rows to
    a TagRepository bound to the same engine. Lookups return None for
    absent notes and mutations return False when no row matched; deciding
    whether absence is an error is left to the caller.
    """

    def __init__(self, engine=None, tag_repository: Optional[TagRepository] = None):
        """Initialize the repository.

        Args:
            engine: SQLAlchemy engine. If None, uses default from config.
            tag_repository: Tag storage sharing the same engine. Created
                            when not given.
        """
        super().__init__(engine)
        self.tags = tag_repository or TagRepository(self.engine)
        logger.info(f"NoteRepository initialized: db_url={self.engine.url}")

    @staticmethod
    def _db_note_to_model(db_note: DBNote, tags: Optional[List[str]] = None) -> Note:
        """Convert a database row into a Note value object."""
        return Note(
            id=db_note.id,
            title=db_note.title,
            content=db_note.content,
            folder=db_note.folder,
            priority=db_note.priority,
            due_date=db_note.due_date,
            created_at=db_note.created_at,
            updated_at=db_note.updated_at,
            tags=list(tags or []),
        )

    def _hydrate(self, db_notes: Iterable[DBNote]) -> List[Note]:
        """Attach tag lists to rows with one batched lookup."""
        db_notes = list(db_notes)
        tags_by_note = self.tags.get_tags_for_notes(n.id for n in db_notes)
        return [self._db_note_to_model(n, tags_by_note[n.id]) for n in db_notes]

    def create_note(self, note: NoteCreate) -> Note:
        """Create a new note.

        Both timestamps are stamped here; callers never supply them.

        Raises:
            ConstraintViolationError: If the title is already taken.
        """
        now = utc_timestamp()
        db_note = DBNote(
            title=note.title,
            content=note.content,
            folder=note.folder,
            priority=note.priority.value if note.priority else None,
            due_date=note.due_date,
            created_at=now,
            updated_at=now,
        )
        with self.write_lock, self.session_factory() as session:
            try:
                session.add(db_note)
                session.flush()
                created = self._db_note_to_model(db_note)
                session.commit()
            except IntegrityError as e:
                session.rollback()
                raise constraint_violation(
                    e,
                    f"A note titled '{note.title}' already exists",
                    field="title",
                    value=note.title,
                    unique_code=ErrorCode.NOTE_ALREADY_EXISTS,
                ) from e

        logger.info(f"Created note {created.id}: '{created.title}'")
        return created

    def get_note_by_id(self, note_id: int) -> Optional[Note]:
        """Get a note by ID with its tags, or None."""
        with self.session_factory() as session:
            db_note = session.get(DBNote, note_id)
        if not db_note:
            return None
        return self._hydrate([db_note])[0]

    def get_note_by_title(self, title: str) -> Optional[Note]:
        """Get a note by its exact title with its tags, or None."""
        with self.session_factory() as session:
            db_note = session.scalar(select(DBNote).where(DBNote.title == title))
        if not db_note:
            return None
        return self._hydrate([db_note])[0]

    def update_note(self, note_id: int, changes: NoteUpdate, updated_at: str) -> bool:
        """Overwrite only the supplied fields of a note.

        ``updated_at`` is always written. The ID and the tags are never
        touched.

        Args:
            note_id: The note to update.
            changes: Partial field set.
            updated_at: New modification stamp, supplied by the caller.

        Returns:
            True if a row was updated, False if the note does not exist.

        Raises:
            ConstraintViolationError: If a new title collides with another note.
        """
        values = changes.changes()
        values["updated_at"] = updated_at

        with self.write_lock, self.session_factory() as session:
            try:
                result = session.execute(
                    update(DBNote)
                    .where(DBNote.id == note_id)
                    .values(**values)
                    .execution_options(synchronize_session=False)
                )
                session.commit()
            except IntegrityError as e:
                session.rollback()
                raise constraint_violation(
                    e,
                    f"A note titled '{values.get('title')}' already exists",
                    field="title",
                    value=values.get("title"),
                    unique_code=ErrorCode.NOTE_ALREADY_EXISTS,
                ) from e

        updated = result.rowcount > 0
        if updated:
            logger.info(f"Updated note {note_id}: fields={sorted(values)}")
        return updated

    def delete_note(self, note_id: int) -> bool:
        """Delete a note together with all of its tags.

        Returns:
            True if the note existed and was deleted, False otherwise.
        """
        with self.write_lock, self.session_factory() as session:
            session.execute(
                delete(DBTag)
                .where(DBTag.note_id == note_id)
                .execution_options(synchronize_session=False)
            )
            result = session.execute(
                delete(DBNote)
                .where(DBNote.id == note_id)
                .execution_options(synchronize_session=False)
            )
            session.commit()

        deleted = result.rowcount > 0
        if deleted:
            logger.info(f"Deleted note {note_id}")
        return deleted

    def add_tag(self, note_id: int, tag_name: str) -> None:
        """Attach a tag to a note; re-adding an existing tag is a no-op."""
        self.tags.add_tag(note_id, tag_name)

    def remove_tags(self, note_id: int, tag_names: List[str]) -> int:
        """Detach the named tags from a note, ignoring names it lacks."""
        return self.tags.remove_tags(note_id, tag_names)

    def search_notes(self, request: SearchRequest) -> List[Note]:
        """Search for notes matching a request.

        Rows are filtered, de-duplicated, sorted and paginated in SQL; tags
        are hydrated afterwards for the returned page only.

        Args:
            request: The structured search request.

        Returns:
            Matching notes in the requested order. Empty when nothing matches.
        """
        builder = NoteQueryBuilder(request)
        with self.session_factory() as session:
            db_notes = session.execute(builder.build()).scalars().all()
        notes = self._hydrate(db_notes)

        logger.debug(
            f"search_notes query={request.query[:30]!r} "
            f"join_tags={builder.needs_tag_join} results={len(notes)}"
        )
        return notes

    def count_search_results(self, request: SearchRequest) -> int:
        """Count notes matching a request without loading them.

        Pagination fields of the request are ignored.
        """
        with self.session_factory() as session:
            result = session.execute(NoteQueryBuilder(request).build_count())
            return result.scalar() or 0

    def count_notes(self) -> int:
        """Get total count of notes in the repository."""
        with self.session_factory() as session:
            result = session.execute(select(func.count(DBNote.id)))
            return result.scalar() or 0

    def count_notes_by_folder(self) -> Dict[Optional[str], int]:
        """Get note counts grouped by folder (None for unfiled notes)."""
        with self.session_factory() as session:
            rows = session.execute(
                select(DBNote.folder, func.count(DBNote.id)).group_by(DBNote.folder)
            ).all()
            return {folder: count for folder, count in rows}
