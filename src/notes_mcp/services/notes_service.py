"""Service layer for note operations.

Sits between the MCP tools and the repositories: turns loose arguments
into typed requests, stamps modification times and decides when an absent
note is an error.
"""

import logging
from typing import Any, Dict, List, Optional

from notes_mcp.exceptions import (
    ConstraintViolationError,
    ErrorCode,
    NoteNotFoundError,
    ValidationError,
)
from notes_mcp.models.schema import (
    Folder,
    Note,
    NoteCreate,
    NoteUpdate,
    Priority,
    SearchPage,
    SearchRequest,
    timestamp_after,
)
from notes_mcp.storage.folder_repository import FolderRepository
from notes_mcp.storage.note_repository import NoteRepository
from notes_mcp.storage.tag_repository import TagRepository
from notes_mcp.utils import clean_tag_names

logger = logging.getLogger(__name__)


class NotesService:
    """Service for managing notes, tags and folders."""

    def __init__(
        self,
        repository: Optional[NoteRepository] = None,
        folder_repository: Optional[FolderRepository] = None,
        engine: Optional[Any] = None,
    ):
        """Initialize the service.

        Args:
            repository: Note storage backend. Created with defaults if None.
            folder_repository: Folder storage backend. Shares the note
                repository's engine when None.
            engine: Pre-configured SQLAlchemy engine, used only for the
                repositories created here.
        """
        if repository is None:
            repository = NoteRepository(engine=engine)
        self.repository = repository
        self.tags: TagRepository = repository.tags
        self.folders = folder_repository or FolderRepository(repository.engine)

    # ------------------------------------------------------------------
    # Notes
    # ------------------------------------------------------------------

    def create_note(
        self,
        title: str,
        content: str,
        folder: Optional[str] = None,
        priority: Optional[Priority] = None,
        due_date: Optional[str] = None,
    ) -> Note:
        """Create a new note.

        Raises:
            ValidationError: If the title is blank.
            ConstraintViolationError: If the title is already used.
        """
        if not title or not title.strip():
            raise ValidationError(
                "Title is required", field="title", code=ErrorCode.NOTE_TITLE_REQUIRED
            )
        if content is None:
            raise ValidationError(
                "Content is required",
                field="content",
                code=ErrorCode.NOTE_VALIDATION_FAILED,
            )
        payload = NoteCreate(
            title=title,
            content=content,
            folder=folder,
            priority=priority,
            due_date=due_date,
        )
        return self.repository.create_note(payload)

    def get_note(self, title: str) -> Note:
        """Get a note by title.

        Raises:
            NoteNotFoundError: If no note has that title.
        """
        note = self.repository.get_note_by_title(title)
        if note is None:
            raise NoteNotFoundError(title, f"No note titled '{title}'")
        return note

    def get_note_by_id(self, note_id: int) -> Note:
        """Get a note by ID.

        Raises:
            NoteNotFoundError: If the ID is unknown.
        """
        note = self.repository.get_note_by_id(note_id)
        if note is None:
            raise NoteNotFoundError(note_id)
        return note

    def update_note(self, title: str, changes: NoteUpdate) -> Note:
        """Apply a partial update to the note with the given title.

        The modification stamp is always refreshed and is guaranteed to
        sort after the previous one.

        Returns:
            The note as stored after the update.

        Raises:
            NoteNotFoundError: If the note is missing or vanished mid-update.
            ConstraintViolationError: If a new title is already used.
        """
        # Held across lookup and write so no other writer can stamp in between
        with self.repository.write_lock:
            note = self.get_note(title)
            stamp = timestamp_after(note.updated_at)
            if not self.repository.update_note(note.id, changes, updated_at=stamp):
                raise NoteNotFoundError(title, f"Note '{title}' vanished during update")
        return self.get_note_by_id(note.id)

    def delete_note(self, title: str) -> Note:
        """Delete the note with the given title along with its tags.

        Returns:
            The note as it was before deletion.

        Raises:
            NoteNotFoundError: If the note is missing or vanished mid-delete.
        """
        with self.repository.write_lock:
            note = self.get_note(title)
            if not self.repository.delete_note(note.id):
                raise NoteNotFoundError(title, f"Note '{title}' vanished during delete")
        return note

    def list_notes(
        self,
        folder: Optional[str] = None,
        priority: Optional[Priority] = None,
        limit: Optional[int] = None,
        offset: int = 0,
    ) -> SearchPage:
        """List notes without any text predicate, most recently updated first."""
        request = SearchRequest(
            query="", folder=folder, priority=priority, limit=limit, offset=offset
        )
        return self.search_notes(request)

    def search_notes(self, request: SearchRequest) -> SearchPage:
        """Run a search and report the page together with the total match count."""
        notes = self.repository.search_notes(request)
        if request.limit is None:
            total = len(notes)
        else:
            total = self.repository.count_search_results(request)
        return SearchPage(
            notes=notes,
            total=total,
            limit=request.limit,
            offset=request.offset if request.limit is not None else 0,
        )

    # ------------------------------------------------------------------
    # Tags
    # ------------------------------------------------------------------

    def add_tags(self, title: str, tags: List[str]) -> Note:
        """Attach tags to a note. Tags it already carries are left as is.

        Raises:
            NoteNotFoundError: If no note has that title, or it was deleted
                before the tags could be written.
            ValidationError: If no usable tag name was given.
        """
        names = self._require_tags(tags)
        with self.repository.write_lock:
            note = self.get_note(title)
            try:
                self.tags.add_tags(note.id, names)
            except ConstraintViolationError as e:
                if e.code != ErrorCode.REFERENCE_VIOLATION:
                    raise
                raise NoteNotFoundError(
                    title, f"Note '{title}' vanished before it could be tagged"
                ) from e
            return self.get_note_by_id(note.id)

    def remove_tags(self, title: str, tags: List[str]) -> Note:
        """Detach tags from a note. Names it does not carry are ignored.

        Raises:
            NoteNotFoundError: If no note has that title.
            ValidationError: If no usable tag name was given.
        """
        names = self._require_tags(tags)
        with self.repository.write_lock:
            note = self.get_note(title)
            removed = self.tags.remove_tags(note.id, names)
            logger.debug(f"Removed {removed} tag(s) from note {note.id}")
            return self.get_note_by_id(note.id)

    def list_tags(self) -> Dict[str, int]:
        """All tag names with the number of notes carrying each."""
        return self.tags.get_with_counts()

    @staticmethod
    def _require_tags(tags: List[str]) -> List[str]:
        names = clean_tag_names(tags or [])
        if not names:
            raise ValidationError(
                "At least one non-empty tag is required",
                field="tags",
                code=ErrorCode.TAG_INVALID,
            )
        return names

    # ------------------------------------------------------------------
    # Folders
    # ------------------------------------------------------------------

    def create_folder(self, name: str) -> Folder:
        """Create a folder.

        Raises:
            ValidationError: If the name is blank.
            ConstraintViolationError: If the name is already used.
        """
        if not name or not name.strip():
            raise ValidationError(
                "Folder name is required",
                field="name",
                code=ErrorCode.FOLDER_NAME_REQUIRED,
            )
        return self.folders.create_folder(name.strip())

    def list_folders(self) -> List[Folder]:
        """All folders ordered by name."""
        return self.folders.get_all()

    # ------------------------------------------------------------------
    # Status
    # ------------------------------------------------------------------

    def get_stats(self) -> Dict[str, Any]:
        """Counts used by the status tool."""
        by_folder = self.repository.count_notes_by_folder()
        return {
            "total_notes": self.repository.count_notes(),
            "total_folders": len(self.folders.get_all()),
            "total_tags": len(self.tags.get_with_counts()),
            "notes_by_folder": {
                (folder if folder is not None else "(none)"): count
                for folder, count in by_folder.items()
            },
        }
