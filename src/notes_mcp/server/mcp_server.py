"""MCP server implementation for the Notes backend."""

import json
import logging
import uuid
from enum import Enum
from typing import Any, List, Optional, Type, TypeVar

from mcp.server.fastmcp import FastMCP
from pydantic import ValidationError as PydanticValidationError

from notes_mcp.config import config
from notes_mcp.exceptions import ErrorCode, NotesError, ValidationError
from notes_mcp.models.schema import (
    NoteUpdate,
    Priority,
    SearchField,
    SearchRequest,
    SortField,
    SortOrder,
)
from notes_mcp.observability import metrics, timed_operation
from notes_mcp.services.notes_service import NotesService

logger = logging.getLogger(__name__)

MAX_TITLE_LENGTH = 500
MAX_CONTENT_LENGTH = 1_000_000  # 1 MB

E = TypeVar("E", bound=Enum)


def _validate_input_lengths(
    title: Optional[str] = None, content: Optional[str] = None
) -> None:
    """Validate input string lengths at the MCP boundary."""
    if title and len(title) > MAX_TITLE_LENGTH:
        raise ValidationError(
            f"Title exceeds maximum length of {MAX_TITLE_LENGTH} characters",
            field="title",
        )
    if content and len(content) > MAX_CONTENT_LENGTH:
        raise ValidationError(
            f"Content exceeds maximum length of {MAX_CONTENT_LENGTH} characters",
            field="content",
        )


def _normalize(value: str) -> str:
    return value.strip().replace("_", "").lower()


def parse_enum(enum_cls: Type[E], value: str, field: str, code: ErrorCode) -> E:
    """Convert a raw tool argument into an enum member.

    Matching ignores case and underscores, so ``"created_at"`` and
    ``"CreatedAt"`` both resolve to ``SortField.CREATED_AT``.

    Raises:
        ValidationError: If the value names no member.
    """
    wanted = _normalize(value)
    for member in enum_cls:
        if _normalize(member.value) == wanted:
            return member
    valid = ", ".join(m.value for m in enum_cls)
    raise ValidationError(
        f"Invalid {field}: {value}. Valid values are: {valid}",
        field=field,
        value=value,
        code=code,
    )


def _parse_priority(priority: Optional[str]) -> Optional[Priority]:
    if priority is None or not priority.strip():
        return None
    return parse_enum(Priority, priority, "priority", ErrorCode.INVALID_PRIORITY)


def _to_json(payload: Any) -> str:
    return json.dumps(payload, indent=2, ensure_ascii=False)


class NotesMcpServer:
    """MCP server for notes."""

    def __init__(self, engine=None):
        """Initialize the MCP server.

        Args:
            engine: Pre-configured SQLAlchemy engine shared by all
                    repositories. When None, the configured database is used.
        """
        self.mcp = FastMCP(config.server_name)
        self.notes_service = NotesService(engine=engine)
        self._register_tools()
        logger.info("Notes MCP server initialized")

    def format_error_response(self, error: Exception) -> str:
        """Format an error response in a consistent way.

        Args:
            error: The exception that occurred

        Returns:
            Formatted error message with appropriate level of detail
        """
        # Generate a unique error ID for traceability in logs
        error_id = str(uuid.uuid4())[:8]

        if isinstance(error, NotesError):
            logger.warning(
                f"[{error.code.name}] [{error_id}]: {error.message}",
                extra={"error_details": error.details},
            )
            return f"Error: {error.message}"
        elif isinstance(error, PydanticValidationError):
            problems = "; ".join(
                f"{'.'.join(str(p) for p in e['loc']) or 'input'}: {e['msg']}"
                for e in error.errors()
            )
            logger.warning(f"Validation error [{error_id}]: {problems}")
            return f"Error: Invalid input: {problems}"
        elif isinstance(error, ValueError):
            # Log full detail but return generic ref to avoid leaking internals
            logger.error(f"Validation error [{error_id}]: {str(error)}")
            return f"Error: Invalid input (ref: {error_id})"
        elif isinstance(error, (IOError, OSError)):
            logger.error(f"File system error [{error_id}]: {str(error)}", exc_info=True)
            return f"Error: A file system error occurred (ref: {error_id})"
        else:
            # Unexpected errors - log with full stack trace but return generic message
            logger.error(f"Unexpected error [{error_id}]: {str(error)}", exc_info=True)
            return f"Error: An unexpected error occurred (ref: {error_id})"

    def _fail(self, op: dict, error: Exception) -> str:
        op["error"] = error
        return self.format_error_response(error)

    def _register_tools(self) -> None:
        """Register MCP tools."""

        @self.mcp.tool(name="create_note")
        def create_note(
            title: str,
            content: str,
            folder: Optional[str] = None,
            priority: Optional[str] = None,
            due_date: Optional[str] = None,
        ) -> str:
            """Create a new note.
            Args:
                title: Unique title of the note
                content: Body of the note
                folder: Folder name to file the note under (optional)
                priority: One of low, medium, high (optional)
                due_date: Due date in ISO 8601 format, e.g. 2024-05-01 (optional)
            """
            with timed_operation("create_note", title=title[:30]) as op:
                try:
                    _validate_input_lengths(title=title, content=content)
                    note = self.notes_service.create_note(
                        title=title,
                        content=content,
                        folder=folder,
                        priority=_parse_priority(priority),
                        due_date=due_date,
                    )
                    op["note_id"] = note.id
                    return f"Note created successfully: '{note.title}' (ID: {note.id})"
                except Exception as e:
                    return self._fail(op, e)

        @self.mcp.tool(name="get_notes")
        def get_notes(
            folder: Optional[str] = None,
            priority: Optional[str] = None,
            limit: Optional[int] = None,
            offset: int = 0,
        ) -> str:
            """List notes, most recently updated first.
            Args:
                folder: Only notes in this folder (optional)
                priority: Only notes with this priority (optional)
                limit: Maximum number of notes to return (optional; 0 or omitted returns all)
                offset: Number of notes to skip; only applied together with limit
            """
            with timed_operation("get_notes", folder=folder) as op:
                try:
                    page = self.notes_service.list_notes(
                        folder=folder,
                        priority=_parse_priority(priority),
                        limit=limit,
                        offset=offset,
                    )
                    op["result_count"] = len(page.notes)
                    return _to_json(page.to_dict())
                except Exception as e:
                    return self._fail(op, e)

        @self.mcp.tool(name="get_note")
        def get_note(title: str) -> str:
            """Retrieve a single note, including its tags, by title.
            Args:
                title: The exact title of the note
            """
            with timed_operation("get_note", title=title[:30]) as op:
                try:
                    note = self.notes_service.get_note(title)
                    op["note_id"] = note.id
                    return _to_json(note.to_dict())
                except Exception as e:
                    return self._fail(op, e)

        @self.mcp.tool(name="update_note")
        def update_note(
            title: str,
            content: Optional[str] = None,
            folder: Optional[str] = None,
            priority: Optional[str] = None,
            due_date: Optional[str] = None,
            new_title: Optional[str] = None,
        ) -> str:
            """Update an existing note. Only the fields you pass are changed.
            Args:
                title: Title of the note to update
                content: New content (optional)
                folder: New folder (optional)
                priority: New priority: low, medium or high (optional)
                due_date: New due date in ISO 8601 format (optional)
                new_title: Rename the note (optional, must stay unique)
            """
            with timed_operation("update_note", title=title[:30]) as op:
                try:
                    _validate_input_lengths(title=new_title, content=content)
                    fields = {
                        "title": new_title,
                        "content": content,
                        "folder": folder,
                        "priority": _parse_priority(priority),
                        "due_date": due_date,
                    }
                    changes = NoteUpdate(
                        **{k: v for k, v in fields.items() if v is not None}
                    )
                    if changes.is_empty():
                        raise ValidationError(
                            "Nothing to update: pass at least one field to change",
                            code=ErrorCode.NOTE_VALIDATION_FAILED,
                        )
                    note = self.notes_service.update_note(title, changes)
                    op["note_id"] = note.id
                    op["fields"] = sorted(changes.model_fields_set)
                    return f"Note updated successfully: '{note.title}'"
                except Exception as e:
                    return self._fail(op, e)

        @self.mcp.tool(name="delete_note")
        def delete_note(title: str) -> str:
            """Delete a note and all of its tags.
            Args:
                title: Title of the note to delete
            """
            with timed_operation("delete_note", title=title[:30]) as op:
                try:
                    note = self.notes_service.delete_note(title)
                    op["note_id"] = note.id
                    return f"Note deleted successfully: '{note.title}'"
                except Exception as e:
                    return self._fail(op, e)

        @self.mcp.tool(name="search_notes")
        def search_notes(
            query: str,
            search_in: Optional[List[str]] = None,
            folder: Optional[str] = None,
            priority: Optional[str] = None,
            has_due_date: Optional[bool] = None,
            sort_by: str = "updatedAt",
            sort_order: str = "desc",
            limit: Optional[int] = None,
            offset: int = 0,
        ) -> str:
            """Search notes by substring in their title, content or tags.
            Args:
                query: Text to look for (case-insensitive substring). Empty matches all notes
                search_in: Fields to search: any of title, content, tags (default: title and content)
                folder: Only notes in this folder (optional)
                priority: Only notes with this priority: low, medium, high (optional)
                has_due_date: True for notes with a due date, False for notes without (optional)
                sort_by: createdAt, updatedAt (default) or dueDate
                sort_order: asc or desc (default)
                limit: Maximum number of results (optional; 0 or omitted returns all)
                offset: Number of results to skip; only applied together with limit
            """
            with timed_operation("search_notes", query=query[:30] if query else None) as op:
                try:
                    fields = [
                        parse_enum(
                            SearchField, f, "search field", ErrorCode.INVALID_SEARCH_FIELD
                        )
                        for f in (search_in or [])
                    ]
                    request = SearchRequest(
                        query=query,
                        search_in=fields,
                        folder=folder,
                        priority=_parse_priority(priority),
                        has_due_date=has_due_date,
                        sort_by=parse_enum(
                            SortField,
                            sort_by or SortField.UPDATED_AT.value,
                            "sort field",
                            ErrorCode.INVALID_SORT_FIELD,
                        ),
                        sort_order=parse_enum(
                            SortOrder,
                            sort_order or SortOrder.DESC.value,
                            "sort order",
                            ErrorCode.INVALID_SORT_ORDER,
                        ),
                        limit=limit,
                        offset=offset,
                    )
                    page = self.notes_service.search_notes(request)
                    op["result_count"] = len(page.notes)
                    return _to_json(page.to_dict())
                except Exception as e:
                    return self._fail(op, e)

        @self.mcp.tool(name="add_tags")
        def add_tags(title: str, tags: List[str]) -> str:
            """Add tags to a note. Tags the note already has are kept once.
            Args:
                title: Title of the note
                tags: Tag names to add
            """
            with timed_operation("add_tags", title=title[:30]) as op:
                try:
                    note = self.notes_service.add_tags(title, tags)
                    op["note_id"] = note.id
                    return (
                        f"Tags added to '{note.title}'. "
                        f"Current tags: {', '.join(note.tags) or '(none)'}"
                    )
                except Exception as e:
                    return self._fail(op, e)

        @self.mcp.tool(name="remove_tags")
        def remove_tags(title: str, tags: List[str]) -> str:
            """Remove tags from a note. Tags the note does not have are ignored.
            Args:
                title: Title of the note
                tags: Tag names to remove
            """
            with timed_operation("remove_tags", title=title[:30]) as op:
                try:
                    note = self.notes_service.remove_tags(title, tags)
                    op["note_id"] = note.id
                    return (
                        f"Tags removed from '{note.title}'. "
                        f"Current tags: {', '.join(note.tags) or '(none)'}"
                    )
                except Exception as e:
                    return self._fail(op, e)

        @self.mcp.tool(name="list_tags")
        def list_tags() -> str:
            """List all tags with the number of notes carrying each."""
            with timed_operation("list_tags") as op:
                try:
                    tag_counts = self.notes_service.list_tags()
                    op["result_count"] = len(tag_counts)
                    return _to_json(tag_counts)
                except Exception as e:
                    return self._fail(op, e)

        @self.mcp.tool(name="create_folder")
        def create_folder(name: str) -> str:
            """Create a new folder.
            Args:
                name: Unique folder name
            """
            with timed_operation("create_folder", name=name[:30]) as op:
                try:
                    folder = self.notes_service.create_folder(name)
                    op["folder_id"] = folder.id
                    return f"Folder created successfully: '{folder.name}'"
                except Exception as e:
                    return self._fail(op, e)

        @self.mcp.tool(name="list_folders")
        def list_folders() -> str:
            """List all folders."""
            with timed_operation("list_folders") as op:
                try:
                    folders = self.notes_service.list_folders()
                    op["result_count"] = len(folders)
                    return _to_json([f.to_dict() for f in folders])
                except Exception as e:
                    return self._fail(op, e)

        @self.mcp.tool(name="notes_status")
        def notes_status() -> str:
            """Show store statistics and server performance metrics."""
            with timed_operation("notes_status") as op:
                try:
                    stats = self.notes_service.get_stats()
                    output = f"# Notes Status ({config.server_name} {config.server_version})\n\n"
                    output += f"**Total Notes:** {stats['total_notes']}\n"
                    output += f"**Folders:** {stats['total_folders']}\n"
                    output += f"**Distinct Tags:** {stats['total_tags']}\n\n"

                    if stats["notes_by_folder"]:
                        output += "**By Folder:**\n"
                        for folder, count in sorted(
                            stats["notes_by_folder"].items(), key=lambda x: (-x[1], x[0])
                        ):
                            output += f"  - {folder}: {count}\n"
                        output += "\n"

                    summary = metrics.get_summary()
                    output += "## Metrics\n"
                    output += f"**Uptime:** {summary['uptime_seconds']:.0f}s\n"
                    output += f"**Operations:** {summary['total_operations']} "
                    output += f"({summary['total_errors']} errors)\n"
                    for name, stat in sorted(metrics.get_metrics().items()):
                        output += (
                            f"  - {name}: {stat['count']} calls, "
                            f"{stat['error_count']} errors, "
                            f"avg {stat['avg_duration_ms']}ms\n"
                        )
                    op["total_notes"] = stats["total_notes"]
                    return output
                except Exception as e:
                    return self._fail(op, e)

    def run(self) -> None:
        """Run the MCP server over stdio."""
        self.mcp.run()
