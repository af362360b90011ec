"""Storage layer for the Notes MCP server."""

from notes_mcp.storage.base import Repository
from notes_mcp.storage.folder_repository import FolderRepository
from notes_mcp.storage.note_repository import NoteRepository
from notes_mcp.storage.query_builder import NoteQueryBuilder
from notes_mcp.storage.tag_repository import TagRepository

__all__ = [
    "Repository",
    "NoteRepository",
    "NoteQueryBuilder",
    "FolderRepository",
    "TagRepository",
]
