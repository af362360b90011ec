"""Common test fixtures for the Notes MCP server."""

import tempfile
from pathlib import Path

import pytest

from notes_mcp.config import config
from notes_mcp.models.db_models import init_db
from notes_mcp.models.schema import NoteCreate
from notes_mcp.observability import metrics
from notes_mcp.services.notes_service import NotesService
from notes_mcp.storage.folder_repository import FolderRepository
from notes_mcp.storage.note_repository import NoteRepository


@pytest.fixture
def temp_dirs():
    """Create temporary directories for the database and logs."""
    with tempfile.TemporaryDirectory() as db_dir:
        with tempfile.TemporaryDirectory() as log_dir:
            yield Path(db_dir), Path(log_dir)


@pytest.fixture
def test_config(temp_dirs, monkeypatch):
    """Configure with test paths (auto-restored even on crash)."""
    db_dir, log_dir = temp_dirs
    monkeypatch.setattr(config, "database_path", db_dir / "test_notes.db")
    monkeypatch.setattr(config, "log_dir", log_dir)
    monkeypatch.setattr(config, "in_memory_db", False)
    monkeypatch.setattr(config, "log_level", config.log_level)
    yield config


@pytest.fixture
def engine():
    """A fresh in-memory database with all tables created."""
    engine = init_db(in_memory=True)
    yield engine
    engine.dispose()


@pytest.fixture
def file_engine(test_config):
    """A file-backed database under a temporary directory."""
    engine = init_db()
    yield engine
    engine.dispose()


@pytest.fixture
def note_repository(engine):
    """Create a test note repository."""
    return NoteRepository(engine=engine)


@pytest.fixture
def tag_repository(note_repository):
    """The tag repository the note repository delegates to."""
    return note_repository.tags


@pytest.fixture
def folder_repository(engine):
    """Create a test folder repository."""
    return FolderRepository(engine)


@pytest.fixture
def notes_service(note_repository, folder_repository):
    """Create a test NotesService."""
    return NotesService(
        repository=note_repository, folder_repository=folder_repository
    )


@pytest.fixture
def make_note(note_repository):
    """Factory that inserts a note and returns it."""

    def _make(title, content="", **fields):
        return note_repository.create_note(
            NoteCreate(title=title, content=content, **fields)
        )

    return _make


@pytest.fixture(autouse=True)
def _reset_metrics():
    """Keep the global metrics collector independent between tests."""
    metrics.reset()
    yield
    metrics.reset()
