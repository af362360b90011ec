"""Configuration module for the Notes MCP server."""

import logging
import os
from pathlib import Path

from dotenv import load_dotenv
from pydantic import BaseModel, Field, model_validator

from notes_mcp import __version__

# Load environment variables from the project root .env file.
# Anchored to __file__ so it works regardless of the process CWD.
_PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent
load_dotenv(_PROJECT_ROOT / ".env")

# User-level config lives alongside the default log directory
_USER_ENV = Path.home() / ".notes-mcp" / ".env"
load_dotenv(_USER_ENV)


logger = logging.getLogger(__name__)

_TRUTHY = ("true", "1", "yes")


class NotesConfig(BaseModel):
    """Configuration for the Notes server."""

    # Base directory for the project
    base_dir: Path = Field(
        default_factory=lambda: Path(os.getenv("NOTES_MCP_BASE_DIR", "."))
    )
    # Database configuration
    database_path: Path = Field(
        default_factory=lambda: Path(
            os.getenv("NOTES_MCP_DATABASE_PATH", "data/db/notes.db")
        )
    )
    # When True, uses a private in-memory SQLite database. Nothing survives
    # a restart, so this is meant for tests and throwaway sessions.
    in_memory_db: bool = Field(
        default_factory=lambda: os.getenv("NOTES_MCP_IN_MEMORY_DB", "false").lower()
        in _TRUTHY
    )
    # Seconds a connection waits on a locked database before failing
    busy_timeout: float = Field(
        default_factory=lambda: float(os.getenv("NOTES_MCP_BUSY_TIMEOUT", "30"))
    )
    # Server configuration
    server_name: str = Field(default=os.getenv("NOTES_MCP_SERVER_NAME", "notes-mcp"))
    server_version: str = Field(default=__version__)
    # Logging configuration
    log_level: str = Field(
        default_factory=lambda: os.getenv("NOTES_MCP_LOG_LEVEL", "INFO").upper()
    )
    log_dir: Path = Field(
        default_factory=lambda: Path(
            os.getenv("NOTES_MCP_LOG_DIR", str(Path.home() / ".notes-mcp" / "logs"))
        )
    )

    @model_validator(mode="after")
    def _validate_settings(self) -> "NotesConfig":
        """Reject settings the storage layer cannot work with."""
        if self.busy_timeout <= 0:
            raise ValueError("busy_timeout must be > 0")
        if not isinstance(logging.getLevelName(self.log_level), int):
            raise ValueError(f"Unknown log level: {self.log_level}")
        return self

    def get_absolute_path(self, path: Path) -> Path:
        """Convert a relative path to an absolute path based on base_dir."""
        if path.is_absolute():
            return path
        return self.base_dir / path

    def get_db_url(self) -> str:
        """Get the database URL for SQLite."""
        if self.in_memory_db:
            return "sqlite://"
        db_path = self.get_absolute_path(self.database_path)
        db_path.parent.mkdir(parents=True, exist_ok=True)
        return f"sqlite:///{db_path}"


# Create a global config instance
config = NotesConfig()
