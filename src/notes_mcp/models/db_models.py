"""SQLAlchemy database models for the Notes MCP server."""
import threading
import weakref
from typing import Optional

from sqlalchemy import (CheckConstraint, Column, ForeignKey, Index, Integer,
                        String, Text, UniqueConstraint, create_engine, event)
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base, relationship, sessionmaker
from sqlalchemy.pool import QueuePool, StaticPool

from notes_mcp.config import config
from notes_mcp.models.schema import Priority

# Create base class for SQLAlchemy models
Base = declarative_base()

_PRIORITY_VALUES = ", ".join(f"'{p.value}'" for p in Priority)


class DBNote(Base):
    """Database model for a note."""
    __tablename__ = "notes"
    id = Column(Integer, primary_key=True, autoincrement=True)
    title = Column(String(500), unique=True, nullable=False)
    content = Column(Text, nullable=False)
    folder = Column(String(255), nullable=True, index=True)
    priority = Column(String(16), nullable=True)
    due_date = Column(String(64), nullable=True)
    created_at = Column(String(40), nullable=False)
    updated_at = Column(String(40), nullable=False, index=True)

    # Relationships
    tags = relationship(
        "DBTag",
        back_populates="note",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="DBTag.id",
    )

    __table_args__ = (
        CheckConstraint(
            f"priority IS NULL OR priority IN ({_PRIORITY_VALUES})",
            name="ck_notes_priority",
        ),
    )

    def __repr__(self) -> str:
        """Return string representation of note."""
        return f"<Note(id={self.id}, title='{self.title}')>"


class DBFolder(Base):
    """Database model for a folder."""
    __tablename__ = "folders"
    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(255), unique=True, nullable=False)
    created_at = Column(String(40), nullable=False)

    def __repr__(self) -> str:
        """Return string representation of folder."""
        return f"<Folder(id={self.id}, name='{self.name}')>"


class DBTag(Base):
    """Database model for a tag. Each row belongs to exactly one note."""
    __tablename__ = "tags"
    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(255), nullable=False)
    note_id = Column(
        Integer, ForeignKey("notes.id", ondelete="CASCADE"), nullable=False
    )

    note = relationship("DBNote", back_populates="tags")

    # A note cannot carry the same tag twice
    __table_args__ = (
        UniqueConstraint("name", "note_id", name="uq_tags_name_note"),
        Index("ix_tags_note_id", "note_id"),
    )

    def __repr__(self) -> str:
        """Return string representation of tag."""
        return f"<Tag(id={self.id}, name='{self.name}', note_id={self.note_id})>"


# One writer lock per engine, shared by every repository bound to it
_write_locks: "weakref.WeakKeyDictionary[Engine, threading.RLock]" = (
    weakref.WeakKeyDictionary()
)
_write_locks_lock = threading.Lock()


def get_write_lock(engine: Engine) -> threading.RLock:
    """Get or create the write lock for an engine.

    Uses a WeakKeyDictionary so locks go away together with their engine.
    """
    with _write_locks_lock:
        lock = _write_locks.get(engine)
        if lock is None:
            lock = threading.RLock()
            _write_locks[engine] = lock
        return lock


def create_db_engine(
    db_url: Optional[str] = None, busy_timeout: Optional[float] = None
) -> Engine:
    """Create a SQLite engine with the connection settings the store relies on.

    In-memory URLs get a single shared connection (StaticPool) so every
    session sees the same database. File databases get a small QueuePool
    since SQLite is single-writer anyway.
    """
    url = db_url or config.get_db_url()
    timeout = busy_timeout if busy_timeout is not None else config.busy_timeout
    in_memory = url in ("sqlite://", "sqlite:///:memory:")

    if in_memory:
        engine = create_engine(
            url,
            poolclass=StaticPool,
            connect_args={"check_same_thread": False},
        )
    else:
        engine = create_engine(
            url,
            poolclass=QueuePool,
            pool_size=5,           # Base pool size (concurrent reads)
            max_overflow=10,
            pool_timeout=timeout,
            pool_pre_ping=True,
            connect_args={"timeout": timeout, "check_same_thread": False},
        )

    @event.listens_for(engine, "connect")
    def set_sqlite_pragma(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        # Tags rely on ON DELETE CASCADE
        cursor.execute("PRAGMA foreign_keys=ON")
        if not in_memory:
            # WAL mode: writes go to separate journal, preventing corruption on crash
            cursor.execute("PRAGMA journal_mode=WAL")
            cursor.execute("PRAGMA synchronous=NORMAL")
        cursor.close()

    return engine


def init_db(db_url: Optional[str] = None, in_memory: Optional[bool] = None) -> Engine:
    """Create the engine and make sure all tables exist.

    Args:
        db_url: Explicit SQLAlchemy URL. Defaults to the configured database.
        in_memory: Force an in-memory database regardless of configuration.

    Returns:
        The initialized engine.
    """
    if in_memory:
        db_url = "sqlite://"
    engine = create_db_engine(db_url)
    Base.metadata.create_all(engine)
    return engine


def get_session_factory(engine: Optional[Engine] = None):
    """Get a session factory for the database."""
    if engine is None:
        engine = init_db()
    return sessionmaker(bind=engine)
