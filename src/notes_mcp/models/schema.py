"""Data models for the Notes MCP server."""

import datetime
from datetime import timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, field_validator

# Fixed-width stamps keep lexicographic order equal to chronological order
_TIMESTAMP_SPEC = "microseconds"


def utc_now() -> datetime.datetime:
    """Get current UTC time as timezone-aware datetime.

    Returns:
        Current time with UTC timezone info attached.
    """
    return datetime.datetime.now(timezone.utc)


def format_timestamp(dt_value: datetime.datetime) -> str:
    """Format a datetime as the ISO-8601 string stored in the database.

    Naive datetimes are treated as UTC.
    """
    if dt_value.tzinfo is None:
        dt_value = dt_value.replace(tzinfo=timezone.utc)
    return dt_value.astimezone(timezone.utc).isoformat(timespec=_TIMESTAMP_SPEC)


def utc_timestamp() -> str:
    """Current UTC time as a stored ISO-8601 string."""
    return format_timestamp(utc_now())


def timestamp_after(previous: Optional[str]) -> str:
    """Return a stamp for now that sorts strictly after ``previous``.

    Two mutations inside the same clock tick would otherwise share a
    stamp, which breaks "most recently touched first" ordering.
    """
    now = utc_now()
    if previous:
        prev_dt = datetime.datetime.fromisoformat(previous)
        if now <= prev_dt:
            now = prev_dt + datetime.timedelta(microseconds=1)
    return format_timestamp(now)


class Priority(str, Enum):
    """Priority levels a note can carry."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class SearchField(str, Enum):
    """Fields the free-text query can be matched against."""

    TITLE = "title"
    CONTENT = "content"
    TAGS = "tags"


class SortField(str, Enum):
    """Columns search results can be ordered by."""

    CREATED_AT = "createdAt"
    UPDATED_AT = "updatedAt"
    DUE_DATE = "dueDate"


class SortOrder(str, Enum):
    """Sort direction."""

    ASC = "asc"
    DESC = "desc"


DEFAULT_SEARCH_FIELDS = [SearchField.TITLE, SearchField.CONTENT]


def _require_text(value: Optional[str], label: str) -> str:
    if value is None or not value.strip():
        raise ValueError(f"{label} cannot be empty")
    return value


class Note(BaseModel):
    """A stored note with its hydrated tag list."""

    id: int = Field(..., description="Generated note ID")
    title: str = Field(..., description="Unique title of the note")
    content: str = Field(..., description="Body of the note")
    folder: Optional[str] = Field(default=None, description="Folder name")
    priority: Optional[Priority] = Field(default=None, description="Priority")
    due_date: Optional[str] = Field(
        default=None,
        serialization_alias="dueDate",
        description="Free-form ISO-8601 due date",
    )
    created_at: str = Field(
        ..., serialization_alias="createdAt", description="Creation stamp (UTC)"
    )
    updated_at: str = Field(
        ..., serialization_alias="updatedAt", description="Last update stamp (UTC)"
    )
    tags: List[str] = Field(default_factory=list, description="Tag names")

    model_config = {"validate_assignment": True, "extra": "forbid"}

    def to_dict(self) -> Dict[str, Any]:
        """JSON-ready dict using the external camelCase field names."""
        return self.model_dump(mode="json", by_alias=True)


class Folder(BaseModel):
    """A named grouping label for notes."""

    id: int = Field(..., description="Generated folder ID")
    name: str = Field(..., description="Unique folder name")
    created_at: str = Field(
        ..., serialization_alias="createdAt", description="Creation stamp (UTC)"
    )

    model_config = {"frozen": True}

    def to_dict(self) -> Dict[str, Any]:
        """JSON-ready dict using the external camelCase field names."""
        return self.model_dump(mode="json", by_alias=True)


class NoteCreate(BaseModel):
    """Fields a caller supplies when creating a note.

    Timestamps and the ID are assigned by the repository.
    """

    title: str = Field(..., description="Title of the note")
    content: str = Field(..., description="Body of the note")
    folder: Optional[str] = Field(default=None)
    priority: Optional[Priority] = Field(default=None)
    due_date: Optional[str] = Field(default=None)

    model_config = {"extra": "forbid"}

    @field_validator("title")
    @classmethod
    def validate_title(cls, v: str) -> str:
        """Validate that the title is not empty."""
        return _require_text(v, "Title")


class NoteUpdate(BaseModel):
    """A partial update: only the fields explicitly supplied are written.

    Presence is tracked by pydantic's ``model_fields_set``, so
    ``NoteUpdate(folder=None)`` clears the folder while ``NoteUpdate()``
    leaves it alone. ``title`` and ``content`` can be changed but not
    cleared.
    """

    title: Optional[str] = None
    content: Optional[str] = None
    folder: Optional[str] = None
    priority: Optional[Priority] = None
    due_date: Optional[str] = None

    model_config = {"extra": "forbid"}

    @field_validator("title")
    @classmethod
    def validate_title(cls, v: Optional[str]) -> str:
        """A supplied title must be non-empty."""
        return _require_text(v, "Title")

    @field_validator("content")
    @classmethod
    def validate_content(cls, v: Optional[str]) -> str:
        """Content may be blank but never null."""
        if v is None:
            raise ValueError("Content cannot be null")
        return v

    def changes(self) -> Dict[str, Any]:
        """Return the supplied fields keyed by column name."""
        values: Dict[str, Any] = {}
        for name in sorted(self.model_fields_set):
            value = getattr(self, name)
            if isinstance(value, Enum):
                value = value.value
            values[name] = value
        return values

    def is_empty(self) -> bool:
        """True when no field was supplied."""
        return not self.model_fields_set


class SearchRequest(BaseModel):
    """A structured search over notes.

    An empty ``query`` applies no text predicate, which turns the search
    into a plain filtered listing.
    """

    query: str = Field(default="", description="Substring to look for")
    search_in: List[SearchField] = Field(
        default_factory=lambda: list(DEFAULT_SEARCH_FIELDS),
        description="Fields the query is matched against (ORed)",
    )
    folder: Optional[str] = Field(default=None)
    priority: Optional[Priority] = Field(default=None)
    has_due_date: Optional[bool] = Field(
        default=None, description="Only notes with (True) or without (False) a due date"
    )
    sort_by: SortField = Field(default=SortField.UPDATED_AT)
    sort_order: SortOrder = Field(default=SortOrder.DESC)
    limit: Optional[int] = Field(default=None, ge=1)
    offset: int = Field(default=0, ge=0)

    model_config = {"extra": "forbid"}

    @field_validator("query", mode="before")
    @classmethod
    def validate_query(cls, v: Any) -> Any:
        """Treat a missing query as the empty query."""
        return "" if v is None else v

    @field_validator("folder", "priority", mode="before")
    @classmethod
    def blank_filter_is_absent(cls, v: Any) -> Any:
        """An empty folder or priority means the filter was not given."""
        if isinstance(v, str) and not v.strip():
            return None
        return v

    @field_validator("limit", mode="before")
    @classmethod
    def zero_limit_is_absent(cls, v: Any) -> Any:
        """A limit of 0 means no limit, like leaving it out."""
        return None if v == 0 else v

    @field_validator("search_in", mode="before")
    @classmethod
    def validate_search_in(cls, v: Any) -> Any:
        """Fall back to the default fields for a missing or empty list."""
        if not v:
            return list(DEFAULT_SEARCH_FIELDS)
        return v

    @field_validator("search_in")
    @classmethod
    def dedupe_search_in(cls, v: List[SearchField]) -> List[SearchField]:
        """Collapse repeated fields, keeping first-seen order."""
        return list(dict.fromkeys(v))

    @property
    def has_text_predicate(self) -> bool:
        """Whether the query restricts results at all."""
        return self.query != ""

    @property
    def searches_tags(self) -> bool:
        """Whether tag names take part in the text match."""
        return SearchField.TAGS in self.search_in


class SearchPage(BaseModel):
    """One page of search results plus the unpaginated match count."""

    notes: List[Note] = Field(default_factory=list)
    total: int = Field(default=0, ge=0)
    limit: Optional[int] = None
    offset: int = 0

    def to_dict(self) -> Dict[str, Any]:
        """JSON-ready dict using the external camelCase field names."""
        return {
            "total": self.total,
            "count": len(self.notes),
            "limit": self.limit,
            "offset": self.offset,
            "notes": [note.to_dict() for note in self.notes],
        }
