"""Translate a SearchRequest into SQL over the notes/tags schema.

The text predicate is an OR of ``LIKE '%query%'`` tests across the
requested fields. When tag names are searched the notes table is joined to
tags, which fans out one row per tag; the match is therefore computed in a
``SELECT DISTINCT notes.id`` subquery so every note appears once before
ordering and LIMIT/OFFSET are applied to the outer query.
"""
import logging
from typing import List, Optional

from sqlalchemy import Select, and_, func, or_, select
from sqlalchemy.sql.elements import ColumnElement

from notes_mcp.models.db_models import DBNote, DBTag
from notes_mcp.models.schema import SearchField, SearchRequest, SortField, SortOrder
from notes_mcp.utils import escape_like_pattern

logger = logging.getLogger(__name__)

_SORT_COLUMNS = {
    SortField.CREATED_AT: DBNote.created_at,
    SortField.UPDATED_AT: DBNote.updated_at,
    SortField.DUE_DATE: DBNote.due_date,
}

_TEXT_COLUMNS = {
    SearchField.TITLE: DBNote.title,
    SearchField.CONTENT: DBNote.content,
    SearchField.TAGS: DBTag.name,
}


class NoteQueryBuilder:
    """Builds the filtered, sorted and paginated note query for a request."""

    def __init__(self, request: SearchRequest):
        self.request = request

    @property
    def needs_tag_join(self) -> bool:
        """Join tags only when tag names take part in an actual text match."""
        return self.request.has_text_predicate and self.request.searches_tags

    def text_predicate(self) -> Optional[ColumnElement]:
        """OR of substring matches over the requested fields, or None."""
        if not self.request.has_text_predicate:
            return None
        pattern = f"%{escape_like_pattern(self.request.query)}%"
        return or_(
            *(
                _TEXT_COLUMNS[field].like(pattern, escape="\\")
                for field in self.request.search_in
            )
        )

    def filter_conditions(self) -> List[ColumnElement]:
        """Equality filters that are ANDed with the text predicate."""
        conditions: List[ColumnElement] = []
        if self.request.folder is not None:
            conditions.append(DBNote.folder == self.request.folder)
        if self.request.priority is not None:
            conditions.append(DBNote.priority == self.request.priority.value)
        if self.request.has_due_date is True:
            conditions.append(DBNote.due_date.is_not(None))
        elif self.request.has_due_date is False:
            conditions.append(DBNote.due_date.is_(None))
        return conditions

    def where_clause(self) -> Optional[ColumnElement]:
        """Full WHERE condition for the notes table, or None for no filter."""
        conditions = self.filter_conditions()
        predicate = self.text_predicate()
        if predicate is not None:
            if self.needs_tag_join:
                matching_ids = (
                    select(DBNote.id)
                    .outerjoin(DBTag, DBTag.note_id == DBNote.id)
                    .where(predicate)
                    .distinct()
                    .correlate(None)
                )
                conditions.insert(0, DBNote.id.in_(matching_ids))
            else:
                conditions.insert(0, predicate)
        if not conditions:
            return None
        return and_(*conditions)

    def order_by_clauses(self) -> List[ColumnElement]:
        """Requested sort, with note id as the tiebreaker.

        Due dates compare as stored strings (ISO-8601 lexicographic order);
        notes without one always come last.
        """
        column = _SORT_COLUMNS[self.request.sort_by]
        descending = self.request.sort_order == SortOrder.DESC
        primary = column.desc() if descending else column.asc()
        if self.request.sort_by == SortField.DUE_DATE:
            primary = primary.nulls_last()
        tiebreak = DBNote.id.desc() if descending else DBNote.id.asc()
        return [primary, tiebreak]

    def build(self) -> Select:
        """SELECT of matching notes for the requested page."""
        stmt = select(DBNote)
        where = self.where_clause()
        if where is not None:
            stmt = stmt.where(where)
        stmt = stmt.order_by(*self.order_by_clauses())

        # OFFSET is only meaningful together with LIMIT
        if self.request.limit is not None:
            stmt = stmt.limit(self.request.limit)
            if self.request.offset:
                stmt = stmt.offset(self.request.offset)
        return stmt

    def build_count(self) -> Select:
        """SELECT COUNT of all matching notes, ignoring pagination."""
        stmt = select(func.count(DBNote.id))
        where = self.where_clause()
        if where is not None:
            stmt = stmt.where(where)
        return stmt
