"""
Keyset windows over the ranking key.

Orders are always descending over a strict total order:

    relevance: (score, created_at, type_order, primary_id)
    latest:    (created_at, type_order, primary_id)

The trailing (type_order, primary_id) pair is unique across sources, so a
row is "after" a cursor in the predicate exactly when it is after it in
the ordering, however many scores or timestamps collide.
"""
from dataclasses import dataclass
from typing import Callable

from sqlalchemy import and_, or_, true
from sqlalchemy.sql.elements import ColumnElement

from app.schemas.pagination import RankedItem, SortMode
from app.utils.cursor import Cursor
from app.utils.timestamps import format_utc


@dataclass(frozen=True)
class KeyColumns:
    created_at: ColumnElement
    type_order: ColumnElement
    primary_id: ColumnElement
    score: ColumnElement | None = None

    @classmethod
    def of(cls, selectable) -> "KeyColumns":
        columns = selectable.c
        return cls(
            created_at=columns.created_at,
            type_order=columns.type_order,
            primary_id=columns.primary_id,
            score=columns.score if "score" in columns else None,
        )

    def chain(self, sort: SortMode) -> list[ColumnElement]:
        tail = [self.created_at, self.type_order, self.primary_id]
        if sort is SortMode.RELEVANCE:
            if self.score is None:
                raise ValueError("Relevance ordering needs a score column")
            return [self.score, *tail]
        return tail


def _cursor_values(sort: SortMode, cursor: Cursor) -> list:
    # created_at is stored as fixed-format UTC text, so compare as text
    tail = [format_utc(cursor.created_at), cursor.type_order, cursor.primary_id]
    if sort is SortMode.RELEVANCE:
        return [cursor.score, *tail]
    return tail


def build_predicate(sort: SortMode, cursor: Cursor | None, columns: KeyColumns) -> ColumnElement:
    """Rows strictly after ``cursor`` in the total order for ``sort``."""
    if cursor is None:
        return true()

    chain = list(zip(columns.chain(sort), _cursor_values(sort, cursor)))
    clauses = []
    for i, (column, value) in enumerate(chain):
        equal_prefix = [prior == prior_value for prior, prior_value in chain[:i]]
        clauses.append(and_(*equal_prefix, column < value))
    return or_(*clauses)


def build_ordering(sort: SortMode, columns: KeyColumns) -> list:
    return [column.desc() for column in columns.chain(sort)]


def sort_key(sort: SortMode) -> Callable[[RankedItem], tuple]:
    """In-memory key matching build_ordering (use with reverse=True)."""
    if sort is SortMode.RELEVANCE:
        return lambda item: (item.score, item.created_at, item.type_order, item.primary_id)
    return lambda item: (item.created_at, item.type_order, item.primary_id)
