import heapq
import logging
import re
from dataclasses import dataclass
from itertools import islice

from sqlalchemy import Float, Integer, Text, column, func, literal, literal_column, null, select, table, type_coerce
from sqlalchemy.orm import Session

from app.config import settings
from app.errors import InvalidQuery
from app.models.review import Review
from app.models.subject import Subject
from app.schemas.pagination import SortMode
from app.schemas.search import ResultProjection, ResultType, SearchType
from app.services.keyset import sort_key
from app.services.paging import RankedSource, assemble, fetch_window
from app.utils.cursor import Cursor, decode_cursor, encode_cursor

logger = logging.getLogger("app.search")

# Tie-break discriminators; stable per source, never used for filtering.
SUBJECT_TYPE_ORDER = 0
REVIEW_TYPE_ORDER = 1

# FTS5 cannot tokenize these; NUL even ends the quoted string early
CONTROL_CHARS = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f\x7f]")

subjects_fts = table("subjects_fts", column("rowid"))
reviews_fts = table("reviews_fts", column("rowid"))


@dataclass
class SearchPage:
    results: list[ResultProjection]
    next_cursor: str | None
    has_more: bool


def to_match_expression(query: str) -> str:
    """Quote every term so FTS5 operators in user input are matched as text."""
    return " ".join('"' + term.replace('"', '""') + '"' for term in query.split())


def _relevance(fts_name: str):
    # bm25() is lower-is-better; flip it so scores sort descending like time
    return type_coerce(-func.bm25(literal_column(fts_name)), Float)


def subject_source(match: str) -> RankedSource[ResultProjection]:
    stmt = (
        select(
            literal(ResultType.SUBJECT.value, Text).label("type"),
            literal(SUBJECT_TYPE_ORDER, Integer).label("type_order"),
            Subject.id.label("primary_id"),
            Subject.id.label("subject_id"),
            null().label("review_id"),
            Subject.name.label("title"),
            Subject.slug.label("subtitle"),
            null().label("excerpt"),
            _relevance("subjects_fts").label("score"),
            Subject.created_at.label("created_at"),
        )
        .select_from(subjects_fts)
        .join(Subject, Subject.id == subjects_fts.c.rowid)
        .where(literal_column("subjects_fts").op("MATCH")(match))
        .where(Subject.is_deleted.is_(False))
    )
    return RankedSource(stmt, ResultProjection)


def review_source(match: str) -> RankedSource[ResultProjection]:
    stmt = (
        select(
            literal(ResultType.REVIEW.value, Text).label("type"),
            literal(REVIEW_TYPE_ORDER, Integer).label("type_order"),
            Review.id.label("primary_id"),
            Review.subject_id.label("subject_id"),
            Review.id.label("review_id"),
            func.coalesce(Review.title, Subject.name, "").label("title"),
            Subject.name.label("subtitle"),
            func.coalesce(Review.excerpt, Review.content).label("excerpt"),
            _relevance("reviews_fts").label("score"),
            Review.created_at.label("created_at"),
        )
        .select_from(reviews_fts)
        .join(Review, Review.id == reviews_fts.c.rowid)
        .join(Subject, Subject.id == Review.subject_id)
        .where(literal_column("reviews_fts").op("MATCH")(match))
        .where(Review.is_deleted.is_(False))
        .where(Subject.is_deleted.is_(False))
    )
    return RankedSource(stmt, ResultProjection)


def normalize_limit(limit: int | None) -> int:
    if limit is None or limit <= 0:
        return settings.search_default_limit
    return min(limit, settings.search_max_limit)


def merge_ranked(
    streams: list[list[ResultProjection]], sort: SortMode, size: int
) -> list[ResultProjection]:
    """Merge per-source streams, each already in descending sort order."""
    merged = heapq.merge(*streams, key=sort_key(sort), reverse=True)
    return list(islice(merged, size))


def fetch_ranked(
    db: Session,
    sources: list[RankedSource[ResultProjection]],
    sort: SortMode,
    position: Cursor | None,
    size: int,
) -> list[ResultProjection]:
    """The first `size` rows after `position` across all sources, in sort order."""
    if len(sources) == 1:
        return fetch_window(db, sources[0], sort, position, size)

    # Each source is cut at `size` rows, never at the page limit: the first
    # `size` rows of the union can hold at most `size` rows of any one source.
    streams = [fetch_window(db, source, sort, position, size) for source in sources]
    return merge_ranked(streams, sort, size)


def search(
    db: Session,
    query: str,
    scope: SearchType = SearchType.ALL,
    sort: SortMode = SortMode.RELEVANCE,
    limit: int | None = None,
    cursor: str | None = None,
) -> SearchPage:
    if query is None or not query.strip():
        raise InvalidQuery("Query is required.", code="QUERY_REQUIRED")
    if CONTROL_CHARS.search(query):
        raise InvalidQuery("Query contains control characters.", code="INVALID_QUERY")

    limit = normalize_limit(limit)
    position = decode_cursor(sort, cursor)
    match = to_match_expression(query.strip())

    sources = []
    if scope in (SearchType.ALL, SearchType.SUBJECTS):
        sources.append(subject_source(match))
    if scope in (SearchType.ALL, SearchType.REVIEWS):
        sources.append(review_source(match))

    page = paginate_ranked(db, sources, sort, limit, position)
    logger.debug(
        "Search scope=%s sort=%s limit=%d resumed=%s: %d results, has_more=%s",
        scope.value, sort.value, limit, position is not None, len(page.results), page.has_more,
    )
    return page


def paginate_ranked(
    db: Session,
    sources: list[RankedSource[ResultProjection]],
    sort: SortMode,
    limit: int,
    position: Cursor | None = None,
) -> SearchPage:
    """One cursor page over the ranked union of `sources`."""
    rows = fetch_ranked(db, sources, sort, position, limit + 1)
    window = assemble(rows, limit)
    return SearchPage(
        results=window.items,
        next_cursor=encode_cursor(sort, window.boundary) if window.boundary else None,
        has_more=window.has_more,
    )
