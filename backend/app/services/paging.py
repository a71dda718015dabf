import logging
from dataclasses import dataclass
from typing import Generic, Sequence, TypeVar

from sqlalchemy import Select, func, select
from sqlalchemy.orm import Session

from app.config import settings
from app.errors import InvalidQuery
from app.schemas.pagination import OffsetPage, RankedItem, SortMode
from app.services.keyset import KeyColumns, build_ordering, build_predicate
from app.utils.cursor import Cursor, decode_cursor, encode_cursor

logger = logging.getLogger("app.paging")

ItemT = TypeVar("ItemT", bound=RankedItem)


@dataclass
class PageSlice(Generic[ItemT]):
    items: list[ItemT]
    has_more: bool
    boundary: ItemT | None


def assemble(rows: Sequence[ItemT], limit: int) -> PageSlice[ItemT]:
    """Trim a ``limit + 1`` look-ahead fetch down to one page.

    The boundary is the last row kept, so the next cursor names the
    position of the last item the client actually saw.
    """
    has_more = len(rows) > limit
    items = list(rows[:limit])
    boundary = items[-1] if has_more and items else None
    return PageSlice(items=items, has_more=has_more, boundary=boundary)


@dataclass(frozen=True)
class RankedSource(Generic[ItemT]):
    """A filtered select exposing created_at/type_order/primary_id (and score)."""

    statement: Select
    item_model: type[ItemT]


def fetch_window(
    db: Session,
    source: RankedSource[ItemT],
    sort: SortMode,
    position: Cursor | None,
    size: int,
    skip: int = 0,
) -> list[ItemT]:
    """Fetch up to ``size`` rows strictly after ``position`` in sort order."""
    base = source.statement.subquery()
    columns = KeyColumns.of(base)
    stmt = (
        select(base)
        .where(build_predicate(sort, position, columns))
        .order_by(*build_ordering(sort, columns))
        .offset(skip)
        .limit(size)
    )
    return [source.item_model.model_validate(dict(row._mapping)) for row in db.execute(stmt)]


def normalize_page(page: int | None, page_size: int | None) -> tuple[int, int]:
    if page is not None and page <= 0:
        raise InvalidQuery("Page must be greater than zero.", code="INVALID_PAGE")
    if page_size is not None and page_size <= 0:
        raise InvalidQuery("PageSize must be greater than zero.", code="INVALID_PAGE_SIZE")
    if page_size is not None and page_size > settings.max_page_size:
        raise InvalidQuery(
            f"PageSize cannot exceed {settings.max_page_size}.", code="INVALID_PAGE_SIZE"
        )
    return page or 1, page_size or settings.default_page_size


def paginate(
    db: Session,
    source: RankedSource[ItemT],
    page: int | None = None,
    page_size: int | None = None,
    cursor: str | None = None,
    sort: SortMode = SortMode.LATEST,
) -> OffsetPage[ItemT]:
    """Page through one ranked collection.

    Without a cursor this is plain offset paging by page number. With a
    cursor the page number is ignored (reported as 1) and the keyset
    window continues right after the cursor's row.

    ``total_count`` always counts the whole source, not the remaining
    window, so it can drift from what a walk actually observes when rows
    change between requests.
    """
    page, page_size = normalize_page(page, page_size)
    position = decode_cursor(sort, cursor)
    if position is not None:
        page = 1

    total_count = db.scalar(select(func.count()).select_from(source.statement.subquery()))
    if not total_count:
        return OffsetPage(total_count=0, page=page, page_size=page_size, items=[])

    skip = 0 if position is not None else (page - 1) * page_size
    rows = fetch_window(db, source, sort, position, page_size + 1, skip=skip)
    window = assemble(rows, page_size)
    logger.debug(
        "Page %d (size %d, resumed=%s): %d rows, has_more=%s",
        page, page_size, position is not None, len(window.items), window.has_more,
    )

    return OffsetPage(
        total_count=total_count,
        page=page,
        page_size=page_size,
        items=window.items,
        next_cursor=encode_cursor(sort, window.boundary) if window.boundary else None,
        has_more=window.has_more,
    )
