from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from app.database import get_db
from app.errors import PaginationError
from app.schemas.pagination import SortMode
from app.schemas.search import SearchResponse, SearchType
from app.services.search_service import search

router = APIRouter(prefix="/search", tags=["search"])


@router.get("", response_model=SearchResponse)
async def search_all(
    query: str = Query(""),
    scope: SearchType = Query(SearchType.ALL, alias="type"),
    sort: SortMode = Query(SortMode.RELEVANCE),
    limit: int | None = Query(None),
    cursor: str | None = Query(None),
    db: Session = Depends(get_db),
):
    try:
        page = search(db, query, scope=scope, sort=sort, limit=limit, cursor=cursor)
    except PaginationError as exc:
        # Blank queries and bad cursors are client errors with a stable code.
        raise HTTPException(status_code=400, detail=exc.to_detail("SEARCH")) from exc

    return SearchResponse(
        results=page.results,
        sort=sort.value,
        type=scope.value,
        next_cursor=page.next_cursor,
        has_more=page.has_more,
    )
