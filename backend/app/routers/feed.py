from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from app.database import get_db
from app.dependencies import require_user
from app.errors import PaginationError
from app.models.user import User
from app.schemas.feed import FeedItem
from app.schemas.pagination import OffsetPage
from app.services.paging import paginate
from app.services.review_service import feed_source

router = APIRouter(prefix="/feed", tags=["feed"])


@router.get("", response_model=OffsetPage[FeedItem])
async def get_feed(
    page: int | None = Query(None),
    page_size: int | None = Query(None),
    cursor: str | None = Query(None),
    user: User = Depends(require_user),
    db: Session = Depends(get_db),
):
    try:
        return paginate(db, feed_source(user.id), page=page, page_size=page_size, cursor=cursor)
    except PaginationError as exc:
        raise HTTPException(status_code=400, detail=exc.to_detail("FEED")) from exc
