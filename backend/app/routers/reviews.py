from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from app.database import get_db
from app.dependencies import require_moderator, require_user
from app.errors import PaginationError
from app.models.review import REVIEW_STATUSES, Review
from app.models.subject import Subject
from app.models.user import User
from app.schemas.pagination import OffsetPage
from app.schemas.review import ReviewCreate, ReviewResponse, ReviewStatusUpdate, ReviewSummary
from app.services.paging import paginate
from app.services.review_service import latest_reviews_source, make_excerpt
from app.utils.timestamps import utc_now

router = APIRouter(prefix="/reviews", tags=["reviews"])


def _review_to_response(review: Review) -> ReviewResponse:
    return ReviewResponse(
        id=review.id,
        subject_id=review.subject_id,
        subject_name=review.subject.name if review.subject else None,
        user_id=review.user_id,
        title=review.title,
        content=review.content,
        excerpt=review.excerpt,
        status=review.status,
        created_at=review.created_at,
        updated_at=review.updated_at,
    )


def _get_review_or_404(db: Session, review_id: int) -> Review:
    review = db.query(Review).filter(Review.id == review_id, Review.is_deleted.is_(False)).first()
    if not review:
        raise HTTPException(status_code=404, detail="Review not found")
    return review


@router.get("/latest", response_model=OffsetPage[ReviewSummary])
async def latest_reviews(
    page: int | None = Query(None),
    page_size: int | None = Query(None),
    cursor: str | None = Query(None),
    db: Session = Depends(get_db),
):
    try:
        return paginate(db, latest_reviews_source(), page=page, page_size=page_size, cursor=cursor)
    except PaginationError as exc:
        raise HTTPException(status_code=400, detail=exc.to_detail("REVIEW")) from exc


@router.post("", response_model=ReviewResponse, status_code=201)
async def create_review(req: ReviewCreate, user: User = Depends(require_user), db: Session = Depends(get_db)):
    subject = db.query(Subject).filter(Subject.id == req.subject_id, Subject.is_deleted.is_(False)).first()
    if not subject:
        raise HTTPException(status_code=404, detail="Subject not found")
    if not (req.title or req.content):
        raise HTTPException(status_code=400, detail="A review needs a title or content")

    now = utc_now()
    review = Review(
        subject_id=subject.id,
        user_id=user.id,
        title=req.title,
        content=req.content,
        excerpt=req.excerpt or make_excerpt(req.content),
        status="pending",
        created_at=now,
        updated_at=now,
    )
    db.add(review)
    db.commit()
    db.refresh(review)
    return _review_to_response(review)


@router.get("/{review_id}", response_model=ReviewResponse)
async def get_review(review_id: int, db: Session = Depends(get_db)):
    return _review_to_response(_get_review_or_404(db, review_id))


@router.put("/{review_id}/status", response_model=ReviewResponse)
async def moderate_review(
    review_id: int,
    req: ReviewStatusUpdate,
    user: User = Depends(require_moderator),
    db: Session = Depends(get_db),
):
    if req.status not in REVIEW_STATUSES:
        raise HTTPException(status_code=400, detail=f"Invalid status. Must be one of: {REVIEW_STATUSES}")
    review = _get_review_or_404(db, review_id)
    if review.user_id == user.id:
        raise HTTPException(status_code=403, detail="Moderators cannot moderate their own reviews")
    review.status = req.status
    review.updated_at = utc_now()
    db.commit()
    db.refresh(review)
    return _review_to_response(review)


@router.delete("/{review_id}")
async def delete_review(review_id: int, user: User = Depends(require_user), db: Session = Depends(get_db)):
    review = _get_review_or_404(db, review_id)
    if review.user_id != user.id:
        raise HTTPException(status_code=403, detail="Only the author can delete a review")
    review.is_deleted = True
    review.updated_at = utc_now()
    db.commit()
    return {"message": "Review deleted"}
