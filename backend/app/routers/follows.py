from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from app.database import get_db
from app.dependencies import require_user
from app.models.follow import FOLLOW_TARGET_TYPES, Follow
from app.models.subject import Subject, SubjectType
from app.models.user import User
from app.schemas.follow import FollowCreate, FollowResponse
from app.utils.timestamps import utc_now

router = APIRouter(prefix="/follows", tags=["follows"])

_TARGETS = {
    "subject": (Subject, "subject_id"),
    "subject_type": (SubjectType, "subject_type_id"),
    "user": (User, "followed_user_id"),
}


def _follow_to_response(follow: Follow) -> FollowResponse:
    return FollowResponse(
        id=follow.id,
        target_type=follow.target_type,
        subject_id=follow.subject_id,
        subject_type_id=follow.subject_type_id,
        followed_user_id=follow.followed_user_id,
        created_at=follow.created_at,
    )


@router.post("", response_model=FollowResponse, status_code=201)
async def create_follow(req: FollowCreate, user: User = Depends(require_user), db: Session = Depends(get_db)):
    if req.target_type not in FOLLOW_TARGET_TYPES:
        raise HTTPException(status_code=400, detail=f"Invalid target type. Must be one of: {FOLLOW_TARGET_TYPES}")
    if req.target_type == "user" and req.target_id == user.id:
        raise HTTPException(status_code=400, detail="You cannot follow yourself")

    model, column = _TARGETS[req.target_type]
    target = db.query(model).filter(model.id == req.target_id).first()
    if not target or getattr(target, "is_deleted", False):
        raise HTTPException(status_code=404, detail="Follow target not found")

    existing = (
        db.query(Follow)
        .filter(Follow.follower_id == user.id, Follow.target_type == req.target_type)
        .filter(getattr(Follow, column) == req.target_id)
        .first()
    )
    if existing:
        raise HTTPException(status_code=409, detail="Already following")

    follow = Follow(follower_id=user.id, target_type=req.target_type, created_at=utc_now())
    setattr(follow, column, req.target_id)
    db.add(follow)
    db.commit()
    db.refresh(follow)
    return _follow_to_response(follow)


@router.get("", response_model=list[FollowResponse])
async def list_follows(user: User = Depends(require_user), db: Session = Depends(get_db)):
    follows = (
        db.query(Follow)
        .filter(Follow.follower_id == user.id)
        .order_by(Follow.created_at.desc(), Follow.id.desc())
        .all()
    )
    return [_follow_to_response(f) for f in follows]


@router.delete("/{follow_id}")
async def unfollow(follow_id: int, user: User = Depends(require_user), db: Session = Depends(get_db)):
    follow = db.query(Follow).filter(Follow.id == follow_id, Follow.follower_id == user.id).first()
    if not follow:
        raise HTTPException(status_code=404, detail="Follow not found")
    db.delete(follow)
    db.commit()
    return {"message": "Unfollowed"}
