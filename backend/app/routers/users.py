from fastapi import APIRouter, Depends, Header, HTTPException
from sqlalchemy.orm import Session

from app.config import settings
from app.database import get_db
from app.dependencies import require_user
from app.models.user import User
from app.schemas.user import UserCreate, UserLoginRequest, UserLoginResponse, UserResponse
from app.services.session_service import session_service
from app.utils.security import hash_password
from app.utils.timestamps import utc_now

router = APIRouter(prefix="/users", tags=["users"])


def _user_to_response(user: User) -> UserResponse:
    return UserResponse(
        id=user.id,
        username=user.username,
        display_name=user.display_name,
        is_moderator=user.is_moderator,
        created_at=user.created_at,
    )


@router.post("", response_model=UserResponse, status_code=201)
async def register(req: UserCreate, db: Session = Depends(get_db)):
    if len(req.password) < 8:
        raise HTTPException(status_code=400, detail="Password must be at least 8 characters")
    if db.query(User).filter(User.username == req.username).first():
        raise HTTPException(status_code=409, detail="Username already taken")

    user = User(
        username=req.username,
        display_name=req.display_name,
        password_hash=hash_password(req.password),
        is_moderator=req.username in settings.moderator_usernames,
        created_at=utc_now(),
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return _user_to_response(user)


@router.post("/login", response_model=UserLoginResponse)
async def login(req: UserLoginRequest, db: Session = Depends(get_db)):
    result = session_service.login(db, req.username, req.password)
    if result is None:
        raise HTTPException(status_code=401, detail="Invalid username or password")
    return UserLoginResponse(**result)


@router.post("/logout")
async def logout(authorization: str = Header(...), user: User = Depends(require_user)):
    session_service.revoke(authorization[7:])
    return {"message": "Logged out"}


@router.get("/me", response_model=UserResponse)
async def me(user: User = Depends(require_user)):
    return _user_to_response(user)
