from fastapi import Depends, Header, HTTPException
from sqlalchemy.orm import Session

from app.database import get_db
from app.models.user import User
from app.services.session_service import session_service


async def require_user(
    authorization: str | None = Header(None),
    db: Session = Depends(get_db),
) -> User:
    if not authorization or not authorization.startswith("Bearer "):
        raise HTTPException(status_code=401, detail="Missing bearer token")
    user_id = session_service.resolve(authorization[7:])
    if user_id is None:
        raise HTTPException(status_code=401, detail="Session expired or token invalid")
    user = db.query(User).filter(User.id == user_id).first()
    if not user:
        raise HTTPException(status_code=401, detail="Session expired or token invalid")
    return user


async def require_moderator(user: User = Depends(require_user)) -> User:
    if not user.is_moderator:
        raise HTTPException(status_code=403, detail="Moderator role required")
    return user
