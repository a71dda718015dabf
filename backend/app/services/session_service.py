import logging
import time

from sqlalchemy.orm import Session

from app.config import settings
from app.models.user import User
from app.utils.security import generate_token, verify_password

logger = logging.getLogger("app.session")


class SessionService:
    """Bearer tokens held in memory with a sliding expiry."""

    def __init__(self):
        self._active_tokens: dict[str, tuple[int, float]] = {}  # token -> (user_id, expires_at)

    def _cleanup_expired(self):
        now = time.time()
        self._active_tokens = {
            t: entry for t, entry in self._active_tokens.items() if entry[1] > now
        }

    def login(self, db: Session, username: str, password: str) -> dict | None:
        user = db.query(User).filter(User.username == username).first()
        if not user or not verify_password(user.password_hash, password):
            logger.info("Rejected login for %r", username)
            return None
        return self.issue(user.id)

    def issue(self, user_id: int) -> dict:
        token = generate_token()
        ttl = settings.session_ttl_seconds
        self._active_tokens[token] = (user_id, time.time() + ttl)
        return {"token": token, "expires_in_seconds": ttl}

    def resolve(self, token: str) -> int | None:
        self._cleanup_expired()
        entry = self._active_tokens.get(token)
        if entry is None:
            return None
        user_id = entry[0]
        self._active_tokens[token] = (user_id, time.time() + settings.session_ttl_seconds)
        return user_id

    def revoke(self, token: str):
        self._active_tokens.pop(token, None)

    def clear(self):
        self._active_tokens.clear()


session_service = SessionService()
