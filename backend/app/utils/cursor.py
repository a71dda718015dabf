"""
Opaque pagination cursors.

A cursor is the ordering key of the last row a client received, plus the
sort mode it was issued under, serialized as JSON and base64url encoded
without padding. Nothing is stored server side; every token is validated
again when it comes back.
"""
import base64
import binascii
import logging
from datetime import datetime

from pydantic import BaseModel, ConfigDict, ValidationError, field_validator

from app.errors import InvalidCursor
from app.schemas.pagination import RankedItem, SortMode
from app.utils.timestamps import ensure_utc

logger = logging.getLogger("app.cursor")

CURSOR_VERSION = 1


class Cursor(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    v: int = CURSOR_VERSION
    sort: SortMode
    score: float | None = None
    created_at: datetime
    type_order: int
    primary_id: int

    @field_validator("created_at")
    @classmethod
    def _normalize_created_at(cls, value: datetime) -> datetime:
        return ensure_utc(value)


def encode_cursor(sort: SortMode, item: RankedItem) -> str:
    cursor = Cursor(
        sort=sort,
        score=item.score if sort is SortMode.RELEVANCE else None,
        created_at=item.created_at,
        type_order=item.type_order,
        primary_id=item.primary_id,
    )
    raw = base64.urlsafe_b64encode(cursor.model_dump_json().encode("utf-8"))
    return raw.decode("ascii").rstrip("=")


def decode_cursor(sort: SortMode, token: str | None) -> Cursor | None:
    """Decode ``token`` for a request sorted by ``sort``.

    Returns None for an absent or blank token (start from the beginning).
    Raises InvalidCursor for anything else that cannot be resumed.
    """
    if token is None or not token.strip():
        return None

    token = token.strip()
    padded = token + "=" * (-len(token) % 4)
    try:
        raw = base64.b64decode(padded, altchars=b"-_", validate=True)
        cursor = Cursor.model_validate_json(raw)
    except (binascii.Error, ValueError, ValidationError) as exc:
        logger.debug("Rejected undecodable cursor: %s", exc)
        raise InvalidCursor("Invalid cursor.") from exc

    if cursor.v != CURSOR_VERSION:
        raise InvalidCursor("Unsupported cursor version.")
    if cursor.sort is not sort:
        raise InvalidCursor("Cursor sort mismatch.", code="CURSOR_SORT_MISMATCH")
    if sort is SortMode.RELEVANCE and cursor.score is None:
        raise InvalidCursor("Invalid cursor payload.")
    return cursor
