from datetime import datetime
from enum import Enum
from typing import Generic, TypeVar

from pydantic import BaseModel, Field, field_validator

from app.utils.timestamps import ensure_utc


class SortMode(str, Enum):
    RELEVANCE = "relevance"
    LATEST = "latest"


class RankedItem(BaseModel):
    """Base for every paginated row: carries the ordering key.

    ``type_order`` and ``primary_id`` are internal tie-breakers and are
    never serialized.
    """

    type_order: int = Field(default=0, exclude=True)
    primary_id: int = Field(default=0, exclude=True)
    score: float = 0.0
    created_at: datetime

    @field_validator("created_at")
    @classmethod
    def _normalize_created_at(cls, value: datetime) -> datetime:
        return ensure_utc(value)


T = TypeVar("T")


class OffsetPage(BaseModel, Generic[T]):
    total_count: int
    page: int
    page_size: int
    items: list[T]
    next_cursor: str | None = None
    has_more: bool = False
