from enum import Enum

from pydantic import BaseModel

from app.schemas.pagination import RankedItem


class SearchType(str, Enum):
    ALL = "all"
    SUBJECTS = "subjects"
    REVIEWS = "reviews"


class ResultType(str, Enum):
    SUBJECT = "subject"
    REVIEW = "review"


class ResultProjection(RankedItem):
    """One search hit, from any source, reduced to a common shape."""

    type: ResultType
    subject_id: int | None = None
    review_id: int | None = None
    title: str
    subtitle: str | None = None
    excerpt: str | None = None


class SearchResponse(BaseModel):
    results: list[ResultProjection]
    sort: str
    type: str
    next_cursor: str | None = None
    has_more: bool = False
