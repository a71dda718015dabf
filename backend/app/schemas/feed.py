from pydantic import Field

from app.schemas.pagination import RankedItem


class FeedItem(RankedItem):
    score: float = Field(default=0.0, exclude=True)
    review_id: int
    subject_id: int
    subject_name: str | None = None
    subject_slug: str | None = None
    subject_type_id: int | None = None
    title: str | None = None
    content: str | None = None
    author_id: int | None = None
    author_username: str | None = None
    author_display_name: str | None = None
