from pydantic import BaseModel, Field

from app.schemas.pagination import RankedItem


class ReviewCreate(BaseModel):
    subject_id: int
    title: str | None = Field(default=None, max_length=256)
    content: str | None = Field(default=None, max_length=20000)
    excerpt: str | None = Field(default=None, max_length=512)


class ReviewStatusUpdate(BaseModel):
    status: str


class ReviewResponse(BaseModel):
    id: int
    subject_id: int
    subject_name: str | None
    user_id: int
    title: str | None
    content: str | None
    excerpt: str | None
    status: str
    created_at: str
    updated_at: str


class ReviewSummary(RankedItem):
    score: float = Field(default=0.0, exclude=True)
    id: int
    subject_id: int
    user_id: int
    title: str | None = None
    content: str | None = None
    status: str
