import re

from sqlalchemy import Integer, literal, or_, select

from app.models.follow import Follow
from app.models.review import Review
from app.models.subject import Subject
from app.models.user import User
from app.schemas.feed import FeedItem
from app.schemas.review import ReviewSummary
from app.services.paging import RankedSource
from app.services.search_service import REVIEW_TYPE_ORDER

EXCERPT_LENGTH = 200


def make_excerpt(content: str | None, length: int = EXCERPT_LENGTH) -> str | None:
    if not content:
        return None
    text = re.sub(r"\s+", " ", content).strip()
    if len(text) <= length:
        return text
    return text[:length].rsplit(" ", 1)[0] + "..."


def _visible_reviews():
    return (Review.is_deleted.is_(False), Review.status == "approved")


def latest_reviews_source() -> RankedSource[ReviewSummary]:
    stmt = select(
        literal(REVIEW_TYPE_ORDER, Integer).label("type_order"),
        Review.id.label("primary_id"),
        Review.created_at.label("created_at"),
        Review.id.label("id"),
        Review.subject_id.label("subject_id"),
        Review.user_id.label("user_id"),
        Review.title.label("title"),
        Review.content.label("content"),
        Review.status.label("status"),
    ).where(*_visible_reviews())
    return RankedSource(stmt, ReviewSummary)


def _followed(user_id: int, target_type: str, target):
    return select(target).where(Follow.follower_id == user_id, Follow.target_type == target_type)


def feed_source(user_id: int) -> RankedSource[FeedItem]:
    """Approved reviews by followed users, on followed subjects, or on
    subjects of followed subject types."""
    followed = or_(
        Review.user_id.in_(_followed(user_id, "user", Follow.followed_user_id)),
        Review.subject_id.in_(_followed(user_id, "subject", Follow.subject_id)),
        Subject.subject_type_id.in_(_followed(user_id, "subject_type", Follow.subject_type_id)),
    )
    stmt = (
        select(
            literal(REVIEW_TYPE_ORDER, Integer).label("type_order"),
            Review.id.label("primary_id"),
            Review.created_at.label("created_at"),
            Review.id.label("review_id"),
            Review.subject_id.label("subject_id"),
            Subject.name.label("subject_name"),
            Subject.slug.label("subject_slug"),
            Subject.subject_type_id.label("subject_type_id"),
            Review.title.label("title"),
            Review.content.label("content"),
            User.id.label("author_id"),
            User.username.label("author_username"),
            User.display_name.label("author_display_name"),
        )
        .select_from(Review)
        .join(Subject, Subject.id == Review.subject_id)
        .join(User, User.id == Review.user_id)
        .where(*_visible_reviews())
        .where(followed)
    )
    return RankedSource(stmt, FeedItem)
