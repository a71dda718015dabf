from sqlalchemy import Boolean, Column, ForeignKey, Integer, Text
from sqlalchemy.orm import relationship
from app.database import Base

REVIEW_STATUSES = ("pending", "approved", "rejected", "flagged")


class Review(Base):
    __tablename__ = "reviews"

    id = Column(Integer, primary_key=True)
    subject_id = Column(Integer, ForeignKey("subjects.id"), nullable=False)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    title = Column(Text)
    content = Column(Text)
    excerpt = Column(Text)
    status = Column(Text, nullable=False, default="pending")
    is_deleted = Column(Boolean, nullable=False, default=False)
    created_at = Column(Text, nullable=False)
    updated_at = Column(Text, nullable=False)

    subject = relationship("Subject", back_populates="reviews")
    user = relationship("User", back_populates="reviews")
