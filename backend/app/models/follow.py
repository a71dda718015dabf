from sqlalchemy import Column, ForeignKey, Integer, Text
from app.database import Base

FOLLOW_TARGET_TYPES = ("subject", "subject_type", "user")


class Follow(Base):
    __tablename__ = "follows"

    id = Column(Integer, primary_key=True)
    follower_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    target_type = Column(Text, nullable=False)
    subject_id = Column(Integer, ForeignKey("subjects.id", ondelete="CASCADE"))
    subject_type_id = Column(Integer, ForeignKey("subject_types.id", ondelete="CASCADE"))
    followed_user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"))
    created_at = Column(Text, nullable=False)
