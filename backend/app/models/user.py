from sqlalchemy import Boolean, Column, Integer, Text
from sqlalchemy.orm import relationship
from app.database import Base


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True)
    username = Column(Text, nullable=False, unique=True)
    display_name = Column(Text)
    password_hash = Column(Text, nullable=False)
    is_moderator = Column(Boolean, nullable=False, default=False)
    created_at = Column(Text, nullable=False)

    reviews = relationship("Review", back_populates="user")
