from sqlalchemy import Boolean, Column, ForeignKey, Integer, Text
from sqlalchemy.orm import relationship
from app.database import Base


class SubjectType(Base):
    __tablename__ = "subject_types"

    id = Column(Integer, primary_key=True)
    key = Column(Text, nullable=False, unique=True)
    display_name = Column(Text, nullable=False)

    subjects = relationship("Subject", back_populates="subject_type")


class Subject(Base):
    __tablename__ = "subjects"

    id = Column(Integer, primary_key=True)
    subject_type_id = Column(Integer, ForeignKey("subject_types.id"), nullable=False)
    name = Column(Text, nullable=False)
    slug = Column(Text, nullable=False, unique=True)
    is_deleted = Column(Boolean, nullable=False, default=False)
    created_at = Column(Text, nullable=False)

    subject_type = relationship("SubjectType", back_populates="subjects")
    reviews = relationship("Review", back_populates="subject")
