from app.models.user import User
from app.models.subject import Subject, SubjectType
from app.models.review import Review
from app.models.follow import Follow

__all__ = ["User", "Subject", "SubjectType", "Review", "Follow"]
