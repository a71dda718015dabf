from pydantic import BaseModel


class FollowCreate(BaseModel):
    target_type: str
    target_id: int


class FollowResponse(BaseModel):
    id: int
    target_type: str
    subject_id: int | None
    subject_type_id: int | None
    followed_user_id: int | None
    created_at: str
