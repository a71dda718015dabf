from pydantic import BaseModel, Field


class UserCreate(BaseModel):
    username: str = Field(min_length=3, max_length=64)
    password: str
    display_name: str | None = None


class UserLoginRequest(BaseModel):
    username: str
    password: str


class UserLoginResponse(BaseModel):
    token: str
    expires_in_seconds: int


class UserResponse(BaseModel):
    id: int
    username: str
    display_name: str | None
    is_moderator: bool
    created_at: str
