from pydantic import BaseModel, Field


class SubjectTypeCreate(BaseModel):
    key: str = Field(min_length=1, max_length=64)
    display_name: str


class SubjectTypeResponse(BaseModel):
    id: int
    key: str
    display_name: str


class SubjectCreate(BaseModel):
    subject_type_id: int
    name: str = Field(min_length=1, max_length=256)
    slug: str = Field(min_length=1, max_length=256, pattern=r"^[a-z0-9]+(?:-[a-z0-9]+)*$")


class SubjectResponse(BaseModel):
    id: int
    subject_type_id: int
    name: str
    slug: str
    created_at: str
