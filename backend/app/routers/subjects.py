from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from app.database import get_db
from app.dependencies import require_user
from app.models.subject import Subject, SubjectType
from app.schemas.subject import SubjectCreate, SubjectResponse, SubjectTypeCreate, SubjectTypeResponse
from app.utils.timestamps import utc_now

router = APIRouter(tags=["subjects"], dependencies=[Depends(require_user)])


def _subject_to_response(subject: Subject) -> SubjectResponse:
    return SubjectResponse(
        id=subject.id,
        subject_type_id=subject.subject_type_id,
        name=subject.name,
        slug=subject.slug,
        created_at=subject.created_at,
    )


@router.post("/subject-types", response_model=SubjectTypeResponse, status_code=201)
async def create_subject_type(req: SubjectTypeCreate, db: Session = Depends(get_db)):
    if db.query(SubjectType).filter(SubjectType.key == req.key).first():
        raise HTTPException(status_code=409, detail="Subject type key already exists")
    subject_type = SubjectType(key=req.key, display_name=req.display_name)
    db.add(subject_type)
    db.commit()
    db.refresh(subject_type)
    return SubjectTypeResponse(
        id=subject_type.id, key=subject_type.key, display_name=subject_type.display_name
    )


@router.post("/subjects", response_model=SubjectResponse, status_code=201)
async def create_subject(req: SubjectCreate, db: Session = Depends(get_db)):
    if not db.query(SubjectType).filter(SubjectType.id == req.subject_type_id).first():
        raise HTTPException(status_code=404, detail="Subject type not found")
    if db.query(Subject).filter(Subject.slug == req.slug).first():
        raise HTTPException(status_code=409, detail="Slug already in use")

    subject = Subject(
        subject_type_id=req.subject_type_id,
        name=req.name.strip(),
        slug=req.slug,
        is_deleted=False,
        created_at=utc_now(),
    )
    db.add(subject)
    db.commit()
    db.refresh(subject)
    return _subject_to_response(subject)


@router.get("/subjects/{subject_id}", response_model=SubjectResponse)
async def get_subject(subject_id: int, db: Session = Depends(get_db)):
    subject = db.query(Subject).filter(Subject.id == subject_id, Subject.is_deleted.is_(False)).first()
    if not subject:
        raise HTTPException(status_code=404, detail="Subject not found")
    return _subject_to_response(subject)


@router.delete("/subjects/{subject_id}")
async def delete_subject(subject_id: int, db: Session = Depends(get_db)):
    subject = db.query(Subject).filter(Subject.id == subject_id, Subject.is_deleted.is_(False)).first()
    if not subject:
        raise HTTPException(status_code=404, detail="Subject not found")
    # Soft delete: reviews stay, but drop out of search with their subject
    subject.is_deleted = True
    db.commit()
    return {"message": "Subject deleted"}
