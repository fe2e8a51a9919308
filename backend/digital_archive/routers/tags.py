import uuid
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import func
from sqlalchemy.orm import Session

from digital_archive.database import get_db
from digital_archive.dependencies import company_scope, get_current_user, require_roles
from digital_archive.models.document import Document
from digital_archive.models.tag import DocumentTag
from digital_archive.models.user import User
from digital_archive.schemas.tag import TagCreate, TagResponse, TagUpdate

router = APIRouter(prefix="/document-tags", tags=["document-tags"])

tag_editors = require_roles("owner", "manager")


def _tag_to_response(tag: DocumentTag, db: Session) -> TagResponse:
    count = db.query(func.count(Document.id)).filter(Document.tag_id == tag.id).scalar()
    return TagResponse(
        id=tag.id,
        company_id=tag.company_id,
        name=tag.name,
        properties=tag.properties or [],
        document_count=count,
        created_at=tag.created_at,
    )


def _get_tag(tag_id: str, user: User, db: Session) -> DocumentTag:
    tag = db.query(DocumentTag).filter(
        DocumentTag.id == tag_id,
        DocumentTag.company_id == company_scope(user),
    ).first()
    if not tag:
        raise HTTPException(status_code=404, detail="Tag not found")
    return tag


def _clean_properties(names: list[str]) -> list[str]:
    seen = []
    for name in (n.strip() for n in names):
        if name and name not in seen:
            seen.append(name)
    return seen


@router.post("", response_model=TagResponse, status_code=201)
async def create_tag(req: TagCreate, user: User = Depends(tag_editors), db: Session = Depends(get_db)):
    company_id = company_scope(user)
    existing = db.query(DocumentTag).filter(
        DocumentTag.company_id == company_id, DocumentTag.name == req.name,
    ).first()
    if existing:
        raise HTTPException(status_code=409, detail="Tag already exists")

    tag = DocumentTag(
        id=str(uuid.uuid4()),
        company_id=company_id,
        name=req.name,
        properties=_clean_properties(req.properties),
        created_at=datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ"),
    )
    db.add(tag)
    db.commit()
    db.refresh(tag)
    return _tag_to_response(tag, db)


@router.get("", response_model=list[TagResponse])
async def list_tags(user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    tags = db.query(DocumentTag).filter(
        DocumentTag.company_id == company_scope(user),
    ).order_by(DocumentTag.name).all()
    return [_tag_to_response(t, db) for t in tags]


@router.get("/{tag_id}", response_model=TagResponse)
async def get_tag(tag_id: str, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    return _tag_to_response(_get_tag(tag_id, user, db), db)


@router.put("/{tag_id}", response_model=TagResponse)
async def update_tag(tag_id: str, req: TagUpdate, user: User = Depends(tag_editors),
                     db: Session = Depends(get_db)):
    tag = _get_tag(tag_id, user, db)
    if req.name is not None and req.name != tag.name:
        clash = db.query(DocumentTag).filter(
            DocumentTag.company_id == tag.company_id, DocumentTag.name == req.name,
        ).first()
        if clash:
            raise HTTPException(status_code=409, detail="Tag already exists")
        tag.name = req.name
    if req.properties is not None:
        tag.properties = _clean_properties(req.properties)
    db.commit()
    db.refresh(tag)
    return _tag_to_response(tag, db)


@router.delete("/{tag_id}")
async def delete_tag(tag_id: str, user: User = Depends(tag_editors), db: Session = Depends(get_db)):
    tag = _get_tag(tag_id, user, db)
    db.delete(tag)
    db.commit()
    return {"message": "Tag deleted"}
