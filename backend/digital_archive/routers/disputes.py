import uuid
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from digital_archive.database import get_db
from digital_archive.dependencies import company_scope, enforce, get_current_user
from digital_archive.models.dispute import Dispute
from digital_archive.models.document import Document
from digital_archive.models.user import User
from digital_archive.schemas.dispute import DisputeCreate, DisputeResponse
from digital_archive.services.permission_service import Action

router = APIRouter(prefix="/disputes", tags=["disputes"])


def _dispute_to_response(dispute: Dispute) -> DisputeResponse:
    return DisputeResponse(
        id=dispute.id,
        document_id=dispute.document_id,
        document_title=dispute.document.title if dispute.document else None,
        description=dispute.description,
        resolve=dispute.resolve,
        created_by_name=dispute.created_by_name,
        created_at=dispute.created_at,
        resolved_by_name=dispute.resolved_by_name,
        resolved_at=dispute.resolved_at,
    )


@router.post("", response_model=DisputeResponse, status_code=201)
async def create_dispute(req: DisputeCreate, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    enforce(Action.CREATE_DISPUTE, user)
    doc = db.query(Document).filter(
        Document.id == req.document_id,
        Document.company_id == company_scope(user),
    ).first()
    if not doc:
        raise HTTPException(status_code=404, detail="Document not found")

    dispute = Dispute(
        id=str(uuid.uuid4()),
        document_id=doc.id,
        company_id=doc.company_id,
        description=req.description,
        resolve=False,
        created_by_user_id=user.id,
        created_by_name=user.name,
        created_at=datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ"),
    )
    db.add(dispute)
    db.commit()
    db.refresh(dispute)
    return _dispute_to_response(dispute)


@router.get("", response_model=list[DisputeResponse])
async def list_disputes(resolved: bool | None = None, user: User = Depends(get_current_user),
                        db: Session = Depends(get_db)):
    query = db.query(Dispute).filter(Dispute.company_id == company_scope(user))
    if resolved is not None:
        query = query.filter(Dispute.resolve == resolved)
    return [_dispute_to_response(d) for d in query.order_by(Dispute.created_at.desc()).all()]


@router.put("/{dispute_id}/resolve", response_model=DisputeResponse)
async def resolve_dispute(dispute_id: str, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    enforce(Action.RESOLVE_DISPUTE, user)
    dispute = db.query(Dispute).filter(
        Dispute.id == dispute_id,
        Dispute.company_id == company_scope(user),
    ).first()
    if not dispute:
        raise HTTPException(status_code=404, detail="Dispute not found")
    if dispute.resolve:
        raise HTTPException(status_code=409, detail="Dispute is already resolved")

    dispute.resolve = True
    dispute.resolved_by_name = user.name
    dispute.resolved_at = datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")
    db.commit()
    db.refresh(dispute)
    return _dispute_to_response(dispute)
