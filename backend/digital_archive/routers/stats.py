from datetime import datetime, timedelta, timezone

from fastapi import APIRouter, Depends, Query
from sqlalchemy import func
from sqlalchemy.orm import Session

from digital_archive.config import settings
from digital_archive.database import get_db
from digital_archive.dependencies import company_scope, enforce, get_current_user
from digital_archive.models.company import Client, Company
from digital_archive.models.dispute import Dispute
from digital_archive.models.document import Document
from digital_archive.models.invoice import Invoice
from digital_archive.models.user import User
from digital_archive.schemas.stats import ProgressReportResponse, StatsResponse
from digital_archive.services import workflow_service
from digital_archive.services.permission_service import Action
from digital_archive.utils.money import from_cents

router = APIRouter(prefix="/stats", tags=["stats"])

RANGE_DAYS = {"week": 7, "15days": 15, "month": 30}


def _documents_for(user: User, db: Session):
    query = db.query(Document)
    if user.role == "admin":
        return query
    query = query.filter(Document.company_id == company_scope(user))
    if user.role == "client":
        query = query.filter(Document.client_id == user.client_id)
    return query


@router.get("", response_model=StatsResponse)
async def get_stats(user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    invoices = db.query(func.coalesce(func.sum(Invoice.total_cents), 0))
    disputes = db.query(func.count(Dispute.id)).filter(Dispute.resolve.is_(False))

    if user.role == "admin":
        invoices = invoices.filter(Invoice.is_client.is_(False))
        subscribers = db.query(Company).all()
    elif user.role == "client":
        invoices = invoices.filter(Invoice.client_id == user.client_id)
        disputes = disputes.filter(Dispute.company_id == company_scope(user))
        subscribers = db.query(Client).filter(Client.id == user.client_id).all()
    else:
        company_id = company_scope(user)
        invoices = invoices.filter(Invoice.company_id == company_id, Invoice.is_client.is_(False))
        disputes = disputes.filter(Dispute.company_id == company_id)
        subscribers = db.query(Company).filter(Company.id == company_id).all()

    return StatsResponse(
        total_invoice_amount=from_cents(invoices.scalar()),
        total_documents_uploaded=sum(s.total_documents_uploaded for s in subscribers),
        total_documents_published=sum(s.total_documents_published for s in subscribers),
        documents_by_status=workflow_service.summarize(_documents_for(user, db).all(), floor=settings.progress_floor),
        open_disputes=disputes.scalar(),
    )


reports_router = APIRouter(prefix="/reports", tags=["stats"])


@reports_router.get("/document-progress", response_model=ProgressReportResponse)
async def document_progress(
    range_type: str = Query("week", alias="type", pattern="^(week|15days|month)$"),
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    enforce(Action.VIEW_REPORTS, user)
    today = datetime.now(timezone.utc).date()
    start = today - timedelta(days=RANGE_DAYS[range_type] - 1)

    docs = _documents_for(user, db).filter(Document.created_at >= start.isoformat()).all()
    per_day = {(start + timedelta(days=i)).isoformat(): 0 for i in range(RANGE_DAYS[range_type])}
    for doc in docs:
        day = doc.created_at[:10]
        if day in per_day:
            per_day[day] += 1

    return ProgressReportResponse(
        range_type=range_type,
        start_date=start.isoformat(),
        end_date=today.isoformat(),
        documents_by_status=workflow_service.summarize(docs, floor=settings.progress_floor),
        documents_per_day=per_day,
    )
