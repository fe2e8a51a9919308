import logging
import uuid
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from digital_archive.database import get_db
from digital_archive.dependencies import require_roles
from digital_archive.models.company import Company
from digital_archive.models.plan import Plan
from digital_archive.models.user import User
from digital_archive.schemas.company import CompanyCreate, CompanyResponse, CompanyUpdate, StatusUpdate
from digital_archive.services.subscription_service import StatusTransitionError, change_status
from digital_archive.utils.security import hash_password

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/companies",
    tags=["companies"],
    dependencies=[Depends(require_roles("admin"))],
)


def _company_to_response(company: Company) -> CompanyResponse:
    return CompanyResponse(
        id=company.id,
        name=company.name,
        contact_email=company.contact_email,
        admin_name=company.admin_name,
        plan_id=company.plan_id,
        plan_name=company.plan.name if company.plan else None,
        status=company.status,
        created_at=company.created_at,
        client_count=len(company.clients),
        user_count=len(company.users),
        documents_uploaded=company.documents_uploaded,
        documents_downloaded=company.documents_downloaded,
        documents_shared=company.documents_shared,
        total_documents_uploaded=company.total_documents_uploaded,
        documents_indexed=company.documents_indexed,
        documents_qa_passed=company.documents_qa_passed,
        total_documents_published=company.total_documents_published,
        storage_assigned=company.storage_assigned,
    )


def _get_company(company_id: str, db: Session) -> Company:
    company = db.query(Company).filter(Company.id == company_id).first()
    if not company:
        raise HTTPException(status_code=404, detail="Company not found")
    return company


def _require_plan(plan_id: str, db: Session):
    if not db.query(Plan).filter(Plan.id == plan_id).first():
        raise HTTPException(status_code=404, detail="Plan not found")


@router.post("", response_model=CompanyResponse, status_code=201)
async def create_company(req: CompanyCreate, db: Session = Depends(get_db)):
    """Create a company together with its owner account."""
    _require_plan(req.plan_id, db)
    email = req.contact_email.strip().lower()
    if db.query(User).filter(User.email == email).first():
        raise HTTPException(status_code=409, detail="A user with this email already exists")

    now = datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")
    company = Company(
        id=str(uuid.uuid4()),
        name=req.name,
        contact_email=email,
        admin_name=req.admin_name,
        plan_id=req.plan_id,
        status="pending",
        created_at=now,
    )
    db.add(company)
    db.add(User(
        id=str(uuid.uuid4()),
        name=req.admin_name,
        email=email,
        role="owner",
        password_hash=hash_password(req.password),
        company_id=company.id,
        status="active",
        allow_to_publish=True,
        create_dispute=False,
        created_at=now,
    ))
    db.commit()
    db.refresh(company)
    logger.info("Created company %s (%s)", company.name, company.id)
    return _company_to_response(company)


@router.get("", response_model=list[CompanyResponse])
async def list_companies(status: str | None = None, db: Session = Depends(get_db)):
    query = db.query(Company)
    if status:
        query = query.filter(Company.status == status)
    return [_company_to_response(c) for c in query.order_by(Company.created_at.desc()).all()]


@router.get("/{company_id}", response_model=CompanyResponse)
async def get_company(company_id: str, db: Session = Depends(get_db)):
    return _company_to_response(_get_company(company_id, db))


@router.put("/{company_id}", response_model=CompanyResponse)
async def update_company(company_id: str, req: CompanyUpdate, db: Session = Depends(get_db)):
    company = _get_company(company_id, db)
    if req.plan_id is not None:
        _require_plan(req.plan_id, db)
        company.plan_id = req.plan_id
    if req.name is not None:
        company.name = req.name
    if req.contact_email is not None:
        company.contact_email = req.contact_email.strip().lower()
    if req.admin_name is not None:
        company.admin_name = req.admin_name
    db.commit()
    db.refresh(company)
    return _company_to_response(company)


@router.put("/{company_id}/status", response_model=CompanyResponse)
async def update_company_status(company_id: str, req: StatusUpdate, db: Session = Depends(get_db)):
    company = _get_company(company_id, db)
    try:
        change_status(company, req.status)
    except StatusTransitionError as e:
        raise HTTPException(status_code=400, detail=str(e))
    db.commit()
    db.refresh(company)
    return _company_to_response(company)
