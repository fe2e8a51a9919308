import logging
import uuid
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from digital_archive.database import get_db
from digital_archive.dependencies import company_scope, enforce, require_roles
from digital_archive.models.company import Client, Company
from digital_archive.models.invoice import Invoice
from digital_archive.models.plan import ClientPlan
from digital_archive.models.user import User
from digital_archive.schemas.company import ClientCreate, ClientResponse, ClientUpdate, StatusUpdate
from digital_archive.services.billing_service import invoice_status
from digital_archive.services.permission_service import Action
from digital_archive.services.subscription_service import StatusTransitionError, change_status
from digital_archive.utils.security import hash_password

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/clients", tags=["clients"])

owner_only = require_roles("owner")


def _client_to_response(client: Client) -> ClientResponse:
    return ClientResponse(
        id=client.id,
        company_id=client.company_id,
        name=client.name,
        contact_email=client.contact_email,
        plan_id=client.plan_id,
        plan_name=client.plan.name if client.plan else None,
        status=client.status,
        created_at=client.created_at,
        documents_uploaded=client.documents_uploaded,
        documents_downloaded=client.documents_downloaded,
        documents_shared=client.documents_shared,
        total_documents_uploaded=client.total_documents_uploaded,
        documents_indexed=client.documents_indexed,
        documents_qa_passed=client.documents_qa_passed,
        total_documents_published=client.total_documents_published,
        storage_assigned=client.storage_assigned,
    )


def _get_client(client_id: str, user: User, db: Session) -> Client:
    client = db.query(Client).filter(
        Client.id == client_id,
        Client.company_id == company_scope(user),
    ).first()
    if not client:
        raise HTTPException(status_code=404, detail="Client not found")
    return client


def _require_client_plan(plan_id: str, company_id: str, db: Session):
    plan = db.query(ClientPlan).filter(
        ClientPlan.id == plan_id, ClientPlan.company_id == company_id,
    ).first()
    if not plan:
        raise HTTPException(status_code=404, detail="Client plan not found")


@router.post("", response_model=ClientResponse, status_code=201)
async def create_client(req: ClientCreate, user: User = Depends(owner_only), db: Session = Depends(get_db)):
    """Create a client of the owner's company together with its client user."""
    company = db.query(Company).filter(Company.id == company_scope(user)).first()
    enforce(Action.ADD_CLIENT, user, client_count=len(company.clients))
    _require_client_plan(req.plan_id, company.id, db)

    email = req.email.strip().lower()
    if db.query(User).filter(User.email == email).first():
        raise HTTPException(status_code=409, detail="A user with this email already exists")

    now = datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")
    client = Client(
        id=str(uuid.uuid4()),
        company_id=company.id,
        name=req.name,
        contact_email=email,
        plan_id=req.plan_id,
        status="pending",
        created_at=now,
    )
    db.add(client)
    db.add(User(
        id=str(uuid.uuid4()),
        name=req.name,
        email=email,
        role="client",
        password_hash=hash_password(req.password),
        company_id=company.id,
        client_id=client.id,
        status="active",
        created_at=now,
    ))
    db.commit()
    db.refresh(client)
    logger.info("Company %s added client %s", company.id, client.id)
    return _client_to_response(client)


@router.get("", response_model=list[ClientResponse])
async def list_clients(status: str | None = None, user: User = Depends(owner_only),
                       db: Session = Depends(get_db)):
    query = db.query(Client).filter(Client.company_id == company_scope(user))
    if status:
        query = query.filter(Client.status == status)
    return [_client_to_response(c) for c in query.order_by(Client.created_at.desc()).all()]


@router.get("/{client_id}", response_model=ClientResponse)
async def get_client(client_id: str, user: User = Depends(owner_only), db: Session = Depends(get_db)):
    return _client_to_response(_get_client(client_id, user, db))


@router.put("/{client_id}", response_model=ClientResponse)
async def update_client(client_id: str, req: ClientUpdate, user: User = Depends(owner_only),
                        db: Session = Depends(get_db)):
    client = _get_client(client_id, user, db)
    if req.plan_id is not None:
        _require_client_plan(req.plan_id, client.company_id, db)
        client.plan_id = req.plan_id
    if req.name is not None:
        client.name = req.name
    if req.contact_email is not None:
        client.contact_email = req.contact_email.strip().lower()
    db.commit()
    db.refresh(client)
    return _client_to_response(client)


@router.put("/{client_id}/status", response_model=ClientResponse)
async def update_client_status(client_id: str, req: StatusUpdate, user: User = Depends(owner_only),
                               db: Session = Depends(get_db)):
    client = _get_client(client_id, user, db)
    try:
        change_status(client, req.status)
    except StatusTransitionError as e:
        raise HTTPException(status_code=400, detail=str(e))
    db.commit()
    db.refresh(client)
    return _client_to_response(client)


@router.delete("/{client_id}")
async def delete_client(client_id: str, user: User = Depends(owner_only), db: Session = Depends(get_db)):
    client = _get_client(client_id, user, db)
    invoices = db.query(Invoice).filter(Invoice.client_id == client.id).order_by(Invoice.invoice_month).all()
    if invoices:
        raise HTTPException(status_code=409, detail={
            "message": "Client has invoices and cannot be deleted",
            "invoices": [
                {"invoice_id": inv.id, "invoice_month": inv.invoice_month, "status": invoice_status(inv)}
                for inv in invoices
            ],
        })
    db.query(User).filter(User.client_id == client.id).delete()
    db.delete(client)
    db.commit()
    return {"message": "Client deleted"}
