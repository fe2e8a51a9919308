import uuid
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from digital_archive.database import get_db
from digital_archive.dependencies import company_scope, require_roles
from digital_archive.models.company import Client
from digital_archive.models.plan import ClientPlan
from digital_archive.models.user import User
from digital_archive.schemas.plan import ClientPlanCreate, ClientPlanResponse, ClientPlanUpdate
from digital_archive.services.invoice_service import InvoiceValidationError
from digital_archive.services.plan_service import apply_plan_fields, plan_values, validate_plan_pricing

router = APIRouter(prefix="/client-plans", tags=["client-plans"])

owner_only = require_roles("owner")


def _plan_to_response(plan: ClientPlan) -> ClientPlanResponse:
    return ClientPlanResponse(
        id=plan.id,
        company_id=plan.company_id,
        created_at=plan.created_at,
        client_count=len(plan.clients),
        **plan_values(plan, ClientPlanCreate.model_fields),
    )


def _get_plan(plan_id: str, user: User, db: Session) -> ClientPlan:
    plan = db.query(ClientPlan).filter(
        ClientPlan.id == plan_id,
        ClientPlan.company_id == company_scope(user),
    ).first()
    if not plan:
        raise HTTPException(status_code=404, detail="Client plan not found")
    return plan


def _name_taken(name: str, company_id: str, db: Session) -> bool:
    return db.query(ClientPlan).filter(
        ClientPlan.company_id == company_id, ClientPlan.name == name,
    ).first() is not None


@router.post("", response_model=ClientPlanResponse, status_code=201)
async def create_client_plan(req: ClientPlanCreate, user: User = Depends(owner_only),
                             db: Session = Depends(get_db)):
    company_id = company_scope(user)
    if _name_taken(req.name, company_id, db):
        raise HTTPException(status_code=409, detail="A client plan with this name already exists")

    plan = ClientPlan(
        id=str(uuid.uuid4()),
        company_id=company_id,
        created_at=datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ"),
    )
    apply_plan_fields(plan, req.model_dump())
    db.add(plan)
    db.commit()
    db.refresh(plan)
    return _plan_to_response(plan)


@router.get("", response_model=list[ClientPlanResponse])
async def list_client_plans(user: User = Depends(owner_only), db: Session = Depends(get_db)):
    plans = db.query(ClientPlan).filter(
        ClientPlan.company_id == company_scope(user),
    ).order_by(ClientPlan.name).all()
    return [_plan_to_response(p) for p in plans]


@router.get("/{plan_id}", response_model=ClientPlanResponse)
async def get_client_plan(plan_id: str, user: User = Depends(owner_only), db: Session = Depends(get_db)):
    return _plan_to_response(_get_plan(plan_id, user, db))


@router.put("/{plan_id}", response_model=ClientPlanResponse)
async def update_client_plan(plan_id: str, req: ClientPlanUpdate, user: User = Depends(owner_only),
                             db: Session = Depends(get_db)):
    plan = _get_plan(plan_id, user, db)
    values = req.model_dump(exclude_unset=True)
    if values.get("name") and values["name"] != plan.name and _name_taken(values["name"], plan.company_id, db):
        raise HTTPException(status_code=409, detail="A client plan with this name already exists")

    apply_plan_fields(plan, values)
    try:
        validate_plan_pricing(plan)
    except InvoiceValidationError as e:
        db.rollback()
        raise HTTPException(status_code=422, detail=str(e))
    db.commit()
    db.refresh(plan)
    return _plan_to_response(plan)


@router.delete("/{plan_id}")
async def delete_client_plan(plan_id: str, user: User = Depends(owner_only), db: Session = Depends(get_db)):
    plan = _get_plan(plan_id, user, db)
    clients = db.query(Client).filter(Client.plan_id == plan.id).all()
    if clients:
        raise HTTPException(status_code=409, detail={
            "message": "Client plan is assigned to clients and cannot be deleted",
            "companies": [],
            "clients": [
                {"client_name": c.name, "status": c.status, "contact_email": c.contact_email}
                for c in clients
            ],
        })
    db.delete(plan)
    db.commit()
    return {"message": "Client plan deleted"}
