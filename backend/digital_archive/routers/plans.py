import logging
import uuid
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from digital_archive.database import get_db
from digital_archive.dependencies import require_roles
from digital_archive.models.company import Company
from digital_archive.models.plan import Plan
from digital_archive.schemas.plan import PlanCreate, PlanResponse, PlanUpdate
from digital_archive.services.invoice_service import InvoiceValidationError
from digital_archive.services.plan_service import apply_plan_fields, plan_values, validate_plan_pricing

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/plans",
    tags=["plans"],
    dependencies=[Depends(require_roles("admin"))],
)


def _plan_to_response(plan: Plan) -> PlanResponse:
    return PlanResponse(
        id=plan.id,
        created_at=plan.created_at,
        company_count=len(plan.companies),
        **plan_values(plan, PlanCreate.model_fields),
    )


def _get_plan(plan_id: str, db: Session) -> Plan:
    plan = db.query(Plan).filter(Plan.id == plan_id).first()
    if not plan:
        raise HTTPException(status_code=404, detail="Plan not found")
    return plan


@router.post("", response_model=PlanResponse, status_code=201)
async def create_plan(req: PlanCreate, db: Session = Depends(get_db)):
    if db.query(Plan).filter(Plan.name == req.name).first():
        raise HTTPException(status_code=409, detail="A plan with this name already exists")

    plan = Plan(
        id=str(uuid.uuid4()),
        created_at=datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ"),
    )
    apply_plan_fields(plan, req.model_dump())
    db.add(plan)
    db.commit()
    db.refresh(plan)
    logger.info("Created plan %s (%s)", plan.name, plan.id)
    return _plan_to_response(plan)


@router.get("", response_model=list[PlanResponse])
async def list_plans(db: Session = Depends(get_db)):
    plans = db.query(Plan).order_by(Plan.created_at.desc()).all()
    return [_plan_to_response(p) for p in plans]


@router.get("/{plan_id}", response_model=PlanResponse)
async def get_plan(plan_id: str, db: Session = Depends(get_db)):
    return _plan_to_response(_get_plan(plan_id, db))


@router.put("/{plan_id}", response_model=PlanResponse)
async def update_plan(plan_id: str, req: PlanUpdate, db: Session = Depends(get_db)):
    plan = _get_plan(plan_id, db)
    values = req.model_dump(exclude_unset=True)
    if values.get("name") and values["name"] != plan.name:
        if db.query(Plan).filter(Plan.name == values["name"]).first():
            raise HTTPException(status_code=409, detail="A plan with this name already exists")

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
async def delete_plan(plan_id: str, db: Session = Depends(get_db)):
    plan = _get_plan(plan_id, db)
    companies = db.query(Company).filter(Company.plan_id == plan.id).all()
    if companies:
        raise HTTPException(status_code=409, detail={
            "message": "Plan is assigned to companies and cannot be deleted",
            "companies": [
                {"company_name": c.name, "admin_name": c.admin_name, "contact_email": c.contact_email}
                for c in companies
            ],
            "clients": [],
        })
    db.delete(plan)
    db.commit()
    return {"message": "Plan deleted"}
