from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.orm import Session

from digital_archive.database import get_db
from digital_archive.dependencies import get_current_user, get_token, plan_for
from digital_archive.models.company import Company
from digital_archive.models.user import User
from digital_archive.schemas.user import LoginRequest, LoginResponse, PlanInformation, ProfileResponse
from digital_archive.services import permission_service
from digital_archive.services.auth_service import auth_service

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/login", response_model=LoginResponse)
async def login(req: LoginRequest, request: Request, db: Session = Depends(get_db)):
    client_host = request.client.host if request.client else "unknown"
    result = auth_service.login(db, req.email, req.password, throttle_key=f"login:{client_host}")
    if result is None:
        raise HTTPException(status_code=401, detail="Invalid email or password")
    if result.get("error") == "account_blocked":
        raise HTTPException(status_code=403, detail="Account is blocked")
    if "error" in result:
        raise HTTPException(status_code=429, detail=result)
    return LoginResponse(**result)


@router.post("/logout")
async def logout(token: str = Depends(get_token)):
    auth_service.logout(token)
    return {"message": "Signed out"}


@router.get("/me", response_model=ProfileResponse)
async def me(user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    plan = plan_for(user)
    client_count = 0
    if user.role == "owner" and user.company_id:
        company = db.query(Company).filter(Company.id == user.company_id).first()
        client_count = len(company.clients) if company else 0

    plan_info = None
    if plan is not None:
        flags = permission_service.PlanFlags.model_validate(plan)
        plan_info = PlanInformation(plan_id=plan.id, plan_name=plan.name, **flags.model_dump())

    return ProfileResponse(
        id=user.id,
        name=user.name,
        email=user.email,
        phone=user.phone,
        role=user.role,
        company_id=user.company_id,
        client_id=user.client_id,
        status=user.status,
        allow_to_publish=user.allow_to_publish,
        create_dispute=permission_service.effective_create_dispute(user.role, user.create_dispute),
        documents_reviewed=user.documents_reviewed,
        created_at=user.created_at,
        plan=plan_info,
        capabilities=permission_service.capabilities(
            user.role, plan, client_count=client_count, create_dispute=user.create_dispute,
        ),
    )
