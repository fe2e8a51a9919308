import uuid
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from digital_archive.database import get_db
from digital_archive.dependencies import company_scope, require_roles
from digital_archive.models.company import Company
from digital_archive.models.user import User
from digital_archive.schemas.user import UserCreate, UserResponse, UserUpdate
from digital_archive.services.auth_service import auth_service
from digital_archive.services.permission_service import STAFF_ROLES, effective_create_dispute
from digital_archive.utils.security import hash_password

router = APIRouter(prefix="/users", tags=["users"])

owner_only = require_roles("owner")


def user_to_response(user: User) -> UserResponse:
    return UserResponse(
        id=user.id,
        name=user.name,
        email=user.email,
        phone=user.phone,
        role=user.role,
        company_id=user.company_id,
        client_id=user.client_id,
        status=user.status,
        allow_to_publish=user.allow_to_publish,
        create_dispute=user.create_dispute,
        documents_reviewed=user.documents_reviewed,
        created_at=user.created_at,
    )


def _get_staff(user_id: str, owner: User, db: Session) -> User:
    user = db.query(User).filter(
        User.id == user_id,
        User.company_id == company_scope(owner),
        User.role.in_(STAFF_ROLES),
    ).first()
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    return user


def _check_role(role: str):
    if role not in STAFF_ROLES:
        raise HTTPException(status_code=400, detail=f"Invalid role. Must be one of: {sorted(STAFF_ROLES)}")


@router.post("", response_model=UserResponse, status_code=201)
async def create_user(req: UserCreate, owner: User = Depends(owner_only), db: Session = Depends(get_db)):
    _check_role(req.role)
    company = db.query(Company).filter(Company.id == company_scope(owner)).first()
    plan = company.plan
    if plan and plan.total_users:
        staff = db.query(User).filter(User.company_id == company.id, User.role.in_(STAFF_ROLES)).count()
        if staff >= plan.total_users:
            raise HTTPException(
                status_code=403,
                detail=f"User limit reached ({staff} of {plan.total_users}). Upgrade your plan to add more.",
            )

    email = req.email.strip().lower()
    if db.query(User).filter(User.email == email).first():
        raise HTTPException(status_code=409, detail="A user with this email already exists")

    user = User(
        id=str(uuid.uuid4()),
        name=req.name,
        email=email,
        phone=req.phone,
        role=req.role,
        password_hash=hash_password(req.password),
        company_id=company.id,
        status="active",
        allow_to_publish=req.allow_to_publish,
        create_dispute=effective_create_dispute(req.role, req.create_dispute),
        created_at=datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ"),
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user_to_response(user)


@router.get("", response_model=list[UserResponse])
async def list_users(role: str | None = None, owner: User = Depends(owner_only), db: Session = Depends(get_db)):
    query = db.query(User).filter(User.company_id == company_scope(owner), User.role.in_(STAFF_ROLES))
    if role:
        query = query.filter(User.role == role)
    return [user_to_response(u) for u in query.order_by(User.name).all()]


@router.put("/{user_id}", response_model=UserResponse)
async def update_user(user_id: str, req: UserUpdate, owner: User = Depends(owner_only),
                      db: Session = Depends(get_db)):
    user = _get_staff(user_id, owner, db)
    if req.role is not None:
        _check_role(req.role)
        user.role = req.role
    if req.status is not None:
        if req.status not in ("active", "blocked"):
            raise HTTPException(status_code=400, detail="Status must be active or blocked")
        user.status = req.status
        if req.status == "blocked":
            auth_service.revoke_user(user.id)
    if req.name is not None:
        user.name = req.name
    if req.phone is not None:
        user.phone = req.phone
    if req.allow_to_publish is not None:
        user.allow_to_publish = req.allow_to_publish
    requested = req.create_dispute if req.create_dispute is not None else user.create_dispute
    user.create_dispute = effective_create_dispute(user.role, requested)
    db.commit()
    db.refresh(user)
    return user_to_response(user)


@router.delete("/{user_id}")
async def delete_user(user_id: str, owner: User = Depends(owner_only), db: Session = Depends(get_db)):
    user = _get_staff(user_id, owner, db)
    auth_service.revoke_user(user.id)
    db.delete(user)
    db.commit()
    return {"message": "User deleted"}
