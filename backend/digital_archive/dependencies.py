from fastapi import Depends, Header, HTTPException
from sqlalchemy.orm import Session

from digital_archive.database import get_db
from digital_archive.models.plan import ClientPlan, Plan
from digital_archive.models.user import User
from digital_archive.services import permission_service
from digital_archive.services.auth_service import auth_service


async def get_token(authorization: str | None = Header(None)) -> str:
    if not authorization or not authorization.startswith("Bearer "):
        raise HTTPException(status_code=401, detail="Missing bearer token")
    return authorization[7:]


async def get_current_user(token: str = Depends(get_token), db: Session = Depends(get_db)) -> User:
    user_id = auth_service.validate_token(token)
    if not user_id:
        raise HTTPException(status_code=401, detail="Session expired or invalid token")
    user = db.query(User).filter(User.id == user_id).first()
    if not user or user.status != "active":
        auth_service.revoke_user(user_id)
        raise HTTPException(status_code=401, detail="Account is no longer active")
    return user


def require_roles(*roles: str):
    async def dependency(user: User = Depends(get_current_user)) -> User:
        if user.role not in roles:
            raise HTTPException(status_code=403, detail=f"The {user.role} role cannot access this resource")
        return user
    return dependency


def plan_for(user: User) -> Plan | ClientPlan | None:
    """Client users take flags from their client's plan, owner and staff from their company's."""
    if user.role == "client":
        return user.client.plan if user.client else None
    if user.company:
        return user.company.plan
    return None


def enforce(action: permission_service.Action, user: User, **context):
    """Raise 403 with the gate's reason when ``user`` may not perform ``action``."""
    if action == permission_service.Action.CREATE_DISPUTE:
        context.setdefault("create_dispute", user.create_dispute)
    decision = permission_service.check(action, user.role, plan_for(user), **context)
    if not decision.allowed:
        raise HTTPException(status_code=403, detail=decision.reason)


def company_scope(user: User) -> str:
    """Company a non-admin user acts on behalf of."""
    if not user.company_id:
        raise HTTPException(status_code=403, detail="User is not attached to a company")
    return user.company_id
