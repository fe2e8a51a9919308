from pydantic import BaseModel, Field

from digital_archive.services.permission_service import Decision


class LoginRequest(BaseModel):
    email: str
    password: str


class LoginResponse(BaseModel):
    token: str
    expires_in_seconds: int
    user_id: str
    role: str


class UserCreate(BaseModel):
    name: str = Field(..., min_length=1)
    email: str
    phone: str | None = None
    role: str
    password: str = Field(..., min_length=8)
    allow_to_publish: bool = False
    create_dispute: bool | None = None


class UserUpdate(BaseModel):
    name: str | None = None
    phone: str | None = None
    role: str | None = None
    status: str | None = None
    allow_to_publish: bool | None = None
    create_dispute: bool | None = None


class UserResponse(BaseModel):
    id: str
    name: str
    email: str
    phone: str | None
    role: str
    company_id: str | None
    client_id: str | None
    status: str
    allow_to_publish: bool
    create_dispute: bool
    documents_reviewed: int
    created_at: str


class PlanInformation(BaseModel):
    plan_id: str | None
    plan_name: str | None
    can_share_document: bool = False
    can_view_activity_logs: bool = False
    can_view_chat: bool = False
    can_view_reports: bool = False
    allow_multiple_uploads: bool = False
    can_add_client: bool = False
    number_of_clients: int = 0


class ProfileResponse(UserResponse):
    plan: PlanInformation | None = None
    capabilities: dict[str, Decision] = {}
