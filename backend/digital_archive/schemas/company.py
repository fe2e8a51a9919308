from pydantic import BaseModel, Field


class CompanyCreate(BaseModel):
    name: str = Field(..., min_length=1)
    contact_email: str
    admin_name: str
    password: str = Field(..., min_length=8)
    plan_id: str


class CompanyUpdate(BaseModel):
    name: str | None = None
    contact_email: str | None = None
    admin_name: str | None = None
    plan_id: str | None = None


class StatusUpdate(BaseModel):
    status: str


class UsageCounters(BaseModel):
    documents_uploaded: int = 0
    documents_downloaded: int = 0
    documents_shared: int = 0
    total_documents_uploaded: int = 0
    documents_indexed: int = 0
    documents_qa_passed: int = 0
    total_documents_published: int = 0
    storage_assigned: int = 0


class CompanyResponse(UsageCounters):
    id: str
    name: str
    contact_email: str
    admin_name: str | None
    plan_id: str | None
    plan_name: str | None = None
    status: str
    created_at: str
    client_count: int = 0
    user_count: int = 0


class ClientCreate(BaseModel):
    name: str = Field(..., min_length=1)
    email: str
    password: str = Field(..., min_length=8)
    plan_id: str


class ClientUpdate(BaseModel):
    name: str | None = None
    contact_email: str | None = None
    plan_id: str | None = None


class ClientResponse(UsageCounters):
    id: str
    company_id: str
    name: str
    contact_email: str
    plan_id: str | None
    plan_name: str | None = None
    status: str
    created_at: str
