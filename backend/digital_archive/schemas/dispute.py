from pydantic import BaseModel, Field


class DisputeCreate(BaseModel):
    document_id: str
    description: str = Field(..., min_length=1)


class DisputeResponse(BaseModel):
    id: str
    document_id: str
    document_title: str | None = None
    description: str
    resolve: bool
    created_by_name: str
    created_at: str
    resolved_by_name: str | None
    resolved_at: str | None
