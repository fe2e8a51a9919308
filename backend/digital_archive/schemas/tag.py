from pydantic import BaseModel, Field


class TagCreate(BaseModel):
    name: str = Field(..., min_length=1)
    properties: list[str] = []


class TagUpdate(BaseModel):
    name: str | None = None
    properties: list[str] | None = None


class TagResponse(BaseModel):
    id: str
    company_id: str
    name: str
    properties: list[str]
    document_count: int = 0
    created_at: str
