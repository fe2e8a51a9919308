from pydantic import BaseModel, Field, field_validator

from digital_archive.services.workflow_service import WorkflowStatus


class DocumentProperty(BaseModel):
    name: str
    type: str = "text"
    value: str = ""


class DocumentUpdate(BaseModel):
    title: str | None = None
    properties: list[DocumentProperty] | None = None


class AssignRequest(BaseModel):
    assignee_id: str


class CommentRequest(BaseModel):
    comment: str = Field(..., max_length=2000)

    @field_validator("comment")
    @classmethod
    def _not_blank(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Comment cannot be empty")
        return v


class CommentEntry(BaseModel):
    id: str
    comment: str
    name: str
    role: str
    timestamp: str


class DocumentResponse(BaseModel):
    id: str
    company_id: str
    client_id: str | None
    tag_id: str | None
    tag_name: str | None
    title: str
    original_filename: str
    file_hash: str
    file_size_bytes: int
    mime_type: str | None
    properties: list[DocumentProperty]
    added_by_user_id: str | None
    added_by_role: str | None
    passed_to: str | None
    indexer_passed_id: str | None
    qa_passed_id: str | None
    is_published: bool
    status: WorkflowStatus
    progress_number: int
    created_at: str
    updated_at: str
    comments: list[CommentEntry] = []


class DocumentListResponse(BaseModel):
    documents: list[DocumentResponse]
    total: int
    page: int
    per_page: int


class HistoryEntry(BaseModel):
    id: str
    user_name: str
    action: str
    details: str | None
    created_at: str


class ShareRequest(BaseModel):
    password: str = Field(..., min_length=4)


class ShareResponse(BaseModel):
    share_id: str
    document_id: str
    created_at: str


class SharedDocumentRequest(BaseModel):
    password: str


class SharedDocumentResponse(BaseModel):
    document_id: str
    title: str
    tag_name: str | None
    properties: list[DocumentProperty]
    original_filename: str
