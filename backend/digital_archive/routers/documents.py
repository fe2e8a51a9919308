import logging
import uuid
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, File, Form, HTTPException, Query, UploadFile
from fastapi.responses import FileResponse
from sqlalchemy.orm import Session

from digital_archive.config import settings
from digital_archive.database import get_db
from digital_archive.dependencies import company_scope, enforce, get_current_user, plan_for, require_roles
from digital_archive.models.company import Client, Company
from digital_archive.models.document import Document, DocumentComment, DocumentShare
from digital_archive.models.tag import DocumentTag
from digital_archive.models.user import User
from digital_archive.schemas.document import (
    AssignRequest,
    CommentEntry,
    CommentRequest,
    DocumentListResponse,
    DocumentProperty,
    DocumentResponse,
    DocumentUpdate,
    HistoryEntry,
    SharedDocumentRequest,
    SharedDocumentResponse,
    ShareRequest,
    ShareResponse,
)
from digital_archive.services import document_service, workflow_service
from digital_archive.services.permission_service import UPLOADER_ROLES, Action
from digital_archive.utils.security import hash_password, verify_password

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/documents", tags=["documents"])

uploaders = require_roles(*UPLOADER_ROLES)
assigners = require_roles("owner", "manager", "scanner")
indexers = require_roles("indexer", "manager")
reviewers = require_roles("qa", "manager")

GIGABYTE = 1024 ** 3


def _comment_to_entry(comment: DocumentComment) -> CommentEntry:
    return CommentEntry(
        id=comment.id,
        comment=comment.comment,
        name=comment.user_name,
        role=comment.user_role,
        timestamp=comment.created_at,
    )


def _doc_to_response(doc: Document) -> DocumentResponse:
    result = workflow_service.resolve(doc, floor=settings.progress_floor)
    return DocumentResponse(
        id=doc.id,
        company_id=doc.company_id,
        client_id=doc.client_id,
        tag_id=doc.tag_id,
        tag_name=doc.tag_name,
        title=doc.title,
        original_filename=doc.original_filename,
        file_hash=doc.file_hash,
        file_size_bytes=doc.file_size_bytes,
        mime_type=doc.mime_type,
        properties=[DocumentProperty(**p) for p in doc.properties or []],
        added_by_user_id=doc.added_by_user_id,
        added_by_role=doc.added_by_role,
        passed_to=doc.passed_to,
        indexer_passed_id=doc.indexer_passed_id,
        qa_passed_id=doc.qa_passed_id,
        is_published=bool(doc.is_published),
        status=result.status,
        progress_number=result.progress,
        created_at=doc.created_at,
        updated_at=doc.updated_at,
        comments=[_comment_to_entry(c) for c in doc.comments],
    )


def _scoped_query(user: User, db: Session):
    query = db.query(Document).filter(Document.company_id == company_scope(user))
    if user.role == "client":
        query = query.filter(Document.client_id == user.client_id)
    return query


def _get_document(doc_id: str, user: User, db: Session) -> Document:
    doc = _scoped_query(user, db).filter(Document.id == doc_id).first()
    if not doc:
        raise HTTPException(status_code=404, detail="Document not found")
    return doc


def _subscriber_of(doc: Document, db: Session) -> Company | Client:
    """The company or client whose usage this document counts towards."""
    if doc.client_id:
        client = db.query(Client).filter(Client.id == doc.client_id).first()
        if client:
            return client
    return db.query(Company).filter(Company.id == doc.company_id).first()


def _uploading_subscriber(user: User, db: Session) -> Company | Client:
    if user.role == "client":
        return db.query(Client).filter(Client.id == user.client_id).first()
    return db.query(Company).filter(Company.id == company_scope(user)).first()


def _check_quota(user: User, subscriber: Company | Client, pending_files: int, pending_bytes: int):
    plan = plan_for(user)
    if plan is None:
        return
    if plan.docs_upload_limit and subscriber.total_documents_uploaded + pending_files > plan.docs_upload_limit:
        raise HTTPException(
            status_code=413,
            detail=f"Upload limit reached ({subscriber.total_documents_uploaded} of {plan.docs_upload_limit} documents)",
        )
    if plan.storage_limit_gb and subscriber.storage_assigned + pending_bytes > plan.storage_limit_gb * GIGABYTE:
        raise HTTPException(status_code=413, detail=f"Storage limit of {plan.storage_limit_gb} GB reached")


async def _read_upload(file: UploadFile) -> bytes:
    max_bytes = settings.max_upload_bytes
    size = 0
    chunks: list[bytes] = []
    while True:
        chunk = await file.read(1024 * 1024)
        if not chunk:
            break
        size += len(chunk)
        if size > max_bytes:
            raise HTTPException(status_code=413, detail=f"File too large (max {max_bytes} bytes)")
        chunks.append(chunk)

    content = b"".join(chunks)
    if not content:
        raise HTTPException(status_code=400, detail=f"Empty file: {file.filename}")
    return content


def _resolve_tag(tag_id: str | None, user: User, db: Session) -> DocumentTag | None:
    if not tag_id:
        return None
    tag = db.query(DocumentTag).filter(
        DocumentTag.id == tag_id, DocumentTag.company_id == company_scope(user),
    ).first()
    if not tag:
        raise HTTPException(status_code=404, detail="Tag not found")
    return tag


def _check_duplicates(user: User, uploads: list[tuple[str, bytes]], db: Session):
    """Reject the whole upload if any file repeats stored or sibling content."""
    seen = set()
    for filename, content in uploads:
        digest = document_service.file_hash(content)
        duplicate = db.query(Document).filter(
            Document.company_id == user.company_id, Document.file_hash == digest,
        ).first()
        if duplicate or digest in seen:
            raise HTTPException(status_code=409, detail=f"Document with identical content already exists: {filename}")
        seen.add(digest)


def _discard_stored(stored_paths: list[str]):
    for stored_path in stored_paths:
        document_service.discard_document(stored_path, settings.storage_dir)


def _add_document(user: User, subscriber: Company | Client, tag: DocumentTag | None,
                  filename: str, content: bytes, mime_type: str | None, title: str | None,
                  db: Session, stored_paths: list[str]) -> Document:
    stored_path, file_hash, file_size = document_service.store_document(
        user.company_id, filename, content, settings.storage_dir,
    )
    stored_paths.append(stored_path)
    now = datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")
    doc = Document(
        id=str(uuid.uuid4()),
        company_id=user.company_id,
        client_id=user.client_id if user.role == "client" else None,
        tag_id=tag.id if tag else None,
        tag_name=tag.name if tag else None,
        title=title or filename,
        original_filename=filename,
        stored_path=stored_path,
        file_hash=file_hash,
        file_size_bytes=file_size,
        mime_type=mime_type,
        properties=[{"name": name, "type": "text", "value": ""} for name in (tag.properties if tag else [])],
        added_by_user_id=user.id,
        added_by_role=user.role,
        is_published=False,
        created_at=now,
        updated_at=now,
    )
    document_service.refresh_progress(doc, settings.progress_floor)
    document_service.record_history(doc, user.name, "Uploaded", filename)
    db.add(doc)

    subscriber.documents_uploaded += 1
    subscriber.total_documents_uploaded += 1
    subscriber.storage_assigned += file_size
    return doc


@router.post("", response_model=DocumentResponse, status_code=201)
async def upload_document(
    file: UploadFile = File(...),
    title: str | None = Form(None),
    tag_id: str | None = Form(None),
    user: User = Depends(uploaders),
    db: Session = Depends(get_db),
):
    content = await _read_upload(file)
    subscriber = _uploading_subscriber(user, db)
    _check_quota(user, subscriber, 1, len(content))
    tag = _resolve_tag(tag_id, user, db)
    _check_duplicates(user, [(file.filename, content)], db)

    stored_paths: list[str] = []
    try:
        doc = _add_document(user, subscriber, tag, file.filename, content, file.content_type, title, db, stored_paths)
        db.commit()
    except Exception:
        db.rollback()
        _discard_stored(stored_paths)
        raise
    db.refresh(doc)
    logger.info("User %s uploaded document %s", user.id, doc.id)
    return _doc_to_response(doc)


@router.post("/batch", response_model=list[DocumentResponse], status_code=201)
async def upload_documents(
    files: list[UploadFile] = File(...),
    tag_id: str | None = Form(None),
    user: User = Depends(uploaders),
    db: Session = Depends(get_db),
):
    enforce(Action.MULTIPLE_UPLOADS, user)
    contents = [await _read_upload(f) for f in files]
    subscriber = _uploading_subscriber(user, db)
    _check_quota(user, subscriber, len(contents), sum(len(c) for c in contents))
    tag = _resolve_tag(tag_id, user, db)
    _check_duplicates(user, [(f.filename, c) for f, c in zip(files, contents)], db)

    stored_paths: list[str] = []
    try:
        docs = [
            _add_document(user, subscriber, tag, f.filename, content, f.content_type, None, db, stored_paths)
            for f, content in zip(files, contents)
        ]
        db.commit()
    except Exception:
        db.rollback()
        _discard_stored(stored_paths)
        raise
    for doc in docs:
        db.refresh(doc)
    logger.info("User %s uploaded %d documents", user.id, len(docs))
    return [_doc_to_response(d) for d in docs]


@router.get("", response_model=DocumentListResponse)
async def list_documents(
    q: str | None = None,
    status: str = Query("all"),
    role: str | None = None,
    start_date: str | None = Query(None, pattern=r"^\d{4}-\d{2}-\d{2}$"),
    end_date: str | None = Query(None, pattern=r"^\d{4}-\d{2}-\d{2}$"),
    page: int = Query(1, ge=1),
    per_page: int = Query(20, ge=1, le=100),
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    if status not in workflow_service.STATUS_FILTERS:
        raise HTTPException(
            status_code=400,
            detail=f"Invalid status. Must be one of: {sorted(workflow_service.STATUS_FILTERS)}",
        )

    query = _scoped_query(user, db)
    if q:
        pattern = f"%{q}%"
        query = query.filter(Document.title.ilike(pattern) | Document.original_filename.ilike(pattern))
    if role:
        query = query.filter(Document.added_by_role == role)
    if start_date:
        query = query.filter(Document.created_at >= start_date)
    if end_date:
        query = query.filter(Document.created_at <= f"{end_date}T23:59:59Z")

    # Status is derived from the stage markers, so it is filtered after loading.
    docs = [
        d for d in query.order_by(Document.created_at.desc()).all()
        if workflow_service.matches_filter(workflow_service.resolve(d, floor=settings.progress_floor), status)
    ]
    offset = (page - 1) * per_page
    return DocumentListResponse(
        documents=[_doc_to_response(d) for d in docs[offset:offset + per_page]],
        total=len(docs),
        page=page,
        per_page=per_page,
    )


@router.get("/{doc_id}", response_model=DocumentResponse)
async def get_document(doc_id: str, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    return _doc_to_response(_get_document(doc_id, user, db))


@router.put("/{doc_id}", response_model=DocumentResponse)
async def update_document(doc_id: str, req: DocumentUpdate, user: User = Depends(get_current_user),
                          db: Session = Depends(get_db)):
    doc = _get_document(doc_id, user, db)
    if req.title is not None and req.title != doc.title:
        document_service.record_history(doc, user.name, "Renamed document", f'"{doc.title}" to "{req.title}"')
        doc.title = req.title
    if req.properties is not None:
        new_properties = [p.model_dump() for p in req.properties]
        changes = document_service.describe_field_changes(doc.properties or [], new_properties)
        if changes:
            summary, details = changes
            document_service.record_history(doc, user.name, summary, details)
        doc.properties = new_properties
    doc.updated_at = datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")
    db.commit()
    db.refresh(doc)
    return _doc_to_response(doc)


@router.post("/{doc_id}/assign", response_model=DocumentResponse)
async def assign_document(doc_id: str, req: AssignRequest, user: User = Depends(assigners),
                          db: Session = Depends(get_db)):
    doc = _get_document(doc_id, user, db)
    assignee = db.query(User).filter(User.id == req.assignee_id).first()
    if not assignee:
        raise HTTPException(status_code=404, detail="Assignee not found")
    try:
        document_service.assign(doc, assignee, settings.progress_floor)
    except document_service.WorkflowTransitionError as e:
        raise HTTPException(status_code=400, detail=str(e))
    document_service.record_history(doc, user.name, "Assigned document", f"Passed to {assignee.name} ({assignee.role})")
    db.commit()
    db.refresh(doc)
    return _doc_to_response(doc)


@router.post("/{doc_id}/index", response_model=DocumentResponse)
async def index_document(doc_id: str, user: User = Depends(indexers), db: Session = Depends(get_db)):
    doc = _get_document(doc_id, user, db)
    try:
        document_service.mark_indexed(doc, user, settings.progress_floor)
    except document_service.WorkflowTransitionError as e:
        raise HTTPException(status_code=400, detail=str(e))
    _subscriber_of(doc, db).documents_indexed += 1
    document_service.record_history(doc, user.name, "Indexed document")
    db.commit()
    db.refresh(doc)
    return _doc_to_response(doc)


@router.post("/{doc_id}/qa-pass", response_model=DocumentResponse)
async def pass_qa(doc_id: str, user: User = Depends(reviewers), db: Session = Depends(get_db)):
    doc = _get_document(doc_id, user, db)
    try:
        document_service.mark_qa_passed(doc, user, settings.progress_floor)
    except document_service.WorkflowTransitionError as e:
        raise HTTPException(status_code=400, detail=str(e))
    _subscriber_of(doc, db).documents_qa_passed += 1
    document_service.record_history(doc, user.name, "Passed QA")
    db.commit()
    db.refresh(doc)
    return _doc_to_response(doc)


@router.post("/{doc_id}/publish", response_model=DocumentResponse)
async def publish_document(doc_id: str, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    doc = _get_document(doc_id, user, db)
    if not document_service.can_publish(user):
        raise HTTPException(status_code=403, detail="You don't have permission for publishing documents.")
    try:
        document_service.publish(doc, settings.progress_floor)
    except document_service.WorkflowTransitionError as e:
        raise HTTPException(status_code=400, detail=str(e))
    _subscriber_of(doc, db).total_documents_published += 1
    document_service.record_history(doc, user.name, "Published document")
    db.commit()
    db.refresh(doc)
    return _doc_to_response(doc)


@router.get("/{doc_id}/download")
async def download_document(doc_id: str, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    doc = _get_document(doc_id, user, db)
    full_path = document_service.get_document_full_path(doc.stored_path, settings.storage_dir)
    if not full_path.exists():
        raise HTTPException(status_code=404, detail="Document file missing from storage")

    _subscriber_of(doc, db).documents_downloaded += 1
    document_service.record_history(doc, user.name, "Downloaded document")
    db.commit()
    return FileResponse(
        path=str(full_path),
        filename=doc.original_filename,
        media_type=doc.mime_type or "application/octet-stream",
    )


@router.post("/{doc_id}/share", response_model=ShareResponse, status_code=201)
async def share_document(doc_id: str, req: ShareRequest, user: User = Depends(get_current_user),
                         db: Session = Depends(get_db)):
    enforce(Action.SHARE_DOCUMENT, user)
    doc = _get_document(doc_id, user, db)
    share = DocumentShare(
        id=str(uuid.uuid4()),
        document_id=doc.id,
        password_hash=hash_password(req.password),
        created_by_user_id=user.id,
        created_at=datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ"),
    )
    db.add(share)
    _subscriber_of(doc, db).documents_shared += 1
    document_service.record_history(doc, user.name, "Shared document")
    db.commit()
    return ShareResponse(share_id=share.id, document_id=doc.id, created_at=share.created_at)


@router.get("/{doc_id}/history", response_model=list[HistoryEntry])
async def document_history(doc_id: str, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    enforce(Action.VIEW_ACTIVITY_LOGS, user)
    doc = _get_document(doc_id, user, db)
    return [
        HistoryEntry(id=h.id, user_name=h.user_name, action=h.action, details=h.details, created_at=h.created_at)
        for h in doc.history
    ]


@router.post("/{doc_id}/add-comment", response_model=CommentEntry, status_code=201)
async def add_comment(doc_id: str, req: CommentRequest, user: User = Depends(get_current_user),
                      db: Session = Depends(get_db)):
    doc = _get_document(doc_id, user, db)
    comment = document_service.add_comment(doc, user, req.comment)
    db.commit()
    return _comment_to_entry(comment)


# Password-protected access to shared documents; no account needed.
shared_router = APIRouter(prefix="/shared-documents", tags=["documents"])


@shared_router.post("/{share_id}", response_model=SharedDocumentResponse)
async def open_shared_document(share_id: str, req: SharedDocumentRequest, db: Session = Depends(get_db)):
    share = db.query(DocumentShare).filter(DocumentShare.id == share_id).first()
    if not share:
        raise HTTPException(status_code=404, detail="Shared document not found")
    if not verify_password(share.password_hash, req.password):
        raise HTTPException(status_code=401, detail="Incorrect password")
    doc = share.document
    return SharedDocumentResponse(
        document_id=doc.id,
        title=doc.title,
        tag_name=doc.tag_name,
        properties=[DocumentProperty(**p) for p in doc.properties or []],
        original_filename=doc.original_filename,
    )
