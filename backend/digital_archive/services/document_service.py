import hashlib
import logging
import os
import uuid
from datetime import datetime, timezone
from pathlib import Path

from digital_archive.models.document import Document, DocumentComment, DocumentHistory
from digital_archive.models.user import User
from digital_archive.services.workflow_service import WorkflowStatus, check_consistency, resolve
from digital_archive.utils.filesystem import ensure_company_dir, sanitize_filename

logger = logging.getLogger(__name__)

REVIEWER_ROLES = {"indexer", "qa", "manager"}
PUBLISHER_ROLES = {"owner", "manager"}


class WorkflowTransitionError(ValueError):
    pass


def _now() -> str:
    return datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


def file_hash(content: bytes) -> str:
    return hashlib.sha256(content).hexdigest()


def store_document(company_id: str, filename: str, content: bytes,
                   storage_dir: Path | None = None) -> tuple[str, str, int]:
    """Store an uploaded file read-only. Returns (relative_path, file_hash, file_size)."""
    digest = file_hash(content)
    stored_name = f"{uuid.uuid4().hex[:12]}_{sanitize_filename(filename)}"

    company_dir = ensure_company_dir(company_id, storage_dir)
    doc_path = company_dir / stored_name
    doc_path.write_bytes(content)
    os.chmod(doc_path, 0o444)

    return f"{company_id}/{stored_name}", digest, len(content)


def get_document_full_path(stored_path: str, storage_dir: Path) -> Path:
    return storage_dir / stored_path


def discard_document(stored_path: str, storage_dir: Path):
    """Remove a stored file whose document row was never committed."""
    path = get_document_full_path(stored_path, storage_dir)
    if path.exists():
        os.chmod(path, 0o644)
        path.unlink()
    logger.info("Discarded stored file %s", stored_path)


def add_comment(document: Document, user: User, text: str) -> DocumentComment:
    comment = DocumentComment(
        id=str(uuid.uuid4()),
        user_id=user.id,
        user_name=user.name,
        user_role=user.role,
        comment=text,
        created_at=datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%S.%fZ"),
    )
    document.comments.append(comment)
    return comment


def record_history(document: Document, user_name: str, action: str, details: str | None = None):
    # Microseconds keep entries written in the same request in order.
    document.history.append(DocumentHistory(
        id=str(uuid.uuid4()),
        user_name=user_name,
        action=action,
        details=details,
        created_at=datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%S.%fZ"),
    ))


def describe_field_changes(old: list[dict], new: list[dict]) -> tuple[str, str] | None:
    """History summary and detail lines for edited index fields, or None if nothing changed."""
    before = {p["name"]: p.get("value", "") for p in old}
    changed = [
        (p["name"], before.get(p["name"], ""), p.get("value", ""))
        for p in new
        if before.get(p["name"], "") != p.get("value", "")
    ]
    if not changed:
        return None
    if len(changed) == 1:
        summary = f"Changed the {changed[0][0]} field"
    else:
        summary = f"Changed {len(changed)} fields"
    details = "\n".join(f'{name}: changed from "{old_value}" to "{new_value}"'
                        for name, old_value, new_value in changed)
    return summary, details


def refresh_progress(document: Document, floor: int = 1) -> int:
    """Rewrite the cached progress_number from the stage markers."""
    result = check_consistency(document, floor=floor)
    document.progress_number = result.progress
    return result.progress


def assign(document: Document, assignee: User, floor: int = 1):
    if document.is_published:
        raise WorkflowTransitionError("Published documents cannot be reassigned")
    if assignee.role not in REVIEWER_ROLES:
        raise WorkflowTransitionError(f"Documents cannot be passed to the {assignee.role} role")
    if assignee.company_id != document.company_id:
        raise WorkflowTransitionError("Assignee belongs to another company")
    document.passed_to = assignee.id
    document.updated_at = _now()
    refresh_progress(document, floor)


def mark_indexed(document: Document, indexer: User, floor: int = 1):
    if document.indexer_passed_id:
        raise WorkflowTransitionError("Document has already been indexed")
    document.indexer_passed_id = indexer.id
    document.updated_at = _now()
    indexer.documents_reviewed += 1
    refresh_progress(document, floor)


def mark_qa_passed(document: Document, reviewer: User, floor: int = 1):
    if not document.indexer_passed_id:
        raise WorkflowTransitionError("Document must be indexed before QA")
    if document.qa_passed_id:
        raise WorkflowTransitionError("Document has already passed QA")
    document.qa_passed_id = reviewer.id
    document.updated_at = _now()
    reviewer.documents_reviewed += 1
    refresh_progress(document, floor)


def can_publish(user: User) -> bool:
    return user.role in PUBLISHER_ROLES or bool(user.allow_to_publish)


def publish(document: Document, floor: int = 1):
    status = resolve(document, floor=floor).status
    if status == WorkflowStatus.COMPLETE:
        raise WorkflowTransitionError("Document is already published")
    if status != WorkflowStatus.UNPUBLISHED:
        raise WorkflowTransitionError("Document must pass indexing and QA before publishing")
    document.is_published = True
    document.updated_at = _now()
    refresh_progress(document, floor)
    logger.info("Published document %s", document.id)
