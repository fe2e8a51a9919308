"""
Document review pipeline status.

A document moves upload -> indexing -> QA -> publish. Its status and progress
are always derived from the stage marker fields (passed_to,
indexer_passed_id, qa_passed_id, is_published); a cached progress_number is
never trusted. Everything here is pure and does no I/O.
"""
import logging
from collections.abc import Iterable
from enum import Enum
from typing import Any

from pydantic import BaseModel

logger = logging.getLogger(__name__)

MAX_PROGRESS = 3


class WorkflowStatus(str, Enum):
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETE = "complete"
    UNPUBLISHED = "unpublished"


class DocumentState(BaseModel):
    """The pipeline fields of a document, read from a row, a dict or an API payload."""

    model_config = {"from_attributes": True}

    # Opaque ids: strings or integers.
    id: str | int | None = None
    passed_to: str | int | None = None
    indexer_passed_id: str | int | None = None
    qa_passed_id: str | int | None = None
    is_published: bool | None = False
    progress_number: int | None = None


class WorkflowResult(BaseModel):
    model_config = {"frozen": True}

    status: WorkflowStatus
    progress: int


# Filter names accepted by document listings.
STATUS_FILTERS = {"all", "complete", "incomplete", "unpublished", "pending", "in_progress"}


def _marked(value: str | int | None) -> bool:
    return value is not None and value != ""


def _as_state(document: Any) -> DocumentState:
    if isinstance(document, DocumentState):
        return document
    return DocumentState.model_validate(document)


def resolve(document: Any, floor: int = 1) -> WorkflowResult:
    """Derive status and progress (0-3) from a document's stage markers.

    ``floor`` is the progress of a document that has not entered any review
    stage; it must be 0 or 1.
    """
    if floor not in (0, 1):
        raise ValueError(f"progress floor must be 0 or 1, got {floor!r}")
    state = _as_state(document)

    if _marked(state.indexer_passed_id) and _marked(state.qa_passed_id):
        status = WorkflowStatus.COMPLETE if state.is_published else WorkflowStatus.UNPUBLISHED
        return WorkflowResult(status=status, progress=MAX_PROGRESS)
    if _marked(state.passed_to):
        return WorkflowResult(status=WorkflowStatus.IN_PROGRESS, progress=2)
    return WorkflowResult(status=WorkflowStatus.PENDING, progress=floor)


def check_consistency(document: Any, floor: int = 1) -> WorkflowResult:
    """Resolve, and log when a cached progress_number disagrees with the stage markers."""
    state = _as_state(document)
    result = resolve(state, floor=floor)
    if state.progress_number is not None and state.progress_number != result.progress:
        logger.warning(
            "Inconsistent progress for document %s: cached %s, derived %s",
            state.id, state.progress_number, result.progress,
        )
    return result


def matches_filter(result: WorkflowResult, status_filter: str | None) -> bool:
    if not status_filter or status_filter == "all":
        return True
    if status_filter == "incomplete":
        return result.status != WorkflowStatus.COMPLETE
    return result.status.value == status_filter


def summarize(documents: Iterable[Any], floor: int = 1) -> dict[str, int]:
    counts = {status.value: 0 for status in WorkflowStatus}
    total = 0
    for doc in documents:
        counts[resolve(doc, floor=floor).status.value] += 1
        total += 1
    counts["total"] = total
    return counts
