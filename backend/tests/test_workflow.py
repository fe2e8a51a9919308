import logging

import pytest

from digital_archive.services.workflow_service import (
    DocumentState,
    WorkflowStatus,
    matches_filter,
    resolve,
    check_consistency,
    summarize,
)


class TestResolve:
    def test_indexed_qa_passed_and_published_is_complete(self):
        doc = {"indexer_passed_id": "u1", "qa_passed_id": "u2", "is_published": True}
        result = resolve(doc)
        assert result.status == WorkflowStatus.COMPLETE
        assert result.progress == 3

    def test_indexed_qa_passed_unpublished(self):
        doc = {"indexer_passed_id": "u1", "qa_passed_id": "u2", "is_published": False}
        result = resolve(doc)
        assert result.status == WorkflowStatus.UNPUBLISHED
        assert result.progress == 3

    def test_only_passed_to_is_in_progress(self):
        result = resolve({"passed_to": "u3"})
        assert result.status == WorkflowStatus.IN_PROGRESS
        assert result.progress == 2

    def test_untouched_document_is_pending_at_floor(self):
        result = resolve({})
        assert result.status == WorkflowStatus.PENDING
        assert result.progress == 1

    def test_floor_zero(self):
        assert resolve({}, floor=0).progress == 0

    def test_invalid_floor_rejected(self):
        with pytest.raises(ValueError):
            resolve({}, floor=2)

    def test_qa_without_indexer_is_not_complete(self):
        result = resolve({"qa_passed_id": "u2", "is_published": True})
        assert result.status == WorkflowStatus.PENDING

    def test_stage_markers_take_priority_over_passed_to(self):
        doc = {"passed_to": "u3", "indexer_passed_id": "u1", "qa_passed_id": "u2"}
        assert resolve(doc).status == WorkflowStatus.UNPUBLISHED

    def test_cached_progress_is_ignored(self):
        result = resolve({"progress_number": 3})
        assert result.progress == 1

    def test_null_published_flag_counts_as_unpublished(self):
        doc = {"indexer_passed_id": "u1", "qa_passed_id": "u2", "is_published": None}
        assert resolve(doc).status == WorkflowStatus.UNPUBLISHED

    def test_accepts_objects_with_attributes(self):
        state = DocumentState(passed_to="u3")
        assert resolve(state).progress == 2

    def test_numeric_ids(self):
        doc = {"id": 7, "indexer_passed_id": 11, "qa_passed_id": 12, "is_published": True}
        assert resolve(doc).status == WorkflowStatus.COMPLETE
        assert resolve({"id": 8, "passed_to": 0}).status == WorkflowStatus.IN_PROGRESS

    def test_empty_marker_is_unset(self):
        assert resolve({"passed_to": ""}).status == WorkflowStatus.PENDING

    def test_idempotent(self):
        doc = {"passed_to": "u3", "indexer_passed_id": "u1"}
        assert resolve(doc) == resolve(doc)


class TestConsistency:
    def test_logs_stale_progress(self, caplog):
        with caplog.at_level(logging.WARNING, logger="digital_archive.services.workflow_service"):
            result = check_consistency({"id": "d1", "passed_to": "u3", "progress_number": 1})
        assert result.progress == 2
        assert "Inconsistent progress for document d1" in caplog.text

    def test_silent_when_cache_agrees(self, caplog):
        with caplog.at_level(logging.WARNING, logger="digital_archive.services.workflow_service"):
            check_consistency({"id": "d1", "passed_to": "u3", "progress_number": 2})
        assert caplog.text == ""


class TestFilters:
    def test_incomplete_excludes_only_complete(self):
        assert matches_filter(resolve({"indexer_passed_id": "a", "qa_passed_id": "b"}), "incomplete")
        assert not matches_filter(
            resolve({"indexer_passed_id": "a", "qa_passed_id": "b", "is_published": True}), "incomplete",
        )

    def test_all_matches_everything(self):
        assert matches_filter(resolve({}), "all")
        assert matches_filter(resolve({}), None)

    def test_named_status(self):
        assert matches_filter(resolve({"passed_to": "x"}), "in_progress")
        assert not matches_filter(resolve({"passed_to": "x"}), "pending")

    def test_summarize_counts(self):
        docs = [
            {},
            {"passed_to": "x"},
            {"indexer_passed_id": "a", "qa_passed_id": "b"},
            {"indexer_passed_id": "a", "qa_passed_id": "b", "is_published": True},
            {},
        ]
        counts = summarize(docs)
        assert counts == {"pending": 2, "in_progress": 1, "complete": 1, "unpublished": 1, "total": 5}
