import pytest

from digital_archive.config import settings


@pytest.fixture
def team(make_company, make_staff):
    setup = make_company(
        can_share_document=True,
        can_view_activity_logs=True,
        allow_multiple_uploads=True,
    )
    owner = setup["owner"]
    scanner_user, scanner = make_staff(owner, "scanner")
    indexer_user, indexer = make_staff(owner, "indexer")
    qa_user, qa = make_staff(owner, "qa")
    return {
        **setup,
        "scanner": scanner,
        "indexer": indexer,
        "indexer_id": indexer_user["id"],
        "qa": qa,
        "qa_id": qa_user["id"],
    }


class TestUpload:
    def _upload(self, client, headers, name="deed.pdf", content=b"scanned deed", **data):
        return client.post(
            "/api/v1/documents",
            files={"file": (name, content, "application/pdf")},
            data=data,
            headers=headers,
        )

    def test_upload_starts_pending(self, client, team):
        r = self._upload(client, team["scanner"], title="Title deed")
        assert r.status_code == 201
        data = r.json()
        assert data["title"] == "Title deed"
        assert data["status"] == "pending"
        assert data["progress_number"] == 1
        assert data["added_by_role"] == "scanner"
        assert len(data["file_hash"]) == 64

    def test_upload_copies_tag_fields(self, client, team):
        tag = client.post("/api/v1/document-tags", json={
            "name": "Deeds",
            "properties": ["Owner", "Parcel", "Owner"],
        }, headers=team["owner"]).json()
        assert tag["properties"] == ["Owner", "Parcel"]
        r = self._upload(client, team["scanner"], tag_id=tag["id"])
        data = r.json()
        assert data["tag_name"] == "Deeds"
        assert [p["name"] for p in data["properties"]] == ["Owner", "Parcel"]

    def test_duplicate_content_rejected(self, client, team):
        self._upload(client, team["scanner"], name="a.pdf", content=b"same")
        r = self._upload(client, team["scanner"], name="b.pdf", content=b"same")
        assert r.status_code == 409

    def test_empty_file_rejected(self, client, team):
        assert self._upload(client, team["scanner"], content=b"").status_code == 400

    def test_indexer_cannot_upload(self, client, team):
        assert self._upload(client, team["indexer"]).status_code == 403

    def test_upload_limit(self, client, make_company):
        setup = make_company(docs_upload_limit=1)
        assert self._upload(client, setup["owner"], content=b"one").status_code == 201
        assert self._upload(client, setup["owner"], content=b"two").status_code == 413

    def test_upload_counts_usage(self, client, team, admin_headers):
        self._upload(client, team["scanner"])
        company = client.get(f"/api/v1/companies/{team['company']['id']}", headers=admin_headers).json()
        assert company["documents_uploaded"] == 1
        assert company["total_documents_uploaded"] == 1
        assert company["storage_assigned"] == len(b"scanned deed")

    def test_batch_upload(self, client, team):
        r = client.post(
            "/api/v1/documents/batch",
            files=[
                ("files", ("a.pdf", b"first", "application/pdf")),
                ("files", ("b.pdf", b"second", "application/pdf")),
            ],
            headers=team["scanner"],
        )
        assert r.status_code == 201
        assert len(r.json()) == 2

    def test_batch_with_repeated_content_stores_nothing(self, client, team):
        r = client.post(
            "/api/v1/documents/batch",
            files=[
                ("files", ("a.pdf", b"same", "application/pdf")),
                ("files", ("b.pdf", b"same", "application/pdf")),
            ],
            headers=team["scanner"],
        )
        assert r.status_code == 409
        assert client.get("/api/v1/documents", headers=team["owner"]).json()["total"] == 0
        stored = [p for p in settings.storage_dir.rglob("*") if p.is_file()]
        assert stored == []

    def test_batch_upload_needs_plan_flag(self, client, make_company):
        setup = make_company(allow_multiple_uploads=False)
        r = client.post(
            "/api/v1/documents/batch",
            files=[("files", ("a.pdf", b"first", "application/pdf"))],
            headers=setup["owner"],
        )
        assert r.status_code == 403
        assert r.json()["detail"] == "Your current plan doesn't allow access to multiple uploads."

    def test_download_returns_content(self, client, team):
        doc_id = self._upload(client, team["scanner"], content=b"original bytes").json()["id"]
        r = client.get(f"/api/v1/documents/{doc_id}/download", headers=team["owner"])
        assert r.status_code == 200
        assert r.content == b"original bytes"


class TestPipeline:
    def _upload(self, client, team, content=b"minutes of meeting"):
        r = client.post(
            "/api/v1/documents",
            files={"file": ("minutes.pdf", content, "application/pdf")},
            headers=team["scanner"],
        )
        return r.json()["id"]

    def test_full_review_pipeline(self, client, team):
        doc_id = self._upload(client, team)

        r = client.post(f"/api/v1/documents/{doc_id}/assign",
                        json={"assignee_id": team["indexer_id"]}, headers=team["scanner"])
        assert r.status_code == 200
        assert r.json()["status"] == "in_progress"
        assert r.json()["progress_number"] == 2

        r = client.post(f"/api/v1/documents/{doc_id}/index", headers=team["indexer"])
        assert r.json()["status"] == "in_progress"

        r = client.post(f"/api/v1/documents/{doc_id}/qa-pass", headers=team["qa"])
        assert r.json()["status"] == "unpublished"
        assert r.json()["progress_number"] == 3

        r = client.post(f"/api/v1/documents/{doc_id}/publish", headers=team["owner"])
        assert r.status_code == 200
        assert r.json()["status"] == "complete"
        assert r.json()["is_published"] is True

        r = client.post(f"/api/v1/documents/{doc_id}/publish", headers=team["owner"])
        assert r.status_code == 400

    def test_qa_before_index_rejected(self, client, team):
        doc_id = self._upload(client, team)
        r = client.post(f"/api/v1/documents/{doc_id}/qa-pass", headers=team["qa"])
        assert r.status_code == 400

    def test_publish_before_review_rejected(self, client, team):
        doc_id = self._upload(client, team)
        r = client.post(f"/api/v1/documents/{doc_id}/publish", headers=team["owner"])
        assert r.status_code == 400

    def test_scanner_cannot_publish(self, client, team):
        doc_id = self._upload(client, team)
        r = client.post(f"/api/v1/documents/{doc_id}/publish", headers=team["scanner"])
        assert r.status_code == 403

    def test_assign_to_scanner_rejected(self, client, team, make_staff):
        doc_id = self._upload(client, team)
        other, _ = make_staff(team["owner"], "scanner")
        r = client.post(f"/api/v1/documents/{doc_id}/assign",
                        json={"assignee_id": other["id"]}, headers=team["owner"])
        assert r.status_code == 400

    def test_status_filter(self, client, team):
        first = self._upload(client, team, content=b"first")
        self._upload(client, team, content=b"second")
        client.post(f"/api/v1/documents/{first}/assign",
                    json={"assignee_id": team["indexer_id"]}, headers=team["owner"])

        r = client.get("/api/v1/documents?status=in_progress", headers=team["owner"])
        assert r.json()["total"] == 1
        assert r.json()["documents"][0]["id"] == first
        r = client.get("/api/v1/documents?status=incomplete", headers=team["owner"])
        assert r.json()["total"] == 2
        assert client.get("/api/v1/documents?status=bogus", headers=team["owner"]).status_code == 400

    def test_review_counters(self, client, team, admin_headers):
        doc_id = self._upload(client, team)
        client.post(f"/api/v1/documents/{doc_id}/index", headers=team["indexer"])
        client.post(f"/api/v1/documents/{doc_id}/qa-pass", headers=team["qa"])
        company = client.get(f"/api/v1/companies/{team['company']['id']}", headers=admin_headers).json()
        assert company["documents_indexed"] == 1
        assert company["documents_qa_passed"] == 1


class TestHistoryAndSharing:
    def _upload(self, client, headers):
        r = client.post(
            "/api/v1/documents",
            files={"file": ("will.pdf", b"last will", "application/pdf")},
            headers=headers,
        )
        return r.json()["id"]

    def test_field_edits_recorded(self, client, team):
        doc_id = self._upload(client, team["scanner"])
        client.put(f"/api/v1/documents/{doc_id}", json={
            "properties": [{"name": "Owner", "value": "J. Smith"}],
        }, headers=team["indexer"])
        r = client.get(f"/api/v1/documents/{doc_id}/history", headers=team["owner"])
        assert r.status_code == 200
        actions = [h["action"] for h in r.json()]
        assert actions == ["Uploaded", "Changed the Owner field"]

    def test_history_needs_plan_flag(self, client, make_company):
        setup = make_company(can_view_activity_logs=False)
        doc_id = self._upload(client, setup["owner"])
        r = client.get(f"/api/v1/documents/{doc_id}/history", headers=setup["owner"])
        assert r.status_code == 403

    def test_share_and_open(self, client, team):
        doc_id = self._upload(client, team["scanner"])
        r = client.post(f"/api/v1/documents/{doc_id}/share", json={"password": "open-sesame"},
                        headers=team["scanner"])
        assert r.status_code == 201
        share_id = r.json()["share_id"]

        r = client.post(f"/api/v1/shared-documents/{share_id}", json={"password": "wrong"})
        assert r.status_code == 401
        r = client.post(f"/api/v1/shared-documents/{share_id}", json={"password": "open-sesame"})
        assert r.status_code == 200
        assert r.json()["document_id"] == doc_id

    def test_share_denied_without_flag(self, client, make_company):
        setup = make_company(can_share_document=False)
        doc_id = self._upload(client, setup["owner"])
        r = client.post(f"/api/v1/documents/{doc_id}/share", json={"password": "open-sesame"},
                        headers=setup["owner"])
        assert r.status_code == 403
        assert r.json()["detail"] == "Your current plan doesn't allow access to document sharing."

    def test_documents_scoped_to_company(self, client, team, make_company):
        doc_id = self._upload(client, team["scanner"])
        other = make_company()
        assert client.get(f"/api/v1/documents/{doc_id}", headers=other["owner"]).status_code == 404


class TestComments:
    def _upload(self, client, team):
        r = client.post(
            "/api/v1/documents",
            files={"file": ("letter.pdf", b"signed letter", "application/pdf")},
            headers=team["scanner"],
        )
        return r.json()["id"]

    def test_comments_listed_on_document(self, client, team):
        doc_id = self._upload(client, team)
        r = client.post(f"/api/v1/documents/{doc_id}/add-comment",
                        json={"comment": "  Page 2 is blurry  "}, headers=team["qa"])
        assert r.status_code == 201
        assert r.json()["comment"] == "Page 2 is blurry"
        assert r.json()["role"] == "qa"
        client.post(f"/api/v1/documents/{doc_id}/add-comment",
                    json={"comment": "Rescanned"}, headers=team["scanner"])

        comments = client.get(f"/api/v1/documents/{doc_id}", headers=team["owner"]).json()["comments"]
        assert [c["comment"] for c in comments] == ["Page 2 is blurry", "Rescanned"]
        assert [c["name"] for c in comments] == ["Qa User", "Scanner User"]
        assert comments[0]["timestamp"]

    def test_blank_comment_rejected(self, client, team):
        doc_id = self._upload(client, team)
        r = client.post(f"/api/v1/documents/{doc_id}/add-comment", json={"comment": "   "}, headers=team["qa"])
        assert r.status_code == 422

    def test_cannot_comment_on_other_company_document(self, client, team, make_company):
        doc_id = self._upload(client, team)
        other = make_company()
        r = client.post(f"/api/v1/documents/{doc_id}/add-comment",
                        json={"comment": "Not mine"}, headers=other["owner"])
        assert r.status_code == 404
