import pytest


@pytest.fixture
def disputed_doc(client, make_company):
    setup = make_company()
    r = client.post(
        "/api/v1/documents",
        files={"file": ("map.pdf", b"survey map", "application/pdf")},
        headers=setup["owner"],
    )
    return setup, r.json()["id"]


class TestDisputes:
    def test_qa_raises_manager_resolves(self, client, disputed_doc, make_staff):
        setup, doc_id = disputed_doc
        _, qa = make_staff(setup["owner"], "qa")
        _, manager = make_staff(setup["owner"], "manager")

        r = client.post("/api/v1/disputes", json={"document_id": doc_id, "description": "Pages missing"},
                        headers=qa)
        assert r.status_code == 201
        dispute = r.json()
        assert dispute["resolve"] is False
        assert dispute["document_title"] == "map.pdf"

        r = client.put(f"/api/v1/disputes/{dispute['id']}/resolve", headers=manager)
        assert r.status_code == 200
        assert r.json()["resolve"] is True
        assert r.json()["resolved_by_name"] == "Manager User"

        r = client.put(f"/api/v1/disputes/{dispute['id']}/resolve", headers=manager)
        assert r.status_code == 409

    def test_scanner_cannot_raise_by_default(self, client, disputed_doc, make_staff):
        setup, doc_id = disputed_doc
        _, scanner = make_staff(setup["owner"], "scanner")
        r = client.post("/api/v1/disputes", json={"document_id": doc_id, "description": "Blurry"},
                        headers=scanner)
        assert r.status_code == 403

    def test_scanner_with_flag_can_raise(self, client, disputed_doc, make_staff):
        setup, doc_id = disputed_doc
        _, scanner = make_staff(setup["owner"], "scanner", create_dispute=True)
        r = client.post("/api/v1/disputes", json={"document_id": doc_id, "description": "Blurry"},
                        headers=scanner)
        assert r.status_code == 201

    def test_qa_cannot_resolve(self, client, disputed_doc, make_staff):
        setup, doc_id = disputed_doc
        _, qa = make_staff(setup["owner"], "qa")
        dispute = client.post("/api/v1/disputes", json={"document_id": doc_id, "description": "Wrong tag"},
                              headers=qa).json()
        r = client.put(f"/api/v1/disputes/{dispute['id']}/resolve", headers=qa)
        assert r.status_code == 403
        assert r.json()["detail"] == "The qa role does not permit resolving disputes."

    def test_list_filters_resolved(self, client, disputed_doc, make_staff):
        setup, doc_id = disputed_doc
        _, manager = make_staff(setup["owner"], "manager")
        first = client.post("/api/v1/disputes", json={"document_id": doc_id, "description": "One"},
                            headers=manager).json()
        client.post("/api/v1/disputes", json={"document_id": doc_id, "description": "Two"}, headers=manager)
        client.put(f"/api/v1/disputes/{first['id']}/resolve", headers=setup["owner"])

        open_disputes = client.get("/api/v1/disputes?resolved=false", headers=manager).json()
        assert [d["description"] for d in open_disputes] == ["Two"]
        assert len(client.get("/api/v1/disputes", headers=manager).json()) == 2
