from decimal import Decimal


class TestStats:
    def _upload(self, client, headers, content):
        r = client.post(
            "/api/v1/documents",
            files={"file": ("page.pdf", content, "application/pdf")},
            headers=headers,
        )
        return r.json()["id"]

    def test_owner_stats(self, client, make_company):
        setup = make_company()
        self._upload(client, setup["owner"], b"one")
        self._upload(client, setup["owner"], b"two")

        r = client.get("/api/v1/stats", headers=setup["owner"])
        assert r.status_code == 200
        data = r.json()
        assert data["total_documents_uploaded"] == 2
        assert data["documents_by_status"]["pending"] == 2
        assert data["documents_by_status"]["total"] == 2
        assert data["open_disputes"] == 0

    def test_admin_sees_invoice_value(self, client, admin_headers, make_company):
        make_company(monthly_bill="40")
        client.post("/api/v1/invoices/generate?month=2026-09", headers=admin_headers)
        data = client.get("/api/v1/stats", headers=admin_headers).json()
        assert Decimal(data["total_invoice_amount"]) == Decimal("40")


class TestReports:
    def test_progress_report(self, client, make_company):
        setup = make_company(can_view_reports=True)
        self._upload(client, setup["owner"])
        r = client.get("/api/v1/reports/document-progress?type=15days", headers=setup["owner"])
        assert r.status_code == 200
        data = r.json()
        assert data["range_type"] == "15days"
        assert len(data["documents_per_day"]) == 15
        assert sum(data["documents_per_day"].values()) == 1
        assert data["documents_by_status"]["pending"] == 1

    def test_reports_need_plan_flag(self, client, make_company):
        setup = make_company(can_view_reports=False)
        r = client.get("/api/v1/reports/document-progress", headers=setup["owner"])
        assert r.status_code == 403
        assert r.json()["detail"] == "Your current plan doesn't allow access to viewing reports."

    def test_invalid_range(self, client, make_company):
        setup = make_company(can_view_reports=True)
        r = client.get("/api/v1/reports/document-progress?type=year", headers=setup["owner"])
        assert r.status_code == 422

    def _upload(self, client, headers):
        client.post(
            "/api/v1/documents",
            files={"file": ("page.pdf", b"report page", "application/pdf")},
            headers=headers,
        )
