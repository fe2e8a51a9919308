class TestHealth:
    def test_health(self, client):
        r = client.get("/health")
        assert r.status_code == 200
        assert r.json()["status"] == "ok"


class TestLogin:
    def test_login_returns_token(self, client, admin_headers):
        r = client.post("/api/v1/auth/login", json={
            "email": "ADMIN@example.com",
            "password": "correct-horse-battery",
        })
        assert r.status_code == 200
        data = r.json()
        assert data["role"] == "admin"
        assert len(data["token"]) == 64

    def test_wrong_password(self, client, admin_headers):
        r = client.post("/api/v1/auth/login", json={"email": "admin@example.com", "password": "nope"})
        assert r.status_code == 401

    def test_throttled_after_repeated_failures(self, client, admin_headers):
        for _ in range(3):
            client.post("/api/v1/auth/login", json={"email": "admin@example.com", "password": "nope"})
        r = client.post("/api/v1/auth/login", json={
            "email": "admin@example.com",
            "password": "correct-horse-battery",
        })
        assert r.status_code == 429
        assert r.json()["detail"]["error"] == "too_many_attempts"

    def test_blocked_user_cannot_sign_in(self, client, make_company, make_staff):
        setup = make_company()
        user, _ = make_staff(setup["owner"], "scanner")
        client.put(f"/api/v1/users/{user['id']}", json={"status": "blocked"}, headers=setup["owner"])
        r = client.post("/api/v1/auth/login", json={
            "email": user["email"],
            "password": "correct-horse-battery",
        })
        assert r.status_code == 403

    def test_blocking_revokes_open_sessions(self, client, make_company, make_staff):
        setup = make_company()
        user, headers = make_staff(setup["owner"], "scanner")
        client.put(f"/api/v1/users/{user['id']}", json={"status": "blocked"}, headers=setup["owner"])
        assert client.get("/api/v1/auth/me", headers=headers).status_code == 401


class TestSession:
    def test_missing_token(self, client):
        assert client.get("/api/v1/auth/me").status_code == 401

    def test_invalid_token(self, client):
        r = client.get("/api/v1/auth/me", headers={"Authorization": "Bearer not-a-token"})
        assert r.status_code == 401

    def test_logout_invalidates_token(self, client, admin_headers):
        assert client.post("/api/v1/auth/logout", headers=admin_headers).status_code == 200
        assert client.get("/api/v1/auth/me", headers=admin_headers).status_code == 401


class TestProfile:
    def test_admin_has_no_plan(self, client, admin_headers):
        data = client.get("/api/v1/auth/me", headers=admin_headers).json()
        assert data["plan"] is None
        assert data["capabilities"]["share_document"]["allowed"] is False

    def test_owner_capabilities_follow_plan(self, client, make_company):
        setup = make_company(can_share_document=True, can_view_chat=False)
        data = client.get("/api/v1/auth/me", headers=setup["owner"]).json()
        assert data["role"] == "owner"
        assert data["plan"]["plan_name"] == setup["plan"]["name"]
        assert data["capabilities"]["share_document"]["allowed"] is True
        assert data["capabilities"]["chat_with_document"]["allowed"] is True
        assert data["capabilities"]["view_reports"]["reason"] == (
            "Your current plan doesn't allow access to viewing reports."
        )

    def test_manager_always_creates_disputes(self, client, make_company, make_staff):
        setup = make_company()
        _, headers = make_staff(setup["owner"], "manager", create_dispute=False)
        data = client.get("/api/v1/auth/me", headers=headers).json()
        assert data["create_dispute"] is True
        assert data["capabilities"]["create_dispute"]["allowed"] is True
