from shipment_service.infrastructure.security import create_access_token, decode_access_token
from shipment_service.infrastructure.rate_limit import limiter

def register(client, email="new@example.com", password="secret123", name="New User"):
    return client.post("/api/auth/register", json={"name": name, "email": email, "password": password})

def test_register_returns_user_and_token(client):
    resp = register(client, email="New@Example.com")
    assert resp.status_code == 201
    body = resp.json()
    assert body["success"] is True
    user = body["data"]["user"]
    assert user["email"] == "new@example.com"
    assert user["role"] == "user"
    assert user["isActive"] is True
    assert "password" not in user and "passwordHash" not in user
    claims = decode_access_token(body["data"]["token"])
    assert claims["sub"] == str(user["id"])
    assert claims["role"] == "user"

def test_duplicate_email_case_insensitive(client):
    assert register(client, email="dup@example.com").status_code == 201
    resp = register(client, email="DUP@example.com")
    assert resp.status_code == 409
    assert resp.json() == {"success": False, "message": "Email already registered"}

def test_register_validation_errors(client):
    resp = client.post("/api/auth/register", json={"name": "A", "email": "not-an-email", "password": "123"})
    assert resp.status_code == 422
    body = resp.json()
    assert body["success"] is False
    assert body["message"] == "Validation failed"
    fields = {e["field"] for e in body["errors"]}
    assert {"name", "email", "password"} <= fields

def test_login_and_last_login(client, user):
    assert user.last_login is None
    resp = client.post("/api/auth/login", json={"email": "USER@example.com", "password": "password123"})
    assert resp.status_code == 200
    data = resp.json()["data"]
    assert data["user"]["id"] == user.id
    assert data["user"]["lastLogin"] is not None
    assert data["token"]

def test_login_wrong_password(client, user):
    resp = client.post("/api/auth/login", json={"email": user.email, "password": "wrong-password"})
    assert resp.status_code == 401
    assert resp.json()["message"] == "Invalid email or password"

def test_login_unknown_email(client):
    resp = client.post("/api/auth/login", json={"email": "ghost@example.com", "password": "password123"})
    assert resp.status_code == 401

def test_deactivated_user_cannot_login(client, make_user):
    make_user(email="inactive@example.com", active=False)
    resp = client.post("/api/auth/login", json={"email": "inactive@example.com", "password": "password123"})
    assert resp.status_code == 403
    assert resp.json()["message"] == "Account is deactivated"

def test_missing_and_invalid_token(client):
    assert client.get("/api/auth/profile").status_code == 401
    resp = client.get("/api/auth/profile", headers={"Authorization": "Bearer garbage"})
    assert resp.status_code == 401
    assert resp.json()["message"] == "Invalid or expired token"

def test_expired_token_rejected(client, user):
    token = create_access_token(user.id, user.email, user.role, expires_minutes=-1)
    resp = client.get("/api/auth/profile", headers={"Authorization": f"Bearer {token}"})
    assert resp.status_code == 401

def test_token_of_deactivated_user_rejected(client, user, user_headers, db_session):
    user.is_active = False
    db_session.merge(user)
    db_session.commit()
    assert client.get("/api/auth/profile", headers=user_headers).status_code == 401

def test_profile_and_verify(client, user, user_headers):
    resp = client.get("/api/auth/profile", headers=user_headers)
    assert resp.status_code == 200
    assert resp.json()["data"]["email"] == user.email

    resp = client.get("/api/auth/verify", headers=user_headers)
    assert resp.status_code == 200
    assert resp.json()["data"]["user"]["id"] == user.id

def test_update_profile(client, user_headers):
    resp = client.put("/api/auth/profile", json={"name": "Renamed", "email": "Renamed@Example.com"}, headers=user_headers)
    assert resp.status_code == 200
    data = resp.json()["data"]
    assert data["name"] == "Renamed"
    assert data["email"] == "renamed@example.com"

def test_update_profile_email_taken(client, user_headers, other_user):
    resp = client.put("/api/auth/profile", json={"email": other_user.email}, headers=user_headers)
    assert resp.status_code == 409
    assert resp.json()["message"] == "Email already in use"

def test_change_password(client, user, user_headers):
    resp = client.put(
        "/api/auth/password",
        json={"currentPassword": "password123", "newPassword": "newpass456"},
        headers=user_headers,
    )
    assert resp.status_code == 200
    assert resp.json()["data"]["token"]

    old = client.post("/api/auth/login", json={"email": user.email, "password": "password123"})
    assert old.status_code == 401
    new = client.post("/api/auth/login", json={"email": user.email, "password": "newpass456"})
    assert new.status_code == 200

def test_change_password_wrong_current(client, user_headers):
    resp = client.put(
        "/api/auth/password",
        json={"currentPassword": "nope", "newPassword": "newpass456"},
        headers=user_headers,
    )
    assert resp.status_code == 400
    assert resp.json()["message"] == "Current password is incorrect"

def test_avatar_upload(client, user_headers, upload_dir):
    resp = client.put(
        "/api/auth/avatar",
        files={"avatar": ("me.png", b"\x89PNG fake image", "image/png")},
        headers=user_headers,
    )
    assert resp.status_code == 200
    avatar = resp.json()["data"]["avatar"]
    assert avatar.startswith("/uploads/me-")
    assert (upload_dir / avatar.rsplit("/", 1)[1]).exists()

def test_avatar_rejects_non_image(client, user_headers):
    resp = client.put(
        "/api/auth/avatar",
        files={"avatar": ("doc.pdf", b"%PDF-1.4", "application/pdf")},
        headers=user_headers,
    )
    assert resp.status_code == 400
    assert resp.json()["message"].startswith("Invalid file type")

def test_login_is_rate_limited(client, user, monkeypatch):
    monkeypatch.setattr(limiter, "enabled", True)
    limiter.reset()
    try:
        credentials = {"email": user.email, "password": "wrong-password"}
        for _ in range(10):
            assert client.post("/api/auth/login", json=credentials).status_code == 401
        resp = client.post("/api/auth/login", json=credentials)
        assert resp.status_code == 429
        assert resp.json()["success"] is False
        assert "Retry-After" in resp.headers
    finally:
        limiter.reset()

def test_update_profile_requires_a_field(client, user_headers):
    resp = client.put("/api/auth/profile", json={}, headers=user_headers)
    assert resp.status_code == 422
