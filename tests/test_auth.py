import pytest
from fastapi.testclient import TestClient
from jose import jwt

from cms_api.core.config import JWT_ALGORITHM, JWT_SECRET_KEY
from cms_api.core.errors import UnauthorizedError
from cms_api.main import create_app
from cms_api.services.auth import (
    AuthService,
    create_access_token,
    decode_access_token,
    hash_password,
    verify_password,
)
from tests.fixtures_data import ADMIN_USER, build_database


def _build_client():
    database = build_database()
    auth = AuthService(database)
    user, _ = auth.ensure_user(**ADMIN_USER)
    app = create_app(database=database, run_startup_tasks=False)
    return TestClient(app), user


def test_hash_password_round_trip():
    hashed = hash_password("Admin@123")

    assert hashed != "Admin@123"
    assert verify_password("Admin@123", hashed) is True
    assert verify_password("admin@123", hashed) is False


def test_verify_password_with_malformed_hash_is_false():
    assert verify_password("Admin@123", "not-a-bcrypt-hash") is False


def test_access_token_carries_subject_and_email():
    token = create_access_token(42, "admin@cms.com")

    payload = decode_access_token(token)

    assert payload["sub"] == "42"
    assert payload["email"] == "admin@cms.com"
    assert payload["exp"] > payload["iat"]


def test_expired_or_tampered_token_is_rejected():
    expired = create_access_token(42, "admin@cms.com", expires_minutes=-5)
    forged = jwt.encode({"sub": "42"}, "another-secret", algorithm=JWT_ALGORITHM)

    for token in (expired, forged, "garbage"):
        with pytest.raises(UnauthorizedError) as exc:
            decode_access_token(token)
        assert exc.value.message == "Invalid or expired token"


def test_login_service_returns_token_for_valid_credentials():
    database = build_database(seed_reference=False)
    auth = AuthService(database)
    auth.ensure_user(**ADMIN_USER)

    result = auth.login("ADMIN@cms.com", "Admin@123")

    assert result.user.email == "admin@cms.com"
    assert result.expires_in > 0
    assert jwt.decode(result.token, JWT_SECRET_KEY, algorithms=[JWT_ALGORITHM])["sub"] == str(result.user.id)


def test_login_service_uses_same_message_for_unknown_user_and_wrong_password():
    database = build_database(seed_reference=False)
    auth = AuthService(database)
    auth.ensure_user(**ADMIN_USER)

    with pytest.raises(UnauthorizedError) as wrong_password:
        auth.login("admin@cms.com", "nope")
    with pytest.raises(UnauthorizedError) as unknown_user:
        auth.login("ghost@cms.com", "Admin@123")

    assert wrong_password.value.message == unknown_user.value.message == "Invalid email or password"


def test_ensure_user_is_idempotent():
    auth = AuthService(build_database(seed_reference=False))

    first, created = auth.ensure_user(**ADMIN_USER)
    second, created_again = auth.ensure_user(**ADMIN_USER)

    assert created is True
    assert created_again is False
    assert first.id == second.id


def test_login_endpoint_returns_envelope_with_token():
    client, user = _build_client()

    response = client.post("/api/v1/auth/login", json={"email": "admin@cms.com", "password": "Admin@123"})

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["data"]["user"] == {"id": user.id, "name": "Admin", "email": "admin@cms.com"}
    assert body["data"]["token"]


def test_login_endpoint_rejects_bad_credentials():
    client, _ = _build_client()

    response = client.post("/api/v1/auth/login", json={"email": "admin@cms.com", "password": "wrong"})

    assert response.status_code == 401
    assert response.json() == {"success": False, "message": "Invalid email or password"}


def test_token_endpoint_supports_form_login():
    client, _ = _build_client()

    response = client.post("/api/v1/auth/token", data={"username": "admin@cms.com", "password": "Admin@123"})

    assert response.status_code == 200
    assert response.json()["token_type"] == "bearer"


def test_protected_route_requires_token():
    client, _ = _build_client()

    response = client.get("/api/v1/customers")

    assert response.status_code == 401
    assert response.json()["message"] == "No token provided"


def test_protected_route_rejects_invalid_token():
    client, _ = _build_client()

    response = client.get("/api/v1/customers", headers={"Authorization": "Bearer not-a-token"})

    assert response.status_code == 401
    assert response.json()["message"] == "Invalid or expired token"


def test_protected_route_rejects_token_for_deleted_user():
    client, _ = _build_client()
    token = create_access_token(999, "ghost@cms.com")

    response = client.get("/api/v1/customers", headers={"Authorization": f"Bearer {token}"})

    assert response.status_code == 401


def test_protected_route_accepts_valid_token():
    client, user = _build_client()
    token = create_access_token(user.id, user.email)

    response = client.get("/api/v1/customers", headers={"Authorization": f"Bearer {token}"})

    assert response.status_code == 200
    assert response.json()["data"]["total"] == 0


def test_reference_routes_do_not_require_token():
    client, _ = _build_client()

    response = client.get("/api/v1/reference/states")

    assert response.status_code == 200
    assert [state["name"] for state in response.json()["data"]] == ["Gujarat", "Karnataka", "Maharashtra"]

