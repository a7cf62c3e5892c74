import jwt
import pytest
from datetime import timedelta
from fastapi import HTTPException
from fastapi.testclient import TestClient
from roundcaddy.config import settings
from roundcaddy.database import get_db
from roundcaddy.main import app
from roundcaddy.middleware.auth import decode_token
from roundcaddy.services.swing_capture import utcnow
from roundcaddy.services.user_service import ensure_user
from roundcaddy.models.user import User
from conftest import override_get_db


def _token(secret=None, **claims):
    payload = {"sub": "user_abc", "email": "golfer@example.com", "given_name": "Sam"}
    payload.update(claims)
    payload = {k: v for k, v in payload.items() if v is not None}
    return jwt.encode(payload, secret or settings.auth_secret_key, algorithm="HS256")


def test_decode_valid_token():
    user = decode_token(_token())

    assert user["user_id"] == "user_abc"
    assert user["email"] == "golfer@example.com"
    assert user["first_name"] == "Sam"
    assert user["full_payload"]["sub"] == "user_abc"


def test_expired_token():
    with pytest.raises(HTTPException) as exc:
        decode_token(_token(exp=utcnow() - timedelta(minutes=5)))

    assert exc.value.status_code == 401
    assert exc.value.detail == "Token has expired"


def test_token_without_subject():
    with pytest.raises(HTTPException) as exc:
        decode_token(_token(sub=None))

    assert exc.value.detail == "Invalid token: missing user ID"


def test_foreign_signature_rejected_by_default():
    with pytest.raises(HTTPException) as exc:
        decode_token(_token(secret="someone-elses-signing-key-0123456789"))

    assert exc.value.status_code == 401
    assert exc.value.detail == "Invalid token"


def test_foreign_signature_allowed_in_development(monkeypatch):
    monkeypatch.setattr(settings, "allow_unverified_tokens", True)
    assert decode_token(_token(secret="someone-elses-signing-key-0123456789"))["user_id"] == "user_abc"


def test_garbage_token():
    with pytest.raises(HTTPException):
        decode_token("not-a-jwt")


def test_routes_require_bearer_token(db_session):
    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as client:
        assert client.get("/range-sessions").status_code in (401, 403)

        response = client.get("/range-sessions", headers={"Authorization": f"Bearer {_token()}"})
        assert response.status_code == 200
        assert response.json() == []
    app.dependency_overrides.clear()


def test_ensure_user_creates_once(db_session):
    user = ensure_user(db_session, "new_user")
    db_session.commit()

    assert user.id == "new_user"
    assert user.email is None
    assert db_session.query(User).filter(User.id == "new_user").count() == 1
    # Second call returns the existing row
    assert ensure_user(db_session, "new_user") is user
    assert db_session.query(User).count() == 1
