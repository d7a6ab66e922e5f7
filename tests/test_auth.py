from datetime import timedelta

import jwt
import pytest

from usermgr.auth import hash_password, issue_token, verify_password, verify_token
from usermgr.errors import InvalidToken


def test_password_hash_is_salted():
    first = hash_password("secret1")
    second = hash_password("secret1")
    assert first != second
    assert verify_password("secret1", first)
    assert verify_password("secret1", second)
    assert not verify_password("secret2", first)
    assert not verify_password("secret1", "not-a-hash")


def test_token_round_trip():
    claims = verify_token(issue_token(7, "a@x.com"))
    assert claims.user_id == 7
    assert claims.email == "a@x.com"


def test_token_expires_after_a_day():
    token = issue_token(7, "a@x.com")
    payload = jwt.decode(token, options={"verify_signature": False})
    assert payload["exp"] - payload["iat"] == 24 * 60 * 60


def test_token_signed_with_other_secret_is_rejected():
    token = issue_token(7, "a@x.com", secret="another-secret")
    with pytest.raises(InvalidToken):
        verify_token(token)


def test_expired_token_is_rejected():
    token = issue_token(7, "a@x.com", expires=timedelta(seconds=-1))
    with pytest.raises(InvalidToken):
        verify_token(token)


def test_malformed_token_is_rejected():
    with pytest.raises(InvalidToken):
        verify_token("not.a.token")
    token = jwt.encode({"sub": "7", "exp": 9999999999}, "test-secret", algorithm="HS256")
    with pytest.raises(InvalidToken):
        verify_token(token)


def test_register_and_login(client):
    resp = client.post(
        "/api/auth/register",
        json={"nom": "Dubois", "prenoms": "Marie", "email": "marie@x.com", "password": "secret1", "role": "user"},
    )
    assert resp.status_code == 201
    data = resp.json()
    assert data["success"] is True
    assert "token" in data and "password" not in data["user"]

    resp = client.post("/api/auth/login", json={"email": "marie@x.com", "password": "secret1"})
    assert resp.status_code == 200
    data = resp.json()
    assert data["token"]
    assert data["user"]["derniereConnexion"] is not None


def test_login_failures(client, register):
    register("marie@x.com")
    resp = client.post("/api/auth/login", json={"email": "marie@x.com", "password": "wrong-password"})
    assert resp.status_code == 401
    assert resp.json() == {"success": False, "message": "Email ou mot de passe incorrect"}

    resp = client.post("/api/auth/login", json={"email": "not-an-email"})
    assert resp.status_code == 400
    body = resp.json()
    assert body["success"] is False
    assert len(body["errors"]) == 2


def test_me_requires_token(client, register):
    assert client.get("/api/auth/me").status_code == 401
    assert client.get("/api/auth/me", headers={"Authorization": "Bearer garbage"}).status_code == 401

    user, headers = register("marie@x.com")
    resp = client.get("/api/auth/me", headers=headers)
    assert resp.status_code == 200
    assert resp.json()["user"]["id"] == user["id"]
    assert "password" not in resp.json()["user"]
    assert "passwordHash" not in resp.json()["user"]


def test_deactivation_revokes_issued_tokens(client, register):
    _, admin_headers = register("admin@x.com", role="admin")
    user, user_headers = register("marie@x.com")
    assert client.get("/api/auth/me", headers=user_headers).status_code == 200

    resp = client.put(f"/api/users/{user['id']}", json={"actif": False}, headers=admin_headers)
    assert resp.status_code == 200
    assert resp.json()["user"]["actif"] is False

    resp = client.get("/api/auth/me", headers=user_headers)
    assert resp.status_code == 401
    assert resp.json()["success"] is False


def test_deleted_user_token_is_rejected(client, register):
    user, headers = register("marie@x.com")
    assert client.delete(f"/api/users/{user['id']}", headers=headers).status_code == 200
    assert client.get("/api/auth/me", headers=headers).status_code == 401
