from datetime import datetime, timedelta, timezone

from sqlalchemy import func, select, update

from conftest import ADMIN_PASSWORD, ADMIN_USERNAME, login, logout, run_db

from channel_landing.core import security
from channel_landing.models.session import UserSession
from channel_landing.services.session_service import session_service


def test_login_sets_session_cookie_and_returns_user(client):
    resp = login(client, ADMIN_USERNAME, ADMIN_PASSWORD)
    assert resp.status_code == 200
    body = resp.json()
    assert body["username"] == ADMIN_USERNAME
    assert body["role"] == "admin"
    assert "password_hash" not in body and "passwordHash" not in body
    assert "sid" in resp.cookies

    me = client.get("/api/user")
    assert me.status_code == 200
    assert me.json()["username"] == ADMIN_USERNAME


def test_login_with_wrong_password_is_rejected(client):
    resp = login(client, ADMIN_USERNAME, "not-the-password")
    assert resp.status_code == 401
    assert resp.json()["error"] == "Invalid credentials"
    assert client.get("/api/user").status_code == 401


def test_login_unknown_user(client):
    assert login(client, "nobody", "whatever").status_code == 401


def test_current_user_requires_session(client):
    resp = client.get("/api/user")
    assert resp.status_code == 401
    assert resp.json()["type"] == "authentication_error"


def test_forged_session_cookie_is_rejected(client):
    assert client.get("/api/user", headers={"Cookie": "sid=forged-token"}).status_code == 401


def test_logout_destroys_server_side_session(client):
    login(client, ADMIN_USERNAME, ADMIN_PASSWORD)
    token = client.cookies.get("sid")
    assert client.post("/api/logout").status_code == 200
    assert client.get("/api/user").status_code == 401

    # replaying the old cookie does not revive the session
    assert client.get("/api/user", headers={"Cookie": f"sid={token}"}).status_code == 401


def test_admin_registers_employee(admin_client):
    resp = admin_client.post("/api/register", json={"username": "bob", "password": "bob-pass"})
    assert resp.status_code == 201
    assert resp.json()["role"] == "employee"
    assert resp.json()["isActive"] is True

    assert login(admin_client, "bob", "bob-pass").status_code == 200


def test_register_duplicate_username(admin_client):
    admin_client.post("/api/register", json={"username": "bob", "password": "bob-pass"})
    resp = admin_client.post("/api/register", json={"username": "bob", "password": "other-pass"})
    assert resp.status_code == 400
    assert resp.json()["details"][0]["field"] == "username"


def test_register_validates_payload(admin_client):
    resp = admin_client.post("/api/register", json={"username": "b", "password": "123"})
    assert resp.status_code == 400
    fields = {d["field"] for d in resp.json()["details"]}
    assert {"username", "password"} <= fields


def test_employee_cannot_register_accounts(employee_client):
    resp = employee_client.post("/api/register", json={"username": "eve", "password": "eve-pass"})
    assert resp.status_code == 403


def test_anonymous_cannot_register_accounts(client):
    resp = client.post("/api/register", json={"username": "eve", "password": "eve-pass"})
    assert resp.status_code == 401


def test_passwords_are_stored_hashed():
    hashed = security.get_password_hash("s3cret!")
    assert hashed != "s3cret!"
    assert hashed.startswith("$pbkdf2-sha256$")
    assert security.verify_password("s3cret!", hashed)
    assert not security.verify_password("wrong", hashed)


def test_plain_text_stored_password_never_matches():
    assert not security.verify_password("s3cret!", "s3cret!")
    assert not security.verify_password("s3cret!", None)


def test_logout_without_session_is_harmless(client):
    logout(client)
    assert client.post("/api/logout").status_code == 200


async def _expire_sessions(db, *tokens):
    await db.execute(
        update(UserSession)
        .where(UserSession.id.in_(tokens))
        .values(expires_at=datetime.now(timezone.utc) - timedelta(minutes=1))
    )
    await db.commit()


async def _session_count(db):
    return (await db.execute(select(func.count()).select_from(UserSession))).scalar_one()


def test_expired_session_is_rejected_and_removed(client):
    login(client, ADMIN_USERNAME, ADMIN_PASSWORD)
    token = client.cookies.get("sid")
    assert client.get("/api/user").status_code == 200

    run_db(client, lambda db: _expire_sessions(db, token))

    resp = client.get("/api/user")
    assert resp.status_code == 401
    assert run_db(client, _session_count) == 0


def test_purge_expired_keeps_live_sessions(client):
    login(client, ADMIN_USERNAME, ADMIN_PASSWORD)
    stale = client.cookies.get("sid")
    login(client, ADMIN_USERNAME, ADMIN_PASSWORD)
    live = client.cookies.get("sid")
    run_db(client, lambda db: _expire_sessions(db, stale))

    assert run_db(client, session_service.purge_expired) == 1
    assert run_db(client, _session_count) == 1
    assert client.get("/api/user", headers={"Cookie": f"sid={live}"}).status_code == 200
