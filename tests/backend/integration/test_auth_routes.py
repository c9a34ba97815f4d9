import uuid

import pytest


pytestmark = pytest.mark.asyncio


async def register_user(client, username: str, email: str, password: str, name: str | None = None):
    resp = await client.post(
        "/api/v1/auth/register",
        json={"username": username, "email": email, "password": password, "name": name},
    )
    return resp


async def login_user(client, username: str, password: str):
    return await client.post(
        "/api/v1/auth/login",
        json={"username": username, "password": password},
    )


async def test_register_and_login_flow(client):
    username = f"user_{uuid.uuid4().hex[:6]}"
    email = f"{username}@example.com"
    password = "StrongPass!23"

    resp = await register_user(client, username, email, password, name="Asha Rao")
    body = resp.json()
    assert resp.status_code == 200
    assert body["success"] is True
    assert body["data"]["username"] == username
    assert body["data"]["name"] == "Asha Rao"

    # Duplicate username should fail
    dup_resp = await register_user(client, username, "other@example.com", password)
    dup_body = dup_resp.json()
    assert dup_resp.status_code == 200
    assert dup_body["success"] is False
    assert dup_body["error"]["code"] == "USERNAME_EXISTS"

    # Successful login
    login_resp = await login_user(client, username, password)
    login_body = login_resp.json()
    assert login_resp.status_code == 200
    assert login_body["success"] is True
    assert "accessToken" in login_body["data"]
    assert "accessToken" in login_resp.cookies

    # Invalid password
    bad_login = await login_user(client, username, "wrong")
    assert bad_login.status_code == 401
    assert bad_login.json()["detail"]["code"] == "AUTH_INVALID_CREDENTIALS"


async def test_duplicate_email_is_rejected(client):
    email = f"{uuid.uuid4().hex[:6]}@example.com"
    await register_user(client, f"user_{uuid.uuid4().hex[:6]}", email, "Pass#1234")

    resp = await register_user(client, f"user_{uuid.uuid4().hex[:6]}", email, "Pass#1234")

    assert resp.json()["error"]["code"] == "EMAIL_EXISTS"


async def test_missing_password_is_bad_request(client):
    resp = await register_user(client, "someone", "someone@example.com", "")
    assert resp.json()["error"]["code"] == "BAD_REQUEST"


async def test_me_and_logout(client):
    username = f"user_{uuid.uuid4().hex[:6]}"
    password = "UserInit#123"
    await register_user(client, username, f"{username}@example.com", password)

    login_resp = await login_user(client, username, password)
    token = login_resp.json()["data"]["accessToken"]
    headers = {"Authorization": f"Bearer {token}"}

    me_resp = await client.get("/api/v1/auth/me", headers=headers)
    me_body = me_resp.json()
    assert me_resp.status_code == 200
    assert me_body["data"]["username"] == username
    # no display name given: the username is shown next to captions
    assert me_body["data"]["name"] == username

    logout_resp = await client.post("/api/v1/auth/logout", headers=headers)
    assert logout_resp.status_code == 200
    assert logout_resp.json()["success"] is True


async def test_cookie_authenticates_requests(client):
    username = f"user_{uuid.uuid4().hex[:6]}"
    await register_user(client, username, f"{username}@example.com", "Cookie#123")
    login_resp = await login_user(client, username, "Cookie#123")
    assert "accessToken" in login_resp.cookies

    # no Authorization header: the client's cookie jar carries the session
    me_resp = await client.get("/api/v1/auth/me")

    assert me_resp.status_code == 200
    assert me_resp.json()["data"]["username"] == username


async def test_auth_requires_token(client):
    client.cookies.clear()
    unauth_me = await client.get("/api/v1/auth/me")
    assert unauth_me.status_code == 401
    assert unauth_me.json()["detail"] == "AUTH_REQUIRED"

    bad_token = await client.get("/api/v1/auth/me", headers={"Authorization": "Bearer not-a-jwt"})
    assert bad_token.status_code == 401
    assert bad_token.json()["detail"] == "AUTH_INVALID_TOKEN"
