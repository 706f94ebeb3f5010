"""Tests for signup, login, profile and employee verification endpoints."""

import pytest

pytestmark = pytest.mark.asyncio


async def _signup_and_login(client, username, password, role="employee"):
    signup = await client.post(
        "/api/auth/signup",
        json={"username": username, "password": password, "name": username.title(), "role": role},
    )
    assert signup.status_code == 200, signup.text

    login = await client.post("/api/auth/login", json={"username": username, "password": password})
    assert login.status_code == 200, login.text
    token = login.json()["access_token"]
    return signup.json(), {"Authorization": f"Bearer {token}"}


async def test_signup_creates_unverified_employee(api_client):
    profile, headers = await _signup_and_login(api_client, "meera", "chai-time")
    assert profile["role"] == "employee"
    assert profile["verified"] is False

    me = await api_client.get("/api/auth/me", headers=headers)
    assert me.status_code == 200
    assert me.json()["username"] == "meera"


async def test_unverified_employee_is_blocked_from_the_floor(api_client):
    _, headers = await _signup_and_login(api_client, "ravi", "pw")
    response = await api_client.get("/api/orders", headers=headers)
    assert response.status_code == 403
    assert response.json()["code"] == "AccountNotVerified"


async def test_admin_verifies_employee(api_client):
    _, admin_headers = await _signup_and_login(api_client, "owner", "pw", role="admin")
    employee, employee_headers = await _signup_and_login(api_client, "sita", "pw")

    listed = await api_client.get("/api/employees", headers=admin_headers)
    assert [p["username"] for p in listed.json()] == ["sita"]

    verified = await api_client.put(
        f"/api/employees/{employee['id']}/verification", json={"verified": True}, headers=admin_headers
    )
    assert verified.status_code == 200
    assert verified.json()["verified"] is True

    response = await api_client.get("/api/orders", headers=employee_headers)
    assert response.status_code == 200
    assert response.json() == []

    revoked = await api_client.put(
        f"/api/employees/{employee['id']}/verification", json={"verified": False}, headers=admin_headers
    )
    assert revoked.json()["verified"] is False
    response = await api_client.get("/api/orders", headers=employee_headers)
    assert response.status_code == 403


async def test_employee_cannot_manage_employees(api_client):
    _, admin_headers = await _signup_and_login(api_client, "owner", "pw", role="admin")
    employee, employee_headers = await _signup_and_login(api_client, "lal", "pw")
    await api_client.put(f"/api/employees/{employee['id']}/verification", json={"verified": True}, headers=admin_headers)

    response = await api_client.get("/api/employees", headers=employee_headers)
    assert response.status_code == 403
    assert response.json()["code"] == "AdminOnly"


async def test_duplicate_username(api_client):
    await _signup_and_login(api_client, "dup", "pw")
    response = await api_client.post("/api/auth/signup", json={"username": "dup", "password": "pw"})
    assert response.status_code == 409
    assert response.json()["code"] == "UsernameTaken"


async def test_unknown_role_rejected(api_client):
    response = await api_client.post("/api/auth/signup", json={"username": "x", "password": "pw", "role": "chef"})
    assert response.status_code == 422
    assert response.json()["code"] == "InvalidRole"


async def test_admin_signup_closed_outside_dev(api_client, monkeypatch):
    await _signup_and_login(api_client, "first", "pw")
    monkeypatch.setenv("ENVIRONMENT", "production")
    response = await api_client.post(
        "/api/auth/signup", json={"username": "sneaky", "password": "pw", "role": "admin"}
    )
    assert response.status_code == 403


async def test_wrong_password(api_client):
    await _signup_and_login(api_client, "asha", "right")
    response = await api_client.post("/api/auth/login", json={"username": "asha", "password": "wrong"})
    assert response.status_code == 401


async def test_missing_or_bad_token(api_client):
    assert (await api_client.get("/api/orders")).status_code == 401
    response = await api_client.get("/api/orders", headers={"Authorization": "Bearer not-a-jwt"})
    assert response.status_code == 401


async def test_health(api_client):
    response = await api_client.get("/health")
    assert response.json() == {"status": "ok"}
