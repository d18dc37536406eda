from __future__ import annotations

from sqlalchemy import select

from vacaciones.extensions import db
from vacaciones.models import User


def test_health_and_csrf_token_are_public(client):
    assert client.get("/health").get_json() == {"status": "ok"}
    assert client.get("/csrf-token").get_json()["csrf_token"]


def test_login_returns_user_profile(client):
    response = client.post("/login", data={"email": "Employee@Example.com ", "password": "password123"})

    assert response.status_code == 200
    assert response.get_json()["user"]["employee_code"] == "E001"
    assert response.get_json()["user"]["role"] == "EMPLOYEE"


def test_login_rejects_wrong_password(client):
    response = client.post("/login", data={"email": "employee@example.com", "password": "wrong-password"})

    assert response.status_code == 401
    assert response.get_json()["errors"][0]["code"] == "AUTH_FAILED"


def test_login_validates_form(client):
    response = client.post("/login", data={"email": "not-an-email", "password": "short"})

    assert response.status_code == 400
    assert {error["field"] for error in response.get_json()["errors"]} == {"email", "password"}


def test_inactive_user_cannot_login(client):
    user = db.session.execute(select(User).where(User.email == "manager@example.com")).scalar_one()
    user.is_active = False
    db.session.commit()

    response = client.post("/login", data={"email": "manager@example.com", "password": "password123"})

    assert response.status_code == 403
    assert response.get_json()["errors"][0]["code"] == "USER_INACTIVE"


def test_logout_ends_session(client, login):
    login("employee@example.com")

    assert client.post("/logout").status_code == 200
    assert client.get("/me/balance?year=2024").status_code == 401
