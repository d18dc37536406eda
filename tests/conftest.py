from __future__ import annotations

from datetime import date
from typing import Callable, Iterator
import uuid

import pytest
from sqlalchemy.pool import StaticPool

from vacaciones import create_app
from vacaciones.config import Config
from vacaciones.extensions import db
from vacaciones.models import Employee, LeaveEntitlementRule, User, UserRole
from vacaciones.normalize import group_key
from vacaciones.security import hash_password


class TestConfig(Config):
    TESTING = True
    WTF_CSRF_ENABLED = False
    SQLALCHEMY_DATABASE_URI = "sqlite+pysqlite:///:memory:"
    SQLALCHEMY_ENGINE_OPTIONS = {
        "connect_args": {"check_same_thread": False},
        "poolclass": StaticPool,
    }
    LEAVE_TYPES_EXCLUDING_NON_WORKING_DAYS = frozenset()


def _add_rule(group: str, year: int, vacation_days: int = 22, personal_days: int = 3) -> LeaveEntitlementRule:
    rule = LeaveEntitlementRule(
        group_name=group,
        group_key=group_key(group),
        year=year,
        vacation_days=vacation_days,
        personal_days=personal_days,
    )
    db.session.add(rule)
    return rule


@pytest.fixture()
def app() -> Iterator:
    app = create_app(TestConfig)
    with app.app_context():
        db.create_all()

        ana = Employee(
            id=uuid.uuid4(),
            code="E001",
            name="Ana Garcia",
            email="employee@example.com",
            hire_date=date(2020, 1, 1),
            entitlement_group="General",
            region="MD",
            active=True,
        )
        bruno = Employee(
            id=uuid.uuid4(),
            code="E002",
            name="Bruno Lopez",
            email="bruno@example.com",
            hire_date=date(2024, 7, 2),
            entitlement_group="General",
            active=True,
        )
        db.session.add_all([ana, bruno])
        db.session.flush()

        db.session.add_all(
            [
                User(
                    id=uuid.uuid4(),
                    email="admin@example.com",
                    password_hash=hash_password("password123"),
                    is_active=True,
                    role=UserRole.ADMIN,
                ),
                User(
                    id=uuid.uuid4(),
                    email="manager@example.com",
                    password_hash=hash_password("password123"),
                    is_active=True,
                    role=UserRole.MANAGER,
                ),
                User(
                    id=uuid.uuid4(),
                    email="employee@example.com",
                    password_hash=hash_password("password123"),
                    is_active=True,
                    role=UserRole.EMPLOYEE,
                    employee_id=ana.id,
                ),
            ]
        )
        _add_rule("General", 2024)
        _add_rule("General", 2025)
        db.session.commit()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture()
def add_rule(app) -> Callable[..., LeaveEntitlementRule]:
    return _add_rule


@pytest.fixture()
def client(app):
    return app.test_client()


@pytest.fixture()
def login(client) -> Callable[[str], object]:
    def _login(email: str, password: str = "password123"):
        response = client.post("/login", data={"email": email, "password": password})
        assert response.status_code == 200, response.get_json()
        return response

    return _login
