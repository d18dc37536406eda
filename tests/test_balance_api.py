from __future__ import annotations

from datetime import date, datetime
import uuid
from zoneinfo import ZoneInfo

from sqlalchemy import select

from vacaciones.extensions import db
from vacaciones.models import AbsenceRequest, AbsenceStatus, CarryOver, Employee, LeaveType


def _add_employee(code: str, name: str, group: str = "General", *, active: bool = True) -> Employee:
    employee = Employee(
        id=uuid.uuid4(),
        code=code,
        name=name,
        hire_date=date(2019, 3, 1),
        entitlement_group=group,
        active=active,
    )
    db.session.add(employee)
    db.session.commit()
    return employee


def test_balance_requires_login(client):
    response = client.get("/me/balance?year=2024")

    assert response.status_code == 401
    assert response.get_json()["errors"][0]["code"] == "AUTH_REQUIRED"


def test_employee_sees_own_balance(client, login):
    ana = db.session.execute(select(Employee).where(Employee.code == "E001")).scalar_one()
    db.session.add(CarryOver(employee_id=ana.id, year=2024, days=2))
    db.session.add(
        AbsenceRequest(
            employee_id=ana.id,
            leave_type=LeaveType.VACATION,
            status=AbsenceStatus.APPROVED,
            date_from=date(2024, 8, 1),
            date_to=date(2024, 8, 14),
        )
    )
    db.session.commit()
    login("employee@example.com")

    response = client.get("/me/balance?year=2024")

    assert response.status_code == 200
    payload = response.get_json()
    assert payload["employee_name"] == "Ana Garcia"
    balance = payload["balance"]
    assert balance["employee_code"] == "E001"
    assert (balance["vacation_entitled"], balance["vacation_consumed"], balance["vacation_remaining"]) == (22, 14, 10)
    assert (
        balance["personal_days_entitled"],
        balance["personal_days_consumed"],
        balance["personal_days_remaining"],
    ) == (3, 0, 3)


def test_balance_year_defaults_to_current_local_year(client, login, add_rule):
    current_year = datetime.now(ZoneInfo("Europe/Madrid")).year
    if current_year not in (2024, 2025):
        add_rule("General", current_year)
        db.session.commit()
    login("employee@example.com")

    response = client.get("/me/balance")

    assert response.status_code == 200
    assert response.get_json()["balance"]["year"] == current_year


def test_invalid_year_is_rejected(client, login):
    login("employee@example.com")

    response = client.get("/me/balance?year=dos-mil")

    assert response.status_code == 400
    assert response.get_json()["errors"][0]["code"] == "VALIDATION_ERROR"


def test_missing_rule_returns_configuration_error(client, login):
    login("employee@example.com")

    response = client.get("/me/balance?year=2023")

    assert response.status_code == 409
    error = response.get_json()["errors"][0]
    assert error["code"] == "ENTITLEMENT_NOT_CONFIGURED"
    assert error["details"] == {"group": "General", "year": 2023}


def test_user_without_employee_profile_cannot_use_self_service(client, login):
    login("admin@example.com")

    response = client.get("/me/balance?year=2024")

    assert response.status_code == 403


def test_employee_cannot_read_other_balances(client, login):
    login("employee@example.com")

    assert client.get("/admin/balances/E002?year=2024").status_code == 403
    assert client.get("/admin/balances?year=2024").status_code == 403


def test_manager_reads_any_employee_balance(client, login):
    login("manager@example.com")

    response = client.get("/admin/balances/e002?year=2024")

    assert response.status_code == 200
    payload = response.get_json()
    assert payload["employee_name"] == "Bruno Lopez"
    assert payload["balance"]["vacation_entitled"] == 11


def test_unknown_employee_returns_not_found(client, login):
    login("admin@example.com")

    response = client.get("/admin/balances/E999?year=2024")

    assert response.status_code == 404
    assert response.get_json()["errors"][0]["code"] == "NOT_FOUND"


def test_statistics_list_active_employees_and_report_failures(client, login):
    _add_employee("E003", "Carla Ruiz", group="Sin convenio")
    _add_employee("E004", "Diego Baja", active=False)
    login("manager@example.com")

    response = client.get("/admin/balances?year=2024")

    assert response.status_code == 200
    payload = response.get_json()
    assert payload["year"] == 2024
    assert payload["failed"] == 1
    entries = {entry["employee_code"]: entry for entry in payload["entries"]}
    assert sorted(entries) == ["E001", "E002", "E003"]
    assert entries["E001"]["balance"]["vacation_remaining"] == 22
    assert entries["E002"]["balance"]["vacation_entitled"] == 11
    assert entries["E003"]["balance"] is None
    assert entries["E003"]["error"]["code"] == "ENTITLEMENT_NOT_CONFIGURED"
    assert [entry["employee_name"] for entry in payload["entries"]] == ["Ana Garcia", "Bruno Lopez", "Carla Ruiz"]
