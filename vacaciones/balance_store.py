"""Read-side data access for leave balances.

Each lookup maps ORM rows onto the frozen records of ``vacaciones.balance``;
``load_balance_inputs`` gathers them into the snapshot the calculator works
on. All queries are read-only.
"""

from __future__ import annotations

import logging
from datetime import date, timedelta

from flask import current_app, has_app_context
from sqlalchemy import and_, or_, select

from vacaciones.balance import (
    BALANCE_LEAVE_TYPES,
    AbsenceRecord,
    BalanceInputs,
    BalanceResult,
    EmployeeRecord,
    EntitlementRule,
    GroupPeriod,
    calculate_balance,
    group_as_of_year,
    year_bounds,
)
from vacaciones.errors import ConfigurationError, NotFound
from vacaciones.extensions import db
from vacaciones.models import (
    AbsenceRequest,
    AbsenceStatus,
    CarryOver,
    Employee,
    EntitlementGroupAssignment,
    Holiday,
    LeaveEntitlementRule,
    LeaveType,
)
from vacaciones.normalize import group_key, region_key


logger = logging.getLogger(__name__)


def employee_by_code(code: str) -> Employee:
    normalized_code = (code or "").strip().upper()
    employee = None
    if normalized_code:
        employee = db.session.execute(select(Employee).where(Employee.code == normalized_code)).scalar_one_or_none()
    if employee is None:
        raise NotFound(f"Empleado con codigo {code!r} no encontrado.", details={"employee_code": code})
    return employee


def _employee_record(employee: Employee) -> EmployeeRecord:
    return EmployeeRecord(
        code=employee.code,
        hire_date=employee.hire_date,
        termination_date=employee.termination_date,
        group=employee.entitlement_group,
        region=employee.region,
    )


def get_employee(code: str) -> EmployeeRecord:
    return _employee_record(employee_by_code(code))


def get_group_periods(employee_id, year: int) -> tuple[GroupPeriod, ...]:
    year_start, year_end = year_bounds(year)
    stmt = (
        select(EntitlementGroupAssignment)
        .where(
            EntitlementGroupAssignment.employee_id == employee_id,
            EntitlementGroupAssignment.effective_from <= year_end,
            or_(
                EntitlementGroupAssignment.effective_to.is_(None),
                EntitlementGroupAssignment.effective_to >= year_start,
            ),
        )
        .order_by(EntitlementGroupAssignment.effective_from.asc())
    )
    return tuple(
        GroupPeriod(group=row.group, effective_from=row.effective_from, effective_to=row.effective_to)
        for row in db.session.execute(stmt).scalars().all()
    )


def get_entitlement_rule(group: str, year: int) -> EntitlementRule:
    stmt = select(LeaveEntitlementRule).where(
        LeaveEntitlementRule.group_key == group_key(group),
        LeaveEntitlementRule.year == year,
    )
    rule = db.session.execute(stmt).scalar_one_or_none()
    if rule is None:
        raise ConfigurationError(
            f"No hay regla de vacaciones configurada para el grupo {group!r} en {year}.",
            details={"group": group, "year": year},
        )
    return EntitlementRule(
        group=rule.group_name,
        year=rule.year,
        vacation_days=rule.vacation_days,
        personal_days=rule.personal_days,
    )


def _approved_absences_for(employee_id, range_start: date, range_end: date) -> tuple[AbsenceRecord, ...]:
    # Malformed rows (date_to < date_from) match on either bound.
    stmt = (
        select(AbsenceRequest)
        .where(
            AbsenceRequest.employee_id == employee_id,
            AbsenceRequest.status == AbsenceStatus.APPROVED,
            AbsenceRequest.leave_type.in_(list(BALANCE_LEAVE_TYPES)),
            or_(
                and_(AbsenceRequest.date_from <= range_end, AbsenceRequest.date_to >= range_start),
                AbsenceRequest.date_from.between(range_start, range_end),
                AbsenceRequest.date_to.between(range_start, range_end),
            ),
        )
        .order_by(AbsenceRequest.date_from.asc(), AbsenceRequest.created_at.asc())
    )
    return tuple(
        AbsenceRecord(
            record_id=str(row.id),
            leave_type=row.leave_type,
            date_from=row.date_from,
            date_to=row.date_to,
        )
        for row in db.session.execute(stmt).scalars().all()
    )


def get_approved_absences(code: str, range_start: date, range_end: date) -> tuple[AbsenceRecord, ...]:
    employee = employee_by_code(code)
    return _approved_absences_for(employee.id, range_start, range_end)


def _carry_over_for(employee_id, year: int) -> int:
    stmt = select(CarryOver.days).where(CarryOver.employee_id == employee_id, CarryOver.year == year)
    days = db.session.execute(stmt).scalar_one_or_none()
    return int(days or 0)


def get_carry_over(code: str, year: int) -> int:
    employee = employee_by_code(code)
    return _carry_over_for(employee.id, year)


def non_working_days(region: str | None, range_start: date, range_end: date) -> frozenset[date]:
    """Weekends plus the public holidays of ``region`` between both dates."""
    days: set[date] = set()
    current = range_start
    while current <= range_end:
        if current.weekday() >= 5:
            days.add(current)
        current += timedelta(days=1)

    key = region_key(region)
    if key:
        stmt = select(Holiday.day).where(
            Holiday.region == key,
            Holiday.day >= range_start,
            Holiday.day <= range_end,
        )
        days.update(db.session.execute(stmt).scalars().all())
    return frozenset(days)


def _excluded_leave_types() -> frozenset[LeaveType]:
    if not has_app_context():
        return frozenset()
    configured = current_app.config.get("LEAVE_TYPES_EXCLUDING_NON_WORKING_DAYS") or frozenset()
    return frozenset(LeaveType[code] for code in configured if code in LeaveType.__members__)


def load_balance_inputs(code: str, year: int) -> BalanceInputs:
    employee = employee_by_code(code)
    record = _employee_record(employee)
    group = group_as_of_year(record, get_group_periods(employee.id, year), year)
    rule = get_entitlement_rule(group, year)

    year_start, year_end = year_bounds(year)
    excluded = _excluded_leave_types()
    skipped_days = non_working_days(record.region, year_start, year_end) if excluded else frozenset()
    return BalanceInputs(
        employee=record,
        year=year,
        rule=rule,
        carry_over=_carry_over_for(employee.id, year),
        absences=_approved_absences_for(employee.id, year_start, year_end),
        non_working_days=skipped_days,
        excluded_leave_types=excluded,
    )


def calculate_employee_balance(code: str, year: int) -> BalanceResult:
    inputs = load_balance_inputs(code, year)
    result = calculate_balance(inputs)
    logger.info(
        "Balance for %s in %s: vacation %s remaining, personal days %s remaining",
        result.employee_code,
        year,
        result.vacation_remaining,
        result.personal_days_remaining,
    )
    return result
