"""Admin routes."""

from __future__ import annotations

from datetime import date, datetime, timedelta, timezone
from typing import Any
from uuid import UUID

from flask import Blueprint, abort, current_app, make_response, request
from flask_login import current_user, login_required
from sqlalchemy import select
from sqlalchemy.exc import OperationalError, ProgrammingError

from vacaciones.audit import AuditAction, log_audit
from vacaciones.authorization import (
    approve_absences_required,
    manage_master_data_required,
    view_balances_required,
)
from vacaciones.balance_store import calculate_employee_balance, employee_by_code
from vacaciones.errors import AppError, ValidationFailed
from vacaciones.extensions import db
from vacaciones.forms import (
    CarryOverForm,
    CsvImportForm,
    EntitlementRuleForm,
    GroupAssignmentForm,
    HolidayForm,
    form_errors,
)
from vacaciones.models import (
    AbsenceRequest,
    AbsenceStatus,
    CarryOver,
    Employee,
    EntitlementGroupAssignment,
    Holiday,
    LeaveEntitlementRule,
)
from vacaciones.normalize import (
    RowError,
    clean_text,
    group_key,
    normalize_absence_row,
    normalize_employee_row,
    read_csv_rows,
    region_key,
)
from vacaciones.params import parse_year, requested_year, today_local
from vacaciones.payloads import absence_payload, audit_absence_payload
from vacaciones.report_export import export_balances


bp = Blueprint("admin", __name__)

EXPORT_FORMATS = ("csv", "json", "xlsx", "pdf")


def _rule_payload(rule: LeaveEntitlementRule) -> dict[str, Any]:
    return {
        "id": str(rule.id),
        "group": rule.group_name,
        "year": rule.year,
        "vacation_days": rule.vacation_days,
        "personal_days": rule.personal_days,
    }


def _assignment_payload(assignment: EntitlementGroupAssignment) -> dict[str, Any]:
    return {
        "group": assignment.group,
        "effective_from": assignment.effective_from.isoformat(),
        "effective_to": assignment.effective_to.isoformat() if assignment.effective_to else None,
    }


def _employee_assignments(employee_id: UUID) -> list[EntitlementGroupAssignment]:
    stmt = (
        select(EntitlementGroupAssignment)
        .where(EntitlementGroupAssignment.employee_id == employee_id)
        .order_by(EntitlementGroupAssignment.effective_from.asc(), EntitlementGroupAssignment.created_at.asc())
    )
    return list(db.session.execute(stmt).scalars().all())


def _set_group_assignment(employee: Employee, group: str, effective_from: date) -> bool:
    assignments = _employee_assignments(employee.id)
    changed = False

    history_start = min(assignments[0].effective_from, effective_from) if assignments else effective_from
    if employee.hire_date < history_start:
        # History always starts on the hire date.
        initial = EntitlementGroupAssignment(
            employee_id=employee.id,
            group=assignments[0].group if assignments else employee.entitlement_group,
            effective_from=employee.hire_date,
            effective_to=history_start - timedelta(days=1),
        )
        db.session.add(initial)
        assignments.insert(0, initial)
        changed = True

    for assignment in assignments:
        if assignment.effective_from >= effective_from:
            db.session.delete(assignment)
            changed = True
    if changed:
        db.session.flush()

    employee.entitlement_group = group
    previous = next((item for item in reversed(assignments) if item.effective_from < effective_from), None)
    if previous is not None:
        if group_key(previous.group) == group_key(group):
            if previous.effective_to is not None:
                previous.effective_to = None
                changed = True
            return changed
        new_previous_end = effective_from - timedelta(days=1)
        if previous.effective_to != new_previous_end:
            previous.effective_to = new_previous_end
            changed = True

    db.session.add(
        EntitlementGroupAssignment(
            employee_id=employee.id,
            group=group,
            effective_from=effective_from,
            effective_to=None,
        )
    )
    return True


def _balance_statistics(year: int) -> list[dict[str, Any]]:
    stmt = select(Employee).where(Employee.active.is_(True)).order_by(Employee.name.asc(), Employee.code.asc())
    try:
        employees = list(db.session.execute(stmt).scalars().all())
    except (OperationalError, ProgrammingError, LookupError):
        db.session.rollback()
        current_app.logger.warning(
            "Employee listing failed. "
            "Run `alembic upgrade head` to apply pending migrations.",
            exc_info=True,
        )
        employees = []

    entries: list[dict[str, Any]] = []
    for employee in employees:
        entry: dict[str, Any] = {
            "employee_code": employee.code,
            "employee_name": employee.name,
            "group": employee.entitlement_group,
            "balance": None,
        }
        try:
            result = calculate_employee_balance(employee.code, year)
        except AppError as exc:
            current_app.logger.warning("Balance for %s in %s not available: %s", employee.code, year, exc.message)
            entry["error"] = {"msg": exc.message, "code": exc.error_code}
        else:
            entry["group"] = result.group
            entry["balance"] = result.as_dict()
        entries.append(entry)
    return entries


@bp.get("/admin/balances")
@login_required
@view_balances_required
def balances_list():
    year = requested_year(request.args)
    entries = _balance_statistics(year)
    return {
        "success": True,
        "year": year,
        "entries": entries,
        "failed": sum(1 for entry in entries if "error" in entry),
    }


@bp.get("/admin/balances/export")
@login_required
@view_balances_required
def balances_export():
    year = requested_year(request.args)
    output_format = (request.args.get("format") or "csv").strip().lower()
    if output_format not in EXPORT_FORMATS:
        raise ValidationFailed(
            f"Formato de exportacion no soportado: {output_format!r}.",
            details={"allowed": list(EXPORT_FORMATS)},
        )

    export_file = export_balances(output_format, year, _balance_statistics(year))
    response = make_response(export_file.content)
    response.headers["Content-Type"] = export_file.mimetype
    response.headers["Content-Disposition"] = f"attachment; filename=saldos_{year}.{export_file.extension}"
    return response


@bp.get("/admin/balances/<code>")
@login_required
@view_balances_required
def balance_detail(code: str):
    year = requested_year(request.args)
    employee = employee_by_code(code)
    result = calculate_employee_balance(employee.code, year)
    return {"success": True, "employee_name": employee.name, "balance": result.as_dict()}


@bp.put("/admin/carry-overs/<code>/<int:year>")
@login_required
@manage_master_data_required
def carry_over_set(code: str, year: int):
    year = parse_year(year)
    employee = employee_by_code(code)
    form = CarryOverForm()
    if not form.validate_on_submit():
        return {"success": False, "errors": form_errors(form)}, 400

    carry_over = db.session.execute(
        select(CarryOver).where(CarryOver.employee_id == employee.id, CarryOver.year == year)
    ).scalar_one_or_none()
    before = carry_over.days if carry_over is not None else None
    if carry_over is None:
        carry_over = CarryOver(employee_id=employee.id, year=year, days=form.days.data)
        db.session.add(carry_over)
    else:
        carry_over.days = form.days.data
    db.session.flush()

    log_audit(
        action=AuditAction.CARRY_OVER_SET,
        entity_type="carry_overs",
        entity_id=carry_over.id,
        payload={"employee_code": employee.code, "year": year, "before": before, "after": carry_over.days},
    )
    db.session.commit()
    return {"success": True, "carry_over": {"employee_code": employee.code, "year": year, "days": carry_over.days}}


@bp.get("/admin/entitlements")
@login_required
@view_balances_required
def entitlements_list():
    stmt = select(LeaveEntitlementRule).order_by(LeaveEntitlementRule.year.desc(), LeaveEntitlementRule.group_name.asc())
    if (request.args.get("year") or "").strip():
        stmt = stmt.where(LeaveEntitlementRule.year == parse_year(request.args["year"]))
    try:
        rules = list(db.session.execute(stmt).scalars().all())
    except (OperationalError, ProgrammingError, LookupError):
        db.session.rollback()
        current_app.logger.warning(
            "Entitlement rule lookup failed. "
            "Run `alembic upgrade head` to apply pending migrations.",
            exc_info=True,
        )
        rules = []
    return {"success": True, "rules": [_rule_payload(rule) for rule in rules]}


@bp.post("/admin/entitlements")
@login_required
@manage_master_data_required
def entitlements_upsert():
    form = EntitlementRuleForm()
    if not form.validate_on_submit():
        return {"success": False, "errors": form_errors(form)}, 400

    group_name = clean_text(form.group.data)
    year = form.year.data
    rule = db.session.execute(
        select(LeaveEntitlementRule).where(
            LeaveEntitlementRule.group_key == group_key(group_name),
            LeaveEntitlementRule.year == year,
        )
    ).scalar_one_or_none()
    before = _rule_payload(rule) if rule is not None else None
    created = rule is None
    if created:
        rule = LeaveEntitlementRule(group_key=group_key(group_name), year=year)
        db.session.add(rule)
    rule.group_name = group_name
    rule.vacation_days = form.vacation_days.data
    rule.personal_days = form.personal_days.data
    db.session.flush()

    log_audit(
        action=AuditAction.ENTITLEMENT_RULE_SET,
        entity_type="leave_entitlement_rules",
        entity_id=rule.id,
        payload={"before": before, "after": _rule_payload(rule)},
    )
    db.session.commit()
    return {"success": True, "rule": _rule_payload(rule)}, 201 if created else 200


@bp.post("/admin/employees/<code>/group")
@login_required
@manage_master_data_required
def employee_group_assign(code: str):
    employee = employee_by_code(code)
    form = GroupAssignmentForm()
    if not form.validate_on_submit():
        return {"success": False, "errors": form_errors(form)}, 400
    effective_from = form.effective_from.data or today_local()
    if effective_from < employee.hire_date:
        return {
            "success": False,
            "errors": [{"field": "effective_from", "msg": "La fecha no puede ser anterior a la fecha de alta."}],
        }, 400

    previous_group = employee.entitlement_group
    group = clean_text(form.group.data)
    changed = _set_group_assignment(employee, group, effective_from)
    if changed:
        log_audit(
            action=AuditAction.ENTITLEMENT_GROUP_ASSIGNED,
            entity_type="employees",
            entity_id=employee.id,
            payload={
                "employee_code": employee.code,
                "before": previous_group,
                "after": group,
                "effective_from": effective_from.isoformat(),
            },
        )
    db.session.commit()
    return {
        "success": True,
        "changed": changed,
        "employee_code": employee.code,
        "assignments": [_assignment_payload(item) for item in _employee_assignments(employee.id)],
    }


@bp.get("/admin/holidays")
@login_required
@view_balances_required
def holidays_list():
    stmt = select(Holiday).order_by(Holiday.day.asc(), Holiday.region.asc())
    region = region_key(request.args.get("region"))
    if region:
        stmt = stmt.where(Holiday.region == region)
    if (request.args.get("year") or "").strip():
        year = parse_year(request.args["year"])
        stmt = stmt.where(Holiday.day >= date(year, 1, 1), Holiday.day <= date(year, 12, 31))
    rows = list(db.session.execute(stmt).scalars().all())
    return {
        "success": True,
        "holidays": [{"region": row.region, "day": row.day.isoformat(), "name": row.name} for row in rows],
    }


@bp.post("/admin/holidays")
@login_required
@manage_master_data_required
def holidays_create():
    form = HolidayForm()
    if not form.validate_on_submit():
        return {"success": False, "errors": form_errors(form)}, 400

    region = region_key(form.region.data)
    existing = db.session.execute(
        select(Holiday.id).where(Holiday.region == region, Holiday.day == form.day.data)
    ).scalar_one_or_none()
    if existing is not None:
        abort(409, description="Ya existe un festivo para esa region y fecha.")

    holiday = Holiday(region=region, day=form.day.data, name=clean_text(form.name.data))
    db.session.add(holiday)
    db.session.flush()
    log_audit(
        action=AuditAction.HOLIDAY_CREATED,
        entity_type="holidays",
        entity_id=holiday.id,
        payload={"region": region, "day": holiday.day.isoformat(), "name": holiday.name},
    )
    db.session.commit()
    return {"success": True, "holiday": {"region": region, "day": holiday.day.isoformat(), "name": holiday.name}}, 201


@bp.get("/admin/approvals")
@login_required
@approve_absences_required
def approvals():
    stmt = (
        select(AbsenceRequest, Employee)
        .join(Employee, Employee.id == AbsenceRequest.employee_id)
        .where(AbsenceRequest.status == AbsenceStatus.PENDING)
        .order_by(AbsenceRequest.created_at.asc())
    )
    rows = db.session.execute(stmt).all()
    return {"success": True, "absences": [absence_payload(absence, employee) for absence, employee in rows]}


def _decide_absence(absence_id: UUID, status: AbsenceStatus):
    absence = db.session.get(AbsenceRequest, absence_id)
    if absence is None:
        abort(404)
    if absence.status != AbsenceStatus.PENDING:
        abort(409, description="La solicitud ya fue decidida.")

    absence.status = status
    absence.approver_user_id = UUID(current_user.get_id())
    absence.decided_at = datetime.now(timezone.utc)
    log_audit(
        action=AuditAction[f"ABSENCE_{status.value}"],
        entity_type="absence_requests",
        entity_id=absence.id,
        payload=audit_absence_payload(absence, absence.employee),
    )
    db.session.commit()
    return {"success": True, "absence": absence_payload(absence, absence.employee)}


@bp.post("/admin/approvals/<uuid:absence_id>/approve")
@login_required
@approve_absences_required
def approval_approve(absence_id: UUID):
    return _decide_absence(absence_id, AbsenceStatus.APPROVED)


@bp.post("/admin/approvals/<uuid:absence_id>/reject")
@login_required
@approve_absences_required
def approval_reject(absence_id: UUID):
    return _decide_absence(absence_id, AbsenceStatus.REJECTED)


def _uploaded_rows(form: CsvImportForm) -> list[dict[str, str]]:
    payload = form.csv_file.data.read()
    max_bytes = current_app.config.get("IMPORT_MAX_BYTES", 2 * 1024 * 1024)
    if len(payload) > max_bytes:
        raise ValidationFailed(
            "El fichero supera el tamano maximo permitido.",
            details={"max_bytes": max_bytes, "size": len(payload)},
        )
    return read_csv_rows(payload)


@bp.post("/admin/imports/employees")
@login_required
@manage_master_data_required
def import_employees():
    form = CsvImportForm()
    if not form.validate_on_submit():
        return {"success": False, "errors": form_errors(form)}, 400

    errors: list[dict[str, Any]] = []
    created = updated = 0
    for index, raw in enumerate(_uploaded_rows(form)):
        # Header is line 1.
        line = index + 2
        try:
            row = normalize_employee_row(raw)
        except RowError as exc:
            errors.append({"line": line, "msg": str(exc)})
            continue

        employee = db.session.execute(select(Employee).where(Employee.code == row.code)).scalar_one_or_none()
        if employee is None:
            db.session.add(
                Employee(
                    code=row.code,
                    name=row.name,
                    email=row.email,
                    hire_date=row.hire_date,
                    termination_date=row.termination_date,
                    entitlement_group=row.group,
                    region=row.region,
                    active=row.active,
                )
            )
            created += 1
            continue

        employee.name = row.name
        employee.email = row.email
        employee.hire_date = row.hire_date
        employee.termination_date = row.termination_date
        employee.region = row.region
        employee.active = row.active
        if group_key(employee.entitlement_group) != group_key(row.group):
            _set_group_assignment(employee, row.group, max(today_local(), row.hire_date))
        updated += 1

    log_audit(
        action=AuditAction.IMPORT_COMMITTED,
        entity_type="employees",
        entity_id=None,
        payload={"kind": "employees", "created": created, "updated": updated, "rejected": len(errors)},
    )
    db.session.commit()
    current_app.logger.info("Employee import: %s created, %s updated, %s rejected", created, updated, len(errors))
    return {"success": True, "created": created, "updated": updated, "errors": errors}


@bp.post("/admin/imports/absences")
@login_required
@manage_master_data_required
def import_absences():
    form = CsvImportForm()
    if not form.validate_on_submit():
        return {"success": False, "errors": form_errors(form)}, 400

    errors: list[dict[str, Any]] = []
    warnings: list[dict[str, Any]] = []
    employees_by_code: dict[str, Employee | None] = {}
    imported = 0
    for index, raw in enumerate(_uploaded_rows(form)):
        line = index + 2
        try:
            row = normalize_absence_row(raw)
        except RowError as exc:
            errors.append({"line": line, "msg": str(exc)})
            continue

        if row.code not in employees_by_code:
            employees_by_code[row.code] = db.session.execute(
                select(Employee).where(Employee.code == row.code)
            ).scalar_one_or_none()
        employee = employees_by_code[row.code]
        if employee is None:
            errors.append({"line": line, "msg": f"Empleado con codigo {row.code!r} no encontrado."})
            continue

        if row.is_malformed:
            warnings.append({"line": line, "msg": "La fecha de fin es anterior a la de inicio; no consume dias."})
        db.session.add(
            AbsenceRequest(
                employee_id=employee.id,
                leave_type=row.leave_type,
                status=row.status,
                date_from=row.date_from,
                date_to=row.date_to,
                reason=row.reason,
                decided_at=None if row.status == AbsenceStatus.PENDING else datetime.now(timezone.utc),
            )
        )
        imported += 1

    log_audit(
        action=AuditAction.IMPORT_COMMITTED,
        entity_type="absence_requests",
        entity_id=None,
        payload={"kind": "absences", "imported": imported, "rejected": len(errors), "warnings": len(warnings)},
    )
    db.session.commit()
    current_app.logger.info("Absence import: %s imported, %s rejected", imported, len(errors))
    return {"success": True, "imported": imported, "errors": errors, "warnings": warnings}
