"""Employee self-service routes."""

from __future__ import annotations

import uuid
from datetime import date, datetime, timezone

from flask import Blueprint, abort, current_app, request
from flask_login import current_user, login_required
from sqlalchemy import select
from sqlalchemy.exc import OperationalError, ProgrammingError

from vacaciones.audit import AuditAction, log_audit
from vacaciones.authorization import self_service_required
from vacaciones.balance_store import calculate_employee_balance
from vacaciones.extensions import db
from vacaciones.forms import AbsenceRequestForm, form_errors
from vacaciones.models import AbsenceRequest, AbsenceStatus, Employee, LeaveType
from vacaciones.params import requested_year
from vacaciones.payloads import absence_payload, audit_absence_payload


bp = Blueprint("employee", __name__)


def _employee_for_current_user() -> Employee:
    if current_user.employee_id is None:
        abort(403, description="No employee profile linked to this account.")

    employee = db.session.get(Employee, current_user.employee_id)
    if employee is None or not employee.active:
        abort(403, description="Employee profile is unavailable.")
    return employee


def _has_absence_overlap(
    employee_id: uuid.UUID,
    leave_type: LeaveType,
    requested_from: date,
    requested_to: date,
) -> bool:
    stmt = (
        select(AbsenceRequest.id)
        .where(
            AbsenceRequest.employee_id == employee_id,
            AbsenceRequest.leave_type == leave_type,
            AbsenceRequest.status.in_([AbsenceStatus.PENDING, AbsenceStatus.APPROVED]),
            AbsenceRequest.date_from <= requested_to,
            AbsenceRequest.date_to >= requested_from,
        )
        .limit(1)
    )
    return db.session.execute(stmt).scalar_one_or_none() is not None


@bp.get("/me/balance")
@login_required
@self_service_required
def me_balance():
    employee = _employee_for_current_user()
    year = requested_year(request.args)
    result = calculate_employee_balance(employee.code, year)
    return {"success": True, "employee_name": employee.name, "balance": result.as_dict()}


@bp.get("/me/absences")
@login_required
@self_service_required
def me_absences():
    employee = _employee_for_current_user()
    stmt = (
        select(AbsenceRequest)
        .where(AbsenceRequest.employee_id == employee.id)
        .order_by(AbsenceRequest.created_at.desc())
    )
    try:
        rows = list(db.session.execute(stmt).scalars().all())
    except (OperationalError, ProgrammingError, LookupError):
        db.session.rollback()
        current_app.logger.warning(
            "Absence history lookup failed. "
            "Run `alembic upgrade head` to apply pending migrations.",
            exc_info=True,
        )
        rows = []
    return {"success": True, "absences": [absence_payload(row) for row in rows]}


@bp.post("/me/absences")
@login_required
@self_service_required
def me_absences_create():
    employee = _employee_for_current_user()
    form = AbsenceRequestForm()
    if not form.validate_on_submit():
        return {"success": False, "errors": form_errors(form)}, 400

    leave_type = LeaveType(form.leave_type.data)
    requested_from = form.date_from.data
    requested_to = form.date_to.data
    if _has_absence_overlap(employee.id, leave_type, requested_from, requested_to):
        return {
            "success": False,
            "errors": [
                {
                    "msg": "Ya existe una solicitud pendiente o aprobada que se solapa con estas fechas.",
                    "code": "ABSENCE_OVERLAP",
                }
            ],
        }, 409

    absence = AbsenceRequest(
        employee_id=employee.id,
        leave_type=leave_type,
        status=AbsenceStatus.PENDING,
        date_from=requested_from,
        date_to=requested_to,
        reason=(form.reason.data or "").strip() or None,
    )
    db.session.add(absence)
    db.session.flush()
    log_audit(
        action=AuditAction.ABSENCE_REQUESTED,
        entity_type="absence_requests",
        entity_id=absence.id,
        payload=audit_absence_payload(absence, employee),
    )
    db.session.commit()
    return {"success": True, "absence": absence_payload(absence)}, 201


@bp.post("/me/absences/<uuid:absence_id>/cancel")
@login_required
@self_service_required
def me_absence_cancel(absence_id: uuid.UUID):
    employee = _employee_for_current_user()
    absence = db.session.execute(
        select(AbsenceRequest).where(
            AbsenceRequest.id == absence_id,
            AbsenceRequest.employee_id == employee.id,
        )
    ).scalar_one_or_none()
    if absence is None:
        abort(404)
    if absence.status != AbsenceStatus.PENDING:
        abort(409, description="La solicitud ya fue decidida.")

    absence.status = AbsenceStatus.CANCELLED
    absence.decided_at = datetime.now(timezone.utc)
    log_audit(
        action=AuditAction.ABSENCE_CANCELLED,
        entity_type="absence_requests",
        entity_id=absence.id,
        payload=audit_absence_payload(absence, employee),
    )
    db.session.commit()
    return {"success": True, "absence": absence_payload(absence)}
