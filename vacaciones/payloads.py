"""JSON shapes returned by the API."""

from __future__ import annotations

from typing import Any

from vacaciones.models import AbsenceRequest, AbsenceStatus, Employee, LeaveType


LEAVE_TYPE_LABELS = {
    LeaveType.VACATION: "Vacaciones",
    LeaveType.PERSONAL_DAY: "Asuntos propios",
    LeaveType.OTHER: "Otro permiso",
}
ABSENCE_STATUS_LABELS = {
    AbsenceStatus.PENDING: "Pendiente",
    AbsenceStatus.APPROVED: "Aprobada",
    AbsenceStatus.REJECTED: "Rechazada",
    AbsenceStatus.CANCELLED: "Cancelada",
}


def absence_payload(absence: AbsenceRequest, employee: Employee | None = None) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "id": str(absence.id),
        "leave_type": absence.leave_type.value,
        "leave_type_label": LEAVE_TYPE_LABELS.get(absence.leave_type, absence.leave_type.value),
        "status": absence.status.value,
        "status_label": ABSENCE_STATUS_LABELS.get(absence.status, absence.status.value),
        "date_from": absence.date_from.isoformat(),
        "date_to": absence.date_to.isoformat(),
        "days": max(0, (absence.date_to - absence.date_from).days + 1),
        "reason": absence.reason,
        "created_at": absence.created_at.isoformat() if absence.created_at else None,
        "decided_at": absence.decided_at.isoformat() if absence.decided_at else None,
    }
    if employee is not None:
        payload["employee_code"] = employee.code
        payload["employee_name"] = employee.name
    return payload


def audit_absence_payload(absence: AbsenceRequest, employee: Employee) -> dict[str, Any]:
    return {
        "employee_code": employee.code,
        "leave_type": absence.leave_type.value,
        "date_from": absence.date_from.isoformat(),
        "date_to": absence.date_to.isoformat(),
        "reason": absence.reason,
        "status": absence.status.value,
    }
