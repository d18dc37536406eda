"""Field normalization for rows entering the system.

Legacy exports name the same column in many ways (``NOMBRE``, ``nombre``,
``Nombre Empleado``...), spell leave types and statuses in Spanish or
English, and mix date formats. All of that is resolved here, once, into
``EmployeeRow`` / ``AbsenceRow``; code past this module only sees the
canonical schema.
"""

from __future__ import annotations

import csv
import io
import re
import unicodedata
from dataclasses import dataclass
from datetime import date
from typing import Any, Mapping

from vacaciones.models import AbsenceStatus, LeaveType


class RowError(ValueError):
    """A source row that cannot be mapped onto the canonical schema."""


EMPLOYEE_FIELD_ALIASES: dict[str, tuple[str, ...]] = {
    "code": ("codigo", "code", "cod_empleado", "employee_code"),
    "name": ("nombre_apellidos", "nombre_y_apellidos", "nombre", "nombre_empleado", "name", "employee_name"),
    "email": ("email", "correo", "correo_electronico"),
    "hire_date": ("fecha_de_alta", "fecha_alta", "hire_date", "alta"),
    "termination_date": ("fecha_de_baja", "fecha_baja", "termination_date", "baja"),
    "group": ("grupo", "group", "entitlement_group", "convenio_grupo"),
    "region": ("region", "provincia", "comunidad"),
    "active": ("estado", "active", "activo"),
}

ABSENCE_FIELD_ALIASES: dict[str, tuple[str, ...]] = {
    "code": ("codigo", "code", "cod_empleado", "employee_code"),
    "leave_type": ("tipo", "leave_type", "tipo_solicitud", "type"),
    "status": ("estado", "status"),
    "date_from": ("fecha_inicio", "date_from", "desde", "start_date"),
    "date_to": ("fecha_fin", "date_to", "hasta", "end_date"),
    "reason": ("motivo", "observaciones", "reason", "comentarios"),
}

LEAVE_TYPE_ALIASES = {
    "vacaciones": LeaveType.VACATION,
    "vacacion": LeaveType.VACATION,
    "vacation": LeaveType.VACATION,
    "asunto propio": LeaveType.PERSONAL_DAY,
    "asuntos propios": LeaveType.PERSONAL_DAY,
    "personal day": LeaveType.PERSONAL_DAY,
    "personal_day": LeaveType.PERSONAL_DAY,
}

STATUS_ALIASES = {
    "aprobada": AbsenceStatus.APPROVED,
    "aprobado": AbsenceStatus.APPROVED,
    "approved": AbsenceStatus.APPROVED,
    "pendiente": AbsenceStatus.PENDING,
    "pending": AbsenceStatus.PENDING,
    "requested": AbsenceStatus.PENDING,
    "rechazada": AbsenceStatus.REJECTED,
    "denegada": AbsenceStatus.REJECTED,
    "rejected": AbsenceStatus.REJECTED,
    "cancelada": AbsenceStatus.CANCELLED,
    "anulada": AbsenceStatus.CANCELLED,
    "cancelled": AbsenceStatus.CANCELLED,
    "canceled": AbsenceStatus.CANCELLED,
}

ACTIVE_VALUES = {"", "activo", "activa", "active", "true", "1", "si", "yes"}
INACTIVE_VALUES = {"baja", "inactivo", "inactiva", "inactive", "false", "0", "no"}

_DMY_PATTERN = re.compile(r"^(\d{1,2})[/-](\d{1,2})[/-](\d{2,4})$")


@dataclass(frozen=True)
class EmployeeRow:
    code: str
    name: str
    email: str | None
    hire_date: date
    termination_date: date | None
    group: str
    region: str | None
    active: bool


@dataclass(frozen=True)
class AbsenceRow:
    code: str
    leave_type: LeaveType
    status: AbsenceStatus
    date_from: date
    date_to: date
    reason: str | None

    @property
    def is_malformed(self) -> bool:
        return self.date_to < self.date_from


def _fold(value: str) -> str:
    decomposed = unicodedata.normalize("NFKD", value)
    without_marks = "".join(char for char in decomposed if not unicodedata.combining(char))
    return " ".join(without_marks.split()).casefold()


def header_key(header: str) -> str:
    return re.sub(r"[\s\-]+", "_", _fold(header))


def group_key(group_name: str) -> str:
    """Lookup key for an entitlement group: trimmed, case and accent insensitive."""
    return _fold(group_name)


def region_key(region: Any) -> str | None:
    """Canonical region code: trimmed, accent free, upper case."""
    return _fold(clean_text(region)).upper() or None


def clean_text(value: Any) -> str:
    if value is None:
        return ""
    return " ".join(str(value).split())


def parse_date(value: Any) -> date | None:
    if value is None:
        return None
    if isinstance(value, date):
        return value

    text = str(value).strip()
    if not text:
        return None

    try:
        return date.fromisoformat(text[:10])
    except ValueError:
        pass

    match = _DMY_PATTERN.match(text)
    if match is None:
        raise RowError(f"Fecha invalida: {text!r}")
    day, month, year = (int(part) for part in match.groups())
    if year < 100:
        year = 2000 + year if year < 50 else 1900 + year
    try:
        return date(year, month, day)
    except ValueError as exc:
        raise RowError(f"Fecha invalida: {text!r}") from exc


def parse_leave_type(value: Any) -> LeaveType:
    folded = _fold(clean_text(value))
    if not folded:
        raise RowError("Tipo de ausencia vacio.")
    if folded.upper() in LeaveType.__members__:
        return LeaveType[folded.upper()]
    return LEAVE_TYPE_ALIASES.get(folded, LeaveType.OTHER)


def parse_status(value: Any) -> AbsenceStatus:
    folded = _fold(clean_text(value))
    status = STATUS_ALIASES.get(folded)
    if status is None:
        raise RowError(f"Estado de solicitud desconocido: {clean_text(value)!r}")
    return status


def parse_active(value: Any) -> bool:
    folded = _fold(clean_text(value))
    if folded in ACTIVE_VALUES:
        return True
    if folded in INACTIVE_VALUES:
        return False
    raise RowError(f"Estado de empleado desconocido: {clean_text(value)!r}")


def canonical_fields(raw: Mapping[str, Any], aliases: Mapping[str, tuple[str, ...]]) -> dict[str, Any]:
    """Map a raw row onto canonical field names. Unknown columns are dropped."""
    keyed = {header_key(str(key)): value for key, value in raw.items() if key is not None}
    canonical: dict[str, Any] = {}
    for field_name, variants in aliases.items():
        for variant in variants:
            if variant in keyed and clean_text(keyed[variant]):
                canonical[field_name] = keyed[variant]
                break
    return canonical


def _required(fields: Mapping[str, Any], name: str) -> str:
    value = clean_text(fields.get(name))
    if not value:
        raise RowError(f"Falta el campo obligatorio '{name}'.")
    return value


def normalize_employee_row(raw: Mapping[str, Any]) -> EmployeeRow:
    fields = canonical_fields(raw, EMPLOYEE_FIELD_ALIASES)
    hire_date = parse_date(_required(fields, "hire_date"))
    termination_date = parse_date(fields.get("termination_date"))
    if hire_date is not None and termination_date is not None and termination_date < hire_date:
        raise RowError("La fecha de baja es anterior a la fecha de alta.")

    email = clean_text(fields.get("email")).lower() or None
    region = region_key(fields.get("region"))
    return EmployeeRow(
        code=_required(fields, "code").upper(),
        name=_required(fields, "name"),
        email=email,
        hire_date=hire_date,
        termination_date=termination_date,
        group=_required(fields, "group"),
        region=region,
        active=parse_active(fields.get("active")),
    )


def normalize_absence_row(raw: Mapping[str, Any]) -> AbsenceRow:
    fields = canonical_fields(raw, ABSENCE_FIELD_ALIASES)
    date_from = parse_date(_required(fields, "date_from"))
    date_to = parse_date(fields.get("date_to")) or date_from
    return AbsenceRow(
        code=_required(fields, "code").upper(),
        leave_type=parse_leave_type(_required(fields, "leave_type")),
        status=parse_status(_required(fields, "status")),
        date_from=date_from,
        date_to=date_to,
        reason=clean_text(fields.get("reason")) or None,
    )


def read_csv_rows(payload: bytes) -> list[dict[str, str]]:
    try:
        text = payload.decode("utf-8-sig")
    except UnicodeDecodeError:
        text = payload.decode("latin-1")

    sample = text[:4096]
    try:
        dialect = csv.Sniffer().sniff(sample, delimiters=",;\t")
    except csv.Error:
        dialect = csv.excel
    reader = csv.DictReader(io.StringIO(text), dialect=dialect)
    return [row for row in reader if any(clean_text(value) for value in row.values())]
