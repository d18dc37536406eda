"""Audit trail for leave master data and absence decisions."""

from __future__ import annotations

import enum
import uuid
from typing import Any

from flask_login import current_user

from vacaciones.extensions import db
from vacaciones.models import AuditLog


class AuditAction(str, enum.Enum):
    ABSENCE_REQUESTED = "ABSENCE_REQUESTED"
    ABSENCE_CANCELLED = "ABSENCE_CANCELLED"
    ABSENCE_APPROVED = "ABSENCE_APPROVED"
    ABSENCE_REJECTED = "ABSENCE_REJECTED"
    CARRY_OVER_SET = "CARRY_OVER_SET"
    ENTITLEMENT_RULE_SET = "ENTITLEMENT_RULE_SET"
    ENTITLEMENT_GROUP_ASSIGNED = "ENTITLEMENT_GROUP_ASSIGNED"
    HOLIDAY_CREATED = "HOLIDAY_CREATED"
    IMPORT_COMMITTED = "IMPORT_COMMITTED"


def _actor() -> tuple[uuid.UUID | None, dict[str, Any]]:
    if not current_user.is_authenticated:
        return None, {"email": None, "role": None}
    try:
        actor_user_id = uuid.UUID(current_user.get_id())
    except ValueError:
        actor_user_id = None
    return actor_user_id, {"email": current_user.email, "role": current_user.role.value}


def log_audit(
    action: AuditAction,
    entity_type: str,
    entity_id: uuid.UUID | None,
    payload: dict[str, Any] | None = None,
) -> AuditLog:
    """Stage an audit row in the current session; the caller commits it."""
    actor_user_id, actor = _actor()
    entry = AuditLog(
        actor_user_id=actor_user_id,
        action=AuditAction(action).value,
        entity_type=entity_type,
        entity_id=entity_id,
        payload_json={**(payload or {}), "actor": actor},
    )
    db.session.add(entry)
    return entry
