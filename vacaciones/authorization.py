"""Authorization capabilities and semantic permission decorators."""

from __future__ import annotations

import functools
from typing import Callable

from flask import abort
from flask_login import current_user

from vacaciones.models import User, UserRole

ADMIN_ROLES = {UserRole.ADMIN, UserRole.MANAGER}


def can_view_all_balances(role: UserRole) -> bool:
    return role in ADMIN_ROLES


def can_manage_leave_master_data(role: UserRole) -> bool:
    return role == UserRole.ADMIN


def can_approve_absences(role: UserRole) -> bool:
    return role in ADMIN_ROLES


def can_access_self_service(user: User) -> bool:
    return user.employee_id is not None


def _role_predicate(check: Callable[[UserRole], bool]) -> Callable[[User], bool]:
    def predicate(user: User) -> bool:
        return check(user.role)

    return predicate


def permission_required(permission_name: str, check: Callable[[User], bool]):
    def decorator(view: Callable):
        @functools.wraps(view)
        def wrapped(*args, **kwargs):
            if not current_user.is_authenticated or not check(current_user):
                abort(403, description=f"Insufficient permissions: {permission_name}.")
            return view(*args, **kwargs)

        return wrapped

    return decorator


view_balances_required = permission_required("view_balances", _role_predicate(can_view_all_balances))
manage_master_data_required = permission_required(
    "manage_leave_master_data", _role_predicate(can_manage_leave_master_data)
)
approve_absences_required = permission_required("approve_absences", _role_predicate(can_approve_absences))
self_service_required = permission_required("self_service", can_access_self_service)
