"""Authentication routes."""

from __future__ import annotations

from flask import Blueprint
from flask_login import current_user, login_required, login_user, logout_user
from sqlalchemy import select

from vacaciones.extensions import db
from vacaciones.forms import LoginForm, form_errors
from vacaciones.models import User
from vacaciones.security import verify_password


bp = Blueprint("auth", __name__)


def _user_payload(user: User) -> dict[str, object]:
    employee = user.employee
    return {
        "id": str(user.id),
        "email": user.email,
        "role": user.role.value,
        "employee_code": employee.code if employee is not None else None,
    }


@bp.post("/login")
def login():
    if current_user.is_authenticated:
        return {"success": True, "user": _user_payload(current_user)}, 200

    form = LoginForm()
    if not form.validate_on_submit():
        return {"success": False, "errors": form_errors(form)}, 400

    stmt = select(User).where(User.email == form.email.data.strip().lower())
    user = db.session.execute(stmt).scalar_one_or_none()
    if user is None or not verify_password(user.password_hash, form.password.data):
        return {"success": False, "errors": [{"msg": "Credenciales invalidas.", "code": "AUTH_FAILED"}]}, 401

    if not user.is_active:
        return {"success": False, "errors": [{"msg": "Usuario inactivo.", "code": "USER_INACTIVE"}]}, 403

    login_user(user, remember=form.remember.data)
    return {"success": True, "user": _user_payload(user)}, 200


@bp.post("/logout")
@login_required
def logout():
    logout_user()
    return {"success": True}, 200
