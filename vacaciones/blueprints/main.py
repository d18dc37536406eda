"""General routes."""

from __future__ import annotations

from flask import Blueprint
from flask_wtf.csrf import generate_csrf


bp = Blueprint("main", __name__)


@bp.get("/health")
def health():
    return {"status": "ok"}, 200


@bp.get("/csrf-token")
def csrf_token():
    return {"csrf_token": generate_csrf()}, 200
