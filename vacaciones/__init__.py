"""Flask application factory."""

from __future__ import annotations

import logging

from flask import Flask
from werkzeug.exceptions import HTTPException

from vacaciones.blueprints.admin import bp as admin_bp
from vacaciones.blueprints.auth import bp as auth_bp
from vacaciones.blueprints.employee import bp as employee_bp
from vacaciones.blueprints.main import bp as main_bp
from vacaciones.config import Config
from vacaciones.errors import AppError
from vacaciones.extensions import csrf, db, login_manager


def create_app(config_object: type[Config] = Config) -> Flask:
    app = Flask(__name__, instance_relative_config=False)
    app.config.from_object(config_object)
    app.logger.setLevel(app.config.get("LOG_LEVEL", "INFO"))
    logging.getLogger("vacaciones").setLevel(app.config.get("LOG_LEVEL", "INFO"))

    db.init_app(app)
    login_manager.init_app(app)
    csrf.init_app(app)

    # Ensure model metadata is loaded for migrations and tests.
    from vacaciones import models as _models  # noqa: F401

    app.register_blueprint(main_bp)
    app.register_blueprint(auth_bp)
    app.register_blueprint(employee_bp)
    app.register_blueprint(admin_bp)

    @app.errorhandler(AppError)
    def handle_app_error(exc: AppError):
        app.logger.warning("%s: %s", exc.error_code, exc.message)
        return exc.to_payload(), exc.status_code

    @app.errorhandler(HTTPException)
    def handle_http_error(exc: HTTPException):
        return {
            "success": False,
            "errors": [{"msg": exc.description or exc.name, "code": exc.name.upper().replace(" ", "_")}],
        }, exc.code or 500

    return app
