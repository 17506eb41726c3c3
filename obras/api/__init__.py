"""
Obras Web Application Factory

Centralized Flask app that registers module blueprints.
Mirrors how cli/main.py assembles module CLIs.
"""

import os
from datetime import timedelta
from pathlib import Path

from flask import Flask, jsonify, request

from obras.core.errors import BillingError, BudgetError, ValidationError
from obras.core.http import ApiError
from obras.core.logging import get_logger

logger = get_logger("obras.api")


def _get_or_create_secret() -> str:
    """Resolve SECRET_KEY with priority: env var > config > file > generate.

    On first run with no key configured, generates a random key and persists
    it so sessions survive server restarts.
    """
    from obras.core.config import OBRAS_PATHS, get_config

    env_key = os.environ.get("OBRAS_SECRET_KEY")
    if env_key:
        return env_key

    cfg_key = (get_config().get("auth", {}) or {}).get("secret_key")
    if cfg_key:
        return cfg_key

    key_file = Path(OBRAS_PATHS.secret_key_file)
    if key_file.exists():
        stored = key_file.read_text().strip()
        if stored:
            return stored

    new_key = os.urandom(32).hex()
    key_file.parent.mkdir(parents=True, exist_ok=True)
    key_file.write_text(new_key)
    return new_key


def _wants_json() -> bool:
    return "/api/" in request.path or request.is_json


def create_app(api_client=None) -> Flask:
    """Create and configure the Obras Flask application.

    Args:
        api_client: Backend client used by every blueprint. Defaults to the
                    process-wide client built from config.yaml.
    """
    app = Flask(__name__, template_folder="../frontend/templates")

    # ── Secret key / session ─────────────────────────────────────────────
    from obras.core.config import get_config

    auth_cfg = get_config().get("auth", {}) or {}
    app.config["SECRET_KEY"] = _get_or_create_secret()
    app.config["PERMANENT_SESSION_LIFETIME"] = timedelta(
        minutes=auth_cfg.get("session_lifetime_minutes", 480)
    )
    app.config["SESSION_COOKIE_HTTPONLY"] = True
    app.config["SESSION_COOKIE_SAMESITE"] = "Lax"
    app.config["SESSION_COOKIE_NAME"] = "obras_session"
    app.config["JSON_AS_ASCII"] = False

    # ── Backend client ───────────────────────────────────────────────────
    if api_client is None:
        from obras.core.http import get_api
        api_client = get_api()
    app.extensions["obras_api"] = api_client

    # ── Security headers ─────────────────────────────────────────────────
    @app.after_request
    def set_security_headers(response):
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        return response

    # ── Branding context processor ───────────────────────────────────────
    from obras.core.config import get_branding
    from obras.core.output import format_currency, format_date
    from obras.projects.models import STATUS_LABELS

    @app.context_processor
    def inject_theme():
        return {"theme": get_branding(), "status_labels": STATUS_LABELS}

    app.jinja_env.filters["currency"] = format_currency
    app.jinja_env.filters["fecha"] = format_date

    # ── Error handlers ───────────────────────────────────────────────────
    @app.errorhandler(ValidationError)
    def handle_validation_error(e):
        return jsonify({"error": str(e), "errors": e.errors}), 400

    @app.errorhandler(BillingError)
    @app.errorhandler(BudgetError)
    def handle_rule_error(e):
        return jsonify({"error": str(e), "errors": [str(e)]}), 400

    @app.errorhandler(ApiError)
    def handle_api_error(e):
        if e.status == 404:
            if _wants_json():
                return jsonify({"error": "Not found"}), 404
            return "Not found", 404
        logger.error("Backend error on %s %s: %s", request.method, request.path, e)
        body = {"error": e.message, "upstream_status": e.status}
        if _wants_json():
            return jsonify(body), 502
        return f"Error del servidor: {e.message}", 502

    @app.errorhandler(404)
    def handle_not_found(e):
        if _wants_json():
            return jsonify({"error": "Not found"}), 404
        return e

    # ── Register blueprints ──────────────────────────────────────────────
    from obras.api.dashboard import bp as dashboard_bp
    app.register_blueprint(dashboard_bp)

    from obras.api.clients import bp as clients_bp
    app.register_blueprint(clients_bp)

    from obras.api.offices import bp as offices_bp
    app.register_blueprint(offices_bp)

    from obras.api.projects import bp as projects_bp
    app.register_blueprint(projects_bp)

    from obras.api.finance import bp as finance_bp
    app.register_blueprint(finance_bp)

    return app
