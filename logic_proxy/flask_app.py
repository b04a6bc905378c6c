"""Flask application factory and bootstrap.

This module provides the create_app() factory function for initializing
the proxy with its blueprints, controllers, middleware and configuration.
"""
from __future__ import annotations
import os
import uuid
from tempfile import gettempdir
from typing import Optional

from flask import Flask, g, request
from flask_session import Session
from werkzeug.middleware.proxy_fix import ProxyFix

from logic_proxy.config import AppConfig, load_settings
from logic_proxy.core.customer import CustomerAPI
from logic_proxy.core.http_client import TmfClient


# ─────────────────────────────────────────────────────────────────────────────
# Application Factory
# ─────────────────────────────────────────────────────────────────────────────
def create_app(cfg: Optional[AppConfig] = None) -> Flask:
    """Create and configure Flask application."""
    cfg = cfg or load_settings()

    app = Flask(__name__)

    # Store config for easy access in routes
    app.config["APP_CONFIG"] = cfg

    # Flask session configuration
    app.config["SECRET_KEY"] = cfg.secret_key
    if cfg.secret_key_fallbacks:
        app.config["SECRET_KEY_FALLBACKS"] = cfg.secret_key_fallbacks

    app.config["SESSION_TYPE"] = os.environ.get("FLASK_SESSION_TYPE", "filesystem")
    if app.config["SESSION_TYPE"] == "filesystem":
        session_dir = os.environ.get("FLASK_SESSION_DIR") or os.path.join(gettempdir(), "tmf_logic_proxy_session")
        os.makedirs(session_dir, exist_ok=True)
        app.config["SESSION_FILE_DIR"] = session_dir

    app.config["SESSION_COOKIE_HTTPONLY"] = True
    app.config["SESSION_COOKIE_SAMESITE"] = "Lax"
    app.config["SESSION_COOKIE_SECURE"] = cfg.session_cookie_secure

    Session(app)

    # Trust X-Forwarded-* headers from proxy (nginx)
    app.wsgi_app = ProxyFix(app.wsgi_app, x_for=1, x_proto=1, x_host=1)  # type: ignore

    # Controllers, keyed by the first path segment they guard
    client = TmfClient(cfg.request_timeout)
    customer_api = CustomerAPI(cfg, client)
    app.config["TMF_CLIENT"] = client
    app.config["TMF_CONTROLLERS"] = {
        cfg.endpoint("customer").path: customer_api,
    }

    # Register blueprints
    from logic_proxy.api import errors, health, tmf

    app.register_blueprint(health.bp)
    app.register_blueprint(tmf.bp)

    errors.register_error_handlers(app)

    _register_middleware(app)

    mode_label = "DEMO" if cfg.demo_mode else "PRODUCTION"
    app.logger.info(f"[flask_app] Mode={mode_label}; Customer API guarded at {customer_api.base_path}")

    return app


def _register_middleware(app: Flask):
    """Register before_request middleware."""

    @app.before_request
    def assign_correlation_id() -> None:
        """Reuse the caller's correlation id or mint one for upstream calls."""
        g.correlation_id = request.headers.get("X-Correlation-Id") or uuid.uuid4().hex


# ─────────────────────────────────────────────────────────────────────────────
# Application Instance (for Gunicorn)
# ─────────────────────────────────────────────────────────────────────────────
app = create_app()


if __name__ == "__main__":
    app.run(host="0.0.0.0", port=5000, debug=True)
