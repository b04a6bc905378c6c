"""Health check endpoints."""
from flask import Blueprint, current_app, jsonify

bp = Blueprint("health", __name__)


@bp.route("/health")
def health_check():
    """Basic health check endpoint."""
    return ("ok", 200, {"Content-Type": "text/plain"})


@bp.route("/ready")
def readiness_check():
    """Report the guarded API roots and the services they are relayed to.

    Not ready (503) until at least one controller is registered.
    """
    cfg = current_app.config["APP_CONFIG"]
    controllers = current_app.config.get("TMF_CONTROLLERS") or {}

    payload = {
        "status": "ready" if controllers else "not ready",
        "controllers": {
            path: {"base_path": controller.base_path, "upstream": cfg.service_url(controller.service_name)}
            for path, controller in controllers.items()
        },
        "services": {name: cfg.service_url(name) for name in sorted(cfg.endpoints)},
    }
    return jsonify(payload), 200 if controllers else 503
