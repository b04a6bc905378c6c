"""Error handlers for the application."""
from flask import jsonify
from werkzeug.exceptions import HTTPException

from logic_proxy.core.exceptions import ProxyError


def register_error_handlers(app):
    """Register error handlers with the Flask app."""

    @app.errorhandler(ProxyError)
    def handle_proxy_error(error: ProxyError):
        """Render a controller denial raised outside the entry points."""
        return error_response(error)

    @app.errorhandler(400)
    def bad_request(error):
        """Handle 400 Bad Request errors."""
        return jsonify({"error": "Bad Request", "message": _description(error, "Invalid request")}), 400

    @app.errorhandler(401)
    def unauthorized(error):
        """Handle 401 Unauthorized errors."""
        return jsonify({"error": "Unauthorized", "message": "Authentication required"}), 401

    @app.errorhandler(403)
    def forbidden(error):
        """Handle 403 Forbidden errors."""
        return jsonify({"error": "Forbidden", "message": _description(error, "Insufficient permissions")}), 403

    @app.errorhandler(404)
    def not_found(error):
        """Handle 404 Not Found errors."""
        return jsonify({"error": "Not Found", "message": "Resource not found"}), 404

    @app.errorhandler(405)
    def method_not_allowed(error):
        return jsonify({"error": "Method Not Allowed", "message": "Method not allowed"}), 405

    @app.errorhandler(500)
    def internal_error(error):
        """Handle 500 Internal Server Error."""
        app.logger.error(f"Internal error: {error}", exc_info=True)
        return jsonify({"error": "Internal Server Error", "message": "An unexpected error occurred"}), 500

    @app.errorhandler(Exception)
    def handle_exception(error):
        """Handle uncaught exceptions."""
        # Pass through HTTP errors
        if isinstance(error, HTTPException):
            return error

        app.logger.error(f"Unhandled exception: {error}", exc_info=True)
        return jsonify({"error": "Internal Server Error", "message": "An unexpected error occurred"}), 500


_REASONS = {
    400: "Bad Request",
    401: "Unauthorized",
    403: "Forbidden",
    404: "Not Found",
    405: "Method Not Allowed",
    422: "Unprocessable Entity",
    500: "Internal Server Error",
    502: "Bad Gateway",
}


def _reason(status: int) -> str:
    return _REASONS.get(status, "Error")


def _description(error, default: str) -> str:
    """Use the abort() description unless it is werkzeug's stock text."""
    description = getattr(error, "description", None)
    if not description or not isinstance(error, HTTPException):
        return default
    if description == type(error).description:
        return default
    return str(description)


def error_response(outcome: ProxyError):
    """JSON response tuple for a controller outcome."""
    return jsonify({"error": _reason(outcome.status), "message": outcome.message}), outcome.status
