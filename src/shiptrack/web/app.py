"""Flask application factory."""

import logging
from typing import Optional

from flask import Flask, jsonify, request
from flask_cors import CORS
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address
from werkzeug.exceptions import HTTPException

from ..config import Settings, load_settings
from ..exceptions import ShiptrackError, ValidationError
from ..notifications import ShipmentNotifier
from ..service import ShipmentService
from ..storage import ShipmentStore, create_store
from .admin import register_admin_routes
from .dashboard import register_dashboard_routes

logger = logging.getLogger(__name__)

SECURITY_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "DENY",
    "X-XSS-Protection": "1; mode=block",
}


def create_app(
    settings: Optional[Settings] = None,
    store: Optional[ShipmentStore] = None,
    notifier: Optional[ShipmentNotifier] = None,
) -> Flask:
    """Factory function to create and configure Flask app."""
    settings = settings or load_settings()
    app = Flask(__name__)
    app.config["DEBUG"] = settings.debug
    app.json.sort_keys = False

    if settings.uses_default_secret:
        logger.warning("Using the default JWT secret; set SHIPTRACK_AUTH__SECRET_KEY in production")

    store = store or create_store(settings)
    notifier = notifier or ShipmentNotifier.from_settings(settings)

    # Shared objects for the route modules
    app.settings = settings
    app.store = store
    app.service = ShipmentService(store, notifier)
    app.notifier = notifier

    CORS(
        app,
        resources={
            r"/admin/*": {"origins": settings.cors.allowed_origins, "supports_credentials": True},
            r"/track/*": {"origins": "*"},
        },
        allow_headers=["Content-Type", "Authorization"],
    )

    limiter = Limiter(
        key_func=get_remote_address,
        app=app,
        default_limits=[settings.rate_limit.default],
        storage_uri=settings.rate_limit.storage_uri,
        enabled=settings.rate_limit.enabled,
        headers_enabled=True,
    )
    app.limiter = limiter

    _register_hooks(app)
    _register_error_handlers(app)

    @app.route("/health", methods=["GET"])
    def health():
        """Health check endpoint."""
        return jsonify({"status": "healthy"}), 200

    @app.route("/track/<tracking_id>", methods=["GET"])
    def track(tracking_id):
        """Public tracking lookup."""
        shipment = app.service.track(tracking_id)
        return jsonify({"success": True, "data": shipment.to_public_dict()}), 200

    register_admin_routes(app, limiter)
    register_dashboard_routes(app)

    return app


def _register_hooks(app: Flask) -> None:
    @app.after_request
    def add_security_headers(response):
        for header, value in SECURITY_HEADERS.items():
            response.headers.setdefault(header, value)
        return response

    @app.after_request
    def log_request(response):
        logger.info(
            f"{request.method} {request.path} {response.status_code}",
            extra={"remote_addr": request.remote_addr},
        )
        return response


def _register_error_handlers(app: Flask) -> None:
    @app.errorhandler(ShiptrackError)
    def handle_shiptrack_error(error: ShiptrackError):
        if error.http_status >= 500:
            logger.error(f"{request.method} {request.path} failed: {error.message}", exc_info=error)
            return jsonify({"success": False, "message": "Something went wrong!"}), error.http_status

        body = {"success": False, "message": error.message}
        if isinstance(error, ValidationError) and error.field:
            body["field"] = error.field
        return jsonify(body), error.http_status

    @app.errorhandler(HTTPException)
    def handle_http_error(error: HTTPException):
        if error.code is None or error.code < 400:
            return error
        if error.code == 404:
            message = "Route not found"
        elif error.code == 429:
            message = "Too many requests"
        else:
            message = error.description
        return jsonify({"success": False, "message": message}), error.code

    @app.errorhandler(Exception)
    def handle_unexpected_error(error: Exception):
        logger.error(f"Unhandled error on {request.method} {request.path}", exc_info=error)
        return jsonify({"success": False, "message": "Something went wrong!"}), 500
