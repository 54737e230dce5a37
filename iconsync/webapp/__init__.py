"""Flask application factory and shared setup for the icon API."""

from __future__ import annotations

import logging
from typing import Any, Dict

from flask import Flask, current_app, jsonify, request
from werkzeug.exceptions import HTTPException, RequestEntityTooLarge

from iconsync.config import MAX_UPLOAD_BYTES
from iconsync.errors import IconSyncError, NotFoundError, PayloadTooLargeError
from iconsync.logging_config import configure_logging
from iconsync.service import IconService, build_service_from_env
from iconsync.utils.env import load_dotenv, log_figma_configuration
from iconsync.utils.request_logging import log_request

_LOGGER = logging.getLogger(__name__)

# Multipart framing on top of the largest accepted SVG.
_MULTIPART_OVERHEAD_BYTES = 64 * 1024


def create_app(config: Dict[str, Any] | None = None) -> Flask:
    """Create and configure the Flask application.

    ``config["ICON_SERVICE"]`` injects a prebuilt :class:`IconService`;
    otherwise one is wired from the environment.
    """

    load_dotenv()
    configure_logging()

    app = Flask(__name__)
    app.config.setdefault("JSON_SORT_KEYS", False)
    app.config.setdefault(
        "MAX_CONTENT_LENGTH", MAX_UPLOAD_BYTES + _MULTIPART_OVERHEAD_BYTES
    )

    if config:
        app.config.update(config)

    if not isinstance(app.config.get("ICON_SERVICE"), IconService):
        app.config["ICON_SERVICE"] = build_service_from_env()
    log_figma_configuration()

    from .api import api_bp
    from .iconify import iconify_bp

    app.register_blueprint(iconify_bp)
    app.register_blueprint(api_bp, url_prefix="/api")

    @app.before_request
    def _log_incoming_request() -> None:
        log_request(_LOGGER, request)

    @app.errorhandler(IconSyncError)
    def _handle_domain_error(error: IconSyncError):
        if error.status >= 500:
            _LOGGER.error(
                "Request failed code=%s status=%s: %s",
                error.code,
                error.status,
                error.message,
            )
        else:
            _LOGGER.warning(
                "Request rejected code=%s status=%s: %s",
                error.code,
                error.status,
                error.message,
            )
        return jsonify(error.to_dict()), error.status

    @app.errorhandler(RequestEntityTooLarge)
    def _handle_too_large(error: RequestEntityTooLarge):
        return _handle_domain_error(
            PayloadTooLargeError("File size exceeds the maximum limit of 1MB")
        )

    @app.errorhandler(404)
    def _handle_not_found(error: HTTPException):
        return _handle_domain_error(
            NotFoundError(f"Route {request.method} {request.path} not found")
        )

    @app.errorhandler(Exception)
    def _handle_unexpected(error: Exception):
        if isinstance(error, HTTPException):
            wrapped = IconSyncError(error.description or error.name)
            wrapped.status = error.code or 500
            wrapped.code = error.name.upper().replace(" ", "_")
            return _handle_domain_error(wrapped)
        _LOGGER.exception("Unhandled error: %s", error)
        return jsonify(IconSyncError("Internal server error").to_dict()), 500

    return app


def get_service(app: Flask | None = None) -> IconService:
    """Retrieve the shared icon service. Accepts an optional app override."""
    ctx_app = app or current_app
    service = ctx_app.config.get("ICON_SERVICE")
    if not isinstance(service, IconService):
        raise RuntimeError("ICON_SERVICE config must be an IconService instance")
    return service
