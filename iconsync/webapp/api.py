"""REST API blueprint for uploads, deletes, versions, sync and cache control."""

from __future__ import annotations

from flask import Blueprint, Response, jsonify, request

from iconsync.errors import ValidationError

from . import get_service

api_bp = Blueprint("api", __name__)

_SVG_MIMETYPES = {"image/svg+xml", "text/xml", "application/xml", "text/plain"}


def _field(name: str) -> str | None:
    value = request.form.get(name) or request.args.get(name)
    return value.strip() if isinstance(value, str) and value.strip() else None


def _upload_body() -> bytes:
    upload = request.files.get("icon")
    if upload is not None:
        filename = (upload.filename or "").lower()
        if upload.mimetype != "image/svg+xml" and not filename.endswith(".svg"):
            raise ValidationError("Only SVG files are allowed")
        return upload.read()
    if request.mimetype in _SVG_MIMETYPES:
        return request.get_data()
    raise ValidationError(
        'No file uploaded. Please provide an SVG file with the field name "icon"'
    )


@api_bp.post("/upload")
def upload_icon() -> tuple[Response, int]:
    """Store one SVG; ``conflictStrategy`` is ``reject`` or ``overwrite``."""
    service = get_service()
    payload = service.upload(
        _field("namespace"),
        _field("name"),
        _upload_body(),
        _field("conflictStrategy"),
    )
    return jsonify(payload), 201


@api_bp.delete("/icons/<namespace>/<name>")
def delete_icon(namespace: str, name: str) -> tuple[Response, int]:
    service = get_service()
    return jsonify(service.delete(namespace, name)), 200


@api_bp.get("/icons/<namespace>/<name>/versions")
def icon_versions(namespace: str, name: str) -> tuple[Response, int]:
    """Version history, newest first."""
    service = get_service()
    return jsonify(service.list_versions(namespace, name)), 200


@api_bp.post("/icons/<namespace>/<name>/rollback/<version_id>")
def rollback_icon(
    namespace: str, name: str, version_id: str
) -> tuple[Response, int]:
    service = get_service()
    return jsonify(service.rollback(namespace, name, version_id)), 200


@api_bp.post("/sync/figma")
def sync_figma() -> tuple[Response, int]:
    """Run a Figma sync; ``?mode=full|incremental``."""
    service = get_service()
    body = request.get_json(silent=True) or {}
    namespace = request.args.get("namespace") or body.get("namespace")
    icons_only = (request.args.get("iconsOnly") or "").strip().lower() in {
        "1",
        "true",
        "yes",
        "on",
    }
    payload = service.sync(namespace, request.args.get("mode"), icons_only)
    return jsonify(payload), 200


@api_bp.post("/cache/clear")
def clear_cache() -> tuple[Response, int]:
    service = get_service()
    return jsonify(service.clear_cache(request.args.get("namespace"))), 200
