"""Iconify-compatible read endpoints plus the health probe."""

from __future__ import annotations

from flask import Blueprint, Response, jsonify, request

from iconsync.errors import ValidationError
from iconsync.service import CachedResponse

from . import get_service

iconify_bp = Blueprint("iconify", __name__)


def _split(raw: str | None) -> list[str]:
    if not raw:
        return []
    return [part.strip() for part in raw.split(",") if part.strip()]


def _render(result: CachedResponse) -> Response:
    if result.not_modified:
        response = Response(status=304)
    else:
        response = jsonify(result.payload)
    response.headers.update(result.validator.to_headers())
    return response


@iconify_bp.get("/collections")
def collections() -> Response:
    """List the available collections."""
    service = get_service()
    return _render(service.collections(request.headers.get("If-None-Match")))


@iconify_bp.get("/collection")
def collection() -> Response:
    """Return a whole collection, addressed by ``?prefix=``."""
    service = get_service()
    return _render(
        service.get_collection(
            request.args.get("prefix", ""),
            request.headers.get("If-None-Match"),
        )
    )


@iconify_bp.get("/icons")
def icons_by_reference() -> Response:
    """Return icons addressed as ``?icons=ns:a,ns:b``."""
    service = get_service()
    references = _split(request.args.get("icons"))
    if not references:
        raise ValidationError("Missing required query parameter: icons")
    return _render(
        service.get_icons_by_reference(
            references, request.headers.get("If-None-Match")
        )
    )


@iconify_bp.get("/<namespace>.json")
def namespace_icons(namespace: str) -> Response:
    """Return a collection or a subset selected by ``?icons=a,b``."""
    service = get_service()
    return _render(
        service.get_icons(
            namespace,
            _split(request.args.get("icons")),
            request.headers.get("If-None-Match"),
        )
    )


@iconify_bp.get("/health")
def health() -> tuple[Response, int]:
    """Readiness probe covering storage, cache and Figma."""
    service = get_service()
    payload, status = service.health()
    return jsonify(payload), status
