"""
IconSync Repository
Introductory remarks: This module is part of the IconSync codebase.

Discover icon candidates in a Figma document and derive icon names.
"""

from __future__ import annotations

import logging
import re
from typing import Any, Dict, Iterable, List, Mapping

from iconsync.models import ComponentType, ExternalComponent

logger = logging.getLogger(__name__)

_ICON_PREFIX = re.compile(r"^icon[-_]", re.IGNORECASE)
_WHITESPACE = re.compile(r"\s+")
_DISALLOWED = re.compile(r"[^a-z0-9_-]")


def discover_components(file_payload: Mapping[str, Any]) -> List[ExternalComponent]:
    """Collect exportable candidates from a ``GET /files/<id>`` payload.

    Order: instances first (they render in context), then published
    components no instance references, then tree ``COMPONENT`` definitions
    not already covered by id.
    """
    document = file_payload.get("document")
    if not isinstance(document, Mapping):
        raise ValueError("Invalid Figma file structure")

    instances: List[ExternalComponent] = []
    definitions: List[ExternalComponent] = []
    for node in _walk(document):
        node_type = node.get("type")
        if node_type == ComponentType.INSTANCE.value and node.get("componentId"):
            instances.append(
                ExternalComponent(
                    id=str(node["id"]),
                    name=str(node.get("name", "")),
                    type=ComponentType.INSTANCE,
                    description=str(node.get("description") or ""),
                    component_id=str(node["componentId"]),
                )
            )
        elif node_type == ComponentType.COMPONENT.value and node.get("id"):
            definitions.append(
                ExternalComponent(
                    id=str(node["id"]),
                    name=str(node.get("name", "")),
                    type=ComponentType.COMPONENT,
                    description=str(node.get("description") or ""),
                )
            )

    discovered: List[ExternalComponent] = list(instances)
    seen_ids = {component.id for component in discovered}
    referenced = {component.component_id for component in instances}

    published = file_payload.get("components") or {}
    if isinstance(published, Mapping):
        for component_id, info in published.items():
            if component_id in referenced or component_id in seen_ids:
                continue
            info = info if isinstance(info, Mapping) else {}
            discovered.append(
                ExternalComponent(
                    id=str(component_id),
                    name=str(info.get("name", "")),
                    type=ComponentType.COMPONENT,
                    description=str(info.get("description") or ""),
                )
            )
            seen_ids.add(str(component_id))

    for component in definitions:
        if component.id in seen_ids or component.id in referenced:
            continue
        discovered.append(component)
        seen_ids.add(component.id)

    logger.info(
        "Discovered components total=%d instances=%d",
        len(discovered),
        len(instances),
    )
    return discovered


def filter_icon_components(
    components: Iterable[ExternalComponent],
) -> List[ExternalComponent]:
    """Keep components whose name or description marks them as icons."""
    selected = []
    total = 0
    for component in components:
        total += 1
        name = component.name.lower()
        description = component.description.lower()
        if (
            name.startswith(("icon-", "icon_"))
            or "icon" in name
            or "icon" in description
        ):
            selected.append(component)
    logger.info("Filtered icon components total=%d icons=%d", total, len(selected))
    return selected


def slugify_component_name(name: str, component_id: str) -> str:
    """Derive a storage-safe icon name from a Figma component name."""
    slug = _ICON_PREFIX.sub("", name or "")
    slug = _WHITESPACE.sub("-", slug.lower())
    slug = _DISALLOWED.sub("", slug)
    if not slug:
        return f"icon-{component_id[:8]}"
    return slug


def _walk(root: Mapping[str, Any]) -> Iterable[Dict[str, Any]]:
    # Explicit stack; Figma trees can be deeper than the recursion limit.
    stack: List[Mapping[str, Any]] = [root]
    while stack:
        node = stack.pop()
        yield node  # type: ignore[misc]
        children = node.get("children")
        if isinstance(children, list):
            stack.extend(
                child for child in reversed(children) if isinstance(child, Mapping)
            )
