"""
IconSync Repository
Introductory remarks: This module is part of the IconSync codebase.

Canonicalize raw SVG markup into Iconify ``IconData``.

Parsing runs in three stages:
  (1) Validate: cheap structural checks on the raw text
  (2) Optimize: strip editor noise and normalize colors to ``currentColor``
  (3) Extract: read dimensions from the root tag and cut out the inner body

Optimization is best-effort. When it fails the validated input is used as-is
so a valid upload is never rejected because of an optimizer limitation.
"""

from __future__ import annotations

import logging
import re
import xml.etree.ElementTree as ET
from dataclasses import dataclass
from typing import Optional

from iconsync.errors import SVGParseError
from iconsync.models import IconData

SVG_NAMESPACE = "http://www.w3.org/2000/svg"
XLINK_NAMESPACE = "http://www.w3.org/1999/xlink"

ET.register_namespace("", SVG_NAMESPACE)
ET.register_namespace("xlink", XLINK_NAMESPACE)

SHAPE_TAGS = ("path", "circle", "rect", "ellipse", "polygon", "polyline", "line")
_DROPPED_TAGS = {"metadata", "title", "desc"}
_KEPT_NAMESPACES = {SVG_NAMESPACE, XLINK_NAMESPACE}

_OPEN_SVG_TAG = re.compile(r"<svg[\s>]")
_CLOSE_SVG_TAG = re.compile(r"</svg>")
_ROOT_TAG = re.compile(r"<svg(?:\s[^>]*)?>", re.DOTALL)
_SHAPE_TAG = re.compile(
    r"<(" + "|".join(SHAPE_TAGS) + r")(\s[^>]*?)?(/?)>",
    re.IGNORECASE | re.DOTALL,
)
_HAS_FILL = re.compile(r"(?<![\w:-])fill\s*=", re.IGNORECASE)
_HAS_STROKE = re.compile(r"stroke", re.IGNORECASE)
_RENDERABLE = re.compile(r"<(?:" + "|".join(SHAPE_TAGS) + r")[\s/>]")
_PAINT_ATTRIBUTE = re.compile(
    r"(?<![\w:-])(stroke|fill)=([\"'])(?!none\2|currentColor\2|url\()[^\"']*\2",
    re.IGNORECASE,
)
_NON_NUMERIC = re.compile(r"[^0-9.]")


@dataclass(frozen=True)
class SVGMetadata:
    """Attributes read from the root ``<svg>`` tag."""

    has_valid_path: bool
    view_box: Optional[str] = None
    width: Optional[str] = None
    height: Optional[str] = None


class SVGParser:
    """Turn raw SVG text into a canonical :class:`IconData`."""

    def __init__(self, *, logger: Optional[logging.Logger] = None) -> None:
        self._logger = logger or logging.getLogger(self.__class__.__name__)

    def parse_svg(self, raw: str) -> IconData:
        """Validate, optimize and extract ``raw``.

        Raises :class:`SVGParseError` when the input is not an SVG document
        or holds no renderable primitive. Nothing here touches storage.
        """
        if not self.validate_svg(raw):
            error = SVGParseError(
                "Invalid SVG format",
                details={"reason": "SVG validation failed"},
            )
            self._logger.error("SVG parsing failed code=%s", error.code)
            raise error

        try:
            optimized = self.optimize_svg(raw)
            metadata = self.extract_metadata(optimized)
            if not metadata.has_valid_path:
                raise SVGParseError(
                    "SVG does not contain valid path data",
                    code="NO_RENDERABLE_CONTENT",
                    details={
                        "reason": "No valid SVG elements "
                        "(path, circle, rect, etc.) found"
                    },
                )
            width, height, left, top = _resolve_dimensions(metadata)
            body = _extract_body(optimized)
        except SVGParseError as exc:
            self._logger.error(
                "SVG parsing failed code=%s message=%s", exc.code, exc
            )
            raise
        except Exception as exc:  # noqa: BLE001
            self._logger.error("SVG parsing failed: %s", exc)
            raise SVGParseError(
                f"Failed to parse SVG: {exc}",
                details={"originalError": str(exc)},
            ) from exc

        icon = IconData(
            body=body, width=width, height=height, left=left, top=top
        )
        self._logger.debug(
            "SVG parsed width=%s height=%s body_length=%d",
            icon.width,
            icon.height,
            len(body),
        )
        return icon

    def validate_svg(self, raw: object) -> bool:
        """Return True when ``raw`` looks like a single balanced SVG document."""
        if not isinstance(raw, str):
            return False
        trimmed = raw.strip()
        if not trimmed or not trimmed.startswith("<"):
            return False
        if "<svg" not in trimmed:
            return False
        opening = len(_OPEN_SVG_TAG.findall(trimmed))
        closing = len(_CLOSE_SVG_TAG.findall(trimmed))
        return opening > 0 and opening == closing

    def optimize_svg(self, raw: str) -> str:
        """Return a cleaned copy of ``raw`` or ``raw`` itself on failure."""
        try:
            if "stroke=" in raw:
                self._logger.debug(
                    "Skipping structural optimization for stroke-based icon"
                )
                return _normalize_colors(_backfill_fill_none(raw))
            return _normalize_colors(_optimize_structure(raw))
        except Exception as exc:  # noqa: BLE001
            self._logger.warning(
                "SVG optimization failed, using original: %s", exc
            )
            return raw

    def extract_metadata(self, svg: str) -> SVGMetadata:
        match = _ROOT_TAG.search(svg)
        root_tag = match.group(0) if match else ""
        return SVGMetadata(
            has_valid_path=bool(_RENDERABLE.search(svg)),
            view_box=_attribute(root_tag, "viewBox"),
            width=_attribute(root_tag, "width"),
            height=_attribute(root_tag, "height"),
        )


def _attribute(tag: str, name: str) -> Optional[str]:
    pattern = re.compile(
        r"(?<![\w:-])" + re.escape(name) + r"\s*=\s*([\"'])(.*?)\1",
        re.DOTALL,
    )
    match = pattern.search(tag)
    if match is None:
        return None
    return match.group(2)


def _resolve_dimensions(
    metadata: SVGMetadata,
) -> tuple[Optional[float], Optional[float], Optional[float], Optional[float]]:
    width: Optional[float] = None
    height: Optional[float] = None
    left: Optional[float] = None
    top: Optional[float] = None

    if metadata.view_box:
        parts = [part for part in re.split(r"[\s,]+", metadata.view_box) if part]
        if len(parts) == 4:
            numbers = [_to_float(part) for part in parts]
            if numbers[0]:
                left = numbers[0]
            if numbers[1]:
                top = numbers[1]
            width = numbers[2]
            height = numbers[3]

    if not width and metadata.width:
        width = _to_float(_NON_NUMERIC.sub("", metadata.width))
    if not height and metadata.height:
        height = _to_float(_NON_NUMERIC.sub("", metadata.height))

    return (width or None, height or None, left, top)


def _to_float(raw: str) -> Optional[float]:
    try:
        return float(raw)
    except ValueError:
        return None


def _extract_body(svg: str) -> str:
    open_match = _ROOT_TAG.search(svg)
    close_start = svg.rfind("</svg>")
    if open_match is None or close_start == -1:
        raise ValueError("Could not find SVG tags")
    return svg[open_match.end():close_start].strip()


def _backfill_fill_none(svg: str) -> str:
    def _fix(match: re.Match[str]) -> str:
        tag, attrs, slash = match.group(1), match.group(2) or "", match.group(3)
        if not _HAS_STROKE.search(attrs) or _HAS_FILL.search(attrs):
            return match.group(0)
        return f'<{tag} fill="none"{attrs}{slash}>'

    return _SHAPE_TAG.sub(_fix, svg)


def _normalize_colors(svg: str) -> str:
    return _PAINT_ATTRIBUTE.sub(
        lambda match: f"{match.group(1)}={match.group(2)}currentColor"
        f"{match.group(2)}",
        svg,
    )


def _optimize_structure(svg: str) -> str:
    root = ET.fromstring(svg.strip())
    if _local_name(root.tag) != "svg":
        raise ValueError(f"Unexpected root element {root.tag!r}")
    _clean_element(root)
    return ET.tostring(root, encoding="unicode")


def _clean_element(element: ET.Element) -> None:
    for name in list(element.attrib):
        namespace = _namespace(name)
        if namespace and namespace not in _KEPT_NAMESPACES:
            del element.attrib[name]

    for child in list(element):
        if not isinstance(child.tag, str):
            element.remove(child)
            continue
        namespace = _namespace(child.tag)
        if (namespace and namespace not in _KEPT_NAMESPACES) or (
            _local_name(child.tag) in _DROPPED_TAGS
        ):
            element.remove(child)
            continue
        _clean_element(child)

    if element.text is not None and not element.text.strip():
        element.text = None
    if element.tail is not None and not element.tail.strip():
        element.tail = None


def _namespace(tag: str) -> Optional[str]:
    if tag.startswith("{"):
        return tag[1:].split("}", 1)[0]
    return None


def _local_name(tag: str) -> str:
    if tag.startswith("{"):
        return tag.split("}", 1)[1]
    return tag
