"""SVG canonicalization."""

from .svg_parser import SVGMetadata, SVGParser

__all__ = ["SVGMetadata", "SVGParser"]
