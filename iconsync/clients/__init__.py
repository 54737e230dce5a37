"""Outbound API clients."""

from .base_client import BaseClient
from .figma_client import FigmaClient

__all__ = ["BaseClient", "FigmaClient"]
