"""

IconSync Repository
Introductory remarks: This module is part of the IconSync codebase.

"""
from __future__ import annotations

from typing import Generator

import pytest

from iconsync.cache import CollectionCache
from iconsync.manager import IconSetManager
from iconsync.service import IconService
from iconsync.storage import InMemoryIconStore
from iconsync.webapp import create_app


@pytest.fixture()
def icon_service() -> IconService:
    """Service over an in-memory store with Figma left unconfigured."""
    return IconService(
        IconSetManager(InMemoryIconStore()),
        CollectionCache(),
        credentials=lambda: ("", ""),
        development=False,
    )


@pytest.fixture()
def web_app(icon_service: IconService) -> Generator:
    """Provide a configured Flask application."""
    app = create_app({"TESTING": True, "ICON_SERVICE": icon_service})
    yield app


@pytest.fixture()
def client(web_app):
    """Flask test client fixture."""
    return web_app.test_client()
