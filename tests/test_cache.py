"""
IconSync Repository
Introductory remarks: This module is part of the IconSync codebase.

Unit tests for the collection cache and its HTTP validators.
"""

from __future__ import annotations

from typing import Any

import pytest

from iconsync.cache import (DEVELOPMENT_CACHE_CONTROL, CollectionCache,
                            generate_etag)
from iconsync.models import IconData, IconSet


def _icon_set(body: str = "<path/>", last_modified: int = 1_700_000_000_000) -> IconSet:
    return IconSet(
        prefix="gd",
        icons={"home": IconData(body=body, width=24, height=24)},
        last_modified=last_modified,
    )


def test_cached_collection_expires_after_ttl(clock: Any) -> None:
    cache = CollectionCache(ttl_seconds=10, clock=clock)
    cache.cache("gd", _icon_set())

    assert cache.get_cached("gd") == _icon_set()
    clock.advance(10)
    assert cache.get_cached("gd") is None
    assert cache.stats() == {"hits": 1, "misses": 1, "keys": 0}


def test_invalidate_changes_validator(clock: Any) -> None:
    """
    test_invalidate_changes_validator: Function description.
    :param clock:
    :returns:
    """

    cache = CollectionCache(clock=clock)
    cache.cache("gd", _icon_set())
    cached_etag = cache.validator("gd").etag

    cache.invalidate("gd", "home")
    empty_etag = cache.validator("gd").etag
    cache.invalidate("gd")

    assert cache.get_cached("gd") is None
    assert empty_etag != cached_etag
    assert cache.validator("gd").etag != empty_etag
    assert cache.generation("gd") == 2


def test_fill_is_skipped_after_concurrent_invalidation(clock: Any) -> None:
    cache = CollectionCache(clock=clock)
    observed = cache.generation("gd")
    cache.invalidate("gd")

    assert cache.cache("gd", _icon_set(), generation=observed) is False
    assert cache.get_cached("gd") is None
    assert cache.cache("gd", _icon_set(), generation=cache.generation("gd"))
    assert cache.get_cached("gd") == _icon_set()


def test_validator_is_deterministic_for_same_collection(clock: Any) -> None:
    cache = CollectionCache(clock=clock)
    cache.cache("gd", _icon_set())
    first = cache.validator("gd")
    clock.advance(30)

    assert cache.validator("gd") == first


def test_different_content_gets_different_etag(clock: Any) -> None:
    cache = CollectionCache(clock=clock)
    cache.cache("gd", _icon_set("<path d='a'/>"))
    first = cache.validator("gd").etag
    cache.cache("gd", _icon_set("<path d='b'/>"))

    assert cache.validator("gd").etag != first


def test_validator_headers(clock: Any) -> None:
    cache = CollectionCache(ttl_seconds=60, clock=clock)
    cache.cache("gd", _icon_set(last_modified=784111777000))

    headers = cache.validator("gd").to_headers()

    # Short TTLs still advertise at least an hour to shared caches.
    assert headers["Cache-Control"] == "public, max-age=3600, immutable"
    assert headers["Last-Modified"] == "Sun, 06 Nov 1994 08:49:37 GMT"
    assert headers["ETag"] == generate_etag(_icon_set(last_modified=784111777000).to_dict())
    assert headers["ETag"].startswith('"') and headers["ETag"].endswith('"')


def test_development_validator_disables_caching(clock: Any) -> None:
    cache = CollectionCache(ttl_seconds=86400, clock=clock)

    validator = cache.validator("gd", development=True)

    assert validator.cache_control == DEVELOPMENT_CACHE_CONTROL


def test_long_ttl_is_used_as_max_age(clock: Any) -> None:
    cache = CollectionCache(ttl_seconds=86400, clock=clock)

    assert "max-age=86400" in cache.validator("gd").cache_control


def test_clear_drops_everything_and_bumps_generations(clock: Any) -> None:
    cache = CollectionCache(clock=clock)
    cache.cache("gd", _icon_set())
    cache.invalidate("other")

    cache.clear()

    assert cache.get_cached("gd") is None
    assert cache.generation("other") == 2


def test_generate_etag_ignores_key_order() -> None:
    assert generate_etag({"a": 1, "b": [1, 2]}) == generate_etag({"b": [1, 2], "a": 1})


def test_rejects_non_positive_ttl() -> None:
    with pytest.raises(ValueError):
        CollectionCache(ttl_seconds=0)
