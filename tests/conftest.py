"""Shared fixtures for atomgen tests."""

from collections.abc import Callable
from typing import Any

import pytest
from faker import Faker

fake = Faker()


@pytest.fixture(autouse=True)
def _isolated_settings(monkeypatch: pytest.MonkeyPatch) -> None:
    for key in ("ATOMGEN_STRICT_URLS", "ATOMGEN_FALLBACK_IDS", "ATOMGEN_PRETTY_PRINT", "ATOMGEN_LOG_LEVEL"):
        monkeypatch.delenv(key, raising=False)


@pytest.fixture
def make_entry() -> Callable[..., dict[str, Any]]:
    """Factory for entry descriptors; keyword arguments override defaults."""
    counter = iter(range(1, 10_000))

    def _make(**overrides: Any) -> dict[str, Any]:
        number = next(counter)
        entry: dict[str, Any] = {
            "id": f"https://example.com/posts/{number}",
            "title": fake.sentence(nb_words=4),
            "updated": "2023-10-01T00:00:00Z",
        }
        entry.update(overrides)
        return entry

    return _make


@pytest.fixture
def minimal_feed() -> dict[str, Any]:
    return {
        "id": "https://example.com/",
        "title": "Test Feed",
        "updated": "2023-10-01T00:00:00Z",
        "entry": [],
    }
