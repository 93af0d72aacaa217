"""Fallback identifiers for entries that arrive without one.

The default generator draws from the process-wide random source, so ids it
produces are intentionally non-reproducible between runs. Pass a
``SequentialIdGenerator`` where stable output matters.
"""

import itertools
import uuid
from typing import Protocol, runtime_checkable


@runtime_checkable
class IdGenerator(Protocol):
    """Produces an entry id scoped under a feed id."""

    def __call__(self, feed_id: str) -> str: ...


class RandomIdGenerator:
    """Feed id plus a random hex suffix."""

    def __init__(self, suffix_length: int = 12) -> None:
        self.suffix_length = suffix_length

    def __call__(self, feed_id: str) -> str:
        return f"{feed_id}#{uuid.uuid4().hex[: self.suffix_length]}"


class SequentialIdGenerator:
    """Deterministic generator: feed id plus a running counter."""

    def __init__(self, start: int = 1) -> None:
        self._counter = itertools.count(start)

    def __call__(self, feed_id: str) -> str:
        return f"{feed_id}#{next(self._counter)}"


def resolve_fallback_id(entry: dict, feed_id: str, generator: IdGenerator) -> str:
    """Pick an id for an entry without one.

    Prefers the href of a ``rel="alternate"`` link, then the first link with
    an href, then a generated id.
    """
    links = [link for link in entry.get("link") or [] if isinstance(link, dict) and link.get("href")]
    for link in links:
        if link.get("rel", "alternate") == "alternate":
            return str(link["href"])
    if links:
        return str(links[0]["href"])
    return generator(feed_id)
