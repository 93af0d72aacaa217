"""Feed descriptor validation.

Turns a caller-supplied mapping into an ``AtomFeed``, or raises a single
``AtomValidationError`` listing every problem found.
"""

import logging
from collections.abc import Mapping
from typing import Any

from pydantic import ValidationError

from atomgen.core.config import AtomSettings
from atomgen.core.exceptions import AtomValidationError, FieldIssue
from atomgen.core.ids import IdGenerator, RandomIdGenerator, resolve_fallback_id
from atomgen.core.types import AtomFeed, Entry

logger = logging.getLogger(__name__)


def validate_feed(
    candidate: Mapping[str, Any],
    *,
    settings: AtomSettings | None = None,
    id_generator: IdGenerator | None = None,
) -> AtomFeed:
    """Validate a feed descriptor against the Atom data model.

    Args:
        candidate: Feed descriptor as a mapping. It is not modified.
        settings: Validation settings (strict URLs, fallback ids).
        id_generator: Source of fallback entry ids, used only when
            ``settings.fallback_ids`` is enabled.

    Returns:
        The normalized feed.

    Raises:
        AtomValidationError: With one issue per failing field.

    """
    settings = settings or AtomSettings()
    if not isinstance(candidate, Mapping):
        raise AtomValidationError([FieldIssue("", "Feed options must be a mapping")])

    data = dict(candidate)
    if settings.fallback_ids:
        data = _fill_missing_entry_ids(data, id_generator or RandomIdGenerator())

    try:
        return AtomFeed.model_validate(data, context=_context(settings))
    except ValidationError as exc:
        raise AtomValidationError(issues_from_pydantic(exc)) from exc


def validate_entry(
    candidate: Mapping[str, Any],
    *,
    settings: AtomSettings | None = None,
) -> Entry:
    """Validate a single entry; paths in errors are relative to the entry."""
    settings = settings or AtomSettings()
    try:
        return Entry.model_validate(dict(candidate), context=_context(settings))
    except ValidationError as exc:
        raise AtomValidationError(issues_from_pydantic(exc)) from exc


def issues_from_pydantic(exc: ValidationError) -> list[FieldIssue]:
    """Flatten pydantic errors into dotted-path issues, keeping their order."""
    return [
        FieldIssue(path=".".join(str(part) for part in error["loc"]), message=error["msg"])
        for error in exc.errors(include_url=False)
    ]


def _context(settings: AtomSettings) -> dict[str, Any]:
    return {"strict_urls": settings.strict_urls}


def _fill_missing_entry_ids(data: dict[str, Any], generator: IdGenerator) -> dict[str, Any]:
    entries = data.get("entry")
    if not isinstance(entries, list):
        return data

    feed_id = str(data.get("id") or "")
    filled = []
    for index, entry in enumerate(entries):
        if isinstance(entry, Mapping) and not entry.get("id"):
            entry = dict(entry)
            entry["id"] = resolve_fallback_id(entry, feed_id, generator)
            logger.warning("Entry %d has no id, using fallback %s", index, entry["id"])
        filled.append(entry)
    return {**data, "entry": filled}
