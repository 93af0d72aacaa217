"""Public entry points: descriptor in, Atom document out."""

from collections.abc import Mapping
from typing import Any

import httpx

from atomgen.core.atom import render_atom_feed
from atomgen.core.config import AtomSettings
from atomgen.core.ids import IdGenerator
from atomgen.core.validation import validate_feed

ATOM_CONTENT_TYPE = "application/xml"


def get_atom_string(
    options: Mapping[str, Any],
    *,
    settings: AtomSettings | None = None,
    id_generator: IdGenerator | None = None,
) -> str:
    """Validate a feed descriptor and render it as Atom XML.

    Raises:
        AtomValidationError: If the descriptor is invalid.
        FragmentParseError: If a ``customData`` fragment is malformed.

    """
    settings = settings or AtomSettings()
    feed = validate_feed(options, settings=settings, id_generator=id_generator)
    return render_atom_feed(feed, settings=settings)


def get_atom_response(
    options: Mapping[str, Any],
    *,
    settings: AtomSettings | None = None,
    id_generator: IdGenerator | None = None,
) -> httpx.Response:
    """Render the feed and wrap it in a 200 response with an XML content type."""
    body = get_atom_string(options, settings=settings, id_generator=id_generator)
    return httpx.Response(200, headers={"Content-Type": ATOM_CONTENT_TYPE}, text=body)
