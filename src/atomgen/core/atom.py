"""Atom feed assembly.

Builds the node tree for a validated ``AtomFeed`` and hands it to the XML
renderer. Assembly does not fail for validated input; the only error that can
surface here is a malformed ``customData`` fragment.
"""

import logging
from typing import Any

from atomgen import __version__
from atomgen.core.config import AtomSettings
from atomgen.core.types import (
    ATOM_NS,
    MEDIA_NS,
    AtomFeed,
    Entry,
    FeedMetadata,
    Generator,
    MediaThumbnail,
    Person,
    TextConstruct,
    XmlFragment,
)
from atomgen.core.xmltree import ATTR_PREFIX, CDATA_KEY, TEXT_KEY, merge_children, parse_fragment, render

logger = logging.getLogger(__name__)

GENERATOR_NAME = "atomgen"
GENERATOR_URI = "https://pypi.org/project/atomgen/"

DEFAULT_GENERATOR = Generator(value=GENERATOR_NAME, uri=GENERATOR_URI, version=__version__)


def render_atom_feed(feed: AtomFeed, *, settings: AtomSettings | None = None) -> str:
    """Render a validated feed as an Atom 1.0 document."""
    settings = settings or AtomSettings()
    xml = render(build_feed_tree(feed), pretty_print=settings.pretty_print)
    logger.debug("Rendered Atom feed %s with %d entries", feed.id, len(feed.entry))
    return xml


def build_feed_tree(feed: AtomFeed) -> dict[str, Any]:
    """Build the complete document tree: prolog, feed metadata, then entries."""
    document: dict[str, Any] = {"?xml": {"@_version": "1.0", "@_encoding": "UTF-8"}}
    if isinstance(feed.stylesheet, str):
        stylesheet = {"@_href": feed.stylesheet}
        if feed.stylesheet.lower().endswith(".xsl"):
            stylesheet["@_type"] = "text/xsl"
        document["?xml-stylesheet"] = stylesheet

    node: dict[str, Any] = {"@_xmlns": ATOM_NS}
    if feed.lang:
        node["@_xml:lang"] = feed.lang
    for prefix, uri in (feed.xmlns or {}).items():
        node[f"@_xmlns:{prefix}"] = uri

    entries = sorted(feed.entry, key=lambda entry: entry.updated_at, reverse=True)
    if any(entry.thumbnail for entry in entries) and "media" not in (feed.xmlns or {}):
        node["@_xmlns:media"] = MEDIA_NS

    namespaces: dict[str | None, str] = {None: ATOM_NS, **(feed.xmlns or {})}
    if "@_xmlns:media" in node:
        namespaces["media"] = MEDIA_NS

    _add_metadata(node, feed, default_generator=DEFAULT_GENERATOR)
    _merge_fragment(node, feed.custom_data, "feed", namespaces)

    if entries:
        merge_children(node, {"entry": [_entry_node(entry, namespaces) for entry in entries]})

    document["feed"] = node
    return document


def _add_metadata(
    node: dict[str, Any],
    meta: FeedMetadata,
    *,
    default_generator: Generator | None = None,
) -> None:
    node["id"] = meta.id
    node["title"] = _text_node(meta.title)
    node["updated"] = meta.updated
    if meta.subtitle:
        node["subtitle"] = _text_node(meta.subtitle)
    if meta.rights:
        node["rights"] = _text_node(meta.rights)
    if meta.icon:
        node["icon"] = meta.icon
    if meta.logo:
        node["logo"] = meta.logo

    generator = meta.generator or default_generator
    if generator:
        node["generator"] = _generator_node(generator)

    if meta.author:
        node["author"] = [_person_node(person) for person in meta.author]
    if meta.link:
        node["link"] = [_attribute_node(link.attributes()) for link in meta.link]
    if meta.category:
        node["category"] = [_attribute_node(category.attributes()) for category in meta.category]
    if meta.contributor:
        node["contributor"] = [_person_node(person) for person in meta.contributor]


def _entry_node(entry: Entry, namespaces: dict[str | None, str]) -> dict[str, Any]:
    node: dict[str, Any] = {
        "id": entry.id,
        "title": _text_node(entry.title),
        "updated": entry.updated,
    }
    if entry.author:
        node["author"] = [_person_node(person) for person in entry.author]
    if entry.link:
        node["link"] = [_attribute_node(link.attributes()) for link in entry.link]
    if entry.category:
        node["category"] = [_attribute_node(category.attributes()) for category in entry.category]
    if entry.contributor:
        node["contributor"] = [_person_node(person) for person in entry.contributor]
    if entry.published:
        node["published"] = entry.published
    if entry.rights:
        node["rights"] = _text_node(entry.rights)
    if entry.source:
        source: dict[str, Any] = {}
        _add_metadata(source, entry.source)
        node["source"] = source
    if entry.summary:
        node["summary"] = _text_node(entry.summary, verbatim=entry.summary.is_verbatim)
    if entry.content:
        node["content"] = _text_node(
            entry.content,
            verbatim=entry.content.is_verbatim,
            extra={"xml:base": entry.id},
        )

    _merge_fragment(node, entry.custom_data, "entry", namespaces)

    if entry.thumbnail:
        merge_children(node, _media_nodes(entry.thumbnail))
    return node


def _text_node(
    text: TextConstruct,
    *,
    verbatim: bool = False,
    extra: dict[str, str] | None = None,
) -> Any:
    attributes = {**text.attributes(), **(extra or {})}
    if not attributes and not verbatim:
        return text.value

    node = _attribute_node(attributes)
    if text.value:
        node[CDATA_KEY if verbatim else TEXT_KEY] = text.value
    return node


def _attribute_node(attributes: dict[str, Any]) -> dict[str, Any]:
    return {f"{ATTR_PREFIX}{key}": value for key, value in attributes.items() if value is not None}


def _person_node(person: Person) -> dict[str, Any]:
    return {key: value for key, value in person.model_dump().items() if value is not None}


def _generator_node(generator: Generator) -> dict[str, Any]:
    node = _attribute_node({"uri": generator.uri, "version": generator.version})
    node[TEXT_KEY] = generator.value
    return node


def _media_nodes(thumbnail: MediaThumbnail) -> dict[str, Any]:
    """MRSS thumbnail and content elements, each declaring the media prefix itself."""
    return {
        "media:thumbnail": _attribute_node(
            {
                "xmlns:media": MEDIA_NS,
                "url": thumbnail.url,
                "width": thumbnail.width,
                "height": thumbnail.height,
                "time": thumbnail.time,
            }
        ),
        "media:content": _attribute_node(
            {
                "xmlns:media": MEDIA_NS,
                "medium": thumbnail.medium or "image",
                "url": thumbnail.url,
                "width": thumbnail.width,
                "height": thumbnail.height,
            }
        ),
    }


def _merge_fragment(
    node: dict[str, Any],
    fragment: XmlFragment | None,
    wrapper: str,
    namespaces: dict[str | None, str],
) -> None:
    if not fragment:
        return
    merge_children(node, parse_fragment(fragment.markup, wrapper=wrapper, namespaces=namespaces))
