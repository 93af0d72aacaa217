"""Assertion helpers for rendered Atom documents."""

from lxml import etree

ATOM_NS = "http://www.w3.org/2005/Atom"
MEDIA_NS = "http://search.yahoo.com/mrss/"
NS = {"atom": ATOM_NS, "media": MEDIA_NS}


def parse_xml(xml: str) -> etree._Element:
    """Parse a rendered document (lxml needs bytes when a declaration is present)."""
    return etree.fromstring(xml.encode("utf-8"))


def feed_start_tag(xml: str) -> str:
    start = xml.index("<feed")
    return xml[start : xml.index(">", start) + 1]


def entry_updates(root: etree._Element) -> list[str]:
    return [entry.findtext("atom:updated", namespaces=NS) for entry in root.findall("atom:entry", NS)]
