"""Node-tree <-> XML text, on top of lxml.

A node tree is a nested dict keyed by element name (``prefix:local`` allowed):

- ``str``/number values are text-only elements, ``dict`` values are elements
  with attributes and children, ``list`` values repeat the element, ``None``
  values are skipped.
- Keys starting with ``@_`` are attributes. ``@_xmlns`` and ``@_xmlns:p``
  declare namespaces for the element and its descendants; a declaration that
  repeats an inherited binding is still written on the element.
- ``#text`` is escaped text, ``#cdata`` is text written as a CDATA section
  (split into several sections when the text contains ``]]>``).
- ``#fragment`` holds parsed markup (see ``parse_fragment``) whose content is
  appended as is.
- At the top level, ``?target`` keys are processing instructions and
  ``?xml`` is the XML declaration.
"""

import copy
import logging
from collections.abc import Mapping
from typing import Any
from uuid import uuid4
from xml.sax.saxutils import quoteattr

from lxml import etree

from atomgen.core.exceptions import FragmentParseError, XmlRenderError

logger = logging.getLogger(__name__)

ATTR_PREFIX = "@_"
TEXT_KEY = "#text"
CDATA_KEY = "#cdata"
FRAGMENT_KEY = "#fragment"
XML_NS = "http://www.w3.org/XML/1998/namespace"

_CDATA_END = "]]>"
_SPLICE_TARGET = "atomgen-splice"


# ========== Rendering ==========


class _Splices:
    """Markup lxml normalizes away, written into the serialized text instead.

    lxml drops a namespace declaration an ancestor already makes, and holds
    at most one CDATA section per text node. Such pieces leave a placeholder
    in the tree and are substituted after serialization.
    """

    def __init__(self) -> None:
        self._prefix = uuid4().hex
        self._pieces: list[tuple[str, etree._Element | str, list[str]]] = []

    def _key(self) -> str:
        return f"{self._prefix}-{len(self._pieces)}"

    def standalone(self, parent: etree._Element, element: etree._Element, prefixes: list[str]) -> None:
        """Write ``element`` where a placeholder now sits in ``parent``, declarations intact."""
        key = self._key()
        parent.append(etree.ProcessingInstruction(_SPLICE_TARGET, key))
        self._pieces.append((f"<?{_SPLICE_TARGET} {key}?>", element, prefixes))

    def split_cdata(self, element: etree._Element, payload: str) -> None:
        key = self._key()
        element.text = etree.CDATA(key)
        sections = payload.replace(_CDATA_END, "]]]]><![CDATA[>")
        self._pieces.append((f"<![CDATA[{key}]]>", f"<![CDATA[{sections}]]>", []))

    def apply(self, body: str) -> str:
        # Creation order: an outer piece brings the placeholders of inner ones
        for placeholder, piece, prefixes in self._pieces:
            if isinstance(piece, str):
                markup = piece
            else:
                etree.cleanup_namespaces(piece, keep_ns_prefixes=prefixes)
                markup = etree.tostring(piece, encoding="unicode", with_tail=False)
            body = body.replace(placeholder, markup, 1)
        return body


def render(tree: Mapping[str, Any], *, pretty_print: bool = True) -> str:
    """Serialize a node tree with exactly one root element.

    Raises:
        XmlRenderError: If the tree has no single root, uses an undeclared
            prefix, or carries text XML cannot represent.

    """
    declaration: Mapping[str, Any] | None = None
    instructions: list[tuple[str, Mapping[str, Any]]] = []
    root: etree._Element | None = None
    splices = _Splices()

    for key, node in tree.items():
        if key == "?xml":
            declaration = node
        elif key.startswith("?"):
            instructions.append((key[1:], node))
        elif node is None:
            continue
        elif root is not None or isinstance(node, list):
            msg = "A document must have exactly one root element"
            raise XmlRenderError(msg)
        else:
            root = _append(None, key, node, {"xml": XML_NS}, splices)

    if root is None:
        msg = "A document must have exactly one root element"
        raise XmlRenderError(msg)

    for target, attributes in instructions:
        root.addprevious(etree.ProcessingInstruction(target, _pseudo_attributes(attributes)))

    body = etree.tostring(root.getroottree(), encoding="unicode", pretty_print=pretty_print)
    body = splices.apply(body)
    if declaration is None:
        return body
    return f"<?xml {_pseudo_attributes(declaration)}?>\n{body}"


def _append(
    parent: etree._Element | None,
    name: str,
    node: Any,
    scope: dict[str | None, str],
    splices: _Splices,
) -> etree._Element | None:
    if node is None:
        return None
    if isinstance(node, list):
        last = None
        for item in node:
            last = _append(parent, name, item, scope, splices)
        return last

    attributes: dict[str, Any] = {}
    children: dict[str, Any] = {}
    text: str | None = None
    cdata: str | None = None
    if isinstance(node, Mapping):
        for key, value in node.items():
            if key == TEXT_KEY:
                text = _scalar(value)
            elif key == CDATA_KEY:
                cdata = _scalar(value)
            elif key.startswith(ATTR_PREFIX):
                attributes[key[len(ATTR_PREFIX) :]] = value
            else:
                children[key] = value
    else:
        text = _scalar(node)

    declared = _declarations(attributes)
    inner_scope = {**scope, **declared}
    tag = _qualify(name, inner_scope, attribute=False)
    # Declarations repeating an inherited binding are kept on the element
    redeclared = parent is not None and any(scope.get(prefix) == uri for prefix, uri in declared.items())

    try:
        if parent is None:
            element = etree.Element(tag, nsmap=declared or None)
        elif redeclared:
            element = etree.Element(tag, nsmap={p: uri for p, uri in inner_scope.items() if p != "xml"})
            splices.standalone(parent, element, [prefix for prefix in declared if prefix])
        else:
            element = etree.SubElement(parent, tag, nsmap=declared or None)

        for key, value in attributes.items():
            if key == "xmlns" or key.startswith("xmlns:") or value is None:
                continue
            element.set(_qualify(key, inner_scope, attribute=True), _scalar(value))

        if cdata is not None:
            if _CDATA_END in cdata:
                splices.split_cdata(element, cdata)
            else:
                element.text = etree.CDATA(cdata)
        elif text:
            element.text = text
    except ValueError as exc:
        msg = f"Cannot render <{name}>: {exc}"
        raise XmlRenderError(msg) from exc

    for child_name, child in children.items():
        if child_name == FRAGMENT_KEY:
            for fragment in child if isinstance(child, list) else [child]:
                _append_fragment(element, fragment)
        else:
            _append(element, child_name, child, inner_scope, splices)
    return element


def _append_fragment(element: etree._Element, fragment: etree._Element) -> None:
    """Move a copy of the fragment's content, text and tails included, into ``element``."""
    fragment = copy.deepcopy(fragment)
    if fragment.text and fragment.text.strip():
        _append_text(element, fragment.text)
    for child in list(fragment):
        # Whitespace between top-level nodes is layout, not content
        if child.tail is not None and not child.tail.strip():
            child.tail = None
        element.append(child)


def _append_text(element: etree._Element, text: str) -> None:
    if len(element):
        last = element[-1]
        last.tail = (last.tail or "") + text
    else:
        element.text = (element.text or "") + text


def _declarations(attributes: Mapping[str, Any]) -> dict[str | None, str]:
    declared: dict[str | None, str] = {}
    for key, value in attributes.items():
        if key == "xmlns":
            declared[None] = str(value)
        elif key.startswith("xmlns:"):
            declared[key[len("xmlns:") :]] = str(value)
    return declared


def _qualify(name: str, scope: Mapping[str | None, str], *, attribute: bool) -> str:
    if ":" in name:
        prefix, local = name.split(":", 1)
        uri = scope.get(prefix)
        if uri is None:
            msg = f"Undeclared namespace prefix '{prefix}' in '{name}'"
            raise XmlRenderError(msg)
        return f"{{{uri}}}{local}"
    # Unprefixed attributes are in no namespace
    if attribute:
        return name
    uri = scope.get(None)
    return f"{{{uri}}}{name}" if uri else name


def _scalar(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _pseudo_attributes(attributes: Mapping[str, Any]) -> str:
    return " ".join(
        f"{key.removeprefix(ATTR_PREFIX)}={quoteattr(_scalar(value))}"
        for key, value in attributes.items()
        if value is not None
    )


# ========== Parsing ==========


def parse_fragment(
    xml: str,
    *,
    wrapper: str = "root",
    namespaces: Mapping[str | None, str] | None = None,
) -> dict[str, Any]:
    """Parse a run of sibling nodes into a tree node that renders them verbatim.

    The markup is parsed as the content of ``<wrapper>``, which declares
    ``namespaces`` so the fragment may use prefixes bound by the caller's
    document. The result maps ``FRAGMENT_KEY`` to the parsed wrapper; merged
    into a node, the wrapper's content is appended in document order, mixed
    text included.

    Raises:
        FragmentParseError: If the fragment is not well-formed.

    """
    namespaces = dict(namespaces or {})
    declarations = "".join(
        f" xmlns={quoteattr(uri)}" if prefix is None else f" xmlns:{prefix}={quoteattr(uri)}"
        for prefix, uri in namespaces.items()
    )
    markup = f"<{wrapper}{declarations}>{xml}</{wrapper}>"

    # Entities and network access stay disabled; fragments come from callers
    parser = etree.XMLParser(resolve_entities=False, no_network=True, strip_cdata=False)
    try:
        root = etree.fromstring(markup, parser=parser)
    except etree.XMLSyntaxError as exc:
        logger.exception("Failed to parse XML fragment")
        msg = f"Invalid XML fragment: {exc}"
        raise FragmentParseError(msg) from exc
    return {FRAGMENT_KEY: root}


def merge_children(target: dict[str, Any], source: Mapping[str, Any]) -> dict[str, Any]:
    """Merge ``source`` into ``target``; repeated names become sibling lists."""
    for key, value in source.items():
        items = value if isinstance(value, list) else [value]
        for item in items:
            if key not in target or target[key] is None:
                target[key] = item
            elif isinstance(target[key], list):
                target[key].append(item)
            else:
                target[key] = [target[key], item]
    return target
