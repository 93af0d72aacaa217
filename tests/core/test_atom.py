"""Tests for Atom document assembly."""

import pytest
from lxml import etree

import atomgen
from atomgen.core.atom import DEFAULT_GENERATOR, build_feed_tree, render_atom_feed
from atomgen.core.config import AtomSettings
from atomgen.core.exceptions import FragmentParseError
from atomgen.core.validation import validate_feed
from tests.helpers import ATOM_NS, MEDIA_NS, NS, entry_updates, feed_start_tag, parse_xml

DC_NS = "http://purl.org/dc/elements/1.1/"
XML_NS = "http://www.w3.org/XML/1998/namespace"


def _render(options, **settings):
    feed = validate_feed(options, settings=AtomSettings(**settings))
    return render_atom_feed(feed, settings=AtomSettings(**settings))


def test_prolog_and_root(minimal_feed):
    xml = _render(minimal_feed)

    assert xml.startswith('<?xml version="1.0" encoding="UTF-8"?>')
    assert feed_start_tag(xml) == f'<feed xmlns="{ATOM_NS}">'
    root = parse_xml(xml)
    assert root.findtext("atom:id", namespaces=NS) == "https://example.com/"
    assert root.findtext("atom:title", namespaces=NS) == "Test Feed"
    assert root.findtext("atom:updated", namespaces=NS) == "2023-10-01T00:00:00Z"
    assert root.findall("atom:entry", NS) == []


def test_entries_are_sorted_newest_first(minimal_feed, make_entry):
    minimal_feed["entry"] = [
        make_entry(updated="2023-10-01T00:00:00Z"),
        make_entry(updated="2023-10-02T00:00:00Z"),
        make_entry(updated="2024-10-03T00:00:00Z"),
    ]

    root = parse_xml(_render(minimal_feed))

    assert entry_updates(root) == [
        "2024-10-03T00:00:00Z",
        "2023-10-02T00:00:00Z",
        "2023-10-01T00:00:00Z",
    ]


def test_sorting_compares_instants_not_strings(minimal_feed, make_entry):
    minimal_feed["entry"] = [
        make_entry(updated="2024-01-01T10:00:00+02:00"),
        make_entry(updated="2024-01-01T09:00:00Z"),
    ]

    root = parse_xml(_render(minimal_feed))

    assert entry_updates(root) == ["2024-01-01T09:00:00Z", "2024-01-01T10:00:00+02:00"]


def test_equal_timestamps_keep_input_order(minimal_feed, make_entry):
    minimal_feed["entry"] = [make_entry(id=f"urn:entry:{n}") for n in range(5)]

    root = parse_xml(_render(minimal_feed))

    ids = [entry.findtext("atom:id", namespaces=NS) for entry in root.findall("atom:entry", NS)]
    assert ids == [f"urn:entry:{n}" for n in range(5)]


def test_string_and_record_titles_render_identically(minimal_feed):
    plain = _render(minimal_feed)
    record = _render({**minimal_feed, "title": {"value": "Test Feed"}})

    assert plain == record
    assert "<title>Test Feed</title>" in plain


def test_text_construct_type_becomes_attribute(minimal_feed):
    minimal_feed["subtitle"] = {"value": "<em>news</em>", "type": "html"}
    minimal_feed["rights"] = "© 2024 Example"

    root = parse_xml(_render(minimal_feed))

    subtitle = root.find("atom:subtitle", NS)
    assert subtitle.get("type") == "html"
    assert subtitle.text == "<em>news</em>"
    assert root.findtext("atom:rights", namespaces=NS) == "© 2024 Example"


@pytest.mark.parametrize("content_type", ["html", "xml", "application/xhtml+xml"])
def test_markup_summary_and_content_are_embedded_verbatim(minimal_feed, make_entry, content_type):
    minimal_feed["entry"] = [
        make_entry(
            summary={"value": "<p>Fish & chips</p>", "type": content_type},
            content={"value": "<p>Salt & vinegar</p>", "type": content_type},
        )
    ]

    xml = _render(minimal_feed)

    assert "<![CDATA[<p>Fish & chips</p>]]>" in xml
    assert "<![CDATA[<p>Salt & vinegar</p>]]>" in xml


@pytest.mark.parametrize("summary", ["<p>Fish & chips</p>", {"value": "<p>Fish & chips</p>", "type": "text"}])
def test_plain_summary_is_escaped(minimal_feed, make_entry, summary):
    minimal_feed["entry"] = [make_entry(summary=summary)]

    xml = _render(minimal_feed)

    assert "CDATA" not in xml
    assert "&lt;p&gt;Fish &amp; chips&lt;/p&gt;" in xml


def test_content_carries_entry_id_as_base(minimal_feed, make_entry):
    minimal_feed["entry"] = [
        make_entry(id="https://example.com/posts/1", content="Body", summary="Short"),
    ]

    entry = parse_xml(_render(minimal_feed)).find("atom:entry", NS)

    content = entry.find("atom:content", NS)
    assert content.get("{http://www.w3.org/XML/1998/namespace}base") == "https://example.com/posts/1"
    assert content.text == "Body"
    assert dict(entry.find("atom:summary", NS).attrib) == {}


def test_out_of_line_content_is_empty_element(minimal_feed, make_entry):
    minimal_feed["entry"] = [make_entry(content={"src": "https://example.com/a.mp4", "type": "video/mp4"})]

    content = parse_xml(_render(minimal_feed)).find("atom:entry/atom:content", NS)

    assert content.get("src") == "https://example.com/a.mp4"
    assert content.get("type") == "video/mp4"
    assert content.text is None


def test_default_generator_is_used_when_missing(minimal_feed):
    generator = parse_xml(_render(minimal_feed)).find("atom:generator", NS)

    assert generator.text == DEFAULT_GENERATOR.value == "atomgen"
    assert generator.get("uri") == DEFAULT_GENERATOR.uri
    assert generator.get("version") == atomgen.__version__


def test_supplied_generator_replaces_default(minimal_feed):
    minimal_feed["generator"] = {"value": "Hugo"}

    generator = parse_xml(_render(minimal_feed)).find("atom:generator", NS)

    assert generator.text == "Hugo"
    assert dict(generator.attrib) == {}


def test_people_links_and_categories(minimal_feed, make_entry):
    minimal_feed["author"] = [
        {"name": "Alice", "email": "alice@example.com"},
        {"name": "Bob", "uri": "https://bob.example.com/"},
    ]
    minimal_feed["link"] = [{"href": "https://example.com/feed.xml", "rel": "self", "type": "application/atom+xml"}]
    minimal_feed["category"] = [{"term": "tech", "scheme": "https://example.com/tags", "label": "Tech"}]
    minimal_feed["entry"] = [make_entry(contributor=[{"name": "Carol"}], published="2023-09-30T12:00:00Z")]

    root = parse_xml(_render(minimal_feed))

    assert [a.findtext("atom:name", namespaces=NS) for a in root.findall("atom:author", NS)] == ["Alice", "Bob"]
    assert root.find("atom:author", NS).findtext("atom:email", namespaces=NS) == "alice@example.com"
    link = root.find("atom:link", NS)
    assert dict(link.attrib) == {
        "href": "https://example.com/feed.xml",
        "rel": "self",
        "type": "application/atom+xml",
    }
    assert link.text is None
    assert dict(root.find("atom:category", NS).attrib) == {
        "term": "tech",
        "scheme": "https://example.com/tags",
        "label": "Tech",
    }
    entry = root.find("atom:entry", NS)
    assert entry.findtext("atom:contributor/atom:name", namespaces=NS) == "Carol"
    assert entry.findtext("atom:published", namespaces=NS) == "2023-09-30T12:00:00Z"


def test_metadata_order(minimal_feed):
    minimal_feed.update(
        subtitle="Sub",
        rights="Rights",
        icon="https://example.com/icon.png",
        logo="https://example.com/logo.png",
        author=[{"name": "Alice"}],
        link=[{"href": "https://example.com/"}],
        category=[{"term": "t"}],
        contributor=[{"name": "Bob"}],
    )

    root = parse_xml(_render(minimal_feed))

    tags = [child.tag.removeprefix(f"{{{ATOM_NS}}}") for child in root]
    assert tags == [
        "id",
        "title",
        "updated",
        "subtitle",
        "rights",
        "icon",
        "logo",
        "generator",
        "author",
        "link",
        "category",
        "contributor",
    ]


def test_empty_optional_fields_are_omitted(minimal_feed, make_entry):
    minimal_feed.update(icon="", logo=None, author=[], subtitle={"value": ""}, rights="")
    minimal_feed["entry"] = [make_entry(summary="", content={"value": "", "type": "html"}, rights={"value": ""})]

    xml = _render(minimal_feed)

    for tag in ("icon", "logo", "author", "subtitle", "rights", "summary", "content", "published"):
        assert f"<{tag}" not in xml


def test_source_renders_as_nested_metadata(minimal_feed, make_entry):
    minimal_feed["entry"] = [
        make_entry(
            source={
                "id": "https://other.example.com/",
                "title": {"value": "Other", "type": "text"},
                "updated": "2023-09-01T00:00:00Z",
                "link": [{"href": "https://other.example.com/feed", "rel": "self"}],
            }
        )
    ]

    source = parse_xml(_render(minimal_feed)).find("atom:entry/atom:source", NS)

    assert source.findtext("atom:id", namespaces=NS) == "https://other.example.com/"
    assert source.find("atom:title", NS).get("type") == "text"
    assert source.find("atom:link", NS).get("rel") == "self"
    assert source.find("atom:generator", NS) is None


def test_stylesheet_instruction(minimal_feed):
    xsl = _render({**minimal_feed, "stylesheet": "/feed.XSL"})
    css = _render({**minimal_feed, "stylesheet": "/feed.css"})
    flag = _render({**minimal_feed, "stylesheet": True})

    assert '<?xml-stylesheet href="/feed.XSL" type="text/xsl"?>' in xsl
    assert '<?xml-stylesheet href="/feed.css"?>' in css
    assert "xml-stylesheet" not in flag


def test_lang_and_extra_namespaces(minimal_feed):
    minimal_feed["lang"] = "pt-BR"
    minimal_feed["xmlns"] = {"dc": DC_NS, "georss": "http://www.georss.org/georss"}

    xml = _render(minimal_feed)
    root = parse_xml(xml)

    assert root.get("{http://www.w3.org/XML/1998/namespace}lang") == "pt-BR"
    assert root.nsmap == {None: ATOM_NS, "dc": DC_NS, "georss": "http://www.georss.org/georss"}
    start = feed_start_tag(xml)
    assert start.index("xmlns:dc") < start.index("xmlns:georss")


def test_thumbnail_adds_media_elements(minimal_feed, make_entry):
    minimal_feed["entry"] = [
        make_entry(thumbnail={"url": "https://example.com/t.jpg", "width": 320, "height": 180, "time": "00:00:05"}),
        make_entry(updated="2022-01-01T00:00:00Z"),
    ]

    xml = _render(minimal_feed)
    root = parse_xml(xml)

    assert root.nsmap["media"] == MEDIA_NS
    entry = root.find("atom:entry", NS)
    thumbnail = entry.find("media:thumbnail", NS)
    content = entry.find("media:content", NS)
    assert dict(thumbnail.attrib) == {
        "url": "https://example.com/t.jpg",
        "width": "320",
        "height": "180",
        "time": "00:00:05",
    }
    assert dict(content.attrib) == {
        "medium": "image",
        "url": "https://example.com/t.jpg",
        "width": "320",
        "height": "180",
    }
    assert root.findall("atom:entry", NS)[1].find("media:thumbnail", NS) is None


def test_media_elements_declare_the_namespace_locally(minimal_feed, make_entry):
    minimal_feed["entry"] = [make_entry(thumbnail={"url": "https://example.com/t.jpg"})]

    xml = _render(minimal_feed)

    assert xml.count(f'xmlns:media="{MEDIA_NS}"') == 3
    assert f'<media:thumbnail xmlns:media="{MEDIA_NS}" url="https://example.com/t.jpg"/>' in xml
    assert f'<media:content xmlns:media="{MEDIA_NS}" medium="image" url="https://example.com/t.jpg"/>' in xml


def test_media_prefix_from_xmlns_is_not_repeated_on_feed(minimal_feed, make_entry):
    minimal_feed["xmlns"] = {"media": MEDIA_NS}
    minimal_feed["entry"] = [make_entry(thumbnail={"url": "https://example.com/t.jpg", "medium": "video"})]

    xml = _render(minimal_feed)

    assert feed_start_tag(xml).count("xmlns:media=") == 1
    content = parse_xml(xml).find("atom:entry/media:content", NS)
    assert content.get("medium") == "video"


def test_feed_without_thumbnails_has_no_media_namespace(minimal_feed, make_entry):
    minimal_feed["entry"] = [make_entry()]

    assert "xmlns:media" not in _render(minimal_feed)


def test_feed_custom_data_is_merged(minimal_feed):
    minimal_feed["xmlns"] = {"dc": DC_NS}
    minimal_feed["link"] = [{"href": "https://example.com/"}]
    minimal_feed["customData"] = '<dc:publisher>Example Inc.</dc:publisher><link href="https://example.com/hub" rel="hub"/>'

    root = parse_xml(_render(minimal_feed))

    assert root.findtext(f"{{{DC_NS}}}publisher") == "Example Inc."
    assert [link.get("href") for link in root.findall("atom:link", NS)] == [
        "https://example.com/",
        "https://example.com/hub",
    ]


def test_custom_data_keeps_order_and_mixed_text(minimal_feed, make_entry):
    minimal_feed["entry"] = [make_entry(customData="<note>Hello <b>world</b>!</note><a>1</a><b2/><a>2</a>")]

    xml = _render(minimal_feed)

    assert "<note>Hello <b>world</b>!</note>" in xml
    entry = parse_xml(xml).find("atom:entry", NS)
    assert [etree.QName(child).localname for child in entry][-4:] == ["note", "a", "b2", "a"]
    assert "".join(entry.find("atom:note", NS).itertext()) == "Hello world!"


def test_cdata_terminator_in_markup_summary(minimal_feed, make_entry):
    minimal_feed["entry"] = [make_entry(summary={"value": "<p>a]]>b</p>", "type": "html"})]

    xml = _render(minimal_feed)

    assert "<![CDATA[<p>a]]]]><![CDATA[>b</p>]]>" in xml
    assert parse_xml(xml).findtext("atom:entry/atom:summary", namespaces=NS) == "<p>a]]>b</p>"


def test_text_construct_extra_keys_become_attributes(minimal_feed, make_entry):
    minimal_feed["title"] = {"value": "Notícias", "xml:lang": "pt"}
    minimal_feed["entry"] = [
        make_entry(
            id="https://example.com/posts/1",
            content={"value": "Body", "xml:base": "https://elsewhere.example.com/", "xml:lang": "en"},
        )
    ]

    root = parse_xml(_render(minimal_feed))

    assert root.find("atom:title", NS).get(f"{{{XML_NS}}}lang") == "pt"
    content = root.find("atom:entry/atom:content", NS)
    assert content.get(f"{{{XML_NS}}}base") == "https://example.com/posts/1"
    assert content.get(f"{{{XML_NS}}}lang") == "en"


def test_entry_custom_data_is_scoped_to_entry(minimal_feed, make_entry):
    minimal_feed["entry"] = [make_entry(customData='<comments count="3">Three</comments>')]

    root = parse_xml(_render(minimal_feed))

    comments = root.find("atom:entry/atom:comments", NS)
    assert comments.get("count") == "3"
    assert comments.text == "Three"
    assert root.find("atom:comments", NS) is None


def test_malformed_custom_data_fails_the_call(minimal_feed, make_entry):
    minimal_feed["entry"] = [make_entry(customData="<broken>")]
    feed = validate_feed(minimal_feed)

    with pytest.raises(FragmentParseError):
        render_atom_feed(feed)


def test_build_feed_tree_does_not_reorder_descriptor(minimal_feed, make_entry):
    minimal_feed["entry"] = [make_entry(updated="2020-01-01T00:00:00Z"), make_entry(updated="2021-01-01T00:00:00Z")]
    feed = validate_feed(minimal_feed)

    tree = build_feed_tree(feed)

    assert [entry["updated"] for entry in tree["feed"]["entry"]] == ["2021-01-01T00:00:00Z", "2020-01-01T00:00:00Z"]
    assert [entry.updated for entry in feed.entry] == ["2020-01-01T00:00:00Z", "2021-01-01T00:00:00Z"]


def test_compact_output(minimal_feed):
    xml = _render(minimal_feed, pretty_print=False)

    assert "\n  <id>" not in xml
    assert "<id>https://example.com/</id><title>" in xml
