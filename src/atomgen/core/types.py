"""Core Data Types for atomgen.

Input arrives as plain mappings (camelCase keys such as ``customData`` are
accepted as aliases). Text constructs may be given as bare strings; they are
normalized to ``TextConstruct`` here, once, so rendering never has to look at
the union again.
"""

import re
from datetime import date, datetime
from typing import Annotated, Any
from urllib.parse import urlsplit

from pydantic import (
    AfterValidator,
    BaseModel,
    BeforeValidator,
    ConfigDict,
    EmailStr,
    Field,
    PlainValidator,
    ValidationInfo,
    model_validator,
)
from pydantic_core import PydanticCustomError

from atomgen.core.filters import coerce_datetime, format_datetime, is_verbatim_type, parse_timestamp

ATOM_NS = "http://www.w3.org/2005/Atom"
MEDIA_NS = "http://search.yahoo.com/mrss/"

_SCHEME_RE = re.compile(r"^[A-Za-z][A-Za-z0-9+.-]*$")
_ATTRIBUTE_RE = re.compile(r"(?:xml:)?[A-Za-z_][\w.-]*")


# --- Field-level coercions ---


def is_absolute_url(value: str) -> bool:
    """True when value has a scheme and something after it (``https://x``, ``urn:x``)."""
    parts = urlsplit(value)
    if not parts.scheme or not _SCHEME_RE.match(parts.scheme):
        return False
    if parts.scheme.lower() in {"http", "https", "ftp", "ftps", "ws", "wss"}:
        return bool(parts.netloc)
    return bool(parts.netloc or parts.path)


def _check_url(value: str, info: ValidationInfo) -> str:
    if not value:
        raise PydanticCustomError("url_empty", "URL must not be empty")
    strict = True
    if info.context is not None:
        strict = bool(info.context.get("strict_urls", True))
    if strict and not is_absolute_url(value):
        raise PydanticCustomError("url_invalid", "Invalid url")
    return value


def _coerce_timestamp(value: Any) -> Any:
    if isinstance(value, date):
        return format_datetime(coerce_datetime(value))
    if isinstance(value, str):
        try:
            parse_timestamp(value)
        except ValueError:
            raise PydanticCustomError(
                "timestamp_invalid", "Invalid RFC 3339 timestamp: {value}", {"value": value}
            ) from None
    return value


def _stringify_number(value: Any) -> Any:
    if isinstance(value, int | float) and not isinstance(value, bool):
        return str(value)
    return value


def _coerce_text(value: Any) -> Any:
    if isinstance(value, str):
        return {"value": value}
    return value


def _coerce_fragment(value: Any) -> Any:
    if isinstance(value, str):
        return {"markup": value}
    return value


def _check_stylesheet(value: Any) -> str | bool:
    if isinstance(value, str | bool):
        return value
    raise PydanticCustomError("stylesheet_type", "Stylesheet must be a path or a boolean")


AtomUrl = Annotated[str, AfterValidator(_check_url)]
Timestamp = Annotated[str, BeforeValidator(_coerce_timestamp)]
NumericText = Annotated[str, BeforeValidator(_stringify_number)]
Identifier = Annotated[str, Field(min_length=1)]
Stylesheet = Annotated[str | bool, PlainValidator(_check_stylesheet)]


# --- Atom Core Domain ---


class TextConstruct(BaseModel):
    """Atom text construct: a payload plus attributes.

    Keys other than ``value`` become attributes of the element. Besides
    ``type``, any unprefixed name or an ``xml:`` name (``xml:lang``,
    ``xml:base``) is accepted; values must be strings.
    """

    model_config = ConfigDict(extra="allow", frozen=True)

    value: str
    type: str | None = None

    @model_validator(mode="after")
    def _check_extra_attributes(self) -> "TextConstruct":
        for name, value in (self.model_extra or {}).items():
            if not _ATTRIBUTE_RE.fullmatch(name) or name == "xmlns":
                raise PydanticCustomError("attribute_name", "Unsupported attribute name: {name}", {"name": name})
            if not isinstance(value, str):
                raise PydanticCustomError("attribute_value", "Attribute {name} must be a string", {"name": name})
        return self

    def __bool__(self) -> bool:
        return bool(self.value)

    @property
    def is_verbatim(self) -> bool:
        return is_verbatim_type(self.type)

    def attributes(self) -> dict[str, str]:
        attrs = {"type": self.type} if self.type else {}
        attrs.update(self.model_extra or {})
        return attrs


class ContentConstruct(TextConstruct):
    """Entry content; may point at out-of-line content through ``src``."""

    value: str = ""
    src: AtomUrl | None = None

    def __bool__(self) -> bool:
        return bool(self.value or self.src)

    def attributes(self) -> dict[str, str]:
        attrs = super().attributes()
        if self.src:
            attrs["src"] = self.src
        return attrs


Text = Annotated[TextConstruct, BeforeValidator(_coerce_text)]
Content = Annotated[ContentConstruct, BeforeValidator(_coerce_text)]


class XmlFragment(BaseModel):
    """Opaque raw XML supplied by the caller; only parsed at render time."""

    model_config = ConfigDict(frozen=True)

    markup: str

    def __bool__(self) -> bool:
        return bool(self.markup.strip())


Fragment = Annotated[XmlFragment, BeforeValidator(_coerce_fragment)]


class Person(BaseModel):
    name: str
    uri: AtomUrl | None = None
    email: EmailStr | None = None


class Link(BaseModel):
    href: AtomUrl
    rel: str | None = None
    type: str | None = None
    hreflang: str | None = None
    title: str | None = None
    length: NumericText | None = None

    def attributes(self) -> dict[str, str]:
        return {key: value for key, value in self.model_dump().items() if value is not None}


class Category(BaseModel):
    term: str
    scheme: AtomUrl | None = None
    label: str | None = None

    def attributes(self) -> dict[str, str]:
        return {key: value for key, value in self.model_dump().items() if value is not None}


class Generator(BaseModel):
    value: str
    uri: AtomUrl | None = None
    version: str | None = None


class MediaThumbnail(BaseModel):
    """MRSS thumbnail attached to an entry."""

    url: Annotated[str, Field(min_length=1)]
    medium: str | None = None
    width: NumericText | None = None
    height: NumericText | None = None
    time: str | None = None


class FeedMetadata(BaseModel):
    """Fields shared by feeds and entry sources."""

    model_config = ConfigDict(populate_by_name=True)

    id: Identifier
    title: Text
    updated: Timestamp
    author: list[Person] | None = None
    link: list[Link] | None = None
    category: list[Category] | None = None
    contributor: list[Person] | None = None
    generator: Generator | None = None
    icon: str | None = None
    logo: str | None = None
    rights: Text | None = None
    subtitle: Text | None = None


class Source(FeedMetadata):
    """Metadata of the feed an entry was republished from."""


class Entry(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: Identifier
    title: Text
    updated: Timestamp
    author: list[Person] | None = None
    link: list[Link] | None = None
    category: list[Category] | None = None
    contributor: list[Person] | None = None
    published: Timestamp | None = None
    rights: Text | None = None
    source: Source | None = None
    summary: Text | None = None
    content: Content | None = None
    custom_data: Fragment | None = Field(default=None, alias="customData")
    thumbnail: MediaThumbnail | None = None

    @property
    def updated_at(self) -> datetime:
        return parse_timestamp(self.updated)


class AtomFeed(FeedMetadata):
    """A validated feed descriptor, ready for assembly."""

    entry: list[Entry]
    custom_data: Fragment | None = Field(default=None, alias="customData")

    # Rendering-only options, outside the Atom data model
    stylesheet: Stylesheet | None = None
    xmlns: dict[str, str] | None = None
    lang: str | None = None

    @property
    def updated_at(self) -> datetime:
        return parse_timestamp(self.updated)
