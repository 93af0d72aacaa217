import re
from datetime import UTC, date, datetime, time

VERBATIM_TYPES = frozenset({"html", "xml"})

# RFC 4287 3.3: RFC 3339 date-time with an uppercase T and Z
_RFC3339_RE = re.compile(r"(\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2})(?:\.(\d+))?(Z|[+-]\d{2}:\d{2})")


def format_datetime(dt: datetime) -> str:
    """Format datetime as RFC 3339 (Atom requirement), using 'Z' for UTC."""
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=UTC)
    return dt.astimezone(UTC).isoformat().replace("+00:00", "Z")


def coerce_datetime(value: date | datetime) -> datetime:
    """Promote a date to midnight UTC; naive datetimes are taken as UTC."""
    if not isinstance(value, datetime):
        value = datetime.combine(value, time.min)
    if value.tzinfo is None:
        value = value.replace(tzinfo=UTC)
    return value


def parse_timestamp(value: str) -> datetime:
    """Parse an RFC 3339 timestamp into an aware datetime.

    Raises:
        ValueError: If the string is not a timestamp.

    """
    match = _RFC3339_RE.fullmatch(value)
    if match is None:
        msg = f"Not an RFC 3339 date-time: {value!r}"
        raise ValueError(msg)
    stamp, fraction, offset = match.groups()
    if fraction:
        stamp = f"{stamp}.{fraction[:6].ljust(6, '0')}"
    return datetime.fromisoformat(stamp + ("+00:00" if offset == "Z" else offset))


def is_verbatim_type(content_type: str | None) -> bool:
    """True for text constructs whose payload is markup to embed unescaped."""
    if not content_type:
        return False
    normalized = content_type.strip().lower()
    return normalized in VERBATIM_TYPES or normalized.endswith("+xml")
