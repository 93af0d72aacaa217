"""atomgen: Atom 1.0 documents from plain feed descriptors."""

__version__ = "0.1.0"

from atomgen.api import get_atom_response, get_atom_string  # noqa: E402
from atomgen.core.exceptions import (  # noqa: E402
    AtomgenError,
    AtomValidationError,
    FieldIssue,
    FragmentParseError,
)
from atomgen.core.types import AtomFeed, Entry  # noqa: E402
from atomgen.core.validation import validate_feed  # noqa: E402

__all__ = [
    "AtomFeed",
    "AtomValidationError",
    "AtomgenError",
    "Entry",
    "FieldIssue",
    "FragmentParseError",
    "get_atom_response",
    "get_atom_string",
    "validate_feed",
]
