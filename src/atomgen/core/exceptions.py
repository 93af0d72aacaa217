"""Core exceptions for atomgen."""

from dataclasses import dataclass


class AtomgenError(Exception):
    """Base exception for all atomgen errors."""


@dataclass(frozen=True)
class FieldIssue:
    """A single validation failure, addressed by its dotted path from the feed root."""

    path: str
    message: str

    def __str__(self) -> str:
        if not self.path:
            return self.message
        return f"{self.message} ({self.path})"


class AtomValidationError(AtomgenError):
    """Raised when a feed descriptor does not match the Atom data model.

    Carries every failing field, in the order they were detected.
    """

    def __init__(self, issues: list[FieldIssue]) -> None:
        self.issues = list(issues)
        lines = ["[Atom] Invalid or missing options:", *(str(issue) for issue in self.issues)]
        super().__init__("\n".join(lines))

    @property
    def paths(self) -> list[str]:
        return [issue.path for issue in self.issues]


class FragmentParseError(AtomgenError):
    """Raised when a customData fragment is not well-formed XML."""


class XmlRenderError(AtomgenError):
    """Raised when a node tree cannot be turned into XML."""


class DescriptorLoadError(AtomgenError):
    """Raised when a descriptor file cannot be read or decoded."""
