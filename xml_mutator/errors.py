"""Exceptions raised while mutating XML documents.

Every error carries the offending path so a failed build can point at the
file that broke it.  :class:`SiblingCopyError` is the only one that is never
raised out of a run; it is attached to the per-file sibling results instead.
"""

from __future__ import annotations


class MutatorError(Exception):
    """Base class for all mutator failures."""


class ParseError(MutatorError):
    """A source document is not well-formed XML."""

    def __init__(self, path: str, reason: str):
        self.path = path
        self.reason = reason
        super().__init__(f"Failed to parse XML document '{path}': {reason}")


class XPathError(MutatorError):
    """The expression is malformed, uses an unknown prefix or selects no nodes."""

    def __init__(self, expression: str, reason: str, path: str | None = None):
        self.expression = expression
        self.reason = reason
        self.path = path
        where = f" against '{path}'" if path else ""
        super().__init__(f"Failed to evaluate XPath '{expression}'{where}: {reason}")


class PathResolutionError(MutatorError):
    """No destination can be computed for a file."""

    def __init__(self, path: str, reason: str):
        self.path = path
        self.reason = reason
        super().__init__(f"Cannot compute destination for '{path}': {reason}")


class SiblingCopyError(MutatorError):
    """Copying a companion file, or clearing its read-only flag, failed."""

    def __init__(self, source: str, destination: str, reason: str):
        self.source = source
        self.destination = destination
        self.reason = reason
        super().__init__(f"Failed to copy '{source}' to '{destination}': {reason}")


class InvalidValueError(MutatorError):
    """The replacement value cannot be stored in the selected node."""

    def __init__(self, value: str, reason: str, path: str | None = None):
        self.value = value
        self.reason = reason
        self.path = path
        where = f" in '{path}'" if path else ""
        super().__init__(f"Cannot write value {value!r}{where}: {reason}")
