from __future__ import annotations


# Domain errors
class SchemaEditorError(Exception):
    """Base class for every error raised by the node model and compiler."""


class NotFound(SchemaEditorError, KeyError):
    """An id does not resolve to a node (or not to the kind of node required)."""

    def __str__(self) -> str:
        # KeyError quotes its argument; keep plain messages
        return str(self.args[0]) if self.args else ""


class DuplicateName(SchemaEditorError):
    """A sibling under the same object already uses the name."""


class InapplicableField(SchemaEditorError):
    """The constraint does not apply to the node's current type."""


class InvalidOperation(SchemaEditorError):
    """Structurally disallowed mutation: removing the root, creating a cycle, ..."""


class InvalidConstraintValue(SchemaEditorError, ValueError):
    """The field applies, but the value does not validate."""


class MalformedDocument(SchemaEditorError, ValueError):
    """Input is not a JSON object at all. Fatal to the current import attempt."""
