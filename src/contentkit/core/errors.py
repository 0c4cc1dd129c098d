"""
Error and warning types for document validation, grammar parsing and import
execution.

Only ``ValidationError`` aborts an import. Everything else is recorded as an
``ImportWarning`` and the import carries on.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum


class ContentKitError(Exception):
    """Base exception for all contentkit errors."""

    def __init__(self, message: str):
        self.message = message
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        return self.message


class ValidationError(ContentKitError):
    """
    Raised when an import document is malformed as a whole.

    Examples:
    - Document is not a JSON object
    - Neither ``model`` nor ``content`` present
    - Model entry without bundle or label
    - Duplicate symbolic content ids

    ``problems`` lists every structural problem found, each prefixed with
    its location in the document (see ``ErrorContext``).
    """

    def __init__(self, message: str, problems: list[str] | None = None):
        self.problems = problems or []
        super().__init__(message)

    def _format_message(self) -> str:
        if not self.problems:
            return self.message
        details = "\n".join(f"  - {p}" for p in self.problems)
        return f"{self.message}\n{details}"


class GrammarError(ContentKitError):
    """
    Raised when a field type string cannot be parsed.

    Scoped to a single field: the owning bundle is still created.
    """

    def __init__(self, message: str, type_string: str):
        self.type_string = type_string
        super().__init__(message)


class StorageError(ContentKitError):
    """
    Raised by storage backends when an operation cannot be carried out.

    Examples:
    - Creating content for a bundle that does not exist
    - Writing a field the bundle does not define
    - Path alias already taken
    """

    pass


@dataclass
class ErrorContext:
    """
    Location of a problem inside an import document.

    Attributes:
        section: Top-level section ("model" or "content")
        index: Position of the entry within the section
        key: Bundle name or symbolic content id of the entry
        field: Path inside the entry, e.g. "fields.1.type"
    """

    section: str
    index: int | None = None
    key: str | None = None
    field: str | None = None

    def format(self) -> str:
        """
        Format context as a compact path.

        Returns:
            String like "model[2] (event).fields.0.label"
        """
        location = self.section
        if self.index is not None:
            location += f"[{self.index}]"
        if self.key:
            location += f" ({self.key})"
        if self.field:
            location += f".{self.field}"
        return location


# =============================================================================
# Non-fatal warnings
# =============================================================================


class WarningKind(StrEnum):
    """Categories of non-fatal import problems."""

    GRAMMAR = "grammar"
    UNRESOLVED_REFERENCE = "unresolved_reference"
    UNKNOWN_FIELD = "unknown_field"
    MISSING_REQUIRED = "missing_required"
    INVALID_VALUE = "invalid_value"
    UNKNOWN_BUNDLE = "unknown_bundle"
    STORAGE_OPERATION = "storage_operation"


_WARNING_LABELS: dict[WarningKind, str] = {
    WarningKind.GRAMMAR: "Grammar error",
    WarningKind.UNRESOLVED_REFERENCE: "Unresolved reference",
    WarningKind.UNKNOWN_FIELD: "Unknown field",
    WarningKind.MISSING_REQUIRED: "Missing required field",
    WarningKind.INVALID_VALUE: "Invalid value",
    WarningKind.UNKNOWN_BUNDLE: "Unknown bundle",
    WarningKind.STORAGE_OPERATION: "Storage operation failed",
}


@dataclass(frozen=True)
class ImportWarning:
    """
    A non-fatal problem recorded during an import.

    Attributes:
        kind: Warning category
        message: Human-readable description
        subject: Bundle ("node.event") or symbolic content id the warning is about
        field: Field id, when the warning is scoped to one field
    """

    kind: WarningKind
    message: str
    subject: str | None = None
    field: str | None = None

    def render(self) -> str:
        """Render as the single line that ends up in ``ImportResult.warnings``."""
        return f"{_WARNING_LABELS[self.kind]}: {self.message}"


def grammar_warning(bundle: str, field: str, error: GrammarError) -> ImportWarning:
    return ImportWarning(
        WarningKind.GRAMMAR,
        f"field '{field}' of {bundle} skipped: {error.message}",
        subject=bundle,
        field=field,
    )


def unresolved_reference_warning(content_id: str, field: str, token: str) -> ImportWarning:
    return ImportWarning(
        WarningKind.UNRESOLVED_REFERENCE,
        f"{token} in field '{field}' of content '{content_id}' could not be resolved",
        subject=content_id,
        field=field,
    )


def unknown_field_warning(content_id: str, field: str, bundle: str) -> ImportWarning:
    return ImportWarning(
        WarningKind.UNKNOWN_FIELD,
        f"'{field}' is not a field of {bundle}, value of content '{content_id}' dropped",
        subject=content_id,
        field=field,
    )


def missing_required_warning(content_id: str, field: str) -> ImportWarning:
    return ImportWarning(
        WarningKind.MISSING_REQUIRED,
        f"required field '{field}' of content '{content_id}' left empty",
        subject=content_id,
        field=field,
    )


def invalid_value_warning(content_id: str, field: str, reason: str) -> ImportWarning:
    return ImportWarning(
        WarningKind.INVALID_VALUE,
        f"field '{field}' of content '{content_id}': {reason}",
        subject=content_id,
        field=field,
    )


def storage_warning(description: str, error: Exception, subject: str | None = None) -> ImportWarning:
    return ImportWarning(
        WarningKind.STORAGE_OPERATION,
        f"{description}: {error}",
        subject=subject,
    )
