"""
Import document loader.

Reads a JSON document from a file, a string or an already decoded object and
validates it into an ``ImportDocument``. Every structural problem surfaces as
a single ``ValidationError`` listing what is wrong, so a rejected document
never reaches the planners.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

import pydantic

from .errors import ErrorContext, ValidationError
from .ir import ImportDocument
from .settings import ImportSettings

logger = logging.getLogger(__name__)

_VALUE_ERROR_PREFIX = "Value error, "
_SECTION_KEYS = {"model": "bundle", "content": "id"}


def error_context(loc: tuple[Any, ...], data: Any) -> ErrorContext | None:
    """
    Map a pydantic error location onto an entry of the raw document.

    Args:
        loc: Error location, e.g. ``("model", 0, "fields", 1, "type")``
        data: The raw document the location points into

    Returns:
        ErrorContext for locations inside ``model`` or ``content``, else None
    """
    if not loc or loc[0] not in _SECTION_KEYS:
        return None
    section = str(loc[0])
    index = loc[1] if len(loc) > 1 and isinstance(loc[1], int) else None
    rest = loc[2:] if index is not None else loc[1:]

    key = None
    entries = data.get(section) if isinstance(data, dict) else None
    if index is not None and isinstance(entries, list) and index < len(entries):
        entry = entries[index]
        raw_key = entry.get(_SECTION_KEYS[section]) if isinstance(entry, dict) else None
        if isinstance(raw_key, str) and raw_key.strip():
            key = raw_key.strip()

    return ErrorContext(section, index, key, ".".join(str(part) for part in rest) or None)


def format_problems(error: pydantic.ValidationError, data: Any) -> list[str]:
    """Render each pydantic error as ``location: message``."""
    problems: list[str] = []
    for detail in error.errors():
        loc = tuple(detail.get("loc", ()))
        message = str(detail.get("msg", "invalid"))
        if message.startswith(_VALUE_ERROR_PREFIX):
            message = message[len(_VALUE_ERROR_PREFIX) :]
        context = error_context(loc, data)
        location = context.format() if context else ".".join(str(part) for part in loc)
        problems.append(f"{location}: {message}" if location else message)
    return problems


def validate_document(data: Any) -> ImportDocument:
    """
    Validate a decoded JSON value as an import document.

    Args:
        data: Decoded JSON, or an ``ImportDocument`` (returned unchanged)

    Returns:
        The validated document

    Raises:
        ValidationError: If the value is not a well-formed import document
    """
    if isinstance(data, ImportDocument):
        return data
    if not isinstance(data, dict):
        raise ValidationError(f"Import document must be a JSON object, got {type(data).__name__}")
    try:
        return ImportDocument.model_validate(data)
    except pydantic.ValidationError as e:
        raise ValidationError("Invalid import document", problems=format_problems(e, data)) from e


class DocumentLoader:
    """
    Loads import documents from paths, strings or decoded objects.

    Enforces the configured document size limit before decoding.
    """

    def __init__(self, settings: ImportSettings | None = None) -> None:
        self.settings = settings or ImportSettings()

    def _check_size(self, size: int) -> None:
        limit = self.settings.max_document_bytes
        if limit and size > limit:
            raise ValidationError(f"Import document is {size} bytes, limit is {limit}")

    def load_text(self, text: str) -> ImportDocument:
        """
        Decode and validate a JSON string.

        Raises:
            ValidationError: If the text is empty, not JSON, too large or malformed
        """
        self._check_size(len(text.encode("utf-8")))
        if not text.strip():
            raise ValidationError("Import document is empty")
        try:
            data = json.loads(text)
        except json.JSONDecodeError as e:
            raise ValidationError(f"Import document is not valid JSON: {e}") from e
        return validate_document(data)

    def load_path(self, path: str | Path) -> ImportDocument:
        """
        Read, decode and validate a JSON file.

        Raises:
            ValidationError: If the file cannot be read or its content is rejected
        """
        full_path = Path(path)
        if not full_path.is_file():
            raise ValidationError(f"Import document not found: {full_path}")
        self._check_size(full_path.stat().st_size)
        try:
            text = full_path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            raise ValidationError(f"Cannot read import document {full_path}: {e}") from e
        logger.debug("Loaded import document from %s", full_path)
        return self.load_text(text)

    def load(self, source: Any) -> ImportDocument:
        """
        Load a document from whatever the caller has.

        Args:
            source: ``ImportDocument``, decoded dict, JSON string or bytes

        Returns:
            The validated document
        """
        if isinstance(source, bytes):
            self._check_size(len(source))
            try:
                source = source.decode("utf-8")
            except UnicodeDecodeError as e:
                raise ValidationError(f"Import document is not UTF-8: {e}") from e
        if isinstance(source, str):
            return self.load_text(source)
        return validate_document(source)
