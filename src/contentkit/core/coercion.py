"""
Value coercion.

Maps loosely typed JSON values onto the closed set of coerced value kinds,
driven by the field's parsed type. Problems come back as messages for the
caller to turn into warnings: a value that cannot be coerced is dropped,
a value that can be repaired (truncated text, extra items on a single-valued
field) is kept with a note.
"""

from __future__ import annotations

import math
import re
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from decimal import Decimal, InvalidOperation
from pathlib import PurePosixPath
from typing import Any
from urllib.parse import urlparse

from .ir import (
    BoolValue,
    CoercedValue,
    FieldKind,
    ListValue,
    NumberValue,
    ParsedFieldType,
    TextValue,
)

RICH_TEXT_FORMAT = "basic_html"
IMAGE_EXTENSIONS = frozenset({"png", "gif", "jpg", "jpeg", "svg", "webp"})

_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
_PHONE_RE = re.compile(r"^\+?[0-9 ()./-]*[0-9][0-9 ()./-]*$")
_INT_RE = re.compile(r"^[+-]?\d+$")

_TRUE_STRINGS = frozenset({"true", "yes", "on", "1"})
_FALSE_STRINGS = frozenset({"false", "no", "off", "0"})


class CoercionError(ValueError):
    """Raised by a coercer when a raw value cannot be used."""


@dataclass
class Coercion:
    """
    Result of coercing one field value.

    Attributes:
        value: Coerced value, or None when nothing usable remained
        problems: Messages about dropped or repaired input
    """

    value: CoercedValue | None = None
    problems: list[str] = field(default_factory=list)


# =============================================================================
# Scalar coercers
# =============================================================================


def _require_string(raw: Any, what: str = "a string") -> str:
    if isinstance(raw, bool) or not isinstance(raw, (str, int, float)):
        raise CoercionError(f"expected {what}, got {type(raw).__name__}")
    return str(raw)


def _coerce_text(raw: Any, ft: ParsedFieldType, notes: list[str]) -> CoercedValue:
    text = _require_string(raw)
    if ft.max_length and len(text) > ft.max_length:
        notes.append(f"value longer than {ft.max_length} characters, truncated")
        text = text[: ft.max_length]
    return TextValue(value=text)


def _coerce_formatted_text(raw: Any, ft: ParsedFieldType, notes: list[str]) -> CoercedValue:
    default_format = RICH_TEXT_FORMAT if ft.base_kind == FieldKind.RICH_TEXT else None
    if isinstance(raw, dict):
        if "value" not in raw:
            raise CoercionError("text object needs a 'value' key")
        text = _require_string(raw["value"])
        text_format = raw.get("format")
        if text_format is not None and not isinstance(text_format, str):
            raise CoercionError(f"text format must be a string, got {type(text_format).__name__}")
        return TextValue(value=text, format=text_format or default_format)
    return TextValue(value=_require_string(raw), format=default_format)


def _finite(number: float, raw: Any) -> float:
    if not math.isfinite(number):
        raise CoercionError(f"expected a finite number, got {raw!r}")
    return number


def _coerce_integer(raw: Any, ft: ParsedFieldType, notes: list[str]) -> CoercedValue:
    if isinstance(raw, bool):
        raise CoercionError("expected an integer, got a boolean")
    if isinstance(raw, int):
        return NumberValue(value=raw)
    if isinstance(raw, float):
        if _finite(raw, raw).is_integer():
            return NumberValue(value=int(raw))
        raise CoercionError(f"expected an integer, got {raw!r}")
    if isinstance(raw, str) and _INT_RE.match(raw.strip()):
        digits = raw.strip()
        try:
            return NumberValue(value=int(digits))
        except ValueError:
            # More digits than int() accepts from a string
            raise CoercionError(f"integer with {len(digits)} digits is too long") from None
    raise CoercionError(f"expected an integer, got {raw!r}")


def _coerce_decimal(raw: Any, ft: ParsedFieldType, notes: list[str]) -> CoercedValue:
    if isinstance(raw, bool):
        raise CoercionError("expected a number, got a boolean")
    if isinstance(raw, int):
        return NumberValue(value=raw)
    if isinstance(raw, float):
        return NumberValue(value=_finite(raw, raw))
    if isinstance(raw, str):
        try:
            number = Decimal(raw.strip())
        except InvalidOperation:
            raise CoercionError(f"expected a number, got {raw!r}") from None
        if not number.is_finite():
            raise CoercionError(f"expected a finite number, got {raw!r}")
        return NumberValue(value=_finite(float(number), raw))
    raise CoercionError(f"expected a number, got {type(raw).__name__}")


def _coerce_boolean(raw: Any, ft: ParsedFieldType, notes: list[str]) -> CoercedValue:
    if isinstance(raw, bool):
        return BoolValue(value=raw)
    if isinstance(raw, int) and raw in (0, 1):
        return BoolValue(value=bool(raw))
    if isinstance(raw, str):
        lowered = raw.strip().lower()
        if lowered in _TRUE_STRINGS:
            return BoolValue(value=True)
        if lowered in _FALSE_STRINGS:
            return BoolValue(value=False)
    raise CoercionError(f"expected a boolean, got {raw!r}")


def _coerce_email(raw: Any, ft: ParsedFieldType, notes: list[str]) -> CoercedValue:
    text = _require_string(raw).strip()
    if not _EMAIL_RE.match(text):
        raise CoercionError(f"'{text}' is not an email address")
    return TextValue(value=text)


def _coerce_phone(raw: Any, ft: ParsedFieldType, notes: list[str]) -> CoercedValue:
    text = _require_string(raw).strip()
    if not _PHONE_RE.match(text):
        raise CoercionError(f"'{text}' is not a phone number")
    return TextValue(value=text)


def _uri_and_attributes(raw: Any, attribute_keys: tuple[str, ...]) -> tuple[str, dict[str, str]]:
    if isinstance(raw, dict):
        uri = raw.get("uri") or raw.get("url")
        if not isinstance(uri, str) or not uri.strip():
            raise CoercionError("object needs a 'uri' or 'url' key")
        attributes = {
            key: str(raw[key]) for key in attribute_keys if raw.get(key) not in (None, "")
        }
        return uri.strip(), attributes
    if isinstance(raw, str) and raw.strip():
        return raw.strip(), {}
    raise CoercionError("expected a URL string or an object with 'uri'")


def _coerce_link(raw: Any, ft: ParsedFieldType, notes: list[str]) -> CoercedValue:
    uri, attributes = _uri_and_attributes(raw, ("title",))
    return TextValue(value=uri, attributes=attributes)


def _coerce_file(raw: Any, ft: ParsedFieldType, notes: list[str]) -> CoercedValue:
    uri, attributes = _uri_and_attributes(raw, ("alt", "title", "description"))
    if ft.base_kind == FieldKind.IMAGE:
        try:
            path = urlparse(uri).path
        except ValueError as e:
            raise CoercionError(f"'{uri}' is not a valid URL: {e}") from None
        extension = PurePosixPath(path).suffix.lower().lstrip(".")
        if extension not in IMAGE_EXTENSIONS:
            raise CoercionError(
                f"image extension '{extension or '(none)'}' not allowed "
                f"(allowed: {', '.join(sorted(IMAGE_EXTENSIONS))})"
            )
    return TextValue(value=uri, attributes=attributes)


def _parse_datetime(raw: Any) -> datetime:
    if isinstance(raw, bool):
        raise CoercionError("expected a date, got a boolean")
    if isinstance(raw, (int, float)):
        try:
            return datetime.fromtimestamp(raw, tz=UTC).replace(tzinfo=None)
        except (OverflowError, OSError, ValueError):
            raise CoercionError(f"epoch timestamp {raw!r} is out of range") from None
    if not isinstance(raw, str) or not raw.strip():
        raise CoercionError(f"expected an ISO 8601 date, got {raw!r}")
    text = raw.strip()
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(text)
        if parsed.tzinfo is not None:
            parsed = parsed.astimezone(UTC).replace(tzinfo=None)
    except ValueError:
        raise CoercionError(f"'{raw}' is not an ISO 8601 date") from None
    except OverflowError:
        raise CoercionError(f"'{raw}' is out of range in UTC") from None
    return parsed


def _format_datetime(value: datetime, date_only: bool) -> str:
    if date_only:
        return value.date().isoformat()
    return value.replace(microsecond=0).isoformat()


def _coerce_datetime(raw: Any, ft: ParsedFieldType, notes: list[str]) -> CoercedValue:
    return TextValue(value=_format_datetime(_parse_datetime(raw), ft.date_only))


def _coerce_daterange(raw: Any, ft: ParsedFieldType, notes: list[str]) -> CoercedValue:
    if isinstance(raw, dict):
        start, end = raw.get("start", raw.get("value")), raw.get("end", raw.get("end_value"))
    elif isinstance(raw, (list, tuple)) and len(raw) == 2:
        start, end = raw
    else:
        raise CoercionError("expected {start, end} or a [start, end] pair")
    if start is None or end is None:
        raise CoercionError("date range needs both start and end")
    start_at, end_at = _parse_datetime(start), _parse_datetime(end)
    if end_at < start_at:
        raise CoercionError("date range ends before it starts")
    return TextValue(
        value=_format_datetime(start_at, ft.date_only),
        attributes={"end_value": _format_datetime(end_at, ft.date_only)},
    )


_COERCERS: dict[FieldKind, Callable[[Any, ParsedFieldType, list[str]], CoercedValue]] = {
    FieldKind.TEXT: _coerce_text,
    FieldKind.LONG_TEXT: _coerce_formatted_text,
    FieldKind.RICH_TEXT: _coerce_formatted_text,
    FieldKind.INTEGER: _coerce_integer,
    FieldKind.DECIMAL: _coerce_decimal,
    FieldKind.BOOLEAN: _coerce_boolean,
    FieldKind.EMAIL: _coerce_email,
    FieldKind.PHONE: _coerce_phone,
    FieldKind.LINK: _coerce_link,
    FieldKind.IMAGE: _coerce_file,
    FieldKind.FILE: _coerce_file,
    FieldKind.DATETIME: _coerce_datetime,
    FieldKind.DATERANGE: _coerce_daterange,
}


# =============================================================================
# Cardinality
# =============================================================================


def _is_single_range(ft: ParsedFieldType, raw: Any) -> bool:
    """A bare [start, end] list is one date range, not two values."""
    return (
        ft.base_kind == FieldKind.DATERANGE
        and isinstance(raw, list)
        and len(raw) == 2
        and all(isinstance(item, (str, int, float)) for item in raw)
    )


def split_items(ft: ParsedFieldType, raw: Any) -> tuple[list[Any], list[str]]:
    """
    Normalise a raw value to a list of items, honouring cardinality.

    Scalars become single-item lists. A single-valued field given several
    items keeps the first one, with a note. ``None`` items are dropped.
    """
    notes: list[str] = []
    if raw is None:
        return [], notes
    if isinstance(raw, list) and not _is_single_range(ft, raw):
        items = [item for item in raw if item is not None]
    else:
        items = [raw]
    if not ft.multivalued and len(items) > 1:
        notes.append(f"{len(items)} values given for a single-valued field, keeping the first")
        items = items[:1]
    return items, notes


def coerce_value(ft: ParsedFieldType, raw: Any) -> Coercion:
    """
    Coerce a raw JSON value for a non-reference field.

    Args:
        ft: Parsed type of the target field
        raw: Value from the document

    Returns:
        Coercion with the value (a ListValue for multivalued fields) and any problems
    """
    coercer = _COERCERS.get(ft.base_kind)
    if coercer is None:
        raise ValueError(f"{ft.base_kind} values are resolved as references, not coerced")

    items, problems = split_items(ft, raw)
    coerced: list[CoercedValue] = []
    for item in items:
        notes: list[str] = []
        try:
            coerced.append(coercer(item, ft, notes))
        except CoercionError as e:
            problems.append(str(e))
        except (ValueError, OverflowError) as e:
            # Conversion failures on raw input drop the value like any other bad value
            problems.append(f"cannot use {item!r}: {e}")
        problems.extend(notes)

    if not coerced:
        return Coercion(value=None, problems=problems)
    if ft.multivalued:
        return Coercion(value=ListValue(items=coerced), problems=problems)
    return Coercion(value=coerced[0], problems=problems)
