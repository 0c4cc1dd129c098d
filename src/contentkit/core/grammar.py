"""
Field type grammar parser.

Parses compact field type strings into ``ParsedFieldType``::

    BASE ['(' ARG ')'] ['!'] ['[]']

``!`` marks a required field and ``[]`` a multivalued one; the two suffixes
may appear in either order, each at most once.

Examples:
    string
    string(80)!
    term(tags)[]
    paragraph(hero_section)[]!
    ref(node:blog_post)
"""

from __future__ import annotations

import re
from enum import Enum

from .errors import GrammarError
from .ir import DEFAULT_STRING_LENGTH, FieldKind, ParsedFieldType

_MACHINE_NAME_RE = re.compile(r"^[a-z][a-z0-9_]*$")
_BASE_RE = re.compile(r"[A-Za-z_]+")


class _Arg(Enum):
    """What a base token accepts between parentheses."""

    NONE = "none"
    LENGTH = "length"
    NAME = "name"
    TARGET = "target"


# token -> (kind, argument mode, default argument)
_BASE_TOKENS: dict[str, tuple[FieldKind, _Arg, str | None]] = {
    "string": (FieldKind.TEXT, _Arg.LENGTH, None),
    "str": (FieldKind.TEXT, _Arg.LENGTH, None),
    "text": (FieldKind.LONG_TEXT, _Arg.NONE, None),
    "rich": (FieldKind.RICH_TEXT, _Arg.NONE, None),
    "richtext": (FieldKind.RICH_TEXT, _Arg.NONE, None),
    "int": (FieldKind.INTEGER, _Arg.NONE, None),
    "integer": (FieldKind.INTEGER, _Arg.NONE, None),
    "number": (FieldKind.DECIMAL, _Arg.NONE, None),
    "decimal": (FieldKind.DECIMAL, _Arg.NONE, None),
    "bool": (FieldKind.BOOLEAN, _Arg.NONE, None),
    "boolean": (FieldKind.BOOLEAN, _Arg.NONE, None),
    "email": (FieldKind.EMAIL, _Arg.NONE, None),
    "phone": (FieldKind.PHONE, _Arg.NONE, None),
    "telephone": (FieldKind.PHONE, _Arg.NONE, None),
    "link": (FieldKind.LINK, _Arg.NONE, None),
    "url": (FieldKind.LINK, _Arg.NONE, None),
    "image": (FieldKind.IMAGE, _Arg.NONE, None),
    "file": (FieldKind.FILE, _Arg.NONE, None),
    "date": (FieldKind.DATETIME, _Arg.NONE, None),
    "datetime": (FieldKind.DATETIME, _Arg.NONE, None),
    "daterange": (FieldKind.DATERANGE, _Arg.NONE, None),
    "term": (FieldKind.TAXONOMY_REFERENCE, _Arg.NAME, "tags"),
    "paragraph": (FieldKind.PARAGRAPH_REFERENCE, _Arg.NAME, "default"),
    "ref": (FieldKind.REFERENCE, _Arg.TARGET, "node"),
}

SUPPORTED_TYPES = tuple(sorted(_BASE_TOKENS))


class FieldTypeParser:
    """
    Single-use parser for one field type string.

    Reads the base token, the optional parenthesised argument, then the
    suffixes, raising ``GrammarError`` at the first problem.
    """

    def __init__(self, source: str):
        self.source = source
        self.text = source.strip()
        self.pos = 0

    def parse(self) -> ParsedFieldType:
        if not self.text:
            raise self._error("empty field type")

        base = self._read_base()
        if base not in _BASE_TOKENS:
            raise self._error(
                f"unknown field type '{base}' (expected one of: {', '.join(SUPPORTED_TYPES)})"
            )
        kind, arg_mode, default = _BASE_TOKENS[base]

        arg = self._read_argument()
        required, multivalued = self._read_suffixes()

        attrs: dict[str, object] = {
            "base_kind": kind,
            "required": required,
            "multivalued": multivalued,
        }
        attrs.update(self._interpret_argument(base, arg_mode, arg, default))
        if base == "date":
            attrs["date_only"] = True
        return ParsedFieldType(**attrs)

    # -------------------------------------------------------------------------
    # Scanning
    # -------------------------------------------------------------------------

    def _peek(self) -> str:
        return self.text[self.pos] if self.pos < len(self.text) else ""

    def _read_base(self) -> str:
        match = _BASE_RE.match(self.text, self.pos)
        if not match:
            raise self._error(f"expected a type name at position {self.pos + 1}")
        self.pos = match.end()
        return match.group(0)

    def _read_argument(self) -> str | None:
        if self._peek() != "(":
            if self._peek() == ")":
                raise self._error("unbalanced ')'")
            return None
        close = self.text.find(")", self.pos)
        if close == -1:
            raise self._error("missing closing ')'")
        arg = self.text[self.pos + 1 : close].strip()
        if "(" in arg:
            raise self._error("nested '(' in type argument")
        if not arg:
            raise self._error("empty type argument '()'")
        self.pos = close + 1
        return arg

    def _read_suffixes(self) -> tuple[bool, bool]:
        required = False
        multivalued = False
        while self.pos < len(self.text):
            if self.text.startswith("!", self.pos):
                if required:
                    raise self._error("duplicate '!'")
                required = True
                self.pos += 1
            elif self.text.startswith("[]", self.pos):
                if multivalued:
                    raise self._error("duplicate '[]'")
                multivalued = True
                self.pos += 2
            else:
                raise self._error(f"unexpected '{self.text[self.pos:]}' after type")
        return required, multivalued

    # -------------------------------------------------------------------------
    # Arguments
    # -------------------------------------------------------------------------

    def _interpret_argument(
        self, base: str, mode: _Arg, arg: str | None, default: str | None
    ) -> dict[str, object]:
        if mode == _Arg.NONE:
            if arg is not None:
                raise self._error(f"type '{base}' takes no argument")
            return {}

        if mode == _Arg.LENGTH:
            if arg is None:
                return {"max_length": DEFAULT_STRING_LENGTH}
            if not arg.isdigit() or int(arg) <= 0:
                raise self._error(f"length of '{base}' must be a positive integer, got '{arg}'")
            return {"max_length": int(arg)}

        if mode == _Arg.NAME:
            name = arg if arg is not None else default
            self._check_name(name or "")
            return {"target": name}

        # _Arg.TARGET: "kind" or "kind:bundle"
        if arg is None:
            return {"target_kind": default}
        target_kind, sep, bundle = arg.partition(":")
        self._check_name(target_kind.strip())
        if sep:
            self._check_name(bundle.strip())
            return {"target_kind": target_kind.strip(), "target": bundle.strip()}
        return {"target_kind": target_kind.strip()}

    def _check_name(self, name: str) -> None:
        if not _MACHINE_NAME_RE.match(name):
            raise self._error(f"'{name}' is not a valid machine name")

    def _error(self, message: str) -> GrammarError:
        return GrammarError(f"{message} in '{self.source}'", type_string=self.source)


def parse_field_type(source: object) -> ParsedFieldType:
    """
    Parse a field type grammar string.

    Args:
        source: Type string such as ``term(tags)[]``; any other value is a grammar error

    Returns:
        The parsed field type

    Raises:
        GrammarError: If the string is not valid grammar
    """
    if not isinstance(source, str):
        raise GrammarError(f"field type must be a string, got {type(source).__name__}", str(source))
    return FieldTypeParser(source).parse()
