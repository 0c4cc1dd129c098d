"""
Symbol table and reference resolution for content documents.

Content items refer to each other by symbolic id with ``@<id>`` tokens.
The first content pass registers every created item; the second pass
resolves tokens against the complete table, so declaration order within the
document does not matter.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from .errors import ContentKitError, ImportWarning, unresolved_reference_warning
from .ir import EntityRef

REFERENCE_PREFIX = "@"


def is_reference_token(value: Any) -> bool:
    """Check if a raw value is an ``@<id>`` reference token."""
    return isinstance(value, str) and len(value) > 1 and value.startswith(REFERENCE_PREFIX)


def token_id(token: str) -> str:
    """Symbolic id named by a reference token."""
    return token[len(REFERENCE_PREFIX) :]


@dataclass
class SymbolTable:
    """
    Maps symbolic content ids to the entities created for them.

    Also keeps the content type of each symbol, for reporting.
    """

    entities: dict[str, EntityRef] = field(default_factory=dict)
    types: dict[str, str] = field(default_factory=dict)

    def add(self, content_id: str, ref: EntityRef, content_type: str) -> None:
        """Register an entity, rejecting duplicate ids."""
        if content_id in self.entities:
            raise ContentKitError(
                f"Duplicate content id '{content_id}' (already bound to {self.entities[content_id].render()})"
            )
        self.entities[content_id] = ref
        self.types[content_id] = content_type

    def get(self, content_id: str) -> EntityRef | None:
        return self.entities.get(content_id)

    def __contains__(self, content_id: object) -> bool:
        return content_id in self.entities

    def __len__(self) -> int:
        return len(self.entities)


class ReferenceResolver:
    """Resolves reference tokens for one content field against a symbol table."""

    def __init__(self, symbols: SymbolTable):
        self.symbols = symbols

    def resolve(
        self, tokens: list[str], content_id: str, field_name: str
    ) -> tuple[list[tuple[str, EntityRef]], list[ImportWarning]]:
        """
        Resolve tokens in document order.

        Args:
            tokens: ``@<id>`` tokens from one field
            content_id: Symbolic id of the item owning the field
            field_name: Field machine name

        Returns:
            Resolved (token, entity) pairs, and one warning per unresolved token
        """
        resolved: list[tuple[str, EntityRef]] = []
        warnings: list[ImportWarning] = []
        for token in tokens:
            ref = self.symbols.get(token_id(token))
            if ref is None:
                warnings.append(unresolved_reference_warning(content_id, field_name, token))
            else:
                resolved.append((token, ref))
        return resolved, warnings
