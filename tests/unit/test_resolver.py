"""
Unit tests for the symbol table and reference resolution.
"""

import pytest

from contentkit.core.errors import ContentKitError, WarningKind
from contentkit.core.ir import EntityRef
from contentkit.core.resolver import (
    ReferenceResolver,
    SymbolTable,
    is_reference_token,
    token_id,
)


@pytest.fixture
def symbols() -> SymbolTable:
    table = SymbolTable()
    table.add("d1", EntityRef(kind="paragraph", bundle="event_detail", id=1, revision_id=1), "paragraph.event_detail")
    table.add("e1", EntityRef(kind="node", bundle="event", id=1), "node.event")
    return table


class TestTokens:
    """Tests for reference token recognition."""

    @pytest.mark.parametrize("value", ["@d1", "@a-b"])
    def test_tokens(self, value):
        assert is_reference_token(value)

    @pytest.mark.parametrize("value", ["@", "d1", "", None, 5, ["@d1"]])
    def test_not_tokens(self, value):
        assert not is_reference_token(value)

    def test_token_id(self):
        assert token_id("@d1") == "d1"


class TestSymbolTable:
    """Tests for symbol registration."""

    def test_lookup(self, symbols):
        assert symbols.get("e1").render() == "node:1"
        assert "d1" in symbols
        assert "zz" not in symbols
        assert len(symbols) == 2
        assert symbols.types["d1"] == "paragraph.event_detail"

    def test_duplicate_rejected(self, symbols):
        with pytest.raises(ContentKitError, match="Duplicate content id 'e1'"):
            symbols.add("e1", EntityRef(kind="node", bundle="event", id=9), "node.event")


class TestReferenceResolver:
    """Tests for resolving tokens of one field."""

    def test_resolves_in_order(self, symbols):
        resolved, warnings = ReferenceResolver(symbols).resolve(["@e1", "@d1"], "x", "related")

        assert [token for token, _ in resolved] == ["@e1", "@d1"]
        assert resolved[1][1].revision_id == 1
        assert warnings == []

    def test_unresolved_token_warns(self, symbols):
        resolved, warnings = ReferenceResolver(symbols).resolve(
            ["@d1", "@missing"], "e1", "details"
        )

        assert len(resolved) == 1
        assert len(warnings) == 1
        assert warnings[0].kind == WarningKind.UNRESOLVED_REFERENCE
        assert warnings[0].render() == (
            "Unresolved reference: @missing in field 'details' of content 'e1' could not be resolved"
        )
