"""Tests for property tables and placeholder expansion."""

import logging

import pytest

from pomtree.errors import PropertyCycle
from pomtree.properties import PropertyTable, is_identity_key, is_placeholder


class TestPropertyTable:
    """Tests for PropertyTable."""

    def test_resolve_plain_value(self):
        assert PropertyTable().resolve("1.0") == "1.0"

    def test_resolve_strips_whitespace(self):
        assert PropertyTable({'v': '2'}).resolve("  ${v} ") == "2"

    def test_resolve_whole_placeholder(self):
        table = PropertyTable({'lib.version': '3.2.1'})
        assert table.resolve("${lib.version}") == "3.2.1"

    def test_resolve_is_recursive(self):
        """A property value may itself be a placeholder."""
        table = PropertyTable({'a': '${b}', 'b': '${c}', 'c': '7'})
        assert table.resolve("${a}") == "7"

    def test_resolve_embedded_placeholders(self):
        table = PropertyTable({'major': '2', 'minor': '5'})
        assert table.resolve("${major}.${minor}-SNAPSHOT") == "2.5-SNAPSHOT"

    def test_missing_key_uses_fallback(self):
        assert PropertyTable().resolve("${nope}", lambda: "default") == "default"

    def test_missing_key_without_fallback_is_none(self):
        assert PropertyTable().resolve("${nope}") is None

    def test_absent_raw_uses_fallback(self):
        assert PropertyTable().resolve(None, lambda: "jar") == "jar"
        assert PropertyTable().resolve("   ", lambda: "jar") == "jar"

    def test_fallback_only_called_when_needed(self):
        calls = []

        def fallback():
            calls.append(1)
            return "x"

        PropertyTable({'a': '1'}).resolve("${a}", fallback)
        assert calls == []

    def test_cycle_falls_back_with_warning(self, caplog):
        """Self-referential chains terminate and fall back instead of recursing."""
        table = PropertyTable({'a': '${b}', 'b': '${a}'})

        with caplog.at_level(logging.WARNING, logger="pomtree.properties"):
            result = table.resolve("${a}", lambda: "fallback")

        assert result == "fallback"
        assert "Property cycle" in caplog.text

    def test_expand_raises_on_cycle(self):
        table = PropertyTable({'a': '${a}'})
        with pytest.raises(PropertyCycle) as excinfo:
            table.expand("${a}")
        assert excinfo.value.chain == ['a', 'a']

    def test_expand_raises_key_error_for_undefined(self):
        with pytest.raises(KeyError):
            PropertyTable().expand("${missing}")

    def test_overlay_returns_new_table(self):
        """Overlay never mutates; the overlaid values win."""
        base = PropertyTable({'a': '1', 'b': '2'})
        merged = base.overlay({'b': '3', 'c': '4'})

        assert dict(base) == {'a': '1', 'b': '2'}
        assert dict(merged) == {'a': '1', 'b': '3', 'c': '4'}

    def test_overlay_with_nothing_is_identity(self):
        base = PropertyTable({'a': '1'})
        assert base.overlay({}) is base

    def test_without_filters_keys(self):
        table = PropertyTable({'project.version': '1', 'spring.version': '5'})
        assert dict(table.without(is_identity_key)) == {'spring.version': '5'}

    def test_is_a_mapping(self):
        table = PropertyTable({'a': '1'})
        assert 'a' in table
        assert table.get('b') is None
        assert len(table) == 1


class TestHelpers:

    def test_is_placeholder(self):
        assert is_placeholder("${x}")
        assert is_placeholder("pre-${x}")
        assert not is_placeholder("1.0")
        assert not is_placeholder(None)
        assert not is_placeholder("")

    def test_is_identity_key(self):
        assert is_identity_key("project.groupId")
        assert is_identity_key("project.parent.version")
        assert not is_identity_key("projectName")
