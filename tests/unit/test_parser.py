"""Unit tests for the JSON/YAML metadata parser."""

import json

import pytest

from castle_metadata.core.parser import (
    parse_castle_data,
    parse_json_castle_data,
    parse_yaml_castle_data,
)
from castle_metadata.errors import MetadataParseError


class TestJsonHint:
    """Explicit JSON metadata."""

    def test_valid_json(self):
        """Valid JSON is returned as a mapping."""
        assert parse_castle_data('{"name": "Explicit JSON Game"}', "json") == {
            "name": "Explicit JSON Game"
        }

    def test_invalid_json_raises(self):
        """Invalid JSON is an error when JSON was declared."""
        with pytest.raises(MetadataParseError, match="Invalid JSON metadata"):
            parse_castle_data("name: Not JSON", "json")

    def test_parse_error_is_value_error(self):
        """Parse errors can be caught as ValueError."""
        with pytest.raises(ValueError):
            parse_json_castle_data("{")

    def test_non_mapping_json_is_ignored(self):
        """A JSON array is not metadata."""
        assert parse_castle_data("[1, 2, 3]", "json") is None


class TestYamlHint:
    """Explicit YAML metadata."""

    def test_valid_yaml(self):
        """YAML mappings are returned in document order."""
        result = parse_castle_data("name: Game\nmain: src/main.lua\n", "yaml")

        assert result == {"name": "Game", "main": "src/main.lua"}
        assert list(result) == ["name", "main"]

    def test_invalid_yaml_is_none(self):
        """Invalid YAML is logged and yields None."""
        assert parse_castle_data("name: [unclosed", "yaml") is None

    def test_empty_yaml_is_none(self):
        """An empty document has no metadata."""
        assert parse_castle_data("", "yaml") is None

    def test_yaml_is_safe_loaded(self):
        """Python-specific tags are rejected rather than executed."""
        assert parse_castle_data("!!python/object/apply:os.system ['true']", "yaml") is None


class TestBlindCascade:
    """Metadata of unknown format."""

    def test_json_first(self):
        """JSON text is parsed as JSON."""
        assert parse_castle_data('{"name": "Blind"}') == {"name": "Blind"}

    def test_yaml_after_json_fails(self):
        """YAML is tried when JSON fails."""
        assert parse_castle_data("\nname: My Game\n") == {"name": "My Game"}

    def test_yaml_scalar_is_discarded(self):
        """Plain text parses as a YAML string, which is not metadata."""
        assert parse_castle_data(" Just a regular comment") is None

    def test_both_fail(self):
        """Text that is neither JSON nor YAML yields None without raising."""
        assert parse_castle_data("{ invalid: [") is None

    def test_json_scalar_is_discarded(self):
        """A bare JSON number is not metadata."""
        assert parse_castle_data("42") is None

    def test_unknown_hint_uses_cascade(self):
        """Unrecognized format tags fall back to guessing."""
        assert parse_castle_data("name: Toml-ish", "toml") == {"name": "Toml-ish"}

    def test_unknown_hint_never_raises(self):
        """Guessing never raises, even for broken text."""
        assert parse_castle_data("{ broken", "toml") is None


def test_parse_yaml_castle_data_returns_raw_value():
    """The YAML helper returns whatever the document holds."""
    assert parse_yaml_castle_data("- a\n- b\n") == ["a", "b"]


class TestHostileInput:
    """Untrusted text that trips the parsers' own limits."""

    @pytest.mark.parametrize("text", ["name: Game\nreleased: 2020-13-45\n", "released: 2021-02-30"])
    def test_impossible_dates_blind(self, text):
        """Date-shaped values that are not real dates stay strings."""
        result = parse_castle_data(text)

        assert result["released"] in ("2020-13-45", "2021-02-30")

    def test_impossible_explicit_timestamp_yaml(self):
        """An explicitly tagged bad timestamp is logged, not raised."""
        assert parse_castle_data("released: !!timestamp 2020-13-45", "yaml") is None

    def test_impossible_explicit_timestamp_blind(self):
        """Guessing never raises on bad timestamps."""
        assert parse_castle_data("released: !!timestamp 2020-13-45") is None

    def test_deep_nesting_blind(self):
        """Deeply nested text yields None instead of overflowing the stack."""
        assert parse_castle_data("[" * 100000) is None

    def test_deep_nesting_yaml(self):
        """Deeply nested YAML is treated as unparseable."""
        assert parse_castle_data("a: " + "[" * 100000, "yaml") is None

    def test_deep_nesting_json_raises_parse_error(self):
        """Declared JSON that nests too deeply is a parse error."""
        with pytest.raises(MetadataParseError):
            parse_castle_data("[" * 100000 + "]" * 100000, "json")


class TestJsonCompatibility:
    """YAML results are reduced to JSON-compatible data."""

    def test_dates_stay_strings(self):
        """Unquoted dates are not turned into date objects."""
        result = parse_castle_data("released: 2020-01-01\nupdated: 2020-01-01 10:00:00\n", "yaml")

        assert result == {"released": "2020-01-01", "updated": "2020-01-01 10:00:00"}

    def test_non_string_keys(self):
        """Integer, boolean and null keys become their JSON spellings."""
        result = parse_castle_data("1: a\nyes: x\n~: n\n", "yaml")

        assert result == {"1": "a", "true": "x", "null": "n"}

    def test_nested_values(self):
        """Nested mappings and sets are converted too."""
        result = parse_castle_data("links:\n  2: two\ntags: !!set {a: null}\n")

        assert result == {"links": {"2": "two"}, "tags": ["a"]}

    def test_result_is_json_serializable(self):
        """Every parsed mapping can be dumped as JSON."""
        result = parse_castle_data("released: 2020-01-01\n1: a\ndata: !!binary aGk=\n", "yaml")

        assert json.loads(json.dumps(result)) == {"released": "2020-01-01", "1": "a", "data": "hi"}
