"""JSON/YAML parsing of Castle metadata text."""

import json
from typing import Any, Optional

import structlog
import yaml

from castle_metadata.errors import MetadataParseError

logger = structlog.get_logger(__name__)

# Errors PyYAML can raise on hostile input besides YAMLError: bad dates and
# other scalar constructors raise ValueError, deep nesting raises RecursionError.
YAML_ERRORS = (yaml.YAMLError, ValueError, RecursionError)


class MetadataLoader(yaml.SafeLoader):
    """Safe YAML loader that keeps dates as plain strings."""


MetadataLoader.yaml_implicit_resolvers = {
    first: [(tag, regexp) for tag, regexp in resolvers if tag != "tag:yaml.org,2002:timestamp"]
    for first, resolvers in yaml.SafeLoader.yaml_implicit_resolvers.items()
}


def parse_castle_data(text: str, format_hint: Optional[str] = None) -> Optional[dict[str, Any]]:
    """Parse metadata text according to a format hint.

    - ``"json"``: strict JSON; failures raise, since the author declared the format.
    - ``"yaml"``: YAML; failures are logged and yield None.
    - no hint: JSON, then YAML, keeping only mapping results. Never raises.

    Args:
        text: Metadata text
        format_hint: "json", "yaml", or None

    Returns:
        Parsed metadata mapping with string keys and JSON-compatible values,
        or None if nothing usable was found

    Raises:
        MetadataParseError: If JSON was explicitly requested and the text is not JSON
    """
    if format_hint == "json":
        return _as_mapping(parse_json_castle_data(text), format_hint)

    if format_hint == "yaml":
        try:
            return _as_mapping(parse_yaml_castle_data(text), format_hint)
        except YAML_ERRORS as e:
            logger.error("Failed to parse YAML", error=str(e) or type(e).__name__)
            return None

    if format_hint is not None:
        logger.debug("Unknown metadata format, guessing", format_hint=format_hint)

    try:
        return _as_mapping(parse_json_castle_data(text), "json")
    except MetadataParseError:
        pass

    try:
        result = parse_yaml_castle_data(text)
    except YAML_ERRORS:
        return None

    if isinstance(result, dict):
        return _as_mapping(result, "yaml")
    return None


def parse_json_castle_data(text: str) -> Any:
    """Parse JSON text.

    Raises:
        MetadataParseError: If the text is not valid JSON or nests too deeply
    """
    try:
        return json.loads(text)
    except json.JSONDecodeError as e:
        raise MetadataParseError(f"Invalid JSON metadata: {e}") from e
    except RecursionError as e:
        raise MetadataParseError("Invalid JSON metadata: nested too deeply") from e


def parse_yaml_castle_data(text: str) -> Any:
    """Parse YAML text with the safe loader, leaving dates as strings."""
    return yaml.load(text, Loader=MetadataLoader)


def _as_mapping(result: Any, format_hint: str) -> Optional[dict[str, Any]]:
    if result is None:
        return None
    if isinstance(result, dict):
        try:
            return _json_compatible(result)
        except RecursionError:
            logger.warning("Metadata is nested too deeply, ignoring it", format_hint=format_hint)
            return None
    logger.warning(
        "Metadata is not a mapping, ignoring it",
        format_hint=format_hint,
        value_type=type(result).__name__,
    )
    return None


def _json_compatible(value: Any) -> Any:
    """Coerce YAML-only shapes into JSON ones: string keys, lists, scalars."""
    if isinstance(value, dict):
        converted = {}
        for key, item in value.items():
            if not isinstance(key, str):
                logger.debug("Stringifying non-string metadata key", key=repr(key))
                key = json.dumps(key) if isinstance(key, (bool, int, float)) or key is None else str(key)
            converted[key] = _json_compatible(item)
        return converted
    if isinstance(value, (list, tuple, set, frozenset)):
        return [_json_compatible(item) for item in value]
    if value is None or isinstance(value, (str, bool, int, float)):
        return value
    if isinstance(value, bytes):
        return value.decode("utf-8", errors="replace")
    return str(value)
