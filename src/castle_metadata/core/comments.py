"""Extraction of metadata embedded in the leading comments of Lua source.

Rules for source files:

- A ``#!`` interpreter line at the top of the file is ignored.
- Only comments that come before any code are considered.
- If one of them starts with a line that is ``#castle`` or
  ``#castle/{format}``, the rest of that comment is the metadata.
- Otherwise the first leading comment is assumed to be the metadata, in an
  unknown format.
- If there are no leading comments, the file has no metadata.
"""

import re
from typing import Iterator, Optional

import structlog

from castle_metadata.errors import LuaSyntaxError
from castle_metadata.models.metadata import RawMetadataBlock

logger = structlog.get_logger(__name__)

MARKER_PATTERN = re.compile(r"^#castle(?:/([a-zA-Z0-9_\-]+))?$")

_WHITESPACE = " \t\n\r\f\v"
_LINE_BREAKS = re.compile(r"[\n\r]")


def extract_metadata_block(source: str) -> RawMetadataBlock:
    """Find the metadata block in a Lua source file.

    Args:
        source: Lua source code

    Returns:
        RawMetadataBlock; ``has_metadata`` is False when there is nothing to parse
    """
    first_comment: Optional[str] = None

    try:
        for value in iter_leading_comments(source):
            first_line = _LINE_BREAKS.split(value, 1)[0]
            if match := MARKER_PATTERN.match(first_line.strip()):
                format_hint = match.group(1)
                logger.debug("Found marked metadata comment", format_hint=format_hint)
                return RawMetadataBlock(
                    has_metadata=True,
                    text=value[len(first_line):],
                    format_hint=format_hint,
                )
            if not first_comment:
                first_comment = value
    except LuaSyntaxError as e:
        logger.warning("Problem parsing Lua source code", error=str(e))

    if first_comment:
        return RawMetadataBlock(has_metadata=True, text=first_comment, format_hint=None)

    return RawMetadataBlock()


def iter_leading_comments(source: str) -> Iterator[str]:
    """Yield the value of each comment that appears before the first token of code.

    Line comment values are the text after ``--``; long comment values are
    the text between the brackets, without a newline directly after the
    opening bracket.

    Raises:
        LuaSyntaxError: On an unterminated long comment
    """
    pos = 0
    line = 1
    length = len(source)

    if source.startswith("\ufeff"):
        pos = 1
    if source.startswith("#", pos):
        pos = _end_of_line(source, pos)

    while True:
        while pos < length and source[pos] in _WHITESPACE:
            if source[pos] == "\n":
                line += 1
            pos += 1

        if not source.startswith("--", pos):
            return
        pos += 2

        level = _long_bracket_level(source, pos)
        if level is None:
            end = _end_of_line(source, pos)
            yield source[pos:end]
            pos = end
            continue

        start = pos + level + 2
        closing = "]" + "=" * level + "]"
        end = source.find(closing, start)
        if end == -1:
            raise LuaSyntaxError("unfinished long comment", line)

        value = source[start:end]
        if value.startswith("\r\n") or value.startswith("\n\r"):
            value = value[2:]
        elif value[:1] in ("\n", "\r"):
            value = value[1:]

        line += source.count("\n", pos, end)
        pos = end + len(closing)
        yield value


def _long_bracket_level(source: str, pos: int) -> Optional[int]:
    """Return the level of a ``[==[`` opening bracket at pos, or None."""
    if not source.startswith("[", pos):
        return None
    level = 0
    pos += 1
    while source.startswith("=", pos):
        level += 1
        pos += 1
    if source.startswith("[", pos):
        return level
    return None


def _end_of_line(source: str, pos: int) -> int:
    match = _LINE_BREAKS.search(source, pos)
    return match.start() if match else len(source)
