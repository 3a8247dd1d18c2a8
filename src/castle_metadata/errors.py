"""Exception hierarchy for castle-metadata."""


class CastleMetadataError(Exception):
    """Base exception for castle-metadata errors."""

    pass


class MetadataError(CastleMetadataError):
    """Metadata policy violation.

    Raised when resolution would cross the public/private boundary. These are
    client errors: the caller asked for something that is not allowed.
    """

    type = "CLIENT_ERROR"
    code = "METADATA_ERROR"


class MetadataParseError(CastleMetadataError, ValueError):
    """Metadata explicitly marked as JSON could not be parsed."""

    pass


class LuaSyntaxError(CastleMetadataError):
    """Lua source could not be tokenized."""

    def __init__(self, message: str, line: int):
        super().__init__(f"[{line}] {message}")
        self.line = line
