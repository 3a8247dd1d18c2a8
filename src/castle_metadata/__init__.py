"""castle-metadata - resolve package metadata for Castle games from a URL."""

__version__ = "0.1.0"

from castle_metadata.errors import (  # noqa: E402
    CastleMetadataError,
    MetadataError,
    MetadataParseError,
)
from castle_metadata.models.metadata import ResolvedMetadata  # noqa: E402
from castle_metadata.resolver import MetadataResolver, resolve_metadata  # noqa: E402

__all__ = [
    "__version__",
    "CastleMetadataError",
    "MetadataError",
    "MetadataParseError",
    "MetadataResolver",
    "ResolvedMetadata",
    "resolve_metadata",
]
