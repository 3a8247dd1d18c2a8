"""Metadata models."""

from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Mapping, Optional

INTERNAL_KEY_PREFIX = "$__"


@dataclass(frozen=True)
class RawMetadataBlock:
    """Metadata text found in the leading comments of a source file."""

    has_metadata: bool = False
    text: Optional[str] = None
    format_hint: Optional[str] = None  # "json", "yaml", or None for the cascade


@dataclass(frozen=True)
class ResolvedMetadata:
    """Fully resolved metadata for a package URL.

    ``metadata`` holds the user-supplied keys (file content plus header
    overrides) as a read-only mapping. The remaining fields are computed
    during resolution and can never be set from fetched content.
    """

    metadata: Mapping[str, Any]
    requested_from_url: str
    requested_url_is_also_main_entry_point: bool
    main_url: str
    url_is_public: bool
    main_url_is_public: bool
    canonical_url: Optional[str] = None
    source_code: Optional[str] = None

    def __post_init__(self):
        if not isinstance(self.metadata, MappingProxyType):
            object.__setattr__(self, "metadata", MappingProxyType(dict(self.metadata)))

    @property
    def name(self) -> Optional[str]:
        return self.metadata.get("name")

    def get(self, key: str, default: Any = None) -> Any:
        return self.metadata.get(key, default)

    def to_dict(self) -> dict[str, Any]:
        """Render the flat mapping consumed by API layers.

        Computed fields use the reserved ``$__`` prefix so they cannot be
        confused with user metadata.
        """
        result = dict(self.metadata)
        result[f"{INTERNAL_KEY_PREFIX}requestedFromUrl"] = self.requested_from_url
        result[f"{INTERNAL_KEY_PREFIX}requestedUrlIsAlsoMainEntryPoint"] = (
            self.requested_url_is_also_main_entry_point
        )
        result[f"{INTERNAL_KEY_PREFIX}mainUrl"] = self.main_url
        result[f"{INTERNAL_KEY_PREFIX}urlIsPublic"] = self.url_is_public
        result[f"{INTERNAL_KEY_PREFIX}mainUrlIsPublic"] = self.main_url_is_public
        if self.canonical_url is not None:
            result[f"{INTERNAL_KEY_PREFIX}canonicalUrl"] = self.canonical_url
        if self.source_code is not None:
            result[f"{INTERNAL_KEY_PREFIX}sourceCode"] = self.source_code
        return result

    def __str__(self) -> str:
        """Human-readable representation."""
        label = self.name or "Untitled"
        visibility = "public" if self.url_is_public else "private"
        return f"{label} <{self.main_url}> ({visibility})"
