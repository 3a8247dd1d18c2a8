"""Request and fetched-resource models."""

from dataclasses import dataclass, field
from typing import Optional
from urllib.parse import urlparse


@dataclass(frozen=True)
class ResolutionRequest:
    """A single metadata resolution request from an untrusted caller."""

    url: str
    allow_private_urls: bool = False
    include_source_code: bool = False


@dataclass(frozen=True)
class FetchedResource:
    """Response captured from the single GET issued for a request."""

    url: str
    content_type: str
    body: str
    headers: tuple[tuple[str, str], ...] = field(default_factory=tuple)  # lower-cased names
    status_code: Optional[int] = None

    @property
    def short_content_type(self) -> str:
        """Content type without parameters (``text/lua; charset=utf-8`` -> ``text/lua``)."""
        return self.content_type.split(";", 1)[0].strip().lower()

    @property
    def path(self) -> str:
        """Path component of the URL, used for suffix-based negotiation."""
        return urlparse(self.url).path

    def __str__(self) -> str:
        """Human-readable representation."""
        return f"{self.url} ({self.short_content_type or 'no content-type'}, {len(self.body)} chars)"
