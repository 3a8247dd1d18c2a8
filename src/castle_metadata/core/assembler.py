"""Assembly of resolved metadata from parsed content and fetch context."""

from typing import Any, Mapping
from urllib.parse import urljoin

import structlog

from castle_metadata.core.address import HostResolver, is_public_url, resolve_host
from castle_metadata.errors import MetadataError
from castle_metadata.models.metadata import INTERNAL_KEY_PREFIX, ResolvedMetadata
from castle_metadata.models.request import FetchedResource, ResolutionRequest

logger = structlog.get_logger(__name__)

HEADER_PREFIX = "x-castle-"
DEFAULT_MAIN = "main.lua"


def key_name_for_header(header: str) -> str:
    """Convert an ``X-Castle-*`` header name to a metadata key.

    ``x-castle-canonical-url`` becomes ``canonicalUrl``. Dashes capitalize the
    next character, dots are dropped, and a slash cancels a pending
    capitalization.

    Args:
        header: Header name, with or without the ``x-castle-`` prefix

    Returns:
        camelCase key name
    """
    name = header.lower()
    if name.startswith(HEADER_PREFIX):
        name = name[len(HEADER_PREFIX):]

    key = ""
    cap_next = False
    for c in name:
        if c == "-":
            cap_next = True
        elif c == ".":
            continue
        elif c == "/":
            cap_next = False
        else:
            key += c.upper() if cap_next else c
            cap_next = False
    return key


def header_metadata(headers: tuple[tuple[str, str], ...]) -> dict[str, str]:
    """Collect metadata overrides from ``X-Castle-*`` response headers."""
    metadata = {}
    for name, value in headers:
        if name.lower().startswith(HEADER_PREFIX):
            metadata[key_name_for_header(name)] = value
    return metadata


def strip_internal_keys(metadata: Mapping[Any, Any]) -> dict[Any, Any]:
    """Drop keys using the reserved ``$__`` prefix.

    Those names belong to computed fields; letting fetched content set them
    would at best be confusing.
    """
    cleaned = {}
    for key, value in metadata.items():
        if isinstance(key, str) and key.startswith(INTERNAL_KEY_PREFIX):
            logger.warning("Got a reserved key in metadata, discarding it", key=key)
            continue
        cleaned[key] = value
    return cleaned


async def assemble(
    parsed: Mapping[Any, Any],
    resource: FetchedResource,
    request: ResolutionRequest,
    self_hosting: bool,
    resolver: HostResolver = resolve_host,
) -> ResolvedMetadata:
    """Build the resolved metadata for a fetched resource.

    Args:
        parsed: Metadata parsed from the body (not modified)
        resource: The fetched resource
        request: Original request
        self_hosting: Whether the body is itself the entry point
        resolver: Async hostname resolver for classifying derived URLs

    Returns:
        ResolvedMetadata

    Raises:
        MetadataError: If a public URL points at a private main URL, or the
            declared canonical URL is not public
    """
    # TODO: decide whether X-Castle-* headers or file metadata should take precedence
    metadata = dict(parsed)
    metadata.update(header_metadata(resource.headers))
    metadata = strip_internal_keys(metadata)

    requested_from_url = request.url
    source_code = None

    if self_hosting:
        main_url = requested_from_url
        if request.include_source_code:
            source_code = resource.body
    else:
        main = metadata.get("main")
        main_url = urljoin(requested_from_url, str(main) if main else DEFAULT_MAIN)

    url_is_public = await is_public_url(requested_from_url, resolver)
    main_url_is_public = await is_public_url(main_url, resolver)
    if url_is_public and not main_url_is_public:
        raise MetadataError("Cannot have a private URL be the main URL for a public URL")

    canonical_url = None
    if declared := metadata.get("canonicalUrl"):
        canonical_url = str(declared)
        if not await is_public_url(canonical_url, resolver):
            raise MetadataError("Canonical URL must be a public URL")
    elif url_is_public:
        canonical_url = requested_from_url

    resolved = ResolvedMetadata(
        metadata=metadata,
        requested_from_url=requested_from_url,
        requested_url_is_also_main_entry_point=self_hosting,
        main_url=main_url,
        url_is_public=url_is_public,
        main_url_is_public=main_url_is_public,
        canonical_url=canonical_url,
        source_code=source_code,
    )

    logger.info(
        "Assembled metadata",
        url=requested_from_url,
        main_url=main_url,
        self_hosting=self_hosting,
        url_is_public=url_is_public,
        main_url_is_public=main_url_is_public,
        canonical_url=canonical_url,
    )
    return resolved
