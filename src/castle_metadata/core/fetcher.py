"""Fetching of package URLs and content-type based dispatch."""

from typing import Any, Optional

import httpx
import structlog

from castle_metadata.core.comments import extract_metadata_block
from castle_metadata.core.parser import parse_castle_data
from castle_metadata.models.request import FetchedResource

logger = structlog.get_logger(__name__)

# content-type -> format hint for pure metadata documents
METADATA_CONTENT_TYPES: dict[str, Optional[str]] = {
    "app/castle": None,
    "app/castle+json": "json",
    "app/castle+yaml": "yaml",
}

SOURCE_CONTENT_TYPES = frozenset(
    {
        "app/castle+lua",
        "text/lua",
        "text/love2d",
        "app/castle+main",
        "app/castle+source",
    }
)

# Checked in order; only used when the content-type is not recognized
METADATA_SUFFIXES: tuple[tuple[str, Optional[str]], ...] = (
    (".castle", None),
    (".castle.json", "json"),
    (".castle.yaml", "yaml"),
)


async def fetch_resource(url: str, client: httpx.AsyncClient) -> FetchedResource:
    """Issue a single GET for a URL.

    There is no retry and no status handling: whatever body comes back is
    what gets parsed. Transport errors propagate to the caller.

    Args:
        url: URL that has already passed the public-address check
        client: HTTP client to use

    Returns:
        FetchedResource with the body decoded as text
    """
    response = await client.get(url)

    headers = tuple((name.lower(), value) for name, value in response.headers.multi_items())
    resource = FetchedResource(
        url=url,
        content_type=response.headers.get("content-type", ""),
        body=response.text,
        headers=headers,
        status_code=response.status_code,
    )

    logger.info(
        "Fetched resource",
        url=url,
        status_code=response.status_code,
        content_type=resource.short_content_type,
        size=len(resource.body),
    )
    return resource


def parse_source_file(source: str) -> Optional[dict[str, Any]]:
    """Parse the metadata embedded in a Lua source file, if any.

    Raises:
        MetadataParseError: If the comment is marked ``#castle/json`` but is not JSON
    """
    block = extract_metadata_block(source)
    if not block.has_metadata:
        logger.debug("No metadata in source file")
        return None
    return parse_castle_data(block.text, block.format_hint)


def dispatch(resource: FetchedResource) -> tuple[dict[str, Any], bool]:
    """Parse a fetched resource according to its content type.

    Args:
        resource: Fetched resource

    Returns:
        Tuple of (metadata, self_hosting). ``self_hosting`` is True when the
        body is itself the program's entry point. Metadata is never None.

    Raises:
        MetadataParseError: If explicitly JSON metadata is malformed
    """
    content_type = resource.short_content_type

    if content_type in METADATA_CONTENT_TYPES:
        format_hint = METADATA_CONTENT_TYPES[content_type]
        logger.debug("Dispatching by content type", content_type=content_type, format_hint=format_hint)
        return parse_castle_data(resource.body, format_hint) or {}, False

    if content_type not in SOURCE_CONTENT_TYPES:
        path = resource.path
        for suffix, format_hint in METADATA_SUFFIXES:
            if path.endswith(suffix):
                logger.debug("Dispatching by URL suffix", suffix=suffix, format_hint=format_hint)
                return parse_castle_data(resource.body, format_hint) or {}, False

    logger.debug("Treating resource as source code", content_type=content_type)
    return parse_source_file(resource.body) or {}, True
