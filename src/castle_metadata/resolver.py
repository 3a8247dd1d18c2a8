"""Metadata resolver that orchestrates fetching, parsing and assembly."""

from typing import Optional

import httpx
import structlog

from castle_metadata.config import Config
from castle_metadata.core.address import HostResolver, is_public_url, resolve_host
from castle_metadata.core.assembler import assemble
from castle_metadata.core.fetcher import dispatch, fetch_resource
from castle_metadata.errors import MetadataError
from castle_metadata.models.metadata import ResolvedMetadata
from castle_metadata.models.request import ResolutionRequest

logger = structlog.get_logger(__name__)


class MetadataResolver:
    """Resolves Castle package metadata for untrusted URLs."""

    def __init__(
        self,
        config: Optional[Config] = None,
        client: Optional[httpx.AsyncClient] = None,
        resolver: HostResolver = resolve_host,
    ):
        """Initialize metadata resolver.

        Args:
            config: Application configuration (defaults if None)
            client: HTTP client to borrow; one is created and owned if None
            resolver: Async hostname resolver used for address classification
        """
        self.config = config or Config.from_defaults()
        self.resolver = resolver
        self._owns_client = client is None
        # No timeout: callers bound the whole resolution themselves
        self.client = client or httpx.AsyncClient(
            timeout=None,
            follow_redirects=False,
            headers={"User-Agent": self.config.resolver.user_agent},
        )

    async def close(self):
        """Close the HTTP client if this resolver created it."""
        if self._owns_client:
            await self.client.aclose()

    async def __aenter__(self) -> "MetadataResolver":
        return self

    async def __aexit__(self, *exc_info):
        await self.close()

    async def resolve(
        self,
        url: str,
        allow_private_urls: Optional[bool] = None,
        include_source_code: Optional[bool] = None,
    ) -> ResolvedMetadata:
        """Resolve metadata for a URL.

        Args:
            url: Package URL from the caller
            allow_private_urls: Permit fetching a private URL (config default if None)
            include_source_code: Attach the body of self-hosting resources (config default if None)

        Returns:
            ResolvedMetadata

        Raises:
            MetadataError: On any public/private policy violation
            MetadataParseError: If explicitly JSON metadata is malformed
            socket.gaierror: If a hostname cannot be resolved
            httpx.HTTPError: If the fetch fails
        """
        request = ResolutionRequest(
            url=url,
            allow_private_urls=(
                self.config.resolver.allow_private_urls
                if allow_private_urls is None
                else allow_private_urls
            ),
            include_source_code=(
                self.config.resolver.include_source_code
                if include_source_code is None
                else include_source_code
            ),
        )
        return await self.resolve_request(request)

    async def resolve_request(self, request: ResolutionRequest) -> ResolvedMetadata:
        """Resolve metadata for a prepared request."""
        logger.debug(
            "Resolving metadata",
            url=request.url,
            allow_private_urls=request.allow_private_urls,
        )

        url_is_public = await is_public_url(request.url, self.resolver)
        if not url_is_public and not request.allow_private_urls:
            logger.warning("Refusing to fetch private URL", url=request.url)
            raise MetadataError("Not a public URL; won't get metadata for it")

        resource = await fetch_resource(request.url, self.client)
        parsed, self_hosting = dispatch(resource)

        return await assemble(
            parsed,
            resource,
            request,
            self_hosting,
            resolver=self.resolver,
        )


async def resolve_metadata(
    url: str,
    *,
    allow_private_urls: bool = False,
    include_source_code: bool = False,
    client: Optional[httpx.AsyncClient] = None,
) -> ResolvedMetadata:
    """Resolve metadata for a URL with a one-off resolver.

    Args:
        url: Package URL from the caller
        allow_private_urls: Permit fetching a private URL
        include_source_code: Attach the body of self-hosting resources
        client: Optional HTTP client to reuse

    Returns:
        ResolvedMetadata
    """
    async with MetadataResolver(client=client) as resolver:
        return await resolver.resolve(
            url,
            allow_private_urls=allow_private_urls,
            include_source_code=include_source_code,
        )
