"""OAuth authorization server discovery primitive.

Finds where an MCP endpoint's authorization server publishes its metadata,
then fetches that metadata. Resolution tries, in order and stopping at the
first success:

1. The ``resource`` parameter of the endpoint's ``WWW-Authenticate`` challenge
2. ``<origin>/.well-known/oauth-authorization-server`` (RFC 8414)
3. ``<origin>/.well-known/openid-configuration`` (OpenID Connect Discovery)
"""

from __future__ import annotations

import json
import logging
import re
from urllib.parse import urljoin, urlparse

import httpx
from pydantic import ValidationError

from toolgate.auth.client.models.discovery import (
    DiscoveryDescriptor,
    DiscoverySource,
    IssuerMetadata,
    ProtectedResourceMetadata,
)
from toolgate.auth.client.models.errors import DiscoveryError, IssuerError

logger = logging.getLogger(__name__)

OAUTH_METADATA_PATH = "/.well-known/oauth-authorization-server"
OIDC_METADATA_PATH = "/.well-known/openid-configuration"

# resource="url", resource=url, or the RFC 9728 resource_metadata variants
_RESOURCE_PARAM = re.compile(
    r'(?:^|[\s,])resource(?:_metadata)?=(?:"([^"]+)"|([^\s,]+))'
)


class OAuth2Discovery:
    """Resolves discovery URLs and fetches issuer metadata for an endpoint."""

    def __init__(
        self, timeout: float | None = 30.0, http_client: httpx.AsyncClient | None = None
    ):
        """Initialize OAuth discovery.

        Args:
            timeout: HTTP request timeout in seconds, None for no timeout
            http_client: Optional pre-configured client (tests inject one)
        """
        self.timeout = timeout
        self._http_client = http_client or httpx.AsyncClient(
            timeout=timeout, follow_redirects=True
        )

    async def resolve_discovery_url(self, endpoint_url: str) -> DiscoveryDescriptor:
        """Find where OAuth metadata for ``endpoint_url`` can be fetched.

        Raises:
            DiscoveryError: If all three strategies fail
        """
        resource_url = await self._read_www_authenticate(endpoint_url)
        if resource_url:
            logger.info("Found resource metadata URL in WWW-Authenticate header")
            return DiscoveryDescriptor(
                url=resource_url, source=DiscoverySource.WWW_AUTHENTICATE
            )

        origin = self._origin(endpoint_url)
        fallbacks = [
            (OAUTH_METADATA_PATH, DiscoverySource.OAUTH_AUTHORIZATION_SERVER),
            (OIDC_METADATA_PATH, DiscoverySource.OPENID_CONFIGURATION),
        ]
        for path, source in fallbacks:
            url = urljoin(origin, path)
            logger.info(f"Trying discovery endpoint: {url}")
            if await self._is_reachable(url):
                logger.info(f"Found discovery endpoint: {url}")
                return DiscoveryDescriptor(url=url, source=source)

        raise DiscoveryError(
            "Could not find OAuth Authorization Server Metadata or OpenID Connect "
            f"Discovery endpoint for {endpoint_url}"
        )

    async def fetch_issuer_metadata(
        self, descriptor: DiscoveryDescriptor
    ) -> IssuerMetadata:
        """Fetch and parse the issuer metadata a descriptor points at.

        A protected resource metadata document is followed to its first
        authorization server.

        Raises:
            IssuerError: If metadata is unreachable or malformed
        """
        document = await self._fetch_metadata_document(descriptor.url)

        if "authorization_endpoint" not in document and "authorization_servers" in document:
            try:
                prm = ProtectedResourceMetadata.model_validate(document)
            except ValidationError as e:
                raise IssuerError(
                    f"Invalid protected resource metadata from {descriptor.url}: {e}"
                ) from e
            auth_server_url = prm.authorization_servers[0]
            logger.debug(
                f"Following protected resource metadata to {auth_server_url}"
            )
            document = await self._fetch_metadata_document(auth_server_url)

        try:
            metadata = IssuerMetadata.model_validate(document)
        except ValidationError as e:
            raise IssuerError(
                f"Invalid issuer metadata from {descriptor.url}: {e}"
            ) from e

        if not metadata.supports_s256():
            logger.warning(
                f"Authorization server {metadata.issuer} does not advertise S256 PKCE"
            )

        logger.info(f"Discovered issuer: {metadata.issuer}")
        return metadata

    async def close(self) -> None:
        """Close the HTTP client."""
        await self._http_client.aclose()

    async def _read_www_authenticate(self, endpoint_url: str) -> str | None:
        """Issue an unauthenticated GET and read only its challenge header.

        The response body is never read, so streaming (SSE) endpoints do not
        block the request.
        """
        try:
            async with self._http_client.stream("GET", endpoint_url) as response:
                www_auth = response.headers.get("WWW-Authenticate")
        except httpx.HTTPError as e:
            logger.warning(
                f"Could not get resource metadata from WWW-Authenticate header: {e}"
            )
            return None

        logger.debug(f"WWW-Authenticate header: {www_auth}")
        return extract_resource_from_www_auth(www_auth)

    async def _is_reachable(self, url: str) -> bool:
        try:
            response = await self._http_client.get(url, follow_redirects=True)
        except httpx.HTTPError as e:
            logger.debug(f"Discovery request failed for {url}: {e}")
            return False
        return response.is_success

    async def _fetch_metadata_document(self, url: str) -> dict:
        """Fetch a metadata document, trying well-known candidates for bare issuers."""
        candidates = (
            [url] if "/.well-known/" in urlparse(url).path else build_discovery_urls(url)
        )

        failures = []
        for candidate in candidates:
            try:
                logger.debug(f"Fetching issuer metadata from: {candidate}")
                response = await self._http_client.get(
                    candidate, follow_redirects=True
                )
            except httpx.HTTPError as e:
                failures.append(f"{candidate}: {e}")
                continue

            if not response.is_success:
                failures.append(f"{candidate}: HTTP {response.status_code}")
                continue

            try:
                document = response.json()
            except json.JSONDecodeError as e:
                raise IssuerError(f"Issuer metadata from {candidate} is not JSON") from e

            if not isinstance(document, dict):
                raise IssuerError(f"Issuer metadata from {candidate} is not an object")
            return document

        raise IssuerError(
            f"Failed to fetch issuer metadata for {url}. Tried: {'; '.join(failures)}"
        )

    @staticmethod
    def _origin(url: str) -> str:
        parsed = urlparse(url)
        if not parsed.scheme or not parsed.netloc:
            raise DiscoveryError(f"Not an absolute URL: {url}")
        return f"{parsed.scheme}://{parsed.netloc}"


def extract_resource_from_www_auth(www_auth_header: str | None) -> str | None:
    """Extract the metadata URL from a ``WWW-Authenticate`` header value.

    Accepts quoted or unquoted ``resource`` and ``resource_metadata``
    parameters.
    """
    if not www_auth_header:
        return None

    match = _RESOURCE_PARAM.search(www_auth_header)
    if match:
        # Return quoted value if present, otherwise unquoted value
        return match.group(1) or match.group(2)

    return None


def build_discovery_urls(issuer_url: str) -> list[str]:
    """Build ordered list of metadata URLs to try for a bare issuer URL.

    RFC 8414 Section 3: Path-aware discovery should be tried first,
    then fallback to root discovery.
    """
    parsed = urlparse(issuer_url)
    base_url = f"{parsed.scheme}://{parsed.netloc}"
    path = parsed.path.rstrip("/")
    urls = []

    if path:
        urls.append(urljoin(base_url, f"{OAUTH_METADATA_PATH}{path}"))
    urls.append(urljoin(base_url, OAUTH_METADATA_PATH))

    # OIDC discovery fallback (many servers support this)
    if path:
        urls.append(urljoin(base_url, f"{OIDC_METADATA_PATH}{path}"))
        urls.append(f"{base_url}{path}{OIDC_METADATA_PATH}")
    urls.append(urljoin(base_url, OIDC_METADATA_PATH))

    return urls
