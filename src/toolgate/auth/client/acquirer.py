"""PKCE access token acquisition for MCP endpoints.

Coordinates discovery, dynamic registration, PKCE, the browser redirect and
the code exchange into a single call:

    token_set = await acquire_token("https://mcp.atlassian.com/v1/sse")

One flow runs at a time per listener port. Nothing is retried and nothing is
persisted; storing the returned token set is up to the caller.
"""

from __future__ import annotations

import asyncio
import logging
import webbrowser
from collections.abc import Callable
from dataclasses import dataclass, field

from pydantic import ValidationError

from toolgate.auth.client.models.errors import RegistrationError
from toolgate.auth.client.models.flow import AuthorizationRequest
from toolgate.auth.client.models.registration import ClientMetadata
from toolgate.auth.client.models.tokens import TokenRequest, TokenSet
from toolgate.auth.client.primitives.discovery import OAuth2Discovery
from toolgate.auth.client.primitives.pkce import PKCEManager
from toolgate.auth.client.services.callback import CallbackListener
from toolgate.auth.client.services.registration import OAuth2Registration
from toolgate.auth.client.services.tokens import OAuth2TokenManager
from toolgate.config import DEFAULT_REDIRECT_URI, DEFAULT_SCOPE, AcquirerSettings

logger = logging.getLogger(__name__)


@dataclass
class AcquireOptions:
    """Per-call options for ``acquire_token``.

    ``from_env`` fills the defaults from ``OAUTH_*`` environment variables;
    the acquirer uses it when no options are passed.
    """

    redirect_uri: str = DEFAULT_REDIRECT_URI
    scope: str = DEFAULT_SCOPE
    open_browser: bool = True
    client_name: str = "MCP OAuth Client"
    # None waits for the user indefinitely
    callback_timeout: float | None = None
    on_authorization_url: Callable[[str], None] | None = field(
        default=None, repr=False
    )

    @classmethod
    def from_env(cls, **overrides) -> AcquireOptions:
        settings = AcquirerSettings.from_env()
        values = {
            "redirect_uri": settings.redirect_uri,
            "scope": settings.scope,
            "open_browser": settings.open_browser,
            "callback_timeout": settings.callback_timeout,
        }
        values.update(overrides)
        return cls(**values)


class PKCETokenAcquirer:
    """Runs the PKCE authorization code flow against an MCP endpoint.

    Service components can be injected; by default each gets its own HTTP
    client, released by ``close()``.
    """

    def __init__(
        self,
        discovery: OAuth2Discovery | None = None,
        registration: OAuth2Registration | None = None,
        token_manager: OAuth2TokenManager | None = None,
        pkce_manager: PKCEManager | None = None,
        browser_opener: Callable[[str], object] = webbrowser.open,
        timeout: float | None = 30.0,
    ):
        """Initialize the acquirer.

        Args:
            discovery: Discovery primitive
            registration: Dynamic client registration service
            token_manager: Token exchange service
            pkce_manager: PKCE pair generator
            browser_opener: Called with the authorization URL when
                ``open_browser`` is set
            timeout: HTTP request timeout for default services
        """
        self.discovery = discovery or OAuth2Discovery(timeout=timeout)
        self.registration = registration or OAuth2Registration(timeout=timeout)
        self.token_manager = token_manager or OAuth2TokenManager(timeout=timeout)
        self.pkce_manager = pkce_manager or PKCEManager()
        self._browser_opener = browser_opener

    async def acquire_token(
        self, endpoint_url: str, options: AcquireOptions | None = None
    ) -> TokenSet:
        """Acquire an access token for ``endpoint_url``.

        Raises:
            DiscoveryError: No metadata location found
            IssuerError: Metadata unreachable or malformed
            RegistrationError: Dynamic registration rejected
            ListenerError: Callback port could not be bound
            AuthorizationError: User denied, provider error, code missing,
                or (AuthorizationTimeoutError) the deadline passed
            TokenExchangeError: Token endpoint rejected the code
        """
        options = options or AcquireOptions.from_env()
        logger.info(f"Starting PKCE OAuth flow for: {endpoint_url}")

        # 1-2. Discovery
        descriptor = await self.discovery.resolve_discovery_url(endpoint_url)
        logger.info(f"Discovery URL: {descriptor.url} ({descriptor.source.value})")
        issuer = await self.discovery.fetch_issuer_metadata(descriptor)

        # 3. Dynamic client registration
        try:
            client_metadata = ClientMetadata(
                client_name=options.client_name,
                redirect_uris=[options.redirect_uri],
            )
        except ValidationError as e:
            raise RegistrationError(f"Invalid client metadata: {e}") from e
        registration = await self.registration.register_client(
            issuer.registration_endpoint, client_metadata
        )

        # 4-5. PKCE and authorization URL
        pkce = self.pkce_manager.generate_pair()
        authorization_url = AuthorizationRequest(
            authorization_endpoint=issuer.authorization_endpoint,
            client_id=registration.client_id,
            redirect_uri=options.redirect_uri,
            code_challenge=pkce.code_challenge,
            code_challenge_method=pkce.code_challenge_method,
            scope=options.scope,
        ).build_authorization_url()

        async def exchange(code: str) -> TokenSet:
            return await self.token_manager.exchange_code_for_token(
                TokenRequest(
                    token_endpoint=issuer.token_endpoint,
                    code=code,
                    redirect_uri=options.redirect_uri,
                    client_id=registration.client_id,
                    code_verifier=pkce.code_verifier,
                )
            )

        # 6-8. Callback, exchange, teardown
        listener = CallbackListener(options.redirect_uri, on_code=exchange)
        await listener.start()
        try:
            logger.info(f"Authorization URL generated: {authorization_url}")
            if options.on_authorization_url is not None:
                options.on_authorization_url(authorization_url)
            if options.open_browser:
                logger.info("Opening browser...")
                await asyncio.to_thread(self._browser_opener, authorization_url)

            token_set = await listener.wait(timeout=options.callback_timeout)
        finally:
            await listener.close()

        logger.info(f"Authentication successful for {endpoint_url}")
        return token_set

    async def close(self) -> None:
        """Close all service connections."""
        await self.discovery.close()
        await self.registration.close()
        await self.token_manager.close()

    async def __aenter__(self) -> PKCETokenAcquirer:
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()


async def acquire_token(
    endpoint_url: str, options: AcquireOptions | None = None
) -> TokenSet:
    """Acquire a PKCE access token for an MCP endpoint with default services."""
    async with PKCETokenAcquirer() as acquirer:
        return await acquirer.acquire_token(endpoint_url, options)
