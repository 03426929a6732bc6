"""
Run the GitHub OAuth proxy service.

Configure these environment variables:
   GITHUB_CLIENT_ID=your_github_client_id
   GITHUB_CLIENT_SECRET=your_github_client_secret
   GIT_OAUTH_REDIRECT_URI=http://localhost:3000/auth/callback

Cloning additionally needs MCP_GIT_ENDPOINT and ANTHROPIC_API_KEY.
"""

import asyncio
import logging

from dotenv import load_dotenv

from toolgate.config import GitProxySettings, MissingSettingError
from toolgate.examples.common import exit_with, setup_logging
from toolgate.git_proxy.app import serve
from toolgate.git_proxy.cloner import RepositoryCloner
from toolgate.git_proxy.service import GitOAuthService
from toolgate.git_proxy.store import InMemoryStore
from toolgate.llm.client import MCPMessenger

logger = logging.getLogger(__name__)


async def main() -> None:
    try:
        settings = GitProxySettings.from_env()
    except (MissingSettingError, ValueError) as e:
        exit_with(str(e))

    cloner = None
    if settings.mcp_git_endpoint and settings.anthropic_api_key:
        messenger = MCPMessenger(api_key=settings.anthropic_api_key, model=settings.model)
        cloner = RepositoryCloner(messenger, settings.mcp_git_endpoint)
    else:
        logger.warning(
            "MCP_GIT_ENDPOINT or ANTHROPIC_API_KEY not set; /git/clone is disabled"
        )

    service = GitOAuthService(settings, InMemoryStore(), InMemoryStore())
    try:
        await serve(service, cloner, port=settings.port)
    finally:
        await service.close()


if __name__ == "__main__":
    load_dotenv()
    setup_logging()
    asyncio.run(main())
