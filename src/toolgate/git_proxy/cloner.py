"""Repository cloning through a git MCP server.

The clone itself is performed by the model via the git MCP server's tools;
this module only builds the authenticated URL and the request.
"""

from __future__ import annotations

import logging
from typing import Any

from toolgate.llm.client import MCPMessenger, MCPServerConfig

logger = logging.getLogger(__name__)

GITHUB_PREFIX = "https://github.com/"

CLONE_SYSTEM_PROMPT = (
    "You can use Git tools to perform repository operations. "
    "Use the provided authenticated URL."
)


def authenticated_clone_url(repository_url: str, access_token: str) -> str:
    """Embed the token in a github.com HTTPS URL; other URLs are unchanged."""
    if repository_url.startswith(GITHUB_PREFIX):
        return f"https://{access_token}@github.com/{repository_url[len(GITHUB_PREFIX):]}"
    return repository_url


class RepositoryCloner:
    def __init__(self, messenger: MCPMessenger, mcp_git_endpoint: str):
        self._messenger = messenger
        self._server = MCPServerConfig(url=mcp_git_endpoint, name="git-mcp")

    async def clone(
        self, repository_url: str, target_path: str | None, access_token: str
    ) -> dict[str, Any]:
        """Ask the model to clone the repository and report its status."""
        target = target_path or "repo-clone"
        logger.info(f"Requesting clone of {repository_url} into {target}")

        url = authenticated_clone_url(repository_url, access_token)
        message = await self._messenger.send(
            f"Please clone the repository {url} to directory {target}. "
            "Check the status after cloning.",
            [self._server],
            system=CLONE_SYSTEM_PROMPT,
        )
        return message.model_dump(mode="json")
