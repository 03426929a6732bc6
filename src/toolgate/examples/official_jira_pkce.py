"""
Create a Jira issue through the official Atlassian MCP server.

Gets an access token for https://mcp.atlassian.com/v1/sse with the PKCE
flow (a browser window opens for consent), then hands it to the model as the
MCP server's authorization token.

You'll need to set the ANTHROPIC_API_KEY environment variable.
"""

import asyncio
import os

from dotenv import load_dotenv

from toolgate.auth.client.acquirer import AcquireOptions, acquire_token
from toolgate.auth.client.models.errors import OAuth2Error
from toolgate.config import DEFAULT_MODEL, MissingSettingError, require_env
from toolgate.examples.common import exit_with, print_response, setup_logging
from toolgate.llm.client import MCPMessenger, MCPServerConfig

ATLASSIAN_MCP_URL = "https://mcp.atlassian.com/v1/sse"

SYSTEM_PROMPT = (
    "You can use Jira tools to create or query issues. You are authenticated "
    "with the official Atlassian Jira MCP server."
)

PROMPT = (
    "Please create a new Jira issue with summary 'Test Official MCP Integration "
    "with PKCE' and description 'This is a test issue created via the official "
    "Atlassian MCP server using PKCE authentication to verify the integration "
    "works properly.' Use issue type 'Task' if available. If you need to specify "
    "a project, please list the available projects first."
)


async def main() -> None:
    try:
        api_key = require_env("ANTHROPIC_API_KEY")
    except MissingSettingError as e:
        exit_with(str(e))

    print("Getting PKCE access token for Jira MCP server...")
    try:
        token_set = await acquire_token(
            ATLASSIAN_MCP_URL,
            AcquireOptions.from_env(scope="read:jira-work write:jira-work"),
        )
    except OAuth2Error as e:
        exit_with(f"Error: {e}")
    print("Successfully obtained access token!")
    print(f"Token expires in: {token_set.expires_in} seconds\n")

    print("Using Claude to create a Jira issue via official MCP server...")
    messenger = MCPMessenger(
        api_key=api_key, model=os.getenv("ANTHROPIC_MODEL") or DEFAULT_MODEL
    )
    try:
        message = await messenger.send(
            PROMPT,
            [
                MCPServerConfig(
                    url=ATLASSIAN_MCP_URL,
                    name="official-jira-mcp",
                    authorization_token=token_set.access_token,
                )
            ],
            system=SYSTEM_PROMPT,
        )
    finally:
        await messenger.close()

    print_response(message)
    print("\nSuccessfully demonstrated PKCE authentication with official Jira MCP server!")


if __name__ == "__main__":
    load_dotenv()
    setup_logging()
    asyncio.run(main())
