"""
Create a Jira issue through a self-hosted Jira MCP server.

Start the server first:

    docker run --rm -p 9000:9000 --env-file .env \\
      ghcr.io/sooperset/mcp-atlassian --transport streamable-http --port 9000

then expose it over HTTPS (e.g. with ngrok) and set MCP_JIRA_ENDPOINT to the
public URL ending in /mcp/. You'll also need ANTHROPIC_API_KEY.
"""

import asyncio
import os

from dotenv import load_dotenv

from toolgate.config import DEFAULT_MODEL, MissingSettingError, require_env
from toolgate.examples.common import exit_with, print_response, setup_logging
from toolgate.llm.client import MCPMessenger, MCPServerConfig

SYSTEM_PROMPT = "You can use Jira tools to create or query issues."

PROMPT = (
    "Please create a new Jira issue with summary 'Test MCP Integration' and "
    "description 'This is a test issue created via the MCP server.' Use issue "
    "type 'Task' if available. If you need to specify a project, please list "
    "the available projects first."
)


async def main() -> None:
    try:
        api_key = require_env("ANTHROPIC_API_KEY")
        endpoint = require_env(
            "MCP_JIRA_ENDPOINT",
            "Example: MCP_JIRA_ENDPOINT=https://your-ngrok-url.ngrok-free.app/mcp/",
        )
    except MissingSettingError as e:
        exit_with(str(e))

    messenger = MCPMessenger(
        api_key=api_key, model=os.getenv("ANTHROPIC_MODEL") or DEFAULT_MODEL
    )
    try:
        message = await messenger.send(
            PROMPT,
            [MCPServerConfig(url=endpoint, name="jira-mcp")],
            system=SYSTEM_PROMPT,
        )
    finally:
        await messenger.close()

    print_response(message)


if __name__ == "__main__":
    load_dotenv()
    setup_logging()
    asyncio.run(main())
