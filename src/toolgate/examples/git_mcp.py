"""
Clone and inspect a repository through a Git MCP server.

Start the server with HTTP transport:

    MCP_TRANSPORT_TYPE=http MCP_HTTP_PORT=9000 npx @cyanheads/git-mcp-server

expose it over HTTPS (e.g. ``ngrok http 9000``) and set MCP_GIT_ENDPOINT to
the public URL. The server uses the machine's own git credentials.
You'll also need ANTHROPIC_API_KEY.
"""

import asyncio
import os

from dotenv import load_dotenv

from toolgate.config import DEFAULT_MODEL, MissingSettingError, require_env
from toolgate.examples.common import exit_with, print_response, setup_logging
from toolgate.llm.client import MCPMessenger, MCPServerConfig

SYSTEM_PROMPT = (
    "You can use Git tools to perform comprehensive repository operations "
    "including cloning, committing, branching, and remote operations. You have "
    "access to the full git_clone tool to clone repositories directly."
)

PROMPT = (
    "Please clone the repository https://github.com/octocat/Hello-World to a "
    "local directory called 'hello-world-clone'. After cloning, check the status "
    "of the repository, list the files in it, and show me the commit history."
)


async def main() -> None:
    try:
        api_key = require_env("ANTHROPIC_API_KEY")
        endpoint = require_env(
            "MCP_GIT_ENDPOINT",
            "Example: MCP_GIT_ENDPOINT=https://your-ngrok-url.ngrok-free.app/mcp",
        )
    except MissingSettingError as e:
        exit_with(str(e))

    messenger = MCPMessenger(
        api_key=api_key, model=os.getenv("ANTHROPIC_MODEL") or DEFAULT_MODEL
    )
    try:
        message = await messenger.send(
            PROMPT,
            [MCPServerConfig(url=endpoint, name="git-mcp")],
            system=SYSTEM_PROMPT,
        )
    finally:
        await messenger.close()

    print_response(message)


if __name__ == "__main__":
    load_dotenv()
    setup_logging()
    asyncio.run(main())
