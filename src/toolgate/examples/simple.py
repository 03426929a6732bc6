"""
Send a single message to Claude without any MCP servers.

You'll need to set the ANTHROPIC_API_KEY environment variable.
"""

import asyncio
import os

from dotenv import load_dotenv

from toolgate.config import DEFAULT_MODEL, MissingSettingError, require_env
from toolgate.examples.common import exit_with, setup_logging
from toolgate.llm.client import MCPMessenger


async def main() -> None:
    try:
        api_key = require_env(
            "ANTHROPIC_API_KEY", "ANTHROPIC_API_KEY=your_api_key_here"
        )
    except MissingSettingError as e:
        exit_with(str(e))

    messenger = MCPMessenger(
        api_key=api_key, model=os.getenv("ANTHROPIC_MODEL") or DEFAULT_MODEL
    )
    try:
        text = await messenger.chat(
            "Hello, Claude! Can you explain what you can help me with?"
        )
        print(f"Claude says: {text}")
    finally:
        await messenger.close()


if __name__ == "__main__":
    load_dotenv()
    setup_logging()
    asyncio.run(main())
