"""
Get a PKCE access token from an MCP endpoint.

Usage: python -m toolgate.examples.get_token <mcp-url>
Example: python -m toolgate.examples.get_token https://mcp.atlassian.com/v1/sse

Optional settings: OAUTH_REDIRECT_URI, OAUTH_SCOPE, OAUTH_OPEN_BROWSER,
OAUTH_CALLBACK_TIMEOUT.
"""

import asyncio
import sys

from dotenv import load_dotenv

from toolgate.auth.client.acquirer import AcquireOptions, acquire_token
from toolgate.auth.client.models.errors import OAuth2Error
from toolgate.examples.common import exit_with, setup_logging

USAGE = (
    "Please provide the MCP endpoint URL\n"
    "Usage: python -m toolgate.examples.get_token <mcp-url>\n"
    "Example: python -m toolgate.examples.get_token https://mcp.atlassian.com/v1/sse"
)


async def main(argv: list[str]) -> int:
    if len(argv) < 2:
        exit_with(USAGE)
    mcp_url = argv[1]

    try:
        options = AcquireOptions.from_env(
            on_authorization_url=lambda url: print(f"Authorization URL: {url}")
        )
        token_set = await acquire_token(mcp_url, options)
    except (OAuth2Error, ValueError) as e:
        exit_with(f"Failed to get access token: {e}")

    print("\nSuccess! Token details:")
    print(f"Access Token: {'Received' if token_set.access_token else 'Missing'}")
    print(f"ID Token: {'Received' if token_set.id_token else 'Missing'}")
    expires = f"{token_set.expires_in} seconds" if token_set.expires_in else "Unknown"
    print(f"Expires in: {expires}")
    print("\nYou can now use the access token to authenticate with the MCP endpoint.")
    return 0


if __name__ == "__main__":
    load_dotenv()
    setup_logging()
    sys.exit(asyncio.run(main(sys.argv)))
