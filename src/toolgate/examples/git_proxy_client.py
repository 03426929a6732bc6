"""
Walk through the GitHub OAuth proxy from a user's point of view.

Usage:
  python -m toolgate.examples.git_proxy_client demo      # Run OAuth flow demo
  python -m toolgate.examples.git_proxy_client examples  # Show container examples
"""

import asyncio
import json
import os
import sys

from dotenv import load_dotenv

from toolgate.examples.common import setup_logging
from toolgate.git_proxy.client import (
    DEFAULT_SERVICE_URL,
    GitServiceClient,
    random_user_id,
)

CONTAINER_EXAMPLES = """
# 1. Basic OAuth service
docker run -p 3000:3000 \\
  -e GITHUB_CLIENT_ID=your_client_id \\
  -e GITHUB_CLIENT_SECRET=your_client_secret \\
  -e GIT_OAUTH_REDIRECT_URI=http://localhost:3000/auth/callback \\
  your-oauth-git-service

# 2. With custom domain
docker run -p 3000:3000 \\
  -e GITHUB_CLIENT_ID=your_client_id \\
  -e GITHUB_CLIENT_SECRET=your_client_secret \\
  -e GIT_OAUTH_REDIRECT_URI=https://yourdomain.com/auth/callback \\
  -e SERVICE_URL=https://yourdomain.com \\
  your-oauth-git-service
"""

USER_FLOW = """
1. User calls: GET /auth/github?userId=abc123
2. Service responds with GitHub authorization URL
3. User visits URL, authorizes your app on GitHub
4. GitHub redirects back to /auth/callback with code
5. Service exchanges code for access token
6. User can now clone private repos: POST /git/clone
"""


async def run_demo() -> None:
    client = GitServiceClient(os.getenv("SERVICE_URL") or DEFAULT_SERVICE_URL)
    user_id = random_user_id()

    print("OAuth Git Service Demo")
    print("=" * 50)
    print(f"User ID: {user_id}\n")

    try:
        result = await client.demonstrate_oauth_flow(user_id)
    finally:
        await client.close()

    if result["step"] == "authorization_required":
        print("Authorization required! Visit this URL to authorize:")
        print(result["authUrl"])
        print(USER_FLOW)

    print("Demo Result:")
    print(json.dumps(result, indent=2))


def show_container_examples() -> None:
    print("Container Usage Examples:")
    print("=" * 50)
    print(CONTAINER_EXAMPLES)
    print("User Experience Flow:")
    print(USER_FLOW)


def main(argv: list[str]) -> int:
    command = argv[1] if len(argv) > 1 else None
    if command == "demo":
        asyncio.run(run_demo())
    elif command == "examples":
        show_container_examples()
    else:
        print(__doc__.strip())
        return 1
    return 0


if __name__ == "__main__":
    load_dotenv()
    setup_logging()
    sys.exit(main(sys.argv))
