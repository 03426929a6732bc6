"""Client for the GitHub OAuth proxy service."""

from __future__ import annotations

import logging
import secrets
from typing import Any

import httpx

logger = logging.getLogger(__name__)

DEFAULT_SERVICE_URL = "http://localhost:3000"


def random_user_id() -> str:
    return f"user_{secrets.token_hex(5)[:9]}"


class GitServiceClient:
    def __init__(
        self,
        service_url: str = DEFAULT_SERVICE_URL,
        http_client: httpx.AsyncClient | None = None,
        timeout: float = 30.0,
    ):
        self.service_url = service_url.rstrip("/")
        self._http_client = http_client or httpx.AsyncClient(timeout=timeout)

    async def get_authorization_url(
        self, user_id: str, scopes: list[str] | None = None
    ) -> dict[str, Any]:
        response = await self._http_client.get(
            f"{self.service_url}/auth/github",
            params={"userId": user_id, "scopes": ",".join(scopes or ["repo"])},
        )
        return response.json()

    async def check_auth_status(self, user_id: str) -> dict[str, Any]:
        response = await self._http_client.get(
            f"{self.service_url}/auth/status", params={"userId": user_id}
        )
        return response.json()

    async def clone_repository(
        self, user_id: str, repository_url: str, target_path: str | None = None
    ) -> dict[str, Any]:
        response = await self._http_client.post(
            f"{self.service_url}/git/clone",
            json={
                "userId": user_id,
                "repositoryUrl": repository_url,
                "targetPath": target_path,
            },
        )
        return response.json()

    async def demonstrate_oauth_flow(self, user_id: str) -> dict[str, Any]:
        """Walk through status check, authorization and clone for one user.

        Stops at ``authorization_required`` when the user has not authorized
        yet; the caller shows them the returned URL.
        """
        try:
            status = await self.check_auth_status(user_id)
            logger.info(f"Status: {status}")

            if not status.get("authorized"):
                auth_data = await self.get_authorization_url(
                    user_id, ["repo", "read:user"]
                )
                return {
                    "step": "authorization_required",
                    "authUrl": auth_data.get("authUrl"),
                    "userId": user_id,
                }

            clone_result = await self.clone_repository(
                user_id, "https://github.com/octocat/Hello-World", "oauth-test-clone"
            )
            return {"step": "clone_completed", "result": clone_result, "userId": user_id}

        except (httpx.HTTPError, ValueError) as e:
            logger.error(f"Demo flow failed: {e}")
            return {"step": "error", "error": str(e), "userId": user_id}

    async def close(self) -> None:
        await self._http_client.aclose()
