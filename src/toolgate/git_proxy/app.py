"""HTTP surface of the GitHub OAuth proxy.

Routes:
    GET  /auth/github?userId=..&scopes=a,b   start authorization
    GET  /auth/callback?code=..&state=..     GitHub redirect target
    POST /git/clone                          clone with the user's token
    GET  /auth/status?userId=..              authorization status
    GET  /health                             liveness
"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from urllib.parse import urlencode

import uvicorn
from starlette.applications import Starlette
from starlette.requests import Request
from starlette.responses import JSONResponse
from starlette.routing import Route

from toolgate.git_proxy.cloner import RepositoryCloner
from toolgate.git_proxy.service import GitOAuthError, GitOAuthService

logger = logging.getLogger(__name__)

SERVICE_NAME = "OAuth Git MCP Service"


class GitProxyApp:
    def __init__(self, service: GitOAuthService, cloner: RepositoryCloner | None = None):
        self.service = service
        self.cloner = cloner
        self.app = Starlette(
            routes=[
                Route("/auth/github", self._handle_authorize, methods=["GET"]),
                Route("/auth/callback", self._handle_callback, methods=["GET"]),
                Route("/git/clone", self._handle_clone, methods=["POST"]),
                Route("/auth/status", self._handle_status, methods=["GET"]),
                Route("/health", self._handle_health, methods=["GET"]),
            ]
        )

    def _auth_start_url(self, user_id: str) -> str:
        return (
            f"{self.service.settings.service_url}/auth/github?"
            f"{urlencode({'userId': user_id})}"
        )

    async def _handle_authorize(self, request: Request) -> JSONResponse:
        user_id = request.query_params.get("userId") or "anonymous"
        raw_scopes = request.query_params.get("scopes")
        scopes = [s for s in raw_scopes.split(",") if s] if raw_scopes else ["repo"]

        auth_url, state = self.service.generate_auth_url(user_id, scopes)
        return JSONResponse(
            {
                "success": True,
                "authUrl": auth_url,
                "instructions": f"Visit this URL to authorize GitHub access: {auth_url}",
                "state": state,
            }
        )

    async def _handle_callback(self, request: Request) -> JSONResponse:
        code = request.query_params.get("code")
        state = request.query_params.get("state")
        if not code or not state:
            return JSONResponse(
                {"error": "Missing code or state parameter"}, status_code=400
            )

        user_id = self.service.validate_state(state)
        if not user_id:
            return JSONResponse({"error": "Invalid or expired state"}, status_code=400)

        try:
            token = await self.service.exchange_code_for_token(code)
            self.service.configure_git_credentials(user_id, token.access_token)
            user_info = await self.service.get_user_info(token.access_token)
        except (GitOAuthError, OSError) as e:
            logger.error(f"OAuth callback error: {e}")
            return JSONResponse(
                {"error": "OAuth authorization failed", "details": str(e)},
                status_code=500,
            )

        return JSONResponse(
            {
                "success": True,
                "message": "Successfully authorized!",
                "user": {
                    "id": user_id,
                    "github_login": user_info.get("login"),
                    "github_name": user_info.get("name"),
                    "scopes": token.scopes,
                },
                "next_steps": f"You can now use the Git service with userId: {user_id}",
            }
        )

    async def _handle_clone(self, request: Request) -> JSONResponse:
        try:
            body = await request.json()
        except json.JSONDecodeError:
            return JSONResponse({"error": "Invalid JSON body"}, status_code=400)

        user_id = body.get("userId") if isinstance(body, dict) else None
        repository_url = body.get("repositoryUrl") if isinstance(body, dict) else None
        if not user_id or not repository_url:
            return JSONResponse(
                {"error": "Missing userId or repositoryUrl"}, status_code=400
            )

        record = self.service.get_token(user_id)
        if record is None:
            return JSONResponse(
                {
                    "error": "No GitHub authorization found",
                    "authUrl": self._auth_start_url(user_id),
                },
                status_code=401,
            )

        if self.cloner is None:
            return JSONResponse(
                {"error": "Clone failed", "details": "MCP_GIT_ENDPOINT is not configured"},
                status_code=503,
            )

        try:
            result = await self.cloner.clone(
                repository_url, body.get("targetPath"), record.token
            )
        except Exception as e:
            logger.error(f"Clone error: {e}")
            return JSONResponse(
                {"error": "Clone failed", "details": str(e)}, status_code=500
            )

        return JSONResponse({"success": True, "result": result, "user": user_id})

    async def _handle_status(self, request: Request) -> JSONResponse:
        user_id = request.query_params.get("userId")
        if not user_id:
            return JSONResponse({"error": "Missing userId parameter"}, status_code=400)

        record = self.service.get_token(user_id)
        return JSONResponse(
            {
                "userId": user_id,
                "authorized": record is not None,
                "provider": record.provider if record else None,
                "authorizedAt": int(record.timestamp * 1000) if record else None,
                "authUrl": None if record else self._auth_start_url(user_id),
            }
        )

    async def _handle_health(self, request: Request) -> JSONResponse:
        return JSONResponse(
            {
                "status": "healthy",
                "service": SERVICE_NAME,
                "timestamp": datetime.now(timezone.utc).isoformat(),
            }
        )


def create_app(
    service: GitOAuthService, cloner: RepositoryCloner | None = None
) -> Starlette:
    return GitProxyApp(service, cloner).app


async def serve(
    service: GitOAuthService,
    cloner: RepositoryCloner | None = None,
    host: str = "0.0.0.0",
    port: int = 3000,
) -> None:
    """Run the proxy until interrupted."""
    config = uvicorn.Config(
        app=create_app(service, cloner), host=host, port=port, log_level="info"
    )
    server = uvicorn.Server(config)
    logger.info(f"OAuth Git Service running on port {port}")
    logger.info(
        f"Authorization URL: http://localhost:{port}/auth/github?userId=YOUR_USER_ID"
    )
    await server.serve()
