import httpx
import pytest

from toolgate.config import GitProxySettings
from toolgate.git_proxy.service import GitOAuthService
from toolgate.git_proxy.store import InMemoryStore


class FakeGitHub:
    """Answers GitHub token and user API requests."""

    def __init__(self):
        self.token_response = {
            "access_token": "gho_token",
            "scope": "repo,read:user",
            "token_type": "bearer",
        }
        self.user_status = 200
        self.requests = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        url = str(request.url)
        if url == "https://github.com/login/oauth/access_token":
            return httpx.Response(200, json=self.token_response)
        if url == "https://api.github.com/user":
            if self.user_status != 200:
                return httpx.Response(self.user_status, json={"message": "Bad credentials"})
            return httpx.Response(200, json={"login": "octocat", "name": "The Octocat"})
        return httpx.Response(404)


@pytest.fixture
def settings(tmp_path):
    return GitProxySettings(
        github_client_id="gh-client",
        github_client_secret="gh-secret",
        redirect_uri="http://localhost:3000/auth/callback",
        service_url="http://localhost:3000",
        credentials_dir=str(tmp_path),
    )


@pytest.fixture
def github():
    return FakeGitHub()


@pytest.fixture
def service(settings, github):
    client = httpx.AsyncClient(transport=httpx.MockTransport(github.handler))
    return GitOAuthService(settings, InMemoryStore(), InMemoryStore(), http_client=client)
