"""Tests for the example scripts' argument and settings handling."""

from unittest.mock import AsyncMock

import pytest

from toolgate.auth.client.models.errors import DiscoveryError
from toolgate.examples import get_token, git_proxy_client, jira_mcp
from toolgate.examples.common import print_response


class TestGetToken:
    async def test_requires_endpoint_argument(self, capsys):
        with pytest.raises(SystemExit) as exc_info:
            await get_token.main(["get_token"])

        assert exc_info.value.code == 1
        assert "Please provide the MCP endpoint URL" in capsys.readouterr().err

    async def test_reports_acquisition_failure(self, monkeypatch, capsys):
        # Arrange
        monkeypatch.setattr(
            get_token,
            "acquire_token",
            AsyncMock(side_effect=DiscoveryError("Could not find OAuth metadata")),
        )

        # Act
        with pytest.raises(SystemExit):
            await get_token.main(["get_token", "https://mcp.example.com/v1/sse"])

        # Assert
        assert "Failed to get access token: Could not find OAuth metadata" in (
            capsys.readouterr().err
        )


class TestJiraExample:
    async def test_missing_endpoint(self, monkeypatch, capsys):
        monkeypatch.setenv("ANTHROPIC_API_KEY", "sk-test")
        monkeypatch.delenv("MCP_JIRA_ENDPOINT", raising=False)

        with pytest.raises(SystemExit):
            await jira_mcp.main()

        assert "MCP_JIRA_ENDPOINT not found" in capsys.readouterr().err


class TestGitProxyClient:
    def test_examples_command(self, capsys):
        assert git_proxy_client.main(["git_proxy_client", "examples"]) == 0

        out = capsys.readouterr().out
        assert "GITHUB_CLIENT_ID=your_client_id" in out
        assert "POST /git/clone" in out

    def test_unknown_command_prints_usage(self, capsys):
        assert git_proxy_client.main(["git_proxy_client"]) == 1

        assert "Usage:" in capsys.readouterr().out


def test_print_response(capsys):
    class Message:
        content = [{"type": "text", "text": "Done."}]

    print_response(Message())

    out = capsys.readouterr().out
    assert "Claude's response:" in out
    assert "Block 0: Text Content" in out
    assert "  Done." in out
