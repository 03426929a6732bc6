"""Messages API client with remote MCP server support.

Tool execution happens on the provider side: the request names the MCP
servers (and optional bearer tokens for them) and the response carries
``mcp_tool_use`` / ``mcp_tool_result`` blocks alongside the text.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Literal

from anthropic import AsyncAnthropic
from pydantic import BaseModel, Field

from toolgate.config import DEFAULT_MODEL

logger = logging.getLogger(__name__)

MCP_CLIENT_BETA = "mcp-client-2025-04-04"


class ToolConfiguration(BaseModel):
    enabled: bool = True
    # None allows every tool the server exposes
    allowed_tools: list[str] | None = None


class MCPServerConfig(BaseModel):
    """A remote MCP server the model may call tools on."""

    type: Literal["url"] = "url"
    url: str
    name: str
    authorization_token: str | None = None
    tool_configuration: ToolConfiguration = Field(default_factory=ToolConfiguration)

    def to_request(self) -> dict[str, Any]:
        return self.model_dump(mode="json", exclude_none=True)


class MCPMessenger:
    """Sends prompts to the Messages API, optionally with MCP servers attached."""

    def __init__(
        self,
        api_key: str | None = None,
        model: str = DEFAULT_MODEL,
        client: AsyncAnthropic | None = None,
    ):
        self.model = model
        self._client = client or AsyncAnthropic(api_key=api_key)

    async def send(
        self,
        prompt: str,
        servers: list[MCPServerConfig],
        system: str | None = None,
        max_tokens: int = 1024,
    ) -> Any:
        """Send a single user prompt with MCP tool access.

        Returns:
            The provider's beta message object
        """
        logger.info(
            f"Sending prompt with {len(servers)} MCP server(s): "
            f"{', '.join(server.name for server in servers)}"
        )
        kwargs: dict[str, Any] = {
            "model": self.model,
            "max_tokens": max_tokens,
            "messages": [{"role": "user", "content": prompt}],
            "mcp_servers": [server.to_request() for server in servers],
            "betas": [MCP_CLIENT_BETA],
        }
        if system:
            kwargs["system"] = system

        return await self._client.beta.messages.create(**kwargs)

    async def chat(self, prompt: str, max_tokens: int = 1024) -> str:
        """Send a plain prompt and return the first text block."""
        message = await self._client.messages.create(
            model=self.model,
            max_tokens=max_tokens,
            messages=[{"role": "user", "content": prompt}],
        )
        for block in message.content:
            if block.type == "text":
                return block.text
        return ""

    async def close(self) -> None:
        await self._client.close()


def _as_dict(block: Any) -> dict[str, Any]:
    if isinstance(block, dict):
        return block
    return block.model_dump(mode="json")


def describe_content_blocks(blocks: list[Any]) -> list[str]:
    """Render response content blocks as console lines."""
    lines = []
    for index, raw in enumerate(blocks):
        block = _as_dict(raw)
        block_type = block.get("type")
        if block_type == "text":
            lines.append(f"Block {index}: Text Content")
            lines.append(f"  {block.get('text', '')}")
        elif block_type == "mcp_tool_use":
            lines.append(f"Block {index}: MCP Tool Use - {block.get('name')}")
            lines.append(f"  Server: {block.get('server_name')}")
            lines.append(f"  Input: {json.dumps(block.get('input'), indent=2)}")
        elif block_type == "mcp_tool_result":
            lines.append(f"Block {index}: MCP Tool Result")
            lines.append(f"  Tool Use ID: {block.get('tool_use_id')}")
            lines.append(f"  Is Error: {block.get('is_error')}")
            lines.append(f"  Content: {json.dumps(block.get('content'), indent=2)}")
        else:
            lines.append(f"Block {index}: {block_type}")
            lines.append(json.dumps(block, indent=2))
    return lines


def dump_content(blocks: list[Any]) -> str:
    return json.dumps([_as_dict(block) for block in blocks], indent=2)
