"""Tool host clients.

A tool host lists callable tools and invokes them by name. McpToolHost talks
to one MCP server over streamable HTTP and keeps a single long-lived
session; CompositeToolHost fans a catalog out over several hosts.

Usage:
    host = McpToolHost("http://localhost:8001/mcp")
    await host.connect()
    tools = await host.list_tools()
    text = await host.call_tool("get_rate", {"currency_code": "USD"})
"""

import logging
from contextlib import AsyncExitStack
from datetime import timedelta
from typing import Any, Protocol, runtime_checkable

import httpx
from mcp.client.session import ClientSession
from mcp.client.streamable_http import streamable_http_client

from chorus_server.tools.adapter import ToolDescriptor

logger = logging.getLogger(__name__)


class ToolInvocationError(Exception):
    """A tool could not be listed or invoked."""


@runtime_checkable
class ToolHost(Protocol):
    """List and call tools exposed by an external process."""

    async def list_tools(self) -> list[ToolDescriptor]: ...

    async def call_tool(self, name: str, arguments: dict[str, Any]) -> str: ...


class McpToolHost:
    """Tool host backed by an MCP server reachable over streamable HTTP.

    The session is opened once by ``connect()`` and reused for every call
    until ``disconnect()``. Reconnecting is left to the caller.
    """

    def __init__(
        self,
        url: str,
        headers: dict[str, str] | None = None,
        timeout: float = 30.0,
        read_timeout: float = 120.0,
    ) -> None:
        """Initialize the host.

        Args:
            url: URL of the MCP server endpoint
            headers: Optional HTTP headers to include in requests
            timeout: Connection timeout in seconds
            read_timeout: Per-request read timeout in seconds
        """
        self.url = url
        self._headers = headers or {}
        self.timeout = timeout
        self.read_timeout = read_timeout
        self._exit_stack: AsyncExitStack | None = None
        self._session: ClientSession | None = None

    def __repr__(self) -> str:
        return f"McpToolHost(url={self.url!r}, connected={self.is_connected})"

    @property
    def is_connected(self) -> bool:
        return self._session is not None

    async def connect(self) -> None:
        """Open the HTTP client and MCP session.

        Raises:
            ToolInvocationError: If the server cannot be reached or initialized
        """
        if self._session is not None:
            return

        stack = AsyncExitStack()
        try:
            http_client = await stack.enter_async_context(
                httpx.AsyncClient(
                    headers=self._headers,
                    timeout=httpx.Timeout(self.timeout, read=self.read_timeout),
                )
            )
            read_stream, write_stream, _ = await stack.enter_async_context(
                streamable_http_client(url=self.url, http_client=http_client)
            )
            session = await stack.enter_async_context(
                ClientSession(
                    read_stream,
                    write_stream,
                    read_timeout_seconds=timedelta(seconds=self.read_timeout),
                )
            )
            await session.initialize()
        except Exception as e:
            await stack.aclose()
            raise ToolInvocationError(
                f"Failed to connect to tool host at {self.url}: {e}"
            ) from e

        self._exit_stack = stack
        self._session = session
        logger.info(f"Connected to MCP tool host at {self.url}")

    async def disconnect(self) -> None:
        """Close the session and the underlying HTTP client."""
        stack, self._exit_stack, self._session = self._exit_stack, None, None
        if stack is None:
            return
        try:
            await stack.aclose()
        except Exception as e:
            logger.warning(f"Error while disconnecting from {self.url}: {e}")
        logger.info(f"Disconnected from MCP tool host at {self.url}")

    def _require_session(self) -> ClientSession:
        if self._session is None:
            raise ToolInvocationError(f"Tool host at {self.url} is not connected")
        return self._session

    async def list_tools(self) -> list[ToolDescriptor]:
        """Fetch the tool catalog from the server.

        Raises:
            ToolInvocationError: If the host is not connected or listing fails
        """
        session = self._require_session()
        try:
            response = await session.list_tools()
        except Exception as e:
            raise ToolInvocationError(f"Failed to list tools: {e}") from e

        tools = [
            ToolDescriptor.from_input_schema(tool.name, tool.description, tool.inputSchema)
            for tool in response.tools
        ]
        logger.debug(f"Tool host {self.url} lists {len(tools)} tools")
        return tools

    async def call_tool(self, name: str, arguments: dict[str, Any]) -> str:
        """Invoke a tool and return its output as text.

        Text content blocks are joined with newlines; other blocks are
        serialized to JSON.

        Raises:
            ToolInvocationError: If the call fails or the tool reports an error
        """
        session = self._require_session()
        try:
            result = await session.call_tool(name, arguments)
        except Exception as e:
            raise ToolInvocationError(str(e)) from e

        text = _result_text(result.content or [])
        if result.isError:
            raise ToolInvocationError(text or "tool reported an error")
        return text


def _result_text(blocks: list[Any]) -> str:
    parts: list[str] = []
    for block in blocks:
        text = getattr(block, "text", None)
        if isinstance(text, str):
            parts.append(text)
        elif hasattr(block, "model_dump_json"):
            parts.append(block.model_dump_json(exclude_none=True))
        else:
            parts.append(str(block))
    return "\n".join(parts)


class CompositeToolHost:
    """Aggregate several tool hosts behind one catalog.

    ``call_tool`` routes to the first host whose catalog lists the tool. The
    routing table is rebuilt on every ``list_tools`` call.
    """

    def __init__(self, hosts: list[ToolHost]) -> None:
        self.hosts = list(hosts)
        self._routes: dict[str, ToolHost] = {}

    async def list_tools(self) -> list[ToolDescriptor]:
        routes: dict[str, ToolHost] = {}
        catalog: list[ToolDescriptor] = []
        for host in self.hosts:
            try:
                tools = await host.list_tools()
            except Exception as e:
                logger.warning(f"Skipping unavailable tool host {host!r}: {e}")
                continue
            for tool in tools:
                if tool.name in routes:
                    logger.debug(f"Tool '{tool.name}' already provided, ignoring duplicate")
                    continue
                routes[tool.name] = host
                catalog.append(tool)

        self._routes = routes
        return catalog

    async def call_tool(self, name: str, arguments: dict[str, Any]) -> str:
        if name not in self._routes:
            await self.list_tools()

        host = self._routes.get(name)
        if host is None:
            raise ToolInvocationError(f"Unknown tool '{name}'")
        return await host.call_tool(name, arguments)
