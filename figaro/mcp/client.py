"""An MCP client: runs the handshake with a server and keeps its tool list."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Protocol

from ..jsonrpc import Message, StdioClient
from ..telemetry import TracerProvider, ez_marshal
from .messages import InitializedNotification, InitializeRequestParams, ListToolsResult
from .schema import ClientCapabilities, Implementation, Tool

PROTOCOL_VERSION = "0.1.0"
CLIENT_NAME = "figaro"
CLIENT_VERSION = "1.0.0"


class _Server(Protocol):
    def get_env(self) -> list[str] | None: ...


@dataclass
class Client:
    """A JSON-RPC client bound to one MCP server, with the tools it offers."""

    rpc_client: StdioClient
    target_server: _Server | Any
    tracer_provider: TracerProvider
    tools: list[Tool] = field(default_factory=list)

    def notify(self, method: str, params: Any = None) -> None:
        self.rpc_client.notify(method, params)

    def send_message(self, method: str, params: Any = None) -> Message:
        return self.rpc_client.send_message(method, params)

    def send_action_message(self, method: str) -> Message:
        return self.rpc_client.send_action_message(method)


def initialize(
    server: _Server | Any, rpc_client: StdioClient, tracer_provider: TracerProvider
) -> Client:
    """Perform the MCP handshake over ``rpc_client`` and load the server's tools."""
    client = Client(rpc_client=rpc_client, target_server=server, tracer_provider=tracer_provider)
    tracer = tracer_provider.tracer("mcp.Initialize")
    with tracer.span("mcp.Initialize") as span:
        params = InitializeRequestParams(
            protocol_version=PROTOCOL_VERSION,
            client_info=Implementation(name=CLIENT_NAME, version=CLIENT_VERSION),
            capabilities=ClientCapabilities(),
        )
        try:
            response = client.send_message("initialize", params)
        except Exception:
            span.add_event("Error when calling initialize")
            raise
        span.add_event("Initialize response", {"res1": ez_marshal(response)})

        client.notify("notifications/initialized", InitializedNotification())

        tools_response = client.send_action_message("tools/list")
        if tools_response.result is None:
            client.tools = []
        else:
            try:
                client.tools = ListToolsResult.from_dict(tools_response.result).tools
            except ValueError as exc:
                raise ValueError(f"failed to decode response: {exc}") from exc
    return client