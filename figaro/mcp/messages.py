"""Model Context Protocol requests, results and notifications.

Each request or notification carries its method name as the default of its
``method`` field, so a bare instance is ready to send.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from .schema import (
    ClientCapabilities,
    CompleteArgument,
    CompletionInfo,
    Implementation,
    LoggingLevel,
    ModelPreferences,
    Prompt,
    PromptMessage,
    Resource,
    ResourceTemplate,
    Role,
    Root,
    SamplingMessage,
    ServerCapabilities,
    Tool,
    WireModel,
    _wire,
)


def _meta() -> Any:
    return _wire("_meta", omitempty=True, default_factory=dict)


def _cursor() -> Any:
    return _wire(omitempty=True, default=None)


@dataclass(kw_only=True)
class CallToolRequestParams(WireModel):
    """The tool to call and its arguments."""

    arguments: dict[str, Any] = _wire(omitempty=True, default_factory=dict)
    name: str = _wire(default="")


@dataclass(kw_only=True)
class CallToolRequest(WireModel):
    """Invoke a tool provided by the server."""

    method: str = _wire(default="tools/call")
    params: CallToolRequestParams = _wire(default_factory=CallToolRequestParams)


@dataclass(kw_only=True)
class CallToolResult(WireModel):
    """The server's response to a tool call."""

    meta: dict[str, Any] = _meta()
    content: list[Any] = _wire(default_factory=list)
    is_error: bool = _wire(omitempty=True, default=False)


@dataclass(kw_only=True)
class CancelledNotificationParams(WireModel):
    """Which request is cancelled, and why."""

    reason: str | None = _wire(omitempty=True, default=None)
    request_id: str | int | None = _wire(default=None)


@dataclass(kw_only=True)
class CancelledNotification(WireModel):
    """Sent by either side to cancel an earlier request."""

    method: str = _wire(default="notifications/cancelled")
    params: CancelledNotificationParams = _wire(default_factory=CancelledNotificationParams)


@dataclass(kw_only=True)
class CompleteRequestParams(WireModel):
    """The argument to complete and the prompt or resource it belongs to."""

    argument: CompleteArgument = _wire(default_factory=CompleteArgument)
    ref: Any = _wire(default=None)


@dataclass(kw_only=True)
class CompleteRequest(WireModel):
    """Ask the server for completion options."""

    method: str = _wire(default="completion/complete")
    params: CompleteRequestParams = _wire(default_factory=CompleteRequestParams)


@dataclass(kw_only=True)
class CompleteResult(WireModel):
    """The server's completion options."""

    meta: dict[str, Any] = _meta()
    completion: CompletionInfo = _wire(default_factory=CompletionInfo)


@dataclass(kw_only=True)
class CreateMessageRequestParams(WireModel):
    """Parameters for sampling a model through the client."""

    include_context: str | None = _wire(omitempty=True, default=None)
    max_tokens: int = _wire(default=0)
    messages: list[SamplingMessage] = _wire(default_factory=list)
    metadata: dict[str, Any] = _wire(omitempty=True, default_factory=dict)
    model_preferences: ModelPreferences | None = _wire(omitempty=True, default=None)
    stop_sequences: list[str] = _wire(omitempty=True, default_factory=list)
    system_prompt: str | None = _wire(omitempty=True, default=None)
    temperature: float | None = _wire(omitempty=True, default=None)


@dataclass(kw_only=True)
class CreateMessageRequest(WireModel):
    """A server's request to sample a model via the client."""

    method: str = _wire(default="sampling/createMessage")
    params: CreateMessageRequestParams = _wire(default_factory=CreateMessageRequestParams)


@dataclass(kw_only=True)
class CreateMessageResult(WireModel):
    """The client's sampled message."""

    meta: dict[str, Any] = _meta()
    content: Any = _wire(default=None)
    model: str = _wire(default="")
    role: Role = _wire(default=Role.ASSISTANT)
    stop_reason: str | None = _wire(omitempty=True, default=None)


@dataclass(kw_only=True)
class GetPromptRequestParams(WireModel):
    """The prompt to fetch and its template arguments."""

    arguments: dict[str, str] = _wire(omitempty=True, default_factory=dict)
    name: str = _wire(default="")


@dataclass(kw_only=True)
class GetPromptRequest(WireModel):
    """Fetch a prompt from the server."""

    method: str = _wire(default="prompts/get")
    params: GetPromptRequestParams = _wire(default_factory=GetPromptRequestParams)


@dataclass(kw_only=True)
class GetPromptResult(WireModel):
    """The server's prompt."""

    meta: dict[str, Any] = _meta()
    description: str | None = _wire(omitempty=True, default=None)
    messages: list[PromptMessage] = _wire(default_factory=list)


@dataclass(kw_only=True)
class InitializeRequestParams(WireModel):
    """What the client supports and who it is."""

    capabilities: ClientCapabilities = _wire(default_factory=ClientCapabilities)
    client_info: Implementation = _wire(default_factory=Implementation)
    protocol_version: str = _wire(default="")


@dataclass(kw_only=True)
class InitializeRequest(WireModel):
    """The first request a client sends on connecting."""

    method: str = _wire(default="initialize")
    params: InitializeRequestParams = _wire(default_factory=InitializeRequestParams)


@dataclass(kw_only=True)
class InitializeResult(WireModel):
    """The server's answer to an initialize request."""

    meta: dict[str, Any] = _meta()
    capabilities: ServerCapabilities = _wire(default_factory=ServerCapabilities)
    instructions: str | None = _wire(omitempty=True, default=None)
    protocol_version: str = _wire(default="")
    server_info: Implementation = _wire(default_factory=Implementation)


@dataclass(kw_only=True)
class InitializedNotification(WireModel):
    """Sent by the client once initialization is complete."""

    method: str = _wire(default="notifications/initialized")
    params: dict[str, Any] = _wire(omitempty=True, default_factory=dict)


@dataclass(kw_only=True)
class ListPromptsRequestParams(WireModel):
    """Pagination for prompt listing."""

    cursor: str | None = _cursor()


@dataclass(kw_only=True)
class ListPromptsRequest(WireModel):
    """List the prompts the server offers."""

    method: str = _wire(default="prompts/list")
    params: ListPromptsRequestParams | None = _wire(omitempty=True, default=None)


@dataclass(kw_only=True)
class ListPromptsResult(WireModel):
    """A page of prompts."""

    meta: dict[str, Any] = _meta()
    next_cursor: str | None = _cursor()
    prompts: list[Prompt] = _wire(default_factory=list)


@dataclass(kw_only=True)
class ListResourceTemplatesRequestParams(WireModel):
    """Pagination for resource template listing."""

    cursor: str | None = _cursor()


@dataclass(kw_only=True)
class ListResourceTemplatesRequest(WireModel):
    """List the resource templates the server offers."""

    method: str = _wire(default="resources/templates/list")
    params: ListResourceTemplatesRequestParams | None = _wire(omitempty=True, default=None)


@dataclass(kw_only=True)
class ListResourceTemplatesResult(WireModel):
    """A page of resource templates."""

    meta: dict[str, Any] = _meta()
    next_cursor: str | None = _cursor()
    resource_templates: list[ResourceTemplate] = _wire(default_factory=list)


@dataclass(kw_only=True)
class ListResourcesRequestParams(WireModel):
    """Pagination for resource listing."""

    cursor: str | None = _cursor()


@dataclass(kw_only=True)
class ListResourcesRequest(WireModel):
    """List the resources the server offers."""

    method: str = _wire(default="resources/list")
    params: ListResourcesRequestParams | None = _wire(omitempty=True, default=None)


@dataclass(kw_only=True)
class ListResourcesResult(WireModel):
    """A page of resources."""

    meta: dict[str, Any] = _meta()
    next_cursor: str | None = _cursor()
    resources: list[Resource] = _wire(default_factory=list)


@dataclass(kw_only=True)
class ListRootsRequest(WireModel):
    """Ask the client for its root URIs."""

    method: str = _wire(default="roots/list")
    params: dict[str, Any] = _wire(omitempty=True, default_factory=dict)


@dataclass(kw_only=True)
class ListRootsResult(WireModel):
    """The client's roots."""

    meta: dict[str, Any] = _meta()
    roots: list[Root] = _wire(default_factory=list)


@dataclass(kw_only=True)
class ListToolsRequestParams(WireModel):
    """Pagination for tool listing."""

    cursor: str | None = _cursor()


@dataclass(kw_only=True)
class ListToolsRequest(WireModel):
    """List the tools the server offers."""

    method: str = _wire(default="tools/list")
    params: ListToolsRequestParams | None = _wire(omitempty=True, default=None)


@dataclass(kw_only=True)
class ListToolsResult(WireModel):
    """A page of tools."""

    meta: dict[str, Any] = _meta()
    next_cursor: str | None = _cursor()
    tools: list[Tool] = _wire(default_factory=list)


@dataclass(kw_only=True)
class LoggingMessageNotificationParams(WireModel):
    """A log entry and its severity."""

    data: Any = _wire(default=None)
    level: LoggingLevel = _wire(default=LoggingLevel.INFO)
    logger: str | None = _wire(omitempty=True, default=None)


@dataclass(kw_only=True)
class LoggingMessageNotification(WireModel):
    """A log message from server to client."""

    method: str = _wire(default="notifications/message")
    params: LoggingMessageNotificationParams = _wire(
        default_factory=LoggingMessageNotificationParams
    )


@dataclass(kw_only=True)
class PingRequest(WireModel):
    """Check that the other side is still alive."""

    method: str = _wire(default="ping")
    params: dict[str, Any] = _wire(omitempty=True, default_factory=dict)


@dataclass(kw_only=True)
class ProgressNotificationParams(WireModel):
    """Progress of a long-running request."""

    message: str | None = _wire(omitempty=True, default=None)
    progress: float = _wire(default=0.0)
    progress_token: str | int | None = _wire(default=None)
    total: float | None = _wire(omitempty=True, default=None)


@dataclass(kw_only=True)
class ProgressNotification(WireModel):
    """Reports progress on a long-running request."""

    method: str = _wire(default="notifications/progress")
    params: ProgressNotificationParams = _wire(default_factory=ProgressNotificationParams)


@dataclass(kw_only=True)
class PromptListChangedNotification(WireModel):
    """The server's prompts have changed."""

    method: str = _wire(default="notifications/prompts/list_changed")
    params: dict[str, Any] = _wire(omitempty=True, default_factory=dict)


@dataclass(kw_only=True)
class ReadResourceRequestParams(WireModel):
    """The resource to read."""

    uri: str = _wire(default="")


@dataclass(kw_only=True)
class ReadResourceRequest(WireModel):
    """Read a resource by URI."""

    method: str = _wire(default="resources/read")
    params: ReadResourceRequestParams = _wire(default_factory=ReadResourceRequestParams)


@dataclass(kw_only=True)
class ReadResourceResult(WireModel):
    """The contents of a resource."""

    meta: dict[str, Any] = _meta()
    contents: list[Any] = _wire(default_factory=list)


@dataclass(kw_only=True)
class ResourceListChangedNotification(WireModel):
    """The server's resources have changed."""

    method: str = _wire(default="notifications/resources/list_changed")
    params: dict[str, Any] = _wire(omitempty=True, default_factory=dict)


@dataclass(kw_only=True)
class ResourceUpdatedNotificationParams(WireModel):
    """The resource that changed."""

    uri: str = _wire(default="")


@dataclass(kw_only=True)
class ResourceUpdatedNotification(WireModel):
    """A subscribed resource has changed."""

    method: str = _wire(default="notifications/resources/updated")
    params: ResourceUpdatedNotificationParams = _wire(
        default_factory=ResourceUpdatedNotificationParams
    )


@dataclass(kw_only=True)
class RootsListChangedNotification(WireModel):
    """The client's roots have changed."""

    method: str = _wire(default="notifications/roots/list_changed")
    params: dict[str, Any] = _wire(omitempty=True, default_factory=dict)


@dataclass(kw_only=True)
class SetLevelRequestParams(WireModel):
    """The logging level wanted."""

    level: LoggingLevel = _wire(default=LoggingLevel.INFO)


@dataclass(kw_only=True)
class SetLevelRequest(WireModel):
    """Enable or adjust server logging."""

    method: str = _wire(default="logging/setLevel")
    params: SetLevelRequestParams = _wire(default_factory=SetLevelRequestParams)


@dataclass(kw_only=True)
class SubscribeRequestParams(WireModel):
    """The resource to watch."""

    uri: str = _wire(default="")


@dataclass(kw_only=True)
class SubscribeRequest(WireModel):
    """Ask for notifications when a resource changes."""

    method: str = _wire(default="resources/subscribe")
    params: SubscribeRequestParams = _wire(default_factory=SubscribeRequestParams)


@dataclass(kw_only=True)
class ToolListChangedNotification(WireModel):
    """The server's tools have changed."""

    method: str = _wire(default="notifications/tools/list_changed")
    params: dict[str, Any] = _wire(omitempty=True, default_factory=dict)


@dataclass(kw_only=True)
class UnsubscribeRequestParams(WireModel):
    """The resource to stop watching."""

    uri: str = _wire(default="")


@dataclass(kw_only=True)
class UnsubscribeRequest(WireModel):
    """Stop notifications for a resource."""

    method: str = _wire(default="resources/unsubscribe")
    params: UnsubscribeRequestParams = _wire(default_factory=UnsubscribeRequestParams)