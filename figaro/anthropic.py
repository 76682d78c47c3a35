"""Streams model responses from the Anthropic Messages API."""

from __future__ import annotations

import copy
import json
import os
from typing import Any, Callable, Iterable, Iterator

import httpx

from .mcp.schema import Tool
from .telemetry import Span, TracerProvider

DEFAULT_BASE_URL = "https://api.anthropic.com"
DEFAULT_MODEL = "claude-3-7-sonnet-latest"
API_VERSION = "2023-06-01"

_PARTIAL_JSON = "_partial_json"


def get_api_key() -> str:
    """The API key from ``ANTHROPIC_API_KEY``."""
    api_key = os.environ.get("ANTHROPIC_API_KEY")
    if api_key is None:
        raise RuntimeError("No ANTHROPIC_API_KEY found")
    return api_key


def to_anthropic_tool(tool: Tool) -> dict[str, Any]:
    """The API's tool definition for an MCP tool."""
    out: dict[str, Any] = {"name": tool.name}
    if tool.description is not None:
        out["description"] = tool.description
    out["input_schema"] = {
        "type": tool.input_schema.type,
        "properties": tool.input_schema.properties,
    }
    return out


def to_anthropic_tools(tools: Iterable[Tool]) -> list[dict[str, Any]]:
    return [to_anthropic_tool(tool) for tool in tools]


def _decode_event(name: str | None, data: list[str]) -> dict[str, Any]:
    payload = json.loads("\n".join(data))
    if not isinstance(payload, dict):
        raise ValueError("stream event must be a JSON object")
    if name and "type" not in payload:
        payload["type"] = name
    return payload


def iter_sse_events(lines: Iterable[str]) -> Iterator[dict[str, Any]]:
    """Decode server-sent event lines into their JSON payloads."""
    name: str | None = None
    data: list[str] = []
    for raw in lines:
        line = raw.rstrip("\r\n")
        if not line:
            if data:
                yield _decode_event(name, data)
            name, data = None, []
            continue
        if line.startswith(":"):
            continue
        key, _, value = line.partition(":")
        if value.startswith(" "):
            value = value[1:]
        if key == "event":
            name = value
        elif key == "data":
            data.append(value)
    if data:
        yield _decode_event(name, data)


def _block(message: dict[str, Any], index: Any) -> dict[str, Any]:
    content = message.get("content") or []
    if not isinstance(index, int) or not 0 <= index < len(content):
        raise ValueError(f"content block index {index!r} out of range")
    return content[index]


def accumulate_event(message: dict[str, Any], event: dict[str, Any]) -> dict[str, Any]:
    """Fold one stream event into ``message`` and return it."""
    kind = event.get("type")
    if kind == "message_start":
        message.clear()
        message.update(copy.deepcopy(event.get("message") or {}))
        message.setdefault("content", [])
    elif kind == "message_delta":
        delta = event.get("delta") or {}
        message["stop_reason"] = delta.get("stop_reason")
        message["stop_sequence"] = delta.get("stop_sequence")
        usage = event.get("usage")
        if usage:
            message.setdefault("usage", {})["output_tokens"] = usage.get("output_tokens", 0)
    elif kind == "content_block_start":
        message.setdefault("content", []).append(copy.deepcopy(event.get("content_block") or {}))
    elif kind == "content_block_delta":
        block = _block(message, event.get("index"))
        delta = event.get("delta") or {}
        delta_type = delta.get("type")
        if delta_type == "text_delta":
            block["text"] = block.get("text", "") + delta.get("text", "")
        elif delta_type == "input_json_delta":
            block[_PARTIAL_JSON] = block.get(_PARTIAL_JSON, "") + delta.get("partial_json", "")
        elif delta_type == "thinking_delta":
            block["thinking"] = block.get("thinking", "") + delta.get("thinking", "")
        elif delta_type == "signature_delta":
            block["signature"] = delta.get("signature", "")
        elif delta_type == "citations_delta":
            block.setdefault("citations", []).append(delta.get("citation"))
    elif kind == "content_block_stop":
        block = _block(message, event.get("index"))
        partial = block.pop(_PARTIAL_JSON, "")
        if partial:
            block["input"] = json.loads(partial)
    return message


class MessageStream:
    """Iterating yields text as it arrives; ``result`` gives the complete message."""

    def __init__(
        self,
        events: Iterable[dict[str, Any]],
        *,
        on_close: Callable[[], None] | None = None,
        span: Span | None = None,
    ) -> None:
        self._events = iter(events)
        self._on_close = on_close
        self._span = span
        self._message: dict[str, Any] = {}
        self._finished = False

    def __iter__(self) -> Iterator[str]:
        if self._finished:
            return
        try:
            for event in self._events:
                kind = event.get("type")
                if kind == "error":
                    error = event.get("error") or {}
                    raise RuntimeError(
                        f"{error.get('type', 'error')}: {error.get('message', '')}"
                    )
                accumulate_event(self._message, event)
                if kind == "content_block_delta":
                    delta = event.get("delta") or {}
                    if delta.get("type") == "text_delta":
                        yield delta.get("text", "")
        except Exception as exc:
            if self._span is not None:
                self._span.status = "Error"
                self._span.add_event("exception", {"exception.message": str(exc)})
            raise
        finally:
            self._finish()

    def _finish(self) -> None:
        if self._finished:
            return
        self._finished = True
        if self._on_close is not None:
            self._on_close()
        if self._span is not None:
            self._span.end()

    def result(self) -> dict[str, Any]:
        """Consume whatever remains of the stream and return the accumulated message."""
        for _ in self:
            pass
        return self._message


class AnthropicBridge:
    """A client for the Messages API with tracing."""

    def __init__(
        self,
        api_key: str,
        tracer_provider: TracerProvider | None = None,
        *,
        base_url: str = DEFAULT_BASE_URL,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self._tracer_provider = tracer_provider if tracer_provider is not None else TracerProvider()
        self._client = httpx.Client(
            base_url=base_url,
            transport=transport,
            timeout=httpx.Timeout(600.0),
            headers={
                "x-api-key": api_key,
                "anthropic-version": API_VERSION,
                "accept": "application/json",
            },
        )

    def stream_message(self, params: dict[str, Any]) -> MessageStream:
        """Start a streamed request for ``params``; HTTP errors raise before streaming."""
        span = self._tracer_provider.tracer("anthropicbridge").span("StreamMessage")
        request = self._client.build_request("POST", "/v1/messages", json={**params, "stream": True})
        try:
            response = self._client.send(request, stream=True)
        except httpx.HTTPError:
            span.status = "Error"
            span.end()
            raise
        if response.is_error:
            response.read()
            response.close()
            span.status = "Error"
            span.add_event("error", {"status": response.status_code, "body": response.text})
            span.end()
            response.raise_for_status()
        return MessageStream(
            iter_sse_events(response.iter_lines()), on_close=response.close, span=span
        )

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> AnthropicBridge:
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()


def init_anthropic(tracer_provider: TracerProvider | None = None) -> AnthropicBridge:
    """A bridge using the key from the environment."""
    return AnthropicBridge(get_api_key(), tracer_provider)