"""Model Context Protocol data types shared by requests, results and notifications.

Every model is a keyword-only dataclass deriving from :class:`WireModel`, which maps
it to and from the JSON wire form. Field metadata drives the mapping:

* ``"json"``: the key on the wire (by default the field name in camelCase);
* ``"omitempty"``: leave the key out when the value is None or empty.

Fields without ``omitempty`` are always written, ``None`` as JSON null.
Field annotations must be real types, not strings, since they drive decoding.
"""

import dataclasses
import enum
import types
from dataclasses import dataclass
from typing import Any, Union, get_args, get_origin

RequestID = Union[str, int]
ProgressToken = Union[str, int]
Cursor = str


def _camel(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part[:1].upper() + part[1:] for part in rest)


def _wire(
    json_name: "str | None" = None,
    *,
    omitempty: bool = False,
    default: Any = dataclasses.MISSING,
    default_factory: Any = dataclasses.MISSING,
) -> Any:
    metadata: dict = {"omitempty": omitempty}
    if json_name is not None:
        metadata["json"] = json_name
    return dataclasses.field(default=default, default_factory=default_factory, metadata=metadata)


def _json_name(f: dataclasses.Field) -> str:
    return f.metadata.get("json") or _camel(f.name)


def _field_type(cls: type, f: dataclasses.Field) -> Any:
    if isinstance(f.type, str):
        raise TypeError(f"{cls.__name__}.{f.name}: field type must not be a string annotation")
    return f.type


def _has_default(f: dataclasses.Field) -> bool:
    return f.default is not dataclasses.MISSING or f.default_factory is not dataclasses.MISSING


def _nullable(tp: Any) -> bool:
    if tp is Any:
        return True
    return get_origin(tp) in (Union, types.UnionType) and type(None) in get_args(tp)


def _is_empty(value: Any, omitempty: bool) -> bool:
    if value is None:
        return omitempty
    if not omitempty:
        return False
    if isinstance(value, enum.Enum):
        return value.value == ""
    if isinstance(value, (str, int, float, bool, list, dict, tuple)):
        return not value
    return False


def _encode(value: Any) -> Any:
    if isinstance(value, WireModel):
        return value.to_dict()
    if isinstance(value, enum.Enum):
        return value.value
    if isinstance(value, (list, tuple)):
        return [_encode(item) for item in value]
    if isinstance(value, dict):
        return {key: _encode(item) for key, item in value.items()}
    return value


def _decode(tp: Any, value: Any, where: str) -> Any:
    if tp is Any:
        return value
    origin = get_origin(tp)
    if origin in (Union, types.UnionType):
        for arg in (a for a in get_args(tp) if a is not type(None)):
            try:
                return _decode(arg, value, where)
            except ValueError:
                continue
        raise ValueError(f"{where}: unexpected value {value!r}")
    if origin is list:
        if not isinstance(value, list):
            raise ValueError(f"{where}: expected a list, got {type(value).__name__}")
        args = get_args(tp)
        item_type = args[0] if args else Any
        return [_decode(item_type, item, f"{where}[{index}]") for index, item in enumerate(value)]
    if origin is dict:
        if not isinstance(value, dict):
            raise ValueError(f"{where}: expected an object, got {type(value).__name__}")
        args = get_args(tp)
        value_type = args[1] if args else Any
        return {key: _decode(value_type, item, f"{where}.{key}") for key, item in value.items()}
    if isinstance(tp, type):
        if issubclass(tp, WireModel):
            return tp.from_dict(value)
        if issubclass(tp, enum.Enum):
            try:
                return tp(value)
            except ValueError:
                raise ValueError(f"{where}: {value!r} is not a valid {tp.__name__}") from None
        if tp is bool and isinstance(value, bool):
            return value
        if tp is int and isinstance(value, int) and not isinstance(value, bool):
            return value
        if tp is float and isinstance(value, (int, float)) and not isinstance(value, bool):
            return float(value)
        if tp is str and isinstance(value, str):
            return value
        raise ValueError(f"{where}: expected {tp.__name__}, got {type(value).__name__}")
    raise TypeError(f"{where}: unsupported field type {tp!r}")


@dataclass(kw_only=True)
class WireModel:
    """Base for protocol objects that convert to and from JSON-ready dicts."""

    def to_dict(self) -> dict:
        out: dict = {}
        for f in dataclasses.fields(self):
            value = getattr(self, f.name)
            if _is_empty(value, f.metadata.get("omitempty", False)):
                continue
            out[_json_name(f)] = _encode(value)
        return out

    @classmethod
    def from_dict(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            raise ValueError(f"{cls.__name__} must be a JSON object, got {type(data).__name__}")
        kwargs: dict = {}
        for f in dataclasses.fields(cls):
            key = _json_name(f)
            value = data.get(key)
            tp = _field_type(cls, f)
            if value is None:
                if _has_default(f):
                    continue
                if _nullable(tp):
                    kwargs[f.name] = None
                    continue
                raise ValueError(f"{cls.__name__}: missing field {key!r}")
            kwargs[f.name] = _decode(tp, value, f"{cls.__name__}.{key}")
        return cls(**kwargs)


class Role(str, enum.Enum):
    """The sender or recipient in a conversation."""

    ASSISTANT = "assistant"
    USER = "user"


class LoggingLevel(str, enum.Enum):
    """Severity of a log message."""

    ALERT = "alert"
    CRITICAL = "critical"
    DEBUG = "debug"
    EMERGENCY = "emergency"
    ERROR = "error"
    INFO = "info"
    NOTICE = "notice"
    WARNING = "warning"


@dataclass(kw_only=True)
class Annotations(WireModel):
    """Hints about who an object is for and how important it is."""

    audience: list[Role] = _wire(omitempty=True, default_factory=list)
    priority: float | None = _wire(omitempty=True, default=None)


@dataclass(kw_only=True)
class AudioContent(WireModel):
    """Base64-encoded audio given to or produced by a model."""

    annotations: Annotations | None = _wire(omitempty=True, default=None)
    data: str = _wire(default="")
    mime_type: str = _wire(default="")
    type: str = _wire(default="audio")


@dataclass(kw_only=True)
class ImageContent(WireModel):
    """Base64-encoded image given to or produced by a model."""

    annotations: Annotations | None = _wire(omitempty=True, default=None)
    data: str = _wire(default="")
    mime_type: str = _wire(default="")
    type: str = _wire(default="image")


@dataclass(kw_only=True)
class TextContent(WireModel):
    """Text given to or produced by a model."""

    annotations: Annotations | None = _wire(omitempty=True, default=None)
    text: str = _wire(default="")
    type: str = _wire(default="text")


@dataclass(kw_only=True)
class EmbeddedResource(WireModel):
    """Resource contents embedded in a prompt or result."""

    annotations: Annotations | None = _wire(omitempty=True, default=None)
    resource: Any = _wire(default=None)
    type: str = _wire(default="resource")


@dataclass(kw_only=True)
class BlobResourceContents(WireModel):
    """Binary resource contents, base64-encoded."""

    blob: str = _wire(default="")
    mime_type: str | None = _wire(omitempty=True, default=None)
    uri: str = _wire(default="")


@dataclass(kw_only=True)
class TextResourceContents(WireModel):
    """Textual resource contents."""

    mime_type: str | None = _wire(omitempty=True, default=None)
    text: str = _wire(default="")
    uri: str = _wire(default="")


@dataclass(kw_only=True)
class Resource(WireModel):
    """A resource the server can read."""

    annotations: Annotations | None = _wire(omitempty=True, default=None)
    description: str | None = _wire(omitempty=True, default=None)
    mime_type: str | None = _wire(omitempty=True, default=None)
    name: str = _wire(default="")
    size: int | None = _wire(omitempty=True, default=None)
    uri: str = _wire(default="")


@dataclass(kw_only=True)
class ResourceTemplate(WireModel):
    """A URI template describing a family of resources."""

    annotations: Annotations | None = _wire(omitempty=True, default=None)
    description: str | None = _wire(omitempty=True, default=None)
    mime_type: str | None = _wire(omitempty=True, default=None)
    name: str = _wire(default="")
    uri_template: str = _wire(default="")


@dataclass(kw_only=True)
class ResourceReference(WireModel):
    """A reference to a resource or resource template."""

    type: str = _wire(default="ref/resource")
    uri: str = _wire(default="")


@dataclass(kw_only=True)
class Root(WireModel):
    """A root directory or file the server may operate on."""

    name: str | None = _wire(omitempty=True, default=None)
    uri: str = _wire(default="")


@dataclass(kw_only=True)
class PromptArgument(WireModel):
    """An argument a prompt template accepts."""

    description: str | None = _wire(omitempty=True, default=None)
    name: str = _wire(default="")
    required: bool | None = _wire(omitempty=True, default=None)


@dataclass(kw_only=True)
class Prompt(WireModel):
    """A prompt or prompt template offered by the server."""

    arguments: list[PromptArgument] = _wire(omitempty=True, default_factory=list)
    description: str | None = _wire(omitempty=True, default=None)
    name: str = _wire(default="")


@dataclass(kw_only=True)
class PromptMessage(WireModel):
    """A message returned as part of a prompt."""

    content: Any = _wire()
    role: Role = _wire()


@dataclass(kw_only=True)
class PromptReference(WireModel):
    """A reference to a prompt by name."""

    name: str = _wire(default="")
    type: str = _wire(default="ref/prompt")


@dataclass(kw_only=True)
class SamplingMessage(WireModel):
    """A message sent to or received from a model."""

    content: Any = _wire()
    role: Role = _wire()


@dataclass(kw_only=True)
class ModelHint(WireModel):
    """A hint for choosing a model."""

    name: str = _wire(omitempty=True, default="")


@dataclass(kw_only=True)
class ModelPreferences(WireModel):
    """Server preferences for model selection during sampling."""

    cost_priority: float | None = _wire(omitempty=True, default=None)
    hints: list[ModelHint] = _wire(omitempty=True, default_factory=list)
    intelligence_priority: float | None = _wire(omitempty=True, default=None)
    speed_priority: float | None = _wire(omitempty=True, default=None)


@dataclass(kw_only=True)
class Implementation(WireModel):
    """Name and version of a protocol implementation."""

    name: str = _wire(default="")
    version: str = _wire(default="")


@dataclass(kw_only=True)
class RootsCapability(WireModel):
    """Client support for listing roots."""

    list_changed: bool = _wire(omitempty=True, default=False)


@dataclass(kw_only=True)
class ClientCapabilities(WireModel):
    """Capabilities a client may support."""

    experimental: dict[str, dict[str, Any]] = _wire(omitempty=True, default_factory=dict)
    roots: RootsCapability | None = _wire(omitempty=True, default=None)
    sampling: dict[str, Any] = _wire(omitempty=True, default_factory=dict)


@dataclass(kw_only=True)
class PromptsCapability(WireModel):
    """Server support for prompts."""

    list_changed: bool = _wire(omitempty=True, default=False)


@dataclass(kw_only=True)
class ResourcesCapability(WireModel):
    """Server support for resources."""

    list_changed: bool = _wire(omitempty=True, default=False)
    subscribe: bool = _wire(omitempty=True, default=False)


@dataclass(kw_only=True)
class ToolsCapability(WireModel):
    """Server support for tools."""

    list_changed: bool = _wire(omitempty=True, default=False)


@dataclass(kw_only=True)
class ServerCapabilities(WireModel):
    """Capabilities a server may support."""

    completions: dict[str, Any] = _wire(omitempty=True, default_factory=dict)
    experimental: dict[str, dict[str, Any]] = _wire(omitempty=True, default_factory=dict)
    logging: dict[str, Any] = _wire(omitempty=True, default_factory=dict)
    prompts: PromptsCapability | None = _wire(omitempty=True, default=None)
    resources: ResourcesCapability | None = _wire(omitempty=True, default=None)
    tools: ToolsCapability | None = _wire(omitempty=True, default=None)


@dataclass(kw_only=True)
class ToolAnnotations(WireModel):
    """Behavioural hints about a tool."""

    destructive_hint: bool | None = _wire(omitempty=True, default=None)
    idempotent_hint: bool | None = _wire(omitempty=True, default=None)
    open_world_hint: bool | None = _wire(omitempty=True, default=None)
    read_only_hint: bool | None = _wire(omitempty=True, default=None)
    title: str | None = _wire(omitempty=True, default=None)


@dataclass(kw_only=True)
class ToolInputSchema(WireModel):
    """JSON Schema describing a tool's parameters."""

    properties: dict[str, dict[str, Any]] = _wire(omitempty=True, default_factory=dict)
    required: list[str] = _wire(omitempty=True, default_factory=list)
    type: str = _wire(default="object")


@dataclass(kw_only=True)
class Tool(WireModel):
    """A tool the client can call."""

    annotations: ToolAnnotations | None = _wire(omitempty=True, default=None)
    description: str | None = _wire(omitempty=True, default=None)
    input_schema: ToolInputSchema = _wire(default_factory=ToolInputSchema)
    name: str = _wire(default="")


@dataclass(kw_only=True)
class CompleteArgument(WireModel):
    """The argument being completed."""

    name: str = _wire(default="")
    value: str = _wire(default="")


@dataclass(kw_only=True)
class CompletionInfo(WireModel):
    """Completion values offered for an argument."""

    has_more: bool = _wire(omitempty=True, default=False)
    total: int | None = _wire(omitempty=True, default=None)
    values: list[str] = _wire(default_factory=list)


@dataclass(kw_only=True)
class JSONRPCRequest(WireModel):
    """A request that expects a response."""

    id: RequestID | None = _wire(default=None)
    jsonrpc: str = _wire(default="2.0")
    method: str = _wire(default="")
    params: dict[str, Any] = _wire(omitempty=True, default_factory=dict)


@dataclass(kw_only=True)
class JSONRPCNotification(WireModel):
    """A notification, which expects no response."""

    jsonrpc: str = _wire(default="2.0")
    method: str = _wire(default="")
    params: dict[str, Any] = _wire(omitempty=True, default_factory=dict)


@dataclass(kw_only=True)
class JSONRPCResponse(WireModel):
    """A successful response to a request."""

    id: RequestID | None = _wire(default=None)
    jsonrpc: str = _wire(default="2.0")
    result: dict[str, Any] = _wire(default_factory=dict)


@dataclass(kw_only=True)
class JSONRPCErrorObject(WireModel):
    """Details of a failed request."""

    code: int = _wire(default=0)
    data: Any = _wire(omitempty=True, default=None)
    message: str = _wire(default="")


@dataclass(kw_only=True)
class JSONRPCError(WireModel):
    """A response reporting that a request failed."""

    error: JSONRPCErrorObject = _wire(default_factory=JSONRPCErrorObject)
    id: RequestID | None = _wire(default=None)
    jsonrpc: str = _wire(default="2.0")