"""JSON-RPC 2.0 messages and a client speaking newline-delimited JSON over a byte stream."""

from __future__ import annotations

import dataclasses
import enum
import json
import queue
import socket
import threading
import uuid
from dataclasses import dataclass, field
from typing import Any, BinaryIO, Callable, Mapping

from .telemetry import TracerProvider

DEFAULT_TIMEOUT = 10.0


def _require_str(data: Mapping[str, Any], key: str) -> str:
    value = data.get(key)
    if value is None:
        return ""
    if not isinstance(value, str):
        raise ValueError(f"field {key!r} must be a string, got {type(value).__name__}")
    return value


@dataclass
class Error:
    """The error object of a JSON-RPC response."""

    code: int
    message: str
    data: Any = None

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {"code": self.code, "message": self.message}
        if self.data is not None:
            out["data"] = self.data
        return out

    @classmethod
    def from_dict(cls, data: Any) -> Error:
        if not isinstance(data, dict):
            raise ValueError("error must be a JSON object")
        code = data.get("code", 0)
        if isinstance(code, bool) or not isinstance(code, int):
            raise ValueError("error code must be an integer")
        return cls(code=code, message=_require_str(data, "message"), data=data.get("data"))


@dataclass
class Message:
    """A JSON-RPC request, notification or response; empty fields are left off the wire."""

    jsonrpc: str = "2.0"
    id: str = ""
    method: str = ""
    params: Any = None
    result: Any = None
    error: Error | None = None

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {"jsonrpc": self.jsonrpc}
        if self.id:
            out["id"] = self.id
        if self.method:
            out["method"] = self.method
        if self.params is not None:
            out["params"] = self.params
        if self.result is not None:
            out["result"] = self.result
        if self.error is not None:
            out["error"] = self.error.to_dict()
        return out

    @classmethod
    def from_dict(cls, data: Any) -> Message:
        if not isinstance(data, dict):
            raise ValueError("message must be a JSON object")
        error = data.get("error")
        return cls(
            jsonrpc=_require_str(data, "jsonrpc"),
            id=_require_str(data, "id"),
            method=_require_str(data, "method"),
            params=data.get("params"),
            result=data.get("result"),
            error=Error.from_dict(error) if error is not None else None,
        )


def _json_default(obj: Any) -> Any:
    to_dict = getattr(obj, "to_dict", None)
    if callable(to_dict):
        return to_dict()
    if dataclasses.is_dataclass(obj) and not isinstance(obj, type):
        return dataclasses.asdict(obj)
    if isinstance(obj, enum.Enum):
        return obj.value
    raise TypeError(f"Object of type {type(obj).__name__} is not JSON serializable")


def encode_message(message: Message) -> bytes:
    """Compact JSON for ``message`` followed by a newline."""
    text = json.dumps(
        message.to_dict(), separators=(",", ":"), ensure_ascii=False, default=_json_default
    )
    return text.encode("utf-8") + b"\n"


def get_clean_line(line: str) -> str:
    """Drop anything before the first ``{``, such as stream framing bytes."""
    index = line.find("{")
    return line[index:] if index != -1 else line


@dataclass
class Connection:
    """A duplex byte stream: lines are read from ``reader`` and written to ``writer``."""

    reader: BinaryIO
    writer: BinaryIO
    sock: socket.socket | None = field(default=None, repr=False)

    def write(self, data: bytes) -> None:
        self.writer.write(data)
        self.writer.flush()

    def close(self) -> None:
        if self.sock is not None:
            try:
                self.sock.shutdown(socket.SHUT_RDWR)
            except OSError:
                pass
        for stream in (self.writer, self.reader, self.sock):
            if stream is None:
                continue
            try:
                stream.close()
            except (OSError, ValueError):
                pass


class StdioClient:
    """Sends JSON-RPC messages over a connection and matches responses to requests by id."""

    def __init__(
        self,
        connection: Connection,
        tracer_provider: TracerProvider | None = None,
        *,
        timeout: float = DEFAULT_TIMEOUT,
        notification_handlers: Mapping[str, Callable[[Message], None]] | None = None,
    ) -> None:
        self._connection = connection
        provider = tracer_provider if tracer_provider is not None else TracerProvider()
        self._tracer = provider.tracer("jsonrpc")
        self._timeout = timeout
        self._handlers = dict(notification_handlers or {})
        self._pending: dict[str, queue.Queue[Message]] = {}
        self._lock = threading.Lock()
        self._write_lock = threading.Lock()
        self._closing = threading.Event()
        self._stopped = threading.Event()
        self._cause: BaseException | None = None
        self._thread = threading.Thread(target=self._read_loop, name="jsonrpc-reader", daemon=True)
        self._thread.start()

    def notify(self, method: str, params: Any = None) -> None:
        """Send a notification; no response is awaited."""
        with self._tracer.span("notify"):
            self._write(Message(method=method, params=params))

    def send_action_message(self, method: str) -> Message:
        """Send a request without params and return its response."""
        with self._tracer.span("SendMessage"):
            return self._request(Message(method=method))

    def send_message(self, method: str, params: Any = None) -> Message:
        """Send a request and return its response."""
        with self._tracer.span("SendMessage"):
            return self._request(Message(method=method, params=params))

    def wait(self, timeout: float | None = None) -> BaseException | None:
        """Block until the reader stops; return why it stopped (None at end of stream)."""
        if not self._stopped.wait(timeout):
            raise TimeoutError("connection reader is still running")
        return self._cause

    def close(self) -> None:
        self._closing.set()
        self._connection.close()
        self._thread.join(timeout=1.0)

    def __enter__(self) -> StdioClient:
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    def _request(self, message: Message) -> Message:
        message_id = str(uuid.uuid4())
        message = dataclasses.replace(message, id=message_id)
        responses: queue.Queue[Message] = queue.Queue()
        with self._lock:
            self._pending[message_id] = responses
        try:
            self._write(message)
            try:
                return responses.get(timeout=self._timeout)
            except queue.Empty:
                raise TimeoutError(f"request timed out after {self._timeout:g} seconds") from None
        finally:
            with self._lock:
                self._pending.pop(message_id, None)

    def _write(self, message: Message) -> None:
        data = encode_message(message)
        try:
            with self._write_lock:
                self._connection.write(data)
        except (OSError, ValueError) as exc:
            raise ConnectionError(f"failed to send message: {exc}") from exc

    def _dispatch(self, message: Message) -> None:
        if message.method:
            handler = self._handlers.get(message.method)
            if handler is not None:
                handler(message)
        with self._lock:
            responses = self._pending.get(message.id)
        if responses is not None:
            responses.put(message)

    def _read_loop(self) -> None:
        try:
            for raw in self._connection.reader:
                if self._closing.is_set():
                    break
                line = raw.rstrip(b"\n")
                if line.endswith(b"\r"):
                    line = line[:-1]
                if not line:
                    continue
                text = get_clean_line(line.decode("utf-8", errors="replace"))
                try:
                    message = Message.from_dict(json.loads(text))
                except ValueError as exc:
                    print(exc)
                    self._cause = exc
                    break
                self._dispatch(message)
        except (OSError, ValueError) as exc:
            if not self._closing.is_set():
                self._cause = exc
        finally:
            self._stopped.set()