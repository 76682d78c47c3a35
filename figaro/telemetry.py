"""Lightweight tracing with spans exported as pretty-printed JSON to a rotating log file."""

from __future__ import annotations

import dataclasses
import enum
import gzip
import json
import logging
import logging.handlers
import os
import secrets
import shutil
import sys
import threading
import time
import traceback
from contextvars import ContextVar, Token
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable

SERVICE_VERSION = "0.0.1"
DEFAULT_BATCH_SIZE = 512

_current_span: ContextVar["Span | None"] = ContextVar("figaro_current_span", default=None)


@dataclass
class LoggingOptions:
    """Where and how trace output is written."""

    filename: str
    service_name: str = ""
    max_size: int = 100
    max_age: int = 14
    max_backups: int = 3
    compress: bool = True


def default_options() -> LoggingOptions:
    """Options used when no service name is given."""
    return LoggingOptions(filename=get_log_file_path("application"))


def get_log_file_path(app_name: str) -> str:
    """Return the platform's log file location for ``app_name``, creating its directory."""
    override = os.environ.get("FIGARO_LOG_PATH")
    if override:
        return override

    if sys.platform == "win32":
        app_data = os.environ.get("APPDATA") or os.path.join(
            os.environ.get("USERPROFILE", ""), "AppData", "Roaming"
        )
        base = Path(app_data) / app_name / "logs"
    elif sys.platform == "darwin":
        base = Path.home() / "Library" / "Logs" / app_name
    else:
        xdg_state_home = os.environ.get("XDG_STATE_HOME")
        runtime_dir = os.environ.get("RUNTIME_DIRECTORY")
        state_dir = os.environ.get("STATE_DIRECTORY")
        if xdg_state_home:
            base = Path(xdg_state_home) / app_name / "logs"
        elif runtime_dir:
            base = Path(runtime_dir) / "logs"
        elif state_dir:
            base = Path(state_dir) / "logs"
        else:
            base = Path.home() / ".local" / "state" / app_name / "logs"

    base.mkdir(parents=True, exist_ok=True)
    return str(base / "application.log")


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


class Span:
    """A timed unit of work with events; usable as a context manager."""

    def __init__(self, tracer: Tracer, name: str, parent: Span | None = None) -> None:
        self.tracer = tracer
        self.name = name
        self.trace_id = parent.trace_id if parent else secrets.token_hex(16)
        self.span_id = secrets.token_hex(8)
        self.parent_id = parent.span_id if parent else None
        self.start_time = _now()
        self.end_time: str | None = None
        self.events: list[dict[str, Any]] = []
        self.status = "Unset"
        self._token: Token | None = None

    def add_event(self, name: str, attributes: dict[str, Any] | None = None) -> None:
        self.events.append({"Name": name, "Attributes": dict(attributes or {}), "Time": _now()})

    def end(self) -> None:
        if self.end_time is not None:
            return
        self.end_time = _now()
        self.tracer.provider._export(self)

    @property
    def ended(self) -> bool:
        return self.end_time is not None

    def to_dict(self) -> dict[str, Any]:
        return {
            "Name": self.name,
            "SpanContext": {"TraceID": self.trace_id, "SpanID": self.span_id},
            "Parent": {"SpanID": self.parent_id} if self.parent_id else None,
            "StartTime": self.start_time,
            "EndTime": self.end_time,
            "Events": self.events,
            "Status": self.status,
            "Resource": self.tracer.provider.resource,
            "InstrumentationScope": {"Name": self.tracer.name},
        }

    def __enter__(self) -> Span:
        self._token = _current_span.set(self)
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        if self._token is not None:
            _current_span.reset(self._token)
            self._token = None
        if exc is not None:
            self.status = "Error"
            self.add_event(
                "exception",
                {"exception.type": exc_type.__name__, "exception.message": str(exc)},
            )
        self.end()


class Tracer:
    """Creates spans for one instrumentation scope."""

    def __init__(self, provider: TracerProvider, name: str) -> None:
        self.provider = provider
        self.name = name

    def span(self, name: str) -> Span:
        """Start a span, nested under the span currently entered, if any."""
        return Span(self, name, _current_span.get())


class TracerProvider:
    """Hands out tracers and exports their finished spans in batches to a sink."""

    def __init__(
        self,
        service_name: str = "",
        sink: Callable[[str], None] | None = None,
        batch_size: int = DEFAULT_BATCH_SIZE,
    ) -> None:
        self.resource = {"service.name": service_name, "service.version": SERVICE_VERSION}
        self._sink = sink
        self._batch_size = batch_size
        self._batch: list[Span] = []
        self._lock = threading.Lock()
        self._closed = False
        self._closers: list[Callable[[], None]] = []

    def tracer(self, name: str) -> Tracer:
        return Tracer(self, name)

    def _export(self, span: Span) -> None:
        if self._sink is None:
            return
        with self._lock:
            if self._closed:
                return
            self._batch.append(span)
            if len(self._batch) >= self._batch_size:
                self._flush_locked()

    def _flush_locked(self) -> None:
        batch, self._batch = self._batch, []
        if self._sink is None:
            return
        for span in batch:
            self._sink(json.dumps(span.to_dict(), indent=2, ensure_ascii=False, default=_json_default))

    def shutdown(self) -> None:
        """Export pending spans and release the output; later spans are dropped."""
        with self._lock:
            if self._closed:
                return
            self._flush_locked()
            self._closed = True
        for close in self._closers:
            close()


def _prune_old(path: Path, max_age_days: int) -> None:
    if max_age_days <= 0:
        return
    cutoff = time.time() - max_age_days * 86400
    for backup in path.parent.glob(path.name + ".*"):
        try:
            if backup.stat().st_mtime < cutoff:
                backup.unlink()
        except OSError:
            pass


def _make_rotator(options: LoggingOptions) -> Callable[[str, str], None]:
    def rotate(source: str, dest: str) -> None:
        if options.compress:
            with open(source, "rb") as src, gzip.open(dest, "wb") as dst:
                shutil.copyfileobj(src, dst)
            os.remove(source)
        else:
            os.replace(source, dest)
        _prune_old(Path(options.filename), options.max_age)

    return rotate


def init_tracer(service_name: str | None = None) -> TracerProvider:
    """Create a provider that writes spans to the service's rotating log file."""
    options = default_options()
    if service_name is not None:
        options = dataclasses.replace(
            options, service_name=service_name, filename=get_log_file_path(service_name)
        )
    Path(options.filename).parent.mkdir(parents=True, exist_ok=True)

    handler = logging.handlers.RotatingFileHandler(
        options.filename,
        maxBytes=options.max_size * 1024 * 1024,
        backupCount=options.max_backups,
        encoding="utf-8",
        delay=True,
    )
    if options.compress:
        handler.namer = lambda name: name + ".gz"
    handler.rotator = _make_rotator(options)

    def sink(text: str) -> None:
        handler.handle(
            logging.makeLogRecord({"msg": text, "levelno": logging.INFO, "levelname": "INFO"})
        )

    provider = TracerProvider(service_name=options.service_name, sink=sink)
    provider._closers.append(handler.close)
    return provider


def _json_default(obj: Any) -> Any:
    to_dict = getattr(obj, "to_dict", None)
    if callable(to_dict):
        return to_dict()
    if dataclasses.is_dataclass(obj) and not isinstance(obj, type):
        return dataclasses.asdict(obj)
    if isinstance(obj, enum.Enum):
        return obj.value
    if isinstance(obj, (set, frozenset, tuple)):
        return list(obj)
    raise TypeError(f"Object of type {type(obj).__name__} is not JSON serializable")


def ez_marshal(content: Any) -> str:
    """Indented JSON for ``content``, or a message saying why it could not be rendered."""
    try:
        return json.dumps(content, indent=2, ensure_ascii=False, default=_json_default)
    except (TypeError, ValueError) as err:
        return f"Cannot print telemetry: {err}"


def ez_print(content: Any) -> None:
    """Print ``content`` as indented JSON, or the call stack and the reason it failed."""
    try:
        text = json.dumps(content, indent=2, ensure_ascii=False, default=_json_default)
    except (TypeError, ValueError) as err:
        print("Call stack:\n" + "".join(traceback.format_stack()))
        print(f"Cannot print telemetry: {err}", end="")
    else:
        print(text)