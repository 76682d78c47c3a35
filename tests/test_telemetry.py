import json
import pathlib
from dataclasses import dataclass

import pytest

from figaro import telemetry
from figaro.telemetry import (
    TracerProvider,
    default_options,
    ez_marshal,
    ez_print,
    get_log_file_path,
    init_tracer,
)

_LOCATION_VARS = ("FIGARO_LOG_PATH", "XDG_STATE_HOME", "RUNTIME_DIRECTORY", "STATE_DIRECTORY", "APPDATA")


@pytest.fixture
def clean_env(monkeypatch, tmp_path):
    for name in _LOCATION_VARS:
        monkeypatch.delenv(name, raising=False)
    home = tmp_path / "home"
    home.mkdir()
    monkeypatch.setattr(pathlib.Path, "home", classmethod(lambda cls: home))
    return home


def _collecting_provider(**kwargs):
    records = []
    provider = TracerProvider(service_name="svc", sink=records.append, **kwargs)
    return provider, records


def test_override_path_wins(clean_env, monkeypatch, tmp_path):
    target = str(tmp_path / "custom.log")
    monkeypatch.setenv("FIGARO_LOG_PATH", target)
    assert get_log_file_path("app") == target


def test_linux_xdg_state_home(clean_env, monkeypatch, tmp_path):
    monkeypatch.setattr(telemetry.sys, "platform", "linux")
    monkeypatch.setenv("XDG_STATE_HOME", str(tmp_path / "state"))
    result = get_log_file_path("app")
    expected_dir = tmp_path / "state" / "app" / "logs"
    assert result == str(expected_dir / "application.log")
    assert expected_dir.is_dir()


@pytest.mark.parametrize("variable", ["RUNTIME_DIRECTORY", "STATE_DIRECTORY"])
def test_linux_service_directories(clean_env, monkeypatch, tmp_path, variable):
    monkeypatch.setattr(telemetry.sys, "platform", "linux")
    monkeypatch.setenv(variable, str(tmp_path / "svc"))
    assert get_log_file_path("app") == str(tmp_path / "svc" / "logs" / "application.log")


def test_runtime_directory_preferred_over_state_directory(clean_env, monkeypatch, tmp_path):
    monkeypatch.setattr(telemetry.sys, "platform", "linux")
    monkeypatch.setenv("RUNTIME_DIRECTORY", str(tmp_path / "run"))
    monkeypatch.setenv("STATE_DIRECTORY", str(tmp_path / "state"))
    assert get_log_file_path("app") == str(tmp_path / "run" / "logs" / "application.log")


def test_linux_home_fallback(clean_env, monkeypatch):
    monkeypatch.setattr(telemetry.sys, "platform", "linux")
    expected_dir = clean_env / ".local" / "state" / "app" / "logs"
    assert get_log_file_path("app") == str(expected_dir / "application.log")
    assert expected_dir.is_dir()


def test_darwin_library_logs(clean_env, monkeypatch):
    monkeypatch.setattr(telemetry.sys, "platform", "darwin")
    expected = clean_env / "Library" / "Logs" / "app" / "application.log"
    assert get_log_file_path("app") == str(expected)


def test_windows_appdata(clean_env, monkeypatch, tmp_path):
    monkeypatch.setattr(telemetry.sys, "platform", "win32")
    monkeypatch.setenv("APPDATA", str(tmp_path / "roaming"))
    expected = tmp_path / "roaming" / "app" / "logs" / "application.log"
    assert get_log_file_path("app") == str(expected)


def test_default_options(clean_env, monkeypatch, tmp_path):
    target = str(tmp_path / "x.log")
    monkeypatch.setenv("FIGARO_LOG_PATH", target)
    options = default_options()
    assert options.filename == target
    assert (options.max_size, options.max_age, options.max_backups, options.compress) == (100, 14, 3, True)


def test_spans_exported_on_shutdown_with_parent_link():
    provider, records = _collecting_provider()
    tracer = provider.tracer("scope")
    with tracer.span("outer") as outer:
        with tracer.span("inner") as inner:
            inner.add_event("hello", {"k": "v"})
    assert records == []
    provider.shutdown()
    exported = [json.loads(r) for r in records]
    by_name = {item["Name"]: item for item in exported}
    assert set(by_name) == {"outer", "inner"}
    assert by_name["inner"]["Parent"]["SpanID"] == outer.span_id
    assert by_name["inner"]["SpanContext"]["TraceID"] == by_name["outer"]["SpanContext"]["TraceID"]
    assert by_name["inner"]["Events"][0]["Name"] == "hello"
    assert by_name["inner"]["Events"][0]["Attributes"] == {"k": "v"}
    assert by_name["outer"]["Resource"]["service.name"] == "svc"
    assert by_name["outer"]["InstrumentationScope"]["Name"] == "scope"


def test_span_end_is_idempotent():
    provider, records = _collecting_provider()
    span = provider.tracer("t").span("once")
    span.end()
    span.end()
    provider.shutdown()
    assert len(records) == 1
    assert span.ended


def test_exception_recorded_on_span():
    provider, records = _collecting_provider()
    with pytest.raises(RuntimeError):
        with provider.tracer("t").span("boom"):
            raise RuntimeError("bad")
    provider.shutdown()
    exported = json.loads(records[0])
    assert exported["Status"] == "Error"
    assert exported["Events"][0]["Attributes"]["exception.message"] == "bad"


def test_batch_flushes_when_full():
    provider, records = _collecting_provider(batch_size=2)
    tracer = provider.tracer("t")
    tracer.span("a").end()
    assert records == []
    tracer.span("b").end()
    assert [json.loads(r)["Name"] for r in records] == ["a", "b"]


def test_spans_after_shutdown_are_dropped():
    provider, records = _collecting_provider()
    provider.shutdown()
    provider.tracer("t").span("late").end()
    provider.shutdown()
    assert records == []


def test_init_tracer_writes_log_file(clean_env, monkeypatch, tmp_path):
    target = tmp_path / "logs" / "trace.log"
    monkeypatch.setenv("FIGARO_LOG_PATH", str(target))
    provider = init_tracer("figaro")
    with provider.tracer("figaro").span("work") as span:
        pass
    assert span.ended
    provider.shutdown()
    text = target.read_text(encoding="utf-8")
    assert '"Name": "work"' in text
    assert '"service.name": "figaro"' in text
    assert f'"SpanID": "{span.span_id}"' in text


def test_ez_marshal_indents():
    assert ez_marshal({"a": 1}) == '{\n  "a": 1\n}'


def test_ez_marshal_dataclass_round_trip():
    @dataclass
    class Point:
        x: int
        y: int

    assert json.loads(ez_marshal(Point(1, 2))) == {"x": 1, "y": 2}


def test_ez_marshal_unserializable():
    assert ez_marshal({"a": object()}).startswith("Cannot print telemetry:")


def test_ez_print_prints_json(capsys):
    ez_print({"a": 1})
    assert capsys.readouterr().out == ez_marshal({"a": 1}) + "\n"


def test_ez_print_unserializable(capsys):
    ez_print(object())
    out = capsys.readouterr().out
    assert out.startswith("Call stack:")
    assert "Cannot print telemetry:" in out