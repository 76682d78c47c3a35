import io
import json
import os
import shutil
import socket
import tempfile
import threading

import httpx
import pytest

from figaro.docker import (
    ContainerDefinition,
    DockerApi,
    DockerError,
    format_container_name,
    get_container_by_name,
    get_container_from_image,
    get_environment_variables,
    get_images,
    get_or_create_container,
    setup,
)
from figaro.telemetry import TracerProvider


def make_api(routes, calls, host="unix:///nonexistent.sock", api_version="1.41"):
    def handler(request):
        calls.append(request)
        result = routes[(request.method, request.url.path)]
        if callable(result):
            result = result(request)
        return result

    return DockerApi(host, api_version=api_version, transport=httpx.MockTransport(handler))


@pytest.fixture
def tracer():
    return TracerProvider().tracer("test")


def test_format_container_name_source_example():
    assert format_container_name("mcp/brave-search") == "mcp-mcp.brave-search"


def test_format_container_name_only_safe_characters():
    name = format_container_name("registry:5000/some image@x")
    assert name.startswith("mcp-")
    assert all(ch.isalnum() or ch in "_.-" for ch in name)


def test_get_environment_variables_keeps_positions(monkeypatch, capsys):
    monkeypatch.setenv("FIGARO_TEST_SET", "value")
    monkeypatch.delenv("FIGARO_TEST_UNSET", raising=False)
    result = get_environment_variables(["FIGARO_TEST_SET", "FIGARO_TEST_UNSET"])
    assert result == ["FIGARO_TEST_SET=value", ""]
    assert "FIGARO_TEST_SET=value" in capsys.readouterr().out


def test_container_definition_from_dict():
    definition = ContainerDefinition.from_dict(
        {"image_name": "mcp/brave-search", "env": ["BRAVE_API_KEY"]}
    )
    assert definition.image_name == "mcp/brave-search"
    assert definition.get_env() == ["BRAVE_API_KEY"]
    assert definition.container_name is None


def test_container_definition_rejects_bad_env():
    with pytest.raises(ValueError):
        ContainerDefinition.from_dict({"env": "BRAVE_API_KEY"})


def test_list_containers_encodes_filters():
    calls = []
    api = make_api({("GET", "/v1.41/containers/json"): httpx.Response(200, json=[])}, calls)
    assert api.list_containers({"name": "web"}) == []
    assert json.loads(calls[0].url.params["filters"]) == {"name": {"web": True}}


def test_request_error_raises_with_daemon_message():
    calls = []
    api = make_api(
        {("POST", "/v1.41/containers/abc/start"): httpx.Response(404, json={"message": "no such"})},
        calls,
    )
    with pytest.raises(DockerError, match="no such") as info:
        api.start_container("abc")
    assert info.value.status_code == 404


def test_api_version_negotiated_from_ping(monkeypatch):
    monkeypatch.delenv("DOCKER_API_VERSION", raising=False)
    calls = []
    routes = {
        ("GET", "/_ping"): httpx.Response(200, headers={"API-Version": "1.45"}, text="OK"),
        ("GET", "/v1.45/images/json"): httpx.Response(200, json=[{"Id": "sha"}]),
    }
    api = make_api(routes, calls, api_version=None)
    assert api.list_images({"reference": "x"}) == [{"Id": "sha"}]
    assert api.api_version == "1.45"


def test_get_container_by_name_running(tracer):
    calls = []
    api = make_api(
        {
            ("GET", "/v1.41/containers/json"): httpx.Response(
                200, json=[{"Id": "abc", "State": "running", "Image": "img"}]
            )
        },
        calls,
    )
    assert get_container_by_name(api, "web", tracer) == ("abc", True)


def test_get_container_by_name_missing(tracer):
    calls = []
    api = make_api({("GET", "/v1.41/containers/json"): httpx.Response(200, json=[])}, calls)
    assert get_container_by_name(api, "web", tracer) == (None, False)


def test_get_images_pulls_when_missing(tracer, monkeypatch):
    calls = []
    listings = iter([[], [{"Id": "sha"}]])
    routes = {
        ("GET", "/v1.41/images/json"): lambda request: httpx.Response(200, json=next(listings)),
        ("POST", "/v1.41/images/create"): httpx.Response(200, text='{"status":"done"}\n'),
    }
    api = make_api(routes, calls)
    out = io.StringIO()
    monkeypatch.setattr("sys.stdout", out)
    assert get_images(api, "mcp/brave-search", tracer) == [{"Id": "sha"}]
    assert out.getvalue() == '{"status":"done"}\n'
    pull = [c for c in calls if c.method == "POST"][0]
    assert pull.url.params["fromImage"] == "mcp/brave-search"
    assert pull.url.params["tag"] == "latest"


def test_get_images_pull_failure(tracer):
    calls = []
    routes = {
        ("GET", "/v1.41/images/json"): httpx.Response(200, json=[]),
        ("POST", "/v1.41/images/create"): httpx.Response(500, json={"message": "denied"}),
    }
    api = make_api(routes, calls)
    with pytest.raises(DockerError, match='Failed to pull image "mcp/x"'):
        get_images(api, "mcp/x", tracer)


def test_get_container_from_image_reuses_existing(tracer):
    calls = []
    routes = {
        ("GET", "/v1.41/containers/json"): httpx.Response(
            200, json=[{"Id": "old", "State": "running"}]
        )
    }
    api = make_api(routes, calls)
    assert get_container_from_image(api, "mcp/brave-search", [], tracer) == (
        "old",
        "mcp-mcp.brave-search",
        True,
    )
    assert all(c.method == "GET" for c in calls)


def test_get_container_from_image_creates(tracer, monkeypatch):
    monkeypatch.setenv("FIGARO_TEST_KEY", "placeholder")
    calls = []
    routes = {
        ("GET", "/v1.41/containers/json"): httpx.Response(200, json=[]),
        ("GET", "/v1.41/images/json"): httpx.Response(200, json=[{"Id": "sha"}]),
        ("POST", "/v1.41/containers/create"): httpx.Response(201, json={"Id": "new"}),
    }
    api = make_api(routes, calls)
    result = get_container_from_image(api, "mcp/brave-search", ["FIGARO_TEST_KEY"], tracer)
    assert result == ("new", "mcp-mcp.brave-search", False)
    create = [c for c in calls if c.method == "POST"][0]
    assert create.url.params["name"] == "mcp-mcp.brave-search"
    body = json.loads(create.content)
    assert body["Image"] == "mcp/brave-search"
    assert body["Env"] == ["FIGARO_TEST_KEY=placeholder"]
    assert body["OpenStdin"] is True and body["Tty"] is False
    assert body["HostConfig"] == {"AutoRemove": True}


def test_get_container_from_image_without_images(tracer):
    calls = []
    routes = {
        ("GET", "/v1.41/containers/json"): httpx.Response(200, json=[]),
        ("GET", "/v1.41/images/json"): httpx.Response(200, json=[]),
        ("POST", "/v1.41/images/create"): httpx.Response(200, text=""),
    }
    api = make_api(routes, calls)
    with pytest.raises(DockerError, match="No docker images found"):
        get_container_from_image(api, "mcp/x", [], tracer)


def test_get_or_create_starts_stopped_container(tracer):
    calls = []
    routes = {
        ("GET", "/v1.41/containers/json"): httpx.Response(200, json=[{"Id": "abc", "State": "exited"}]),
        ("POST", "/v1.41/containers/abc/start"): httpx.Response(204),
    }
    api = make_api(routes, calls)
    definition = ContainerDefinition(container_name="web")
    assert get_or_create_container(definition, api, tracer) == "abc"
    assert calls[-1].url.path == "/v1.41/containers/abc/start"


def test_get_or_create_with_empty_definition(tracer):
    api = make_api({}, [])
    assert get_or_create_container(ContainerDefinition(), api, tracer) is None


def test_setup_without_container_raises():
    api = make_api({}, [])
    with pytest.raises(DockerError):
        setup(ContainerDefinition(), TracerProvider(), api)


@pytest.fixture
def attach_server():
    directory = tempfile.mkdtemp(prefix="fg")
    path = os.path.join(directory, "d.sock")
    server = socket.socket(socket.AF_UNIX, socket.SOCK_STREAM)
    server.bind(path)
    server.listen(1)
    state = {}

    def serve():
        conn, _ = server.accept()
        with conn:
            data = b""
            while b"\r\n\r\n" not in data:
                chunk = conn.recv(4096)
                if not chunk:
                    break
                data += chunk
            state["request"] = data
            conn.sendall(
                b"HTTP/1.1 101 UPGRADED\r\nConnection: Upgrade\r\nUpgrade: tcp\r\n\r\nhello\n"
            )
            received = b""
            while not received.endswith(b"\n"):
                chunk = conn.recv(4096)
                if not chunk:
                    break
                received += chunk
            state["received"] = received

    thread = threading.Thread(target=serve, daemon=True)
    thread.start()
    yield path, state, thread
    server.close()
    shutil.rmtree(directory, ignore_errors=True)


def test_setup_attaches_to_running_container(attach_server):
    path, state, thread = attach_server
    calls = []
    routes = {
        ("GET", "/v1.41/containers/json"): httpx.Response(
            200, json=[{"Id": "abc", "State": "running"}]
        )
    }
    api = make_api(routes, calls, host=f"unix://{path}")
    connection = setup(ContainerDefinition(container_name="web"), TracerProvider(), api)
    try:
        assert connection.reader.readline() == b"hello\n"
        connection.write(b"ping\n")
        thread.join(timeout=5)
        assert state["received"] == b"ping\n"
        assert state["request"].startswith(b"POST /v1.41/containers/abc/attach?stream=1")
        assert b"Upgrade: tcp" in state["request"]
    finally:
        connection.close()