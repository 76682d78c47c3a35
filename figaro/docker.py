"""Finds, creates, starts and attaches to the Docker containers that host tool servers."""

from __future__ import annotations

import json
import os
import re
import socket
import ssl
import sys
from dataclasses import dataclass
from typing import Any, Iterable, Mapping, TextIO

import httpx

from .jsonrpc import Connection
from .telemetry import Tracer, TracerProvider, ez_marshal

DEFAULT_DOCKER_HOST = "unix:///var/run/docker.sock"
MAX_API_VERSION = "1.49"
FALLBACK_API_VERSION = "1.24"

_INVALID_NAME_CHARS = re.compile(r"[^a-zA-Z0-9_.-]")


class DockerError(Exception):
    """A Docker daemon request failed or returned something unusable."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


def _optional_str(data: Mapping[str, Any], key: str) -> str | None:
    value = data.get(key)
    if value is not None and not isinstance(value, str):
        raise ValueError(f"field {key!r} must be a string")
    return value


@dataclass
class ContainerDefinition:
    """Which container hosts a server, or which image to create it from."""

    id: str | None = None
    env: list[str] | None = None
    image_name: str | None = None
    container_name: str | None = None

    @classmethod
    def from_dict(cls, data: Any) -> ContainerDefinition:
        if not isinstance(data, dict):
            raise ValueError("container definition must be a JSON object")
        env = data.get("env")
        if env is not None and (
            not isinstance(env, list) or not all(isinstance(item, str) for item in env)
        ):
            raise ValueError("field 'env' must be a list of strings")
        return cls(
            id=_optional_str(data, "id"),
            env=env,
            image_name=_optional_str(data, "image_name"),
            container_name=_optional_str(data, "container_name"),
        )

    def get_env(self) -> list[str] | None:
        return self.env


def _parse_version(version: str) -> tuple[int, ...]:
    return tuple(int(part) for part in version.split("."))


def _encode_filters(filters: Mapping[str, str | Iterable[str]]) -> str:
    encoded: dict[str, dict[str, bool]] = {}
    for key, values in filters.items():
        items = [values] if isinstance(values, str) else list(values)
        encoded[key] = {value: True for value in items}
    return json.dumps(encoded, separators=(",", ":"))


def _split_reference(image_name: str) -> tuple[str, str]:
    if "@" in image_name:
        name, _, digest = image_name.partition("@")
        return name, digest
    last = image_name.rsplit("/", 1)[-1]
    if ":" in last:
        name, _, tag = image_name.rpartition(":")
        return name, tag
    return image_name, "latest"


def _raise_for_status(response: httpx.Response) -> None:
    if response.status_code < 400:
        return
    message = response.text
    try:
        payload = response.json()
    except ValueError:
        payload = None
    if isinstance(payload, dict) and isinstance(payload.get("message"), str):
        message = payload["message"]
    raise DockerError(message or f"HTTP {response.status_code}", status_code=response.status_code)


def _tls_context() -> ssl.SSLContext:
    cert_path = os.environ.get("DOCKER_CERT_PATH")
    if not cert_path:
        return ssl.create_default_context()
    context = ssl.create_default_context(cafile=os.path.join(cert_path, "ca.pem"))
    context.load_cert_chain(
        os.path.join(cert_path, "cert.pem"), os.path.join(cert_path, "key.pem")
    )
    return context


class DockerApi:
    """A small client for the Docker Engine HTTP API."""

    def __init__(
        self,
        host: str | None = None,
        *,
        api_version: str | None = None,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.host = host or os.environ.get("DOCKER_HOST") or DEFAULT_DOCKER_HOST
        self._api_version = api_version or os.environ.get("DOCKER_API_VERSION") or None
        scheme, _, address = self.host.partition("://")
        if scheme == "tcp" and os.environ.get("DOCKER_TLS_VERIFY"):
            scheme = "https"
        self._scheme = scheme
        self._address = address
        self._tls: ssl.SSLContext | None = None
        if scheme == "unix":
            base_url = "http://docker"
            if transport is None:
                transport = httpx.HTTPTransport(uds=address)
        elif scheme in ("tcp", "http"):
            base_url = f"http://{address}"
        elif scheme == "https":
            base_url = f"https://{address}"
            self._tls = _tls_context()
            if transport is None:
                transport = httpx.HTTPTransport(verify=self._tls)
        else:
            raise DockerError(f"unsupported docker host {self.host!r}")
        self._client = httpx.Client(base_url=base_url, transport=transport, timeout=None)

    @property
    def api_version(self) -> str:
        """The API version in use, negotiated with the daemon on first need."""
        if self._api_version is None:
            try:
                response = self._client.get("/_ping")
            except httpx.HTTPError as exc:
                raise DockerError(f"cannot reach docker daemon: {exc}") from exc
            server = response.headers.get("API-Version") or FALLBACK_API_VERSION
            self._api_version = min(server, MAX_API_VERSION, key=_parse_version)
        return self._api_version

    def _url(self, path: str) -> str:
        return f"/v{self.api_version}{path}"

    def request(
        self,
        method: str,
        path: str,
        query: Mapping[str, Any] | None = None,
        body: Any = None,
    ) -> Any:
        """Call an API endpoint and return its decoded JSON body (or text, or None)."""
        url = self._url(path)
        try:
            response = self._client.request(method, url, params=query, json=body)
        except httpx.HTTPError as exc:
            raise DockerError(f"{method} {path}: {exc}") from exc
        _raise_for_status(response)
        if not response.content:
            return None
        if "json" in response.headers.get("content-type", ""):
            return response.json()
        return response.text

    def list_containers(self, filters: Mapping[str, str | Iterable[str]]) -> list[dict[str, Any]]:
        """Running containers matching ``filters``."""
        result = self.request("GET", "/containers/json", {"filters": _encode_filters(filters)})
        return list(result or [])

    def list_images(self, filters: Mapping[str, str | Iterable[str]]) -> list[dict[str, Any]]:
        result = self.request("GET", "/images/json", {"filters": _encode_filters(filters)})
        return list(result or [])

    def pull_image(self, image_name: str, out: TextIO | None = None) -> None:
        """Pull an image, copying the daemon's progress output to ``out``."""
        out = out if out is not None else sys.stdout
        name, tag = _split_reference(image_name)
        try:
            with self._client.stream(
                "POST", self._url("/images/create"), params={"fromImage": name, "tag": tag}
            ) as response:
                if response.status_code >= 400:
                    response.read()
                    _raise_for_status(response)
                for chunk in response.iter_text():
                    out.write(chunk)
        except httpx.HTTPError as exc:
            raise DockerError(str(exc)) from exc
        out.flush()

    def create_container(
        self, name: str, config: Mapping[str, Any], host_config: Mapping[str, Any]
    ) -> dict[str, Any]:
        body = {**config, "HostConfig": dict(host_config)}
        return self.request("POST", "/containers/create", {"name": name}, body) or {}

    def start_container(self, container_id: str) -> None:
        self.request("POST", f"/containers/{container_id}/start")

    def _open_socket(self) -> socket.socket:
        if self._scheme == "unix":
            sock = socket.socket(socket.AF_UNIX, socket.SOCK_STREAM)
            try:
                sock.connect(self._address)
            except OSError:
                sock.close()
                raise
            return sock
        host, _, port = self._address.rpartition(":")
        sock = socket.create_connection((host, int(port)))
        if self._tls is not None:
            sock = self._tls.wrap_socket(sock, server_hostname=host)
        return sock

    def attach(self, container_id: str) -> Connection:
        """Attach to a container's stdin, stdout and stderr as one duplex stream."""
        path = self._url(f"/containers/{container_id}/attach")
        request = (
            f"POST {path}?stream=1&stdin=1&stdout=1&stderr=1 HTTP/1.1\r\n"
            "Host: docker\r\n"
            "Content-Type: text/plain\r\n"
            "Connection: Upgrade\r\n"
            "Upgrade: tcp\r\n"
            "Content-Length: 0\r\n"
            "\r\n"
        )
        try:
            sock = self._open_socket()
        except OSError as exc:
            raise DockerError(f"cannot connect to docker daemon: {exc}") from exc
        try:
            sock.sendall(request.encode("ascii"))
            reader = sock.makefile("rb")
            status_line = reader.readline().decode("latin-1").strip()
            parts = status_line.split(" ", 2)
            if len(parts) < 2 or not parts[1].isdigit():
                raise DockerError(f"unexpected attach response: {status_line!r}")
            status = int(parts[1])
            while reader.readline() not in (b"\r\n", b"\n", b""):
                pass
            if status not in (101, 200):
                raise DockerError(f"attach failed: {status_line}", status_code=status)
        except OSError as exc:
            sock.close()
            raise DockerError(f"attach failed: {exc}") from exc
        except DockerError:
            sock.close()
            raise
        return Connection(reader=reader, writer=sock.makefile("wb"), sock=sock)

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> DockerApi:
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()


def setup(
    definition: ContainerDefinition,
    tracer_provider: TracerProvider,
    api: DockerApi | None = None,
) -> Connection:
    """Find or create the container for ``definition``, start it and attach to it."""
    tracer = tracer_provider.tracer("figaro/dockerbridge")
    owns_api = api is None
    docker = api if api is not None else DockerApi()
    with tracer.span("dockerbridge.Setup") as span:
        span.add_event("Starting docker container initialization")
        try:
            container_id = get_or_create_container(definition, docker, tracer)
            if container_id is None:
                raise DockerError("no container could be found or created for the definition")
            return docker.attach(container_id)
        finally:
            if owns_api:
                docker.close()


def get_or_create_container(
    definition: ContainerDefinition, api: DockerApi, tracer: Tracer
) -> str | None:
    """Return the id of a running container for ``definition``, starting it if needed."""
    with tracer.span("dockerbridge.getOrCreateContainer") as span:
        container_id: str | None = None
        running = False
        name = ""
        if definition.container_name is not None:
            container_id, running = get_container_by_name(api, definition.container_name, tracer)
            name = definition.container_name
        elif definition.image_name is not None:
            container_id, name, running = get_container_from_image(
                api, definition.image_name, definition.env or [], tracer
            )

        if running:
            span.add_event(f"Running container found with ID: {container_id}")
            return container_id
        if container_id is None:
            return None

        api.start_container(container_id)
        span.add_event(f"Container started with Name: {name} and ID: {container_id}")
        return container_id


def get_container_by_name(api: DockerApi, name: str, tracer: Tracer) -> tuple[str | None, bool]:
    """The id of the container called ``name`` and whether it runs, or ``(None, False)``."""
    return _get_container(api, {"name": name}, tracer)


def _get_container(
    api: DockerApi, filters: Mapping[str, str], tracer: Tracer
) -> tuple[str | None, bool]:
    with tracer.span("dockerbridge.getContainer") as span:
        containers = api.list_containers(filters)
        if not containers:
            return None, False
        if len(containers) > 1:
            span.add_event(f"Multiple containers found: {len(containers)}.  Using first")
        container = containers[0]
        container_id = container.get("Id")
        span.add_event(
            "Container located",
            {"container_id": container_id, "labels": container.get("Image", "")},
        )
        return container_id, container.get("State") == "running"


def get_container_from_image(
    api: DockerApi, image_name: str, env: Iterable[str], tracer: Tracer
) -> tuple[str | None, str, bool]:
    """Reuse the container named after ``image_name``, or create one from the image.

    Returns the container id, its name and whether it is running.
    """
    with tracer.span("dockerbridge.getContainerFromImage") as span:
        name = format_container_name(image_name)

        container_id, running = get_container_by_name(api, name, tracer)
        if container_id is not None:
            return container_id, name, running

        images = get_images(api, image_name, tracer)
        if not images:
            raise DockerError("No docker images found")

        span.add_event(f"Image {image_name} found locally", {"image_count": len(images)})
        span.add_event("docker", {"images": ez_marshal(images)})

        variables = get_environment_variables(env)
        response = api.create_container(
            name,
            {
                "Image": image_name,
                "Env": variables,
                "AttachStdin": True,
                "OpenStdin": True,
                "StdinOnce": False,
                "AttachStdout": True,
                "AttachStderr": True,
                "Tty": False,
            },
            {"AutoRemove": True},
        )
        return response.get("Id"), name, False


def get_images(api: DockerApi, image_name: str, tracer: Tracer) -> list[dict[str, Any]]:
    """Local images matching ``image_name``, pulling the image first if none exist."""
    filters = {"reference": image_name}
    try:
        images = api.list_images(filters)
    except DockerError as exc:
        raise DockerError(f"Could not list Docker images: {exc}", exc.status_code) from exc
    if images:
        return images

    with tracer.span("dockerbridge.tryPullImage") as span:
        span.add_event(f"Image {image_name} not found locally. Pulling...")
        try:
            api.pull_image(image_name)
        except DockerError as exc:
            raise DockerError(
                f'Failed to pull image "{image_name}". Error: {exc}', exc.status_code
            ) from exc
        return api.list_images(filters)


def format_container_name(image_name: str) -> str:
    """A container name derived from ``image_name`` using only Docker-safe characters."""
    return _INVALID_NAME_CHARS.sub(".", f"mcp-{image_name}")


def get_environment_variables(variable_names: Iterable[str]) -> list[str]:
    """``NAME=value`` for each set variable; unset or empty ones give an empty entry."""
    result = []
    for name in variable_names:
        value = os.environ.get(name, "")
        if value:
            print(f"{name}={value}")
            result.append(f"{name}={value}")
        else:
            result.append("")
    return result