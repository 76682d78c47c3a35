# figaro

figaro is a library of building blocks for giving a Claude model the tools of MCP (Model Context Protocol) servers that run in Docker containers. It has these parts:

- finding, creating, starting and attaching to a server's Docker container;
- a newline-delimited JSON-RPC 2.0 client that runs over the attached stream;
- the MCP handshake and a server's tool list;
- streamed requests to the Anthropic Messages API;
- trace spans written as JSON to a rotating log file.

## Installation

```
pip install .
```

To also install the test dependencies:

```
pip install ".[test]"
```

## Requirements

- A Docker daemon. `figaro.docker.DockerApi` connects to `DOCKER_HOST`, which defaults to `unix:///var/run/docker.sock`. It also honours `DOCKER_API_VERSION`, `DOCKER_TLS_VERIFY` and `DOCKER_CERT_PATH`.
- For the model, the `ANTHROPIC_API_KEY` environment variable.

## Connecting to a tool server

```python
from figaro.docker import ContainerDefinition, setup
from figaro.jsonrpc import StdioClient
from figaro.mcp.client import initialize
from figaro.telemetry import init_tracer

provider = init_tracer("figaro")
definition = ContainerDefinition(image_name="mcp/brave-search", env=["BRAVE_API_KEY"])

connection = setup(definition, provider)
with StdioClient(connection, provider) as rpc:
    client = initialize(definition, rpc, provider)
    for tool in client.tools:
        print(tool.name, tool.description)
    response = client.send_message(
        "tools/call", {"name": "brave_web_search", "arguments": {"query": "Lisbon"}}
    )
    print(response.result)

provider.shutdown()
```

`ContainerDefinition` can also be built from a JSON object with `ContainerDefinition.from_dict`, which takes these keys:

- `container_name`: the name of an existing container to use. It is started if it is not running.
- `image_name`: the image to create a container from. A container called `mcp-<image>` is reused if it exists. Characters that Docker does not allow are replaced with `.`. If the image is not present locally, it is pulled, and the daemon's progress is printed. New containers are created with auto-remove set.
- `env`: names of environment variables. Those that are set in your environment are passed into a newly created container as `NAME=value`.
- `id`: read and kept, but not used to look up a container.

`setup` returns a `figaro.jsonrpc.Connection` attached to the container's stdin, stdout and stderr. It raises `figaro.docker.DockerError` when no container can be found or created.

`figaro.jsonrpc.StdioClient` matches responses to requests by id. A request that gets no answer within 10 seconds raises `TimeoutError`; the `timeout` keyword changes this. Handlers for server notifications can be passed by method name through `notification_handlers`. `wait()` blocks until the reader stops and returns why it stopped.

`figaro.mcp.client.initialize` sends `initialize` (protocol version `0.1.0`), then `notifications/initialized`, then `tools/list`. The tools are kept in `Client.tools` as `figaro.mcp.schema.Tool` objects.

## Streaming from the model

```python
from figaro.anthropic import DEFAULT_MODEL, init_anthropic, to_anthropic_tools

bridge = init_anthropic(provider)
stream = bridge.stream_message({
    "model": DEFAULT_MODEL,
    "max_tokens": 1024,
    "messages": [{"role": "user", "content": "What is the weather like in Lisbon?"}],
    "tools": to_anthropic_tools(client.tools),
})
for text in stream:
    print(text, end="", flush=True)
message = stream.result()
print(message["stop_reason"])
```

Iterating a `MessageStream` yields text as it arrives. `result()` reads the rest of the stream and returns the whole message as a dict. Tool-use blocks in it have their `input` decoded. `init_anthropic` raises `RuntimeError` when `ANTHROPIC_API_KEY` is not set.

## Protocol types

`figaro.mcp.schema` and `figaro.mcp.messages` hold the MCP data types, requests, results and notifications as dataclasses. Each one converts to and from its JSON form with `to_dict()` and `from_dict()`. Optional fields that are empty are left out of the JSON. Each request and notification has its method name as its default `method`.

## Logging

`figaro.telemetry.init_tracer(service_name)` returns a `TracerProvider`. It writes finished spans as indented JSON to a log file. The file rotates at 100 MB and is compressed on rotation. Three backups are kept, and none older than 14 days. Spans are written in batches, so call `shutdown()` at the end to write the rest. The default location depends on the platform:

- Linux: `$XDG_STATE_HOME/<service>/logs/application.log`; otherwise `$RUNTIME_DIRECTORY/logs`, or `$STATE_DIRECTORY/logs`; otherwise `~/.local/state/<service>/logs/application.log`
- macOS: `~/Library/Logs/<service>/application.log`
- Windows: `%APPDATA%\<service>\logs\application.log`

To write the log somewhere else, set `FIGARO_LOG_PATH` to the path you want.

## What figaro does not do

figaro has no command-line program. It does not read a list of servers from a configuration file. It does not run the conversation loop, in which the model's tool-use requests are passed to the matching server and the results are sent back to the model. It does not save conversations. The parts above give you the pieces to build these yourself.