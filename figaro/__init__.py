"""Docker-hosted MCP tool servers, JSON-RPC, Anthropic streaming and tracing for Claude tool use."""

__version__ = "0.0.1"