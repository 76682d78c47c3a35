[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "figaro"
version = "0.0.1"
description = "Building blocks for connecting a Claude model to MCP tool servers running in Docker containers"
requires-python = ">=3.10"
keywords = ["mcp", "model-context-protocol", "anthropic", "claude", "docker", "json-rpc", "llm", "tools"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Scientific/Engineering :: Artificial Intelligence",
]
dependencies = [
    "httpx",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[tool.hatch.build.targets.wheel]
packages = ["figaro"]

[tool.pytest.ini_options]
addopts = "-ra"
