"""Shared fixtures for ToolWeave tests."""

import copy
import json
import os
import stat
from pathlib import Path

import pytest

HTTP_MANIFEST = {
    "id": "weather",
    "name": "Weather API",
    "description": "Forecasts and current conditions",
    "version": "1.2.0",
    "adapter": "http",
    "endpoint": "https://weather.example.com",
    "auth": {"type": "bearer", "envVar": "WEATHER_TOKEN"},
    "timeout_ms": 5000,
    "tools": [
        {
            "name": "forecast",
            "description": "Get a forecast",
            "inputSchema": {
                "type": "object",
                "properties": {"city": {"type": "string", "description": "City name"}},
                "required": ["city"],
            },
        },
        {
            "name": "current",
            "description": "Current conditions",
            "inputSchema": {"type": "object", "properties": {}},
        },
    ],
}

MCP_MANIFEST = {
    "id": "github",
    "name": "GitHub MCP",
    "description": "GitHub over MCP",
    "version": "0.3.1",
    "adapter": "mcp",
    "endpoint": "https://mcp.example.com/rpc",
    "tools": [
        {"name": "search_repos", "description": "Search repositories"},
        {"name": "open_issue", "description": "Open an issue"},
    ],
}

SCRIPT_MANIFEST = {
    "id": "local",
    "name": "Local Script",
    "description": "Runs a project script",
    "version": "0.1.0",
    "adapter": "script",
    "scriptPath": "tools/run.sh",
    "scriptEnv": {"TOOL_MODE": "test"},
    "tools": [{"name": "greet", "description": "Say hello"}],
}


@pytest.fixture
def http_manifest():
    return copy.deepcopy(HTTP_MANIFEST)


@pytest.fixture
def mcp_manifest():
    return copy.deepcopy(MCP_MANIFEST)


@pytest.fixture
def script_manifest():
    return copy.deepcopy(SCRIPT_MANIFEST)


def write_json(path: Path, data) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(data), encoding="utf-8")
    return path


def write_script(path: Path, body: str) -> Path:
    """Write an executable POSIX shell script."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text("#!/bin/sh\n" + body, encoding="utf-8")
    path.chmod(path.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
    return path


posix_only = pytest.mark.skipif(os.name != "posix", reason="requires a POSIX shell")
