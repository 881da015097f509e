"""Transport adapters. Each factory turns a manifest into namespaced handlers."""

from toolweave.tools.adapters.base import DEFAULT_TIMEOUT_MS
from toolweave.tools.adapters.http import build_auth_headers, create_http_adapter, create_http_handler
from toolweave.tools.adapters.mcp import create_mcp_adapter, create_mcp_handler
from toolweave.tools.adapters.script import (
    SpawnFn,
    create_script_adapter,
    create_script_handler,
    run_script,
)

__all__ = [
    "DEFAULT_TIMEOUT_MS",
    "SpawnFn",
    "build_auth_headers",
    "create_http_adapter",
    "create_http_handler",
    "create_mcp_adapter",
    "create_mcp_handler",
    "create_script_adapter",
    "create_script_handler",
    "run_script",
]
