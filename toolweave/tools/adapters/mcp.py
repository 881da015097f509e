"""
MCP adapter: JSON-RPC 2.0 ``tools/call`` over HTTP.

Each call POSTs one request to the manifest endpoint. Text content blocks
of the reply are joined and decoded as JSON when possible. Servers that
only speak stdio need an HTTP bridge in front of them.
"""

from __future__ import annotations

import asyncio
import itertools
import logging
from typing import Any, Dict, Optional

import httpx

from toolweave.tools.adapters.base import (
    ERROR_BODY_LIMIT,
    CallTimer,
    error_message,
    parse_text_payload,
    resolve_timeout_ms,
    timeout_message,
)
from toolweave.tools.adapters.http import build_auth_headers
from toolweave.tools.schema import ToolCallResult, ToolHandler, ToolManifest, namespaced

logger = logging.getLogger(__name__)

# Process-wide; never reset. Only uniqueness of ids is guaranteed.
_request_ids = itertools.count(1)


def next_request_id() -> int:
    return next(_request_ids)


def build_request(action_name: str, args: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "jsonrpc": "2.0",
        "id": next_request_id(),
        "method": "tools/call",
        "params": {"name": action_name, "arguments": args},
    }


def extract_text(result: Dict[str, Any]) -> str:
    """Join the ``text`` blocks of an MCP ``result.content`` array."""
    parts = []
    for block in result.get("content") or []:
        if isinstance(block, dict) and block.get("type") == "text" and block.get("text"):
            parts.append(block["text"])
    return "\n".join(parts)


def create_mcp_handler(
    manifest: ToolManifest,
    action_name: str,
    transport: Optional[httpx.AsyncBaseTransport] = None,
    default_timeout_ms: Optional[int] = None,
) -> ToolHandler:
    """Build the coroutine handler for one action of an MCP manifest."""
    endpoint = manifest.endpoint or ""
    timeout_ms = resolve_timeout_ms(manifest, default_timeout_ms)
    prefixed_name = namespaced(manifest.id, action_name)

    async def _send(body: Dict[str, Any]) -> httpx.Response:
        headers = {
            "Content-Type": "application/json",
            "Accept": "application/json",
            **build_auth_headers(manifest.auth),
        }
        async with httpx.AsyncClient(transport=transport, timeout=None) as client:
            return await client.post(endpoint, headers=headers, json=body)

    async def handler(args: Dict[str, Any]) -> ToolCallResult:
        timer = CallTimer(manifest.id, prefixed_name)
        # id is taken before the first suspension point
        body = build_request(action_name, args)

        try:
            response = await asyncio.wait_for(_send(body), timeout=timeout_ms / 1000)
        except (asyncio.TimeoutError, httpx.TimeoutException):
            logger.debug("%s timed out after %dms", prefixed_name, timeout_ms)
            return timer.fail(timeout_message(timeout_ms))
        except Exception as exc:
            logger.debug("%s failed: %s", prefixed_name, exc)
            return timer.fail(error_message(exc))

        if not response.is_success:
            return timer.fail(
                f"MCP HTTP {response.status_code}: {response.text[:ERROR_BODY_LIMIT]}"
            )

        try:
            rpc = response.json()
        except ValueError:
            return timer.fail(f"MCP invalid JSON-RPC response: {response.text[:ERROR_BODY_LIMIT]}")
        if not isinstance(rpc, dict):
            return timer.fail("MCP invalid JSON-RPC response: expected an object")

        error = rpc.get("error")
        if error:
            if isinstance(error, dict):
                return timer.fail(f"MCP error {error.get('code')}: {error.get('message')}")
            return timer.fail(f"MCP error: {error}")

        result = rpc.get("result")
        if result is None:
            return timer.ok(None)
        if not isinstance(result, dict):
            return timer.fail("MCP invalid JSON-RPC response: result must be an object")

        data = parse_text_payload(extract_text(result))
        if result.get("isError"):
            return timer.fail(str(data), data=data)
        return timer.ok(data)

    return handler


def create_mcp_adapter(
    manifest: ToolManifest,
    transport: Optional[httpx.AsyncBaseTransport] = None,
    default_timeout_ms: Optional[int] = None,
) -> Dict[str, ToolHandler]:
    """Map every namespaced action of ``manifest`` to an MCP handler."""
    return {
        namespaced(manifest.id, action.name): create_mcp_handler(
            manifest, action.name, transport, default_timeout_ms
        )
        for action in manifest.tools
    }
