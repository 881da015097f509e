"""
HTTP adapter: routes tool calls to a REST or webhook endpoint.

By default every action is POSTed to ``<endpoint>/tools/call`` as
``{"name": <action>, "arguments": <args>}``. An action may override the
method and path, in which case the arguments become the query string
(GET/DELETE) or the JSON body (everything else).
"""

from __future__ import annotations

import asyncio
import base64
import logging
import os
from typing import Any, Dict, Mapping, Optional

import httpx

from toolweave.tools.adapters.base import (
    ERROR_BODY_LIMIT,
    CallTimer,
    error_message,
    resolve_timeout_ms,
    timeout_message,
)
from toolweave.tools.schema import (
    ToolAction,
    ToolAuth,
    ToolCallResult,
    ToolHandler,
    ToolManifest,
    namespaced,
)

logger = logging.getLogger(__name__)

DEFAULT_API_KEY_HEADER = "X-API-Key"
_QUERY_METHODS = ("GET", "DELETE")


def build_auth_headers(
    auth: Optional[ToolAuth], environ: Optional[Mapping[str, str]] = None
) -> Dict[str, str]:
    """
    Build request headers for ``auth``.

    The credential is read from ``environ[auth.env_var]`` at call time. A
    missing variable produces no header; the upstream will then reject the
    call, which is reported like any other non-2xx response.
    """
    if auth is None or auth.type == "none":
        return {}

    environ = os.environ if environ is None else environ
    credential = environ.get(auth.env_var, "") if auth.env_var else ""
    if not credential:
        logger.warning("No credential found for %s auth (env var %r)", auth.type, auth.env_var)
        return {}

    if auth.type == "bearer":
        return {"Authorization": f"Bearer {credential}"}
    if auth.type == "api-key":
        return {auth.header_name or DEFAULT_API_KEY_HEADER: credential}
    if auth.type == "basic":
        encoded = base64.b64encode(credential.encode()).decode()
        return {"Authorization": f"Basic {encoded}"}
    return {}


def _action_url(endpoint: str, action: ToolAction) -> str:
    base = endpoint.rstrip("/")
    if not action.path:
        return f"{base}/tools/call"
    return f"{base}/{action.path.lstrip('/')}"


def _decode_body(response: httpx.Response) -> Any:
    if not response.content:
        return None
    try:
        return response.json()
    except ValueError:
        return response.text


def create_http_handler(
    manifest: ToolManifest,
    action: ToolAction,
    transport: Optional[httpx.AsyncBaseTransport] = None,
    default_timeout_ms: Optional[int] = None,
) -> ToolHandler:
    """Build the coroutine handler for one action of an HTTP manifest."""
    timeout_ms = resolve_timeout_ms(manifest, default_timeout_ms)
    url = _action_url(manifest.endpoint or "", action)
    method = (action.method or "POST").upper()
    prefixed_name = namespaced(manifest.id, action.name)

    async def _send(args: Dict[str, Any]) -> httpx.Response:
        headers = {"Content-Type": "application/json", **build_auth_headers(manifest.auth)}
        if action.path:
            if method in _QUERY_METHODS:
                request_kwargs: Dict[str, Any] = {"params": args}
            else:
                request_kwargs = {"json": args}
        else:
            request_kwargs = {"json": {"name": action.name, "arguments": args}}

        async with httpx.AsyncClient(transport=transport, timeout=None) as client:
            return await client.request(method, url, headers=headers, **request_kwargs)

    async def handler(args: Dict[str, Any]) -> ToolCallResult:
        timer = CallTimer(manifest.id, prefixed_name)
        try:
            response = await asyncio.wait_for(_send(args), timeout=timeout_ms / 1000)
        except (asyncio.TimeoutError, httpx.TimeoutException):
            logger.debug("%s timed out after %dms", prefixed_name, timeout_ms)
            return timer.fail(timeout_message(timeout_ms))
        except Exception as exc:
            logger.debug("%s failed: %s", prefixed_name, exc)
            return timer.fail(error_message(exc))

        if not response.is_success:
            return timer.fail(f"HTTP {response.status_code}: {response.text[:ERROR_BODY_LIMIT]}")

        return timer.ok(_decode_body(response))

    return handler


def create_http_adapter(
    manifest: ToolManifest,
    transport: Optional[httpx.AsyncBaseTransport] = None,
    default_timeout_ms: Optional[int] = None,
) -> Dict[str, ToolHandler]:
    """Map every namespaced action of ``manifest`` to an HTTP handler."""
    return {
        namespaced(manifest.id, action.name): create_http_handler(
            manifest, action, transport, default_timeout_ms
        )
        for action in manifest.tools
    }
