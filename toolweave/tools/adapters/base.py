"""Helpers shared by the HTTP, MCP and script adapters."""

from __future__ import annotations

import json
import time
from typing import Any, Optional

from toolweave.tools.schema import ToolCallResult, ToolManifest

DEFAULT_TIMEOUT_MS = 10_000
ERROR_BODY_LIMIT = 200


def resolve_timeout_ms(manifest: ToolManifest, default_ms: Optional[int] = None) -> int:
    if manifest.timeout_ms:
        return manifest.timeout_ms
    return default_ms or DEFAULT_TIMEOUT_MS


def timeout_message(timeout_ms: int) -> str:
    return f"Timeout after {timeout_ms}ms"


def parse_text_payload(text: str) -> Any:
    """Decode ``text`` as JSON, falling back to the raw string."""
    try:
        return json.loads(text)
    except ValueError:
        return text


def error_message(exc: BaseException) -> str:
    return str(exc) or exc.__class__.__name__


class CallTimer:
    """Measures a single call and builds its ``ToolCallResult``."""

    def __init__(self, tool_id: str, action: str):
        self.tool_id = tool_id
        self.action = action
        self._start = time.perf_counter()

    @property
    def elapsed_ms(self) -> int:
        return int((time.perf_counter() - self._start) * 1000)

    def ok(self, data: Any) -> ToolCallResult:
        return ToolCallResult(
            tool_id=self.tool_id,
            action=self.action,
            success=True,
            data=data,
            duration_ms=self.elapsed_ms,
        )

    def fail(self, error: str, data: Any = None) -> ToolCallResult:
        return ToolCallResult(
            tool_id=self.tool_id,
            action=self.action,
            success=False,
            data=data,
            error=error,
            duration_ms=self.elapsed_ms,
        )
