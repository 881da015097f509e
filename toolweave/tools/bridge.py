"""
External tool bridge.

Turns manifests into live, namespaced handlers and exposes them to any
consumer registry that offers ``register(definition, handler)``. The
bridge owns the in-memory registrations; the store keeps the manifests
across restarts.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Protocol

import httpx

from toolweave.tools.adapters import (
    SpawnFn,
    create_http_adapter,
    create_mcp_adapter,
    create_script_adapter,
)
from toolweave.tools.loader import LoadError, load_all_manifests
from toolweave.tools.schema import (
    RegisteredExternalTool,
    ToolCallResult,
    ToolHandler,
    ToolManifest,
    namespaced,
)
from toolweave.tools.store import ToolStore
from toolweave.validation.config import Config

logger = logging.getLogger(__name__)

UNKNOWN_TOOL_ID = "unknown"


@dataclass
class BridgeLoadReport:
    """Outcome of ``ExternalToolBridge.load_all``."""

    loaded: int
    errors: List[LoadError] = field(default_factory=list)


class ToolRegistryLike(Protocol):
    """Anything that can receive a tool definition and its handler."""

    def register(self, definition: Dict[str, Any], handler: ToolHandler) -> None:
        ...


class ExternalToolBridge:
    """
    Orchestrates discovery, adapter construction and dispatch.

    Re-registering an id replaces the previous entry wholesale, in memory
    and in the store. Callers that need uniqueness should check ``has()``
    first.
    """

    def __init__(
        self,
        project_root: Path,
        store: Optional[ToolStore] = None,
        config: Optional[Config] = None,
        http_transport: Optional[httpx.AsyncBaseTransport] = None,
        spawn: Optional[SpawnFn] = None,
    ):
        self.project_root = Path(project_root)
        self.config = config or Config(project_root=self.project_root)
        self.store = store or ToolStore(self.config.store_path())
        self._http_transport = http_transport
        self._spawn = spawn
        self._tools: Dict[str, RegisteredExternalTool] = {}

    # ── Adapter construction ──────────────────────────────────────────────

    def _create_handlers(self, manifest: ToolManifest) -> Dict[str, ToolHandler]:
        timeout_ms = self.config.bridge.default_timeout_ms
        if manifest.adapter == "http":
            return create_http_adapter(manifest, self._http_transport, timeout_ms)
        if manifest.adapter == "mcp":
            return create_mcp_adapter(manifest, self._http_transport, timeout_ms)
        if manifest.adapter == "script":
            return create_script_adapter(manifest, self._spawn, self.project_root, timeout_ms)
        raise ValueError(f"Unsupported adapter: {manifest.adapter!r}")

    # ── Registration ──────────────────────────────────────────────────────

    def _release_action_names(self, tool_id: str, handlers: Dict[str, ToolHandler]) -> None:
        """Take colliding namespaced names away from other tools; the newest wins."""
        for other_id, other in self._tools.items():
            if other_id == tool_id:
                continue
            for name in [n for n in other.action_names if n in handlers]:
                logger.warning("Action %r of tool %r is replaced by tool %r", name, other_id, tool_id)
                other.action_names.remove(name)
                other.handlers.pop(name, None)

    def register_manifest(
        self,
        manifest: ToolManifest,
        registry: Optional[ToolRegistryLike] = None,
        persist: bool = True,
    ) -> RegisteredExternalTool:
        """Build handlers for ``manifest``, record it, persist it, and expose it."""
        handlers = self._create_handlers(manifest)
        registered = RegisteredExternalTool(
            manifest=manifest,
            action_names=list(handlers.keys()),
            handlers=handlers,
        )

        if manifest.id in self._tools:
            logger.warning("Tool %r is already registered; replacing it", manifest.id)
        self._release_action_names(manifest.id, handlers)
        self._tools[manifest.id] = registered
        if persist:
            self.store.add(manifest)
        logger.info(
            "Registered tool %r (%s) with %d action(s)",
            manifest.id, manifest.adapter, len(registered.action_names),
        )

        if registry is not None:
            for action in manifest.tools:
                prefixed_name = namespaced(manifest.id, action.name)
                registry.register(
                    {
                        "name": prefixed_name,
                        "description": f"[{manifest.name}] {action.description}",
                        "parameters": action.input_schema,
                    },
                    handlers[prefixed_name],
                )

        return registered

    def load_all(self, registry: Optional[ToolRegistryLike] = None) -> BridgeLoadReport:
        """Discover manifests on disk and register every valid one."""
        result = load_all_manifests(
            self.project_root,
            tools_dir=self.config.tools_dir(),
            package_paths=self.config.package_paths(),
        )
        for manifest in result.manifests:
            self.register_manifest(manifest, registry)
        return BridgeLoadReport(loaded=len(result.manifests), errors=result.errors)

    def load_stored(self, registry: Optional[ToolRegistryLike] = None) -> int:
        """Rebuild handlers for every manifest already in the store."""
        manifests = self.store.list()
        for manifest in manifests:
            self.register_manifest(manifest, registry, persist=False)
        return len(manifests)

    def unregister(self, tool_id: str) -> bool:
        """Drop a tool from memory and from the store."""
        existed = self._tools.pop(tool_id, None) is not None
        self.store.remove(tool_id)
        if existed:
            logger.info("Unregistered tool %r", tool_id)
        return existed

    # ── Query API ─────────────────────────────────────────────────────────

    def get(self, tool_id: str) -> Optional[RegisteredExternalTool]:
        return self._tools.get(tool_id)

    def list(self) -> List[RegisteredExternalTool]:
        return list(self._tools.values())

    def has(self, tool_id: str) -> bool:
        return tool_id in self._tools

    def action_names(self) -> List[str]:
        return [name for tool in self._tools.values() for name in tool.action_names]

    def __len__(self) -> int:
        return len(self._tools)

    # ── Dispatch ──────────────────────────────────────────────────────────

    async def execute(self, action: str, args: Optional[Dict[str, Any]] = None) -> ToolCallResult:
        """Run a namespaced action. Unknown actions yield a failed result."""
        for tool in self._tools.values():
            handler = tool.handlers.get(action)
            if handler is not None:
                return await handler(args or {})

        logger.debug("No registered tool owns action %r", action)
        return ToolCallResult(
            tool_id=UNKNOWN_TOOL_ID,
            action=action,
            success=False,
            error=f'Action "{action}" not found in any registered tool',
            duration_ms=0,
        )

