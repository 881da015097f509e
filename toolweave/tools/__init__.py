"""
External tool bridge for ToolWeave.

Manifests on disk describe third-party tools; adapters reach them over
HTTP, MCP (JSON-RPC over HTTP) or a local subprocess. Every action is
exposed under a namespaced name and always answers with a ToolCallResult.

    manifest.json --> validator --> bridge --> adapter --> HTTP / MCP / script
                                      |
                                      +--> store (.toolweave/tools.json)
"""

from toolweave.tools.schema import (
    RegisteredExternalTool,
    ToolAction,
    ToolAuth,
    ToolCallResult,
    ToolHandler,
    ToolManifest,
    namespaced,
)
from toolweave.tools.validator import (
    ManifestError,
    ManifestValidationResult,
    parse_manifest,
    validate_manifest,
)
from toolweave.tools.store import ToolStore
from toolweave.tools.loader import LoadError, LoadResult, load_all_manifests, load_manifest_file
from toolweave.tools.registry import ToolDefinition, ToolRegistry
from toolweave.tools.bridge import BridgeLoadReport, ExternalToolBridge, ToolRegistryLike

__all__ = [
    "BridgeLoadReport",
    "ExternalToolBridge",
    "LoadError",
    "LoadResult",
    "ManifestError",
    "ManifestValidationResult",
    "RegisteredExternalTool",
    "ToolAction",
    "ToolAuth",
    "ToolCallResult",
    "ToolDefinition",
    "ToolHandler",
    "ToolManifest",
    "ToolRegistry",
    "ToolRegistryLike",
    "ToolStore",
    "load_all_manifests",
    "load_manifest_file",
    "namespaced",
    "parse_manifest",
    "validate_manifest",
]
