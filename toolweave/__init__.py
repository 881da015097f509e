"""
ToolWeave - Bridge third-party tools into an agent's tool registry.

Tools are described by declarative ``*.tool.json`` manifests and reached
over one of three transports, without the caller knowing which:

- http: a REST or webhook endpoint
- mcp: an MCP server speaking JSON-RPC over HTTP
- script: a local executable

Every call returns the same ToolCallResult envelope, success or failure.
"""

__version__ = "1.0.0"
__author__ = "ToolWeave Team"
__license__ = "Apache-2.0"

from toolweave.tools.bridge import ExternalToolBridge
from toolweave.tools.registry import ToolRegistry
from toolweave.tools.schema import ToolCallResult, ToolManifest
from toolweave.tools.store import ToolStore

__all__ = [
    "ExternalToolBridge",
    "ToolCallResult",
    "ToolManifest",
    "ToolRegistry",
    "ToolStore",
    "__version__",
]
