"""Data models for external tool manifests, call results, and registrations."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

AdapterType = Literal["http", "mcp", "script"]
AuthType = Literal["bearer", "api-key", "basic", "none"]

ADAPTER_TYPES = ("http", "mcp", "script")
AUTH_TYPES = ("bearer", "api-key", "basic", "none")

NAMESPACE_SEPARATOR = "__"


def namespaced(tool_id: str, action: str) -> str:
    """Prefix an action name with its owning tool id (``<id>__<action>``)."""
    return f"{tool_id}{NAMESPACE_SEPARATOR}{action}"


class ToolAuth(BaseModel):
    """Credential strategy. The secret itself lives in an environment variable."""

    model_config = ConfigDict(populate_by_name=True)

    type: AuthType = "none"
    env_var: Optional[str] = Field(default=None, alias="envVar")
    header_name: Optional[str] = Field(default=None, alias="headerName")


class ToolAction(BaseModel):
    """A single callable action within a manifest."""

    model_config = ConfigDict(populate_by_name=True)

    name: str
    description: str
    input_schema: Dict[str, Any] = Field(
        default_factory=lambda: {"type": "object", "properties": {}},
        alias="inputSchema",
    )
    # HTTP adapter only: override the default POST <endpoint>/tools/call
    method: Optional[str] = None
    path: Optional[str] = None


class ToolManifest(BaseModel):
    """Declarative description of an external tool (``*.tool.json``)."""

    model_config = ConfigDict(populate_by_name=True)

    id: str
    name: str
    description: str
    version: str
    adapter: AdapterType

    endpoint: Optional[str] = None
    auth: Optional[ToolAuth] = None

    script_path: Optional[str] = Field(default=None, alias="scriptPath")
    script_env: Dict[str, str] = Field(default_factory=dict, alias="scriptEnv")

    timeout_ms: Optional[int] = None

    tools: List[ToolAction]

    def action_names(self) -> List[str]:
        """Namespaced names of every declared action, in manifest order."""
        return [namespaced(self.id, action.name) for action in self.tools]

    def to_json_dict(self) -> Dict[str, Any]:
        """Serialize with the camelCase wire names used in manifest files."""
        data = self.model_dump(by_alias=True, exclude_none=True)
        if not data.get("scriptEnv"):
            data.pop("scriptEnv", None)
        return data


class ToolCallResult(BaseModel):
    """Uniform response envelope for every adapter call."""

    model_config = ConfigDict(populate_by_name=True)

    tool_id: str = Field(alias="toolId")
    action: str
    success: bool
    data: Any = None
    error: Optional[str] = None
    duration_ms: int = Field(default=0, alias="durationMs")

    def to_json_dict(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True)


ToolHandler = Callable[[Dict[str, Any]], Awaitable[ToolCallResult]]


@dataclass
class RegisteredExternalTool:
    """A manifest with live handlers, owned by the bridge."""

    manifest: ToolManifest
    action_names: List[str]
    handlers: Dict[str, ToolHandler]
    registered_at: str = field(
        default_factory=lambda: datetime.now(timezone.utc).isoformat()
    )
