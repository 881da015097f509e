"""Tool registry: the consumer side that an agent loop calls into."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from toolweave.tools.schema import ToolCallResult, ToolHandler

logger = logging.getLogger(__name__)


@dataclass
class ToolDefinition:
    """What an LLM sees for one callable tool."""

    name: str
    description: str
    parameters: Dict[str, Any] = field(default_factory=dict)

    def prompt_line(self) -> str:
        """One-line representation for the LLM prompt fragment."""
        return f"- {self.name}: {self.description}"

    def full_schema_text(self) -> str:
        """Full parameter schema as text (for on-demand lookup)."""
        lines = [f"Tool: {self.name}", f"  {self.description}", "  Parameters:"]
        properties = self.parameters.get("properties") or {}
        required = set(self.parameters.get("required") or [])
        if not properties:
            lines.append("    (none)")
        for pname, pinfo in properties.items():
            req = " (required)" if pname in required else ""
            ptype = pinfo.get("type", "any") if isinstance(pinfo, dict) else "any"
            desc = pinfo.get("description", "") if isinstance(pinfo, dict) else ""
            lines.append(f"    - {pname}: {ptype}{req} {desc}".rstrip())
        return "\n".join(lines)


class ToolRegistry:
    """
    In-memory name → (definition, handler) map.

    Satisfies the ``register(definition, handler)`` contract the bridge
    expects. Registering an existing name replaces it.
    """

    def __init__(self) -> None:
        self._tools: Dict[str, tuple] = {}

    # ── Registration ──────────────────────────────────────────────────────

    def register(self, definition: Dict[str, Any], handler: ToolHandler) -> None:
        tool_def = ToolDefinition(
            name=definition["name"],
            description=definition.get("description", ""),
            parameters=definition.get("parameters") or {},
        )
        self._tools[tool_def.name] = (tool_def, handler)

    def unregister(self, name: str) -> bool:
        return self._tools.pop(name, None) is not None

    # ── Lookup ────────────────────────────────────────────────────────────

    def has(self, name: str) -> bool:
        return name in self._tools

    def get_definition(self, name: str) -> Optional[ToolDefinition]:
        entry = self._tools.get(name)
        return entry[0] if entry else None

    def list_definitions(self) -> List[ToolDefinition]:
        return [definition for definition, _ in self._tools.values()]

    def __len__(self) -> int:
        return len(self._tools)

    # ── Execution ─────────────────────────────────────────────────────────

    async def execute(self, name: str, args: Optional[Dict[str, Any]] = None) -> ToolCallResult:
        entry = self._tools.get(name)
        if entry is None:
            return ToolCallResult(
                tool_id="unknown",
                action=name,
                success=False,
                error=f"Tool not found: {name}",
            )
        _, handler = entry
        return await handler(args or {})

    # ── Prompt Building ───────────────────────────────────────────────────

    def build_prompt_fragment(self) -> str:
        """
        Build a lean tool list for the LLM prompt.

        Returns something like::

            Available tools:
            - github__search: [GitHub] Search repositories
            - github__issue: [GitHub] Open an issue
            Use tool: <tool_name> with {"param": "value"} to invoke.
        """
        definitions = self.list_definitions()
        if not definitions:
            return ""

        lines = ["Available tools:"]
        for definition in definitions:
            lines.append(definition.prompt_line())
        lines.append('Use tool: <tool_name> with {"param": "value"} to invoke.')
        return "\n".join(lines)

    def build_full_schema(self, name: str) -> str:
        """Return the full parameter schema for ONE tool."""
        definition = self.get_definition(name)
        if not definition:
            return f"Tool not found: {name}"
        return definition.full_schema_text()

    def to_json(self) -> str:
        """Definitions as a JSON array, e.g. for a tool-calling API payload."""
        return json.dumps(
            [
                {"name": d.name, "description": d.description, "parameters": d.parameters}
                for d in self.list_definitions()
            ],
            indent=2,
        )
