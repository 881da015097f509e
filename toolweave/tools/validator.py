"""
Manifest validation.

Structural checks run against the raw decoded JSON before anything is
registered or persisted. Every violation is collected so a human fixing a
manifest sees all of them at once.
"""

from dataclasses import dataclass, field
from typing import Any, List

from pydantic import ValidationError

from toolweave.tools.schema import ADAPTER_TYPES, AUTH_TYPES, ToolManifest


class ManifestError(ValueError):
    """Raised when a manifest fails validation."""

    def __init__(self, errors: List[str]):
        self.errors = list(errors)
        super().__init__("; ".join(self.errors))


@dataclass
class ManifestValidationResult:
    """Outcome of ``validate_manifest``."""

    valid: bool
    errors: List[str] = field(default_factory=list)


def _is_nonempty_str(value: Any) -> bool:
    return isinstance(value, str) and bool(value)


def validate_manifest(raw: Any) -> ManifestValidationResult:
    """
    Validate a decoded manifest document.

    Never raises. Returns ``valid=True`` with an empty error list when the
    document can be turned into a ``ToolManifest``.
    """
    if not isinstance(raw, dict):
        return ManifestValidationResult(valid=False, errors=["Manifest must be an object"])

    errors: List[str] = []

    for key in ("id", "name", "description", "version"):
        if not _is_nonempty_str(raw.get(key)):
            errors.append(f"Missing required field: {key} (string)")

    adapter = raw.get("adapter")
    if adapter not in ADAPTER_TYPES:
        errors.append(
            f'Invalid adapter "{adapter}" - must be one of: {", ".join(ADAPTER_TYPES)}'
        )

    if adapter in ("http", "mcp") and not _is_nonempty_str(raw.get("endpoint")):
        errors.append("HTTP/MCP adapter requires endpoint (string)")

    if adapter == "script" and not _is_nonempty_str(raw.get("scriptPath")):
        errors.append("Script adapter requires scriptPath (string)")

    auth = raw.get("auth")
    if auth is not None:
        if not isinstance(auth, dict) or auth.get("type") not in AUTH_TYPES:
            errors.append(f"auth.type must be one of: {', '.join(AUTH_TYPES)}")

    timeout = raw.get("timeout_ms")
    if timeout is not None:
        if isinstance(timeout, bool) or not isinstance(timeout, int) or timeout <= 0:
            errors.append("timeout_ms must be a positive integer")

    script_env = raw.get("scriptEnv")
    if script_env is not None:
        if not isinstance(script_env, dict) or not all(
            isinstance(k, str) and isinstance(v, str) for k, v in script_env.items()
        ):
            errors.append("scriptEnv must map strings to strings")

    tools = raw.get("tools")
    if not isinstance(tools, list):
        errors.append("Missing required field: tools (array)")
    elif not tools:
        errors.append("tools array must contain at least one action")
    else:
        for entry in tools:
            if not isinstance(entry, dict):
                errors.append("Tool action must be an object")
                continue
            if not _is_nonempty_str(entry.get("name")):
                errors.append('Tool action missing "name" field')
            if not _is_nonempty_str(entry.get("description")):
                errors.append(f'Tool action "{entry.get("name")}" missing "description"')
            schema = entry.get("inputSchema")
            if schema is not None and not isinstance(schema, dict):
                errors.append(f'Tool action "{entry.get("name")}" inputSchema must be an object')

    return ManifestValidationResult(valid=not errors, errors=errors)


def parse_manifest(raw: Any) -> ToolManifest:
    """Validate and build a ``ToolManifest``, raising ``ManifestError`` on failure."""
    result = validate_manifest(raw)
    if not result.valid:
        raise ManifestError(result.errors)
    try:
        return ToolManifest.model_validate(raw)
    except ValidationError as exc:
        raise ManifestError(
            [f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in exc.errors()]
        ) from exc
