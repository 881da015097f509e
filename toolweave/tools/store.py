"""Tool store: persists accepted manifests to ``.toolweave/tools.json``."""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional

from pydantic import ValidationError

from toolweave.tools.schema import ToolManifest

logger = logging.getLogger(__name__)

STORE_VERSION = 1


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


class ToolStore:
    """
    Durable registry of manifests keyed by id.

    The backing file is a single JSON document::

        {"version": 1, "tools": {"<id>": {...manifest...}}, "updatedAt": "..."}

    Every mutation rewrites the whole document. A missing, unreadable or
    corrupt file reads as an empty store.
    """

    def __init__(self, store_path: Path):
        self.store_path = Path(store_path)

    @classmethod
    def for_project(cls, project_root: Path) -> "ToolStore":
        return cls(Path(project_root) / ".toolweave" / "tools.json")

    # ── File I/O ──────────────────────────────────────────────────────────

    @staticmethod
    def _empty() -> Dict[str, Any]:
        return {"version": STORE_VERSION, "tools": {}, "updatedAt": _now()}

    def _read(self) -> Dict[str, Any]:
        if not self.store_path.exists():
            return self._empty()
        try:
            data = json.loads(self.store_path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            logger.warning("Ignoring unreadable tool store %s: %s", self.store_path, exc)
            return self._empty()
        if not isinstance(data, dict) or not isinstance(data.get("tools"), dict):
            logger.warning("Ignoring malformed tool store %s", self.store_path)
            return self._empty()
        return data

    def _write(self, data: Dict[str, Any]) -> None:
        data["version"] = STORE_VERSION
        data["updatedAt"] = _now()
        self.store_path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.store_path.with_suffix(self.store_path.suffix + ".tmp")
        tmp_path.write_text(json.dumps(data, indent=2), encoding="utf-8")
        tmp_path.replace(self.store_path)

    @staticmethod
    def _parse(tool_id: str, raw: Any) -> Optional[ToolManifest]:
        try:
            return ToolManifest.model_validate(raw)
        except ValidationError as exc:
            logger.warning("Skipping stored manifest %r: %s", tool_id, exc)
            return None

    # ── Operations ────────────────────────────────────────────────────────

    def add(self, manifest: ToolManifest) -> None:
        """Insert or overwrite ``manifest`` under its id."""
        data = self._read()
        data["tools"][manifest.id] = manifest.to_json_dict()
        self._write(data)

    def remove(self, tool_id: str) -> bool:
        data = self._read()
        if tool_id not in data["tools"]:
            return False
        del data["tools"][tool_id]
        self._write(data)
        return True

    def get(self, tool_id: str) -> Optional[ToolManifest]:
        raw = self._read()["tools"].get(tool_id)
        if raw is None:
            return None
        return self._parse(tool_id, raw)

    def list(self) -> List[ToolManifest]:
        manifests = []
        for tool_id, raw in self._read()["tools"].items():
            manifest = self._parse(tool_id, raw)
            if manifest is not None:
                manifests.append(manifest)
        return manifests

    def has(self, tool_id: str) -> bool:
        return tool_id in self._read()["tools"]

    def size(self) -> int:
        return len(self.list())

    def clear(self) -> None:
        self._write(self._empty())

    def updated_at(self) -> Optional[str]:
        if not self.store_path.exists():
            return None
        return self._read().get("updatedAt")
