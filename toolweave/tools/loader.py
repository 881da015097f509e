"""
Manifest discovery.

Two sources are scanned, local first:

- ``<project>/.toolweave/tools/*.tool.json``, hand-written manifests;
- ``<search path>/toolweave_tools/<package>/toolweave.tool.json`` for each
  package search path, contributed by installed tool packages.

Each file is validated on its own. A bad file becomes an error entry and
the scan carries on.
"""

from __future__ import annotations

import json
import logging
import sysconfig
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, List, Optional, Tuple

from toolweave.tools.schema import ToolManifest
from toolweave.tools.validator import ManifestError, parse_manifest

logger = logging.getLogger(__name__)

MANIFEST_SUFFIX = ".tool.json"
PACKAGE_NAMESPACE = "toolweave_tools"
PACKAGE_MANIFEST = "toolweave.tool.json"


@dataclass
class LoadError:
    source: str
    error: str


@dataclass
class LoadResult:
    manifests: List[ToolManifest] = field(default_factory=list)
    errors: List[LoadError] = field(default_factory=list)

    def extend(self, other: "LoadResult") -> None:
        self.manifests.extend(other.manifests)
        self.errors.extend(other.errors)


def default_package_paths() -> List[Path]:
    """The interpreter's site-packages directory."""
    purelib = sysconfig.get_paths().get("purelib")
    return [Path(purelib)] if purelib else []


def load_manifest_file(path: Path) -> Tuple[Optional[ToolManifest], Optional[str]]:
    """Read, decode and validate one manifest file."""
    try:
        raw = Path(path).read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        return None, f"Cannot read file: {exc}"

    try:
        parsed = json.loads(raw)
    except ValueError:
        return None, f"Invalid JSON in {path}"

    try:
        return parse_manifest(parsed), None
    except ManifestError as exc:
        return None, f"Validation failed: {'; '.join(exc.errors)}"


def _collect(path: Path, result: LoadResult) -> None:
    manifest, error = load_manifest_file(path)
    if error:
        logger.warning("Rejected tool manifest %s: %s", path, error)
        result.errors.append(LoadError(source=str(path), error=error))
    elif manifest is not None:
        result.manifests.append(manifest)


def load_local_manifests(tools_dir: Path) -> LoadResult:
    """Scan ``tools_dir`` for ``*.tool.json`` files."""
    tools_dir = Path(tools_dir)
    result = LoadResult()
    if not tools_dir.exists():
        return result

    try:
        entries = sorted(tools_dir.iterdir())
    except OSError as exc:
        result.errors.append(LoadError(source=str(tools_dir), error=str(exc)))
        return result

    for entry in entries:
        if entry.name.endswith(MANIFEST_SUFFIX) and entry.is_file():
            _collect(entry, result)
    return result


def load_package_manifests(search_paths: Iterable[Path]) -> LoadResult:
    """Scan ``<path>/toolweave_tools/*/toolweave.tool.json`` under each search path."""
    result = LoadResult()
    for search_path in search_paths:
        namespace_dir = Path(search_path) / PACKAGE_NAMESPACE
        if not namespace_dir.is_dir():
            continue
        try:
            packages = sorted(p for p in namespace_dir.iterdir() if p.is_dir())
        except OSError as exc:
            logger.debug("Cannot list %s: %s", namespace_dir, exc)
            continue
        for package_dir in packages:
            manifest_path = package_dir / PACKAGE_MANIFEST
            if manifest_path.exists():
                _collect(manifest_path, result)
    return result


def load_all_manifests(
    project_root: Path,
    tools_dir: Optional[Path] = None,
    package_paths: Optional[Iterable[Path]] = None,
) -> LoadResult:
    """
    Load local manifests followed by package manifests.

    ``tools_dir`` defaults to ``<project_root>/.toolweave/tools``;
    ``package_paths`` defaults to ``default_package_paths()``.
    """
    project_root = Path(project_root)
    if tools_dir is None:
        tools_dir = project_root / ".toolweave" / "tools"
    elif not Path(tools_dir).is_absolute():
        tools_dir = project_root / tools_dir
    if package_paths is None:
        package_paths = default_package_paths()

    result = load_local_manifests(tools_dir)
    result.extend(load_package_manifests(package_paths))
    return result
