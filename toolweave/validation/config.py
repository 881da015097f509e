"""
ToolWeave Configuration - Configuration loading and validation.

This module provides the Config class for managing ToolWeave configuration
from both global (~/.toolweave/config.yaml) and local (.toolweave/config.yaml)
sources.
"""

import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


class ConfigError(Exception):
    """Raised when there's a configuration error."""

    pass


class BridgeConfig(BaseModel):
    """Configuration for manifest discovery, storage and calls."""

    tools_dir: str = ".toolweave/tools"
    store_file: str = ".toolweave/tools.json"
    package_paths: List[str] = Field(default_factory=list)
    include_site_packages: bool = True
    default_timeout_ms: int = Field(default=10_000, gt=0)
    fetch_timeout_ms: int = Field(default=10_000, gt=0)


class LoggingConfig(BaseModel):
    """Configuration for log output."""

    level: str = "WARNING"

    @field_validator("level")
    @classmethod
    def _known_level(cls, value: str) -> str:
        value = value.upper()
        if value not in LOG_LEVELS:
            raise ValueError(f"must be one of {', '.join(LOG_LEVELS)}")
        return value


class ToolWeaveConfig(BaseModel):
    """Complete ToolWeave configuration schema."""

    bridge: BridgeConfig = Field(default_factory=BridgeConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)


class Config:
    """
    ToolWeave configuration manager.

    Handles loading, merging, and validating configuration from:
    - Global: ~/.toolweave/config.yaml
    - Local: <project>/.toolweave/config.yaml (project-specific)

    Local configuration overrides global configuration.

    Example:
        >>> config = Config.load(Path("."))
        >>> config.store_path()
        PosixPath('.toolweave/tools.json')
    """

    GLOBAL_CONFIG_DIR = Path.home() / ".toolweave"
    LOCAL_CONFIG_DIR = Path(".toolweave")

    def __init__(
        self,
        global_config: Optional[Dict[str, Any]] = None,
        local_config: Optional[Dict[str, Any]] = None,
        project_root: Optional[Path] = None,
    ):
        """
        Initialize Config.

        Args:
            global_config: Global configuration dictionary.
            local_config: Local (project) configuration dictionary.
            project_root: Directory that relative paths are resolved against.
        """
        self._global_config = global_config or {}
        self._local_config = local_config or {}
        self.project_root = Path(project_root) if project_root else Path.cwd()
        self._merged: Optional[ToolWeaveConfig] = None

    @classmethod
    def load(cls, project_root: Optional[Path] = None) -> "Config":
        """
        Load configuration from default locations.

        Args:
            project_root: Project directory; defaults to the current directory.

        Returns:
            Config instance with loaded configuration.
        """
        root = Path(project_root) if project_root else Path.cwd()
        global_config = cls._load_yaml(cls.GLOBAL_CONFIG_DIR / "config.yaml")
        local_config = cls._load_yaml(root / cls.LOCAL_CONFIG_DIR / "config.yaml")

        return cls(global_config=global_config, local_config=local_config, project_root=root)

    @classmethod
    def _load_yaml(cls, path: Optional[Path]) -> Dict[str, Any]:
        """Load YAML file if it exists."""
        if path is None or not path.exists():
            return {}

        try:
            with open(path) as f:
                data = yaml.safe_load(f)
        except (OSError, yaml.YAMLError) as e:
            raise ConfigError(f"Failed to load config from {path}: {e}")

        if data is None:
            return {}
        if not isinstance(data, dict):
            raise ConfigError(f"Config file {path} must contain a mapping")
        return data

    def get_merged_config(self) -> Dict[str, Any]:
        """Get the merged configuration as a dictionary."""
        return self._deep_merge(self._global_config.copy(), self._local_config)

    @property
    def merged(self) -> ToolWeaveConfig:
        """Get the validated merged configuration."""
        if self._merged is None:
            try:
                self._merged = ToolWeaveConfig(**self.get_merged_config())
            except ValidationError as e:
                raise ConfigError(f"Invalid configuration: {e}")
        return self._merged

    @property
    def bridge(self) -> BridgeConfig:
        return self.merged.bridge

    def _resolve(self, value: str) -> Path:
        path = Path(value).expanduser()
        return path if path.is_absolute() else self.project_root / path

    def tools_dir(self) -> Path:
        """Directory holding project-local ``*.tool.json`` manifests."""
        return self._resolve(self.bridge.tools_dir)

    def store_path(self) -> Path:
        """Location of the tool store document."""
        return self._resolve(self.bridge.store_file)

    def package_paths(self) -> List[Path]:
        """Search paths for package-contributed manifests."""
        from toolweave.tools.loader import default_package_paths

        paths = [self._resolve(p) for p in self.bridge.package_paths]
        if self.bridge.include_site_packages:
            paths.extend(default_package_paths())
        return paths

    def log_level(self) -> int:
        return getattr(logging, self.merged.logging.level)

    def _deep_merge(self, base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
        """Deep merge two dictionaries, with override taking precedence."""
        result = base.copy()

        for key, value in override.items():
            if key in result and isinstance(result[key], dict) and isinstance(value, dict):
                result[key] = self._deep_merge(result[key], value)
            else:
                result[key] = value

        return result
