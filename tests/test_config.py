"""Tests for configuration management."""

import logging
import tempfile
from pathlib import Path

import pytest

from toolweave.validation.config import Config, ConfigError, ToolWeaveConfig


class TestConfig:
    """Tests for Config class."""

    @pytest.fixture
    def temp_config_dir(self):
        """Create a temporary config directory."""
        with tempfile.TemporaryDirectory() as tmpdir:
            yield Path(tmpdir)

    def test_deep_merge(self):
        """Test deep merging of dictionaries."""
        config = Config()

        base = {
            "a": 1,
            "b": {"c": 2, "d": 3},
            "e": [1, 2, 3],
        }

        override = {
            "b": {"c": 10, "f": 5},
            "g": "new",
        }

        result = config._deep_merge(base, override)

        assert result["a"] == 1
        assert result["b"]["c"] == 10
        assert result["b"]["d"] == 3
        assert result["b"]["f"] == 5
        assert result["e"] == [1, 2, 3]
        assert result["g"] == "new"

    def test_local_overrides_global(self):
        """Test getting merged configuration."""
        config = Config(
            global_config={"bridge": {"default_timeout_ms": 2000, "tools_dir": "shared/tools"}},
            local_config={"bridge": {"default_timeout_ms": 500}},
        )

        # Local should override global
        assert config.bridge.default_timeout_ms == 500
        # Global should be preserved
        assert config.bridge.tools_dir == "shared/tools"

    def test_defaults(self, temp_config_dir):
        """Test defaults when no config files exist."""
        config = Config(project_root=temp_config_dir)

        assert config.tools_dir() == temp_config_dir / ".toolweave" / "tools"
        assert config.store_path() == temp_config_dir / ".toolweave" / "tools.json"
        assert config.bridge.default_timeout_ms == 10_000
        assert config.log_level() == logging.WARNING

    def test_absolute_paths_are_kept(self, temp_config_dir):
        """Test that absolute paths are not re-rooted."""
        store = temp_config_dir / "elsewhere" / "tools.json"
        config = Config(
            local_config={"bridge": {"store_file": str(store)}},
            project_root=Path("/project"),
        )

        assert config.store_path() == store

    def test_package_paths(self, temp_config_dir):
        """Test package search paths with and without site-packages."""
        config = Config(
            local_config={"bridge": {"package_paths": ["vendor"], "include_site_packages": False}},
            project_root=temp_config_dir,
        )
        assert config.package_paths() == [temp_config_dir / "vendor"]

        with_site = Config(local_config={"bridge": {"package_paths": ["vendor"]}}, project_root=temp_config_dir)
        assert with_site.package_paths()[0] == temp_config_dir / "vendor"
        assert len(with_site.package_paths()) >= 1

    def test_log_level_is_normalised(self):
        """Test that log levels are case-insensitive."""
        config = Config(local_config={"logging": {"level": "debug"}})
        assert config.log_level() == logging.DEBUG

    def test_invalid_log_level(self):
        """Test that an unknown log level is rejected."""
        config = Config(local_config={"logging": {"level": "chatty"}})
        with pytest.raises(ConfigError):
            config.merged

    def test_invalid_timeout(self):
        """Test that a non-positive timeout is rejected."""
        config = Config(local_config={"bridge": {"default_timeout_ms": 0}})
        with pytest.raises(ConfigError):
            config.bridge

    def test_load_from_files(self, temp_config_dir, monkeypatch):
        """Test loading global and local YAML files."""
        global_dir = temp_config_dir / "home"
        global_dir.mkdir()
        (global_dir / "config.yaml").write_text("bridge:\n  default_timeout_ms: 3000\n  fetch_timeout_ms: 4000\n")
        monkeypatch.setattr(Config, "GLOBAL_CONFIG_DIR", global_dir)

        project = temp_config_dir / "project"
        (project / ".toolweave").mkdir(parents=True)
        (project / ".toolweave" / "config.yaml").write_text("bridge:\n  default_timeout_ms: 1500\n")

        config = Config.load(project)

        assert config.project_root == project
        assert config.bridge.default_timeout_ms == 1500
        assert config.bridge.fetch_timeout_ms == 4000

    def test_load_without_files(self, temp_config_dir, monkeypatch):
        """Test loading when neither file exists."""
        monkeypatch.setattr(Config, "GLOBAL_CONFIG_DIR", temp_config_dir / "missing")
        config = Config.load(temp_config_dir)
        assert config.get_merged_config() == {}

    def test_invalid_yaml(self, temp_config_dir):
        """Test that malformed YAML raises ConfigError."""
        path = temp_config_dir / "config.yaml"
        path.write_text("bridge: [unclosed\n")

        with pytest.raises(ConfigError):
            Config._load_yaml(path)

    def test_non_mapping_yaml(self, temp_config_dir):
        """Test that a YAML list is rejected."""
        path = temp_config_dir / "config.yaml"
        path.write_text("- a\n- b\n")

        with pytest.raises(ConfigError):
            Config._load_yaml(path)

    def test_empty_yaml(self, temp_config_dir):
        """Test that an empty file is an empty config."""
        path = temp_config_dir / "config.yaml"
        path.write_text("")

        assert Config._load_yaml(path) == {}


class TestToolWeaveConfig:
    """Tests for ToolWeaveConfig schema."""

    def test_default_config(self):
        """Test default configuration values."""
        config = ToolWeaveConfig()

        assert config.bridge.tools_dir == ".toolweave/tools"
        assert config.bridge.store_file == ".toolweave/tools.json"
        assert config.bridge.package_paths == []
        assert config.bridge.include_site_packages is True
        assert config.logging.level == "WARNING"
