"""
ToolWeave validation module.

This module provides configuration validation and schema enforcement.
"""

from toolweave.validation.config import Config, ConfigError

__all__ = ["Config", "ConfigError"]
