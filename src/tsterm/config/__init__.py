"""Configuration management for tsterm.

Loads and validates YAML-based configuration with Pydantic models.
Supports environment variable overrides with the TSTERM_ prefix.
"""

from tsterm.config.settings import Settings, load_settings

__all__ = ["Settings", "load_settings"]
