"""Configuration management for telety.

Loads and validates YAML-based configuration with Pydantic models.
Supports environment variable overrides for the auth token and every
nested section.
"""

from telety.config.settings import Settings, load_settings

__all__ = ["Settings", "load_settings"]
