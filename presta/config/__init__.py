"""Configuration module: exports Settings and the YAML/env loaders."""

from presta.config.loader import load_config, load_settings
from presta.config.settings import Settings

__all__ = ["Settings", "load_config", "load_settings"]
