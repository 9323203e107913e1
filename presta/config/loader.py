"""YAML configuration loader with environment variable overrides.

# ─── CONFIGURATION HIERARCHY (Junior Developer Guide) ──────────────────
#
# Configuration is loaded in layers (later layers override earlier):
#
#   1. presta.yaml    : Project defaults checked into the site repo
#   2. .env file      : Local developer overrides (not committed)
#   3. Environment    : PRESTA_* variables set in CI at build time
#
# The YAML file is flat (cache_dir: .cache, max_passes: 50, ...) or nests
# the same keys under a top-level "presta:" section.
# ──────────────────────────────────────────────────────────────────────
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from presta.config.settings import Settings
from presta.utils.errors import ConfigurationError

DEFAULT_CONFIG_PATH = "presta.yaml"


def load_config(path: str | Path = DEFAULT_CONFIG_PATH) -> dict[str, Any]:
    """Read the YAML config file into a flat dict (empty when absent).

    Raises
    ------
    ConfigurationError
        If the file exists but is not valid YAML or not a mapping.
    """
    config_path = Path(path)
    if not config_path.exists():
        return {}

    try:
        with open(config_path, encoding="utf-8") as f:
            raw = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as exc:
        raise ConfigurationError(f"could not read {config_path}: {exc}") from exc

    if not isinstance(raw, dict):
        raise ConfigurationError(f"{config_path} must contain a mapping")

    section = raw.get("presta", raw)
    if not isinstance(section, dict):
        raise ConfigurationError(f"'presta' section in {config_path} must be a mapping")
    return dict(section)


def load_settings(path: str | Path = DEFAULT_CONFIG_PATH, **overrides: Any) -> Settings:
    """Build :class:`Settings` from YAML, environment and explicit overrides.

    Environment values win over YAML; keyword *overrides* (e.g. CLI flags)
    win over both.
    """
    file_config = load_config(path)
    unknown = sorted(set(file_config) - set(Settings.model_fields))
    if unknown:
        raise ConfigurationError(f"unknown config keys: {', '.join(unknown)}")

    try:
        from_env = Settings()
        merged = {
            key: value
            for key, value in file_config.items()
            if key not in from_env.model_fields_set
        }
        merged.update({key: value for key, value in overrides.items() if value is not None})
        return Settings(**merged)
    except ValidationError as exc:
        raise ConfigurationError(f"invalid configuration: {exc}") from exc
