"""Application settings loaded from environment variables via pydantic-settings.

# ─── HOW SETTINGS WORK (Junior Developer Guide) ───────────────────────
#
# This class reads configuration from (in priority order):
#
#   1. **Environment variables** prefixed with PRESTA_, e.g.
#      PRESTA_CACHE_DIR=/tmp/site  (highest priority)
#   2. **.env file**: key=value lines in the project root .env file
#   3. **presta.yaml**: merged in by config/loader.py for fields the
#      environment leaves unset
#
# APP_ENV and LOG_LEVEL are read without the prefix so they line up with
# what utils/logging.py inspects.
# ──────────────────────────────────────────────────────────────────────
"""

from __future__ import annotations

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """presta settings.

    Environment variables override defaults. Loaded from .env file when present.
    """

    model_config = SettingsConfigDict(
        env_prefix="PRESTA_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # === Load cache ===
    # Backing file is <cache_dir>/.<cache_name>; an empty cache_dir means
    # the current working directory.
    cache_name: str = "presta-load-cache"
    cache_dir: str = ""
    # "file" persists TTL'd entries between builds; "memory" never touches disk.
    cache_backend: str = "file"
    memory_cache_size: int = 10_000

    # === Flush loop ===
    # 0 disables the cap and lets a flush run until it converges.
    max_passes: int = 100
    max_concurrent_loads: int = 0

    # === Static build ===
    output_dir: str = "build"

    # === App Config ===
    app_env: str = Field(
        default="development",
        validation_alias=AliasChoices("PRESTA_APP_ENV", "APP_ENV", "app_env"),
    )
    log_level: str = Field(
        default="INFO",
        validation_alias=AliasChoices("PRESTA_LOG_LEVEL", "LOG_LEVEL", "log_level"),
    )

    @property
    def pass_limit(self) -> int | None:
        """``max_passes`` as the engine expects it (``None`` = unbounded)."""
        return self.max_passes if self.max_passes > 0 else None

    @property
    def load_concurrency(self) -> int | None:
        return self.max_concurrent_loads if self.max_concurrent_loads > 0 else None
