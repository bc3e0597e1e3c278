"""Global configuration for stubdb.

Settings are read from the environment (``STUBDB_`` prefix) and from an
optional ``.env`` file in the working directory.
"""

from __future__ import annotations

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings


class StubDbConfig(BaseSettings):
    """stubdb configuration settings.

    Values can be overridden via environment variables with STUBDB_ prefix.
    Example: STUBDB_MAX_WORKERS=8 overrides max_workers.
    """

    # Build pipeline
    max_workers: int = Field(
        default=4,
        ge=1,
        le=64,
        description="Number of worker threads used to parse stub files",
    )
    file_pattern: str = Field(
        default="*.php",
        description="Glob pattern selecting stub files inside a directory",
    )
    skip_invalid_files: bool = Field(
        default=False,
        description="Discard every declaration of a file that contains syntax errors",
    )

    # Symbol table
    report_annotation_conflicts: bool = Field(
        default=True,
        description="Emit a diagnostic when a docblock type contradicts the native hint",
    )
    implicit_enum_interfaces: bool = Field(
        default=True,
        description="Make enums implement UnitEnum/BackedEnum when those are declared",
    )
    unknown_sentinel: str = Field(
        default="UNKNOWN",
        description="Constant value marking a value that is only known at runtime",
    )

    # Logging
    log_level: str = Field(
        default="WARNING",
        description="Log level used by the command line interface",
    )

    model_config = {
        "env_prefix": "STUBDB_",
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }


@lru_cache
def get_config() -> StubDbConfig:
    """Get cached configuration instance.

    Returns:
        StubDbConfig singleton instance.
    """
    return StubDbConfig()


def reload_config() -> StubDbConfig:
    """Reload configuration (clears cache).

    Returns:
        Fresh StubDbConfig instance.
    """
    get_config.cache_clear()
    return get_config()
