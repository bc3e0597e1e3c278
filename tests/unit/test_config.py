"""Unit tests for configuration management."""

import os
from unittest.mock import patch

import pytest

from stubdb.core.config import StubDbConfig, get_config, reload_config


class TestStubDbConfig:
    """Tests for StubDbConfig."""

    def test_default_values(self) -> None:
        """Test default configuration values."""
        with patch.dict(os.environ, {}, clear=True):
            config = StubDbConfig(_env_file=None)

            assert config.max_workers == 4
            assert config.file_pattern == "*.php"
            assert config.skip_invalid_files is False
            assert config.report_annotation_conflicts is True
            assert config.implicit_enum_interfaces is True
            assert config.unknown_sentinel == "UNKNOWN"
            assert config.log_level == "WARNING"

    def test_env_override(self) -> None:
        """Test environment variable override."""
        with patch.dict(
            os.environ,
            {
                "STUBDB_MAX_WORKERS": "8",
                "STUBDB_FILE_PATTERN": "*.stub",
                "STUBDB_SKIP_INVALID_FILES": "true",
            },
        ):
            config = StubDbConfig(_env_file=None)
            assert config.max_workers == 8
            assert config.file_pattern == "*.stub"
            assert config.skip_invalid_files is True

    def test_validation_max_workers(self) -> None:
        """Test worker count bounds."""
        with patch.dict(os.environ, {"STUBDB_MAX_WORKERS": "0"}):
            with pytest.raises(ValueError):
                StubDbConfig(_env_file=None)

        with patch.dict(os.environ, {"STUBDB_MAX_WORKERS": "100"}):
            with pytest.raises(ValueError):
                StubDbConfig(_env_file=None)


class TestConfigCaching:
    """Tests for configuration caching."""

    def test_get_config_cached(self) -> None:
        """Test that get_config returns cached instance."""
        get_config.cache_clear()
        assert get_config() is get_config()

    def test_reload_config_clears_cache(self) -> None:
        """Test that reload_config picks up new environment values."""
        first = reload_config()
        with patch.dict(os.environ, {"STUBDB_UNKNOWN_SENTINEL": "RUNTIME"}):
            second = reload_config()
        assert second is not first
        assert second.unknown_sentinel == "RUNTIME"
        reload_config()
