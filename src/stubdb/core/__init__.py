"""Core module containing configuration, diagnostics, exceptions and models.

Models are imported from :mod:`stubdb.core.models` directly; they depend on
:mod:`stubdb.types`, which itself relies on this package.
"""

from stubdb.core.config import StubDbConfig, get_config, reload_config
from stubdb.core.context import FileContext
from stubdb.core.diagnostics import Diagnostic, DiagnosticCollector, DiagnosticKind, Severity
from stubdb.core.exceptions import (
    SerializationError,
    StubDbError,
    StubScanError,
    TypeParseError,
)

__all__ = [
    "Diagnostic",
    "DiagnosticCollector",
    "DiagnosticKind",
    "FileContext",
    "SerializationError",
    "Severity",
    "StubDbConfig",
    "StubDbError",
    "StubScanError",
    "TypeParseError",
    "get_config",
    "reload_config",
]
