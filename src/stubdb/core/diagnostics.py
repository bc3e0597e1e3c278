"""Diagnostics collected while building a signature database.

Nothing in the build pipeline raises for malformed input; every problem is
recorded here and the offending fragment is dropped or degraded instead.
"""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from enum import Enum


class DiagnosticKind(str, Enum):
    """Kinds of build diagnostics."""

    SYNTAX_ERROR = "syntax_error"
    MALFORMED_TAG = "malformed_tag"
    UNKNOWN_TYPE = "unknown_type"
    UNKNOWN_PARAMETER = "unknown_parameter"
    UNRESOLVED_NAME = "unresolved_name"
    UNRESOLVED_CONDITIONAL_SUBJECT = "unresolved_conditional_subject"
    ANNOTATION_CONFLICT = "annotation_conflict"
    DUPLICATE_DECLARATION = "duplicate_declaration"
    INHERITANCE_CYCLE = "inheritance_cycle"
    IO_ERROR = "io_error"


class Severity(str, Enum):
    """Diagnostic severity."""

    WARNING = "warning"
    ERROR = "error"


_ERROR_KINDS = frozenset({DiagnosticKind.SYNTAX_ERROR, DiagnosticKind.IO_ERROR})


@dataclass
class Diagnostic:
    """A single build diagnostic."""

    kind: DiagnosticKind
    message: str
    file: str | None = None
    line: int | None = None
    symbol: str | None = None
    severity: Severity = Severity.WARNING

    def format(self) -> str:
        """Render as ``file:line: kind: message``."""
        where = self.file or "<unknown>"
        if self.line is not None:
            where = f"{where}:{self.line}"
        return f"{where}: {self.kind.value}: {self.message}"


@dataclass
class DiagnosticCollector:
    """Accumulates diagnostics in emission order."""

    diagnostics: list[Diagnostic] = field(default_factory=list)

    def add(
        self,
        kind: DiagnosticKind,
        message: str,
        file: str | None = None,
        line: int | None = None,
        symbol: str | None = None,
    ) -> Diagnostic:
        """Record a diagnostic and return it."""
        severity = Severity.ERROR if kind in _ERROR_KINDS else Severity.WARNING
        diagnostic = Diagnostic(
            kind=kind,
            message=message,
            file=file,
            line=line,
            symbol=symbol,
            severity=severity,
        )
        self.diagnostics.append(diagnostic)
        return diagnostic

    def extend(self, diagnostics: list[Diagnostic]) -> None:
        self.diagnostics.extend(diagnostics)

    def of_kind(self, kind: DiagnosticKind) -> list[Diagnostic]:
        return [d for d in self.diagnostics if d.kind == kind]

    def counts(self) -> dict[str, int]:
        return dict(Counter(d.kind.value for d in self.diagnostics))

    def __len__(self) -> int:
        return len(self.diagnostics)
