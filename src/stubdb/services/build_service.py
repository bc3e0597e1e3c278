"""Build service for turning stub files into a signature database.

This module provides the BuildService, which scans stub files in parallel
and then links them into a SignatureDatabase in a single pass.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from pathlib import Path

from stubdb.core.config import StubDbConfig, get_config
from stubdb.core.diagnostics import Diagnostic, DiagnosticKind, Severity
from stubdb.core.exceptions import StubScanError
from stubdb.scanner.declarations import StubScanner
from stubdb.scanner.records import StubFile
from stubdb.services.query_service import SignatureDatabase
from stubdb.symbols.builder import SymbolTableBuilder

logger = logging.getLogger(__name__)


@dataclass
class BuildResult:
    """Result of a database build."""

    database: SignatureDatabase
    files_scanned: int = 0
    files_skipped: int = 0
    diagnostics: list[Diagnostic] = field(default_factory=list)

    @property
    def success(self) -> bool:
        """True if no diagnostic has error severity."""
        return not any(d.severity == Severity.ERROR for d in self.diagnostics)

    def diagnostics_of(self, kind: DiagnosticKind) -> list[Diagnostic]:
        return [d for d in self.diagnostics if d.kind == kind]


class BuildService:
    """Service for building a signature database from stub files.

    Files are scanned independently on a thread pool; linking starts only
    once every file has been scanned.
    """

    def __init__(self, config: StubDbConfig | None = None) -> None:
        """Initialize build service.

        Args:
            config: Settings to use; defaults to the global configuration.
        """
        self._config = config or get_config()
        self._scanner = StubScanner()

    def discover(self, root: Path) -> list[Path]:
        """List the stub files under ``root`` in a stable order."""
        if root.is_file():
            return [root]
        return sorted(p for p in root.rglob(self._config.file_pattern) if p.is_file())

    def build_directory(self, root: Path) -> BuildResult:
        """Build a database from every stub file under a directory.

        Args:
            root: Directory to search, or a single stub file.

        Returns:
            BuildResult holding the database and the build diagnostics.

        Raises:
            FileNotFoundError: If ``root`` does not exist.
        """
        if not root.exists():
            raise FileNotFoundError(f"Stub path does not exist: {root}")
        files = self.discover(root)
        logger.debug(f"Found {len(files)} stub files under {root}")
        return self.build_files(files)

    def build_files(self, paths: Iterable[Path]) -> BuildResult:
        builder = SymbolTableBuilder(self._config)
        unreadable: list[tuple[Path, str]] = []

        def scan(path: Path) -> StubFile | None:
            try:
                return self._scanner.scan_file(path)
            except StubScanError as exc:
                logger.warning(f"Failed to scan {path}: {exc}")
                unreadable.append((path, str(exc)))
                return None

        with ThreadPoolExecutor(max_workers=self._config.max_workers) as executor:
            scanned = list(executor.map(scan, list(paths)))

        for path, message in unreadable:
            builder.diagnostics.add(DiagnosticKind.IO_ERROR, message, file=str(path))
        return self._link(builder, [stub for stub in scanned if stub is not None], len(unreadable))

    def build_sources(self, sources: Mapping[str, str]) -> BuildResult:
        """Build a database from in-memory sources keyed by file name."""
        stubs = [self._scanner.scan_source(text, name) for name, text in sources.items()]
        return self._link(SymbolTableBuilder(self._config), stubs, 0)

    def _link(
        self, builder: SymbolTableBuilder, stubs: list[StubFile], unreadable: int
    ) -> BuildResult:
        skipped = unreadable
        for stub in stubs:
            if not builder.add_file(stub):
                skipped += 1
        table = builder.finish()
        logger.debug(
            f"Built symbol table: {len(table.classes)} classes, "
            f"{len(table.functions)} functions, {len(table.constants)} constants"
        )
        return BuildResult(
            database=SignatureDatabase(table),
            files_scanned=len(stubs),
            files_skipped=skipped,
            diagnostics=list(table.diagnostics),
        )


def build_database(path: Path | str, config: StubDbConfig | None = None) -> SignatureDatabase:
    """Build a signature database from a stub directory or file."""
    return BuildService(config).build_directory(Path(path)).database
