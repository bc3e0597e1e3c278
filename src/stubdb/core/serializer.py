"""Symbol table snapshots.

A snapshot is a JSON document wrapping the symbol table in a small
versioned envelope, so a database can be built once and reloaded without
re-parsing the stub corpus.
"""

from __future__ import annotations

import json
from typing import Any

from pydantic import ValidationError

from stubdb.core.exceptions import SerializationError
from stubdb.core.models import SymbolTable

SNAPSHOT_FORMAT = "stubdb-symbol-table"
SNAPSHOT_VERSION = 1


def _format_validation_error(error: ValidationError) -> str:
    details = []
    for err in error.errors():
        loc = ".".join(str(x) for x in err["loc"])
        details.append(f"{loc}: {err['msg']}")
    return "; ".join(details)


def serialize_to_dict(table: SymbolTable) -> dict[str, Any]:
    """Serialize a symbol table to a snapshot dictionary."""
    return {
        "format": SNAPSHOT_FORMAT,
        "version": SNAPSHOT_VERSION,
        "table": table.model_dump(mode="json"),
    }


def serialize(table: SymbolTable) -> str:
    """Serialize a symbol table to a JSON snapshot.

    Raises:
        SerializationError: If serialization fails.
    """
    try:
        return json.dumps(serialize_to_dict(table), indent=2, ensure_ascii=False)
    except (TypeError, ValueError) as e:
        raise SerializationError(
            message="Failed to serialize symbol table",
            details=str(e),
        ) from e


def deserialize_from_dict(data: dict[str, Any]) -> SymbolTable:
    """Rebuild a symbol table from a snapshot dictionary.

    Raises:
        SerializationError: If the envelope or the table is invalid.
    """
    if not isinstance(data, dict) or data.get("format") != SNAPSHOT_FORMAT:
        raise SerializationError(
            message="Not a stubdb snapshot",
            details=f"expected format {SNAPSHOT_FORMAT!r}",
        )
    version = data.get("version")
    if version != SNAPSHOT_VERSION:
        raise SerializationError(
            message="Unsupported snapshot version",
            details=f"got {version!r}, expected {SNAPSHOT_VERSION}",
        )
    try:
        return SymbolTable.model_validate(data.get("table", {}))
    except ValidationError as e:
        raise SerializationError(
            message="Symbol table validation failed",
            details=_format_validation_error(e),
        ) from e


def deserialize(json_str: str) -> SymbolTable:
    """Rebuild a symbol table from a JSON snapshot.

    Raises:
        SerializationError: If the JSON or the table is invalid.
    """
    try:
        data = json.loads(json_str)
    except json.JSONDecodeError as e:
        raise SerializationError(
            message="Invalid JSON format",
            details=f"Line {e.lineno}, column {e.colno}: {e.msg}",
        ) from e
    return deserialize_from_dict(data)
