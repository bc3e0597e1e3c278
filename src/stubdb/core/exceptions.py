"""Exceptions raised by stubdb."""

from __future__ import annotations


class StubDbError(Exception):
    """Base class for stubdb errors."""

    def __init__(self, message: str, details: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details

    def __str__(self) -> str:
        if self.details:
            return f"{self.message}: {self.details}"
        return self.message


class TypeParseError(StubDbError):
    """A type expression could not be parsed."""

    def __init__(self, message: str, text: str, position: int | None = None) -> None:
        details = f"in {text!r}" if position is None else f"at offset {position} in {text!r}"
        super().__init__(message, details)
        self.text = text
        self.position = position


class StubScanError(StubDbError):
    """A stub file could not be read or parsed at all."""


class SerializationError(StubDbError):
    """Error during serialization or deserialization."""
