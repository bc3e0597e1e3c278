"""PHP stub scanning.

Walks the tree-sitter syntax tree of a stub file and produces raw
declaration records without interpreting types or values.
"""

from stubdb.scanner.declarations import StubScanner
from stubdb.scanner.records import (
    RawClassLike,
    RawConstant,
    RawEnumCase,
    RawFunction,
    RawParameter,
    RawProperty,
    RawTraitUse,
    StubFile,
    SyntaxProblem,
)

__all__ = [
    "RawClassLike",
    "RawConstant",
    "RawEnumCase",
    "RawFunction",
    "RawParameter",
    "RawProperty",
    "RawTraitUse",
    "StubFile",
    "StubScanner",
    "SyntaxProblem",
]
