"""Raw declaration records produced by the scanner.

Records keep type expressions and constant values as source text; the
symbol table builder interprets them once every file has been read.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from stubdb.core.context import FileContext
from stubdb.core.models import ClassKind, SourceLocation


@dataclass
class RawParameter:
    name: str
    type_text: str | None = None
    default_text: str | None = None
    is_variadic: bool = False
    is_by_reference: bool = False
    is_promoted: bool = False


@dataclass
class RawFunction:
    """A function or method declaration."""

    name: str
    context: FileContext
    location: SourceLocation
    parameters: list[RawParameter] = field(default_factory=list)
    return_type_text: str | None = None
    docblock: str | None = None
    modifiers: list[str] = field(default_factory=list)
    returns_by_reference: bool = False


@dataclass
class RawConstant:
    """A global ``const``/``define()`` constant or a class constant."""

    name: str
    context: FileContext
    location: SourceLocation
    value_text: str | None = None
    type_text: str | None = None
    docblock: str | None = None
    modifiers: list[str] = field(default_factory=list)


@dataclass
class RawProperty:
    name: str
    location: SourceLocation
    type_text: str | None = None
    default_text: str | None = None
    docblock: str | None = None
    modifiers: list[str] = field(default_factory=list)


@dataclass
class RawEnumCase:
    name: str
    location: SourceLocation
    value_text: str | None = None
    docblock: str | None = None


@dataclass
class RawTraitUse:
    names: list[str]
    docblock: str | None = None


@dataclass
class RawClassLike:
    """A class, interface, trait or enum with its members."""

    kind: ClassKind
    name: str
    context: FileContext
    location: SourceLocation
    docblock: str | None = None
    modifiers: list[str] = field(default_factory=list)
    extends: list[str] = field(default_factory=list)
    implements: list[str] = field(default_factory=list)
    backing_type_text: str | None = None
    methods: list[RawFunction] = field(default_factory=list)
    properties: list[RawProperty] = field(default_factory=list)
    constants: list[RawConstant] = field(default_factory=list)
    cases: list[RawEnumCase] = field(default_factory=list)
    trait_uses: list[RawTraitUse] = field(default_factory=list)


@dataclass
class SyntaxProblem:
    line: int
    column: int
    message: str


@dataclass
class StubFile:
    """Everything declared in one stub file."""

    path: str
    functions: list[RawFunction] = field(default_factory=list)
    classes: list[RawClassLike] = field(default_factory=list)
    constants: list[RawConstant] = field(default_factory=list)
    syntax_errors: list[SyntaxProblem] = field(default_factory=list)

    @property
    def has_errors(self) -> bool:
        return bool(self.syntax_errors)

    @property
    def declaration_count(self) -> int:
        return len(self.functions) + len(self.classes) + len(self.constants)
