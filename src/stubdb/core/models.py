"""Symbol table data models.

This module defines the records stored in a signature database: declarations,
signatures, overload sets, class-likes, constants and the symbol table that
owns them. Type-valued fields hold :mod:`stubdb.types` values and serialize
to the tagged dictionaries of :mod:`stubdb.types.encoding`.
"""

from __future__ import annotations

from enum import Enum
from typing import Annotated, Any

from pydantic import BaseModel, ConfigDict, Field, PlainSerializer, PlainValidator

from stubdb.core.diagnostics import Diagnostic
from stubdb.types.algebra import MIXED, Type
from stubdb.types.encoding import type_from_dict, type_to_dict
from stubdb.types.parser import parse_type_lenient


def _coerce_type(value: Any) -> Type:
    if isinstance(value, Type):
        return value
    if isinstance(value, dict):
        return type_from_dict(value)
    if isinstance(value, str):
        return parse_type_lenient(value)
    raise ValueError(f"expected a type, got {type(value).__name__}")


TypeField = Annotated[
    Type,
    PlainValidator(_coerce_type),
    PlainSerializer(type_to_dict, return_type=dict),
]

ConstantValue = bool | int | float | str | None


class DeclarationKind(str, Enum):
    """Kind of declared symbol."""

    FUNCTION = "function"
    METHOD = "method"
    CLASS = "class"
    INTERFACE = "interface"
    TRAIT = "trait"
    ENUM = "enum"
    CONSTANT = "constant"
    CLASS_CONSTANT = "class_constant"
    ENUM_CASE = "enum_case"
    PROPERTY = "property"


class ClassKind(str, Enum):
    """Kind of class-like declaration."""

    CLASS = "class"
    INTERFACE = "interface"
    TRAIT = "trait"
    ENUM = "enum"

    @property
    def declaration_kind(self) -> DeclarationKind:
        return DeclarationKind(self.value)


class Visibility(str, Enum):
    """Visibility modifier."""

    PUBLIC = "public"
    PROTECTED = "protected"
    PRIVATE = "private"


class TemplateVariance(str, Enum):
    INVARIANT = "invariant"
    COVARIANT = "covariant"
    CONTRAVARIANT = "contravariant"


class AssertionKind(str, Enum):
    ALWAYS = "assert"
    IF_TRUE = "assert-if-true"
    IF_FALSE = "assert-if-false"


class StubModel(BaseModel):
    """Base for models holding type values."""

    model_config = ConfigDict(arbitrary_types_allowed=True)


class SourceLocation(BaseModel):
    """Position of a declaration in a stub file (1-based)."""

    file: str = Field(..., description="Stub file path")
    line: int = Field(..., description="Line number")
    column: int = Field(default=1, description="Column number")

    def __str__(self) -> str:
        return f"{self.file}:{self.line}"


class Declaration(BaseModel):
    """Identity and modifiers of a declared symbol."""

    name: str = Field(..., description="Simple name")
    qualified_name: str = Field(..., description="Fully qualified name")
    kind: DeclarationKind
    visibility: Visibility = Visibility.PUBLIC
    is_static: bool = False
    is_abstract: bool = False
    is_final: bool = False
    is_readonly: bool = False
    is_deprecated: bool = False
    location: SourceLocation | None = None


class TemplateParameter(StubModel):
    """A ``@template`` parameter."""

    name: str
    bound: TypeField | None = None
    variance: TemplateVariance = TemplateVariance.INVARIANT


class Parameter(StubModel):
    """A function or method parameter.

    ``type`` is the accepted input type: the docblock type when present,
    otherwise the native hint, otherwise ``mixed``. ``out_type`` is the type
    written back through a by-reference parameter (``@param-out``).
    """

    name: str
    type: TypeField = MIXED
    native_type: TypeField | None = None
    out_type: TypeField | None = None
    has_default: bool = False
    default: ConstantValue = None
    default_expression: str | None = None
    is_variadic: bool = False
    is_by_reference: bool = False
    is_promoted: bool = False

    @property
    def is_optional(self) -> bool:
        return self.has_default or self.is_variadic

    @property
    def is_out(self) -> bool:
        return self.is_by_reference and self.out_type is not None


class Assertion(StubModel):
    """An ``@assert``-family annotation on a parameter."""

    kind: AssertionKind
    parameter: str
    type: TypeField
    negated: bool = False


class Signature(StubModel):
    """One callable shape: parameters, return type and behavioral flags."""

    model_config = ConfigDict(arbitrary_types_allowed=True, frozen=True)

    parameters: list[Parameter] = Field(default_factory=list)
    return_type: TypeField = MIXED
    native_return_type: TypeField | None = None
    templates: list[TemplateParameter] = Field(default_factory=list)
    throws: list[TypeField] = Field(default_factory=list)
    assertions: list[Assertion] = Field(default_factory=list)
    returns_by_reference: bool = False
    is_pure: bool = False
    is_mutation_free: bool = False
    is_deprecated: bool = False
    no_named_arguments: bool = False
    ignore_nullable_return: bool = False
    ignore_falsable_return: bool = False
    location: SourceLocation | None = None

    def parameter(self, name: str) -> Parameter | None:
        name = name.lstrip("$")
        for param in self.parameters:
            if param.name == name:
                return param
        return None

    @property
    def required_count(self) -> int:
        return sum(1 for p in self.parameters if not p.is_optional)

    @property
    def is_variadic(self) -> bool:
        return any(p.is_variadic for p in self.parameters)

    def accepts_arity(self, count: int) -> bool:
        if count < self.required_count:
            return False
        return self.is_variadic or count <= len(self.parameters)

    def template(self, name: str) -> TemplateParameter | None:
        for template in self.templates:
            if template.name == name:
                return template
        return None


class OverloadSet(StubModel):
    """All signatures declared for one callable, in declaration order."""

    signatures: list[Signature] = Field(default_factory=list)

    @property
    def primary(self) -> Signature:
        return self.signatures[0]

    @property
    def is_overloaded(self) -> bool:
        return len(self.signatures) > 1

    def __len__(self) -> int:
        return len(self.signatures)


class FunctionEntry(StubModel):
    """A global or namespaced function."""

    declaration: Declaration
    overloads: OverloadSet


class MethodEntry(StubModel):
    """A method of a class-like."""

    declaration: Declaration
    owner: str = Field(..., description="Fully qualified name of the owning class-like")
    declared_in: str = Field(..., description="Class-like that spelled out the method")
    overloads: OverloadSet


class PropertyEntry(StubModel):
    declaration: Declaration
    owner: str
    declared_in: str
    type: TypeField = MIXED
    native_type: TypeField | None = None
    has_default: bool = False
    default: ConstantValue = None


class ConstantEntry(StubModel):
    """A global constant, class constant or enum case.

    ``value`` is None with ``is_value_known`` False when the stub only
    declares that the value exists at runtime.
    """

    declaration: Declaration
    owner: str | None = None
    type: TypeField = MIXED
    value: ConstantValue = None
    is_value_known: bool = False
    expression: str | None = None


class ClassEntry(StubModel):
    """A class, interface, trait or enum with its resolved members."""

    declaration: Declaration
    kind: ClassKind
    parent: str | None = None
    interfaces: list[str] = Field(default_factory=list)
    traits: list[str] = Field(default_factory=list)
    templates: list[TemplateParameter] = Field(default_factory=list)
    ancestor_type_arguments: dict[str, list[TypeField]] = Field(
        default_factory=dict,
        description="Lowercased ancestor name -> type arguments from @extends/@implements/@use",
    )
    methods: dict[str, MethodEntry] = Field(
        default_factory=dict, description="Lowercased method name -> method"
    )
    properties: dict[str, PropertyEntry] = Field(default_factory=dict)
    constants: dict[str, ConstantEntry] = Field(
        default_factory=dict, description="Constant and enum case name -> constant"
    )
    cases: list[str] = Field(default_factory=list, description="Enum case names in order")
    backing_type: TypeField | None = None

    @property
    def name(self) -> str:
        return self.declaration.qualified_name

    @property
    def supertypes(self) -> list[str]:
        parents = [self.parent] if self.parent else []
        return parents + list(self.interfaces)

    def method(self, name: str) -> MethodEntry | None:
        return self.methods.get(name.lower())


class Namespace(BaseModel):
    """Declarations of one namespace, keyed by simple name."""

    name: str
    classes: dict[str, Declaration] = Field(default_factory=dict)
    functions: dict[str, Declaration] = Field(default_factory=dict)
    constants: dict[str, Declaration] = Field(default_factory=dict)

    def get(self, simple_name: str) -> Declaration | None:
        key = simple_name.lower()
        return (
            self.classes.get(key)
            or self.functions.get(key)
            or self.constants.get(simple_name)
        )


class SymbolTable(StubModel):
    """Every declaration of a stub set, keyed for case-correct lookup.

    Classes and functions are keyed by lowercased fully qualified name.
    Constants keep the case of their short name and lowercase the namespace.
    """

    classes: dict[str, ClassEntry] = Field(default_factory=dict)
    functions: dict[str, FunctionEntry] = Field(default_factory=dict)
    constants: dict[str, ConstantEntry] = Field(default_factory=dict)
    namespaces: dict[str, Namespace] = Field(default_factory=dict)
    diagnostics: list[Diagnostic] = Field(default_factory=list)


def symbol_key(fq_name: str) -> str:
    """Lookup key for class-likes and functions."""
    return fq_name.lstrip("\\").lower()


def constant_key(fq_name: str) -> str:
    """Lookup key for global constants."""
    namespace, _, short = fq_name.lstrip("\\").rpartition("\\")
    return f"{namespace.lower()}\\{short}" if namespace else short
