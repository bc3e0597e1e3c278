"""Structured type values for stub signatures.

Every type expression found in a native hint or a docblock tag is turned
into one of the immutable variants defined here. Variants compare by value;
unions and intersections compare as sets, and class names compare
case-insensitively the way PHP does.
"""

from __future__ import annotations

import re
from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Union as _TypingUnion

# Names that always denote a built-in type rather than a class
KEYWORDS: frozenset[str] = frozenset(
    {
        "mixed",
        "null",
        "void",
        "never",
        "bool",
        "true",
        "false",
        "int",
        "float",
        "string",
        "array",
        "list",
        "iterable",
        "object",
        "callable",
        "resource",
        "scalar",
        "numeric",
        "array-key",
        "non-empty-array",
        "non-empty-list",
        "non-empty-string",
        "non-falsy-string",
        "numeric-string",
        "lowercase-string",
        "non-empty-lowercase-string",
        "literal-string",
        "literal-int",
        "class-string",
        "interface-string",
        "enum-string",
        "trait-string",
        "positive-int",
        "negative-int",
        "non-positive-int",
        "non-negative-int",
        "open-resource",
        "closed-resource",
        "pure-callable",
        "key-of",
        "value-of",
        "self",
        "static",
        "parent",
        "$this",
    }
)

KEYWORD_ALIASES: dict[str, str] = {
    "no-return": "never",
    "never-return": "never",
    "never-returns": "never",
    "nothing": "never",
    "truthy-string": "non-falsy-string",
    "boolean": "bool",
    "integer": "int",
    "double": "float",
    "real": "float",
    "noreturn": "never",
}

# Keywords that accept type arguments
GENERIC_KEYWORDS: frozenset[str] = frozenset(
    {
        "array",
        "list",
        "non-empty-array",
        "non-empty-list",
        "iterable",
        "class-string",
        "interface-string",
        "enum-string",
        "trait-string",
        "key-of",
        "value-of",
    }
)

SHAPE_KINDS: frozenset[str] = frozenset(
    {"array", "list", "non-empty-array", "non-empty-list", "object"}
)

CALLABLE_KINDS: dict[str, str] = {
    "callable": "callable",
    "pure-callable": "pure-callable",
    "closure": "Closure",
    "pure-closure": "pure-Closure",
}

_BARE_KEY = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


class Type:
    """Base class of all type variants."""

    __slots__ = ()

    def __str__(self) -> str:
        return format_type(self)


@dataclass(frozen=True, repr=False)
class Primitive(Type):
    """A built-in keyword type such as ``int`` or ``non-empty-string``."""

    name: str

    def __repr__(self) -> str:
        return f"Primitive({self.name!r})"


@dataclass(frozen=True, eq=False, repr=False)
class Named(Type):
    """A reference to a class-like by fully qualified name."""

    name: str

    def __eq__(self, other: object) -> bool:
        return isinstance(other, Named) and self.name.lower() == other.name.lower()

    def __hash__(self) -> int:
        return hash(("named", self.name.lower()))

    def __repr__(self) -> str:
        return f"Named({self.name!r})"


@dataclass(frozen=True, repr=False)
class Nullable(Type):
    """``?T``, equivalent to ``T|null``."""

    inner: Type

    def __post_init__(self) -> None:
        inner = self.inner
        while isinstance(inner, Nullable):
            inner = inner.inner
        object.__setattr__(self, "inner", inner)

    def __repr__(self) -> str:
        return f"Nullable({self.inner!r})"


def _flatten(members: Iterable[Type], kind: type) -> tuple[Type, ...]:
    flat: list[Type] = []
    for member in members:
        nested = member.members if isinstance(member, kind) else (member,)
        for item in nested:
            if item not in flat:
                flat.append(item)
    return tuple(flat)


@dataclass(frozen=True, eq=False, repr=False)
class Union(Type):
    """``A|B``. Nested unions are flattened and duplicates dropped."""

    members: tuple[Type, ...]

    def __post_init__(self) -> None:
        object.__setattr__(self, "members", _flatten(self.members, Union))

    def __eq__(self, other: object) -> bool:
        return isinstance(other, Union) and frozenset(self.members) == frozenset(other.members)

    def __hash__(self) -> int:
        return hash(("union", frozenset(self.members)))

    def __repr__(self) -> str:
        return f"Union({list(self.members)!r})"


@dataclass(frozen=True, eq=False, repr=False)
class Intersection(Type):
    """``A&B``. Nested intersections are flattened and duplicates dropped."""

    members: tuple[Type, ...]

    def __post_init__(self) -> None:
        object.__setattr__(self, "members", _flatten(self.members, Intersection))

    def __eq__(self, other: object) -> bool:
        return isinstance(other, Intersection) and frozenset(self.members) == frozenset(
            other.members
        )

    def __hash__(self) -> int:
        return hash(("intersection", frozenset(self.members)))

    def __repr__(self) -> str:
        return f"Intersection({list(self.members)!r})"


@dataclass(frozen=True, eq=False, repr=False)
class Generic(Type):
    """A keyword or class applied to type arguments, e.g. ``array<int, string>``."""

    name: str
    args: tuple[Type, ...]

    def __eq__(self, other: object) -> bool:
        return (
            isinstance(other, Generic)
            and self.name.lower() == other.name.lower()
            and self.args == other.args
        )

    def __hash__(self) -> int:
        return hash(("generic", self.name.lower(), self.args))

    def __repr__(self) -> str:
        return f"Generic({self.name!r}, {list(self.args)!r})"

    @property
    def is_keyword(self) -> bool:
        return self.name.lower() in GENERIC_KEYWORDS


@dataclass(frozen=True)
class ShapeField:
    """One entry of an array or object shape. ``key`` is None for positional entries."""

    key: str | int | None
    value: Type
    optional: bool = False


@dataclass(frozen=True, repr=False)
class Shape(Type):
    """``array{a: int, b?: string}`` and friends."""

    kind: str = "array"
    fields: tuple[ShapeField, ...] = ()
    sealed: bool = True
    extra_key: Type | None = None
    extra_value: Type | None = None

    def __repr__(self) -> str:
        return f"Shape({format_type(self)!r})"

    def field_for(self, key: str | int) -> ShapeField | None:
        for entry in self.fields:
            if entry.key == key:
                return entry
        return None


@dataclass(frozen=True, repr=False)
class Conditional(Type):
    """``($param is T ? A : B)``; ``negated`` for ``is not``."""

    subject: str
    target: Type
    then: Type
    otherwise: Type
    negated: bool = False

    def __repr__(self) -> str:
        return f"Conditional({format_type(self)!r})"

    @property
    def parameter_name(self) -> str | None:
        """Name of the subject parameter without ``$``, or None for template subjects."""
        if self.subject.startswith("$"):
            return self.subject[1:]
        return None


@dataclass(frozen=True, repr=False)
class Literal(Type):
    """A literal int, float or string value."""

    value: int | float | str
    kind: str = field(default="", init=False)

    def __post_init__(self) -> None:
        if isinstance(self.value, bool):
            raise ValueError("boolean literals are the primitives 'true' and 'false'")
        if isinstance(self.value, int):
            kind = "int"
        elif isinstance(self.value, float):
            kind = "float"
        else:
            kind = "string"
        object.__setattr__(self, "kind", kind)

    def __repr__(self) -> str:
        return f"Literal({self.value!r})"


@dataclass(frozen=True, repr=False)
class TemplateParam(Type):
    """A reference to a template parameter in scope."""

    name: str
    bound: Type | None = field(default=None, compare=False)

    def __repr__(self) -> str:
        return f"TemplateParam({self.name!r})"


@dataclass(frozen=True, repr=False)
class IntRange(Type):
    """``int<min, max>``; a None bound is unbounded."""

    min: int | None = None
    max: int | None = None

    def __repr__(self) -> str:
        return f"IntRange({self.min!r}, {self.max!r})"

    def contains(self, value: int) -> bool:
        return (self.min is None or value >= self.min) and (self.max is None or value <= self.max)


@dataclass(frozen=True)
class CallableParameter:
    """A parameter of a callable type."""

    type: Type
    optional: bool = False
    variadic: bool = False
    by_reference: bool = False


@dataclass(frozen=True, repr=False)
class CallableType(Type):
    """``callable(int, string=): bool`` and ``Closure(...)`` types."""

    kind: str = "callable"
    params: tuple[CallableParameter, ...] = ()
    return_type: Type | None = None

    def __repr__(self) -> str:
        return f"CallableType({format_type(self)!r})"


@dataclass(frozen=True, repr=False)
class MemberReference(Type):
    """``Foo::BAR_*``: the union of the values of the matching class constants."""

    class_name: str
    member: str

    def __repr__(self) -> str:
        return f"MemberReference({self.class_name!r}, {self.member!r})"


@dataclass(frozen=True, repr=False)
class Unknown(Type):
    """A type that could not be understood. Behaves like ``mixed``."""

    reason: str = field(default="", compare=False)

    def __repr__(self) -> str:
        return "Unknown()"


TypeLike = _TypingUnion[Type, str]

MIXED = Primitive("mixed")
NULL = Primitive("null")
VOID = Primitive("void")
NEVER = Primitive("never")
BOOL = Primitive("bool")
TRUE = Primitive("true")
FALSE = Primitive("false")
INT = Primitive("int")
FLOAT = Primitive("float")
STRING = Primitive("string")
ARRAY = Primitive("array")
OBJECT = Primitive("object")
UNKNOWN = Unknown()


def union_of(types: Iterable[Type]) -> Type:
    """Build the canonical union of ``types``.

    ``null`` members are folded into a ``Nullable`` wrapper, ``never`` is
    dropped when anything else is present, and a single member is returned
    as is.
    """
    members: list[Type] = []
    nullable = False
    for candidate in types:
        if isinstance(candidate, Nullable):
            nullable = True
            candidate = candidate.inner
        parts = candidate.members if isinstance(candidate, Union) else (candidate,)
        for part in parts:
            if isinstance(part, Nullable):
                nullable = True
                part = part.inner
            if part == NULL:
                nullable = True
            elif part not in members:
                members.append(part)
    if len(members) > 1 and NEVER in members:
        members.remove(NEVER)
    if not members:
        return NULL if nullable else NEVER
    core = members[0] if len(members) == 1 else Union(tuple(members))
    return Nullable(core) if nullable else core


def intersection_of(types: Iterable[Type]) -> Type:
    """Build the canonical intersection of ``types``."""
    members = _flatten(types, Intersection)
    if not members:
        return MIXED
    if len(members) == 1:
        return members[0]
    return Intersection(members)


def nullable(t: Type) -> Type:
    """``?t`` in canonical form."""
    return union_of([t, NULL])


def is_nullable(t: Type) -> bool:
    return isinstance(t, Nullable) or t == NULL or t == MIXED


def members_of(t: Type) -> tuple[Type, ...]:
    """Flat union members of ``t``, with ``null`` spelled out for nullable types."""
    if isinstance(t, Nullable):
        return members_of(t.inner) + (NULL,)
    if isinstance(t, Union):
        return t.members
    return (t,)


def literal_of(value: object) -> Type:
    """The most precise type of a PHP scalar value."""
    if value is None:
        return NULL
    if value is True:
        return TRUE
    if value is False:
        return FALSE
    if isinstance(value, (int, float, str)):
        return Literal(value)
    return MIXED


# --- printing ---------------------------------------------------------------


def format_class_name(name: str) -> str:
    """Print a class name, escaping names that would read back as keywords."""
    lowered = name.lower()
    if lowered in KEYWORDS or lowered in KEYWORD_ALIASES or lowered in CALLABLE_KINDS:
        return "\\" + name
    return name


def _format_key(key: str | int) -> str:
    if isinstance(key, int):
        return str(key)
    if _BARE_KEY.match(key):
        return key
    return _quote(key)


def _quote(value: str) -> str:
    escaped = value.replace("\\", "\\\\").replace("'", "\\'")
    return f"'{escaped}'"


def _has_trailing_return(t: Type) -> bool:
    return isinstance(t, CallableType) and t.return_type is not None


def _format_union_member(t: Type) -> str:
    if _has_trailing_return(t):
        return f"({format_type(t)})"
    return format_type(t)


def _format_intersection_member(t: Type) -> str:
    if isinstance(t, (Union, Nullable)) or _has_trailing_return(t):
        return f"({format_type(t)})"
    return format_type(t)


def _format_shape(shape: Shape) -> str:
    parts: list[str] = []
    for entry in shape.fields:
        value = format_type(entry.value)
        if entry.key is None:
            parts.append(value)
        else:
            marker = "?" if entry.optional else ""
            parts.append(f"{_format_key(entry.key)}{marker}: {value}")
    if not shape.sealed:
        if shape.extra_value is None:
            parts.append("...")
        elif shape.extra_key is None:
            parts.append(f"...<{format_type(shape.extra_value)}>")
        else:
            parts.append(
                f"...<{format_type(shape.extra_key)}, {format_type(shape.extra_value)}>"
            )
    return f"{shape.kind}{{{', '.join(parts)}}}"


def _format_callable(t: CallableType) -> str:
    params: list[str] = []
    for param in t.params:
        text = format_type(param.type)
        if param.by_reference:
            text += "&"
        if param.variadic:
            text += "..."
        if param.optional:
            text += "="
        params.append(text)
    text = f"{t.kind}({', '.join(params)})"
    if t.return_type is not None:
        text += f": {format_type(t.return_type)}"
    return text


def format_type(t: Type) -> str:
    """Render ``t`` in canonical docblock syntax.

    The output parses back to an equal type under an empty scope, except
    for ``Unknown`` which prints as ``mixed``.
    """
    if isinstance(t, Primitive):
        return t.name
    if isinstance(t, Named):
        return format_class_name(t.name)
    if isinstance(t, Nullable):
        inner = t.inner
        if isinstance(inner, (Union, Intersection, Conditional)) or _has_trailing_return(inner):
            if isinstance(inner, Union):
                rest = "|".join(_format_union_member(m) for m in inner.members)
            else:
                rest = _format_union_member(inner)
            return f"null|{rest}"
        return f"?{format_type(inner)}"
    if isinstance(t, Union):
        return "|".join(_format_union_member(m) for m in t.members)
    if isinstance(t, Intersection):
        return "&".join(_format_intersection_member(m) for m in t.members)
    if isinstance(t, Generic):
        name = t.name if t.is_keyword else format_class_name(t.name)
        return f"{name}<{', '.join(format_type(a) for a in t.args)}>"
    if isinstance(t, Shape):
        return _format_shape(t)
    if isinstance(t, Conditional):
        op = "is not" if t.negated else "is"
        return (
            f"({t.subject} {op} {format_type(t.target)} ? "
            f"{format_type(t.then)} : {format_type(t.otherwise)})"
        )
    if isinstance(t, Literal):
        if t.kind == "string":
            return _quote(t.value)  # type: ignore[arg-type]
        return repr(t.value)
    if isinstance(t, TemplateParam):
        return t.name
    if isinstance(t, IntRange):
        low = "min" if t.min is None else str(t.min)
        high = "max" if t.max is None else str(t.max)
        return f"int<{low}, {high}>"
    if isinstance(t, CallableType):
        return _format_callable(t)
    if isinstance(t, MemberReference):
        owner = t.class_name
        if owner.lower() not in ("self", "static", "parent"):
            owner = format_class_name(owner)
        return f"{owner}::{t.member}"
    if isinstance(t, Unknown):
        return "mixed"
    raise TypeError(f"not a type: {t!r}")
