"""Containment and overlap checks between types.

``is_contained_by`` answers "is every value of A also a value of B" and
errs towards False when it cannot tell. ``can_overlap`` answers "can some
value belong to both" and errs towards True. Class relationships and
``Foo::BAR_*`` references are delegated to an optional environment, usually
the signature database.
"""

from __future__ import annotations

from typing import Protocol

from stubdb.types.algebra import (
    MIXED,
    NEVER,
    CallableType,
    Conditional,
    Generic,
    Intersection,
    IntRange,
    Literal,
    MemberReference,
    Named,
    Nullable,
    Primitive,
    Shape,
    TemplateParam,
    Type,
    Union,
    Unknown,
    members_of,
)
from stubdb.types.transform import conditional_branches


class TypeEnvironment(Protocol):
    def is_subclass(self, child: str, parent: str) -> bool: ...

    def expand_member_reference(self, reference: MemberReference) -> Type | None: ...


# Direct supertypes of each keyword
_PARENTS: dict[str, tuple[str, ...]] = {
    "positive-int": ("non-negative-int",),
    "negative-int": ("non-positive-int",),
    "non-negative-int": ("int",),
    "non-positive-int": ("int",),
    "literal-int": ("int",),
    "int": ("numeric", "array-key"),
    "float": ("numeric",),
    "numeric": ("scalar",),
    "array-key": ("scalar",),
    "string": ("scalar", "array-key"),
    "non-empty-string": ("string",),
    "non-falsy-string": ("non-empty-string",),
    "numeric-string": ("non-empty-string",),
    "lowercase-string": ("string",),
    "non-empty-lowercase-string": ("lowercase-string", "non-empty-string"),
    "literal-string": ("string",),
    "class-string": ("non-falsy-string",),
    "interface-string": ("class-string",),
    "enum-string": ("class-string",),
    "trait-string": ("class-string",),
    "true": ("bool",),
    "false": ("bool",),
    "bool": ("scalar",),
    "scalar": ("mixed",),
    "non-empty-list": ("list", "non-empty-array"),
    "list": ("array",),
    "non-empty-array": ("array",),
    "array": ("iterable",),
    "iterable": ("mixed",),
    "object": ("mixed",),
    "pure-callable": ("callable",),
    "callable": ("mixed",),
    "open-resource": ("resource",),
    "closed-resource": ("resource",),
    "resource": ("mixed",),
    "null": ("mixed",),
    "void": ("null",),
    "self": ("object",),
    "static": ("self",),
    "parent": ("object",),
    "$this": ("static",),
}

# Runtime value families each keyword draws from
_DOMAINS: dict[str, frozenset[str]] = {
    "int": frozenset({"int"}),
    "float": frozenset({"float"}),
    "string": frozenset({"string"}),
    "bool": frozenset({"bool"}),
    "null": frozenset({"null"}),
    "array": frozenset({"array"}),
    "object": frozenset({"object"}),
    "resource": frozenset({"resource"}),
    "numeric": frozenset({"int", "float", "string"}),
    "scalar": frozenset({"int", "float", "string", "bool"}),
    "array-key": frozenset({"int", "string"}),
    "iterable": frozenset({"array", "object"}),
    "callable": frozenset({"string", "array", "object"}),
    "mixed": frozenset({"int", "float", "string", "bool", "null", "array", "object", "resource"}),
    "never": frozenset(),
}

_DISJOINT_SIBLINGS = {
    frozenset({"true", "false"}),
    frozenset({"open-resource", "closed-resource"}),
}


def _ancestors(name: str) -> set[str]:
    seen = {name}
    stack = [name]
    while stack:
        for parent in _PARENTS.get(stack.pop(), ()):
            if parent not in seen:
                seen.add(parent)
                stack.append(parent)
    return seen


def _domain(name: str) -> frozenset[str]:
    for ancestor in _ordered_ancestors(name):
        if ancestor in _DOMAINS:
            return _DOMAINS[ancestor]
    return _DOMAINS["mixed"]


def _ordered_ancestors(name: str) -> list[str]:
    order = [name]
    index = 0
    while index < len(order):
        for parent in _PARENTS.get(order[index], ()):
            if parent not in order:
                order.append(parent)
        index += 1
    return order


def _base_name(t: Type) -> str | None:
    """Keyword standing in for an atomic type, or None for class types."""
    if isinstance(t, Primitive):
        return t.name
    if isinstance(t, Literal):
        return t.kind
    if isinstance(t, IntRange):
        return "int"
    if isinstance(t, Generic):
        return t.name.lower() if t.is_keyword else None
    if isinstance(t, Shape):
        return "object" if t.kind == "object" else t.kind
    if isinstance(t, CallableType):
        return "pure-callable" if t.kind == "pure-callable" else "callable"
    return None


def _is_class_like(t: Type) -> bool:
    if isinstance(t, Named):
        return True
    if isinstance(t, Generic):
        return not t.is_keyword
    return isinstance(t, CallableType) and t.kind.endswith("Closure")


def _class_name(t: Type) -> str:
    if isinstance(t, CallableType):
        return "Closure"
    return t.name  # type: ignore[attr-defined]


class _Comparator:
    def __init__(self, env: TypeEnvironment | None) -> None:
        self.env = env

    def normalize(self, t: Type) -> Type:
        if isinstance(t, TemplateParam):
            return self.normalize(t.bound) if t.bound is not None else MIXED
        if isinstance(t, Conditional):
            return conditional_branches(t)
        if isinstance(t, MemberReference):
            expanded = self.env.expand_member_reference(t) if self.env is not None else None
            return expanded if expanded is not None else Unknown("unresolved member reference")
        return t

    def is_subclass(self, child: str, parent: str) -> bool:
        if child.lower() == parent.lower():
            return True
        if self.env is None:
            return False
        return self.env.is_subclass(child, parent)

    # --- containment ----------------------------------------------------

    def contained(self, inner: Type, container: Type) -> bool:
        inner = self.normalize(inner)
        container = self.normalize(container)
        if isinstance(container, Unknown) or container == MIXED:
            return True
        if isinstance(inner, Unknown) or inner == MIXED:
            return False
        if inner == NEVER:
            return True
        if inner == container:
            return True
        if isinstance(inner, (Union, Nullable)):
            return all(self.contained(m, container) for m in members_of(inner))
        if isinstance(inner, Intersection):
            return any(self.contained(m, container) for m in inner.members)
        if isinstance(container, (Union, Nullable)):
            return any(self.contained(inner, m) for m in members_of(container))
        if isinstance(container, Intersection):
            return all(self.contained(inner, m) for m in container.members)
        return self.atomic_contained(inner, container)

    def atomic_contained(self, inner: Type, container: Type) -> bool:
        if _is_class_like(container):
            if _is_class_like(inner):
                if not self.is_subclass(_class_name(inner), _class_name(container)):
                    return False
                return self.arguments_contained(inner, container)
            return False

        container_base = _base_name(container)
        if container_base is None:
            return False

        if _is_class_like(inner):
            if container_base in ("object", "mixed"):
                return True
            if container_base == "callable" and _class_name(inner).lower() == "closure":
                return True
            if container_base == "iterable":
                return self.is_subclass(_class_name(inner), "Traversable")
            return False

        inner_base = _base_name(inner)
        if inner_base is None:
            return False

        if isinstance(container, Literal):
            return isinstance(inner, Literal) and inner == container
        if isinstance(container, IntRange):
            return self.within_range(inner, container)
        if isinstance(inner, Literal):
            return self.literal_in_keyword(inner, container_base) and self.arguments_contained(
                inner, container
            )
        if isinstance(inner, IntRange):
            return self.range_in_keyword(inner, container_base)
        if container_base not in _ancestors(inner_base):
            return False
        return self.arguments_contained(inner, container)

    def within_range(self, inner: Type, container: IntRange) -> bool:
        if isinstance(inner, Literal):
            return inner.kind == "int" and container.contains(inner.value)  # type: ignore[arg-type]
        if isinstance(inner, IntRange):
            low_ok = container.min is None or (inner.min is not None and inner.min >= container.min)
            high_ok = container.max is None or (
                inner.max is not None and inner.max <= container.max
            )
            return low_ok and high_ok
        if isinstance(inner, Primitive) and inner.name in _KEYWORD_RANGES:
            return self.within_range(_KEYWORD_RANGES[inner.name], container)
        return False

    def range_in_keyword(self, inner: IntRange, keyword: str) -> bool:
        if keyword in _KEYWORD_RANGES:
            return self.within_range(inner, _KEYWORD_RANGES[keyword])
        return keyword in _ancestors("int")

    def literal_in_keyword(self, literal: Literal, keyword: str) -> bool:
        value = literal.value
        if literal.kind == "int":
            if keyword in _KEYWORD_RANGES:
                return _KEYWORD_RANGES[keyword].contains(value)  # type: ignore[arg-type]
            return keyword in _ancestors("int")
        if literal.kind == "float":
            return keyword in _ancestors("float")
        text = str(value)
        checks = {
            "non-empty-string": text != "",
            "non-falsy-string": text not in ("", "0"),
            "numeric-string": _is_numeric(text),
            "lowercase-string": text == text.lower(),
            "non-empty-lowercase-string": text != "" and text == text.lower(),
            "literal-string": True,
            "class-string": False,
            "interface-string": False,
            "enum-string": False,
            "trait-string": False,
        }
        if keyword in checks:
            return checks[keyword]
        return keyword in _ancestors("string")

    def arguments_contained(self, inner: Type, container: Type) -> bool:
        """Compare type arguments once the base types are known to be compatible."""
        if isinstance(container, Shape):
            if not isinstance(inner, Shape):
                return False
            return self.shape_contained(inner, container)
        if not isinstance(container, Generic):
            return True
        container_value = container.args[-1]
        container_key = container.args[0] if len(container.args) > 1 else None
        if isinstance(inner, Generic):
            if inner.is_keyword != container.is_keyword:
                return False
            if not inner.is_keyword:
                if inner.name.lower() != container.name.lower():
                    # Ancestor type arguments are not tracked at this level
                    return True
                return len(inner.args) == len(container.args) and all(
                    self.contained(a, b) for a, b in zip(inner.args, container.args)
                )
            if not self.contained(inner.args[-1], container_value):
                return False
            if container_key is not None and len(inner.args) > 1:
                return self.contained(inner.args[0], container_key)
            return True
        if isinstance(inner, Shape):
            values = [f.value for f in inner.fields]
            if not inner.sealed:
                values.append(inner.extra_value or MIXED)
            return all(self.contained(v, container_value) for v in values)
        if isinstance(inner, Literal) and container.name.lower() in (
            "class-string",
            "interface-string",
            "enum-string",
            "trait-string",
        ):
            return False
        # A bare keyword says nothing about its elements
        return False

    def shape_contained(self, inner: Shape, container: Shape) -> bool:
        for entry in container.fields:
            key = entry.key
            candidate = inner.field_for(key) if key is not None else None
            if candidate is None:
                if key is None:
                    continue
                if not entry.optional:
                    return False
                continue
            if candidate.optional and not entry.optional:
                return False
            if not self.contained(candidate.value, entry.value):
                return False
        if container.sealed:
            container_keys = {f.key for f in container.fields}
            if not inner.sealed or any(f.key not in container_keys for f in inner.fields):
                return False
        return True

    # --- overlap --------------------------------------------------------

    def overlap(self, a: Type, b: Type) -> bool:
        a = self.normalize(a)
        b = self.normalize(b)
        if isinstance(a, Unknown) or isinstance(b, Unknown) or a == MIXED or b == MIXED:
            return True
        if a == NEVER or b == NEVER:
            return False
        if a == b:
            return True
        if isinstance(a, (Union, Nullable)):
            return any(self.overlap(m, b) for m in members_of(a))
        if isinstance(b, (Union, Nullable)):
            return any(self.overlap(a, m) for m in members_of(b))
        if isinstance(a, Intersection):
            return all(self.overlap(m, b) for m in a.members)
        if isinstance(b, Intersection):
            return all(self.overlap(a, m) for m in b.members)
        if self.contained(a, b) or self.contained(b, a):
            return True
        return self.atomic_overlap(a, b)

    def atomic_overlap(self, a: Type, b: Type) -> bool:
        if _is_class_like(a) and _is_class_like(b):
            # Unrelated interfaces can share an implementation
            return True
        a_base = "object" if _is_class_like(a) else _base_name(a)
        b_base = "object" if _is_class_like(b) else _base_name(b)
        if a_base is None or b_base is None:
            return True
        if isinstance(a, Literal) and isinstance(b, Literal):
            return a == b
        if isinstance(a, Literal) or isinstance(b, Literal):
            literal, other = (a, b) if isinstance(a, Literal) else (b, a)
            return self.literal_overlaps(literal, other)  # type: ignore[arg-type]
        if isinstance(a, IntRange) or isinstance(b, IntRange):
            return self.range_overlaps(a, b)
        if a_base in _KEYWORD_RANGES and b_base in _KEYWORD_RANGES:
            return self.range_overlaps(a, b)
        if frozenset({a_base, b_base}) in _DISJOINT_SIBLINGS:
            return False
        if a_base in ("true", "false") and b_base in ("true", "false"):
            return a_base == b_base
        return bool(_domain(a_base) & _domain(b_base))

    def literal_overlaps(self, literal: Literal, other: Type) -> bool:
        if isinstance(other, IntRange):
            return literal.kind == "int" and other.contains(literal.value)  # type: ignore[arg-type]
        base = "object" if _is_class_like(other) else _base_name(other)
        if base is None:
            return True
        if self.literal_in_keyword(literal, base):
            return True
        return base in ("callable",) and literal.kind == "string"

    def range_overlaps(self, a: Type, b: Type) -> bool:
        ranges = []
        for side in (a, b):
            if isinstance(side, IntRange):
                ranges.append(side)
            elif isinstance(side, Primitive) and side.name in _KEYWORD_RANGES:
                ranges.append(_KEYWORD_RANGES[side.name])
            else:
                base = "object" if _is_class_like(side) else _base_name(side)
                if base is None or "int" not in _domain(base):
                    return False
                ranges.append(IntRange(None, None))
        low = max((r.min for r in ranges if r.min is not None), default=None)
        high = min((r.max for r in ranges if r.max is not None), default=None)
        return low is None or high is None or low <= high


_KEYWORD_RANGES: dict[str, IntRange] = {
    "int": IntRange(None, None),
    "positive-int": IntRange(1, None),
    "negative-int": IntRange(None, -1),
    "non-negative-int": IntRange(0, None),
    "non-positive-int": IntRange(None, 0),
}


def _is_numeric(text: str) -> bool:
    try:
        float(text.strip())
    except ValueError:
        return False
    return text.strip() != "" and text.strip().lower() not in ("nan", "inf", "-inf", "infinity")


def is_contained_by(inner: Type, container: Type, env: TypeEnvironment | None = None) -> bool:
    """Whether every value of ``inner`` is definitely a value of ``container``."""
    return _Comparator(env).contained(inner, container)


def can_overlap(a: Type, b: Type, env: TypeEnvironment | None = None) -> bool:
    """Whether some value may belong to both ``a`` and ``b``."""
    return _Comparator(env).overlap(a, b)
