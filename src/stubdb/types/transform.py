"""Structural traversal and rewriting of type values."""

from __future__ import annotations

from collections.abc import Callable, Iterator, Mapping

from stubdb.types.algebra import (
    MIXED,
    CallableParameter,
    CallableType,
    Conditional,
    Generic,
    Intersection,
    Nullable,
    Shape,
    ShapeField,
    TemplateParam,
    Type,
    Union,
    intersection_of,
    nullable,
    union_of,
)

Rewriter = Callable[[Type], "Type | None"]


def children(t: Type) -> tuple[Type, ...]:
    """Direct sub-types of ``t``."""
    if isinstance(t, Nullable):
        return (t.inner,)
    if isinstance(t, (Union, Intersection)):
        return t.members
    if isinstance(t, Generic):
        return t.args
    if isinstance(t, Shape):
        extra = tuple(x for x in (t.extra_key, t.extra_value) if x is not None)
        return tuple(f.value for f in t.fields) + extra
    if isinstance(t, Conditional):
        return (t.target, t.then, t.otherwise)
    if isinstance(t, CallableType):
        params = tuple(p.type for p in t.params)
        return params + ((t.return_type,) if t.return_type is not None else ())
    return ()


def iter_types(t: Type) -> Iterator[Type]:
    """Pre-order walk over ``t`` and all of its sub-types."""
    yield t
    for child in children(t):
        yield from iter_types(child)


def map_type(t: Type, rewrite: Rewriter) -> Type:
    """Rebuild ``t`` bottom-up, letting ``rewrite`` replace any node.

    ``rewrite`` is consulted before descending; returning None keeps the
    node and continues into its children.
    """
    replaced = rewrite(t)
    if replaced is not None:
        return replaced

    def again(node: Type) -> Type:
        return map_type(node, rewrite)

    if isinstance(t, Nullable):
        return nullable(again(t.inner))
    if isinstance(t, Union):
        return union_of(again(m) for m in t.members)
    if isinstance(t, Intersection):
        return intersection_of([again(m) for m in t.members])
    if isinstance(t, Generic):
        return Generic(t.name, tuple(again(a) for a in t.args))
    if isinstance(t, Shape):
        return Shape(
            t.kind,
            tuple(ShapeField(f.key, again(f.value), f.optional) for f in t.fields),
            t.sealed,
            again(t.extra_key) if t.extra_key is not None else None,
            again(t.extra_value) if t.extra_value is not None else None,
        )
    if isinstance(t, Conditional):
        return Conditional(
            t.subject, again(t.target), again(t.then), again(t.otherwise), t.negated
        )
    if isinstance(t, CallableType):
        return CallableType(
            t.kind,
            tuple(
                CallableParameter(again(p.type), p.optional, p.variadic, p.by_reference)
                for p in t.params
            ),
            again(t.return_type) if t.return_type is not None else None,
        )
    return t


def substitute_templates(t: Type, bindings: Mapping[str, Type]) -> Type:
    """Replace template parameters named in ``bindings``."""
    if not bindings:
        return t

    def rewrite(node: Type) -> Type | None:
        if isinstance(node, TemplateParam) and node.name in bindings:
            return bindings[node.name]
        return None

    return map_type(t, rewrite)


def erase_templates(t: Type) -> Type:
    """Replace every template parameter by its bound, or ``mixed``."""

    def rewrite(node: Type) -> Type | None:
        if isinstance(node, TemplateParam):
            return erase_templates(node.bound) if node.bound is not None else MIXED
        return None

    return map_type(t, rewrite)


def conditional_branches(t: Type) -> Type:
    """Over-approximate ``t`` by replacing conditionals with the union of their branches."""

    def rewrite(node: Type) -> Type | None:
        if isinstance(node, Conditional):
            return union_of(
                [conditional_branches(node.then), conditional_branches(node.otherwise)]
            )
        return None

    return map_type(t, rewrite)


def conditionals(t: Type) -> list[Conditional]:
    return [node for node in iter_types(t) if isinstance(node, Conditional)]
