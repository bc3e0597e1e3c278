"""Evaluation of conditional return types against call-site information."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field

from stubdb.types.algebra import (
    Conditional,
    Type,
    Unknown,
    union_of,
)
from stubdb.types.comparator import TypeEnvironment, can_overlap, is_contained_by
from stubdb.types.transform import map_type


@dataclass(frozen=True)
class CallContext:
    """What is known about a call: argument types by parameter name and template bindings."""

    arguments: Mapping[str, Type] = field(default_factory=dict)
    templates: Mapping[str, Type] = field(default_factory=dict)
    this_type: Type | None = None

    def subject_type(self, subject: str) -> Type | None:
        if subject == "$this":
            return self.this_type
        if subject.startswith("$"):
            return self.arguments.get(subject[1:])
        return self.templates.get(subject)


class _UnresolvedSubject(Exception):
    pass


def resolve_conditional(
    t: Type, context: CallContext, env: TypeEnvironment | None = None
) -> Type:
    """Collapse every conditional inside ``t``.

    A subject known to satisfy the test selects the ``then`` branch, a
    subject that cannot satisfy it selects the ``else`` branch, and anything
    in between yields the union of both. If any subject has no known type
    the whole result is ``Unknown``.
    """

    def rewrite(node: Type) -> Type | None:
        if not isinstance(node, Conditional):
            return None
        subject = context.subject_type(node.subject)
        if subject is None or isinstance(subject, Unknown):
            raise _UnresolvedSubject(node.subject)
        target = map_type(node.target, rewrite)
        matches, misses = node.then, node.otherwise
        if node.negated:
            matches, misses = misses, matches
        if is_contained_by(subject, target, env):
            return map_type(matches, rewrite)
        if not can_overlap(subject, target, env):
            return map_type(misses, rewrite)
        return union_of([map_type(node.then, rewrite), map_type(node.otherwise, rewrite)])

    try:
        return map_type(t, rewrite)
    except _UnresolvedSubject as exc:
        return Unknown(f"no type known for conditional subject {exc.args[0]}")

