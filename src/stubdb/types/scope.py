"""Name resolution scope for type expressions."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field

from stubdb.core.context import FileContext
from stubdb.types.algebra import Type


@dataclass(frozen=True)
class TypeScope:
    """File context plus the template parameters visible at a declaration."""

    context: FileContext | None = None
    templates: Mapping[str, Type | None] = field(default_factory=dict)

    def resolve_class(self, name: str) -> str:
        if self.context is None:
            return name.lstrip("\\")
        return self.context.resolve_class(name)

    def template(self, name: str) -> tuple[bool, Type | None]:
        """Look up a template parameter, returning ``(found, bound)``."""
        if name in self.templates:
            return True, self.templates[name]
        return False, None

    def with_templates(self, templates: Mapping[str, Type | None]) -> TypeScope:
        if not templates:
            return self
        merged = dict(self.templates)
        merged.update(templates)
        return TypeScope(context=self.context, templates=merged)


EMPTY_SCOPE = TypeScope()
