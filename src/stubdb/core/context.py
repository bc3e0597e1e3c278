"""Per-file name resolution context.

A ``FileContext`` captures the namespace and ``use`` imports that are in
effect at a declaration site, and resolves relative PHP names against them.
"""

from __future__ import annotations

from pydantic import BaseModel, Field


def join_name(namespace: str, name: str) -> str:
    """Join a namespace and a relative name."""
    return f"{namespace}\\{name}" if namespace else name


def split_name(fq_name: str) -> tuple[str, str]:
    """Split ``A\\B\\C`` into ``("A\\B", "C")``."""
    namespace, _, short = fq_name.lstrip("\\").rpartition("\\")
    return namespace, short


class FileContext(BaseModel):
    """Namespace and imports in effect at a declaration site."""

    file: str = Field(default="<memory>", description="Source path of the declaration")
    namespace: str = Field(default="", description="Enclosing namespace, empty for global")
    uses: dict[str, str] = Field(
        default_factory=dict, description="Lowercased class alias -> fully qualified name"
    )
    function_uses: dict[str, str] = Field(
        default_factory=dict, description="Lowercased function alias -> fully qualified name"
    )
    constant_uses: dict[str, str] = Field(
        default_factory=dict, description="Constant alias -> fully qualified name"
    )

    def add_use(self, fq_name: str, alias: str | None = None, kind: str = "class") -> None:
        """Register a ``use`` import."""
        fq_name = fq_name.lstrip("\\")
        alias = alias or split_name(fq_name)[1]
        if kind == "function":
            self.function_uses[alias.lower()] = fq_name
        elif kind == "const":
            self.constant_uses[alias] = fq_name
        else:
            self.uses[alias.lower()] = fq_name

    def qualify(self, name: str) -> str:
        """Qualify a declared short name with the current namespace."""
        return join_name(self.namespace, name)

    def resolve_class(self, name: str) -> str:
        """Resolve a class-like reference to its fully qualified name.

        Fully qualified names lose their leading backslash, ``namespace\\``
        is relative to the current namespace, an imported first segment is
        replaced by its import target, and anything else is prefixed with
        the current namespace.
        """
        name = name.strip()
        if name.startswith("\\"):
            return name[1:]
        head, sep, rest = name.partition("\\")
        if head.lower() == "namespace" and sep:
            return join_name(self.namespace, rest)
        imported = self.uses.get(head.lower())
        if imported is not None:
            return f"{imported}\\{rest}" if sep else imported
        return join_name(self.namespace, name)

    def resolve_function(self, name: str) -> list[str]:
        """Candidate fully qualified names for a function reference, in lookup order."""
        return self._resolve_with_fallback(name, self.function_uses, case_insensitive=True)

    def resolve_constant(self, name: str) -> list[str]:
        """Candidate fully qualified names for a constant reference, in lookup order."""
        return self._resolve_with_fallback(name, self.constant_uses, case_insensitive=False)

    def _resolve_with_fallback(
        self, name: str, imports: dict[str, str], case_insensitive: bool
    ) -> list[str]:
        name = name.strip()
        if name.startswith("\\"):
            return [name[1:]]
        if "\\" in name:
            return [self.resolve_class(name)]
        key = name.lower() if case_insensitive else name
        if key in imports:
            return [imports[key]]
        if self.namespace:
            # Unqualified functions and constants fall back to the global namespace
            return [join_name(self.namespace, name), name]
        return [name]
