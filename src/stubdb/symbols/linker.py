"""Inheritance linking for class-likes.

Runs once every file has been collected: resolves parent, interface and
trait edges against the declared classes, removes edges that form cycles,
and folds trait members into the classes that use them.
"""

from __future__ import annotations

import logging

from stubdb.core.config import StubDbConfig
from stubdb.core.diagnostics import DiagnosticCollector, DiagnosticKind
from stubdb.core.models import ClassEntry, ClassKind, symbol_key
from stubdb.symbols.generics import bind_templates, instantiate_signature
from stubdb.types.transform import substitute_templates

logger = logging.getLogger(__name__)


class InheritanceLinker:
    """Validates and completes the inheritance graph of a class map."""

    def __init__(
        self,
        classes: dict[str, ClassEntry],
        config: StubDbConfig,
        diagnostics: DiagnosticCollector,
    ) -> None:
        self._classes = classes
        self._config = config
        self._diagnostics = diagnostics

    def link(self) -> None:
        if self._config.implicit_enum_interfaces:
            self._add_enum_interfaces()
        for entry in self._classes.values():
            self._resolve_edges(entry)
        self._break_cycles()
        composed: set[str] = set()
        for key in list(self._classes):
            self._compose_traits(key, composed, set())

    def _report(self, kind: DiagnosticKind, entry: ClassEntry, message: str) -> None:
        location = entry.declaration.location
        self._diagnostics.add(
            kind,
            message,
            file=location.file if location else None,
            line=location.line if location else None,
            symbol=entry.name,
        )

    def _add_enum_interfaces(self) -> None:
        unit = self._classes.get("unitenum")
        backed = self._classes.get("backedenum")
        for entry in self._classes.values():
            if entry.kind != ClassKind.ENUM:
                continue
            present = {symbol_key(i) for i in entry.interfaces}
            implied = backed if entry.backing_type is not None and backed is not None else unit
            if implied is not None and symbol_key(implied.name) not in present:
                entry.interfaces.append(implied.name)

    def _canonical(self, name: str) -> str | None:
        entry = self._classes.get(symbol_key(name))
        return entry.name if entry is not None else None

    def _resolve_edges(self, entry: ClassEntry) -> None:
        if entry.parent is not None:
            parent = self._canonical(entry.parent)
            if parent is None:
                self._report(
                    DiagnosticKind.UNRESOLVED_NAME,
                    entry,
                    f"{entry.name} extends undeclared class {entry.parent}",
                )
            entry.parent = parent

        interfaces: list[str] = []
        for name in entry.interfaces:
            resolved = self._canonical(name)
            if resolved is None:
                self._report(
                    DiagnosticKind.UNRESOLVED_NAME,
                    entry,
                    f"{entry.name} references undeclared interface {name}",
                )
            elif resolved not in interfaces:
                interfaces.append(resolved)
        entry.interfaces = interfaces

        traits: list[str] = []
        for name in entry.traits:
            resolved = self._canonical(name)
            if resolved is None:
                self._report(
                    DiagnosticKind.UNRESOLVED_NAME,
                    entry,
                    f"{entry.name} uses undeclared trait {name}",
                )
            elif resolved not in traits:
                traits.append(resolved)
        entry.traits = traits

    def _edges(self, entry: ClassEntry) -> list[str]:
        return [symbol_key(n) for n in entry.supertypes + entry.traits]

    def _strongly_connected(self) -> list[list[str]]:
        """Tarjan's algorithm over parent, interface and trait edges."""
        index: dict[str, int] = {}
        low: dict[str, int] = {}
        on_stack: set[str] = set()
        stack: list[str] = []
        components: list[list[str]] = []
        counter = 0

        def visit(key: str) -> None:
            nonlocal counter
            index[key] = low[key] = counter
            counter += 1
            stack.append(key)
            on_stack.add(key)
            for target in self._edges(self._classes[key]):
                if target not in index:
                    visit(target)
                    low[key] = min(low[key], low[target])
                elif target in on_stack:
                    low[key] = min(low[key], index[target])
            if low[key] == index[key]:
                component: list[str] = []
                while True:
                    member = stack.pop()
                    on_stack.discard(member)
                    component.append(member)
                    if member == key:
                        break
                components.append(component)

        for key in sorted(self._classes):
            if key not in index:
                visit(key)
        return components

    def _break_cycles(self) -> None:
        for component in self._strongly_connected():
            members = set(component)
            if len(component) == 1:
                key = component[0]
                if key not in self._edges(self._classes[key]):
                    continue
            names = sorted(self._classes[key].name for key in members)
            logger.debug(f"Inheritance cycle between {', '.join(names)}")
            for key in sorted(members):
                entry = self._classes[key]
                if entry.parent is not None and symbol_key(entry.parent) in members:
                    entry.parent = None
                entry.interfaces = [i for i in entry.interfaces if symbol_key(i) not in members]
                entry.traits = [t for t in entry.traits if symbol_key(t) not in members]
                self._report(
                    DiagnosticKind.INHERITANCE_CYCLE,
                    entry,
                    f"{entry.name} is part of an inheritance cycle: {' -> '.join(names)}",
                )

    def _compose_traits(self, key: str, composed: set[str], visiting: set[str]) -> None:
        if key in composed or key in visiting:
            return
        visiting.add(key)
        entry = self._classes[key]
        for trait_name in entry.traits:
            trait_key = symbol_key(trait_name)
            self._compose_traits(trait_key, composed, visiting)
            trait = self._classes[trait_key]
            bindings = bind_templates(
                trait.templates, entry.ancestor_type_arguments.get(trait_key, [])
            )
            for name, method in trait.methods.items():
                if name in entry.methods:
                    continue
                entry.methods[name] = method.model_copy(
                    update={
                        "owner": entry.name,
                        "declaration": method.declaration.model_copy(
                            update={"qualified_name": f"{entry.name}::{method.declaration.name}"}
                        ),
                        "overloads": method.overloads.model_copy(
                            update={
                                "signatures": [
                                    instantiate_signature(s, bindings, own_templates=False)
                                    for s in method.overloads.signatures
                                ]
                            }
                        ),
                    }
                )
            for name, prop in trait.properties.items():
                if name not in entry.properties:
                    entry.properties[name] = prop.model_copy(
                        update={
                            "owner": entry.name,
                            "type": substitute_templates(prop.type, bindings),
                        }
                    )
            for name, constant in trait.constants.items():
                if name not in entry.constants:
                    entry.constants[name] = constant.model_copy(update={"owner": entry.name})
        visiting.discard(key)
        composed.add(key)
