"""Query service over a built symbol table.

This module provides the SignatureDatabase, the read-only interface an
analyzer uses to look up declarations, walk inheritance, specialize
conditional return types and instantiate generic signatures.
"""

from __future__ import annotations

import re
from collections import deque
from collections.abc import Iterator, Mapping, Sequence
from dataclasses import dataclass, field

from stubdb.core.diagnostics import Diagnostic
from stubdb.core.models import (
    ClassEntry,
    ConstantEntry,
    Declaration,
    DeclarationKind,
    FunctionEntry,
    MethodEntry,
    Namespace,
    OverloadSet,
    PropertyEntry,
    Signature,
    SymbolTable,
    constant_key,
    symbol_key,
)
from stubdb.core.serializer import deserialize, serialize
from stubdb.symbols.generics import bind_templates, instantiate_signature, substitute_all
from stubdb.types.algebra import MemberReference, Named, Type, Unknown, literal_of, union_of
from stubdb.types.comparator import can_overlap
from stubdb.types.resolution import CallContext
from stubdb.types.resolution import resolve_conditional as _resolve_conditional
from stubdb.types.transform import substitute_templates

_CLASS_KINDS = frozenset(
    {
        DeclarationKind.CLASS,
        DeclarationKind.INTERFACE,
        DeclarationKind.TRAIT,
        DeclarationKind.ENUM,
    }
)


@dataclass
class MemberLookup:
    """A member found by walking a class hierarchy."""

    owner: str
    kind: DeclarationKind
    entry: MethodEntry | PropertyEntry | ConstantEntry
    bindings: dict[str, Type] = field(default_factory=dict)

    @property
    def declaration(self) -> Declaration:
        return self.entry.declaration

    def overloads(self) -> OverloadSet | None:
        """Method signatures with the inherited template bindings applied."""
        if not isinstance(self.entry, MethodEntry):
            return None
        return OverloadSet(
            signatures=[
                instantiate_signature(s, self.bindings, own_templates=False)
                for s in self.entry.overloads.signatures
            ]
        )

    def type(self) -> Type | None:
        """Property or constant type with the inherited template bindings applied."""
        if isinstance(self.entry, MethodEntry):
            return None
        return substitute_templates(self.entry.type, self.bindings)


def _member_pattern(member: str) -> re.Pattern[str]:
    return re.compile("^" + ".*".join(re.escape(part) for part in member.split("*")) + "$")


class SignatureDatabase:
    """Read-only query interface over a symbol table.

    Nothing is mutated after construction, so one instance can serve any
    number of concurrent readers. Lookups that miss return None; type
    queries that cannot be answered return ``Unknown``.
    """

    def __init__(self, table: SymbolTable) -> None:
        self._table = table

    @classmethod
    def from_snapshot(cls, json_str: str) -> SignatureDatabase:
        return cls(deserialize(json_str))

    def to_snapshot(self) -> str:
        return serialize(self._table)

    @property
    def table(self) -> SymbolTable:
        return self._table

    @property
    def diagnostics(self) -> list[Diagnostic]:
        return self._table.diagnostics

    # --- lookup ---------------------------------------------------------

    def classes(self) -> Iterator[ClassEntry]:
        return iter(self._table.classes.values())

    def functions(self) -> Iterator[FunctionEntry]:
        return iter(self._table.functions.values())

    def constants(self) -> Iterator[ConstantEntry]:
        return iter(self._table.constants.values())

    def get_class(self, name: str) -> ClassEntry | None:
        return self._table.classes.get(symbol_key(name))

    def get_function(self, name: str) -> FunctionEntry | None:
        return self._table.functions.get(symbol_key(name))

    def get_constant(self, name: str) -> ConstantEntry | None:
        """Get a global constant, or a class constant spelled ``Class::NAME``."""
        if "::" in name:
            class_name, _, member = name.partition("::")
            found = self.find_member(class_name, member)
            if found is not None and isinstance(found.entry, ConstantEntry):
                return found.entry
            return None
        return self._table.constants.get(constant_key(name))

    def namespace(self, prefix: str) -> Namespace | None:
        return self._table.namespaces.get(prefix.strip("\\").lower())

    def lookup(self, fq_name: str, kind: DeclarationKind | None = None) -> Declaration | None:
        """Find a declaration by fully qualified name.

        Class and function names match case-insensitively; constant names
        match case-sensitively. ``Class::member`` finds a member through
        the class hierarchy (``Class::$prop`` for properties).

        Args:
            fq_name: Fully qualified name, with or without a leading backslash.
            kind: Restrict the search to one kind of declaration.

        Returns:
            The declaration, or None if nothing matches.
        """
        if "::" in fq_name:
            class_name, _, member = fq_name.partition("::")
            found = self.find_member(class_name, member)
            if found is None or (kind is not None and found.kind != kind):
                return None
            return found.declaration

        if kind is None or kind in _CLASS_KINDS:
            entry = self.get_class(fq_name)
            if entry is not None and (kind is None or entry.declaration.kind == kind):
                return entry.declaration
        if kind in (None, DeclarationKind.FUNCTION):
            function = self.get_function(fq_name)
            if function is not None:
                return function.declaration
        if kind in (None, DeclarationKind.CONSTANT):
            constant = self._table.constants.get(constant_key(fq_name))
            if constant is not None:
                return constant.declaration
        return None

    # --- hierarchy ------------------------------------------------------

    def _hop(
        self, child: ClassEntry, bindings: Mapping[str, Type], ancestor: ClassEntry
    ) -> dict[str, Type]:
        arguments = child.ancestor_type_arguments.get(symbol_key(ancestor.name), [])
        return bind_templates(ancestor.templates, substitute_all(arguments, bindings))

    def _linearize(self, class_name: str) -> list[tuple[ClassEntry, dict[str, Type]]]:
        """Member resolution order with the template bindings of each hop.

        Own members first, then the superclass chain, then interfaces
        breadth-first.
        """
        entry = self.get_class(class_name)
        if entry is None:
            return []
        seen: set[str] = set()
        chain: list[tuple[ClassEntry, dict[str, Type]]] = []
        current: ClassEntry | None = entry
        bindings: dict[str, Type] = {}
        while current is not None and symbol_key(current.name) not in seen:
            seen.add(symbol_key(current.name))
            chain.append((current, bindings))
            parent = self.get_class(current.parent) if current.parent else None
            if parent is not None:
                bindings = self._hop(current, bindings, parent)
            current = parent

        order = list(chain)
        queue = deque(
            (owner, owner_bindings, name)
            for owner, owner_bindings in chain
            for name in owner.interfaces
        )
        while queue:
            owner, owner_bindings, name = queue.popleft()
            interface = self.get_class(name)
            if interface is None or symbol_key(interface.name) in seen:
                continue
            seen.add(symbol_key(interface.name))
            interface_bindings = self._hop(owner, owner_bindings, interface)
            order.append((interface, interface_bindings))
            queue.extend((interface, interface_bindings, n) for n in interface.interfaces)
        return order

    def ancestors(self, class_name: str) -> list[str]:
        """Names of every ancestor in member resolution order, excluding the class itself."""
        return [entry.name for entry, _ in self._linearize(class_name)[1:]]

    def is_subclass(self, child: str, parent: str) -> bool:
        target = symbol_key(parent)
        if symbol_key(child) == target:
            return True
        return any(symbol_key(name) == target for name in self.ancestors(child))

    # --- members --------------------------------------------------------

    def find_member(self, class_name: str, member: str) -> MemberLookup | None:
        """Walk the hierarchy of ``class_name`` for ``member``.

        Args:
            class_name: Fully qualified class-like name.
            member: Method or constant name, or ``$name`` for a property.

        Returns:
            The first match in resolution order, or None.
        """
        for entry, bindings in self._linearize(class_name):
            if member.startswith("$"):
                prop = entry.properties.get(member[1:])
                if prop is not None:
                    return MemberLookup(entry.name, DeclarationKind.PROPERTY, prop, bindings)
                continue
            method = entry.methods.get(member.lower())
            if method is not None:
                return MemberLookup(entry.name, DeclarationKind.METHOD, method, bindings)
            constant = entry.constants.get(member)
            if constant is not None:
                return MemberLookup(entry.name, constant.declaration.kind, constant, bindings)
        return None

    def resolve_member(self, class_name: str, member: str) -> OverloadSet | Type | None:
        """Resolve a member to its signatures (methods) or its type (everything else)."""
        found = self.find_member(class_name, member)
        if found is None:
            return None
        if found.kind == DeclarationKind.METHOD:
            return found.overloads()
        return found.type()

    def expand_member_reference(self, reference: MemberReference) -> Type | None:
        """Expand ``Foo::BAR_*`` into the union of the matching constants' types."""
        if reference.class_name.lower() in ("self", "static", "parent"):
            return None
        pattern = _member_pattern(reference.member)
        matched: dict[str, Type] = {}
        for entry, _ in self._linearize(reference.class_name):
            for name, constant in entry.constants.items():
                if name in matched or not pattern.match(name):
                    continue
                if constant.declaration.kind == DeclarationKind.ENUM_CASE:
                    matched[name] = Named(entry.name)
                elif constant.is_value_known:
                    matched[name] = literal_of(constant.value)
                else:
                    matched[name] = constant.type
        if not matched:
            return None
        return union_of(matched.values())

    # --- signatures -----------------------------------------------------

    def resolve_conditional(self, t: Type, context: CallContext) -> Type:
        return _resolve_conditional(t, context, self)

    def instantiate_generic(
        self, signature: Signature, type_args: Sequence[Type] | Mapping[str, Type]
    ) -> Signature:
        """Substitute the signature's own ``@template`` parameters.

        Args:
            signature: A generic signature.
            type_args: Type arguments in template declaration order, or by name.

        Returns:
            A new signature; templates without an argument are left in place.
        """
        return instantiate_signature(signature, bind_templates(signature.templates, type_args))

    def select_overload(
        self, overloads: OverloadSet, arg_types: Sequence[Type]
    ) -> Signature | None:
        """Pick the first signature accepting the given argument types.

        Candidates are filtered by arity first, then by type compatibility.
        Unknown argument types are compatible with every parameter.
        """
        for signature in overloads.signatures:
            if not signature.accepts_arity(len(arg_types)):
                continue
            if all(self._accepts(signature, i, arg) for i, arg in enumerate(arg_types)):
                return signature
        return None

    def _accepts(self, signature: Signature, index: int, arg: Type) -> bool:
        if isinstance(arg, Unknown):
            return True
        if index < len(signature.parameters):
            param = signature.parameters[index]
        else:
            param = signature.parameters[-1]
        return can_overlap(arg, param.type, self)
