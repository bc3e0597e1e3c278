"""Symbol table construction.

The builder consumes scanned stub files in order and produces a single
:class:`~stubdb.core.models.SymbolTable`. Collection happens per file;
linking (inheritance, traits, constant folding) happens once in
:meth:`SymbolTableBuilder.finish`, after every file has been added.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass

from stubdb.core.config import StubDbConfig, get_config
from stubdb.core.context import FileContext, split_name
from stubdb.core.diagnostics import DiagnosticCollector, DiagnosticKind
from stubdb.core.models import (
    ClassEntry,
    ClassKind,
    ConstantEntry,
    Declaration,
    DeclarationKind,
    FunctionEntry,
    MethodEntry,
    Namespace,
    OverloadSet,
    PropertyEntry,
    SymbolTable,
    constant_key,
    symbol_key,
)
from stubdb.scanner.ast_utils import PhpAstUtils
from stubdb.scanner.records import (
    RawClassLike,
    RawConstant,
    RawEnumCase,
    RawFunction,
    RawProperty,
    StubFile,
)
from stubdb.symbols.linker import InheritanceLinker
from stubdb.symbols.signatures import SignatureFactory
from stubdb.symbols.values import EvaluatedValue, ValueKind, evaluate_expression
from stubdb.types.algebra import MIXED, Generic, Named, Type, Unknown, literal_of
from stubdb.types.scope import TypeScope

logger = logging.getLogger(__name__)


@dataclass
class _PendingFold:
    entry: ConstantEntry
    reference: EvaluatedValue
    context: FileContext
    owner: str | None
    has_declared_type: bool


class SymbolTableBuilder:
    """Builds a symbol table from scanned stub files."""

    def __init__(self, config: StubDbConfig | None = None) -> None:
        self._config = config or get_config()
        self._diagnostics = DiagnosticCollector()
        self._factory = SignatureFactory(self._config, self._diagnostics)
        self._classes: dict[str, ClassEntry] = {}
        self._functions: dict[str, FunctionEntry] = {}
        self._constants: dict[str, ConstantEntry] = {}
        self._pending: dict[int, _PendingFold] = {}

    @property
    def diagnostics(self) -> DiagnosticCollector:
        return self._diagnostics

    def build(self, files: Iterable[StubFile]) -> SymbolTable:
        for stub in files:
            self.add_file(stub)
        return self.finish()

    def add_file(self, stub: StubFile) -> bool:
        """Collect the declarations of one file. Returns False if the file was skipped."""
        for problem in stub.syntax_errors:
            self._diagnostics.add(
                DiagnosticKind.SYNTAX_ERROR,
                problem.message,
                file=stub.path,
                line=problem.line,
            )
        if stub.has_errors and self._config.skip_invalid_files:
            logger.warning(f"Skipping {stub.path}: syntax error")
            return False
        logger.debug(f"Adding {stub.path}: {stub.declaration_count} declarations")
        for raw in stub.constants:
            self._add_global_constant(raw)
        for raw in stub.functions:
            self._add_function(raw)
        for raw in stub.classes:
            self._add_class(raw)
        return True

    def finish(self) -> SymbolTable:
        InheritanceLinker(self._classes, self._config, self._diagnostics).link()
        self._fold_constants()
        return SymbolTable(
            classes=self._classes,
            functions=self._functions,
            constants=self._constants,
            namespaces=self._index_namespaces(),
            diagnostics=list(self._diagnostics.diagnostics),
        )

    # --- functions ------------------------------------------------------

    def _add_function(self, raw: RawFunction) -> None:
        fq_name = raw.context.qualify(raw.name)
        signature, block = self._factory.signature(raw, fq_name)
        key = symbol_key(fq_name)
        existing = self._functions.get(key)
        if existing is not None:
            # Redeclaration is an alternative signature of the same function
            existing.overloads.signatures.append(signature)
            return
        self._functions[key] = FunctionEntry(
            declaration=Declaration(
                name=raw.name,
                qualified_name=fq_name,
                kind=DeclarationKind.FUNCTION,
                is_deprecated=block.is_deprecated,
                location=raw.location,
            ),
            overloads=OverloadSet(signatures=[signature]),
        )

    # --- constants ------------------------------------------------------

    def _constant_entry(
        self,
        raw: RawConstant,
        qualified_name: str,
        kind: DeclarationKind,
        owner: str | None,
        scope: TypeScope,
    ) -> ConstantEntry:
        block = self._factory.docblock(raw.docblock, qualified_name, raw.location)
        declared: Type | None = None
        var_text = block.var_type()
        if var_text is not None:
            declared = self._factory.parse_doc_text(var_text, scope, qualified_name, raw.location)
        if declared is None:
            declared = self._factory.native_type(raw.type_text, scope, qualified_name, raw.location)

        evaluated = evaluate_expression(raw.value_text, self._config.unknown_sentinel)
        if evaluated.is_known:
            inferred = literal_of(evaluated.value)
        else:
            inferred = Unknown("value not statically known")
        value_type = declared if declared is not None else inferred

        modifiers = raw.modifiers
        entry = ConstantEntry(
            declaration=Declaration(
                name=raw.name,
                qualified_name=qualified_name,
                kind=kind,
                visibility=PhpAstUtils.get_visibility(modifiers),
                is_final="final" in modifiers,
                is_deprecated=block.is_deprecated,
                location=raw.location,
            ),
            owner=owner,
            type=value_type,
            value=evaluated.value if evaluated.is_known else None,
            is_value_known=evaluated.is_known,
            expression=raw.value_text,
        )
        if evaluated.kind in (ValueKind.REFERENCE, ValueKind.CLASS_REFERENCE):
            self._pending[id(entry)] = _PendingFold(
                entry, evaluated, raw.context, owner, declared is not None
            )
        return entry

    def _add_global_constant(self, raw: RawConstant) -> None:
        fq_name = raw.context.qualify(raw.name)
        key = constant_key(fq_name)
        if key in self._constants:
            self._duplicate(fq_name, raw.location.file, raw.location.line)
            return
        self._constants[key] = self._constant_entry(
            raw, fq_name, DeclarationKind.CONSTANT, None, TypeScope(raw.context)
        )

    def _fold_constants(self) -> None:
        for pending in list(self._pending.values()):
            self._fold(pending, set())

    def _fold(self, pending: _PendingFold, seen: set[int]) -> None:
        marker = id(pending.entry)
        if marker not in self._pending or marker in seen:
            return
        seen.add(marker)
        target = self._resolve_reference(pending)
        if target is not None:
            nested = self._pending.get(id(target))
            if nested is not None:
                self._fold(nested, seen)
            # An enum case reference names the case object, not its backing value
            is_case = target.declaration.kind == DeclarationKind.ENUM_CASE
            if target.is_value_known and not is_case:
                pending.entry.value = target.value
                pending.entry.is_value_known = True
            if not pending.has_declared_type:
                pending.entry.type = target.type
        self._pending.pop(marker, None)

    def _resolve_reference(self, pending: _PendingFold) -> ConstantEntry | None:
        reference = pending.reference
        if reference.kind == ValueKind.REFERENCE:
            for candidate in pending.context.resolve_constant(reference.reference or ""):
                entry = self._constants.get(constant_key(candidate))
                if entry is not None:
                    return entry
            return None

        class_name = (reference.reference or "").lower()
        owner_entry = self._classes.get(symbol_key(pending.owner)) if pending.owner else None
        if class_name in ("self", "static"):
            entry = owner_entry
        elif class_name == "parent":
            entry = (
                self._classes.get(symbol_key(owner_entry.parent))
                if owner_entry is not None and owner_entry.parent
                else None
            )
        else:
            entry = self._classes.get(
                symbol_key(pending.context.resolve_class(reference.reference or ""))
            )
        visited: set[str] = set()
        while entry is not None and symbol_key(entry.name) not in visited:
            visited.add(symbol_key(entry.name))
            constant = entry.constants.get(reference.member or "")
            if constant is not None:
                return constant
            for interface in entry.interfaces:
                iface = self._classes.get(symbol_key(interface))
                if iface is not None and (reference.member or "") in iface.constants:
                    return iface.constants[reference.member or ""]
            entry = self._classes.get(symbol_key(entry.parent)) if entry.parent else None
        return None

    # --- class-likes ----------------------------------------------------

    def _duplicate(self, name: str, file: str | None, line: int | None) -> None:
        self._diagnostics.add(
            DiagnosticKind.DUPLICATE_DECLARATION,
            f"{name} is already declared; keeping the first declaration",
            file=file,
            line=line,
            symbol=name,
        )

    def _add_class(self, raw: RawClassLike) -> None:
        fq_name = raw.context.qualify(raw.name)
        key = symbol_key(fq_name)
        if key in self._classes:
            self._duplicate(fq_name, raw.location.file, raw.location.line)
            return

        context = raw.context
        block = self._factory.docblock(raw.docblock, fq_name, raw.location)
        templates, scope = self._factory.templates(
            block.templates, TypeScope(context), fq_name, raw.location
        )
        class_templates = {t.name: t.bound for t in templates}

        if raw.kind == ClassKind.INTERFACE:
            parent = None
            interfaces = [context.resolve_class(n) for n in raw.extends]
        else:
            parent = context.resolve_class(raw.extends[0]) if raw.extends else None
            interfaces = [context.resolve_class(n) for n in raw.implements]
        traits = [context.resolve_class(n) for use in raw.trait_uses for n in use.names]

        entry = ClassEntry(
            declaration=Declaration(
                name=raw.name,
                qualified_name=fq_name,
                kind=raw.kind.declaration_kind,
                is_abstract="abstract" in raw.modifiers or raw.kind == ClassKind.INTERFACE,
                is_final="final" in raw.modifiers or block.is_final,
                is_readonly="readonly" in raw.modifiers or block.is_readonly,
                is_deprecated=block.is_deprecated,
                location=raw.location,
            ),
            kind=raw.kind,
            parent=parent,
            interfaces=interfaces,
            traits=traits,
            templates=templates,
        )
        if raw.backing_type_text is not None:
            entry.backing_type = self._factory.native_type(
                raw.backing_type_text, scope, fq_name, raw.location
            )

        ancestor_tags = block.extends + block.implements + block.uses
        for use in raw.trait_uses:
            ancestor_tags += self._factory.docblock(use.docblock, fq_name, raw.location).uses
        for tag in ancestor_tags:
            ancestor = self._factory.parse_doc_text(tag.type_text, scope, fq_name, raw.location)
            if isinstance(ancestor, Generic) and not ancestor.is_keyword:
                entry.ancestor_type_arguments[symbol_key(ancestor.name)] = list(ancestor.args)

        for method in raw.methods:
            self._add_method(entry, method, class_templates)
        for prop in raw.properties:
            self._add_property(entry, prop, scope, class_readonly=entry.declaration.is_readonly)
        for constant in raw.constants:
            name = f"{fq_name}::{constant.name}"
            if constant.name in entry.constants:
                self._duplicate(name, constant.location.file, constant.location.line)
                continue
            entry.constants[constant.name] = self._constant_entry(
                constant, name, DeclarationKind.CLASS_CONSTANT, fq_name, scope
            )
        for case in raw.cases:
            self._add_enum_case(entry, case)

        self._classes[key] = entry

    def _add_method(
        self,
        entry: ClassEntry,
        raw: RawFunction,
        class_templates: dict[str, Type | None],
    ) -> None:
        qualified_name = f"{entry.name}::{raw.name}"
        signature, block = self._factory.signature(raw, qualified_name, class_templates)
        key = raw.name.lower()
        existing = entry.methods.get(key)
        if existing is not None:
            existing.overloads.signatures.append(signature)
            return
        modifiers = raw.modifiers
        entry.methods[key] = MethodEntry(
            declaration=Declaration(
                name=raw.name,
                qualified_name=qualified_name,
                kind=DeclarationKind.METHOD,
                visibility=PhpAstUtils.get_visibility(modifiers),
                is_static="static" in modifiers,
                is_abstract="abstract" in modifiers or entry.kind == ClassKind.INTERFACE,
                is_final="final" in modifiers,
                is_deprecated=block.is_deprecated,
                location=raw.location,
            ),
            owner=entry.name,
            declared_in=entry.name,
            overloads=OverloadSet(signatures=[signature]),
        )
        if key == "__construct":
            for param in signature.parameters:
                if param.is_promoted and param.name not in entry.properties:
                    entry.properties[param.name] = PropertyEntry(
                        declaration=Declaration(
                            name=param.name,
                            qualified_name=f"{entry.name}::${param.name}",
                            kind=DeclarationKind.PROPERTY,
                            location=raw.location,
                        ),
                        owner=entry.name,
                        declared_in=entry.name,
                        type=param.type,
                        native_type=param.native_type,
                    )

    def _add_property(
        self, entry: ClassEntry, raw: RawProperty, scope: TypeScope, class_readonly: bool
    ) -> None:
        qualified_name = f"{entry.name}::${raw.name}"
        block = self._factory.docblock(raw.docblock, qualified_name, raw.location)
        native = self._factory.native_type(raw.type_text, scope, qualified_name, raw.location)
        declared: Type | None = None
        var_text = block.var_type(raw.name)
        if var_text is not None:
            declared = self._factory.parse_doc_text(var_text, scope, qualified_name, raw.location)
        if declared is not None:
            self._factory.check_conflict(
                declared, native, f"property ${raw.name}", qualified_name, raw.location
            )
        default = evaluate_expression(raw.default_text, self._config.unknown_sentinel)
        modifiers = raw.modifiers
        entry.properties[raw.name] = PropertyEntry(
            declaration=Declaration(
                name=raw.name,
                qualified_name=qualified_name,
                kind=DeclarationKind.PROPERTY,
                visibility=PhpAstUtils.get_visibility(modifiers),
                is_static="static" in modifiers,
                is_readonly="readonly" in modifiers or block.is_readonly or class_readonly,
                is_deprecated=block.is_deprecated,
                location=raw.location,
            ),
            owner=entry.name,
            declared_in=entry.name,
            type=declared if declared is not None else (native if native is not None else MIXED),
            native_type=native,
            has_default=raw.default_text is not None,
            default=default.value if default.is_known else None,
        )

    def _add_enum_case(self, entry: ClassEntry, raw: RawEnumCase) -> None:
        qualified_name = f"{entry.name}::{raw.name}"
        block = self._factory.docblock(raw.docblock, qualified_name, raw.location)
        value = evaluate_expression(raw.value_text, self._config.unknown_sentinel)
        if raw.name in entry.constants:
            self._duplicate(qualified_name, raw.location.file, raw.location.line)
            return
        entry.constants[raw.name] = ConstantEntry(
            declaration=Declaration(
                name=raw.name,
                qualified_name=qualified_name,
                kind=DeclarationKind.ENUM_CASE,
                is_deprecated=block.is_deprecated,
                location=raw.location,
            ),
            owner=entry.name,
            type=Named(entry.name),
            value=value.value if value.is_known else None,
            is_value_known=value.is_known,
            expression=raw.value_text,
        )
        entry.cases.append(raw.name)

    # --- namespaces -----------------------------------------------------

    def _index_namespaces(self) -> dict[str, Namespace]:
        namespaces: dict[str, Namespace] = {"": Namespace(name="")}

        def namespace_for(fq_name: str) -> tuple[Namespace, str]:
            name, short = split_name(fq_name)
            key = name.lower()
            if key not in namespaces:
                namespaces[key] = Namespace(name=name)
            return namespaces[key], short

        for entry in self._classes.values():
            namespace, short = namespace_for(entry.name)
            namespace.classes[short.lower()] = entry.declaration
        for function in self._functions.values():
            namespace, short = namespace_for(function.declaration.qualified_name)
            namespace.functions[short.lower()] = function.declaration
        for constant in self._constants.values():
            namespace, short = namespace_for(constant.declaration.qualified_name)
            namespace.constants[short] = constant.declaration
        return namespaces


def build_symbol_table(files: Iterable[StubFile], config: StubDbConfig | None = None) -> SymbolTable:
    """Build a symbol table from already scanned files."""
    return SymbolTableBuilder(config).build(files)
