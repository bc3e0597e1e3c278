"""Assembly of typed signatures from raw declarations and their docblocks."""

from __future__ import annotations

from collections.abc import Mapping

from stubdb.core.config import StubDbConfig
from stubdb.core.diagnostics import DiagnosticCollector, DiagnosticKind
from stubdb.core.exceptions import TypeParseError
from stubdb.core.models import (
    Assertion,
    AssertionKind,
    Parameter,
    Signature,
    SourceLocation,
    TemplateParameter,
    TemplateVariance,
)
from stubdb.docblock.parser import parse_docblock
from stubdb.docblock.tags import Docblock, TemplateTag, TypedTag
from stubdb.scanner.records import RawFunction, RawParameter
from stubdb.symbols.values import ValueKind, evaluate_expression
from stubdb.types.algebra import MIXED, NEVER, Type, Unknown, is_nullable, nullable
from stubdb.types.comparator import can_overlap
from stubdb.types.parser import parse_type
from stubdb.types.scope import TypeScope
from stubdb.types.transform import conditional_branches, conditionals, erase_templates


class SignatureFactory:
    """Turns raw declarations into typed models, reporting problems as diagnostics."""

    def __init__(self, config: StubDbConfig, diagnostics: DiagnosticCollector) -> None:
        self._config = config
        self._diagnostics = diagnostics

    # --- shared helpers -------------------------------------------------

    def docblock(self, text: str | None, symbol: str, location: SourceLocation) -> Docblock:
        block = parse_docblock(text)
        for warning in block.warnings:
            self._report(DiagnosticKind.MALFORMED_TAG, warning, symbol, location)
        return block

    def native_type(
        self, text: str | None, scope: TypeScope, symbol: str, location: SourceLocation
    ) -> Type | None:
        """Parse a native hint; unparsable hints become ``Unknown``."""
        if text is None:
            return None
        try:
            return parse_type(text, scope)
        except TypeParseError as exc:
            self._report(DiagnosticKind.UNKNOWN_TYPE, str(exc), symbol, location)
            return Unknown(str(exc))

    def doc_type(
        self, tag: TypedTag | None, scope: TypeScope, symbol: str, location: SourceLocation
    ) -> Type | None:
        """Parse a docblock type; a malformed tag is dropped."""
        if tag is None:
            return None
        return self.parse_doc_text(tag.type_text, scope, symbol, location)

    def parse_doc_text(
        self, text: str, scope: TypeScope, symbol: str, location: SourceLocation
    ) -> Type | None:
        try:
            return parse_type(text, scope)
        except TypeParseError as exc:
            self._report(DiagnosticKind.MALFORMED_TAG, str(exc), symbol, location)
            return None

    def templates(
        self,
        tags: list[TemplateTag],
        scope: TypeScope,
        symbol: str,
        location: SourceLocation,
    ) -> tuple[list[TemplateParameter], TypeScope]:
        """Build template parameters; each bound may refer to earlier templates."""
        parameters: list[TemplateParameter] = []
        for tag in tags:
            bound: Type | None = None
            if tag.bound_text is not None:
                bound = self.parse_doc_text(tag.bound_text, scope, symbol, location)
            parameters.append(
                TemplateParameter(
                    name=tag.name, bound=bound, variance=TemplateVariance(tag.variance)
                )
            )
            scope = scope.with_templates({tag.name: bound})
        return parameters, scope

    def check_conflict(
        self,
        doc: Type,
        native: Type | None,
        what: str,
        symbol: str,
        location: SourceLocation,
    ) -> None:
        if not self._config.report_annotation_conflicts or native is None:
            return
        if isinstance(doc, Unknown) or isinstance(native, Unknown) or doc == NEVER:
            return
        widened = erase_templates(conditional_branches(doc))
        if not can_overlap(widened, native):
            self._report(
                DiagnosticKind.ANNOTATION_CONFLICT,
                f"{what}: docblock type {doc} contradicts native type {native}",
                symbol,
                location,
            )

    def _report(
        self, kind: DiagnosticKind, message: str, symbol: str, location: SourceLocation | None
    ) -> None:
        self._diagnostics.add(
            kind,
            message,
            file=location.file if location else None,
            line=location.line if location else None,
            symbol=symbol,
        )

    # --- signatures -----------------------------------------------------

    def signature(
        self,
        raw: RawFunction,
        symbol: str,
        outer_templates: Mapping[str, Type | None] | None = None,
    ) -> tuple[Signature, Docblock]:
        location = raw.location
        block = self.docblock(raw.docblock, symbol, location)
        scope = TypeScope(raw.context, dict(outer_templates or {}))
        templates, scope = self.templates(block.templates, scope, symbol, location)

        parameters = [self._parameter(p, block, scope, symbol, location) for p in raw.parameters]
        known = {p.name for p in parameters}
        for name in list(block.params) + list(block.param_outs):
            if name not in known:
                self._report(
                    DiagnosticKind.UNKNOWN_PARAMETER,
                    f"docblock names unknown parameter ${name}",
                    symbol,
                    location,
                )

        native_return = self.native_type(raw.return_type_text, scope, symbol, location)
        doc_return = self.doc_type(block.return_tag, scope, symbol, location)
        if doc_return is not None:
            self.check_conflict(doc_return, native_return, "return", symbol, location)
            return_type = doc_return
        else:
            return_type = native_return if native_return is not None else MIXED

        self._check_subjects(return_type, known, scope, symbol, location)
        for param in parameters:
            self._check_subjects(param.type, known, scope, symbol, location)

        throws = [
            t
            for t in (self.doc_type(tag, scope, symbol, location) for tag in block.throws)
            if t is not None
        ]
        assertions = []
        for tag in block.assertions:
            if tag.parameter not in known:
                self._report(
                    DiagnosticKind.UNKNOWN_PARAMETER,
                    f"assertion on unknown parameter ${tag.parameter}",
                    symbol,
                    location,
                )
                continue
            asserted = self.parse_doc_text(tag.type_text, scope, symbol, location)
            if asserted is not None:
                assertions.append(
                    Assertion(
                        kind=AssertionKind(tag.kind),
                        parameter=tag.parameter,
                        type=asserted,
                        negated=tag.negated,
                    )
                )

        signature = Signature(
            parameters=parameters,
            return_type=return_type,
            native_return_type=native_return,
            templates=templates,
            throws=throws,
            assertions=assertions,
            returns_by_reference=raw.returns_by_reference,
            is_pure=block.is_pure,
            is_mutation_free=block.is_mutation_free or block.is_pure,
            is_deprecated=block.is_deprecated,
            no_named_arguments=block.no_named_arguments,
            ignore_nullable_return=block.ignore_nullable_return,
            ignore_falsable_return=block.ignore_falsable_return,
            location=location,
        )
        return signature, block

    def _parameter(
        self,
        raw: RawParameter,
        block: Docblock,
        scope: TypeScope,
        symbol: str,
        location: SourceLocation,
    ) -> Parameter:
        native = self.native_type(raw.type_text, scope, symbol, location)
        default = evaluate_expression(raw.default_text, self._config.unknown_sentinel)
        has_default = raw.default_text is not None
        null_default = has_default and default.kind == ValueKind.LITERAL and default.value is None
        if native is not None and null_default and not is_nullable(native):
            # Implicitly nullable: `int $x = null`
            native = nullable(native)

        doc = self.doc_type(block.params.get(raw.name), scope, symbol, location)
        if doc is not None:
            self.check_conflict(doc, native, f"parameter ${raw.name}", symbol, location)
            param_type = doc
            if null_default and not is_nullable(doc) and not isinstance(doc, Unknown):
                param_type = nullable(doc)
        else:
            param_type = native if native is not None else MIXED

        out_type = self.doc_type(block.param_outs.get(raw.name), scope, symbol, location)
        return Parameter(
            name=raw.name,
            type=param_type,
            native_type=native,
            out_type=out_type,
            has_default=has_default,
            default=default.value if default.is_known else None,
            default_expression=raw.default_text,
            is_variadic=raw.is_variadic,
            is_by_reference=raw.is_by_reference,
            is_promoted=raw.is_promoted,
        )

    def _check_subjects(
        self,
        t: Type,
        parameters: set[str],
        scope: TypeScope,
        symbol: str,
        location: SourceLocation,
    ) -> None:
        for conditional in conditionals(t):
            subject = conditional.subject
            if subject == "$this":
                continue
            if subject.startswith("$"):
                resolved = subject[1:] in parameters
            else:
                resolved = scope.template(subject)[0]
            if not resolved:
                self._report(
                    DiagnosticKind.UNRESOLVED_CONDITIONAL_SUBJECT,
                    f"conditional type tests unknown subject {subject}",
                    symbol,
                    location,
                )
