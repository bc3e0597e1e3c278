"""Unit tests for symbol table models, value evaluation and snapshots."""

import json

import pytest

from stubdb.core.context import FileContext
from stubdb.core.diagnostics import DiagnosticCollector, DiagnosticKind, Severity
from stubdb.core.exceptions import SerializationError
from stubdb.core.models import (
    Declaration,
    DeclarationKind,
    FunctionEntry,
    OverloadSet,
    Parameter,
    Signature,
    SymbolTable,
    constant_key,
    symbol_key,
)
from stubdb.core.serializer import deserialize, deserialize_from_dict, serialize, serialize_to_dict
from stubdb.symbols.values import ValueKind, evaluate_expression
from stubdb.types import Generic, Nullable, Unknown
from stubdb.types.algebra import INT, STRING


def _function(name: str, *signatures: Signature) -> FunctionEntry:
    return FunctionEntry(
        declaration=Declaration(name=name, qualified_name=name, kind=DeclarationKind.FUNCTION),
        overloads=OverloadSet(signatures=list(signatures)),
    )


class TestKeys:
    """Tests for lookup keys."""

    def test_symbol_key_lowercases(self) -> None:
        assert symbol_key("\\Foo\\Bar") == "foo\\bar"

    def test_constant_key_keeps_short_name_case(self) -> None:
        assert constant_key("Foo\\BAR") == "foo\\BAR"
        assert constant_key("\\E_ALL") == "E_ALL"


class TestFileContext:
    """Tests for PHP name resolution against a file context."""

    @pytest.fixture
    def context(self) -> FileContext:
        context = FileContext(namespace="App\\Model")
        context.add_use("Ds\\Vector", "Vec")
        context.add_use("\\Lib\\helper", kind="function")
        context.add_use("Lib\\LIMIT", kind="const")
        return context

    def test_resolve_class(self, context: FileContext) -> None:
        assert context.resolve_class("vec") == "Ds\\Vector"
        assert context.resolve_class("Vec\\Item") == "Ds\\Vector\\Item"
        assert context.resolve_class("\\Countable") == "Countable"
        assert context.resolve_class("namespace\\Shape") == "App\\Model\\Shape"
        assert context.resolve_class("Shape") == "App\\Model\\Shape"

    def test_resolve_function(self, context: FileContext) -> None:
        assert context.resolve_function("HELPER") == ["Lib\\helper"]
        assert context.resolve_function("strlen") == ["App\\Model\\strlen", "strlen"]
        assert context.resolve_function("\\strlen") == ["strlen"]

    def test_resolve_constant(self, context: FileContext) -> None:
        assert context.resolve_constant("LIMIT") == ["Lib\\LIMIT"]
        assert context.resolve_constant("limit") == ["App\\Model\\limit", "limit"]

    def test_global_context(self) -> None:
        assert FileContext().resolve_function("strlen") == ["strlen"]
        assert FileContext().qualify("strlen") == "strlen"


class TestSignature:
    """Tests for Signature helpers."""

    @pytest.fixture
    def signature(self) -> Signature:
        return Signature(
            parameters=[
                Parameter(name="a", type="int"),
                Parameter(name="b", type="string", has_default=True),
                Parameter(name="rest", is_variadic=True),
            ],
            return_type="?int",
        )

    def test_type_text_is_parsed(self, signature: Signature) -> None:
        assert signature.parameters[0].type == INT
        assert signature.return_type == Nullable(INT)

    def test_arity(self, signature: Signature) -> None:
        assert signature.required_count == 1
        assert signature.is_variadic
        assert not signature.accepts_arity(0)
        assert signature.accepts_arity(5)

    def test_parameter_lookup(self, signature: Signature) -> None:
        assert signature.parameter("$b").has_default
        assert signature.parameter("missing") is None

    def test_out_parameter(self) -> None:
        param = Parameter(name="m", is_by_reference=True, out_type="array<int, string>")
        assert param.is_out
        assert param.out_type == Generic("array", (INT, STRING))

    def test_malformed_type_text_is_unknown(self) -> None:
        assert isinstance(Parameter(name="x", type="array<").type, Unknown)

    def test_overload_set(self, signature: Signature) -> None:
        overloads = OverloadSet(signatures=[signature, Signature()])
        assert overloads.is_overloaded
        assert overloads.primary is signature
        assert len(overloads) == 2


class TestEvaluateExpression:
    """Tests for constant expression evaluation."""

    @pytest.mark.parametrize(
        ("text", "value"),
        [
            ("42", 42),
            ("-1", -1),
            ("0x1F", 31),
            ("010", 8),
            ("1_000", 1000),
            ("1.5", 1.5),
            ("1e3", 1000.0),
            ("'a\\'b'", "a'b"),
            ('"x\\n"', "x\n"),
            ("true", True),
            ("NULL", None),
            ("(5)", 5),
        ],
    )
    def test_literals(self, text: str, value: object) -> None:
        result = evaluate_expression(text)
        assert result.kind == ValueKind.LITERAL
        assert result.is_known
        assert result.value == value

    def test_unknown_sentinel(self) -> None:
        assert evaluate_expression("UNKNOWN").kind == ValueKind.UNKNOWN
        assert evaluate_expression("RUNTIME", sentinel="RUNTIME").kind == ValueKind.UNKNOWN

    def test_constant_reference(self) -> None:
        result = evaluate_expression("E_ALL")
        assert result.kind == ValueKind.REFERENCE
        assert result.reference == "E_ALL"

    def test_class_constant_reference(self) -> None:
        result = evaluate_expression("self::FOO")
        assert result.kind == ValueKind.CLASS_REFERENCE
        assert result.reference == "self"
        assert result.member == "FOO"

    @pytest.mark.parametrize("text", ["Foo::class", "1 << 3", "PHP_INT_MAX + 1", None, ""])
    def test_opaque_expressions(self, text: str | None) -> None:
        result = evaluate_expression(text)
        assert result.kind == ValueKind.EXPRESSION
        assert not result.is_known


class TestDiagnostics:
    """Tests for the diagnostic collector."""

    def test_severity_by_kind(self) -> None:
        collector = DiagnosticCollector()
        error = collector.add(DiagnosticKind.SYNTAX_ERROR, "bad", file="a.php", line=3)
        warning = collector.add(DiagnosticKind.MALFORMED_TAG, "odd")
        assert error.severity == Severity.ERROR
        assert warning.severity == Severity.WARNING
        assert error.format() == "a.php:3: syntax_error: bad"
        assert collector.counts() == {"syntax_error": 1, "malformed_tag": 1}
        assert collector.of_kind(DiagnosticKind.MALFORMED_TAG) == [warning]
        assert len(collector) == 2


class TestSerializer:
    """Tests for symbol table snapshots."""

    @pytest.fixture
    def table(self) -> SymbolTable:
        signature = Signature(
            parameters=[Parameter(name="s", type="string")], return_type="int<0, max>"
        )
        collector = DiagnosticCollector()
        collector.add(DiagnosticKind.UNKNOWN_TYPE, "odd", file="x.php")
        return SymbolTable(
            functions={"strlen": _function("strlen", signature)},
            diagnostics=collector.diagnostics,
        )

    def test_roundtrip(self, table: SymbolTable) -> None:
        restored = deserialize(serialize(table))
        original = table.functions["strlen"].overloads.primary
        copy = restored.functions["strlen"].overloads.primary
        assert copy.return_type == original.return_type
        assert copy.parameters[0].type == STRING
        assert restored.diagnostics[0].kind == DiagnosticKind.UNKNOWN_TYPE

    def test_envelope(self, table: SymbolTable) -> None:
        data = serialize_to_dict(table)
        assert data["format"] == "stubdb-symbol-table"
        assert data["version"] == 1
        returned = data["table"]["functions"]["strlen"]["overloads"]["signatures"][0]
        assert returned["return_type"]["text"] == "int<0, max>"

    def test_invalid_json(self) -> None:
        with pytest.raises(SerializationError, match="Invalid JSON"):
            deserialize("{not json")

    def test_wrong_format(self) -> None:
        with pytest.raises(SerializationError, match="Not a stubdb snapshot"):
            deserialize(json.dumps({"format": "other"}))

    def test_wrong_version(self, table: SymbolTable) -> None:
        data = serialize_to_dict(table)
        data["version"] = 99
        with pytest.raises(SerializationError, match="Unsupported snapshot version"):
            deserialize_from_dict(data)

    def test_invalid_table(self) -> None:
        data = {"format": "stubdb-symbol-table", "version": 1, "table": {"classes": []}}
        with pytest.raises(SerializationError, match="validation failed"):
            deserialize_from_dict(data)
