"""Unit tests for symbol table construction."""

from stubdb.core.config import StubDbConfig
from stubdb.core.diagnostics import DiagnosticKind
from stubdb.core.models import ClassKind, DeclarationKind
from stubdb.scanner.declarations import StubScanner
from stubdb.services.query_service import SignatureDatabase
from stubdb.symbols.builder import build_symbol_table
from stubdb.types import Generic, IntRange, Literal, Named, Nullable, TemplateParam, Unknown
from stubdb.types.algebra import ARRAY, INT, MIXED, STRING


class TestFunctions:
    """Tests for function signatures."""

    def test_docblock_refines_native_types(self, build_sources) -> None:
        result = build_sources(
            {
                "a.php": """<?php
/**
 * Sums the values.
 *
 * @param list<int> $values
 * @return int<0, max>
 */
function total(array $values): int {}
"""
            }
        )
        function = result.database.get_function("TOTAL")
        assert function is not None
        signature = function.overloads.primary
        assert signature.parameters[0].type == Generic("list", (INT,))
        assert signature.parameters[0].native_type == ARRAY
        assert signature.return_type == IntRange(0, None)
        assert signature.native_return_type == INT
        assert result.diagnostics == []

    def test_redeclaration_adds_overload(self, build_sources) -> None:
        result = build_sources(
            {
                "a.php": "<?php\nfunction pad(int $n): string {}\n",
                "b.php": "<?php\nfunction pad(string $s, int $n): string {}\n",
            }
        )
        overloads = result.database.get_function("pad").overloads
        assert overloads.is_overloaded
        assert [len(s.parameters) for s in overloads.signatures] == [1, 2]

    def test_implicitly_nullable_default(self, build_sources) -> None:
        result = build_sources({"a.php": "<?php\nfunction f(int $x = null) {}\n"})
        param = result.database.get_function("f").overloads.primary.parameters[0]
        assert param.type == Nullable(INT)
        assert param.has_default
        assert param.default is None

    def test_null_default_keeps_docblock_type_nullable(self, build_sources) -> None:
        result = build_sources(
            {"a.php": "<?php\n/** @param list<int> $x */\nfunction f(array $x = null) {}\n"}
        )
        param = result.database.get_function("f").overloads.primary.parameters[0]
        assert param.type == Nullable(Generic("list", (INT,)))
        assert param.native_type == Nullable(ARRAY)
        assert not result.diagnostics_of(DiagnosticKind.ANNOTATION_CONFLICT)

    def test_missing_types_are_mixed(self, build_sources) -> None:
        result = build_sources({"a.php": "<?php\nfunction f($x) {}\n"})
        signature = result.database.get_function("f").overloads.primary
        assert signature.parameters[0].type == MIXED
        assert signature.return_type == MIXED

    def test_names_resolved_against_namespace(self, build_sources) -> None:
        result = build_sources(
            {
                "a.php": r"""<?php
namespace Foo\Bar;

use Baz\Qux;

function f(Qux $q): Thing {}
"""
            }
        )
        function = result.database.get_function("\\Foo\\Bar\\f")
        signature = function.overloads.primary
        assert signature.parameters[0].type == Named("Baz\\Qux")
        assert signature.return_type == Named("Foo\\Bar\\Thing")
        namespace = result.database.namespace("Foo\\Bar")
        assert namespace is not None
        assert "f" in namespace.functions


class TestDiagnostics:
    """Tests for diagnostics emitted while building."""

    def test_annotation_conflict(self, build_sources) -> None:
        source = "<?php\n/** @return string */\nfunction f(): int {}\n"
        result = build_sources({"a.php": source})
        conflicts = result.diagnostics_of(DiagnosticKind.ANNOTATION_CONFLICT)
        assert len(conflicts) == 1
        assert conflicts[0].symbol == "f"
        assert result.database.get_function("f").overloads.primary.return_type == STRING

    def test_annotation_conflict_can_be_disabled(self, build_sources) -> None:
        source = "<?php\n/** @return string */\nfunction f(): int {}\n"
        config = StubDbConfig(_env_file=None, report_annotation_conflicts=False)
        result = build_sources({"a.php": source}, config)
        assert result.diagnostics_of(DiagnosticKind.ANNOTATION_CONFLICT) == []

    def test_malformed_tag_falls_back_to_native(self, build_sources) -> None:
        source = "<?php\n/** @return int|| */\nfunction f(): int {}\n"
        result = build_sources({"a.php": source})
        assert len(result.diagnostics_of(DiagnosticKind.MALFORMED_TAG)) == 1
        assert result.database.get_function("f").overloads.primary.return_type == INT

    def test_unknown_parameter(self, build_sources) -> None:
        source = "<?php\n/** @param int $nope */\nfunction f(int $x) {}\n"
        result = build_sources({"a.php": source})
        found = result.diagnostics_of(DiagnosticKind.UNKNOWN_PARAMETER)
        assert len(found) == 1
        assert "$nope" in found[0].message

    def test_unresolved_conditional_subject(self, build_sources) -> None:
        source = "<?php\n/** @return ($y is int ? int : string) */\nfunction f($x) {}\n"
        result = build_sources({"a.php": source})
        assert len(result.diagnostics_of(DiagnosticKind.UNRESOLVED_CONDITIONAL_SUBJECT)) == 1

    def test_duplicate_class_keeps_first(self, build_sources) -> None:
        result = build_sources(
            {
                "a.php": "<?php\nclass A { public function first() {} }\n",
                "b.php": "<?php\nclass A { public function second() {} }\n",
            }
        )
        assert len(result.diagnostics_of(DiagnosticKind.DUPLICATE_DECLARATION)) == 1
        entry = result.database.get_class("A")
        assert entry.method("first") is not None
        assert entry.method("second") is None
        assert entry.declaration.location.file == "a.php"

    def test_syntax_error_keeps_intact_declarations(self, build_sources) -> None:
        result = build_sources(
            {
                "good.php": "<?php\nfunction ok() {}\n",
                "bad.php": "<?php\nfunction fine() {}\nfunction broken( {\n",
            }
        )
        errors = result.diagnostics_of(DiagnosticKind.SYNTAX_ERROR)
        assert errors
        assert all(e.file == "bad.php" for e in errors)
        assert result.files_skipped == 0
        assert not result.success
        assert result.database.get_function("ok") is not None
        assert result.database.get_function("fine") is not None
        assert result.database.get_function("broken") is None

    def test_syntax_error_skips_file_when_configured(self, build_sources) -> None:
        result = build_sources(
            {
                "good.php": "<?php\nfunction ok() {}\n",
                "bad.php": "<?php\nfunction fine() {}\nfunction broken( {\n",
            },
            StubDbConfig(_env_file=None, skip_invalid_files=True),
        )
        errors = result.diagnostics_of(DiagnosticKind.SYNTAX_ERROR)
        assert errors
        assert all(e.file == "bad.php" for e in errors)
        assert result.files_skipped == 1
        assert not result.success
        assert result.database.get_function("ok") is not None
        assert result.database.get_function("fine") is None


class TestConstants:
    """Tests for constant values and types."""

    def test_reference_is_folded(self, build_sources) -> None:
        result = build_sources(
            {"a.php": "<?php\nconst B = A;\nconst A = 1;\nconst C = UNKNOWN;\n"}
        )
        database = result.database
        folded = database.get_constant("B")
        assert folded.value == 1
        assert folded.is_value_known
        assert folded.type == Literal(1)

        unknown = database.get_constant("C")
        assert unknown.value is None
        assert not unknown.is_value_known
        assert isinstance(unknown.type, Unknown)

    def test_namespaced_reference_falls_back_to_global(self, build_sources) -> None:
        result = build_sources(
            {
                "a.php": "<?php\nconst E_ALL = 32767;\n",
                "b.php": "<?php\nnamespace N;\nconst X = E_ALL;\n",
            }
        )
        assert result.database.get_constant("N\\X").value == 32767

    def test_constant_names_are_case_sensitive(self, build_sources) -> None:
        result = build_sources({"a.php": "<?php\nconst Mode = 1;\n"})
        assert result.database.get_constant("Mode") is not None
        assert result.database.get_constant("MODE") is None

    def test_declared_type_wins(self, build_sources) -> None:
        source = """<?php
class K
{
    /** @var positive-int */
    const SIZE = 4;
}
"""
        result = build_sources({"a.php": source})
        constant = result.database.get_constant("K::SIZE")
        assert constant.value == 4
        assert str(constant.type) == "positive-int"
        assert constant.declaration.kind == DeclarationKind.CLASS_CONSTANT


class TestClassLikes:
    """Tests for classes, interfaces, traits and enums."""

    def test_interface_methods_are_abstract(self, build_sources) -> None:
        result = build_sources({"a.php": "<?php\ninterface I { public function m(); }\n"})
        entry = result.database.get_class("I")
        assert entry.kind == ClassKind.INTERFACE
        assert entry.method("M").declaration.is_abstract

    def test_promoted_constructor_parameter(self, build_sources) -> None:
        source = "<?php\nclass P { public function __construct(private int $x) {} }\n"
        result = build_sources({"a.php": source})
        prop = result.database.get_class("P").properties["x"]
        assert prop.type == INT

    def test_property_types(self, build_sources) -> None:
        source = """<?php
class C
{
    /** @var list<string> */
    public array $names = [];

    public $raw;

    public static int $count = 0;
}
"""
        result = build_sources({"a.php": source})
        properties = result.database.get_class("C").properties
        assert properties["names"].type == Generic("list", (STRING,))
        assert properties["names"].has_default
        assert properties["raw"].type == MIXED
        assert properties["count"].declaration.is_static
        assert properties["count"].default == 0

    def test_class_templates(self, build_sources) -> None:
        source = """<?php
/** @template T of object */
class Box
{
    /** @return T */
    public function get() {}
}
"""
        result = build_sources({"a.php": source})
        entry = result.database.get_class("Box")
        assert [t.name for t in entry.templates] == ["T"]
        returned = entry.method("get").overloads.primary.return_type
        assert returned == TemplateParam("T")

    def test_enum_cases(self, build_sources) -> None:
        source = "<?php\nenum Level: int { case Low = 1; case High = 2; }\n"
        result = build_sources({"a.php": source})
        entry = result.database.get_class("Level")
        assert entry.kind == ClassKind.ENUM
        assert entry.backing_type == INT
        assert entry.cases == ["Low", "High"]
        case = entry.constants["High"]
        assert case.value == 2
        assert case.type == Named("Level")
        assert case.declaration.kind == DeclarationKind.ENUM_CASE


def test_build_symbol_table_from_scanned_files(stub_config: StubDbConfig) -> None:
    """Scanned files can be linked without going through the build service."""
    scanner = StubScanner()
    files = [
        scanner.scan_source("<?php\ninterface I { public function m(): int; }\n", "i.php"),
        scanner.scan_source("<?php\nclass C implements I {}\n", "c.php"),
    ]
    table = build_symbol_table(files, stub_config)
    assert set(table.classes) == {"i", "c"}
    assert table.classes["c"].interfaces == ["I"]
    assert table.diagnostics == []

    overloads = SignatureDatabase(table).resolve_member("C", "m")
    assert overloads.primary.return_type == INT
    assert overloads.primary.parameters == []
