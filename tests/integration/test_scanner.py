"""Integration tests for the tree-sitter declaration scanner."""

from pathlib import Path

import pytest

from stubdb.core.exceptions import StubScanError
from stubdb.core.models import ClassKind
from stubdb.scanner.declarations import StubScanner


class TestGlobalDeclarations:
    """Tests for functions and constants at file level."""

    def test_functions_in_order(self, scanner: StubScanner, stubs_path: Path) -> None:
        stub = scanner.scan_file(stubs_path / "core.php")
        names = [f.name for f in stub.functions]
        assert names == [
            "strlen",
            "json_normalize",
            "preg_match",
            "mb_pad",
            "mb_pad",
            "array_first",
            "legacy_call",
        ]
        assert not stub.has_errors

    def test_constants_include_define(self, scanner: StubScanner, stubs_path: Path) -> None:
        stub = scanner.scan_file(stubs_path / "core.php")
        constants = {c.name: c for c in stub.constants}
        assert list(constants) == ["E_ALL", "PHP_OS_FAMILY", "E_STRICT_ALIAS", "PHP_EOL"]
        assert constants["E_ALL"].value_text == "32767"
        assert constants["PHP_OS_FAMILY"].value_text == "UNKNOWN"
        assert constants["PHP_EOL"].value_text == '"\\n"'
        assert "@var int" in constants["E_ALL"].docblock

    def test_parameters(self, scanner: StubScanner, stubs_path: Path) -> None:
        stub = scanner.scan_file(stubs_path / "core.php")
        functions = {f.name: f for f in stub.functions}
        matches = functions["preg_match"].parameters[2]
        assert matches.name == "matches"
        assert matches.is_by_reference
        assert matches.type_text is None
        assert matches.default_text == "null"
        values = functions["legacy_call"].parameters[0]
        assert values.is_variadic
        assert values.type_text == "int"
        assert functions["strlen"].return_type_text == "int"
        assert "@pure" in functions["strlen"].docblock


class TestClassLikes:
    """Tests for class-like declarations."""

    def test_braced_namespace(self, scanner: StubScanner, stubs_path: Path) -> None:
        stub = scanner.scan_file(stubs_path / "ds.php")
        classes = {c.name: c for c in stub.classes}
        assert set(classes) == {"Collection", "Vector", "IntSet"}
        collection = classes["Collection"]
        assert collection.kind == ClassKind.INTERFACE
        assert collection.context.namespace == "Ds"
        assert collection.extends == ["Countable"]
        assert collection.context.resolve_class("Countable") == "Countable"

        vector = classes["Vector"]
        assert "final" in vector.modifiers
        assert vector.implements == ["Collection"]
        assert [m.name for m in vector.methods] == [
            "push",
            "get",
            "count",
            "isEmpty",
            "toArray",
        ]
        assert vector.constants[0].name == "MIN_CAPACITY"

    def test_imports_and_traits(self, scanner: StubScanner, stubs_path: Path) -> None:
        stub = scanner.scan_file(stubs_path / "app.php")
        classes = {c.name: c for c in stub.classes}
        stack = classes["Stack"]
        assert stack.extends == ["Vec"]
        assert stack.context.resolve_class("Vec") == "Ds\\Vector"

        polygon = classes["Polygon"]
        assert polygon.trait_uses[0].names == ["Describes"]
        assert polygon.properties[0].name == "sides"
        assert polygon.properties[0].default_text == "[]"

    def test_use_applies_to_later_declarations_only(self, scanner: StubScanner) -> None:
        stub = scanner.scan_source(
            "<?php\nnamespace N;\n"
            "class A extends Base {}\n"
            "use Other\\Base;\n"
            "class B extends Base {}\n"
        )
        classes = {c.name: c for c in stub.classes}
        assert classes["A"].context.resolve_class("Base") == "N\\Base"
        assert classes["B"].context.resolve_class("Base") == "Other\\Base"

    def test_enums(self, scanner: StubScanner, stubs_path: Path) -> None:
        stub = scanner.scan_file(stubs_path / "app.php")
        classes = {c.name: c for c in stub.classes}
        suit = classes["Suit"]
        assert suit.kind == ClassKind.ENUM
        assert suit.backing_type_text == "string"
        assert [(c.name, c.value_text) for c in suit.cases] == [
            ("Hearts", "'H'"),
            ("Spades", "'S'"),
        ]
        assert suit.constants[0].value_text == "self::Spades"
        assert classes["Direction"].backing_type_text is None


class TestErrors:
    """Tests for unreadable and malformed input."""

    def test_syntax_error_location(self, scanner: StubScanner) -> None:
        stub = scanner.scan_source("<?php\nfunction ok() {}\nfunction broken( {\n", "bad.php")
        assert stub.has_errors
        assert stub.syntax_errors[0].line >= 2

    def test_malformed_declarations_are_dropped(
        self, scanner: StubScanner, broken_path: Path
    ) -> None:
        stub = scanner.scan_file(broken_path / "partial.php")
        assert [f.name for f in stub.functions] == ["before", "after"]
        assert [c.name for c in stub.constants] == ["AFTER_ALL"]
        holder = stub.classes[0]
        assert holder.name == "Holder"
        assert [m.name for m in holder.methods] == ["first", "last"]
        assert sorted({p.line for p in stub.syntax_errors}) == [7, 15]

    def test_missing_file(self, scanner: StubScanner, tmp_path: Path) -> None:
        with pytest.raises(StubScanError, match="Cannot read"):
            scanner.scan_file(tmp_path / "missing.php")
