"""Unit tests for docblock parsing."""

import pytest

from stubdb.docblock import TagSource, parse_docblock, split_tag_content
from stubdb.types import Conditional, parse_type
from stubdb.types.algebra import BOOL, INT, STRING


def _doc(*lines: str) -> str:
    body = "\n".join(f" * {line}" if line else " *" for line in lines)
    return f"/**\n{body}\n */"


class TestProse:
    """Tests for summary and description text."""

    def test_summary_and_description(self) -> None:
        block = parse_docblock(
            _doc("Returns the length.", "", "Longer text", "over two lines.", "@return int")
        )
        assert block.summary == "Returns the length."
        assert block.description == "Longer text over two lines."

    def test_empty_input(self) -> None:
        block = parse_docblock(None)
        assert block.summary == ""
        assert block.params == {}

    def test_single_line_comment(self) -> None:
        block = parse_docblock("/** @var int */")
        assert block.var_type() == "int"

    def test_inline_inheritdoc(self) -> None:
        assert parse_docblock(_doc("{@inheritDoc}")).inherits_doc is True


class TestParamTags:
    """Tests for @param and @param-out."""

    def test_param_with_description(self) -> None:
        block = parse_docblock(_doc("@param string $s The string"))
        tag = block.params["s"]
        assert tag.type_text == "string"
        assert tag.description == "The string"
        assert tag.source == TagSource.PLAIN

    def test_variadic_and_reference(self) -> None:
        block = parse_docblock(_doc("@param int ...$values", "@param array &$out"))
        assert block.params["values"].is_variadic is True
        assert block.params["out"].is_by_reference is True

    def test_tool_prefix_precedence(self) -> None:
        """Test psalm beats phpstan beats plain, whatever the order."""
        block = parse_docblock(
            _doc(
                "@psalm-param list<int> $a",
                "@param array $a",
                "@phpstan-param array<int> $a",
            )
        )
        assert block.params["a"].type_text == "list<int>"
        assert block.params["a"].source == TagSource.PSALM

    def test_phpstan_beats_plain(self) -> None:
        block = parse_docblock(_doc("@param array $a", "@phpstan-param array<int> $a"))
        assert block.params["a"].type_text == "array<int>"

    def test_param_out(self) -> None:
        block = parse_docblock(_doc("@param-out string $out"))
        assert block.param_outs["out"].type_text == "string"
        assert "out" not in block.params

    def test_name_without_type_ignored(self) -> None:
        block = parse_docblock(_doc("@param $x"))
        assert block.params == {}
        assert block.warnings == []

    def test_missing_name_warns(self) -> None:
        block = parse_docblock(_doc("@param int"))
        assert block.params == {}
        assert block.warnings == ["@param: missing parameter name after 'int'"]
        assert [(t.name, t.body) for t in block.other_tags] == [("param", "int")]

    def test_type_with_spaces(self) -> None:
        block = parse_docblock(_doc("@param array<int, string> $map"))
        assert block.params["map"].type_text == "array<int, string>"


class TestReturnTags:
    """Tests for @return."""

    def test_multiline_conditional(self) -> None:
        block = parse_docblock(
            _doc("@return (", "    $x is int", "    ? string", "    : bool", ")")
        )
        assert block.return_tag is not None
        text = block.return_tag.type_text
        assert text == "( $x is int ? string : bool )"
        assert parse_type(text) == Conditional("$x", INT, STRING, BOOL)

    def test_unbalanced_brackets_warn(self) -> None:
        block = parse_docblock(_doc("@return array<int"))
        assert block.return_tag is None
        assert block.warnings == ["@return: unbalanced brackets in 'array<int'"]

    def test_malformed_tag_kept_verbatim(self) -> None:
        block = parse_docblock(_doc("@psalm-return array<int", "@return int"))
        assert block.return_tag.type_text == "int"
        assert len(block.warnings) == 1
        kept = block.other_tags[0]
        assert kept.name == "psalm-return"
        assert kept.body == "array<int"

    def test_blank_line_ends_tag(self) -> None:
        block = parse_docblock(_doc("@return int", "", "trailing prose"))
        assert block.return_tag is not None
        assert block.return_tag.description == ""

    def test_continuation_joins_description(self) -> None:
        block = parse_docblock(_doc("@return int the count", "of items"))
        assert block.return_tag.description == "the count\nof items"


class TestOtherTags:
    """Tests for templates, flags and assertions."""

    def test_template_with_bound(self) -> None:
        block = parse_docblock(_doc("@template T of \\Countable", "@template-covariant TValue"))
        first, second = block.templates
        assert first.name == "T"
        assert first.bound_text == "\\Countable"
        assert second.variance == "covariant"

    def test_template_sigil_variance(self) -> None:
        block = parse_docblock(_doc("@template -TIn"))
        assert block.templates[0].name == "TIn"
        assert block.templates[0].variance == "contravariant"

    def test_flags(self) -> None:
        block = parse_docblock(
            _doc("@psalm-pure", "@no-named-arguments", "@deprecated since 8.1")
        )
        assert block.is_pure is True
        assert block.no_named_arguments is True
        assert block.is_deprecated is True
        assert block.deprecation_message == "since 8.1"

    def test_impure_clears_pure(self) -> None:
        block = parse_docblock(_doc("@pure", "@phpstan-impure"))
        assert block.is_pure is False

    def test_assertion(self) -> None:
        block = parse_docblock(_doc("@psalm-assert-if-true !null $value"))
        assertion = block.assertions[0]
        assert assertion.kind == "assert-if-true"
        assert assertion.negated is True
        assert assertion.type_text == "null"
        assert assertion.parameter == "value"

    def test_throws_accumulate(self) -> None:
        block = parse_docblock(_doc("@throws ValueError", "@throws \\TypeError when bad"))
        assert [t.type_text for t in block.throws] == ["ValueError", "\\TypeError"]

    def test_named_var(self) -> None:
        block = parse_docblock(_doc("@var int $x", "@var string"))
        assert block.var_type("x") == "int"
        assert block.var_type("y") == "string"

    def test_ancestor_tags(self) -> None:
        block = parse_docblock(_doc("@implements Collection<int>", "@template-extends Base<T>"))
        assert block.implements[0].type_text == "Collection<int>"
        assert block.extends[0].type_text == "Base<T>"

    def test_unknown_tag_kept(self) -> None:
        block = parse_docblock(_doc("@link https://example.com"))
        assert block.other_tags[0].name == "link"
        assert block.other_tags[0].body == "https://example.com"


class TestSplitTagContent:
    """Tests for splitting a tag body into type and remainder."""

    @pytest.mark.parametrize(
        ("body", "expected"),
        [
            ("array<int, string> $x desc", ("array<int, string>", "$x desc")),
            ("int | string $x", ("int | string", "$x")),
            ("callable(int): string $cb", ("callable(int): string", "$cb")),
            ("array{a: int} $shape", ("array{a: int}", "$shape")),
            ("'a b' $x", ("'a b'", "$x")),
            ("int", ("int", "")),
        ],
    )
    def test_split(self, body: str, expected: tuple[str, str]) -> None:
        assert split_tag_content(body) == expected

    def test_unbalanced(self) -> None:
        assert split_tag_content("array<int $x") is None
        assert split_tag_content("array>") is None
