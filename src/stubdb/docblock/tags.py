"""Docblock tag records and tag body splitting."""

from __future__ import annotations

import re
from enum import IntEnum

from pydantic import BaseModel, Field

_CLOSERS = {"(": ")", "<": ">", "{": "}", "[": "]"}
_CONTINUATION = "|&:"

PARAMETER_NAME = re.compile(r"^(?P<ref>&)?(?P<variadic>\.\.\.)?\$(?P<name>[A-Za-z_]\w*)")
TEMPLATE_NAME = re.compile(r"^[A-Za-z_]\w*$")


class TagSource(IntEnum):
    """Tool prefix of a tag. Higher values take precedence."""

    PLAIN = 0
    PHPSTAN = 1
    PSALM = 2


class TypedTag(BaseModel):
    """A tag carrying a type expression, optionally bound to a variable name."""

    type_text: str
    name: str | None = None
    description: str = ""
    source: TagSource = TagSource.PLAIN
    is_variadic: bool = False
    is_by_reference: bool = False


class TemplateTag(BaseModel):
    name: str
    bound_text: str | None = None
    variance: str = "invariant"
    source: TagSource = TagSource.PLAIN


class AssertionTag(BaseModel):
    kind: str
    parameter: str
    type_text: str
    negated: bool = False


class RawTag(BaseModel):
    """A tag the parser keeps without interpreting."""

    name: str
    body: str = ""


class Docblock(BaseModel):
    """Structured contents of one ``/** ... */`` comment.

    Type expressions are kept as text; they are parsed once the declaration
    they belong to, and therefore its name resolution scope, is known.
    """

    summary: str = ""
    description: str = ""
    params: dict[str, TypedTag] = Field(default_factory=dict)
    param_outs: dict[str, TypedTag] = Field(default_factory=dict)
    return_tag: TypedTag | None = None
    var_tags: list[TypedTag] = Field(default_factory=list)
    throws: list[TypedTag] = Field(default_factory=list)
    templates: list[TemplateTag] = Field(default_factory=list)
    extends: list[TypedTag] = Field(default_factory=list)
    implements: list[TypedTag] = Field(default_factory=list)
    uses: list[TypedTag] = Field(default_factory=list)
    assertions: list[AssertionTag] = Field(default_factory=list)
    is_pure: bool = False
    is_mutation_free: bool = False
    is_deprecated: bool = False
    deprecation_message: str | None = None
    is_readonly: bool = False
    is_internal: bool = False
    is_final: bool = False
    no_named_arguments: bool = False
    ignore_nullable_return: bool = False
    ignore_falsable_return: bool = False
    inherits_doc: bool = False
    since: str | None = None
    other_tags: list[RawTag] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)

    def var_type(self, name: str | None = None) -> str | None:
        """Type text of the ``@var`` tag for ``name``, or of the unnamed one."""
        fallback = None
        for tag in self.var_tags:
            if name is not None and tag.name == name:
                return tag.type_text
            if tag.name is None and fallback is None:
                fallback = tag.type_text
        return fallback


def split_tag_content(text: str) -> tuple[str, str] | None:
    """Split a tag body into its leading type expression and the rest.

    The type ends at the first whitespace outside brackets and quotes,
    except around ``|``, ``&`` and a callable's return ``:``. Returns None
    when brackets or quotes are unbalanced.
    """
    text = text.lstrip()
    stack: list[str] = []
    quote: str | None = None
    last = ""
    index = 0
    length = len(text)
    while index < length:
        char = text[index]
        if quote is not None:
            if char == "\\":
                index += 2
                continue
            if char == quote:
                quote = None
            last = char
            index += 1
            continue
        if char in ("'", '"'):
            quote = char
        elif char in _CLOSERS:
            stack.append(_CLOSERS[char])
        elif char in ")>}]":
            if not stack or stack.pop() != char:
                return None
        elif char.isspace() and not stack:
            end = index
            while end < length and text[end].isspace():
                end += 1
            upcoming = text[end] if end < length else ""
            if upcoming == "&" and text[end + 1:end + 2] in ("$", "."):
                # '&$name' is a by-reference parameter, not an intersection
                upcoming = ""
            if (last and last in _CONTINUATION) or (upcoming and upcoming in "|&"):
                index = end
                continue
            return text[:index], text[end:]
        if not char.isspace():
            last = char
        index += 1
    if stack or quote is not None:
        return None
    return text, ""


def normalize_type_text(text: str) -> str:
    """Collapse the line breaks and indentation of a multi-line type."""
    return " ".join(text.split())
