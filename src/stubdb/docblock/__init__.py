"""Docblock comment parsing."""

from stubdb.docblock.parser import DocblockParser, parse_docblock
from stubdb.docblock.tags import (
    AssertionTag,
    Docblock,
    RawTag,
    TagSource,
    TemplateTag,
    TypedTag,
    split_tag_content,
)

__all__ = [
    "AssertionTag",
    "Docblock",
    "DocblockParser",
    "RawTag",
    "TagSource",
    "TemplateTag",
    "TypedTag",
    "parse_docblock",
    "split_tag_content",
]
