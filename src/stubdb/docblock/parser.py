"""Docblock comment parser.

Turns the raw text of a ``/** ... */`` comment into a :class:`Docblock`.
Tool-prefixed tags (``@psalm-``, ``@phpstan-``) are folded into their plain
counterparts; for types, psalm beats phpstan beats plain. Malformed tags
never raise: they are skipped and described in ``Docblock.warnings``.
"""

from __future__ import annotations

import logging
import re

from stubdb.docblock.tags import (
    PARAMETER_NAME,
    TEMPLATE_NAME,
    AssertionTag,
    Docblock,
    RawTag,
    TagSource,
    TemplateTag,
    TypedTag,
    normalize_type_text,
    split_tag_content,
)

logger = logging.getLogger(__name__)

_TAG_LINE = re.compile(r"^@(?P<name>[A-Za-z][\w\-\\]*)(?P<body>.*)$", re.DOTALL)
_INHERIT_DOC = re.compile(r"\{?@inheritdoc\}?", re.IGNORECASE)

_PREFIXES = (("psalm-", TagSource.PSALM), ("phpstan-", TagSource.PHPSTAN))

_FLAG_TAGS = {
    "pure": "is_pure",
    "mutation-free": "is_mutation_free",
    "external-mutation-free": "is_mutation_free",
    "readonly": "is_readonly",
    "immutable": "is_readonly",
    "internal": "is_internal",
    "final": "is_final",
    "no-named-arguments": "no_named_arguments",
    "ignore-nullable-return": "ignore_nullable_return",
    "ignore-falsable-return": "ignore_falsable_return",
}

_TEMPLATE_TAGS = {
    "template": "invariant",
    "template-covariant": "covariant",
    "template-contravariant": "contravariant",
}

_ANCESTOR_TAGS = {
    "extends": "extends",
    "template-extends": "extends",
    "implements": "implements",
    "template-implements": "implements",
    "use": "uses",
    "template-use": "uses",
}

_ASSERTION_TAGS = ("assert", "assert-if-true", "assert-if-false")


def _strip_comment(text: str) -> list[str]:
    text = text.strip()
    if text.startswith("/**"):
        text = text[3:]
    elif text.startswith("/*"):
        text = text[2:]
    if text.endswith("*/"):
        text = text[:-2]
    lines = []
    for line in text.splitlines():
        line = line.strip()
        if line.startswith("*"):
            line = line[1:]
            if line.startswith(" "):
                line = line[1:]
        lines.append(line.rstrip())
    return lines


def _split_tags(lines: list[str]) -> tuple[list[str], list[tuple[str, str]]]:
    """Separate free text from tags; a tag runs until the next tag or blank line."""
    prose: list[str] = []
    tags: list[tuple[str, list[str]]] = []
    current: list[str] | None = None
    for line in lines:
        stripped = line.strip()
        match = _TAG_LINE.match(stripped)
        if match:
            current = [match.group("body")]
            tags.append((match.group("name"), current))
        elif not stripped:
            current = None
            if not tags:
                prose.append("")
        elif current is not None:
            current.append(stripped)
        elif not tags:
            prose.append(stripped)
    return prose, [(name, "\n".join(body).strip()) for name, body in tags]


def _normalize_name(name: str) -> tuple[str, TagSource]:
    lowered = name.lower()
    for prefix, source in _PREFIXES:
        if lowered.startswith(prefix):
            return lowered[len(prefix):], source
    return lowered, TagSource.PLAIN


class DocblockParser:
    """Parses docblock comments into :class:`Docblock` records."""

    def parse(self, text: str | None) -> Docblock:
        if not text:
            return Docblock()
        prose, tags = _split_tags(_strip_comment(text))
        block = Docblock()
        self._set_prose(block, prose)
        for raw_name, body in tags:
            name, source = _normalize_name(raw_name)
            warned = len(block.warnings)
            self._apply_tag(block, raw_name, name, source, body)
            if len(block.warnings) > warned:
                # Malformed tags are kept verbatim
                block.other_tags.append(RawTag(name=raw_name, body=body))
        return block

    def _set_prose(self, block: Docblock, prose: list[str]) -> None:
        paragraphs: list[list[str]] = [[]]
        for line in prose:
            if line:
                paragraphs[-1].append(line)
            elif paragraphs[-1]:
                paragraphs.append([])
        texts = [" ".join(p) for p in paragraphs if p]
        if texts:
            block.summary = texts[0]
            block.description = "\n\n".join(texts[1:])
        if any(_INHERIT_DOC.search(t) for t in texts):
            block.inherits_doc = True

    def _apply_tag(
        self, block: Docblock, raw_name: str, name: str, source: TagSource, body: str
    ) -> None:
        if name in ("param", "param-out"):
            tag = self._parse_parameter_tag(block, raw_name, body, source)
            if tag is not None:
                target = block.params if name == "param" else block.param_outs
                existing = target.get(tag.name or "")
                if existing is None or tag.source > existing.source:
                    target[tag.name or ""] = tag
        elif name == "return":
            tag = self._parse_typed_tag(block, raw_name, body, source)
            if tag is not None and (block.return_tag is None or source > block.return_tag.source):
                block.return_tag = tag
        elif name == "var":
            tag = self._parse_typed_tag(block, raw_name, body, source)
            if tag is not None:
                tag.name, tag.description = self._leading_variable(tag.description)
                self._add_var(block, tag)
        elif name == "throws":
            tag = self._parse_typed_tag(block, raw_name, body, source)
            if tag is not None:
                block.throws.append(tag)
        elif name in _TEMPLATE_TAGS:
            template = self._parse_template_tag(block, raw_name, body, source, _TEMPLATE_TAGS[name])
            if template is not None:
                self._add_template(block, template)
        elif name in _ANCESTOR_TAGS:
            tag = self._parse_typed_tag(block, raw_name, body, source)
            if tag is not None:
                getattr(block, _ANCESTOR_TAGS[name]).append(tag)
        elif name in _ASSERTION_TAGS:
            assertion = self._parse_assertion_tag(block, raw_name, name, body)
            if assertion is not None:
                block.assertions.append(assertion)
        elif name in _FLAG_TAGS:
            setattr(block, _FLAG_TAGS[name], True)
        elif name == "impure":
            block.is_pure = False
        elif name == "deprecated":
            block.is_deprecated = True
            block.deprecation_message = body or None
        elif name == "not-deprecated":
            block.is_deprecated = False
        elif name == "inheritdoc":
            block.inherits_doc = True
        elif name == "since":
            block.since = body.split()[0] if body else None
        else:
            block.other_tags.append(RawTag(name=raw_name, body=body))

    def _warn(self, block: Docblock, raw_name: str, message: str) -> None:
        block.warnings.append(f"@{raw_name}: {message}")

    def _split_type(self, block: Docblock, raw_name: str, body: str) -> tuple[str, str] | None:
        if not body:
            self._warn(block, raw_name, "missing type")
            return None
        parts = split_tag_content(body)
        if parts is None:
            self._warn(block, raw_name, f"unbalanced brackets in {body!r}")
            return None
        type_text, rest = parts
        return normalize_type_text(type_text), rest.strip()

    def _parse_typed_tag(
        self, block: Docblock, raw_name: str, body: str, source: TagSource
    ) -> TypedTag | None:
        parts = self._split_type(block, raw_name, body)
        if parts is None:
            return None
        type_text, rest = parts
        return TypedTag(type_text=type_text, description=rest, source=source)

    def _parse_parameter_tag(
        self, block: Docblock, raw_name: str, body: str, source: TagSource
    ) -> TypedTag | None:
        if PARAMETER_NAME.match(body.lstrip()):
            # Name without a type adds nothing to the native hint
            return None
        parts = self._split_type(block, raw_name, body)
        if parts is None:
            return None
        type_text, rest = parts
        match = PARAMETER_NAME.match(rest)
        if match is None:
            self._warn(block, raw_name, f"missing parameter name after {type_text!r}")
            return None
        return TypedTag(
            type_text=type_text,
            name=match.group("name"),
            description=rest[match.end():].strip(),
            source=source,
            is_variadic=match.group("variadic") is not None,
            is_by_reference=match.group("ref") is not None,
        )

    def _leading_variable(self, text: str) -> tuple[str | None, str]:
        match = PARAMETER_NAME.match(text)
        if match is None:
            return None, text
        return match.group("name"), text[match.end():].strip()

    def _add_var(self, block: Docblock, tag: TypedTag) -> None:
        for index, existing in enumerate(block.var_tags):
            if existing.name == tag.name:
                if tag.source > existing.source:
                    block.var_tags[index] = tag
                return
        block.var_tags.append(tag)

    def _parse_template_tag(
        self, block: Docblock, raw_name: str, body: str, source: TagSource, variance: str
    ) -> TemplateTag | None:
        words = body.split(None, 1)
        if not words:
            self._warn(block, raw_name, "missing template name")
            return None
        name = words[0]
        if name.startswith("+"):
            name, variance = name[1:], "covariant"
        elif name.startswith("-"):
            name, variance = name[1:], "contravariant"
        if not TEMPLATE_NAME.match(name):
            self._warn(block, raw_name, f"invalid template name {name!r}")
            return None
        bound_text: str | None = None
        rest = words[1] if len(words) > 1 else ""
        keyword, remainder = (rest.split(None, 1) + ["", ""])[:2]
        if keyword.lower() in ("of", "as") and remainder.strip():
            parts = self._split_type(block, raw_name, remainder)
            if parts is None:
                return None
            bound_text = parts[0]
        elif keyword.lower() == "super":
            logger.debug(f"Ignoring lower bound of template {name}")
        return TemplateTag(name=name, bound_text=bound_text, variance=variance, source=source)

    def _add_template(self, block: Docblock, template: TemplateTag) -> None:
        for index, existing in enumerate(block.templates):
            if existing.name == template.name:
                if template.source > existing.source:
                    block.templates[index] = template
                return
        block.templates.append(template)

    def _parse_assertion_tag(
        self, block: Docblock, raw_name: str, kind: str, body: str
    ) -> AssertionTag | None:
        negated = body.startswith("!")
        if negated:
            body = body[1:]
        parts = self._split_type(block, raw_name, body)
        if parts is None:
            return None
        type_text, rest = parts
        match = PARAMETER_NAME.match(rest)
        if match is None:
            self._warn(block, raw_name, "missing asserted parameter")
            return None
        return AssertionTag(
            kind=kind, parameter=match.group("name"), type_text=type_text, negated=negated
        )


_parser = DocblockParser()


def parse_docblock(text: str | None) -> Docblock:
    """Parse one docblock comment."""
    return _parser.parse(text)
