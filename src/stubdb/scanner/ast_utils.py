"""PHP AST utility helpers."""

from __future__ import annotations

import re

from tree_sitter import Node

from stubdb.core.models import SourceLocation, Visibility

_USE_KIND = re.compile(r"^(function|const)\s+", re.IGNORECASE)
_ALIAS = re.compile(r"\s+as\s+", re.IGNORECASE)
_CLASS_MODIFIERS = ("abstract", "final", "readonly")

NAME_NODE_TYPES = ("name", "qualified_name")


class PhpAstUtils:
    """Utility helpers for tree-sitter-php nodes."""

    @staticmethod
    def get_node_text(node: Node, content: bytes) -> str:
        return content[node.start_byte : node.end_byte].decode("utf-8", errors="ignore")

    @staticmethod
    def get_field_text(node: Node, field: str, content: bytes) -> str | None:
        child = node.child_by_field_name(field)
        if child is None:
            return None
        return PhpAstUtils.get_node_text(child, content)

    @staticmethod
    def get_location(node: Node, path: str) -> SourceLocation:
        row, column = node.start_point[0], node.start_point[1]
        return SourceLocation(file=path, line=row + 1, column=column + 1)

    @staticmethod
    def get_docblock(node: Node, content: bytes) -> str | None:
        """Return the ``/** */`` comment directly preceding ``node``, if any."""
        previous = node.prev_named_sibling
        if previous is None or previous.type != "comment":
            return None
        text = PhpAstUtils.get_node_text(previous, content)
        return text if text.startswith("/**") else None

    @staticmethod
    def get_header_text(node: Node, content: bytes) -> str:
        """Text of a declaration up to its body."""
        body = node.child_by_field_name("body")
        end = body.start_byte if body is not None else node.end_byte
        return content[node.start_byte : end].decode("utf-8", errors="ignore")

    @staticmethod
    def extract_names(node: Node, content: bytes) -> list[str]:
        """Names listed by an ``extends`` / ``implements`` / trait ``use`` clause."""
        return [
            PhpAstUtils.get_node_text(child, content)
            for child in node.named_children
            if child.type in NAME_NODE_TYPES
        ]

    @staticmethod
    def extract_modifiers(node: Node, content: bytes) -> list[str]:
        modifiers: list[str] = []
        for child in node.children:
            if child.type == "visibility_modifier":
                modifiers.append(PhpAstUtils.get_node_text(child, content).lower())
            elif child.type in (
                "static_modifier",
                "abstract_modifier",
                "final_modifier",
                "readonly_modifier",
            ):
                modifiers.append(child.type.replace("_modifier", ""))
        return modifiers

    @staticmethod
    def extract_class_modifiers(header: str) -> list[str]:
        words = header.split()
        modifiers: list[str] = []
        for word in words:
            lowered = word.lower()
            if lowered in _CLASS_MODIFIERS:
                modifiers.append(lowered)
            elif lowered in ("class", "interface", "trait", "enum"):
                break
        return modifiers

    @staticmethod
    def get_visibility(modifiers: list[str]) -> Visibility:
        if "private" in modifiers:
            return Visibility.PRIVATE
        if "protected" in modifiers:
            return Visibility.PROTECTED
        return Visibility.PUBLIC

    @staticmethod
    def has_reference_modifier(node: Node) -> bool:
        if node.child_by_field_name("reference_modifier") is not None:
            return True
        return any(child.type in ("reference_modifier", "&") for child in node.children)

    @staticmethod
    def parse_use_statement(text: str) -> list[tuple[str, str, str | None]]:
        """Split a ``use`` statement into ``(kind, name, alias)`` triples.

        Handles ``use function``/``use const`` and group uses such as
        ``use A\\{B, C as D, function e}``.
        """
        body = text.strip().rstrip(";").strip()
        if body[:3].lower() == "use":
            body = body[3:].strip()
        kind = "class"
        match = _USE_KIND.match(body)
        if match:
            kind = match.group(1).lower()
            body = body[match.end() :]

        entries: list[tuple[str, str, str | None]] = []
        if "{" in body:
            prefix, _, inner = body.partition("{")
            prefix = prefix.strip().rstrip("\\")
            inner = inner.rsplit("}", 1)[0]
            for item in inner.split(","):
                item = item.strip()
                if not item:
                    continue
                item_kind = kind
                match = _USE_KIND.match(item)
                if match:
                    item_kind = match.group(1).lower()
                    item = item[match.end() :]
                name, alias = PhpAstUtils._split_alias(item)
                entries.append((item_kind, f"{prefix}\\{name}", alias))
            return entries

        for item in body.split(","):
            item = item.strip()
            if item:
                name, alias = PhpAstUtils._split_alias(item)
                entries.append((kind, name, alias))
        return entries

    @staticmethod
    def _split_alias(item: str) -> tuple[str, str | None]:
        parts = _ALIAS.split(item, maxsplit=1)
        name = parts[0].strip().lstrip("\\")
        alias = parts[1].strip() if len(parts) > 1 else None
        return name, alias

    @staticmethod
    def find_errors(node: Node) -> list[Node]:
        """Outermost ERROR and MISSING nodes below ``node`` in document order."""
        if node.type == "ERROR" or node.is_missing:
            return [node]
        found: list[Node] = []
        for child in node.children:
            if child.has_error or child.is_missing:
                found.extend(PhpAstUtils.find_errors(child))
        return found
