"""Declaration scanner for PHP stub files.

Parses each file with tree-sitter-php and records every function, class-like,
constant and member declaration together with its docblock and the
namespace/``use`` context it was declared in. No types are interpreted here.
"""

from __future__ import annotations

import logging
import re
import threading
from pathlib import Path

import tree_sitter_php as tsphp
from tree_sitter import Language, Node, Parser

from stubdb.core.context import FileContext
from stubdb.core.exceptions import StubScanError
from stubdb.core.models import ClassKind
from stubdb.scanner.ast_utils import PhpAstUtils
from stubdb.scanner.records import (
    RawClassLike,
    RawConstant,
    RawEnumCase,
    RawFunction,
    RawParameter,
    RawProperty,
    RawTraitUse,
    StubFile,
    SyntaxProblem,
)

logger = logging.getLogger(__name__)

_CLASS_LIKE_KINDS = {
    "class_declaration": ClassKind.CLASS,
    "interface_declaration": ClassKind.INTERFACE,
    "trait_declaration": ClassKind.TRAIT,
    "enum_declaration": ClassKind.ENUM,
}

_PARAMETER_TYPES = ("simple_parameter", "variadic_parameter", "property_promotion_parameter")

_ENUM_BACKING = re.compile(r"\benum\s+[\w\\]+\s*:\s*(?P<type>[\w\\]+)", re.IGNORECASE)
_CONST_ELEMENT = re.compile(r"^\s*(?P<name>[A-Za-z_]\w*)\s*=\s*(?P<value>.*?)\s*$", re.DOTALL)
_ENUM_CASE = re.compile(
    r"^\s*case\s+(?P<name>[A-Za-z_]\w*)\s*(?:=\s*(?P<value>.*?))?\s*;?\s*$", re.DOTALL
)
_PROPERTY_ELEMENT = re.compile(r"\$(?P<name>[A-Za-z_]\w*)\s*(?:=\s*(?P<value>.*?))?\s*$", re.DOTALL)
_DEFINE = re.compile(
    r"^\s*\\?define\s*\(\s*(?P<quote>['\"])(?P<name>[^'\"]+)(?P=quote)\s*,\s*(?P<value>.*)\)\s*;?\s*$",
    re.DOTALL | re.IGNORECASE,
)
_TRAIT_USE = re.compile(r"^\s*use\s+(?P<names>[^;{]+)", re.IGNORECASE)

_SKIPPED_NODES = frozenset({"comment", "php_tag", "text", "text_interpolation"})

_DECLARATION_KINDS = frozenset({"function_definition", "const_declaration", "expression_statement"})

_MEMBER_KINDS = frozenset(
    {
        "method_declaration",
        "property_declaration",
        "const_declaration",
        "enum_case",
        "use_declaration",
    }
)


class StubScanner:
    """Scans stub sources into raw declaration records.

    One tree-sitter parser is kept per thread, so a single scanner can be
    shared by a pool of workers.
    """

    def __init__(self) -> None:
        self._language = Language(tsphp.language_php())
        self._local = threading.local()

    @property
    def _parser(self) -> Parser:
        parser = getattr(self._local, "parser", None)
        if parser is None:
            parser = Parser(self._language)
            self._local.parser = parser
        return parser

    def scan_file(self, path: Path) -> StubFile:
        """Scan one stub file.

        Raises:
            StubScanError: If the file cannot be read.
        """
        try:
            content = path.read_bytes()
        except OSError as exc:
            raise StubScanError(f"Cannot read {path}", str(exc)) from exc
        return self.scan_bytes(content, str(path))

    def scan_source(self, source: str, path: str = "<memory>") -> StubFile:
        """Scan stub source text."""
        return self.scan_bytes(source.encode("utf-8"), path)

    def scan_bytes(self, content: bytes, path: str) -> StubFile:
        tree = self._parser.parse(content)
        root = tree.root_node
        stub = StubFile(path=path)
        if root.has_error:
            for error in PhpAstUtils.find_errors(root) or [root]:
                row, column = error.start_point[0], error.start_point[1]
                reason = f"missing {error.type}" if error.is_missing else "unexpected input"
                stub.syntax_errors.append(SyntaxProblem(row + 1, column + 1, reason))
                logger.debug(f"Syntax error in {path} at line {row + 1}")
        self._scan_statements(root.named_children, content, FileContext(file=path), stub)
        return stub

    # --- statements -----------------------------------------------------

    def _scan_statements(
        self, nodes: list[Node], content: bytes, context: FileContext, stub: StubFile
    ) -> None:
        for node in nodes:
            node_type = node.type
            if node_type in _SKIPPED_NODES:
                continue
            if node_type == "namespace_definition":
                name = PhpAstUtils.get_field_text(node, "name", content) or ""
                body = node.child_by_field_name("body")
                namespace_context = FileContext(file=stub.path, namespace=name.strip("\\ "))
                if body is None:
                    # Statement form: applies to the following siblings
                    context = namespace_context
                else:
                    self._scan_statements(body.named_children, content, namespace_context, stub)
                continue
            if node_type == "namespace_use_declaration":
                if self._is_broken(node, stub.path):
                    continue
                text = PhpAstUtils.get_node_text(node, content)
                # Declarations already scanned keep the imports they saw
                context = context.model_copy(deep=True)
                for kind, name, alias in PhpAstUtils.parse_use_statement(text):
                    context.add_use(name, alias, kind)
                continue
            if node_type in _DECLARATION_KINDS and self._is_broken(node, stub.path):
                continue
            if node_type == "function_definition":
                function = self._scan_function(node, content, context, stub.path)
                if function is not None:
                    stub.functions.append(function)
                continue
            if node_type in _CLASS_LIKE_KINDS:
                class_like = self._scan_class_like(node, content, context, stub.path)
                if class_like is not None:
                    stub.classes.append(class_like)
                continue
            if node_type == "const_declaration":
                stub.constants.extend(self._scan_constants(node, content, context, stub.path))
                continue
            if node_type == "expression_statement":
                constant = self._scan_define(node, content, context, stub.path)
                if constant is not None:
                    stub.constants.append(constant)
                continue
            # Conditional declarations, other nesting and ERROR regions
            self._scan_statements(node.named_children, content, context, stub)

    def _scan_define(
        self, node: Node, content: bytes, context: FileContext, path: str
    ) -> RawConstant | None:
        match = _DEFINE.match(PhpAstUtils.get_node_text(node, content))
        if match is None:
            return None
        name = match.group("name").lstrip("\\")
        # define() names are always fully qualified
        return RawConstant(
            name=name,
            context=FileContext(file=path),
            location=PhpAstUtils.get_location(node, path),
            value_text=match.group("value").strip(),
            docblock=PhpAstUtils.get_docblock(node, content),
        )

    @staticmethod
    def _is_broken(node: Node, path: str) -> bool:
        if not node.has_error:
            return False
        row = node.start_point[0] + 1
        logger.debug(f"Dropping malformed {node.type} in {path} at line {row}")
        return True

    # --- functions ------------------------------------------------------

    def _scan_function(
        self, node: Node, content: bytes, context: FileContext, path: str
    ) -> RawFunction | None:
        name = PhpAstUtils.get_field_text(node, "name", content)
        if not name:
            return None
        return RawFunction(
            name=name,
            context=context,
            location=PhpAstUtils.get_location(node, path),
            parameters=self._scan_parameters(node, content),
            return_type_text=PhpAstUtils.get_field_text(node, "return_type", content),
            docblock=PhpAstUtils.get_docblock(node, content),
            modifiers=PhpAstUtils.extract_modifiers(node, content),
            returns_by_reference=any(c.type == "reference_modifier" for c in node.children),
        )

    def _scan_parameters(self, node: Node, content: bytes) -> list[RawParameter]:
        params_node = node.child_by_field_name("parameters")
        if params_node is None:
            return []
        parameters: list[RawParameter] = []
        for param in params_node.named_children:
            if param.type not in _PARAMETER_TYPES:
                continue
            name = PhpAstUtils.get_field_text(param, "name", content)
            if name is None:
                variable = next((c for c in param.named_children if c.type == "variable_name"), None)
                if variable is None:
                    continue
                name = PhpAstUtils.get_node_text(variable, content)
            parameters.append(
                RawParameter(
                    name=name.lstrip("$"),
                    type_text=PhpAstUtils.get_field_text(param, "type", content),
                    default_text=PhpAstUtils.get_field_text(param, "default_value", content),
                    is_variadic=param.type == "variadic_parameter",
                    is_by_reference=PhpAstUtils.has_reference_modifier(param),
                    is_promoted=param.type == "property_promotion_parameter",
                )
            )
        return parameters

    # --- class-likes ----------------------------------------------------

    def _scan_class_like(
        self, node: Node, content: bytes, context: FileContext, path: str
    ) -> RawClassLike | None:
        name = PhpAstUtils.get_field_text(node, "name", content)
        if not name:
            return None
        body = node.child_by_field_name("body")
        body_id = body.id if body is not None else None
        if any(c.has_error for c in node.children if c.id != body_id):
            # Only a broken header drops the whole class-like
            self._is_broken(node, path)
            return None
        kind = _CLASS_LIKE_KINDS[node.type]
        header = PhpAstUtils.get_header_text(node, content)
        class_like = RawClassLike(
            kind=kind,
            name=name,
            context=context,
            location=PhpAstUtils.get_location(node, path),
            docblock=PhpAstUtils.get_docblock(node, content),
            modifiers=PhpAstUtils.extract_class_modifiers(header),
        )
        for child in node.named_children:
            if child.type == "base_clause":
                class_like.extends.extend(PhpAstUtils.extract_names(child, content))
            elif child.type == "class_interface_clause":
                class_like.implements.extend(PhpAstUtils.extract_names(child, content))
        if kind == ClassKind.ENUM:
            match = _ENUM_BACKING.search(header)
            if match:
                class_like.backing_type_text = match.group("type")

        if body is not None:
            self._scan_members(body, content, class_like, path)
        return class_like

    def _scan_members(
        self, body: Node, content: bytes, class_like: RawClassLike, path: str
    ) -> None:
        for member in body.named_children:
            member_type = member.type
            if member_type in _MEMBER_KINDS and self._is_broken(member, path):
                continue
            if member_type == "method_declaration":
                method = self._scan_function(member, content, class_like.context, path)
                if method is not None:
                    class_like.methods.append(method)
            elif member_type == "property_declaration":
                class_like.properties.extend(self._scan_properties(member, content, path))
            elif member_type == "const_declaration":
                class_like.constants.extend(
                    self._scan_constants(member, content, class_like.context, path)
                )
            elif member_type == "enum_case":
                case = self._scan_enum_case(member, content, path)
                if case is not None:
                    class_like.cases.append(case)
            elif member_type == "use_declaration":
                names = PhpAstUtils.extract_names(member, content)
                if not names:
                    match = _TRAIT_USE.match(PhpAstUtils.get_node_text(member, content))
                    if match:
                        names = [n.strip() for n in match.group("names").split(",") if n.strip()]
                class_like.trait_uses.append(
                    RawTraitUse(names=names, docblock=PhpAstUtils.get_docblock(member, content))
                )

    def _scan_properties(self, node: Node, content: bytes, path: str) -> list[RawProperty]:
        modifiers = PhpAstUtils.extract_modifiers(node, content)
        type_text = PhpAstUtils.get_field_text(node, "type", content)
        docblock = PhpAstUtils.get_docblock(node, content)
        properties: list[RawProperty] = []
        for element in node.named_children:
            if element.type != "property_element":
                continue
            match = _PROPERTY_ELEMENT.search(PhpAstUtils.get_node_text(element, content))
            if match is None:
                continue
            properties.append(
                RawProperty(
                    name=match.group("name"),
                    location=PhpAstUtils.get_location(element, path),
                    type_text=type_text,
                    default_text=match.group("value"),
                    docblock=docblock,
                    modifiers=modifiers,
                )
            )
        return properties

    def _scan_constants(
        self, node: Node, content: bytes, context: FileContext, path: str
    ) -> list[RawConstant]:
        modifiers = PhpAstUtils.extract_modifiers(node, content)
        type_text = PhpAstUtils.get_field_text(node, "type", content)
        docblock = PhpAstUtils.get_docblock(node, content)
        constants: list[RawConstant] = []
        for element in node.named_children:
            if element.type != "const_element":
                continue
            match = _CONST_ELEMENT.match(PhpAstUtils.get_node_text(element, content))
            if match is None:
                continue
            constants.append(
                RawConstant(
                    name=match.group("name"),
                    context=context,
                    location=PhpAstUtils.get_location(element, path),
                    value_text=match.group("value"),
                    type_text=type_text,
                    docblock=docblock,
                    modifiers=modifiers,
                )
            )
        return constants

    def _scan_enum_case(self, node: Node, content: bytes, path: str) -> RawEnumCase | None:
        match = _ENUM_CASE.match(PhpAstUtils.get_node_text(node, content))
        if match is None:
            return None
        return RawEnumCase(
            name=match.group("name"),
            location=PhpAstUtils.get_location(node, path),
            value_text=match.group("value"),
            docblock=PhpAstUtils.get_docblock(node, content),
        )
