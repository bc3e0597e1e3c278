"""Recursive descent parser for docblock type expressions.

Binding strength, loosest first: conditional, ``|``, ``&``, postfix ``[]``,
prefix ``?``, then atoms. Class names are resolved through a
:class:`~stubdb.types.scope.TypeScope` using PHP's import rules.
"""

from __future__ import annotations

from stubdb.core.exceptions import TypeParseError
from stubdb.types.algebra import (
    CALLABLE_KINDS,
    GENERIC_KEYWORDS,
    KEYWORD_ALIASES,
    KEYWORDS,
    MIXED,
    SHAPE_KINDS,
    CallableParameter,
    CallableType,
    Conditional,
    Generic,
    IntRange,
    Literal,
    MemberReference,
    Named,
    Primitive,
    Shape,
    ShapeField,
    TemplateParam,
    Type,
    Unknown,
    intersection_of,
    nullable,
    union_of,
)
from stubdb.types.lexer import Token, TokenKind, parse_int_literal, tokenize, unquote
from stubdb.types.scope import EMPTY_SCOPE, TypeScope

_RELATIVE_CLASS_NAMES = frozenset({"self", "static", "parent"})

_ATOM_START = frozenset(
    {
        TokenKind.IDENTIFIER,
        TokenKind.LPAREN,
        TokenKind.QUESTION,
        TokenKind.INT,
        TokenKind.FLOAT,
        TokenKind.STRING,
        TokenKind.MINUS,
        TokenKind.PLUS,
    }
)

_OPENERS = {TokenKind.LPAREN, TokenKind.LBRACE, TokenKind.LBRACKET, TokenKind.LESS}
_CLOSERS = {TokenKind.RPAREN, TokenKind.RBRACE, TokenKind.RBRACKET, TokenKind.GREATER}


class TypeParser:
    """Parses a single type expression."""

    def __init__(self, text: str, scope: TypeScope | None = None) -> None:
        self._text = text
        self._scope = scope or EMPTY_SCOPE
        self._tokens = tokenize(text)
        self._index = 0

    def parse(self) -> Type:
        if self._peek().kind == TokenKind.EOF:
            raise TypeParseError("Empty type expression", self._text, 0)
        result = self._parse_type()
        token = self._peek()
        if token.kind != TokenKind.EOF:
            raise self._error(f"Unexpected {token.value!r} after type", token)
        return result

    # --- token helpers ------------------------------------------------------

    def _peek(self, offset: int = 0) -> Token:
        index = min(self._index + offset, len(self._tokens) - 1)
        return self._tokens[index]

    def _next(self) -> Token:
        token = self._tokens[self._index]
        if token.kind != TokenKind.EOF:
            self._index += 1
        return token

    def _accept(self, kind: TokenKind) -> Token | None:
        if self._peek().kind == kind:
            return self._next()
        return None

    def _expect(self, kind: TokenKind) -> Token:
        token = self._peek()
        if token.kind != kind:
            found = "end of input" if token.kind == TokenKind.EOF else repr(token.value)
            raise self._error(f"Expected {kind.value!r}, found {found}", token)
        return self._next()

    def _error(self, message: str, token: Token) -> TypeParseError:
        return TypeParseError(message, self._text, token.position)

    def _is_word(self, token: Token, word: str) -> bool:
        return token.kind == TokenKind.IDENTIFIER and token.value.lower() == word

    # --- grammar ------------------------------------------------------------

    def _parse_type(self) -> Type:
        first, second = self._peek(), self._peek(1)
        if self._is_word(second, "is") and (
            first.kind == TokenKind.VARIABLE
            or (first.kind == TokenKind.IDENTIFIER and "\\" not in first.value)
        ):
            return self._parse_conditional()
        return self._parse_union()

    def _parse_conditional(self) -> Type:
        subject = self._next().value
        self._next()
        negated = False
        if self._is_word(self._peek(), "not"):
            self._next()
            negated = True
        target = self._parse_union()
        self._expect(TokenKind.QUESTION)
        then = self._parse_type()
        self._expect(TokenKind.COLON)
        otherwise = self._parse_type()
        return Conditional(subject, target, then, otherwise, negated)

    def _parse_union(self) -> Type:
        members = [self._parse_intersection()]
        while self._accept(TokenKind.PIPE):
            members.append(self._parse_intersection())
        if len(members) == 1:
            return members[0]
        return union_of(members)

    def _parse_intersection(self) -> Type:
        members = [self._parse_prefix()]
        # A trailing '&' not followed by a type marks a by-reference callable parameter
        while self._peek().kind == TokenKind.AMPERSAND and self._peek(1).kind in _ATOM_START:
            self._next()
            members.append(self._parse_prefix())
        if len(members) == 1:
            return members[0]
        return intersection_of(members)

    def _parse_prefix(self) -> Type:
        if self._accept(TokenKind.QUESTION):
            return nullable(self._parse_prefix())
        return self._parse_postfix()

    def _parse_postfix(self) -> Type:
        result = self._parse_atom()
        while self._peek().kind == TokenKind.LBRACKET and self._peek(1).kind == TokenKind.RBRACKET:
            self._next()
            self._next()
            result = Generic("array", (result,))
        return result

    def _parse_atom(self) -> Type:
        token = self._peek()
        kind = token.kind
        if kind == TokenKind.LPAREN:
            self._next()
            inner = self._parse_type()
            self._expect(TokenKind.RPAREN)
            return inner
        if kind == TokenKind.VARIABLE:
            if token.value == "$this":
                self._next()
                return Primitive("$this")
            raise self._error(f"Unexpected variable {token.value}", token)
        if kind in (TokenKind.INT, TokenKind.FLOAT, TokenKind.MINUS, TokenKind.PLUS):
            return Literal(self._parse_number())
        if kind == TokenKind.STRING:
            self._next()
            return Literal(unquote(token.value))
        if kind == TokenKind.IDENTIFIER:
            self._next()
            return self._parse_identifier(token)
        found = "end of input" if kind == TokenKind.EOF else repr(token.value)
        raise self._error(f"Expected a type, found {found}", token)

    def _parse_number(self) -> int | float:
        sign = 1
        if self._accept(TokenKind.MINUS):
            sign = -1
        elif self._accept(TokenKind.PLUS):
            sign = 1
        token = self._peek()
        if token.kind == TokenKind.INT:
            self._next()
            return sign * parse_int_literal(token.value)
        if token.kind == TokenKind.FLOAT:
            self._next()
            return sign * float(token.value.replace("_", ""))
        raise self._error("Expected a number", token)

    def _parse_identifier(self, token: Token) -> Type:
        name = token.value
        lowered = name.lower()
        following = self._peek().kind

        if following == TokenKind.DOUBLE_COLON:
            return self._parse_member_reference(name)
        if lowered in CALLABLE_KINDS and following == TokenKind.LPAREN:
            return self._parse_callable(CALLABLE_KINDS[lowered])
        if lowered == "int" and following == TokenKind.LESS:
            return self._parse_int_range()
        if lowered in SHAPE_KINDS and following == TokenKind.LBRACE:
            return self._parse_shape(lowered)

        lowered = KEYWORD_ALIASES.get(lowered, lowered)
        if lowered in KEYWORDS:
            if following == TokenKind.LESS and lowered in GENERIC_KEYWORDS:
                return Generic(lowered, self._parse_type_arguments())
            return Primitive(lowered)

        if "\\" not in name:
            found, bound = self._scope.template(name)
            if found:
                return TemplateParam(name, bound)

        fq_name = self._scope.resolve_class(name)
        if following == TokenKind.LESS:
            return Generic(fq_name, self._parse_type_arguments())
        return Named(fq_name)

    def _parse_type_arguments(self) -> tuple[Type, ...]:
        self._expect(TokenKind.LESS)
        args = [self._parse_type()]
        while self._accept(TokenKind.COMMA):
            if self._peek().kind == TokenKind.GREATER:
                break
            args.append(self._parse_type())
        self._expect(TokenKind.GREATER)
        return tuple(args)

    def _parse_member_reference(self, class_name: str) -> Type:
        self._expect(TokenKind.DOUBLE_COLON)
        if class_name.lower() in _RELATIVE_CLASS_NAMES:
            owner = class_name.lower()
        else:
            owner = self._scope.resolve_class(class_name)
        parts: list[str] = []
        end = self._tokens[self._index - 1].end
        while self._peek().kind in (TokenKind.IDENTIFIER, TokenKind.STAR):
            token = self._peek()
            if token.position != end:
                break
            parts.append(self._next().value)
            end = token.end
        if not parts:
            raise self._error("Expected a member name after '::'", self._peek())
        return MemberReference(owner, "".join(parts))

    def _parse_int_bound(self) -> int | None:
        token = self._peek()
        if self._is_word(token, "min") or self._is_word(token, "max"):
            self._next()
            return None
        value = self._parse_number()
        if isinstance(value, float):
            raise self._error("Integer range bounds must be integers", token)
        return value

    def _parse_int_range(self) -> Type:
        self._expect(TokenKind.LESS)
        low = self._parse_int_bound()
        self._expect(TokenKind.COMMA)
        high = self._parse_int_bound()
        self._expect(TokenKind.GREATER)
        return IntRange(low, high)

    def _at_shape_key(self) -> bool:
        offset = 0
        token = self._peek()
        if token.kind == TokenKind.MINUS:
            offset = 1
            token = self._peek(1)
            if token.kind != TokenKind.INT:
                return False
        elif token.kind not in (TokenKind.IDENTIFIER, TokenKind.INT, TokenKind.STRING):
            return False
        after = self._peek(offset + 1).kind
        if after == TokenKind.COLON:
            return True
        return after == TokenKind.QUESTION and self._peek(offset + 2).kind == TokenKind.COLON

    def _parse_shape_key(self) -> str | int:
        if self._accept(TokenKind.MINUS):
            return -parse_int_literal(self._next().value)
        token = self._next()
        if token.kind == TokenKind.INT:
            return parse_int_literal(token.value)
        if token.kind == TokenKind.STRING:
            return unquote(token.value)
        return token.value

    def _parse_shape(self, kind: str) -> Type:
        self._expect(TokenKind.LBRACE)
        fields: list[ShapeField] = []
        sealed = True
        extra_key: Type | None = None
        extra_value: Type | None = None
        while self._peek().kind != TokenKind.RBRACE:
            if self._accept(TokenKind.ELLIPSIS):
                sealed = False
                if self._peek().kind == TokenKind.LESS:
                    args = self._parse_type_arguments()
                    if len(args) == 1:
                        extra_value = args[0]
                    elif len(args) == 2:
                        extra_key, extra_value = args
                    else:
                        raise self._error("Unsealed shapes take at most two arguments", self._peek())
                self._accept(TokenKind.COMMA)
                break
            if self._at_shape_key():
                key = self._parse_shape_key()
                optional = self._accept(TokenKind.QUESTION) is not None
                self._expect(TokenKind.COLON)
                fields.append(ShapeField(key, self._parse_type(), optional))
            else:
                fields.append(ShapeField(None, self._parse_type()))
            if not self._accept(TokenKind.COMMA):
                break
        self._expect(TokenKind.RBRACE)
        return Shape(kind, tuple(fields), sealed, extra_key, extra_value)

    def _skip_default_value(self) -> None:
        depth = 0
        while True:
            token = self._peek()
            if token.kind == TokenKind.EOF:
                return
            if depth == 0 and token.kind in (TokenKind.COMMA, TokenKind.RPAREN):
                return
            if token.kind in _OPENERS:
                depth += 1
            elif token.kind in _CLOSERS:
                depth -= 1
            self._next()

    def _parse_callable_parameter(self) -> CallableParameter:
        leading_variadic = (
            self._peek().kind == TokenKind.ELLIPSIS and self._peek(1).kind in _ATOM_START
        )
        if leading_variadic:
            # '...T' spelling of a variadic parameter
            self._next()
            param_type: Type = self._parse_type()
        elif self._peek().kind in (TokenKind.AMPERSAND, TokenKind.ELLIPSIS, TokenKind.VARIABLE):
            param_type = MIXED
        else:
            param_type = self._parse_type()
        by_reference = self._accept(TokenKind.AMPERSAND) is not None
        variadic = self._accept(TokenKind.ELLIPSIS) is not None or leading_variadic
        # Parameter names carry no type information
        self._accept(TokenKind.VARIABLE)
        optional = self._accept(TokenKind.EQUALS) is not None
        if optional:
            self._skip_default_value()
        return CallableParameter(param_type, optional, variadic, by_reference)

    def _parse_callable(self, kind: str) -> Type:
        self._expect(TokenKind.LPAREN)
        params: list[CallableParameter] = []
        while self._peek().kind != TokenKind.RPAREN:
            params.append(self._parse_callable_parameter())
            if not self._accept(TokenKind.COMMA):
                break
        self._expect(TokenKind.RPAREN)
        return_type: Type | None = None
        if self._accept(TokenKind.COLON):
            return_type = self._parse_union()
        return CallableType(kind, tuple(params), return_type)


def parse_type(text: str, scope: TypeScope | None = None) -> Type:
    """Parse a type expression.

    Raises:
        TypeParseError: If ``text`` is not a valid type expression.
    """
    return TypeParser(text, scope).parse()


def parse_type_lenient(text: str, scope: TypeScope | None = None) -> Type:
    """Parse a type expression, returning :class:`Unknown` instead of raising."""
    try:
        return parse_type(text, scope)
    except TypeParseError as exc:
        return Unknown(str(exc))
