"""Static evaluation of constant and default-value expressions.

Only literals are evaluated. A bare constant name is reported as a
reference for the builder to fold later; everything else is kept as an
opaque expression.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum

from stubdb.core.models import ConstantValue
from stubdb.types.lexer import parse_int_literal, unquote

_INT = re.compile(r"^[+-]?(?:0[xX][0-9a-fA-F_]+|0[bB][01_]+|0[oO]?[0-7_]+|\d[\d_]*)$")
_FLOAT = re.compile(r"^[+-]?(?:\d[\d_]*\.\d*|\.\d+|\d[\d_]*)(?:[eE][+-]?\d+)?$")
_SINGLE_QUOTED = re.compile(r"^'(?:[^'\\]|\\.)*'$", re.DOTALL)
_DOUBLE_QUOTED = re.compile(r'^"(?:[^"\\$]|\\.)*"$', re.DOTALL)
_CONSTANT_NAME = re.compile(r"^\\?[A-Za-z_]\w*(?:\\[A-Za-z_]\w*)*$")
_CLASS_CONSTANT = re.compile(r"^(?P<class>\\?[A-Za-z_][\w\\]*)::(?P<name>[A-Za-z_]\w*)$")


class ValueKind(str, Enum):
    LITERAL = "literal"
    UNKNOWN = "unknown"
    REFERENCE = "reference"
    CLASS_REFERENCE = "class_reference"
    EXPRESSION = "expression"


@dataclass(frozen=True)
class EvaluatedValue:
    kind: ValueKind
    value: ConstantValue = None
    reference: str | None = None
    member: str | None = None

    @property
    def is_known(self) -> bool:
        return self.kind == ValueKind.LITERAL


def evaluate_expression(text: str | None, sentinel: str = "UNKNOWN") -> EvaluatedValue:
    """Evaluate a PHP constant expression as far as it is a literal."""
    if text is None:
        return EvaluatedValue(ValueKind.EXPRESSION)
    text = text.strip()
    while text.startswith("(") and text.endswith(")") and text.count("(") == 1:
        text = text[1:-1].strip()
    if not text:
        return EvaluatedValue(ValueKind.EXPRESSION)
    if text == sentinel:
        return EvaluatedValue(ValueKind.UNKNOWN)

    lowered = text.lower().lstrip("\\")
    if lowered == "true":
        return EvaluatedValue(ValueKind.LITERAL, True)
    if lowered == "false":
        return EvaluatedValue(ValueKind.LITERAL, False)
    if lowered == "null":
        return EvaluatedValue(ValueKind.LITERAL, None)

    if _INT.match(text):
        sign = -1 if text.startswith("-") else 1
        return EvaluatedValue(ValueKind.LITERAL, sign * parse_int_literal(text.lstrip("+-")))
    if _FLOAT.match(text):
        return EvaluatedValue(ValueKind.LITERAL, float(text.replace("_", "")))
    if _SINGLE_QUOTED.match(text) or _DOUBLE_QUOTED.match(text):
        return EvaluatedValue(ValueKind.LITERAL, unquote(text))

    if _CONSTANT_NAME.match(text):
        return EvaluatedValue(ValueKind.REFERENCE, reference=text)
    match = _CLASS_CONSTANT.match(text)
    if match and match.group("name").lower() != "class":
        return EvaluatedValue(
            ValueKind.CLASS_REFERENCE, reference=match.group("class"), member=match.group("name")
        )
    return EvaluatedValue(ValueKind.EXPRESSION)
