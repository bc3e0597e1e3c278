"""JSON-friendly encoding of type values.

Types are exported as nested dictionaries tagged with a ``kind`` field so
that snapshots keep the full structure, not only the printed form.
"""

from __future__ import annotations

from typing import Any

from stubdb.types.algebra import (
    CallableParameter,
    CallableType,
    Conditional,
    Generic,
    Intersection,
    IntRange,
    Literal,
    MemberReference,
    Named,
    Nullable,
    Primitive,
    Shape,
    ShapeField,
    TemplateParam,
    Type,
    Union,
    Unknown,
    format_type,
)


def _optional(t: Type | None) -> dict[str, Any] | None:
    return None if t is None else type_to_dict(t)


def type_to_dict(t: Type) -> dict[str, Any]:
    """Encode ``t``; every node also carries its printed ``text``."""
    data: dict[str, Any]
    if isinstance(t, Primitive):
        data = {"kind": "primitive", "name": t.name}
    elif isinstance(t, Named):
        data = {"kind": "named", "name": t.name}
    elif isinstance(t, Nullable):
        data = {"kind": "nullable", "inner": type_to_dict(t.inner)}
    elif isinstance(t, Union):
        data = {"kind": "union", "members": [type_to_dict(m) for m in t.members]}
    elif isinstance(t, Intersection):
        data = {"kind": "intersection", "members": [type_to_dict(m) for m in t.members]}
    elif isinstance(t, Generic):
        data = {"kind": "generic", "name": t.name, "args": [type_to_dict(a) for a in t.args]}
    elif isinstance(t, Shape):
        data = {
            "kind": "shape",
            "shape_kind": t.kind,
            "fields": [
                {"key": f.key, "value": type_to_dict(f.value), "optional": f.optional}
                for f in t.fields
            ],
            "sealed": t.sealed,
            "extra_key": _optional(t.extra_key),
            "extra_value": _optional(t.extra_value),
        }
    elif isinstance(t, Conditional):
        data = {
            "kind": "conditional",
            "subject": t.subject,
            "target": type_to_dict(t.target),
            "then": type_to_dict(t.then),
            "otherwise": type_to_dict(t.otherwise),
            "negated": t.negated,
        }
    elif isinstance(t, Literal):
        data = {"kind": "literal", "value": t.value, "literal_kind": t.kind}
    elif isinstance(t, TemplateParam):
        data = {"kind": "template", "name": t.name, "bound": _optional(t.bound)}
    elif isinstance(t, IntRange):
        data = {"kind": "int_range", "min": t.min, "max": t.max}
    elif isinstance(t, CallableType):
        data = {
            "kind": "callable",
            "callable_kind": t.kind,
            "params": [
                {
                    "type": type_to_dict(p.type),
                    "optional": p.optional,
                    "variadic": p.variadic,
                    "by_reference": p.by_reference,
                }
                for p in t.params
            ],
            "return_type": _optional(t.return_type),
        }
    elif isinstance(t, MemberReference):
        data = {"kind": "member_reference", "class_name": t.class_name, "member": t.member}
    elif isinstance(t, Unknown):
        data = {"kind": "unknown", "reason": t.reason}
    else:
        raise TypeError(f"not a type: {t!r}")
    data["text"] = format_type(t)
    return data


def _decode_optional(data: dict[str, Any] | None) -> Type | None:
    return None if data is None else type_from_dict(data)


def type_from_dict(data: dict[str, Any]) -> Type:
    """Decode a dictionary produced by :func:`type_to_dict`.

    Raises:
        ValueError: If the dictionary does not describe a type.
    """
    try:
        kind = data["kind"]
        if kind == "primitive":
            return Primitive(data["name"])
        if kind == "named":
            return Named(data["name"])
        if kind == "nullable":
            return Nullable(type_from_dict(data["inner"]))
        if kind == "union":
            return Union(tuple(type_from_dict(m) for m in data["members"]))
        if kind == "intersection":
            return Intersection(tuple(type_from_dict(m) for m in data["members"]))
        if kind == "generic":
            return Generic(data["name"], tuple(type_from_dict(a) for a in data["args"]))
        if kind == "shape":
            return Shape(
                data["shape_kind"],
                tuple(
                    ShapeField(f["key"], type_from_dict(f["value"]), f["optional"])
                    for f in data["fields"]
                ),
                data["sealed"],
                _decode_optional(data.get("extra_key")),
                _decode_optional(data.get("extra_value")),
            )
        if kind == "conditional":
            return Conditional(
                data["subject"],
                type_from_dict(data["target"]),
                type_from_dict(data["then"]),
                type_from_dict(data["otherwise"]),
                data["negated"],
            )
        if kind == "literal":
            value = data["value"]
            if data.get("literal_kind") == "float":
                value = float(value)
            return Literal(value)
        if kind == "template":
            return TemplateParam(data["name"], _decode_optional(data.get("bound")))
        if kind == "int_range":
            return IntRange(data["min"], data["max"])
        if kind == "callable":
            return CallableType(
                data["callable_kind"],
                tuple(
                    CallableParameter(
                        type_from_dict(p["type"]), p["optional"], p["variadic"], p["by_reference"]
                    )
                    for p in data["params"]
                ),
                _decode_optional(data.get("return_type")),
            )
        if kind == "member_reference":
            return MemberReference(data["class_name"], data["member"])
        if kind == "unknown":
            return Unknown(data.get("reason", ""))
    except (KeyError, TypeError) as exc:
        raise ValueError(f"Malformed type data: {exc}") from exc
    raise ValueError(f"Unknown type kind {kind!r}")
