"""Type expressions: structured values, parsing, printing and comparison."""

from stubdb.types.algebra import (
    MIXED,
    NULL,
    UNKNOWN,
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
    intersection_of,
    nullable,
    union_of,
)
from stubdb.types.comparator import TypeEnvironment, can_overlap, is_contained_by
from stubdb.types.encoding import type_from_dict, type_to_dict
from stubdb.types.parser import TypeParser, parse_type, parse_type_lenient
from stubdb.types.resolution import CallContext, resolve_conditional
from stubdb.types.scope import TypeScope
from stubdb.types.transform import substitute_templates

__all__ = [
    "MIXED",
    "NULL",
    "UNKNOWN",
    "CallContext",
    "CallableParameter",
    "CallableType",
    "Conditional",
    "Generic",
    "IntRange",
    "Intersection",
    "Literal",
    "MemberReference",
    "Named",
    "Nullable",
    "Primitive",
    "Shape",
    "ShapeField",
    "TemplateParam",
    "Type",
    "TypeEnvironment",
    "TypeParser",
    "TypeScope",
    "Union",
    "Unknown",
    "can_overlap",
    "format_type",
    "intersection_of",
    "is_contained_by",
    "nullable",
    "parse_type",
    "parse_type_lenient",
    "resolve_conditional",
    "substitute_templates",
    "type_from_dict",
    "type_to_dict",
    "union_of",
]
