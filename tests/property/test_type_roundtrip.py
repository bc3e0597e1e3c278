"""Property tests for the type algebra.

Printing a type and parsing the text back yields an equal type, and the
canonical constructors are insensitive to member order and repetition.
"""

from hypothesis import given, strategies as st

from stubdb.types import (
    CallableParameter,
    CallableType,
    Generic,
    IntRange,
    Literal,
    Named,
    Primitive,
    Shape,
    ShapeField,
    Type,
    can_overlap,
    format_type,
    is_contained_by,
    nullable,
    parse_type,
    union_of,
)
from stubdb.types.algebra import NEVER

PRIMITIVES = [
    "int",
    "float",
    "string",
    "bool",
    "true",
    "false",
    "null",
    "mixed",
    "void",
    "array",
    "object",
    "iterable",
    "callable",
    "resource",
    "scalar",
    "numeric",
    "array-key",
    "positive-int",
    "non-empty-string",
    "class-string",
    "list",
]

class_names = st.from_regex(r"C[a-z]{1,6}(\\C[a-z]{1,6})?", fullmatch=True)
shape_keys = st.from_regex(r"[a-z][a-z0-9_]{0,5}", fullmatch=True)


@st.composite
def int_ranges(draw: st.DrawFn) -> Type:
    low = draw(st.one_of(st.none(), st.integers(-1000, 1000)))
    high = draw(st.one_of(st.none(), st.integers(-1000, 1000)))
    if low is not None and high is not None and low > high:
        low, high = high, low
    return IntRange(low, high)


leaf_types = st.one_of(
    st.sampled_from(PRIMITIVES).map(Primitive),
    class_names.map(Named),
    st.integers(-10**6, 10**6).map(Literal),
    st.floats(-1e6, 1e6, allow_nan=False, allow_infinity=False).map(Literal),
    st.text(alphabet="abcxyz _-019", max_size=8).map(Literal),
    int_ranges(),
)


def extend(children: st.SearchStrategy[Type]) -> st.SearchStrategy[Type]:
    def shape(fields: list[tuple[str, Type, bool]], kind: str) -> Type:
        unique: dict[str, ShapeField] = {}
        for key, value, optional in fields:
            unique.setdefault(key, ShapeField(key, value, optional))
        return Shape(kind, tuple(unique.values()))

    callable_params = st.builds(
        CallableParameter,
        children,
        optional=st.booleans(),
        variadic=st.booleans(),
        by_reference=st.booleans(),
    )
    return st.one_of(
        st.lists(children, min_size=2, max_size=3).map(union_of),
        children.map(nullable),
        st.builds(
            Generic,
            st.sampled_from(["array", "list", "iterable"]),
            st.lists(children, min_size=1, max_size=2).map(tuple),
        ),
        st.builds(Generic, class_names, st.lists(children, min_size=1, max_size=2).map(tuple)),
        st.builds(
            shape,
            st.lists(st.tuples(shape_keys, children, st.booleans()), max_size=3),
            st.sampled_from(["array", "object"]),
        ),
        st.builds(
            CallableType,
            st.sampled_from(["callable", "Closure"]),
            st.lists(callable_params, max_size=2).map(tuple),
            st.one_of(st.none(), children),
        ),
    )


types = st.recursive(leaf_types, extend, max_leaves=8)


@given(t=types)
def test_print_then_parse_is_identity(t: Type) -> None:
    """Canonical text parses back to an equal type."""
    assert parse_type(format_type(t)) == t


@given(t=types)
def test_printing_is_stable(t: Type) -> None:
    text = format_type(t)
    assert format_type(parse_type(text)) == text


@given(t=types)
def test_nullable_is_idempotent(t: Type) -> None:
    assert nullable(nullable(t)) == nullable(t)


@given(members=st.lists(types, min_size=1, max_size=4))
def test_union_ignores_order(members: list[Type]) -> None:
    assert union_of(members) == union_of(list(reversed(members)))


@given(members=st.lists(types, min_size=1, max_size=4))
def test_union_ignores_repetition(members: list[Type]) -> None:
    assert union_of(members + members) == union_of(members)


@given(t=types)
def test_containment_is_reflexive(t: Type) -> None:
    assert is_contained_by(t, t)


@given(t=types)
def test_type_overlaps_itself(t: Type) -> None:
    if t != NEVER:
        assert can_overlap(t, t)
