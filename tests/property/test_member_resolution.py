"""Property tests for member resolution and overload ordering.

For any single-inheritance chain, resolving a method on the most derived
class yields the declaration of the nearest class that declares it. For
any sequence of redeclarations, the overload set keeps declaration order
and selection picks the first compatible signature.
"""

from hypothesis import given, settings, strategies as st

from stubdb.core.config import StubDbConfig
from stubdb.services.build_service import BuildService
from stubdb.types import Literal, Primitive

METHOD_POOL = ["alpha", "beta", "gamma", "delta"]

chains = st.lists(
    st.sets(st.sampled_from(METHOD_POOL)).map(sorted), min_size=1, max_size=5
)


def _chain_source(methods_per_class: list[list[str]]) -> str:
    lines = ["<?php"]
    for index, methods in enumerate(methods_per_class):
        extends = f" extends C{index - 1}" if index else ""
        lines.append(f"class C{index}{extends}")
        lines.append("{")
        for name in methods:
            lines.append(f"    /** @return {index} */")
            lines.append(f"    public function {name}() {{}}")
        lines.append("}")
    return "\n".join(lines) + "\n"


def _build(sources: dict[str, str]):
    return BuildService(StubDbConfig(_env_file=None)).build_sources(sources)


@given(methods_per_class=chains)
@settings(max_examples=25)
def test_nearest_declaration_wins(methods_per_class: list[list[str]]) -> None:
    """The most derived declaring class supplies the resolved signature."""
    database = _build({"chain.php": _chain_source(methods_per_class)}).database
    leaf = f"C{len(methods_per_class) - 1}"

    for name in METHOD_POOL:
        declaring = [i for i, methods in enumerate(methods_per_class) if name in methods]
        found = database.find_member(leaf, name.upper())
        if not declaring:
            assert found is None
            continue
        nearest = max(declaring)
        assert found is not None
        assert found.owner == f"C{nearest}"
        overloads = database.resolve_member(leaf, name)
        assert overloads.primary.return_type == Literal(nearest)


@given(methods_per_class=chains)
@settings(max_examples=25)
def test_ancestors_follow_the_chain(methods_per_class: list[list[str]]) -> None:
    database = _build({"chain.php": _chain_source(methods_per_class)}).database
    last = len(methods_per_class) - 1
    assert database.ancestors(f"C{last}") == [f"C{i}" for i in range(last - 1, -1, -1)]


DISJOINT_TYPES = ["int", "string", "float", "bool", "array"]


@given(param_types=st.lists(st.sampled_from(DISJOINT_TYPES), min_size=1, max_size=4))
@settings(max_examples=25)
def test_overloads_keep_declaration_order(param_types: list[str]) -> None:
    """Each redeclaration appends a signature; selection takes the first match."""
    sources = {
        f"f{index}.php": f"<?php\nfunction f({type_text} $x) {{}}\n"
        for index, type_text in enumerate(param_types)
    }
    result = _build(sources)
    database = result.database
    overloads = database.get_function("f").overloads

    assert [str(s.parameters[0].type) for s in overloads.signatures] == param_types
    for type_text in set(param_types):
        chosen = database.select_overload(overloads, [Primitive(type_text)])
        assert chosen is overloads.signatures[param_types.index(type_text)]
