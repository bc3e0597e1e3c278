"""Symbol table construction: signatures, inheritance linking and constant folding."""

from stubdb.symbols.builder import SymbolTableBuilder, build_symbol_table
from stubdb.symbols.generics import bind_templates, instantiate_signature
from stubdb.symbols.linker import InheritanceLinker
from stubdb.symbols.signatures import SignatureFactory
from stubdb.symbols.values import EvaluatedValue, ValueKind, evaluate_expression

__all__ = [
    "EvaluatedValue",
    "InheritanceLinker",
    "SignatureFactory",
    "SymbolTableBuilder",
    "ValueKind",
    "bind_templates",
    "build_symbol_table",
    "evaluate_expression",
    "instantiate_signature",
]
