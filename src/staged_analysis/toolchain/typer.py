"""Name resolution standing in for a type checker.

Scopes are flattened: a name bound anywhere in the module counts as bound
everywhere. That misses shadowing mistakes but never reports a name that
Python would resolve.
"""

from __future__ import annotations

import ast
import builtins
from dataclasses import dataclass, field
from typing import Any, Dict, FrozenSet, List

from ..config import AnalysisConfig
from ..diagnostics import Diagnostic, Severity

STAGE = "typer"

MODULE_GLOBALS = frozenset({"__file__", "__builtins__", "__annotations__", "__path__"})


@dataclass(frozen=True)
class Reference:
    name: str
    line: int
    column: int


@dataclass
class TypedModule:
    tree: Any
    bindings: Dict[str, int] = field(default_factory=dict)
    references: List[Reference] = field(default_factory=list)
    known: FrozenSet[str] = frozenset()
    star_import: bool = False

    def is_bound(self, name: str) -> bool:
        return name in self.bindings or name in self.known

    def unresolved(self) -> List[Reference]:
        return [ref for ref in self.references if not self.is_bound(ref.name)]


class _Binder(ast.NodeVisitor):
    def __init__(self, typed: TypedModule):
        self.typed = typed

    def bind(self, name: str, line: int) -> None:
        self.typed.bindings.setdefault(name, line)

    def visit_Name(self, node: ast.Name) -> None:
        if isinstance(node.ctx, ast.Load):
            self.typed.references.append(Reference(node.id, node.lineno, node.col_offset))
        else:
            self.bind(node.id, node.lineno)

    def _visit_definition(self, node) -> None:
        self.bind(node.name, node.lineno)
        self.generic_visit(node)

    visit_FunctionDef = _visit_definition
    visit_AsyncFunctionDef = _visit_definition
    visit_ClassDef = _visit_definition

    def visit_arg(self, node: ast.arg) -> None:
        self.bind(node.arg, node.lineno)
        self.generic_visit(node)

    def visit_Import(self, node: ast.Import) -> None:
        for alias in node.names:
            self.bind(alias.asname or alias.name.split(".")[0], node.lineno)

    def visit_ImportFrom(self, node: ast.ImportFrom) -> None:
        for alias in node.names:
            if alias.name == "*":
                self.typed.star_import = True
            else:
                self.bind(alias.asname or alias.name, node.lineno)

    def visit_ExceptHandler(self, node: ast.ExceptHandler) -> None:
        if node.name:
            self.bind(node.name, node.lineno)
        self.generic_visit(node)

    def visit_Global(self, node: ast.Global) -> None:
        for name in node.names:
            self.bind(name, node.lineno)

    visit_Nonlocal = visit_Global

    def visit_MatchAs(self, node) -> None:
        if node.name:
            self.bind(node.name, node.lineno)
        self.generic_visit(node)

    def visit_MatchStar(self, node) -> None:
        if node.name:
            self.bind(node.name, node.lineno)

    def visit_MatchMapping(self, node) -> None:
        if node.rest:
            self.bind(node.rest, node.lineno)
        self.generic_visit(node)


class NameResolver:
    def run(self, config: AnalysisConfig, tree: Any) -> TypedModule:
        known = frozenset(dir(builtins)) | MODULE_GLOBALS | frozenset(config.builtins)
        typed = TypedModule(tree=tree, known=known)
        _Binder(typed).visit(tree)
        return typed

    def diagnostics(self, typed: TypedModule) -> List[Diagnostic]:
        if typed.star_import:
            return []
        unresolved = sorted(typed.unresolved(), key=lambda ref: (ref.line, ref.column))
        return [
            Diagnostic(f"undefined name {ref.name!r}", Severity.ERROR, STAGE, ref.line, ref.column)
            for ref in unresolved
        ]
