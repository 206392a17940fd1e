"""Named AST rewriters applied between reading and type checking."""

from __future__ import annotations

import ast
import copy
import operator
import warnings
from typing import Any, Callable, Dict, Optional, Tuple

from ..config import AnalysisConfig
from ..diagnostics import Diagnostic, Severity, report

STAGE = "rewrite"

RewriterFactory = Callable[[AnalysisConfig], ast.NodeTransformer]

_FOLDABLE = {
    ast.Add: operator.add,
    ast.Sub: operator.sub,
    ast.Mult: operator.mul,
    ast.Div: operator.truediv,
    ast.FloorDiv: operator.floordiv,
    ast.Mod: operator.mod,
    ast.Pow: operator.pow,
}
_DIVISIONS = (ast.Div, ast.FloorDiv, ast.Mod)
_MAX_EXPONENT = 64


def _is_number(node: ast.AST) -> bool:
    return (
        isinstance(node, ast.Constant)
        and isinstance(node.value, (int, float))
        and not isinstance(node.value, bool)
    )


class ConstantFolder(ast.NodeTransformer):
    """Folds arithmetic between numeric literals."""

    def visit_BinOp(self, node: ast.BinOp) -> ast.AST:
        self.generic_visit(node)
        fold = _FOLDABLE.get(type(node.op))
        if fold is None or not (_is_number(node.left) and _is_number(node.right)):
            return node
        left, right = node.left.value, node.right.value
        if isinstance(node.op, _DIVISIONS) and right == 0:
            report(
                Diagnostic(
                    "division by zero in constant expression",
                    Severity.ERROR,
                    STAGE,
                    node.lineno,
                    node.col_offset,
                )
            )
            return node
        if isinstance(node.op, ast.Pow) and abs(right) > _MAX_EXPONENT:
            return node
        try:
            value = fold(left, right)
        except (OverflowError, ZeroDivisionError):
            return node
        return ast.copy_location(ast.Constant(value=value), node)


class AssertStripper(ast.NodeTransformer):
    """Replaces ``assert`` statements with ``pass``, warning for each one."""

    def __init__(self, filename: str):
        self.filename = filename

    def visit_Assert(self, node: ast.Assert) -> ast.AST:
        warnings.warn_explicit(
            f"assert statement removed at line {node.lineno}",
            UserWarning,
            self.filename,
            node.lineno,
        )
        return ast.copy_location(ast.Pass(), node)


class RewriterRegistry:
    def __init__(self) -> None:
        self._factories: Dict[str, RewriterFactory] = {}

    def register(self, name: str, factory: RewriterFactory) -> None:
        if name in self._factories:
            raise ValueError(f"Rewriter already registered: {name}")
        self._factories[name] = factory

    def get(self, name: str) -> Optional[RewriterFactory]:
        return self._factories.get(name)


def builtin_registry() -> RewriterRegistry:
    registry = RewriterRegistry()
    registry.register("constant_fold", lambda config: ConstantFolder())
    registry.register("strip_asserts", lambda config: AssertStripper(config.filename))
    return registry


class RegistryRewriter:
    """Applies the configured rewriters, in order, to a copy of the tree."""

    def __init__(self, registry: Optional[RewriterRegistry] = None):
        self.registry = registry or builtin_registry()

    def rewrite(self, config: AnalysisConfig, tree: Any) -> Tuple[AnalysisConfig, Any]:
        if not config.rewriters:
            return config, tree
        rewritten = copy.deepcopy(tree)
        for name in config.rewriters:
            factory = self.registry.get(name)
            if factory is None:
                report(Diagnostic(f"unknown rewriter {name!r}", Severity.ERROR, STAGE))
                continue
            rewritten = factory(config).visit(rewritten)
        return config, ast.fix_missing_locations(rewritten)
