"""Python source reader, module directives and config normalization."""

from __future__ import annotations

import ast
import io
import tokenize
from typing import Any, List, Optional, Tuple

from ..config import AnalysisConfig, normalize
from ..diagnostics import Diagnostic, Severity, WarningsPolicy
from ..document import Document, Position
from ..pipelines.base import Comment, ReadResult

LEXER = "lexer"
PARSER = "parser"


def _empty_module() -> ast.Module:
    return ast.Module(body=[], type_ignores=[])


def scan_tokens(text: str) -> Tuple[List[Comment], List[Diagnostic]]:
    """Comments of ``text`` and the tokenizer failure, if any."""
    comments: List[Comment] = []
    errors: List[Diagnostic] = []
    try:
        for token in tokenize.generate_tokens(io.StringIO(text).readline):
            if token.type == tokenize.COMMENT:
                line, column = token.start
                comments.append(Comment(text=token.string, line=line, column=column))
    except tokenize.TokenError as exc:
        message, (line, column) = exc.args
        errors.append(Diagnostic(message, Severity.ERROR, LEXER, line, column))
    except SyntaxError as exc:
        errors.append(Diagnostic.from_syntax_error(exc, LEXER))
    return comments, errors


def parse_text(text: str, filename: str) -> Tuple[ast.Module, Optional[Diagnostic]]:
    try:
        return ast.parse(text, filename=filename), None
    except SyntaxError as exc:
        return _empty_module(), Diagnostic.from_syntax_error(exc, PARSER)
    except ValueError as exc:
        # source containing null bytes
        return _empty_module(), Diagnostic(str(exc), Severity.ERROR, PARSER, 1, 0)


class PythonReader:
    """Reads Python source with :mod:`ast` and :mod:`tokenize`.

    With a target position only the text up to the end of the target line is
    read. When that prefix does not parse (the cursor usually sits in an
    unfinished statement) the lines before the target are read instead.
    """

    def parse(
        self, config: AnalysisConfig, document: Document, target: Optional[Position] = None
    ) -> ReadResult:
        text = document.text if target is None else document.truncate_at(target)
        comments, lexer_errors = scan_tokens(text)
        tree, error = parse_text(text, config.filename)

        if error is not None and target is not None:
            prefix = "".join(document.lines()[: target.line - 1])
            fallback, fallback_error = parse_text(prefix, config.filename)
            if fallback_error is None:
                tree, error = fallback, None
                comments, lexer_errors = scan_tokens(prefix)

        return ReadResult(
            tree=tree,
            comments=comments,
            lexer_errors=lexer_errors,
            parser_errors=[error] if error is not None else [],
            config=config,
            no_labels_for_completion=self._in_comment(comments, target),
        )

    @staticmethod
    def _in_comment(comments: List[Comment], target: Optional[Position]) -> bool:
        if target is None:
            return False
        return any(
            comment.line == target.line and comment.column <= target.column
            for comment in comments
        )


class ModuleDirectives:
    """Module-level ``__analysis_*__`` assignments revising the configuration.

    Recognized: ``__analysis_warnings__ = "error"``,
    ``__analysis_rewriters__ = [...]`` and ``__analysis_builtins__ = [...]``.
    Malformed directives are skipped.
    """

    def apply(self, config: AnalysisConfig, tree: Any) -> AnalysisConfig:
        if not isinstance(tree, ast.Module):
            return config
        changes = {}
        for node in tree.body:
            if not isinstance(node, ast.Assign) or len(node.targets) != 1:
                continue
            target = node.targets[0]
            if not isinstance(target, ast.Name):
                continue
            try:
                value = ast.literal_eval(node.value)
            except (ValueError, SyntaxError):
                continue
            if target.id == "__analysis_warnings__" and isinstance(value, str):
                try:
                    changes["warnings"] = WarningsPolicy.parse(value)
                except ValueError:
                    continue
            elif target.id == "__analysis_rewriters__" and _is_names(value):
                changes["rewriters"] = tuple(value)
            elif target.id == "__analysis_builtins__" and _is_names(value):
                changes["builtins"] = config.builtins + tuple(value)
        if not changes:
            return config
        return config.with_overrides(**changes)


def _is_names(value: Any) -> bool:
    return isinstance(value, (list, tuple)) and all(isinstance(item, str) for item in value)


class ConfigNormalizerAdapter:
    def normalize(self, config: AnalysisConfig) -> AnalysisConfig:
        return normalize(config)
