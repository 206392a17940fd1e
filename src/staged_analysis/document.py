"""Documents and positions."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import List


@dataclass(frozen=True, order=True)
class Position:
    """A cursor location: 1-based line, 0-based column."""

    line: int
    column: int = 0

    @classmethod
    def parse(cls, value: str) -> "Position":
        line, _, column = value.partition(":")
        try:
            position = cls(int(line), int(column or 0))
        except ValueError:
            raise ValueError(f"Invalid position {value!r}, expected LINE[:COLUMN]") from None
        if position.line < 1 or position.column < 0:
            raise ValueError(f"Invalid position {value!r}, lines start at 1")
        return position

    def __str__(self) -> str:
        return f"{self.line}:{self.column}"


@dataclass(frozen=True)
class Document:
    text: str

    @classmethod
    def from_path(cls, path: Path | str) -> "Document":
        source = Path(path)
        if not source.exists():
            raise FileNotFoundError(f"Document not found: {source}")
        return cls(source.read_text(encoding="utf-8"))

    def lines(self) -> List[str]:
        return self.text.splitlines(keepends=True)

    def offset_of(self, position: Position) -> int:
        """Character offset of ``position``, clamped to the text."""
        lines = self.lines()
        if not lines:
            return 0
        if position.line > len(lines):
            return len(self.text)
        offset = sum(len(line) for line in lines[: position.line - 1])
        current = lines[position.line - 1].rstrip("\r\n")
        return offset + min(position.column, len(current))

    def truncate_at(self, position: Position) -> str:
        """Text up to and including the line holding ``position``."""
        return "".join(self.lines()[: position.line])
