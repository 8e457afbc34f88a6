"""A terminal table that keeps a sliding window of rows."""

from __future__ import annotations

import os
import shutil
import sys
import threading
from dataclasses import dataclass
from typing import TextIO

from .alignment import Alignment

BOLD = "1"
"""SGR parameter for bold text."""

_RESET = "\033[0m"


@dataclass
class Cell:
    """A single table cell.

    ``color`` holds ANSI SGR parameters (for example ``"1"`` or ``"31;1"``)
    or ``None`` for plain text.
    """

    text: str
    color: str | None = None

    def _paint(self, text: str) -> str:
        if self.color is None:
            return text
        return f"\033[{self.color}m{text}{_RESET}"


@dataclass
class HeaderCell(Cell):
    """A column header; it also fixes the column's width and alignment.

    ``width`` is the fraction of the total table width taken by the column.
    """

    width: float = 0.0
    alignment: Alignment = Alignment.LEFT


class Table:
    """A table of columns and a sliding window of the latest rows."""

    def __init__(self, *headers: str) -> None:
        count = len(headers)
        self.headers: list[HeaderCell] = [
            HeaderCell(text=title, color=BOLD, width=1 / count, alignment=Alignment.LEFT)
            for title in headers
        ]
        self.row_limit = 1000
        self._rows: list[list[Cell]] = []
        self._lock = threading.Lock()

    @property
    def rows(self) -> list[list[Cell]]:
        """A copy of the rows the table currently holds."""
        with self._lock:
            return [list(row) for row in self._rows]

    def add_row(self, *cells: Cell) -> None:
        """Append a row, dropping the oldest rows once the limit is reached."""
        self.set_row(-1, *cells)

    def set_row(self, at: int, *cells: Cell) -> None:
        """Replace the row at ``at``; append it if ``at`` is negative or too large."""
        with self._lock:
            if at < 0 or len(self._rows) <= at:
                if len(self._rows) > self.row_limit:
                    del self._rows[: len(self._rows) - 1 - self.row_limit]
                self._rows.append(list(cells))
            else:
                self._rows[at] = list(cells)

    def render(self, width: int, height: int) -> str:
        """Return the table drawn for a terminal of the given size."""
        with self._lock:
            return self._render(width, height)

    def draw(self, stream: TextIO | None = None) -> None:
        """Clear the terminal and draw the table sized to it."""
        out = stream if stream is not None else sys.stdout
        try:
            size = os.get_terminal_size(out.fileno())
        except (AttributeError, OSError, ValueError):
            size = shutil.get_terminal_size()
        width, height = size.columns, size.lines

        with self._lock:
            out.write("\033[3J\033[0;0H\r")
            out.write(f"\033[{height + 1}M")
            out.write("\033[0;0H\r")
            out.write(self._render(width, height))
        out.flush()

    def _render(self, width: int, height: int) -> str:
        rows = self._rows
        if height > 5 and len(rows) > height - 5:
            rows = rows[len(rows) - (height - 5):]

        lines = [
            self._border(width, "┌", "┬", "┐"),
            self._line(width, self.headers),
            self._border(width, "├", "┼", "┤"),
        ]
        lines.extend(self._line(width, row) for row in rows)
        lines.append(self._border(width, "└", "┴", "┘"))
        return "".join(line + "\n" for line in lines)

    def _column_width(self, width: int, header: HeaderCell) -> int:
        return int(width * header.width)

    def _line(self, width: int, cells: list[Cell] | list[HeaderCell]) -> str:
        if len(cells) < len(self.headers):
            raise ValueError(
                f"row has {len(cells)} cells but the table has {len(self.headers)} columns"
            )
        parts = ["│"]
        for header, cell in zip(self.headers, cells):
            w = self._column_width(width, header)
            text = header.alignment.format(" " + cell.text + " ", w - 1)
            parts.append(cell._paint(text))
            parts.append("│")
        return "".join(parts)

    def _border(self, width: int, left: str, separator: str, right: str) -> str:
        segments = ["─" * (self._column_width(width, header) - 1) for header in self.headers]
        return left + separator.join(segments) + right