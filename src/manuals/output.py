"""Formatting of CLI output."""
from __future__ import annotations

import json
from collections.abc import Sequence
from enum import Enum
from typing import Any

from pydantic import BaseModel
from rich.console import Console

GUTTER = 2
ELLIPSIS = "..."
_SIZE_UNITS = "KMGTPE"


class OutputFormat(str, Enum):
    """Supported output formats."""

    TABLE = "table"
    JSON = "json"
    TEXT = "text"

    @classmethod
    def parse(cls, value: str | None) -> OutputFormat:
        """Parse a format name; unknown or empty names fall back to TABLE."""
        try:
            return cls((value or "").lower())
        except ValueError:
            return cls.TABLE


def truncate(s: str, max_len: int) -> str:
    """Truncate ``s`` to at most ``max_len`` characters.

    Strings longer than ``max_len`` end in "..." when there is room for it,
    so the result is exactly ``max_len`` long.
    """
    if len(s) <= max_len:
        return s
    if max_len <= len(ELLIPSIS):
        return s[:max(max_len, 0)]
    return s[: max_len - len(ELLIPSIS)] + ELLIPSIS


def format_size(num_bytes: int) -> str:
    """Format a byte count using 1024-based units, e.g. ``1.5 KB``."""
    unit = 1024
    if num_bytes < unit:
        return f"{num_bytes} B"
    div, exp = unit, 0
    n = num_bytes // unit
    while n >= unit:
        div *= unit
        exp += 1
        n //= unit
    return f"{num_bytes / div:.1f} {_SIZE_UNITS[exp]}B"


def _to_jsonable(value: Any) -> Any:
    if isinstance(value, BaseModel):
        return value.model_dump(mode="json", exclude_none=True)
    if isinstance(value, (list, tuple)):
        return [_to_jsonable(item) for item in value]
    if isinstance(value, dict):
        return {key: _to_jsonable(item) for key, item in value.items()}
    return value


def align_columns(lines: Sequence[Sequence[str]], gutter: int = GUTTER) -> list[str]:
    """Align cells on tab stops.

    Each column is as wide as its widest cell plus ``gutter``. The last cell
    of a line is not padded.
    """
    widths: dict[int, int] = {}
    for cells in lines:
        for i, cell in enumerate(cells[:-1]):
            widths[i] = max(widths.get(i, 0), len(cell))

    aligned = []
    for cells in lines:
        if not cells:
            aligned.append("")
            continue
        padded = "".join(
            cell.ljust(widths[i] + gutter) for i, cell in enumerate(cells[:-1])
        )
        aligned.append(padded + cells[-1])
    return aligned


class Renderer:
    """Writes command results in the configured output format."""

    def __init__(self, output_format: str = "table", console: Console | None = None):
        self._format = OutputFormat.parse(output_format)
        self._console = console or Console()

    @property
    def format(self) -> OutputFormat:
        return self._format

    @property
    def is_json(self) -> bool:
        return self._format is OutputFormat.JSON

    def _write(self, text: str, end: str = "") -> None:
        # Console.out applies no markup, emoji codes or wrapping.
        self._console.out(text, end=end, highlight=False)

    def json(self, value: Any) -> None:
        """Write ``value`` as an indented JSON document.

        Raises:
            TypeError: If the value is not JSON serializable.
        """
        self._write(json.dumps(_to_jsonable(value), indent=2), end="\n")

    def table(self, headers: Sequence[str], rows: Sequence[Sequence[str]]) -> None:
        """Write a header line, a rule under it, then the column-aligned rows.

        The rule ends the header's column block, so the header is aligned
        on its own cells and the rows only among themselves.
        """
        header_line = (" " * GUTTER).join(headers)
        self._write(header_line, end="\n")
        self._write("-" * len(header_line), end="\n")
        for line in align_columns([list(row) for row in rows]):
            self._write(line, end="\n")

    def text(self, template: str, *args: Any) -> None:
        """Write printf-style formatted text as-is."""
        self._write(template % args if args else template)

    def println(self, *args: Any) -> None:
        """Write space-separated values followed by a newline."""
        self._write(" ".join(str(arg) for arg in args), end="\n")
