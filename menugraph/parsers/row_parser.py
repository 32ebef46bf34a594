# menugraph/parsers/row_parser.py
"""
Row Parser — tokenizes menu CSV text into typed rows.

Menu CSV layout:

    ,rider,time span,product
    ,adult,two-hour,"adult+two-hour$2.50"
    ,youth,,"youth+any$1.00"

- Column 0 is an ignorable leading column (row labels / blanks).
- Every non-blank header cell before the first `product` header is a Level.
- The `product` column holds a `selections$price` expression.

Quoting is deliberately simple: each `"` toggles the in-quotes state and is
dropped. Escaped quotes ("") inside a quoted field are NOT supported.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from ..errors import ParseError
from ..menu_types import Level

PRODUCT_HEADER = "product"

_NEWLINE_RE = re.compile(r"\r\n|\r|\n")


def parse_line(line: str) -> List[str]:
    """Split one CSV line on commas outside double quotes; fields are trimmed."""
    result: List[str] = []
    current: List[str] = []
    in_quotes = False

    for ch in line:
        if ch == '"':
            in_quotes = not in_quotes
        elif ch == "," and not in_quotes:
            result.append("".join(current).strip())
            current = []
        else:
            current.append(ch)

    result.append("".join(current).strip())
    return result


def split_lines(text: str) -> List[Tuple[int, str]]:
    """
    Split raw text into (line_number, line) pairs, 1-based, skipping lines
    that are blank after stripping. A leading BOM is dropped.
    """
    if text.startswith("\ufeff"):
        text = text[1:]
    out: List[Tuple[int, str]] = []
    for idx, line in enumerate(_NEWLINE_RE.split(text), start=1):
        if line.strip():
            out.append((idx, line))
    return out


# ---------------------------------------------------------------------------
# Header → schema
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class RowSchema:
    """Level name → column index, derived once from the header row."""
    levels: Tuple[Level, ...]
    product_column: int

    @property
    def level_names(self) -> Tuple[str, ...]:
        return tuple(l.name for l in self.levels)

    def column_for(self, level_name: str) -> Optional[int]:
        for level in self.levels:
            if level.name == level_name:
                return level.column
        return None

    def level_cells(self, row: Sequence[str]) -> List[str]:
        """One trimmed cell per level, blank when the row is short."""
        return [_cell(row, level.column) for level in self.levels]

    def product_cell(self, row: Sequence[str]) -> str:
        return _cell(row, self.product_column)

    def as_mapping(self) -> Dict[str, int]:
        return {l.name: l.column for l in self.levels}


def _cell(row: Sequence[str], idx: int) -> str:
    if idx < len(row):
        return (row[idx] or "").strip()
    return ""


def detect_schema(header: Sequence[str]) -> RowSchema:
    """
    Scan header columns left→right (skipping the leading ignorable column).
    Raises ParseError("no product column") / ParseError("no levels").
    """
    product_column = -1
    names: List[Tuple[str, int]] = []

    for idx in range(1, len(header)):
        cell = (header[idx] or "").strip()
        if cell.lower() == PRODUCT_HEADER:
            product_column = idx
            break
        if cell:
            names.append((cell, idx))

    if product_column == -1:
        raise ParseError("no product column")
    if not names:
        raise ParseError("no levels")

    seen = set()
    for name, _ in names:
        if name in seen:
            raise ParseError(f"duplicate level name: {name!r}")
        seen.add(name)

    levels = tuple(Level(name=n, index=i, column=c) for i, (n, c) in enumerate(names))
    return RowSchema(levels=levels, product_column=product_column)


def tokenize(text: str) -> Tuple[RowSchema, List[Tuple[int, List[str]]]]:
    """
    Parse full CSV text into (schema, [(line_number, cells), ...]).
    The first non-blank line is the header.
    """
    lines = split_lines(text)
    if not lines:
        raise ParseError("menu source is empty")

    _, header_line = lines[0]
    schema = detect_schema(parse_line(header_line))
    rows = [(num, parse_line(line)) for num, line in lines[1:]]
    return schema, rows


def tokenize_rows(rows: Iterable[Sequence[str]]) -> Tuple[RowSchema, List[Tuple[int, List[str]]]]:
    """Same as tokenize() for pre-split rows (e.g. spreadsheet cells)."""
    numbered = [
        (idx, [(c or "").strip() for c in row])
        for idx, row in enumerate(rows, start=1)
    ]
    numbered = [(idx, row) for idx, row in numbered if any(row)]
    if not numbered:
        raise ParseError("menu source is empty")
    _, header = numbered[0]
    return detect_schema(header), numbered[1:]
