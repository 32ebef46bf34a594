# menugraph/tree_builder.py
"""
Menu Tree Builder — rows + header roles → nested MenuNode tree + product list.

For each data row the level cells are walked in header order; every
non-blank cell descends into (or creates) the child keyed by that literal.
A row may fill only a prefix of the levels: its product attaches to the node
reached at the last non-blank level, i.e. it applies to that whole branch.

Row-level problems never abort the build. They are returned as RowWarning
records alongside the best-effort Catalog:
  - product cell not of the form `selections$price`
  - more selection tokens than there are levels
  - a level value after a blank (or `any`) level cell
  - unparsable / negative price (row kept, price 0)

Product selections always have one token per level: a short expression is
padded with the wildcard for the trailing levels.

Public API
----------
    build_catalog(text, title="") -> (Catalog, [RowWarning, ...])
    build_catalog_from_rows(rows, title="") -> (Catalog, [RowWarning, ...])
"""

from __future__ import annotations

import logging
import re
from types import MappingProxyType
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from .errors import MalformedCellError
from .menu_types import WILDCARD, Catalog, MenuNode, Product, RowWarning
from .parsers.product_expression import display_name, parse_product_value
from .parsers.row_parser import RowSchema, tokenize, tokenize_rows

log = logging.getLogger(__name__)

_SLUG_RE = re.compile(r"[^a-z0-9]+")


def _slug(selections: Sequence[str]) -> str:
    text = "_".join(selections).lower()
    return _SLUG_RE.sub("_", text).strip("_") or "item"


def make_product_id(selections: Sequence[str], price_cents: int, row: int) -> str:
    """Deterministic, row-scoped id: one product per row keeps it unique."""
    return f"menu_{_slug(selections)}_{price_cents}_r{row}"


# ---------------------------------------------------------------------------
# Mutable build-time node
# ---------------------------------------------------------------------------

class _NodeBuilder:
    def __init__(self, level_name: Optional[str], value: Optional[str], depth: int, title: Optional[str]):
        self.level_name = level_name
        self.value = value
        self.depth = depth
        self.title = title
        self.children: Dict[str, "_NodeBuilder"] = {}
        self.product_ids: List[str] = []

    def child(self, value: str, level_names: Sequence[str]) -> "_NodeBuilder":
        node = self.children.get(value)
        if node is None:
            depth = self.depth + 1
            next_level = level_names[depth] if depth < len(level_names) else None
            node = _NodeBuilder(next_level, value, depth, title=value)
            self.children[value] = node
        return node

    def freeze(self) -> MenuNode:
        return MenuNode(
            level_name=self.level_name,
            value=self.value,
            title=self.title,
            depth=self.depth,
            children=MappingProxyType({k: c.freeze() for k, c in self.children.items()}),
            product_ids=tuple(self.product_ids),
        )


# ---------------------------------------------------------------------------
# Row handling
# ---------------------------------------------------------------------------

def _row_path(level_cells: Sequence[str]) -> Tuple[Tuple[str, ...], Optional[str]]:
    """
    Return (path, problem). The path is the run of literal cells from the
    first level; it stops at the first blank or `any` cell. Any non-blank
    cell after the stop point is a problem.
    """
    path: List[str] = []
    stopped_at: Optional[int] = None
    for idx, value in enumerate(level_cells):
        if stopped_at is None:
            if value and value != WILDCARD:
                path.append(value)
                continue
            stopped_at = idx
            continue
        if value:
            what = "wildcard" if level_cells[stopped_at] == WILDCARD else "blank"
            return tuple(path), f"level value {value!r} follows a {what} level cell"
    return tuple(path), None


def _build(schema: RowSchema, rows: Iterable[Tuple[int, Sequence[str]]], title: str) -> Tuple[Catalog, List[RowWarning]]:
    level_names = schema.level_names
    n_levels = len(level_names)

    root = _NodeBuilder(level_names[0], None, 0, title=title or None)
    products: List[Product] = []
    level_options: List[List[str]] = [[] for _ in level_names]
    seen_options: List[set] = [set() for _ in level_names]
    warnings: List[RowWarning] = []

    def _warn(row_num: int, message: str, cell: str = "") -> None:
        log.warning("Row %d skipped: %s", row_num, message)
        warnings.append(RowWarning(row=row_num, message=message, cell=cell))

    for row_num, cells in rows:
        level_cells = schema.level_cells(cells)
        product_cell = schema.product_cell(cells)

        if not any(level_cells) and not product_cell:
            continue

        path, problem = _row_path(level_cells)
        if problem:
            _warn(row_num, problem)
            continue

        try:
            expr = parse_product_value(product_cell)
        except MalformedCellError as e:
            _warn(row_num, str(e), cell=e.cell)
            continue

        selections: Tuple[str, ...] = ()
        if expr is not None:
            selections = expr.selections
            if len(selections) > n_levels:
                _warn(
                    row_num,
                    f"product has {len(selections)} selections but there are {n_levels} levels",
                    cell=product_cell,
                )
                continue
            if len(selections) < n_levels:
                selections = selections + (WILDCARD,) * (n_levels - len(selections))
            if expr.price_warning:
                warnings.append(RowWarning(row=row_num, message=expr.price_warning, cell=product_cell))

        node = root
        for depth, value in enumerate(path):
            if value not in seen_options[depth]:
                seen_options[depth].add(value)
                level_options[depth].append(value)
            node = node.child(value, level_names)

        if expr is None:
            continue

        product = Product(
            id=make_product_id(selections, expr.price_cents, row_num),
            name=display_name(selections, expr.price_cents),
            price_cents=expr.price_cents,
            selections=selections,
            source=MappingProxyType({
                "row": row_num,
                "original_value": expr.raw,
                "path": path,
                "has_wildcards": WILDCARD in selections,
            }),
        )
        products.append(product)
        node.product_ids.append(product.id)

    catalog = Catalog(
        title=title or "",
        levels=schema.levels,
        tree=root.freeze(),
        products=tuple(products),
        level_options=tuple(tuple(opts) for opts in level_options),
    )
    log.info(
        "Parsed %d products across %d menu levels (%d row warnings)",
        len(products), n_levels, len(warnings),
    )
    return catalog, warnings


def build_catalog(text: str, title: str = "") -> Tuple[Catalog, List[RowWarning]]:
    """
    Parse menu CSV text into a Catalog plus non-fatal row warnings.
    Raises ParseError for fatal header problems.
    """
    schema, rows = tokenize(text)
    log.debug("Menu levels: %s; product column %d", list(schema.level_names), schema.product_column)
    return _build(schema, rows, title)


def build_catalog_from_rows(rows: Iterable[Sequence[str]], title: str = "") -> Tuple[Catalog, List[RowWarning]]:
    """Same as build_catalog() for rows already split into cells."""
    schema, numbered = tokenize_rows(rows)
    return _build(schema, numbered, title)
