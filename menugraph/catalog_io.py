# menugraph/catalog_io.py
"""
Catalog import / export helpers around the core compiler.

- catalog_to_csv(catalog)          → menu CSV that rebuilds the same catalog
- catalog_to_dict / catalog_from_dict
                                   → JSON-ready round trip; also accepts the
                                     legacy flat `menus` payload
- load_menu_source(text, title)    → JSON or CSV, detected like the upload flow
- rows_from_xlsx / build_catalog_from_xlsx
                                   → first worksheet via openpyxl
- sample_catalog()                 → transit-pass demo catalog
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from types import MappingProxyType
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple, Union

from .errors import CatalogFormatError
from .menu_types import WILDCARD, Catalog, Level, MenuNode, Product, RowWarning
from .parsers.product_expression import display_name, parse_price_to_cents
from .tree_builder import build_catalog, build_catalog_from_rows

# Optional XLSX support
try:
    import openpyxl  # type: ignore[import]
except Exception:  # pragma: no cover - library may not be installed
    openpyxl = None  # type: ignore[assignment]

log = logging.getLogger(__name__)

SAMPLE_TITLE = "Sample Transit Pass Catalog"
SAMPLE_CSV = """\
,rider,time span,product
,adult,two-hour,"adult+two-hour$2.50"
,adult,day,"adult+day$5.00"
,adult,month,"adult+month$100.00"
,youth,two-hour,"youth+two-hour$1.00"
,youth,day,"youth+day$2.00"
,youth,month,"youth+month$20.00"
,reduced,two-hour,"reduced+two-hour$1.50"
,reduced,day,"reduced+day$2.50"
,reduced,month,"reduced+month$25.00"
"""


# ---------------------------------------------------------------------------
# CSV export
# ---------------------------------------------------------------------------

def _csv_cell(value: str) -> str:
    if "," in value:
        return f'"{value}"'
    return value


def _format_price(cents: int) -> str:
    return f"{cents / 100:.2f}"


def product_expression_text(product: Product) -> str:
    return "+".join(product.selections) + "$" + _format_price(product.price_cents)


def catalog_to_csv(catalog: Catalog) -> str:
    """
    Render a catalog as menu CSV. Rows come out in product order; branches
    without products are emitted as structure-only rows at the end.
    """
    n_levels = len(catalog.levels)
    lines = ["," + ",".join(_csv_cell(n) for n in catalog.level_names) + ",product"]

    attached: Dict[str, Tuple[str, ...]] = {}
    for path, pid in catalog.iter_product_refs():
        attached.setdefault(pid, path)

    def _row(path: Sequence[str], product_cell: str) -> str:
        cells = [_csv_cell(v) for v in path] + [""] * (n_levels - len(path))
        return "," + ",".join(cells) + "," + product_cell

    for product in catalog.products:
        path = attached.get(product.id)
        if path is None:
            log.warning("Product %s is not in the menu tree; exporting at the root", product.id)
            path = ()
        lines.append(_row(path, f'"{product_expression_text(product)}"'))

    for path, node in catalog.iter_nodes():
        if path and node.is_leaf and not node.product_ids:
            lines.append(_row(path, ""))

    return "\n".join(lines) + "\n"


# ---------------------------------------------------------------------------
# dict / JSON
# ---------------------------------------------------------------------------

def catalog_to_dict(catalog: Catalog) -> Dict[str, Any]:
    return catalog.to_dict()


def _parse_levels(raw: Any) -> Tuple[Level, ...]:
    if not isinstance(raw, list) or not raw:
        raise CatalogFormatError("catalog 'levels' must be a non-empty list")
    levels: List[Level] = []
    for i, item in enumerate(raw):
        if isinstance(item, str):
            name, column = item, i + 1
        elif isinstance(item, dict) and isinstance(item.get("name"), str):
            name = item["name"]
            try:
                column = int(item.get("column", i + 1))
            except (TypeError, ValueError):
                raise CatalogFormatError(f"level #{i} has an invalid column: {item.get('column')!r}")
        else:
            raise CatalogFormatError(f"level #{i} must be a name or an object with 'name'")
        levels.append(Level(name=name.strip(), index=i, column=column))
    return tuple(levels)


def _parse_node(raw: Any, depth: int, level_names: Sequence[str], value: Optional[str]) -> MenuNode:
    if not isinstance(raw, dict):
        raise CatalogFormatError(f"menu node at depth {depth} must be an object")
    children_raw = raw.get("children") or {}
    if not isinstance(children_raw, dict):
        raise CatalogFormatError(f"menu node children at depth {depth} must be an object")
    products_raw = raw.get("products") or []
    if not isinstance(products_raw, list):
        raise CatalogFormatError(f"menu node products at depth {depth} must be a list")

    default_level = level_names[depth] if depth < len(level_names) else None
    children = {
        str(k): _parse_node(v, depth + 1, level_names, str(k))
        for k, v in children_raw.items()
    }
    return MenuNode(
        level_name=raw.get("level", default_level),
        value=value,
        title=raw.get("title"),
        depth=depth,
        children=MappingProxyType(children),
        product_ids=tuple(str(p) for p in products_raw),
    )


def _parse_product(raw: Any, pad_to: Optional[int] = None) -> Product:
    if not isinstance(raw, dict) or not raw.get("id"):
        raise CatalogFormatError("each product must be an object with an 'id'")

    selections = raw.get("selections")
    if selections is None:
        selections = (raw.get("metadata") or {}).get("selections") or []
    if not isinstance(selections, list):
        raise CatalogFormatError(f"product {raw['id']} selections must be a list")
    selections = tuple(str(s) for s in selections)
    if pad_to is not None and len(selections) < pad_to:
        selections = selections + (WILDCARD,) * (pad_to - len(selections))

    if "price_cents" in raw:
        price = raw["price_cents"]
    else:
        price = raw.get("price", 0)
    if isinstance(price, str):
        price, _ = parse_price_to_cents(price)
    try:
        price_cents = max(int(price), 0)
    except (TypeError, ValueError):
        raise CatalogFormatError(f"product {raw['id']} has an invalid price: {price!r}")

    name = raw.get("name") or display_name(selections, price_cents)
    source = raw.get("source") or {}
    if not isinstance(source, dict):
        source = {}
    source = {k: tuple(v) if isinstance(v, list) else v for k, v in source.items()}
    return Product(
        id=str(raw["id"]),
        name=str(name),
        price_cents=price_cents,
        selections=selections,
        source=MappingProxyType(dict(source)),
    )


def _options_from_tree(tree: MenuNode, n_levels: int) -> Tuple[Tuple[str, ...], ...]:
    options: List[List[str]] = [[] for _ in range(n_levels)]
    stack = [tree]
    # breadth-first so level order follows first appearance per level
    while stack:
        nxt: List[MenuNode] = []
        for node in stack:
            for value, child in node.children.items():
                if node.depth < n_levels and value not in options[node.depth]:
                    options[node.depth].append(value)
                nxt.append(child)
        stack = nxt
    return tuple(tuple(o) for o in options)


def _from_legacy_menus(data: Mapping[str, Any], title: str) -> Catalog:
    """
    Legacy payload: {"menus": {level: {option: {"subMenu": ...}}}, "products": [...]}
    with product selections under metadata.selections. The tree is rebuilt from
    each product's literal selection prefix.
    """
    menus = data.get("menus")
    if not isinstance(menus, dict) or not menus:
        raise CatalogFormatError("legacy catalog 'menus' must be a non-empty object")
    headers = data.get("menuHeaders")
    levels = _parse_levels(headers if headers else list(menus.keys()))
    n_levels = len(levels)
    products = [_parse_product(p, pad_to=n_levels) for p in data.get("products") or []]

    root: Dict[str, Any] = {"children": {}, "products": []}
    for product in products:
        node = root
        for token in product.selections:
            if token == WILDCARD:
                break
            node = node["children"].setdefault(token, {"title": token, "children": {}, "products": []})
        node["products"].append(product.id)

    tree = _parse_node(root, 0, [l.name for l in levels], None)
    level_options = tuple(
        tuple(str(opt) for opt in (menus.get(l.name) or {}).keys()) for l in levels
    )
    return Catalog(
        title=str(data.get("title") or title or ""),
        levels=levels,
        tree=tree,
        products=tuple(products),
        level_options=level_options,
    )


def catalog_from_dict(data: Mapping[str, Any], title: str = "") -> Catalog:
    """Rebuild a Catalog from catalog_to_dict() output (or a legacy payload)."""
    if not isinstance(data, dict):
        raise CatalogFormatError("catalog payload must be an object")
    if "tree" not in data and "menus" in data:
        return _from_legacy_menus(data, title)

    levels = _parse_levels(data.get("levels"))
    level_names = [l.name for l in levels]
    tree = _parse_node(data.get("tree") or {}, 0, level_names, None)
    products = tuple(_parse_product(p) for p in data.get("products") or [])

    raw_options = data.get("level_options")
    if isinstance(raw_options, list) and len(raw_options) == len(levels):
        level_options = tuple(tuple(str(o) for o in opts) for opts in raw_options)
    else:
        level_options = _options_from_tree(tree, len(levels))

    return Catalog(
        title=str(data.get("title") or title or ""),
        levels=levels,
        tree=tree,
        products=products,
        level_options=level_options,
    )


def catalog_to_json(catalog: Catalog, indent: Optional[int] = 2) -> str:
    return json.dumps(catalog.to_dict(), indent=indent, ensure_ascii=False)


def load_menu_source(text: str, title: str = "") -> Tuple[Catalog, List[RowWarning]]:
    """
    Accept either a JSON catalog or menu CSV. JSON is detected by a leading
    `{` or `[`. Raises ParseError (CSV) or CatalogFormatError (JSON).
    """
    stripped = (text or "").strip()
    if stripped.startswith("{") or stripped.startswith("["):
        log.info("Parsing JSON menu data...")
        try:
            data = json.loads(stripped)
        except json.JSONDecodeError as e:
            raise CatalogFormatError(f"Invalid JSON format: {e}") from e
        return catalog_from_dict(data, title=title), []

    log.info("Parsing CSV menu data...")
    return build_catalog(text, title=title)


# ---------------------------------------------------------------------------
# XLSX
# ---------------------------------------------------------------------------

def _xlsx_cell_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value).strip()


def rows_from_xlsx(xlsx_path: Union[str, Path]) -> List[List[str]]:
    """Cells of the first worksheet as strings (None → "")."""
    if openpyxl is None:
        raise RuntimeError(
            "openpyxl is required for XLSX menu imports. "
            "Install it in your environment to enable XLSX imports.",
        )

    xlsx_path = Path(xlsx_path)
    if not xlsx_path.exists():
        raise FileNotFoundError(xlsx_path)

    wb = openpyxl.load_workbook(xlsx_path, data_only=True, read_only=True)  # type: ignore[call-arg]
    try:
        if not wb.worksheets:
            raise CatalogFormatError(f"XLSX file {xlsx_path} has no worksheets")
        ws = wb.worksheets[0]
        return [
            [_xlsx_cell_text(v) for v in row]
            for row in ws.iter_rows(values_only=True)
        ]
    finally:
        wb.close()


def build_catalog_from_xlsx(xlsx_path: Union[str, Path], title: str = "") -> Tuple[Catalog, List[RowWarning]]:
    return build_catalog_from_rows(rows_from_xlsx(xlsx_path), title=title)


# ---------------------------------------------------------------------------
# Demo data
# ---------------------------------------------------------------------------

def sample_catalog() -> Catalog:
    catalog, _ = build_catalog(SAMPLE_CSV, title=SAMPLE_TITLE)
    return catalog
