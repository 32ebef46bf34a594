"""
menugraph types — catalog, tree, validation and card payloads.

Everything produced by the compiler is immutable once built:
- Catalog / MenuNode / Product are frozen dataclasses; node children are
  exposed through read-only mappings.
- Card / CardOption / LookupSpec are plain data for the rendering layer.

Only NavigationSession (menugraph/navigation.py) carries mutable state.

Every public type has a to_dict() that returns JSON-ready structures so the
rendering layer never needs to know about these classes.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, Dict, Iterator, List, Mapping, Optional, Tuple

WILDCARD = "any"


def _plain(value: Any) -> Any:
    """Read-only mappings and tuples → dicts and lists, for JSON output."""
    if isinstance(value, Mapping):
        return {k: _plain(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_plain(v) for v in value]
    return value


# ────────────────────────────────────────────────
# Parsing primitives
# ────────────────────────────────────────────────

@dataclass(frozen=True)
class Level:
    """One named dimension of the hierarchy, fixed by the header row."""
    name: str
    index: int   # 0-based position among levels
    column: int  # CSV column index the values are read from


@dataclass(frozen=True)
class ProductExpression:
    """Parsed `sel1+sel2+...$price` cell."""
    selections: Tuple[str, ...]
    price_cents: int
    raw: str = ""
    price_warning: Optional[str] = None  # set when the price fell back to 0

    @property
    def has_wildcards(self) -> bool:
        return WILDCARD in self.selections

    @property
    def wildcard_count(self) -> int:
        return sum(1 for s in self.selections if s == WILDCARD)


@dataclass(frozen=True)
class RowWarning:
    """Non-fatal, row-level problem; the row was skipped or patched."""
    row: int
    message: str
    cell: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {"row": self.row, "message": self.message, "cell": self.cell}

    def __str__(self) -> str:
        return f"row {self.row}: {self.message}"


# ────────────────────────────────────────────────
# Catalog
# ────────────────────────────────────────────────

@dataclass(frozen=True)
class Product:
    id: str
    name: str
    price_cents: int
    selections: Tuple[str, ...]
    source: Mapping[str, Any] = field(default_factory=lambda: MappingProxyType({}))

    @property
    def wildcard_count(self) -> int:
        return sum(1 for s in self.selections if s == WILDCARD)

    @property
    def price_display(self) -> str:
        return f"${self.price_cents / 100:.2f}"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "price_cents": self.price_cents,
            "selections": list(self.selections),
            "source": _plain(self.source),
        }


@dataclass(frozen=True)
class MenuNode:
    """
    One decision point. `level_name` is the level whose values key
    `children`; `value` is the literal that led here (None for the root).
    """
    level_name: Optional[str]
    value: Optional[str] = None
    title: Optional[str] = None
    depth: int = 0
    children: Mapping[str, "MenuNode"] = field(default_factory=lambda: MappingProxyType({}))
    product_ids: Tuple[str, ...] = ()

    @property
    def is_leaf(self) -> bool:
        return not self.children

    def child(self, value: str) -> Optional["MenuNode"]:
        return self.children.get(value)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "level": self.level_name,
            "value": self.value,
            "title": self.title,
            "depth": self.depth,
            "children": {k: v.to_dict() for k, v in self.children.items()},
            "products": list(self.product_ids),
        }


@dataclass(frozen=True)
class Catalog:
    title: str
    levels: Tuple[Level, ...]
    tree: MenuNode
    products: Tuple[Product, ...]
    level_options: Tuple[Tuple[str, ...], ...] = ()
    _by_id: Mapping[str, Product] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        by_id: Dict[str, Product] = {}
        for p in self.products:
            by_id.setdefault(p.id, p)
        object.__setattr__(self, "_by_id", MappingProxyType(by_id))

    @property
    def level_names(self) -> Tuple[str, ...]:
        return tuple(l.name for l in self.levels)

    def product_by_id(self, product_id: str) -> Optional[Product]:
        return self._by_id.get(product_id)

    def options_for_level(self, level_index: int) -> Tuple[str, ...]:
        if 0 <= level_index < len(self.level_options):
            return self.level_options[level_index]
        return ()

    def iter_nodes(self) -> Iterator[Tuple[Tuple[str, ...], MenuNode]]:
        """Depth-first (path, node) pairs in insertion order, root first."""
        stack: List[Tuple[Tuple[str, ...], MenuNode]] = [((), self.tree)]
        while stack:
            path, node = stack.pop()
            yield path, node
            for value, child in reversed(list(node.children.items())):
                stack.append((path + (value,), child))

    def iter_product_refs(self) -> Iterator[Tuple[Tuple[str, ...], str]]:
        """(path, product_id) for every product reference in the tree."""
        for path, node in self.iter_nodes():
            for pid in node.product_ids:
                yield path, pid

    def to_dict(self) -> Dict[str, Any]:
        return {
            "title": self.title,
            "levels": [
                {"name": l.name, "index": l.index, "column": l.column}
                for l in self.levels
            ],
            "tree": self.tree.to_dict(),
            "products": [p.to_dict() for p in self.products],
            "level_options": [list(opts) for opts in self.level_options],
        }


# ────────────────────────────────────────────────
# Validation
# ────────────────────────────────────────────────

@dataclass(frozen=True)
class ValidationIssue:
    code: str
    message: str
    product_id: Optional[str] = None
    path: Tuple[str, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "code": self.code,
            "message": self.message,
            "product_id": self.product_id,
            "path": list(self.path),
        }

    def __str__(self) -> str:
        return self.message


@dataclass(frozen=True)
class ValidationReport:
    errors: Tuple[ValidationIssue, ...] = ()
    warnings: Tuple[ValidationIssue, ...] = ()
    stats: Mapping[str, Any] = field(default_factory=lambda: MappingProxyType({}))

    @property
    def is_valid(self) -> bool:
        return len(self.errors) == 0

    def error_codes(self) -> List[str]:
        return [e.code for e in self.errors]

    def warning_codes(self) -> List[str]:
        return [w.code for w in self.warnings]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "is_valid": self.is_valid,
            "errors": [e.to_dict() for e in self.errors],
            "warnings": [w.to_dict() for w in self.warnings],
            "stats": _plain(self.stats),
        }


# ────────────────────────────────────────────────
# Navigation cards
# ────────────────────────────────────────────────

class CardType(str, Enum):
    SELECTOR = "selector"
    PRODUCT = "product"


@dataclass(frozen=True)
class LookupSpec:
    """
    Terminal action on a selector option: resolve `prefix + (option,)`
    (padded by the caller's later choices, if any) against the catalog.
    """
    level_index: int
    option: str
    prefix: Tuple[str, ...] = ()
    levels: Tuple[str, ...] = ()
    product_ids: Tuple[str, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "level_index": self.level_index,
            "option": self.option,
            "prefix": list(self.prefix),
            "levels": list(self.levels),
            "product_ids": list(self.product_ids),
        }


@dataclass(frozen=True)
class CardOption:
    value: str
    next_card_id: Optional[str] = None
    lookup: Optional[LookupSpec] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "value": self.value,
            "next_card_id": self.next_card_id,
            "lookup": self.lookup.to_dict() if self.lookup else None,
        }


@dataclass(frozen=True)
class Card:
    id: str
    type: CardType
    name: str
    level_index: Optional[int] = None
    path: Tuple[str, ...] = ()
    options: Tuple[CardOption, ...] = ()
    product_ref: Optional[str] = None
    display_fields: Mapping[str, Any] = field(default_factory=lambda: MappingProxyType({}))
    next_card_id: Optional[str] = None

    @property
    def is_selector(self) -> bool:
        return self.type is CardType.SELECTOR

    def option(self, value: str) -> Optional[CardOption]:
        for opt in self.options:
            if opt.value == value:
                return opt
        return None

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {
            "id": self.id,
            "type": self.type.value,
            "name": self.name,
        }
        if self.is_selector:
            out["level_index"] = self.level_index
            out["path"] = list(self.path)
            out["options"] = [o.to_dict() for o in self.options]
        else:
            out["product_ref"] = self.product_ref
            out["display_fields"] = _plain(self.display_fields)
            out["next_card_id"] = self.next_card_id
        return out
