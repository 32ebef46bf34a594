# menugraph/compiler.py
"""
Pipeline façade: raw menu text → Catalog → ValidationReport → Cards.

    compiled = compile_menu(csv_text, title="Transit Passes")
    compiled.report.is_valid
    compiled.cards[0].options

Every stage is a pure function of its input, so results are memoized by
(text, title, branching). Cards use the deterministic sequential allocator
here; call card_compiler.compile_cards() directly to inject another one.
"""

from __future__ import annotations

import hashlib
import logging
from dataclasses import dataclass
from functools import lru_cache
from typing import Any, Dict, Optional, Tuple

from .card_compiler import SequentialKeyAllocator, compile_cards
from .config import get_settings
from .menu_types import Card, Catalog, RowWarning, ValidationReport
from .tree_builder import build_catalog
from .tree_validator import validate_catalog

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class CompiledMenu:
    catalog: Catalog
    row_warnings: Tuple[RowWarning, ...]
    report: ValidationReport
    cards: Tuple[Card, ...]

    @property
    def is_valid(self) -> bool:
        return self.report.is_valid

    def to_dict(self) -> Dict[str, Any]:
        return {
            "title": self.catalog.title,
            "report": self.report.to_dict(),
            "warnings": [w.to_dict() for w in self.row_warnings],
            "cards": [c.to_dict() for c in self.cards],
        }


def content_hash(text: str) -> str:
    return hashlib.sha256(text.encode("utf-8")).hexdigest()


@lru_cache(maxsize=64)
def _compile_cached(text: str, title: str, branching: str, key_prefix: str, link_products: bool) -> CompiledMenu:
    catalog, warnings = build_catalog(text, title=title)
    report = validate_catalog(catalog)

    cards: Tuple[Card, ...] = ()
    if report.is_valid:
        cards = tuple(compile_cards(
            catalog,
            allocator=SequentialKeyAllocator(prefix=key_prefix),
            branching=branching,
            link_products=link_products,
        ))
    else:
        log.warning("Skipping card compilation for %r: catalog is invalid", title)

    return CompiledMenu(catalog=catalog, row_warnings=tuple(warnings), report=report, cards=cards)


def compile_menu(text: str, title: str = "", branching: Optional[str] = None) -> CompiledMenu:
    """
    Build, validate and (when valid) compile cards for one menu source.
    Raises ParseError for fatal header problems.
    """
    settings = get_settings()
    log.debug("Compiling menu %r (sha256 %s)", title, content_hash(text)[:12])
    return _compile_cached(
        text,
        title,
        branching or settings.card_branching,
        settings.card_key_prefix,
        settings.link_product_cards,
    )


def clear_compile_cache() -> None:
    _compile_cached.cache_clear()
