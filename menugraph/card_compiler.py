# menugraph/card_compiler.py
"""
Navigation Card Compiler — Catalog → ordered, uniquely keyed Card list.

Two passes:
  1. Plan every card, then ask the KeyAllocator for all ids at once.
     Card bodies embed forward links to other cards' ids, so every id must
     exist before any body is built.
  2. Build bodies (selector options with next-card links or lookup specs,
     product cards with display fields and a browse link).

Branching modes
---------------
"shared" (default):
    One Selector Card per level. Every option of level i links to the same
    single selector of level i+1; two branches cannot expose different
    downstream options. Options of the last level carry a LookupSpec.

"tree":
    One Selector Card per tree node that has children, keyed by its path.
    Each option links to its own child's selector, or carries a LookupSpec
    (with the full path prefix and the child's attached product ids) when
    the child has no deeper menu.

Product cards follow the selectors, in catalog.products order; each links
to the next product card for browsing.
"""

from __future__ import annotations

import abc
import logging
import random
import uuid
from dataclasses import dataclass
from types import MappingProxyType
from typing import Dict, List, Optional, Sequence, Tuple

from .config import BRANCHING_MODES, BRANCHING_SHARED, BRANCHING_TREE, get_settings
from .errors import CardCompileError
from .menu_types import (
    WILDCARD,
    Card,
    CardOption,
    CardType,
    Catalog,
    LookupSpec,
    MenuNode,
    Product,
)

log = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Key allocation
# ---------------------------------------------------------------------------

class KeyAllocator(abc.ABC):
    """Hands out globally unique card ids, in bulk."""

    @abc.abstractmethod
    def allocate(self, count: int) -> List[str]:
        raise NotImplementedError


class SequentialKeyAllocator(KeyAllocator):
    """Deterministic ids: card-0000, card-0001, ... Counter persists across calls."""

    def __init__(self, prefix: str = "card", start: int = 0):
        self.prefix = prefix
        self._next = start

    def allocate(self, count: int) -> List[str]:
        keys = [f"{self.prefix}-{self._next + i:04d}" for i in range(count)]
        self._next += count
        return keys


class RandomKeyAllocator(KeyAllocator):
    """uuid4 hex ids; pass `seed` for a reproducible sequence."""

    def __init__(self, seed: Optional[int] = None):
        self._rng = random.Random(seed) if seed is not None else None

    def _one(self) -> str:
        if self._rng is None:
            return uuid.uuid4().hex
        return uuid.UUID(int=self._rng.getrandbits(128), version=4).hex

    def allocate(self, count: int) -> List[str]:
        return [self._one() for _ in range(count)]


# ---------------------------------------------------------------------------
# Planning
# ---------------------------------------------------------------------------

@dataclass
class _CardPlan:
    kind: CardType
    level_index: Optional[int] = None
    path: Tuple[str, ...] = ()
    node: Optional[MenuNode] = None
    product: Optional[Product] = None


def _plan_cards(catalog: Catalog, branching: str) -> List[_CardPlan]:
    plans: List[_CardPlan] = []
    n_levels = len(catalog.levels)

    if branching == BRANCHING_TREE:
        for path, node in catalog.iter_nodes():
            if node.children and node.depth < n_levels:
                plans.append(_CardPlan(CardType.SELECTOR, level_index=node.depth, path=path, node=node))
    else:
        for level in catalog.levels:
            plans.append(_CardPlan(CardType.SELECTOR, level_index=level.index))

    for product in catalog.products:
        plans.append(_CardPlan(CardType.PRODUCT, product=product))
    return plans


def _allocate(allocator: KeyAllocator, count: int) -> List[str]:
    keys = list(allocator.allocate(count))
    if len(keys) != count:
        raise CardCompileError(f"key allocator returned {len(keys)} ids, expected {count}")
    if len(set(keys)) != count:
        raise CardCompileError("key allocator returned duplicate ids")
    return keys


# ---------------------------------------------------------------------------
# Bodies
# ---------------------------------------------------------------------------

def _shared_selector(catalog: Catalog, plan: _CardPlan, key: str, level_keys: Dict[int, str]) -> Card:
    idx = plan.level_index
    assert idx is not None
    level_names = catalog.level_names
    is_final = idx == len(level_names) - 1
    next_key = None if is_final else level_keys[idx + 1]

    options: List[CardOption] = []
    for value in catalog.options_for_level(idx):
        if is_final:
            options.append(CardOption(
                value=value,
                lookup=LookupSpec(level_index=idx, option=value, levels=level_names),
            ))
        else:
            options.append(CardOption(value=value, next_card_id=next_key))

    log.debug(
        "Selector %r → %s", level_names[idx], "lookup (final level)" if is_final else next_key,
    )
    return Card(
        id=key,
        type=CardType.SELECTOR,
        name=f"Select {level_names[idx]}",
        level_index=idx,
        options=tuple(options),
    )


def _tree_selector(catalog: Catalog, plan: _CardPlan, key: str, path_keys: Dict[Tuple[str, ...], str]) -> Card:
    node = plan.node
    assert node is not None and plan.level_index is not None
    level_names = catalog.level_names

    options: List[CardOption] = []
    for value, child in node.children.items():
        child_path = plan.path + (value,)
        next_key = path_keys.get(child_path)
        if next_key is not None:
            options.append(CardOption(value=value, next_card_id=next_key))
        else:
            options.append(CardOption(
                value=value,
                lookup=LookupSpec(
                    level_index=plan.level_index,
                    option=value,
                    prefix=plan.path,
                    levels=level_names,
                    product_ids=child.product_ids,
                ),
            ))
        log.debug("Selector %s: %r → %s", list(plan.path), value, next_key or "lookup")

    return Card(
        id=key,
        type=CardType.SELECTOR,
        name=f"Select {level_names[plan.level_index]}",
        level_index=plan.level_index,
        path=plan.path,
        options=tuple(options),
    )


def _product_card(product: Product, key: str, next_key: Optional[str]) -> Card:
    return Card(
        id=key,
        type=CardType.PRODUCT,
        name=product.name,
        product_ref=product.id,
        display_fields=MappingProxyType({
            "name": product.name,
            "price_cents": product.price_cents,
            "price_display": product.price_display,
            "selections": product.selections,
            "path": " → ".join("*" if s == WILDCARD else s for s in product.selections),
        }),
        next_card_id=next_key,
    )


# ---------------------------------------------------------------------------
# Public entry
# ---------------------------------------------------------------------------

def compile_cards(
    catalog: Catalog,
    allocator: Optional[KeyAllocator] = None,
    branching: Optional[str] = None,
    link_products: Optional[bool] = None,
) -> List[Card]:
    """
    Compile the navigation cards for a (validated) catalog.
    Selector cards come first, then one product card per product.
    """
    settings = get_settings()
    branching = branching or settings.card_branching
    if branching not in BRANCHING_MODES:
        raise ValueError(f"unknown branching mode {branching!r}; expected one of {BRANCHING_MODES}")
    if link_products is None:
        link_products = settings.link_product_cards
    if allocator is None:
        allocator = SequentialKeyAllocator(prefix=settings.card_key_prefix)

    # Pass 1: reserve every id before any body exists
    plans = _plan_cards(catalog, branching)
    keys = _allocate(allocator, len(plans))

    level_keys: Dict[int, str] = {}
    path_keys: Dict[Tuple[str, ...], str] = {}
    product_keys: List[str] = []
    for plan, key in zip(plans, keys):
        if plan.kind is CardType.SELECTOR:
            if branching == BRANCHING_TREE:
                path_keys[plan.path] = key
            else:
                level_keys[plan.level_index] = key
        else:
            product_keys.append(key)

    # Pass 2: bodies
    cards: List[Card] = []
    product_pos = 0
    for plan, key in zip(plans, keys):
        if plan.kind is CardType.SELECTOR:
            if branching == BRANCHING_SHARED:
                cards.append(_shared_selector(catalog, plan, key, level_keys))
            else:
                cards.append(_tree_selector(catalog, plan, key, path_keys))
            continue

        next_key = None
        if link_products and product_pos + 1 < len(product_keys):
            next_key = product_keys[product_pos + 1]
        product_pos += 1
        assert plan.product is not None
        cards.append(_product_card(plan.product, key, next_key))

    log.info(
        "Compiled %d cards (%d selectors, %d products, branching=%s) for %r",
        len(cards), len(cards) - len(product_keys), len(product_keys), branching, catalog.title,
    )
    return cards


def card_index(cards: Sequence[Card]) -> Dict[str, Card]:
    """id → Card lookup for walking links."""
    return {c.id: c for c in cards}
