# menugraph/resolver.py
"""
Selection Resolver — concrete selection tuple → best matching Product.

A product matches when, at every level, its token equals the chosen value
or is the wildcard `any`.

Tie-break when several products match:
  1. fewest wildcard positions (most specific) wins
  2. then the product defined first in the catalog wins

In strict mode, several products sharing the best wildcard count raise
AmbiguousMatchError instead of falling back to catalog order. A more
specific match beating a wildcard match is never ambiguous.

The resolver only reads the immutable Catalog; one instance can serve any
number of sessions.
"""

from __future__ import annotations

import logging
from typing import List, Optional, Sequence, Tuple

from .config import get_settings
from .errors import AmbiguousMatchError, NoMatchError, SelectionArityError
from .menu_types import WILDCARD, Catalog, Product

log = logging.getLogger(__name__)


def selections_match(chosen: Sequence[str], pattern: Sequence[str]) -> bool:
    if len(chosen) != len(pattern):
        return False
    for value, token in zip(chosen, pattern):
        if token == WILDCARD:
            continue
        if value != token:
            return False
    return True


class SelectionResolver:
    def __init__(self, catalog: Catalog, strict: Optional[bool] = None):
        self.catalog = catalog
        self.strict = get_settings().strict_resolve if strict is None else strict
        # (wildcards, catalog position, product), pre-sorted by tie-break order
        self._ranked: List[Tuple[int, int, Product]] = sorted(
            ((p.wildcard_count, pos, p) for pos, p in enumerate(catalog.products)),
            key=lambda t: (t[0], t[1]),
        )

    def _check_arity(self, selections: Sequence[str]) -> Tuple[str, ...]:
        chosen = tuple(selections)
        n_levels = len(self.catalog.levels)
        if len(chosen) != n_levels:
            raise SelectionArityError(
                f"expected {n_levels} selections, got {len(chosen)}", chosen,
            )
        return chosen

    def candidates(self, selections: Sequence[str]) -> List[Product]:
        """All matching products, best first."""
        chosen = self._check_arity(selections)
        return [p for _, _, p in self._ranked if selections_match(chosen, p.selections)]

    def resolve(self, selections: Sequence[str]) -> Product:
        chosen = self._check_arity(selections)

        best: Optional[Product] = None
        best_wildcards = -1
        tied: List[str] = []
        for wildcards, _, product in self._ranked:
            if best is not None and wildcards > best_wildcards:
                break
            if not selections_match(chosen, product.selections):
                continue
            if best is None:
                best, best_wildcards = product, wildcards
            tied.append(product.id)

        if best is None:
            log.info("No product matches selections %s", list(chosen))
            raise NoMatchError(f"no product matches {list(chosen)}", chosen)

        if len(tied) > 1:
            if self.strict:
                raise AmbiguousMatchError(
                    f"{len(tied)} products match {list(chosen)} equally: {', '.join(tied)}",
                    chosen,
                    tied,
                )
            log.debug("Tie-break for %s picked %s over %s", list(chosen), best.id, tied[1:])

        return best


def resolve(catalog: Catalog, selections: Sequence[str], strict: Optional[bool] = None) -> Product:
    """One-shot convenience wrapper around SelectionResolver."""
    return SelectionResolver(catalog, strict=strict).resolve(selections)
