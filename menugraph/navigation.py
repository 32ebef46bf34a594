# menugraph/navigation.py
"""
Navigation State Machine — one stepwise selection flow per user session.

States:
    Selecting(level_index)   0 <= level_index < len(levels)
    Resolved(product)        after the last level resolved to a product

Transitions:
    select_option(i, value)  only from Selecting(i); last level → Resolved
    go_back()                Selecting(i>0) → Selecting(i-1), drops choice i-1
                             Resolved → Selecting(n-1), drops the last choice
    reset()                  anything → Selecting(0), no choices

Every rejected transition raises InvalidStateError and leaves the session
untouched. A resolution failure on the last level propagates the
ResolutionError and also leaves the session untouched.

Sessions are owned by a single caller; the Catalog and resolver they read
are shared and immutable.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple, Union

from .errors import InvalidStateError
from .menu_types import WILDCARD, Catalog, Product
from .resolver import SelectionResolver


@dataclass(frozen=True)
class Selecting:
    level_index: int


@dataclass(frozen=True)
class Resolved:
    product: Product


NavigationStatus = Union[Selecting, Resolved]


class NavigationSession:
    def __init__(self, catalog: Catalog, resolver: Optional[SelectionResolver] = None):
        self.catalog = catalog
        self.resolver = resolver or SelectionResolver(catalog)
        self._selections: List[str] = []
        self._resolved: Optional[Product] = None

    # -- read side -----------------------------------------------------------

    @property
    def level_count(self) -> int:
        return len(self.catalog.levels)

    @property
    def level_index(self) -> int:
        return len(self._selections) if self._resolved is None else self.level_count

    @property
    def selections(self) -> Tuple[str, ...]:
        return tuple(self._selections)

    @property
    def resolved_product(self) -> Optional[Product]:
        return self._resolved

    @property
    def state(self) -> NavigationStatus:
        if self._resolved is not None:
            return Resolved(self._resolved)
        return Selecting(len(self._selections))

    @property
    def is_resolved(self) -> bool:
        return self._resolved is not None

    def current_level_name(self) -> Optional[str]:
        if self._resolved is not None:
            return None
        return self.catalog.levels[len(self._selections)].name

    def current_options(self) -> Tuple[str, ...]:
        if self._resolved is not None:
            return ()
        return self.catalog.options_for_level(len(self._selections))

    # -- transitions ---------------------------------------------------------

    def select_option(self, level_index: int, value: str) -> NavigationStatus:
        if self._resolved is not None:
            raise InvalidStateError(
                "selection already resolved; go back or reset first", level_index,
            )
        current = len(self._selections)
        if level_index != current:
            raise InvalidStateError(
                f"expected a choice for level {current}, got level {level_index}", level_index,
            )
        if value == WILDCARD or value not in self.catalog.options_for_level(level_index):
            raise InvalidStateError(
                f"{value!r} is not an option of level {self.catalog.levels[level_index].name!r}",
                level_index,
            )

        if level_index == self.level_count - 1:
            # may raise ResolutionError; nothing has been mutated yet
            product = self.resolver.resolve(self._selections + [value])
            self._selections.append(value)
            self._resolved = product
        else:
            self._selections.append(value)
        return self.state

    def go_back(self) -> NavigationStatus:
        if self._resolved is not None:
            self._resolved = None
            self._selections.pop()
            return self.state
        if not self._selections:
            raise InvalidStateError("already at the first level", 0)
        self._selections.pop()
        return self.state

    def reset(self) -> NavigationStatus:
        self._selections = []
        self._resolved = None
        return self.state

    # -- serialization -------------------------------------------------------

    def to_dict(self) -> Dict[str, Any]:
        levels = self.catalog.level_names
        return {
            "catalog": self.catalog.title,
            "level_index": self.level_index,
            "level_name": self.current_level_name(),
            "selections": {levels[i]: v for i, v in enumerate(self._selections)},
            "options": list(self.current_options()),
            "resolved_product": self._resolved.to_dict() if self._resolved else None,
        }
