# menugraph/config.py
"""
Runtime settings, read from the environment.

    MENUGRAPH_STRICT_RESOLVE       "1"/"true" → AmbiguousMatchError instead of tie-break
    MENUGRAPH_CARD_BRANCHING       "shared" (one selector per level) | "tree"
    MENUGRAPH_LINK_PRODUCT_CARDS   "0"/"false" disables next-product links
    MENUGRAPH_CARD_KEY_PREFIX      prefix for sequential card ids
    MENUGRAPH_LOG_LEVEL            level used by scripts/compile_menu.py

Explicit function arguments always win over these values.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Mapping, Optional

BRANCHING_SHARED = "shared"
BRANCHING_TREE = "tree"
BRANCHING_MODES = (BRANCHING_SHARED, BRANCHING_TREE)

_TRUTHY = {"1", "true", "yes", "on"}
_FALSY = {"0", "false", "no", "off"}


def _env_bool(env: Mapping[str, str], name: str, default: bool) -> bool:
    raw = (env.get(name) or "").strip().lower()
    if raw in _TRUTHY:
        return True
    if raw in _FALSY:
        return False
    return default


@dataclass(frozen=True)
class MenuGraphSettings:
    strict_resolve: bool = False
    card_branching: str = BRANCHING_SHARED
    link_product_cards: bool = True
    card_key_prefix: str = "card"
    log_level: str = "WARNING"

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None) -> "MenuGraphSettings":
        env = os.environ if env is None else env

        branching = (env.get("MENUGRAPH_CARD_BRANCHING") or "").strip().lower()
        if branching not in BRANCHING_MODES:
            branching = BRANCHING_SHARED

        prefix = (env.get("MENUGRAPH_CARD_KEY_PREFIX") or "").strip() or "card"
        level = (env.get("MENUGRAPH_LOG_LEVEL") or "").strip().upper() or "WARNING"

        return cls(
            strict_resolve=_env_bool(env, "MENUGRAPH_STRICT_RESOLVE", False),
            card_branching=branching,
            link_product_cards=_env_bool(env, "MENUGRAPH_LINK_PRODUCT_CARDS", True),
            card_key_prefix=prefix,
            log_level=level,
        )


def get_settings() -> MenuGraphSettings:
    """Settings snapshot for the current process environment."""
    return MenuGraphSettings.from_env()
