# menugraph/parsers/product_expression.py
"""
Product Expression Parser — the `selections$price` mini-grammar.

    "adult+two-hour$2.50"            → (adult, two-hour), 250 cents
    "chilaquiles verdes+any+any$17"  → (chilaquiles verdes, any, any), 1700
    "youth+day$1,250.00"             → (youth, day), 125000

Rules:
  - blank cell → None (row carries no product)
  - exactly one `$`; otherwise MalformedCellError (row skipped upstream)
  - selections split on `+`, trimmed, empty tokens dropped
  - `any` is the wildcard token
  - price: currency symbols, thousands separators and spaces stripped, then
    the leading numeric prefix is read (like JS parseFloat) and rounded
    half-up to integer cents. Unparsable, out-of-range or negative prices
    become 0 with a warning.
"""

from __future__ import annotations

import logging
import re
from decimal import ROUND_HALF_UP, Decimal, DecimalException, InvalidOperation
from typing import List, Optional, Tuple

from ..errors import MalformedCellError
from ..menu_types import WILDCARD, ProductExpression

log = logging.getLogger(__name__)

PRICE_SEPARATOR = "$"
SELECTION_SEPARATOR = "+"

_STRIP_CHARS_RE = re.compile(r"[$€£¥,\s]")
_NUMERIC_PREFIX_RE = re.compile(r"^[+-]?(?:\d+(?:\.\d*)?|\.\d+)(?:[eE][+-]?\d+)?")


def parse_price_to_cents(raw: str) -> Tuple[int, Optional[str]]:
    """
    Convert the price half of a product cell into integer cents.

    Returns (cents, warning). `warning` is None when the price parsed cleanly;
    otherwise cents is 0 (unparsable or out of range) or clamped to 0
    (negative).
    """
    cleaned = _STRIP_CHARS_RE.sub("", raw or "")
    m = _NUMERIC_PREFIX_RE.match(cleaned)
    if not m:
        return 0, f"unparsable price {raw!r}, using 0"

    try:
        value = Decimal(m.group(0))
    except InvalidOperation:
        return 0, f"unparsable price {raw!r}, using 0"

    try:
        cents = int((value * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))
    except DecimalException:
        # more digits than the decimal context can hold
        return 0, f"price {raw!r} out of range, using 0"
    if cents < 0:
        return 0, f"negative price {raw!r}, using 0"
    return cents, None


def split_selections(raw: str) -> List[str]:
    return [tok.strip() for tok in (raw or "").split(SELECTION_SEPARATOR) if tok.strip()]


def parse_product_value(cell: Optional[str]) -> Optional[ProductExpression]:
    """
    Parse one product cell. Returns None for a blank cell.
    Raises MalformedCellError when the cell is not `selections$price`.
    """
    text = (cell or "").strip()
    if not text:
        return None

    parts = text.split(PRICE_SEPARATOR)
    if len(parts) != 2:
        raise MalformedCellError(
            'invalid product format, expected "selections$price"', cell=text
        )

    selections_raw, price_raw = parts
    selections = split_selections(selections_raw)
    if not selections:
        raise MalformedCellError("product expression has no selections", cell=text)

    cents, warning = parse_price_to_cents(price_raw)
    if warning:
        log.warning("Product %r: %s", text, warning)

    return ProductExpression(
        selections=tuple(selections), price_cents=cents, raw=text, price_warning=warning,
    )


def display_name(selections: Tuple[str, ...], price_cents: int) -> str:
    """Human name for a product: selections with `any` shown as `*`, then cents."""
    shown = ["*" if s == WILDCARD else s for s in selections]
    return " ".join(shown) + f" {price_cents}"

