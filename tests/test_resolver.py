# tests/test_resolver.py
"""
Selection Resolver — concrete selections → best matching Product.

Covers:
  - exact and wildcard matches
  - specificity: fewer wildcards beats catalog order
  - tie-break on catalog order; strict mode raises AmbiguousMatchError
  - NoMatchError / SelectionArityError
  - candidates() ordering
  - MENUGRAPH_STRICT_RESOLVE from the environment
"""

import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).parent.parent))

from menugraph.errors import (
    AmbiguousMatchError,
    NoMatchError,
    ResolutionError,
    SelectionArityError,
)
from menugraph.resolver import SelectionResolver, resolve, selections_match
from menugraph.tree_builder import build_catalog


MEALS_CSV = """\
,dish,meal,service,product
,chilaquiles verdes,,,"chilaquiles verdes+any+any$17.00"
,enchiladas,lunch,dine-in,"enchiladas+lunch+dine-in$15.00"
,enchiladas,lunch,takeout,"enchiladas+lunch+takeout$14.00"
"""


def _catalog(extra=""):
    catalog, warnings = build_catalog(MEALS_CSV + extra, title="Meals")
    assert warnings == []
    return catalog


def _price(product):
    return product.price_cents


class TestSelectionsMatch:
    def test_literal(self):
        assert selections_match(("a", "b"), ("a", "b"))
        assert not selections_match(("a", "b"), ("a", "c"))

    def test_wildcard(self):
        assert selections_match(("a", "b"), ("a", "any"))
        assert selections_match(("a", "b"), ("any", "any"))

    def test_length_mismatch(self):
        assert not selections_match(("a",), ("a", "any"))


class TestResolve:
    def test_wildcard_product_matches(self):
        product = resolve(_catalog(), ["chilaquiles verdes", "lunch", "dine-in"])
        assert _price(product) == 1700

    def test_exact_match(self):
        product = resolve(_catalog(), ["enchiladas", "lunch", "takeout"])
        assert _price(product) == 1400

    def test_exact_beats_earlier_wildcard(self):
        catalog = _catalog(',chilaquiles verdes,lunch,dine-in,"chilaquiles verdes+lunch+dine-in$19.00"\n')
        assert _price(resolve(catalog, ["chilaquiles verdes", "lunch", "dine-in"])) == 1900
        assert _price(resolve(catalog, ["chilaquiles verdes", "lunch", "takeout"])) == 1700

    def test_fewer_wildcards_wins(self):
        catalog = _catalog(
            ',,,,"any+lunch+any$1.00"\n'
            ',,,,"any+lunch+dine-in$2.00"\n'
        )
        assert _price(resolve(catalog, ["tacos", "lunch", "dine-in"])) == 200
        assert _price(resolve(catalog, ["tacos", "lunch", "takeout"])) == 100

    def test_no_match(self):
        with pytest.raises(NoMatchError) as exc:
            resolve(_catalog(), ["enchiladas", "dinner", "takeout"])
        assert exc.value.selections == ("enchiladas", "dinner", "takeout")

    def test_arity(self):
        with pytest.raises(SelectionArityError):
            resolve(_catalog(), ["enchiladas", "lunch"])

    def test_errors_share_base(self):
        with pytest.raises(ResolutionError):
            resolve(_catalog(), ["nope", "nope", "nope"])


class TestTies:
    TIE_ROWS = (
        ',enchiladas,,,"enchiladas+any+dine-in$3.00"\n'
        ',enchiladas,dinner,,"enchiladas+dinner+any$4.00"\n'
    )

    def test_first_defined_wins(self):
        catalog = _catalog(self.TIE_ROWS)
        product = resolve(catalog, ["enchiladas", "dinner", "dine-in"], strict=False)
        assert _price(product) == 300

    def test_strict_raises(self):
        catalog = _catalog(self.TIE_ROWS)
        with pytest.raises(AmbiguousMatchError) as exc:
            resolve(catalog, ["enchiladas", "dinner", "dine-in"], strict=True)
        assert exc.value.product_ids == (catalog.products[3].id, catalog.products[4].id)

    def test_strict_allows_more_specific_winner(self):
        catalog = _catalog(self.TIE_ROWS)
        product = resolve(catalog, ["enchiladas", "lunch", "dine-in"], strict=True)
        assert _price(product) == 1500

    def test_duplicate_tuples_first_wins(self):
        catalog = _catalog(',enchiladas,lunch,takeout,"enchiladas+lunch+takeout$99.00"\n')
        assert _price(resolve(catalog, ["enchiladas", "lunch", "takeout"])) == 1400


class TestCandidates:
    def test_best_first(self):
        catalog = _catalog(',chilaquiles verdes,lunch,,"chilaquiles verdes+lunch+any$18.00"\n')
        resolver = SelectionResolver(catalog)
        prices = [_price(p) for p in resolver.candidates(["chilaquiles verdes", "lunch", "dine-in"])]
        assert prices == [1800, 1700]

    def test_empty(self):
        resolver = SelectionResolver(_catalog())
        assert resolver.candidates(["x", "y", "z"]) == []


class TestStrictSetting:
    def test_env_enables_strict(self, monkeypatch):
        monkeypatch.setenv("MENUGRAPH_STRICT_RESOLVE", "1")
        assert SelectionResolver(_catalog()).strict is True

    def test_argument_beats_env(self, monkeypatch):
        monkeypatch.setenv("MENUGRAPH_STRICT_RESOLVE", "true")
        assert SelectionResolver(_catalog(), strict=False).strict is False

    def test_default_not_strict(self, monkeypatch):
        monkeypatch.delenv("MENUGRAPH_STRICT_RESOLVE", raising=False)
        assert SelectionResolver(_catalog()).strict is False
