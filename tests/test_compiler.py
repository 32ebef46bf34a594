# tests/test_compiler.py
"""
Pipeline façade + settings.

Covers:
  - compile_menu builds, validates and compiles in one call
  - same input → equal output; memoized per (text, title, branching)
  - branching argument vs environment
  - MenuGraphSettings.from_env parsing and defaults
"""

import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).parent.parent))

from menugraph.compiler import clear_compile_cache, compile_menu, content_hash
from menugraph.config import MenuGraphSettings, get_settings
from menugraph.errors import ParseError


TRANSIT_CSV = """\
,rider,time span,product
,adult,two-hour,"adult+two-hour$2.50"
,adult,day,"adult+day$5.00"
,youth,two-hour,"youth+two-hour$1.00"
"""


@pytest.fixture(autouse=True)
def _fresh_cache():
    clear_compile_cache()
    yield
    clear_compile_cache()


class TestCompileMenu:
    def test_end_to_end(self):
        compiled = compile_menu(TRANSIT_CSV, title="Transit")
        assert compiled.is_valid
        assert compiled.row_warnings == ()
        assert len(compiled.catalog.products) == 3
        assert len(compiled.cards) == 5
        assert compiled.cards[0].id == "card-0000"

    def test_row_warnings_carried(self):
        compiled = compile_menu(TRANSIT_CSV + ',adult,month,"adult month 100"\n', title="Transit")
        assert compiled.is_valid
        assert [w.row for w in compiled.row_warnings] == [5]

    def test_memoized(self):
        assert compile_menu(TRANSIT_CSV, "T") is compile_menu(TRANSIT_CSV, "T")

    def test_deterministic_after_cache_clear(self):
        first = compile_menu(TRANSIT_CSV, "T")
        clear_compile_cache()
        second = compile_menu(TRANSIT_CSV, "T")
        assert first is not second
        assert first == second
        assert first.to_dict() == second.to_dict()

    def test_branching_argument(self):
        shared = compile_menu(TRANSIT_CSV, "T", branching="shared")
        tree = compile_menu(TRANSIT_CSV, "T", branching="tree")
        assert sum(c.is_selector for c in shared.cards) == 2
        assert sum(c.is_selector for c in tree.cards) == 3

    def test_branching_from_env(self, monkeypatch):
        monkeypatch.setenv("MENUGRAPH_CARD_BRANCHING", "tree")
        assert sum(c.is_selector for c in compile_menu(TRANSIT_CSV, "T").cards) == 3

    def test_parse_error_propagates(self):
        with pytest.raises(ParseError):
            compile_menu(",rider,price\n,adult,1\n")

    def test_to_dict(self):
        data = compile_menu(TRANSIT_CSV, "T").to_dict()
        assert data["title"] == "T"
        assert data["report"]["is_valid"] is True
        assert len(data["cards"]) == 5

    def test_oversized_price_does_not_abort(self):
        compiled = compile_menu(TRANSIT_CSV + ',youth,day,"youth+day$1e30"\n', title="T")
        assert compiled.is_valid
        assert len(compiled.catalog.products) == 4
        assert len(compiled.cards) == 6
        assert "out of range" in compiled.row_warnings[0].message

    def test_content_hash(self):
        assert content_hash("abc") == content_hash("abc")
        assert len(content_hash("abc")) == 64


class TestCachedResultIsReadOnly:
    def test_stats(self):
        compiled = compile_menu(TRANSIT_CSV, "T")
        with pytest.raises(TypeError):
            compiled.report.stats["total_products"] = 999
        with pytest.raises(TypeError):
            compiled.report.stats["options_per_level"]["rider"] = 0
        assert compile_menu(TRANSIT_CSV, "T").report.stats["total_products"] == 3

    def test_card_display_fields(self):
        compiled = compile_menu(TRANSIT_CSV, "T")
        with pytest.raises(TypeError):
            compiled.cards[-1].display_fields["price_cents"] = 0
        assert compile_menu(TRANSIT_CSV, "T").cards[-1].display_fields["price_cents"] == 100

    def test_product_source(self):
        compiled = compile_menu(TRANSIT_CSV, "T")
        with pytest.raises(TypeError):
            compiled.catalog.products[0].source["row"] = 0

    def test_serialized_forms_are_plain(self):
        data = compile_menu(TRANSIT_CSV, "T").to_dict()
        assert isinstance(data["report"]["stats"]["options_per_level"], dict)
        assert data["cards"][-1]["display_fields"]["selections"] == ["youth", "two-hour"]


class TestSettings:
    def test_defaults(self):
        s = MenuGraphSettings.from_env({})
        assert s == MenuGraphSettings()
        assert s.card_branching == "shared"
        assert s.strict_resolve is False
        assert s.link_product_cards is True
        assert s.card_key_prefix == "card"
        assert s.log_level == "WARNING"

    def test_overrides(self):
        s = MenuGraphSettings.from_env({
            "MENUGRAPH_STRICT_RESOLVE": "yes",
            "MENUGRAPH_CARD_BRANCHING": " TREE ",
            "MENUGRAPH_LINK_PRODUCT_CARDS": "0",
            "MENUGRAPH_CARD_KEY_PREFIX": "menu",
            "MENUGRAPH_LOG_LEVEL": "debug",
        })
        assert s.strict_resolve is True
        assert s.card_branching == "tree"
        assert s.link_product_cards is False
        assert s.card_key_prefix == "menu"
        assert s.log_level == "DEBUG"

    def test_unknown_values_fall_back(self):
        s = MenuGraphSettings.from_env({
            "MENUGRAPH_CARD_BRANCHING": "flat",
            "MENUGRAPH_STRICT_RESOLVE": "maybe",
        })
        assert s.card_branching == "shared"
        assert s.strict_resolve is False

    def test_get_settings_reads_environ(self, monkeypatch):
        monkeypatch.setenv("MENUGRAPH_CARD_KEY_PREFIX", "env")
        assert get_settings().card_key_prefix == "env"
