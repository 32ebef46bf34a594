# tests/test_compile_menu_cli.py
"""
scripts/compile_menu.py — command-line wrapper.

Covers:
  - CSV → JSON output file with report, warnings and cards
  - --select resolution and --branching
  - JSON catalog input; invalid catalog exits 1 without cards
  - fatal parse errors exit 1, unreadable input exits 2
"""

import importlib.util
import json
import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).parent.parent))

from menugraph.catalog_io import SAMPLE_CSV


def _load_cli():
    root = Path(__file__).resolve().parents[1]
    script_path = root / "scripts" / "compile_menu.py"
    spec = importlib.util.spec_from_file_location("compile_menu", script_path)
    assert spec is not None
    module = importlib.util.module_from_spec(spec)
    assert spec.loader is not None
    spec.loader.exec_module(module)
    return module


@pytest.fixture(scope="module")
def cli():
    return _load_cli()


@pytest.fixture
def menu_csv(tmp_path):
    path = tmp_path / "passes.csv"
    path.write_text(SAMPLE_CSV, encoding="utf-8")
    return path


def _run(cli, tmp_path, *args):
    out = tmp_path / "out.json"
    code = cli.main([*map(str, args), "--out", str(out)])
    data = json.loads(out.read_text(encoding="utf-8")) if out.exists() else None
    return code, data


class TestCompile:
    def test_csv_to_cards(self, cli, tmp_path, menu_csv):
        code, data = _run(cli, tmp_path, menu_csv)
        assert code == 0
        assert data["title"] == "passes"
        assert data["report"]["is_valid"] is True
        assert data["warnings"] == []
        assert len(data["cards"]) == 2 + 9

    def test_title_and_branching(self, cli, tmp_path, menu_csv):
        code, data = _run(cli, tmp_path, menu_csv, "--title", "Passes", "--branching", "tree")
        assert code == 0
        assert data["title"] == "Passes"
        assert sum(1 for c in data["cards"] if c["type"] == "selector") == 4

    def test_select(self, cli, tmp_path, menu_csv):
        code, data = _run(cli, tmp_path, menu_csv, "--select", "adult, day")
        assert code == 0
        assert data["resolved"]["price_cents"] == 500

    def test_select_no_match(self, cli, tmp_path, menu_csv):
        code, data = _run(cli, tmp_path, menu_csv, "--select", "adult,year")
        assert code == 1
        assert data["resolved"] is None
        assert "no product matches" in data["resolution_error"]

    def test_stdout(self, cli, menu_csv, capsys):
        assert cli.main([str(menu_csv)]) == 0
        assert json.loads(capsys.readouterr().out)["report"]["is_valid"] is True


class TestFailures:
    def test_invalid_json_catalog(self, cli, tmp_path):
        path = tmp_path / "bad.json"
        path.write_text(json.dumps({
            "title": "Broken",
            "levels": ["rider"],
            "tree": {"children": {"adult": {"title": "adult", "products": ["ghost"]}}},
            "products": [],
        }), encoding="utf-8")
        code, data = _run(cli, tmp_path, path)
        assert code == 1
        assert data["cards"] == []
        assert data["report"]["errors"][0]["code"] == "dangling_product"

    def test_missing_product_header(self, cli, tmp_path):
        path = tmp_path / "menu.csv"
        path.write_text(",rider,price\n,adult,5\n", encoding="utf-8")
        code, data = _run(cli, tmp_path, path)
        assert code == 1
        assert data is None

    def test_malformed_json_source(self, cli, tmp_path, caplog):
        path = tmp_path / "menu.json"
        path.write_text('{"levels": [', encoding="utf-8")
        code, data = _run(cli, tmp_path, path)
        assert code == 1
        assert data is None
        assert "Menu source rejected" in caplog.text
        assert "CSV" not in caplog.text

    def test_missing_file(self, cli, tmp_path):
        code, data = _run(cli, tmp_path, tmp_path / "nope.csv")
        assert code == 2
        assert data is None
