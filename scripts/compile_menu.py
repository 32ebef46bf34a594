#!/usr/bin/env python3
"""
Compile a menu catalog (CSV, JSON or XLSX) and print the validation report,
row warnings and navigation cards as JSON.

    python scripts/compile_menu.py menu.csv --title "Transit Passes"
    python scripts/compile_menu.py menu.xlsx --branching tree --out cards.json

Exit codes: 0 ok, 1 invalid catalog / parse error, 2 unreadable input.
"""

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import List, Optional

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from menugraph.card_compiler import SequentialKeyAllocator, compile_cards
from menugraph.catalog_io import build_catalog_from_xlsx, load_menu_source
from menugraph.config import BRANCHING_MODES, get_settings
from menugraph.errors import CatalogFormatError, ParseError, ResolutionError
from menugraph.resolver import SelectionResolver
from menugraph.tree_validator import validate_catalog

log = logging.getLogger("compile_menu")


def _build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(description="Compile a menu catalog into navigation cards.")
    p.add_argument("source", help="path to a .csv, .json or .xlsx menu file")
    p.add_argument("--title", default="", help="catalog title (defaults to the file stem)")
    p.add_argument("--branching", choices=BRANCHING_MODES, default=None)
    p.add_argument("--select", default=None,
                   help="comma-separated selections to resolve, e.g. 'adult,day'")
    p.add_argument("--strict", action="store_true", help="fail on ambiguous resolution")
    p.add_argument("--out", default=None, help="write JSON here instead of stdout")
    p.add_argument("-v", "--verbose", action="count", default=0)
    return p


def main(argv: Optional[List[str]] = None) -> int:
    args = _build_parser().parse_args(argv)
    settings = get_settings()

    level = settings.log_level
    if args.verbose == 1:
        level = "INFO"
    elif args.verbose >= 2:
        level = "DEBUG"
    logging.basicConfig(level=getattr(logging, level, logging.WARNING),
                        format="%(levelname)s %(name)s: %(message)s")

    path = Path(args.source)
    title = args.title or path.stem

    try:
        if path.suffix.lower() == ".xlsx":
            catalog, warnings = build_catalog_from_xlsx(path, title=title)
        else:
            catalog, warnings = load_menu_source(path.read_text(encoding="utf-8"), title=title)
    except (OSError, RuntimeError) as e:
        log.error("Cannot read %s: %s", path, e)
        return 2
    except (ParseError, CatalogFormatError) as e:
        log.error("Menu source rejected: %s", e)
        return 1

    report = validate_catalog(catalog)
    payload = {
        "title": catalog.title,
        "report": report.to_dict(),
        "warnings": [w.to_dict() for w in warnings],
        "cards": [],
    }

    if report.is_valid:
        cards = compile_cards(
            catalog,
            allocator=SequentialKeyAllocator(prefix=settings.card_key_prefix),
            branching=args.branching,
        )
        payload["cards"] = [c.to_dict() for c in cards]

    exit_code = 0 if report.is_valid else 1

    if args.select is not None and report.is_valid:
        chosen = [s.strip() for s in args.select.split(",")]
        resolver = SelectionResolver(catalog, strict=args.strict or None)
        try:
            payload["resolved"] = resolver.resolve(chosen).to_dict()
        except ResolutionError as e:
            payload["resolved"] = None
            payload["resolution_error"] = str(e)
            exit_code = 1

    text = json.dumps(payload, indent=2, ensure_ascii=False)
    if args.out:
        Path(args.out).write_text(text + "\n", encoding="utf-8")
    else:
        print(text)
    return exit_code


if __name__ == "__main__":
    sys.exit(main())
