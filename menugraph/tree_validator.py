# menugraph/tree_validator.py
"""
Tree Validator — read-only integrity checks over a built Catalog.

RULES:
- No mutation; only measures and reports.
- Errors make the catalog invalid; warnings never block compilation.

Errors:
  dangling_product     tree references an id missing from catalog.products
  orphan_product       product never referenced from the tree
  duplicate_product_id two products share one id
  selection_arity      product selections length != number of levels
  reserved_key         the wildcard literal used as a tree key
  level_order          node level name differs from the header order

Warnings:
  missing_title        catalog / menu node without a title
  non_positive_price   price <= 0
  duplicate_selections two products with the same selection tuple
  path_mismatch        product selections contradict the path it hangs on
  empty_branch         leaf node with no products attached
"""

from __future__ import annotations

import logging
from collections import Counter
from types import MappingProxyType
from typing import Any, Dict, List, Set, Tuple

from .menu_types import WILDCARD, Catalog, ValidationIssue, ValidationReport

log = logging.getLogger(__name__)


def _fmt_path(path: Tuple[str, ...]) -> str:
    return " → ".join(path) if path else "(root)"


def validate_catalog(catalog: Catalog) -> ValidationReport:
    errors: List[ValidationIssue] = []
    warnings: List[ValidationIssue] = []

    level_names = catalog.level_names
    n_levels = len(level_names)
    product_ids = [p.id for p in catalog.products]
    known_ids: Set[str] = set(product_ids)
    referenced: Set[str] = set()

    if not (catalog.title or "").strip():
        warnings.append(ValidationIssue("missing_title", "Catalog missing title"))

    # -- products -----------------------------------------------------------
    for pid, count in Counter(product_ids).items():
        if count > 1:
            errors.append(ValidationIssue(
                "duplicate_product_id",
                f"Product ID {pid} appears {count} times",
                product_id=pid,
            ))

    tuples: Dict[Tuple[str, ...], List[str]] = {}
    for product in catalog.products:
        if len(product.selections) != n_levels:
            errors.append(ValidationIssue(
                "selection_arity",
                f'Product "{product.name}" has {len(product.selections)} selections, expected {n_levels}',
                product_id=product.id,
            ))
        if product.price_cents <= 0:
            warnings.append(ValidationIssue(
                "non_positive_price",
                f'Product "{product.name}" has invalid price: {product.price_cents}',
                product_id=product.id,
            ))
        tuples.setdefault(tuple(product.selections), []).append(product.id)

    duplicate_tuples = 0
    for sel, ids in tuples.items():
        if len(ids) > 1:
            duplicate_tuples += 1
            warnings.append(ValidationIssue(
                "duplicate_selections",
                f"Selections [{', '.join(sel)}] defined by {len(ids)} products: {', '.join(ids)}",
                product_id=ids[0],
                path=sel,
            ))

    # -- tree ---------------------------------------------------------------
    total_nodes = 0
    max_depth = 0
    for path, node in catalog.iter_nodes():
        total_nodes += 1
        max_depth = max(max_depth, node.depth)

        if path and not (node.title or "").strip():
            warnings.append(ValidationIssue(
                "missing_title", f'Menu "{_fmt_path(path)}" missing title', path=path,
            ))

        expected_level = level_names[node.depth] if node.depth < n_levels else None
        if node.level_name != expected_level:
            errors.append(ValidationIssue(
                "level_order",
                f'Menu "{_fmt_path(path)}" is at level {node.level_name!r}, expected {expected_level!r}',
                path=path,
            ))

        if node.children and node.depth >= n_levels:
            errors.append(ValidationIssue(
                "level_order",
                f'Menu "{_fmt_path(path)}" has children below the last level',
                path=path,
            ))

        if WILDCARD in node.children:
            errors.append(ValidationIssue(
                "reserved_key",
                f'Menu "{_fmt_path(path)}" uses reserved value "{WILDCARD}" as an option',
                path=path,
            ))

        if path and node.is_leaf and not node.product_ids:
            warnings.append(ValidationIssue(
                "empty_branch", f'Menu "{_fmt_path(path)}" has no products', path=path,
            ))

        for pid in node.product_ids:
            referenced.add(pid)
            product = catalog.product_by_id(pid)
            if product is None:
                errors.append(ValidationIssue(
                    "dangling_product",
                    f'Menu "{_fmt_path(path)}" references non-existent product ID: {pid}',
                    product_id=pid,
                    path=path,
                ))
                continue
            for depth, value in enumerate(path):
                token = product.selections[depth] if depth < len(product.selections) else None
                if token not in (value, WILDCARD):
                    warnings.append(ValidationIssue(
                        "path_mismatch",
                        f'Product "{product.name}" under "{_fmt_path(path)}" selects {token!r} at level {level_names[depth]!r}',
                        product_id=pid,
                        path=path,
                    ))
                    break

    for pid in product_ids:
        if pid not in referenced:
            errors.append(ValidationIssue(
                "orphan_product",
                f"Product ID {pid} is not referenced by any menu",
                product_id=pid,
            ))

    stats: Dict[str, Any] = {
        "total_products": len(catalog.products),
        "total_levels": n_levels,
        "total_nodes": total_nodes,
        "max_depth": max_depth,
        "wildcard_products": sum(1 for p in catalog.products if WILDCARD in p.selections),
        "duplicate_tuples": duplicate_tuples,
        "options_per_level": MappingProxyType({
            name: len(catalog.options_for_level(i)) for i, name in enumerate(level_names)
        }),
    }

    report = ValidationReport(
        errors=tuple(errors), warnings=tuple(warnings), stats=MappingProxyType(stats),
    )
    if report.is_valid:
        log.info("Menu tree validation passed (%d warnings)", len(warnings))
    else:
        log.warning("Menu tree validation failed: %s", "; ".join(str(e) for e in errors))
    return report
