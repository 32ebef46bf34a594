# menugraph/errors.py
"""
Error taxonomy for the menu compiler.

Fatal header problems abort a build (ParseError). Row-level problems are
raised as MalformedCellError inside the parsers and turned into RowWarning
records by the tree builder, so a single bad row never stops a catalog.
Validation findings are data (ValidationIssue), not exceptions.
"""

from __future__ import annotations

from typing import Optional, Sequence


class MenuGraphError(Exception):
    """Base class for every error raised by menugraph."""


class ParseError(MenuGraphError):
    """Fatal structural problem in the menu source (e.g. no product column)."""


class MalformedCellError(MenuGraphError):
    """A single cell could not be parsed; the row is skipped with a warning."""

    def __init__(self, message: str, cell: str = ""):
        super().__init__(message)
        self.cell = cell


class CatalogFormatError(MenuGraphError):
    """A serialized (dict / JSON) catalog payload has the wrong shape."""


class CardCompileError(MenuGraphError):
    """The key allocator returned too few or duplicate card ids."""


class ResolutionError(MenuGraphError):
    """Base for failures of a single resolve() call."""

    def __init__(self, message: str, selections: Sequence[str] = ()):
        super().__init__(message)
        self.selections = tuple(selections)


class NoMatchError(ResolutionError):
    pass


class AmbiguousMatchError(ResolutionError):
    def __init__(self, message: str, selections: Sequence[str] = (), product_ids: Sequence[str] = ()):
        super().__init__(message, selections)
        self.product_ids = tuple(product_ids)


class SelectionArityError(ResolutionError):
    """Selection tuple length does not match the catalog's level count."""


class InvalidStateError(MenuGraphError):
    """A navigation transition was attempted from the wrong state."""

    def __init__(self, message: str, level_index: Optional[int] = None):
        super().__init__(message)
        self.level_index = level_index
