"""Test-case document importer package."""
from __future__ import annotations

from . import assembler, classifier, loader, parser, reconcile, records, renderer, store

__all__ = [
    "assembler",
    "classifier",
    "loader",
    "parser",
    "reconcile",
    "records",
    "renderer",
    "store",
]
