"""Persistence and bookkeeping for the page/category/test-case collection."""
from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from pathlib import Path
from typing import Any, cast

from .records import STATUSES, Category, Page, TestCase, now_ms
from .reconcile import ImportResult

logger = logging.getLogger(__name__)

STORE_VERSION = "1.0.0"


class SnapshotError(ValueError):
    """A backup snapshot is not valid JSON or lacks required keys."""


def ensure_store() -> dict[str, Any]:
    return {
        "version": STORE_VERSION,
        "pages": [],
        "categories": [],
        "testCases": [],
        "lastUpdated": now_ms(),
    }


def load_store(path: Path) -> dict[str, Any]:
    if not path.exists():
        return ensure_store()
    with path.open("r", encoding="utf-8") as fh:
        return import_data(fh.read())


def save_store(path: Path, store: Mapping[str, Any]) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", encoding="utf-8") as fh:
        fh.write(export_data(store))


def export_data(store: Mapping[str, Any]) -> str:
    snapshot = {
        "version": store.get("version", STORE_VERSION),
        "pages": store.get("pages", []),
        "categories": store.get("categories", []),
        "testCases": store.get("testCases", []),
        "lastUpdated": store.get("lastUpdated", now_ms()),
    }
    return json.dumps(snapshot, ensure_ascii=False, indent=2)


def _check_items(key: str, items: list[Any]) -> None:
    for index, item in enumerate(items):
        if not isinstance(item, dict) or not item.get("id"):
            raise SnapshotError(f"Snapshot field '{key}' item {index} must be an object with an 'id'")


def import_data(text: str) -> dict[str, Any]:
    """Parse and validate a snapshot produced by :func:`export_data`."""
    try:
        data = json.loads(text)
    except json.JSONDecodeError as exc:
        raise SnapshotError(f"Snapshot is not valid JSON: {exc}") from exc
    if not isinstance(data, dict):
        raise SnapshotError("Snapshot must be a JSON object")
    if not data.get("version"):
        raise SnapshotError("Snapshot is missing 'version'")
    for key in ("pages", "testCases"):
        if not isinstance(data.get(key), list):
            raise SnapshotError(f"Snapshot field '{key}' must be a list")
    categories = data.get("categories") or []
    if not isinstance(categories, list):
        raise SnapshotError("Snapshot field 'categories' must be a list")
    _check_items("pages", data["pages"])
    _check_items("categories", categories)
    _check_items("testCases", data["testCases"])
    try:
        last_updated = int(data.get("lastUpdated") or now_ms())
    except (TypeError, ValueError) as exc:
        raise SnapshotError("Snapshot field 'lastUpdated' must be a millisecond timestamp") from exc
    return {
        "version": str(data["version"]),
        "pages": data["pages"],
        "categories": categories,
        "testCases": data["testCases"],
        "lastUpdated": last_updated,
    }


def pages_of(store: Mapping[str, Any]) -> list[Page]:
    return [Page.from_dict(item) for item in store.get("pages", [])]


def categories_of(store: Mapping[str, Any]) -> list[Category]:
    return [Category.from_dict(item) for item in store.get("categories", [])]


def cases_of(store: Mapping[str, Any]) -> list[TestCase]:
    return [TestCase.from_dict(item) for item in store.get("testCases", [])]


def apply_import(store: dict[str, Any], result: ImportResult) -> dict[str, Any]:
    store["pages"] = [page.to_dict() for page in result.pages]
    store["categories"] = [category.to_dict() for category in result.categories]
    store["testCases"] = [case.to_dict() for case in result.test_cases]
    store["lastUpdated"] = now_ms()
    return store


def resolve_page(store: Mapping[str, Any], ident: str) -> Page | None:
    """Find a page by id, falling back to its name."""
    pages = pages_of(store)
    for page in pages:
        if page.id == ident:
            return page
    for page in pages:
        if page.name == ident:
            return page
    return None


def find_test_case(store: Mapping[str, Any], page_id: str, code: str) -> TestCase | None:
    for case in cases_of(store):
        if case.page_id == page_id and case.code == code:
            return case
    return None


def update_test_case_status(
    store: dict[str, Any],
    case_id: str,
    status: str,
    notes: str | None = None,
    now: int | None = None,
) -> TestCase:
    """Record a test outcome; ``tested_at`` only moves for non-pending states."""
    if status not in STATUSES:
        raise ValueError(f"Unknown status '{status}'; expected one of {', '.join(STATUSES)}")
    timestamp = now if now is not None else now_ms()
    items = cast(list[dict[str, Any]], store.setdefault("testCases", []))
    for index, item in enumerate(items):
        if item.get("id") != case_id:
            continue
        case = TestCase.from_dict(item)
        case.status = status
        if notes is not None:
            case.notes = notes
        if status != "pending":
            case.tested_at = timestamp
        case.updated_at = timestamp
        items[index] = case.to_dict()
        store["lastUpdated"] = timestamp
        logger.debug("Status of %s set to %s", case.code, status)
        return case
    raise KeyError(case_id)


def delete_page(store: dict[str, Any], page_id: str) -> dict[str, int]:
    """Remove a page together with its categories and test cases."""
    pages = store.get("pages", [])
    categories = store.get("categories", [])
    test_cases = store.get("testCases", [])
    store["pages"] = [item for item in pages if item.get("id") != page_id]
    store["categories"] = [item for item in categories if item.get("pageId") != page_id]
    store["testCases"] = [item for item in test_cases if item.get("pageId") != page_id]
    removed = {
        "pages": len(pages) - len(store["pages"]),
        "categories": len(categories) - len(store["categories"]),
        "testCases": len(test_cases) - len(store["testCases"]),
    }
    if removed["pages"]:
        store["lastUpdated"] = now_ms()
    return removed


def get_statistics(store: Mapping[str, Any], page_id: str | None = None) -> dict[str, int]:
    cases = [
        item
        for item in store.get("testCases", [])
        if page_id is None or item.get("pageId") == page_id
    ]
    stats = {"total": len(cases)}
    for status in STATUSES:
        stats[status] = sum(1 for item in cases if item.get("status") == status)
    return stats
