"""Merge parsed test cases into an existing page collection."""
from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field, replace

from .assembler import ParsedTestCase
from .records import (
    UNCATEGORIZED,
    Category,
    Page,
    TestCase,
    join_path,
    new_id,
    now_ms,
)

logger = logging.getLogger(__name__)


@dataclass
class ImportResult:
    created: int
    updated: int
    page_id: str
    pages: list[Page]
    categories: list[Category]
    test_cases: list[TestCase]
    page_created: Page | None = None
    new_categories: list[Category] = field(default_factory=list)

    def counts(self) -> dict[str, int]:
        return {"created": self.created, "updated": self.updated}


def resolve_page_id(
    pages: Iterable[Page],
    page_name: str,
    page_display_name: str,
    target_page_id: str | None,
    now: int,
) -> tuple[str, Page | None]:
    """Return the page id to import into and the page created for it, if any.

    A ``target_page_id`` that matches no page is used as given.
    """
    for page in pages:
        if (target_page_id and page.id == target_page_id) or page.name == page_name:
            return page.id, None
    if target_page_id:
        return target_page_id, None
    page = Page(
        id=new_id(),
        name=page_name,
        display_name=page_display_name,
        created_at=now,
        updated_at=now,
    )
    return page.id, page


def build_category(path: Sequence[str], page_id: str, order: int) -> Category:
    return Category(
        id=new_id(),
        page_id=page_id,
        name=path[-1] if path else UNCATEGORIZED,
        parent_name=path[0] if len(path) > 1 else None,
        full_path=join_path(list(path)) or UNCATEGORIZED,
        order=order,
    )


def next_order(categories: Sequence[Category]) -> int:
    if not categories:
        return 0
    return max(len(categories), max(category.order for category in categories) + 1)


def _updated_case(existing: TestCase, parsed: ParsedTestCase, category_id: str, now: int) -> TestCase:
    return replace(
        existing,
        title=parsed.title,
        category_id=category_id,
        priority=parsed.priority,
        preconditions=parsed.preconditions,
        steps=list(parsed.steps),
        expected_results=list(parsed.expected_results),
        test_data=parsed.test_data,
        updated_at=now,
    )


def _created_case(parsed: ParsedTestCase, page_id: str, category_id: str, now: int) -> TestCase:
    return TestCase(
        id=new_id(),
        code=parsed.code,
        title=parsed.title,
        page_id=page_id,
        category_id=category_id,
        priority=parsed.priority,
        preconditions=parsed.preconditions,
        steps=list(parsed.steps),
        expected_results=list(parsed.expected_results),
        test_data=parsed.test_data,
        status="pending",
        created_at=now,
        updated_at=now,
    )


def import_test_cases(
    parsed_cases: Iterable[ParsedTestCase],
    *,
    page_name: str,
    page_display_name: str,
    pages: Sequence[Page],
    categories: Sequence[Category],
    test_cases: Sequence[TestCase],
    target_page_id: str | None = None,
    now: int | None = None,
) -> ImportResult:
    """Create or update one test case per parsed case, matched by code.

    Tester-owned fields (status, notes, tested_at) and identity fields
    (id, created_at) of existing cases are kept. Cases missing from
    ``parsed_cases`` are left alone. The input sequences are not modified.
    """
    timestamp = now if now is not None else now_ms()
    page_id, page_created = resolve_page_id(
        pages, page_name, page_display_name, target_page_id, timestamp
    )

    all_categories = list(categories)
    by_path = {
        category.full_path: category
        for category in all_categories
        if category.page_id == page_id
    }
    new_categories: list[Category] = []

    merged = list(test_cases)
    by_code = {
        case.code: index for index, case in enumerate(merged) if case.page_id == page_id
    }
    created = 0
    updated = 0

    for parsed in parsed_cases:
        full_path = join_path(parsed.category_path) or UNCATEGORIZED
        category = by_path.get(full_path)
        if category is None:
            category = build_category(parsed.category_path, page_id, next_order(all_categories))
            all_categories.append(category)
            new_categories.append(category)
            by_path[full_path] = category
            logger.debug("New category %s (order %d)", full_path, category.order)

        index = by_code.get(parsed.code)
        if index is not None:
            merged[index] = _updated_case(merged[index], parsed, category.id, timestamp)
            updated += 1
            logger.debug("Updated %s", parsed.code)
        else:
            by_code[parsed.code] = len(merged)
            merged.append(_created_case(parsed, page_id, category.id, timestamp))
            created += 1
            logger.debug("Created %s", parsed.code)

    result_pages = list(pages)
    if page_created is not None:
        result_pages.append(page_created)
    logger.info(
        "Imported into page %s. Created: %d, Updated: %d, New categories: %d",
        page_id,
        created,
        updated,
        len(new_categories),
    )
    return ImportResult(
        created=created,
        updated=updated,
        page_id=page_id,
        pages=result_pages,
        categories=all_categories,
        test_cases=merged,
        page_created=page_created,
        new_categories=new_categories,
    )
