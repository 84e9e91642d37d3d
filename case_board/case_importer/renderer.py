"""Rendering utilities for the per-page test report."""
from __future__ import annotations

from collections import Counter, defaultdict
from collections.abc import Mapping
from datetime import datetime
from pathlib import Path
from typing import Any

from . import store as store_module
from .records import PRIORITIES, STATUSES, TestCase

STATUS_LABELS = {
    "pending": "待测试",
    "failed": "有问题",
    "passed": "已通过",
}

PRIORITY_LABELS = {
    "P0": "核心功能",
    "P1": "重要功能",
    "P2": "次要功能",
}


def status_label(status: str) -> str:
    return STATUS_LABELS.get(status, status)


def priority_label(priority: str) -> str:
    return PRIORITY_LABELS.get(priority, priority)


def format_timestamp(value: int | None) -> str:
    if not value:
        return ""
    return datetime.fromtimestamp(value / 1000).strftime("%Y-%m-%d %H:%M")


def render_page_report(
    store: Mapping[str, Any], page_id: str, output_path: Path | None = None
) -> str:
    page = store_module.resolve_page(store, page_id)
    if page is None:
        raise KeyError(page_id)
    cases = [case for case in store_module.cases_of(store) if case.page_id == page.id]
    categories = sorted(
        (c for c in store_module.categories_of(store) if c.page_id == page.id),
        key=lambda category: category.order,
    )
    stats = store_module.get_statistics(store, page.id)
    priority_counts: Counter[str] = Counter(case.priority for case in cases)

    lines = [f"# {page.display_name} ({page.name})", ""]
    lines.append(
        f"**Total:** {stats['total']} | "
        + " | ".join(f"{status_label(status)}: {stats[status]}" for status in STATUSES)
    )
    lines.append("")
    if priority_counts:
        lines.append(
            "**By priority:** "
            + ", ".join(
                f"{priority} {priority_label(priority)} ({priority_counts[priority]})"
                for priority in PRIORITIES
                if priority_counts[priority]
            )
        )
        lines.append("")

    grouped: dict[str, list[TestCase]] = defaultdict(list)
    for case in cases:
        grouped[case.category_id].append(case)
    known = {category.id for category in categories}
    orphans = [case for case in cases if case.category_id not in known]

    for category in categories:
        members = grouped.get(category.id)
        if not members:
            continue
        lines.extend(render_section(category.full_path, members))
    if orphans:
        lines.extend(render_section("Other", orphans))
    content = "\n".join(lines)
    if output_path is not None:
        output_path.parent.mkdir(parents=True, exist_ok=True)
        output_path.write_text(content, encoding="utf-8")
    return content


def render_section(heading: str, cases: list[TestCase]) -> list[str]:
    lines = [f"## {escape_cell(heading)}", ""]
    lines.append("| Code | Title | Priority | Status | Tested | Notes |")
    lines.append("| --- | --- | --- | --- | --- | --- |")
    for case in cases:
        lines.append(format_case_row(case))
    lines.append("")
    return lines


def format_case_row(case: TestCase) -> str:
    return (
        "| "
        f"{escape_cell(case.code)} | {escape_cell(case.title)} | {case.priority} | "
        f"{status_label(case.status)} | {format_timestamp(case.tested_at)} | "
        f"{escape_cell(case.notes or '')} |"
    )


def escape_cell(value: str) -> str:
    return value.replace("|", "\\|").replace("\n", " ")
