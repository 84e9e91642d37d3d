"""Line classification for Markdown test-case documents."""
from __future__ import annotations

import os
import re
from collections.abc import Iterable
from dataclasses import dataclass
from enum import Enum

DEFAULT_CATEGORY_SKIP = ("测试概述", "概述", "附录")
DEFAULT_SUBCATEGORY_SKIP = ("测试范围", "测试环境", "优先级说明", "前置条件", "测试数据准备")

FENCE_MARKER = "```"
CATEGORY_PREFIX = "## "
SUBCATEGORY_PREFIX = "### "
GENERIC_LABEL_PREFIX = "- **"

TEST_CASE_RE = re.compile(r"^#{3,4}\s+(TC-(?:[A-Z]+-)?[0-9]+[A-Z]?)[:：]\s*(.+)$")
CATEGORY_ORDINAL_RE = re.compile(r"^[0-9]+\.\s*")
SUBCATEGORY_ORDINAL_RE = re.compile(r"^[0-9]+\.[0-9]+\s*")
LIST_ITEM_RE = re.compile(r"^\s*([0-9]+[.)]|-|\*)\s*(.+)$")
CHECKBOX_RE = re.compile(r"^\[\s?[xX]?\]\s*")
PRIORITY_RE = re.compile(r"P[012]")
COLON_RE = re.compile(r"[:：]")


class LineKind(Enum):
    FENCE = "fence"
    CATEGORY = "category"
    SUB_CATEGORY = "sub_category"
    TEST_CASE = "test_case"
    FIELD_LABEL = "field_label"
    GENERIC_LABEL = "generic_label"
    LIST_ITEM = "list_item"
    IGNORED = "ignored"
    OTHER = "other"


class FieldName(str, Enum):
    PRIORITY = "priority"
    PRECONDITIONS = "preconditions"
    STEPS = "steps"
    EXPECTED_RESULTS = "expected_results"
    TEST_DATA = "test_data"


# Checked in order; the first label whose marker occurs in the line wins.
FIELD_LABELS: tuple[tuple[tuple[str, ...], FieldName], ...] = (
    (("**优先级**",), FieldName.PRIORITY),
    (("**前置条件**",), FieldName.PRECONDITIONS),
    (("**测试步骤**", "**步骤**"), FieldName.STEPS),
    (("**预期结果**",), FieldName.EXPECTED_RESULTS),
    (("**测试数据**",), FieldName.TEST_DATA),
)

INLINE_VALUE_FIELDS = {FieldName.PRECONDITIONS, FieldName.TEST_DATA}


@dataclass(frozen=True)
class ParserConfig:
    """Heading phrases that mark non-test sections of a document."""

    category_skip: tuple[str, ...] = DEFAULT_CATEGORY_SKIP
    subcategory_skip: tuple[str, ...] = DEFAULT_SUBCATEGORY_SKIP


@dataclass(frozen=True)
class Classification:
    kind: LineKind
    name: str | None = None
    code: str | None = None
    title: str | None = None
    label: FieldName | None = None
    value: str | None = None


OTHER = Classification(LineKind.OTHER)
IGNORED = Classification(LineKind.IGNORED)


def _merge_phrases(defaults: Iterable[str], env_value: str | None) -> tuple[str, ...]:
    phrases = list(defaults)
    if env_value:
        phrases.extend(part.strip() for part in env_value.split(","))
    seen = set()
    unique: list[str] = []
    for phrase in phrases:
        if phrase and phrase not in seen:
            unique.append(phrase)
            seen.add(phrase)
    return tuple(unique)


def resolve_parser_config(
    category_skip: Iterable[str] | None = None,
    subcategory_skip: Iterable[str] | None = None,
) -> ParserConfig:
    """Build a config from explicit phrases or the environment.

    ``CASE_IMPORT_CATEGORY_SKIP`` and ``CASE_IMPORT_SUBCATEGORY_SKIP`` hold
    comma-separated phrases appended to the defaults.
    """
    if category_skip is None:
        category = _merge_phrases(
            DEFAULT_CATEGORY_SKIP, os.environ.get("CASE_IMPORT_CATEGORY_SKIP")
        )
    else:
        category = _merge_phrases(category_skip, None)
    if subcategory_skip is None:
        subcategory = _merge_phrases(
            DEFAULT_SUBCATEGORY_SKIP, os.environ.get("CASE_IMPORT_SUBCATEGORY_SKIP")
        )
    else:
        subcategory = _merge_phrases(subcategory_skip, None)
    return ParserConfig(category_skip=category, subcategory_skip=subcategory)


def _is_skipped(name: str, phrases: Iterable[str]) -> bool:
    return any(phrase in name for phrase in phrases)


def strip_checkbox(value: str) -> str:
    return CHECKBOX_RE.sub("", value, count=1)


def inline_value(line: str) -> str | None:
    """Text after the first ASCII or full-width colon, if any."""
    match = COLON_RE.search(line)
    if not match:
        return None
    value = line[match.end():].strip()
    return value or None


def match_field_label(trimmed: str) -> FieldName | None:
    for markers, label in FIELD_LABELS:
        if any(marker in trimmed for marker in markers):
            return label
    return None


def classify_line(
    line: str, in_fence: bool, config: ParserConfig | None = None
) -> tuple[Classification, bool]:
    """Classify one raw line and return the updated fence flag."""
    config = config or ParserConfig()
    trimmed = line.strip()

    if trimmed.startswith(FENCE_MARKER):
        return Classification(LineKind.FENCE), not in_fence
    if in_fence:
        return IGNORED, in_fence

    if line.startswith(CATEGORY_PREFIX):
        name = CATEGORY_ORDINAL_RE.sub("", line[len(CATEGORY_PREFIX):], count=1).strip()
        if not name or _is_skipped(name, config.category_skip):
            return IGNORED, in_fence
        return Classification(LineKind.CATEGORY, name=name), in_fence

    case_match = TEST_CASE_RE.match(line.rstrip("\r\n"))
    if case_match:
        return (
            Classification(
                LineKind.TEST_CASE,
                code=case_match.group(1),
                title=case_match.group(2).strip(),
            ),
            in_fence,
        )

    if line.startswith(SUBCATEGORY_PREFIX):
        name = SUBCATEGORY_ORDINAL_RE.sub(
            "", line[len(SUBCATEGORY_PREFIX):], count=1
        ).strip()
        if not name or _is_skipped(name, config.subcategory_skip):
            return IGNORED, in_fence
        return Classification(LineKind.SUB_CATEGORY, name=name), in_fence

    label = match_field_label(trimmed)
    if label is FieldName.PRIORITY:
        priority = PRIORITY_RE.search(trimmed)
        return (
            Classification(
                LineKind.FIELD_LABEL,
                label=label,
                value=priority.group(0) if priority else None,
            ),
            in_fence,
        )
    if label is not None:
        value = inline_value(trimmed) if label in INLINE_VALUE_FIELDS else None
        return Classification(LineKind.FIELD_LABEL, label=label, value=value), in_fence

    if trimmed.startswith(GENERIC_LABEL_PREFIX):
        return Classification(LineKind.GENERIC_LABEL), in_fence

    item = LIST_ITEM_RE.match(trimmed)
    if item:
        value = strip_checkbox(item.group(2).strip())
        return Classification(LineKind.LIST_ITEM, value=value), in_fence

    return OTHER, in_fence
