"""Parsing utilities for Markdown test-case documents."""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field

from .assembler import FieldAssembler, ParsedTestCase
from .classifier import LineKind, ParserConfig, classify_line
from .records import join_path

logger = logging.getLogger(__name__)

PAGE_TITLE_RE = re.compile(r"^#[ \t]+(.+?)[ \t]*$", re.MULTILINE)
PAGE_TITLE_SUFFIX_RE = re.compile(r"测试用例文档?$")

__all__ = [
    "ParseContext",
    "ParseResult",
    "ParsedTestCase",
    "extract_page_display_name",
    "parse_markdown_test_cases",
]


@dataclass
class ParseResult:
    categories: list[list[str]] = field(default_factory=list)
    test_cases: list[ParsedTestCase] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.test_cases

    def to_dict(self) -> dict[str, object]:
        return {
            "categories": [list(path) for path in self.categories],
            "testCases": [case.to_dict() for case in self.test_cases],
        }


@dataclass
class ParseContext:
    """Mutable state threaded through every line of one parse."""

    config: ParserConfig
    in_fence: bool = False
    current_path: list[str] = field(default_factory=list)
    assembler: FieldAssembler = field(default_factory=FieldAssembler)
    result: ParseResult = field(default_factory=ParseResult)
    seen_paths: set[str] = field(default_factory=set)

    def emit(self, case: ParsedTestCase | None) -> None:
        if case is not None:
            self.result.test_cases.append(case)

    def record_path(self) -> None:
        key = join_path(self.current_path)
        if key not in self.seen_paths:
            self.seen_paths.add(key)
            self.result.categories.append(list(self.current_path))


def _process_line(context: ParseContext, line: str) -> None:
    classification, context.in_fence = classify_line(line, context.in_fence, context.config)
    kind = classification.kind
    if kind is LineKind.CATEGORY:
        context.current_path = [classification.name or ""]
    elif kind is LineKind.TEST_CASE:
        context.emit(
            context.assembler.open(
                classification.code or "",
                classification.title or "",
                context.current_path,
            )
        )
    elif kind is LineKind.SUB_CATEGORY:
        if context.current_path:
            context.current_path = [context.current_path[0], classification.name or ""]
            context.record_path()
    elif kind in (LineKind.FIELD_LABEL, LineKind.GENERIC_LABEL, LineKind.LIST_ITEM):
        context.assembler.apply(classification)


def parse_markdown_test_cases(
    text: str, config: ParserConfig | None = None
) -> ParseResult:
    """Parse a test-case document into category paths and test cases.

    Unrecognised or malformed lines are skipped; the result is empty when the
    document holds no ``TC-`` headings.
    """
    context = ParseContext(config=config or ParserConfig())
    for line in text.splitlines():
        _process_line(context, line)
    context.emit(context.assembler.finalize())
    logger.debug(
        "Parsed %d test cases in %d category paths",
        len(context.result.test_cases),
        len(context.result.categories),
    )
    return context.result


def extract_page_display_name(text: str) -> str | None:
    """Return the first ``# `` heading without the document-type suffix."""
    match = PAGE_TITLE_RE.search(text)
    if not match:
        return None
    name = PAGE_TITLE_SUFFIX_RE.sub("", match.group(1).strip()).strip()
    return name or None
