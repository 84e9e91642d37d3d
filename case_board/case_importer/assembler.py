"""Accumulates the fields of the test case currently being parsed."""
from __future__ import annotations

from dataclasses import dataclass, field

from .classifier import Classification, FieldName, LineKind
from .records import DEFAULT_PRIORITY


@dataclass
class ParsedTestCase:
    """A test case as read from a document, before reconciliation."""

    code: str
    title: str
    category_path: list[str] = field(default_factory=list)
    priority: str = DEFAULT_PRIORITY
    preconditions: str | None = None
    steps: list[str] = field(default_factory=list)
    expected_results: list[str] = field(default_factory=list)
    test_data: str | None = None

    def to_dict(self) -> dict[str, object]:
        data: dict[str, object] = {
            "code": self.code,
            "title": self.title,
            "categoryPath": list(self.category_path),
            "priority": self.priority,
            "steps": list(self.steps),
            "expectedResults": list(self.expected_results),
        }
        if self.preconditions is not None:
            data["preconditions"] = self.preconditions
        if self.test_data is not None:
            data["testData"] = self.test_data
        return data


@dataclass
class OpenCase:
    code: str | None = None
    title: str | None = None
    category_path: list[str] | None = None
    priority: str | None = None
    preconditions: str | None = None
    steps: list[str] | None = None
    expected_results: list[str] | None = None
    test_data: str | None = None


class FieldAssembler:
    """Holds the open case and the field that list items are routed to."""

    def __init__(self) -> None:
        self.case: OpenCase | None = None
        self.current_field: FieldName | None = None

    @property
    def is_open(self) -> bool:
        return self.case is not None

    def open(self, code: str, title: str, category_path: list[str]) -> ParsedTestCase | None:
        """Start a new case and return the previous one, finalized."""
        finished = self.finalize()
        self.case = OpenCase(
            code=code,
            title=title,
            category_path=list(category_path),
            priority=DEFAULT_PRIORITY,
            steps=[],
            expected_results=[],
        )
        self.current_field = None
        return finished

    def apply(self, classification: Classification) -> None:
        case = self.case
        if case is None:
            return
        if classification.kind is LineKind.FIELD_LABEL:
            self._apply_label(case, classification.label, classification.value)
        elif classification.kind is LineKind.GENERIC_LABEL:
            self.current_field = None
        elif classification.kind is LineKind.LIST_ITEM:
            self._append_item(case, classification.value or "")

    def _apply_label(self, case: OpenCase, label: FieldName | None, value: str | None) -> None:
        if label is FieldName.PRIORITY:
            if value:
                case.priority = value
            self.current_field = None
            return
        if label is FieldName.PRECONDITIONS and value:
            case.preconditions = value
        elif label is FieldName.TEST_DATA and value:
            case.test_data = value
        self.current_field = label

    def _append_item(self, case: OpenCase, value: str) -> None:
        if not value:
            return
        if self.current_field is FieldName.STEPS:
            if case.steps is None:
                case.steps = []
            case.steps.append(value)
        elif self.current_field is FieldName.EXPECTED_RESULTS:
            if case.expected_results is None:
                case.expected_results = []
            case.expected_results.append(value)

    def finalize(self) -> ParsedTestCase | None:
        """Close the open case; cases without a code are dropped."""
        case, self.case = self.case, None
        self.current_field = None
        if case is None or not case.code:
            return None
        return ParsedTestCase(
            code=case.code or "",
            title=case.title or "",
            category_path=list(case.category_path or []),
            priority=case.priority or DEFAULT_PRIORITY,
            preconditions=case.preconditions,
            steps=list(case.steps or []),
            expected_results=list(case.expected_results or []),
            test_data=case.test_data,
        )
