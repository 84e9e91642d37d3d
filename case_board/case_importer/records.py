"""Persistent records for pages, categories and test cases."""
from __future__ import annotations

import time
import uuid
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

STATUSES = ("pending", "failed", "passed")
PRIORITIES = ("P0", "P1", "P2")
DEFAULT_PRIORITY = "P1"
UNCATEGORIZED = "未分类"
PATH_SEPARATOR = " > "


def now_ms() -> int:
    return int(time.time() * 1000)


def new_id() -> str:
    return uuid.uuid4().hex[:16]


def join_path(path: list[str]) -> str:
    return PATH_SEPARATOR.join(path)


def _drop_none(data: dict[str, Any]) -> dict[str, Any]:
    return {key: value for key, value in data.items() if value is not None}


@dataclass
class Page:
    id: str
    name: str
    display_name: str
    created_at: int
    updated_at: int
    description: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return _drop_none(
            {
                "id": self.id,
                "name": self.name,
                "displayName": self.display_name,
                "description": self.description,
                "createdAt": self.created_at,
                "updatedAt": self.updated_at,
            }
        )

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Page:
        return cls(
            id=str(data["id"]),
            name=str(data.get("name", "")),
            display_name=str(data.get("displayName", data.get("name", ""))),
            description=data.get("description"),
            created_at=int(data.get("createdAt", 0)),
            updated_at=int(data.get("updatedAt", 0)),
        )


@dataclass
class Category:
    id: str
    page_id: str
    name: str
    full_path: str
    order: int
    parent_name: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return _drop_none(
            {
                "id": self.id,
                "pageId": self.page_id,
                "name": self.name,
                "parentName": self.parent_name,
                "fullPath": self.full_path,
                "order": self.order,
            }
        )

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Category:
        return cls(
            id=str(data["id"]),
            page_id=str(data.get("pageId", "")),
            name=str(data.get("name", "")),
            parent_name=data.get("parentName"),
            full_path=str(data.get("fullPath", "")),
            order=int(data.get("order", 0)),
        )


@dataclass
class TestCase:
    """A test case owned by a page.

    ``status``, ``notes`` and ``tested_at`` belong to the tester and survive
    re-imports; everything else is owned by the source document.
    """

    __test__ = False  # keep pytest from collecting this class

    id: str
    code: str
    title: str
    page_id: str
    category_id: str
    priority: str
    created_at: int
    updated_at: int
    steps: list[str] = field(default_factory=list)
    expected_results: list[str] = field(default_factory=list)
    preconditions: str | None = None
    test_data: str | None = None
    status: str = "pending"
    notes: str | None = None
    tested_at: int | None = None

    def to_dict(self) -> dict[str, Any]:
        return _drop_none(
            {
                "id": self.id,
                "code": self.code,
                "title": self.title,
                "pageId": self.page_id,
                "categoryId": self.category_id,
                "priority": self.priority,
                "preconditions": self.preconditions,
                "steps": list(self.steps),
                "expectedResults": list(self.expected_results),
                "testData": self.test_data,
                "status": self.status,
                "notes": self.notes,
                "testedAt": self.tested_at,
                "createdAt": self.created_at,
                "updatedAt": self.updated_at,
            }
        )

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> TestCase:
        tested_at = data.get("testedAt")
        return cls(
            id=str(data["id"]),
            code=str(data.get("code", "")),
            title=str(data.get("title", "")),
            page_id=str(data.get("pageId", "")),
            category_id=str(data.get("categoryId", "")),
            priority=str(data.get("priority", DEFAULT_PRIORITY)),
            preconditions=data.get("preconditions"),
            steps=[str(step) for step in data.get("steps", []) or []],
            expected_results=[str(item) for item in data.get("expectedResults", []) or []],
            test_data=data.get("testData"),
            status=str(data.get("status", "pending")),
            notes=data.get("notes"),
            tested_at=int(tested_at) if tested_at is not None else None,
            created_at=int(data.get("createdAt", 0)),
            updated_at=int(data.get("updatedAt", 0)),
        )
