from __future__ import annotations

from typing import Any

from townboard.adapter import SourceHealth
from townboard.models import Issue


def make_issue(issue_id: str, status: str = "pending", **kwargs: Any) -> Issue:
    title = kwargs.pop("title", f"Issue {issue_id}")
    return Issue(id=issue_id, title=title, status=status, **kwargs)


class StaticSource:
    """In-memory issue source for tests."""

    def __init__(self, issues: list[Issue], *, initialized: bool = True) -> None:
        self.issues = issues
        self.initialized = initialized
        self.fetches = 0

    def name(self) -> str:
        return "static"

    def fetch_snapshot(self) -> list[Issue]:
        self.fetches += 1
        return list(self.issues)

    def health(self) -> SourceHealth:
        if self.initialized:
            return SourceHealth(initialized=True, version="bd 0.0-test")
        return SourceHealth(initialized=False, error="not initialized")
