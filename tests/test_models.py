from __future__ import annotations

from datetime import datetime, timezone

import pytest

from townboard.errors import InvalidPriorityError, RecordError
from townboard.models import Board, Column, Issue, IssueSummary


def test_from_record_parses_full_record() -> None:
    issue = Issue.from_record(
        {
            "id": "g-7",
            "title": "Ship it",
            "description": "All of it",
            "status": "in_progress",
            "priority": "high",
            "done_when": ["tests pass", "deployed"],
            "created_at": "2026-02-26T08:30:00Z",
            "updated_at": "2026-02-26T09:00:00+00:00",
            "parent": "g-1",
            "blocks": ["g-8"],
            "blocked_by": [],
        }
    )

    assert issue.id == "g-7"
    assert issue.done_when == ("tests pass", "deployed")
    assert issue.created_at == datetime(2026, 2, 26, 8, 30, tzinfo=timezone.utc)
    assert issue.parent == "g-1"
    assert issue.blocks == ("g-8",)
    assert issue.summary() == IssueSummary(id="g-7", title="Ship it", status="in_progress", priority="high")


def test_from_record_applies_defaults() -> None:
    issue = Issue.from_record({"id": "g-1", "title": "Bare", "status": "pending"})

    assert issue.priority == "medium"
    assert issue.description == ""
    assert issue.done_when == ()
    assert issue.created_at is None
    assert issue.parent is None
    assert issue.blocks == ()


def test_from_record_keeps_unknown_status_verbatim() -> None:
    issue = Issue.from_record({"id": "g-1", "title": "Odd", "status": "triage"})

    assert issue.status == "triage"


@pytest.mark.parametrize("missing", ["id", "title", "status"])
def test_from_record_rejects_missing_field(missing: str) -> None:
    record = {"id": "g-1", "title": "T", "status": "pending"}
    del record[missing]

    with pytest.raises(RecordError, match=missing):
        Issue.from_record(record)


@pytest.mark.parametrize(
    "record",
    [
        {"id": "g-1", "title": "T", "status": "pending", "blocks": "g-2"},
        {"id": "g-1", "title": "T", "status": "pending", "created_at": "yesterday"},
    ],
)
def test_from_record_rejects_bad_shapes(record: dict) -> None:
    with pytest.raises(RecordError):
        Issue.from_record(record)


def test_from_record_rejects_unknown_priority() -> None:
    with pytest.raises(InvalidPriorityError) as exc_info:
        Issue.from_record({"id": "g-1", "title": "T", "status": "pending", "priority": "urgent"})

    assert exc_info.value.issue_id == "g-1"


def test_board_total_is_sum_of_column_counts() -> None:
    a = IssueSummary(id="a", title="A", status="pending", priority="low")
    b = IssueSummary(id="b", title="B", status="done", priority="low")
    board = Board(
        columns=(
            Column(status="pending", label="Pending", issues=(a,)),
            Column(status="done", label="Done", issues=(b,)),
            Column(status="blocked", label="Blocked"),
        )
    )

    assert [c.count for c in board.columns] == [1, 1, 0]
    assert board.total == 2
    assert board.column("done").issues == (b,)


@pytest.mark.parametrize("record", [1, "g-1", ["g-1", "T", "pending"], None])
def test_from_record_rejects_non_objects(record: object) -> None:
    with pytest.raises(RecordError, match="must be an object"):
        Issue.from_record(record)  # type: ignore[arg-type]


@pytest.mark.parametrize(
    ("stamp", "micros"),
    [
        ("2026-02-26T08:30:00.123456789Z", 123456),
        ("2026-02-26T08:30:00.1Z", 100000),
        ("2026-02-26T08:30:00.123456789+02:00", 123456),
    ],
)
def test_from_record_accepts_any_fraction_width(stamp: str, micros: int) -> None:
    issue = Issue.from_record({"id": "g-1", "title": "T", "status": "pending", "created_at": stamp})

    assert issue.created_at is not None
    assert issue.created_at.microsecond == micros
    assert issue.created_at.tzinfo is not None
