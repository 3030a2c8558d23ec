from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Mapping

from .errors import InvalidPriorityError, RecordError


# Canonical column order surfaced to the display layer.
STATUSES: tuple[str, ...] = (
    "pending",
    "in_progress",
    "done",
    "blocked",
)

PRIORITIES: tuple[str, ...] = (
    "critical",
    "high",
    "medium",
    "low",
)


# Go writes up to nine fraction digits; fromisoformat on 3.10 takes 3 or 6.
_FRACTION_RE = re.compile(r"\.(\d+)(?=[+-]\d\d:\d\d$|$)")


def _parse_timestamp(value: Any) -> datetime | None:
    """Parse ISO datetimes like '2026-02-26T08:30:00Z'."""

    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value
    text = str(value)
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    text = _FRACTION_RE.sub(lambda m: "." + m.group(1)[:6].ljust(6, "0"), text)
    try:
        dt = datetime.fromisoformat(text)
    except ValueError as exc:
        raise RecordError(f"Bad timestamp: {value!r}") from exc
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def _id_tuple(obj: Mapping[str, Any], key: str) -> tuple[str, ...]:
    raw = obj.get(key) or ()
    if isinstance(raw, str) or not isinstance(raw, (list, tuple)):
        raise RecordError(f"Field {key!r} must be a list of issue ids, got {raw!r}")
    return tuple(str(v) for v in raw)


@dataclass(frozen=True, slots=True)
class IssueSummary:
    """Minimal projection of an issue, always derived at read time."""

    id: str
    title: str
    status: str
    priority: str


@dataclass(frozen=True, slots=True)
class Issue:
    """An issue as handed over by the store, with its declared edges.

    Notes:
        ``status`` is kept verbatim. An out-of-vocabulary value surfaces as
        :class:`~townboard.errors.InvalidStatusError` when a board is built,
        never as a silent default.

        ``blocks`` and ``blocked_by`` hold whatever the record declared; the
        graph unions both sides, so records may carry either one.
    """

    id: str
    title: str
    status: str
    priority: str = "medium"
    description: str = ""
    done_when: tuple[str, ...] = ()
    created_at: datetime | None = None
    updated_at: datetime | None = None
    parent: str | None = None
    blocks: tuple[str, ...] = ()
    blocked_by: tuple[str, ...] = ()

    @classmethod
    def from_record(cls, obj: Mapping[str, Any]) -> "Issue":
        """Build an issue from a raw store record.

        Raises:
            RecordError: If the record is not a mapping, ``id``/``title``/
                ``status`` is missing or a field has the wrong shape.
            InvalidPriorityError: If the priority is not one of
                :data:`PRIORITIES`.
        """

        if not isinstance(obj, Mapping):
            raise RecordError(f"Issue record must be an object, got {obj!r}")
        for key in ("id", "title", "status"):
            if obj.get(key) in (None, ""):
                raise RecordError(f"Issue record missing {key!r}: {dict(obj)!r}")

        issue_id = str(obj["id"])
        priority = str(obj.get("priority") or "medium")
        if priority not in PRIORITIES:
            raise InvalidPriorityError(issue_id, priority)

        done_when = obj.get("done_when") or ()
        if isinstance(done_when, str):
            done_when = [done_when]

        parent = obj.get("parent")
        return cls(
            id=issue_id,
            title=str(obj["title"]),
            status=str(obj["status"]),
            priority=priority,
            description=str(obj.get("description") or ""),
            done_when=tuple(str(item) for item in done_when),
            created_at=_parse_timestamp(obj.get("created_at")),
            updated_at=_parse_timestamp(obj.get("updated_at")),
            parent=str(parent) if parent not in (None, "") else None,
            blocks=_id_tuple(obj, "blocks"),
            blocked_by=_id_tuple(obj, "blocked_by"),
        )

    def summary(self) -> IssueSummary:
        return IssueSummary(
            id=self.id,
            title=self.title,
            status=self.status,
            priority=self.priority,
        )


@dataclass(frozen=True, slots=True)
class IssueDetail:
    """A full issue joined with one-hop neighbor summaries."""

    issue: Issue
    parent: IssueSummary | None
    children: tuple[IssueSummary, ...]
    blocks: tuple[IssueSummary, ...]
    blocked_by: tuple[IssueSummary, ...]


@dataclass(frozen=True, slots=True)
class Column:
    status: str
    label: str
    issues: tuple[IssueSummary, ...] = ()

    @property
    def count(self) -> int:
        return len(self.issues)


@dataclass(frozen=True, slots=True)
class Board:
    columns: tuple[Column, ...]

    @property
    def total(self) -> int:
        return sum(column.count for column in self.columns)

    def column(self, status: str) -> Column:
        for column in self.columns:
            if column.status == status:
                return column
        raise KeyError(status)
