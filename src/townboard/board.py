"""Project an issue graph onto the status board.

Columns always come out in :data:`~townboard.models.STATUSES` order, one per
status, empty ones included. Inside a column issues keep snapshot order.
"""

from __future__ import annotations

from collections.abc import Mapping

from .errors import InvalidStatusError
from .graph import IssueGraph
from .models import STATUSES, Board, Column, IssueSummary


COLUMN_LABELS: Mapping[str, str] = {
    "pending": "Pending",
    "in_progress": "In Progress",
    "done": "Done",
    "blocked": "Blocked",
}


def build_board(graph: IssueGraph, labels: Mapping[str, str] = COLUMN_LABELS) -> Board:
    """Partition every issue of ``graph`` into the four status columns.

    Args:
        graph: A loaded issue graph.
        labels: Status -> column heading. Must cover every status.

    Raises:
        InvalidStatusError: If any issue carries a status outside
            :data:`~townboard.models.STATUSES`.
        KeyError: If ``labels`` lacks a status.
    """

    buckets: dict[str, list[IssueSummary]] = {status: [] for status in STATUSES}
    for issue in graph.issues():
        bucket = buckets.get(issue.status)
        if bucket is None:
            raise InvalidStatusError(issue.id, issue.status)
        bucket.append(issue.summary())

    return Board(
        columns=tuple(
            Column(status=status, label=labels[status], issues=tuple(buckets[status]))
            for status in STATUSES
        )
    )
