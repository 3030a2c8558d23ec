"""Townboard core (store-agnostic).

This package defines the issue graph, the status board projection, and the
snapshot sources that feed them.
"""

__version__ = "0.1.0"

from .models import STATUSES, PRIORITIES, Board, Column, Issue, IssueDetail, IssueSummary
from .errors import (
    CycleError,
    DanglingReferenceError,
    DuplicateIssueError,
    InvalidStatusError,
    IssueDataError,
    NotFoundError,
    TownboardError,
)
from .graph import IssueGraph
from .board import COLUMN_LABELS, build_board
from .snapshot import SnapshotCache, take_snapshot

__all__ = [
    "STATUSES",
    "PRIORITIES",
    "Board",
    "Column",
    "Issue",
    "IssueDetail",
    "IssueSummary",
    "CycleError",
    "DanglingReferenceError",
    "DuplicateIssueError",
    "InvalidStatusError",
    "IssueDataError",
    "NotFoundError",
    "TownboardError",
    "IssueGraph",
    "COLUMN_LABELS",
    "build_board",
    "SnapshotCache",
    "take_snapshot",
]
