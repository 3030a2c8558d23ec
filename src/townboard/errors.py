from __future__ import annotations


class TownboardError(Exception):
    """Base class for every error raised by townboard."""


class IssueDataError(TownboardError):
    """The issue snapshot handed over by the store is inconsistent."""


class SourceError(TownboardError, RuntimeError):
    """The issue store could not be read at all."""


class RecordError(IssueDataError):
    """A raw issue record is missing a required field or has a bad shape."""


class DuplicateIssueError(IssueDataError):
    def __init__(self, issue_id: str) -> None:
        super().__init__(f"Duplicate issue id: {issue_id!r}")
        self.issue_id = issue_id


class DanglingReferenceError(IssueDataError):
    """An edge points at an issue id that is not in the snapshot."""

    def __init__(self, issue_id: str, relation: str, target_id: str) -> None:
        super().__init__(
            f"Issue {issue_id!r} has {relation} edge to unknown issue {target_id!r}"
        )
        self.issue_id = issue_id
        self.relation = relation
        self.target_id = target_id


class CycleError(IssueDataError):
    """A parent chain or a chain of block edges loops back on itself."""

    def __init__(self, relation: str, path: tuple[str, ...]) -> None:
        super().__init__(f"{relation} cycle: {' -> '.join(path)}")
        self.relation = relation
        self.path = path


class InvalidStatusError(IssueDataError):
    def __init__(self, issue_id: str, status: object) -> None:
        super().__init__(f"Issue {issue_id!r} has unknown status {status!r}")
        self.issue_id = issue_id
        self.status = status


class InvalidPriorityError(IssueDataError):
    def __init__(self, issue_id: str, priority: object) -> None:
        super().__init__(f"Issue {issue_id!r} has unknown priority {priority!r}")
        self.issue_id = issue_id
        self.priority = priority


class NotFoundError(TownboardError, LookupError):
    """Queried id is absent from the current snapshot."""

    def __init__(self, kind: str, key: str) -> None:
        super().__init__(f"{kind} not found: {key}")
        self.kind = kind
        self.key = key
