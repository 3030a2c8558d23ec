from __future__ import annotations

from collections.abc import Iterable, Iterator, Mapping
from typing import Any

from .errors import CycleError, DanglingReferenceError, DuplicateIssueError, NotFoundError
from .models import Issue, IssueDetail, IssueSummary


class IssueGraph:
    """Read-only index over one snapshot of issues.

    Edges are validated once in :meth:`load`; afterwards the graph is never
    mutated, so a single instance can be shared by concurrent readers.

    Ordering guarantees:
        - :meth:`issues` yields issues in snapshot order.
        - children are listed in snapshot order of the child records.
        - block edges are listed in the order they were first declared,
          whichever side declared them.
    """

    __slots__ = ("_issues", "_children", "_blocks", "_blocked_by")

    def __init__(
        self,
        issues: dict[str, Issue],
        children: dict[str, list[str]],
        blocks: dict[str, dict[str, None]],
        blocked_by: dict[str, dict[str, None]],
    ) -> None:
        self._issues = issues
        self._children = children
        self._blocks = blocks
        self._blocked_by = blocked_by

    @classmethod
    def load(cls, issues: Iterable[Issue]) -> "IssueGraph":
        """Index a snapshot and validate every edge in it.

        Raises:
            DuplicateIssueError: If two records share an id.
            DanglingReferenceError: If a ``parent``/``blocks``/``blocked_by``
                edge names an id missing from the snapshot.
            CycleError: If a parent chain or a chain of block edges revisits
                an issue.
        """

        index: dict[str, Issue] = {}
        for issue in issues:
            if issue.id in index:
                raise DuplicateIssueError(issue.id)
            index[issue.id] = issue

        children: dict[str, list[str]] = {issue_id: [] for issue_id in index}
        blocks: dict[str, dict[str, None]] = {issue_id: {} for issue_id in index}
        blocked_by: dict[str, dict[str, None]] = {issue_id: {} for issue_id in index}

        for issue in index.values():
            if issue.parent is not None:
                if issue.parent not in index:
                    raise DanglingReferenceError(issue.id, "parent", issue.parent)
                children[issue.parent].append(issue.id)

            for target in issue.blocks:
                if target not in index:
                    raise DanglingReferenceError(issue.id, "blocks", target)
                _add_block_edge(blocks, blocked_by, issue.id, target)

            for source in issue.blocked_by:
                if source not in index:
                    raise DanglingReferenceError(issue.id, "blocked_by", source)
                _add_block_edge(blocks, blocked_by, source, issue.id)

        _check_parent_chains(index)
        _check_block_cycles(blocks)
        return cls(index, children, blocks, blocked_by)

    @classmethod
    def from_records(cls, records: Iterable[Mapping[str, Any]]) -> "IssueGraph":
        return cls.load(Issue.from_record(record) for record in records)

    def __len__(self) -> int:
        return len(self._issues)

    def __contains__(self, issue_id: object) -> bool:
        return issue_id in self._issues

    def issues(self) -> Iterator[Issue]:
        return iter(self._issues.values())

    def get(self, issue_id: str) -> Issue:
        try:
            return self._issues[issue_id]
        except KeyError:
            raise NotFoundError("issue", issue_id) from None

    def summarize(self, issue_id: str) -> IssueSummary:
        return self.get(issue_id).summary()

    def children_of(self, issue_id: str) -> tuple[str, ...]:
        self.get(issue_id)
        return tuple(self._children[issue_id])

    def blocks_of(self, issue_id: str) -> tuple[str, ...]:
        self.get(issue_id)
        return tuple(self._blocks[issue_id])

    def blocked_by_of(self, issue_id: str) -> tuple[str, ...]:
        self.get(issue_id)
        return tuple(self._blocked_by[issue_id])

    def resolve(self, issue_id: str) -> IssueDetail:
        """Join an issue with the summaries of its direct neighbors.

        Only one hop is followed in each direction.
        """

        issue = self.get(issue_id)
        parent = self.summarize(issue.parent) if issue.parent is not None else None
        return IssueDetail(
            issue=issue,
            parent=parent,
            children=tuple(self.summarize(c) for c in self._children[issue_id]),
            blocks=tuple(self.summarize(b) for b in self._blocks[issue_id]),
            blocked_by=tuple(self.summarize(b) for b in self._blocked_by[issue_id]),
        )


def _add_block_edge(
    blocks: dict[str, dict[str, None]],
    blocked_by: dict[str, dict[str, None]],
    source: str,
    target: str,
) -> None:
    if source == target:
        raise CycleError("blocks", (source, target))
    blocks[source][target] = None
    blocked_by[target][source] = None


def _check_parent_chains(index: Mapping[str, Issue]) -> None:
    # Issues already proven to reach a root.
    rooted: set[str] = set()
    limit = len(index)

    for start in index:
        path: list[str] = []
        seen: set[str] = set()
        current: str | None = start
        while current is not None and current not in rooted:
            if current in seen or len(path) > limit:
                loop = path[path.index(current):] if current in seen else path
                raise CycleError("parent", tuple(loop) + (current,))
            seen.add(current)
            path.append(current)
            current = index[current].parent
        rooted.update(path)


def _check_block_cycles(blocks: Mapping[str, Mapping[str, None]]) -> None:
    # Iterative three-colour DFS; recursion depth must not depend on input.
    done: set[str] = set()

    for root in blocks:
        if root in done:
            continue
        stack: list[tuple[str, Iterator[str]]] = [(root, iter(blocks[root]))]
        on_path: dict[str, int] = {root: 0}
        while stack:
            node, targets = stack[-1]
            nxt = next(targets, None)
            if nxt is None:
                stack.pop()
                del on_path[node]
                done.add(node)
                continue
            if nxt in on_path:
                loop = [n for n, _ in stack[on_path[nxt]:]]
                raise CycleError("blocks", tuple(loop) + (nxt,))
            if nxt not in done:
                on_path[nxt] = len(stack)
                stack.append((nxt, iter(blocks[nxt])))
