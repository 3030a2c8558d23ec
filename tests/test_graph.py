from __future__ import annotations

from typing import Any

import pytest

from tests.helpers import make_issue
from townboard.errors import CycleError, DanglingReferenceError, DuplicateIssueError, NotFoundError
from townboard.graph import IssueGraph


def _ids(summaries: Any) -> list[str]:
    return [s.id for s in summaries]


def test_resolve_example_snapshot(example_records: list[dict[str, Any]]) -> None:
    graph = IssueGraph.from_records(example_records)

    root = graph.resolve("g-1")
    assert _ids(root.children) == ["g-2"]
    assert root.parent is None

    waiting = graph.resolve("g-3")
    assert _ids(waiting.blocked_by) == ["g-2"]
    assert waiting.blocks == ()

    child = graph.resolve("g-2")
    assert child.parent is not None and child.parent.id == "g-1"
    assert _ids(child.blocks) == ["g-3"]


def test_block_edge_declared_on_one_side_is_mirrored() -> None:
    graph = IssueGraph.load(
        [
            make_issue("a", blocks=("b",)),
            make_issue("b"),
            make_issue("c", blocked_by=("b",)),
        ]
    )

    assert graph.blocked_by_of("b") == ("a",)
    assert graph.blocks_of("b") == ("c",)
    assert _ids(graph.resolve("c").blocked_by) == ["b"]


def test_block_edge_declared_on_both_sides_is_not_duplicated() -> None:
    graph = IssueGraph.load(
        [
            make_issue("a", blocks=("b",)),
            make_issue("b", blocked_by=("a",)),
        ]
    )

    assert graph.blocks_of("a") == ("b",)
    assert graph.blocked_by_of("b") == ("a",)


def test_children_keep_snapshot_order() -> None:
    graph = IssueGraph.load(
        [
            make_issue("z-child", parent="p"),
            make_issue("p"),
            make_issue("a-child", parent="p"),
            make_issue("m-child", parent="p"),
        ]
    )

    assert graph.children_of("p") == ("z-child", "a-child", "m-child")


def test_resolve_is_one_hop_only() -> None:
    graph = IssueGraph.load(
        [
            make_issue("root"),
            make_issue("mid", parent="root"),
            make_issue("leaf", parent="mid"),
        ]
    )

    assert _ids(graph.resolve("root").children) == ["mid"]


def test_summaries_follow_the_issue() -> None:
    graph = IssueGraph.load([make_issue("a", status="done", title="Alpha", priority="high")])

    summary = graph.summarize("a")
    assert (summary.id, summary.title, summary.status, summary.priority) == ("a", "Alpha", "done", "high")


@pytest.mark.parametrize(
    "issues,relation,target",
    [
        ([make_issue("a", parent="ghost")], "parent", "ghost"),
        ([make_issue("a", blocks=("ghost",))], "blocks", "ghost"),
        ([make_issue("a", blocked_by=("ghost",))], "blocked_by", "ghost"),
    ],
)
def test_load_rejects_dangling_edges(issues: list, relation: str, target: str) -> None:
    with pytest.raises(DanglingReferenceError) as exc_info:
        IssueGraph.load(issues)

    assert exc_info.value.issue_id == "a"
    assert exc_info.value.relation == relation
    assert exc_info.value.target_id == target


def test_load_rejects_parent_cycle() -> None:
    with pytest.raises(CycleError) as exc_info:
        IssueGraph.load([make_issue("a", parent="b"), make_issue("b", parent="a")])

    assert exc_info.value.relation == "parent"
    assert exc_info.value.path[0] == exc_info.value.path[-1]


def test_load_rejects_self_parent() -> None:
    with pytest.raises(CycleError):
        IssueGraph.load([make_issue("a", parent="a")])


def test_load_rejects_cycle_above_a_valid_chain() -> None:
    issues = [
        make_issue("leaf", parent="x"),
        make_issue("x", parent="y"),
        make_issue("y", parent="z"),
        make_issue("z", parent="x"),
    ]

    with pytest.raises(CycleError) as exc_info:
        IssueGraph.load(issues)

    assert set(exc_info.value.path) == {"x", "y", "z"}


def test_load_rejects_self_block() -> None:
    with pytest.raises(CycleError) as exc_info:
        IssueGraph.load([make_issue("a", blocks=("a",))])

    assert exc_info.value.relation == "blocks"


def test_load_rejects_transitive_block_cycle() -> None:
    issues = [
        make_issue("a", blocks=("b",)),
        make_issue("b", blocks=("c",)),
        make_issue("c"),
        make_issue("d", blocked_by=("c",), blocks=("a",)),
    ]

    with pytest.raises(CycleError) as exc_info:
        IssueGraph.load(issues)

    assert exc_info.value.relation == "blocks"
    assert set(exc_info.value.path) == {"a", "b", "c", "d"}


def test_load_accepts_block_diamond() -> None:
    graph = IssueGraph.load(
        [
            make_issue("a", blocks=("b", "c")),
            make_issue("b", blocks=("d",)),
            make_issue("c", blocks=("d",)),
            make_issue("d"),
        ]
    )

    assert graph.blocked_by_of("d") == ("b", "c")


def test_load_rejects_duplicate_ids() -> None:
    with pytest.raises(DuplicateIssueError):
        IssueGraph.load([make_issue("a"), make_issue("a")])


def test_long_parent_chain_does_not_recurse() -> None:
    n = 5000
    issues = [make_issue("i0")] + [make_issue(f"i{k}", parent=f"i{k - 1}") for k in range(1, n)]

    graph = IssueGraph.load(issues)

    assert len(graph) == n
    assert graph.children_of("i0") == ("i1",)


def test_get_and_resolve_unknown_id_raise_not_found() -> None:
    graph = IssueGraph.load([make_issue("a")])

    with pytest.raises(NotFoundError):
        graph.get("nope")
    with pytest.raises(NotFoundError):
        graph.resolve("nope")
    assert "a" in graph
    assert "nope" not in graph
