from __future__ import annotations

import json
import logging
import subprocess
from pathlib import Path
from typing import Any

from .adapter import SourceHealth
from .errors import RecordError, SourceError
from .models import PRIORITIES, Issue

logger = logging.getLogger(__name__)


# bd status -> board status. Anything else is passed through verbatim so the
# board rejects it instead of guessing.
_BD_STATUS: dict[str, str] = {
    "open": "pending",
    "deferred": "pending",
    "in_progress": "in_progress",
    "blocked": "blocked",
    "closed": "done",
}

# bd priorities are 0 (highest) .. 4 (backlog).
_BD_PRIORITY: dict[int, str] = {
    0: "critical",
    1: "high",
    2: "medium",
    3: "low",
    4: "low",
}


class BdCliError(SourceError):
    """Raised when bd CLI invocation fails."""


class BdCli:
    """Tiny wrapper around `bd` that is easy to mock in tests."""

    def __init__(self, workdir: Path | None = None) -> None:
        self._workdir = workdir

    def run(self, args: list[str]) -> str:
        try:
            proc = subprocess.run(
                args,
                check=False,
                capture_output=True,
                text=True,
                cwd=self._workdir,
            )
        except OSError as exc:
            raise BdCliError(f"could not run bd: {exc}") from exc
        if proc.returncode != 0:
            raise BdCliError(
                f"bd command failed ({proc.returncode}): {' '.join(args)}\n{proc.stderr}".strip()
            )
        return proc.stdout


def _map_priority(value: Any) -> str:
    if isinstance(value, str) and value in PRIORITIES:
        return value
    try:
        return _BD_PRIORITY[int(value)]
    except (KeyError, TypeError, ValueError):
        return str(value)


def _split_criteria(value: Any) -> list[str]:
    if not value:
        return []
    if isinstance(value, list):
        return [str(v) for v in value]
    lines = [line.strip().lstrip("-*").strip() for line in str(value).splitlines()]
    return [line for line in lines if line]


def bd_to_record(obj: Any) -> dict[str, Any]:
    """Translate one `bd list --json` entry into a raw issue record.

    bd stores edges as dependencies of the dependent issue:
    ``{"depends_on_id": X, "type": "blocks"}`` means X blocks this issue and
    ``type == "parent-child"`` means X is this issue's parent. Other
    dependency types (``related``, ``discovered-from``) are not board edges.

    Raises:
        RecordError: If the entry is not an object, a dependency entry has
            no target, or the issue ends up with two different parents.
    """

    if not isinstance(obj, dict):
        raise RecordError(f"bd issue entry must be an object, got {obj!r}")
    issue_id = obj.get("id")
    parent = obj.get("parent") or None
    deps = obj.get("dependencies") or []
    if not isinstance(deps, list):
        raise RecordError(f"Issue {issue_id!r} has non-list dependencies: {deps!r}")

    blocked_by: list[str] = []
    for dep in deps:
        if not isinstance(dep, dict):
            raise RecordError(f"Issue {issue_id!r} has malformed dependency {dep!r}")
        target = dep.get("depends_on_id") or dep.get("id")
        if not target:
            raise RecordError(f"Issue {issue_id!r} has dependency without target: {dep!r}")
        kind = dep.get("type") or dep.get("dependency_type")
        if kind == "blocks":
            blocked_by.append(str(target))
        elif kind == "parent-child":
            if parent is not None and str(parent) != str(target):
                raise RecordError(
                    f"Issue {issue_id!r} has conflicting parents {parent!r} and {target!r}"
                )
            parent = str(target)

    status = str(obj.get("status", ""))
    return {
        "id": obj.get("id"),
        "title": obj.get("title"),
        "description": obj.get("description") or "",
        "status": _BD_STATUS.get(status, status),
        "priority": _map_priority(obj.get("priority", 2)),
        "done_when": _split_criteria(obj.get("acceptance_criteria")),
        "created_at": obj.get("created_at"),
        "updated_at": obj.get("updated_at"),
        "parent": parent,
        "blocked_by": blocked_by,
    }


class BeadsAdapter:
    """Issue source reading a beads database through the `bd` CLI."""

    def __init__(self, *, workdir: Path | None = None, bd: BdCli | None = None) -> None:
        self._workdir = Path(workdir) if workdir else Path.cwd()
        self._bd = bd or BdCli(self._workdir)

    def name(self) -> str:
        return "beads"

    def fetch_snapshot(self) -> list[Issue]:
        out = self._bd.run(["bd", "list", "--json"])
        try:
            raw = json.loads(out) if out.strip() else []
        except json.JSONDecodeError as exc:
            raise RecordError(f"bd list returned invalid JSON: {exc}") from exc
        if not isinstance(raw, list):
            raise RecordError("bd list must return a JSON array")
        return [Issue.from_record(bd_to_record(obj)) for obj in raw]

    def health(self) -> SourceHealth:
        if not (self._workdir / ".beads").is_dir():
            return SourceHealth(
                initialized=False,
                error=f"beads not initialized in {self._workdir}",
            )
        try:
            version = self._bd.run(["bd", "version"]).strip() or None
        except BdCliError as exc:
            logger.warning("bd version failed: %s", exc)
            return SourceHealth(initialized=False, error=str(exc))
        return SourceHealth(initialized=True, version=version)
