from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timezone

from .adapter import IssueSource
from .graph import IssueGraph

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class Snapshot:
    source_name: str
    graph: IssueGraph
    fetched_at: datetime


def take_snapshot(source: IssueSource) -> Snapshot:
    """Run one deterministic pass (fetch → validate → index)."""

    issues = source.fetch_snapshot()
    graph = IssueGraph.load(issues)
    return Snapshot(
        source_name=source.name(),
        graph=graph,
        fetched_at=datetime.now(tz=timezone.utc),
    )


class SnapshotCache:
    """Latest graph built from ``source``, refreshed when older than ``max_age``.

    A refresh builds the new graph completely before swapping the reference,
    so readers see either the old snapshot or the new one, never a partial
    graph. A failed refresh raises and leaves the previous snapshot in place.
    """

    def __init__(
        self,
        source: IssueSource,
        *,
        max_age: float = 5.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._source = source
        self._max_age = max_age
        self._clock = clock
        self._lock = threading.Lock()
        self._snapshot: Snapshot | None = None
        self._taken_at = 0.0

    @property
    def source(self) -> IssueSource:
        return self._source

    def current(self) -> Snapshot:
        snapshot = self._snapshot
        if snapshot is not None and not self._stale():
            return snapshot
        return self.refresh(force=False)

    def refresh(self, *, force: bool = True) -> Snapshot:
        with self._lock:
            # Another thread may have refreshed while we waited.
            if not force and self._snapshot is not None and not self._stale():
                return self._snapshot
            snapshot = take_snapshot(self._source)
            self._snapshot = snapshot
            self._taken_at = self._clock()
        logger.info(
            "Refreshed snapshot from %s: %d issues",
            snapshot.source_name,
            len(snapshot.graph),
        )
        return snapshot

    def _stale(self) -> bool:
        return self._clock() - self._taken_at >= self._max_age
