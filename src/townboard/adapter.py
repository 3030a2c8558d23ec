from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from typing import Protocol

from .models import Issue


@dataclass(frozen=True, slots=True)
class SourceHealth:
    """Readiness of the underlying issue store, passed through untouched."""

    initialized: bool
    version: str | None = None
    error: str | None = None


class IssueSource(Protocol):
    """Port interface for the external issue store.

    Sources only hand over a snapshot; they never mutate issues.
    """

    def fetch_snapshot(self) -> Sequence[Issue]:
        """Return every issue currently in the store, in store order."""

    def health(self) -> SourceHealth:
        """Report whether the store is initialized."""

    def name(self) -> str:
        """Human-readable source name (for logging/health)."""
