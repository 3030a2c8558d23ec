from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

from .adapter import SourceHealth
from .errors import RecordError, SourceError
from .models import Issue

logger = logging.getLogger(__name__)


class JsonFileSource:
    """Issue source backed by a JSON file of raw records.

    The file holds either a list of records or ``{"issues": [...]}``. It is
    re-read on every fetch so edits show up on the next refresh.
    """

    def __init__(self, path: Path) -> None:
        self._path = Path(path)

    def name(self) -> str:
        return f"json:{self._path}"

    def fetch_snapshot(self) -> list[Issue]:
        raw = self._load()
        return [Issue.from_record(obj) for obj in raw]

    def health(self) -> SourceHealth:
        if not self._path.exists():
            return SourceHealth(initialized=False, error=f"{self._path} not found")
        try:
            self._load()
        except (SourceError, RecordError) as exc:
            return SourceHealth(initialized=False, error=str(exc))
        return SourceHealth(initialized=True)

    def _load(self) -> list[Any]:
        try:
            text = self._path.read_text(encoding="utf-8")
        except OSError as exc:
            raise SourceError(f"Could not read {self._path}: {exc}") from exc
        try:
            data = json.loads(text)
        except json.JSONDecodeError as exc:
            raise RecordError(f"{self._path} is not valid JSON: {exc}") from exc
        if isinstance(data, dict):
            if "issues" not in data:
                raise RecordError(f"{self._path} holds an object without an 'issues' key")
            data = data["issues"]
        if not isinstance(data, list):
            raise RecordError(f"{self._path} must hold a list of issue records")
        logger.debug("Loaded %d issue records from %s", len(data), self._path)
        return data
