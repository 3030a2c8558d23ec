from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import pytest

from townboard.errors import RecordError, SourceError
from townboard.json_source import JsonFileSource


def test_reads_list_of_records(tmp_path: Path, example_records: list[dict[str, Any]]) -> None:
    path = tmp_path / "issues.json"
    path.write_text(json.dumps(example_records), encoding="utf-8")

    issues = JsonFileSource(path).fetch_snapshot()

    assert [i.id for i in issues] == ["g-1", "g-2", "g-3"]


def test_reads_wrapped_records(tmp_path: Path, example_records: list[dict[str, Any]]) -> None:
    path = tmp_path / "issues.json"
    path.write_text(json.dumps({"issues": example_records}), encoding="utf-8")

    source = JsonFileSource(path)

    assert len(source.fetch_snapshot()) == 3
    assert source.health().initialized is True


def test_missing_file_is_unhealthy(tmp_path: Path) -> None:
    health = JsonFileSource(tmp_path / "absent.json").health()

    assert health.initialized is False
    assert "not found" in (health.error or "")


def test_invalid_json_raises_record_error(tmp_path: Path) -> None:
    path = tmp_path / "issues.json"
    path.write_text("{not json", encoding="utf-8")

    with pytest.raises(RecordError):
        JsonFileSource(path).fetch_snapshot()
    assert JsonFileSource(path).health().initialized is False


@pytest.mark.parametrize(
    "payload",
    [
        {"isues": [{"id": "g-1", "title": "T", "status": "pending"}]},
        {"issues": {"id": "g-1"}},
        [1],
    ],
)
def test_malformed_payload_raises_record_error(tmp_path: Path, payload: Any) -> None:
    path = tmp_path / "issues.json"
    path.write_text(json.dumps(payload), encoding="utf-8")

    with pytest.raises(RecordError):
        JsonFileSource(path).fetch_snapshot()


def test_missing_file_fetch_raises_source_error(tmp_path: Path) -> None:
    with pytest.raises(SourceError, match="Could not read"):
        JsonFileSource(tmp_path / "absent.json").fetch_snapshot()
