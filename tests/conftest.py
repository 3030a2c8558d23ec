from __future__ import annotations

from typing import Any

import pytest


@pytest.fixture
def example_records() -> list[dict[str, Any]]:
    return [
        {"id": "g-1", "title": "Root", "status": "pending", "parent": None, "blocks": []},
        {"id": "g-2", "title": "Child", "status": "done", "parent": "g-1", "blocks": ["g-3"]},
        {"id": "g-3", "title": "Waiting", "status": "blocked", "parent": None, "blocked_by": ["g-2"]},
    ]
