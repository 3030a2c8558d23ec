"""Typed server settings, read from ``TOWNBOARD_*`` environment variables."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Mapping

from dotenv import load_dotenv

ENV_PREFIX = "TOWNBOARD_"
SOURCES: tuple[str, ...] = ("beads", "json")


@dataclass(frozen=True)
class Settings:
    host: str = "localhost"
    port: int = 7070
    source: str = "beads"
    workdir: Path | None = None
    issues_file: Path | None = None
    town_root: Path | None = None
    cors_origins: tuple[str, ...] = field(default=("http://localhost:5173",))
    snapshot_max_age: float = 5.0
    log_level: str = "INFO"
    version: str = "dev"

    def __post_init__(self) -> None:
        if self.source not in SOURCES:
            raise ValueError(f"Unknown issue source: {self.source!r} (expected one of {SOURCES})")
        if self.source == "json" and self.issues_file is None:
            raise ValueError("The json source needs an issues file")

    @classmethod
    def from_env(
        cls,
        environ: Mapping[str, str] | None = None,
        *,
        dotenv: bool = True,
    ) -> "Settings":
        """Build settings from the environment, loading ``.env`` first."""

        if environ is None:
            if dotenv:
                load_dotenv(override=False)
            environ = os.environ

        def get(name: str) -> str | None:
            value = environ.get(ENV_PREFIX + name)
            return value if value not in (None, "") else None

        parsers = {
            "host": ("HOST", str),
            "port": ("PORT", int),
            "source": ("SOURCE", str.lower),
            "workdir": ("WORKDIR", _path),
            "issues_file": ("ISSUES_FILE", _path),
            "town_root": ("TOWN_ROOT", _path),
            "cors_origins": ("CORS_ORIGINS", _csv),
            "snapshot_max_age": ("SNAPSHOT_MAX_AGE", float),
            "log_level": ("LOG_LEVEL", str.upper),
        }
        kwargs: dict[str, object] = {}
        for key, (name, parse) in parsers.items():
            value = get(name)
            if value is not None:
                kwargs[key] = parse(value)
        return cls(**kwargs)  # type: ignore[arg-type]


def _path(value: str) -> Path:
    return Path(value).expanduser()


def _csv(value: str) -> tuple[str, ...]:
    return tuple(item.strip() for item in value.split(",") if item.strip())
