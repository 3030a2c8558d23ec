from __future__ import annotations

import argparse
import dataclasses
import logging
from pathlib import Path

import uvicorn

from . import __version__
from .adapter import IssueSource
from .api import create_app
from .beads_adapter import BeadsAdapter
from .config import SOURCES, Settings
from .json_source import JsonFileSource
from .snapshot import SnapshotCache
from .town import TownAdapter

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="townboard",
        description="Serve a read-only status board over an issue store.",
    )
    parser.add_argument("--host", help="HTTP server host")
    parser.add_argument("--port", type=int, help="HTTP server port")
    parser.add_argument("--source", choices=SOURCES, help="Issue source")
    parser.add_argument("--dir", dest="workdir", type=Path, help="bd working directory")
    parser.add_argument("--issues-file", type=Path, help="JSON issue snapshot (json source)")
    parser.add_argument("--town", dest="town_root", type=Path, help="Town workspace root (default: ~/gt)")
    parser.add_argument("--max-age", dest="snapshot_max_age", type=float, help="Seconds a snapshot stays fresh")
    parser.add_argument("--log-level", type=str.upper, help="Logging level")
    parser.add_argument("--version", action="version", version=f"townboard {__version__}")
    return parser


def build_source(settings: Settings) -> IssueSource:
    if settings.source == "json":
        assert settings.issues_file is not None
        return JsonFileSource(settings.issues_file)
    return BeadsAdapter(workdir=settings.workdir)


def resolve_settings(args: argparse.Namespace) -> Settings:
    settings = Settings.from_env()
    overrides = {
        key: value
        for key, value in vars(args).items()
        if value is not None
    }
    return dataclasses.replace(settings, version=__version__, **overrides)


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    try:
        settings = resolve_settings(args)
    except ValueError as exc:
        build_parser().error(str(exc))

    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    source = build_source(settings)
    cache = SnapshotCache(source, max_age=settings.snapshot_max_age)
    app = create_app(settings, cache, TownAdapter(settings.town_root))

    logger.info("townboard v%s serving %s on %s:%d", __version__, source.name(), settings.host, settings.port)
    uvicorn.run(app, host=settings.host, port=settings.port, log_level=settings.log_level.lower())
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
