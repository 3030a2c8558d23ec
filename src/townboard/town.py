"""Read-only view of a town workspace: its agents, rigs, convoys and mail.

A town is a directory tree (default ``~/gt``) with a ``mayor/`` directory at
its root. Rigs are sibling directories carrying ``polecats/``, ``witness/`` or
``.beads/``. Agent liveness comes from tmux session names; convoys and mail
come from the ``gt`` CLI.
"""

from __future__ import annotations

import json
import logging
import os
import subprocess
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping

from .errors import NotFoundError

logger = logging.getLogger(__name__)


ROLE_MAYOR = "mayor"
ROLE_DEACON = "deacon"
ROLE_WITNESS = "witness"
ROLE_REFINERY = "refinery"
ROLE_POLECAT = "polecat"
ROLE_CREW = "crew"

STATUS_ACTIVE = "active"
STATUS_OFFLINE = "offline"


class GtCliError(RuntimeError):
    """Raised when a gt or tmux invocation fails."""


class GtCli:
    """Wrapper around the `gt` and `tmux` executables."""

    def run(
        self,
        args: list[str],
        *,
        cwd: Path | None = None,
        env: Mapping[str, str] | None = None,
    ) -> str:
        try:
            proc = subprocess.run(
                args,
                check=False,
                capture_output=True,
                text=True,
                cwd=cwd,
                env=dict(env) if env is not None else None,
            )
        except OSError as exc:
            raise GtCliError(f"could not run {args[0]}: {exc}") from exc
        if proc.returncode != 0:
            raise GtCliError(
                f"command failed ({proc.returncode}): {' '.join(args)}\n{proc.stderr}".strip()
            )
        return proc.stdout


@dataclass(frozen=True, slots=True)
class Agent:
    role: str
    name: str
    status: str
    rig: str | None = None


@dataclass(frozen=True, slots=True)
class Rig:
    name: str
    path: Path
    witness: Agent | None = None
    refinery: Agent | None = None
    polecats: tuple[Agent, ...] = ()
    crew: tuple[Agent, ...] = ()

    def agents(self) -> list[Agent]:
        out: list[Agent] = []
        if self.witness is not None:
            out.append(self.witness)
        if self.refinery is not None:
            out.append(self.refinery)
        out.extend(self.polecats)
        out.extend(self.crew)
        return out


@dataclass(frozen=True, slots=True)
class Convoy:
    id: str
    title: str
    status: str
    raw: Mapping[str, Any] = field(default_factory=dict)

    @staticmethod
    def from_gt_json(obj: Mapping[str, Any]) -> "Convoy":
        return Convoy(
            id=str(obj.get("id", "")),
            title=str(obj.get("title") or obj.get("name") or ""),
            status=str(obj.get("status", "")),
            raw=dict(obj),
        )


@dataclass(frozen=True, slots=True)
class Message:
    id: str
    sender: str
    subject: str
    body: str = ""
    raw: Mapping[str, Any] = field(default_factory=dict)

    @staticmethod
    def from_gt_json(obj: Mapping[str, Any]) -> "Message":
        return Message(
            id=str(obj.get("id", "")),
            sender=str(obj.get("from") or obj.get("sender") or ""),
            subject=str(obj.get("subject", "")),
            body=str(obj.get("body", "")),
            raw=dict(obj),
        )


@dataclass(frozen=True, slots=True)
class Town:
    root: Path
    name: str = ""
    mayor: Agent | None = None
    deacon: Agent | None = None
    rigs: tuple[Rig, ...] = ()
    convoys: tuple[Convoy, ...] = ()

    def agents(self) -> list[Agent]:
        out: list[Agent] = [a for a in (self.mayor, self.deacon) if a is not None]
        for rig in self.rigs:
            out.extend(rig.agents())
        return out


@dataclass(frozen=True, slots=True)
class TownStatus:
    root: Path
    healthy: bool
    error: str | None = None
    active_rigs: int = 0
    total_agents: int = 0
    active_agents: int = 0
    open_convoys: int = 0


def default_town_root() -> Path:
    return Path.home() / "gt"


class TownAdapter:
    """Reads town state from the filesystem, tmux and the gt CLI."""

    def __init__(self, root: Path | None = None, *, gt: GtCli | None = None) -> None:
        self._root = Path(root) if root else default_town_root()
        self._gt = gt or GtCli()

    @property
    def root(self) -> Path:
        return self._root

    def exists(self) -> bool:
        return (self._root / "mayor").is_dir()

    def status(self) -> TownStatus:
        """Summarize town health. Never raises; read failures mark it unhealthy."""

        if not self.exists():
            return TownStatus(
                root=self._root,
                healthy=False,
                error=f"Town not found at {self._root}",
            )
        try:
            town = self.town()
        except (OSError, NotFoundError) as exc:
            logger.warning("Could not read town at %s: %s", self._root, exc)
            return TownStatus(root=self._root, healthy=False, error=str(exc))
        agents = town.agents()
        return TownStatus(
            root=self._root,
            healthy=True,
            active_rigs=len(town.rigs),
            total_agents=len(agents),
            active_agents=sum(1 for a in agents if a.status == STATUS_ACTIVE),
            open_convoys=len(town.convoys),
        )

    def town(self) -> Town:
        if not self.exists():
            raise NotFoundError("town", str(self._root))

        sessions = self._tmux_sessions()
        mayor = Agent(
            role=ROLE_MAYOR,
            name="mayor",
            status=_agent_status("gt-mayor", sessions),
        )
        deacon = None
        if self._daemon_running():
            deacon = Agent(role=ROLE_DEACON, name="deacon", status=STATUS_ACTIVE)

        return Town(
            root=self._root,
            name=self._read_town_name(),
            mayor=mayor,
            deacon=deacon,
            rigs=tuple(self._scan_rigs(sessions)),
            convoys=tuple(self.convoys()),
        )

    def rigs(self) -> list[Rig]:
        if not self._root.is_dir():
            return []
        return self._scan_rigs(self._tmux_sessions())

    def rig(self, name: str) -> Rig:
        for rig in self.rigs():
            if rig.name == name:
                return rig
        raise NotFoundError("rig", name)

    def agents(self) -> list[Agent]:
        return self.town().agents()

    def convoys(self) -> list[Convoy]:
        data = self._gt_json(["gt", "convoy", "list", "--json"])
        if isinstance(data, dict):
            data = [data]
        return [Convoy.from_gt_json(obj) for obj in data or [] if isinstance(obj, dict)]

    def mail(self, address: str) -> list[Message]:
        env = dict(os.environ)
        env["GT_ROLE"] = address
        data = self._gt_json(["gt", "mail", "inbox", "--json"], env=env)
        if not isinstance(data, list):
            return []
        return [Message.from_gt_json(obj) for obj in data if isinstance(obj, dict)]

    def _scan_rigs(self, sessions: set[str]) -> list[Rig]:
        rigs: list[Rig] = []
        for entry in sorted(self._root.iterdir()):
            name = entry.name
            if not entry.is_dir() or name == "mayor" or name.startswith("."):
                continue
            if not any((entry / marker).is_dir() for marker in ("polecats", "witness", ".beads")):
                continue

            witness = refinery = None
            if (entry / "witness").is_dir():
                witness = Agent(
                    role=ROLE_WITNESS,
                    name="witness",
                    rig=name,
                    status=_agent_status(f"gt-{name}-witness", sessions),
                )
            if (entry / "refinery").is_dir():
                refinery = Agent(
                    role=ROLE_REFINERY,
                    name="refinery",
                    rig=name,
                    status=_agent_status(f"gt-{name}-refinery", sessions),
                )
            polecats = tuple(
                Agent(
                    role=ROLE_POLECAT,
                    name=member,
                    rig=name,
                    status=_agent_status(f"gt-{name}-{member}", sessions),
                )
                for member in _member_dirs(entry / "polecats")
            )
            crew = tuple(
                Agent(
                    role=ROLE_CREW,
                    name=member,
                    rig=name,
                    status=_agent_status(f"gt-{name}-crew-{member}", sessions),
                )
                for member in _member_dirs(entry / "crew")
            )
            rigs.append(
                Rig(
                    name=name,
                    path=entry,
                    witness=witness,
                    refinery=refinery,
                    polecats=polecats,
                    crew=crew,
                )
            )
        return rigs

    def _daemon_running(self) -> bool:
        if (self._root / "mayor" / "daemon.pid").exists():
            return True
        try:
            self._gt.run(["gt", "daemon", "status"], cwd=self._root)
        except GtCliError as exc:
            logger.debug("gt daemon status: %s", exc)
            return False
        return True

    def _read_town_name(self) -> str:
        path = self._root / "mayor" / "town.json"
        try:
            config = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as exc:
            logger.debug("Could not read %s: %s", path, exc)
            return ""
        return str(config.get("name", "")) if isinstance(config, dict) else ""

    def _tmux_sessions(self) -> set[str]:
        try:
            out = self._gt.run(["tmux", "list-sessions", "-F", "#{session_name}"])
        except GtCliError as exc:
            logger.debug("tmux unavailable: %s", exc)
            return set()
        return {line.strip() for line in out.splitlines() if line.strip()}

    def _gt_json(self, args: list[str], env: Mapping[str, str] | None = None) -> Any:
        # gt may be missing or the town may have no convoys; both read as empty.
        try:
            out = self._gt.run(args, cwd=self._root, env=env)
        except GtCliError as exc:
            logger.warning("%s", exc)
            return None
        if not out.strip():
            return None
        try:
            return json.loads(out)
        except json.JSONDecodeError as exc:
            logger.warning("Unparseable output from %s: %s", " ".join(args), exc)
            return None


def _agent_status(session_name: str, sessions: set[str]) -> str:
    return STATUS_ACTIVE if session_name in sessions else STATUS_OFFLINE


def _member_dirs(path: Path) -> list[str]:
    if not path.is_dir():
        return []
    return sorted(p.name for p in path.iterdir() if p.is_dir() and not p.name.startswith("."))
