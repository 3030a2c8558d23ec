"""HTTP read surface for the board, issue details and town state."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from .board import build_board
from .config import Settings
from .errors import (
    CycleError,
    DanglingReferenceError,
    DuplicateIssueError,
    InvalidPriorityError,
    InvalidStatusError,
    IssueDataError,
    NotFoundError,
    RecordError,
    SourceError,
)
from .models import Board, IssueDetail, IssueSummary
from .snapshot import SnapshotCache
from .town import Agent, Convoy, Message, Rig, STATUS_ACTIVE, Town, TownAdapter, TownStatus

logger = logging.getLogger(__name__)

API_PREFIX = "/api/v1"

router = APIRouter(prefix=API_PREFIX)


# Response models

class IssueSummaryResponse(BaseModel):
    id: str
    title: str
    status: str
    priority: str


class IssueResponse(BaseModel):
    id: str
    title: str
    description: str
    status: str
    priority: str
    parent: IssueSummaryResponse | None
    children: list[IssueSummaryResponse]
    blocks: list[IssueSummaryResponse]
    blocked_by: list[IssueSummaryResponse]
    done_when: list[str]
    created_at: str | None
    updated_at: str | None


class ColumnResponse(BaseModel):
    status: str
    label: str
    count: int
    issues: list[IssueSummaryResponse]


class BoardResponse(BaseModel):
    columns: list[ColumnResponse]
    total: int


class HealthResponse(BaseModel):
    status: str
    beads_initialized: bool
    version: str
    source: str
    bd_version: str | None = None
    error: str | None = None


class AgentResponse(BaseModel):
    role: str
    name: str
    status: str
    rig: str | None = None


class RigResponse(BaseModel):
    name: str
    path: str
    witness: AgentResponse | None
    refinery: AgentResponse | None
    polecats: list[AgentResponse]
    crew: list[AgentResponse]


class ConvoyResponse(BaseModel):
    id: str
    title: str
    status: str
    raw: dict


class MessageResponse(BaseModel):
    id: str
    sender: str
    subject: str
    body: str


class TownResponse(BaseModel):
    root: str
    name: str
    mayor: AgentResponse | None
    deacon: AgentResponse | None
    rigs: list[RigResponse]
    convoys: list[ConvoyResponse]


class TownStatusResponse(BaseModel):
    town_root: str
    healthy: bool
    error: str | None = None
    active_rigs: int
    total_agents: int
    active_agents: int
    open_convoys: int


class RigsResponse(BaseModel):
    rigs: list[RigResponse]
    total: int


class AgentsResponse(BaseModel):
    agents: list[AgentResponse]
    total: int
    active: int
    offline: int


class ConvoysResponse(BaseModel):
    convoys: list[ConvoyResponse]
    total: int


class MailResponse(BaseModel):
    messages: list[MessageResponse]
    total: int


# Helper functions

def summary_to_response(summary: IssueSummary) -> IssueSummaryResponse:
    return IssueSummaryResponse(
        id=summary.id,
        title=summary.title,
        status=summary.status,
        priority=summary.priority,
    )


def board_to_response(board: Board) -> BoardResponse:
    return BoardResponse(
        columns=[
            ColumnResponse(
                status=column.status,
                label=column.label,
                count=column.count,
                issues=[summary_to_response(s) for s in column.issues],
            )
            for column in board.columns
        ],
        total=board.total,
    )


def detail_to_response(detail: IssueDetail) -> IssueResponse:
    issue = detail.issue
    return IssueResponse(
        id=issue.id,
        title=issue.title,
        description=issue.description,
        status=issue.status,
        priority=issue.priority,
        parent=summary_to_response(detail.parent) if detail.parent else None,
        children=[summary_to_response(s) for s in detail.children],
        blocks=[summary_to_response(s) for s in detail.blocks],
        blocked_by=[summary_to_response(s) for s in detail.blocked_by],
        done_when=list(issue.done_when),
        created_at=issue.created_at.isoformat() if issue.created_at else None,
        updated_at=issue.updated_at.isoformat() if issue.updated_at else None,
    )


def agent_to_response(agent: Agent) -> AgentResponse:
    return AgentResponse(role=agent.role, name=agent.name, status=agent.status, rig=agent.rig)


def _optional_agent(agent: Agent | None) -> AgentResponse | None:
    return agent_to_response(agent) if agent is not None else None


def rig_to_response(rig: Rig) -> RigResponse:
    return RigResponse(
        name=rig.name,
        path=str(rig.path),
        witness=_optional_agent(rig.witness),
        refinery=_optional_agent(rig.refinery),
        polecats=[agent_to_response(a) for a in rig.polecats],
        crew=[agent_to_response(a) for a in rig.crew],
    )


def convoy_to_response(convoy: Convoy) -> ConvoyResponse:
    return ConvoyResponse(id=convoy.id, title=convoy.title, status=convoy.status, raw=dict(convoy.raw))


def message_to_response(message: Message) -> MessageResponse:
    return MessageResponse(
        id=message.id,
        sender=message.sender,
        subject=message.subject,
        body=message.body,
    )


def town_to_response(town: Town) -> TownResponse:
    return TownResponse(
        root=str(town.root),
        name=town.name,
        mayor=_optional_agent(town.mayor),
        deacon=_optional_agent(town.deacon),
        rigs=[rig_to_response(r) for r in town.rigs],
        convoys=[convoy_to_response(c) for c in town.convoys],
    )


def town_status_to_response(town_status: TownStatus) -> TownStatusResponse:
    return TownStatusResponse(
        town_root=str(town_status.root),
        healthy=town_status.healthy,
        error=town_status.error,
        active_rigs=town_status.active_rigs,
        total_agents=town_status.total_agents,
        active_agents=town_status.active_agents,
        open_convoys=town_status.open_convoys,
    )


def get_cache(request: Request) -> SnapshotCache:
    return request.app.state.cache


def get_town(request: Request) -> TownAdapter:
    return request.app.state.town


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


# Routes

@router.get(
    "/health",
    response_model=HealthResponse,
    responses={
        200: {"description": "Issue store initialized"},
        503: {"description": "Issue store not initialized"},
    },
)
def health(
    cache: SnapshotCache = Depends(get_cache),
    settings: Settings = Depends(get_settings),
) -> JSONResponse:
    source = cache.source
    source_health = source.health()
    body = HealthResponse(
        status="ok" if source_health.initialized else "unavailable",
        beads_initialized=source_health.initialized,
        version=settings.version,
        source=source.name(),
        bd_version=source_health.version,
        error=source_health.error,
    )
    code = status.HTTP_200_OK if source_health.initialized else status.HTTP_503_SERVICE_UNAVAILABLE
    return JSONResponse(status_code=code, content=body.model_dump(exclude_none=True))


@router.get("/board", response_model=BoardResponse)
def board(cache: SnapshotCache = Depends(get_cache)) -> BoardResponse:
    snapshot = cache.current()
    return board_to_response(build_board(snapshot.graph))


@router.get(
    "/issues/{issue_id}",
    response_model=IssueResponse,
    responses={404: {"description": "Issue not found"}},
)
def issue(issue_id: str, cache: SnapshotCache = Depends(get_cache)) -> IssueResponse:
    snapshot = cache.current()
    return detail_to_response(snapshot.graph.resolve(issue_id))


@router.get("/town/status", response_model=TownStatusResponse)
def town_status(town: TownAdapter = Depends(get_town)) -> TownStatusResponse:
    return town_status_to_response(town.status())


@router.get(
    "/town",
    response_model=TownResponse,
    responses={404: {"description": "Town not found"}},
)
def town_detail(town: TownAdapter = Depends(get_town)) -> TownResponse:
    return town_to_response(town.town())


@router.get("/town/rigs", response_model=RigsResponse)
def rigs(town: TownAdapter = Depends(get_town)) -> RigsResponse:
    found = town.rigs()
    return RigsResponse(rigs=[rig_to_response(r) for r in found], total=len(found))


@router.get(
    "/town/rigs/{name}",
    response_model=RigResponse,
    responses={404: {"description": "Rig not found"}},
)
def rig(name: str, town: TownAdapter = Depends(get_town)) -> RigResponse:
    return rig_to_response(town.rig(name))


@router.get("/town/agents", response_model=AgentsResponse)
def agents(town: TownAdapter = Depends(get_town)) -> AgentsResponse:
    found = town.agents()
    active = sum(1 for a in found if a.status == STATUS_ACTIVE)
    return AgentsResponse(
        agents=[agent_to_response(a) for a in found],
        total=len(found),
        active=active,
        offline=len(found) - active,
    )


@router.get("/town/convoys", response_model=ConvoysResponse)
def convoys(town: TownAdapter = Depends(get_town)) -> ConvoysResponse:
    found = town.convoys()
    return ConvoysResponse(convoys=[convoy_to_response(c) for c in found], total=len(found))


@router.get("/town/mail/{address:path}", response_model=MailResponse)
def mail(address: str, town: TownAdapter = Depends(get_town)) -> MailResponse:
    found = town.mail(address)
    return MailResponse(messages=[message_to_response(m) for m in found], total=len(found))


# Error translation

_DATA_ERROR_CODES: tuple[tuple[type[IssueDataError], str], ...] = (
    (DanglingReferenceError, "DANGLING_REFERENCE"),
    (CycleError, "CYCLE"),
    (InvalidStatusError, "INVALID_STATUS"),
    (InvalidPriorityError, "INVALID_PRIORITY"),
    (DuplicateIssueError, "DUPLICATE_ISSUE"),
    (RecordError, "INVALID_RECORD"),
)


def _error(code: int, error: str, message: str) -> JSONResponse:
    return JSONResponse(status_code=code, content={"error": error, "message": message})


async def _not_found_handler(request: Request, exc: NotFoundError) -> JSONResponse:
    return _error(status.HTTP_404_NOT_FOUND, f"{exc.kind.upper()}_NOT_FOUND", str(exc))


async def _data_error_handler(request: Request, exc: IssueDataError) -> JSONResponse:
    code = next((c for kind, c in _DATA_ERROR_CODES if isinstance(exc, kind)), "DATA_ERROR")
    logger.error("Issue snapshot rejected on %s: %s", request.url.path, exc)
    return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, code, str(exc))


async def _source_error_handler(request: Request, exc: SourceError) -> JSONResponse:
    logger.error("Issue source failed on %s: %s", request.url.path, exc)
    return _error(status.HTTP_502_BAD_GATEWAY, "SOURCE_ERROR", str(exc))


def create_app(settings: Settings, cache: SnapshotCache, town: TownAdapter) -> FastAPI:
    app = FastAPI(title="townboard", version=settings.version)
    app.state.settings = settings
    app.state.cache = cache
    app.state.town = town

    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(settings.cors_origins),
        allow_methods=["GET", "OPTIONS"],
        allow_headers=["*"],
    )
    app.add_exception_handler(NotFoundError, _not_found_handler)
    app.add_exception_handler(IssueDataError, _data_error_handler)
    app.add_exception_handler(SourceError, _source_error_handler)
    app.include_router(router)
    return app
