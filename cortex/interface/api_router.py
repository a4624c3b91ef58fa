"""HTTP API exposing the scheduling engine to the presentation layer."""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, FastAPI, Header, Query, Request, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from cortex.core.config import constants
from cortex.core.errors import DatabaseError, classify_error_with_response, http_status_for
from cortex.domain.achievement import UserAchievement
from cortex.domain.conditional import Conditional, ConditionalStatus
from cortex.domain.create_models import ConditionalCreate, OutreachCreate, TaskCreate
from cortex.domain.outreach import OutreachEntry
from cortex.domain.task import Task
from cortex.domain.update_models import TaskMove, TaskStatusUpdate, TaskUpdate
from cortex.models.service_models import AchievementProgress, BlockingState, DailyOutreachProgress, TaskPosition
from cortex.modules.achievements import service as achievement_service
from cortex.modules.conditionals import service as conditional_service
from cortex.modules.outreach import service as outreach_service
from cortex.modules.tasks import rollup, time_grid
from cortex.modules.tasks import service as task_service
from cortex.services.session_service import session_store


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["api"])


class LoginRequest(BaseModel):
    owner_id: str = Field(..., min_length=1)
    username: str = ""


class LoginResponse(BaseModel):
    token: str
    owner_id: str
    expires_at: str


class SlotRequest(BaseModel):
    """Double-click on an empty part of the day canvas."""

    pointer_offset: float
    scope_key: str
    title: str = "New Task"


class ResolveRequest(BaseModel):
    outcome_id: str


class LinkRequest(BaseModel):
    conditional_id: str


class RollupResponse(BaseModel):
    task_id: str
    progress: int
    unassigned: int


def require_owner_id(
    session_token: Annotated[str | None, Header(alias=constants.SESSION_HEADER)] = None,
) -> str:
    """Resolve the owner id from the session header."""
    return session_store.get(session_token).require_owner_id()


OwnerId = Annotated[str, Depends(require_owner_id)]


async def handle_domain_error(request: Request, exc: Exception) -> JSONResponse:
    """Translate a domain exception into a structured error response."""
    response = classify_error_with_response(exc)
    status_code = http_status_for(response)
    log = logger.error if status_code >= status.HTTP_500_INTERNAL_SERVER_ERROR else logger.info
    log("api_error", extra={"path": request.url.path, "code": response.code, "error": str(exc)})
    return JSONResponse(content=response.model_dump(mode="json"), status_code=status_code)


def register_error_handlers(app: FastAPI) -> None:
    """Install the domain exception translation on an app."""
    for exc_type in (ValueError, KeyError, PermissionError, DatabaseError):
        app.add_exception_handler(exc_type, handle_domain_error)


# Session


@router.post("/session/login")
async def login(body: LoginRequest) -> LoginResponse:
    token, context = session_store.login(owner_id=body.owner_id, username=body.username)
    return LoginResponse(token=token, owner_id=context.owner_id, expires_at=context.expires_at.isoformat())


@router.post("/session/logout")
async def logout(
    session_token: Annotated[str | None, Header(alias=constants.SESSION_HEADER)] = None,
) -> dict[str, str]:
    session_store.logout(session_token)
    return {"status": "logged_out"}


# Geometry


@router.get("/geometry/position")
async def get_position(start_time: str, end_time: str) -> TaskPosition:
    return time_grid.position_of(start_time, end_time)


@router.get("/geometry/offset-to-time")
async def offset_to_time(offset: float) -> dict[str, str]:
    return {"time": time_grid.offset_to_time(offset)}


@router.get("/geometry/time-to-offset")
async def time_to_offset(time: str) -> dict[str, float]:
    return {"offset": time_grid.time_to_offset(time)}


# Tasks


@router.get("/tasks")
async def list_tasks(
    owner_id: OwnerId,
    scope: str | None = None,
    scope_key: str | None = None,
    parent_task_id: str | None = None,
    task_status: Annotated[str | None, Query(alias="status")] = None,
) -> list[Task]:
    return await task_service.list_tasks(
        owner_id=owner_id,
        scope=scope,
        scope_key=scope_key,
        parent_task_id=parent_task_id,
        status=task_status,
    )


@router.post("/tasks", status_code=status.HTTP_201_CREATED)
async def create_task(owner_id: OwnerId, body: TaskCreate) -> Task:
    return await task_service.create_task(owner_id=owner_id, data=body)


@router.post("/tasks/slot", status_code=status.HTTP_201_CREATED)
async def create_task_at_slot(owner_id: OwnerId, body: SlotRequest) -> Task:
    return await task_service.create_task_at_offset(
        owner_id=owner_id,
        pointer_offset=body.pointer_offset,
        scope_key=body.scope_key,
        title=body.title,
    )


@router.get("/tasks/{task_id}")
async def get_task(owner_id: OwnerId, task_id: str) -> Task:
    return await task_service.get_task(owner_id=owner_id, task_id=task_id)


@router.patch("/tasks/{task_id}")
async def update_task(owner_id: OwnerId, task_id: str, body: TaskUpdate) -> Task:
    return await task_service.update_task(owner_id=owner_id, task_id=task_id, update=body)


@router.delete("/tasks/{task_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_task(owner_id: OwnerId, task_id: str) -> None:
    await task_service.delete_task(owner_id=owner_id, task_id=task_id)


@router.post("/tasks/{task_id}/move")
async def move_task(owner_id: OwnerId, task_id: str, body: TaskMove) -> Task:
    return await task_service.move_task(
        owner_id=owner_id,
        task_id=task_id,
        pointer_offset=body.pointer_offset,
        scope_key=body.scope_key,
    )


@router.post("/tasks/{task_id}/status")
async def set_task_status(owner_id: OwnerId, task_id: str, body: TaskStatusUpdate) -> Task:
    return await task_service.set_status(owner_id=owner_id, task_id=task_id, status=body.status)


@router.post("/tasks/{task_id}/toggle")
async def toggle_task(owner_id: OwnerId, task_id: str) -> Task:
    return await task_service.toggle_completion(owner_id=owner_id, task_id=task_id)


@router.get("/tasks/{task_id}/rollup")
async def get_rollup(owner_id: OwnerId, task_id: str) -> RollupResponse:
    progress = await task_service.get_rollup_progress(owner_id=owner_id, task_id=task_id)
    children = await task_service.get_children(owner_id=owner_id, parent_task_id=task_id)
    return RollupResponse(task_id=task_id, progress=progress, unassigned=rollup.unassigned_contribution(children))


@router.post("/tasks/{task_id}/conditional")
async def link_conditional(owner_id: OwnerId, task_id: str, body: LinkRequest) -> Task:
    return await conditional_service.link_task_to_conditional(
        owner_id=owner_id, task_id=task_id, conditional_id=body.conditional_id
    )


@router.delete("/tasks/{task_id}/conditional")
async def unlink_conditional(owner_id: OwnerId, task_id: str) -> Task:
    return await conditional_service.unlink_task_from_conditional(owner_id=owner_id, task_id=task_id)


@router.post("/blocking/reevaluate")
async def reevaluate_blocking(owner_id: OwnerId) -> dict[str, BlockingState]:
    return await task_service.reevaluate_blocking(owner_id=owner_id)


# Conditionals


@router.get("/conditionals")
async def list_conditionals(
    owner_id: OwnerId,
    conditional_status: Annotated[ConditionalStatus | None, Query(alias="status")] = None,
) -> list[Conditional]:
    return await conditional_service.list_conditionals(owner_id=owner_id, status=conditional_status)


@router.post("/conditionals", status_code=status.HTTP_201_CREATED)
async def create_conditional(owner_id: OwnerId, body: ConditionalCreate) -> Conditional:
    return await conditional_service.create_conditional(owner_id=owner_id, data=body)


@router.get("/conditionals/{conditional_id}")
async def get_conditional(owner_id: OwnerId, conditional_id: str) -> Conditional:
    return await conditional_service.get_conditional(owner_id=owner_id, conditional_id=conditional_id)


@router.delete("/conditionals/{conditional_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_conditional(owner_id: OwnerId, conditional_id: str) -> None:
    await conditional_service.delete_conditional(owner_id=owner_id, conditional_id=conditional_id)


@router.post("/conditionals/{conditional_id}/resolve")
async def resolve_conditional(owner_id: OwnerId, conditional_id: str, body: ResolveRequest) -> Conditional:
    return await conditional_service.resolve_conditional(
        owner_id=owner_id, conditional_id=conditional_id, outcome_id=body.outcome_id
    )


# Outreach


@router.post("/outreach", status_code=status.HTTP_201_CREATED)
async def log_outreach(owner_id: OwnerId, body: OutreachCreate) -> OutreachEntry:
    return await outreach_service.log_outreach(owner_id=owner_id, data=body)


@router.get("/outreach")
async def list_outreach(owner_id: OwnerId, day: str | None = None, program: str | None = None) -> list[OutreachEntry]:
    return await outreach_service.list_outreach(owner_id=owner_id, day=day, program=program)


@router.get("/outreach/progress")
async def get_outreach_progress(owner_id: OwnerId, day: str | None = None) -> DailyOutreachProgress:
    return await outreach_service.get_daily_progress(owner_id=owner_id, day=day)


# Achievements


@router.get("/achievements/progress")
async def get_achievement_progress(owner_id: OwnerId, period_key: str) -> list[AchievementProgress]:
    return await achievement_service.get_achievement_progress(owner_id=owner_id, period_key=period_key)


@router.post("/achievements/refresh")
async def refresh_achievements(owner_id: OwnerId) -> list[UserAchievement]:
    return await achievement_service.refresh_achievements(owner_id=owner_id)


@router.get("/achievements/unlocks")
async def list_unlocks(owner_id: OwnerId, period_key: str | None = None) -> list[UserAchievement]:
    return await achievement_service.list_unlocks(owner_id=owner_id, period_key=period_key)


@router.get("/achievements/xp")
async def get_total_xp(owner_id: OwnerId) -> dict[str, int]:
    return {"total_xp": await achievement_service.get_total_xp(owner_id=owner_id)}
