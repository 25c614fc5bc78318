from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession
from .. import crud
from ..auth import get_identity
from ..db import get_db
from ..directive import parse
from ..errors import TodoError
from ..schemas import DirectiveRequest, Identity, TaskListResponse, TaskResponse, VerifyResponse

router = APIRouter(tags=["tasks"])


def _http_error(e: TodoError) -> HTTPException:
    return HTTPException(status_code=e.status_code, detail=e.message)


@router.get("/auth/verify", response_model=VerifyResponse)
async def verify(identity: Identity = Depends(get_identity)):
    """Check a bearer credential and say who it belongs to"""
    return VerifyResponse(user_id=identity.user_id, token_name=identity.token_name)


@router.post("/tasks", response_model=TaskResponse, status_code=201)
async def add_task(
    request: DirectiveRequest,
    identity: Identity = Depends(get_identity),
    db: AsyncSession = Depends(get_db)
):
    """Create a task from the words of an ``add`` command"""
    try:
        task = await crud.create_task(db, identity.user_id, parse(request.words))
    except TodoError as e:
        raise _http_error(e)
    return TaskResponse.model_validate(task)


@router.get("/tasks", response_model=TaskListResponse)
async def list_tasks(
    identity: Identity = Depends(get_identity),
    db: AsyncSession = Depends(get_db)
):
    """All pending tasks, by priority then due date"""
    try:
        tasks = await crud.list_pending(db, identity.user_id)
    except TodoError as e:
        raise _http_error(e)
    return TaskListResponse(
        tasks=[TaskResponse.model_validate(task) for task in tasks],
        total=len(tasks),
    )


@router.post("/tasks/{task_id}/done", response_model=TaskResponse)
async def complete_task(
    task_id: int,
    identity: Identity = Depends(get_identity),
    db: AsyncSession = Depends(get_db)
):
    try:
        task = await crud.complete_task(db, identity.user_id, task_id)
    except TodoError as e:
        raise _http_error(e)
    return TaskResponse.model_validate(task)


@router.post("/tasks/{task_id}/snooze", response_model=TaskResponse)
async def snooze_task(
    task_id: int,
    identity: Identity = Depends(get_identity),
    db: AsyncSession = Depends(get_db)
):
    """Move a task's due date to tomorrow"""
    try:
        task = await crud.reschedule_task(db, identity.user_id, task_id)
    except TodoError as e:
        raise _http_error(e)
    return TaskResponse.model_validate(task)


@router.post("/tasks/{task_id}/subtasks", response_model=TaskResponse, status_code=201)
async def add_subtask(
    task_id: int,
    request: DirectiveRequest,
    identity: Identity = Depends(get_identity),
    db: AsyncSession = Depends(get_db)
):
    """Create a task under an existing one"""
    try:
        task = await crud.create_subtask(db, identity.user_id, task_id, parse(request.words))
    except TodoError as e:
        raise _http_error(e)
    return TaskResponse.model_validate(task)
