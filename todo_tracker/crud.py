"""Task and token persistence.

Every query is scoped to one owner: ``user_id`` equality is part of each
statement, so an id belonging to someone else behaves exactly like an id that
doesn't exist.
"""
from datetime import date, datetime, timedelta, timezone
from typing import List, Optional

from sqlalchemy import and_, delete, func, insert, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from .directive import Directive
from .errors import NotFoundError, ParentNotFound, UpstreamError, ValidationError
from .models import ApiToken, Task
from .schemas import TaskFilter

PENDING_ORDER = (Task.priority.asc(), Task.due_date.asc())


def _to_date(value: str) -> date:
    try:
        return date.fromisoformat(value)
    except ValueError:
        raise ValidationError(f"Invalid due date: {value}")


async def _write(db: AsyncSession, stmt):
    """Execute a write and commit, returning the first RETURNING row"""
    try:
        result = await db.execute(stmt)
        row = result.scalars().first()
        await db.commit()
    except SQLAlchemyError as e:
        await db.rollback()
        raise UpstreamError(f"Database error: {e.__class__.__name__}") from e
    return row


async def _read(db: AsyncSession, stmt) -> list:
    try:
        result = await db.execute(stmt)
    except SQLAlchemyError as e:
        raise UpstreamError(f"Database error: {e.__class__.__name__}") from e
    return list(result.scalars().all())


async def create_task(
    db: AsyncSession,
    owner: str,
    directive: Directive,
    parent_id: Optional[int] = None,
) -> Task:
    """Insert a task and return the row the INSERT handed back"""
    if not directive.title.strip():
        raise ValidationError("Missing task title")

    stmt = (
        insert(Task)
        .values(
            title=directive.title,
            due_date=_to_date(directive.due_date),
            priority=directive.priority,
            status="Todo",
            parent_id=parent_id,
            user_id=owner,
        )
        .returning(Task)
    )
    task = await _write(db, stmt)
    if task is None:
        raise UpstreamError("No task returned")
    return task


async def get_task(db: AsyncSession, owner: str, task_id: int) -> Optional[Task]:
    """Get one of the owner's tasks by ID"""
    rows = await _read(db, select(Task).where(Task.id == task_id, Task.user_id == owner))
    return rows[0] if rows else None


async def list_pending(db: AsyncSession, owner: str) -> List[Task]:
    """All Todo tasks, most important and most urgent first"""
    return await get_tasks(db, owner, TaskFilter(status="Todo"))


async def _update_owned(db: AsyncSession, owner: str, task_id: int, **values) -> Task:
    stmt = (
        update(Task)
        .where(Task.id == task_id, Task.user_id == owner)
        .values(**values)
        .returning(Task)
        .execution_options(populate_existing=True)
    )
    task = await _write(db, stmt)
    if task is None:
        raise NotFoundError()
    return task


async def complete_task(db: AsyncSession, owner: str, task_id: int) -> Task:
    """Mark a task Done. Completing a Done task again just succeeds."""
    return await _update_owned(db, owner, task_id, status="Done")


async def reschedule_task(
    db: AsyncSession,
    owner: str,
    task_id: int,
    today: Optional[date] = None,
) -> Task:
    """Push a task's due date to tomorrow"""
    tomorrow = (today or date.today()) + timedelta(days=1)
    return await _update_owned(db, owner, task_id, due_date=tomorrow)


async def create_subtask(
    db: AsyncSession,
    owner: str,
    parent_id: int,
    directive: Directive,
) -> Task:
    """Create a task under ``parent_id``.

    Priority and due date come from the parent unless the directive spelled
    them out.
    """
    parent = await get_task(db, owner, parent_id)
    if parent is None:
        raise ParentNotFound()

    due_date = directive.due_date if directive.has_due_date else parent.due_date.isoformat()
    priority = directive.priority if directive.has_priority else parent.priority

    child = Directive(
        title=directive.title,
        priority=priority,
        due_date=due_date,
        has_priority=True,
        has_due_date=True,
    )
    return await create_task(db, owner, child, parent_id=parent.id)


def _filter_conditions(owner: str, task_filter: Optional[TaskFilter]) -> list:
    conditions = [Task.user_id == owner]
    if not task_filter:
        return conditions

    if task_filter.status:
        conditions.append(Task.status == task_filter.status)

    if task_filter.due_before:
        conditions.append(Task.due_date < task_filter.due_before)

    if task_filter.due_on:
        conditions.append(Task.due_date == task_filter.due_on)

    if task_filter.due_after:
        conditions.append(Task.due_date > task_filter.due_after)

    if task_filter.due_until:
        conditions.append(Task.due_date <= task_filter.due_until)

    if task_filter.created_from:
        conditions.append(Task.created_at >= task_filter.created_from)

    if task_filter.created_before:
        conditions.append(Task.created_at < task_filter.created_before)

    return conditions


async def get_tasks(
    db: AsyncSession,
    owner: str,
    task_filter: Optional[TaskFilter] = None,
    order_by=PENDING_ORDER,
) -> List[Task]:
    """Get the owner's tasks with optional filtering"""
    query = select(Task).where(and_(*_filter_conditions(owner, task_filter))).order_by(*order_by)
    return await _read(db, query)


async def get_tasks_count(
    db: AsyncSession,
    owner: str,
    task_filter: Optional[TaskFilter] = None,
) -> int:
    """Count the owner's tasks with optional filtering"""
    query = select(func.count(Task.id)).where(and_(*_filter_conditions(owner, task_filter)))
    rows = await _read(db, query)
    return rows[0] if rows else 0


# API tokens

async def create_api_token(
    db: AsyncSession,
    owner: str,
    token_hash: str,
    name: str,
    ttl_days: int = 90,
) -> ApiToken:
    expires_at = datetime.now(timezone.utc) + timedelta(days=ttl_days)
    stmt = (
        insert(ApiToken)
        .values(user_id=owner, token_hash=token_hash, name=name, expires_at=expires_at)
        .returning(ApiToken)
    )
    token = await _write(db, stmt)
    if token is None:
        raise UpstreamError("No token returned")
    return token


async def get_api_token_by_hash(db: AsyncSession, token_hash: str) -> Optional[ApiToken]:
    rows = await _read(db, select(ApiToken).where(ApiToken.token_hash == token_hash))
    return rows[0] if rows else None


async def list_api_tokens(db: AsyncSession, owner: str) -> List[ApiToken]:
    """The owner's tokens, newest first"""
    query = (
        select(ApiToken)
        .where(ApiToken.user_id == owner)
        .order_by(ApiToken.created_at.desc(), ApiToken.id.desc())
    )
    return await _read(db, query)


async def revoke_api_token(db: AsyncSession, owner: str, token_id: int) -> ApiToken:
    """Delete one of the owner's tokens, returning what was deleted"""
    stmt = (
        delete(ApiToken)
        .where(ApiToken.id == token_id, ApiToken.user_id == owner)
        .returning(ApiToken)
    )
    token = await _write(db, stmt)
    if token is None:
        raise NotFoundError("Token not found")
    return token
