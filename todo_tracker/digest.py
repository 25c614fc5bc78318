"""Daily digest and weekly report.

Both run a fixed set of read-only queries for one owner and render a
multi-section text message. Sending it is the caller's business.
"""
from datetime import date, datetime, time, timedelta
from typing import List, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from . import crud
from .models import Task
from .schemas import TaskFilter
from .utils import format_section


def _start_of(day: date) -> datetime:
    return datetime.combine(day, time.min)


def _short_date(day: date) -> str:
    return f"{day:%b} {day.day}"


def render_daily_digest(
    overdue: List[Task],
    due_today: List[Task],
    upcoming: List[Task],
    completed: List[Task],
) -> str:
    if not (overdue or due_today or upcoming or completed):
        return "🎉 No pending tasks! Enjoy your day."

    lines = ["☀️ Good morning! Here's your task overview:"]

    if overdue:
        lines += format_section(
            "🔴 OVERDUE",
            (f"[{t.priority}] {t.title} - was due {t.due_date.isoformat()}" for t in overdue),
            len(overdue),
        )

    if due_today:
        lines += format_section("📅 TODAY", (f"[{t.priority}] {t.title}" for t in due_today), len(due_today))

    if upcoming:
        lines += format_section(
            "📆 NEXT 2 DAYS",
            (f"[{t.priority}] {t.title} - due {t.due_date.isoformat()}" for t in upcoming),
            len(upcoming),
        )

    if completed:
        section = format_section("✅ COMPLETED YESTERDAY", (t.title for t in completed), len(completed))
        section.insert(2, "Great job! You finished:")
        lines += section

    lines += ["", "Have a productive day! 💪"]
    return "\n".join(lines)


async def build_daily_digest(db: AsyncSession, owner: str, today: Optional[date] = None) -> str:
    today = today or date.today()
    yesterday = today - timedelta(days=1)

    overdue = await crud.get_tasks(db, owner, TaskFilter(status="Todo", due_before=today))
    due_today = await crud.get_tasks(
        db, owner, TaskFilter(status="Todo", due_on=today), order_by=(Task.priority.asc(),)
    )
    upcoming = await crud.get_tasks(
        db, owner, TaskFilter(status="Todo", due_after=today, due_until=today + timedelta(days=2))
    )
    # Tasks carry no completion time, so "completed yesterday" means Done tasks created yesterday
    completed = await crud.get_tasks(
        db,
        owner,
        TaskFilter(status="Done", created_from=_start_of(yesterday), created_before=_start_of(today)),
        order_by=(Task.created_at.asc(),),
    )
    return render_daily_digest(overdue, due_today, upcoming, completed)


def render_weekly_report(
    today: date,
    completed: List[Task],
    pending: List[Task],
    added_count: int,
    upcoming: List[Task],
) -> str:
    week_start = today - timedelta(days=6)
    total = len(completed) + len(pending)
    completion_rate = round(len(completed) / total * 100) if total else 0

    lines = [f"📊 Weekly Review - Week of {_short_date(week_start)} - {_short_date(today)}"]

    if completed:
        lines += format_section("✅ COMPLETED THIS WEEK", (t.title for t in completed), len(completed))

    if pending:
        today_iso = today.isoformat()
        items = []
        for t in pending:
            due = t.due_date.isoformat()
            when = f"was due {due}" if due < today_iso else f"due {due}"
            items.append(f"[{t.priority}] {t.title} - {when}")
        lines += format_section("📋 STILL PENDING", items, len(pending))

    lines += [
        "",
        "📈 STATS",
        f"• Completion rate: {completion_rate}%",
        f"• Tasks completed: {len(completed)}",
        f"• Tasks added: {added_count}",
    ]

    if upcoming:
        lines += format_section(
            "🎯 UPCOMING NEXT WEEK",
            (f"[{t.priority}] {t.title} - due {t.due_date.isoformat()}" for t in upcoming),
            len(upcoming),
        )

    lines += ["", "Have a great week ahead! 🚀"]
    return "\n".join(lines)


async def build_weekly_report(db: AsyncSession, owner: str, today: Optional[date] = None) -> str:
    today = today or date.today()
    week_ago = _start_of(today - timedelta(days=7))

    completed = await crud.get_tasks(
        db,
        owner,
        TaskFilter(status="Done", created_from=week_ago),
        order_by=(Task.created_at.desc(), Task.id.desc()),
    )
    pending = await crud.list_pending(db, owner)
    added_count = await crud.get_tasks_count(db, owner, TaskFilter(created_from=week_ago))
    upcoming = await crud.get_tasks(
        db,
        owner,
        TaskFilter(status="Todo", due_after=today, due_until=today + timedelta(days=7)),
        order_by=(Task.due_date.asc(), Task.priority.asc()),
    )
    return render_weekly_report(today, completed, pending, added_count, upcoming)
