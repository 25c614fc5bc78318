"""Telegram update router.

Each message is one command: ``add``, ``list``/``ls``, ``done``/``rm``,
``snooze``, ``subtask``, ``token``, ``revoke`` or ``start``. The leading slash
is optional and the command word is case-insensitive. The chat id is the owner
of every row the command touches.
"""
from dataclasses import dataclass
from datetime import date
from typing import Awaitable, Callable, Dict, Optional

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from . import crud
from .auth import generate_token, hash_token
from .config import Settings
from .directive import parse, parse_id
from .errors import TodoError, UpstreamError, ValidationError
from .schemas import TaskResponse, TokenResponse
from .utils import escape_markdown, format_pending_list, format_token_list

log = structlog.get_logger(__name__)

WELCOME = (
    "👋 Welcome to TODO Tracker!\n\n"
    "Commands:\n"
    "add <task> - Add task\n"
    "list, ls - Show tasks\n"
    "done, rm <id> - Complete task\n"
    "snooze <id> - Postpone to tomorrow\n"
    "subtask <id> <task> - Add subtask\n"
    "token [name] - Generate API token for CLI\n"
    "revoke [id] - List or revoke API tokens\n\n"
    "(Slash prefix is optional)"
)

UNKNOWN = "❌ Unknown command. Use add, list (ls), done (rm), snooze, subtask, token, or revoke"


@dataclass(frozen=True)
class BotReply:
    text: str
    parse_mode: Optional[str] = None


@dataclass
class UpdateContext:
    db: AsyncSession
    settings: Settings
    owner: str
    args: str
    today: Optional[date] = None


Handler = Callable[[UpdateContext], Awaitable[BotReply]]


def split_command(text: str):
    """Split message text into (command, rest), dropping a leading slash.

    ``/add@MyBot milk`` addresses the bot by name in group chats; the suffix
    is dropped too.
    """
    head, _, rest = text.strip().partition(" ")
    command = head.lower().lstrip("/").split("@", 1)[0]
    return command, rest.strip()


async def handle_add(ctx: UpdateContext) -> BotReply:
    if not ctx.args:
        raise ValidationError("Missing task title. Usage: /add <task>")

    directive = parse(ctx.args.split(), today=ctx.today)
    task = await crud.create_task(ctx.db, ctx.owner, directive)
    return BotReply(f"✅ Task added: {task.title} - due {task.due_date.isoformat()} [{task.priority}]")


async def handle_list(ctx: UpdateContext) -> BotReply:
    tasks = await crud.list_pending(ctx.db, ctx.owner)
    rows = [TaskResponse.model_validate(task).model_dump() for task in tasks]
    return BotReply(format_pending_list(rows, ctx.today or date.today()))


async def handle_done(ctx: UpdateContext) -> BotReply:
    if not ctx.args:
        raise ValidationError("Invalid task ID. Usage: /done <id>")
    task = await crud.complete_task(ctx.db, ctx.owner, parse_id(ctx.args))
    return BotReply(f"✅ Marked as done: {task.title}")


async def handle_snooze(ctx: UpdateContext) -> BotReply:
    if not ctx.args:
        raise ValidationError("Invalid task ID. Usage: /snooze <id>")
    task = await crud.reschedule_task(ctx.db, ctx.owner, parse_id(ctx.args), today=ctx.today)
    return BotReply(f"✅ Snoozed: {task.title} - now due {task.due_date.isoformat()}")


async def handle_subtask(ctx: UpdateContext) -> BotReply:
    parent_arg, _, title = ctx.args.partition(" ")
    if not parent_arg or not title.strip():
        raise ValidationError("Usage: /subtask <parent_id> <task title>")

    parent_id = parse_id(parent_arg, "parent ID")
    directive = parse(title.split(), today=ctx.today)
    task = await crud.create_subtask(ctx.db, ctx.owner, parent_id, directive)
    return BotReply(f"✅ Subtask added under #{parent_id}: {task.title}")


async def handle_token(ctx: UpdateContext) -> BotReply:
    name = ctx.args or "CLI Token"
    secret = generate_token()

    await crud.create_api_token(
        ctx.db, ctx.owner, hash_token(secret), name, ttl_days=ctx.settings.token_ttl_days
    )
    log.info("api_token_issued", owner=ctx.owner, name=name)

    return BotReply(
        f"🔑 API Token created: {escape_markdown(name)}\n\n"
        f"Token: `{secret}`\n\n"
        "⚠️ Save this token now! It won't be shown again.\n\n"
        "Use in CLI: Add to `~/.todo-cli-token` or set `TODO_CLI_TOKEN` env var.",
        parse_mode="Markdown",
    )


async def handle_revoke(ctx: UpdateContext) -> BotReply:
    if not ctx.args:
        tokens = await crud.list_api_tokens(ctx.db, ctx.owner)
        rows = [TokenResponse.model_validate(token).model_dump() for token in tokens]
        return BotReply(format_token_list(rows))

    token = await crud.revoke_api_token(ctx.db, ctx.owner, parse_id(ctx.args, "token ID"))
    log.info("api_token_revoked", owner=ctx.owner, token_id=token.id)
    return BotReply(f"✅ Token revoked: {token.name}")


async def handle_start(ctx: UpdateContext) -> BotReply:
    return BotReply(WELCOME)


HANDLERS: Dict[str, Handler] = {
    "add": handle_add,
    "list": handle_list,
    "ls": handle_list,
    "done": handle_done,
    "rm": handle_done,
    "snooze": handle_snooze,
    "subtask": handle_subtask,
    "token": handle_token,
    "revoke": handle_revoke,
    "start": handle_start,
}


async def route_update(
    db: AsyncSession,
    settings: Settings,
    chat_id: int,
    text: str,
    today: Optional[date] = None,
) -> BotReply:
    """Run one chat message and return the reply to send back"""
    command, args = split_command(text)
    handler = HANDLERS.get(command)
    if handler is None:
        return BotReply(UNKNOWN)

    ctx = UpdateContext(db=db, settings=settings, owner=str(chat_id), args=args, today=today)
    try:
        return await handler(ctx)
    except UpstreamError as e:
        log.error("bot_command_failed", command=command, owner=ctx.owner, error=e.message)
        return BotReply("❌ Something went wrong. Please try again later.")
    except TodoError as e:
        return BotReply(f"❌ {e.message}")
