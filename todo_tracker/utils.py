"""Plain-text rendering shared by the CLI, the bot and the digests"""
import re
from datetime import date
from typing import Iterable, List, Optional, Sequence

LIST_LIMIT = 15
SECTION_LIMIT = 10

RED = "\033[31m"
YELLOW = "\033[33m"
RESET = "\033[0m"

MARKDOWN_SPECIAL = re.compile(r"([_*`\[])")


def escape_markdown(text: str) -> str:
    """Backslash-escape text for Telegram's legacy Markdown parse mode"""
    return MARKDOWN_SPECIAL.sub(r"\\\1", text)


def more_line(total: int, shown: int) -> Optional[str]:
    """The '...and N more' trailer, or None when nothing was cut"""
    if total > shown:
        return f"...and {total - shown} more"
    return None


def _iso(value) -> str:
    return value.isoformat() if isinstance(value, date) else str(value)


def format_task_line(task: dict, today: date, color: bool = False) -> str:
    """One pending task: ``[id:7] [P1] Buy milk - due 2026-02-15``"""
    due = _iso(task["due_date"])
    today_iso = today.isoformat()

    if due < today_iso:
        suffix, tint = f" - due {due} ⚠️ overdue", RED
    elif due == today_iso:
        suffix, tint = " (today)", YELLOW
    else:
        suffix, tint = f" - due {due}", ""

    line = f"[id:{task['id']}] [{task['priority']}] {task['title']}{suffix}"
    if color and tint:
        return f"{tint}{line}{RESET}"
    return line


def format_pending_list(
    tasks: Sequence[dict],
    today: date,
    limit: int = LIST_LIMIT,
    color: bool = False,
) -> str:
    if not tasks:
        return "🎉 No pending tasks!"

    lines = ["📋 All pending tasks:", ""]
    lines.extend(format_task_line(task, today, color=color) for task in tasks[:limit])

    trailer = more_line(len(tasks), min(limit, len(tasks)))
    if trailer:
        lines.append(trailer)
    return "\n".join(lines)


def format_section(header: str, items: Iterable[str], total: int, limit: int = SECTION_LIMIT) -> List[str]:
    """A digest section: blank line, header with count, bullets, trailer"""
    lines = ["", f"{header} ({total})"]
    lines.extend(f"• {item}" for item in list(items)[:limit])

    trailer = more_line(total, min(limit, total))
    if trailer:
        lines.append(trailer)
    return lines


def format_token_list(tokens: Sequence[dict]) -> str:
    if not tokens:
        return "No API tokens found. Use /token to create one."

    lines = ["🔑 Your API tokens:", ""]
    for token in tokens:
        created = _iso(token["created_at"])[:10]
        expires = _iso(token["expires_at"])[:10]
        lines.append(f"[id:{token['id']}] {token['name']}")
        lines.append(f"  Created: {created}, Expires: {expires}")
        lines.append("")
    lines.append("To revoke: /revoke <id>")
    return "\n".join(lines)
