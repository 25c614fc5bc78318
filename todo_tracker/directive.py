"""Free-text task directives.

``add`` and ``subtask`` take the rest of the command line as the task text.
An optional ``[P0]``..``[P4]`` tag anywhere in the text sets the priority and a
trailing ``today``, ``tomorrow`` or ``YYYY-MM-DD`` word sets the due date::

    >>> parse(["[P2]", "Report", "2026-02-15"]).title
    'Report'
"""
import re
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Optional, Sequence

from .errors import ValidationError

DEFAULT_PRIORITY = "P1"

PRIORITY_TAG = re.compile(r"\[P([0-4])\]")
ISO_DATE = re.compile(r"^\d{4}-\d{2}-\d{2}$")


@dataclass(frozen=True)
class Directive:
    title: str
    priority: str
    due_date: str
    has_priority: bool = False
    has_due_date: bool = False


def parse(words: Sequence[str], today: Optional[date] = None) -> Directive:
    """Parse the words of an add/subtask command into a directive.

    Priority is stripped before the date word is looked at. The date word is
    only considered when more than one word is left, so ``parse(["today"])``
    is a task called "today". The title is never checked for emptiness here.
    """
    today = today or date.today()
    tomorrow = (today + timedelta(days=1)).isoformat()

    text = " ".join(words)
    priority = DEFAULT_PRIORITY
    has_priority = False

    match = PRIORITY_TAG.search(text)
    if match:
        priority = "P" + match.group(1)
        has_priority = True
        text = (text[:match.start()] + text[match.end():]).strip()

    due_date = tomorrow
    has_due_date = False

    tokens = text.split(" ")
    if len(tokens) > 1:
        last = tokens[-1]
        explicit = {"today": today.isoformat(), "tomorrow": tomorrow}.get(last)
        if explicit is None and ISO_DATE.match(last):
            explicit = last
        if explicit is not None:
            due_date = explicit
            has_due_date = True
            text = " ".join(tokens[:-1])

    return Directive(
        title=text,
        priority=priority,
        due_date=due_date,
        has_priority=has_priority,
        has_due_date=has_due_date,
    )


def parse_id(value: str, label: str = "task ID") -> int:
    """Parse a numeric id argument, raising ValidationError when it isn't one"""
    try:
        return int(value.strip())
    except (AttributeError, ValueError):
        raise ValidationError(f"Invalid {label}")
