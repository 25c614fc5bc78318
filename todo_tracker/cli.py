"""``todo`` command-line client.

One command per invocation. Credentials are resolved and checked before the
command runs; any failure prints a ``❌`` line and exits with status 1.
"""
import argparse
import os
import sys
from datetime import date
from typing import Callable, List, Optional, Tuple

from .client import TodoClient
from .config import CliConfig, load_cli_config
from .directive import parse_id
from .errors import AuthError, TodoError, ValidationError
from .logging_config import setup_logging
from .utils import format_pending_list

HELP = """TODO Tracker CLI

Usage: todo <command> [arguments]

Commands:
  add <task> [date]      Add a new task (default: due tomorrow, P1)
                         Examples:
                           todo add "Buy groceries"
                           todo add "Meeting" today
                           todo add "[P2] Report" 2026-02-15

  list, ls               Show all pending tasks

  done, rm <id>          Mark task as complete
                         Example: todo done 5

  snooze <id>            Postpone task to tomorrow
                         Example: todo snooze 3

  subtask <id> <task>    Add subtask to existing task
                         Example: todo subtask 2 "Review section"

  help                   Show this help message

Authentication:
  1. Generate token: Send /token to the Telegram bot
  2. Save token to ~/.todo-cli-token or set TODO_CLI_TOKEN env var

  Legacy mode (shared service key):
    Create .env file or ~/.todo-cli.env with:
      TODO_CLI_API_URL=https://your-todo-server.example.com
      SERVICE_ROLE_KEY=your-key
      TELEGRAM_CHAT_ID=your-user-id"""

HELP_WORDS = {"help", "--help", "-h"}
COMMANDS = {"add", "list", "ls", "done", "rm", "snooze", "subtask"}
# Arguments before the free task text; the text itself never goes through
# option parsing so words like "-v" stay part of the title.
TEXT_START = {"add": 1, "subtask": 2}


class _ArgumentParser(argparse.ArgumentParser):
    def error(self, message):
        raise ValidationError(message)


def build_parser() -> argparse.ArgumentParser:
    parser = _ArgumentParser(prog="todo", add_help=False)
    subparsers = parser.add_subparsers(dest="command", required=True, parser_class=_ArgumentParser)

    subparsers.add_parser("add", add_help=False).set_defaults(func=cmd_add)

    subparsers.add_parser("list", aliases=["ls"], add_help=False).set_defaults(func=cmd_list)

    done = subparsers.add_parser("done", aliases=["rm"], add_help=False)
    done.add_argument("task_id", nargs="?")
    done.set_defaults(func=cmd_done)

    snooze = subparsers.add_parser("snooze", add_help=False)
    snooze.add_argument("task_id", nargs="?")
    snooze.set_defaults(func=cmd_snooze)

    subtask = subparsers.add_parser("subtask", add_help=False)
    subtask.add_argument("parent_id", nargs="?")
    subtask.set_defaults(func=cmd_subtask)

    return parser


def split_task_text(argv: List[str]) -> Tuple[List[str], List[str]]:
    """Split argv into what argparse sees and the raw task words"""
    start = TEXT_START.get(argv[0])
    if start is None:
        return argv, []
    return argv[:start], argv[start:]


def cmd_add(client: TodoClient, args) -> None:
    if not args.words:
        raise ValidationError("Missing task title. Usage: todo add <task> [date]")
    task = client.add(args.words)
    print(f"✅ Task added: {task['title']} - due {task['due_date']} [{task['priority']}]")


def cmd_list(client: TodoClient, args) -> None:
    tasks = client.list_pending()
    print(format_pending_list(tasks, date.today(), color=sys.stdout.isatty()))


def _task_id(value: Optional[str], usage: str) -> int:
    if value is None:
        raise ValidationError(f"Missing task ID. Usage: {usage}")
    return parse_id(value)


def cmd_done(client: TodoClient, args) -> None:
    task = client.done(_task_id(args.task_id, "todo done <id>"))
    print(f"✅ Marked as done: {task['title']}")


def cmd_snooze(client: TodoClient, args) -> None:
    task = client.snooze(_task_id(args.task_id, "todo snooze <id>"))
    print(f"✅ Snoozed: {task['title']} - now due {task['due_date']}")


def cmd_subtask(client: TodoClient, args) -> None:
    if args.parent_id is None or not args.words:
        raise ValidationError("Usage: todo subtask <parent_id> <task>")
    parent_id = parse_id(args.parent_id, "parent ID")
    task = client.subtask(parent_id, args.words)
    print(f"✅ Subtask added under #{parent_id}: {task['title']}")


def authenticate(client: TodoClient, config: CliConfig) -> None:
    """Check an API token with the server before running anything"""
    if not config.uses_token:
        return
    try:
        client.verify()
    except AuthError as e:
        raise AuthError(f"Invalid API token: {e.message}")


def main(
    argv: Optional[List[str]] = None,
    client_factory: Callable[[CliConfig], TodoClient] = TodoClient,
) -> int:
    argv = list(sys.argv[1:] if argv is None else argv)
    setup_logging(os.getenv("LOG_FORMAT", "dev"), os.getenv("LOG_LEVEL", "WARNING"), stream=sys.stderr)

    if not argv or argv[0].lower() in HELP_WORDS:
        print(HELP)
        return 0

    argv[0] = argv[0].lower()
    if argv[0] not in COMMANDS:
        print(f"❌ Unknown command: {argv[0]}")
        print(HELP)
        return 1

    try:
        parser_argv, words = split_task_text(argv)
        args = build_parser().parse_args(parser_argv)
        args.words = words

        config = load_cli_config()
        with client_factory(config) as client:
            authenticate(client, config)
            args.func(client, args)
    except TodoError as e:
        print(f"❌ {e.message}")
        return 1
    return 0


def run() -> None:
    sys.exit(main())


if __name__ == "__main__":
    run()
