import os
from unittest import mock

import pytest

from todo_tracker import cli, config
from todo_tracker.config import load_cli_config
from todo_tracker.errors import AuthError, NotFoundError

CREDENTIAL_VARS = (
    "TODO_CLI_TOKEN",
    "TODO_CLI_API_TOKEN",
    "TODO_CLI_SERVICE_ROLE_KEY",
    "SERVICE_ROLE_KEY",
    "TODO_CLI_TELEGRAM_CHAT_ID",
    "TELEGRAM_CHAT_ID",
    "TODO_CLI_API_URL",
    "TODO_API_URL",
)


@pytest.fixture(autouse=True)
def isolated_env(monkeypatch, tmp_path):
    """No credentials from the real environment, home directory or cwd"""
    home = tmp_path / "home"
    home.mkdir()
    work = tmp_path / "work"
    work.mkdir()

    for name in CREDENTIAL_VARS:
        monkeypatch.delenv(name, raising=False)

    # load_dotenv writes straight into os.environ
    with mock.patch.dict(os.environ):
        monkeypatch.chdir(work)
        monkeypatch.setattr(config, "TOKEN_FILE", home / ".todo-cli-token")
        monkeypatch.setattr(config, "CLI_ENV_FILE", home / ".todo-cli.env")
        yield home


class TestCredentials:
    def test_token_env_var_wins(self, isolated_env, monkeypatch):
        monkeypatch.setenv("TODO_CLI_TOKEN", "from-env")
        monkeypatch.setenv("TODO_CLI_API_TOKEN", "second")
        (isolated_env / ".todo-cli-token").write_text("from-file\n")

        cfg = load_cli_config()
        assert cfg.token == "from-env"
        assert cfg.uses_token

    def test_api_token_env_var(self, monkeypatch):
        monkeypatch.setenv("TODO_CLI_API_TOKEN", "second")
        assert load_cli_config().token == "second"

    def test_token_file(self, isolated_env):
        (isolated_env / ".todo-cli-token").write_text("  from-file\n")
        assert load_cli_config().token == "from-file"

    def test_legacy_service_key(self, monkeypatch):
        monkeypatch.setenv("SERVICE_ROLE_KEY", "shared")
        monkeypatch.setenv("TELEGRAM_CHAT_ID", "12345")
        monkeypatch.setenv("TODO_CLI_API_URL", "https://todo.example.com/")

        cfg = load_cli_config()
        assert not cfg.uses_token
        assert cfg.service_key == "shared"
        assert cfg.user_id == "12345"
        assert cfg.api_url == "https://todo.example.com"

    def test_legacy_user_defaults_to_cli(self, monkeypatch):
        monkeypatch.setenv("TODO_CLI_SERVICE_ROLE_KEY", "shared")
        assert load_cli_config().user_id == "cli"

    def test_dotenv_in_working_directory(self, tmp_path):
        (tmp_path / "work" / ".env").write_text("SERVICE_ROLE_KEY=from-dotenv\nTELEGRAM_CHAT_ID=99\n")
        cfg = load_cli_config()
        assert cfg.service_key == "from-dotenv"
        assert cfg.user_id == "99"

    def test_home_env_file_is_the_fallback(self, isolated_env):
        (isolated_env / ".todo-cli.env").write_text("TODO_CLI_TOKEN=home-token\n")
        assert load_cli_config().token == "home-token"

    def test_nothing_configured(self):
        with pytest.raises(AuthError, match="No API token found"):
            load_cli_config()


class FakeClient:
    def __init__(self, verify_error=None):
        self.verify_error = verify_error
        self.calls = []
        self.closed = False

    def verify(self):
        self.calls.append(("verify",))
        if self.verify_error:
            raise self.verify_error
        return {"valid": True, "user_id": "42"}

    def add(self, words):
        self.calls.append(("add", list(words)))
        return {"id": 1, "title": "Buy milk", "due_date": "2026-10-19", "priority": "P1"}

    def list_pending(self):
        self.calls.append(("list",))
        return [{"id": 4, "title": "Far away", "due_date": "2999-01-01", "priority": "P2"}]

    def done(self, task_id):
        self.calls.append(("done", task_id))
        if task_id == 999:
            raise NotFoundError()
        return {"id": task_id, "title": "Buy milk"}

    def snooze(self, task_id):
        self.calls.append(("snooze", task_id))
        return {"id": task_id, "title": "Meeting", "due_date": "2026-10-19"}

    def subtask(self, parent_id, words):
        self.calls.append(("subtask", parent_id, list(words)))
        return {"id": 9, "title": " ".join(words)}

    def close(self):
        self.closed = True

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        self.close()


@pytest.fixture
def fake():
    return FakeClient()


@pytest.fixture
def todo(fake, monkeypatch):
    monkeypatch.setenv("TODO_CLI_TOKEN", "secret")

    def run(*argv):
        return cli.main(list(argv), client_factory=lambda cfg: fake)

    return run


class TestMain:
    @pytest.mark.parametrize("argv", [[], ["help"], ["--help"], ["-h"]])
    def test_help(self, argv, capsys):
        assert cli.main(argv) == 0
        assert "Usage: todo <command>" in capsys.readouterr().out

    def test_unknown_command(self, capsys):
        assert cli.main(["frobnicate"]) == 1
        out = capsys.readouterr().out
        assert out.startswith("❌ Unknown command: frobnicate")
        assert "Usage: todo <command>" in out

    def test_add(self, todo, fake, capsys):
        assert todo("add", "Buy", "milk") == 0
        assert fake.calls == [("verify",), ("add", ["Buy", "milk"])]
        assert capsys.readouterr().out.strip() == "✅ Task added: Buy milk - due 2026-10-19 [P1]"
        assert fake.closed

    @pytest.mark.parametrize("words", [
        ["Fix", "-v", "flag"],
        ["Review", "--dry-run", "mode"],
        ["-h", "means", "help"],
    ])
    def test_add_keeps_dash_words_in_the_title(self, words, todo, fake):
        assert todo("add", *words) == 0
        assert fake.calls[-1] == ("add", words)

    def test_subtask_keeps_dash_words_in_the_title(self, todo, fake):
        assert todo("subtask", "2", "Run", "with", "--force") == 0
        assert fake.calls[-1] == ("subtask", 2, ["Run", "with", "--force"])

    def test_add_without_words(self, todo, fake, capsys):
        assert todo("add") == 1
        assert "Missing task title" in capsys.readouterr().out
        assert ("add", []) not in fake.calls

    def test_commands_are_case_insensitive(self, todo, fake):
        assert todo("LS") == 0
        assert fake.calls[-1] == ("list",)

    def test_list(self, todo, capsys):
        assert todo("list") == 0
        out = capsys.readouterr().out
        assert "📋 All pending tasks:" in out
        assert "[id:4] [P2] Far away - due 2999-01-01" in out

    def test_done_and_rm(self, todo, fake, capsys):
        assert todo("done", "5") == 0
        assert todo("rm", "6") == 0
        assert [call for call in fake.calls if call[0] == "done"] == [("done", 5), ("done", 6)]
        assert "✅ Marked as done: Buy milk" in capsys.readouterr().out

    def test_done_errors(self, todo, capsys):
        assert todo("done") == 1
        assert "Missing task ID" in capsys.readouterr().out
        assert todo("done", "abc") == 1
        assert capsys.readouterr().out.strip() == "❌ Invalid task ID"
        assert todo("done", "999") == 1
        assert capsys.readouterr().out.strip() == "❌ Task not found"

    def test_snooze(self, todo, capsys):
        assert todo("snooze", "3") == 0
        assert capsys.readouterr().out.strip() == "✅ Snoozed: Meeting - now due 2026-10-19"

    def test_subtask(self, todo, fake, capsys):
        assert todo("subtask", "2", "Review", "section") == 0
        assert fake.calls[-1] == ("subtask", 2, ["Review", "section"])
        assert capsys.readouterr().out.strip() == "✅ Subtask added under #2: Review section"

    def test_subtask_usage(self, todo, capsys):
        assert todo("subtask", "2") == 1
        assert "Usage: todo subtask" in capsys.readouterr().out
        assert todo("subtask", "two", "Thing") == 1
        assert capsys.readouterr().out.strip() == "❌ Invalid parent ID"

    def test_rejected_token_stops_before_the_command(self, fake, todo, capsys):
        fake.verify_error = AuthError("Token expired")
        assert todo("add", "Buy", "milk") == 1
        assert capsys.readouterr().out.strip() == "❌ Invalid API token: Token expired"
        assert fake.calls == [("verify",)]

    def test_legacy_mode_skips_verification(self, fake, monkeypatch):
        monkeypatch.setenv("SERVICE_ROLE_KEY", "shared")
        assert cli.main(["list"], client_factory=lambda cfg: fake) == 0
        assert fake.calls == [("list",)]

    def test_missing_credentials(self, capsys):
        assert cli.main(["list"]) == 1
        assert "No API token found" in capsys.readouterr().out
