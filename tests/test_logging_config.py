import io
import json
import logging

import pytest
import structlog

from todo_tracker.logging_config import setup_logging


@pytest.fixture
def stream():
    buffer = io.StringIO()
    yield buffer
    logging.getLogger().handlers.clear()


def test_json_events_go_to_the_given_stream(stream):
    setup_logging("json", "INFO", stream=stream)
    structlog.get_logger("todo_tracker.test").info("task_created", task_id=7)

    event = json.loads(stream.getvalue().strip().splitlines()[-1])
    assert event["event"] == "task_created"
    assert event["task_id"] == 7
    assert event["level"] == "info"


def test_level_filters_events(stream):
    setup_logging("dev", "WARNING", stream=stream)
    log = structlog.get_logger("todo_tracker.test")
    log.info("hidden_event")
    log.warning("shown_event")

    output = stream.getvalue()
    assert "hidden_event" not in output
    assert "shown_event" in output


def test_http_client_loggers_stay_at_warning(stream):
    setup_logging("dev", "DEBUG", stream=stream)
    assert logging.getLogger("httpx").level == logging.WARNING
    assert logging.getLogger().level == logging.DEBUG
