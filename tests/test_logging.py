"""
Tests for logging setup.
"""

import pytest
import structlog

from iacflow.logging import bind_task_context, get_logger, setup_logging

pytestmark = pytest.mark.unit


@pytest.fixture(autouse=True)
def clear_context():
    structlog.contextvars.clear_contextvars()
    yield
    structlog.contextvars.clear_contextvars()


def test_bind_task_context():
    bind_task_context("task-1", "deploy")

    assert structlog.contextvars.get_contextvars() == {"task_id": "task-1", "operation": "deploy"}


def test_bind_task_context_replaces_previous_task():
    bind_task_context("task-1", "deploy")
    bind_task_context("task-2")

    assert structlog.contextvars.get_contextvars() == {"task_id": "task-2"}


def test_setup_logging_configures_structlog():
    setup_logging()

    assert structlog.is_configured()
    get_logger(__name__).info("logging.test", value=1)
