"""Unit tests for structured logging setup and context binding."""

import structlog

from designali_hub.core.logging import (
    LoggingContext,
    bind_session_context,
    clear_context,
    configure_logging,
    get_logger,
    rename_message_field,
)


def test_rename_message_field():
    event_dict = rename_message_field(None, "info", {"event": "Collection loaded", "count": 3})
    assert event_dict == {"message": "Collection loaded", "count": 3}


def test_configure_logging_console(settings):
    configure_logging(settings)
    logger = get_logger("designali_hub.test")
    logger.info("Configured", collection="tools")


def test_configure_logging_json(settings, capsys):
    json_settings = settings.model_copy(update={"log_format": "json", "environment": "production"})
    configure_logging(json_settings)

    get_logger("designali_hub.test").warning("Collection load failed", collection="tools")

    output = capsys.readouterr().out
    assert '"message": "Collection load failed"' in output
    assert '"collection": "tools"' in output
    configure_logging(settings)


def test_session_context_binding():
    bind_session_context("user-1", "session-abc")
    context = structlog.contextvars.get_contextvars()
    assert context["owner_id"] == "user-1"
    assert context["session_id"] == "session-abc"

    clear_context()
    assert structlog.contextvars.get_contextvars() == {}


def test_logging_context_unbinds_on_exit():
    with LoggingContext(collection="tools"):
        assert structlog.contextvars.get_contextvars()["collection"] == "tools"
    assert "collection" not in structlog.contextvars.get_contextvars()
