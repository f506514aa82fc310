import json

import structlog

from sealdb.core.config import Settings
from sealdb.core.logging import (
    LoggingContext,
    add_logger_name,
    configure_logging,
    get_logger,
    rename_message_field,
)


def test_rename_message_field():
    event = rename_message_field(None, "info", {"event": "Record created", "model": "User"})
    assert event == {"message": "Record created", "model": "User"}


def test_add_logger_name_falls_back_to_package_name():
    event = add_logger_name(object(), "info", {})
    assert event["logger"] == "sealdb"


def test_logging_context_binds_and_restores():
    structlog.contextvars.clear_contextvars()
    structlog.contextvars.bind_contextvars(model="Outer")

    with LoggingContext(operation_id="op_1", model="User"):
        bound = structlog.contextvars.get_contextvars()
        assert bound == {"operation_id": "op_1", "model": "User"}

    assert structlog.contextvars.get_contextvars() == {"model": "Outer"}
    structlog.contextvars.clear_contextvars()


def test_json_output_carries_context(tmp_path, capsys):
    configure_logging(Settings(_env_file=None, data_dir=tmp_path, log_format="json"))
    try:
        with LoggingContext(operation_id="op_42"):
            get_logger("sealdb.test").info("Record created", model="User")

        line = capsys.readouterr().err.strip().splitlines()[-1]
        entry = json.loads(line)
        assert entry["message"] == "Record created"
        assert entry["operation_id"] == "op_42"
        assert entry["model"] == "User"
        assert entry["level"] == "info"
    finally:
        structlog.reset_defaults()


def test_level_filtering(tmp_path, capsys):
    configure_logging(Settings(_env_file=None, data_dir=tmp_path, log_format="json", log_level="WARNING"))
    try:
        logger = get_logger()
        logger.info("hidden")
        logger.warning("shown")

        err = capsys.readouterr().err
        assert "hidden" not in err
        assert "shown" in err
    finally:
        structlog.reset_defaults()
