"""Unit tests for structured logging and the logging setup."""

import logging
from logging.handlers import RotatingFileHandler

import pytest

from herdview.core import logging_config
from herdview.core.logging_config import coerce_level, configure_logging
from herdview.core.logging_utils import ensure_structured_logger, get_module_logger


@pytest.fixture
def restore_root_logging(monkeypatch):
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    monkeypatch.setattr(logging_config, "_configured", False)
    yield root
    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()
    for handler in handlers:
        root.addHandler(handler)
    root.setLevel(level)


class TestStructuredLogger:

    def test_namespace_and_component(self):
        logger = get_module_logger("Reconciler")

        assert logger.name == "herdview.Reconciler"
        assert logger.component == "Reconciler"
        assert get_module_logger().name == "herdview"

    def test_messages_are_prefixed(self, caplog):
        caplog.set_level(logging.INFO, logger="herdview")

        get_module_logger("Reconciler").info("scene %s loaded", "Main")

        assert caplog.records[-1].getMessage() == "[Reconciler] scene Main loaded"

    def test_bad_format_args_are_kept(self, caplog):
        caplog.set_level(logging.INFO, logger="herdview")

        get_module_logger("Chat").info("slot %d", "two")

        assert caplog.records[-1].getMessage() == "[Chat] slot %d | args=two"

    def test_disabled_level_is_skipped(self, caplog):
        caplog.set_level(logging.WARNING, logger="herdview")

        get_module_logger("Chat").debug("noise")

        assert caplog.records == []

    def test_wrapping(self):
        plain = logging.getLogger("herdview.Plain")

        wrapped = ensure_structured_logger(plain, component="Plain")
        assert wrapped.logger is plain
        assert ensure_structured_logger(wrapped) is wrapped
        assert ensure_structured_logger(None, fallback_name="asyncio").name == "herdview.asyncio"

    def test_child(self):
        child = get_module_logger("Compositor").getChild("ws")

        assert child.name == "herdview.Compositor.ws"
        assert child.component == "Compositor.ws"


class TestConfigureLogging:

    @pytest.mark.parametrize("level,expected", [
        ("debug", logging.DEBUG), ("WARNING", logging.WARNING), (logging.ERROR, logging.ERROR),
    ])
    def test_coerce_level(self, level, expected):
        assert coerce_level(level) == expected

    def test_unknown_level(self):
        with pytest.raises(ValueError):
            coerce_level("chatty")

    def test_file_handler(self, restore_root_logging, tmp_path):
        log_file = tmp_path / "logs" / "herdview.log"

        configure_logging("debug", console=False, log_file=log_file)

        root = restore_root_logging
        assert root.level == logging.DEBUG
        assert [type(h) for h in root.handlers] == [RotatingFileHandler]
        assert log_file.parent.is_dir()
        assert logging.getLogger("aiohttp.client").level == logging.WARNING

    def test_second_call_only_changes_level(self, restore_root_logging):
        configure_logging("info", console=False)
        handlers = list(restore_root_logging.handlers)

        configure_logging("error", console=True)

        assert restore_root_logging.handlers == handlers
        assert restore_root_logging.level == logging.ERROR
