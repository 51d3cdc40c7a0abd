from __future__ import annotations

import logging

import pytest

from robodash import constants
from robodash.common import logging_config
from robodash.common.logging_config import (
    AnsiColorFormatter,
    TRACE,
    NiceGuiLogHandler,
    attach_ui_log,
    configure_logging,
    detach_ui_log,
)


class FakeLogWidget:
    def __init__(self) -> None:
        self.lines: list[str] = []

    def push(self, line: str) -> None:
        self.lines.append(line)


@pytest.fixture
def clean_root():
    root = logging.getLogger()
    saved_handlers, saved_level = root.handlers[:], root.level
    root.handlers = []
    yield root
    root.handlers = saved_handlers
    root.setLevel(saved_level)


@pytest.mark.unit
def test_configure_logging_is_idempotent(clean_root: logging.Logger):
    configure_logging(logging.DEBUG, use_color=False)
    configure_logging(logging.DEBUG, use_color=False)
    assert sum(isinstance(h, NiceGuiLogHandler) for h in clean_root.handlers) == 1
    assert sum(isinstance(h.formatter, AnsiColorFormatter) for h in clean_root.handlers) == 1
    assert clean_root.level == logging.DEBUG


@pytest.mark.unit
def test_ui_handler_mirrors_records_to_widgets():
    logger = logging.getLogger("robodash.test.activity")
    logger.propagate = False
    logger.setLevel(logging.DEBUG)
    handler = NiceGuiLogHandler(level=logging.INFO)
    logger.addHandler(handler)
    widget = FakeLogWidget()
    attach_ui_log(widget)
    try:
        logger.warning("battery %d%%", 12)
        logger.debug("hidden")
    finally:
        detach_ui_log(widget)
        logger.removeHandler(handler)
    assert len(widget.lines) == 1
    assert "[WARNING] battery 12%" in widget.lines[0]
    assert not logging_config._ui_log_targets


@pytest.mark.unit
def test_plain_formatter_has_no_escape_codes():
    fmt = AnsiColorFormatter(colored=False)
    line = fmt.format(logging.LogRecord("robodash", logging.ERROR, __file__, 1, "boom", (), None))
    assert "\033[" not in line
    assert line.endswith("ERROR robodash: boom")


@pytest.mark.unit
def test_http_chatter_stays_out_of_activity_log():
    handler = NiceGuiLogHandler(level=logging.INFO)
    widget = FakeLogWidget()
    attach_ui_log(widget)
    try:
        for name, msg in (("httpx", "HTTP Request: GET /robots/robot0"), ("root", "Command forward sent")):
            record = logging.LogRecord(name, logging.INFO, __file__, 1, msg, (), None)
            handler.handle(record)
    finally:
        detach_ui_log(widget)
    assert len(widget.lines) == 1
    assert widget.lines[0].endswith("[INFO] Command forward sent")


@pytest.mark.unit
def test_reconfigure_moves_console_level(clean_root: logging.Logger):
    configure_logging(logging.WARNING, use_color=False, add_ui_handler=False)
    configure_logging(logging.DEBUG, use_color=False, add_ui_handler=False)
    consoles = [h for h in clean_root.handlers if isinstance(h.formatter, AnsiColorFormatter)]
    assert [h.level for h in consoles] == [logging.DEBUG]


@pytest.mark.unit
@pytest.mark.parametrize(
    "value, level",
    [("debug", logging.DEBUG), (" Error ", logging.ERROR), ("TRACE", TRACE), ("chatty", logging.WARNING), ("", logging.WARNING)],
)
def test_env_log_level(monkeypatch: pytest.MonkeyPatch, value: str, level: int):
    monkeypatch.setenv("ROBODASH_LOG_LEVEL", value)
    assert constants._resolve_log_level() == level
