from __future__ import annotations

import logging
import os
import sys
import threading
import weakref

from nicegui import ui

_LEVEL_COLORS = {
    "TRACE": "\033[32m",  # green
    "DEBUG": "\033[36m",  # cyan
    "INFO": "\033[37m",  # light gray
    "WARNING": "\033[33m",  # yellow
    "ERROR": "\033[31m",  # red
    "CRITICAL": "\033[41m",  # red background
}
_RESET = "\033[0m"
_DIM = "\033[2m"

# Per-tick cache diagnostics (skipped ticks, discarded responses) go below DEBUG
TRACE = 5
logging.addLevelName(TRACE, "TRACE")

TRACE_ENABLED = os.getenv("ROBODASH_TRACE", "0").lower() in ("1", "true", "yes", "on")

# Loggers whose records never reach the activity panel (httpx logs every poll at INFO)
ACTIVITY_MUTED = ("httpx", "httpcore", "uvicorn", "nicegui", "asyncio")


class AnsiColorFormatter(logging.Formatter):
    """Compact `HH:MM:SS LEVEL logger: msg` lines; on a TTY the time is dimmed and the level colored."""

    def __init__(self, colored: bool = True) -> None:
        super().__init__(
            fmt="%(asctime)s %(levelname)s %(name)s: %(message)s", datefmt="%H:%M:%S"
        )
        self.colored = colored and sys.stderr.isatty()

    def formatTime(self, record: logging.LogRecord, datefmt: str | None = None) -> str:
        stamp = super().formatTime(record, datefmt)
        return f"{_DIM}{stamp}{_RESET}" if self.colored else stamp

    def formatMessage(self, record: logging.LogRecord) -> str:
        color = _LEVEL_COLORS.get(record.levelname) if self.colored else None
        if not color:
            return super().formatMessage(record)
        plain = record.levelname
        record.levelname = f"{color}{plain}{_RESET}"
        try:
            return super().formatMessage(record)
        finally:
            record.levelname = plain


# ---- Dashboard activity log ----

# One ui.log per open dashboard tab; entries vanish with their widget
_ui_log_targets: weakref.WeakSet = weakref.WeakSet()
_ui_lock = threading.Lock()


class NiceGuiLogHandler(logging.Handler):
    """Mirror operator-relevant records into every registered ui.log widget."""

    def __init__(self, level: int = logging.INFO, muted: tuple[str, ...] = ACTIVITY_MUTED) -> None:
        super().__init__(level=level)
        self.muted = frozenset(muted)
        self.setFormatter(logging.Formatter("%(asctime)s [%(levelname)s] %(message)s", "%H:%M:%S"))

    def filter(self, record: logging.LogRecord) -> bool:
        if record.name.split(".", 1)[0] in self.muted:
            return False
        return super().filter(record)

    def emit(self, record: logging.LogRecord) -> None:
        if not _ui_log_targets:
            return
        msg = self.format(record)
        with _ui_lock:
            for widget in list(_ui_log_targets):
                if getattr(widget, "is_deleted", False):
                    _ui_log_targets.discard(widget)
                    continue
                try:
                    widget.push(msg)
                except RuntimeError:
                    # widget's client already torn down
                    _ui_log_targets.discard(widget)


def attach_ui_log(log_widget: ui.log) -> None:
    """Register a ui.log widget as a sink for log records."""
    with _ui_lock:
        _ui_log_targets.add(log_widget)


def detach_ui_log(log_widget: ui.log) -> None:
    with _ui_lock:
        _ui_log_targets.discard(log_widget)


def configure_logging(
    level: int = logging.INFO, use_color: bool = True, add_ui_handler: bool = True
) -> logging.Logger:
    """
    Configure the root logger with:
      - ANSI-colored console handler (stderr) with timestamps and levels
      - optional NiceGUI handler feeding the dashboard activity log
    Idempotent across multiple calls; a repeated call only moves the level.
    """
    if TRACE_ENABLED:
        level = min(level, TRACE)
    logger = logging.getLogger()
    logger.setLevel(level)

    for handler in logger.handlers:
        if isinstance(handler.formatter, AnsiColorFormatter):
            handler.setLevel(level)
            break
    else:
        console = logging.StreamHandler(stream=sys.stderr)
        console.setLevel(level)
        console.setFormatter(AnsiColorFormatter(colored=use_color))
        logger.addHandler(console)

    if add_ui_handler and not any(isinstance(h, NiceGuiLogHandler) for h in logger.handlers):
        # Activity log shows operator-relevant events only
        logger.addHandler(NiceGuiLogHandler(level=max(level, logging.INFO)))

    return logger
