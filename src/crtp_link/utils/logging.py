"""
Logging utilities for the CRTP link client.

Every line logged while a link session is open carries that session's short
id, so interleaved sessions (reconnects, tests) can be told apart in one log
file. Raw frame dumps go through the transport logger at DEBUG and can be
switched on without lowering the level of everything else.
"""

import logging
import logging.handlers
import sys
import uuid
from contextvars import ContextVar
from pathlib import Path

FRAME_TRACE_LOGGER = "src.crtp_link.hal.udp_transport"
NO_SESSION = "-"

link_session_id: ContextVar[str | None] = ContextVar("link_session_id", default=None)


class SessionIdFilter(logging.Filter):
    """Stamp each record with the current link session id."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.session_id = link_session_id.get() or NO_SESSION
        return True


class SessionFormatter(logging.Formatter):
    """Prefix messages with ``[session_id]`` when a session is active."""

    def format(self, record: logging.LogRecord) -> str:
        session_id = getattr(record, "session_id", NO_SESSION)
        if session_id == NO_SESSION:
            return super().format(record)

        # the same record reaches every handler, so restore it afterwards
        msg, args = record.msg, record.args
        record.msg = f"[{session_id}] {record.getMessage()}"
        record.args = ()
        try:
            return super().format(record)
        finally:
            record.msg, record.args = msg, args


def setup_logging(
    log_level: str = "INFO",
    log_format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    log_file_path: str | None = None,
    log_file_max_bytes: int = 10485760,  # 10 MB
    log_file_backup_count: int = 5,
    enable_console: bool = True,
    enable_file: bool = True,
    frame_trace: bool = False,
) -> None:
    """
    Configure the root logger.

    Args:
        log_level: Root level name (DEBUG, INFO, ...)
        log_format: Format string shared by all handlers
        log_file_path: Rotating log file, ignored unless enable_file is set
        log_file_max_bytes: Size at which the file rotates
        log_file_backup_count: Rotated files kept
        enable_console: Log to stdout
        enable_file: Log to log_file_path
        frame_trace: Hex-dump every datagram sent and received
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, log_level.upper()))
    root_logger.handlers.clear()

    formatter = SessionFormatter(log_format)
    session_filter = SessionIdFilter()

    handlers: list[logging.Handler] = []
    if enable_console:
        handlers.append(logging.StreamHandler(sys.stdout))

    if enable_file and log_file_path:
        Path(log_file_path).parent.mkdir(parents=True, exist_ok=True)
        handlers.append(
            logging.handlers.RotatingFileHandler(
                log_file_path, maxBytes=log_file_max_bytes, backupCount=log_file_backup_count
            )
        )

    for handler in handlers:
        handler.setFormatter(formatter)
        handler.addFilter(session_filter)
        root_logger.addHandler(handler)

    trace_level = logging.DEBUG if frame_trace else logging.NOTSET
    logging.getLogger(FRAME_TRACE_LOGGER).setLevel(trace_level)

    logging.info(f"Logging configured with level: {log_level}, frame trace: {frame_trace}")


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)


def set_session_id(session_id: str | None = None) -> str:
    """
    Mark the current context as belonging to a link session.

    Args:
        session_id: Explicit id, otherwise 8 hex characters are generated

    Returns:
        The id now in effect
    """
    if session_id is None:
        session_id = uuid.uuid4().hex[:8]

    link_session_id.set(session_id)
    return session_id


def get_session_id() -> str | None:
    return link_session_id.get()


def clear_session_id() -> None:
    link_session_id.set(None)
