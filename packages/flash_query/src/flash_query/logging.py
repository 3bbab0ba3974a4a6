import logging
import sys
import time
from contextlib import contextmanager
from contextvars import ContextVar, Token
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Generator, Optional, Union

# Name of the scope currently being evaluated (e.g. "articles.default_scope")
current_scope: ContextVar[Optional[str]] = ContextVar("current_scope", default=None)


class TraceFormatter(logging.Formatter):
    """
    Formatter that prefixes the active scope and enforces UTC.
    """

    def __init__(self, fmt: str | None = None, datefmt: str | None = None):
        super().__init__(fmt, datefmt)
        self.converter = time.gmtime

    def formatTime(self, record, datefmt=None):  # noqa: N802
        """Overridden to emit ISO-8601 UTC timestamps."""
        ct = self.converter(record.created)
        if datefmt:
            return time.strftime(datefmt, ct)
        t = time.strftime("%Y-%m-%d %H:%M:%S", ct)
        return "%s.%03dZ" % (t, record.msecs)

    def format(self, record: logging.LogRecord) -> str:
        scope = current_scope.get()
        # Distinct attribute name to avoid collisions with extra={}
        record.trace_str = f"[{scope}] " if scope else ""
        return super().format(record)


def get_logger(name: str) -> logging.Logger:
    """
    Returns a standard logger instance.

    >>> logger = get_logger(__name__)
    """
    return logging.getLogger(name)


def setup_logging(
    level: Union[int, str, None] = None,
    log_file: Optional[Union[str, Path]] = None,
    max_bytes: int = 10_485_760,  # 10MB
    backup_count: int = 5,
    module_name: str = "flash_query",
) -> logging.Logger:
    """
    Configure the ``flash_query`` logger namespace.

    Level and file default to ``FLASH_QUERY_LOG_LEVEL`` / ``FLASH_QUERY_LOG_FILE``.
    Calling it again replaces the previously installed handlers.
    """
    from .config import query_settings

    if level is None:
        level = query_settings.LOG_LEVEL
    if log_file is None:
        log_file = query_settings.LOG_FILE
    if isinstance(level, str):
        level = getattr(logging, level.upper(), logging.INFO)

    target_logger = logging.getLogger(module_name)
    target_logger.handlers.clear()
    target_logger.setLevel(level)

    log_format = "%(asctime)s %(levelname)-8s %(trace_str)s%(name)s: %(message)s"
    formatter = TraceFormatter(log_format)

    console = logging.StreamHandler(sys.stdout)
    console.setFormatter(formatter)
    target_logger.addHandler(console)

    if log_file:
        file_path = Path(log_file).resolve()
        try:
            file_path.parent.mkdir(parents=True, exist_ok=True)
            file_handler = RotatingFileHandler(
                file_path,
                maxBytes=max_bytes,
                backupCount=backup_count,
                encoding="utf-8",
            )
            file_handler.setFormatter(formatter)
            target_logger.addHandler(file_handler)
        except OSError as e:
            # Read-only filesystems still get console output.
            sys.stderr.write(f"Failed to setup log file: {e}\n")

    target_logger.propagate = False
    return target_logger


def set_current_scope(value: str) -> Token:
    return current_scope.set(value)


def reset_current_scope(token: Token) -> None:
    current_scope.reset(token)


@contextmanager
def scoped_trace(value: str) -> Generator[None, None, None]:
    """
    Tag log records emitted inside the block with a scope name.

    >>> with scoped_trace("articles.published"):
    ...     relation = published(relation)
    """
    token = set_current_scope(value)
    try:
        yield
    finally:
        reset_current_scope(token)
