"""Logging setup for Matilda Scribe.

Records from every ``matilda_scribe`` module travel through a queue to a
rotating file under ``~/.matilda/logs`` (and optionally stderr), so the event
loop never waits on disk writes.
"""

import atexit
import logging
import os
import sys
from logging.handlers import QueueHandler, QueueListener, RotatingFileHandler
from pathlib import Path
from queue import SimpleQueue

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
DEFAULT_LOG_FILE = "matilda-scribe.log"
MAX_LOG_BYTES = 10 * 1024 * 1024
LOG_BACKUP_COUNT = 5

_listener: QueueListener | None = None


def logs_dir() -> Path:
    """Directory for log files; ``MATILDA_LOG_DIR`` overrides the default."""
    env_dir = os.environ.get("MATILDA_LOG_DIR")
    return Path(env_dir) if env_dir else Path.home() / ".matilda" / "logs"


def _build_handlers(level: int, include_console: bool, include_file: bool) -> list[logging.Handler]:
    handlers: list[logging.Handler] = []
    if include_file:
        directory = logs_dir()
        try:
            directory.mkdir(parents=True, exist_ok=True)
            handlers.append(
                RotatingFileHandler(
                    directory / os.environ.get("MATILDA_SCRIBE_LOG_FILE", DEFAULT_LOG_FILE),
                    maxBytes=MAX_LOG_BYTES,
                    backupCount=LOG_BACKUP_COUNT,
                )
            )
        except OSError:
            # Read-only home or log dir: keep going without a file sink
            pass
    if include_console:
        handlers.append(logging.StreamHandler(sys.stderr))

    formatter = logging.Formatter(LOG_FORMAT, datefmt="%Y-%m-%d %H:%M:%S")
    for handler in handlers:
        handler.setLevel(level)
        handler.setFormatter(formatter)
    return handlers


def setup_logging(
    name: str = "matilda_scribe",
    log_level: str | None = None,
    include_console: bool | None = None,
    include_file: bool = True,
) -> logging.Logger:
    """Route ``name`` and its child loggers to the Scribe log sinks.

    Args:
        name: Logger to configure; child module loggers propagate into it
        log_level: DEBUG, INFO, WARNING or ERROR. Defaults to
            MATILDA_SCRIBE_LOG_LEVEL or INFO.
        include_console: Also log to stderr. If None, MATILDA_SCRIBE_CONSOLE_LOGS
            ("1"/"true"/"yes") decides.
        include_file: Log to the rotating file

    Calling again replaces the previous configuration.
    """
    global _listener

    level_name = log_level or os.environ.get("MATILDA_SCRIBE_LOG_LEVEL", "INFO")
    level = getattr(logging, level_name.upper(), logging.INFO)
    if include_console is None:
        include_console = os.environ.get("MATILDA_SCRIBE_CONSOLE_LOGS", "").strip().lower() in {"1", "true", "yes"}

    shutdown_logging()
    logger = logging.getLogger(name)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
    logger.setLevel(level)
    # Keep records out of the root logger so nothing is printed twice
    logger.propagate = False

    handlers = _build_handlers(level, include_console, include_file)
    if not handlers:
        logger.addHandler(logging.NullHandler())
        return logger

    queue: SimpleQueue = SimpleQueue()
    _listener = QueueListener(queue, *handlers, respect_handler_level=True)
    _listener.start()
    logger.addHandler(QueueHandler(queue))
    return logger


def shutdown_logging() -> None:
    """Flush pending records and close the log sinks."""
    global _listener
    if _listener is None:
        return
    listener, _listener = _listener, None
    listener.stop()
    for handler in listener.handlers:
        handler.close()


atexit.register(shutdown_logging)

__all__ = ["setup_logging", "shutdown_logging", "logs_dir"]
