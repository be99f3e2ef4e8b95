"""Logging configuration and setup.

Two kinds of work produce log lines: HTTP requests and sync passes. Each
binds its own context key (``request_id`` from the request middleware,
``pass_id`` from the scheduler) and the patcher folds whichever is present
into a single ``ctx`` column, so one format serves both.
"""

import sys

from loguru import logger

from towerofsong.core.config import Settings, settings as default_settings

CONSOLE_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | "
    "<cyan>{extra[ctx]}</cyan> | <cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - "
    "<level>{message}</level>"
)
FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {extra[ctx]} | {name}:{function}:{line} - {message}"


def _add_context(record) -> None:
    extra = record["extra"]
    if extra.get("pass_id"):
        extra["ctx"] = f"sync-{extra['pass_id']}"
    elif extra.get("request_id"):
        extra["ctx"] = f"req-{extra['request_id']}"
    else:
        extra["ctx"] = "-"


def _is_sync_record(record) -> bool:
    return bool(record["extra"].get("pass_id"))


def setup_logging(settings: Settings = default_settings) -> None:
    """Configures Loguru for console, main log file and sync log file.

    ``towerofsong.log`` gets everything; ``sync.log`` only gets lines logged
    inside a sync pass, so the history of library changes can be read without
    request noise. File sinks are enqueued so the scan worker threads never
    block on disk writes.
    """
    logger.remove()
    logger.configure(patcher=_add_context)

    logger.add(sys.stderr, level=settings.LOG_LEVEL, format=CONSOLE_FORMAT)

    log_dir = settings.DATA_DIR / "logs"
    log_dir.mkdir(parents=True, exist_ok=True)
    file_options = dict(
        rotation=settings.LOG_ROTATION,
        retention=settings.LOG_RETENTION,
        compression="zip",
        level=settings.LOG_LEVEL,
        enqueue=True,
        backtrace=True,
        diagnose=False,  # tracebacks must not dump tokens or passwords
        format=FILE_FORMAT,
    )
    logger.add(str(log_dir / "towerofsong.log"), **file_options)
    logger.add(str(log_dir / "sync.log"), filter=_is_sync_record, **file_options)

    logger.info(f"Logging initialized. Data Dir: {settings.DATA_DIR}")
