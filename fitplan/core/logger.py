"""Logger configuration for the fitplan engine.

Modules log through `from loguru import logger` and pass context as keyword
arguments (user_id, exercise_id, workout_session_id, ...). Loguru keeps those
in `record["extra"]`; the console and file sinks print them after the message,
and LOG_JSON=true switches both sinks to one JSON object per line.
"""

import sys
from collections.abc import Callable
from pathlib import Path

from loguru import logger

from fitplan.config.settings import settings

CONSOLE_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | "
    "<level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{line}</cyan> - "
    "<level>{message}</level>"
)
FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {name}:{function}:{line} - {message}"


def with_context(base: str, context: str) -> Callable[[dict], str]:
    """Build a loguru format function that appends `context` only when extra is set."""

    def _format(record: dict) -> str:
        if record["extra"]:
            return base + context + "\n{exception}"
        return base + "\n{exception}"

    return _format


def setup_logger(
    level: str | None = None,
    log_file: str | None = None,
    *,
    json_logs: bool | None = None,
    rotation: str = "10 MB",
    retention: str = "7 days",
) -> None:
    """Configure loguru with a console sink and an optional rotating file sink.

    Args:
        level: Logging level; defaults to LOG_LEVEL
        log_file: Path of the log file; defaults to LOG_FILE (empty disables it)
        json_logs: Serialize records as JSON lines; defaults to LOG_JSON
        rotation: Log rotation size (e.g., "10 MB", "1 day")
        retention: Log retention period (e.g., "7 days", "1 month")
    """
    level = level or settings.log_level
    log_file = settings.log_file if log_file is None else log_file
    json_logs = settings.log_json if json_logs is None else json_logs

    logger.remove()

    if json_logs:
        logger.add(sys.stderr, level=level, serialize=True)
    else:
        logger.add(
            sys.stderr,
            format=with_context(CONSOLE_FORMAT, " | <dim>{extra}</dim>"),
            level=level,
            colorize=True,
        )

    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)

        logger.add(
            log_path,
            format=with_context(FILE_FORMAT, " | {extra}"),
            level=level,
            rotation=rotation,
            retention=retention,
            compression="zip",
            serialize=json_logs,
            backtrace=True,
            # Locals of plan and workout frames carry user data
            diagnose=False,
        )

    logger.info("Logger initialized", level=level, log_file=log_file or None, json_logs=json_logs)
