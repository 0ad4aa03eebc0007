import os
import sys
import logging
from loguru import logger

from pingwatch.automation.errors import LoggingSetupError

LOG_FILE_NAME = "pingwatch.log"


class InterceptHandler(logging.Handler):
    """Bridge stdlib logging (asyncio etc.) -> Loguru, preserving level and caller site."""

    def emit(self, record):
        try:
            level = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        frame, depth = logging.currentframe(), 2
        while frame and frame.f_code.co_filename == logging.__file__:
            frame = frame.f_back
            depth += 1

        logger.opt(depth=depth, exception=record.exc_info).log(level, record.getMessage())


def setup_logging(log_dir: str = "logs", console_level: str = "INFO"):
    """
    Configure Loguru for a long-running monitor:
    1. File sink: captures ALL logs at DEBUG level (every probe line ends up here)
    2. Console sink: messages tagged console=True, plus warnings and errors
       from anywhere (malformed lines, fatal errors)

    Returns:
        tuple: (logger, console_logger)
            - logger: internal messages (file only below WARNING)
            - console_logger: user-facing messages (file + console)

    Raises:
        LoggingSetupError: the log directory or a sink could not be created.
    """
    try:
        os.makedirs(log_dir, exist_ok=True)

        # Remove default handler
        logger.remove()

        # asyncio reports child-watcher and unretrieved task errors through stdlib logging
        logging.basicConfig(handlers=[InterceptHandler()], level=logging.DEBUG, force=True)
        logging.getLogger("asyncio").setLevel(logging.WARNING)

        # 1) FILE SINK: Everything at DEBUG level
        logger.add(
            os.path.join(log_dir, LOG_FILE_NAME),
            rotation="10 MB",
            retention="7 days",
            level="DEBUG",
            enqueue=True,
            backtrace=True,
            diagnose=False,
            format="{time:YYYY-MM-DD HH:mm:ss.SSS} | {level: <8} | {name}:{function}:{line} - {message}"
        )

        # 2) CONSOLE SINK: console=True messages, WARNING and above always
        warning_no = logger.level("WARNING").no

        def console_filter(record):
            """Allow messages marked for console output and anything WARNING or worse."""
            return record["extra"].get("console", False) or record["level"].no >= warning_no

        logger.add(
            sys.stdout,
            level=console_level,
            filter=console_filter,
            colorize=True,
            format="<green>{time:HH:mm:ss}</green> <level>{level: <8}</level> {message}"
        )
    except (OSError, ValueError) as e:
        raise LoggingSetupError(f"Could not initialise logging in {log_dir!r}: {e}") from e

    console_logger = logger.bind(console=True)

    return logger, console_logger
