"""
Logging setup for the CLI.

Recorder and replay modules log through ``logging.getLogger(__name__)``;
this module only decides where those records go. Step progress is
already printed by the CLI, so the console handler writes to stderr.
"""

import json
import logging
from typing import Iterable, Optional

from rich.console import Console
from rich.logging import RichHandler

PACKAGE_LOGGER = "qa_recorder"

# Chatty below WARNING while a browser is being driven
_NOISY_LOGGERS = ("asyncio", "websockets")


class JsonLineFormatter(logging.Formatter):
    """One JSON object per record, for log files read by other tools."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "time": self.formatTime(record),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, ensure_ascii=False)


def setup_logging(
    level: str = "INFO",
    log_file: Optional[str] = None,
    json_format: bool = False,
    quiet: Iterable[str] = _NOISY_LOGGERS,
) -> None:
    """
    Route QA Recorder logs to the terminal and optionally a file.

    Calling it again replaces the handlers installed by the previous call.

    Args:
        level: Log level name for the package loggers
        log_file: Also write records to this file
        json_format: Write the file as JSON lines
        quiet: Third-party loggers held at WARNING
    """
    log_level = getattr(logging, level.upper(), logging.INFO)

    logger = logging.getLogger(PACKAGE_LOGGER)
    logger.setLevel(log_level)
    logger.propagate = False
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    console_handler = RichHandler(
        console=Console(stderr=True),
        show_time=True,
        show_path=log_level <= logging.DEBUG,
        markup=False,
        rich_tracebacks=True,
    )
    logger.addHandler(console_handler)

    if log_file:
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        if json_format:
            file_handler.setFormatter(JsonLineFormatter())
        else:
            file_handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)-8s %(name)s: %(message)s"))
        logger.addHandler(file_handler)

    for name in quiet:
        logging.getLogger(name).setLevel(logging.WARNING)
