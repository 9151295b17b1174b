"""
Logging configuration for the command-line application.

Console output goes to stderr at the configured level; when a log file is
configured it receives everything from DEBUG up.
"""

import logging
from pathlib import Path
from typing import Optional, Union

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def configure_logging(
    level: Union[int, str] = logging.WARNING, log_file: Optional[Path] = None
) -> logging.Logger:
    """Attach console and optional file handlers to the package logger.

    Calling it again replaces the handlers installed by a previous call.
    """
    package_logger = logging.getLogger("bedside_scales")
    package_logger.setLevel(logging.DEBUG)
    for handler in list(package_logger.handlers):
        package_logger.removeHandler(handler)
        handler.close()

    console_handler = logging.StreamHandler()
    console_handler.setLevel(level)
    console_handler.setFormatter(logging.Formatter(LOG_FORMAT))
    package_logger.addHandler(console_handler)

    if log_file:
        log_file = Path(log_file)
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file, mode="a", encoding="utf-8")
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(logging.Formatter(LOG_FORMAT))
        package_logger.addHandler(file_handler)

    package_logger.propagate = False
    package_logger.debug("Logging configured (console level %s, file %s)", level, log_file)
    return package_logger
