"""
Application settings.

Values come from environment variables, optionally provided through a
``.env`` file in the working directory:

    BEDSIDE_SCALES_STORE_PATH    JSON file holding saved results
    BEDSIDE_SCALES_CATALOG_PATH  alternative scale catalog (YAML)
    BEDSIDE_SCALES_LOG_LEVEL     DEBUG, INFO, WARNING (default) or ERROR
    BEDSIDE_SCALES_LOG_FILE      optional log file
"""

import logging
import os
from pathlib import Path
from typing import Optional

from dotenv import find_dotenv, load_dotenv
from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)

DEFAULT_STORE_PATH = Path("~/.bedside_scales/results.json").expanduser()
VALID_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


class Settings(BaseModel):
    """Resolved configuration for one run of the application."""

    store_path: Path = Field(DEFAULT_STORE_PATH, description="Results JSON file.")
    catalog_path: Optional[Path] = Field(
        None, description="Scale catalog YAML; None uses the packaged catalog."
    )
    log_level: str = Field("WARNING", description="Console log level.")
    log_file: Optional[Path] = Field(None, description="Optional DEBUG log file.")


def _optional_path(value: Optional[str]) -> Optional[Path]:
    if not value:
        return None
    return Path(value).expanduser()


def load_settings(env_file: Optional[str] = None) -> Settings:
    """Build Settings from the environment after loading ``.env``.

    Args:
        env_file: Explicit dotenv file; by default ``.env`` is searched from
            the working directory upwards.
    """
    load_dotenv(env_file or find_dotenv(usecwd=True))

    log_level = os.getenv("BEDSIDE_SCALES_LOG_LEVEL", "WARNING").strip().upper()
    if log_level not in VALID_LOG_LEVELS:
        logger.warning("Invalid BEDSIDE_SCALES_LOG_LEVEL %r, using WARNING", log_level)
        log_level = "WARNING"

    return Settings(
        store_path=_optional_path(os.getenv("BEDSIDE_SCALES_STORE_PATH")) or DEFAULT_STORE_PATH,
        catalog_path=_optional_path(os.getenv("BEDSIDE_SCALES_CATALOG_PATH")),
        log_level=log_level,
        log_file=_optional_path(os.getenv("BEDSIDE_SCALES_LOG_FILE")),
    )
