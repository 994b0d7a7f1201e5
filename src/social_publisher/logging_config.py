"""File logging setup.

Console output is reserved for the Rich CLI display, so every named logger
writes to its own file under the log directory and does not propagate.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Union

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(message)s"

# logger name -> log file
LOG_FILES: dict[str, str] = {
    "oauth": "oauth.log",
    "token_manager": "oauth.log",
    "publishing": "publishing.log",
    "rate_limiter": "publishing.log",
    "instagram_api": "instagram_api.log",
    "tiktok_api": "tiktok_api.log",
    "linkedin_api": "linkedin_api.log",
    "linkedin_org_api": "linkedin_api.log",
    "discord_api": "discord_api.log",
    "reddit_api": "reddit_api.log",
    "pinterest_api": "pinterest_api.log",
    "facebook_api": "facebook_api.log",
    "twitter_api": "twitter_api.log",
    "youtube_api": "youtube_api.log",
}


def setup_logging(log_dir: Union[str, Path] = "logs", level: Union[int, str] = logging.INFO) -> Path:
    """Attach file handlers to all package loggers.

    Safe to call more than once; existing handlers are replaced.

    Args:
        log_dir: Directory for log files (created if missing).
        level: Level applied to every package logger.

    Returns:
        The resolved log directory.
    """
    log_path = Path(log_dir)
    log_path.mkdir(parents=True, exist_ok=True)

    if isinstance(level, str):
        level = logging.getLevelName(level.upper())

    # One handler per file, shared by loggers writing to the same file
    handlers: dict[str, logging.FileHandler] = {}
    for logger_name, file_name in LOG_FILES.items():
        handler = handlers.get(file_name)
        if handler is None:
            handler = logging.FileHandler(log_path / file_name, encoding="utf-8")
            handler.setFormatter(logging.Formatter(LOG_FORMAT))
            handlers[file_name] = handler

        logger = logging.getLogger(logger_name)
        for old in list(logger.handlers):
            logger.removeHandler(old)
            old.close()
        logger.setLevel(level)
        logger.propagate = False
        logger.addHandler(handler)

    # Suppress loggers that might print to console
    for logger_name in ["httpx", "httpcore", "asyncio"]:
        noisy = logging.getLogger(logger_name)
        noisy.setLevel(logging.WARNING)
        noisy.propagate = False

    return log_path
