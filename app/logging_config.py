"""Structured logging configuration (Loguru)."""

from __future__ import annotations

import sys
from pathlib import Path

from loguru import logger

from app.config import Settings, settings as default_settings


def setup_logging(settings: Settings | None = None, log_to_file: bool = True) -> None:
    """Configure Loguru: colourised stderr plus a daily rotating file."""
    settings = settings or default_settings
    logger.remove()

    fmt = (
        "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | "
        "<level>{level: <8}</level> | "
        "<cyan>{thread.name}</cyan> | "
        "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> — "
        "<level>{message}</level>"
    )

    logger.add(
        sys.stderr,
        format=fmt,
        level=settings.log_level,
        colorize=True,
        backtrace=True,
        diagnose=settings.debug,
    )

    if log_to_file:
        logger.add(
            str(Path(settings.log_dir) / "manolingua_{time:YYYY-MM-DD}.log"),
            format=fmt,
            level="DEBUG",
            rotation="00:00",
            retention="30 days",
            compression="gz",
            enqueue=True,
        )

    logger.info(
        "{} {} logging at {} ({}){}",
        settings.app_name,
        settings.app_version,
        settings.log_level,
        settings.app_env,
        f" -> {settings.log_dir}/" if log_to_file else "",
    )
