"""Logging configuration helpers."""

from __future__ import annotations

import logging


def configure_logging(level: str = "INFO", log_file: str | None = None) -> None:
    """Configure root logging; ``log_file`` keeps diagnostics out of the interactive terminal."""
    normalized = level.upper()
    handler_kwargs: dict[str, str] = {}
    if log_file:
        handler_kwargs["filename"] = log_file
    logging.basicConfig(
        level=getattr(logging, normalized, logging.INFO),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
        **handler_kwargs,
    )
