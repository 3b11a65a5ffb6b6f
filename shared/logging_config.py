"""Structured JSON logging configuration for lexsync."""

from __future__ import annotations

import logging

from pythonjsonlogger import json as jsonlogger

from shared.log import TRACE


def configure_logging(log_level: str) -> None:
    """Configure root logger with structured JSON output.

    Output format: {"ts": "...", "level": "...", "name": "...", "msg": "..."}

    Args:
        log_level: Logging level string (e.g., "info", "debug", "trace").
    """
    if log_level.lower() == "trace":
        level = TRACE
    else:
        level = getattr(logging, log_level.upper(), logging.INFO)

    formatter = jsonlogger.JsonFormatter(
        fmt="%(asctime)s %(levelname)s %(name)s %(message)s",
        rename_fields={
            "asctime": "ts",
            "levelname": "level",
            "message": "msg",
        },
    )

    handler = logging.StreamHandler()
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    # Clear any existing handlers to avoid duplicate output
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(level)
