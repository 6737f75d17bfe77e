"""
Logging setup for the command line.
"""

from __future__ import annotations

import logging

from pythonjsonlogger.json import JsonFormatter

TEXT_FORMAT = "%(asctime)s - %(levelname)s - %(message)s"
JSON_FORMAT = "%(asctime)s %(name)s %(levelname)s %(message)s"


def configure_logging(level_name: str = "INFO", fmt: str = "text") -> None:
    """Configure root logging as plain text or JSON lines."""
    level = getattr(logging, level_name.upper(), logging.INFO)
    root = logging.getLogger()
    root.setLevel(level)

    handler = logging.StreamHandler()
    if fmt == "json":
        formatter = JsonFormatter(JSON_FORMAT)
    else:
        formatter = logging.Formatter(TEXT_FORMAT)
    handler.setFormatter(formatter)

    root.handlers.clear()
    root.addHandler(handler)

    # paramiko is chatty at INFO (banner, auth methods)
    logging.getLogger("paramiko").setLevel(max(level, logging.WARNING))


__all__ = ["configure_logging"]
