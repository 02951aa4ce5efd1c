"""Logging helpers for casmpc."""

from __future__ import annotations

import logging

# Library policy: a NullHandler on the package logger, nothing else.
logging.getLogger("casmpc").addHandler(logging.NullHandler())


def get_logger(name: str) -> logging.Logger:
    """Return a module-level logger without altering global handlers.

    Handlers and levels are left to the application embedding the controller.
    """
    return logging.getLogger(name)
