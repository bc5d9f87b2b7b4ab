"""
Structured logging configuration for the entire application.
Call setup_logging() once at startup (main.py).
"""

import logging
import sys


def setup_logging(level: str = "INFO"):
    """Configure structured logging to stdout for the 'relay' namespace."""
    root = logging.getLogger("relay")
    root.setLevel(getattr(logging, level.upper(), logging.INFO))

    # create_app() may run more than once per process (tests, reloads)
    if any(getattr(h, "_relay_handler", False) for h in root.handlers):
        return

    handler = logging.StreamHandler(sys.stdout)
    formatter = logging.Formatter(
        "%(asctime)s | %(levelname)s | %(name)s | %(message)s"
    )
    handler.setFormatter(formatter)
    handler._relay_handler = True
    root.addHandler(handler)
