"""
Console logging for code that runs outside a scraping session.

Session-scoped output (JSON lines stamped with the session id) goes
through scrape_sobha.sobha_logger.SobhaScraperLogger. The loggers here
cover the CLI and components used without a session logger; they share a
single stdout handler on the "sobha" parent logger and write no files.
"""

import logging
import os
import sys

ROOT_LOGGER = "sobha"


def _configure_root() -> logging.Logger:
    root = logging.getLogger(ROOT_LOGGER)
    if not root.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(logging.Formatter("%(levelname)s - %(name)s - %(message)s"))
        root.addHandler(handler)
        root.setLevel(getattr(logging, os.getenv("LOG_LEVEL", "INFO").upper(), logging.INFO))
        root.propagate = False
    return root


def get_logger(name: str) -> logging.Logger:
    """Console logger named sobha.<name>."""
    _configure_root()
    return logging.getLogger(f"{ROOT_LOGGER}.{name}")
