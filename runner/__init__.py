"""
Runner helpers for sobha-scraper: console logging outside a session.
"""

from runner.logging_setup import get_logger

__all__ = [
    "get_logger",
]
