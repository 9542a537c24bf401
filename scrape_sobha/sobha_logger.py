"""
Sobha Portal Scraper - Structured Logging Module

Every line is a JSON object stamped with the session id and the runtime
since the session started, so interleaved runs stay separable.

Log files:
- sobha_scrape.log: Main scraping operations (also echoed to console)
- sobha_errors.log: Errors and exceptions only
- sobha_metrics.log: Step timings and session summaries

Author: sobha-scraper
"""

import json
import logging
import sys
import time
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, Dict, Optional


class SobhaScraperLogger:
    """Session-aware JSON logger for one scraping run."""

    def __init__(self, session_id: str, log_dir: str = "logs", console: bool = True, level="DEBUG"):
        """
        Initialize the logger with separate log files.

        Args:
            session_id: Session token stamped on every entry
            log_dir: Directory to store log files (default: logs/)
            console: Echo scrape entries to stdout
            level: Threshold for the scrape and metrics logs (name or number)
        """
        self.session_id = session_id
        self.start_time = time.monotonic()
        self.level = level if isinstance(level, int) else getattr(logging, str(level).upper(), logging.INFO)

        self.log_dir = Path(log_dir)
        self.log_dir.mkdir(parents=True, exist_ok=True)

        self.scrape_logger = self._setup_logger(
            "sobha_scrape", "sobha_scrape.log", level=self.level, console=console
        )
        self.error_logger = self._setup_logger("sobha_errors", "sobha_errors.log", level=logging.ERROR)
        self.metrics_logger = self._setup_logger("sobha_metrics", "sobha_metrics.log", level=self.level)

        self.current_context: Dict[str, Any] = {}

    def _setup_logger(
        self,
        name: str,
        filename: str,
        level: int = logging.DEBUG,
        console: bool = False,
        max_bytes: int = 10 * 1024 * 1024,  # 10MB
        backup_count: int = 5
    ) -> logging.Logger:
        """
        Set up a logger with rotating file handler.

        Args:
            name: Logger name
            filename: Log file name
            level: Logging level
            console: Also attach a stdout handler
            max_bytes: Max file size before rotation
            backup_count: Number of backup files to keep

        Returns:
            Configured logger instance, private to this session
        """
        # Unregistered: collected together with this session object
        logger = logging.Logger(f"{name}.{self.session_id}", level)
        logger.propagate = False

        handler = RotatingFileHandler(
            self.log_dir / filename,
            maxBytes=max_bytes,
            backupCount=backup_count
        )
        handler.setLevel(level)
        handler.setFormatter(logging.Formatter("%(message)s"))
        logger.addHandler(handler)

        if console:
            stream = logging.StreamHandler(sys.stdout)
            stream.setLevel(logging.INFO)
            stream.setFormatter(logging.Formatter("%(message)s"))
            logger.addHandler(stream)

        return logger

    def set_context(self, **kwargs):
        """
        Set context for subsequent log messages.

        Example:
            logger.set_context(step="authenticate", attempt=2)
        """
        self.current_context.update(kwargs)

    def clear_context(self):
        """Clear the current logging context."""
        self.current_context = {}

    def runtime_ms(self) -> int:
        return int((time.monotonic() - self.start_time) * 1000)

    def _format_log_data(self, level: str, message: str, extra_data: Optional[Dict] = None) -> str:
        """
        Format log data as JSON with session id and context.

        Args:
            level: Level name recorded in the entry
            message: Log message
            extra_data: Additional data to include

        Returns:
            JSON-formatted string
        """
        log_data = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": level,
            "sessionId": self.session_id,
            "runtime": self.runtime_ms(),
            "message": message,
            **self.current_context
        }

        if extra_data:
            log_data.update(extra_data)

        return json.dumps(log_data, default=str)

    # General logging

    def info(self, message: str, extra_data: Dict = None):
        self.scrape_logger.info(self._format_log_data("INFO", message, extra_data))

    def warning(self, message: str, extra_data: Dict = None):
        self.scrape_logger.warning(self._format_log_data("WARN", message, extra_data))

    def debug(self, message: str, extra_data: Dict = None):
        self.scrape_logger.debug(self._format_log_data("DEBUG", message, extra_data))

    def error(self, message: str, error: BaseException = None, context: Dict = None):
        """
        Log an error with full context.

        Args:
            message: Error description
            error: Exception object (if available)
            context: Additional context data
        """
        data = {}
        if error:
            data.update({
                "exception_type": type(error).__name__,
                "exception_message": str(error)
            })
        if context:
            data.update(context)

        msg = self._format_log_data("ERROR", message, data)
        self.error_logger.error(msg)
        # Also log to scrape logger for complete audit trail
        self.scrape_logger.error(msg)

    # Metrics logging

    def step_completed(self, step: str, duration_ms: float, success: bool, **fields):
        """Log timing for one pipeline step."""
        data = {
            "step": step,
            "duration_ms": round(duration_ms),
            "success": success,
            **fields
        }
        self.metrics_logger.info(self._format_log_data("INFO", "Step completed", data))

    def rate_limit_wait(self, wait_seconds: float, current_delay: float):
        data = {"wait_seconds": round(wait_seconds, 3), "current_delay": round(current_delay, 3)}
        self.scrape_logger.debug(self._format_log_data("DEBUG", "Rate limiting - waiting", data))

    def session_summary(self, summary: Dict[str, Any]):
        """Log the final metrics summary."""
        self.metrics_logger.info(self._format_log_data("INFO", "Session summary", summary))
        self.scrape_logger.info(self._format_log_data("INFO", "Session summary", summary))

    def close(self):
        """Flush and detach file handlers."""
        for logger in (self.scrape_logger, self.error_logger, self.metrics_logger):
            for handler in list(logger.handlers):
                handler.flush()
                handler.close()
                logger.removeHandler(handler)
