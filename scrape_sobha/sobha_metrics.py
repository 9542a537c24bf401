"""
Per-session metrics and outcome recorder.

Counts attempts, successes and failures, keeps request timings, error
entries and memory samples, and produces the summary embedded in every
output record. State is append-only for the lifetime of a run.
"""

import os
import time
import traceback
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import psutil


class MetricsRecorder:
    """
    Metrics for one scraping session.

    Invariant: successful_requests + failed_requests == total_requests.
    """

    def __init__(self, session_id: str, clock=time.monotonic):
        self.session_id = session_id
        self._clock = clock
        self.start_time = clock()

        self.total_requests = 0
        self.successful_requests = 0
        self.failed_requests = 0
        self.properties_scraped = 0

        self.errors: List[Dict[str, Any]] = []
        self.request_times: List[float] = []
        self.memory_usage: List[Dict[str, Any]] = []

    def record_request(self, success: bool, duration_ms: float, error: Optional[BaseException] = None):
        """
        Record the outcome of one network-facing attempt.

        Args:
            success: Whether the attempt succeeded
            duration_ms: Attempt duration in milliseconds
            error: Exception behind a failed attempt, if any
        """
        self.total_requests += 1
        self.request_times.append(duration_ms)

        if success:
            self.successful_requests += 1
            return

        self.failed_requests += 1
        if error is not None:
            self.errors.append({
                "timestamp": datetime.now(timezone.utc).isoformat(),
                "error": str(error),
                "type": type(error).__name__,
                "trace": "".join(traceback.format_exception(type(error), error, error.__traceback__)),
            })

    def record_properties_scraped(self, count: int):
        self.properties_scraped = count

    def record_memory_usage(self):
        """Sample the current process's memory footprint."""
        info = psutil.Process(os.getpid()).memory_info()
        self.memory_usage.append({
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "rss": info.rss,
            "vms": info.vms,
        })

    def success_rate(self) -> float:
        """Success percentage; 100.0 before any request was recorded."""
        if self.total_requests == 0:
            return 100.0
        return self.successful_requests / self.total_requests * 100

    def duration_ms(self) -> int:
        return int((self._clock() - self.start_time) * 1000)

    def summary(self) -> Dict[str, Any]:
        """Final summary for output records."""
        average = sum(self.request_times) / len(self.request_times) if self.request_times else 0
        return {
            "sessionId": self.session_id,
            "durationMs": self.duration_ms(),
            "successRate": round(self.success_rate(), 2),
            "totalRequests": self.total_requests,
            "successfulRequests": self.successful_requests,
            "failedRequests": self.failed_requests,
            "propertiesScraped": self.properties_scraped,
            "errorCount": len(self.errors),
            "averageRequestTime": round(average, 2),
            "memorySamples": len(self.memory_usage),
        }
