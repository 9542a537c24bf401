"""
Sobha Portal Scraper - Orchestration Layer

Runs the extraction pipeline for one authenticated session and turns its
outcome into a structured output record.

Pipeline:
    authenticate -> dismiss modal -> navigate to listing ->
    wait for Lightning render -> open table -> extract rows

Features:
- One browser session, strictly sequential steps
- Degrades on render timeouts and modal failures, aborts on auth/table failures
- Success and failure records written to the dataset
- Several independent sessions bounded by parallel_requests (scrape_many)

Author: sobha-scraper
"""

import asyncio
import random
import time
import traceback
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional

from .sobha_auth import Authenticator
from .sobha_browser import BrowserSession
from .sobha_config import ScrapeConfig, SobhaSettings
from .sobha_dataset import DatasetWriter
from .sobha_errors import AuthenticationError, RenderTimeoutError
from .sobha_extract import PropertyRecord, RowExtractor
from .sobha_logger import SobhaScraperLogger
from .sobha_metrics import MetricsRecorder
from .sobha_modal import ModalDismisser
from .sobha_rate_limit import RateController
from .sobha_render import LightningRenderWaiter
from .sobha_scripts import NAVIGATOR_INFO
from .sobha_security import generate_session_id
from .sobha_table import TableOpener

SCRAPER_VERSION = "1.0.5"
APPROACH = "lightning-table-extraction"


class SobhaCrawler:
    """
    Orchestrates one scraping session against the partner portal.

    Owns the session's browser, rate controller, metrics and logger; none
    of them are shared with other crawlers.
    """

    def __init__(
        self,
        config: ScrapeConfig,
        settings: SobhaSettings = None,
        session_factory: Callable = BrowserSession,
        dataset: DatasetWriter = None,
        logger: SobhaScraperLogger = None,
        rng: random.Random = None,
    ):
        """
        Initialize the crawler.

        Args:
            config: Validated run input
            settings: SobhaSettings instance (from env if None)
            session_factory: Callable(BrowserSettings, logger=...) returning an async
                context manager that yields a browser session
            dataset: DatasetWriter for output records
            logger: SobhaScraperLogger instance (created per session if None)
            rng: Random source for stealth and human-like timing
        """
        self.config = config
        self.settings = settings or SobhaSettings.from_env()
        self.session_factory = session_factory
        self.rng = rng or random.Random()

        self.session_id = generate_session_id()
        self.logger = logger or SobhaScraperLogger(
            self.session_id, log_dir=self.settings.log_dir, level=self.settings.log_level
        )
        self.dataset = dataset or DatasetWriter(
            self.settings.dataset_dir, self.settings.dataset_name, logger=self.logger
        )
        self.metrics = MetricsRecorder(self.session_id)

    async def run(self) -> Dict[str, Any]:
        """
        Run the full pipeline.

        Returns:
            Success or failure output record (also pushed to the dataset)
        """
        started = time.monotonic()
        self.logger.info("Starting Lightning table-aware scraping workflow", {
            "configuration": self.config.to_log_dict(),
            "settings": self.settings.summary(),
        })
        self.metrics.record_memory_usage()

        try:
            async with self.session_factory(self.settings.browser, logger=self.logger) as session:
                properties = await self._pipeline(session)
                browser_info = await self._browser_info(session)
            record = self._success_record(properties, browser_info)
        except Exception as e:
            duration_ms = (time.monotonic() - started) * 1000
            if not isinstance(e, AuthenticationError):
                self.metrics.record_request(False, duration_ms, e)
            self.logger.error("Scraping workflow failed", error=e, context={"duration": round(duration_ms)})
            record = self._failure_record(e)

        self.dataset.push(record)
        self.logger.session_summary(self.metrics.summary())
        self.logger.close()
        return record

    async def _pipeline(self, session) -> List[PropertyRecord]:
        portal = self.settings.portal
        rate = RateController(self.config.request_delay, portal.max_delay, sleep=session.sleep)

        await self._step("authenticate", Authenticator(
            session, self.config, portal, self.settings.browser, rate, self.metrics, self.logger, self.rng
        ).authenticate())

        self.logger.info(f"Waiting {portal.content_wait}s for page content to render")
        await session.sleep(portal.content_wait)

        await self._step("dismiss_modal", ModalDismisser(session, portal, self.logger).dismiss())
        await session.sleep(portal.modal_settle)

        await self._step("navigate_to_listing", self._navigate_to_listing(session, rate))

        try:
            await self._step("wait_for_render", LightningRenderWaiter(session, portal, self.logger).wait_until_ready())
        except RenderTimeoutError as e:
            self.logger.error("Lightning component rendering failed", error=e)
            self.logger.warning("Continuing despite Lightning rendering issues")

        await self._step("open_table", TableOpener(session, portal, self.logger).open())

        properties = await self._step("extract_rows", RowExtractor(session, portal, self.logger).extract(
            self.config.max_results
        ))
        self.metrics.record_properties_scraped(len(properties))

        success_rate = self.metrics.success_rate()
        if success_rate < portal.min_success_rate:
            self.logger.warning("Success rate below threshold", {
                "successRate": round(success_rate, 2),
                "threshold": portal.min_success_rate,
            })

        self.logger.info("Scraping workflow completed", {
            "propertiesCount": len(properties),
            "successRate": round(success_rate, 2),
        })
        return properties

    async def _navigate_to_listing(self, session, rate: RateController):
        portal = self.settings.portal
        waited = await rate.wait()
        if waited:
            self.logger.rate_limit_wait(waited, rate.current_delay)
        await session.sleep(portal.pre_listing_pause)

        self.logger.info(f"Navigating to projects page: {portal.projects_url}")
        await session.navigate(portal.projects_url, timeout=portal.navigation_timeout)

    async def _step(self, name: str, awaitable):
        """Await one pipeline step and log its timing."""
        self.logger.set_context(step=name)
        started = time.monotonic()
        try:
            result = await awaitable
        except Exception:
            self.logger.step_completed(name, (time.monotonic() - started) * 1000, False)
            raise
        finally:
            self.logger.clear_context()
        self.logger.step_completed(name, (time.monotonic() - started) * 1000, True)
        return result

    async def _browser_info(self, session) -> Dict[str, Any]:
        try:
            info = await session.evaluate(NAVIGATOR_INFO)
        except Exception as e:
            self.logger.debug("Could not read navigator info", {"error": str(e)})
            info = None
        if info:
            return info
        browser = self.settings.browser
        return {
            "userAgent": browser.user_agent,
            "viewport": {"width": browser.viewport_width, "height": browser.viewport_height},
        }

    def _success_record(self, properties: List[PropertyRecord], browser_info: Dict[str, Any]) -> Dict[str, Any]:
        return {
            "sessionId": self.session_id,
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "success": True,
            "scrapeMode": self.config.scrape_mode,
            "configuration": {
                "filtersApplied": dict(self.config.filters),
                "maxResults": self.config.max_results,
                "enableStealth": self.config.enable_stealth,
                "approach": APPROACH,
            },
            "summary": {
                "totalProperties": len(properties),
                "successRate": round(self.metrics.success_rate(), 2),
                "durationMs": self.metrics.duration_ms(),
            },
            "properties": [p.to_dict() for p in properties],
            "metrics": self.metrics.summary(),
            "metadata": {
                "version": SCRAPER_VERSION,
                "portalUrl": self.settings.portal.login_url,
                "userAgent": browser_info.get("userAgent"),
                "viewport": browser_info.get("viewport"),
                "approach": APPROACH,
            },
        }

    def _failure_record(self, error: BaseException) -> Dict[str, Any]:
        return {
            "sessionId": self.session_id,
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "success": False,
            "error": {
                "message": str(error),
                "trace": "".join(traceback.format_exception(type(error), error, error.__traceback__)),
                "type": type(error).__name__,
            },
            "metrics": self.metrics.summary(),
        }


async def scrape_sobha(
    config: ScrapeConfig,
    settings: SobhaSettings = None,
    session_factory: Callable = BrowserSession,
) -> Dict[str, Any]:
    """
    Convenience function to run one scraping session.

    Returns:
        Output record
    """
    crawler = SobhaCrawler(config, settings=settings, session_factory=session_factory)
    return await crawler.run()


async def scrape_many(
    configs: List[ScrapeConfig],
    settings: SobhaSettings = None,
    session_factory: Callable = BrowserSession,
    parallel_requests: Optional[int] = None,
) -> List[Dict[str, Any]]:
    """
    Run several independent sessions, at most parallel_requests at a time.

    Args:
        configs: One validated config per session
        settings: Shared read-only settings
        session_factory: Browser session factory
        parallel_requests: Concurrency bound (defaults to the first
            config's parallel_requests)

    Returns:
        Output records in the same order as configs
    """
    if not configs:
        return []

    settings = settings or SobhaSettings.from_env()
    limit = parallel_requests or configs[0].parallel_requests
    semaphore = asyncio.Semaphore(max(1, limit))

    async def run_one(config: ScrapeConfig) -> Dict[str, Any]:
        async with semaphore:
            return await scrape_sobha(config, settings=settings, session_factory=session_factory)

    return await asyncio.gather(*(run_one(config) for config in configs))
