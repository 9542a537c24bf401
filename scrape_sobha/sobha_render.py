"""
Lightning-render waiter for the project listing page.

The listing is a client-side Salesforce Lightning component: the DOM is
attached well after domcontentloaded, then populated asynchronously.
Waits happen in two phases (mounted, then populated) before a settle
delay and a final status read.
"""

from dataclasses import dataclass

from .sobha_config import PortalSettings
from .sobha_errors import RenderTimeoutError
from .sobha_logger import SobhaScraperLogger
from .sobha_scripts import LIGHTNING_MOUNTED, LIGHTNING_POPULATED, LIGHTNING_STATUS
from .sobha_waits import poll_until


@dataclass(frozen=True)
class RenderStatus:
    ready: bool
    has_component: bool = False
    button_count: int = 0
    has_filter_text: bool = False
    has_properties_text: bool = False
    content_length: int = 0

    def to_dict(self):
        return {
            "ready": self.ready,
            "hasComponent": self.has_component,
            "buttonCount": self.button_count,
            "hasFilterText": self.has_filter_text,
            "hasPropertiesText": self.has_properties_text,
            "contentLength": self.content_length,
        }


class LightningRenderWaiter:
    """Waits for the Lightning UI on the current page to become interactive."""

    def __init__(self, session, portal: PortalSettings, logger: SobhaScraperLogger):
        self.session = session
        self.portal = portal
        self.logger = logger

    async def wait_until_ready(self) -> RenderStatus:
        """
        Run both phases, settle, then verify.

        Returns:
            RenderStatus; ready=False when a phase timed out or the status
            read failed (non-fatal)

        Raises:
            RenderTimeoutError: If the page finished rendering with no buttons
        """
        portal = self.portal
        self.logger.info("Waiting for Lightning components to render")

        mounted = await self._poll(
            LIGHTNING_MOUNTED,
            {"rootSelector": portal.root_component_selector, "threshold": portal.framework_element_threshold},
            timeout=portal.mount_timeout,
            description="lightning mounted",
        )
        if not mounted:
            return await self._fallback("mount", reason=f"timed out after {portal.mount_timeout}s")

        populated = await self._poll(
            LIGHTNING_POPULATED,
            {"minInteractive": portal.min_interactive_elements, "keywords": list(portal.render_keywords)},
            timeout=portal.populate_timeout,
            description="lightning populated",
        )
        if not populated:
            return await self._fallback("populate", reason=f"timed out after {portal.populate_timeout}s")

        await self.session.sleep(portal.render_settle_delay)

        try:
            raw = await self.session.evaluate(LIGHTNING_STATUS, portal.root_component_selector) or {}
        except Exception as e:
            return await self._fallback("status", reason=f"status check failed: {e}")

        status = RenderStatus(
            ready=True,
            has_component=bool(raw.get("hasComponent")),
            button_count=int(raw.get("buttonCount", 0)),
            has_filter_text=bool(raw.get("hasFilterText")),
            has_properties_text=bool(raw.get("hasPropertiesText")),
            content_length=int(raw.get("contentLength", 0)),
        )
        self.logger.info("Lightning component rendering completed", status.to_dict())

        if status.button_count == 0:
            raise RenderTimeoutError(
                "No buttons found after Lightning rendering - components may not have loaded properly"
            )
        return status

    async def _poll(self, script, arg, timeout: float, description: str):
        async def check():
            return await self.session.evaluate(script, arg)

        return await poll_until(
            check,
            timeout=timeout,
            interval=self.portal.render_poll_interval,
            description=description,
            sleep=self.session.sleep,
            logger=self.logger,
        )

    async def _fallback(self, phase: str, reason: str) -> RenderStatus:
        self.logger.warning(f"Lightning {phase} phase {reason}, continuing", {
            "phase": phase,
            "fallbackDelay": self.portal.render_fallback_delay,
        })
        await self.session.sleep(self.portal.render_fallback_delay)
        return RenderStatus(ready=False)
