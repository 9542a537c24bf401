"""
Sobha Portal Scraper - Modal / Overlay Dismisser

Clears the promotional modal the portal shows after login. Best effort:
strategies run in order until one confirms, and nothing here raises.

Strategies:
- selector_close: prioritized close-control selectors, clicked and re-checked
- in_page_search: one in-page script clicking a keyword-matching control
- escape_and_blur: Escape twice, then a click on an empty corner

Author: sobha-scraper
"""

from dataclasses import dataclass
from typing import List, Optional, Tuple

from .sobha_config import PortalSettings
from .sobha_logger import SobhaScraperLogger
from .sobha_scripts import CLICK_KEYWORD_ELEMENT, COUNT_VISIBLE_DIALOGS


@dataclass(frozen=True)
class DismissalOutcome:
    """Which strategy confirmed (None if none did) and what was left open."""

    strategy: Optional[str]
    residual_dialogs: int

    @property
    def clear(self) -> bool:
        return self.residual_dialogs == 0


class SelectorCloseStrategy:
    """Click the first visible close control that actually disappears."""

    async def attempt(self, session, portal: PortalSettings, logger: SobhaScraperLogger) -> bool:
        for selector in portal.modal_close_selectors:
            if not await session.wait_for(selector, timeout=portal.modal_selector_timeout, state="visible"):
                continue

            logger.info(f"Found modal close control: {selector}")
            try:
                await session.click(selector)
            except Exception as e:
                logger.debug(f"Modal close click failed: {selector}", {"error": str(e)})
                continue

            await session.sleep(portal.modal_click_pause)
            if not await session.is_visible(selector):
                return True
        return False


class InPageSearchStrategy:
    """Click a visible control whose text or attributes mention a keyword."""

    async def attempt(self, session, portal: PortalSettings, logger: SobhaScraperLogger) -> bool:
        clicked = await session.evaluate(CLICK_KEYWORD_ELEMENT, list(portal.modal_keywords))
        if not clicked:
            return False
        logger.info(f"Clicked in-page control: {clicked}")
        await session.sleep(portal.modal_click_pause)
        return True


class EscapeAndBlurStrategy:
    """Press Escape twice and click outside any dialog."""

    async def attempt(self, session, portal: PortalSettings, logger: SobhaScraperLogger) -> bool:
        for _ in range(2):
            await session.press("Escape")
            await session.sleep(0.5)
        await session.click_at(portal.blur_position)
        await session.sleep(1)
        logger.info("Escape key and backdrop click completed")
        return True


DEFAULT_STRATEGIES: List[Tuple[str, object]] = [
    ("selector_close", SelectorCloseStrategy()),
    ("in_page_search", InPageSearchStrategy()),
    ("escape_and_blur", EscapeAndBlurStrategy()),
]


class ModalDismisser:
    """Runs the dismissal strategies in order, stopping at the first success."""

    def __init__(self, session, portal: PortalSettings, logger: SobhaScraperLogger, strategies=None):
        self.session = session
        self.portal = portal
        self.logger = logger
        self.strategies = strategies if strategies is not None else DEFAULT_STRATEGIES

    async def dismiss(self) -> DismissalOutcome:
        """
        Try to close the promotional modal, then count what is still open.

        Returns:
            DismissalOutcome; a non-zero residual count is logged, never raised
        """
        self.logger.info("Attempting to dismiss post-login modal")
        await self.session.sleep(self.portal.modal_initial_wait)

        confirmed = None
        for name, strategy in self.strategies:
            try:
                if await strategy.attempt(self.session, self.portal, self.logger):
                    confirmed = name
                    self.logger.info(f"Modal dismissal strategy succeeded: {name}")
                    break
            except Exception as e:
                self.logger.debug(f"Modal dismissal strategy failed: {name}", {"error": str(e)})

        residual = await self._count_dialogs()
        if residual == 0:
            self.logger.info("All modals dismissed")
        else:
            self.logger.warning(f"{residual} modal(s) may still be visible", {"residualDialogs": residual})

        return DismissalOutcome(strategy=confirmed, residual_dialogs=residual)

    async def _count_dialogs(self) -> int:
        try:
            return int(await self.session.evaluate(COUNT_VISIBLE_DIALOGS) or 0)
        except Exception as e:
            self.logger.debug("Dialog count failed", {"error": str(e)})
            return 0
