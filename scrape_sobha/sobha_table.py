"""
Table opener: reveals the unit listing table and waits for its rows.

Steps:
1. Click the "Filter Properties" reveal control once one of the ordered
   selector fallbacks becomes visible
2. Wait for the table container to attach
3. Recover once from a transient Lightning "CSS Error" overlay
4. Wait for the loading spinner to go away (non-fatal if it never does)
5. Wait for at least one table row
6. Verify, with a diagnostic screenshot when nothing loaded
"""

from dataclasses import dataclass
from typing import Dict, Optional

from .sobha_config import PortalSettings
from .sobha_errors import ExtractionError
from .sobha_logger import SobhaScraperLogger
from .sobha_scripts import ERROR_OVERLAY_TEXT, TABLE_STATUS
from .sobha_waits import poll_until


@dataclass(frozen=True)
class TableStatus:
    row_count: int
    first_row_cells: int
    reveal_attempts: int

    def to_dict(self) -> Dict[str, int]:
        return {
            "rowCount": self.row_count,
            "firstRowCells": self.first_row_cells,
            "revealAttempts": self.reveal_attempts,
        }


class TableOpener:
    """Opens the property listing table on the projects page."""

    def __init__(self, session, portal: PortalSettings, logger: SobhaScraperLogger):
        self.session = session
        self.portal = portal
        self.logger = logger

    async def open(self) -> TableStatus:
        """
        Reveal the table and wait until it holds rows.

        Returns:
            TableStatus from the final verification

        Raises:
            ExtractionError: If the reveal control is missing or no rows load
        """
        portal = self.portal
        self.logger.info("Opening property table")

        await self.session.sleep(portal.reveal_pause)
        await self._reveal()
        reveal_attempts = 1
        await self._wait_for_container()

        if await self._transient_error_present():
            self.logger.warning("Transient Lightning error overlay detected, reloading and retrying reveal")
            await self._dismiss_error_overlay()
            await self.session.sleep(portal.reveal_pause)
            await self._reveal()
            reveal_attempts += 1
            await self._wait_for_container()

        await self._wait_for_spinner()
        await self._wait_for_rows()

        raw = await self._table_status()
        status = TableStatus(
            row_count=int(raw.get("rowCount", 0)),
            first_row_cells=int(raw.get("firstRowCells", 0)),
            reveal_attempts=reveal_attempts,
        )
        self.logger.info("Table status", status.to_dict())

        if status.row_count == 0:
            path = await self.session.screenshot("table_no_rows")
            raise ExtractionError("no rows loaded", screenshot_path=path)

        return status

    async def _reveal(self) -> str:
        portal = self.portal

        async def visible_control():
            for selector in portal.reveal_selectors:
                if await self.session.is_visible(selector):
                    return selector
            return None

        result = await poll_until(
            visible_control,
            timeout=portal.reveal_timeout,
            interval=portal.reveal_poll_interval,
            description="reveal control",
            sleep=self.session.sleep,
            logger=self.logger,
        )
        if not result:
            path = await self.session.screenshot("reveal_control_missing")
            raise ExtractionError("Filter Properties control not found", screenshot_path=path)

        await self.session.click(result.value)
        self.logger.info(f"Reveal control clicked: {result.value}", {"checks": result.attempts})
        return result.value

    async def _wait_for_container(self):
        found = await self.session.wait_for(
            self.portal.table_container_selector,
            timeout=self.portal.table_container_timeout,
            state="attached",
        )
        if not found:
            self.logger.warning("Table container did not attach in time, continuing")

    async def _transient_error_present(self) -> bool:
        try:
            text: Optional[str] = await self.session.evaluate(ERROR_OVERLAY_TEXT, self.portal.error_overlay_selector)
        except Exception as e:
            self.logger.debug("Error overlay check failed", {"error": str(e)})
            return False
        return bool(text) and self.portal.transient_error_marker in text

    async def _dismiss_error_overlay(self):
        try:
            await self.session.click(self.portal.error_overlay_reload_selector)
        except Exception as e:
            self.logger.debug("Error overlay reload click failed", {"error": str(e)})

    async def _wait_for_spinner(self):
        portal = self.portal

        async def spinner_gone():
            return not await self.session.is_visible(portal.spinner_selector)

        result = await poll_until(
            spinner_gone,
            timeout=portal.spinner_poll_interval * portal.spinner_max_attempts,
            interval=portal.spinner_poll_interval,
            max_attempts=portal.spinner_max_attempts,
            description="spinner hidden",
            sleep=self.session.sleep,
            logger=self.logger,
        )
        if result:
            self.logger.info("Spinner cleared", {"attempts": result.attempts})
        else:
            self.logger.warning(f"Spinner still visible after {result.attempts} checks, continuing")

    async def _wait_for_rows(self):
        portal = self.portal

        async def has_rows():
            raw = await self._table_status()
            return raw if raw.get("rowCount", 0) > 0 else None

        result = await poll_until(
            has_rows,
            timeout=portal.row_poll_interval * portal.row_max_rounds,
            interval=portal.row_poll_interval,
            max_attempts=portal.row_max_rounds,
            description="table rows",
            sleep=self.session.sleep,
            logger=self.logger,
        )
        if not result:
            self.logger.warning(f"No table rows after {result.attempts} rounds")

    async def _table_status(self) -> Dict[str, int]:
        return await self.session.evaluate(TABLE_STATUS, list(self.portal.tbody_selectors)) or {}
