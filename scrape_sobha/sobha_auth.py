"""
Sobha Portal Scraper - Authenticator

Logs into the partner portal with bounded retries, human-like typing and
adaptive backoff between attempts.

Author: sobha-scraper
"""

import random
import time

from .sobha_config import BrowserSettings, PortalSettings, ScrapeConfig
from .sobha_errors import AuthenticationError
from .sobha_logger import SobhaScraperLogger
from .sobha_metrics import MetricsRecorder
from .sobha_rate_limit import RateController
from .sobha_scripts import LOGIN_ERROR_TEXT, POST_LOGIN_SIGNAL
from .sobha_security import mask_sensitive
from .sobha_stealth import apply_stealth, build_stealth_profile, human_pause, typing_delay_ms


class Authenticator:
    """Establishes an authenticated portal session."""

    def __init__(
        self,
        session,
        config: ScrapeConfig,
        portal: PortalSettings,
        browser: BrowserSettings,
        rate: RateController,
        metrics: MetricsRecorder,
        logger: SobhaScraperLogger,
        rng: random.Random = None,
    ):
        self.session = session
        self.config = config
        self.portal = portal
        self.browser = browser
        self.rate = rate
        self.metrics = metrics
        self.logger = logger
        self.rng = rng or random.Random()

    async def authenticate(self) -> bool:
        """
        Log in, retrying up to config.retry_attempts times.

        Every attempt is recorded in the metrics; failures grow the rate
        controller's delay and wait a randomized 3-7 s before retrying.

        Returns:
            True once logged in

        Raises:
            AuthenticationError: After the last failed attempt
        """
        max_attempts = self.config.retry_attempts
        last_error = None

        for attempt in range(1, max_attempts + 1):
            waited = await self.rate.wait()
            if waited:
                self.logger.rate_limit_wait(waited, self.rate.current_delay)

            self.logger.info(f"Authentication attempt {attempt}/{max_attempts}", {
                "email": mask_sensitive(self.config.email)
            })
            started = time.monotonic()

            try:
                await self._attempt()
            except Exception as e:
                duration_ms = (time.monotonic() - started) * 1000
                self.metrics.record_request(False, duration_ms, e)
                self.rate.on_failure()
                last_error = e

                self.logger.error(f"Authentication attempt {attempt} failed", error=e, context={
                    "attempt": attempt,
                    "duration": round(duration_ms),
                })

                if attempt < max_attempts:
                    delay = await human_pause(
                        self.session,
                        self.portal.min_auth_retry_delay,
                        self.portal.max_auth_retry_delay,
                        self.rng,
                    )
                    self.logger.info(f"Retrying authentication in {round(delay)} seconds")
                continue

            duration_ms = (time.monotonic() - started) * 1000
            self.metrics.record_request(True, duration_ms)
            self.rate.on_success()
            self.logger.info("Authentication successful", {
                "attempt": attempt,
                "duration": round(duration_ms),
                "currentUrl": self.session.url[:100],
            })
            return True

        raise AuthenticationError(
            f"Authentication failed after {max_attempts} attempts: {last_error}"
        ) from last_error

    async def _attempt(self):
        """One login attempt; raises on any failure."""
        portal = self.portal

        await self.session.navigate(portal.login_url, timeout=portal.navigation_timeout)

        if self.config.enable_stealth:
            profile = build_stealth_profile(self.browser, self.rng)
            await apply_stealth(self.session, profile)
            self.logger.debug("Stealth measures applied", {"viewport": profile.viewport})

        self.logger.info("Waiting for login form elements")
        for selector in (portal.email_selector, portal.password_selector):
            if not await self.session.wait_for(selector, timeout=portal.login_field_timeout):
                raise AuthenticationError(f"Login form field not found: {selector}")
        form_url = self.session.url or portal.login_url

        await self._type_field(portal.email_selector, self.config.email)
        await self._type_field(portal.password_selector, self.config.password)
        await human_pause(self.session, portal.min_human_pause, portal.max_human_pause, self.rng)

        self.logger.info("Clicking login button")
        if not await self.session.wait_for(portal.submit_selector, timeout=portal.submit_timeout):
            raise AuthenticationError("Login button not found")
        await self.session.click(portal.submit_selector)

        self.logger.info("Waiting for post-login navigation")
        signalled = await self.session.wait_for_function(
            POST_LOGIN_SIGNAL,
            {"loginUrl": form_url, "markers": list(portal.logged_in_markers)},
            timeout=portal.post_login_timeout,
        )
        if signalled:
            return

        error_text = await self._find_error_text()
        if error_text:
            raise AuthenticationError(f"Authentication failed: {error_text}")
        raise AuthenticationError(
            f"Timed out after {portal.post_login_timeout} ms waiting for post-login navigation"
        )

    async def _type_field(self, selector: str, value: str):
        await self.session.fill(selector, "")
        delay = typing_delay_ms(self.portal.min_typing_delay, self.portal.max_typing_delay, self.rng)
        await self.session.type(selector, value, delay_ms=delay)

    async def _find_error_text(self):
        """Visible login error text, if the page shows any."""
        try:
            return await self.session.evaluate(LOGIN_ERROR_TEXT, list(self.portal.auth_error_keywords))
        except Exception as e:
            self.logger.debug("Error message check failed", {"error": str(e)})
            return None
