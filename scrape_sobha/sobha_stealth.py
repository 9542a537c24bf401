"""
Sobha Portal Scraper - Stealth & Human-Like Behavior

Anti-detection measures applied to the browser session before login.

Features:
- Viewport jitter around the configured base size
- Realistic request headers matching the user agent
- playwright-stealth plus an init script masking automation markers
- Human-like pauses and per-character typing delays

All randomness goes through an optional rng so tests can pin it.

Author: sobha-scraper
"""

import random
from dataclasses import dataclass
from typing import Dict

from .sobha_config import BrowserSettings


@dataclass(frozen=True)
class StealthProfile:
    """Per-session fingerprint choices."""

    viewport_width: int
    viewport_height: int
    user_agent: str
    headers: Dict[str, str]

    @property
    def viewport(self) -> Dict[str, int]:
        return {"width": self.viewport_width, "height": self.viewport_height}


def build_headers(user_agent: str, locale: str = "en-US") -> Dict[str, str]:
    """Generate realistic HTTP headers for the given user agent."""
    return {
        "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,image/webp,*/*;q=0.8",
        "Accept-Language": f"{locale},{locale.split('-')[0]};q=0.9",
        "Accept-Encoding": "gzip, deflate, br",
        "DNT": "1",
        "Connection": "keep-alive",
        "Upgrade-Insecure-Requests": "1",
        "User-Agent": user_agent,
    }


def build_stealth_profile(browser: BrowserSettings, rng: random.Random = None) -> StealthProfile:
    """
    Pick the viewport and headers for one session.

    Args:
        browser: Browser settings holding the base viewport and jitter
        rng: Random source (injectable for tests)

    Returns:
        StealthProfile with a viewport within +/- viewport_jitter of the base
    """
    rng = rng or random
    spread = browser.viewport_jitter
    width = browser.viewport_width + rng.randint(-spread, spread)
    height = browser.viewport_height + rng.randint(-spread, spread)

    return StealthProfile(
        viewport_width=width,
        viewport_height=height,
        user_agent=browser.user_agent,
        headers=build_headers(browser.user_agent, browser.locale),
    )


async def apply_stealth(session, profile: StealthProfile):
    """
    Apply stealth measures to a live browser session.

    Args:
        session: Browser session (see sobha_browser.BrowserSession)
        profile: Fingerprint choices for this session
    """
    await session.set_viewport(profile.viewport_width, profile.viewport_height)
    await session.set_headers(profile.headers)
    await session.apply_stealth()


async def human_pause(session, min_seconds: float, max_seconds: float, rng: random.Random = None) -> float:
    """
    Pause for a random human-like interval.

    Returns:
        Seconds paused
    """
    rng = rng or random
    seconds = rng.uniform(min_seconds, max_seconds)
    await session.sleep(seconds)
    return seconds


def typing_delay_ms(min_ms: int, max_ms: int, rng: random.Random = None) -> float:
    """Per-character typing delay in milliseconds."""
    rng = rng or random
    return rng.uniform(min_ms, max_ms)
