"""
Pytest configuration and shared fixtures for scraper tests.

Provides a scripted browser session standing in for Playwright, settings
pointing at temporary directories, and a quiet structured logger.
"""

import asyncio
import random

import pytest

from scrape_sobha.sobha_config import SobhaSettings, validate_input
from scrape_sobha.sobha_errors import NavigationError
from scrape_sobha.sobha_logger import SobhaScraperLogger
from scrape_sobha.sobha_metrics import MetricsRecorder


# Test markers
def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "unit: marks pure unit tests (no browser session)"
    )
    config.addinivalue_line(
        "markers", "pipeline: marks tests driving components through a scripted browser session"
    )
    config.addinivalue_line(
        "markers", "cli: marks command line entry point tests"
    )


class FakeBrowserSession:
    """
    Scripted stand-in for sobha_browser.BrowserSession.

    Behaviour is configured through plain attributes:
        visible: selectors reported visible (and attached)
        attached: selectors reported attached but not visible
        scripts: in-page script -> value, list of values (consumed in
            order, last one repeats) or callable(arg)
        function_results: wait_for_function results, same forms as scripts
        navigate_failures: number of upcoming navigate() calls that fail
        on_click: selector -> callable(session) run after a click
        html: returned by content()
        redirects: url -> url the page lands on after navigate()
        visible_after: selector -> number of visibility checks that report
            it hidden before it shows up

    Every call is appended to `actions` as (method, *args); sleeps are
    recorded in `sleeps` and never block.
    """

    def __init__(self, url: str = "about:blank"):
        self.url = url
        self.visible = set()
        self.attached = set()
        self.scripts = {}
        self.function_results = []
        self.navigate_failures = 0
        self.on_click = {}
        self.html = ""
        self.redirects = {}
        self.visible_after = {}

        self.actions = []
        self.sleeps = []
        self.visibility_checks = []
        self.screenshots = []
        self.closed = False

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        self.closed = True

    def _next(self, value, arg=None):
        if callable(value):
            return value(arg)
        if isinstance(value, list):
            if not value:
                return None
            return value.pop(0) if len(value) > 1 else value[0]
        return value

    async def content(self):
        self.actions.append(("content",))
        return self.html

    async def navigate(self, url, timeout, wait_until="domcontentloaded"):
        self.actions.append(("navigate", url))
        if self.navigate_failures > 0:
            self.navigate_failures -= 1
            raise NavigationError(url, "net::ERR_CONNECTION_RESET")
        self.url = self.redirects.get(url, url)

    async def wait_for(self, selector, timeout, state="visible"):
        self.actions.append(("wait_for", selector, state))
        if selector in self.visible:
            return True
        return state == "attached" and selector in self.attached

    async def wait_for_function(self, script, arg=None, timeout=None):
        self.actions.append(("wait_for_function", arg))
        return bool(self._next(self.function_results, arg))

    async def is_visible(self, selector):
        self.visibility_checks.append(selector)
        if selector in self.visible_after:
            return self.visibility_checks.count(selector) > self.visible_after[selector]
        return selector in self.visible

    async def evaluate(self, script, arg=None):
        self.actions.append(("evaluate", script))
        value = self.scripts.get(script)
        if isinstance(value, Exception):
            raise value
        return self._next(value, arg)

    async def sleep(self, seconds):
        self.sleeps.append(seconds)
        await asyncio.sleep(0)

    async def fill(self, selector, value, timeout=None):
        self.actions.append(("fill", selector, value))

    async def type(self, selector, text, delay_ms=0, timeout=None):
        self.actions.append(("type", selector, text, delay_ms))

    async def click(self, selector, timeout=None):
        self.actions.append(("click", selector))
        callback = self.on_click.get(selector)
        if callback:
            callback(self)

    async def click_at(self, position):
        self.actions.append(("click_at", tuple(position)))

    async def press(self, key):
        self.actions.append(("press", key))

    async def set_viewport(self, width, height):
        self.actions.append(("set_viewport", width, height))

    async def set_headers(self, headers):
        self.actions.append(("set_headers", dict(headers)))

    async def apply_stealth(self):
        self.actions.append(("apply_stealth",))

    async def screenshot(self, name):
        path = f"screenshots/{name}.png"
        self.screenshots.append(path)
        return path

    def calls(self, method):
        """Recorded actions for one method name."""
        return [action for action in self.actions if action[0] == method]


@pytest.fixture
def fake_session():
    """Provide an empty scripted browser session."""
    return FakeBrowserSession()


@pytest.fixture
def settings(tmp_path):
    """Default settings writing logs, screenshots and datasets under tmp_path."""
    settings = SobhaSettings()
    settings.log_dir = str(tmp_path / "logs")
    settings.dataset_dir = str(tmp_path / "datasets")
    settings.browser.screenshot_dir = str(tmp_path / "screenshots")
    return settings


@pytest.fixture
def portal(settings):
    return settings.portal


@pytest.fixture
def scrape_config():
    """A valid run input with the fastest allowed pacing."""
    return validate_input({
        "email": "Agent@Example.com",
        "password": "s3cret-pass",
        "maxResults": 50,
        "requestDelay": 0.5,
        "retryAttempts": 3,
    })


@pytest.fixture
def scraper_logger(tmp_path):
    """Structured logger writing to tmp_path without console output."""
    logger = SobhaScraperLogger("testsession00001", log_dir=str(tmp_path / "logs"), console=False)
    yield logger
    logger.close()


@pytest.fixture
def metrics():
    return MetricsRecorder("testsession00001")


@pytest.fixture
def rng():
    """Seeded random source for reproducible stealth and timing choices."""
    return random.Random(1234)


def build_listing_html(rows, wrapper="modal"):
    """
    Build listing page HTML around table rows.

    Args:
        rows: List of (cells, attrs) tuples; cells are strings, attrs a dict
        wrapper: "modal" (modal content container), "custom" (custom filter
            table) or "plain" (bare table)
    """
    body = []
    for cells, attrs in rows:
        attr_text = " ".join(f'{key}="{value}"' for key, value in attrs.items())
        tds = "".join(
            f'<td data-label="c{i}"><div class="slds-truncate" title="{cell}">{cell}</div></td>'
            for i, cell in enumerate(cells)
        )
        body.append(f'<tr class="slds-hint-parent" {attr_text}>{tds}</tr>')

    table = f"<table><tbody>{''.join(body)}</tbody></table>"
    if wrapper == "modal":
        table = f'<div id="modal-content-id-1">{table}</div>'
    elif wrapper == "custom":
        table = f'<table class="customFilterTable"><tbody>{"".join(body)}</tbody></table>'

    return f"<html><body><div class='slds-page'>{table}</div></body></html>"


def unit_row(index, **overrides):
    """Cells for one realistic listing row."""
    cells = {
        "category": "Residential",
        "project": "Sobha Hartland",
        "unit_type": "2 BR",
        "floor": str(10 + index),
        "unit_no": f"A-{1000 + index}",
        "area": "1,250.75 sq.ft",
        "price": f"{2000000 + index * 1000:,} AED",
    }
    cells.update(overrides)
    return [
        cells["category"], cells["project"], cells["unit_type"], cells["floor"],
        cells["unit_no"], cells["area"], cells["price"],
    ]


@pytest.fixture
def listing_html():
    """Page HTML holding 20 well-formed unit rows in the modal table."""
    return build_listing_html([(unit_row(i), {"data-row-key-value": f"a0X{i:04d}"}) for i in range(20)])
