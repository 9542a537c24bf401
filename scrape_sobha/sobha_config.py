"""
Sobha Portal Scraper - Configuration Management

Two layers of configuration:
- ScrapeConfig: validated, immutable run input (credentials, limits, timing knobs)
- SobhaSettings: portal/browser constants with environment overrides

Both are passed by construction into every component; nothing reads
module-level state at runtime.

Author: sobha-scraper
"""

import os
import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Tuple

from .sobha_errors import ValidationError
from .sobha_security import mask_sensitive, sanitize_input


EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")

SCRAPE_MODES = ("bulk", "filtered", "specific")


@dataclass(frozen=True)
class ScrapeConfig:
    """Validated run input. Build it with validate_input()."""

    email: str
    password: str
    scrape_mode: str = "bulk"
    filters: Dict[str, str] = field(default_factory=dict)
    specific_unit: Optional[str] = None
    max_results: int = 1000
    request_delay: float = 2.0  # seconds
    retry_attempts: int = 3
    enable_stealth: bool = True
    download_documents: bool = False
    parallel_requests: int = 2

    def to_log_dict(self) -> Dict[str, Any]:
        """Configuration safe for logs and output records (no password)."""
        return {
            "email": mask_sensitive(self.email),
            "scrapeMode": self.scrape_mode,
            "filters": dict(self.filters),
            "specificUnit": self.specific_unit,
            "maxResults": self.max_results,
            "requestDelay": self.request_delay,
            "retryAttempts": self.retry_attempts,
            "enableStealth": self.enable_stealth,
            "downloadDocuments": self.download_documents,
            "parallelRequests": self.parallel_requests,
        }


def _is_number(value) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _is_int(value) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def validate_input(raw: Mapping[str, Any]) -> ScrapeConfig:
    """
    Validate raw run input and build an immutable ScrapeConfig.

    Every violated constraint is collected before failing, so callers see
    the full list at once.

    Args:
        raw: Input mapping using the dataset keys (email, password,
            scrapeMode, filters, specificUnit, maxResults, requestDelay,
            retryAttempts, enableStealth, downloadDocuments, parallelRequests)

    Returns:
        Validated ScrapeConfig

    Raises:
        ValidationError: If any constraint is violated
    """
    if raw is None:
        raw = {}
    if not isinstance(raw, Mapping):
        raise ValidationError([f"Input must be an object, got {type(raw).__name__}"])
    errors: List[str] = []

    email = raw.get("email")
    if not email or not isinstance(email, str):
        errors.append("Email is required and must be a string")
    elif not EMAIL_PATTERN.match(email.strip()):
        errors.append("Email must be a valid email address")

    password = raw.get("password")
    if not password or not isinstance(password, str):
        errors.append("Password is required and must be a non-empty string")

    scrape_mode = raw.get("scrapeMode")
    if scrape_mode is not None and scrape_mode not in SCRAPE_MODES:
        errors.append(f"scrapeMode must be one of {', '.join(SCRAPE_MODES)}")

    max_results = raw.get("maxResults")
    if max_results is not None and (not _is_int(max_results) or not 1 <= max_results <= 10000):
        errors.append("maxResults must be an integer between 1 and 10000")

    request_delay = raw.get("requestDelay")
    if request_delay is not None and (not _is_number(request_delay) or not 0.5 <= request_delay <= 10):
        errors.append("requestDelay must be a number between 0.5 and 10")

    retry_attempts = raw.get("retryAttempts")
    if retry_attempts is not None and (not _is_int(retry_attempts) or not 1 <= retry_attempts <= 5):
        errors.append("retryAttempts must be an integer between 1 and 5")

    parallel_requests = raw.get("parallelRequests")
    if parallel_requests is not None and (not _is_int(parallel_requests) or parallel_requests < 1):
        errors.append("parallelRequests must be a positive integer")

    filters = raw.get("filters")
    if filters is not None and not isinstance(filters, Mapping):
        errors.append("filters must be an object")

    for flag in ("enableStealth", "downloadDocuments"):
        if raw.get(flag) is not None and not isinstance(raw.get(flag), bool):
            errors.append(f"{flag} must be a boolean")

    if errors:
        raise ValidationError(errors)

    return ScrapeConfig(
        email=sanitize_input(email.lower().strip()),
        password=password,
        scrape_mode=scrape_mode or "bulk",
        filters={str(k): str(v) for k, v in (filters or {}).items()},
        specific_unit=raw.get("specificUnit") or None,
        max_results=max_results if max_results is not None else 1000,
        request_delay=float(request_delay) if request_delay is not None else 2.0,
        retry_attempts=retry_attempts if retry_attempts is not None else 3,
        enable_stealth=raw.get("enableStealth") is not False,
        download_documents=bool(raw.get("downloadDocuments", False)),
        parallel_requests=parallel_requests if parallel_requests is not None else 2,
    )


@dataclass
class PortalSettings:
    """Portal endpoints, timeouts and the fallback selector lists."""

    login_url: str = "https://www.sobhapartnerportal.com/partnerportal/s/"
    projects_path: str = "/partnerportal/s/sobha-project"

    # Playwright timeouts (ms)
    navigation_timeout: int = 60000
    login_field_timeout: int = 30000
    submit_timeout: int = 10000
    post_login_timeout: int = 30000

    # Delays (seconds)
    content_wait: float = 10.0
    pre_listing_pause: float = 2.0
    min_human_pause: float = 1.0
    max_human_pause: float = 3.0
    min_auth_retry_delay: float = 3.0
    max_auth_retry_delay: float = 7.0
    max_delay: float = 10.0

    # Per-character typing delay (ms)
    min_typing_delay: int = 100
    max_typing_delay: int = 150

    # Login form
    email_selector: str = 'input[placeholder="name@example.com"], input[type="email"], input[name*="email"]'
    password_selector: str = 'input[type="password"], input[placeholder*="password" i]'
    submit_selector: str = 'input[type="submit"], button[type="submit"]'
    logged_in_markers: Tuple[str, ...] = (
        "[c-brokerportalhomepage_brokerportalhomepage]",
        "c-brokerportalhomepage",
        "a[href*='/partnerportal/s/sobha-project']",
    )
    auth_error_keywords: Tuple[str, ...] = ("invalid", "incorrect", "error")

    # Promotional modal
    modal_initial_wait: float = 3.0
    modal_selector_timeout: int = 3000
    modal_click_pause: float = 2.0
    modal_settle: float = 5.0
    modal_close_selectors: Tuple[str, ...] = (
        '[c-brokerportalhomepage_brokerportalhomepage] button:has-text("×")',
        '[c-brokerportalhomepage_brokerportalhomepage] .slds-modal button:has-text("×")',
        '[c-brokerportalhomepage_brokerportalhomepage] button[aria-label*="close" i]',
        '[c-brokerportalhomepage_brokerportalhomepage] button[title*="close" i]',
        '.slds-modal.slds-fade-in-open.slds-modal_full button:has-text("×")',
        '.slds-modal.slds-fade-in-open.slds-modal_full button[aria-label*="close" i]',
        '.slds-modal.slds-fade-in-open.slds-modal_full .slds-modal__close',
        '[c-brokerportalhomepage_brokerportalhomepage] .slds-button_icon',
        '[c-brokerportalhomepage_brokerportalhomepage] .slds-button_icon-inverse',
        '[c-brokerportalhomepage_brokerportalhomepage] [data-key="close"]',
        '[role="dialog"] button:has-text("×")',
        '.slds-modal button:has-text("×")',
        'button[aria-label*="close" i]',
        'button[title*="close" i]',
        '.slds-modal__close',
    )
    modal_keywords: Tuple[str, ...] = ("filter", "properties", "apply", "submit", "search")
    blur_position: Tuple[int, int] = (10, 10)

    # Lightning rendering
    root_component_selector: str = 'c-brokerportalsohbaprojects, [class*="brokerportalsohbaprojects"]'
    framework_element_threshold: int = 50
    min_interactive_elements: int = 5
    render_keywords: Tuple[str, ...] = ("Filter", "Properties", "Search")
    mount_timeout: float = 30.0
    populate_timeout: float = 45.0
    render_poll_interval: float = 1.0
    render_settle_delay: float = 5.0
    render_fallback_delay: float = 10.0

    # Listing table
    reveal_selectors: Tuple[str, ...] = (
        'a:has-text("Filter Properties")',
        'button:has-text("Filter Properties")',
        'a[data-element="general-enquiry"]',
        '[c-brokerportalsohbaprojectfilter_brokerportalsohbaprojectfilter] a.btn',
        '[c-brokerportalsohbaprojectfilter_brokerportalsohbaprojectfilter] button',
        'lightning-button:has-text("Filter")',
    )
    reveal_pause: float = 3.0
    reveal_timeout: float = 15.0
    reveal_poll_interval: float = 1.0
    table_container_selector: str = '[id^="modal-content-id-"] table, table.customFilterTable, table'
    table_container_timeout: int = 15000
    error_overlay_selector: str = "#auraError, .auraErrorBox, .auraMsgBox"
    error_overlay_reload_selector: str = "#auraErrorReload, #auraError a, .auraErrorBox a"
    transient_error_marker: str = "CSS Error"
    spinner_selector: str = "lightning-spinner, .slds-spinner_container"
    spinner_poll_interval: float = 2.0
    spinner_max_attempts: int = 30
    row_poll_interval: float = 3.0
    row_max_rounds: int = 10

    # Row extraction (broadest fallback first match wins)
    tbody_selectors: Tuple[str, ...] = (
        '[id^="modal-content-id-"] tbody',
        "table.customFilterTable tbody",
        "tbody",
    )
    row_selectors: Tuple[str, ...] = ("tr.slds-hint-parent", "tr")
    min_cells: int = 7
    truncate_selector: str = ".slds-truncate"
    record_id_attributes: Tuple[str, ...] = ("data-row-key-value", "data-record-id", "data-id")

    # Quality threshold (percent)
    min_success_rate: float = 95.0

    @property
    def projects_url(self) -> str:
        """Listing page URL derived from the login URL's origin."""
        base = self.login_url.split("/partnerportal")[0]
        return f"{base}{self.projects_path}"


@dataclass
class BrowserSettings:
    """Playwright browser configuration."""

    browser_type: str = "chromium"
    headless: bool = True
    browser_args: List[str] = field(default_factory=lambda: [
        "--disable-gpu",
        "--no-sandbox",
        "--disable-dev-shm-usage",
        "--disable-web-security",
        "--disable-features=VizDisplayCompositor",
        "--disable-background-timer-throttling",
        "--disable-backgrounding-occluded-windows",
        "--disable-renderer-backgrounding",
        "--no-first-run",
        "--no-default-browser-check",
        "--disable-blink-features=AutomationControlled",
    ])

    viewport_width: int = 1366
    viewport_height: int = 768
    viewport_jitter: int = 100

    user_agent: str = (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
    )
    locale: str = "en-US"
    timezone: str = "Asia/Dubai"

    # Default timeout for actions (ms)
    default_timeout: int = 30000

    screenshot_dir: str = "logs/screenshots"


@dataclass
class SobhaSettings:
    """
    Master settings for the Sobha portal scraper.

    Combines portal and browser sub-configurations with the output and
    logging locations.
    """

    portal: PortalSettings = field(default_factory=PortalSettings)
    browser: BrowserSettings = field(default_factory=BrowserSettings)

    log_dir: str = "logs"
    log_level: str = "INFO"

    dataset_dir: str = "data/datasets"
    dataset_name: str = "sobha_properties"

    @classmethod
    def from_env(cls) -> "SobhaSettings":
        """
        Create settings from environment variables.

        Returns:
            SobhaSettings instance
        """
        settings = cls()

        if os.getenv("SOBHA_LOGIN_URL"):
            settings.portal.login_url = os.getenv("SOBHA_LOGIN_URL")

        if os.getenv("SOBHA_HEADLESS"):
            settings.browser.headless = os.getenv("SOBHA_HEADLESS").lower() == "true"

        if os.getenv("SOBHA_SCREENSHOT_DIR"):
            settings.browser.screenshot_dir = os.getenv("SOBHA_SCREENSHOT_DIR")

        if os.getenv("SOBHA_DATASET_DIR"):
            settings.dataset_dir = os.getenv("SOBHA_DATASET_DIR")

        if os.getenv("LOG_DIR"):
            settings.log_dir = os.getenv("LOG_DIR")

        if os.getenv("LOG_LEVEL"):
            settings.log_level = os.getenv("LOG_LEVEL").upper()

        return settings

    def summary(self) -> Dict[str, Any]:
        """Key settings for logging."""
        return {
            "portal": {
                "login_url": self.portal.login_url,
                "projects_url": self.portal.projects_url,
                "navigation_timeout_ms": self.portal.navigation_timeout,
            },
            "browser": {
                "type": self.browser.browser_type,
                "headless": self.browser.headless,
                "viewport": f"{self.browser.viewport_width}x{self.browser.viewport_height}",
            },
            "output": {
                "dataset_dir": self.dataset_dir,
                "dataset_name": self.dataset_name,
            },
        }


def load_input_from_env() -> Dict[str, Any]:
    """Read credentials from SOBHA_EMAIL / SOBHA_PASSWORD if set."""
    raw: Dict[str, Any] = {}
    if os.getenv("SOBHA_EMAIL"):
        raw["email"] = os.getenv("SOBHA_EMAIL")
    if os.getenv("SOBHA_PASSWORD"):
        raw["password"] = os.getenv("SOBHA_PASSWORD")
    return raw
