"""
Sobha Portal Scraper - Error Taxonomy

Every failure the pipeline can surface derives from SobhaScraperError so the
orchestrator can turn it into a structured failure record.

Propagation:
- ValidationError, AuthenticationError, ExtractionError: abort the run
- NavigationError: retried inside the Authenticator, fatal elsewhere
- RenderTimeoutError: logged, pipeline continues degraded
- RowParseError: recovered per row, never escapes the Row Extractor
"""

from typing import List, Optional


class SobhaScraperError(Exception):
    """Base class for all scraper failures."""
    pass


class ValidationError(SobhaScraperError):
    """Raised when run input violates one or more constraints."""

    def __init__(self, violations: List[str]):
        self.violations = list(violations)
        super().__init__(f"Input validation failed: {', '.join(self.violations)}")


class NavigationError(SobhaScraperError):
    """Raised when a page or URL cannot be reached."""

    def __init__(self, url: str, message: str):
        self.url = url
        super().__init__(f"Navigation to {url} failed: {message}")


class AuthenticationError(SobhaScraperError):
    """Raised when credentials are rejected or no post-login signal appears."""
    pass


class RenderTimeoutError(SobhaScraperError):
    """Raised when the Lightning UI never reaches an interactive state."""
    pass


class ExtractionError(SobhaScraperError):
    """Raised when the listing table or its rows never materialize."""

    def __init__(self, message: str, screenshot_path: Optional[str] = None):
        self.screenshot_path = screenshot_path
        super().__init__(message)


class RowParseError(SobhaScraperError):
    """Raised for a single table row that cannot be mapped to a record."""

    def __init__(self, row_index: int, message: str):
        self.row_index = row_index
        super().__init__(f"Row {row_index}: {message}")
