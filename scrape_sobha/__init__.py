"""
Sobha Partner Portal Scraper Module

Playwright-based scraper for the unit listings of the Sobha Partner Portal
(Salesforce Lightning community site).

Components:
- sobha_config.py: Run input validation and portal/browser settings
- sobha_browser.py: Playwright browser session wrapper
- sobha_stealth.py: Anti-detection and human-like timing
- sobha_auth.py: Login with retries
- sobha_modal.py: Post-login modal dismissal
- sobha_render.py: Lightning render waits
- sobha_table.py: Listing table opener
- sobha_extract.py: Row extraction (BeautifulSoup)
- sobha_crawl.py: Orchestration layer
- sobha_logger.py: Structured JSON logging

Author: sobha-scraper
"""

__version__ = '1.0.0'
__author__ = 'sobha-scraper'

from .sobha_config import ScrapeConfig, SobhaSettings, validate_input
from .sobha_crawl import SobhaCrawler, scrape_many, scrape_sobha
from .sobha_errors import SobhaScraperError, ValidationError
from .sobha_extract import PropertyRecord, extract_rows
from .sobha_logger import SobhaScraperLogger

__all__ = [
    'ScrapeConfig',
    'SobhaSettings',
    'validate_input',
    'SobhaCrawler',
    'scrape_many',
    'scrape_sobha',
    'SobhaScraperError',
    'ValidationError',
    'PropertyRecord',
    'extract_rows',
    'SobhaScraperLogger',
]
