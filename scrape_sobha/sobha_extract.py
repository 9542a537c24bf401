"""
Sobha Portal Scraper - Row Extractor

Turns the rendered listing table into PropertyRecord objects.

The parsing half (extract_rows) is a pure function over page HTML, parsed
with BeautifulSoup, so it can be exercised against saved fixtures. The
RowExtractor wrapper reads the HTML from the live session and never
raises.

Column layout (first seven cells):
    0 project category | 1 project | 2 unit type | 3 floor |
    4 unit no | 5 total unit area | 6 starting price

Author: sobha-scraper
"""

import re
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

from bs4 import BeautifulSoup

from .sobha_config import PortalSettings
from .sobha_errors import RowParseError
from .sobha_logger import SobhaScraperLogger
from runner.logging_setup import get_logger

module_logger = get_logger("sobha_extract")

NON_NUMERIC = re.compile(r"[^\d.]")
NON_DIGIT = re.compile(r"\D")


@dataclass(frozen=True)
class PropertyRecord:
    """One unit row from the listing table."""

    row_index: int
    project_category: str
    project: str
    unit_type: str
    floor: str
    unit_no: str
    total_unit_area: str
    starting_price: str
    record_id: str = ""
    floor_number: Optional[int] = None
    area: Optional[float] = None
    price: Optional[float] = None
    raw_cells: Tuple[str, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "rowIndex": self.row_index,
            "projectCategory": self.project_category,
            "project": self.project,
            "unitType": self.unit_type,
            "floor": self.floor,
            "unitNo": self.unit_no,
            "totalUnitArea": self.total_unit_area,
            "startingPrice": self.starting_price,
            "recordId": self.record_id,
            "floorNumber": self.floor_number,
            "area": self.area,
            "price": self.price,
            "rawData": list(self.raw_cells),
        }


def parse_number(text: str) -> Optional[float]:
    """
    Parse a display number, dropping everything but digits and '.'.

    Examples:
        "1,234,567 AED" -> 1234567.0
        "850.5 sq.ft"   -> 850.5 (the trailing '.' of "sq.ft" is dropped too)
        ""              -> None
    """
    cleaned = NON_NUMERIC.sub("", text or "").rstrip(".")
    if not cleaned:
        return None
    try:
        return float(cleaned)
    except ValueError:
        return None


def parse_int(text: str) -> Optional[int]:
    digits = NON_DIGIT.sub("", text or "")
    return int(digits) if digits else None


def _clean_text(text: str) -> str:
    return " ".join(text.split())


def cell_text(cell, truncate_selector: str = ".slds-truncate") -> str:
    """Display text of a cell, preferring a nested truncate element's title."""
    truncate = cell.select_one(truncate_selector)
    if truncate is not None:
        title = truncate.get("title")
        if title:
            return _clean_text(title)
        return _clean_text(truncate.get_text(" "))
    return _clean_text(cell.get_text(" "))


def _find_rows(soup: BeautifulSoup, portal: PortalSettings) -> list:
    """Rows of the first candidate tbody holding at least one full-width row."""
    for tbody_selector in portal.tbody_selectors:
        for tbody in soup.select(tbody_selector):
            for row_selector in portal.row_selectors:
                rows = tbody.select(row_selector)
                if not rows:
                    continue
                if any(len(row.select("td")) >= portal.min_cells for row in rows):
                    return rows
                break
    return []


def _parse_row(row, row_index: int, portal: PortalSettings) -> Optional[PropertyRecord]:
    cells = row.select("td")
    if len(cells) < portal.min_cells:
        return None

    try:
        texts = tuple(cell_text(cell, portal.truncate_selector) for cell in cells)
    except Exception as e:
        raise RowParseError(row_index, str(e)) from e

    record_id = ""
    for attribute in portal.record_id_attributes:
        if row.get(attribute):
            record_id = row.get(attribute)
            break
    else:
        if len(texts) > 7:
            record_id = texts[7]

    return PropertyRecord(
        row_index=row_index,
        project_category=texts[0],
        project=texts[1],
        unit_type=texts[2],
        floor=texts[3],
        unit_no=texts[4],
        total_unit_area=texts[5],
        starting_price=texts[6],
        record_id=record_id,
        floor_number=parse_int(texts[3]),
        area=parse_number(texts[5]),
        price=parse_number(texts[6]),
        raw_cells=texts,
    )


def extract_rows(html: str, portal: PortalSettings, max_results: int, logger=None) -> List[PropertyRecord]:
    """
    Extract property records from listing page HTML.

    Rows with fewer than portal.min_cells cells, and rows with neither a
    unit number nor a project, are dropped. A row that fails to parse is
    logged and skipped.

    Args:
        html: Rendered page (or table) HTML
        portal: Portal settings holding the selector fallbacks
        max_results: Maximum number of records returned
        logger: Session logger for skipped rows (console logger if None)

    Returns:
        Records in table order, at most max_results long
    """
    log = logger or module_logger
    soup = BeautifulSoup(html or "", "html.parser")
    rows = _find_rows(soup, portal)

    records: List[PropertyRecord] = []
    for index, row in enumerate(rows, start=1):
        if len(records) >= max_results:
            break
        try:
            record = _parse_row(row, index, portal)
        except RowParseError as e:
            log.warning(f"Skipping unparseable row: {e}")
            continue

        if record is None:
            continue
        if not record.unit_no and not record.project:
            log.debug(f"Row {index}: no unit number or project, dropped")
            continue
        records.append(record)

    return records


class RowExtractor:
    """Reads the live page and extracts records; never raises."""

    def __init__(self, session, portal: PortalSettings, logger: SobhaScraperLogger):
        self.session = session
        self.portal = portal
        self.logger = logger

    async def extract(self, max_results: int) -> List[PropertyRecord]:
        self.logger.info("Extracting property data")
        try:
            html = await self.session.content()
            records = extract_rows(html, self.portal, max_results, logger=self.logger)
        except Exception as e:
            self.logger.error("Failed to extract property data", error=e)
            return []

        self.logger.info(f"Extracted {len(records)} properties")
        if records:
            self.logger.debug("Sample property data", {"first": records[0].to_dict()})
        return records
