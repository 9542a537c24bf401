"""
Tests for row extraction over rendered listing HTML.
"""

import asyncio
import json

import pytest

from conftest import build_listing_html, unit_row
from scrape_sobha import sobha_extract
from scrape_sobha.sobha_extract import RowExtractor, extract_rows, parse_int, parse_number


class TestNumberParsing:

    @pytest.mark.unit
    @pytest.mark.parametrize("text,expected", [
        ("1,234,567 AED", 1234567.0),
        ("AED 2,150,000", 2150000.0),
        ("1,250.75 sq.ft", 1250.75),
        ("850", 850.0),
        ("", None),
        ("Price on request", None),
        ("1.2.3", None),
    ])
    def test_parse_number(self, text, expected):
        assert parse_number(text) == expected

    @pytest.mark.unit
    def test_parse_int(self):
        assert parse_int("12") == 12
        assert parse_int("Floor 7") == 7
        assert parse_int("G") is None


class TestExtractRows:

    @pytest.mark.unit
    def test_maps_columns(self, portal, listing_html):
        records = extract_rows(listing_html, portal, max_results=100)

        assert len(records) == 20
        first = records[0]
        assert first.row_index == 1
        assert first.project_category == "Residential"
        assert first.project == "Sobha Hartland"
        assert first.unit_type == "2 BR"
        assert first.floor == "10"
        assert first.unit_no == "A-1000"
        assert first.total_unit_area == "1,250.75 sq.ft"
        assert first.starting_price == "2,000,000 AED"
        assert first.record_id == "a0X0000"
        assert first.floor_number == 10
        assert first.area == 1250.75
        assert first.price == 2000000.0
        assert len(first.raw_cells) == 7

    @pytest.mark.unit
    def test_max_results_keeps_first_rows(self, portal, listing_html):
        records = extract_rows(listing_html, portal, max_results=5)
        assert [r.unit_no for r in records] == ["A-1000", "A-1001", "A-1002", "A-1003", "A-1004"]

    @pytest.mark.unit
    def test_short_rows_dropped(self, portal):
        html = build_listing_html([
            (unit_row(0), {}),
            (unit_row(1)[:6], {}),
            (unit_row(2), {}),
        ])
        records = extract_rows(html, portal, max_results=100)
        assert [r.unit_no for r in records] == ["A-1000", "A-1002"]
        assert [r.row_index for r in records] == [1, 3]

    @pytest.mark.unit
    def test_rows_without_unit_or_project_dropped(self, portal):
        html = build_listing_html([
            (unit_row(0, unit_no="", project=""), {}),
            (unit_row(1, unit_no=""), {}),
            (unit_row(2, project=""), {}),
        ])
        records = extract_rows(html, portal, max_results=100)

        assert len(records) == 2
        assert all(r.unit_no or r.project for r in records)

    @pytest.mark.unit
    def test_record_id_falls_back_to_eighth_cell(self, portal):
        html = build_listing_html([
            (unit_row(0) + ["a0X9999"], {}),
            (unit_row(1), {}),
        ])
        records = extract_rows(html, portal, max_results=100)
        assert records[0].record_id == "a0X9999"
        assert records[1].record_id == ""

    @pytest.mark.unit
    def test_truncate_title_preferred_over_text(self, portal):
        cells = "".join(
            f'<td><div class="slds-truncate" title="{value}">{value[:3]}...</div></td>'
            for value in unit_row(0)
        )
        html = f'<div id="modal-content-id-7"><table><tbody><tr>{cells}</tr></tbody></table></div>'

        records = extract_rows(html, portal, max_results=10)
        assert records[0].project == "Sobha Hartland"

    @pytest.mark.unit
    def test_plain_cells_without_truncate(self, portal):
        cells = "".join(f"<td>  {value}\n </td>" for value in unit_row(3))
        html = f"<table><tbody><tr>{cells}</tr></tbody></table>"

        records = extract_rows(html, portal, max_results=10)
        assert records[0].unit_no == "A-1003"
        assert records[0].project_category == "Residential"

    @pytest.mark.unit
    @pytest.mark.parametrize("wrapper", ["modal", "custom", "plain"])
    def test_container_fallbacks(self, portal, wrapper):
        html = build_listing_html([(unit_row(i), {}) for i in range(3)], wrapper=wrapper)
        assert len(extract_rows(html, portal, max_results=10)) == 3

    @pytest.mark.unit
    def test_narrow_tables_skipped_for_data_table(self, portal):
        nav_table = "<table><tbody><tr><td>Home</td><td>Projects</td></tr></tbody></table>"
        data = build_listing_html([(unit_row(i), {}) for i in range(2)], wrapper="plain")
        html = data.replace("<div class='slds-page'>", f"<div class='slds-page'>{nav_table}")

        records = extract_rows(html, portal, max_results=10)
        assert [r.unit_no for r in records] == ["A-1000", "A-1001"]

    @pytest.mark.unit
    def test_no_table(self, portal):
        assert extract_rows("<html><body><p>Loading...</p></body></html>", portal, 10) == []
        assert extract_rows("", portal, 10) == []

    @pytest.mark.unit
    def test_idempotent(self, portal, listing_html):
        assert extract_rows(listing_html, portal, 100) == extract_rows(listing_html, portal, 100)

    @pytest.mark.unit
    def test_to_dict_uses_output_keys(self, portal, listing_html):
        data = extract_rows(listing_html, portal, 1)[0].to_dict()
        assert data["unitNo"] == "A-1000"
        assert data["projectCategory"] == "Residential"
        assert data["rawData"][4] == "A-1000"
        assert data["price"] == 2000000.0


class TestRowExtractor:

    @pytest.mark.pipeline
    def test_extracts_from_session_content(self, fake_session, portal, scraper_logger, listing_html):
        fake_session.html = listing_html
        records = asyncio.run(RowExtractor(fake_session, portal, scraper_logger).extract(5))
        assert len(records) == 5

    @pytest.mark.pipeline
    def test_total_failure_returns_empty(self, fake_session, portal, scraper_logger):
        async def broken_content():
            raise RuntimeError("Target page, context or browser has been closed")

        fake_session.content = broken_content
        assert asyncio.run(RowExtractor(fake_session, portal, scraper_logger).extract(5)) == []

    @pytest.mark.pipeline
    def test_unparseable_row_skipped_and_logged(
        self, monkeypatch, fake_session, portal, scraper_logger, listing_html, tmp_path
    ):
        real_cell_text = sobha_extract.cell_text

        def flaky_cell_text(cell, truncate_selector=".slds-truncate"):
            text = real_cell_text(cell, truncate_selector)
            if text == "A-1003":
                raise ValueError("malformed cell markup")
            return text

        monkeypatch.setattr(sobha_extract, "cell_text", flaky_cell_text)
        fake_session.html = listing_html

        records = asyncio.run(RowExtractor(fake_session, portal, scraper_logger).extract(100))

        assert len(records) == 19
        assert "A-1003" not in [record.unit_no for record in records]
        assert [record.row_index for record in records[2:4]] == [3, 5]

        entries = [
            json.loads(line)
            for line in (tmp_path / "logs" / "sobha_scrape.log").read_text().splitlines()
            if line.strip()
        ]
        skipped = [entry for entry in entries if entry["message"].startswith("Skipping unparseable row")]
        assert len(skipped) == 1
        assert "Row 4" in skipped[0]["message"]
        assert skipped[0]["sessionId"] == scraper_logger.session_id
