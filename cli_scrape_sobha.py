#!/usr/bin/env python3
"""
CLI script to run the Sobha Partner Portal unit-listing scraper.

Credentials come from the input file, SOBHA_EMAIL / SOBHA_PASSWORD in the
environment (.env is loaded), or the command line, in increasing order
of precedence.

Usage:
    python cli_scrape_sobha.py --input input.json
    python cli_scrape_sobha.py --email agent@example.com --password '...' --max-results 50
    python cli_scrape_sobha.py --headed --no-stealth

Exit codes:
    0 - scrape succeeded
    1 - scrape failed (failure record written to the dataset)
    2 - invalid input (no browser started)
"""

import argparse
import asyncio
import json
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

from dotenv import load_dotenv

from runner.logging_setup import get_logger
from scrape_sobha.sobha_config import SobhaSettings, load_input_from_env, validate_input
from scrape_sobha.sobha_crawl import SobhaCrawler
from scrape_sobha.sobha_errors import ValidationError

# Load environment variables
load_dotenv()

logger = get_logger("cli_scrape_sobha")

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_INVALID_INPUT = 2


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Scrape unit listings from the Sobha Partner Portal"
    )
    parser.add_argument(
        "--input",
        type=str,
        default=None,
        help="JSON file with run input (email, password, maxResults, ...)"
    )
    parser.add_argument("--email", type=str, default=None, help="Portal login email")
    parser.add_argument("--password", type=str, default=None, help="Portal login password")
    parser.add_argument(
        "--max-results",
        type=int,
        default=None,
        help="Maximum number of properties to extract (1-10000, default: 1000)"
    )
    parser.add_argument(
        "--request-delay",
        type=float,
        default=None,
        help="Base delay between portal actions in seconds (0.5-10, default: 2)"
    )
    parser.add_argument(
        "--retry-attempts",
        type=int,
        default=None,
        help="Login attempts before giving up (1-5, default: 3)"
    )
    parser.add_argument(
        "--no-stealth",
        action="store_true",
        help="Disable stealth measures (not recommended)"
    )
    parser.add_argument(
        "--headed",
        action="store_true",
        help="Show the browser window"
    )
    parser.add_argument(
        "--dataset-dir",
        type=str,
        default=None,
        help="Directory for the JSON Lines dataset (default: data/datasets)"
    )
    return parser.parse_args(argv)


def build_raw_input(args: argparse.Namespace) -> Dict[str, Any]:
    """
    Merge input file, environment and flags into one raw input mapping.

    Raises:
        ValidationError: If the input file cannot be read, is not valid
            JSON or does not hold a JSON object
    """
    raw: Dict[str, Any] = {}

    if args.input:
        try:
            with open(Path(args.input), encoding="utf-8") as f:
                file_input = json.load(f)
        except OSError as e:
            raise ValidationError([f"Cannot read input file {args.input}: {e.strerror or e}"]) from e
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise ValidationError([f"Input file {args.input} is not valid JSON: {e}"]) from e
        if not isinstance(file_input, dict):
            raise ValidationError([f"Input file {args.input} must hold a JSON object"])
        raw.update(file_input)

    raw.update(load_input_from_env())

    overrides = {
        "email": args.email,
        "password": args.password,
        "maxResults": args.max_results,
        "requestDelay": args.request_delay,
        "retryAttempts": args.retry_attempts,
    }
    raw.update({key: value for key, value in overrides.items() if value is not None})

    if args.no_stealth:
        raw["enableStealth"] = False

    return raw


async def main(argv: Optional[List[str]] = None) -> int:
    """CLI entry point."""
    args = parse_args(argv)

    try:
        config = validate_input(build_raw_input(args))
    except ValidationError as e:
        logger.error(str(e))
        for violation in e.violations:
            logger.error(f"  - {violation}")
        return EXIT_INVALID_INPUT

    settings = SobhaSettings.from_env()
    if args.headed:
        settings.browser.headless = False
    if args.dataset_dir:
        settings.dataset_dir = args.dataset_dir

    logger.info(f"Starting Sobha scraper (mode: {config.scrape_mode}, max results: {config.max_results})")
    logger.info(f"Stealth: {config.enable_stealth}, headless: {settings.browser.headless}")

    try:
        record = await SobhaCrawler(config, settings=settings).run()
    except KeyboardInterrupt:
        logger.warning("Scraper interrupted by user")
        return 130

    if not record.get("success"):
        logger.error(f"Scrape failed: {record['error']['type']}: {record['error']['message']}")
        return EXIT_FAILED

    logger.info(f"{'=' * 60}")
    logger.info("Scrape completed successfully!")
    logger.info(f"  Session: {record['sessionId']}")
    logger.info(f"  Properties: {record['summary']['totalProperties']}")
    logger.info(f"  Success rate: {record['summary']['successRate']}%")
    logger.info(f"  Dataset: {Path(settings.dataset_dir) / (settings.dataset_name + '.jsonl')}")
    logger.info(f"{'=' * 60}")
    return EXIT_OK


def cli():
    sys.exit(asyncio.run(main()))


if __name__ == "__main__":
    cli()
