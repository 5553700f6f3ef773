from __future__ import annotations

import argparse
from dataclasses import asdict
import json
import sys
from pathlib import Path

from .logging_setup import build_logger


def _parse_args(argv: list[str] | None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="locatorpro",
        description="Print the locator strategies generated for the first element matching SELECTOR.",
    )
    parser.add_argument("url")
    parser.add_argument("selector")
    parser.add_argument("--max-strategies", type=int, default=10)
    parser.add_argument("--no-xpath", action="store_true", help="Skip the position XPath fallback.")
    parser.add_argument("--position", action="store_true", help="Enable the geometry fallback.")
    parser.add_argument("--headed", action="store_true")
    parser.add_argument("--log-level", default="warn")
    parser.add_argument("--log-file", type=Path, default=None)
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    if sys.version_info < (3, 11):
        raise SystemExit(
            "locatorpro requires Python 3.11+. "
            f"Current interpreter: {sys.executable} (Python {sys.version.split()[0]})"
        )
    args = _parse_args(argv)
    logger = build_logger(args.log_level, args.log_file)

    from playwright.sync_api import Error as PlaywrightError
    from playwright.sync_api import sync_playwright

    from .models import GenerationConfig
    from .smart_locator import SmartLocator

    config = GenerationConfig(
        max_strategies=args.max_strategies,
        include_xpath=not args.no_xpath,
        fallback_to_position=args.position,
    )
    try:
        with sync_playwright() as playwright:
            browser = playwright.chromium.launch(headless=not args.headed)
            try:
                page = browser.new_page()
                page.goto(args.url, wait_until="domcontentloaded")
                info = SmartLocator(page, config).describe_strategies(args.selector)
            finally:
                browser.close()
    except PlaywrightError as exc:
        logger.error("Browser session failed: %s", exc)
        print(f"[locatorpro] {exc}", file=sys.stderr)
        return 1

    print(json.dumps(asdict(info), indent=2))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
