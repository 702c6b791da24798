"""
Command-line audit of one page.

    python3 backend/audit_page.py https://example.com
    python3 backend/audit_page.py example.com --cookies --cookie-text "Accept all" -o report.json
    python3 backend/audit_page.py example.com --svgs

Prints the JSON report, or writes it to -o FILE.
"""

import argparse
import asyncio
import logging
import os
import sys

from dotenv import load_dotenv

load_dotenv(os.path.join(os.path.dirname(__file__), "..", ".env"))

from clickaudit.errors import ClickAuditError
from clickaudit.scraper import extract_interactive_elements, extract_page_svgs


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Inventory the links and buttons of a web page.")
    parser.add_argument("url")
    parser.add_argument("--cookies", action="store_true", help="try to dismiss a cookie banner first")
    parser.add_argument("--cookie-text", default="", help="consent button text to try before the built-in list")
    parser.add_argument("--svgs", action="store_true", help="list every <svg> on the page instead")
    parser.add_argument("-o", "--output", help="write the JSON report here")
    return parser.parse_args(argv)


async def run(args) -> str:
    if args.svgs:
        report = await extract_page_svgs(args.url)
    else:
        report = await extract_interactive_elements(
            args.url, handle_cookies=args.cookies, cookie_text=args.cookie_text
        )
    return report.model_dump_json(indent=2)


def main(argv=None) -> int:
    logging.basicConfig(
        level=os.getenv("LOG_LEVEL", "INFO").upper(),
        format="%(levelname)s %(name)s %(message)s",
    )
    args = parse_args(argv)
    try:
        payload = asyncio.run(run(args))
    except ClickAuditError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return 1

    if args.output:
        with open(args.output, "w", encoding="utf-8") as f:
            f.write(payload)
        print(f"Wrote {args.output}")
    else:
        print(payload)
    return 0


if __name__ == "__main__":
    sys.exit(main())
