"""
Check whether a one-to-one OpenPhone conversation exists for a number and is recent.

Run from the repository root (or install the project with `pip install -e .` first).

Usage:
    python -m scripts.check_number_conversation --number +15551234567 --recent-hours 48
"""

import argparse
import json
import logging
import re
import sys
from pathlib import Path

import requests

from relay.config import Settings
from relay.logging_config import setup_logging
from relay.reports import OpenPhoneReportClient, ReportError, check_number

logger = logging.getLogger("relay.scripts.check_number_conversation")

SCRIPT_DIR = Path(__file__).resolve().parent


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=__doc__, formatter_class=argparse.RawDescriptionHelpFormatter)
    parser.add_argument("--number", required=True, help="E.164 number, e.g. +15551234567")
    parser.add_argument("--limit-pages", type=int, default=10)
    parser.add_argument("--page-size", type=int, default=50)
    parser.add_argument("--recent-hours", type=float, default=168, help="recency window (default: 7 days)")
    parser.add_argument("--out", default="", help="output file (relative to scripts/)")
    return parser.parse_args(argv)


def main(argv=None) -> int:
    args = parse_args(argv)
    number = args.number.strip()
    settings = Settings.from_env()
    setup_logging(settings.log_level)

    if not settings.openphone_api_key:
        logger.error("OPENPHONE_API_KEY not configured in .env")
        return 1
    if not number:
        logger.error('Pass the number with --number="+E164"')
        return 1

    client = OpenPhoneReportClient(settings.openphone_api, settings.openphone_api_key,
                                   timeout=settings.http_timeout_seconds)
    logger.info(f"Checking one-to-one conversation for {number} ...")
    try:
        summary = check_number(client, number, args.limit_pages, args.page_size, args.recent_hours)
    except (ReportError, requests.RequestException) as e:
        logger.error(f"Failed: {e}")
        return 1

    default_out = f"check_number_{re.sub(r'[^0-9+]', '', number) or 'unknown'}.json"
    out_path = SCRIPT_DIR / (args.out or default_out)
    out_path.write_text(json.dumps(summary, indent=2, ensure_ascii=False), encoding="utf-8")
    logger.info(f"Result saved to: {out_path}")

    has_recent = any(r["isRecent"] for r in summary["checks"])
    if summary["soloConversations"]:
        logger.info(f"One-to-one conversation listed for {number}. Recent: {'yes' if has_recent else 'no'}")
    elif has_recent:
        logger.info("No one-to-one conversation listed, but /messages probes found recent messages.")
    else:
        logger.warning(f"Could not confirm a current one-to-one conversation for {number}.")
    return 0


if __name__ == "__main__":
    sys.exit(main())
