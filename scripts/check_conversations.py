"""
Dump or count OpenPhone conversations (one-to-one vs group).

Run from the repository root (or install the project with `pip install -e .` first).

Usage:
    python -m scripts.check_conversations --report counts
    python -m scripts.check_conversations --report full --out dump.json
"""

import argparse
import json
import logging
import sys
from pathlib import Path

import requests

from relay.config import Settings
from relay.logging_config import setup_logging
from relay.reports import OpenPhoneReportClient, ReportError, counts_report, full_report

logger = logging.getLogger("relay.scripts.check_conversations")

SCRIPT_DIR = Path(__file__).resolve().parent


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=__doc__, formatter_class=argparse.RawDescriptionHelpFormatter)
    parser.add_argument("--report", choices=["counts", "full"], default="counts")
    parser.add_argument("--out", default="", help="output file (relative to scripts/)")
    parser.add_argument("--limit-pages", type=int, default=10)
    parser.add_argument("--page-size", type=int, default=50)
    parser.add_argument("--no-write", action="store_true", help="counts report: only log, do not write a file")
    return parser.parse_args(argv)


def main(argv=None) -> int:
    args = parse_args(argv)
    settings = Settings.from_env()
    setup_logging(settings.log_level)

    if not settings.openphone_api_key:
        logger.error("OPENPHONE_API_KEY not configured in .env")
        return 1

    client = OpenPhoneReportClient(settings.openphone_api, settings.openphone_api_key,
                                   timeout=settings.http_timeout_seconds)
    try:
        logger.info("Loading OpenPhone conversations...")
        conversations = client.fetch_all_conversations(args.limit_pages, args.page_size)
    except (ReportError, requests.RequestException) as e:
        logger.error(f"Failed: {e}")
        return 1
    logger.info(f"Total conversations: {len(conversations)}")

    if args.report == "counts":
        result = counts_report(conversations)
        logger.info(f"Group conversations: {result['groupsCount']}")
        logger.info(f"One-to-one conversations: {result['soloCount']}")
        if args.no_write:
            return 0
        out_path = SCRIPT_DIR / (args.out or "conversations_counts.json")
    else:
        result = full_report(conversations)
        out_path = SCRIPT_DIR / (args.out or "conversations_dump.json")

    out_path.write_text(json.dumps(result, indent=2, ensure_ascii=False), encoding="utf-8")
    logger.info(f"Report saved to: {out_path}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
