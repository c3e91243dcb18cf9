#!/usr/bin/env python3
"""
Repair malformed features/labels columns into JSON arrays of strings.

Usage (from the repo root):
    python -m scripts.normalize_arrays               # dry run, report only
    python -m scripts.normalize_arrays --fix         # apply changes
    python -m scripts.normalize_arrays --fix --columns features --title-case

Rows the parser cannot classify are left untouched and listed for manual review.
"""
import argparse
import json
import logging
import sys

from sqlalchemy.exc import SQLAlchemyError

from config.database import SessionLocal
from config.logging_config import configure_logging
from services.normalizer_service import ARRAY_COLUMNS, FeatureNormalizer

logger = logging.getLogger("scripts.normalize_arrays")


def setup_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Normalize serialized-array listing columns.",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    parser.add_argument("--fix", action="store_true", help="Write changes (default is a dry run).")
    parser.add_argument(
        "--columns", nargs="+", choices=ARRAY_COLUMNS, default=list(ARRAY_COLUMNS),
        help="Columns to scan.",
    )
    parser.add_argument("--title-case", action="store_true", help="Also title-case every element.")
    parser.add_argument("--report", help="Write the full JSON report to this path.")
    return parser


def main(argv=None) -> int:
    args = setup_arg_parser().parse_args(argv)
    configure_logging()

    db = SessionLocal()
    try:
        report = FeatureNormalizer(db).run(
            columns=args.columns, dry_run=not args.fix, title_case=args.title_case
        )
    except SQLAlchemyError as e:
        logger.error("❌ Normalization failed, transaction rolled back: %s", e)
        return 1
    finally:
        db.close()

    for item in report["manual_review"]:
        logger.warning("Manual review: %s.%s = %r", item["propertyId"], item["column"], item["value"])
    if not args.fix and report["rewritten"]:
        logger.info("Dry run: no changes were made. Run with --fix to apply.")

    if args.report:
        with open(args.report, "w", encoding="utf-8") as f:
            json.dump(report, f, ensure_ascii=False, indent=2)
        logger.info("Report written to %s", args.report)
    return 0


if __name__ == "__main__":
    sys.exit(main())
