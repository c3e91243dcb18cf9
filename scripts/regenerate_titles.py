#!/usr/bin/env python3
"""
Rebuild the cached EN/TH/ZH titles of every listing.

Usage (from the repo root):
    python -m scripts.regenerate_titles              # dry run
    python -m scripts.regenerate_titles --fix
"""
import argparse
import logging
import sys

from sqlalchemy.exc import SQLAlchemyError

from config.database import SessionLocal
from config.logging_config import configure_logging
from services.title_service import TitleService

logger = logging.getLogger("scripts.regenerate_titles")


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Regenerate listing titles.")
    parser.add_argument("--fix", action="store_true", help="Write changes (default is a dry run).")
    args = parser.parse_args(argv)
    configure_logging()

    db = SessionLocal()
    try:
        report = TitleService(db).regenerate_all(dry_run=not args.fix)
    except SQLAlchemyError as e:
        logger.error("❌ Fatal error, transaction rolled back: %s", e)
        return 1
    finally:
        db.close()

    for sample in report["samples"]:
        logger.info("[%s] EN: %s | TH: %s", sample["propertyId"], sample["title_en"], sample["title_th"])
    return 1 if report["errors"] else 0


if __name__ == "__main__":
    sys.exit(main())
