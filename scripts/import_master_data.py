#!/usr/bin/env python3
"""
Load types, statuses and the province/district/subdistrict tree from CSV exports.

Usage (from the repo root):
    python -m scripts.import_master_data --translations "Translate List.csv" --locations listings.csv

Existing master data is replaced; run scripts.reconcile_master_data --fix
afterwards to backfill listing ids.
"""
import argparse
import logging
import sys

from config import settings
from config.database import Base, SessionLocal, engine
from config.logging_config import configure_logging
from services.master_data_service import MasterDataService

logger = logging.getLogger("scripts.import_master_data")


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(
        description="Import master data from CSV.",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    parser.add_argument("--translations", default=settings.MASTER_DATA_CSV,
                        help="CSV with Field, EN_text, TH_text, ZH-Text columns.")
    parser.add_argument("--locations", default=settings.LOCATIONS_CSV,
                        help="Listing export with Province, District, Sub Ditstrict columns.")
    parser.add_argument("--create-tables", action="store_true", help="Create missing tables first.")
    args = parser.parse_args(argv)
    configure_logging()

    if args.create_tables:
        Base.metadata.create_all(engine)

    db = SessionLocal()
    try:
        success, summary, error = MasterDataService(db).import_master_data(args.translations, args.locations)
    finally:
        db.close()

    if not success:
        logger.error(error)
        return 1
    logger.info("Final counts: %s", summary)
    return 0


if __name__ == "__main__":
    sys.exit(main())
