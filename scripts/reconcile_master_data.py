#!/usr/bin/env python3
"""
Backfill type_id / status_id / subdistrict_id from the legacy text columns.

Usage (from the repo root):
    python -m scripts.reconcile_master_data          # dry run
    python -m scripts.reconcile_master_data --fix

Safe to re-run: rows whose ids already match are not touched.
"""
import argparse
import logging
import sys

from sqlalchemy.exc import SQLAlchemyError

from config.database import SessionLocal
from config.logging_config import configure_logging
from services.lookup_service import InMemoryLookupTables
from services.normalizer_service import MasterDataReconciler

logger = logging.getLogger("scripts.reconcile_master_data")


def setup_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Reconcile listing text fields with master data.")
    parser.add_argument("--fix", action="store_true", help="Write changes (default is a dry run).")
    return parser


def main(argv=None) -> int:
    args = setup_arg_parser().parse_args(argv)
    configure_logging()

    db = SessionLocal()
    try:
        lookups = InMemoryLookupTables.load(db)
        report = MasterDataReconciler(db).run(lookups, dry_run=not args.fix)
    except SQLAlchemyError as e:
        logger.error("❌ Reconciliation failed, transaction rolled back: %s", e)
        return 1
    finally:
        db.close()

    for change in report["changes"][:20]:
        logger.info("%s: %s", change["propertyId"],
                    {k: v for k, v in change.items() if k not in ("id", "propertyId")})
    if not args.fix and report["updated"]:
        logger.info("Dry run: %d rows would change. Run with --fix to apply.", report["updated"])
    return 0


if __name__ == "__main__":
    sys.exit(main())
