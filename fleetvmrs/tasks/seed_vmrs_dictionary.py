"""Seed the VMRS dictionary with the built-in system rules."""

from __future__ import annotations

import argparse
import logging

from fleetvmrs.db.session import SessionLocal
from fleetvmrs.services.vmrs_dictionary import VmrsDictionaryService


logger = logging.getLogger(__name__)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Seed VMRS dictionary entries from the starter system rules")
    parser.add_argument(
        "--org-id",
        type=int,
        default=None,
        help="Organization to seed (omit for the global dictionary)",
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        help="Logging level (DEBUG, INFO, WARNING, ERROR)",
    )
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> None:
    args = parse_args(argv)
    logging.basicConfig(level=getattr(logging, args.log_level.upper(), logging.INFO))
    db = SessionLocal()
    try:
        inserted = VmrsDictionaryService(db).seed_dictionary(args.org_id)
        logger.info("Seed complete: %s entries inserted", inserted)
    finally:
        db.close()


if __name__ == "__main__":
    main()
