"""
Run dealer portal extraction, inventory or discovery from CLI.
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from dataclasses import asdict
from pathlib import Path

from dealer_portal.scraping.config import get_portal_config, get_portal_scraping_settings
from dealer_portal.scraping.errors import PortalScrapeError
from dealer_portal.scraping.runner import PortalJobRunner
from dealer_portal.scraping.sinks import LoggingInventoryStore, LoggingProgressSink, LoggingRecordStore
from dealer_portal.scraping.types import WorkItem
from dealer_portal.services.portal_extraction_service import (
    PortalExtractionService,
    discovery_payload,
    vendor_code_for,
)


def _read_items(args: argparse.Namespace) -> list[str]:
    items: list[str] = []
    for raw in args.items or []:
        items.extend(part.strip() for part in raw.split(","))
    if args.items_file:
        lines = Path(args.items_file).read_text(encoding="utf-8").splitlines()
        items.extend(line.strip() for line in lines if not line.strip().startswith("#"))
    return [item for item in items if item]


def _dry_run(args: argparse.Namespace, items: list[str]) -> dict[str, object]:
    settings = get_portal_scraping_settings()
    portal = get_portal_config(args.portal, config_path=settings.config_path)
    sink = LoggingProgressSink(portal=portal.name)
    if args.inventory:
        store = LoggingInventoryStore(vendor_code=vendor_code_for(portal))
    else:
        store = LoggingRecordStore(vendor_code=vendor_code_for(portal))
    runner = PortalJobRunner(settings=settings, portal=portal, store=store, sink=sink)

    if args.discover:
        dump = runner.discover(term=args.term)
        return {"portal": portal.name, "mode": "discover", "discovery": discovery_payload(dump)}

    if args.limit is not None:
        items = items[: max(1, args.limit)]
    summary = runner.run([WorkItem(code=code) for code in items], inventory=args.inventory)
    return {
        "portal": portal.name,
        "mode": "inventory" if args.inventory else "extract",
        **asdict(summary),
        "records": {code: asdict(result) for code, result in store.records.items()},
        "error_samples": sink.errors,
    }


def main() -> int:
    parser = argparse.ArgumentParser(description="Run dealer portal pricing or inventory extraction.")
    parser.add_argument("--portal", required=True, help="Portal name from the portal config file.")
    mode = parser.add_mutually_exclusive_group()
    mode.add_argument(
        "--discover",
        action="store_true",
        help="Dump page structure and candidate product cards instead of extracting.",
    )
    mode.add_argument(
        "--inventory",
        action="store_true",
        help="Refresh per-warehouse stock levels instead of pricing.",
    )
    parser.add_argument("--term", default=None, help="Search term for --discover.")
    parser.add_argument(
        "--items",
        action="append",
        default=None,
        help="Item codes to extract (comma separated, repeatable).",
    )
    parser.add_argument("--items-file", default=None, help="File with one item code per line.")
    parser.add_argument("--limit", type=int, default=None, help="Maximum number of items to process.")
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Log results instead of writing scrape_jobs, vendor_skus or vendor_inventory rows.",
    )
    parser.add_argument("--log-level", default="INFO", help="Root log level.")
    args = parser.parse_args()

    logging.basicConfig(
        level=getattr(logging, args.log_level.strip().upper(), logging.INFO),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )

    items = _read_items(args)
    if args.dry_run and not args.discover and not items:
        parser.error("--dry-run extraction needs --items or --items-file (there is no catalog to read).")

    try:
        if args.dry_run:
            payload = _dry_run(args, items)
        else:
            from db.session import SessionLocal

            service = PortalExtractionService()
            with SessionLocal() as db:
                if args.discover:
                    summary = service.discover(db=db, portal=args.portal, term=args.term)
                elif args.inventory:
                    summary = service.inventory(db=db, portal=args.portal, limit=args.limit, items=items or None)
                else:
                    summary = service.extract(db=db, portal=args.portal, limit=args.limit, items=items or None)
            payload = summary.as_dict()
    except PortalScrapeError as exc:
        print(f"Aborted {exc.describe()}", file=sys.stderr)
        return 1

    print(json.dumps(payload, indent=2, default=str))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
