"""
Seed script for the Kavach report and zone stores.

Usage:
  - Dry run (default): python scripts/seed_db.py
  - Apply to configured store: python scripts/seed_db.py --apply
  - Use the in-memory store (sanity check of the seed file): python scripts/seed_db.py --apply --memory

Seed file (default ./db_seed.json):
  {
    "zones":   [{"name": ..., "latitude": ..., "longitude": ..., "radius": ...}],
    "reports": [{"location": ..., "latitude": ..., "longitude": ..., "incident_type": ...,
                 "occurred_at": ..., "approve": true}]
  }

Zones are created through the aggregator and reports through the report
service, so approved seed reports aggregate exactly as live ones do.
"""

import argparse
import json
import logging
import os

from kavach.core.log_config import configure_logging
from kavach.core.settings import settings
from kavach.models.report import ReportCreate
from kavach.models.zone import ZoneCreate

logger = logging.getLogger("seed_db")


def load_seed(path: str) -> dict:
    with open(path, "r", encoding="utf-8") as f:
        return json.load(f)


def write_to_store(seed: dict, apply: bool = False) -> dict:
    """Validate every seed record; write them when apply is set."""
    zones = [ZoneCreate(**z) for z in seed.get("zones", [])]
    reports = [(ReportCreate(**r), bool(r.get("approve"))) for r in seed.get("reports", [])]
    logger.info(f"Seed validated: {len(zones)} zone(s), {len(reports)} report(s)")

    if not apply:
        return {"zones": 0, "reports": 0, "approved": 0}

    from kavach.services.report_service import get_report_service
    from kavach.services.zone_aggregator import get_zone_aggregator

    aggregator = get_zone_aggregator()
    service = get_report_service()

    for zone in zones:
        created = aggregator.create_zone(zone)
        logger.info(f"Wrote zone {created.id} '{created.name}'")

    approved = 0
    for report_data, approve in reports:
        report = service.create_report(report_data)
        if approve:
            service.approve_report(report.id, changed_by="seed")
            approved += 1
        logger.info(f"Wrote report {report.id} (approved={approve})")

    return {"zones": len(zones), "reports": len(reports), "approved": approved}


def main():
    parser = argparse.ArgumentParser()
    parser.add_argument("--seed", default=os.path.join(os.getcwd(), "db_seed.json"), help="Seed JSON file")
    parser.add_argument("--apply", action="store_true", help="Write seed to the store instead of dry-run")
    parser.add_argument("--memory", action="store_true", help="Use the in-memory store even if Firestore is configured")
    args = parser.parse_args()

    configure_logging()

    if not os.path.exists(args.seed):
        logger.error(f"Seed file not found: {args.seed}")
        return

    if args.memory:
        logger.info("Forcing in-memory store for this run.")
        settings.USE_MEMORY_STORE = True

    written = write_to_store(load_seed(args.seed), apply=args.apply)

    if args.apply:
        logger.info(f"Seeding completed: {written}")
        if args.memory:
            from kavach.services.zone_aggregator import get_zone_aggregator
            for zone in get_zone_aggregator().list_zones():
                logger.info(f"  {zone.name}: {zone.report_count} report(s), risk={zone.risk_level.value}")
    else:
        logger.info("Dry run complete. Re-run with --apply to write to the store.")


if __name__ == "__main__":
    main()
