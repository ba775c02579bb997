"""
Zone Aggregator - turns approved reports into unsafe zones.

Two paths maintain a zone's report_count / risk_level:

1. Merge-on-approval (fast path): when a report is approved, the first zone
   within ZONE_MERGE_THRESHOLD_DEGREES (0.005) on both axes gets +1. If no
   zone is that close, a new zone is created with a count of 1.

2. Recompute (authoritative): on every zone listing, each zone's count is
   re-derived from all approved reports within
   ZONE_RECOMPUTE_THRESHOLD_DEGREES (0.01) on both axes, and written back.

The two thresholds differ, so the fast path can disagree with the recompute
until the next listing. The recompute wins.

report_count and risk_level are only ever written through zone_tally(), and
every write to an existing zone goes through ZoneStore.apply(), so
concurrent approvals of the same zone cannot lose increments.
"""

from datetime import datetime, timezone
from typing import Dict, Iterable, List, Optional, Union
import logging

from pydantic import ValidationError

from kavach.core.errors import ConcurrencyConflict, InvalidInput, KavachError, NotFound, StoreFailure
from kavach.models.report import Report, ReportStatus
from kavach.models.zone import UnsafeZone, ZoneCandidate, ZoneCreate
from kavach.services.risk_classifier import zone_tally
from kavach.services.storage import ReportStore, ZoneStore, get_report_store, get_zone_store
from kavach.services.zone_matching import (
    ZoneLookup,
    ZoneMatcher,
    build_lookup,
    build_merge_matcher,
    build_recompute_matcher,
)

logger = logging.getLogger(__name__)


def _validation_messages(error: ValidationError) -> List[str]:
    return [f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in error.errors()]


class ZoneAggregator:
    """
    Owns every write to a zone's derived fields.
    """

    # first attempt + one retry with a fresh read
    MAX_MERGE_ATTEMPTS = 2

    def __init__(
        self,
        zone_store: Optional[ZoneStore] = None,
        report_store: Optional[ReportStore] = None,
        merge_matcher: Optional[ZoneMatcher] = None,
        recompute_matcher: Optional[ZoneMatcher] = None,
        lookup: Optional[ZoneLookup] = None,
    ):
        self.zone_store = zone_store or get_zone_store()
        self.report_store = report_store or get_report_store()
        self.merge_matcher = merge_matcher or build_merge_matcher()
        self.recompute_matcher = recompute_matcher or build_recompute_matcher()
        self.lookup = lookup or build_lookup()

    # ------------------------------------------------------------------
    # Merge-on-approval
    # ------------------------------------------------------------------

    def create_or_update_zone(
        self,
        candidate: Union[ZoneCandidate, Dict],
        report_id: Optional[str] = None,
    ) -> UnsafeZone:
        """
        Merge a newly approved location into a nearby zone, or create one.

        Args:
            candidate: name + coordinates (+ optional radius)
            report_id: approved report, used only for error context and logs

        Returns:
            The matched zone after its increment, or the new zone

        Raises:
            InvalidInput: candidate has no coordinates or fails validation
            StoreFailure: store error, or a write conflict that survived one retry
        """
        if isinstance(candidate, dict):
            try:
                candidate = ZoneCandidate(**candidate)
            except ValidationError as e:
                raise InvalidInput(
                    "Invalid zone candidate",
                    {"report_id": report_id, "errors": _validation_messages(e)},
                ) from e

        if candidate.latitude is None or candidate.longitude is None:
            raise InvalidInput(
                "Zone candidate has no coordinates",
                {"zone_name": candidate.name, "report_id": report_id},
            )

        for attempt in range(1, self.MAX_MERGE_ATTEMPTS + 1):
            try:
                return self._merge_once(candidate, report_id)
            except (ConcurrencyConflict, NotFound) as e:
                # NotFound here means the matched zone was deleted after the scan
                if attempt < self.MAX_MERGE_ATTEMPTS:
                    logger.warning(f"⚠️ Zone merge for report {report_id} hit {type(e).__name__}, retrying with a fresh read")
                    continue
                logger.error(f"❌ Zone merge for report {report_id} failed after retry: {e}")
                raise StoreFailure(
                    "Zone merge failed after retry",
                    {"report_id": report_id, "zone_name": candidate.name, **e.context},
                ) from e
            except KavachError as e:
                raise e.with_context(report_id=report_id, zone_name=candidate.name)

    def _merge_once(self, candidate: ZoneCandidate, report_id: Optional[str]) -> UnsafeZone:
        zones = self.zone_store.list_all()
        match = self.lookup.find(zones, candidate.latitude, candidate.longitude, self.merge_matcher)

        if match is not None:
            updated = self.zone_store.apply(
                match.id,
                lambda current: zone_tally(current.report_count + 1),
            )
            logger.info(
                f"Report {report_id} merged into zone {updated.id} "
                f"(count={updated.report_count}, risk={updated.risk_level.value})"
            )
            return updated

        created = self.zone_store.insert({
            "name": candidate.name,
            "latitude": candidate.latitude,
            "longitude": candidate.longitude,
            "radius": candidate.radius,
            **zone_tally(1),
        })
        logger.info(f"✅ Report {report_id} opened new zone {created.id} '{created.name}'")
        return created

    # ------------------------------------------------------------------
    # Recompute
    # ------------------------------------------------------------------

    def count_reports_in_zone(self, zone: UnsafeZone, reports: Iterable[Report]) -> int:
        """Approved, geolocated reports within the recompute threshold of the zone center."""
        return sum(
            1
            for report in reports
            if report.status == ReportStatus.APPROVED
            and report.has_coordinates
            and self.recompute_matcher.matches(zone, report.latitude, report.longitude)
        )

    def get_zones_with_report_counts(self) -> List[UnsafeZone]:
        """
        Re-derive every zone's count and tier from approved reports.

        Approved reports are fetched once and matched in memory. Each zone is
        written back even when its count is unchanged. Zones are committed
        one at a time; the pass as a whole is not atomic.

        Returns:
            Fresh listing of all zones after the writes
        """
        zones = self.zone_store.list_all()
        approved = [r for r in self.report_store.list_approved() if r.has_coordinates]
        now = datetime.now(timezone.utc)

        for zone in zones:
            count = self.count_reports_in_zone(zone, approved)
            self._write_recount(zone, count, now)

        logger.info(f"Recomputed {len(zones)} zone(s) against {len(approved)} approved report(s)")
        return self.zone_store.list_all()

    def _write_recount(self, zone: UnsafeZone, count: int, now: datetime) -> None:
        tally = zone_tally(count, now)
        for attempt in range(1, self.MAX_MERGE_ATTEMPTS + 1):
            try:
                self.zone_store.apply(zone.id, lambda _current: tally)
                return
            except NotFound:
                logger.warning(f"Zone {zone.id} deleted during recompute, skipping")
                return
            except ConcurrencyConflict as e:
                if attempt < self.MAX_MERGE_ATTEMPTS:
                    logger.warning(f"⚠️ Recount of zone {zone.id} conflicted, retrying")
                    continue
                raise StoreFailure("Zone recount failed after retry", {"zone_id": zone.id}) from e
            except KavachError as e:
                raise e.with_context(zone_id=zone.id)

    def list_zones(self) -> List[UnsafeZone]:
        """Zones with freshly recomputed counts. Callers must not cache this."""
        return self.get_zones_with_report_counts()

    # ------------------------------------------------------------------
    # Administrative zone management
    # ------------------------------------------------------------------

    def create_zone(self, zone: ZoneCreate) -> UnsafeZone:
        """Manually marked zone: always a new zone, never merged, seeded at 0."""
        created = self.zone_store.insert({**zone.model_dump(), **zone_tally(0)})
        logger.info(f"✅ Admin created zone {created.id} '{created.name}'")
        return created

    def delete_zone(self, zone_id: str) -> None:
        self.zone_store.delete(zone_id)
        logger.info(f"Zone {zone_id} deleted")


# Global aggregator instance (singleton pattern)
_aggregator: Optional[ZoneAggregator] = None


def get_zone_aggregator() -> ZoneAggregator:
    """
    Get or create the ZoneAggregator singleton.

    Returns:
        ZoneAggregator wired to the configured stores and matchers
    """
    global _aggregator
    if _aggregator is None:
        _aggregator = ZoneAggregator()
    return _aggregator


def reset_zone_aggregator() -> None:
    global _aggregator
    _aggregator = None
