"""
In-process report and zone stores.

Used for local development (USE_MEMORY_STORE=true), the seed script's dry
runs and the test suite. Records are copied on the way in and out so callers
never hold a live reference to stored state.
"""

import threading
import uuid
from datetime import datetime, timezone
from typing import Dict, List, Optional
import logging

from kavach.core.errors import ConcurrencyConflict, NotFound
from kavach.models.report import Report, ReportCreate, ReportStatus
from kavach.models.zone import UnsafeZone
from kavach.services.storage.base import (
    IMMUTABLE_ZONE_FIELDS,
    ReportStore,
    ZoneCompute,
    ZoneStore,
    editable_zone_fields,
)

logger = logging.getLogger(__name__)


def _now() -> datetime:
    return datetime.now(timezone.utc)


class InMemoryReportStore(ReportStore):

    def __init__(self):
        self._lock = threading.Lock()
        self._reports: Dict[str, Report] = {}

    def insert(self, report: ReportCreate, status_history: Optional[List[Dict]] = None) -> Report:
        stored = Report(
            id=uuid.uuid4().hex,
            status=ReportStatus.PENDING,
            status_history=list(status_history or []),
            created_at=_now(),
            **report.model_dump(),
        )
        with self._lock:
            self._reports[stored.id] = stored
        return stored.model_copy(deep=True)

    def get_by_id(self, report_id: str) -> Optional[Report]:
        with self._lock:
            report = self._reports.get(report_id)
        return report.model_copy(deep=True) if report else None

    def list_all(self, user_id: Optional[str] = None) -> List[Report]:
        with self._lock:
            reports = list(self._reports.values())
        # newest first
        reports.reverse()
        if user_id is not None:
            reports = [r for r in reports if r.user_id == user_id]
        return [r.model_copy(deep=True) for r in reports]

    def list_approved(self) -> List[Report]:
        with self._lock:
            return [
                r.model_copy(deep=True)
                for r in self._reports.values()
                if r.status == ReportStatus.APPROVED
            ]

    def update_status(
        self,
        report_id: str,
        status: ReportStatus,
        history_entry: Optional[Dict] = None,
        expected_status: Optional[ReportStatus] = None,
    ) -> Report:
        with self._lock:
            current = self._reports.get(report_id)
            if current is None:
                raise NotFound("Report not found", {"report_id": report_id})
            if expected_status is not None and current.status != ReportStatus(expected_status):
                raise ConcurrencyConflict(
                    "Report status changed concurrently",
                    {"report_id": report_id, "expected_status": ReportStatus(expected_status).value,
                     "actual_status": current.status.value},
                )
            history = list(current.status_history)
            if history_entry:
                history.append(history_entry)
            updated = current.model_copy(update={"status": ReportStatus(status), "status_history": history}, deep=True)
            self._reports[report_id] = updated
        return updated.model_copy(deep=True)

    def delete(self, report_id: str) -> None:
        with self._lock:
            if self._reports.pop(report_id, None) is None:
                raise NotFound("Report not found", {"report_id": report_id})


class InMemoryZoneStore(ZoneStore):
    """
    Zone table with one lock per row.

    apply() holds the row lock across read, compute and write, which is the
    single-writer-per-zone guarantee the aggregator relies on.
    """

    def __init__(self):
        self._table_lock = threading.Lock()
        self._zones: Dict[str, UnsafeZone] = {}
        self._row_locks: Dict[str, threading.Lock] = {}

    def insert(self, fields: Dict) -> UnsafeZone:
        now = _now()
        data = {k: v for k, v in fields.items() if k not in IMMUTABLE_ZONE_FIELDS}
        data.setdefault("updated_at", now)
        zone = UnsafeZone(id=uuid.uuid4().hex, created_at=now, **data)
        with self._table_lock:
            self._zones[zone.id] = zone
            self._row_locks[zone.id] = threading.Lock()
        return zone.model_copy(deep=True)

    def get_by_id(self, zone_id: str) -> Optional[UnsafeZone]:
        with self._table_lock:
            zone = self._zones.get(zone_id)
        return zone.model_copy(deep=True) if zone else None

    def list_all(self) -> List[UnsafeZone]:
        with self._table_lock:
            return [z.model_copy(deep=True) for z in self._zones.values()]

    def update(self, zone_id: str, fields: Dict) -> UnsafeZone:
        changes = {**editable_zone_fields(fields), "updated_at": _now()}
        return self.apply(zone_id, lambda _current: changes)

    def apply(self, zone_id: str, compute: ZoneCompute) -> UnsafeZone:
        with self._row_lock(zone_id):
            with self._table_lock:
                current = self._zones.get(zone_id)
            if current is None:
                # deleted while we waited for the row lock
                raise NotFound("Zone not found", {"zone_id": zone_id})

            fields = compute(current.model_copy(deep=True))
            changes = {k: v for k, v in fields.items() if k not in IMMUTABLE_ZONE_FIELDS}
            updated = UnsafeZone.model_validate({**current.model_dump(), **changes})

            with self._table_lock:
                self._zones[zone_id] = updated
        return updated.model_copy(deep=True)

    def delete(self, zone_id: str) -> None:
        with self._row_lock(zone_id):
            with self._table_lock:
                if self._zones.pop(zone_id, None) is None:
                    raise NotFound("Zone not found", {"zone_id": zone_id})
                self._row_locks.pop(zone_id, None)

    def _row_lock(self, zone_id: str) -> threading.Lock:
        with self._table_lock:
            lock = self._row_locks.get(zone_id)
        if lock is None:
            raise NotFound("Zone not found", {"zone_id": zone_id})
        return lock
