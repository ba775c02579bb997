"""
Firestore-backed report and zone stores.

Zone read-modify-writes and report status changes run inside Firestore
transactions. Firestore retries a transaction a few times on contention; if
it still cannot commit, the failure surfaces as ConcurrencyConflict and the
caller decides whether to retry.
"""

from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Dict, List, Optional
import logging

from firebase_admin import firestore
from google.api_core import exceptions as google_exceptions
from pydantic import ValidationError

from kavach.config.firebase import get_db
from kavach.core.errors import ConcurrencyConflict, KavachError, NotFound, StoreFailure
from kavach.core.settings import settings
from kavach.models.report import Report, ReportCreate, ReportStatus
from kavach.models.zone import UnsafeZone
from kavach.services.storage.base import (
    IMMUTABLE_ZONE_FIELDS,
    ReportStore,
    ZoneCompute,
    ZoneStore,
    editable_zone_fields,
)
from kavach.utils.firestore_helpers import to_document, where_filter

logger = logging.getLogger(__name__)


@contextmanager
def _translate_errors(operation: str, **context):
    """Map google-api-core and document validation errors onto the domain taxonomy."""
    try:
        yield
    except KavachError:
        raise
    except ValidationError as e:
        logger.error(f"❌ {operation} read a malformed document: {e}")
        raise StoreFailure(f"{operation}: stored document is malformed", context) from e
    except google_exceptions.NotFound as e:
        raise NotFound(f"{operation}: document not found", context) from e
    except google_exceptions.Aborted as e:
        logger.warning(f"⚠️ {operation} aborted by a concurrent write: {e}")
        raise ConcurrencyConflict(f"{operation} aborted by a concurrent write", context) from e
    except (google_exceptions.GoogleAPICallError, google_exceptions.RetryError) as e:
        logger.error(f"❌ {operation} failed: {e}", exc_info=True)
        raise StoreFailure(f"{operation} failed: {e}", context) from e


def _run_transaction(body, transaction, operation: str, **context):
    """
    Run a @firestore.transactional body.

    The SDK raises a plain ValueError once its own commit attempts are
    exhausted; that becomes ConcurrencyConflict. Domain errors and document
    validation errors pass through untouched.
    """
    try:
        return body(transaction)
    except (KavachError, ValidationError):
        raise
    except ValueError as e:
        logger.warning(f"⚠️ {operation} could not commit: {e}")
        raise ConcurrencyConflict(f"{operation}: transaction could not commit", context) from e


class FirestoreReportStore(ReportStore):

    def __init__(self, db=None):
        self.db = db or get_db()

    def _collection(self):
        return self.db.collection(settings.REPORTS_COLLECTION)

    @staticmethod
    def _from_snapshot(snapshot) -> Report:
        data = snapshot.to_dict()
        data["id"] = snapshot.id
        return Report.model_validate(data)

    def insert(self, report: ReportCreate, status_history: Optional[List[Dict]] = None) -> Report:
        doc_ref = self._collection().document()
        stored = Report(
            id=doc_ref.id,
            status=ReportStatus.PENDING,
            status_history=list(status_history or []),
            created_at=datetime.now(timezone.utc),
            **report.model_dump(),
        )
        with _translate_errors("report insert", report_id=doc_ref.id):
            doc_ref.set(to_document(stored.model_dump()))
        logger.info(f"Report saved to Firestore: {doc_ref.id}")
        return stored

    def get_by_id(self, report_id: str) -> Optional[Report]:
        with _translate_errors("report get", report_id=report_id):
            snapshot = self._collection().document(report_id).get()
            if not snapshot.exists:
                return None
            return self._from_snapshot(snapshot)

    def list_all(self, user_id: Optional[str] = None) -> List[Report]:
        query = self._collection()
        if user_id is not None:
            query = where_filter(query, "user_id", "==", user_id)
        query = query.order_by("created_at", direction=firestore.Query.DESCENDING)
        with _translate_errors("report list", user_id=user_id):
            return [self._from_snapshot(doc) for doc in query.stream()]

    def list_approved(self) -> List[Report]:
        query = where_filter(self._collection(), "status", "==", ReportStatus.APPROVED.value)
        with _translate_errors("approved report list"):
            return [self._from_snapshot(doc) for doc in query.stream()]

    def update_status(
        self,
        report_id: str,
        status: ReportStatus,
        history_entry: Optional[Dict] = None,
        expected_status: Optional[ReportStatus] = None,
    ) -> Report:
        doc_ref = self._collection().document(report_id)
        update_data = {"status": ReportStatus(status).value}
        if history_entry:
            update_data["status_history"] = firestore.ArrayUnion([to_document(history_entry)])
        transaction = self.db.transaction()

        @firestore.transactional
        def _compare_and_set(transaction) -> None:
            snapshot = doc_ref.get(transaction=transaction)
            if not snapshot.exists:
                raise NotFound("Report not found", {"report_id": report_id})
            if expected_status is not None:
                actual = (snapshot.to_dict() or {}).get("status")
                if actual != ReportStatus(expected_status).value:
                    raise ConcurrencyConflict(
                        "Report status changed concurrently",
                        {"report_id": report_id, "expected_status": ReportStatus(expected_status).value,
                         "actual_status": actual},
                    )
            transaction.update(doc_ref, update_data)

        with _translate_errors("report status update", report_id=report_id):
            _run_transaction(_compare_and_set, transaction, "report status update", report_id=report_id)
            return self._from_snapshot(doc_ref.get())

    def delete(self, report_id: str) -> None:
        doc_ref = self._collection().document(report_id)
        with _translate_errors("report delete", report_id=report_id):
            if not doc_ref.get().exists:
                raise NotFound("Report not found", {"report_id": report_id})
            doc_ref.delete()


class FirestoreZoneStore(ZoneStore):

    def __init__(self, db=None):
        self.db = db or get_db()

    def _collection(self):
        return self.db.collection(settings.ZONES_COLLECTION)

    @staticmethod
    def _from_snapshot(snapshot) -> UnsafeZone:
        data = snapshot.to_dict()
        data["id"] = snapshot.id
        return UnsafeZone.model_validate(data)

    def insert(self, fields: Dict) -> UnsafeZone:
        doc_ref = self._collection().document()
        now = datetime.now(timezone.utc)
        data = {k: v for k, v in fields.items() if k not in IMMUTABLE_ZONE_FIELDS}
        data.setdefault("updated_at", now)
        zone = UnsafeZone(id=doc_ref.id, created_at=now, **data)

        with _translate_errors("zone insert", zone_id=doc_ref.id):
            doc_ref.set(to_document(zone.model_dump()))
        return zone

    def get_by_id(self, zone_id: str) -> Optional[UnsafeZone]:
        with _translate_errors("zone get", zone_id=zone_id):
            snapshot = self._collection().document(zone_id).get()
            if not snapshot.exists:
                return None
            return self._from_snapshot(snapshot)

    def list_all(self) -> List[UnsafeZone]:
        query = self._collection().order_by("created_at")
        with _translate_errors("zone list"):
            return [self._from_snapshot(doc) for doc in query.stream()]

    def update(self, zone_id: str, fields: Dict) -> UnsafeZone:
        changes = {**editable_zone_fields(fields), "updated_at": datetime.now(timezone.utc)}
        return self.apply(zone_id, lambda _current: changes)

    def apply(self, zone_id: str, compute: ZoneCompute) -> UnsafeZone:
        doc_ref = self._collection().document(zone_id)
        transaction = self.db.transaction()

        @firestore.transactional
        def _read_modify_write(transaction) -> UnsafeZone:
            snapshot = doc_ref.get(transaction=transaction)
            if not snapshot.exists:
                raise NotFound("Zone not found", {"zone_id": zone_id})
            current = self._from_snapshot(snapshot)
            changes = {k: v for k, v in compute(current).items() if k not in IMMUTABLE_ZONE_FIELDS}
            updated = UnsafeZone.model_validate({**current.model_dump(), **changes})
            transaction.update(doc_ref, to_document(changes))
            return updated

        with _translate_errors("zone update", zone_id=zone_id):
            return _run_transaction(_read_modify_write, transaction, "zone update", zone_id=zone_id)

    def delete(self, zone_id: str) -> None:
        doc_ref = self._collection().document(zone_id)
        with _translate_errors("zone delete", zone_id=zone_id):
            if not doc_ref.get().exists:
                raise NotFound("Zone not found", {"zone_id": zone_id})
            doc_ref.delete()
