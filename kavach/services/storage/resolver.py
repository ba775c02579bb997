import logging
import threading
from typing import Optional

from kavach.core.settings import settings
from .base import ReportStore, ZoneStore

logger = logging.getLogger(__name__)

_lock = threading.Lock()
_report_store: Optional[ReportStore] = None
_zone_store: Optional[ZoneStore] = None


def _build_stores() -> None:
    global _report_store, _zone_store

    if settings.USE_MEMORY_STORE:
        from .memory_store import InMemoryReportStore, InMemoryZoneStore
        _report_store = InMemoryReportStore()
        _zone_store = InMemoryZoneStore()
        logger.info("Store backend initialized: memory")
        return

    from .firestore_store import FirestoreReportStore, FirestoreZoneStore
    _report_store = FirestoreReportStore()
    _zone_store = FirestoreZoneStore()
    logger.info("Store backend initialized: firestore")


def get_report_store() -> ReportStore:
    """
    Resolve the active report store based on settings.

    Rules:
    - USE_MEMORY_STORE=true: in-process store (nothing persisted).
    - Otherwise: Firestore. Initialization errors propagate.
    """
    with _lock:
        if _report_store is None:
            _build_stores()
        return _report_store


def get_zone_store() -> ZoneStore:
    """Resolve the active zone store; same rules as get_report_store()."""
    with _lock:
        if _zone_store is None:
            _build_stores()
        return _zone_store


def reset_stores() -> None:
    """Drop cached store instances (tests, settings changes)."""
    global _report_store, _zone_store
    with _lock:
        _report_store = None
        _zone_store = None
