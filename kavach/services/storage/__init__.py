"""
Report and zone stores.

The engine only talks to the abstract ReportStore / ZoneStore contracts.
Backends: Firestore (default) and an in-process store (USE_MEMORY_STORE).
"""

from kavach.services.storage.base import ReportStore, ZoneStore
from kavach.services.storage.resolver import get_report_store, get_zone_store, reset_stores

__all__ = ["ReportStore", "ZoneStore", "get_report_store", "get_zone_store", "reset_stores"]
