from abc import ABC, abstractmethod
from typing import Callable, Dict, List, Optional

from kavach.models.report import Report, ReportCreate, ReportStatus
from kavach.models.zone import UnsafeZone


class ReportStore(ABC):
    """
    Persistence contract for incident reports.

    Contract:
    - insert() assigns id, status=pending and created_at.
    - list_all() returns newest first.
    - list_approved() returns only reports with status approved.
    - update_status() raises NotFound for an unknown id. With expected_status
      it is a compare-and-set: the write only lands if the stored status still
      equals expected_status, otherwise ConcurrencyConflict is raised.
    - Backend failures surface as StoreFailure.
    """

    @abstractmethod
    def insert(self, report: ReportCreate, status_history: Optional[List[Dict]] = None) -> Report:
        raise NotImplementedError

    @abstractmethod
    def get_by_id(self, report_id: str) -> Optional[Report]:
        raise NotImplementedError

    @abstractmethod
    def list_all(self, user_id: Optional[str] = None) -> List[Report]:
        raise NotImplementedError

    @abstractmethod
    def list_approved(self) -> List[Report]:
        raise NotImplementedError

    @abstractmethod
    def update_status(
        self,
        report_id: str,
        status: ReportStatus,
        history_entry: Optional[Dict] = None,
        expected_status: Optional[ReportStatus] = None,
    ) -> Report:
        raise NotImplementedError

    @abstractmethod
    def delete(self, report_id: str) -> None:
        raise NotImplementedError


ZoneCompute = Callable[[UnsafeZone], Dict]

IMMUTABLE_ZONE_FIELDS = ("id", "created_at")

# written only through risk_classifier.zone_tally() via apply()
DERIVED_ZONE_FIELDS = ("report_count", "risk_level")


def editable_zone_fields(fields: Dict) -> Dict:
    """Fields update() may write: everything but identity and derived data."""
    return {
        k: v for k, v in fields.items()
        if k not in IMMUTABLE_ZONE_FIELDS and k not in DERIVED_ZONE_FIELDS
    }


class ZoneStore(ABC):
    """
    Persistence contract for unsafe zones.

    Contract:
    - list_all() returns zones in creation order. Merge-on-approval relies on
      this order being stable.
    - apply(zone_id, compute) is an atomic read-modify-write of one zone:
      compute() receives the current record and returns the fields to write,
      and no other write to that zone can land in between. Backends either
      serialise writers per zone or raise ConcurrencyConflict.
    - update() edits descriptive fields (name, coordinates, radius) and
      silently drops report_count and risk_level. Derived fields only change
      through apply().
    - update(), apply() and delete() raise NotFound for an unknown id.
    - Backend failures surface as StoreFailure.
    """

    @abstractmethod
    def insert(self, fields: Dict) -> UnsafeZone:
        raise NotImplementedError

    @abstractmethod
    def get_by_id(self, zone_id: str) -> Optional[UnsafeZone]:
        raise NotImplementedError

    @abstractmethod
    def list_all(self) -> List[UnsafeZone]:
        raise NotImplementedError

    @abstractmethod
    def update(self, zone_id: str, fields: Dict) -> UnsafeZone:
        raise NotImplementedError

    @abstractmethod
    def apply(self, zone_id: str, compute: ZoneCompute) -> UnsafeZone:
        raise NotImplementedError

    @abstractmethod
    def delete(self, zone_id: str) -> None:
        raise NotImplementedError
