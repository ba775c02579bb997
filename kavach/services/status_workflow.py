"""
Status Workflow Engine - report lifecycle state machine.

pending -> approved -> resolved, and pending -> resolved for reports an
administrator closes without approving. No backward transitions.
"""

from datetime import datetime, timezone
from typing import Dict, List, Optional
import logging

from kavach.core.errors import InvalidInput
from kavach.models.report import ReportStatus

logger = logging.getLogger(__name__)


def _status_value(status) -> str:
    return status.value if isinstance(status, ReportStatus) else str(status or "")


class StatusWorkflowEngine:
    """
    State machine for report status transitions.

    Rules:
    - Same status is a no-op and always valid
    - No backward transitions
    - Every transition is recorded in status_history
    """

    ALLOWED_TRANSITIONS: Dict[ReportStatus, List[ReportStatus]] = {
        ReportStatus.PENDING: [ReportStatus.APPROVED, ReportStatus.RESOLVED],
        ReportStatus.APPROVED: [ReportStatus.RESOLVED],
        ReportStatus.RESOLVED: [],  # Terminal state
    }

    @classmethod
    def is_valid_transition(cls, from_status: str, to_status: str) -> bool:
        try:
            from_enum = ReportStatus(from_status)
            to_enum = ReportStatus(to_status)
        except ValueError:
            return False

        if from_enum == to_enum:
            return True
        return to_enum in cls.ALLOWED_TRANSITIONS.get(from_enum, [])

    @classmethod
    def get_allowed_transitions(cls, current_status: str) -> List[str]:
        try:
            current_enum = ReportStatus(current_status)
        except ValueError:
            return []
        return [status.value for status in cls.ALLOWED_TRANSITIONS.get(current_enum, [])]

    @classmethod
    def create_status_history_entry(
        cls,
        from_status: str,
        to_status: str,
        changed_by: str,
        note: Optional[str] = None
    ) -> Dict:
        """Status history entry for the audit trail."""
        return {
            "from": _status_value(from_status),
            "to": _status_value(to_status),
            "changed_by": changed_by,
            "timestamp": datetime.now(timezone.utc),
            "note": note or "",
        }

    @classmethod
    def validate_and_transition(
        cls,
        current_status: str,
        new_status: str,
        changed_by: str,
        note: Optional[str] = None
    ) -> Dict:
        """
        Validate a transition and build its history entry.

        Raises:
            InvalidInput: If transition is not allowed
        """
        if not cls.is_valid_transition(current_status, new_status):
            allowed = cls.get_allowed_transitions(current_status)
            raise InvalidInput(
                f"Invalid status transition: {_status_value(current_status)} -> {_status_value(new_status)}. "
                f"Allowed transitions: {allowed}",
                {"from_status": _status_value(current_status), "to_status": _status_value(new_status)},
            )

        return cls.create_status_history_entry(
            from_status=current_status,
            to_status=new_status,
            changed_by=changed_by,
            note=note,
        )
