"""
Report service - Business logic for incident report handling.

Approval is the hinge between reports and zones: approving a report with
coordinates hands it to the zone aggregator; approving one without
coordinates only changes its status.
"""

from typing import List, Optional
import logging

from kavach.core.errors import ConcurrencyConflict, KavachError, NotFound
from kavach.models.report import Report, ReportCreate, ReportStatus, StatusUpdateRequest
from kavach.models.zone import ZoneCandidate
from kavach.services.status_workflow import StatusWorkflowEngine
from kavach.services.storage import ReportStore, get_report_store
from kavach.services.zone_aggregator import ZoneAggregator, get_zone_aggregator

logger = logging.getLogger(__name__)


def zone_name_for(report: Report) -> str:
    """Name given to a zone opened by this report."""
    return f"{report.incident_type.value} Zone"


class ReportService:
    """
    Service for report lifecycle management.
    """

    def __init__(
        self,
        report_store: Optional[ReportStore] = None,
        aggregator: Optional[ZoneAggregator] = None,
    ):
        self.report_store = report_store or get_report_store()
        self.aggregator = aggregator or get_zone_aggregator()
        self.workflow = StatusWorkflowEngine()

    def create_report(self, report_data: ReportCreate) -> Report:
        """
        Store a new report in pending state.

        Args:
            report_data: Validated report data from POST request

        Returns:
            Report: The created report with generated ID and timestamps
        """
        history = [self.workflow.create_status_history_entry(
            from_status="",
            to_status=ReportStatus.PENDING,
            changed_by=report_data.user_id or "anonymous",
            note="Report created",
        )]
        report = self.report_store.insert(report_data, status_history=history)
        logger.info(
            f"Report {report.id} created: type={report.incident_type.value}, "
            f"geolocated={report.has_coordinates}"
        )
        return report

    def get_report(self, report_id: str) -> Report:
        report = self.report_store.get_by_id(report_id)
        if report is None:
            raise NotFound("Report not found", {"report_id": report_id})
        return report

    def list_reports(self, user_id: Optional[str] = None) -> List[Report]:
        """All reports (admin view) or one user's reports, newest first."""
        return self.report_store.list_all(user_id=user_id)

    def approve_report(self, report_id: str, changed_by: str = "admin", note: Optional[str] = None) -> Report:
        """
        Approve a report and feed it into zone aggregation.

        Flow:
        1. NotFound if the report does not exist
        2. Status -> approved (history entry recorded)
        3. Coordinates present: merge into / create a zone named "{type} Zone"
        4. No coordinates: approval still succeeds, zones are untouched

        Approving an already approved report returns it unchanged so the
        zone is not incremented twice. The status write is a compare-and-set
        against the status read here; when two approvals race, only the one
        whose write lands runs aggregation.

        Raises:
            NotFound: unknown report
            InvalidInput: report is resolved
            ConcurrencyConflict: report was resolved while this approval ran
            StoreFailure: persistence failed
        """
        report = self.get_report(report_id)

        if report.status == ReportStatus.APPROVED:
            logger.info(f"Report {report_id} already approved, skipping zone aggregation")
            return report

        history_entry = self.workflow.validate_and_transition(
            current_status=report.status,
            new_status=ReportStatus.APPROVED,
            changed_by=changed_by,
            note=note,
        )
        try:
            approved = self.report_store.update_status(
                report_id, ReportStatus.APPROVED, history_entry, expected_status=report.status
            )
        except ConcurrencyConflict:
            current = self.get_report(report_id)
            if current.status == ReportStatus.APPROVED:
                logger.info(f"Report {report_id} was approved concurrently, skipping zone aggregation")
                return current
            raise
        logger.info(f"✅ Report {report_id} approved by {changed_by}")

        if not approved.has_coordinates:
            logger.info(f"Report {report_id} has no coordinates, zone aggregation skipped")
            return approved

        candidate = ZoneCandidate(
            name=zone_name_for(approved),
            latitude=approved.latitude,
            longitude=approved.longitude,
        )
        try:
            self.aggregator.create_or_update_zone(candidate, report_id=report_id)
        except KavachError as e:
            logger.error(f"❌ Zone aggregation failed for approved report {report_id}: {e}")
            raise e.with_context(report_id=report_id)

        return approved

    def update_status(self, report_id: str, request: StatusUpdateRequest) -> Report:
        """
        Move a report through the workflow.

        Transitions to approved are routed through approve_report() so they
        always trigger zone aggregation.
        """
        if request.status == ReportStatus.APPROVED:
            return self.approve_report(report_id, changed_by=request.changed_by, note=request.note)

        report = self.get_report(report_id)
        if report.status == request.status:
            return report

        history_entry = self.workflow.validate_and_transition(
            current_status=report.status,
            new_status=request.status,
            changed_by=request.changed_by,
            note=request.note,
        )
        updated = self.report_store.update_status(
            report_id, request.status, history_entry, expected_status=report.status
        )
        logger.info(f"Report {report_id} status {report.status.value} -> {updated.status.value}")
        return updated

    def delete_report(self, report_id: str) -> None:
        """
        Delete a report. Zone counts catch up on the next recompute.
        """
        self.report_store.delete(report_id)
        logger.info(f"Report {report_id} deleted")


# Global service instance (singleton pattern)
_report_service: Optional[ReportService] = None


def get_report_service() -> ReportService:
    """
    Get or create ReportService singleton instance.

    Returns:
        ReportService: The global report service instance
    """
    global _report_service
    if _report_service is None:
        _report_service = ReportService()
    return _report_service


def reset_report_service() -> None:
    global _report_service
    _report_service = None
