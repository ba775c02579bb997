"""
Report endpoints - submission, listing and the administrative status workflow.
"""

from typing import List, Optional
import logging

from fastapi import APIRouter, Depends, Query, Response, status
from fastapi.concurrency import run_in_threadpool

from kavach.models.report import Report, ReportCreate, StatusUpdateRequest
from kavach.services.report_service import ReportService, get_report_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/reports", tags=["Reports"])


@router.post("", response_model=Report, status_code=status.HTTP_201_CREATED)
async def submit_report(report: ReportCreate, service: ReportService = Depends(get_report_service)):
    """
    Submit a new incident report. Reports start pending and do not affect
    any zone until approved.
    """
    logger.info(f"📝 POST /reports - type={report.incident_type.value}, geolocated={report.latitude is not None}")
    return await run_in_threadpool(service.create_report, report)


@router.get("", response_model=List[Report])
async def get_reports(
    user_id: Optional[str] = Query(None, description="Only this user's reports"),
    service: ReportService = Depends(get_report_service),
):
    return await run_in_threadpool(service.list_reports, user_id)


@router.get("/{report_id}", response_model=Report)
async def get_report(report_id: str, service: ReportService = Depends(get_report_service)):
    return await run_in_threadpool(service.get_report, report_id)


@router.patch("/{report_id}/approve", response_model=Report)
async def approve_report(report_id: str, service: ReportService = Depends(get_report_service)):
    """
    Approve a report.

    Geolocated reports are merged into the nearest existing zone (or open a
    new one). Reports without coordinates are approved without touching zones.
    """
    return await run_in_threadpool(service.approve_report, report_id)


@router.patch("/{report_id}/status", response_model=Report)
async def change_status(
    report_id: str,
    request: StatusUpdateRequest,
    service: ReportService = Depends(get_report_service),
):
    """
    Change report status. Allowed: pending -> approved | resolved, approved -> resolved.
    """
    return await run_in_threadpool(service.update_status, report_id, request)


@router.delete("/{report_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_report(report_id: str, service: ReportService = Depends(get_report_service)):
    await run_in_threadpool(service.delete_report, report_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
