"""
Zone endpoints - listing always returns freshly recomputed counts.
"""

from typing import List

from fastapi import APIRouter, Depends, Response, status
from fastapi.concurrency import run_in_threadpool

from kavach.models.zone import UnsafeZone, ZoneCreate
from kavach.services.zone_aggregator import ZoneAggregator, get_zone_aggregator

router = APIRouter(prefix="/zones", tags=["Zones"])


@router.get("", response_model=List[UnsafeZone])
async def list_zones(aggregator: ZoneAggregator = Depends(get_zone_aggregator)):
    """
    All zones, each recounted against current approved reports before returning.
    """
    return await run_in_threadpool(aggregator.list_zones)


@router.post("", response_model=UnsafeZone, status_code=status.HTTP_201_CREATED)
async def create_zone(zone: ZoneCreate, aggregator: ZoneAggregator = Depends(get_zone_aggregator)):
    """
    Manually mark a zone (admin map click). Always creates a new zone with a
    report count of 0; report_count and risk_level cannot be supplied.
    """
    return await run_in_threadpool(aggregator.create_zone, zone)


@router.delete("/{zone_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_zone(zone_id: str, aggregator: ZoneAggregator = Depends(get_zone_aggregator)):
    await run_in_threadpool(aggregator.delete_zone, zone_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
