"""
Pydantic models for incident reports.
These models handle validation for report submission and responses.
"""

from pydantic import AliasChoices, BaseModel, Field, field_validator, model_validator
from datetime import datetime, timezone
from typing import Optional, List, Dict
from enum import Enum

COORDINATE_PLACES = 8


def round_coordinate(value: Optional[float]) -> Optional[float]:
    """Store coordinates at fixed precision (8 decimal places)."""
    if value is None:
        return None
    return round(float(value), COORDINATE_PLACES)


class IncidentType(str, Enum):
    HARASSMENT = "harassment"
    STALKING = "stalking"
    ASSAULT = "assault"
    THEFT = "theft"
    OTHER = "other"


class ReportStatus(str, Enum):
    """
    Report lifecycle.

    pending is the initial state. approved is the only state that feeds
    zone aggregation. resolved is an administrative closure.
    """
    PENDING = "pending"
    APPROVED = "approved"
    RESOLVED = "resolved"


class ReportCreate(BaseModel):
    """
    Model for creating a new report (incoming POST request).
    These are the fields users provide when submitting a report.
    """
    user_id: Optional[str] = Field(None, description="Owning user; kept even when the report is anonymous")
    location: str = Field(..., min_length=1, max_length=500, description="Free-text address or description of the place")
    latitude: Optional[float] = Field(None, ge=-90, le=90, description="Latitude (omitted if the reporter declined geolocation)")
    longitude: Optional[float] = Field(None, ge=-180, le=180, description="Longitude (omitted if the reporter declined geolocation)")
    incident_type: IncidentType = Field(..., description="Kind of incident")
    description: Optional[str] = Field(None, max_length=2000, description="What happened")
    occurred_at: datetime = Field(
        ...,
        validation_alias=AliasChoices("occurred_at", "datetime"),
        description="When the incident happened, as asserted by the reporter",
    )
    anonymous: bool = Field(default=False, description="Hide the reporter when the report is displayed")

    class Config:
        json_schema_extra = {
            "example": {
                "location": "Connaught Place, Block A",
                "latitude": 28.6139,
                "longitude": 77.2090,
                "incident_type": "harassment",
                "description": "Group following women near the metro exit.",
                "occurred_at": "2024-03-02T21:15:00Z",
                "anonymous": True,
            }
        }
        extra = "ignore"

    @field_validator("latitude", "longitude")
    @classmethod
    def _fixed_precision(cls, value: Optional[float]) -> Optional[float]:
        return round_coordinate(value)

    @model_validator(mode="after")
    def _coordinates_come_in_pairs(self) -> "ReportCreate":
        if (self.latitude is None) != (self.longitude is None):
            raise ValueError("latitude and longitude must be provided together")
        return self


class Report(BaseModel):
    """
    Stored report, as returned by the API.
    Includes system-generated fields like ID, status and timestamps.
    """
    id: str = Field(..., description="Store-generated report ID")
    user_id: Optional[str] = None
    location: str
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    incident_type: IncidentType
    description: Optional[str] = None
    occurred_at: datetime
    anonymous: bool = False
    status: ReportStatus = Field(default=ReportStatus.PENDING)
    status_history: List[Dict] = Field(default_factory=list, description="Status transition history")
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def has_coordinates(self) -> bool:
        return self.latitude is not None and self.longitude is not None


class StatusUpdateRequest(BaseModel):
    """Request to move a report through the status workflow."""
    status: ReportStatus = Field(..., description="New status value")
    changed_by: str = Field(default="admin", min_length=1, description="Administrator identifier")
    note: Optional[str] = Field(None, max_length=500, description="Optional note explaining the change")
