"""
Pydantic models for unsafe zones.

report_count and risk_level are derived data owned by the zone aggregator.
None of the request models below accept them.
"""

from pydantic import BaseModel, Field, field_validator
from datetime import datetime, timezone
from typing import Optional
from enum import Enum

from kavach.core.settings import settings
from kavach.models.report import round_coordinate


class RiskLevel(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"

    @property
    def rank(self) -> int:
        """Tier order: low < medium < high."""
        return _RISK_RANK[self]


_RISK_RANK = {RiskLevel.LOW: 0, RiskLevel.MEDIUM: 1, RiskLevel.HIGH: 2}


class ZoneCandidate(BaseModel):
    """
    Location proposed for merge-on-approval.

    Coordinates are optional here so that a report without geometry reaches
    the aggregator and is rejected there with a domain error.
    """
    name: str = Field(..., min_length=1, max_length=200)
    latitude: Optional[float] = Field(None, ge=-90, le=90)
    longitude: Optional[float] = Field(None, ge=-180, le=180)
    radius: int = Field(default_factory=lambda: settings.DEFAULT_ZONE_RADIUS_METERS, ge=1)

    @field_validator("latitude", "longitude")
    @classmethod
    def _fixed_precision(cls, value: Optional[float]) -> Optional[float]:
        return round_coordinate(value)


class ZoneCreate(BaseModel):
    """
    Administrator-created zone (map click).
    Only seed fields are accepted; derived fields are rejected.
    """
    name: str = Field(..., min_length=1, max_length=200, description="Human-assigned label")
    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)
    radius: int = Field(default_factory=lambda: settings.DEFAULT_ZONE_RADIUS_METERS, ge=1, description="Meters, informational only")

    class Config:
        extra = "forbid"
        json_schema_extra = {
            "example": {"name": "Station Road underpass", "latitude": 28.6422, "longitude": 77.2195, "radius": 150}
        }

    @field_validator("latitude", "longitude")
    @classmethod
    def _fixed_precision(cls, value: float) -> float:
        return round_coordinate(value)


class UnsafeZone(BaseModel):
    """Stored zone, as returned by the API."""
    id: str = Field(..., description="Store-generated zone ID")
    name: str
    latitude: float
    longitude: float
    radius: int = 100
    report_count: int = Field(default=0, ge=0, description="Derived: approved reports near the zone center")
    risk_level: RiskLevel = Field(default=RiskLevel.LOW, description="Derived from report_count")
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
