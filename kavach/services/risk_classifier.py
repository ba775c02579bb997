"""
Risk Classifier - maps a zone's report count to its risk tier.

Tiers:
- count >= 15      -> high
- 6 <= count < 15  -> medium
- count < 6        -> low

The map legend shows an extra "caution" band for 4-5 reports. That band is
presentation only; the stored tier is always one of the three above.
"""

from datetime import datetime, timezone
from typing import Dict, Optional

from kavach.core.errors import InvalidInput
from kavach.models.zone import RiskLevel

HIGH_RISK_MIN_REPORTS = 15
MEDIUM_RISK_MIN_REPORTS = 6


def classify(count: int) -> RiskLevel:
    """
    Classify a report count.

    Raises:
        InvalidInput: count is negative
    """
    if count < 0:
        raise InvalidInput("Report count cannot be negative", {"report_count": count})
    if count >= HIGH_RISK_MIN_REPORTS:
        return RiskLevel.HIGH
    if count >= MEDIUM_RISK_MIN_REPORTS:
        return RiskLevel.MEDIUM
    return RiskLevel.LOW


def zone_tally(count: int, now: Optional[datetime] = None) -> Dict:
    """
    Field set written to a zone whenever its count changes hands.

    This is the only way report_count and risk_level reach the zone store,
    so the stored tier always agrees with the stored count.
    """
    return {
        "report_count": count,
        "risk_level": classify(count).value,
        "updated_at": now or datetime.now(timezone.utc),
    }
