"""
Zone matching - decides whether a point belongs to a zone.

Two pieces, kept apart so either can change without touching the
aggregator's control flow:

- a matcher answers "is (lat, lng) within this zone?" and "how far is it?"
- a lookup policy picks one zone out of a store listing

The default matcher compares raw degree differences on each axis. It is a
rough proxy for distance (0.005 degrees is about 500m around Delhi) and
distorts away from the equator. HaversineMatcher is the great-circle option.
"""

import math
from abc import ABC, abstractmethod
from decimal import Decimal
from typing import Iterable, Optional

from kavach.core.settings import settings
from kavach.models.zone import UnsafeZone

EARTH_RADIUS_METERS = 6371000


def _dec(value: float) -> Decimal:
    # str() keeps the stored 8-place value; Decimal(float) would not
    return Decimal(str(value))


def degree_deltas(lat1: float, lng1: float, lat2: float, lng2: float) -> tuple[Decimal, Decimal]:
    """Absolute per-axis differences in decimal degrees."""
    return abs(_dec(lat1) - _dec(lat2)), abs(_dec(lng1) - _dec(lng2))


def haversine_meters(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Calculate distance between two points in meters using Haversine formula."""
    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    dphi = math.radians(lat2 - lat1)
    dlambda = math.radians(lon2 - lon1)
    a = math.sin(dphi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(dlambda / 2) ** 2
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return EARTH_RADIUS_METERS * c


class ZoneMatcher(ABC):
    """Membership test between a point and a zone center."""

    @abstractmethod
    def matches(self, zone: UnsafeZone, latitude: float, longitude: float) -> bool:
        raise NotImplementedError

    @abstractmethod
    def distance(self, zone: UnsafeZone, latitude: float, longitude: float) -> float:
        """Comparable distance, used only to rank candidate zones."""
        raise NotImplementedError


class DegreeDeltaMatcher(ZoneMatcher):
    """Match when both |dlat| and |dlng| are strictly below the threshold."""

    def __init__(self, threshold_degrees: float):
        self.threshold = _dec(threshold_degrees)

    def matches(self, zone: UnsafeZone, latitude: float, longitude: float) -> bool:
        dlat, dlng = degree_deltas(zone.latitude, zone.longitude, latitude, longitude)
        return dlat < self.threshold and dlng < self.threshold

    def distance(self, zone: UnsafeZone, latitude: float, longitude: float) -> float:
        dlat, dlng = degree_deltas(zone.latitude, zone.longitude, latitude, longitude)
        return float(max(dlat, dlng))

    def __repr__(self) -> str:
        return f"DegreeDeltaMatcher(threshold={self.threshold})"


class HaversineMatcher(ZoneMatcher):
    """Match when the great-circle distance is strictly below the radius."""

    def __init__(self, radius_meters: float):
        self.radius_meters = float(radius_meters)

    def matches(self, zone: UnsafeZone, latitude: float, longitude: float) -> bool:
        return self.distance(zone, latitude, longitude) < self.radius_meters

    def distance(self, zone: UnsafeZone, latitude: float, longitude: float) -> float:
        return haversine_meters(zone.latitude, zone.longitude, latitude, longitude)

    def __repr__(self) -> str:
        return f"HaversineMatcher(radius_meters={self.radius_meters})"


class ZoneLookup(ABC):
    """Chooses the zone a point merges into, if any."""

    @abstractmethod
    def find(
        self,
        zones: Iterable[UnsafeZone],
        latitude: float,
        longitude: float,
        matcher: ZoneMatcher,
    ) -> Optional[UnsafeZone]:
        raise NotImplementedError


class FirstMatchLookup(ZoneLookup):
    """First matching zone in store listing order wins."""

    def find(self, zones, latitude, longitude, matcher):
        for zone in zones:
            if matcher.matches(zone, latitude, longitude):
                return zone
        return None


class NearestMatchLookup(ZoneLookup):
    """Closest matching zone wins; store order breaks ties."""

    def find(self, zones, latitude, longitude, matcher):
        best: Optional[UnsafeZone] = None
        best_distance = None
        for zone in zones:
            if not matcher.matches(zone, latitude, longitude):
                continue
            d = matcher.distance(zone, latitude, longitude)
            if best is None or d < best_distance:
                best, best_distance = zone, d
        return best


def _haversine_mode() -> bool:
    mode = (settings.ZONE_DISTANCE_MODE or "degree_delta").lower()
    if mode not in ("degree_delta", "haversine"):
        raise ValueError(f"Unknown ZONE_DISTANCE_MODE: {settings.ZONE_DISTANCE_MODE}")
    return mode == "haversine"


def build_merge_matcher() -> ZoneMatcher:
    """Matcher for merge-on-approval."""
    if _haversine_mode():
        return HaversineMatcher(settings.ZONE_MERGE_RADIUS_METERS)
    return DegreeDeltaMatcher(settings.ZONE_MERGE_THRESHOLD_DEGREES)


def build_recompute_matcher() -> ZoneMatcher:
    """Matcher for the full recount."""
    if _haversine_mode():
        return HaversineMatcher(settings.ZONE_RECOMPUTE_RADIUS_METERS)
    return DegreeDeltaMatcher(settings.ZONE_RECOMPUTE_THRESHOLD_DEGREES)


def build_lookup() -> ZoneLookup:
    policy = (settings.ZONE_MATCH_POLICY or "first_match").lower()
    if policy == "first_match":
        return FirstMatchLookup()
    if policy == "nearest":
        return NearestMatchLookup()
    raise ValueError(f"Unknown ZONE_MATCH_POLICY: {settings.ZONE_MATCH_POLICY}")
