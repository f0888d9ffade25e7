"""Geolocation checks for clock-in proximity to the work site."""

import math
from dataclasses import dataclass
from numbers import Real
from typing import Optional, Sequence

from .config import GEOFENCE_RADIUS_METERS
from .errors import InvalidCoordinatesError, InvalidInputError
from .types import Severity

EARTH_RADIUS_METERS = 6371000


def is_valid_coordinates(lat, lng) -> bool:
    """True if lat/lng are real numbers inside [-90, 90] and [-180, 180]."""
    if isinstance(lat, bool) or isinstance(lng, bool):
        return False
    if not isinstance(lat, Real) or not isinstance(lng, Real):
        return False
    if math.isnan(lat) or math.isnan(lng):
        return False
    return -90 <= lat <= 90 and -180 <= lng <= 180


def format_distance(meters: float) -> str:
    """Format distance for display, e.g. "150m" or "1.2km"."""
    if meters < 1000:
        return f"{round(meters)}m"
    return f"{meters / 1000:.1f}km"


@dataclass(frozen=True)
class GeofenceCheck:
    distance_meters: float
    radius_meters: float
    within_radius: bool
    severity: Optional[Severity] = None


class GeofenceChecker:
    """Great-circle distance and radius checks.

    Failures escalate with the ratio of distance to radius: up to twice the
    radius is medium, up to ten times is high, anything further is critical.
    """

    MEDIUM_MAX_RATIO = 2.0
    HIGH_MAX_RATIO = 10.0

    def __init__(self, radius_meters: float = GEOFENCE_RADIUS_METERS):
        self.radius_meters = radius_meters

    @staticmethod
    def _validate(point: Sequence[float]) -> tuple[float, float]:
        try:
            lat, lng = point
        except (TypeError, ValueError):
            raise InvalidCoordinatesError(point, None) from None
        if not is_valid_coordinates(lat, lng):
            raise InvalidCoordinatesError(lat, lng)
        return float(lat), float(lng)

    @classmethod
    def distance(cls, a: Sequence[float], b: Sequence[float]) -> float:
        """Haversine distance in meters between two (lat, lng) points."""
        lat1, lng1 = cls._validate(a)
        lat2, lng2 = cls._validate(b)

        phi1 = math.radians(lat1)
        phi2 = math.radians(lat2)
        d_phi = math.radians(lat2 - lat1)
        d_lambda = math.radians(lng2 - lng1)

        h = (
            math.sin(d_phi / 2) ** 2
            + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2
        )
        # Rounding can push h marginally outside [0, 1] near antipodal points
        h = min(1.0, max(0.0, h))
        c = 2 * math.atan2(math.sqrt(h), math.sqrt(1 - h))
        return EARTH_RADIUS_METERS * c

    def severity_for(self, distance_meters: float, radius_meters: float) -> Severity:
        ratio = distance_meters / radius_meters
        if ratio <= self.MEDIUM_MAX_RATIO:
            return Severity.MEDIUM
        if ratio <= self.HIGH_MAX_RATIO:
            return Severity.HIGH
        return Severity.CRITICAL

    def check(
        self,
        user: Sequence[float],
        location: Sequence[float],
        radius_meters: Optional[float] = None,
    ) -> GeofenceCheck:
        """Check that user is within radius_meters of location (boundary inclusive)."""
        radius = self.radius_meters if radius_meters is None else radius_meters
        if radius <= 0:
            raise InvalidInputError(f"Geofence radius must be positive, got {radius}")

        distance = self.distance(user, location)
        if distance <= radius:
            return GeofenceCheck(distance_meters=distance, radius_meters=radius, within_radius=True)

        return GeofenceCheck(
            distance_meters=distance,
            radius_meters=radius,
            within_radius=False,
            severity=self.severity_for(distance, radius),
        )
