"""Unit tests for geofence distance and radius checks."""

import math

import pytest

from compliance.errors import InvalidCoordinatesError, InvalidInputError
from compliance.geofence import GeofenceChecker, format_distance, is_valid_coordinates
from compliance.types import Severity


@pytest.fixture
def checker():
    return GeofenceChecker(radius_meters=50)


class TestDistance:
    """Haversine distance."""

    def test_same_point_is_zero(self, site):
        assert GeofenceChecker.distance(site, site) == 0.0

    def test_distance_is_symmetric(self, site):
        other = (40.41815, -3.7038)
        assert GeofenceChecker.distance(site, other) == pytest.approx(GeofenceChecker.distance(other, site))

    @pytest.mark.parametrize("lat,expected", [
        (40.41723, 48.0),
        (40.41748, 75.6),
        (40.41815, 150.1),
    ])
    def test_known_distances(self, site, lat, expected):
        assert GeofenceChecker.distance((lat, -3.7038), site) == pytest.approx(expected, abs=0.5)

    def test_distance_grows_with_separation(self, site):
        distances = [GeofenceChecker.distance((site[0] + d, site[1]), site) for d in (0.0001, 0.001, 0.01, 0.1)]
        assert distances == sorted(distances)

    def test_antimeridian_crossing_takes_short_way(self):
        d = GeofenceChecker.distance((0, 179.9), (0, -179.9))
        assert d == pytest.approx(22239, rel=1e-3)

    def test_longitude_is_irrelevant_at_the_pole(self):
        assert GeofenceChecker.distance((90, 0), (90, 120)) == pytest.approx(0, abs=1e-6)
        assert GeofenceChecker.distance((-90, -45), (-90, 180)) == pytest.approx(0, abs=1e-6)

    def test_pole_to_pole(self):
        d = GeofenceChecker.distance((90, 0), (-90, 0))
        assert d == pytest.approx(math.pi * 6371000)

    def test_antipodal_points_do_not_fail(self):
        d = GeofenceChecker.distance((0, 0), (0, 180))
        assert d == pytest.approx(math.pi * 6371000)


class TestCheck:
    """Radius checks and severity ladder."""

    def test_nearby_point_is_within(self, checker, site):
        result = checker.check((40.4169, -3.7039), site)
        assert result.within_radius
        assert result.severity is None
        assert result.distance_meters < 15

    def test_boundary_is_inclusive(self, checker, site):
        user = (40.41723, -3.7038)
        distance = GeofenceChecker.distance(user, site)
        assert checker.check(user, site, radius_meters=distance).within_radius

    @pytest.mark.parametrize("lat,severity", [
        (40.41748, Severity.MEDIUM),
        (40.41815, Severity.HIGH),
        (40.4268, Severity.CRITICAL),
    ])
    def test_severity_escalates_with_distance(self, checker, site, lat, severity):
        result = checker.check((lat, -3.7038), site)
        assert not result.within_radius
        assert result.severity == severity

    def test_radius_override(self, checker, site):
        assert checker.check((40.41815, -3.7038), site, radius_meters=200).within_radius

    def test_non_positive_radius_rejected(self, checker, site):
        with pytest.raises(InvalidInputError):
            checker.check(site, site, radius_meters=0)

    @pytest.mark.parametrize("point", [
        (91, 0),
        (0, -181),
        (float("nan"), 0),
        (True, 0),
        ("40.4", "-3.7"),
        (40.4,),
    ])
    def test_invalid_coordinates_rejected(self, checker, site, point):
        with pytest.raises(InvalidCoordinatesError):
            checker.check(point, site)


class TestHelpers:

    def test_is_valid_coordinates(self):
        assert is_valid_coordinates(90, 180)
        assert is_valid_coordinates(-90, -180)
        assert not is_valid_coordinates(90.0001, 0)

    def test_format_distance(self):
        assert format_distance(150.1) == "150m"
        assert format_distance(1234) == "1.2km"
