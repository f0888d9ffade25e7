"""Input errors raised by the compliance module.

A compliance violation is never an exception; these signal that a rule could
not be evaluated at all because the caller handed over malformed data.
"""


class InvalidInputError(ValueError):
    """Input is malformed and no verdict can be produced from it."""


class InvalidCoordinatesError(InvalidInputError):
    """Latitude/longitude outside the valid range or not a number."""

    def __init__(self, lat, lng):
        self.lat = lat
        self.lng = lng
        super().__init__(f"Invalid coordinates: lat={lat}, lng={lng}")
