import os
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from dotenv import load_dotenv

load_dotenv()

COMPLIANCE_TIMEZONE = os.getenv("COMPLIANCE_TIMEZONE", "Europe/Madrid")
GEOFENCE_RADIUS_METERS = float(os.getenv("GEOFENCE_RADIUS_METERS", "50"))


def validate_compliance_config() -> None:
    problems = []
    try:
        ZoneInfo(COMPLIANCE_TIMEZONE)
    except (ZoneInfoNotFoundError, ValueError):
        problems.append(f"COMPLIANCE_TIMEZONE={COMPLIANCE_TIMEZONE!r} is not an IANA timezone")
    if GEOFENCE_RADIUS_METERS <= 0:
        problems.append(f"GEOFENCE_RADIUS_METERS={GEOFENCE_RADIUS_METERS} must be positive")

    if problems:
        raise RuntimeError(
            f"Invalid compliance configuration: {'; '.join(problems)}. "
            "Please fix these in your .env file."
        )
