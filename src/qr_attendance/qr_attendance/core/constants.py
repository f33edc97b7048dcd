"""Constants and defaults.

Note: Keep constants here to avoid magic numbers spread across code.
"""

from datetime import timedelta

# Repeat scans closer than this to the check-in are duplicates, later ones are check-outs.
LOCKOUT_WINDOW = timedelta(hours=1)

EARTH_RADIUS_METERS = 6_371_000.0

MIN_ALLOWED_RADIUS_METERS = 5
MIN_QR_LIFESPAN_SECONDS = 5

DEFAULT_QR_LIFESPAN_SECONDS = 15
DEFAULT_ALLOWED_RADIUS_METERS = 200
DEFAULT_SITE_LATITUDE = 30.0444
DEFAULT_SITE_LONGITUDE = 31.2357
DEFAULT_GRACE_PERIOD_MINUTES = 10
DEFAULT_COMPANY_START = "09:00"
DEFAULT_COMPANY_END = "17:00"
DEFAULT_TIMEZONE = "UTC"

# Friday, Saturday (Monday == 0)
DEFAULT_WEEKEND_DAYS = (4, 5)

DEFAULT_SCAN_MAX_ATTEMPTS = 3
DEFAULT_GEOLOCATION_TIMEOUT_SECONDS = 10
DEFAULT_HISTORY_DAYS = 30

QR_TOKEN_MARKER = "TIMESTAMP:"
