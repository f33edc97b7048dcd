import os

SECRET_KEY = "test-secret"

DB_CONFIG = {
    "host": os.getenv("DB_HOST", "localhost"),
    "port": int(os.getenv("DB_PORT", "3306")),
    "user": os.getenv("DB_USER", "root"),
    "password": os.getenv("DB_PASSWORD", ""),
    "database": os.getenv("DB_NAME", "qr_attendance_test"),
}

QR_SIGNING_SECRET = "test-signing-secret"

SCAN_MAX_ATTEMPTS = 3
GEOLOCATION_TIMEOUT_SECONDS = 10

NARRATIVE_SERVICE_URL = ""
NARRATIVE_API_KEY = ""
NARRATIVE_TIMEOUT_SECONDS = 5.0

LOG_LEVEL = "WARNING"

DEBUG = False
TESTING = True

AUTO_INIT_DB = False
AUTO_SEED_DB = False
