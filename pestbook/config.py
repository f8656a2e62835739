import os
from pathlib import Path

from dotenv import load_dotenv

# Load .env from project root
env_path = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(dotenv_path=env_path)

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./pestbook.db")
# Hosted Postgres URLs name no driver; use psycopg 3
for _prefix in ("postgres://", "postgresql://"):
    if DATABASE_URL.startswith(_prefix):
        DATABASE_URL = "postgresql+psycopg://" + DATABASE_URL[len(_prefix):]
        break

ENVIRONMENT = os.getenv("ENVIRONMENT", "development").lower()

# Session cookie issued by the login flow; we only read it
SESSION_COOKIE_NAME = os.getenv("SESSION_COOKIE_NAME", "sid")
SESSION_TTL_HOURS = int(os.getenv("SESSION_TTL_HOURS", "24"))

# Used when a booking request has no explicit end and the service has no duration
DEFAULT_SERVICE_DURATION_MINUTES = int(os.getenv("DEFAULT_SERVICE_DURATION_MINUTES", "60"))

# Frontend base URL for CORS
FRONTEND_URL = os.getenv("FRONTEND_URL", "http://localhost:3000")
ALLOWED_ORIGINS = [
    origin.strip()
    for origin in os.getenv("ALLOWED_ORIGINS", f"{FRONTEND_URL},http://localhost:3000").split(",")
    if origin.strip()
]

# Rate limiting (public booking surface)
RATE_LIMIT_ENABLED = os.getenv("RATE_LIMIT_ENABLED", "true").lower() == "true"
BOOKING_CREATE_LIMIT = int(os.getenv("BOOKING_CREATE_LIMIT", "10"))  # per window per IP
BOOKING_CREATE_WINDOW_SECONDS = int(os.getenv("BOOKING_CREATE_WINDOW_SECONDS", "60"))
AVAILABILITY_LIMIT = int(os.getenv("AVAILABILITY_LIMIT", "120"))
AVAILABILITY_WINDOW_SECONDS = int(os.getenv("AVAILABILITY_WINDOW_SECONDS", "60"))

SECURITY_HEADERS_ENABLED = os.getenv("SECURITY_HEADERS_ENABLED", "true").lower() == "true"
