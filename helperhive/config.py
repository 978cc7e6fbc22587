import os
from pathlib import Path

from dotenv import load_dotenv

# Load .env from project root
env_path = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(dotenv_path=env_path)

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./helperhive.db")

# Firebase Configuration
FIREBASE_PROJECT_ID = os.getenv("FIREBASE_PROJECT_ID")
# Web API key for the Identity Toolkit REST endpoints (password sign-in, reset emails)
FIREBASE_WEB_API_KEY = os.getenv("FIREBASE_WEB_API_KEY")

# Cloudflare R2 Configuration
R2_ACCOUNT_ID = os.getenv("R2_ACCOUNT_ID")
R2_ACCESS_KEY_ID = os.getenv("R2_ACCESS_KEY_ID")
R2_SECRET_ACCESS_KEY = os.getenv("R2_SECRET_ACCESS_KEY")
R2_BUCKET_NAME = os.getenv("R2_BUCKET_NAME", "helperhive")
# Public bucket domain; when unset uploads are served through presigned URLs
R2_PUBLIC_BASE_URL = os.getenv("R2_PUBLIC_BASE_URL")
MAX_UPLOAD_BYTES = int(os.getenv("MAX_UPLOAD_BYTES", str(5 * 1024 * 1024)))

# Marketplace rules
REVIEW_MAX_LENGTH = int(os.getenv("REVIEW_MAX_LENGTH", "300"))
MESSAGE_MAX_LENGTH = int(os.getenv("MESSAGE_MAX_LENGTH", "2000"))
MAX_BOOKING_HOURS = int(os.getenv("MAX_BOOKING_HOURS", "12"))

# Booking time slots offered to customers (24h clock, end exclusive)
SLOT_START_HOUR = int(os.getenv("SLOT_START_HOUR", "9"))
SLOT_END_HOUR = int(os.getenv("SLOT_END_HOUR", "21"))
SLOT_MINUTES = int(os.getenv("SLOT_MINUTES", "30"))

ALLOWED_ORIGINS = os.getenv(
    "ALLOWED_ORIGINS",
    "http://localhost:8081,http://localhost:19006,http://localhost:3000",
).split(",")
