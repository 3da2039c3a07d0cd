import os

from dotenv import load_dotenv

load_dotenv()

MONGODB_URL = os.getenv("MONGODB_URL", "mongodb://localhost:27017")
MONGODB_DB = os.getenv("MONGODB_DB", "student_advisor")

CORS_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()]

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

# Capacity given to an advisor whose profile does not set one
DEFAULT_MAX_CAPACITY = int(os.getenv("DEFAULT_MAX_CAPACITY", "3"))

# ── Matching ────────────────────────────────────────────────────────────

# Points awarded per criterion. The percentage is taken over their sum.
WEIGHTS = {
    "interests": 40,
    "field": 30,
}

# Top candidate must reach this percentage to be assigned outright
STRONG_MATCH_THRESHOLD = 50.0
