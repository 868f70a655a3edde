"""
Application configuration.

Settings are read once from the environment (and from a `.env` file when
present) and exposed as module-level constants, so any module can import
what it needs without passing a settings object around.

Environment variables:
    - MONGODB_URI: Full MongoDB connection string (default: mongodb://localhost:27017)
    - MONGODB_DB: Database name (default: contract_tracker)
    - CONTRACTS_COLLECTION: Collection holding contract records (default: contacts)
    - STORE_BACKEND: `mongo` or `memory` (default: mongo)
    - APP_TIMEZONE: IANA zone treated as local time (default: host zone)
    - JWT_SECRET_KEY / JWT_ALGORITHM / ACCESS_TOKEN_EXPIRE_MINUTES: bearer token settings
    - LOG_LEVEL: Root log level for the `app` logger (default: INFO)
    - CORS_ORIGINS: Comma separated list of allowed origins (default: *)
"""

import os
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

# ------------------------------------------------------------------------------
# Storage
# ------------------------------------------------------------------------------

MONGO_URI = os.getenv("MONGODB_URI", "mongodb://localhost:27017")
MONGO_DB_NAME = os.getenv("MONGODB_DB", "contract_tracker")
CONTRACTS_COLLECTION = os.getenv("CONTRACTS_COLLECTION", "contacts")
STORE_BACKEND = os.getenv("STORE_BACKEND", "mongo").lower()

# ------------------------------------------------------------------------------
# Time
# ------------------------------------------------------------------------------

APP_TIMEZONE = os.getenv("APP_TIMEZONE", "")

# ------------------------------------------------------------------------------
# Authentication
# ------------------------------------------------------------------------------

JWT_SECRET_KEY = os.getenv("JWT_SECRET_KEY", "change-me")
JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
ACCESS_TOKEN_EXPIRE_MINUTES = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", "60"))

# ------------------------------------------------------------------------------
# HTTP / logging
# ------------------------------------------------------------------------------

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
CORS_ORIGINS = [origin.strip() for origin in os.getenv("CORS_ORIGINS", "*").split(",") if origin.strip()]

# ------------------------------------------------------------------------------
# Alerting thresholds (days remaining)
# ------------------------------------------------------------------------------

CRITICAL_WINDOW_DAYS = 2
ALERT_WINDOW_DAYS = 5
