# config.py
"""
Environment configuration for the property access service.

Values are read once from the process environment (optionally seeded from a
.env file) and exposed as module-level constants.
"""
import os
from urllib.parse import quote_plus

from dotenv import load_dotenv

# Load environment variables
load_dotenv()


def _env_bool(name: str, default: str = "false") -> bool:
     return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


# Database configuration from environment
DB_SERVER = os.getenv("DB_SERVER")
DB_PORT = os.getenv("DB_PORT", "1433")
DB_USER = os.getenv("DB_USER")
DB_PASS = os.getenv("DB_PASS")
DB_NAME = os.getenv("DB_NAME")


def _build_database_url() -> str:
     """
     Resolve the SQLAlchemy URL.

     DATABASE_URL wins when set. Otherwise the MS SQL Server URL is assembled
     from the DB_* variables, and a local SQLite file is used when no server
     is configured at all (development).
     """
     explicit = os.getenv("DATABASE_URL", "").strip()
     if explicit:
          return explicit
     if DB_SERVER:
          safe_user = quote_plus(DB_USER or "")
          safe_pass = quote_plus(DB_PASS or "")
          return f"mssql+pymssql://{safe_user}:{safe_pass}@{DB_SERVER}:{DB_PORT}/{DB_NAME}"
     return "sqlite:///./condoease_access.db"


DATABASE_URL = _build_database_url()
SQL_ECHO = _env_bool("SQL_ECHO")

# Deadline for a single storage call, in seconds
DB_QUERY_TIMEOUT = int(os.getenv("DB_QUERY_TIMEOUT", "30"))

# Auth
JWT_SECRET = os.getenv("JWT_SECRET", "")
JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")

# Invitations
INVITATION_TTL_DAYS = int(os.getenv("INVITATION_TTL_DAYS", "7"))
APP_BASE_URL = os.getenv("APP_BASE_URL", "https://condoease.me")
BREVO_API_KEY = os.getenv("BREVO_API_KEY")

# Authorization cache (0 TTL disables it)
ACCESS_CACHE_MAX_ENTRIES = int(os.getenv("ACCESS_CACHE_MAX_ENTRIES", "10000"))
ACCESS_CACHE_TTL_SECONDS = float(os.getenv("ACCESS_CACHE_TTL_SECONDS", "30"))

# HTTP
CORS_ORIGINS = [origin.strip() for origin in os.getenv("CORS_ORIGINS", "").split(",") if origin.strip()]
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
