"""
Settings read from the environment (and a local .env file) at import time.
"""
import os
from typing import Optional
from dotenv import load_dotenv

load_dotenv()


# ---------------------------------------------------------------------------
# Service
# ---------------------------------------------------------------------------

# Async driver URL; aiosqlite by default, asyncpg works without code changes
SQLALCHEMY_DATABASE_URL: str = os.environ.get("DATABASE_URL", "sqlite+aiosqlite:///./access.db")

# Single origin allowed by CORS; unset disables the middleware
ALLOW_ORIGIN: Optional[str] = os.environ.get("ALLOW_ORIGIN")

# "1" exposes /docs, /redoc and /openapi.json
ENABLE_DOCS: bool = os.environ.get("ENABLE_DOCS") == "1"

LOG_LEVEL: str = os.environ.get("LOG_LEVEL", "INFO").upper()


# ---------------------------------------------------------------------------
# Access decisions
# ---------------------------------------------------------------------------

# Users without a profile: "deny" grants nothing, "read_only" grants read on every object
NO_PROFILE_POLICY: str = os.environ.get("NO_PROFILE_POLICY", "deny").lower()
if NO_PROFILE_POLICY not in ("deny", "read_only"):
    raise RuntimeError(f"NO_PROFILE_POLICY must be 'deny' or 'read_only', got {NO_PROFILE_POLICY!r}")

# Plan applied to organizations without a live subscription; empty disables the fallback
FALLBACK_PLAN_NAME: Optional[str] = os.environ.get("FALLBACK_PLAN_NAME", "freemium") or None

# Hold a per-organization lock around quota check and insert (this process only)
QUOTA_SERIALIZE: bool = os.environ.get("QUOTA_SERIALIZE", "1") == "1"


# ---------------------------------------------------------------------------
# Identity provider
# ---------------------------------------------------------------------------

APPWRITE_ENDPOINT = os.getenv("APPWRITE_ENDPOINT")
APPWRITE_PROJECT_ID = os.getenv("APPWRITE_PROJECT_ID")
APPWRITE_API_KEY = os.getenv("APPWRITE_API_KEY")
