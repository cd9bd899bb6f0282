# config.py
"""
Environment configuration for the carbon market core.

All settings are read once at import time from the process environment
(optionally populated from a local .env file).
"""
import os

from dotenv import load_dotenv

# Load environment variables
load_dotenv()


def _env_bool(name: str, default: str = "false") -> bool:
     return os.getenv(name, default).lower() == "true"


# Registry wiring: "fixture" (deterministic in-memory) or "http"
REGISTRY_MODE = os.getenv("REGISTRY_MODE", "fixture").lower()
REGISTRY_API_URL = os.getenv("REGISTRY_API_URL", "http://localhost:4000").rstrip("/")
ADAPTER_API_URL = os.getenv("ADAPTER_API_URL", "http://localhost:4100").rstrip("/")
REGISTRY_TIMEOUT_SECONDS = float(os.getenv("REGISTRY_TIMEOUT_SECONDS", "10"))
REGISTRY_API_TOKEN = os.getenv("REGISTRY_API_TOKEN")  # service credential for HTTP mode

# Settlement
MAX_TRANSFER_ATTEMPTS = int(os.getenv("MAX_TRANSFER_ATTEMPTS", "2"))

# Database
DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./carbon_market.db")
SQL_ECHO = _env_bool("SQL_ECHO")

# Auth / session
JWT_SECRET = os.getenv("JWT_SECRET", "dev-secret-change-me")
JWT_ALGORITHM = "HS256"
COOKIE_NAME = os.getenv("COOKIE_NAME", "buyer_sess")
COOKIE_SECURE = _env_bool("COOKIE_SECURE")
COOKIE_MAX_AGE = 60 * 60 * 24 * 7  # 7 days
CART_COOKIE_NAME = os.getenv("CART_COOKIE_NAME", "cart_session")

# HTTP surface
CORS_ORIGINS = [o for o in os.getenv("CORS_ORIGINS", "").split(",") if o]
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
PORT = int(os.getenv("PORT", "10000"))

# Retirement attestation limits (characters, before hashing)
PURPOSE_MAX_LENGTH = 280
BENEFICIARY_MAX_LENGTH = 120
MEMO_MAX_LENGTH = 500
