"""
Application configuration

All tunables are read once from the environment (a local .env file is loaded
first when present). Numeric values that cannot be parsed fail at import time.
"""

import os
from dotenv import load_dotenv

load_dotenv()


def _get_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        raise ValueError(f"{name} must be a number, got {raw!r}")


def _get_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {raw!r}")


# Database
DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./courier_rates.db")

# Pricing
DIMENSIONAL_FACTOR = _get_float("DIMENSIONAL_FACTOR", 5000.0)
DEFAULT_MIN_BILLABLE_WEIGHT = _get_float("DEFAULT_MIN_BILLABLE_WEIGHT", 0.5)
GST_RATE = _get_float("GST_RATE", 0.18)
DEFAULT_RATE_BAND = os.getenv("DEFAULT_RATE_BAND", "RBX1")

# Partner registry cache
PARTNER_CACHE_TTL = _get_int("PARTNER_CACHE_TTL", 1800)  # 30 minutes
PARTNER_CACHE_SIZE = _get_int("PARTNER_CACHE_SIZE", 256)

# Provider calls (seconds)
PROVIDER_TIMEOUT = _get_float("PROVIDER_TIMEOUT", 12.0)
COMPARISON_TIMEOUT = _get_float("COMPARISON_TIMEOUT", 15.0)
TOKEN_EXPIRY_BUFFER = _get_int("TOKEN_EXPIRY_BUFFER", 300)

# Logging
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
LOG_FILE = os.getenv("LOG_FILE", "")

# Partner credentials at rest
CREDENTIAL_ENCRYPTION_KEY = os.getenv("CREDENTIAL_ENCRYPTION_KEY", "")
