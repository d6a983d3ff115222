"""
Configuration module for the CertSeal service.

Centralizes all configuration with environment variable support
and validation.
"""

import os
from pathlib import Path
from typing import Dict

# ============================================================
# Environment Configuration
# ============================================================

ENV = os.getenv("CERTSEAL_ENV", "dev")  # dev|stage|prod

# Record store
DB_PATH = os.getenv("CERTSEAL_DB_PATH", "data/certseal.db")

# Signing configuration
SIGNING_KEY_PATH = os.getenv("CERTSEAL_SIGNING_KEY_PATH", "")
KEY_ID = os.getenv("CERTSEAL_KEY_ID", "kid:certseal-issuer-001")

# Rate limits (requests per window, per client)
ISSUE_RATE_LIMIT = int(os.getenv("ISSUE_RATE_LIMIT", "10"))
VERIFY_RATE_LIMIT = int(os.getenv("VERIFY_RATE_LIMIT", "50"))
RATE_LIMIT_WINDOW_SECONDS = int(os.getenv("RATE_LIMIT_WINDOW_SECONDS", str(15 * 60)))
RATE_LIMIT_MAX_CLIENTS = int(os.getenv("RATE_LIMIT_MAX_CLIENTS", "10000"))

# Honour X-Forwarded-For only behind a proxy that sets it
TRUST_PROXY_HEADERS = os.getenv("CERTSEAL_TRUST_PROXY", "false").lower() in ("1", "true", "yes")

# Logging
LOG_LEVEL = os.getenv("CERTSEAL_LOG_LEVEL", "INFO")
LOG_JSON = os.getenv("CERTSEAL_LOG_JSON", "true").lower() in ("1", "true", "yes")
LOG_FILE = os.getenv("CERTSEAL_LOG_FILE", "") or None


# ============================================================
# Validation
# ============================================================

def validate_config() -> Dict[str, bool]:
    """
    Validate that required configuration is present.
    Returns dict of check name -> ok.
    """
    checks = {
        "db_path": bool(DB_PATH),
        "rate_limits": ISSUE_RATE_LIMIT > 0 and VERIFY_RATE_LIMIT > 0 and RATE_LIMIT_WINDOW_SECONDS > 0,
    }

    if SIGNING_KEY_PATH:
        checks["signing_key"] = Path(SIGNING_KEY_PATH).exists()
    elif is_production():
        # Production never runs on an ephemeral key
        checks["signing_key"] = False

    return checks


# ============================================================
# Feature Flags
# ============================================================

def is_production() -> bool:
    """Check if running in production mode."""
    return ENV == "prod"


def is_debug() -> bool:
    """Check if debug mode is enabled."""
    return os.getenv("CERTSEAL_DEBUG", "").lower() in ("1", "true", "yes")
