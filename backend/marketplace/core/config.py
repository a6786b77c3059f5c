"""
Centralized configuration module for application-wide settings.

Values are read from environment variables once at import time and exposed
as module-level constants. Each setting has a ``get_*`` function so tests
can re-evaluate it after patching the environment.
"""

import logging
import os
from zoneinfo import ZoneInfo

logger = logging.getLogger(__name__)

_TRUTHY = ("true", "1", "yes")

# ===========================
# Timezone Configuration
# ===========================


def get_app_timezone() -> ZoneInfo:
    """
    Get the application timezone from environment variable.

    The timezone decides what "today" means when rejecting slots for past
    dates and which Monday starts the current week.

    Environment Variables:
        TZ: Timezone identifier (e.g., 'Asia/Riyadh', 'UTC')
            Default: 'UTC'
    """
    tz_name = os.getenv("TZ", "UTC")

    try:
        return ZoneInfo(tz_name)
    except Exception as e:
        logger.warning(
            f"Invalid timezone '{tz_name}' specified in TZ environment variable. "
            f"Falling back to UTC. Error: {e}"
        )
        return ZoneInfo("UTC")


APP_TZ = get_app_timezone()


def log_timezone_config():
    """Log the active timezone configuration during startup."""
    logger.info(
        "Timezone configuration initialized",
        extra={
            "context": {
                "timezone": str(APP_TZ),
                "tz_env_var": os.getenv("TZ", "UTC"),
            }
        },
    )


# ===========================
# Booking Configuration
# ===========================

MIN_CONSULTATION_MINUTES = 15
MAX_CONSULTATION_MINUTES = 480
DEFAULT_CONSULTATION_MINUTES = 60
MAX_REVIEW_LENGTH = 500


def get_default_currency() -> str:
    """
    Get the currency code attached to booking prices.

    Environment Variables:
        DEFAULT_CURRENCY: ISO-4217 code. Default: 'USD'
    """
    currency = os.getenv("DEFAULT_CURRENCY", "USD").strip().upper()
    if len(currency) != 3 or not currency.isalpha():
        logger.warning(
            f"Invalid DEFAULT_CURRENCY '{currency}', falling back to USD"
        )
        return "USD"
    return currency


DEFAULT_CURRENCY = get_default_currency()


def get_provider_lock_timeout() -> float:
    """
    Seconds a request waits for a provider's booking lock before giving up.

    Environment Variables:
        PROVIDER_LOCK_TIMEOUT_SECONDS: Default: 5
    """
    raw = os.getenv("PROVIDER_LOCK_TIMEOUT_SECONDS", "5")
    try:
        value = float(raw)
    except (TypeError, ValueError):
        logger.warning(f"Invalid PROVIDER_LOCK_TIMEOUT_SECONDS '{raw}', using 5")
        return 5.0
    return value if value > 0 else 5.0


PROVIDER_LOCK_TIMEOUT_SECONDS = get_provider_lock_timeout()


def log_booking_config():
    """Log the active booking configuration during startup."""
    logger.info(
        "Booking configuration initialized",
        extra={
            "context": {
                "default_currency": DEFAULT_CURRENCY,
                "lock_timeout_seconds": PROVIDER_LOCK_TIMEOUT_SECONDS,
                "duration_bounds": [
                    MIN_CONSULTATION_MINUTES,
                    MAX_CONSULTATION_MINUTES,
                ],
            }
        },
    )


# ===========================
# Runtime Flags
# ===========================


def is_testing() -> bool:
    """True when the TESTING environment variable is set to a truthy value."""
    return os.getenv("TESTING", "").strip().lower() in _TRUTHY


def get_rate_limit_enabled() -> bool:
    """
    Whether write endpoints are rate limited.

    Environment Variables:
        RATE_LIMIT_ENABLED: Default: 'true'. Always off when TESTING is set.
    """
    if is_testing():
        return False
    return os.getenv("RATE_LIMIT_ENABLED", "true").strip().lower() in _TRUTHY


# ===========================
# Logging Configuration
# ===========================


def get_log_level() -> str:
    """
    Root log level.

    Environment Variables:
        LOG_LEVEL: DEBUG, INFO, WARNING, ERROR. Default: 'INFO'
    """
    level = os.getenv("LOG_LEVEL", "INFO").strip().upper()
    if level not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
        logger.warning(f"Invalid LOG_LEVEL '{level}', using INFO")
        return "INFO"
    return level


def get_log_json() -> bool:
    """
    Emit console logs as JSON lines.

    Environment Variables:
        LOG_JSON: Default: 'false'
    """
    return os.getenv("LOG_JSON", "false").strip().lower() in _TRUTHY


def get_log_to_file() -> bool:
    """
    Write rotating log files under backend/logs.

    Environment Variables:
        LOG_TO_FILE: Default: 'true'. Always off when TESTING is set.
    """
    if is_testing():
        return False
    return os.getenv("LOG_TO_FILE", "true").strip().lower() in _TRUTHY
