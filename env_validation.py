"""Environment variable validation and management."""

import os
import logging
from typing import Dict, Optional

logger = logging.getLogger(__name__)

DEFAULT_AIM_FLUENCY = 25.0
DEFAULT_AIM_ERROR = 1.0
DEFAULT_MOVING_WINDOW = 5


class EnvironmentError(Exception):
    """Raised when required environment variables are missing or invalid."""
    pass


def validate_environment() -> None:
    """Apply defaults and validate the analytics configuration.

    Raises EnvironmentError if validation fails.
    """
    defaults = {
        "DB_PATH": "data.db",
        "CELERATION_AIM_FLUENCY": str(DEFAULT_AIM_FLUENCY),
        "CELERATION_AIM_ERROR": str(DEFAULT_AIM_ERROR),
        "CELERATION_MOVING_WINDOW": str(DEFAULT_MOVING_WINDOW),
    }

    # Apply defaults before validation so dependent modules see consistent values.
    for var, value in defaults.items():
        if not os.getenv(var):
            os.environ[var] = value
            logger.info("Environment variable %s not set; using default '%s'", var, value)

    positive_numbers = {
        "CELERATION_AIM_FLUENCY": float,
        "CELERATION_AIM_ERROR": float,
        "CELERATION_MOVING_WINDOW": int,
    }
    for var, cast in positive_numbers.items():
        raw = os.environ[var]
        try:
            value = cast(raw)
        except ValueError:
            raise EnvironmentError(f"Invalid numeric value for {var}: {raw}")
        if value <= 0:
            raise EnvironmentError(f"{var} must be positive, got {raw}")


def get_env_bool(name: str, default: bool = False) -> bool:
    """Get boolean value from environment variable."""
    value = os.getenv(name)
    if value is None:
        return default
    return value.lower() in {"1", "true", "yes", "on", "enabled"}


def get_env_float(name: str, default: float) -> float:
    """Get a float from the environment, falling back on blank or invalid values."""
    raw = os.getenv(name, "")
    try:
        return float(raw) if raw else default
    except ValueError:
        logger.warning("Ignoring non-numeric %s=%r; using %s", name, raw, default)
        return default


def get_env_int(name: str, default: int) -> int:
    raw = os.getenv(name, "")
    try:
        return int(raw) if raw else default
    except ValueError:
        logger.warning("Ignoring non-integer %s=%r; using %s", name, raw, default)
        return default


def analytics_defaults(overrides: Optional[Dict[str, Optional[float]]] = None) -> Dict[str, float]:
    """Resolve aims and moving-average window from overrides, then environment."""
    resolved = {
        "aim_fluency": get_env_float("CELERATION_AIM_FLUENCY", DEFAULT_AIM_FLUENCY),
        "aim_error": get_env_float("CELERATION_AIM_ERROR", DEFAULT_AIM_ERROR),
        "moving_average_window": get_env_int("CELERATION_MOVING_WINDOW", DEFAULT_MOVING_WINDOW),
    }
    for key, value in (overrides or {}).items():
        if value is not None and key in resolved:
            resolved[key] = value
    resolved["moving_average_window"] = int(resolved["moving_average_window"])
    return resolved
