"""
Configuration management for the barcost costing engine.

This module handles:
- Environment selection (development vs. production)
- Engine settings (scale-search cap, pour cost target, default dilution)
- Environment-variable overrides for those settings
"""

import logging
import os
from typing import Optional

from .constants import (
    APP_NAME,
    APP_VERSION,
    DEFAULT_DILUTION_PERCENTAGE,
    DEFAULT_MAX_SCALE_CANDIDATES,
    DEFAULT_TARGET_POUR_COST,
    ENV_VAR_NAME,
)

logger = logging.getLogger(__name__)


def _env_number(name: str, default: float, cast=float):
    """Read a numeric setting from the environment, falling back on bad input."""
    raw = os.environ.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        value = cast(raw)
    except ValueError:
        logger.warning(f"Ignoring invalid {name}={raw!r}; using default {default}")
        return default
    if value <= 0:
        logger.warning(f"Ignoring non-positive {name}={raw!r}; using default {default}")
        return default
    return value


class Config:
    """
    Engine configuration.

    Holds the environment name and the tunable settings the costing and
    scaling services read at call time.
    """

    def __init__(self, environment: str = "production"):
        """
        Initialize configuration.

        Args:
            environment: Environment mode - 'production' or 'development'
        """
        self.environment = environment
        self._app_name = APP_NAME
        self._app_version = APP_VERSION

        self._max_scale_candidates = int(
            _env_number("BARCOST_MAX_SCALE_CANDIDATES", DEFAULT_MAX_SCALE_CANDIDATES, int)
        )
        self._target_pour_cost = _env_number("BARCOST_TARGET_POUR_COST", DEFAULT_TARGET_POUR_COST)
        self._default_dilution_percentage = _env_number(
            "BARCOST_DEFAULT_DILUTION", DEFAULT_DILUTION_PERCENTAGE
        )

    @property
    def app_name(self) -> str:
        """Application name."""
        return self._app_name

    @property
    def app_version(self) -> str:
        """Application version."""
        return self._app_version

    @property
    def max_scale_candidates(self) -> int:
        """Upper bound on scale factors evaluated by one solver call."""
        return self._max_scale_candidates

    @property
    def target_pour_cost(self) -> float:
        """Target pour cost percentage used for suggested menu prices."""
        return self._target_pour_cost

    @property
    def default_dilution_percentage(self) -> float:
        """Dilution applied when a caller does not specify one."""
        return self._default_dilution_percentage

    @property
    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.environment == "development"

    @property
    def is_production(self) -> bool:
        """Check if running in production mode."""
        return self.environment == "production"

    def __repr__(self) -> str:
        """String representation of config."""
        return (
            f"Config(environment='{self.environment}', "
            f"max_scale_candidates={self._max_scale_candidates})"
        )


# Global configuration instance
_config_instance: Optional[Config] = None


def get_config(environment: Optional[str] = None) -> Config:
    """
    Get the global configuration instance.

    Once created, the singleton's environment cannot be changed by passing
    a different environment argument.

    Args:
        environment: Optional environment for initial creation. If None, uses
                    BARCOST_ENV or defaults to production. Ignored if
                    singleton already exists.

    Returns:
        Config instance
    """
    global _config_instance

    if _config_instance is None:
        if environment is None:
            environment = os.environ.get(ENV_VAR_NAME, "production")
        _config_instance = Config(environment)
    elif environment is not None and environment != _config_instance.environment:
        logger.warning(
            f"get_config() called with environment='{environment}' but singleton "
            f"already exists with environment='{_config_instance.environment}'. "
            f"Returning existing singleton."
        )

    return _config_instance


def reset_config():
    """
    Reset the global configuration instance.

    Useful for testing.
    """
    global _config_instance
    _config_instance = None
