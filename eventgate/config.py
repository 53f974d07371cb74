"""Engine configuration — env-driven defaults for policy toggles and logging.

Centralized settings using pydantic-settings.  Reads from a .env file and
EVENTGATE_* environment variables.  The values only seed new policy sets
(see ``PolicySet.from_settings``); a built policy set never re-reads them.
"""

from __future__ import annotations

import logging

from pydantic_settings import BaseSettings, SettingsConfigDict


class EngineSettings(BaseSettings):
    """Engine settings with environment variable overrides.

    Examples
    --------
    Override via environment::

        export EVENTGATE_ENVIRONMENT=production
        export EVENTGATE_LOG_LEVEL=DEBUG
        export EVENTGATE_ENABLE_SAMPLING=false

    Or via .env file::

        EVENTGATE_DEBUG=true
        EVENTGATE_DETERMINISTIC_SAMPLING=true
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="EVENTGATE_",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Runtime environment
    environment: str = "development"
    log_level: str = "INFO"
    debug: bool = False

    # Policy toggles
    enable_sampling: bool = True
    enable_consent_checking: bool = True
    deterministic_sampling: bool = False

    @property
    def is_production(self) -> bool:
        """Whether running in production mode."""
        return self.environment == "production"


def configure_logging(config: EngineSettings) -> None:
    """Apply ``config.log_level`` to the ``eventgate`` logger hierarchy."""
    level = logging.getLevelName(config.log_level.upper())
    if not isinstance(level, int):
        level = logging.INFO
    logging.getLogger("eventgate").setLevel(level)


# Module-level singleton; import as `from eventgate.config import settings`
settings = EngineSettings()
