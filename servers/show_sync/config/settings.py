"""
Settings loaded from the environment.

Store credentials:
- STORE_API_BASE_URL: Base URL of the record store API
- STORE_API_KEY: Bearer credential
- STORE_PROJECT_ID: Project identifier (sent as X-Project-ID)

Run tunables (all optional):
- SHOW_SYNC_MAX_PAGES, SHOW_SYNC_PAGE_DELAY, SHOW_SYNC_BATCH_SIZE,
  SHOW_SYNC_LINK_FOLLOW_LIMIT, SHOW_SYNC_REQUEST_TIMEOUT, SHOW_SYNC_BATCH_LOOKUP
"""

import os
from typing import Mapping, Optional

import structlog
from pydantic import BaseModel, Field, ValidationError

from ..errors import ConfigurationError

log = structlog.get_logger(__name__)

STORE_ENV_VARS = {
    "base_url": "STORE_API_BASE_URL",
    "api_key": "STORE_API_KEY",
    "project_id": "STORE_PROJECT_ID",
}

RUN_ENV_PREFIX = "SHOW_SYNC_"


class StoreSettings(BaseModel):
    """Connection settings for the record store."""

    base_url: str = Field(min_length=1)
    api_key: str = Field(min_length=1)
    project_id: str = Field(min_length=1)
    collection: str = "shows"

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "StoreSettings":
        """Build store settings from environment variables.

        Raises:
            ConfigurationError: If any required variable is missing
        """
        environ = os.environ if environ is None else environ

        missing = [name for name in STORE_ENV_VARS.values() if not environ.get(name)]
        if missing:
            raise ConfigurationError(
                f"Missing record store settings: {', '.join(missing)}"
            )

        return cls(
            base_url=environ[STORE_ENV_VARS["base_url"]].rstrip("/"),
            api_key=environ[STORE_ENV_VARS["api_key"]],
            project_id=environ[STORE_ENV_VARS["project_id"]],
        )


class RunSettings(BaseModel):
    """Tunables for a single pipeline run."""

    max_pages: int = Field(default=10, ge=1)
    page_delay: float = Field(default=1.0, ge=0)  # politeness delay between listing pages
    batch_size: int = Field(default=10, ge=1)  # concurrent detail fetches per batch
    link_follow_limit: int = Field(default=20, ge=0)
    request_timeout: float = Field(default=30.0, gt=0)
    batch_lookup: bool = False

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "RunSettings":
        """Build run settings, overriding defaults with SHOW_SYNC_* variables."""
        environ = os.environ if environ is None else environ

        overrides = {}
        for field_name in cls.model_fields:
            value = environ.get(RUN_ENV_PREFIX + field_name.upper())
            if value is not None:
                overrides[field_name] = value

        if overrides:
            log.info("run_settings_overridden", fields=sorted(overrides))

        try:
            return cls(**overrides)
        except ValidationError as e:
            raise ConfigurationError(f"Invalid run settings: {e}") from e
