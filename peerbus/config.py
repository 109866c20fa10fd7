"""Settings for the coordination service, read from the environment."""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from typing import Any

from pydantic import BaseModel, ValidationError, field_validator

from peerbus.errors import ConfigValidationError

LOGGER = logging.getLogger(__name__)

ENV_PREFIX = "PEERBUS_"
VALID_LOG_LEVELS = {"CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG"}


class Settings(BaseModel):
    """Application title and log level."""

    app_title: str = "Peer Coordination Service"
    log_level: str = "INFO"

    @field_validator("app_title", mode="before")
    @classmethod
    def _validate_title(cls, value: Any) -> str:
        if not isinstance(value, str):
            raise ValueError("Expected a string value.")
        normalized = value.strip()
        if not normalized:
            raise ValueError("String value must not be empty.")
        return normalized

    @field_validator("log_level", mode="before")
    @classmethod
    def _validate_log_level(cls, value: Any) -> str:
        normalized = str(value).strip().upper()
        if normalized not in VALID_LOG_LEVELS:
            raise ValueError(f"log_level must be one of {sorted(VALID_LOG_LEVELS)}")
        return normalized


def load_settings(environ: Mapping[str, str] | None = None) -> Settings:
    """Build ``Settings`` from ``PEERBUS_*`` variables; unset ones keep their defaults."""
    env = os.environ if environ is None else environ
    raw: dict[str, Any] = {}
    for name in Settings.model_fields:
        value = env.get(ENV_PREFIX + name.upper())
        if value is not None:
            raw[name] = value
    try:
        return Settings(**raw)
    except ValidationError as exc:
        LOGGER.warning("Invalid settings from environment: %s", exc)
        raise ConfigValidationError(str(exc)) from exc
