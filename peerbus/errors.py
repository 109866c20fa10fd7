"""Service-level exceptions."""

from __future__ import annotations


class ConfigValidationError(ValueError):
    """Raised when environment settings fail validation."""
