from __future__ import annotations


class ConfigurationError(ValueError):
    """A required setting is missing or malformed."""
