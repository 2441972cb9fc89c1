"""Configuration error definitions."""

from __future__ import annotations


class ConfigurationError(RuntimeError):
    """Raised when configuration values are invalid."""


class MissingConfigurationError(ConfigurationError):
    """Raised when required configuration values are absent or blank."""


class InvalidConfigValueError(ConfigurationError):
    def __init__(self, variable: str, value: object, expected: str) -> None:
        super().__init__(f"{variable} must be {expected}, got {value!r}")
        self.variable = variable
        self.value = value
