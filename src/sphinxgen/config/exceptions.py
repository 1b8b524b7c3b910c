"""Custom exceptions for configuration management."""


class ConfigError(Exception):
    """Raised when configuration data cannot be processed."""


class DatabaseConfigError(ConfigError):
    """Raised when database options for an environment cannot be resolved."""
