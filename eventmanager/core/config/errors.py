"""
Configuration error hierarchy for eventmanager.

Exception Hierarchy
-------------------
ConfigError (base)
└── ConfigValidationError (invalid value that cannot fall back to a default)
"""


class ConfigError(Exception):
    """
    Base exception for all configuration-related errors.

    Example
    -------
    >>> try:
    ...     Config.validate()
    ... except ConfigError as e:
    ...     logger.error(f"Config check failed: {e}")
    """
    pass


class ConfigValidationError(ConfigError):
    """
    Raised when configuration validation fails.

    This exception is raised when:
    - The log level is not a recognised logging level name
    """
    pass


__all__ = [
    "ConfigError",
    "ConfigValidationError",
]
