"""
Configuration subsystem for eventmanager.

Static configuration is read from environment variables (with .env support)
when the package is imported and seeds every new `Manager`.

Usage
-----
```python
from eventmanager.core.config import Config

if Config.COLLECT_RESPONSES:
    ...

Config.load()      # re-read the environment
Config.validate()  # raise on values with no safe fallback
```
"""

from eventmanager.core.config.config import Config, ConfigLoadReport, Environment
from eventmanager.core.config.errors import ConfigError, ConfigValidationError

__all__ = [
    "Config",
    "Environment",
    "ConfigLoadReport",
    "ConfigError",
    "ConfigValidationError",
]
