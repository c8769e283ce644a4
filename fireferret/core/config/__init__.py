"""
Configuration Module

Centralized, type-safe configuration management for FireFerret.

Components:
-----------
- **settings.py**: Pydantic-based configuration with environment variable loading
- **constants.py**: Key grammar, sentinels, verdicts and log stages

Usage:
------
```python
from fireferret.core.config import get_settings
from fireferret.core.config.constants import CacheVerdict, Stage

settings = get_settings()
namespace = settings.cache.CACHE_NAMESPACE
```
"""

from fireferret.core.config.constants import CacheVerdict, Stage
from fireferret.core.config.settings import Settings, get_settings, reload_settings

__all__ = [
    "CacheVerdict",
    "Settings",
    "Stage",
    "get_settings",
    "reload_settings",
]
