"""
Configuration management for replication runs.

Provides type-safe configuration loading and validation with support
for multiple configuration sources and priority-based merging.
"""

from .loader import ConfigLoader, create_default_config, load_config, normalize_key
from .models import AadSettings, AccountContext, AppSettings, MiscellaneousSettings

__all__ = [
    "AadSettings",
    "AccountContext",
    "AppSettings",
    "ConfigLoader",
    "MiscellaneousSettings",
    "create_default_config",
    "load_config",
    "normalize_key",
]
