"""Pydantic Settings v2 configuration for the storage client.

Import settings via cached loaders:
    from s3_service.core.settings import get_storage_settings

    settings = get_storage_settings()
    settings.validate_required()

Configuration precedence (highest to lowest):
    1. init kwargs and explicitly given command-line flags
    2. YAML/conf.d files (optional, local/dev)
    3. Environment variables (production)
    4. .env file (development only)
    5. secrets_dir (Kubernetes/Docker secrets)
"""

from __future__ import annotations

from .flags import (
    STORAGE_FLAGS,
    FlagSpec,
    find_flag,
    mark_required_flags,
    register_flags,
    settings_from_flags,
)
from .loader import clear_all_caches, get_logging_settings, get_storage_settings
from .logs import LoggingSettings
from .storage import (
    DEFAULT_DISABLED,
    DEFAULT_REGION,
    DEFAULT_SECURE,
    NamespaceMode,
    StorageSettings,
)

__all__ = [
    "DEFAULT_DISABLED",
    "DEFAULT_REGION",
    "DEFAULT_SECURE",
    "STORAGE_FLAGS",
    "FlagSpec",
    "LoggingSettings",
    "NamespaceMode",
    "StorageSettings",
    "clear_all_caches",
    "find_flag",
    "get_logging_settings",
    "get_storage_settings",
    "mark_required_flags",
    "register_flags",
    "settings_from_flags",
]
